"""Story domain values: lifecycle status and result ordering."""

from enum import StrEnum


class StoryStatus(StrEnum):
    """Publication lifecycle of a serialized story."""

    ONGOING = "ongoing"
    COMPLETED = "completed"
    HIATUS = "hiatus"


class SortKey(StrEnum):
    """Orderings available to advanced search.

    LATEST: most recently updated first (default)
    POPULAR: view count descending
    NAME: title ascending
    RATING: cached rating descending, unrated stories last
    OLDEST: creation time ascending
    """

    LATEST = "latest"
    POPULAR = "popular"
    NAME = "name"
    RATING = "rating"
    OLDEST = "oldest"

    @classmethod
    def parse(cls, value: "str | SortKey | None") -> "SortKey":
        """Resolve a user-supplied sort key, falling back to LATEST."""
        if isinstance(value, SortKey):
            return value
        if not value:
            return cls.LATEST
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.LATEST
