"""Catalog error hierarchy."""

from uuid import UUID


class CatalogError(Exception):
    """Base class for all catalog errors."""


class NotFoundError(CatalogError):
    """An id-scoped operation referenced a missing record."""


class StoryNotFoundError(NotFoundError):
    def __init__(self, story_id: UUID | str) -> None:
        super().__init__(f"Story {story_id} not found")
        self.story_id = story_id


class GenreNotFoundError(NotFoundError):
    def __init__(self, genre_id: UUID | str) -> None:
        super().__init__(f"Genre {genre_id} not found")
        self.genre_id = genre_id


class InvalidInputError(CatalogError):
    """Rejected input: out-of-range score, bad pagination, blank names."""


class ConflictError(CatalogError):
    """A uniqueness or integrity constraint was violated by the store."""


class StorageUnavailableError(CatalogError):
    """The database could not be reached or dropped the connection."""
