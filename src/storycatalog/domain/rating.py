"""Rating domain values."""

from dataclasses import dataclass

from storycatalog.domain.errors import InvalidInputError

MIN_SCORE = 1
MAX_SCORE = 5


@dataclass(frozen=True)
class RatingAggregate:
    """Average score and number of ratings for one story.

    This is the live value: average is 0.0 when there are no ratings.
    The copy cached on the story row stores NULL instead (see ``cached_average``).
    """

    average: float
    count: int

    @property
    def cached_average(self) -> float | None:
        """Average as stored on the story row; absent means no ratings yet."""
        if self.count == 0:
            return None
        return self.average


def validate_score(score: object) -> int:
    """Return ``score`` if it is an integer star rating, else raise."""
    # bool is an int subclass
    if isinstance(score, bool) or not isinstance(score, int):
        raise InvalidInputError(f"Rating must be an integer, got {score!r}")
    if score < MIN_SCORE or score > MAX_SCORE:
        raise InvalidInputError(
            f"Rating must be between {MIN_SCORE} and {MAX_SCORE}, got {score}"
        )
    return score
