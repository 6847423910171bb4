"""Rating service - user star ratings and the cached story aggregate."""

import logging
import time
import uuid
from collections.abc import Sequence
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from storycatalog.domain.errors import StoryNotFoundError
from storycatalog.domain.rating import RatingAggregate, validate_score
from storycatalog.infrastructure.database import storage_errors
from storycatalog.infrastructure.metrics_log import MetricsLog, get_metrics_log
from storycatalog.infrastructure.models import StoryModel, StoryRatingModel
from storycatalog.repositories.rating_repo import StoryRatingRepository
from storycatalog.repositories.story_repo import StoryRepository

logger = logging.getLogger(__name__)


class RatingStore(Protocol):
    """Rating row operations the service depends on."""

    async def find(
        self, user_id: uuid.UUID, story_id: uuid.UUID
    ) -> StoryRatingModel | None: ...

    async def upsert(
        self, user_id: uuid.UUID, story_id: uuid.UUID, score: int
    ) -> StoryRatingModel: ...

    async def delete(self, user_id: uuid.UUID, story_id: uuid.UUID) -> bool: ...

    async def get_aggregate(self, story_id: uuid.UUID) -> RatingAggregate: ...


class StoryStore(Protocol):
    """Story operations the service depends on."""

    async def get_by_id(self, story_id: uuid.UUID) -> StoryModel | None: ...

    async def update_cached_rating(
        self, story_id: uuid.UUID, aggregate: RatingAggregate
    ) -> None: ...

    async def list_ids(self) -> Sequence[uuid.UUID]: ...


class RatingService:
    """Owns the (user, story) rating lifecycle.

    Each pair is either unrated or rated with one score. ``rate`` moves it to
    rated (or overwrites the score), ``delete_mine`` moves it back to unrated.

    The story row carries a cached average/count. After every committed
    rating change the cache is recomputed from all rating rows and written
    back. A failed refresh does not fail the rating change: it is logged and
    recorded in the metrics log, and the cache stays stale until the next
    change on that story (or a rebuild). Concurrent refreshes may also land
    out of order. ``get_aggregate`` always reads the live rows.
    """

    def __init__(
        self,
        session: AsyncSession,
        ratings: RatingStore | None = None,
        stories: StoryStore | None = None,
        metrics: MetricsLog | None = None,
    ) -> None:
        """Initialize rating service with database session.

        Args:
            session: AsyncSession used to commit each step
            ratings: Rating store (defaults to StoryRatingRepository)
            stories: Story store (defaults to StoryRepository)
            metrics: Metrics log (defaults to the process-wide log)
        """
        self.session = session
        self.ratings = ratings or StoryRatingRepository(session)
        self.stories = stories or StoryRepository(session)
        self.metrics = metrics or get_metrics_log()

    async def _require_story(self, story_id: uuid.UUID) -> StoryModel:
        story = await self.stories.get_by_id(story_id)
        if story is None:
            raise StoryNotFoundError(story_id)
        return story

    async def rate(
        self, user_id: uuid.UUID, story_id: uuid.UUID, score: int
    ) -> StoryRatingModel:
        """Rate a story 1-5 stars, creating or overwriting the user's rating.

        Raises:
            InvalidInputError: score is not an integer in [1, 5]
            StoryNotFoundError: story does not exist
            ConflictError / StorageUnavailableError: the write failed
        """
        score = validate_score(score)
        await self._require_story(story_id)

        async with storage_errors():
            rating = await self.ratings.upsert(user_id, story_id, score)
            await self.session.commit()

        logger.info(f"User {user_id} rated story {story_id}: {score}")
        await self.refresh_cached_rating(story_id)
        return rating

    async def get_mine(self, user_id: uuid.UUID, story_id: uuid.UUID) -> int | None:
        """Get the user's score for a story, or None if not rated."""
        rating = await self.ratings.find(user_id, story_id)
        if rating is None:
            return None
        return rating.score

    async def delete_mine(self, user_id: uuid.UUID, story_id: uuid.UUID) -> bool:
        """Remove the user's rating. Removing a missing rating is a no-op.

        Returns:
            True if a rating row was deleted

        Raises:
            StoryNotFoundError: story does not exist
        """
        await self._require_story(story_id)

        async with storage_errors():
            removed = await self.ratings.delete(user_id, story_id)
            await self.session.commit()

        if removed:
            logger.info(f"User {user_id} removed rating on story {story_id}")
        await self.refresh_cached_rating(story_id)
        return removed

    async def get_aggregate(self, story_id: uuid.UUID) -> RatingAggregate:
        """Live average and count for a story (0.0, 0 when unrated)."""
        return await self.ratings.get_aggregate(story_id)

    async def refresh_cached_rating(self, story_id: uuid.UUID) -> RatingAggregate | None:
        """Recompute the story's cached rating from its rating rows.

        Never raises: the rating change it follows has already committed.

        Returns:
            The aggregate written, or None if the refresh failed
        """
        start_time = time.perf_counter()
        try:
            aggregate = await self.ratings.get_aggregate(story_id)
            await self.stories.update_cached_rating(story_id, aggregate)
            await self.session.commit()
        except Exception:
            logger.exception(
                f"Cached rating refresh failed for story {story_id}; "
                "cached value is stale until its next rating change"
            )
            await self._rollback_after_refresh(story_id)
            duration_ms = (time.perf_counter() - start_time) * 1000
            self._record_refresh(duration_ms, 0, outcome="refresh_failed")
            return None

        duration_ms = (time.perf_counter() - start_time) * 1000
        self._record_refresh(duration_ms, aggregate.count)
        return aggregate

    async def _rollback_after_refresh(self, story_id: uuid.UUID) -> None:
        try:
            await self.session.rollback()
        except Exception:
            logger.exception(f"Rollback after failed refresh of story {story_id} failed")

    def _record_refresh(
        self, duration_ms: float, item_count: int, outcome: str = "ok"
    ) -> None:
        try:
            self.metrics.record(
                "refresh_cached_rating", duration_ms, item_count, outcome=outcome
            )
        except OSError:
            logger.exception("Could not write refresh_cached_rating metrics row")

    async def rebuild_all_cached_ratings(self) -> int:
        """Recompute the cached rating of every story.

        Returns:
            Number of stories refreshed successfully
        """
        story_ids = await self.stories.list_ids()
        refreshed = 0
        for story_id in story_ids:
            if await self.refresh_cached_rating(story_id) is not None:
                refreshed += 1

        failed = len(story_ids) - refreshed
        if failed:
            logger.warning(f"Rebuilt {refreshed} cached ratings, {failed} failed")
        else:
            logger.info(f"Rebuilt {refreshed} cached ratings")
        return refreshed
