"""Repository for per-user story ratings."""

import uuid

from sqlalchemy import Select, delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from storycatalog.domain.rating import RatingAggregate
from storycatalog.infrastructure.models import StoryRatingModel

_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class StoryRatingRepository:
    """Repository for StoryRating rows, keyed by (user_id, story_id)."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session."""
        self.session = session

    @staticmethod
    def _select_one(user_id: uuid.UUID, story_id: uuid.UUID) -> Select:
        return (
            select(StoryRatingModel)
            .where(StoryRatingModel.user_id == user_id)
            .where(StoryRatingModel.story_id == story_id)
            .execution_options(populate_existing=True)
        )

    async def find(
        self, user_id: uuid.UUID, story_id: uuid.UUID
    ) -> StoryRatingModel | None:
        """Get a user's rating for a story."""
        result = await self.session.execute(self._select_one(user_id, story_id))
        return result.scalar_one_or_none()

    async def upsert(
        self, user_id: uuid.UUID, story_id: uuid.UUID, score: int
    ) -> StoryRatingModel:
        """Insert or overwrite the user's rating for a story.

        Uses INSERT ... ON CONFLICT (user_id, story_id) DO UPDATE where the
        dialect supports it, so two concurrent first ratings from one user
        still end up as a single row.
        """
        dialect = self.session.get_bind().dialect.name
        insert_fn = _UPSERT_INSERTS.get(dialect)

        if insert_fn is None:
            return await self._upsert_fallback(user_id, story_id, score)

        stmt = insert_fn(StoryRatingModel).values(
            id=uuid.uuid4(),
            user_id=user_id,
            story_id=story_id,
            score=score,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "story_id"],
            set_={
                "score": stmt.excluded.score,
                "updated_at": func.now(),
            },
        )
        await self.session.execute(stmt)

        result = await self.session.execute(self._select_one(user_id, story_id))
        return result.scalar_one()

    async def _upsert_fallback(
        self, user_id: uuid.UUID, story_id: uuid.UUID, score: int
    ) -> StoryRatingModel:
        """Select-then-write upsert; a racing insert surfaces as IntegrityError."""
        existing = await self.find(user_id, story_id)

        if existing:
            existing.score = score
            await self.session.flush()
            return existing

        rating = StoryRatingModel(user_id=user_id, story_id=story_id, score=score)
        self.session.add(rating)
        await self.session.flush()
        return rating

    async def delete(self, user_id: uuid.UUID, story_id: uuid.UUID) -> bool:
        """Remove the user's rating. Returns False if there was none."""
        stmt = (
            delete(StoryRatingModel)
            .where(StoryRatingModel.user_id == user_id)
            .where(StoryRatingModel.story_id == story_id)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def get_aggregate(self, story_id: uuid.UUID) -> RatingAggregate:
        """Average and count computed from the current rating rows."""
        stmt = select(
            func.coalesce(func.avg(StoryRatingModel.score), 0),
            func.count(StoryRatingModel.id),
        ).where(StoryRatingModel.story_id == story_id)
        result = await self.session.execute(stmt)
        avg, count = result.one()
        return RatingAggregate(average=float(avg), count=int(count))
