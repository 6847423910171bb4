"""Story repository: catalog queries, point lookups and genre associations."""

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field

from sqlalchemy import ColumnElement, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.attributes import set_committed_value
from sqlalchemy.orm.util import identity_key

from storycatalog.domain.errors import InvalidInputError, StoryNotFoundError
from storycatalog.domain.rating import RatingAggregate
from storycatalog.domain.story import SortKey
from storycatalog.infrastructure.models import (
    ChapterModel,
    GenreModel,
    StoryModel,
    story_genres,
)
from storycatalog.repositories.query_utils import (
    LIKE_ESCAPE,
    clean_text,
    contains_pattern,
    page_offset,
)

logger = logging.getLogger(__name__)


@dataclass
class SearchFilters:
    """Structured filter for advanced story search.

    Every dimension is optional; None or a blank string leaves it
    unconstrained. Specified dimensions are combined with AND.
    - query: substring of title or description (case-insensitive)
    - status / country: exact match
    - year_from / year_to: inclusive release year bounds
    - genre_slugs: story carries at least one of these genres (OR)
    """

    query: str | None = None
    status: str | None = None
    country: str | None = None
    year_from: int | None = None
    year_to: int | None = None
    genre_slugs: list[str] = field(default_factory=list)
    sort_by: SortKey | str | None = SortKey.LATEST

    def cleaned_genre_slugs(self) -> list[str]:
        """Genre slugs with blank entries removed."""
        return [s.strip() for s in self.genre_slugs if s and s.strip()]


@dataclass
class StoryPage:
    """One page of stories plus the size of the whole filtered set."""

    items: list[StoryModel]
    total: int
    page: int
    page_size: int

    @property
    def has_more(self) -> bool:
        return self.page * self.page_size < self.total


_SORT_ORDER = {
    SortKey.LATEST: (StoryModel.updated_at.desc(),),
    SortKey.POPULAR: (StoryModel.view_count.desc(),),
    SortKey.NAME: (StoryModel.title.asc(),),
    SortKey.RATING: (StoryModel.rating.desc().nulls_last(),),
    SortKey.OLDEST: (StoryModel.created_at.asc(),),
}


def _text_match(query: str) -> ColumnElement[bool]:
    pattern = contains_pattern(query)
    return or_(
        StoryModel.title.ilike(pattern, escape=LIKE_ESCAPE),
        StoryModel.description.ilike(pattern, escape=LIKE_ESCAPE),
    )


class StoryRepository:
    """Repository for story queries and updates."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session."""
        self.session = session

    # --- Point lookups ---

    async def get_by_id(self, story_id: uuid.UUID) -> StoryModel | None:
        """Get a story by its ID."""
        stmt = (
            select(StoryModel)
            .options(selectinload(StoryModel.genres))
            .where(StoryModel.id == story_id)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_slug(self, slug: str) -> StoryModel | None:
        """Get a published story by slug, with genres and published chapters."""
        stmt = (
            select(StoryModel)
            .options(
                selectinload(StoryModel.genres),
                selectinload(
                    StoryModel.chapters.and_(ChapterModel.is_published.is_(True))
                ),
            )
            .where(StoryModel.slug == slug)
            .where(StoryModel.is_published.is_(True))
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    # --- Listings and searches ---

    async def _fetch_page(
        self,
        conditions: Sequence[ColumnElement[bool]],
        order_by: Sequence,
        page: int,
        page_size: int,
    ) -> StoryPage:
        """Run the count and the page query for one predicate set."""
        offset = page_offset(page, page_size)

        count_stmt = select(func.count(StoryModel.id)).where(*conditions)
        total = (await self.session.execute(count_stmt)).scalar() or 0

        stmt = (
            select(StoryModel)
            .options(selectinload(StoryModel.genres))
            .where(*conditions)
            .order_by(*order_by, StoryModel.id.asc())
            .offset(offset)
            .limit(page_size)
        )
        result = await self.session.execute(stmt)
        return StoryPage(
            items=list(result.scalars().all()),
            total=total,
            page=page,
            page_size=page_size,
        )

    async def _fetch_shelf(self, order_by: ColumnElement, limit: int) -> list[StoryModel]:
        if limit < 1:
            raise InvalidInputError(f"limit must be >= 1, got {limit}")
        stmt = (
            select(StoryModel)
            .options(selectinload(StoryModel.genres))
            .where(StoryModel.is_published.is_(True))
            .order_by(order_by, StoryModel.id.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_stories(
        self,
        page: int = 1,
        page_size: int = 20,
        published_only: bool = True,
    ) -> StoryPage:
        """List stories, most recently updated first."""
        conditions = []
        if published_only:
            conditions.append(StoryModel.is_published.is_(True))
        return await self._fetch_page(
            conditions, _SORT_ORDER[SortKey.LATEST], page, page_size
        )

    async def list_by_genre(
        self,
        genre_id: uuid.UUID,
        page: int = 1,
        page_size: int = 20,
    ) -> StoryPage:
        """List published stories tagged with a genre."""
        genre_subq = select(story_genres.c.story_id).where(
            story_genres.c.genre_id == genre_id
        )
        conditions = [
            StoryModel.is_published.is_(True),
            StoryModel.id.in_(genre_subq),
        ]
        return await self._fetch_page(
            conditions, _SORT_ORDER[SortKey.LATEST], page, page_size
        )

    async def list_latest(self, limit: int = 12) -> list[StoryModel]:
        """Most recently updated published stories."""
        return await self._fetch_shelf(StoryModel.updated_at.desc(), limit)

    async def list_hot(self, limit: int = 12) -> list[StoryModel]:
        """Most viewed published stories."""
        return await self._fetch_shelf(StoryModel.view_count.desc(), limit)

    async def search(self, query: str, page: int = 1, page_size: int = 20) -> StoryPage:
        """Substring search over published stories' title and description."""
        conditions = [StoryModel.is_published.is_(True), _text_match(query)]
        return await self._fetch_page(
            conditions, _SORT_ORDER[SortKey.LATEST], page, page_size
        )

    async def search_admin(
        self, query: str, page: int = 1, page_size: int = 20
    ) -> StoryPage:
        """Substring search including unpublished drafts."""
        return await self._fetch_page(
            [_text_match(query)], _SORT_ORDER[SortKey.LATEST], page, page_size
        )

    def _build_search_conditions(self, filters: SearchFilters) -> list:
        """Build SQLAlchemy filter conditions from SearchFilters."""
        conditions: list = [StoryModel.is_published.is_(True)]

        query = clean_text(filters.query)
        if query:
            conditions.append(_text_match(query))

        status = clean_text(filters.status)
        if status:
            conditions.append(StoryModel.status == status)

        country = clean_text(filters.country)
        if country:
            conditions.append(StoryModel.country == country)

        if filters.year_from is not None:
            conditions.append(StoryModel.release_year >= filters.year_from)
        if filters.year_to is not None:
            conditions.append(StoryModel.release_year <= filters.year_to)

        # Genre slugs: story must have at least one of these genres
        slugs = filters.cleaned_genre_slugs()
        if slugs:
            genre_subq = (
                select(story_genres.c.story_id)
                .join(GenreModel, story_genres.c.genre_id == GenreModel.id)
                .where(GenreModel.slug.in_(slugs))
            )
            conditions.append(StoryModel.id.in_(genre_subq))

        return conditions

    async def advanced_search(
        self,
        filters: SearchFilters,
        page: int = 1,
        page_size: int = 20,
    ) -> StoryPage:
        """Search published stories with a conjunction of optional filters."""
        conditions = self._build_search_conditions(filters)
        order_by = _SORT_ORDER[SortKey.parse(filters.sort_by)]
        return await self._fetch_page(conditions, order_by, page, page_size)

    # --- Updates ---

    async def increment_view_count(self, story_id: uuid.UUID) -> bool:
        """Atomically bump the view counter. Returns False if no such story.

        A copy of the story already loaded in the session sees the new count.
        """
        stmt = (
            update(StoryModel)
            .where(StoryModel.id == story_id)
            .values(
                view_count=StoryModel.view_count + 1,
                updated_at=StoryModel.updated_at,
            )
            .returning(StoryModel.view_count)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        view_count = result.scalar_one_or_none()
        if view_count is None:
            return False

        loaded = self.session.identity_map.get(identity_key(StoryModel, story_id))
        if loaded is not None:
            set_committed_value(loaded, "view_count", view_count)
        return True

    async def update_cached_rating(
        self, story_id: uuid.UUID, aggregate: RatingAggregate
    ) -> None:
        """Write the denormalized rating fields onto the story row.

        updated_at is carried over unchanged so a rating does not move the
        story up the "latest" ordering.
        """
        stmt = (
            update(StoryModel)
            .where(StoryModel.id == story_id)
            .values(
                rating=aggregate.cached_average,
                rating_count=aggregate.count,
                updated_at=StoryModel.updated_at,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def list_ids(self) -> list[uuid.UUID]:
        """All story IDs, used by maintenance jobs."""
        result = await self.session.execute(select(StoryModel.id))
        return list(result.scalars().all())

    async def set_genres(
        self, story_id: uuid.UUID, genre_ids: Sequence[uuid.UUID]
    ) -> StoryModel:
        """Replace the story's whole genre set.

        Unknown IDs are dropped. The association rows are rewritten in a
        single flush, so the caller's transaction sees either the old set
        or the new one.
        """
        story = await self.session.get(
            StoryModel,
            story_id,
            options=[selectinload(StoryModel.genres)],
            populate_existing=True,
        )
        if story is None:
            raise StoryNotFoundError(story_id)

        genres: list[GenreModel] = []
        unique_ids = set(genre_ids)
        if unique_ids:
            stmt = select(GenreModel).where(GenreModel.id.in_(unique_ids))
            result = await self.session.execute(stmt)
            genres = list(result.scalars().all())

        if len(genres) < len(unique_ids):
            logger.info(
                f"Ignoring {len(unique_ids) - len(genres)} unknown genre id(s) "
                f"for story {story_id}"
            )

        story.genres = genres
        await self.session.flush()
        return story


class GenreRepository:
    """Repository for Genre CRUD operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session."""
        self.session = session

    async def get_by_id(self, genre_id: uuid.UUID) -> GenreModel | None:
        """Get a genre by its ID."""
        return await self.session.get(GenreModel, genre_id)

    async def get_all(self) -> list[GenreModel]:
        """Get all genres ordered by name."""
        stmt = select(GenreModel).order_by(GenreModel.name)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create(
        self, name: str, slug: str, description: str | None = None
    ) -> GenreModel:
        """Create a new genre."""
        genre = GenreModel(name=name, slug=slug, description=description)
        self.session.add(genre)
        await self.session.flush()
        return genre

    async def delete(self, genre_id: uuid.UUID) -> bool:
        """Delete a genre and detach it from every story.

        Returns False if the genre does not exist.
        """
        await self.session.execute(
            delete(story_genres).where(story_genres.c.genre_id == genre_id)
        )
        result = await self.session.execute(
            delete(GenreModel).where(GenreModel.id == genre_id)
        )
        return result.rowcount > 0
