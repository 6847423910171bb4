"""Story API endpoints."""

from fastapi import APIRouter, HTTPException, Query

from storycatalog.api.dependencies import PageParam, PageSizeParam, StoryRepoDep
from storycatalog.api.v1.schemas import (
    StoryDetailResponse,
    StoryListResponse,
    StoryResponse,
)
from storycatalog.config import get_settings
from storycatalog.repositories.story_repo import SearchFilters

router = APIRouter(prefix="/stories", tags=["stories"])
settings = get_settings()


@router.get("", response_model=StoryListResponse)
async def list_stories(
    story_repo: StoryRepoDep,
    page: PageParam = 1,
    page_size: PageSizeParam = settings.default_page_size,
) -> StoryListResponse:
    """List published stories, most recently updated first."""
    result = await story_repo.list_stories(page=page, page_size=page_size)
    return StoryListResponse.from_page(result)


@router.get("/latest", response_model=list[StoryResponse])
async def list_latest(
    story_repo: StoryRepoDep,
    limit: int = Query(settings.latest_limit, ge=1, le=settings.max_page_size),
) -> list[StoryResponse]:
    """Most recently updated published stories."""
    stories = await story_repo.list_latest(limit=limit)
    return [StoryResponse.model_validate(s) for s in stories]


@router.get("/hot", response_model=list[StoryResponse])
async def list_hot(
    story_repo: StoryRepoDep,
    limit: int = Query(settings.hot_limit, ge=1, le=settings.max_page_size),
) -> list[StoryResponse]:
    """Most viewed published stories."""
    stories = await story_repo.list_hot(limit=limit)
    return [StoryResponse.model_validate(s) for s in stories]


@router.get("/search", response_model=StoryListResponse)
async def search_stories(
    story_repo: StoryRepoDep,
    q: str = Query(..., min_length=1, max_length=200),
    page: PageParam = 1,
    page_size: PageSizeParam = settings.default_page_size,
) -> StoryListResponse:
    """Substring search over title and description."""
    result = await story_repo.search(q, page=page, page_size=page_size)
    return StoryListResponse.from_page(result)


@router.get("/advanced-search", response_model=StoryListResponse)
async def advanced_search(
    story_repo: StoryRepoDep,
    q: str | None = Query(None, max_length=200),
    status: str | None = Query(None),
    country: str | None = Query(None),
    genres: str | None = Query(None, description="Comma-separated genre slugs"),
    year_from: int | None = Query(None),
    year_to: int | None = Query(None),
    sort_by: str | None = Query(None),
    page: PageParam = 1,
    page_size: PageSizeParam = settings.default_page_size,
) -> StoryListResponse:
    """Search with optional text, status, country, year range and genre filters."""
    filters = SearchFilters(
        query=q,
        status=status,
        country=country,
        year_from=year_from,
        year_to=year_to,
        genre_slugs=genres.split(",") if genres else [],
        sort_by=sort_by,
    )
    result = await story_repo.advanced_search(filters, page=page, page_size=page_size)
    return StoryListResponse.from_page(result)


@router.get("/{slug}", response_model=StoryDetailResponse)
async def get_story(slug: str, story_repo: StoryRepoDep) -> StoryDetailResponse:
    """Get a published story by slug and count the view."""
    story = await story_repo.get_by_slug(slug)
    if not story:
        raise HTTPException(status_code=404, detail="Story not found")
    await story_repo.increment_view_count(story.id)
    return StoryDetailResponse.model_validate(story)
