"""Genre API endpoints."""

import uuid

from fastapi import APIRouter

from storycatalog.api.dependencies import (
    GenreServiceDep,
    PageParam,
    PageSizeParam,
    StoryRepoDep,
)
from storycatalog.api.v1.schemas import GenreResponse, StoryListResponse
from storycatalog.config import get_settings

router = APIRouter(prefix="/genres", tags=["genres"])
settings = get_settings()


@router.get("", response_model=list[GenreResponse])
async def list_genres(genre_service: GenreServiceDep) -> list[GenreResponse]:
    """List all genres by name."""
    genres = await genre_service.list_genres()
    return [GenreResponse.model_validate(g) for g in genres]


@router.get("/{genre_id}/stories", response_model=StoryListResponse)
async def list_genre_stories(
    genre_id: uuid.UUID,
    genre_service: GenreServiceDep,
    story_repo: StoryRepoDep,
    page: PageParam = 1,
    page_size: PageSizeParam = settings.default_page_size,
) -> StoryListResponse:
    """List published stories tagged with a genre."""
    await genre_service.get_genre(genre_id)
    result = await story_repo.list_by_genre(genre_id, page=page, page_size=page_size)
    return StoryListResponse.from_page(result)
