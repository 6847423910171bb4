"""Admin API endpoints: draft-inclusive listing, genre management."""

import uuid

from fastapi import APIRouter, Depends, Query

from storycatalog.api.dependencies import (
    GenreServiceDep,
    PageParam,
    PageSizeParam,
    StoryRepoDep,
    require_api_key,
)
from storycatalog.api.v1.schemas import (
    GenreRequest,
    GenreResponse,
    SetGenresRequest,
    StoryListResponse,
    StoryResponse,
)
from storycatalog.config import get_settings

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_api_key)],
)
settings = get_settings()


@router.get("/stories", response_model=StoryListResponse)
async def list_all_stories(
    story_repo: StoryRepoDep,
    page: PageParam = 1,
    page_size: PageSizeParam = settings.default_page_size,
) -> StoryListResponse:
    """List every story, drafts included."""
    result = await story_repo.list_stories(
        page=page, page_size=page_size, published_only=False
    )
    return StoryListResponse.from_page(result)


@router.get("/stories/search", response_model=StoryListResponse)
async def search_all_stories(
    story_repo: StoryRepoDep,
    q: str = Query(..., min_length=1, max_length=200),
    page: PageParam = 1,
    page_size: PageSizeParam = settings.default_page_size,
) -> StoryListResponse:
    """Substring search including drafts."""
    result = await story_repo.search_admin(q, page=page, page_size=page_size)
    return StoryListResponse.from_page(result)


@router.put("/stories/{story_id}/genres", response_model=StoryResponse)
async def set_story_genres(
    story_id: uuid.UUID,
    request: SetGenresRequest,
    story_repo: StoryRepoDep,
) -> StoryResponse:
    """Replace a story's genres; unknown genre IDs are ignored."""
    story = await story_repo.set_genres(story_id, request.genre_ids)
    return StoryResponse.model_validate(story)


@router.post("/genres", response_model=GenreResponse, status_code=201)
async def create_genre(
    request: GenreRequest, genre_service: GenreServiceDep
) -> GenreResponse:
    """Create a genre."""
    genre = await genre_service.create_genre(request.name, request.description)
    return GenreResponse.model_validate(genre)


@router.put("/genres/{genre_id}", response_model=GenreResponse)
async def update_genre(
    genre_id: uuid.UUID,
    request: GenreRequest,
    genre_service: GenreServiceDep,
) -> GenreResponse:
    """Rename a genre."""
    genre = await genre_service.update_genre(
        genre_id, request.name, request.description
    )
    return GenreResponse.model_validate(genre)


@router.delete("/genres/{genre_id}")
async def delete_genre(genre_id: uuid.UUID, genre_service: GenreServiceDep) -> dict:
    """Delete a genre; stories keep their other genres."""
    await genre_service.delete_genre(genre_id)
    return {"status": "deleted", "genre_id": str(genre_id)}
