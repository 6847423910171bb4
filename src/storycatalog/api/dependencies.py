"""FastAPI dependency injection providers."""

import secrets
import uuid
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Query, Security
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from storycatalog.config import get_settings
from storycatalog.infrastructure.database import get_session
from storycatalog.repositories.story_repo import StoryRepository
from storycatalog.services.genre_service import GenreService
from storycatalog.services.rating_service import RatingService

# Type alias for database session dependency
SessionDep = Annotated[AsyncSession, Depends(get_session)]

# Pagination query parameters
PageParam = Annotated[int, Query(ge=1)]
PageSizeParam = Annotated[int, Query(ge=1, le=get_settings().max_page_size)]

# --- API Key Authentication ---

_api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def require_api_key(
    api_key: str | None = Security(_api_key_header),
) -> str:
    """Verify API key for admin endpoints.

    If API_KEY is not configured (empty), auth is skipped (dev mode).
    In production, set API_KEY env var to enforce authentication.
    """
    settings = get_settings()
    if not settings.api_key:
        return "anonymous"
    if not api_key or not secrets.compare_digest(api_key, settings.api_key):
        raise HTTPException(status_code=403, detail="Invalid or missing API key")
    return api_key


ApiKeyDep = Annotated[str, Depends(require_api_key)]

# --- Current user ---


async def require_user_id(
    x_user_id: Annotated[str | None, Header()] = None,
) -> uuid.UUID:
    """Identify the caller from the X-User-Id header.

    The header is set by the authenticating gateway in front of this service.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Not signed in")
    try:
        return uuid.UUID(x_user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid user id")


UserIdDep = Annotated[uuid.UUID, Depends(require_user_id)]


async def get_story_repository(
    session: SessionDep,
) -> AsyncGenerator[StoryRepository, None]:
    """Provide StoryRepository instance."""
    yield StoryRepository(session)


async def get_genre_service(
    session: SessionDep,
) -> AsyncGenerator[GenreService, None]:
    """Provide GenreService instance."""
    yield GenreService(session)


async def get_rating_service(
    session: SessionDep,
) -> AsyncGenerator[RatingService, None]:
    """Provide RatingService instance."""
    yield RatingService(session)


# Type aliases for commonly used dependencies
StoryRepoDep = Annotated[StoryRepository, Depends(get_story_repository)]
GenreServiceDep = Annotated[GenreService, Depends(get_genre_service)]
RatingServiceDep = Annotated[RatingService, Depends(get_rating_service)]
