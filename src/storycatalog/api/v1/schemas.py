"""Pydantic schemas for API request/response models."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from storycatalog.domain.rating import MAX_SCORE, MIN_SCORE
from storycatalog.repositories.story_repo import StoryPage


class GenreResponse(BaseModel):
    """Response schema for a genre."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    slug: str
    description: str | None = None


class ChapterResponse(BaseModel):
    """Response schema for chapter metadata."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    chapter_number: int
    title: str | None = None
    created_at: datetime


class StoryResponse(BaseModel):
    """Response schema for a story."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    slug: str
    description: str | None
    cover_image: str | None
    author: str | None
    is_published: bool
    status: str
    country: str | None
    release_year: int | None
    view_count: int
    rating: float | None
    rating_count: int
    created_at: datetime
    updated_at: datetime
    genres: list[GenreResponse] = []


class StoryDetailResponse(StoryResponse):
    """Story with its published chapter list."""

    chapters: list[ChapterResponse] = []


class StoryListResponse(BaseModel):
    """Response schema for paginated story list."""

    stories: list[StoryResponse]
    total: int
    page: int
    page_size: int
    has_more: bool

    @classmethod
    def from_page(cls, page: StoryPage) -> "StoryListResponse":
        return cls(
            stories=[StoryResponse.model_validate(s) for s in page.items],
            total=page.total,
            page=page.page,
            page_size=page.page_size,
            has_more=page.has_more,
        )


class GenreRequest(BaseModel):
    """Request body for creating or renaming a genre."""

    name: str = Field(min_length=1, max_length=50)
    description: str | None = None


class SetGenresRequest(BaseModel):
    """Request body replacing a story's genres."""

    genre_ids: list[uuid.UUID]


class RateRequest(BaseModel):
    """Request body for rating a story."""

    score: int = Field(ge=MIN_SCORE, le=MAX_SCORE)


class RatingAggregateResponse(BaseModel):
    """Live rating average for a story."""

    avg_rating: float
    rating_count: int


class MyRatingResponse(BaseModel):
    """The caller's rating; None when not rated."""

    my_rating: int | None


class RateResponse(RatingAggregateResponse):
    """Result of rating a story."""

    my_rating: int
