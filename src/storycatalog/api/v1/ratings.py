"""Story rating API endpoints."""

import uuid

from fastapi import APIRouter

from storycatalog.api.dependencies import RatingServiceDep, UserIdDep
from storycatalog.api.v1.schemas import (
    MyRatingResponse,
    RateRequest,
    RateResponse,
    RatingAggregateResponse,
)

router = APIRouter(prefix="/ratings", tags=["ratings"])


@router.get("/stories/{story_id}", response_model=RatingAggregateResponse)
async def get_story_rating(
    story_id: uuid.UUID, rating_service: RatingServiceDep
) -> RatingAggregateResponse:
    """Live average rating and count for a story."""
    aggregate = await rating_service.get_aggregate(story_id)
    return RatingAggregateResponse(
        avg_rating=aggregate.average, rating_count=aggregate.count
    )


@router.post("/stories/{story_id}", response_model=RateResponse)
async def rate_story(
    story_id: uuid.UUID,
    request: RateRequest,
    user_id: UserIdDep,
    rating_service: RatingServiceDep,
) -> RateResponse:
    """Rate a story 1-5 stars; rating again overwrites the previous score."""
    rating = await rating_service.rate(user_id, story_id, request.score)
    aggregate = await rating_service.get_aggregate(story_id)
    return RateResponse(
        my_rating=rating.score,
        avg_rating=aggregate.average,
        rating_count=aggregate.count,
    )


@router.get("/stories/{story_id}/mine", response_model=MyRatingResponse)
async def get_my_rating(
    story_id: uuid.UUID,
    user_id: UserIdDep,
    rating_service: RatingServiceDep,
) -> MyRatingResponse:
    """The caller's rating for a story (null if not rated)."""
    score = await rating_service.get_mine(user_id, story_id)
    return MyRatingResponse(my_rating=score)


@router.delete("/stories/{story_id}/mine", response_model=RatingAggregateResponse)
async def delete_my_rating(
    story_id: uuid.UUID,
    user_id: UserIdDep,
    rating_service: RatingServiceDep,
) -> RatingAggregateResponse:
    """Remove the caller's rating for a story."""
    await rating_service.delete_mine(user_id, story_id)
    aggregate = await rating_service.get_aggregate(story_id)
    return RatingAggregateResponse(
        avg_rating=aggregate.average, rating_count=aggregate.count
    )
