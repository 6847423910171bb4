"""Tests for RatingService: rating lifecycle and the cached story aggregate."""

import csv
import logging
import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from storycatalog.domain.errors import InvalidInputError, StoryNotFoundError
from storycatalog.domain.rating import RatingAggregate
from storycatalog.infrastructure.models import StoryModel, StoryRatingModel
from storycatalog.services.rating_service import RatingService


@pytest.fixture
def service(test_session) -> RatingService:
    return RatingService(test_session)


async def count_rows(session, user_id, story_id) -> int:
    stmt = (
        select(func.count(StoryRatingModel.id))
        .where(StoryRatingModel.user_id == user_id)
        .where(StoryRatingModel.story_id == story_id)
    )
    return (await session.execute(stmt)).scalar()


class TestRate:
    """Tests for rate and get_mine."""

    @pytest.mark.parametrize("score", [1, 2, 3, 4, 5])
    async def test_rate_then_get_mine(self, service, make_story, score):
        story = await make_story()
        user_id = uuid.uuid4()

        rating = await service.rate(user_id, story.id, score)

        assert rating.score == score
        assert await service.get_mine(user_id, story.id) == score

    async def test_rerate_overwrites_single_row(self, service, make_story, test_session):
        story = await make_story()
        user_id = uuid.uuid4()

        first = await service.rate(user_id, story.id, 2)
        first_id = first.id
        second = await service.rate(user_id, story.id, 5)

        assert second.id == first_id
        assert second.score == 5
        assert await count_rows(test_session, user_id, story.id) == 1
        assert await service.get_mine(user_id, story.id) == 5

    @pytest.mark.parametrize("score", [0, 6, -1])
    async def test_invalid_score_writes_nothing(
        self, service, make_story, test_session, score
    ):
        story = await make_story()
        user_id = uuid.uuid4()

        with pytest.raises(InvalidInputError):
            await service.rate(user_id, story.id, score)

        assert await count_rows(test_session, user_id, story.id) == 0

    async def test_invalid_score_leaves_existing_rating(self, service, make_story):
        story = await make_story()
        user_id = uuid.uuid4()
        await service.rate(user_id, story.id, 3)

        with pytest.raises(InvalidInputError):
            await service.rate(user_id, story.id, 9)

        assert await service.get_mine(user_id, story.id) == 3

    async def test_missing_story(self, service):
        with pytest.raises(StoryNotFoundError):
            await service.rate(uuid.uuid4(), uuid.uuid4(), 4)

    async def test_get_mine_not_rated(self, service, make_story):
        story = await make_story()
        assert await service.get_mine(uuid.uuid4(), story.id) is None

    async def test_users_rate_independently(self, service, make_story):
        story = await make_story()
        alice, bob = uuid.uuid4(), uuid.uuid4()

        await service.rate(alice, story.id, 1)
        await service.rate(bob, story.id, 5)

        assert await service.get_mine(alice, story.id) == 1
        assert await service.get_mine(bob, story.id) == 5


class TestDeleteMine:
    async def test_delete_then_not_rated(self, service, make_story):
        story = await make_story()
        user_id = uuid.uuid4()
        await service.rate(user_id, story.id, 4)

        assert await service.delete_mine(user_id, story.id) is True
        assert await service.get_mine(user_id, story.id) is None

    async def test_second_delete_is_noop(self, service, make_story):
        story = await make_story()
        user_id = uuid.uuid4()
        await service.rate(user_id, story.id, 4)
        await service.delete_mine(user_id, story.id)

        assert await service.delete_mine(user_id, story.id) is False

    async def test_delete_without_rating_is_noop(self, service, make_story):
        story = await make_story()
        assert await service.delete_mine(uuid.uuid4(), story.id) is False

    async def test_delete_missing_story(self, service):
        with pytest.raises(StoryNotFoundError):
            await service.delete_mine(uuid.uuid4(), uuid.uuid4())


class TestAggregate:
    """Tests for the live aggregate and the cached copy on the story."""

    async def test_three_four_five(self, service, make_story):
        story = await make_story()
        for score in (3, 4, 5):
            await service.rate(uuid.uuid4(), story.id, score)

        aggregate = await service.get_aggregate(story.id)

        assert aggregate == RatingAggregate(average=4.0, count=3)

    async def test_no_ratings(self, service, make_story):
        story = await make_story()
        assert await service.get_aggregate(story.id) == RatingAggregate(0.0, 0)

    async def test_cached_fields_follow_changes(self, service, make_story, test_session):
        story = await make_story()
        alice, bob = uuid.uuid4(), uuid.uuid4()

        await service.rate(alice, story.id, 2)
        await service.rate(bob, story.id, 4)
        await test_session.refresh(story)
        assert story.rating == 3.0
        assert story.rating_count == 2

        await service.rate(alice, story.id, 5)
        await test_session.refresh(story)
        assert story.rating == 4.5
        assert story.rating_count == 2

        await service.delete_mine(bob, story.id)
        await test_session.refresh(story)
        assert story.rating == 5.0
        assert story.rating_count == 1

    async def test_cached_average_cleared_when_last_rating_removed(
        self, service, make_story, test_session
    ):
        story = await make_story()
        user_id = uuid.uuid4()
        await service.rate(user_id, story.id, 4)

        await service.delete_mine(user_id, story.id)
        await test_session.refresh(story)

        assert story.rating is None
        assert story.rating_count == 0

    async def test_refresh_records_metrics(self, service, make_story, metrics_log):
        story = await make_story()
        await service.rate(uuid.uuid4(), story.id, 5)

        with open(metrics_log.filepath) as f:
            rows = list(csv.reader(f))

        assert rows[-1][1] == "refresh_cached_rating"
        assert rows[-1][3] == "1"
        assert rows[-1][4] == "ok"

    async def test_failed_metrics_write_does_not_fail_rate(
        self, make_story, test_session, caplog
    ):
        metrics = MagicMock()
        metrics.record.side_effect = OSError("disk full")
        service = RatingService(test_session, metrics=metrics)
        story = await make_story()
        user_id = uuid.uuid4()

        with caplog.at_level(logging.ERROR):
            rating = await service.rate(user_id, story.id, 5)

        assert rating.score == 5
        await test_session.refresh(story)
        assert (story.rating, story.rating_count) == (5.0, 1)
        assert "Could not write refresh_cached_rating metrics row" in caplog.text

    async def test_rebuild_heals_stale_cache(self, service, make_story, test_session):
        story = await make_story()
        await service.rate(uuid.uuid4(), story.id, 2)
        await service.rate(uuid.uuid4(), story.id, 4)
        stale = await make_story(rating=1.0, rating_count=9)
        await test_session.commit()

        refreshed = await service.rebuild_all_cached_ratings()

        assert refreshed == 2
        await test_session.refresh(story)
        await test_session.refresh(stale)
        assert (story.rating, story.rating_count) == (3.0, 2)
        assert (stale.rating, stale.rating_count) == (None, 0)


class TestRefreshFailure:
    """A failed cache refresh must not fail the rating change."""

    def _make_service(self, metrics=None):
        story = StoryModel(id=uuid.uuid4(), title="T", slug="t")
        rating = StoryRatingModel(
            id=uuid.uuid4(), user_id=uuid.uuid4(), story_id=story.id, score=4
        )

        ratings = AsyncMock()
        ratings.upsert.return_value = rating
        ratings.delete.return_value = True
        ratings.get_aggregate.side_effect = OperationalError(
            "SELECT avg(score)", {}, Exception("connection refused")
        )

        stories = AsyncMock()
        stories.get_by_id.return_value = story

        session = AsyncMock()
        service = RatingService(
            session, ratings=ratings, stories=stories, metrics=metrics or MagicMock()
        )
        return service, session, stories, story, rating

    async def test_rate_succeeds_when_refresh_fails(self, caplog):
        service, session, stories, story, rating = self._make_service()

        with caplog.at_level(logging.ERROR):
            result = await service.rate(rating.user_id, story.id, 4)

        assert result is rating
        session.commit.assert_awaited_once()
        session.rollback.assert_awaited_once()
        stories.update_cached_rating.assert_not_awaited()
        assert "Cached rating refresh failed" in caplog.text

    async def test_delete_succeeds_when_refresh_fails(self, caplog):
        service, session, _, story, rating = self._make_service()

        with caplog.at_level(logging.ERROR):
            removed = await service.delete_mine(rating.user_id, story.id)

        assert removed is True
        assert str(story.id) in caplog.text

    async def test_failure_recorded_in_metrics(self):
        metrics = MagicMock()
        service, _, _, story, rating = self._make_service(metrics=metrics)

        await service.rate(rating.user_id, story.id, 4)

        metrics.record.assert_called_once()
        assert metrics.record.call_args.kwargs["outcome"] == "refresh_failed"

    async def test_refresh_returns_none_on_failure(self):
        service, _, _, story, _ = self._make_service()
        assert await service.refresh_cached_rating(story.id) is None

    async def test_rate_succeeds_on_raw_driver_error(self, caplog):
        service, session, _, story, rating = self._make_service()
        service.ratings.get_aggregate.side_effect = ConnectionRefusedError(
            "connect to 127.0.0.1:5432 refused"
        )

        with caplog.at_level(logging.ERROR):
            result = await service.rate(rating.user_id, story.id, 4)

        assert result is rating
        session.rollback.assert_awaited_once()
        assert "Cached rating refresh failed" in caplog.text

    async def test_rate_succeeds_when_rollback_also_fails(self):
        service, session, _, story, rating = self._make_service()
        session.rollback.side_effect = OSError("connection reset")

        assert await service.rate(rating.user_id, story.id, 4) is rating

    async def test_failed_metrics_write_on_failure_path(self):
        metrics = MagicMock()
        metrics.record.side_effect = OSError("disk full")
        service, _, _, story, rating = self._make_service(metrics=metrics)

        assert await service.rate(rating.user_id, story.id, 4) is rating

    async def test_invalid_score_checked_before_io(self):
        service, session, stories, story, _ = self._make_service()

        with pytest.raises(InvalidInputError):
            await service.rate(uuid.uuid4(), story.id, 0)

        stories.get_by_id.assert_not_awaited()
        session.commit.assert_not_awaited()
