"""Tests for APScheduler job configuration and the polling pass."""
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from stravabridge.config import Settings
from stravabridge.models.ledger import Ledger
from stravabridge.scheduler.jobs import (
    CURSOR_OVERLAP_MS,
    _poll_job,
    build_scheduler,
    poll_new_activities,
)
from stravabridge.strava.client import PAGE_SIZE

NOW_MS = 1_737_000_000_000


def _settings(**overrides) -> Settings:
    values = {"poll_interval_sec": 600, "poll_lookback_hours": 24, "poll_page_limit": 4}
    values.update(overrides)
    return Settings(**values)


def _processor(store, pages):
    processor = MagicMock()
    processor.store = store
    processor.client = AsyncMock()
    processor.client.get_token = AsyncMock(return_value="tok")
    processor.client.list_activities = AsyncMock(side_effect=pages)
    processor.process_if_new = AsyncMock(return_value=True)
    return processor


class TestBuildScheduler:
    def test_returns_scheduler(self):
        with patch("stravabridge.scheduler.jobs.get_settings", return_value=_settings()):
            scheduler = build_scheduler(MagicMock())
        assert isinstance(scheduler, AsyncIOScheduler)
        assert not scheduler.running

    def test_poll_job_registered_on_interval(self):
        with patch("stravabridge.scheduler.jobs.get_settings", return_value=_settings()):
            scheduler = build_scheduler(MagicMock())

        job = next(j for j in scheduler.get_jobs() if j.id == "poll_activities")
        assert job.trigger.__class__.__name__ == "IntervalTrigger"
        assert job.trigger.interval == timedelta(seconds=600)
        assert job.max_instances == 1

    def test_interval_has_a_floor(self):
        """Intervals under a minute would hammer the Strava rate limit."""
        with patch("stravabridge.scheduler.jobs.get_settings", return_value=_settings(poll_interval_sec=5)):
            scheduler = build_scheduler(MagicMock())
        job = scheduler.get_jobs()[0]
        assert job.trigger.interval == timedelta(seconds=60)


class TestPollNewActivities:
    @pytest.fixture(autouse=True)
    def _patched(self):
        with patch("stravabridge.scheduler.jobs.get_settings", return_value=_settings(poll_page_limit=2)), \
             patch("stravabridge.scheduler.jobs.now_ms", return_value=NOW_MS):
            yield

    @pytest.mark.asyncio
    async def test_first_poll_uses_lookback(self, store):
        processor = _processor(store, [[{"id": 1}, {"id": 2}]])

        count = await poll_new_activities(processor)

        assert count == 2
        after = processor.client.list_activities.call_args.kwargs["after"]
        assert after == (NOW_MS - 24 * 3600 * 1000) // 1000
        assert [c.args[:2] for c in processor.process_if_new.call_args_list] == [(1, "poll"), (2, "poll")]
        assert store.load_ledger().last_checked_at == NOW_MS

    @pytest.mark.asyncio
    async def test_cursor_with_overlap(self, store):
        store.save_ledger(Ledger(last_checked_at=NOW_MS - 600_000))
        processor = _processor(store, [[]])

        assert await poll_new_activities(processor) == 0
        after = processor.client.list_activities.call_args.kwargs["after"]
        assert after == (NOW_MS - 600_000 - CURSOR_OVERLAP_MS) // 1000
        assert store.load_ledger().last_checked_at == NOW_MS

    @pytest.mark.asyncio
    async def test_skips_processed_and_idless(self, store):
        ledger = Ledger()
        ledger.mark_processed(1, now=1)
        store.save_ledger(ledger)
        processor = _processor(store, [[{"id": 1}, {"name": "no id"}, {"id": 3}]])

        assert await poll_new_activities(processor) == 1
        processor.process_if_new.assert_awaited_once()
        assert processor.process_if_new.call_args.args[0] == 3

    @pytest.mark.asyncio
    async def test_pages_until_short_page(self, store):
        full = [{"id": i} for i in range(1, PAGE_SIZE + 1)]
        processor = _processor(store, [full, [{"id": 999}], [{"id": 1000}]])

        assert await poll_new_activities(processor) == PAGE_SIZE + 1
        pages = [c.kwargs["page"] for c in processor.client.list_activities.call_args_list]
        assert pages == [1, 2]

    @pytest.mark.asyncio
    async def test_page_limit(self, store):
        full = [{"id": i} for i in range(1, PAGE_SIZE + 1)]
        processor = _processor(store, [full, full, full])

        await poll_new_activities(processor)
        assert processor.client.list_activities.await_count == 2

    @pytest.mark.asyncio
    async def test_failed_activity_does_not_stop_the_pass(self, store):
        processor = _processor(store, [[{"id": 1}, {"id": 2}]])
        processor.process_if_new = AsyncMock(side_effect=[RuntimeError("boom"), True])

        assert await poll_new_activities(processor) == 1
        assert store.load_ledger().last_checked_at == NOW_MS

    @pytest.mark.asyncio
    async def test_listing_failure_keeps_cursor(self, store):
        store.save_ledger(Ledger(last_checked_at=123))
        processor = _processor(store, RuntimeError("strava down"))

        with pytest.raises(RuntimeError):
            await poll_new_activities(processor)
        assert store.load_ledger().last_checked_at == 123


class TestPollJob:
    @pytest.mark.asyncio
    async def test_swallows_errors(self):
        with patch("stravabridge.scheduler.jobs.poll_new_activities",
                   AsyncMock(side_effect=RuntimeError("boom"))) as mock_poll:
            await _poll_job(processor=MagicMock())
        mock_poll.assert_awaited_once()
