"""Tests for the scheduler lifecycle and tick loop."""
import asyncio

import pytest
import pytest_asyncio

from medreminder.providers.base_provider import ProviderInitializationError
from medreminder.scheduler import TICK_JOB_ID, ReminderScheduler
from medreminder.utils.metrics import metrics_collector
from tests.conftest import LINE_USER_A, add_link, add_medication, add_user_settings, jst


@pytest_asyncio.fixture
async def scheduler(settings, provider, session_factory):
    scheduler = ReminderScheduler(settings, provider, session_factory)
    yield scheduler
    await scheduler.stop()


class TestStart:

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, scheduler, provider):
        first = await scheduler.start()
        second = await scheduler.start()

        assert first is True
        assert second is False
        assert scheduler.is_running
        assert [job["id"] for job in scheduler.get_jobs_info()] == [TICK_JOB_ID]
        assert provider.initialize_calls == 1

    @pytest.mark.asyncio
    async def test_concurrent_starts_arm_once(self, scheduler):
        results = await asyncio.gather(scheduler.start(), scheduler.start(), scheduler.start())

        assert sorted(results) == [False, False, True]
        assert len(scheduler.get_jobs_info()) == 1

    @pytest.mark.asyncio
    async def test_disabled_scheduler_does_not_arm(self, scheduler, settings, provider):
        settings.scheduler_enabled = False

        assert await scheduler.start() is False
        assert not scheduler.is_running
        assert scheduler.get_jobs_info() == []
        assert provider.initialize_calls == 0

    @pytest.mark.asyncio
    async def test_provider_failure_leaves_nothing_armed(self, scheduler, provider):
        provider.init_error = ProviderInitializationError("LINE_CHANNEL_ACCESS_TOKEN is not configured")

        with pytest.raises(ProviderInitializationError):
            await scheduler.start()

        assert not scheduler.is_running
        assert scheduler.get_jobs_info() == []

        provider.init_error = None
        assert await scheduler.start() is True

    @pytest.mark.asyncio
    async def test_minute_interval_aligns_to_the_boundary(self, scheduler):
        await scheduler.start()

        next_run = scheduler._scheduler.get_job(TICK_JOB_ID).next_run_time
        assert next_run.second == 0
        assert next_run.microsecond == 0

    @pytest.mark.asyncio
    async def test_ticks_fire_once_per_interval(self, scheduler, settings):
        settings.scheduler_interval_seconds = 0.2

        await scheduler.start()
        await scheduler.start()
        await asyncio.sleep(1.1)

        # One timer fires at 0.2, 0.4, 0.6, 0.8 and 1.0s; a second timer would double that
        assert 4 <= scheduler.tick_count <= 6


class TestTick:

    @pytest.mark.asyncio
    async def test_reminders_then_low_supply(self, scheduler, session, provider):
        add_user_settings(
            session,
            "A",
            reminder_times={"morning": "08:00"},
            low_supply_alerts_enabled=True,
        )
        add_link(session, "A", LINE_USER_A)
        add_medication(session, "A", remaining_pills=4)

        report = await scheduler.tick(jst(8, 0))

        assert report.error is None
        assert [phase.phase for phase in report.phases] == ["reminders", "low_supply"]
        assert len(provider.sent) == 2
        assert provider.sent[0]["message"]["altText"] == "服薬リマインダー (morning)"
        assert provider.sent[1]["message"]["altText"].startswith("【残薬通知】ロキソニン")
        assert metrics_collector.get_metrics()["counters"]["scheduler_ticks_total"] == 1

    @pytest.mark.asyncio
    async def test_tick_error_is_contained(self, scheduler):
        async def explode(now=None):
            raise RuntimeError("boom")

        scheduler.reminder_dispatcher.run = explode

        report = await scheduler.tick(jst(8, 0))

        assert report.error == "boom"
        assert metrics_collector.get_metrics()["counters"]["scheduler_tick_errors_total"] == 1
        # The next tick still runs
        assert await scheduler.tick(jst(8, 1)) is not None

    @pytest.mark.asyncio
    async def test_overlapping_tick_is_skipped(self, scheduler, session, provider):
        add_user_settings(session, "A", reminder_times={"morning": "08:00"})
        add_link(session, "A", LINE_USER_A)
        provider.delay = 0.2

        first, second = await asyncio.gather(scheduler.tick(jst(8, 0)), scheduler.tick(jst(8, 0)))

        assert first is not None
        assert second is None
        assert scheduler.tick_count == 1
        assert len(provider.sent) == 1
        assert metrics_collector.get_metrics()["counters"]["scheduler_ticks_skipped_total"] == 1
