"""
Reminder Scheduler.

APScheduler-based driver that runs one tick per interval: reminders are
matched and sent first, then low-supply alerts are evaluated.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from medreminder.config import Settings, get_settings
from medreminder.db.config import SessionFactory, default_session_factory
from medreminder.providers.base_provider import NotificationProvider
from medreminder.providers.line_provider import LineMessagingProvider
from medreminder.services.low_supply_evaluator import LowSupplyEvaluator
from medreminder.services.notification_service import NotificationSender
from medreminder.services.reminder_dispatcher import PhaseReport, ReminderDispatcher
from medreminder.services.settings_scanner import SettingsScanner
from medreminder.utils.logger import get_logger
from medreminder.utils.metrics import metrics_collector

logger = get_logger(__name__)

TICK_JOB_ID = "medication_reminder_tick"


@dataclass
class TickReport:
    """Result of one scheduler tick."""
    started_at: datetime
    phases: List[PhaseReport] = field(default_factory=list)
    error: Optional[str] = None


class ReminderScheduler:
    """
    Lifecycle object for the recurring reminder job.

    ``start()`` is idempotent: only the first call arms the interval job,
    later calls return False without registering another timer.
    """

    def __init__(
        self,
        settings: Settings,
        provider: NotificationProvider,
        session_factory: SessionFactory,
    ):
        self.settings = settings
        self.provider = provider
        self.session_factory = session_factory

        scanner = SettingsScanner(session_factory)
        self.sender = NotificationSender(session_factory, provider, settings)
        self.reminder_dispatcher = ReminderDispatcher(scanner, self.sender, settings)
        self.low_supply_evaluator = LowSupplyEvaluator(scanner, self.sender, settings, session_factory)

        self._scheduler: Optional[AsyncIOScheduler] = None
        self._is_running = False
        self._tick_in_progress = False
        self._start_lock = asyncio.Lock()
        self.tick_count = 0

    @property
    def is_running(self) -> bool:
        """Check if the interval job is armed."""
        return self._is_running

    async def start(self) -> bool:
        """
        Arm the recurring tick.

        Returns:
            True if this call armed the scheduler, False if it was already
            armed or scheduling is disabled.

        Raises:
            ProviderInitializationError: the messaging provider cannot be
                used; nothing is armed.
        """
        if not self.settings.scheduler_enabled:
            logger.info("ReminderScheduler is disabled, skipping start")
            return False

        async with self._start_lock:
            if self._is_running:
                logger.info("ReminderScheduler already initialized, skipping")
                return False

            await self.provider.initialize()

            tz = pytz.timezone(self.settings.scheduler_timezone)
            scheduler = AsyncIOScheduler(timezone=tz)
            scheduler.add_job(
                self._run_scheduled_tick,
                IntervalTrigger(
                    seconds=self.settings.scheduler_interval_seconds,
                    start_date=self._first_run_time(tz),
                    timezone=tz,
                ),
                id=TICK_JOB_ID,
                name="Medication reminders and low-supply alerts",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
            scheduler.start()

            self._scheduler = scheduler
            self._is_running = True
            logger.info(
                "ReminderScheduler started",
                timezone=self.settings.scheduler_timezone,
                interval_seconds=self.settings.scheduler_interval_seconds,
            )
            return True

    async def stop(self) -> None:
        """Stop the scheduler and release the provider."""
        if self._scheduler and self._is_running:
            self._scheduler.shutdown(wait=False)
            self._is_running = False
            self._scheduler = None
            logger.info("ReminderScheduler stopped")
        await self.provider.cleanup()

    def _first_run_time(self, tz) -> Optional[datetime]:
        # Whole-minute intervals fire on the minute boundary so each tick
        # sees a distinct HH:MM
        interval = self.settings.scheduler_interval_seconds
        if interval < 60 or interval % 60:
            return None
        now = datetime.now(tz)
        return now.replace(second=0, microsecond=0) + timedelta(minutes=1)

    async def _run_scheduled_tick(self) -> None:
        await self.tick()

    async def tick(self, now: Optional[datetime] = None) -> Optional[TickReport]:
        """
        Run one full cycle: reminders, then low-supply alerts.

        Returns None when a previous tick is still running. Exceptions are
        logged here and never propagate to the trigger.
        """
        if self._tick_in_progress:
            metrics_collector.increment_counter("scheduler_ticks_skipped_total")
            logger.warning("Previous scheduler tick still running, skipping this one")
            return None

        self._tick_in_progress = True
        self.tick_count += 1
        metrics_collector.increment_counter("scheduler_ticks_total")
        report = TickReport(started_at=now or datetime.now(pytz.utc))
        started = time.monotonic()
        try:
            report.phases.append(await self.reminder_dispatcher.run(now))
            report.phases.append(await self.low_supply_evaluator.run())
        except Exception as e:
            metrics_collector.increment_counter("scheduler_tick_errors_total")
            report.error = str(e)
            logger.exception("Error in scheduled tick", error_class=e.__class__.__name__)
        finally:
            self._tick_in_progress = False
            metrics_collector.record_timer("scheduler_tick_seconds", time.monotonic() - started)
        return report

    def get_jobs_info(self) -> List[Dict[str, Any]]:
        """Get information about scheduled jobs."""
        if not self._scheduler:
            return []

        jobs = []
        for job in self._scheduler.get_jobs():
            jobs.append(
                {
                    "id": job.id,
                    "name": job.name,
                    "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
                }
            )
        return jobs


def build_line_provider(settings: Settings) -> LineMessagingProvider:
    return LineMessagingProvider(
        {
            "channel_secret": settings.line_channel_secret,
            "channel_access_token": settings.line_channel_access_token,
            "base_url": settings.line_api_base_url,
            "timeout": settings.notification_send_timeout_seconds,
        }
    )


# Singleton instance
_scheduler_instance: Optional[ReminderScheduler] = None


def get_reminder_scheduler() -> ReminderScheduler:
    """Get or create the process-wide scheduler instance."""
    global _scheduler_instance

    if _scheduler_instance is None:
        settings = get_settings()
        _scheduler_instance = ReminderScheduler(
            settings=settings,
            provider=build_line_provider(settings),
            session_factory=default_session_factory,
        )

    return _scheduler_instance


async def shutdown_scheduler() -> None:
    """Shutdown the scheduler singleton."""
    global _scheduler_instance

    if _scheduler_instance:
        await _scheduler_instance.stop()
        _scheduler_instance = None
