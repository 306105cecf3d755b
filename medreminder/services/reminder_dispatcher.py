"""Reminder Dispatcher: matches configured reminder times against the clock."""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

from medreminder.config import Settings
from medreminder.services.notification_service import NotificationKind, NotificationSender, SendResult, SendStatus
from medreminder.services.settings_scanner import ConfigurationUnavailableError, ScannedConfig, SettingsScanner
from medreminder.services.time_matcher import current_time_string, normalize_time_string
from medreminder.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ReminderTask:
    """One reminder that should go out this tick."""
    user_id: str
    session_label: str
    matched_time: str


@dataclass
class PhaseReport:
    """Tasks produced by one scheduler phase and the outcome of each send."""
    phase: str
    tasks: list = field(default_factory=list)
    results: List[SendResult] = field(default_factory=list)
    aborted: bool = False

    def count(self, status: SendStatus) -> int:
        return sum(1 for result in self.results if result.status == status)


def collect_reminder_tasks(configs: Iterable[ScannedConfig], current_time: str) -> List[ReminderTask]:
    """
    Find every (user, session) whose reminder time equals ``current_time``.

    Malformed entries are skipped with a warning and never stop the scan of
    other sessions or users. Sessions sharing a time each produce a task.
    """
    tasks: List[ReminderTask] = []
    for config in configs:
        reminder_times = config.reminder_times
        if not isinstance(reminder_times, dict):
            if reminder_times is not None:
                logger.warning(
                    "Ignoring reminder times that are not a mapping",
                    user_id=config.user_id,
                    value_type=type(reminder_times).__name__,
                )
            continue

        for session_label, time_value in reminder_times.items():
            normalized = normalize_time_string(time_value)
            if normalized is None:
                logger.warning(
                    "Skipping malformed reminder time",
                    user_id=config.user_id,
                    session_label=session_label,
                    value=time_value,
                )
                continue
            if normalized == current_time:
                logger.info(
                    "Reminder time matched",
                    user_id=config.user_id,
                    session_label=session_label,
                    matched_time=current_time,
                )
                tasks.append(ReminderTask(config.user_id, str(session_label), current_time))
    return tasks


class ReminderDispatcher:
    """Sends medication reminders whose scheduled time is the current minute."""

    def __init__(self, scanner: SettingsScanner, sender: NotificationSender, settings: Settings):
        self.scanner = scanner
        self.sender = sender
        self.settings = settings

    async def run(self, now: Optional[datetime] = None) -> PhaseReport:
        """Scan, match and send all reminders for ``now``."""
        report = PhaseReport(phase="reminders")
        current_time = current_time_string(now, self.settings.scheduler_timezone)
        logger.info(
            "Checking reminders",
            matched_time=current_time,
            timezone=self.settings.scheduler_timezone,
        )

        try:
            configs = self.scanner.scan_reminder_enabled()
        except ConfigurationUnavailableError as e:
            logger.error("Reminder phase aborted: settings unavailable", error=str(e))
            report.aborted = True
            return report

        report.tasks = collect_reminder_tasks(configs, current_time)
        if not report.tasks:
            logger.info("No matching reminders to send in this run", matched_time=current_time)
            return report

        report.results = list(await asyncio.gather(*(self.dispatch(task) for task in report.tasks)))
        logger.info(
            "Reminder sends processed",
            matched_time=current_time,
            tasks=len(report.tasks),
            sent=report.count(SendStatus.SENT),
            no_link=report.count(SendStatus.NO_LINK),
            failed=report.count(SendStatus.FAILED),
            invalid_recipient=report.count(SendStatus.INVALID_RECIPIENT),
        )
        return report

    async def dispatch(self, task: ReminderTask) -> SendResult:
        data = {
            "title": self.settings.reminder_notification_title,
            "body": self.settings.reminder_notification_body,
            "session_label": task.session_label,
        }
        try:
            return await self.sender.send(task.user_id, NotificationKind.REMINDER, data)
        except Exception as e:
            logger.exception(
                "Unexpected error sending reminder",
                user_id=task.user_id,
                session_label=task.session_label,
                error_class=e.__class__.__name__,
            )
            return SendResult(task.user_id, NotificationKind.REMINDER, SendStatus.FAILED, str(e), data=data)
