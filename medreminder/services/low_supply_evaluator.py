"""
Low-Supply Evaluator.

Estimates how many days of each medication are left and alerts users whose
supply has dropped to the configured threshold. A ledger of delivered alerts
keeps an alert from repeating every tick until the supply recovers.
"""

import asyncio
from dataclasses import dataclass
from typing import Iterable, List, Optional, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from medreminder.config import Settings
from medreminder.db.config import SessionFactory
from medreminder.models.low_supply_alert import LowSupplyAlertState
from medreminder.models.medication import Medication
from medreminder.services.notification_service import NotificationKind, NotificationSender, SendResult, SendStatus
from medreminder.services.reminder_dispatcher import PhaseReport
from medreminder.services.settings_scanner import ConfigurationUnavailableError, SettingsScanner
from medreminder.utils.clock import utc_now
from medreminder.utils.logger import get_logger
from medreminder.utils.metrics import metrics_collector

logger = get_logger(__name__)


@dataclass(frozen=True)
class LowSupplyTask:
    """One low-supply alert that should go out."""
    user_id: str
    medication_id: str
    medication_name: str
    remaining_days: float


def evaluate_medication(medication: Medication, threshold_days: float) -> Optional[LowSupplyTask]:
    """Return an alert task when the medication has ``threshold_days`` or fewer left."""
    remaining_days = medication.remaining_days
    if remaining_days is None:
        return None
    if remaining_days <= threshold_days:
        return LowSupplyTask(medication.user_id, medication.id, medication.name, remaining_days)
    return None


class LowSupplyAlertLedger:
    """Persisted record of which medications have an outstanding alert."""

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    def alerted_medication_ids(self, user_id: str) -> Set[str]:
        with self.session_factory() as session:
            statement = select(LowSupplyAlertState.medication_id).where(LowSupplyAlertState.user_id == user_id)
            return set(session.exec(statement).all())

    def mark(self, task: LowSupplyTask):
        with self.session_factory() as session:
            state = session.get(LowSupplyAlertState, task.medication_id)
            if state is None:
                state = LowSupplyAlertState(
                    medication_id=task.medication_id,
                    user_id=task.user_id,
                    remaining_days=task.remaining_days,
                )
            else:
                state.remaining_days = task.remaining_days
                state.alerted_at = utc_now()
            session.add(state)
            session.commit()

    def clear(self, medication_ids: Iterable[str]) -> int:
        """Forget alerts for ``medication_ids`` so the next crossing alerts again."""
        cleared = 0
        with self.session_factory() as session:
            for medication_id in medication_ids:
                state = session.get(LowSupplyAlertState, medication_id)
                if state is not None:
                    session.delete(state)
                    cleared += 1
            if cleared:
                session.commit()
        return cleared


class LowSupplyEvaluator:
    """Sends low-supply alerts for users who enabled them."""

    def __init__(
        self,
        scanner: SettingsScanner,
        sender: NotificationSender,
        settings: Settings,
        session_factory: SessionFactory,
    ):
        self.scanner = scanner
        self.sender = sender
        self.settings = settings
        self.session_factory = session_factory
        self.ledger = LowSupplyAlertLedger(session_factory)

    @property
    def threshold_days(self) -> float:
        return self.settings.low_supply_threshold_days

    def load_medications(self, user_id: str) -> List[Medication]:
        with self.session_factory() as session:
            statement = select(Medication).where(Medication.user_id == user_id)
            return list(session.exec(statement).all())

    async def run(self) -> PhaseReport:
        """Evaluate every low-supply-enabled user and send the alerts due."""
        report = PhaseReport(phase="low_supply")
        logger.info("Checking for low medication supply", threshold_days=self.threshold_days)

        try:
            configs = self.scanner.scan_low_supply_enabled()
        except ConfigurationUnavailableError as e:
            logger.error("Low-supply phase aborted: settings unavailable", error=str(e))
            report.aborted = True
            return report

        for config in configs:
            try:
                medications = self.load_medications(config.user_id)
                report.tasks.extend(self.plan_alerts(config.user_id, medications))
            except SQLAlchemyError as e:
                logger.error(
                    "Could not evaluate medications for user",
                    user_id=config.user_id,
                    error_class=e.__class__.__name__,
                    error=str(e),
                )

        if not report.tasks:
            logger.info("No low medication alerts to send")
            return report

        report.results = await self.send_alerts(report.tasks)
        logger.info(
            "Low medication alerts processed",
            tasks=len(report.tasks),
            sent=report.count(SendStatus.SENT),
            no_link=report.count(SendStatus.NO_LINK),
            failed=report.count(SendStatus.FAILED),
            invalid_recipient=report.count(SendStatus.INVALID_RECIPIENT),
        )
        return report

    def plan_alerts(
        self, user_id: str, medications: Iterable[Medication], complete: bool = True
    ) -> List[LowSupplyTask]:
        """
        Decide which of ``medications`` need an alert now.

        With deduplication on, medications already alerted are suppressed and
        the ledger entries of medications that recovered are cleared. When
        ``complete`` is true, ``medications`` is the user's whole list and
        entries for medications no longer present are cleared too.
        """
        medications = list(medications)
        evaluated_ids = {m.id for m in medications}
        tasks = [task for task in (evaluate_medication(m, self.threshold_days) for m in medications) if task]

        if not self.settings.low_supply_alert_dedup:
            return tasks

        alerted = self.ledger.alerted_medication_ids(user_id)
        low_ids = {task.medication_id for task in tasks}
        recovered = {mid for mid in alerted if mid not in low_ids and (complete or mid in evaluated_ids)}
        if recovered:
            self.ledger.clear(recovered)
            logger.debug("Cleared recovered low-supply alerts", user_id=user_id, medication_ids=sorted(recovered))

        pending = []
        for task in tasks:
            if task.medication_id in alerted:
                metrics_collector.increment_counter("low_supply_alerts_suppressed_total")
                logger.debug(
                    "Low-supply alert already delivered, suppressing",
                    user_id=user_id,
                    medication_id=task.medication_id,
                )
                continue
            pending.append(task)
        return pending

    async def alert_for_medications(self, user_id: str, medications: Iterable[Medication]) -> List[SendResult]:
        """Evaluate ``medications`` right after they changed and send any alerts due."""
        tasks = self.plan_alerts(user_id, medications, complete=False)
        if not tasks:
            return []
        return await self.send_alerts(tasks)

    async def send_alerts(self, tasks: List[LowSupplyTask]) -> List[SendResult]:
        return list(await asyncio.gather(*(self.dispatch(task) for task in tasks)))

    async def dispatch(self, task: LowSupplyTask) -> SendResult:
        logger.info(
            "Low medication alert",
            user_id=task.user_id,
            medication_id=task.medication_id,
            medication_name=task.medication_name,
            remaining_days=task.remaining_days,
        )
        data = {
            "title": self.settings.low_supply_notification_title,
            "medication_id": task.medication_id,
            "medication_name": task.medication_name,
            "remaining_days": task.remaining_days,
        }
        try:
            result = await self.sender.send(task.user_id, NotificationKind.LOW_SUPPLY, data)
        except Exception as e:
            logger.exception(
                "Unexpected error sending low-supply alert",
                user_id=task.user_id,
                medication_id=task.medication_id,
                error_class=e.__class__.__name__,
            )
            return SendResult(task.user_id, NotificationKind.LOW_SUPPLY, SendStatus.FAILED, str(e), data=data)

        if result.delivered and self.settings.low_supply_alert_dedup:
            try:
                self.ledger.mark(task)
            except SQLAlchemyError as e:
                logger.error(
                    "Could not record delivered low-supply alert",
                    user_id=task.user_id,
                    medication_id=task.medication_id,
                    error=str(e),
                )
        return result
