"""
Notification Sender.

Resolves a user's LINE identity and pushes reminder or low-supply messages.
Expected failures are reported through ``SendResult`` and never raised, so
batched sends can run side by side without one failure cancelling the rest.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from medreminder.config import Settings
from medreminder.db.config import SessionFactory
from medreminder.providers.base_provider import (
    InvalidRecipientError,
    NotificationProvider,
    TransientDeliveryError,
)
from medreminder.providers.line_messages import build_low_supply_message, build_reminder_message
from medreminder.services.link_service import LinkService
from medreminder.utils.logger import get_logger
from medreminder.utils.metrics import metrics_collector

logger = get_logger(__name__)


class NotificationKind(str, Enum):
    REMINDER = "reminder"
    LOW_SUPPLY = "low_supply"


class SendStatus(str, Enum):
    SENT = "sent"
    NO_LINK = "no_link"
    INVALID_RECIPIENT = "invalid_recipient"
    FAILED = "failed"


@dataclass
class SendResult:
    """Outcome of one send attempt."""
    user_id: str
    kind: NotificationKind
    status: SendStatus
    detail: str = ""
    recipient: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def delivered(self) -> bool:
        return self.status == SendStatus.SENT


class NotificationSender:
    """Sends notifications to linked LINE accounts."""

    def __init__(self, session_factory: SessionFactory, provider: NotificationProvider, settings: Settings):
        self.session_factory = session_factory
        self.provider = provider
        self.settings = settings

    def build_message(self, kind: NotificationKind, data: Dict[str, Any]) -> Dict[str, Any]:
        """Format the structured message for ``kind``."""
        base_url = self.settings.frontend_url
        if kind == NotificationKind.REMINDER:
            return build_reminder_message(
                data.get("title", self.settings.reminder_notification_title),
                data.get("body", self.settings.reminder_notification_body),
                data["session_label"],
                f"{base_url}/dashboard",
            )
        if kind == NotificationKind.LOW_SUPPLY:
            return build_low_supply_message(
                data.get("title", self.settings.low_supply_notification_title),
                data["medication_name"],
                data["remaining_days"],
                f"{base_url}/medications",
            )
        raise ValueError(f"Unknown notification kind: {kind}")

    def resolve_recipient(self, user_id: str) -> Optional[str]:
        with self.session_factory() as session:
            connection = LinkService(session).find_by_app_user(user_id)
            return connection.line_user_id if connection else None

    def remove_link(self, line_user_id: str) -> bool:
        with self.session_factory() as session:
            return LinkService(session).unlink(line_user_id)

    async def send(self, user_id: str, kind: NotificationKind, data: Dict[str, Any]) -> SendResult:
        """
        Send one notification to ``user_id``.

        Args:
            user_id: Application user id
            kind: Reminder or low-supply
            data: Kind-specific payload (``session_label`` or
                ``medication_name`` and ``remaining_days``)

        Returns:
            SendResult describing the outcome
        """
        kind = NotificationKind(kind)
        context = {"user_id": user_id, "kind": kind.value, **_log_context(data)}

        try:
            recipient = self.resolve_recipient(user_id)
        except SQLAlchemyError as e:
            metrics_collector.increment_counter("notifications_failed_total")
            logger.error("Could not look up LINE link", error_class=e.__class__.__name__, error=str(e), **context)
            return SendResult(user_id, kind, SendStatus.FAILED, f"Link lookup failed: {e}", data=data)

        if recipient is None:
            metrics_collector.increment_counter("notifications_no_link_total")
            logger.debug("No LINE link for user, skipping", **context)
            return SendResult(user_id, kind, SendStatus.NO_LINK, f"No LINE connection found for app user {user_id}", data=data)

        try:
            message = self.build_message(kind, data)
            await asyncio.wait_for(
                self.provider.send(recipient, message),
                timeout=self.settings.notification_send_timeout_seconds,
            )
        except InvalidRecipientError as e:
            return self._handle_invalid_recipient(user_id, kind, recipient, e, data, context)
        except asyncio.TimeoutError:
            metrics_collector.increment_counter("notifications_failed_total")
            logger.error(
                "Timed out sending LINE notification",
                recipient=recipient,
                error_class="TimeoutError",
                timeout=self.settings.notification_send_timeout_seconds,
                **context,
            )
            return SendResult(user_id, kind, SendStatus.FAILED, "Send timed out", recipient, data)
        except TransientDeliveryError as e:
            metrics_collector.increment_counter("notifications_failed_total")
            logger.error(
                "Failed to send LINE notification",
                recipient=recipient,
                error_class=e.__class__.__name__,
                error=e.message,
                details=e.details,
                **context,
            )
            return SendResult(user_id, kind, SendStatus.FAILED, f"Error sending to {user_id}: {e.message}", recipient, data)

        if kind == NotificationKind.REMINDER:
            metrics_collector.increment_counter("reminders_sent_total")
        else:
            metrics_collector.increment_counter("low_supply_alerts_sent_total")
        logger.info("Sent LINE notification", recipient=recipient, **context)
        return SendResult(user_id, kind, SendStatus.SENT, f"LINE message sent to {user_id}", recipient, data)

    def _handle_invalid_recipient(self, user_id, kind, recipient, error, data, context) -> SendResult:
        # A permanently rejected recipient will never accept a message, so
        # the link is dropped and later ticks see "no link" instead
        try:
            removed = self.remove_link(recipient)
        except SQLAlchemyError as e:
            metrics_collector.increment_counter("notifications_failed_total")
            logger.error(
                "Could not remove stale LINE link",
                recipient=recipient,
                error_class=e.__class__.__name__,
                error=str(e),
                **context,
            )
            return SendResult(user_id, kind, SendStatus.FAILED, f"Stale link could not be removed: {e}", recipient, data)

        if removed:
            metrics_collector.increment_counter("links_removed_total")
        logger.info("Removed stale LINE link after recipient was rejected", recipient=recipient, reason=error.message, **context)
        return SendResult(
            user_id,
            kind,
            SendStatus.INVALID_RECIPIENT,
            f"Recipient {recipient} rejected; link removed",
            recipient,
            data,
        )


def _log_context(data: Dict[str, Any]) -> Dict[str, Any]:
    keys = ("session_label", "medication_id", "medication_name", "remaining_days")
    return {key: data[key] for key in keys if key in data}
