"""Reminder settings service."""
from typing import Dict, Optional

from sqlmodel import Session, select

from medreminder.models.user_settings import UserSettings
from medreminder.utils.clock import utc_now
from medreminder.utils.logger import get_logger

logger = get_logger(__name__)


class AccountLinkError(Exception):
    """Base class for caregiver account linking failures."""


class LinkCodeNotFoundError(AccountLinkError):
    """No user owns the given link code."""


class SelfLinkError(AccountLinkError):
    """A user tried to link to their own account."""


class AlreadyLinkedError(AccountLinkError):
    """The two accounts are already linked."""


class SettingsService:
    """Read and update a user's reminder configuration."""

    def __init__(self, session: Session):
        self.session = session

    def get_or_create(self, user_id: str) -> UserSettings:
        """Return the user's settings, creating the defaults on first access."""
        settings = self.session.get(UserSettings, user_id)
        if settings is None:
            settings = UserSettings(user_id=user_id)
            self.session.add(settings)
            self.session.commit()
            self.session.refresh(settings)
        return settings

    def update(
        self,
        user_id: str,
        reminder_times: Optional[Dict[str, str]] = None,
        notifications_enabled: Optional[bool] = None,
        low_supply_alerts_enabled: Optional[bool] = None,
    ) -> UserSettings:
        """
        Apply a partial update. ``reminder_times`` replaces the whole map, so
        a session left out of it stops being reminded.
        """
        settings = self.get_or_create(user_id)
        if reminder_times is not None:
            settings.reminder_times = dict(reminder_times)
        if notifications_enabled is not None:
            settings.notifications_enabled = notifications_enabled
        if low_supply_alerts_enabled is not None:
            settings.low_supply_alerts_enabled = low_supply_alerts_enabled
        settings.updated_at = utc_now()

        self.session.add(settings)
        self.session.commit()
        self.session.refresh(settings)
        return settings

    def link_account(self, user_id: str, link_code: str) -> UserSettings:
        """
        Link ``user_id`` with the user owning ``link_code``.

        Both users gain each other in ``linked_accounts``.

        Raises:
            LinkCodeNotFoundError: no user has this code
            SelfLinkError: the code is the caller's own
            AlreadyLinkedError: the accounts are already linked
        """
        code = (link_code or "").strip()
        statement = select(UserSettings).where(UserSettings.link_code == code).limit(1)
        target = self.session.exec(statement).first() if code else None
        if target is None:
            raise LinkCodeNotFoundError("No user matches this link code")
        if target.user_id == user_id:
            raise SelfLinkError("An account cannot be linked to itself")

        settings = self.get_or_create(user_id)
        if target.user_id in (settings.linked_accounts or []):
            raise AlreadyLinkedError(f"Already linked with {target.user_id}")

        now = utc_now()
        # Reassign so the JSON columns are flagged as modified
        settings.linked_accounts = [*(settings.linked_accounts or []), target.user_id]
        settings.updated_at = now
        if user_id not in (target.linked_accounts or []):
            target.linked_accounts = [*(target.linked_accounts or []), user_id]
            target.updated_at = now

        self.session.add(settings)
        self.session.add(target)
        self.session.commit()
        self.session.refresh(settings)
        logger.info("Linked caregiver accounts", user_id=user_id, linked_user_id=target.user_id)
        return settings

    def unlink_account(self, user_id: str, linked_user_id: str) -> UserSettings:
        """Remove the link between the two users on both sides. Unknown links are a no-op."""
        settings = self.get_or_create(user_id)
        now = utc_now()
        settings.linked_accounts = [uid for uid in (settings.linked_accounts or []) if uid != linked_user_id]
        settings.updated_at = now
        self.session.add(settings)

        other = self.session.get(UserSettings, linked_user_id)
        if other is not None:
            other.linked_accounts = [uid for uid in (other.linked_accounts or []) if uid != user_id]
            other.updated_at = now
            self.session.add(other)

        self.session.commit()
        self.session.refresh(settings)
        logger.info("Unlinked caregiver accounts", user_id=user_id, linked_user_id=linked_user_id)
        return settings

    def can_act_for(self, actor_id: str, owner_id: str) -> bool:
        """Whether ``actor_id`` is the owner or one of the owner's linked accounts."""
        if actor_id == owner_id:
            return True
        owner = self.session.get(UserSettings, owner_id)
        return owner is not None and actor_id in (owner.linked_accounts or [])
