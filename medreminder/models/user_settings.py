"""User settings model holding reminder times and notification flags."""
import secrets
import string
from datetime import datetime
from typing import Dict, List

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from medreminder.utils.clock import utc_now

LINK_CODE_ALPHABET = string.ascii_uppercase + string.digits
LINK_CODE_LENGTH = 8

# Session labels shown in the app; the map stays open to additional labels
DEFAULT_REMINDER_TIMES: Dict[str, str] = {
    "朝": "08:00",
    "昼": "12:00",
    "晩": "18:00",
    "就寝前": "22:00",
}


def generate_link_code(length: int = LINK_CODE_LENGTH) -> str:
    """Generate a random account linking code."""
    return "".join(secrets.choice(LINK_CODE_ALPHABET) for _ in range(length))


class UserSettings(SQLModel, table=True):
    """Per-user reminder configuration and caregiver links."""

    __tablename__ = "user_settings"

    user_id: str = Field(primary_key=True, max_length=128)
    reminder_times: Dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_REMINDER_TIMES),
        sa_column=Column(JSON, nullable=False),
    )
    notifications_enabled: bool = Field(default=False, index=True)
    low_supply_alerts_enabled: bool = Field(default=False, index=True)
    link_code: str = Field(default_factory=generate_link_code, index=True, max_length=32)
    # Users who may view and record intake on this user's behalf; kept mutual
    linked_accounts: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
