"""
Shared pytest fixtures for all tests.

Provides an in-memory SQLite store, a recording fake messaging provider,
test settings and helpers for seeding users, links and medications.
"""

import asyncio
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

# Ensure test environment before the application reads its configuration
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["ENVIRONMENT"] = "test"
os.environ["AUTH_SECRET"] = "test-auth-secret"
os.environ["LINE_CHANNEL_SECRET"] = "test-channel-secret"
os.environ["SCHEDULER_ENABLED"] = "false"

import pytest
import pytz
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from medreminder.config import Settings
from medreminder.db.config import session_factory_for
from medreminder.db.init import init_db
from medreminder.models.line_connection import LineConnection
from medreminder.models.medication import Medication
from medreminder.models.user_settings import UserSettings
from medreminder.providers.base_provider import NotificationProvider
from medreminder.utils.metrics import metrics_collector

JST = pytz.timezone("Asia/Tokyo")

LINE_USER_A = "U" + "a" * 32
LINE_USER_B = "U" + "b" * 32


def jst(hour: int, minute: int) -> datetime:
    """An aware instant at ``hour:minute`` Tokyo time."""
    return JST.localize(datetime(2026, 10, 19, hour, minute))


class FakeProvider(NotificationProvider):
    """Messaging provider that records sends and raises scripted errors."""

    def __init__(self):
        super().__init__({})
        self.sent: List[Dict[str, Any]] = []
        self.replies: List[Dict[str, Any]] = []
        self.failures: Dict[str, Exception] = {}
        self.init_error: Optional[Exception] = None
        self.delay: float = 0.0
        self.initialize_calls = 0

    async def initialize(self):
        self.initialize_calls += 1
        if self.init_error is not None:
            raise self.init_error
        await super().initialize()

    def validate_recipient(self, recipient: str) -> bool:
        return bool(recipient)

    async def send(self, recipient: str, message: Dict[str, Any], **kwargs) -> Dict[str, Any]:
        if self.delay:
            await asyncio.sleep(self.delay)
        if recipient in self.failures:
            raise self.failures[recipient]
        self.sent.append({"to": recipient, "message": message})
        return {"success": True, "provider": "fake"}

    async def reply(self, reply_token: str, messages: List[Dict[str, Any]]) -> Dict[str, Any]:
        self.replies.append({"replyToken": reply_token, "messages": messages})
        return {"success": True}


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics_collector.reset()
    yield


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return session_factory_for(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite://",
        scheduler_enabled=True,
        scheduler_timezone="Asia/Tokyo",
        scheduler_interval_seconds=60,
        low_supply_threshold_days=3,
        low_supply_alert_dedup=True,
        notification_send_timeout_seconds=1.0,
        line_channel_secret="test-channel-secret",
        frontend_url="https://app.example.com",
        auth_secret="test-auth-secret",
    )


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


def add_user_settings(
    session: Session,
    user_id: str,
    reminder_times: Any = None,
    notifications_enabled: bool = True,
    low_supply_alerts_enabled: bool = False,
) -> UserSettings:
    settings = UserSettings(
        user_id=user_id,
        reminder_times=reminder_times if reminder_times is not None else {},
        notifications_enabled=notifications_enabled,
        low_supply_alerts_enabled=low_supply_alerts_enabled,
    )
    session.add(settings)
    session.commit()
    session.refresh(settings)
    return settings


def add_link(session: Session, app_user_id: str, line_user_id: str) -> LineConnection:
    connection = LineConnection(line_user_id=line_user_id, app_user_id=app_user_id)
    session.add(connection)
    session.commit()
    return connection


def add_medication(
    session: Session,
    user_id: str,
    name: str = "ロキソニン",
    remaining_pills: float = 10,
    frequency: Optional[List[str]] = None,
    dosage_per_time: float = 1,
    total_pills: float = 28,
) -> Medication:
    medication = Medication(
        user_id=user_id,
        name=name,
        remaining_pills=remaining_pills,
        total_pills=total_pills,
        frequency=frequency if frequency is not None else ["morning", "evening"],
        dosage_per_time=dosage_per_time,
    )
    session.add(medication)
    session.commit()
    session.refresh(medication)
    return medication
