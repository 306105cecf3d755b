"""Settings Scanner: loads the reminder configurations the scheduler acts on."""
from dataclasses import dataclass, field
from typing import Any, List

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from medreminder.db.config import SessionFactory
from medreminder.models.user_settings import UserSettings
from medreminder.utils.logger import get_logger

logger = get_logger(__name__)


class ConfigurationUnavailableError(Exception):
    """Raised when the settings store cannot be read for this tick."""


@dataclass
class ScannedConfig:
    """Read-only snapshot of one user's reminder configuration."""
    user_id: str
    reminder_times: Any = field(default_factory=dict)
    notifications_enabled: bool = False
    low_supply_alerts_enabled: bool = False


class SettingsScanner:
    """Runs the per-flag queries against the user settings store."""

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    def scan_reminder_enabled(self) -> List[ScannedConfig]:
        """Configurations with reminder notifications switched on."""
        return self._scan(UserSettings.notifications_enabled, "notifications_enabled")

    def scan_low_supply_enabled(self) -> List[ScannedConfig]:
        """Configurations with low-supply alerts switched on."""
        return self._scan(UserSettings.low_supply_alerts_enabled, "low_supply_alerts_enabled")

    def _scan(self, flag_column, flag_name: str) -> List[ScannedConfig]:
        try:
            with self.session_factory() as session:
                statement = select(UserSettings).where(flag_column == True)  # noqa: E712
                rows = session.exec(statement).all()
                configs = [
                    ScannedConfig(
                        user_id=row.user_id,
                        reminder_times=row.reminder_times,
                        notifications_enabled=bool(row.notifications_enabled),
                        low_supply_alerts_enabled=bool(row.low_supply_alerts_enabled),
                    )
                    for row in rows
                ]
        except SQLAlchemyError as e:
            raise ConfigurationUnavailableError(
                f"Could not load user settings where {flag_name} is true: {e}"
            ) from e

        logger.debug("Loaded user settings", flag=flag_name, count=len(configs))
        return configs
