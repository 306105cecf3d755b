"""Runtime configuration for the medication reminder service."""
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from a local .env file when present
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Environment-derived settings shared by the scheduler and the API."""
    database_url: str = "sqlite:///./medreminder.db"
    environment: str = "development"
    log_level: str = "INFO"

    # LINE Messaging API channel credentials
    line_channel_secret: str = ""
    line_channel_access_token: str = ""
    line_api_base_url: str = "https://api.line.me"

    # Scheduler
    scheduler_enabled: bool = True
    scheduler_timezone: str = "Asia/Tokyo"
    scheduler_interval_seconds: float = 60.0

    # Low-supply alerts
    low_supply_threshold_days: float = 3.0
    low_supply_alert_dedup: bool = True

    # Outbound notifications
    notification_send_timeout_seconds: float = 10.0
    reminder_notification_title: str = "服薬リマインダー"
    reminder_notification_body: str = "お薬を飲む時間です"
    low_supply_notification_title: str = "【残薬通知】"
    frontend_url: str = "http://localhost:3000"

    # HS256 secret used to verify bearer tokens on the REST routes
    auth_secret: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment."""
        return cls(
            database_url=os.environ.get("DATABASE_URL", cls.database_url),
            environment=os.environ.get("ENVIRONMENT", cls.environment),
            log_level=os.environ.get("LOG_LEVEL", cls.log_level),
            line_channel_secret=os.environ.get("LINE_CHANNEL_SECRET", ""),
            line_channel_access_token=os.environ.get("LINE_CHANNEL_ACCESS_TOKEN", ""),
            line_api_base_url=os.environ.get("LINE_API_BASE_URL", cls.line_api_base_url),
            scheduler_enabled=_env_bool("SCHEDULER_ENABLED", True),
            scheduler_timezone=os.environ.get("SCHEDULER_TIMEZONE", cls.scheduler_timezone),
            scheduler_interval_seconds=float(
                os.environ.get("SCHEDULER_INTERVAL_SECONDS", cls.scheduler_interval_seconds)
            ),
            low_supply_threshold_days=float(
                os.environ.get("LOW_SUPPLY_THRESHOLD_DAYS", cls.low_supply_threshold_days)
            ),
            low_supply_alert_dedup=_env_bool("LOW_SUPPLY_ALERT_DEDUP", True),
            notification_send_timeout_seconds=float(
                os.environ.get("NOTIFICATION_SEND_TIMEOUT_SECONDS", cls.notification_send_timeout_seconds)
            ),
            reminder_notification_title=os.environ.get(
                "REMINDER_NOTIFICATION_TITLE", cls.reminder_notification_title
            ),
            reminder_notification_body=os.environ.get(
                "REMINDER_NOTIFICATION_BODY", cls.reminder_notification_body
            ),
            low_supply_notification_title=os.environ.get(
                "LOW_SUPPLY_NOTIFICATION_TITLE", cls.low_supply_notification_title
            ),
            frontend_url=os.environ.get("FRONTEND_URL", cls.frontend_url).rstrip("/"),
            auth_secret=os.environ.get("AUTH_SECRET"),
        )


@lru_cache()
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings.from_env()
