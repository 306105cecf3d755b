"""Timezone-aware timestamps for persisted rows."""
from datetime import datetime, timezone


def utc_now() -> datetime:
    """The current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)
