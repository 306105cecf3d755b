"""Wall-clock matching of reminder times in the configured time zone."""
import re
from datetime import datetime
from typing import Any, Optional

import pytz

TIME_STRING_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")


def now_in_zone(tz_name: str, now: Optional[datetime] = None) -> datetime:
    """
    Convert ``now`` (or the current instant) to the given zone.

    Naive datetimes are taken to be UTC so that the host's local time zone
    never leaks into schedule matching.
    """
    tz = pytz.timezone(tz_name)
    if now is None:
        now = datetime.now(pytz.utc)
    elif now.tzinfo is None:
        now = pytz.utc.localize(now)
    return now.astimezone(tz)


def current_time_string(now: Optional[datetime] = None, tz_name: str = "Asia/Tokyo") -> str:
    """Return the zero-padded 24-hour ``HH:MM`` for ``now`` in ``tz_name``."""
    return now_in_zone(tz_name, now).strftime("%H:%M")


def is_valid_time_string(value: Any) -> bool:
    """Check that ``value`` is an ``H:MM`` or ``HH:MM`` 24-hour time string."""
    return isinstance(value, str) and TIME_STRING_PATTERN.match(value) is not None


def normalize_time_string(value: Any) -> Optional[str]:
    """Return ``value`` zero-padded to ``HH:MM``, or None when it is malformed."""
    if not is_valid_time_string(value):
        return None
    hour, minute = value.split(":")
    return f"{int(hour):02d}:{minute}"
