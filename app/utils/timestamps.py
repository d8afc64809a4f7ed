# app/utils/timestamps.py
"""
Normalizes the timestamp shapes found in detection rows (native datetimes,
epoch seconds, epoch milliseconds, digit strings, ISO text) into a single
epoch-millisecond integer.

Numbers below 10^11 are read as seconds, anything at or above as
milliseconds. This is a heuristic, valid for second-form timestamps between
1973 and roughly 5138. Legacy ingestion rows depend on it, so it stays.
"""

import math
import re
from datetime import date, datetime, timezone
from typing import Optional, Union

SECONDS_THRESHOLD = 10 ** 11

_DIGITS = re.compile(r"^\d+$", re.ASCII)

TimestampInput = Union[datetime, date, int, float, str, None]


def _from_number(n: float) -> Optional[int]:
    if math.isnan(n) or math.isinf(n):
        return None
    if n < SECONDS_THRESHOLD:
        return int(round(n * 1000))
    return int(round(n))


def _from_datetime(value: datetime) -> Optional[int]:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    try:
        return int(round(value.timestamp() * 1000))
    except (OverflowError, OSError, ValueError):
        return None


def normalize_timestamp(value: TimestampInput) -> Optional[int]:
    """Return epoch milliseconds for value, or None. Never raises."""
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return _from_datetime(value)

    if isinstance(value, date):
        return _from_datetime(datetime(value.year, value.month, value.day))

    if isinstance(value, (int, float)):
        return _from_number(value)

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if _DIGITS.match(text):
            try:
                return _from_number(int(text))
            except ValueError:  # exceeds the int string-conversion limit
                return None
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
        return _from_datetime(parsed)

    return None
