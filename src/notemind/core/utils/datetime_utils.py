"""
Centralized datetime and clock utilities for notemind.

All datetimes are handled in UTC. Components that age data (caches,
recency boosts) take an injectable clock so tests can move time explicitly.
"""

import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Optional, Union


def utc_now() -> datetime:
    """
    Get current UTC datetime.

    Returns:
        Current datetime in UTC with timezone info
    """
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    """
    Get current UTC datetime as ISO string with 'Z' suffix.

    Example: "2024-01-15T10:30:45.123456Z"
    """
    return utc_now().isoformat().replace('+00:00', 'Z')


def ensure_utc(dt: datetime) -> datetime:
    """
    Ensure datetime is in UTC timezone.

    Naive datetimes are assumed to already be UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    elif dt.tzinfo == timezone.utc:
        return dt
    else:
        return dt.astimezone(timezone.utc)


def parse_iso_datetime(iso_string: str) -> datetime:
    """
    Parse ISO datetime string to a UTC datetime.

    Handles:
    - 2024-01-01T12:00:00
    - 2024-01-01T12:00:00Z
    - 2024-01-01T12:00:00+00:00
    - 2024-01-01T12:00:00.123456Z

    Raises:
        ValueError: If string cannot be parsed as ISO datetime
    """
    if iso_string.endswith('Z'):
        iso_string = iso_string[:-1] + '+00:00'

    try:
        return ensure_utc(datetime.fromisoformat(iso_string))
    except ValueError as e:
        raise ValueError(f"Invalid ISO datetime string: {iso_string}") from e


def format_iso(dt: datetime) -> str:
    """
    Format datetime to ISO string with Z suffix.

    Args:
        dt: Datetime to format (will be converted to UTC)
    """
    return ensure_utc(dt).isoformat().replace('+00:00', 'Z')


def age_in_days(dt: Union[datetime, str], now: Optional[datetime] = None) -> float:
    """
    Days elapsed between ``dt`` and ``now`` (defaults to the current time).

    Future dates return a negative value.
    """
    if isinstance(dt, str):
        dt = parse_iso_datetime(dt)
    reference = ensure_utc(now) if now else utc_now()
    return (reference - ensure_utc(dt)).total_seconds() / 86400


def add_time(dt: datetime, **kwargs) -> datetime:
    """
    Add time to datetime with UTC preservation.

    Example:
        tomorrow = add_time(utc_now(), days=1)
    """
    return ensure_utc(dt) + timedelta(**kwargs)


class Clock:
    """
    Source of the current time.

    ``now()`` returns seconds since the epoch; ``utc_now()`` the same
    instant as an aware datetime.
    """

    def now(self) -> float:
        raise NotImplementedError

    def utc_now(self) -> datetime:
        return datetime.fromtimestamp(self.now(), tz=timezone.utc)


class SystemClock(Clock):
    """Wall clock."""

    def now(self) -> float:
        return time.time()


class ManualClock(Clock):
    """
    Clock that only moves when told to.

    Example:
        clock = ManualClock(start=1_700_000_000)
        cache = ResultCache(clock=clock)
        clock.advance(91)  # entries with a 90s TTL are now expired
    """

    def __init__(self, start: Union[float, datetime] = 0.0) -> None:
        if isinstance(start, datetime):
            start = ensure_utc(start).timestamp()
        self._now = float(start)
        self._lock = threading.Lock()

    def now(self) -> float:
        with self._lock:
            return self._now

    def advance(self, seconds: float) -> None:
        with self._lock:
            self._now += seconds

    def set(self, value: Union[float, datetime]) -> None:
        if isinstance(value, datetime):
            value = ensure_utc(value).timestamp()
        with self._lock:
            self._now = float(value)


system_clock = SystemClock()

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
"""Unix epoch as timezone-aware datetime"""
