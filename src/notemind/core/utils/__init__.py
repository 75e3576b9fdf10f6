"""
Core utilities module for notemind.
"""

# Datetime and clock utilities
from .datetime_utils import (
    utc_now,
    utc_now_iso,
    ensure_utc,
    parse_iso_datetime,
    format_iso,
    age_in_days,
    add_time,
    Clock,
    SystemClock,
    ManualClock,
    system_clock,
    EPOCH,
)

# Retry utilities
from .retry import RetryPolicy, retry_async, retry_with_policy

__all__ = [
    # Datetime utilities
    'utc_now',
    'utc_now_iso',
    'ensure_utc',
    'parse_iso_datetime',
    'format_iso',
    'age_in_days',
    'add_time',
    'Clock',
    'SystemClock',
    'ManualClock',
    'system_clock',
    'EPOCH',
    # Retry utilities
    'RetryPolicy',
    'retry_async',
    'retry_with_policy',
]
