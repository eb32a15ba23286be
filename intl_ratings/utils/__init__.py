"""
Shared utility functions.

Includes:
- Logging setup
- Time helpers
- Math helpers
"""

from datetime import date, datetime, timezone

import pandas as pd

# Re-export logging utilities for convenience
from intl_ratings.utils.logging import setup_logging, get_logger, LogContext


# =============================================================================
# Time Helpers
# =============================================================================

def now_utc() -> datetime:
    """Get current time in UTC."""
    return datetime.now(timezone.utc)


def to_date(value: date | datetime | str) -> date:
    """
    Coerce a date-like value to a calendar date.

    Accepts dates, datetimes, pandas timestamps and ISO strings.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return pd.Timestamp(value).date()


def days_between(start: date, end: date) -> int:
    """Whole days from start to end (negative if end is earlier)."""
    return (end - start).days


# =============================================================================
# Math Helpers
# =============================================================================

def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Safe division that returns default on zero denominator."""
    if denominator == 0:
        return default
    return numerator / denominator


__all__ = [
    "setup_logging",
    "get_logger",
    "LogContext",
    "now_utc",
    "to_date",
    "days_between",
    "safe_divide",
]
