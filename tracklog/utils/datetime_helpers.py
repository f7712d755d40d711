"""
Standardized Date/Time Handling Utilities

CRITICAL RULES:
- Always store datetimes as timezone-aware UTC (use now_utc() / to_utc())
- Entry data carries date-times as ISO 8601 strings with a "Z" suffix and
  millisecond precision ("2024-01-01T00:00:00.000Z"), times as "HH:MM:SS"
  and dates as "YYYY-MM-DD"
- Never mix naive and aware datetimes
"""

import logging
import re
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)

ISO_DATETIME_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d{1,6})?(Z|[+-]\d{2}:\d{2})$"
)
LOCAL_DATETIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(:\d{2}(\.\d{1,6})?)?$")
SHORT_TIME_RE = re.compile(r"^\d{2}:\d{2}$")
FULL_TIME_RE = re.compile(r"^\d{2}:\d{2}:\d{2}$")


def now_utc() -> datetime:
    """
    Get current datetime in UTC (timezone-aware)

    Returns:
        Current datetime in UTC with timezone info
    """
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """
    Convert a datetime to UTC. Naive datetimes are assumed to be UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_iso_datetime(value: str) -> Optional[datetime]:
    """
    Parse an ISO 8601 date-time string into an aware UTC datetime

    Returns:
        datetime, or None if the string is not a valid date-time
    """
    try:
        return to_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except (ValueError, AttributeError):
        logger.debug(f"Not an ISO date-time: {value!r}")
        return None


def format_iso_z(dt: datetime) -> str:
    """
    Format a datetime the way entry data stores it:
    "YYYY-MM-DDTHH:MM:SS.mmmZ" in UTC
    """
    dt = to_utc(dt)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def format_date(dt: datetime) -> str:
    """Format the UTC calendar date of a datetime as YYYY-MM-DD"""
    return to_utc(dt).strftime("%Y-%m-%d")


def format_time(dt: datetime) -> str:
    """Format the UTC wall-clock time of a datetime as HH:MM:SS"""
    return to_utc(dt).strftime("%H:%M:%S")
