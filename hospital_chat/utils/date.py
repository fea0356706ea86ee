"""
Date and time parsing utilities.
"""

from datetime import datetime, timezone
from typing import Any, Optional
import pytz
from dateparser import parse as parse_date

from .text import strip_emoji
from .logging import get_logger

logger = get_logger("hospital.utils.date")


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return now_utc().isoformat()


def parse_iso(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp, returning an aware datetime or None."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        try:
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class DateParser:
    """Booking time parsing with a configured local timezone."""

    def __init__(self, tz_name: str = "Asia/Kolkata"):
        self.tz = pytz.timezone(tz_name)

    def parse_booking_time(self, value: Any) -> datetime:
        """
        Best-effort conversion of a booking time to an aware UTC datetime.

        Accepts datetimes, ISO strings and human slot labels such as
        "🕘 Mon 9:30 AM". Never raises: anything unparseable becomes now.

        Args:
            value: Raw booking time

        Returns:
            Aware datetime in UTC
        """
        if value is None or (isinstance(value, str) and not value.strip()):
            return now_utc()

        if isinstance(value, datetime):
            if value.tzinfo is None:
                value = self.tz.localize(value)
            return value.astimezone(timezone.utc)

        parsed = parse_iso(value)
        if parsed is not None:
            return parsed.astimezone(timezone.utc)

        cleaned = strip_emoji(str(value))
        dt = None
        if cleaned:
            try:
                dt = parse_date(cleaned, settings={"PREFER_DATES_FROM": "future"})
            except Exception as exc:
                logger.warning("Error parsing booking time %r: %s", value, exc)
                dt = None

        if dt is None:
            logger.warning("Unable to parse booking time %r, falling back to now", value)
            return now_utc()

        if dt.tzinfo is None:
            dt = self.tz.localize(dt)
        return dt.astimezone(timezone.utc)

    def format_local(self, dt: datetime, fmt: str = "%d/%m/%Y, %I:%M:%S %p") -> str:
        """Render an aware datetime in the local timezone."""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(self.tz).strftime(fmt)

    def format_local_date(self, dt: datetime) -> str:
        return self.format_local(dt, "%d/%m/%Y")
