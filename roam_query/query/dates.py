"""Resolve ``between`` date expressions to epoch millisecond timestamps."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from datetime import date, datetime, timedelta

from roam_query.exceptions import DateParseError

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

DAY_MS = 24 * 60 * 60 * 1000

_AGO_RE = re.compile(r"^(\d+)\s+(day|week|month|year)s?\s+ago$")
_ORDINAL_RE = re.compile(r"(\d+)(st|nd|rd|th)\b", re.IGNORECASE)

# Tried in order after ordinal suffixes are stripped
_CALENDAR_FORMATS: tuple[str, ...] = (
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%m/%d/%Y",
    "%Y/%m/%d",
)


def ordinal_suffix(n: int) -> str:
    """Return the English ordinal suffix for a day number (1st, 2nd, 11th)."""
    if n % 10 == 1 and n % 100 != 11:
        return "st"
    if n % 10 == 2 and n % 100 != 12:
        return "nd"
    if n % 10 == 3 and n % 100 != 13:
        return "rd"
    return "th"


def format_roam_date(value: date) -> str:
    """Format a date as a daily notes page title, e.g. ``January 1st, 2026``."""
    return f"{value.strftime('%B')} {value.day}{ordinal_suffix(value.day)}, {value.year}"


def to_millis(value: datetime) -> int:
    """Convert a datetime to epoch milliseconds (naive means local time)."""
    return round(value.timestamp() * 1000)


def end_of_day(timestamp_ms: int) -> int:
    """Move a start-of-day timestamp to the last millisecond of that day."""
    return timestamp_ms + DAY_MS - 1


def shift_months(value: datetime, months: int) -> datetime:
    """Shift by calendar months, rolling day overflow into the next month.

    March 31st minus one month is "February 31st", which normalizes to
    March 3rd (March 2nd in leap years).
    """
    total = value.year * 12 + (value.month - 1) + months
    year, month_index = divmod(total, 12)
    first = value.replace(year=year, month=month_index + 1, day=1)
    return first + timedelta(days=value.day - 1)


class DateResolver:
    """Turns relative and calendar date text into timestamps.

    Args:
        clock: Returns the current time. Defaults to ``datetime.now``
            (local time). An aware clock makes every computation happen
            in its timezone, which lets tests pin exact boundaries.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or datetime.now

    def start_of_today(self) -> datetime:
        return self._clock().replace(hour=0, minute=0, second=0, microsecond=0)

    def resolve(self, text: str) -> int:
        """Resolve a date expression to a start-of-day epoch timestamp in ms.

        Raises:
            DateParseError: If the text is neither a known relative
                expression nor a parseable date.
        """
        relative = self.resolve_relative(text)
        if relative is not None:
            return to_millis(relative)
        return to_millis(self.parse_absolute(text))

    def resolve_relative(self, text: str) -> datetime | None:
        """Resolve relative expressions like ``last week`` or ``3 days ago``.

        Returns:
            The start of the resolved day, or None if the text is not a
            relative expression.
        """
        normalized = " ".join(text.lower().split())
        today = self.start_of_today()

        if normalized == "today":
            return today
        if normalized == "yesterday":
            return today - timedelta(days=1)
        if normalized == "tomorrow":
            return today + timedelta(days=1)
        if normalized in ("last week", "a week ago"):
            return today - timedelta(weeks=1)
        if normalized == "this week":
            # Weeks start on Sunday
            return today - timedelta(days=(today.weekday() + 1) % 7)
        if normalized == "next week":
            return today + timedelta(weeks=1)
        if normalized in ("last month", "a month ago"):
            return shift_months(today, -1)
        if normalized == "this month":
            return today.replace(day=1)
        if normalized == "next month":
            return shift_months(today, 1)
        if normalized in ("last year", "a year ago"):
            return shift_months(today, -12)
        if normalized == "this year":
            return today.replace(month=1, day=1)
        if normalized == "next year":
            return shift_months(today, 12)

        match = _AGO_RE.match(normalized)
        if match:
            amount = int(match.group(1))
            unit = match.group(2)
            if unit == "day":
                return today - timedelta(days=amount)
            if unit == "week":
                return today - timedelta(weeks=amount)
            if unit == "month":
                return shift_months(today, -amount)
            return shift_months(today, -12 * amount)

        return None

    def parse_absolute(self, text: str) -> datetime:
        """Parse a calendar date such as ``January 1st, 2026`` or ``2026-01-01``.

        Naive results are placed in the clock's timezone.

        Raises:
            DateParseError: If no supported format matches.
        """
        tzinfo = self._clock().tzinfo
        cleaned = " ".join(_ORDINAL_RE.sub(r"\1", text).split())

        for fmt in _CALENDAR_FORMATS:
            try:
                return datetime.strptime(cleaned, fmt).replace(tzinfo=tzinfo)
            except ValueError:
                continue

        try:
            parsed = datetime.fromisoformat(text.strip())
        except ValueError as e:
            logger.debug("Date expression %r matched no known format", text)
            raise DateParseError(text) from e

        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=tzinfo)
        return parsed
