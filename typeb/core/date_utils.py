"""Date helpers shared by the services and API.

All stored timestamps are timezone-aware UTC ISO strings produced by ``to_iso``.
Naive datetimes are treated as UTC.
"""

import math
from datetime import UTC, date, datetime, time, timedelta
from typing import Any, Literal

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta


DateLike = datetime | date | str

_SECONDS_PER_MINUTE = 60
_MINUTES_PER_HOUR = 60
_MINUTES_PER_DAY = 1440
_MINUTES_PER_MONTH = 43200
_MINUTES_PER_YEAR = 525600


def now_utc() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def now_iso() -> str:
    """Return the current time in the stored timestamp format."""
    return to_iso(now_utc())


def to_datetime(value: DateLike) -> datetime:
    """Coerce a datetime, date or ISO string into an aware UTC datetime.

    Raises:
        ValueError: If the string cannot be parsed
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime.combine(value, time.min)
    else:
        try:
            dt = date_parser.isoparse(value)
        except ValueError:
            try:
                dt = date_parser.parse(value)
            except (ValueError, OverflowError) as e:
                msg = f"Invalid date format: {value}"
                raise ValueError(msg) from e

    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def to_iso(value: DateLike) -> str:
    """Serialize a date-like value as a UTC ISO-8601 string with microseconds."""
    return to_datetime(value).isoformat(timespec="microseconds")


def format_date(value: DateLike, pattern: str | None = None) -> str:
    """Format a date for display, e.g. ``Jan 5, 2025``.

    ``pattern`` is an optional strftime pattern overriding the default.
    """
    dt = to_datetime(value)
    if pattern:
        return dt.strftime(pattern)
    return f"{dt:%b} {dt.day}, {dt.year}"


def format_time(value: DateLike) -> str:
    """Format a time for display, e.g. ``3:05 PM``."""
    dt = to_datetime(value)
    return f"{dt.hour % 12 or 12}:{dt:%M} {dt:%p}"


def _distance_words(minutes: float, seconds: float) -> str:  # noqa: PLR0911
    """Describe a positive distance in words."""
    rounded = round(minutes)
    if rounded == 0:
        return "less than a minute"
    if rounded < 2:  # noqa: PLR2004
        return "1 minute"
    if rounded < 45:  # noqa: PLR2004
        return f"{rounded} minutes"
    if rounded < 90:  # noqa: PLR2004
        return "about 1 hour"
    if rounded < _MINUTES_PER_DAY:
        return f"about {round(rounded / _MINUTES_PER_HOUR)} hours"
    if rounded < 2520:  # noqa: PLR2004 - 1.75 days
        return "1 day"
    if rounded < _MINUTES_PER_MONTH:
        return f"{round(rounded / _MINUTES_PER_DAY)} days"
    if rounded < 2 * _MINUTES_PER_MONTH:
        return "about 1 month"
    months = round(seconds / (_MINUTES_PER_MONTH * _SECONDS_PER_MINUTE))
    if rounded < _MINUTES_PER_YEAR:
        return f"{months} months"
    years = rounded / _MINUTES_PER_YEAR
    whole_years = math.floor(years)
    remainder = years - whole_years
    if remainder < 0.25:  # noqa: PLR2004
        return f"about {whole_years} year{'s' if whole_years > 1 else ''}"
    if remainder < 0.75:  # noqa: PLR2004
        return f"over {whole_years} year{'s' if whole_years > 1 else ''}"
    return f"almost {whole_years + 1} years"


def get_relative_time(value: DateLike, now: datetime | None = None) -> str:
    """Return a relative description such as ``in about 2 hours`` or ``3 days ago``."""
    dt = to_datetime(value)
    reference = to_datetime(now) if now else now_utc()
    delta = (dt - reference).total_seconds()
    words = _distance_words(abs(delta) / _SECONDS_PER_MINUTE, abs(delta))
    return f"in {words}" if delta > 0 else f"{words} ago"


def get_friendly_date(value: DateLike, now: datetime | None = None) -> str:
    """Return Today / Tomorrow / Yesterday, or a label like ``Monday, Jan 5``."""
    day = to_datetime(value).date()
    today = (to_datetime(now) if now else now_utc()).date()

    if day == today:
        return "Today"
    if day == today + timedelta(days=1):
        return "Tomorrow"
    if day == today - timedelta(days=1):
        return "Yesterday"
    return f"{day:%A}, {day:%b} {day.day}"


def is_overdue(value: DateLike, now: datetime | None = None) -> bool:
    """Return True when the date lies in the past."""
    reference = to_datetime(now) if now else now_utc()
    return to_datetime(value) < reference


def get_days_until(value: DateLike, now: datetime | None = None) -> int:
    """Return the number of days until a date, rounded up."""
    reference = to_datetime(now) if now else now_utc()
    diff = (to_datetime(value) - reference).total_seconds()
    return math.ceil(diff / 86400)


def parse_time_string(time_string: str, base: datetime | None = None) -> datetime:
    """Apply an ``HH:MM`` string to a base date (today by default).

    Raises:
        ValueError: If the string is not a valid 24h time
    """
    try:
        hours_str, minutes_str = time_string.split(":")
        parsed = time(int(hours_str), int(minutes_str))
    except (ValueError, TypeError) as e:
        msg = f"Invalid time format: {time_string}. Use HH:MM"
        raise ValueError(msg) from e

    reference = to_datetime(base) if base else now_utc()
    return reference.replace(hour=parsed.hour, minute=parsed.minute, second=0, microsecond=0)


def format_duration(minutes: int) -> str:
    """Format a duration in minutes, e.g. ``45 min``, ``2 hrs``, ``1 hr 30 min``."""
    if minutes < _MINUTES_PER_HOUR:
        return f"{minutes} min"

    hours, mins = divmod(minutes, _MINUTES_PER_HOUR)
    if mins == 0:
        return f"{hours} hr{'s' if hours > 1 else ''}"
    return f"{hours} hr {mins} min"


def get_date_range(
    range_name: Literal["today", "week", "month", "all"], now: datetime | None = None
) -> tuple[datetime, datetime] | None:
    """Return the (start, end) window for a dashboard filter, or None for ``all``."""
    reference = to_datetime(now) if now else now_utc()
    end = datetime.combine(reference.date(), time.max, tzinfo=UTC)

    if range_name == "today":
        start_day = reference.date()
    elif range_name == "week":
        start_day = reference.date() - timedelta(days=7)
    elif range_name == "month":
        start_day = reference.date() - timedelta(days=30)
    else:
        return None

    return datetime.combine(start_day, time.min, tzinfo=UTC), end


def is_in_quiet_hours(moment: datetime, start: str | None, end: str | None) -> bool:
    """Return True when ``moment`` falls inside the quiet-hours window.

    Only the hour component of ``start``/``end`` is considered. Windows may
    cross midnight (e.g. 21:00 to 07:00).
    """
    if not start or not end:
        return False

    hour = moment.hour
    start_hour = int(start.split(":")[0])
    end_hour = int(end.split(":")[0])

    if start_hour < end_hour:
        return start_hour <= hour < end_hour
    return hour >= start_hour or hour < end_hour


def get_next_occurrence(last_date: DateLike, pattern: dict[str, Any]) -> datetime:
    """Return the next due date for a recurring task.

    Args:
        last_date: The previous due date
        pattern: Recurrence pattern with ``frequency`` (daily/weekly/monthly),
            optional ``interval`` and optional ``day_of_month``

    Returns:
        The next occurrence as an aware UTC datetime
    """
    current = to_datetime(last_date)
    interval = pattern.get("interval") or 1
    frequency = pattern.get("frequency")

    if frequency == "daily":
        return current + timedelta(days=interval)
    if frequency == "weekly":
        return current + timedelta(weeks=interval)
    if frequency == "monthly":
        day_of_month = pattern.get("day_of_month")
        if day_of_month:
            # relativedelta clamps to the last day of shorter months
            return current + relativedelta(months=interval, day=day_of_month)
        return current + relativedelta(months=interval)

    msg = f"Invalid recurrence frequency: {frequency}"
    raise ValueError(msg)
