"""Weekly opening-hours parsing and open-now determination.

Hours arrive as free text per weekday, e.g. ``"11:00 AM - 10:00 PM"``,
``"8 PM – 2 AM"``, ``"24 hours"`` or ``"Closed"``. Anything that cannot be
parsed is treated as closed rather than raising.
"""

import logging
import re
from datetime import datetime, timedelta

from forkfinder.models import ClosingInfo, RestaurantRecord

logger = logging.getLogger(__name__)

CLOSED = ClosingInfo(is_open_now=False, closes_at=None)

# ASCII hyphen or en-dash
RANGE_SEPARATOR = re.compile(r"[-–]")
TIME_PATTERN = re.compile(r"(\d{1,2}):?(\d{2})?(AM|PM)")
WHITESPACE = re.compile(r"\s+")


def parse_time(time_str: str) -> tuple[int, int] | None:
    """Parse a 12-hour time-of-day expression.

    Args:
        time_str: Text such as ``"11:00 AM"``, ``"8PM"`` or ``"11 : 30 pm"``

    Returns:
        (hour, minute) on a 24-hour clock, or None if no time was found
    """
    if not time_str:
        return None

    cleaned = WHITESPACE.sub("", time_str).upper()
    match = TIME_PATTERN.search(cleaned)
    if not match:
        return None

    hours_str, minutes_str, modifier = match.groups()
    hours = int(hours_str)
    minutes = int(minutes_str) if minutes_str else 0

    if modifier == "PM" and hours < 12:
        hours += 12
    if modifier == "AM" and hours == 12:  # Midnight
        hours = 0

    if hours > 23 or minutes > 59:
        return None
    return hours, minutes


def _todays_hours(restaurant: RestaurantRecord, today: str) -> str | None:
    hours_today = restaurant.hours_for(today)
    if not hours_today or hours_today.strip().lower() == "closed":
        return None
    return hours_today


def closing_info(
    restaurant: RestaurantRecord, today: str, now: datetime
) -> ClosingInfo:
    """Determine whether a restaurant is open at ``now`` and when it closes.

    Overnight windows (end before or equal to start, e.g. 8 PM - 2 AM) are
    anchored relative to ``now``: past the start time the window ends
    tomorrow, otherwise it started yesterday.

    Args:
        restaurant: Restaurant whose weekly hours are evaluated
        today: Weekday name whose entry applies (e.g. "Friday")
        now: Reference instant

    Returns:
        ClosingInfo with ``closes_at`` set only when open
    """
    hours_today = _todays_hours(restaurant, today)
    if hours_today is None:
        return CLOSED

    if hours_today.strip().lower() == "24 hours":
        return ClosingInfo(is_open_now=True, closes_at=now + timedelta(days=1))

    parts = RANGE_SEPARATOR.split(hours_today)
    if len(parts) < 2:
        return CLOSED

    start_parts = parse_time(parts[0])
    end_parts = parse_time(parts[1])
    if start_parts is None or end_parts is None:
        logger.debug(f"Unparseable hours for {restaurant.name}: {hours_today!r}")
        return CLOSED

    start = now.replace(
        hour=start_parts[0], minute=start_parts[1], second=0, microsecond=0
    )
    end = now.replace(hour=end_parts[0], minute=end_parts[1], second=0, microsecond=0)

    if end <= start:
        if now > start:
            end += timedelta(days=1)
        else:
            start -= timedelta(days=1)

    is_open = start <= now <= end
    return ClosingInfo(is_open_now=is_open, closes_at=end if is_open else None)


def closing_time_label(restaurant: RestaurantRecord, today: str) -> str | None:
    """Get the raw closing-time text of today's range for display.

    The text after the range separator is returned trimmed and otherwise
    untouched, e.g. ``"10:00 PM"`` for ``"11:00 AM - 10:00 PM"``.
    """
    hours_today = _todays_hours(restaurant, today)
    if hours_today is None:
        return None

    parts = RANGE_SEPARATOR.split(hours_today)
    if len(parts) < 2:
        return None
    return parts[1].strip() or None
