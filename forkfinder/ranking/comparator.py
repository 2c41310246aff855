"""Total ordering of restaurants for presentation."""

import logging
from datetime import datetime
from functools import cmp_to_key

from forkfinder.models import ClosingInfo, RestaurantRecord, weekday_name
from forkfinder.ranking.hours import closing_info

logger = logging.getLogger(__name__)


def compare(
    a_info: ClosingInfo,
    a: RestaurantRecord,
    b_info: ClosingInfo,
    b: RestaurantRecord,
) -> float:
    """Compare two restaurants; negative when ``a`` ranks first.

    Keys, most significant first: open now, later closing time, more stars,
    more reviews.
    """
    # One is open, the other is not
    if a_info.is_open_now and not b_info.is_open_now:
        return -1
    if not a_info.is_open_now and b_info.is_open_now:
        return 1

    # Both open, the one that stays open longest first
    if a_info.closes_at and b_info.closes_at:
        time_diff = (b_info.closes_at - a_info.closes_at).total_seconds()
        if time_diff != 0:
            return time_diff

    rating_diff = b.rating.stars - a.rating.stars
    if rating_diff != 0:
        return rating_diff

    return b.rating.count - a.rating.count


def rank(
    restaurants: list[RestaurantRecord],
    today: str | None = None,
    now: datetime | None = None,
) -> list[RestaurantRecord]:
    """Sort restaurants into presentation order.

    The same ``today``/``now`` is used for every record so the ordering is
    self-consistent. The sort is stable and returns a new list.

    Args:
        restaurants: Records in arrival order
        today: Weekday name (defaults to the weekday of ``now``)
        now: Reference instant (defaults to the current local time)

    Returns:
        New list in ranked order
    """
    if now is None:
        now = datetime.now()
    if today is None:
        today = weekday_name(now)

    decorated = [(closing_info(r, today, now), r) for r in restaurants]
    decorated.sort(key=cmp_to_key(lambda x, y: compare(x[0], x[1], y[0], y[1])))

    logger.debug(f"Ranked {len(decorated)} restaurants for {today} at {now:%H:%M}")
    return [restaurant for _, restaurant in decorated]
