"""Shared fixtures for Forkfinder tests."""

from datetime import datetime

import pytest

from forkfinder.models import Rating, RestaurantRecord

# Friday, 2024-03-15
FRIDAY = datetime(2024, 3, 15)


def make_restaurant(
    name: str = "Test Restaurant",
    hours: str | None = "11:00 AM - 10:00 PM",
    stars: float = 4.0,
    count: int = 100,
    day: str = "Friday",
    **fields,
) -> RestaurantRecord:
    """Build a restaurant whose hours for ``day`` are ``hours``."""
    return RestaurantRecord(
        name=name,
        price=fields.pop("price", "$$"),
        distance=fields.pop("distance", "1.2 miles"),
        address=fields.pop("address", f"{name} Street 1"),
        hours={} if hours is None else {day: hours},
        rating=Rating(stars=stars, count=count),
        cuisine=fields.pop("cuisine", "Italian"),
        status=fields.pop("status", "Open now"),
        **fields,
    )


def at(hour: int, minute: int = 0) -> datetime:
    """An instant on the reference Friday."""
    return FRIDAY.replace(hour=hour, minute=minute)


@pytest.fixture
def restaurant_factory():
    """Factory for restaurant records."""
    return make_restaurant
