"""Conversion of place-search API payloads into restaurant events."""

import logging
import math
from collections.abc import AsyncIterator

from forkfinder.models import (
    WEEK_DAYS,
    Coordinates,
    Rating,
    RestaurantEvent,
    RestaurantRecord,
)

logger = logging.getLogger(__name__)

EARTH_RADIUS_MILES = 3959
PLACE_URL = "https://www.google.com/maps/place/?q=place_id:"

PRICE_LEVELS = {
    "PRICE_LEVEL_FREE": "$",
    "PRICE_LEVEL_INEXPENSIVE": "$",
    "PRICE_LEVEL_MODERATE": "$$",
    "PRICE_LEVEL_EXPENSIVE": "$$$",
    "PRICE_LEVEL_VERY_EXPENSIVE": "$$$$",
}
DEFAULT_PRICE = "$$"

CHAIN_KEYWORDS = [
    "mcdonald",
    "starbucks",
    "subway",
    "burger king",
    "pizza hut",
    "domino",
    "kfc",
    "taco bell",
    "wendy",
    "dunkin",
]


def price_level_to_dollars(level: str | None) -> str:
    """Convert a price level enum to dollar signs."""
    return PRICE_LEVELS.get(level or "", DEFAULT_PRICE)


def calculate_distance(origin: Coordinates, target: Coordinates) -> str:
    """Format the great-circle distance between two points in miles."""
    d_lat = math.radians(target.latitude - origin.latitude)
    d_lon = math.radians(target.longitude - origin.longitude)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(origin.latitude))
        * math.cos(math.radians(target.latitude))
        * math.sin(d_lon / 2) ** 2
    )
    distance = EARTH_RADIUS_MILES * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    if distance < 0.1:
        return "< 0.1 miles"
    if distance < 1:
        return f"{distance:.1f} miles"
    return f"{round(distance)} miles"


def parse_weekday_descriptions(descriptions: list[str]) -> dict[str, str]:
    """Map Monday-first weekday descriptions to the weekly hours map.

    ``"Monday: 11:00 AM – 10:00 PM"`` becomes ``{"Monday": "11:00 AM – 10:00 PM"}``;
    "Open 24 hours" is normalized to "24 hours".
    """
    hours: dict[str, str] = {}

    for day, description in zip(WEEK_DAYS, descriptions):
        text = (description or "").strip()
        prefix = f"{day}:"
        if text.startswith(prefix):
            text = text[len(prefix) :].strip()

        if not text or text.lower() == "closed":
            hours[day] = "Closed"
        elif text.lower() == "open 24 hours":
            hours[day] = "24 hours"
        else:
            hours[day] = text

    return hours


def is_chain(name: str) -> bool:
    """Whether a place name looks like a national chain."""
    name_lower = name.lower()
    return any(keyword in name_lower for keyword in CHAIN_KEYWORDS)


def is_operational(place: dict) -> bool:
    """Whether the place reports itself as operating."""
    return place.get("businessStatus") == "OPERATIONAL"


def place_to_restaurant(place: dict, origin: Coordinates) -> RestaurantRecord:
    """Convert a single place object into a restaurant record."""
    location = place.get("location") or {}
    target = Coordinates(
        latitude=location.get("latitude", origin.latitude),
        longitude=location.get("longitude", origin.longitude),
    )
    opening_hours = place.get("regularOpeningHours") or {}
    types = place.get("types") or []
    cuisine = next((t for t in types if "restaurant" in t), None)

    return RestaurantRecord(
        name=place["displayName"]["text"],
        price=price_level_to_dollars(place.get("priceLevel")),
        distance=calculate_distance(origin, target),
        address=place.get("formattedAddress") or "Address not available",
        phone=place.get("nationalPhoneNumber") or "",
        website=place.get("websiteUri") or "",
        hours=parse_weekday_descriptions(opening_hours.get("weekdayDescriptions", [])),
        rating=Rating(
            stars=place.get("rating") or 0,
            count=place.get("userRatingCount") or 0,
        ),
        cuisine=cuisine.replace("_", " ", 1) if cuisine else "Restaurant",
        status="Open now" if is_operational(place) else "Closed",
        maps_uri=f"{PLACE_URL}{place['id']}" if place.get("id") else None,
    )


async def places_to_events(
    payload: dict, origin: Coordinates, open_now: bool = False
) -> AsyncIterator[RestaurantEvent]:
    """Stream restaurant events from a nearby-search response payload.

    Chain restaurants are dropped, as are non-operational places when
    ``open_now`` is set.

    Args:
        payload: Decoded response with a ``places`` list
        origin: Search center used for distances
        open_now: Only emit operating places

    Yields:
        One restaurant event per retained place
    """
    places = payload.get("places") or []
    local_places = [p for p in places if not is_chain(p["displayName"]["text"])]
    logger.info(
        f"Converting {len(local_places)} of {len(places)} places "
        f"({len(places) - len(local_places)} chains dropped)"
    )

    for place in local_places:
        if open_now and not is_operational(place):
            continue
        yield RestaurantEvent(payload=place_to_restaurant(place, origin))
