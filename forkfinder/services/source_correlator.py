"""Best-effort matching of restaurants to provenance records."""

import logging

from forkfinder.models import ProvenanceRecord, RestaurantRecord

logger = logging.getLogger(__name__)


def correlate(restaurant_name: str, sources: list[ProvenanceRecord]) -> str | None:
    """Find the provenance URI for a restaurant by fuzzy name containment.

    The first source whose title is contained in the name, or whose title
    contains the name (case-insensitive), wins, so source order matters.

    Args:
        restaurant_name: Name of the restaurant as streamed
        sources: Provenance records in arrival order

    Returns:
        URI of the first matching source, or None
    """
    name = restaurant_name.casefold()
    for source in sources:
        title = source.title.casefold()
        if title in name or name in title:
            return source.uri
    return None


def attach_provenance(
    restaurant: RestaurantRecord, sources: list[ProvenanceRecord]
) -> RestaurantRecord:
    """Return the restaurant with the correlated provenance URI attached.

    A URI supplied by the upstream itself is kept when no source matches.
    """
    uri = correlate(restaurant.name, sources)
    if uri is None:
        # The places adapter sets its own place URI and emits no sources
        return restaurant
    logger.debug(f"Matched {restaurant.name} to source {uri}")
    return restaurant.with_provenance(uri)
