"""Data models for the Forkfinder engine."""

from forkfinder.models.events import (
    ProvenanceRecord,
    RestaurantEvent,
    SourcesEvent,
    StreamEvent,
    parse_event,
)
from forkfinder.models.restaurant import (
    WEEK_DAYS,
    ClosingInfo,
    Rating,
    RestaurantRecord,
    Weekday,
    weekday_name,
)
from forkfinder.models.search import (
    FETCH_FAILED_MESSAGE,
    NO_RESULTS_MESSAGE,
    Coordinates,
    SearchOutcome,
    SearchRequest,
    SearchStatus,
)

__all__ = [
    "FETCH_FAILED_MESSAGE",
    "NO_RESULTS_MESSAGE",
    "WEEK_DAYS",
    "ClosingInfo",
    "Coordinates",
    "ProvenanceRecord",
    "Rating",
    "RestaurantEvent",
    "RestaurantRecord",
    "SearchOutcome",
    "SearchRequest",
    "SearchStatus",
    "SourcesEvent",
    "StreamEvent",
    "Weekday",
    "parse_event",
    "weekday_name",
]
