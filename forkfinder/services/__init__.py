"""Stream ingestion services."""

from forkfinder.services.search_manager import SearchManager, get_search_manager
from forkfinder.services.source_correlator import attach_provenance, correlate
from forkfinder.services.stream_accumulator import (
    PublishMode,
    SessionState,
    StreamAccumulator,
)
from forkfinder.services.stream_decoder import decode_events, decode_line

__all__ = [
    "PublishMode",
    "SearchManager",
    "SessionState",
    "StreamAccumulator",
    "attach_provenance",
    "correlate",
    "decode_events",
    "decode_line",
    "get_search_manager",
]
