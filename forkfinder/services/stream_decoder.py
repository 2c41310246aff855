"""Decoding of newline-delimited JSON search streams into events."""

import json
import logging
from collections.abc import AsyncIterable, AsyncIterator

from pydantic import ValidationError

from forkfinder.models import RestaurantEvent, SourcesEvent, parse_event

logger = logging.getLogger(__name__)


def decode_line(line: str) -> RestaurantEvent | SourcesEvent | None:
    """Decode a single line of the stream.

    Args:
        line: One line of newline-delimited JSON

    Returns:
        The decoded event, or None for blank or malformed lines
    """
    text = line.strip()
    if not text:
        return None

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse a line of the stream as JSON: {text!r} ({e})")
        return None

    if not isinstance(data, dict):
        logger.warning(f"Skipping non-object line of the stream: {text!r}")
        return None

    try:
        return parse_event(data)
    except ValidationError as e:
        logger.warning(
            f"Skipping invalid event in the stream: {text!r} "
            f"({e.error_count()} validation errors)"
        )
        return None


async def decode_events(
    chunks: AsyncIterable[str],
) -> AsyncIterator[RestaurantEvent | SourcesEvent]:
    """Turn arbitrarily split text chunks into stream events.

    Chunks are buffered until a newline completes a line; whatever remains in
    the buffer when the input ends is decoded as a final line. Malformed lines
    are logged and skipped.

    Args:
        chunks: Text chunks as they arrive from the upstream

    Yields:
        Decoded stream events in arrival order
    """
    buffer = ""

    async for chunk in chunks:
        buffer += chunk
        *lines, buffer = buffer.split("\n")

        for line in lines:
            event = decode_line(line)
            if event is not None:
                yield event

    # Process any remaining content in the buffer
    event = decode_line(buffer)
    if event is not None:
        yield event
