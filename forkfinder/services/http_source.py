"""HTTP upstream streaming search events as newline-delimited JSON."""

import logging
from collections.abc import AsyncIterator

import httpx

from forkfinder.config import get_config
from forkfinder.models import Coordinates, RestaurantEvent, SearchRequest, SourcesEvent
from forkfinder.prompts import build_search_prompt
from forkfinder.services.stream_decoder import decode_events

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """The upstream search collaborator failed or answered with an error."""


def build_request_body(request: SearchRequest) -> dict:
    """Build the JSON body posted to the upstream search endpoint."""
    body: dict = {
        "radius": request.radius_miles,
        "openNow": request.open_now,
        "cuisine": request.cuisine,
        "prompt": build_search_prompt(request),
    }
    if isinstance(request.location, Coordinates):
        body["latitude"] = request.location.latitude
        body["longitude"] = request.location.longitude
    else:
        body["location"] = request.location
    return body


async def stream_search_events(
    request: SearchRequest,
    url: str | None = None,
    timeout: float | None = None,
    client: httpx.AsyncClient | None = None,
) -> AsyncIterator[RestaurantEvent | SourcesEvent]:
    """Stream search events from the HTTP upstream.

    Args:
        request: Search parameters
        url: Upstream endpoint (defaults to the configured upstream_url)
        timeout: Request timeout in seconds (defaults to upstream_timeout)
        client: Optional client to reuse (a temporary one is created otherwise)

    Yields:
        Stream events in arrival order

    Raises:
        UpstreamError: On transport errors or a non-success response
    """
    config = get_config()
    url = url or config.upstream_url
    if not url:
        raise UpstreamError("No upstream URL configured (set UPSTREAM_URL)")

    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(
            timeout=timeout if timeout is not None else config.upstream_timeout
        )

    logger.info(f"Streaming search results from {url}")

    try:
        async with client.stream(
            "POST", url, json=build_request_body(request)
        ) as response:
            if not response.is_success:
                error_text = (await response.aread()).decode(errors="replace")
                raise UpstreamError(
                    f"Upstream error: {response.status_code} - {error_text}"
                )

            async for event in decode_events(response.aiter_text()):
                yield event

    except httpx.HTTPError as e:
        logger.error(f"Error calling search upstream: {e}", exc_info=True)
        raise UpstreamError(f"Could not fetch data from {url}: {e}") from e

    finally:
        if owns_client:
            await client.aclose()
