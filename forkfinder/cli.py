"""Command-line interface for Forkfinder - streams a search and prints the ranking."""

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import AsyncIterator
from pathlib import Path

from pydantic import ValidationError

from forkfinder.config import get_config, setup_logging
from forkfinder.guardrails import SearchInputValidator
from forkfinder.models import (
    Coordinates,
    RestaurantRecord,
    SearchOutcome,
    SearchRequest,
    SearchStatus,
)
from forkfinder.ranking import closing_time_label
from forkfinder.services import decode_events, get_search_manager
from forkfinder.services.http_source import stream_search_events
from forkfinder.services.places_adapter import places_to_events

logger = logging.getLogger(__name__)


async def _read_lines(path: Path) -> AsyncIterator[str]:
    text = await asyncio.to_thread(path.read_text, encoding="utf-8")
    for line in text.splitlines(keepends=True):
        yield line


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="forkfinder",
        description="Stream restaurant search results and rank them.",
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--file", type=Path, help="Newline-delimited JSON event file")
    source.add_argument("--url", help="HTTP endpoint streaming search events")
    source.add_argument(
        "--places", type=Path, help="Nearby-search JSON payload (needs --lat/--lng)"
    )

    parser.add_argument("--location", help="Address, city, or landmark")
    parser.add_argument("--lat", type=float, help="Latitude of the search center")
    parser.add_argument("--lng", type=float, help="Longitude of the search center")
    parser.add_argument("--radius", type=float, help="Search radius in miles")
    parser.add_argument("--cuisine", default="", help="Cuisine filter")
    parser.add_argument(
        "--all",
        dest="open_now",
        action="store_false",
        help="Include restaurants that are currently closed",
    )
    parser.add_argument(
        "--mode", choices=["immediate", "batched"], help="Intermediate publish policy"
    )
    return parser


def build_request(args: argparse.Namespace) -> SearchRequest:
    """Build the search request from parsed arguments.

    Raises:
        ValueError: If no location was given or the request is invalid
    """
    config = get_config()

    if args.lat is not None and args.lng is not None:
        location: str | Coordinates = Coordinates(latitude=args.lat, longitude=args.lng)
    elif args.location:
        location = args.location
    else:
        raise ValueError("Please enter a location (--location or --lat/--lng).")

    request = SearchRequest(
        location=location,
        radius_miles=args.radius or config.default_radius_miles,
        open_now=args.open_now,
        cuisine=args.cuisine,
    )

    is_valid, error = SearchInputValidator.validate_request(request)
    if not is_valid:
        raise ValueError(error)
    return request


def format_restaurant(position: int, restaurant: RestaurantRecord, today: str) -> str:
    """Format a ranked restaurant for display."""
    lines = [
        f"{position:>2}. {restaurant.name} ({restaurant.status or 'status unknown'})",
        f"    {restaurant.cuisine} | {restaurant.rating.stars} stars "
        f"({restaurant.rating.count} reviews) | {restaurant.price} "
        f"| {restaurant.distance}",
    ]

    closing_time = None
    if not restaurant.is_marked_closed:
        closing_time = closing_time_label(restaurant, today)
    if closing_time:
        lines.append(f"    Open until {closing_time}")

    lines.append(f"    {restaurant.address}")
    if restaurant.phone:
        lines.append(f"    {restaurant.phone}")
    lines.append(f"    {restaurant.maps_link}")
    return "\n".join(lines)


async def run_search(args: argparse.Namespace, request: SearchRequest) -> int:
    """Run a single search and print the results.

    Returns:
        Process exit code
    """
    if args.file:
        events = decode_events(_read_lines(args.file))
    elif args.places:
        if not isinstance(request.location, Coordinates):
            raise ValueError("--places needs the search center as --lat/--lng.")
        payload = json.loads(args.places.read_text(encoding="utf-8"))
        events = places_to_events(payload, request.location, request.open_now)
    else:
        events = stream_search_events(request, url=args.url)

    latest: list[RestaurantRecord] = []

    def on_publish(restaurants: list[RestaurantRecord]) -> None:
        latest[:] = restaurants
        print(f"  ... {len(restaurants)} restaurants so far")

    print("\n" + "=" * 60)
    print(f"Finding the best local spots around {request.location_text}...")
    print("=" * 60 + "\n")

    manager = get_search_manager()
    options = {"mode": args.mode} if args.mode else {}
    task = await manager.start_search(events, on_publish, **options)
    outcome: SearchOutcome = await task

    if outcome.status is SearchStatus.ERROR:
        print(f"\n⚠ Oops! Something went wrong. {outcome.message}")
        return 1

    if outcome.status is SearchStatus.EMPTY:
        print(f"\n{outcome.message}")
        return 0

    state = manager.get_session(outcome.session_id)
    today = state.today if state else ""

    print("\n" + "-" * 60)
    for position, restaurant in enumerate(latest, start=1):
        print(format_restaurant(position, restaurant, today))
        print()
    print(f"✓ {outcome.count} restaurants found.")
    return 0


def main() -> None:
    """Main entry point for the CLI."""
    args = build_parser().parse_args()

    try:
        # Validate configuration by attempting to load it
        config = get_config()
    except (ValidationError, ValueError) as e:
        print(f"Configuration error: {e}")
        sys.exit(1)

    setup_logging(config)

    try:
        request = build_request(args)
        exit_code = asyncio.run(run_search(args, request))
    except ValueError as e:
        print(f"⚠ {e}")
        sys.exit(2)
    except KeyboardInterrupt:
        print("\n\nSearch interrupted. Goodbye!")
        sys.exit(130)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
