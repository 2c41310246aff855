"""Input validation for search requests."""

import logging
import re

from forkfinder.config import get_config
from forkfinder.models import Coordinates, SearchRequest

logger = logging.getLogger(__name__)

# Patterns that indicate potential abuse or inappropriate content
BLOCKED_PATTERNS = [
    r"<script",
    r"javascript:",
    r"onclick",
    r"onerror",
    r"eval\(",
    r"exec\(",
]

MAX_LOCATION_LENGTH = 200
MAX_CUISINE_LENGTH = 100


def _find_blocked_pattern(text: str) -> str | None:
    text_lower = text.lower()
    for pattern in BLOCKED_PATTERNS:
        if re.search(pattern, text_lower):
            return pattern
    return None


class SearchInputValidator:
    """Validates search parameters before a search is started.

    Every check returns ``(is_valid, error_message)``.
    """

    @staticmethod
    def validate_location(location: str | Coordinates) -> tuple[bool, str | None]:
        """Validate a free-text location or a coordinate pair."""
        if isinstance(location, Coordinates):
            if not -90 <= location.latitude <= 90:
                return False, "Latitude must be between -90 and 90 degrees."
            if not -180 <= location.longitude <= 180:
                return False, "Longitude must be between -180 and 180 degrees."
            return True, None

        if not location or not location.strip():
            logger.warning("Guardrail triggered: Empty location")
            return False, "Please enter a location or use your current location."

        if len(location) > MAX_LOCATION_LENGTH:
            logger.warning(
                f"Guardrail triggered: Location too long "
                f"({len(location)} > {MAX_LOCATION_LENGTH} chars)"
            )
            return False, f"Location too long (max {MAX_LOCATION_LENGTH} characters)."

        pattern = _find_blocked_pattern(location)
        if pattern:
            logger.warning(f"Guardrail triggered: Suspicious pattern ({pattern})")
            return False, "Location contains suspicious content."

        return True, None

    @staticmethod
    def validate_radius(radius_miles: float) -> tuple[bool, str | None]:
        """Validate the search radius against the configured maximum."""
        max_radius = get_config().max_radius_miles
        if radius_miles <= 0 or radius_miles > max_radius:
            logger.warning(f"Guardrail triggered: Invalid radius ({radius_miles})")
            return (
                False,
                f"Radius must be greater than 0 and at most {max_radius:g} miles.",
            )
        return True, None

    @staticmethod
    def validate_cuisine(cuisine: str) -> tuple[bool, str | None]:
        """Validate the optional cuisine filter."""
        if not cuisine:
            return True, None

        if len(cuisine) > MAX_CUISINE_LENGTH:
            return False, f"Cuisine too long (max {MAX_CUISINE_LENGTH} characters)."

        pattern = _find_blocked_pattern(cuisine)
        if pattern:
            logger.warning(f"Guardrail triggered: Suspicious pattern ({pattern})")
            return False, "Cuisine contains suspicious content."

        return True, None

    @classmethod
    def validate_request(cls, request: SearchRequest) -> tuple[bool, str | None]:
        """Run every check against a search request."""
        for is_valid, error in (
            cls.validate_location(request.location),
            cls.validate_radius(request.radius_miles),
            cls.validate_cuisine(request.cuisine),
        ):
            if not is_valid:
                return False, error
        return True, None
