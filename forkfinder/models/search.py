"""Data models for search requests and session outcomes."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

NO_RESULTS_MESSAGE = (
    "No restaurants found. Try expanding your search radius or changing your filters."
)
FETCH_FAILED_MESSAGE = (
    "Failed to fetch restaurant data. Please check your connection and try again."
)


class Coordinates(BaseModel):
    """A latitude/longitude pair."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., description="Latitude in degrees")
    longitude: float = Field(..., description="Longitude in degrees")


class SearchRequest(BaseModel):
    """Parameters handed to the upstream search collaborator."""

    model_config = ConfigDict(frozen=True)

    location: str | Coordinates = Field(
        ..., description="Free-text location or coordinates"
    )
    radius_miles: float = Field(..., gt=0, description="Search radius in miles")
    open_now: bool = Field(True, description="Only return currently open places")
    cuisine: str = Field("", description="Optional cuisine filter")

    @property
    def location_text(self) -> str:
        """Location as text, rendering coordinates explicitly."""
        if isinstance(self.location, Coordinates):
            return (
                f"latitude: {self.location.latitude}, "
                f"longitude: {self.location.longitude}"
            )
        return self.location


class SearchStatus(str, Enum):
    """Lifecycle state of a search session."""

    IDLE = "idle"
    RUNNING = "running"
    SUCCESS = "success"
    EMPTY = "empty"
    ERROR = "error"
    CANCELLED = "cancelled"


class SearchOutcome(BaseModel):
    """Terminal result of a search session."""

    session_id: str = Field(..., description="Session identifier")
    status: SearchStatus = Field(..., description="Terminal status")
    count: int = Field(0, ge=0, description="Number of restaurant events observed")
    message: str | None = Field(None, description="User-facing message")
    finished_at: datetime = Field(
        default_factory=datetime.now, description="When the session ended"
    )
