"""Restaurant data models."""

from datetime import datetime
from enum import Enum
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field

MAPS_SEARCH_URL = "https://www.google.com/maps/search/?api=1&query="


class Weekday(str, Enum):
    """Weekday names used as keys of the weekly hours map."""

    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"


WEEK_DAYS = [day.value for day in Weekday]


def weekday_name(moment: datetime) -> str:
    """Return the English weekday name of an instant (e.g. "Friday")."""
    return WEEK_DAYS[moment.weekday()]


class Rating(BaseModel):
    """Star rating and review count."""

    model_config = ConfigDict(frozen=True)

    stars: float = Field(0.0, ge=0, le=5, description="Average stars out of 5")
    count: int = Field(0, ge=0, description="Total number of reviews")


class RestaurantRecord(BaseModel):
    """A restaurant as streamed by the upstream search collaborator.

    Field names follow the upstream wire schema; ``maps_uri`` travels as
    ``mapsUri``. Records are frozen, so provenance is attached on a copy.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., description="Full business name")
    price: str = Field("", description="Price tier, one to four dollar signs")
    distance: str = Field("", description="Pre-formatted distance")
    address: str = Field("", description="Full street address")
    phone: str = Field("", description="Contact telephone number")
    website: str = Field("", description="Website URL")
    hours: dict[str, str | None] = Field(
        default_factory=dict, description="Weekday name to hours text"
    )
    rating: Rating = Field(default_factory=Rating)
    cuisine: str = Field("", description="Cuisine description")
    status: str = Field("", description="Free-text operational status")
    maps_uri: str | None = Field(None, alias="mapsUri", description="Provenance URI")

    @property
    def identity_key(self) -> tuple[str, str]:
        """Key identifying a restaurant for display purposes."""
        return (self.name, self.address)

    @property
    def is_marked_closed(self) -> bool:
        """Whether the upstream status text reports the restaurant as closed."""
        return "closed" in self.status.lower()

    @property
    def maps_link(self) -> str:
        """Provenance URI, or a maps search link built from name and address."""
        if self.maps_uri:
            return self.maps_uri
        return MAPS_SEARCH_URL + quote(f"{self.name}, {self.address}")

    def hours_for(self, day: str) -> str | None:
        """Get the raw hours text for a weekday, if any."""
        return self.hours.get(day)

    def with_provenance(self, uri: str | None) -> "RestaurantRecord":
        """Return a copy with the provenance URI attached."""
        return self.model_copy(update={"maps_uri": uri})


class ClosingInfo(BaseModel):
    """Open/closed state of a restaurant at a reference instant."""

    model_config = ConfigDict(frozen=True)

    is_open_now: bool = Field(
        False, description="Whether the instant is inside today's window"
    )
    closes_at: datetime | None = Field(None, description="Closing instant when open")
