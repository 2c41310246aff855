"""Stream event models exchanged with the upstream search collaborator."""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

from forkfinder.models.restaurant import RestaurantRecord

# Keys used by the generative search provider before events were tagged
LEGACY_KEYS = {"type": "kind", "data": "payload"}


class ProvenanceRecord(BaseModel):
    """A source the search provider grounded its answer on."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., description="Place title as reported by the source")
    uri: str = Field(..., description="Link to the source")

    @model_validator(mode="before")
    @classmethod
    def unwrap_grounding_chunk(cls, data: Any) -> Any:
        """Accept the provider's ``{"maps": {"title", "uri"}}`` shape."""
        if isinstance(data, dict) and isinstance(data.get("maps"), dict):
            return data["maps"]
        return data


class RestaurantEvent(BaseModel):
    """A single restaurant record arriving on the stream."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["restaurant"] = "restaurant"
    payload: RestaurantRecord


class SourcesEvent(BaseModel):
    """A batch of provenance records arriving on the stream."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["sources"] = "sources"
    payload: list[ProvenanceRecord] = Field(default_factory=list)


StreamEvent = Annotated[RestaurantEvent | SourcesEvent, Field(discriminator="kind")]

_event_adapter: TypeAdapter[RestaurantEvent | SourcesEvent] = TypeAdapter(StreamEvent)


def parse_event(data: dict) -> RestaurantEvent | SourcesEvent:
    """Validate a decoded JSON object as a stream event.

    Objects tagged with ``kind``/``payload`` (or the provider's legacy
    ``type``/``data`` keys) are validated against the tagged union. An
    untagged object is taken to be a bare restaurant record.

    Raises:
        pydantic.ValidationError: If the object matches neither shape
    """
    normalized = {LEGACY_KEYS.get(key, key): value for key, value in data.items()}
    if "kind" not in normalized:
        return RestaurantEvent(payload=RestaurantRecord.model_validate(data))
    return _event_adapter.validate_python(normalized)
