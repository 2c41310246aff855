"""Accumulation and publishing of streamed search results."""

import asyncio
import logging
import uuid
from collections.abc import AsyncIterable, Callable
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from forkfinder.config import get_config
from forkfinder.models import (
    FETCH_FAILED_MESSAGE,
    NO_RESULTS_MESSAGE,
    ProvenanceRecord,
    RestaurantEvent,
    RestaurantRecord,
    SearchOutcome,
    SearchStatus,
    SourcesEvent,
    weekday_name,
)
from forkfinder.ranking import rank
from forkfinder.services.source_correlator import attach_provenance

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = (
    SearchStatus.SUCCESS,
    SearchStatus.EMPTY,
    SearchStatus.ERROR,
    SearchStatus.CANCELLED,
)


class PublishMode(str, Enum):
    """Policy for publishing intermediate results while streaming."""

    IMMEDIATE = "immediate"
    BATCHED = "batched"


class SessionState(BaseModel):
    """Working state of a single search session."""

    session_id: str = Field(description="Unique session identifier")
    status: SearchStatus = Field(default=SearchStatus.IDLE)
    restaurants: list[RestaurantRecord] = Field(
        default_factory=list, description="Restaurants in arrival order"
    )
    sources: list[ProvenanceRecord] = Field(
        default_factory=list, description="Latest provenance batch"
    )
    restaurant_count: int = Field(0, description="Restaurant events seen")
    publish_count: int = Field(0, description="Publishes made so far")
    started_at: datetime = Field(
        default_factory=datetime.now, description="Reference instant for ranking"
    )
    ended_at: datetime | None = Field(None, description="Session end time")
    error_message: str | None = Field(None, description="Error message if failed")

    @property
    def today(self) -> str:
        """Weekday name the session ranks against."""
        return weekday_name(self.started_at)

    @property
    def is_terminal(self) -> bool:
        """Whether the session has ended."""
        return self.status in TERMINAL_STATUSES


class StreamAccumulator:
    """Drains an upstream event stream into a published, ranked result list.

    Restaurant events are correlated against the current provenance batch and
    appended in arrival order. Intermediate publishes follow the configured
    policy: immediate mode publishes after every append; batched mode
    publishes on every ``batch_size``-th append and otherwise flushes pending
    appends ``flush_delay`` seconds after the first of them. When the stream
    ends the ranked list is published exactly once.

    Attributes:
        mode: Intermediate publish policy
        batch_size: Appends per count-triggered publish (batched mode)
        flush_delay: Debounce delay in seconds (batched mode)
        rank_intermediate: Rank intermediate publishes (immediate mode only)
    """

    def __init__(
        self,
        on_publish: Callable[[list[RestaurantRecord]], None],
        *,
        mode: PublishMode | str | None = None,
        batch_size: int | None = None,
        flush_delay: float | None = None,
        rank_intermediate: bool | None = None,
        on_sources: Callable[[list[ProvenanceRecord]], None] | None = None,
        on_error: Callable[[str], None] | None = None,
        on_complete: Callable[[SearchOutcome], None] | None = None,
        clock: Callable[[], datetime] = datetime.now,
        session_id: str | None = None,
    ) -> None:
        """Initialize the accumulator.

        Unset publish options fall back to the application configuration.

        Raises:
            ValueError: If ranked intermediate publishes are requested in
                batched mode, or the batch size is not positive
        """
        config = get_config()

        self.mode = PublishMode(mode if mode is not None else config.publish_mode)
        self.batch_size = batch_size if batch_size is not None else config.batch_size
        self.flush_delay = (
            flush_delay if flush_delay is not None else config.flush_delay
        )
        self.rank_intermediate = (
            rank_intermediate
            if rank_intermediate is not None
            else config.rank_intermediate
        )

        if self.batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if self.rank_intermediate and self.mode is PublishMode.BATCHED:
            raise ValueError("Batched mode defers ranking to the final publish")

        self.on_publish = on_publish
        self.on_sources = on_sources
        self.on_error = on_error
        self.on_complete = on_complete
        self.clock = clock

        self._state = SessionState(session_id=session_id or str(uuid.uuid4()))
        self._timer: asyncio.TimerHandle | None = None
        self._pending = 0
        self._running = False

    @property
    def state(self) -> SessionState:
        """Current session state."""
        return self._state

    @property
    def session_id(self) -> str:
        """Identifier of the current session."""
        return self._state.session_id

    @property
    def has_pending_flush(self) -> bool:
        """Whether a debounced publish is scheduled."""
        return self._timer is not None

    def reset(self, session_id: str | None = None) -> SessionState:
        """Start a fresh session, discarding any previous working state.

        Args:
            session_id: Optional new session ID (the current one is kept if omitted)

        Returns:
            The new running SessionState
        """
        self._cancel_timer()
        self._pending = 0
        self._state = SessionState(
            session_id=session_id or self._state.session_id,
            status=SearchStatus.RUNNING,
            started_at=self.clock(),
        )
        logger.info(
            f"Search session {self.session_id} started ({self.mode.value} mode)"
        )
        return self._state

    async def run(
        self, events: AsyncIterable[RestaurantEvent | SourcesEvent]
    ) -> SearchOutcome:
        """Consume the upstream stream until it ends or fails.

        Upstream errors end the session with a single error report; whatever
        was already published stays as it is. Cancellation of the running
        task closes the upstream and propagates.

        Args:
            events: Asynchronous sequence of stream events

        Returns:
            SearchOutcome describing how the session ended

        Raises:
            RuntimeError: If this accumulator is already running a session
        """
        if self._running:
            raise RuntimeError(f"Session {self.session_id} is already running")

        iterator = aiter(events)
        self._running = True
        self.reset()

        try:
            while True:
                try:
                    event = await anext(iterator)
                except StopAsyncIteration:
                    break
                except Exception as e:
                    logger.error(
                        f"Search session {self.session_id} upstream failed: {e}",
                        exc_info=True,
                    )
                    return self._fail(FETCH_FAILED_MESSAGE)

                self.handle_event(event)

            return self._complete()

        except asyncio.CancelledError:
            self._cancel_timer()
            self._state.status = SearchStatus.CANCELLED
            self._state.ended_at = datetime.now()
            logger.info(f"Search session {self.session_id} cancelled")
            raise

        finally:
            self._running = False
            self._cancel_timer()
            if self._state.status is SearchStatus.RUNNING:
                # A callback raised; nothing may publish into this session
                self._state.status = SearchStatus.ERROR
                self._state.ended_at = datetime.now()
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                await aclose()

    def handle_event(self, event: RestaurantEvent | SourcesEvent) -> None:
        """Apply a single stream event to the working state."""
        if self._state.status is not SearchStatus.RUNNING:
            raise RuntimeError(
                f"Session {self.session_id} is not running ({self._state.status.value})"
            )

        if isinstance(event, SourcesEvent):
            self._state.sources = list(event.payload)
            logger.info(
                f"Search session {self.session_id} received "
                f"{len(event.payload)} sources"
            )
            if self.on_sources:
                self.on_sources(list(event.payload))
            return

        restaurant = attach_provenance(event.payload, self._state.sources)
        self._state.restaurants.append(restaurant)
        self._state.restaurant_count += 1
        self._pending += 1

        if self.mode is PublishMode.IMMEDIATE:
            self._publish(ranked=self.rank_intermediate)
        elif self._state.restaurant_count % self.batch_size == 0:
            self._publish()
        elif self._timer is None:
            self._schedule_flush()

    def _schedule_flush(self) -> None:
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.flush_delay, self._flush)
        logger.debug(
            f"Search session {self.session_id} flush scheduled in {self.flush_delay}s"
        )

    def _flush(self) -> None:
        self._timer = None
        if self._state.status is SearchStatus.RUNNING and self._pending:
            self._publish()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _publish(self, ranked: bool = False) -> None:
        self._cancel_timer()
        self._pending = 0

        restaurants = self._state.restaurants
        if ranked:
            snapshot = rank(restaurants, self._state.today, self._state.started_at)
        else:
            snapshot = list(restaurants)

        self._state.publish_count += 1
        logger.debug(
            f"Search session {self.session_id} publish #{self._state.publish_count} "
            f"({len(snapshot)} restaurants, ranked={ranked})"
        )
        self.on_publish(snapshot)

    def _complete(self) -> SearchOutcome:
        self._publish(ranked=True)

        count = self._state.restaurant_count
        if count == 0:
            logger.info(f"Search session {self.session_id} found no restaurants")
            return self._finish(SearchStatus.EMPTY, NO_RESULTS_MESSAGE)

        logger.info(
            f"Search session {self.session_id} completed with {count} restaurants"
        )
        return self._finish(SearchStatus.SUCCESS, None)

    def _fail(self, message: str) -> SearchOutcome:
        self._cancel_timer()
        self._state.error_message = message
        if self.on_error:
            self.on_error(message)
        return self._finish(SearchStatus.ERROR, message)

    def _finish(self, status: SearchStatus, message: str | None) -> SearchOutcome:
        self._state.status = status
        self._state.ended_at = datetime.now()

        outcome = SearchOutcome(
            session_id=self.session_id,
            status=status,
            count=self._state.restaurant_count,
            message=message,
        )
        if self.on_complete:
            self.on_complete(outcome)
        return outcome
