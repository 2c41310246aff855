"""Tests for streamed result accumulation."""

import asyncio

import pytest

from conftest import at, make_restaurant
from forkfinder.models import (
    FETCH_FAILED_MESSAGE,
    NO_RESULTS_MESSAGE,
    ProvenanceRecord,
    RestaurantEvent,
    SearchStatus,
    SourcesEvent,
)
from forkfinder.services.stream_accumulator import PublishMode, StreamAccumulator


def restaurant_event(name, stars=4.0, **kwargs):
    return RestaurantEvent(payload=make_restaurant(name, stars=stars, **kwargs))


def sources_event(*titles):
    return SourcesEvent(
        payload=[ProvenanceRecord(title=t, uri=f"uri:{t}") for t in titles]
    )


async def stream(events, delay=0.0, tail=0.0, error=None):
    """Yield events with optional pauses, then optionally fail."""
    for event in events:
        if delay:
            await asyncio.sleep(delay)
        yield event
    if tail:
        await asyncio.sleep(tail)
    if error is not None:
        raise error


class Recorder:
    """Collects everything the accumulator reports."""

    def __init__(self):
        self.published = []
        self.sources = []
        self.errors = []
        self.outcomes = []

    def accumulator(self, **options):
        options.setdefault("clock", lambda: at(12))
        return StreamAccumulator(
            self.published.append,
            on_sources=self.sources.append,
            on_error=self.errors.append,
            on_complete=self.outcomes.append,
            **options,
        )

    @property
    def sizes(self):
        return [len(snapshot) for snapshot in self.published]

    def names(self, index=-1):
        return [r.name for r in self.published[index]]


@pytest.fixture
def recorder():
    """Create a fresh recorder for each test."""
    return Recorder()


class TestImmediateMode:
    """Tests for immediate publishing."""

    @pytest.mark.asyncio
    async def test_publishes_every_append_unsorted(self, recorder):
        """Test that each append is published in arrival order."""
        accumulator = recorder.accumulator(mode=PublishMode.IMMEDIATE)
        events = [restaurant_event("Low", 2.0), restaurant_event("High", 5.0)]

        outcome = await accumulator.run(stream(events))

        assert recorder.sizes == [1, 2, 2]
        assert recorder.names(1) == ["Low", "High"]
        assert recorder.names(-1) == ["High", "Low"]
        assert outcome.status == SearchStatus.SUCCESS
        assert outcome.count == 2

    @pytest.mark.asyncio
    async def test_rank_intermediate(self, recorder):
        """Test that intermediate publishes can be ranked in immediate mode."""
        accumulator = recorder.accumulator(mode="immediate", rank_intermediate=True)
        events = [restaurant_event("Low", 2.0), restaurant_event("High", 5.0)]

        await accumulator.run(stream(events))

        assert recorder.names(1) == ["High", "Low"]

    @pytest.mark.asyncio
    async def test_published_lists_are_copies(self, recorder):
        """Test that consumers cannot mutate the working list."""
        accumulator = recorder.accumulator(mode=PublishMode.IMMEDIATE)

        await accumulator.run(stream([restaurant_event("A")]))
        recorder.published[0].clear()

        assert len(accumulator.state.restaurants) == 1


class TestBatchedMode:
    """Tests for count- and timer-batched publishing."""

    @pytest.mark.asyncio
    async def test_publishes_every_third_append(self, recorder):
        """Test count-triggered publishes and the final ranked publish."""
        accumulator = recorder.accumulator(mode="batched", batch_size=3, flush_delay=10)
        events = [restaurant_event(f"R{i}", stars=i) for i in range(5)] + [
            restaurant_event("R5", stars=0.5),
            restaurant_event("R6", stars=4.5),
        ]

        outcome = await accumulator.run(stream(events))

        assert recorder.sizes == [3, 6, 7]
        assert recorder.names(0) == ["R0", "R1", "R2"]
        assert recorder.names(1) == ["R0", "R1", "R2", "R3", "R4", "R5"]
        assert recorder.names(-1) == ["R6", "R4", "R3", "R2", "R1", "R5", "R0"]
        assert accumulator.has_pending_flush is False
        assert outcome.count == 7

    @pytest.mark.asyncio
    async def test_timer_flushes_remainder(self, recorder):
        """Test that a pending remainder is flushed after the delay."""
        accumulator = recorder.accumulator(
            mode=PublishMode.BATCHED, batch_size=3, flush_delay=0.05
        )
        events = [restaurant_event(f"R{i}") for i in range(4)]

        await accumulator.run(stream(events, tail=0.3))

        assert recorder.sizes == [3, 4, 4]
        assert recorder.names(1) == ["R0", "R1", "R2", "R3"]

    @pytest.mark.asyncio
    async def test_stream_end_flushes_before_timer(self, recorder):
        """Test that stream completion publishes once and cancels the timer."""
        accumulator = recorder.accumulator(
            mode=PublishMode.BATCHED, batch_size=3, flush_delay=0.05
        )
        events = [restaurant_event("Low", 1.0), restaurant_event("High", 5.0)]

        await accumulator.run(stream(events))
        await asyncio.sleep(0.1)

        assert recorder.sizes == [2]
        assert recorder.names() == ["High", "Low"]
        assert accumulator.has_pending_flush is False

    @pytest.mark.asyncio
    async def test_count_trigger_cancels_timer(self, recorder):
        """Test that reaching the batch size replaces the pending flush."""
        accumulator = recorder.accumulator(
            mode=PublishMode.BATCHED, batch_size=3, flush_delay=0.05
        )
        accumulator.reset()

        accumulator.handle_event(restaurant_event("A"))
        assert accumulator.has_pending_flush is True

        accumulator.handle_event(restaurant_event("B"))
        accumulator.handle_event(restaurant_event("C"))
        assert accumulator.has_pending_flush is False
        assert recorder.sizes == [3]

        await asyncio.sleep(0.1)
        assert recorder.sizes == [3]

    def test_rejects_ranked_intermediate_publishes(self, recorder):
        """Test that batched mode refuses to rank intermediate publishes."""
        with pytest.raises(ValueError, match="Batched mode"):
            recorder.accumulator(mode=PublishMode.BATCHED, rank_intermediate=True)

    def test_rejects_invalid_batch_size(self, recorder):
        """Test that the batch size must be positive."""
        with pytest.raises(ValueError, match="batch_size"):
            recorder.accumulator(mode=PublishMode.BATCHED, batch_size=0)


class TestSources:
    """Tests for provenance handling."""

    @pytest.mark.asyncio
    async def test_correlates_against_current_sources(self, recorder):
        """Test that restaurants are matched against sources seen so far."""
        accumulator = recorder.accumulator(mode=PublishMode.IMMEDIATE)
        events = [
            restaurant_event("Joe's Pizza"),
            sources_event("Joe's Pizza NYC", "Blue Hill"),
            restaurant_event("Blue Hill"),
            restaurant_event("Unrelated Cafe"),
        ]

        await accumulator.run(stream(events))

        uris = {r.name: r.maps_uri for r in accumulator.state.restaurants}
        assert uris == {
            "Joe's Pizza": None,
            "Blue Hill": "uri:Blue Hill",
            "Unrelated Cafe": None,
        }
        assert len(recorder.sources) == 1
        assert accumulator.state.restaurant_count == 3

    @pytest.mark.asyncio
    async def test_latest_sources_replace_former(self, recorder):
        """Test that a second sources batch replaces the first."""
        accumulator = recorder.accumulator(mode=PublishMode.IMMEDIATE)
        events = [
            sources_event("Joe's Pizza"),
            sources_event("Blue Hill"),
            restaurant_event("Joe's Pizza"),
        ]

        await accumulator.run(stream(events))

        assert [s.title for s in accumulator.state.sources] == ["Blue Hill"]
        assert accumulator.state.restaurants[0].maps_uri is None


class TestTerminalStates:
    """Tests for completion, failure and cancellation."""

    @pytest.mark.asyncio
    async def test_empty_result(self, recorder):
        """Test that a stream without restaurants is reported as empty."""
        accumulator = recorder.accumulator(mode=PublishMode.BATCHED)

        outcome = await accumulator.run(stream([sources_event("Joe's Pizza")]))

        assert outcome.status == SearchStatus.EMPTY
        assert outcome.message == NO_RESULTS_MESSAGE
        assert outcome.count == 0
        assert recorder.errors == []
        assert recorder.outcomes == [outcome]
        assert recorder.published == [[]]

    @pytest.mark.asyncio
    async def test_upstream_error_keeps_published_results(self, recorder):
        """Test that an upstream failure reports one error without rollback."""
        accumulator = recorder.accumulator(mode=PublishMode.IMMEDIATE)
        events = [restaurant_event("A"), restaurant_event("B")]

        outcome = await accumulator.run(
            stream(events, error=ConnectionError("connection reset"))
        )

        assert outcome.status == SearchStatus.ERROR
        assert outcome.message == FETCH_FAILED_MESSAGE
        assert recorder.errors == [FETCH_FAILED_MESSAGE]
        assert recorder.sizes == [1, 2]
        assert accumulator.state.status == SearchStatus.ERROR
        assert accumulator.state.ended_at is not None

    @pytest.mark.asyncio
    async def test_upstream_error_cancels_timer(self, recorder):
        """Test that a failure drops the pending flush."""
        accumulator = recorder.accumulator(
            mode=PublishMode.BATCHED, batch_size=3, flush_delay=0.05
        )

        await accumulator.run(stream([restaurant_event("A")], error=RuntimeError()))
        await asyncio.sleep(0.1)

        assert recorder.published == []
        assert len(recorder.errors) == 1
        assert accumulator.has_pending_flush is False

    @pytest.mark.asyncio
    async def test_callback_error_ends_session(self, recorder):
        """Test that a raising callback leaves no pending flush behind."""

        def broken_sources(_sources):
            raise RuntimeError("sources panel failed")

        accumulator = StreamAccumulator(
            recorder.published.append,
            mode=PublishMode.BATCHED,
            batch_size=3,
            flush_delay=0.05,
            on_sources=broken_sources,
            clock=lambda: at(12),
        )

        with pytest.raises(RuntimeError, match="sources panel failed"):
            await accumulator.run(
                stream([restaurant_event("A"), sources_event("Blue Hill")])
            )
        await asyncio.sleep(0.1)

        assert recorder.published == []
        assert accumulator.has_pending_flush is False
        assert accumulator.state.status == SearchStatus.ERROR
        assert accumulator.state.ended_at is not None

    @pytest.mark.asyncio
    async def test_cancellation_closes_upstream(self, recorder):
        """Test that cancelling the session closes the producer."""
        accumulator = recorder.accumulator(
            mode=PublishMode.BATCHED, batch_size=3, flush_delay=10
        )
        closed = asyncio.Event()

        async def endless():
            try:
                while True:
                    yield restaurant_event("A")
                    await asyncio.sleep(0.01)
            finally:
                closed.set()

        task = asyncio.create_task(accumulator.run(endless()))
        await asyncio.sleep(0.05)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert closed.is_set()
        assert accumulator.state.status == SearchStatus.CANCELLED
        assert accumulator.has_pending_flush is False
        assert recorder.outcomes == []

    @pytest.mark.asyncio
    async def test_new_run_starts_fresh(self, recorder):
        """Test that a second run discards the previous session state."""
        accumulator = recorder.accumulator(mode=PublishMode.IMMEDIATE)

        await accumulator.run(stream([restaurant_event("A"), restaurant_event("B")]))
        outcome = await accumulator.run(stream([restaurant_event("C")]))

        assert outcome.count == 1
        assert [r.name for r in accumulator.state.restaurants] == ["C"]

    @pytest.mark.asyncio
    async def test_concurrent_run_rejected(self, recorder):
        """Test that one accumulator cannot run two sessions at once."""
        accumulator = recorder.accumulator(mode=PublishMode.IMMEDIATE)
        task = asyncio.create_task(
            accumulator.run(stream([restaurant_event("A")], tail=0.1))
        )
        await asyncio.sleep(0.01)

        with pytest.raises(RuntimeError, match="already running"):
            await accumulator.run(stream([]))

        await task

    def test_handle_event_requires_running_session(self, recorder):
        """Test that events are rejected outside a running session."""
        accumulator = recorder.accumulator(mode=PublishMode.IMMEDIATE)

        with pytest.raises(RuntimeError, match="not running"):
            accumulator.handle_event(restaurant_event("A"))


class TestReferenceTime:
    """Tests for the session's reference instant."""

    @pytest.mark.asyncio
    async def test_final_ranking_uses_session_clock(self, recorder):
        """Test that the final ranking is evaluated at the session start instant."""
        lunch = restaurant_event("Lunch Spot", 5.0, hours="11:00 AM - 9:00 PM")
        dinner = restaurant_event("Dinner Spot", 1.0, hours="6:00 PM - 11:00 PM")

        noon = recorder.accumulator(mode=PublishMode.BATCHED, clock=lambda: at(12))
        await noon.run(stream([lunch, dinner]))
        late = recorder.accumulator(mode=PublishMode.BATCHED, clock=lambda: at(22))
        await late.run(stream([lunch, dinner]))

        assert recorder.names(0) == ["Lunch Spot", "Dinner Spot"]
        assert recorder.names(1) == ["Dinner Spot", "Lunch Spot"]
        assert late.state.today == "Friday"
