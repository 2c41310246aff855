"""Session management for search invocations."""

import asyncio
import logging
import uuid
from collections.abc import AsyncIterable, Callable
from datetime import datetime
from typing import ClassVar

from forkfinder.models import RestaurantRecord, SearchOutcome
from forkfinder.services.stream_accumulator import SessionState, StreamAccumulator

logger = logging.getLogger(__name__)


class SearchManager:
    """Owns the active search session and the history of finished ones.

    Only one session runs at a time: starting a search cancels the previous
    one first, so a stale debounce timer or producer can never write into
    the new session's results.

    This is a singleton that stores session state in memory.
    """

    _instance: ClassVar["SearchManager | None"] = None
    _sessions: ClassVar[dict[str, StreamAccumulator]] = {}
    _active_task: ClassVar["asyncio.Task[SearchOutcome] | None"] = None
    _active_session_id: ClassVar[str | None] = None
    _restart_lock: ClassVar[asyncio.Lock | None] = None
    _lock_loop: ClassVar[asyncio.AbstractEventLoop | None] = None

    def __new__(cls) -> "SearchManager":
        """Ensure only one instance exists (singleton pattern)."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @staticmethod
    def generate_session_id() -> str:
        """Generate a unique session identifier.

        Returns:
            UUID-based session ID
        """
        return str(uuid.uuid4())

    @property
    def active_session_id(self) -> str | None:
        """ID of the session currently running, if any."""
        task = SearchManager._active_task
        if task is None or task.done():
            return None
        return SearchManager._active_session_id

    async def start_search(
        self,
        events: AsyncIterable,
        on_publish: Callable[[list[RestaurantRecord]], None],
        session_id: str | None = None,
        **accumulator_options,
    ) -> "asyncio.Task[SearchOutcome]":
        """Cancel any running session and start consuming a new stream.

        Args:
            events: Upstream stream of search events
            on_publish: Callback receiving each published result list
            session_id: Optional session ID (generated if not provided)
            **accumulator_options: Extra StreamAccumulator keyword arguments

        Returns:
            Task resolving to the session's SearchOutcome
        """
        async with self._get_restart_lock():
            await self._cancel_active()

            if session_id is None:
                session_id = self.generate_session_id()

            accumulator = StreamAccumulator(
                on_publish, session_id=session_id, **accumulator_options
            )
            self._sessions[session_id] = accumulator

            task = asyncio.create_task(
                accumulator.run(events), name=f"search-{session_id}"
            )
            SearchManager._active_task = task
            SearchManager._active_session_id = session_id
            logger.info(f"Created search session {session_id}")

        return task

    async def cancel_active(self) -> bool:
        """Cancel the running session and wait for it to wind down.

        Returns:
            True if a running session was cancelled
        """
        async with self._get_restart_lock():
            return await self._cancel_active()

    def _get_restart_lock(self) -> asyncio.Lock:
        # Locks bind to the loop they first wait on
        loop = asyncio.get_running_loop()
        if SearchManager._restart_lock is None or SearchManager._lock_loop is not loop:
            SearchManager._restart_lock = asyncio.Lock()
            SearchManager._lock_loop = loop
        return SearchManager._restart_lock

    async def _cancel_active(self) -> bool:
        task = SearchManager._active_task
        session_id = SearchManager._active_session_id
        SearchManager._active_task = None
        SearchManager._active_session_id = None

        if task is None or task.done():
            return False

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            # Only the session's own cancellation is expected here
            current = asyncio.current_task()
            if not task.cancelled() or (current is not None and current.cancelling()):
                raise
        logger.info(f"Cancelled search session {session_id}")
        return True

    def get_session(self, session_id: str) -> SessionState | None:
        """Get session state by ID.

        Args:
            session_id: Session identifier

        Returns:
            SessionState or None if not found
        """
        accumulator = self._sessions.get(session_id)
        return accumulator.state if accumulator else None

    def get_all_sessions(self) -> list[SessionState]:
        """Get the state of every tracked session.

        Returns:
            List of SessionState objects
        """
        return [accumulator.state for accumulator in self._sessions.values()]

    def cleanup_old_sessions(self, max_age_minutes: int = 60) -> int:
        """Remove finished sessions older than max_age_minutes.

        Args:
            max_age_minutes: Maximum age in minutes

        Returns:
            Number of sessions removed
        """
        now = datetime.now()
        to_remove = []

        for session_id, accumulator in self._sessions.items():
            state = accumulator.state
            if state.is_terminal and state.ended_at:
                age_minutes = (now - state.ended_at).total_seconds() / 60
                if age_minutes > max_age_minutes:
                    to_remove.append(session_id)

        for session_id in to_remove:
            del self._sessions[session_id]
            logger.info(f"Cleaned up old search session {session_id}")

        return len(to_remove)


# Global singleton instance
_search_manager: SearchManager | None = None


def get_search_manager() -> SearchManager:
    """Get the global SearchManager instance.

    Returns:
        SearchManager singleton
    """
    global _search_manager
    if _search_manager is None:
        _search_manager = SearchManager()
    return _search_manager
