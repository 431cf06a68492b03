# Backend/services/event_content_loader.py
"""
Per-consumer loading state around EventResolver.

A consumer (one screen, one request handler) owns one loader. Each `load`
supersedes the previous one: the older task is cancelled and, should its
result still arrive, it is discarded because its generation is no longer
current.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Optional

from app.core.logging import get_logger
from app.models.events import EventRecord
from services.event_resolver import EventResolver, ResolutionFailure, ResolutionResult

logger = get_logger().bind(module="event_content_loader")


@dataclass(frozen=True)
class EventContentState:
    loading: bool = False
    event: Optional[EventRecord] = None
    error: Optional[ResolutionFailure] = None


IDLE_STATE = EventContentState()


class EventContentLoader:
    def __init__(
        self,
        resolver: EventResolver,
        on_change: Optional[Callable[[EventContentState], None]] = None,
    ) -> None:
        self._resolver = resolver
        self._on_change = on_change
        self._state = IDLE_STATE
        self._generation = 0
        self._task: Optional[asyncio.Task[ResolutionResult]] = None

    @property
    def state(self) -> EventContentState:
        return self._state

    def _set_state(self, state: EventContentState) -> None:
        self._state = state
        if self._on_change is not None:
            self._on_change(state)

    def _supersede(self) -> int:
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        return self._generation

    def _stop_loading(self) -> None:
        if self._state.loading:
            self._set_state(EventContentState(loading=False, event=self._state.event, error=None))

    def cancel(self) -> None:
        """Abandon the in-flight load, if any. The last event stays; loading is cleared."""
        self._supersede()
        self._stop_loading()

    async def load(self, identifier: Optional[str]) -> EventContentState:
        generation = self._supersede()

        if not identifier:
            self._set_state(IDLE_STATE)
            return self._state

        # Keep showing the previous event while the next one loads.
        self._set_state(EventContentState(loading=True, event=self._state.event, error=None))

        task = asyncio.create_task(self._resolver.resolve(identifier))
        self._task = task
        try:
            result = await task
        except asyncio.CancelledError:
            if generation != self._generation:
                logger.debug("event_load_superseded", event_id=identifier)
                return self._state
            self._stop_loading()
            raise
        finally:
            if self._task is task:
                self._task = None

        if generation != self._generation:
            logger.debug("event_load_stale_result_dropped", event_id=identifier)
            return self._state

        if isinstance(result, ResolutionFailure):
            self._set_state(EventContentState(loading=False, event=None, error=result))
        else:
            self._set_state(EventContentState(loading=False, event=result, error=None))
        return self._state
