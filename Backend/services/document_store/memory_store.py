"""
Dict-backed document store for local development and tests.
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional

from app.models.events import DailyDigest, EventRecord

from .base import DocumentStore


class InMemoryDocumentStore(DocumentStore):
    def __init__(
        self,
        events: Iterable[EventRecord] = (),
        digests: Optional[Dict[str, DailyDigest]] = None,
    ) -> None:
        self._events: Dict[str, EventRecord] = {event.event_id: event for event in events}
        self._digests: Dict[str, DailyDigest] = dict(digests or {})

    async def get_event(self, event_id: str) -> Optional[EventRecord]:
        return self._events.get(event_id)

    async def get_digest(self, digest_id: str) -> Optional[DailyDigest]:
        return self._digests.get(digest_id)
