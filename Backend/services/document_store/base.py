"""
Abstract base class for remote document stores.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from app.models.events import DailyDigest, EventRecord


class DocumentStore(ABC):
    """
    Point-lookup interface over the managed content store.

    Implementations return None when a document does not exist and raise
    `TransportError` for everything else (network, status, malformed payload),
    so callers can tell "absent" from "failed".
    """

    @abstractmethod
    async def get_event(self, event_id: str) -> Optional[EventRecord]:
        """
        Fetch one event document.

        Args:
            event_id: Document id in the events collection

        Returns:
            The event record, or None if no such document exists

        Raises:
            TransportError: If the store could not be queried
        """
        pass

    @abstractmethod
    async def get_digest(self, digest_id: str) -> Optional[DailyDigest]:
        """Fetch one daily digest document, None if absent."""
        pass

    async def aclose(self) -> None:
        return None

    async def __aenter__(self) -> "DocumentStore":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
