# Backend/services/content_service.py
from __future__ import annotations

import asyncio
from typing import Iterable, List, Optional, Tuple

from app.core.logging import get_logger
from app.models.events import DailyDigest, EventRecord
from services.document_store import DocumentStore

logger = get_logger().bind(module="content_service")

DIGEST_DOCUMENT_PREFIX = "digest:onthisday:selected"


def build_digest_document_id(month: int, day: int) -> str:
    return f"{DIGEST_DOCUMENT_PREFIX}:{month:02d}-{day:02d}"


async def fetch_events_by_ids(store: DocumentStore, ids: Iterable[str]) -> List[EventRecord]:
    """
    Point-lookup every id once, concurrently.

    Order follows the first occurrence of each id; ids with no document are
    dropped. A TransportError from any lookup propagates.
    """
    unique_ids = list(dict.fromkeys(i for i in ids if i))
    if not unique_ids:
        return []

    results = await asyncio.gather(*(store.get_event(event_id) for event_id in unique_ids))
    events = [event for event in results if event is not None]

    missing = len(unique_ids) - len(events)
    if missing:
        logger.info("content_events_missing", requested=len(unique_ids), missing=missing)
    return events


async def fetch_daily_digest(
    store: DocumentStore,
    month: int,
    day: int,
) -> Optional[Tuple[DailyDigest, List[EventRecord]]]:
    digest_id = build_digest_document_id(month, day)
    digest = await store.get_digest(digest_id)
    if digest is None:
        logger.info("daily_digest_absent", digest_id=digest_id)
        return None

    events = await fetch_events_by_ids(store, digest.event_ids)
    logger.info(
        "daily_digest_loaded",
        digest_id=digest_id,
        event_count=len(events),
    )
    return digest, events
