from __future__ import annotations

import random
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from app.core.logging import get_logger
from app.models.events import EventRecord
from app.services.bundled_data import load_dataset

logger = get_logger().bind(module="explore_seed")

EXPLORE_SEED_FILE = "explore_seed.yml"


def _parse_documents(items: Iterable[Any], group: str) -> List[EventRecord]:
    events: List[EventRecord] = []
    for index, raw in enumerate(items or []):
        if not isinstance(raw, dict):
            continue
        try:
            events.append(EventRecord.model_validate(raw))
        except ValidationError as exc:
            logger.warning(
                "explore_seed_record_skipped",
                group=group,
                index=index,
                event_id=raw.get("eventId"),
                error=str(exc),
            )
    return events


class ExploreSeedTable:
    """Story-of-the-day and you-might-be-interested fallbacks, keyed by event id."""

    def __init__(self, sotd: Iterable[EventRecord], ymbi: Iterable[EventRecord]) -> None:
        self.sotd: Tuple[EventRecord, ...] = tuple(sotd)
        self.ymbi: Tuple[EventRecord, ...] = tuple(ymbi)
        self._by_id: Dict[str, EventRecord] = {}
        for event in (*self.sotd, *self.ymbi):
            self._by_id.setdefault(event.event_id, event)

    @classmethod
    def from_dataset(cls, data: Dict[str, Any]) -> "ExploreSeedTable":
        return cls(
            _parse_documents(data.get("sotd") or [], "sotd"),
            _parse_documents(data.get("ymbi") or [], "ymbi"),
        )

    def get(self, event_id: str) -> Optional[EventRecord]:
        return self._by_id.get(event_id)

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)


@lru_cache(maxsize=1)
def default_explore_seed_table() -> ExploreSeedTable:
    table = ExploreSeedTable.from_dataset(load_dataset(EXPLORE_SEED_FILE))
    logger.info("explore_seed_table_loaded", count=len(table))
    return table


def is_explore_seed_event_id(event_id: str, table: Optional[ExploreSeedTable] = None) -> bool:
    return event_id in (table or default_explore_seed_table())


def get_explore_seed_event_by_id(event_id: str, table: Optional[ExploreSeedTable] = None) -> Optional[EventRecord]:
    return (table or default_explore_seed_table()).get(event_id)


def get_random_sotd_seed(
    table: Optional[ExploreSeedTable] = None,
    rng: Optional[random.Random] = None,
) -> Optional[EventRecord]:
    seeds = (table or default_explore_seed_table()).sotd
    if not seeds:
        return None
    return (rng or random).choice(seeds)


def get_ymbi_seed_events(
    limit: int = 8,
    table: Optional[ExploreSeedTable] = None,
    rng: Optional[random.Random] = None,
) -> List[EventRecord]:
    """Shuffled you-might-be-interested seeds, at most `limit` of them."""
    seeds = list((table or default_explore_seed_table()).ymbi)
    (rng or random).shuffle(seeds)
    return seeds[: max(0, min(limit, len(seeds)))]
