from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from app.core.logging import get_logger
from app.models.events import DailyDigest, EventCategory, EventRecord
from app.services.bundled_data import load_records
from services.content_errors import InvalidArgumentError
from services.wikimedia_urls import build_file_url

logger = get_logger().bind(module="dev_digest")

DEV_DIGEST_FILE = "dev_digest.yml"
DEV_ID_PREFIX = "dev-digest:"
FALLBACK_ARTICLE_URL = "https://en.wikipedia.org/wiki/Main_Page"
MAX_DIGEST_EVENTS = 5

# Authored library categories → app categories
LIBRARY_CATEGORY_MAP: Dict[str, EventCategory] = {
    "science": EventCategory.SCIENCE_DISCOVERY,
    "culture": EventCategory.ART_CULTURE,
    "politics": EventCategory.POLITICS,
    "innovation": EventCategory.INVENTIONS,
    "art": EventCategory.ART_CULTURE,
    "human-rights": EventCategory.CIVIL_RIGHTS,
}

LIBRARY_ERA_MAP: Dict[str, str] = {
    "ancient": "ancient",
    "renaissance": "early-modern",
    "industrial": "nineteenth",
    "modern": "twentieth",
    "contemporary": "contemporary",
}


def _two(value: int) -> str:
    return f"{value:02d}"


def _parse_library_date(raw: Any) -> Tuple[Optional[int], Optional[int], Optional[int]]:
    parts = str(raw or "").split("-")
    values: List[Optional[int]] = []
    for part in parts[:3]:
        try:
            values.append(int(part))
        except ValueError:
            values.append(None)
    while len(values) < 3:
        values.append(None)
    return values[0], values[1], values[2]


def _primary_image_url(raw_image: Any) -> Optional[str]:
    if not isinstance(raw_image, str):
        return None
    try:
        return build_file_url(raw_image)
    except InvalidArgumentError:
        return None


def normalize_library_record(raw: Dict[str, Any], page_id_seed: int) -> EventRecord:
    """
    Turn one authored library record into the canonical event shape,
    with a single related page built from its title, summary and first source.
    """
    library_id = str(raw.get("id") or "").strip()
    title = str(raw.get("title") or library_id)
    summary = raw.get("summary")
    detail = raw.get("detail")

    image_url = _primary_image_url(raw.get("image"))
    shared_asset: Optional[Dict[str, Any]] = None
    if image_url:
        shared_asset = {
            "id": f"{library_id}-media",
            "source_url": image_url,
            "width": 1200,
            "height": 900,
            "provider": "wikimedia",
            "asset_type": "original",
            "alt_text": summary,
        }

    sources = raw.get("sources") or []
    first_url = None
    if sources and isinstance(sources[0], dict):
        first_url = sources[0].get("url")
    citation_url = first_url or FALLBACK_ARTICLE_URL

    thumbnails = []
    if shared_asset:
        thumbnails.append({
            **shared_asset,
            "id": f"{shared_asset['id']}-thumb",
            "asset_type": "thumbnail",
            "width": 800,
            "height": 600,
        })

    categories: List[EventCategory] = []
    for category in raw.get("categories") or []:
        mapped = LIBRARY_CATEGORY_MAP.get(category)
        if mapped and mapped not in categories:
            categories.append(mapped)

    era = next(
        (LIBRARY_ERA_MAP[slug] for slug in raw.get("eras") or [] if slug in LIBRARY_ERA_MAP),
        None,
    )

    year, month, day = _parse_library_date(raw.get("date"))

    return EventRecord(
        event_id=f"{DEV_ID_PREFIX}{library_id}",
        year=year,
        summary=summary,
        text=detail,
        categories=categories,
        era=era,
        date={"month": month, "day": day} if month and day else None,
        related_pages=[
            {
                "page_id": page_id_seed,
                "canonical_title": title,
                "display_title": title,
                "normalized_title": title,
                "description": summary,
                "extract": detail,
                "desktop_url": citation_url,
                "mobile_url": citation_url,
                "thumbnails": thumbnails,
                "selected_media": shared_asset,
            }
        ],
        source={"provider": "dev-local", "title": title},
        enrichment={"sample": True},
    )


class DevDigestTable:
    """Read-only, id-keyed view over the authored library."""

    def __init__(self, events: Iterable[EventRecord]) -> None:
        self._events: Tuple[EventRecord, ...] = tuple(events)
        self._by_id: Dict[str, EventRecord] = {e.event_id: e for e in self._events}

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]]) -> "DevDigestTable":
        events: List[EventRecord] = []
        for index, raw in enumerate(records):
            try:
                events.append(normalize_library_record(raw, index + 1))
            except ValidationError as exc:
                logger.warning(
                    "dev_digest_record_skipped",
                    index=index,
                    library_id=raw.get("id"),
                    error=str(exc),
                )
        return cls(events)

    def get(self, event_id: str) -> Optional[EventRecord]:
        return self._by_id.get(event_id)

    @property
    def events(self) -> Tuple[EventRecord, ...]:
        return self._events

    def __len__(self) -> int:
        return len(self._events)

    def select_for_date(self, month: int, day: int) -> List[EventRecord]:
        """
        Deterministic rotation through the library, seeded by the date, so
        every day shows a stable handful of events.
        """
        if not self._events:
            return []
        normalized_month = max(1, min(12, int(month)))
        normalized_day = max(1, min(31, int(day)))
        seed = normalized_month * 100 + normalized_day
        total = len(self._events)
        start = seed % total
        return [self._events[(start + offset) % total] for offset in range(min(MAX_DIGEST_EVENTS, total))]


@lru_cache(maxsize=1)
def default_dev_digest_table() -> DevDigestTable:
    table = DevDigestTable.from_records(load_records(DEV_DIGEST_FILE, "events"))
    logger.info("dev_digest_table_loaded", count=len(table))
    return table


def get_dev_digest_event_by_id(event_id: str, table: Optional[DevDigestTable] = None) -> Optional[EventRecord]:
    return (table or default_dev_digest_table()).get(event_id)


def list_dev_digest_events(table: Optional[DevDigestTable] = None) -> List[EventRecord]:
    return list((table or default_dev_digest_table()).events)


def build_dev_daily_digest(
    month: int,
    day: int,
    table: Optional[DevDigestTable] = None,
) -> Optional[Tuple[DailyDigest, List[EventRecord]]]:
    events = (table or default_dev_digest_table()).select_for_date(month, day)
    if not events:
        return None

    now = datetime.now(timezone.utc)
    digest = DailyDigest(
        digest_id=f"dev-digest:onthisday:selected:{_two(month)}-{_two(day)}",
        date=f"{now.year}-{_two(month)}-{_two(day)}",
        event_ids=[event.event_id for event in events],
        created_at=now,
        updated_at=now,
    )
    return digest, events
