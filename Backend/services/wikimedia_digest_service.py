# Backend/services/wikimedia_digest_service.py
"""
Live client for the Wikimedia "on this day" feed and Wikipedia page summaries.

Feed events become EventRecords with ids of the form
``wikimedia:MM-DD:<slug-of-event-text>``; article lookups produce records with
ids of the form ``wikimedia:<Article_Title>``. Returning None always means
"absent"; any failure to talk to Wikimedia raises TransportError.
"""

from __future__ import annotations

import asyncio
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Pattern, Sequence, Tuple
from urllib.parse import quote, unquote

import httpx
from pydantic import ValidationError

from app.core.config import settings
from app.core.logging import get_logger
from app.models.events import DailyDigest, EventCategory, EventDate, EventRecord, MediaAsset, RelatedPage
from app.services.alias_table import AliasTable, default_alias_table
from app.services.identifier_classifier import parse_wikimedia_event_id
from services.content_errors import TransportError
from services.document_store import DocumentStore
from services.title_matching import find_best_match
from services.wikimedia_urls import wikimedia_headers

logger = get_logger().bind(module="wikimedia_digest")

SOURCE = "wikimedia"
FUZZY_MIN_SCORE = 70
RETRYABLE_STATUS = {429, 500, 502, 503, 504}

_SLUG_INVALID = re.compile(r"[^a-z0-9]+")

# Keyword rules over event text plus page descriptions/extracts.
CATEGORY_RULES: Sequence[Tuple[EventCategory, Sequence[Pattern[str]]]] = [
    (EventCategory.WORLD_WARS, [re.compile(p, re.IGNORECASE) for p in (
        r"\bworld war\b", r"\bwwi\b", r"\bwwii\b", r"\bworld war (?:i|ii|1|2)\b",
        r"\bnazi\b", r"\ballied\b", r"\baxis\b",
    )]),
    (EventCategory.ANCIENT_CIVILIZATIONS, [re.compile(p, re.IGNORECASE) for p in (
        r"\bancient\b", r"\bpharaoh\b", r"\bpyramid\b", r"\bro(?:man|me)\b", r"\bgreek\b",
        r"\bmesopotamia\b", r"\bdynasty\b", r"\bbce?\b",
    )]),
    (EventCategory.SCIENCE_DISCOVERY, [re.compile(p, re.IGNORECASE) for p in (
        r"\bscientist\b", r"\bdiscovered?\b", r"\bresearch\b", r"\bphysics\b", r"\bchemistry\b",
        r"\bbiology\b", r"\bspace\b", r"\bsatellite\b", r"\bobservation\b", r"\bexperiment\b",
    )]),
    (EventCategory.ART_CULTURE, [re.compile(p, re.IGNORECASE) for p in (
        r"\barts?\b", r"\bartist\b", r"\bpainting\b", r"\bmuseum\b", r"\bnovel\b", r"\bliterature\b",
        r"\bpoet(?:ic)?\b", r"\bmusic(?:al)?\b", r"\btheatre\b", r"\bfilm\b", r"\bcultural\b",
        r"\bcomposer\b", r"\bsymphony\b",
    )]),
    (EventCategory.POLITICS, [re.compile(p, re.IGNORECASE) for p in (
        r"\bpresident\b", r"\bprime minister\b", r"\bparliament\b", r"\bsenate\b", r"\btreaty\b",
        r"\bpolitic(?:al|s)\b", r"\belection\b", r"\bconstitution\b", r"\bgovernment\b",
        r"\bmonarch\b", r"\bking\b", r"\bqueen\b", r"\bdeclaration\b",
    )]),
    (EventCategory.INVENTIONS, [re.compile(p, re.IGNORECASE) for p in (
        r"\binvent(?:ed|ion)\b", r"\bpatent\b", r"\btechnology\b", r"\bengine\b", r"\bdevice\b",
        r"\bprototype\b", r"\binnovation\b", r"\btelegraph\b", r"\btelephone\b",
    )]),
    (EventCategory.NATURAL_DISASTERS, [re.compile(p, re.IGNORECASE) for p in (
        r"\bearthquake\b", r"\bhurricane\b", r"\bcyclone\b", r"\btyphoon\b", r"\bvolcan(?:ic|o)\b",
        r"\btsunami\b", r"\bflood\b", r"\bdisaster\b", r"\berupt(?:ion)?\b", r"\bwildfire\b",
    )]),
    (EventCategory.CIVIL_RIGHTS, [re.compile(p, re.IGNORECASE) for p in (
        r"\bcivil rights\b", r"\bsuffrage\b", r"\babolition\b", r"\bhuman rights\b",
        r"\bsegregation\b", r"\bprotest\b", r"\bactivist\b", r"\bmovement\b", r"\bfreedom\b",
        r"\bequality\b",
    )]),
    (EventCategory.EXPLORATION, [re.compile(p, re.IGNORECASE) for p in (
        r"\bexpedition\b", r"\bexplor(?:e|ation)\b", r"\bvoyage\b", r"\bnavigation\b",
        r"\bantarctic\b", r"\barctic\b", r"\bpolar\b", r"\bspacewalk\b", r"\bdiscovered\b",
    )]),
]

WORLD_WAR_YEARS = ((1914, 1918), (1939, 1945))


def slugify(value: str) -> str:
    return _SLUG_INVALID.sub("-", (value or "").lower()).strip("-")


def build_event_id(text: Optional[str], month: int, day: int, index: int) -> str:
    slug = slugify(text or f"event-{index}")
    return f"wikimedia:{month:02d}-{day:02d}:{slug or index}"


def build_article_url(title: str) -> str:
    base = settings.WIKIPEDIA_ARTICLE_URL.rstrip("/")
    return f"{base}/{quote(title.replace(' ', '_'), safe='')}"


def infer_categories(text: Optional[str], year: Optional[int], pages: Sequence[RelatedPage]) -> List[EventCategory]:
    buffer = [text or ""]
    for page in pages:
        buffer.extend(filter(None, (page.description, page.extract)))
    combined = " ".join(buffer)

    matches: List[EventCategory] = [
        category for category, patterns in CATEGORY_RULES
        if any(pattern.search(combined) for pattern in patterns)
    ]
    if year and any(lo <= year <= hi for lo, hi in WORLD_WAR_YEARS):
        if EventCategory.WORLD_WARS not in matches:
            matches.append(EventCategory.WORLD_WARS)
    return matches or [EventCategory.SURPRISE]


def _media_asset(raw: Any, asset_id: str, asset_type: str, alt_text: Optional[str]) -> Optional[MediaAsset]:
    if not isinstance(raw, dict) or not raw.get("source"):
        return None
    return MediaAsset(
        id=asset_id,
        source_url=raw["source"],
        width=raw.get("width"),
        height=raw.get("height"),
        provider="wikimedia",
        license="wikimedia",
        alt_text=alt_text,
        asset_type=asset_type,
    )


def map_page(page: Dict[str, Any], index: int) -> Optional[RelatedPage]:
    """
    Feed/summary page → RelatedPage. Pages without any usable title are
    skipped; a missing desktop URL falls back to the article URL.
    """
    titles = page.get("titles") or {}
    display = (
        titles.get("display")
        or titles.get("canonical")
        or titles.get("normalized")
        or page.get("displaytitle")
        or page.get("title")
    )
    if not display:
        return None

    page_id = page.get("pageid") or index + 1
    canonical = titles.get("canonical") or display
    urls = page.get("content_urls") or {}
    desktop_url = (urls.get("desktop") or {}).get("page") or build_article_url(canonical)
    mobile_url = (urls.get("mobile") or {}).get("page") or desktop_url

    description = page.get("description")
    thumbnail = _media_asset(page.get("thumbnail"), f"{page_id}:thumbnail", "thumbnail", description)
    original = _media_asset(page.get("originalimage"), f"{page_id}:original", "original", description)

    return RelatedPage(
        page_id=page_id,
        canonical_title=canonical,
        display_title=display,
        normalized_title=titles.get("normalized") or display,
        description=description,
        extract=page.get("extract") or page.get("extract_html"),
        wikidata_id=page.get("wikibase_item"),
        desktop_url=desktop_url,
        mobile_url=mobile_url,
        thumbnails=[thumbnail] if thumbnail else [],
        selected_media=original or thumbnail,
    )


def map_feed_event(raw: Dict[str, Any], month: int, day: int, index: int, captured_at: str) -> EventRecord:
    pages: List[RelatedPage] = []
    for page_index, page in enumerate(raw.get("pages") or []):
        mapped = map_page(page, page_index)
        if mapped is not None:
            pages.append(mapped)
    text = raw.get("text") or ""
    year = raw.get("year")
    return EventRecord(
        event_id=build_event_id(raw.get("text"), month, day, index),
        year=year,
        summary=text,
        text=text,
        categories=infer_categories(text, year, pages),
        date=EventDate(month=month, day=day),
        related_pages=pages,
        source={
            "provider": SOURCE,
            "feed": "onthisday",
            "rawType": raw.get("type") or "selected",
            "capturedAt": captured_at,
        },
        enrichment={"wikimediaPageCount": len(pages)},
    )


class WikimediaDigestClient:
    """
    Async client for the Wikimedia feed and REST summary endpoints.

    Use as an async context manager, or pass an `httpx.AsyncClient` you own.
    429/5xx responses and transport errors are retried with capped
    exponential backoff.
    """

    def __init__(
        self,
        *,
        alias_table: Optional[AliasTable] = None,
        store: Optional[DocumentStore] = None,
        user_agent: Optional[str] = None,
        timeout_s: Optional[float] = None,
        max_retries: Optional[int] = None,
        base_delay_s: Optional[float] = None,
        max_delay_s: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.alias_table = alias_table if alias_table is not None else default_alias_table()
        self.store = store
        self.timeout_s = timeout_s or settings.WIKIMEDIA_TIMEOUT_S
        self.max_retries = max(0, settings.WIKIMEDIA_MAX_RETRIES if max_retries is None else max_retries)
        self.base_delay_s = settings.WIKIMEDIA_RETRY_BASE_DELAY_S if base_delay_s is None else base_delay_s
        self.max_delay_s = settings.WIKIMEDIA_RETRY_MAX_DELAY_S if max_delay_s is None else max_delay_s

        headers = wikimedia_headers()
        if user_agent:
            headers = {"User-Agent": user_agent, "Api-User-Agent": user_agent}
        self._headers = {**headers, "Accept": "application/json"}

        self._owns_client = client is None
        self._client = client

    async def __aenter__(self) -> "WikimediaDigestClient":
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout_s,
                headers=self._headers,
                follow_redirects=True,
            )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _get_json(self, url: str) -> Optional[Dict[str, Any]]:
        """
        GET with retries. Returns None on 404.

        Raises:
            TransportError: On exhausted retries, other error statuses, or a
                non-JSON body
        """
        if self._client is None:
            raise RuntimeError(f"{self.__class__.__name__} HTTP client not initialized")

        last_error: Optional[str] = None
        last_status: Optional[int] = None
        for attempt in range(self.max_retries + 1):
            if attempt:
                delay = min(self.max_delay_s, self.base_delay_s * 2 ** (attempt - 1))
                await asyncio.sleep(delay)
            try:
                resp = await self._client.get(url, headers=self._headers)
            except httpx.HTTPError as exc:
                last_error, last_status = str(exc) or exc.__class__.__name__, None
                logger.warning("wikimedia_request_retry", url=url, attempt=attempt + 1, error=last_error)
                continue

            if resp.status_code in RETRYABLE_STATUS:
                last_error, last_status = f"HTTP {resp.status_code}", resp.status_code
                logger.warning("wikimedia_request_retry", url=url, attempt=attempt + 1, status_code=resp.status_code)
                continue
            if resp.status_code == 404:
                return None
            if resp.status_code >= 400:
                raise TransportError(
                    f"wikimedia returned {resp.status_code} for {url}",
                    source=SOURCE,
                    status_code=resp.status_code,
                )
            try:
                payload = resp.json()
            except ValueError as exc:
                raise TransportError(f"wikimedia returned invalid JSON for {url}", source=SOURCE) from exc
            if not isinstance(payload, dict):
                raise TransportError(f"unexpected wikimedia payload for {url}", source=SOURCE)
            return payload

        raise TransportError(
            f"wikimedia request failed after {self.max_retries + 1} attempts: {last_error}",
            source=SOURCE,
            status_code=last_status,
        )

    async def fetch_daily_digest(self, month: int, day: int) -> Tuple[Optional[DailyDigest], List[EventRecord]]:
        month = max(1, min(12, int(month)))
        day = max(1, min(31, int(day)))
        url = f"{settings.WIKIMEDIA_ONTHISDAY_URL.rstrip('/')}/{month:02d}/{day:02d}"

        payload = await self._get_json(url)
        raw_events = (payload or {}).get("selected") or []
        now = datetime.now(timezone.utc)
        captured_at = now.isoformat()

        events: List[EventRecord] = []
        for index, raw in enumerate(raw_events):
            if not isinstance(raw, dict):
                continue
            try:
                events.append(map_feed_event(raw, month, day, index, captured_at))
            except ValidationError as exc:
                logger.warning("wikimedia_event_skipped", month=month, day=day, index=index, errors=exc.error_count())

        logger.info("wikimedia_digest_fetched", month=month, day=day, event_count=len(events))
        if not events:
            return None, []

        digest = DailyDigest(
            digest_id=f"wikimedia:onthisday:selected:{month:02d}-{day:02d}",
            date=f"{now.year}-{month:02d}-{day:02d}",
            event_ids=[event.event_id for event in events],
            created_at=now,
            updated_at=now,
        )
        return digest, events

    async def fetch_page_summary(self, title: str) -> Optional[RelatedPage]:
        article = unquote(title or "").strip().replace(" ", "_")
        if not article:
            return None
        url = f"{settings.WIKIPEDIA_SUMMARY_URL.rstrip('/')}/{quote(article, safe='')}"
        payload = await self._get_json(url)
        if payload is None:
            return None
        try:
            return map_page(payload, 0)
        except ValidationError as exc:
            raise TransportError(f"malformed page summary for {article}", source=SOURCE) from exc

    async def resolve_event_by_id(self, identifier: str) -> Optional[EventRecord]:
        key = parse_wikimedia_event_id(identifier)
        if key is None:
            return None
        if key.is_feed:
            return await self._resolve_feed_event(identifier, key.month, key.day, key.slug or "")
        return await self._resolve_article_event(key.title or "")

    async def _resolve_feed_event(self, identifier: str, month: int, day: int, slug: str) -> Optional[EventRecord]:
        _, events = await self.fetch_daily_digest(month, day)
        for event in events:
            if event.event_id == identifier:
                return event

        # Feed text gets edited upstream, which changes the slug.
        best = find_best_match(
            slug.replace("-", " "),
            events,
            text_of=lambda event: event.text,
            year_of=lambda event: event.year,
            min_score=FUZZY_MIN_SCORE,
        )
        if best is None:
            return None
        logger.info(
            "wikimedia_event_fuzzy_match",
            requested=identifier,
            event_id=best.item.event_id,
            score=best.match.score,
        )
        return best.item

    async def _resolve_article_event(self, title: str) -> Optional[EventRecord]:
        if self.alias_table is not None:
            canonical_id = self.alias_table.lookup(title)
            if canonical_id and self.store is not None:
                event = await self.store.get_event(canonical_id)
                if event is not None:
                    logger.info("wikimedia_alias_resolved", title=title, event_id=canonical_id)
                    return event
                logger.info("wikimedia_alias_document_absent", title=title, event_id=canonical_id)

        page = await self.fetch_page_summary(title)
        if page is None:
            return None

        display = page.display_title or page.canonical_title
        return EventRecord(
            event_id=f"wikimedia:{title}",
            text=display,
            summary=page.extract or page.description,
            categories=infer_categories(display, None, [page]),
            related_pages=[page],
            source={
                "provider": SOURCE,
                "feed": "page-summary",
                "title": title,
                "capturedAt": datetime.now(timezone.utc).isoformat(),
            },
        )
