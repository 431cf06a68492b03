from __future__ import annotations

import httpx
import pytest

from app.models.events import EventCategory
from app.services.alias_table import build_alias_table
from services.content_errors import TransportError
from services.document_store import InMemoryDocumentStore
from services.wikimedia_digest_service import (
    WikimediaDigestClient,
    build_event_id,
    infer_categories,
    map_page,
    slugify,
)
from services.wikimedia_urls import WIKIMEDIA_HEADERS
from tests.fixtures import (
    make_event_record,
    make_feed_event,
    make_feed_page,
    make_feed_payload,
)

FEED_URL = "https://api.wikimedia.org/feed/v1/wikipedia/en/onthisday/selected/07/20"
SUMMARY_URL = "https://en.wikipedia.org/api/rest_v1/page/summary"
APOLLO_ID = "wikimedia:07-20:apollo-11-astronauts-become-the-first-humans-to-walk-on-the-moon"


def _client(**kwargs) -> WikimediaDigestClient:
    kwargs.setdefault("base_delay_s", 0)
    kwargs.setdefault("max_retries", 2)
    return WikimediaDigestClient(**kwargs)


def test_slugify():
    assert slugify("Apollo 11: The Eagle has landed!") == "apollo-11-the-eagle-has-landed"
    assert slugify("  --  ") == ""


def test_build_event_id_falls_back_to_index():
    assert build_event_id("Apollo 11 lands", 7, 20, 0) == "wikimedia:07-20:apollo-11-lands"
    assert build_event_id(None, 1, 2, 3) == "wikimedia:01-02:event-3"
    assert build_event_id("???", 1, 2, 3) == "wikimedia:01-02:3"


def test_map_page_prefers_original_image_for_selected_media():
    page = map_page(make_feed_page(), 0)
    assert page.page_id == 869
    assert page.display_title == "Apollo 11"
    assert page.canonical_title == "Apollo_11"
    assert page.mobile_url == "https://en.m.wikipedia.org/wiki/Apollo_11"
    assert page.selected_media.asset_type == "original"
    assert page.thumbnails[0].id == "869:thumbnail"


def test_map_page_without_urls_uses_article_url():
    raw = make_feed_page(thumbnail=None, original=None)
    raw.pop("content_urls")
    page = map_page(raw, 0)
    assert page.desktop_url == "https://en.wikipedia.org/wiki/Apollo_11"
    assert page.selected_media is None
    assert page.thumbnails == []


def test_map_page_without_title_is_skipped():
    assert map_page({"pageid": 5}, 0) is None


def test_infer_categories_from_keywords_and_war_years():
    assert EventCategory.NATURAL_DISASTERS in infer_categories("Mount Vesuvius eruption buries Pompeii", 79, [])
    assert infer_categories("A ship is launched", 1942, []) == [EventCategory.WORLD_WARS]
    assert infer_categories("A ship is launched", 1960, []) == [EventCategory.SURPRISE]


@pytest.mark.asyncio
async def test_fetch_daily_digest_maps_feed(httpx_mock):
    httpx_mock.add_response(url=FEED_URL, json=make_feed_payload(
        make_feed_event(),
        make_feed_event(text="Allied forces land in Normandy.", year=1944, pages=[]),
    ))

    async with _client() as client:
        digest, events = await client.fetch_daily_digest(7, 20)

    assert digest.digest_id == "wikimedia:onthisday:selected:07-20"
    assert digest.event_ids == [e.event_id for e in events]
    apollo, normandy = events
    assert apollo.event_id == APOLLO_ID
    assert apollo.year == 1969
    assert (apollo.date.month, apollo.date.day) == (7, 20)
    assert apollo.source["provider"] == "wikimedia"
    assert apollo.source["feed"] == "onthisday"
    assert apollo.enrichment == {"wikimediaPageCount": 1}
    assert normandy.categories == [EventCategory.WORLD_WARS]


@pytest.mark.asyncio
async def test_requests_carry_compliance_headers(httpx_mock):
    httpx_mock.add_response(url=FEED_URL, json=make_feed_payload())

    async with _client() as client:
        await client.fetch_daily_digest(7, 20)

    request = httpx_mock.get_request()
    assert request.headers["User-Agent"] == WIKIMEDIA_HEADERS["User-Agent"]
    assert request.headers["Api-User-Agent"] == WIKIMEDIA_HEADERS["Api-User-Agent"]


@pytest.mark.asyncio
async def test_empty_or_missing_feed_has_no_digest(httpx_mock):
    httpx_mock.add_response(url=FEED_URL, status_code=404)
    async with _client() as client:
        assert await client.fetch_daily_digest(7, 20) == (None, [])


@pytest.mark.asyncio
async def test_retries_server_errors(httpx_mock):
    httpx_mock.add_response(url=FEED_URL, status_code=503)
    httpx_mock.add_response(url=FEED_URL, status_code=429)
    httpx_mock.add_response(url=FEED_URL, json=make_feed_payload())

    async with _client() as client:
        _, events = await client.fetch_daily_digest(7, 20)

    assert len(events) == 1
    assert len(httpx_mock.get_requests()) == 3


@pytest.mark.asyncio
async def test_exhausted_retries_raise_transport_error(httpx_mock):
    for _ in range(3):
        httpx_mock.add_response(url=FEED_URL, status_code=502)

    async with _client() as client:
        with pytest.raises(TransportError) as exc_info:
            await client.fetch_daily_digest(7, 20)

    assert exc_info.value.status_code == 502
    assert exc_info.value.source == "wikimedia"


@pytest.mark.asyncio
async def test_network_errors_are_retried_then_raised(httpx_mock):
    httpx_mock.add_exception(httpx.ConnectTimeout("timed out"))
    httpx_mock.add_exception(httpx.ConnectTimeout("timed out"))

    async with _client(max_retries=1) as client:
        with pytest.raises(TransportError, match="timed out"):
            await client.fetch_daily_digest(7, 20)


@pytest.mark.asyncio
async def test_client_errors_are_not_retried(httpx_mock):
    httpx_mock.add_response(url=FEED_URL, status_code=400)

    async with _client() as client:
        with pytest.raises(TransportError):
            await client.fetch_daily_digest(7, 20)

    assert len(httpx_mock.get_requests()) == 1


@pytest.mark.asyncio
async def test_requires_initialized_client():
    client = _client()
    with pytest.raises(RuntimeError, match="not initialized"):
        await client.fetch_daily_digest(7, 20)


@pytest.mark.asyncio
async def test_resolve_feed_identifier_exact(httpx_mock):
    httpx_mock.add_response(url=FEED_URL, json=make_feed_payload())

    async with _client() as client:
        event = await client.resolve_event_by_id(APOLLO_ID)

    assert event.event_id == APOLLO_ID


@pytest.mark.asyncio
async def test_resolve_feed_identifier_fuzzy(httpx_mock):
    httpx_mock.add_response(url=FEED_URL, json=make_feed_payload())

    async with _client() as client:
        event = await client.resolve_event_by_id(
            "wikimedia:07-20:apollo-11-astronauts-become-first-humans-to-walk-on-moon"
        )

    assert event is not None
    assert event.event_id == APOLLO_ID


@pytest.mark.asyncio
async def test_resolve_feed_identifier_absent(httpx_mock):
    httpx_mock.add_response(url=FEED_URL, json=make_feed_payload())

    async with _client() as client:
        assert await client.resolve_event_by_id("wikimedia:07-20:completely-unrelated-zebra-crossing") is None


@pytest.mark.asyncio
async def test_resolve_title_identifier_through_alias_and_store(httpx_mock):
    aliases = build_alias_table([
        {"wikipedia_title": "Battle_of_Midway", "event_id": "event-1942-battle-of-midway", "added_at": "2025-11-03"},
    ])
    store = InMemoryDocumentStore([make_event_record(event_id="event-1942-battle-of-midway", year=1942)])

    async with _client(alias_table=aliases, store=store) as client:
        event = await client.resolve_event_by_id("wikimedia:battle of midway")

    assert event.event_id == "event-1942-battle-of-midway"
    assert httpx_mock.get_requests() == []


@pytest.mark.asyncio
async def test_resolve_title_identifier_from_page_summary(httpx_mock):
    page = make_feed_page(title="Battle_of_Midway", description="1942 naval battle of World War II")
    httpx_mock.add_response(url=f"{SUMMARY_URL}/Battle_of_Midway", json=page)

    aliases = build_alias_table([
        {"wikipedia_title": "Battle_of_Midway", "event_id": "event-1942-battle-of-midway", "added_at": "2025-11-03"},
    ])
    async with _client(alias_table=aliases, store=InMemoryDocumentStore()) as client:
        event = await client.resolve_event_by_id("wikimedia:Battle_of_Midway")

    assert event.event_id == "wikimedia:Battle_of_Midway"
    assert event.text == "Battle of Midway"
    assert event.summary == "Battle of Midway is an article."
    assert EventCategory.WORLD_WARS in event.categories
    assert event.related_pages[0].desktop_url == "https://en.wikipedia.org/wiki/Battle_of_Midway"


@pytest.mark.asyncio
async def test_resolve_title_identifier_missing_article(httpx_mock):
    httpx_mock.add_response(url=f"{SUMMARY_URL}/No_Such_Article", status_code=404)

    async with _client() as client:
        assert await client.resolve_event_by_id("wikimedia:No_Such_Article") is None


@pytest.mark.asyncio
async def test_resolve_other_namespaces_is_absent(httpx_mock):
    async with _client() as client:
        assert await client.resolve_event_by_id("dev-digest:apollo-11-first-footsteps") is None
        assert await client.resolve_event_by_id("apollo-11-moon-landing") is None
    assert httpx_mock.get_requests() == []


@pytest.mark.asyncio
async def test_default_client_resolves_bundled_alias_through_store(httpx_mock):
    store = InMemoryDocumentStore([make_event_record(event_id="event-1939-world-war-2-begins", year=1939)])

    async with _client(store=store) as client:
        event = await client.resolve_event_by_id("wikimedia:World_War_II")

    assert client.alias_table.has("World_War_II")
    assert event.event_id == "event-1939-world-war-2-begins"
    assert httpx_mock.get_requests() == []
