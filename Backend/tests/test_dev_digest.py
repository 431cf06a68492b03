from __future__ import annotations

from app.models.events import EventCategory
from app.services.dev_digest import (
    FALLBACK_ARTICLE_URL,
    DevDigestTable,
    build_dev_daily_digest,
    default_dev_digest_table,
    get_dev_digest_event_by_id,
    list_dev_digest_events,
    normalize_library_record,
)
from services.wikimedia_urls import build_file_url


def test_bundled_library_is_keyed_by_namespaced_id():
    event = get_dev_digest_event_by_id("dev-digest:apollo-11-first-footsteps")
    assert event is not None
    assert event.year == 1969
    assert (event.date.month, event.date.day) == (7, 20)
    assert event.summary.startswith("Neil Armstrong")
    assert event.categories == [EventCategory.SCIENCE_DISCOVERY, EventCategory.INVENTIONS]
    assert event.era == "twentieth"
    assert event.source == {"provider": "dev-local", "title": "First footsteps on the Moon"}


def test_library_images_use_commons_file_path():
    event = get_dev_digest_event_by_id("dev-digest:apollo-11-first-footsteps")
    page = event.related_pages[0]
    assert page.selected_media.source_url == build_file_url("Neil_Armstrong_pose.jpg")
    assert page.thumbnails[0].id == "apollo-11-first-footsteps-media-thumb"
    assert (page.thumbnails[0].width, page.thumbnails[0].height) == (800, 600)
    assert page.desktop_url == "https://www.nasa.gov/mission_pages/apollo/apollo11.html"


def test_record_without_sources_cites_fallback_article():
    event = get_dev_digest_event_by_id("dev-digest:marie-curie-nobel")
    assert event.related_pages[0].desktop_url == FALLBACK_ARTICLE_URL
    assert event.related_pages[0].mobile_url == FALLBACK_ARTICLE_URL


def test_lookup_of_unknown_or_unprefixed_id_is_absent():
    assert get_dev_digest_event_by_id("dev-digest:not-in-library") is None
    assert get_dev_digest_event_by_id("apollo-11-first-footsteps") is None


def test_default_table_is_shared():
    assert default_dev_digest_table() is default_dev_digest_table()
    assert len(list_dev_digest_events()) == 8


def test_invalid_records_are_skipped():
    table = DevDigestTable.from_records([
        {"id": "empty-record"},
        {"id": "ok", "title": "Ok", "summary": "Something happened.", "date": "2001-01-01"},
    ])
    assert len(table) == 1
    assert table.get("dev-digest:ok") is not None


def test_partial_date_leaves_date_unset():
    event = normalize_library_record({"id": "undated", "summary": "Sometime.", "date": "1500"}, 1)
    assert event.year == 1500
    assert event.date is None


def test_daily_digest_rotation_is_deterministic():
    digest, events = build_dev_daily_digest(7, 20)
    assert digest.digest_id == "dev-digest:onthisday:selected:07-20"
    assert digest.date.endswith("-07-20")
    assert digest.event_ids == [e.event_id for e in events]
    assert len(events) == 5
    # 720 % 8 == 0, so the rotation starts at the top of the library
    assert events[0].event_id == "dev-digest:apollo-11-first-footsteps"

    _, again = build_dev_daily_digest(7, 20)
    assert [e.event_id for e in again] == digest.event_ids


def test_daily_digest_on_empty_table_is_absent():
    assert build_dev_daily_digest(1, 1, table=DevDigestTable([])) is None
