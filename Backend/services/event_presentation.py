# Backend/services/event_presentation.py
"""
Display helpers over a resolved EventRecord: title, summary, image and
citation links, with HTML stripped from feed-provided titles.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import List, Optional

from app.models.events import EventRecord, MediaAsset, RelatedPage
from app.models.image_source import ImageSource
from services.image_source import get_image_uri, to_image_source

DEFAULT_TITLE = "Historic spotlight"
DEFAULT_SUMMARY = "Tap to open the full story."

_HTML_TAG = re.compile(r"<[^>]*>")
_WHITESPACE = re.compile(r"\s+")


def strip_html_tags(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    cleaned = html.unescape(_WHITESPACE.sub(" ", _HTML_TAG.sub("", value)).strip())
    return cleaned or None


def select_primary_page(event: EventRecord) -> Optional[RelatedPage]:
    """First page with selected media, else the first page."""
    if not event.related_pages:
        return None
    for page in event.related_pages:
        if page.selected_media is not None and page.selected_media.source_url:
            return page
    return event.related_pages[0]


def get_event_title(event: EventRecord) -> str:
    page = select_primary_page(event)
    candidates = [
        page.display_title if page else None,
        page.canonical_title if page else None,
        event.summary,
        event.text,
    ]
    for candidate in candidates:
        stripped = strip_html_tags(candidate)
        if stripped:
            return stripped
    return DEFAULT_TITLE


def get_event_summary(event: EventRecord) -> str:
    page = select_primary_page(event)
    return event.summary or event.text or (page.extract if page else None) or DEFAULT_SUMMARY


def _primary_asset(event: EventRecord) -> Optional[MediaAsset]:
    page = select_primary_page(event)
    if page is None:
        return None
    if page.selected_media is not None and page.selected_media.source_url:
        return page.selected_media
    return next((asset for asset in page.thumbnails if asset.source_url), None)


def get_event_image_source(event: EventRecord) -> Optional[ImageSource]:
    asset = _primary_asset(event)
    if asset is None:
        return None
    return to_image_source(asset.image or asset.source_url)


def get_event_image_uri(event: EventRecord) -> Optional[str]:
    return get_image_uri(get_event_image_source(event))


@dataclass(frozen=True)
class EventSourceLink:
    label: str
    url: str


def build_event_source_links(event: EventRecord) -> List[EventSourceLink]:
    links: List[EventSourceLink] = []
    seen = set()
    for page in event.related_pages:
        raw_label = page.display_title or page.canonical_title or page.normalized_title or page.desktop_url
        label = strip_html_tags(raw_label) or raw_label
        url = page.desktop_url or page.mobile_url
        if not label or not url or url in seen:
            continue
        seen.add(url)
        links.append(EventSourceLink(label=label, url=url))
    return links
