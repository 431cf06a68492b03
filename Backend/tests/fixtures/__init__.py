# Backend/tests/fixtures/__init__.py
"""
Test fixtures for event content resolution tests.

Factory functions for creating test data:
- make_related_page()
- make_event_record()
- make_feed_page() / make_feed_event() / make_feed_payload()
- make_firestore_document()
"""

from typing import Any, Dict, List, Optional

from app.models.events import EventRecord, RelatedPage


def make_related_page(
    page_id: int = 1,
    title: str = "Apollo 11",
    desktop_url: str = "https://en.wikipedia.org/wiki/Apollo_11",
    extract: Optional[str] = "Apollo 11 was the first crewed Moon landing.",
    image_url: Optional[str] = "https://upload.wikimedia.org/wikipedia/commons/9/98/Aldrin.jpg",
) -> RelatedPage:
    """Factory function to create a related page with one thumbnail."""
    media = None
    if image_url:
        media = {"id": f"{page_id}:thumbnail", "source_url": image_url, "provider": "wikimedia"}
    return RelatedPage(
        page_id=page_id,
        canonical_title=title.replace(" ", "_"),
        display_title=title,
        extract=extract,
        desktop_url=desktop_url,
        thumbnails=[media] if media else [],
        selected_media=media,
    )


def make_event_record(
    event_id: str = "event-1969-apollo-11-moon-landing",
    year: Optional[int] = 1969,
    text: Optional[str] = "Apollo 11 lands on the Moon.",
    summary: Optional[str] = "Armstrong and Aldrin walk on the Moon.",
    related_pages: Optional[List[RelatedPage]] = None,
) -> EventRecord:
    """Factory function to create an event record."""
    return EventRecord(
        event_id=event_id,
        year=year,
        text=text,
        summary=summary,
        categories=["science-discovery"],
        date={"month": 7, "day": 20},
        related_pages=related_pages if related_pages is not None else [make_related_page()],
    )


def make_feed_page(
    title: str = "Apollo_11",
    page_id: int = 869,
    thumbnail: Optional[str] = "https://upload.wikimedia.org/wikipedia/commons/thumb/9/98/Aldrin.jpg/320px-Aldrin.jpg",
    original: Optional[str] = "https://upload.wikimedia.org/wikipedia/commons/9/98/Aldrin.jpg",
    description: str = "First crewed mission to land on the Moon",
) -> Dict[str, Any]:
    """Factory function to create a page as returned by the Wikimedia REST API."""
    page: Dict[str, Any] = {
        "pageid": page_id,
        "titles": {
            "canonical": title,
            "normalized": title.replace("_", " "),
            "display": title.replace("_", " "),
        },
        "description": description,
        "extract": f"{title.replace('_', ' ')} is an article.",
        "wikibase_item": "Q43653",
        "content_urls": {
            "desktop": {"page": f"https://en.wikipedia.org/wiki/{title}"},
            "mobile": {"page": f"https://en.m.wikipedia.org/wiki/{title}"},
        },
    }
    if thumbnail:
        page["thumbnail"] = {"source": thumbnail, "width": 320, "height": 400}
    if original:
        page["originalimage"] = {"source": original, "width": 2349, "height": 3000}
    return page


def make_feed_event(
    text: str = "Apollo 11 astronauts become the first humans to walk on the Moon.",
    year: int = 1969,
    pages: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """Factory function to create one entry of the on-this-day "selected" list."""
    return {
        "text": text,
        "year": year,
        "pages": pages if pages is not None else [make_feed_page()],
    }


def make_feed_payload(*events: Dict[str, Any]) -> Dict[str, Any]:
    return {"selected": list(events) if events else [make_feed_event()]}


def make_firestore_document(
    document_id: str = "event-1969-apollo-11-moon-landing",
    collection: str = "contentEvents",
    include_event_id: bool = True,
) -> Dict[str, Any]:
    """Factory function to create a Firestore REST document for an event."""
    fields: Dict[str, Any] = {
        "year": {"integerValue": "1969"},
        "text": {"stringValue": "Apollo 11 lands on the Moon."},
        "summary": {"stringValue": "Armstrong and Aldrin walk on the Moon."},
        "categories": {"arrayValue": {"values": [
            {"stringValue": "science-discovery"},
            {"stringValue": "no-longer-a-category"},
        ]}},
        "date": {"mapValue": {"fields": {
            "month": {"integerValue": "7"},
            "day": {"integerValue": "20"},
        }}},
        "relatedPages": {"arrayValue": {"values": [
            {"mapValue": {"fields": {
                "pageId": {"integerValue": "869"},
                "canonicalTitle": {"stringValue": "Apollo_11"},
                "displayTitle": {"stringValue": "Apollo 11"},
                "desktopUrl": {"stringValue": "https://en.wikipedia.org/wiki/Apollo_11"},
                "thumbnails": {"arrayValue": {"values": [
                    {"mapValue": {"fields": {
                        "id": {"stringValue": "869:thumbnail"},
                        "sourceUrl": {"stringValue": "https://upload.wikimedia.org/wikipedia/commons/9/98/Aldrin.jpg"},
                        "width": {"integerValue": "320"},
                    }}},
                ]}},
                "selectedMedia": {"nullValue": None},
            }}},
        ]}},
        "createdAt": {"timestampValue": "2025-10-27T10:00:00.123456789Z"},
    }
    if include_event_id:
        fields["eventId"] = {"stringValue": document_id}
    return {
        "name": f"projects/demo-project/databases/(default)/documents/{collection}/{document_id}",
        "fields": fields,
        "createTime": "2025-10-27T10:00:00.123456Z",
        "updateTime": "2025-10-27T10:00:00.123456Z",
    }
