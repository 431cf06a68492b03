from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from app.models.image_source import ImageSource


class EventCategory(str, Enum):
    WORLD_WARS = "world-wars"
    ANCIENT_CIVILIZATIONS = "ancient-civilizations"
    SCIENCE_DISCOVERY = "science-discovery"
    ART_CULTURE = "art-culture"
    POLITICS = "politics"
    INVENTIONS = "inventions"
    NATURAL_DISASTERS = "natural-disasters"
    CIVIL_RIGHTS = "civil-rights"
    EXPLORATION = "exploration"
    SURPRISE = "surprise"


_KNOWN_CATEGORIES = {c.value for c in EventCategory}


class _ContentModel(BaseModel):
    # Store documents use camelCase keys; Python code uses snake_case.
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )


class EventDate(_ContentModel):
    month: int = Field(..., ge=1, le=12)
    day: int = Field(..., ge=1, le=31)


class MediaAsset(_ContentModel):
    id: str
    source_url: str
    width: Optional[int] = None
    height: Optional[int] = None
    provider: Optional[str] = None
    attribution: Optional[str] = None
    license: Optional[str] = None
    alt_text: Optional[str] = None
    asset_type: Optional[str] = None
    # Normalized descriptor, attached once before a record leaves the resolver
    image: Optional[ImageSource] = None


class RelatedPage(_ContentModel):
    page_id: int
    canonical_title: str
    display_title: Optional[str] = None
    normalized_title: Optional[str] = None
    description: Optional[str] = None
    extract: Optional[str] = None
    wikidata_id: Optional[str] = None
    desktop_url: str
    mobile_url: Optional[str] = None
    thumbnails: List[MediaAsset] = Field(default_factory=list)
    selected_media: Optional[MediaAsset] = None

    @field_validator("desktop_url")
    @classmethod
    def _require_desktop_url(cls, value: str) -> str:
        cleaned = (value or "").strip()
        if not cleaned:
            raise ValueError("desktop_url is required for a related page")
        return cleaned

    @field_validator("thumbnails", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @model_validator(mode="before")
    @classmethod
    def _default_mobile_url(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        desktop = data.get("desktopUrl") or data.get("desktop_url")
        mobile = data.get("mobileUrl") or data.get("mobile_url")
        if desktop and not mobile:
            data = {k: v for k, v in data.items() if k not in ("mobileUrl", "mobile_url")}
            data["mobileUrl"] = desktop
        return data


class EventRecord(_ContentModel):
    """
    Canonical event record, whatever source it was resolved from.

    Invariants: `event_id` is non-empty; `summary` and `text` may both be
    empty only when at least one related page carries an extract.
    """

    event_id: str
    year: Optional[int] = None
    text: Optional[str] = None
    summary: Optional[str] = None
    categories: List[EventCategory] = Field(default_factory=list)
    era: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    date: Optional[EventDate] = None
    date_iso: Optional[str] = Field(default=None, alias="dateISO")
    related_pages: List[RelatedPage] = Field(default_factory=list)
    source: Dict[str, Any] = Field(default_factory=dict)
    enrichment: Dict[str, Any] = Field(default_factory=dict)
    before_context: Optional[str] = None
    after_context: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("event_id")
    @classmethod
    def _require_event_id(cls, value: str) -> str:
        cleaned = (value or "").strip()
        if not cleaned:
            raise ValueError("event_id must be non-empty")
        return cleaned

    @field_validator("categories", mode="before")
    @classmethod
    def _drop_unknown_categories(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, (list, tuple)):
            return [
                item for item in value
                if isinstance(item, EventCategory) or item in _KNOWN_CATEGORIES
            ]
        return value

    @field_validator("tags", "related_pages", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("source", "enrichment", mode="before")
    @classmethod
    def _none_to_dict(cls, value: Any) -> Any:
        return {} if value is None else value

    @model_validator(mode="after")
    def _require_some_body(self) -> "EventRecord":
        if (self.summary or "").strip() or (self.text or "").strip():
            return self
        if any((page.extract or "").strip() for page in self.related_pages):
            return self
        raise ValueError(
            f"event {self.event_id!r} has no summary, text or related-page extract"
        )


class DailyDigest(_ContentModel):
    digest_id: Optional[str] = None
    date: Optional[str] = None
    event_ids: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("event_ids", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> Any:
        return [] if value is None else value
