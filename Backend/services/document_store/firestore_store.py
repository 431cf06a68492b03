# Backend/services/document_store/firestore_store.py
"""
Firestore document store over the public REST API (v1).

Only point reads are needed: GET .../documents/<collection>/<id>. Firestore
wraps every field in a typed value ({"stringValue": ...}, {"mapValue":
{"fields": ...}}, ...); `decode_document` flattens that into plain Python
before the pydantic models validate it.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, Optional, Type, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from app.core.config import require_firestore_project, settings
from app.core.logging import get_logger
from app.models.events import DailyDigest, EventRecord
from services.content_errors import TransportError

from .base import DocumentStore

logger = get_logger().bind(module="firestore_store")

FIRESTORE_HOST = "https://firestore.googleapis.com/v1"
SOURCE = "firestore"

# Firestore timestamps carry up to nanosecond precision; datetime takes micro.
_FRACTION = re.compile(r"\.(\d{6})\d+")

M = TypeVar("M", bound=BaseModel)


def _parse_timestamp(value: str) -> datetime:
    if not isinstance(value, str):
        raise ValueError(f"malformed Firestore timestampValue: {value!r}")
    cleaned = _FRACTION.sub(r".\1", value.strip())
    if cleaned.endswith("Z"):
        cleaned = cleaned[:-1] + "+00:00"
    return datetime.fromisoformat(cleaned)


def _object_payload(kind: str, raw: Any) -> Dict[str, Any]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"malformed Firestore {kind}: {raw!r}")
    return raw


def decode_value(value: Dict[str, Any]) -> Any:
    """
    Decode one Firestore typed value.

    Raises:
        ValueError: On an unknown or malformed value type
    """
    if not isinstance(value, dict) or len(value) != 1:
        raise ValueError(f"malformed Firestore value: {value!r}")

    (kind, raw), = value.items()
    if kind == "nullValue":
        return None
    if kind == "booleanValue":
        return bool(raw)
    if kind in ("integerValue", "doubleValue"):
        try:
            return int(raw) if kind == "integerValue" else float(raw)  # int64 is sent as a string
        except (TypeError, ValueError) as exc:
            raise ValueError(f"malformed Firestore {kind}: {raw!r}") from exc
    if kind == "timestampValue":
        return _parse_timestamp(raw)
    if kind in ("stringValue", "bytesValue", "referenceValue"):
        return raw
    if kind in ("geoPointValue", "arrayValue", "mapValue"):
        raw = _object_payload(kind, raw)
    if kind == "geoPointValue":
        return {"latitude": raw.get("latitude"), "longitude": raw.get("longitude")}
    if kind == "arrayValue":
        return [decode_value(item) for item in raw.get("values") or []]
    if kind == "mapValue":
        return decode_fields(raw.get("fields") or {})
    raise ValueError(f"unknown Firestore value type: {kind}")


def decode_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    if not isinstance(fields, dict):
        raise ValueError(f"malformed Firestore fields: {fields!r}")
    return {name: decode_value(value) for name, value in fields.items()}


def decode_document(document: Dict[str, Any]) -> Dict[str, Any]:
    """Plain dict of a document's fields, plus its id under "id"."""
    if not isinstance(document, dict):
        raise ValueError(f"malformed Firestore document: {document!r}")
    data = decode_fields(document.get("fields") or {})
    name = document.get("name") or ""
    if name:
        data.setdefault("id", name.rsplit("/", 1)[-1])
    return data


class FirestoreDocumentStore(DocumentStore):
    def __init__(
        self,
        project_id: Optional[str] = None,
        *,
        database: Optional[str] = None,
        api_key: Optional[str] = None,
        events_collection: Optional[str] = None,
        digests_collection: Optional[str] = None,
        timeout_s: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._project_id = project_id or require_firestore_project()
        self._database = database or settings.FIRESTORE_DATABASE
        self._api_key = api_key if api_key is not None else settings.FIRESTORE_API_KEY
        self._events_collection = events_collection or settings.CONTENT_EVENTS_COLLECTION
        self._digests_collection = digests_collection or settings.DAILY_DIGESTS_COLLECTION
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout_s or settings.FIRESTORE_TIMEOUT_S,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def document_url(self, collection: str, document_id: str) -> str:
        return (
            f"{FIRESTORE_HOST}/projects/{self._project_id}"
            f"/databases/{self._database}/documents"
            f"/{collection}/{quote(document_id, safe='')}"
        )

    async def _get_document(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        url = self.document_url(collection, document_id)
        params = {"key": self._api_key} if self._api_key else None
        try:
            resp = await self._client.get(url, params=params)
        except httpx.HTTPError as exc:
            logger.warning(
                "firestore_request_failed",
                collection=collection,
                document_id=document_id,
                error=str(exc),
            )
            raise TransportError(f"firestore request failed: {exc}", source=SOURCE) from exc

        if resp.status_code == 404:
            return None
        if resp.status_code >= 400:
            logger.warning(
                "firestore_error_status",
                collection=collection,
                document_id=document_id,
                status_code=resp.status_code,
            )
            raise TransportError(
                f"firestore returned {resp.status_code} for {collection}/{document_id}",
                source=SOURCE,
                status_code=resp.status_code,
            )

        try:
            return decode_document(resp.json())
        except ValueError as exc:
            raise TransportError(
                f"malformed firestore document {collection}/{document_id}: {exc}",
                source=SOURCE,
            ) from exc

    async def _get_model(self, collection: str, document_id: str, model: Type[M], **defaults: Any) -> Optional[M]:
        data = await self._get_document(collection, document_id)
        if data is None:
            return None
        for key, value in defaults.items():
            if not data.get(key):
                data[key] = value
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            logger.warning(
                "firestore_document_invalid",
                collection=collection,
                document_id=document_id,
                errors=exc.error_count(),
            )
            raise TransportError(
                f"invalid {model.__name__} document {collection}/{document_id}",
                source=SOURCE,
            ) from exc

    async def get_event(self, event_id: str) -> Optional[EventRecord]:
        # Older documents omit eventId; the document id is the event id.
        return await self._get_model(self._events_collection, event_id, EventRecord, eventId=event_id)

    async def get_digest(self, digest_id: str) -> Optional[DailyDigest]:
        return await self._get_model(self._digests_collection, digest_id, DailyDigest, digestId=digest_id)
