# Backend/app/core/resolution_id.py
from __future__ import annotations

import uuid
from contextlib import contextmanager
from typing import Iterator, Optional
import contextvars

_resolution_id_ctx: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "resolution_id", default=None
)


def set_resolution_id(resolution_id: Optional[str]) -> None:
    _resolution_id_ctx.set(resolution_id)


def get_resolution_id() -> Optional[str]:
    return _resolution_id_ctx.get()


def clear_resolution_id() -> None:
    _resolution_id_ctx.set(None)


@contextmanager
def with_resolution_id(resolution_id: Optional[str] = None) -> Iterator[str]:
    """
    Scope an id to a single resolve call so every log line it emits is tagged:
        with with_resolution_id() as rid:
            ... resolve ...
    Each asyncio task has its own context copy, so concurrent resolutions
    never see each other's id.
    """
    rid = resolution_id or uuid.uuid4().hex
    token = _resolution_id_ctx.set(rid)
    try:
        yield rid
    finally:
        _resolution_id_ctx.reset(token)
