"""
Error taxonomy for event content resolution.

Sources signal "not present" by returning None; these exceptions are for
actual failures. Only the resolver decides which one reaches a caller.
"""

from __future__ import annotations

from typing import Optional


class ContentError(Exception):
    pass


class TransportError(ContentError):
    """Remote store or encyclopedia request failed (network, status, or payload)."""

    def __init__(self, message: str, *, source: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.source = source
        self.status_code = status_code


class NotFoundError(ContentError):
    """Identifier absent from every consulted source."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"event {identifier!r} not found")
        self.identifier = identifier


class InvalidArgumentError(ContentError, ValueError):
    pass
