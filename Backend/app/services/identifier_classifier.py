"""
Structural classification of event identifiers.

Each backing source owns a disjoint identifier shape:

- dev digest:   ``dev-digest:<library-id>``
- wikimedia:    ``wikimedia:MM-DD:<slug>`` (feed) or ``wikimedia:<Article_Title>``
- explore seed: bare lowercase kebab slug, no namespace prefix

Namespaced shapes start with a prefix ending in a colon and the explore-seed
shape cannot contain one, so at most one pattern matches any identifier.
Article titles may contain colons (``wikimedia:Mission:_Impossible``). No I/O
happens here; whether the identifier is actually present is answered by each
table's lookup.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class EventNamespace(str, Enum):
    DEV_DIGEST = "dev_digest"
    EXPLORE_SEED = "explore_seed"
    WIKIMEDIA = "wikimedia"
    UNKNOWN = "unknown"


DEV_DIGEST_PREFIX = "dev-digest:"
WIKIMEDIA_PREFIX = "wikimedia:"

_DEV_DIGEST_PATTERN = re.compile(r"^dev-digest:[a-z0-9]+(?:-[a-z0-9]+)*$")
_WIKIMEDIA_FEED_PREFIX = re.compile(r"^wikimedia:\d{2}-\d{2}:")
_WIKIMEDIA_FEED_PATTERN = re.compile(r"^wikimedia:(\d{2})-(\d{2}):(.+)$")
_WIKIMEDIA_TITLE_PATTERN = re.compile(r"^wikimedia:(\S.*)$")
_EXPLORE_SEED_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)+$")


@dataclass(frozen=True)
class WikimediaEventKey:
    """Parsed wikimedia identifier: either feed form (month/day/slug) or title form."""

    month: Optional[int] = None
    day: Optional[int] = None
    slug: Optional[str] = None
    title: Optional[str] = None

    @property
    def is_feed(self) -> bool:
        return self.month is not None and self.day is not None


def classify(identifier: str) -> EventNamespace:
    value = (identifier or "").strip()
    if not value:
        return EventNamespace.UNKNOWN
    if _DEV_DIGEST_PATTERN.match(value):
        return EventNamespace.DEV_DIGEST
    if parse_wikimedia_event_id(value) is not None:
        return EventNamespace.WIKIMEDIA
    if _EXPLORE_SEED_PATTERN.match(value):
        return EventNamespace.EXPLORE_SEED
    return EventNamespace.UNKNOWN


def is_dev_digest_event_id(identifier: Optional[str]) -> bool:
    return isinstance(identifier, str) and classify(identifier) is EventNamespace.DEV_DIGEST


def is_wikimedia_event_id(identifier: Optional[str]) -> bool:
    return isinstance(identifier, str) and classify(identifier) is EventNamespace.WIKIMEDIA


def parse_wikimedia_event_id(identifier: str) -> Optional[WikimediaEventKey]:
    """
    Split a wikimedia identifier into its parts. Feed identifiers must carry
    a plausible month (1-12), day (1-31) and a slug; anything else shaped like
    a feed identifier returns None. Everything else after the prefix is an
    article title, which may itself contain colons.
    """
    value = (identifier or "").strip()
    if _WIKIMEDIA_FEED_PREFIX.match(value):
        match = _WIKIMEDIA_FEED_PATTERN.match(value)
        if not match:
            return None
        month, day = int(match.group(1)), int(match.group(2))
        if not (1 <= month <= 12 and 1 <= day <= 31):
            return None
        return WikimediaEventKey(month=month, day=day, slug=match.group(3))
    match = _WIKIMEDIA_TITLE_PATTERN.match(value)
    if match:
        return WikimediaEventKey(title=match.group(1))
    return None
