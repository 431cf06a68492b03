from __future__ import annotations

import re
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import unquote

from pydantic import ValidationError

from app.core.config import settings
from app.core.logging import get_logger
from app.models.aliases import AliasEntry
from app.services.bundled_data import load_records

logger = get_logger().bind(module="alias_table")

WIKI_ALIASES_FILE = "wiki_aliases.yml"

_WHITESPACE = re.compile(r"\s+")


class DuplicateAliasError(ValueError):
    pass


def normalize_alias_title(title: str) -> str:
    """
    Index key for a Wikipedia title: URL-decoded, case-folded, underscores
    and spaces treated alike.
    """
    decoded = unquote(title or "")
    return _WHITESPACE.sub(" ", decoded.replace("_", " ")).strip().casefold()


class AliasTable:
    """
    Read-only index from normalized Wikipedia titles to content event ids.

    Built once from the ordered alias dataset and then shared by reference.
    When two entries normalize to the same key the later one wins; the
    overwritten keys are kept in `duplicates` for diagnostics.
    """

    def __init__(self, entries: Iterable[AliasEntry], *, strict: bool = False) -> None:
        self._entries: Tuple[AliasEntry, ...] = tuple(entries)
        index: Dict[str, str] = {}
        duplicates: List[str] = []
        for entry in self._entries:
            key = normalize_alias_title(entry.wikipedia_title)
            if not key:
                continue
            previous = index.get(key)
            if previous is not None and previous != entry.event_id:
                if strict:
                    raise DuplicateAliasError(
                        f"alias {entry.wikipedia_title!r} maps to both {previous!r} and {entry.event_id!r}"
                    )
                duplicates.append(key)
            index[key] = entry.event_id
        self._index = index
        self._duplicates: Tuple[str, ...] = tuple(duplicates)

    def lookup(self, wikipedia_title: str) -> Optional[str]:
        return self._index.get(normalize_alias_title(wikipedia_title))

    def has(self, wikipedia_title: str) -> bool:
        return self.lookup(wikipedia_title) is not None

    @property
    def entries(self) -> Tuple[AliasEntry, ...]:
        return self._entries

    @property
    def count(self) -> int:
        return len(self._index)

    @property
    def duplicates(self) -> Tuple[str, ...]:
        return self._duplicates

    def __len__(self) -> int:
        return self.count


def parse_alias_entries(records: Iterable[Dict[str, Any]]) -> List[AliasEntry]:
    """Validate raw records; malformed ones are skipped so the index stays usable."""
    entries: List[AliasEntry] = []
    for index, raw in enumerate(records):
        try:
            entries.append(AliasEntry.model_validate(raw))
        except ValidationError as exc:
            logger.warning("alias_entry_skipped", index=index, error=str(exc))
    return entries


def build_alias_table(records: Iterable[Dict[str, Any]], *, strict: bool = False) -> AliasTable:
    table = AliasTable(parse_alias_entries(records), strict=strict)
    if table.duplicates:
        logger.warning("alias_table_duplicates", keys=list(table.duplicates))
    logger.info("alias_table_built", count=table.count, entries=len(table.entries))
    return table


@lru_cache(maxsize=1)
def default_alias_table() -> AliasTable:
    """
    Process-lifetime table built from the bundled dataset. Built at most once;
    consumers should still receive it as a parameter.
    """
    return build_alias_table(load_records(WIKI_ALIASES_FILE, "aliases"), strict=settings.ALIAS_STRICT)
