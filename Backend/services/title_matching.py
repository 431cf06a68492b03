"""
Title normalization and fuzzy matching between Wikipedia article titles and
event text.

Scoring:
- exact match (normalized): 100
- similarity > 0.8: 80-99
- similarity 0.5-0.8: 50-79
- below 0.5: 0
- keyword contained in event text: +20
- year within one of the event year: +10
Capped at 100.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from difflib import SequenceMatcher
from typing import Callable, Generic, Iterable, Optional, TypeVar

_DISAMBIGUATION_SUFFIX = re.compile(r"\s*\([^)]*\)$")
_LEADING_ARTICLE = re.compile(r"^(the|a|an)\s+", re.IGNORECASE)
_NON_WORD = re.compile(r"[^\w\s-]")
_WHITESPACE = re.compile(r"\s+")
_YEAR = re.compile(r"\b([12]\d{3})\b")

T = TypeVar("T")


def normalize_title(title: str) -> str:
    normalized = (title or "").lower().replace("_", " ")
    normalized = _DISAMBIGUATION_SUFFIX.sub("", normalized)  # "Paris (city)" -> "paris"
    normalized = _LEADING_ARTICLE.sub("", normalized)
    normalized = _NON_WORD.sub("", normalized)
    return _WHITESPACE.sub(" ", normalized).strip()


def calculate_similarity(a: str, b: str) -> float:
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    return SequenceMatcher(None, a, b).ratio()


def contains_keyword(text: str, keyword: str) -> bool:
    normalized_keyword = normalize_title(keyword)
    if not normalized_keyword:
        return False
    return normalized_keyword in normalize_title(text)


def extract_year_from_title(title: str) -> Optional[int]:
    match = _YEAR.search(title or "")
    return int(match.group(1)) if match else None


@dataclass(frozen=True)
class TitleMatchScore:
    score: int
    similarity: float
    exact_match: bool
    year_match: bool
    keyword_match: bool


@dataclass(frozen=True)
class BestMatch(Generic[T]):
    item: T
    match: TitleMatchScore


def match_title(wikipedia_title: str, event_text: str, event_year: Optional[int] = None) -> TitleMatchScore:
    normalized_wiki = normalize_title(wikipedia_title)
    normalized_event = normalize_title(event_text)
    similarity = calculate_similarity(normalized_wiki, normalized_event)

    exact_match = bool(normalized_wiki) and normalized_wiki == normalized_event
    if exact_match:
        score = 100
    elif similarity > 0.8:
        score = int(80 + similarity * 20)
    elif similarity >= 0.5:
        score = int(50 + similarity * 30)
    else:
        score = 0

    keyword_match = contains_keyword(event_text, wikipedia_title)
    if keyword_match:
        score += 20

    year_match = False
    wiki_year = extract_year_from_title(wikipedia_title)
    if wiki_year and event_year and abs(wiki_year - event_year) <= 1:
        year_match = True
        score += 10

    return TitleMatchScore(
        score=min(score, 100),
        similarity=similarity,
        exact_match=exact_match,
        year_match=year_match,
        keyword_match=keyword_match,
    )


def find_best_match(
    wikipedia_title: str,
    items: Iterable[T],
    *,
    text_of: Callable[[T], Optional[str]],
    year_of: Callable[[T], Optional[int]] = lambda _: None,
    min_score: int = 50,
) -> Optional[BestMatch[T]]:
    """Highest-scoring item at or above `min_score`; ties keep the first seen."""
    best: Optional[BestMatch[T]] = None
    best_score = min_score - 1
    for item in items:
        text = text_of(item)
        if not text:
            continue
        match = match_title(wikipedia_title, text, year_of(item))
        if match.score > best_score:
            best_score = match.score
            best = BestMatch(item=item, match=match)
    return best
