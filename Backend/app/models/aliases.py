from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field


class AliasEntry(BaseModel):
    """
    One manual mapping from a Wikipedia article title to a content event,
    for cases where fuzzy title matching fails.
    """

    model_config = ConfigDict(frozen=True)

    wikipedia_title: str = Field(..., min_length=1)  # may be URL-encoded
    event_id: str = Field(..., min_length=1)
    reason: str = ""
    added_at: date
