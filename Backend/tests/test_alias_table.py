"""
Tests for the Wikipedia title → event id alias table.
"""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.models.aliases import AliasEntry
from app.services.alias_table import (
    AliasTable,
    DuplicateAliasError,
    build_alias_table,
    default_alias_table,
    normalize_alias_title,
)


def _record(title: str, event_id: str, reason: str = "test") -> dict:
    return {"wikipedia_title": title, "event_id": event_id, "reason": reason, "added_at": "2025-10-27"}


def test_lookup_is_case_and_separator_insensitive():
    table = default_alias_table()
    assert table.lookup("Battle_Of_Midway") == "event-1942-battle-of-midway"
    assert table.lookup("battle of midway") == "event-1942-battle-of-midway"
    assert table.lookup("BATTLE  OF_MIDWAY") == "event-1942-battle-of-midway"


def test_lookup_accepts_url_encoded_titles():
    assert default_alias_table().lookup("Battle%20of%20Midway") == "event-1942-battle-of-midway"


def test_alternate_titles_share_an_event():
    table = default_alias_table()
    assert table.lookup("World_War_II") == table.lookup("Second World War")
    assert table.lookup("Apollo_11") == table.lookup("Moon landing")


def test_unknown_title_is_absent():
    table = default_alias_table()
    assert table.lookup("Treaty_of_Westphalia") is None
    assert table.has("Treaty_of_Westphalia") is False
    assert table.has("apollo 11") is True


def test_default_table_is_built_once():
    assert default_alias_table() is default_alias_table()


def test_entries_keep_dataset_order_and_count_distinct_keys():
    table = build_alias_table([
        _record("Apollo_11", "event-apollo"),
        _record("Moon_landing", "event-apollo"),
        _record("apollo 11", "event-apollo"),
    ])
    assert [e.wikipedia_title for e in table.entries] == ["Apollo_11", "Moon_landing", "apollo 11"]
    assert table.count == 2
    assert len(table) == 2
    # same target twice is not a conflict
    assert table.duplicates == ()


def test_later_duplicate_wins_and_is_reported():
    table = build_alias_table([
        _record("Berlin_Wall", "event-1961-berlin-wall-built"),
        _record("berlin wall", "event-1989-fall-of-berlin-wall"),
    ])
    assert table.lookup("Berlin Wall") == "event-1989-fall-of-berlin-wall"
    assert table.duplicates == ("berlin wall",)


def test_strict_mode_rejects_conflicting_duplicates():
    with pytest.raises(DuplicateAliasError, match="berlin"):
        build_alias_table(
            [
                _record("Berlin_Wall", "event-1961-berlin-wall-built"),
                _record("berlin wall", "event-1989-fall-of-berlin-wall"),
            ],
            strict=True,
        )


def test_malformed_records_are_skipped():
    table = build_alias_table([
        _record("Apollo_11", "event-apollo"),
        {"wikipedia_title": "Missing_Event_Id", "added_at": "2025-10-27"},
        {"wikipedia_title": "", "event_id": "event-empty", "added_at": "2025-10-27"},
        _record("D-Day", "event-1944-d-day"),
    ])
    assert table.count == 2
    assert table.lookup("d-day") == "event-1944-d-day"


def test_table_is_read_only():
    table = AliasTable([AliasEntry.model_validate(_record("Apollo_11", "event-apollo"))])
    with pytest.raises(AttributeError):
        table.count = 5
    with pytest.raises(ValidationError):
        table.entries[0].event_id = "changed"


def test_normalize_alias_title():
    assert normalize_alias_title("  The_Great   Gatsby ") == "the great gatsby"
    assert normalize_alias_title("Stra%C3%9Fe") == "strasse"
    assert normalize_alias_title("") == ""
