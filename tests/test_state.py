"""Tests for folding ledger events into registry state."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from weavereg.errors import LedgerCorruptError
from weavereg.events import (
    ENTRY_ADDED,
    ENTRY_STATUS_UPDATED,
    OWNERSHIP_TRANSFERRED,
    WEAVE_CREATED,
    WEAVE_STATUS_UPDATED,
    create_event,
)
from weavereg.state import RegistryState, apply_event, fold_events

T0 = datetime(2026, 3, 1, tzinfo=timezone.utc)
HASH = "ab" * 32


def _created(weave_id: str, creator: str, t: int = 0):
    return create_event(
        WEAVE_CREATED,
        creator,
        weave_id=weave_id,
        payload={"creator": creator, "label": f"label-{weave_id}"},
        timestamp=T0 + timedelta(seconds=t),
    )


def _added(weave_id: str, index: int, t: int = 0):
    return create_event(
        ENTRY_ADDED,
        "human:anyone",
        weave_id=weave_id,
        payload={"entry_index": index, "data_hash": HASH, "note": f"#{index}"},
        timestamp=T0 + timedelta(seconds=t),
    )


def test_fold_builds_weaves_entries_and_creator_index() -> None:
    state = fold_events([
        create_event(OWNERSHIP_TRANSFERRED, "human:admin",
                     payload={"previous_owner": "", "new_owner": "human:admin"}, timestamp=T0),
        _created("w1", "human:alice", 1),
        _created("w2", "human:alice", 2),
        _added("w1", 0, 3),
        _added("w1", 1, 4),
        create_event(ENTRY_STATUS_UPDATED, "human:alice", weave_id="w1",
                     payload={"entry_index": 0, "is_active": False}, timestamp=T0 + timedelta(seconds=5)),
        create_event(WEAVE_STATUS_UPDATED, "human:alice", weave_id="w2",
                     payload={"is_active": False}, timestamp=T0 + timedelta(seconds=6)),
    ])

    assert state.owner == "human:admin"
    assert state.weaves_of("human:alice") == ("w1", "w2")
    assert state.weave("w1").created_at == T0 + timedelta(seconds=1)
    assert state.weave("w2").is_active is False
    assert [e.is_active for e in state.entries["w1"]] == [False, True]
    assert state.entry_count("w2") == 0
    assert state.last_timestamp == T0 + timedelta(seconds=6)


def test_missing_weave_is_none() -> None:
    assert RegistryState().weave("w1") is None
    assert RegistryState().weaves_of("human:nobody") == ()


def test_duplicate_creation_is_corruption() -> None:
    state = fold_events([_created("w1", "human:alice")])
    with pytest.raises(LedgerCorruptError):
        apply_event(state, _created("w1", "human:bob"))


def test_index_gap_is_corruption() -> None:
    state = fold_events([_created("w1", "human:alice"), _added("w1", 0)])
    with pytest.raises(LedgerCorruptError):
        apply_event(state, _added("w1", 2))


def test_entry_for_unknown_weave_is_corruption() -> None:
    with pytest.raises(LedgerCorruptError):
        fold_events([_added("ghost", 0)])


def test_status_for_missing_entry_is_corruption() -> None:
    state = fold_events([_created("w1", "human:alice")])
    with pytest.raises(LedgerCorruptError):
        apply_event(
            state,
            create_event(ENTRY_STATUS_UPDATED, "human:alice", weave_id="w1",
                         payload={"entry_index": 0, "is_active": False}, timestamp=T0),
        )
