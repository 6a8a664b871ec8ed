"""
Registry state projection from the event stream.

State is computed, never stored as the source of truth: folding the ledger
from the first line always reproduces it. Weaves and entries are frozen
values; a status toggle replaces the stored value instead of mutating it,
so anything handed to a caller stays a faithful record of the moment it was
read.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Iterable

from .errors import LedgerCorruptError
from .events import (
    ENTRY_ADDED,
    ENTRY_STATUS_UPDATED,
    OWNERSHIP_TRANSFERRED,
    WEAVE_CREATED,
    WEAVE_STATUS_UPDATED,
    RegistryEvent,
)


@dataclass(frozen=True)
class Weave:
    """A named, creator-owned collection of entries."""

    weave_id: str
    creator: str
    label: str
    created_at: datetime
    is_active: bool = True

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "weave_id": self.weave_id,
            "creator": self.creator,
            "label": self.label,
            "created_at": self.created_at.isoformat(),
            "is_active": self.is_active,
        }


@dataclass(frozen=True)
class WeaveEntry:
    """One historical record within a weave. Only is_active ever changes."""

    entry_index: int
    data_hash: str
    note: str
    timestamp: datetime
    is_active: bool = True

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "entry_index": self.entry_index,
            "data_hash": self.data_hash,
            "note": self.note,
            "timestamp": self.timestamp.isoformat(),
            "is_active": self.is_active,
        }


@dataclass
class RegistryState:
    """
    Computed state of the whole registry.

    weaves:      weave_id -> Weave
    entries:     weave_id -> entries ordered by entry_index
    by_creator:  creator -> weave ids in creation order (append-only index)
    """

    owner: str | None = None
    weaves: dict[str, Weave] = field(default_factory=dict)
    entries: dict[str, list[WeaveEntry]] = field(default_factory=dict)
    by_creator: dict[str, list[str]] = field(default_factory=dict)
    last_timestamp: datetime | None = None

    def weave(self, weave_id: str) -> Weave | None:
        return self.weaves.get(weave_id)

    def entry_count(self, weave_id: str) -> int:
        return len(self.entries.get(weave_id, ()))

    def weaves_of(self, identity: str) -> tuple[str, ...]:
        return tuple(self.by_creator.get(identity, ()))


def _corrupt(event: RegistryEvent, reason: str) -> LedgerCorruptError:
    return LedgerCorruptError(f"{event.event_type} for {event.weave_id!r} at {event.timestamp.isoformat()}: {reason}")


def apply_event(state: RegistryState, event: RegistryEvent) -> None:
    """
    Apply a single event to the state.

    Events that contradict the current state (duplicate weave, index gap,
    unknown weave) can only come from a tampered or hand-edited ledger and
    raise LedgerCorruptError.
    """
    payload = event.payload

    if event.event_type == OWNERSHIP_TRANSFERRED:
        state.owner = payload.get("new_owner")

    elif event.event_type == WEAVE_CREATED:
        weave_id = event.weave_id or ""
        if weave_id in state.weaves:
            raise _corrupt(event, "weave already exists")
        creator = payload.get("creator", event.actor)
        state.weaves[weave_id] = Weave(
            weave_id=weave_id,
            creator=creator,
            label=payload.get("label", ""),
            created_at=event.timestamp,
        )
        state.entries[weave_id] = []
        state.by_creator.setdefault(creator, []).append(weave_id)

    elif event.event_type == WEAVE_STATUS_UPDATED:
        weave = state.weaves.get(event.weave_id or "")
        if weave is None:
            raise _corrupt(event, "unknown weave")
        state.weaves[weave.weave_id] = replace(weave, is_active=bool(payload.get("is_active")))

    elif event.event_type == ENTRY_ADDED:
        entries = state.entries.get(event.weave_id or "")
        if entries is None:
            raise _corrupt(event, "unknown weave")
        index = payload.get("entry_index")
        if index != len(entries):
            raise _corrupt(event, f"expected entry_index {len(entries)}, found {index!r}")
        entries.append(
            WeaveEntry(
                entry_index=index,
                data_hash=payload.get("data_hash", ""),
                note=payload.get("note", ""),
                timestamp=event.timestamp,
            )
        )

    elif event.event_type == ENTRY_STATUS_UPDATED:
        entries = state.entries.get(event.weave_id or "")
        if entries is None:
            raise _corrupt(event, "unknown weave")
        index = payload.get("entry_index")
        if not isinstance(index, int) or not 0 <= index < len(entries):
            raise _corrupt(event, f"entry_index {index!r} out of range")
        entries[index] = replace(entries[index], is_active=bool(payload.get("is_active")))

    state.last_timestamp = event.timestamp


def fold_events(events: Iterable[RegistryEvent], state: RegistryState | None = None) -> RegistryState:
    """Compute registry state by folding events in append order."""
    state = state if state is not None else RegistryState()
    for event in events:
        apply_event(state, event)
    return state
