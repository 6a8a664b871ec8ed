"""
Immutable event types for the weave registry ledger.

Each event is one line of registry.jsonl and doubles as the public
notification for the state change it records. Registry state is computed
by folding events, never by mutating prior entries.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

# Event type constants
WEAVE_CREATED = "weave.created"
WEAVE_STATUS_UPDATED = "weave.status_updated"
ENTRY_ADDED = "entry.added"
ENTRY_STATUS_UPDATED = "entry.status_updated"
OWNERSHIP_TRANSFERRED = "ownership.transferred"

# All valid event types
EVENT_TYPES = frozenset({
    WEAVE_CREATED,
    WEAVE_STATUS_UPDATED,
    ENTRY_ADDED,
    ENTRY_STATUS_UPDATED,
    OWNERSHIP_TRANSFERRED,
})

# Events scoped to a single weave
WEAVE_EVENT_TYPES = frozenset({
    WEAVE_CREATED,
    WEAVE_STATUS_UPDATED,
    ENTRY_ADDED,
    ENTRY_STATUS_UPDATED,
})


@dataclass(frozen=True)
class RegistryEvent:
    """
    Immutable event in the registry ledger.

    Events are append-only - once written, they are never modified.
    """

    event_type: str  # One of EVENT_TYPES
    actor: str  # Authenticated caller that produced the event
    timestamp: datetime

    weave_id: str | None = None  # None only for ownership.transferred
    payload: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate event structure."""
        if self.event_type not in EVENT_TYPES:
            raise ValueError(f"Invalid event_type: {self.event_type}")
        if self.event_type in WEAVE_EVENT_TYPES and not self.weave_id:
            raise ValueError(f"{self.event_type} requires a weave_id")

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        result: dict[str, Any] = {
            "event_type": self.event_type,
            "actor": self.actor,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.weave_id is not None:
            result["weave_id"] = self.weave_id
        if self.payload:
            result["payload"] = self.payload
        return result

    def to_json(self) -> str:
        """Serialize to JSON string (single line)."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RegistryEvent:
        """Reconstruct from JSON dict."""
        return cls(
            event_type=data["event_type"],
            actor=data["actor"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            weave_id=data.get("weave_id"),
            payload=data.get("payload", {}),
        )

    @classmethod
    def from_json(cls, line: str) -> RegistryEvent:
        """Parse from JSON string."""
        return cls.from_dict(json.loads(line))


# Payload field documentation for each event type
EVENT_PAYLOAD_FIELDS = {
    WEAVE_CREATED: {
        "creator": "Identity that created the weave (sole mutation authority)",
        "label": "Human-readable label, immutable after creation",
    },
    WEAVE_STATUS_UPDATED: {
        "is_active": "New soft-delete flag of the weave",
    },
    ENTRY_ADDED: {
        "entry_index": "Zero-based position in the weave's entry sequence",
        "data_hash": "32-byte commitment as 64 lowercase hex digits",
        "note": "Free-form note, immutable after creation",
    },
    ENTRY_STATUS_UPDATED: {
        "entry_index": "Index of the toggled entry",
        "is_active": "New soft-delete flag of the entry",
    },
    OWNERSHIP_TRANSFERRED: {
        "previous_owner": "Administrator before the change (empty on initialization)",
        "new_owner": "Administrator after the change",
    },
}


def create_event(
    event_type: str,
    actor: str,
    *,
    weave_id: str | None = None,
    payload: dict[str, Any] | None = None,
    timestamp: datetime | None = None,
) -> RegistryEvent:
    """
    Factory function for creating events.

    Ensures consistent timestamp handling and validation.
    """
    return RegistryEvent(
        event_type=event_type,
        actor=actor,
        timestamp=timestamp or datetime.now(timezone.utc),
        weave_id=weave_id,
        payload=payload or {},
    )
