"""
Weave registry: the public operation surface.

Every mutating operation runs as one serialized unit:

    lock -> catch up on the ledger -> check -> append one event -> fold it

A check that fails raises before anything is appended, so rejected calls
leave neither state nor notification behind. The appended event is the
notification; in-process listeners see it after the lock is released.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterator

from .access import (
    is_administrator,
    is_weave_creator,
    require_administrator,
    require_weave_creator,
)
from .errors import (
    ConflictError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
    OutOfRangeError,
    WeaveRegistryError,
)
from .events import (
    ENTRY_ADDED,
    ENTRY_STATUS_UPDATED,
    OWNERSHIP_TRANSFERRED,
    WEAVE_CREATED,
    WEAVE_STATUS_UPDATED,
    RegistryEvent,
    create_event,
)
from .identity import normalize_data_hash, normalize_identity, normalize_weave_id
from .ledger import Ledger, LedgerCursor
from .state import RegistryState, Weave, WeaveEntry, apply_event

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
Listener = Callable[[RegistryEvent], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _require_bool(value: Any, name: str, operation: str) -> bool:
    if not isinstance(value, bool):
        raise InvalidArgumentError(f"{name} must be a bool, got {type(value).__name__}", operation=operation)
    return value


def _require_text(value: Any, name: str, operation: str) -> str:
    if not isinstance(value, str):
        raise InvalidArgumentError(f"{name} must be a string, got {type(value).__name__}", operation=operation)
    return value


class WeaveRegistry:
    """
    Tamper-evident registry of weaves and their append-only entry ledgers.

    Every method that acts takes the authenticated `caller` identity
    explicitly as its first argument.
    """

    def __init__(self, ledger: Ledger, *, clock: Clock | None = None):
        self.ledger = ledger
        self._clock = clock or _utcnow

        self._lock = threading.RLock()
        self._state = RegistryState()
        self._cursor = LedgerCursor()
        self._pending: list[RegistryEvent] | None = None
        self._listeners: list[Listener] = []

    @classmethod
    def open(cls, home: Path, *, owner: str | None = None, clock: Clock | None = None) -> WeaveRegistry:
        """
        Load the registry stored under `home`.

        If `owner` is given and the registry has no administrator yet, the
        registry is initialized with it. An existing administrator is never
        replaced here; use transfer_ownership().
        """
        registry = cls(Ledger(home), clock=clock)
        if owner is not None:
            registry.initialize(owner)
        else:
            registry.refresh()
        return registry

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _catch_up(self) -> None:
        for event, cursor in self.ledger.scan(self._cursor):
            apply_event(self._state, event)
            self._cursor = cursor
            if self._pending is not None:
                self._pending.append(event)

    def _now(self) -> datetime:
        # Never go behind the last committed event.
        now = self._clock()
        last = self._state.last_timestamp
        if last is not None and now < last:
            return last
        return now

    @contextmanager
    def _mutation(self, operation: str) -> Iterator[RegistryState]:
        committed: list[RegistryEvent] = []
        with self._lock:
            with self.ledger.transaction():
                self._catch_up()
                self._pending = committed
                try:
                    yield self._state
                except WeaveRegistryError as e:
                    logger.debug("Rejected %s: %s", operation, e)
                    raise
                finally:
                    self._pending = None
        for event in committed:
            self._notify(event)

    def _commit(self, event: RegistryEvent) -> None:
        self.ledger.append(event)
        # Fold from the ledger itself so state only ever reflects committed lines.
        self._catch_up()
        logger.info("%s %s by %s", event.event_type, event.weave_id or "-", event.actor)

    def _notify(self, event: RegistryEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                # The event is already durable; a listener cannot revert it.
                logger.exception("Notification listener failed for %s", event.event_type)

    @staticmethod
    def _require_weave(state: RegistryState, weave_id: Any, operation: str) -> Weave:
        weave = state.weave(weave_id) if isinstance(weave_id, str) else None
        if weave is None:
            raise NotFoundError(f"weave {weave_id!r} does not exist", operation=operation)
        return weave

    # -------------------------------------------------------------------------
    # Administrator
    # -------------------------------------------------------------------------

    def initialize(self, owner: str) -> bool:
        """
        Set the first administrator.

        Returns True if this call initialized the registry, False if an
        administrator already existed.
        """
        op = "initialize"
        with self._mutation(op) as state:
            owner = normalize_identity(owner, operation=op, role="owner")
            if state.owner is not None:
                if state.owner != owner:
                    logger.warning("Registry already administered by %s; ignoring owner %s", state.owner, owner)
                return False
            self._commit(
                create_event(
                    OWNERSHIP_TRANSFERRED,
                    owner,
                    payload={"previous_owner": "", "new_owner": owner},
                    timestamp=self._now(),
                )
            )
            return True

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        op = "transfer_ownership"
        with self._mutation(op) as state:
            require_administrator(state.owner, caller, operation=op)
            new_owner = normalize_identity(new_owner, operation=op, role="new owner")
            self._commit(
                create_event(
                    OWNERSHIP_TRANSFERRED,
                    caller,
                    payload={"previous_owner": state.owner, "new_owner": new_owner},
                    timestamp=self._now(),
                )
            )

    # -------------------------------------------------------------------------
    # Weaves
    # -------------------------------------------------------------------------

    def create_weave(self, caller: str, weave_id: str, label: str) -> None:
        """
        Create a weave owned by `caller`.

        Raises:
            InvalidArgumentError: zero weave id (or zero caller)
            ConflictError: a weave with this id was ever created
        """
        op = "create_weave"
        with self._mutation(op) as state:
            caller = normalize_identity(caller, operation=op)
            weave_id = normalize_weave_id(weave_id, operation=op)
            label = _require_text(label, "label", op)
            if state.weave(weave_id) is not None:
                raise ConflictError(f"weave {weave_id!r} already exists", operation=op)
            self._commit(
                create_event(
                    WEAVE_CREATED,
                    caller,
                    weave_id=weave_id,
                    payload={"creator": caller, "label": label},
                    timestamp=self._now(),
                )
            )

    def set_weave_active(self, caller: str, weave_id: str, active: bool) -> None:
        """
        Set a weave's soft-delete flag. Creator only.

        Setting the current value again is allowed and still records an event.
        """
        op = "set_weave_active"
        with self._mutation(op) as state:
            caller = normalize_identity(caller, operation=op)
            weave = self._require_weave(state, weave_id, op)
            require_weave_creator(weave, caller, operation=op)
            active = _require_bool(active, "active", op)
            self._commit(
                create_event(
                    WEAVE_STATUS_UPDATED,
                    caller,
                    weave_id=weave.weave_id,
                    payload={"is_active": active},
                    timestamp=self._now(),
                )
            )

    def get_weave(self, weave_id: str) -> Weave:
        with self._lock:
            self._catch_up()
            return self._require_weave(self._state, weave_id, "get_weave")

    def get_weaves_of(self, identity: str) -> tuple[str, ...]:
        """Weave ids created by `identity`, in creation order. Never fails."""
        with self._lock:
            self._catch_up()
            if not isinstance(identity, str):
                return ()
            return self._state.weaves_of(identity)

    def weave_count(self) -> int:
        with self._lock:
            self._catch_up()
            return len(self._state.weaves)

    # -------------------------------------------------------------------------
    # Entries
    # -------------------------------------------------------------------------

    def add_entry(self, caller: str, weave_id: str, data_hash: str, note: str = "") -> int:
        """
        Append an entry to an active weave and return its index.

        Any identity may append; creator authority is not required.

        Raises:
            NotFoundError: unknown weave
            InvalidArgumentError: zero or malformed data hash
            InvalidStateError: the weave is inactive
        """
        op = "add_entry"
        with self._mutation(op) as state:
            caller = normalize_identity(caller, operation=op)
            weave = self._require_weave(state, weave_id, op)
            data_hash = normalize_data_hash(data_hash, operation=op)
            note = _require_text(note, "note", op)
            if not weave.is_active:
                raise InvalidStateError(f"weave {weave.weave_id!r} is inactive", operation=op)

            entry_index = state.entry_count(weave.weave_id)
            self._commit(
                create_event(
                    ENTRY_ADDED,
                    caller,
                    weave_id=weave.weave_id,
                    payload={"entry_index": entry_index, "data_hash": data_hash, "note": note},
                    timestamp=self._now(),
                )
            )
            return entry_index

    def set_entry_active(self, caller: str, weave_id: str, entry_index: int, active: bool) -> None:
        """
        Set one entry's soft-delete flag. Creator only, regardless of the
        weave's own status.
        """
        op = "set_entry_active"
        with self._mutation(op) as state:
            caller = normalize_identity(caller, operation=op)
            weave = self._require_weave(state, weave_id, op)
            require_weave_creator(weave, caller, operation=op)
            if isinstance(entry_index, bool) or not isinstance(entry_index, int):
                raise InvalidArgumentError("entry_index must be an integer", operation=op)
            count = state.entry_count(weave.weave_id)
            if not 0 <= entry_index < count:
                raise OutOfRangeError(
                    f"entry_index {entry_index} out of range for weave {weave.weave_id!r} ({count} entries)",
                    operation=op,
                )
            active = _require_bool(active, "active", op)
            self._commit(
                create_event(
                    ENTRY_STATUS_UPDATED,
                    caller,
                    weave_id=weave.weave_id,
                    payload={"entry_index": entry_index, "is_active": active},
                    timestamp=self._now(),
                )
            )

    def get_entries(self, weave_id: str) -> tuple[WeaveEntry, ...]:
        """
        Full entry history of a weave in index order, inactive entries included.
        """
        with self._lock:
            self._catch_up()
            weave = self._require_weave(self._state, weave_id, "get_entries")
            return tuple(self._state.entries[weave.weave_id])

    def get_entry(self, weave_id: str, entry_index: int) -> WeaveEntry:
        op = "get_entry"
        with self._lock:
            self._catch_up()
            weave = self._require_weave(self._state, weave_id, op)
            entries = self._state.entries[weave.weave_id]
            if isinstance(entry_index, bool) or not isinstance(entry_index, int) or not 0 <= entry_index < len(entries):
                raise OutOfRangeError(
                    f"entry_index {entry_index!r} out of range for weave {weave.weave_id!r} ({len(entries)} entries)",
                    operation=op,
                )
            return entries[entry_index]

    # -------------------------------------------------------------------------
    # Access queries
    # -------------------------------------------------------------------------

    @property
    def owner(self) -> str | None:
        with self._lock:
            self._catch_up()
            return self._state.owner

    def is_administrator(self, caller: str) -> bool:
        return is_administrator(self.owner, caller)

    def is_weave_creator(self, caller: str, weave_id: str) -> bool:
        with self._lock:
            self._catch_up()
            weave = self._state.weave(weave_id) if isinstance(weave_id, str) else None
            return is_weave_creator(weave, caller)

    # -------------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a callback for every event this registry commits.

        Returns a function that removes the listener.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def history(
        self,
        *,
        weave_id: str | None = None,
        event_type: str | None = None,
        actor: str | None = None,
        limit: int | None = None,
        order: str = "asc",
    ) -> list[RegistryEvent]:
        """Committed notifications, read back from the ledger."""
        return self.ledger.query(
            weave_id=weave_id,
            event_type=event_type,
            actor=actor,
            limit=limit,
            order="desc" if order == "desc" else "asc",
        )

    def refresh(self) -> None:
        """Fold any events appended by other processes."""
        with self._lock:
            self._catch_up()
