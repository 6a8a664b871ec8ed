"""
Append-only weave registry ledger.

The ledger is the source of truth for all registry state. It contains only
RegistryEvent lines, written once and never modified. Current state is
computed by folding events (see state.py).

Envelope format (one JSON object per line):

    {"event_type": "entry.added", "actor": "human:bob", "timestamp": "...",
     "weave_id": "w1", "payload": {...}, "seq": 3, "prev": "sha256:...",
     "_checksum": "sha256:..."}

`_checksum` covers every other field of the envelope (canonical JSON,
sorted keys). `prev` is the checksum of the preceding envelope, which chains
the whole file: editing, reordering or deleting any committed line breaks
verification from that point on.

Concurrency: writers hold `transaction()`, a process-local lock plus an
exclusive `fcntl.flock` on registry.lock. POSIX only.
"""

from __future__ import annotations

import fcntl
import hashlib
import json
import logging
import os
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, Literal

from .errors import LedgerCorruptError, LedgerError
from .events import RegistryEvent

logger = logging.getLogger(__name__)

LEDGER_FILENAME = "registry.jsonl"
LOCK_FILENAME = "registry.lock"

# Bytes scanned per step when looking for the last complete line.
_TAIL_CHUNK_BYTES = 16_384


@dataclass(frozen=True)
class LedgerCursor:
    """Position just after the last verified envelope."""

    offset: int = 0
    seq: int = 0  # seq expected for the next envelope
    head: str = ""  # checksum of the last envelope ("" before the first)


@dataclass(frozen=True)
class LedgerVerifyResult:
    """
    Result of a full-chain integrity check performed by Ledger.verify().

    status:
        "ok"      - every committed line verifies
        "empty"   - no ledger file or no committed lines
        "corrupt" - a line is malformed or breaks the checksum chain
    """

    status: Literal["ok", "empty", "corrupt"]
    event_count: int
    head: str | None
    error_detail: str | None = None
    torn_tail: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "status": self.status,
            "event_count": self.event_count,
            "head": self.head,
            "error_detail": self.error_detail,
            "torn_tail": self.torn_tail,
        }


def _checksum(body: dict[str, Any]) -> str:
    canonical = json.dumps(body, sort_keys=True, separators=(",", ":"))
    return "sha256:" + hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _encode_envelope(event: RegistryEvent, seq: int, prev: str) -> tuple[str, str]:
    body = event.to_dict()
    body["seq"] = seq
    body["prev"] = prev
    checksum = _checksum(body)
    body["_checksum"] = checksum
    return json.dumps(body, separators=(",", ":")), checksum


def _decode_envelope(line: str, cursor: LedgerCursor) -> tuple[RegistryEvent, str]:
    where = f"seq {cursor.seq} at offset {cursor.offset}"
    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        raise LedgerCorruptError(f"{where}: malformed JSON ({e.msg})") from e
    if not isinstance(data, dict):
        raise LedgerCorruptError(f"{where}: envelope is not an object")

    stored = data.pop("_checksum", None)
    if not isinstance(stored, str):
        raise LedgerCorruptError(f"{where}: missing _checksum")
    if _checksum(data) != stored:
        raise LedgerCorruptError(f"{where}: checksum mismatch")
    if data.get("seq") != cursor.seq:
        raise LedgerCorruptError(f"{where}: expected seq {cursor.seq}, found {data.get('seq')!r}")
    if data.get("prev") != cursor.head:
        raise LedgerCorruptError(f"{where}: chain broken (prev does not match preceding checksum)")

    try:
        event = RegistryEvent.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise LedgerCorruptError(f"{where}: invalid event ({e})") from e
    return event, stored


class Ledger:
    """
    Append-only event ledger for one registry home directory.

    INVARIANT: This class NEVER modifies committed ledger lines.
    The only write operation is append(); the only truncation removes a
    torn (newline-less) tail left by an interrupted append.
    """

    def __init__(self, home: Path):
        """
        Initialize ledger.

        Args:
            home: Registry home directory (created on first write)
        """
        self.home = home
        self.ledger_path = home / LEDGER_FILENAME
        self.lock_path = home / LOCK_FILENAME

        self._thread_lock = threading.RLock()
        self._held = False
        self._tail = LedgerCursor()  # writer's view of the end of the file

    def _ensure_dir(self) -> None:
        self.home.mkdir(parents=True, exist_ok=True)

    # -------------------------------------------------------------------------
    # Locking
    # -------------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """
        Hold the ledger exclusively for one check-then-append unit.

        Serializes threads of this process (RLock) and other processes
        (flock). Not re-entrant across the flock: nested calls from the
        same thread raise LedgerError.
        """
        with self._thread_lock:
            if self._held:
                raise LedgerError("ledger transaction already held by this thread")
            self._ensure_dir()
            with self.lock_path.open("a") as lock_file:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
                self._held = True
                try:
                    self._repair_tail()
                    yield
                finally:
                    self._held = False
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _repair_tail(self) -> None:
        """Drop an uncommitted partial line left by an interrupted append."""
        if not self.ledger_path.exists():
            return
        with self.ledger_path.open("r+b") as f:
            size = f.seek(0, os.SEEK_END)
            if size == 0:
                return
            f.seek(size - 1)
            if f.read(1) == b"\n":
                return

            keep = 0
            pos = size
            while pos > 0:
                step = min(_TAIL_CHUNK_BYTES, pos)
                pos -= step
                f.seek(pos)
                idx = f.read(step).rfind(b"\n")
                if idx != -1:
                    keep = pos + idx + 1
                    break

            logger.warning(
                "Truncating torn ledger tail in %s: %d bytes after offset %d",
                self.ledger_path,
                size - keep,
                keep,
            )
            f.truncate(keep)
            f.flush()
            os.fsync(f.fileno())

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    def scan(self, cursor: LedgerCursor) -> Iterator[tuple[RegistryEvent, LedgerCursor]]:
        """Yield verified events after `cursor`, with the cursor following each."""
        if not self.ledger_path.exists():
            return

        with self.ledger_path.open("rb") as f:
            f.seek(cursor.offset)
            for raw in f:
                if not raw.endswith(b"\n"):
                    # Uncommitted tail; the next transaction repairs it.
                    return
                next_offset = cursor.offset + len(raw)
                try:
                    line = raw.decode("utf-8").strip()
                except UnicodeDecodeError as e:
                    raise LedgerCorruptError(f"seq {cursor.seq} at offset {cursor.offset}: not UTF-8") from e
                if not line:
                    raise LedgerCorruptError(f"seq {cursor.seq} at offset {cursor.offset}: blank line")
                event, checksum = _decode_envelope(line, cursor)
                cursor = LedgerCursor(offset=next_offset, seq=cursor.seq + 1, head=checksum)
                yield event, cursor

    def read_since(self, cursor: LedgerCursor) -> tuple[list[RegistryEvent], LedgerCursor]:
        """
        Read and verify every committed event after `cursor`.

        Returns:
            (new events in append order, cursor after the last of them)
        """
        events: list[RegistryEvent] = []
        for event, cursor in self.scan(cursor):
            events.append(event)
        return events, cursor

    def iter_events(self) -> Iterator[RegistryEvent]:
        """
        Iterate over all events in the ledger.

        Events are returned in append order (which is also timestamp order).
        """
        for event, _ in self.scan(LedgerCursor()):
            yield event

    def query(
        self,
        *,
        weave_id: str | None = None,
        event_type: str | None = None,
        actor: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
        limit: int | None = None,
        order: Literal["asc", "desc"] = "asc",
    ) -> list[RegistryEvent]:
        """
        Query events with composable filters.

        Args:
            weave_id: Filter by weave
            event_type: Filter by event type
            actor: Filter by caller identity
            since: Events on or after this timestamp
            until: Events on or before this timestamp
            limit: Maximum number of events to return (applied after ordering)
            order: "asc" = append order, "desc" = newest first

        Returns:
            List of matching events
        """
        results: list[RegistryEvent] = []
        for event in self.iter_events():
            if weave_id is not None and event.weave_id != weave_id:
                continue
            if event_type is not None and event.event_type != event_type:
                continue
            if actor is not None and event.actor != actor:
                continue
            if since is not None and event.timestamp < since:
                continue
            if until is not None and event.timestamp > until:
                continue
            results.append(event)

        if order == "desc":
            results.reverse()
        if limit is not None:
            results = results[:limit]
        return results

    def count(self) -> int:
        """Count committed events in the ledger."""
        return sum(1 for _ in self.iter_events())

    def verify(self) -> LedgerVerifyResult:
        """Walk the full checksum chain without raising."""
        if not self.ledger_path.exists():
            return LedgerVerifyResult(status="empty", event_count=0, head=None)

        cursor = LedgerCursor()
        try:
            for _, cursor in self.scan(cursor):
                pass
        except LedgerCorruptError as e:
            return LedgerVerifyResult(
                status="corrupt",
                event_count=cursor.seq,
                head=cursor.head or None,
                error_detail=str(e),
            )

        torn = self.ledger_path.stat().st_size > cursor.offset
        if cursor.seq == 0:
            return LedgerVerifyResult(status="empty", event_count=0, head=None, torn_tail=torn)
        return LedgerVerifyResult(status="ok", event_count=cursor.seq, head=cursor.head, torn_tail=torn)

    # -------------------------------------------------------------------------
    # Writing
    # -------------------------------------------------------------------------

    def append(self, event: RegistryEvent) -> int:
        """
        Append an event to the ledger and return its seq.

        This is the ONLY write operation. The line is fsynced before this
        returns, so a returned seq is durably committed.
        """
        if not self._held:
            with self.transaction():
                return self._append_locked(event)
        return self._append_locked(event)

    def _append_locked(self, event: RegistryEvent) -> int:
        # Catch up on lines other writers appended since our last write.
        _, self._tail = self.read_since(self._tail)

        line, checksum = _encode_envelope(event, self._tail.seq, self._tail.head)
        data = (line + "\n").encode("utf-8")
        try:
            with self.ledger_path.open("ab") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            raise LedgerError(f"append to {self.ledger_path} failed: {e}") from e

        seq = self._tail.seq
        self._tail = LedgerCursor(offset=self._tail.offset + len(data), seq=seq + 1, head=checksum)
        return seq
