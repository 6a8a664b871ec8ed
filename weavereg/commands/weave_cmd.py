"""Weave registry CLI commands."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..errors import WeaveRegistryError
from ..events import RegistryEvent
from ..ledger import Ledger
from ..registry import WeaveRegistry


def _open(home: Path) -> WeaveRegistry:
    return WeaveRegistry.open(home)


def _format_payload(event: RegistryEvent) -> str:
    return escape(", ".join(f"{k}={v}" for k, v in event.payload.items()))


def run_init(home: Path, owner: str) -> int:
    err = Console(stderr=True)
    try:
        registry = WeaveRegistry(Ledger(home))
        created = registry.initialize(owner)
    except WeaveRegistryError as e:
        err.print(escape(str(e)), style="bold red")
        return 1

    if created:
        err.print(f"initialized: {home}", style="green")
        err.print(f"owner: {escape(owner)}", style="dim")
    else:
        err.print(f"already initialized (owner: {escape(registry.owner or '')})", style="yellow")
    return 0


def run_owner(home: Path) -> int:
    err = Console(stderr=True)
    console = Console()
    try:
        owner = _open(home).owner
    except WeaveRegistryError as e:
        err.print(escape(str(e)), style="bold red")
        return 1
    if owner is None:
        err.print(f"Registry not initialized: {home}", style="bold red")
        return 1
    console.print(escape(owner))
    return 0


def run_weaves_of(home: Path, identity: str, *, output_json: bool = False) -> int:
    err = Console(stderr=True)
    console = Console()
    try:
        registry = _open(home)
        weaves = [registry.get_weave(weave_id) for weave_id in registry.get_weaves_of(identity)]
    except WeaveRegistryError as e:
        err.print(escape(str(e)), style="bold red")
        return 1

    if output_json:
        print(json.dumps([w.to_dict() for w in weaves], indent=2))
        return 0

    table = Table(title=f"Weaves of {escape(identity)}")
    table.add_column("weave_id", style="cyan", no_wrap=True)
    table.add_column("label")
    table.add_column("active")
    table.add_column("created_at", style="dim")
    for w in weaves:
        table.add_row(escape(w.weave_id), escape(w.label), "yes" if w.is_active else "no", w.created_at.isoformat())

    console.print(table)
    console.print(f"Weaves: {len(weaves)} total")
    return 0


def run_show(
    home: Path,
    weave_id: str,
    *,
    active_only: bool = False,
    output_json: bool = False,
) -> int:
    err = Console(stderr=True)
    console = Console()
    try:
        registry = _open(home)
        weave = registry.get_weave(weave_id)
        entries = registry.get_entries(weave_id)
    except WeaveRegistryError as e:
        err.print(escape(str(e)), style="bold red")
        return 1

    if active_only:
        entries = tuple(e for e in entries if e.is_active)

    if output_json:
        data: dict[str, Any] = {
            "weave": weave.to_dict(),
            "entries": [e.to_dict() for e in entries],
        }
        print(json.dumps(data, indent=2))
        return 0

    status = "active" if weave.is_active else "inactive"
    console.print(f"{escape(weave.weave_id)}: {escape(weave.label)} ({status})")
    console.print(f"  creator: {escape(weave.creator)}", style="dim")
    console.print(f"  created: {weave.created_at.isoformat()}", style="dim")

    table = Table(title=f"Entries: {escape(weave.weave_id)}")
    table.add_column("#", justify="right")
    table.add_column("data_hash", style="cyan", no_wrap=True)
    table.add_column("note")
    table.add_column("active")
    table.add_column("timestamp", style="dim")
    for e in entries:
        table.add_row(
            str(e.entry_index),
            e.data_hash[:12] + "…",
            escape(e.note),
            "yes" if e.is_active else "no",
            e.timestamp.isoformat(),
        )

    console.print(table)
    console.print(f"Entries: {len(entries)} shown")
    return 0


def run_history(
    home: Path,
    *,
    weave_id: str | None = None,
    event_type: str | None = None,
    limit: int | None = None,
    output_json: bool = False,
) -> int:
    err = Console(stderr=True)
    console = Console()
    try:
        registry = _open(home)
        if weave_id is not None:
            registry.get_weave(weave_id)
        events = registry.history(weave_id=weave_id, event_type=event_type, limit=limit)
    except WeaveRegistryError as e:
        err.print(escape(str(e)), style="bold red")
        return 1

    if output_json:
        print(json.dumps([e.to_dict() for e in events], indent=2))
        return 0

    title = f"History: {escape(weave_id)}" if weave_id else "History"
    table = Table(title=title)
    table.add_column("timestamp", style="dim")
    table.add_column("event", style="magenta")
    table.add_column("weave_id", style="cyan")
    table.add_column("actor")
    table.add_column("details")
    for e in events:
        table.add_row(
            e.timestamp.isoformat(),
            e.event_type,
            escape(e.weave_id or ""),
            escape(e.actor),
            _format_payload(e),
        )

    console.print(table)
    console.print(f"Events: {len(events)} total")
    return 0


def run_verify(home: Path, *, output_json: bool = False) -> int:
    err = Console(stderr=True)
    result = Ledger(home).verify()

    if output_json:
        print(json.dumps(result.to_dict(), indent=2))
        return 1 if result.status == "corrupt" else 0

    if result.status == "corrupt":
        err.print(f"corrupt after {result.event_count} events: {escape(str(result.error_detail))}", style="bold red")
        return 1
    if result.status == "empty":
        err.print("ledger is empty", style="yellow")
    else:
        err.print(f"ok: {result.event_count} events", style="green")
        err.print(f"head: {result.head}", style="dim")
    if result.torn_tail:
        err.print("uncommitted partial line at end of ledger (repaired on next write)", style="yellow")
    return 0
