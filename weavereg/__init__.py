"""
Weave registry.

Groups content hashes into named, creator-owned collections ("weaves") and
keeps an append-only, independently revocable history of entries per weave.

- Append-only event ledger (never modified), checksum-chained for tamper evidence
- State computed by folding events; nothing is ever physically deleted
- Soft delete: weaves and entries are toggled inactive, never removed
- Creator-only status changes; anyone may append to an active weave
- A single administrator whose only power is transferring the role
"""

__version__ = "0.1.0"

from .errors import (
    AuthorizationError,
    ConflictError,
    InvalidArgumentError,
    InvalidStateError,
    LedgerCorruptError,
    LedgerError,
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
)
from .identity import compute_data_hash
from .ledger import Ledger, LedgerVerifyResult
from .registry import WeaveRegistry
from .state import RegistryState, Weave, WeaveEntry

__all__ = [
    "__version__",
    # Errors
    "WeaveRegistryError",
    "InvalidArgumentError",
    "ConflictError",
    "NotFoundError",
    "OutOfRangeError",
    "AuthorizationError",
    "InvalidStateError",
    "LedgerError",
    "LedgerCorruptError",
    # Events
    "RegistryEvent",
    "WEAVE_CREATED",
    "WEAVE_STATUS_UPDATED",
    "ENTRY_ADDED",
    "ENTRY_STATUS_UPDATED",
    "OWNERSHIP_TRANSFERRED",
    # Storage
    "Ledger",
    "LedgerVerifyResult",
    # State
    "RegistryState",
    "Weave",
    "WeaveEntry",
    # Facade
    "WeaveRegistry",
    "compute_data_hash",
]
