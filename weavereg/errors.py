"""
Typed errors for the weave registry.

Every rejected operation raises one of these before anything is written,
so a failure never leaves a partial ledger line or a notification behind.
Each domain error also subclasses the closest builtin so callers that only
know about ValueError/LookupError/etc. still catch it.
"""

from __future__ import annotations


class WeaveRegistryError(Exception):
    """Base class for all registry failures."""

    code = "error"

    def __init__(self, message: str, *, operation: str | None = None):
        super().__init__(message)
        self.message = message
        self.operation = operation

    def __str__(self) -> str:
        if self.operation:
            return f"{self.operation}: {self.message}"
        return self.message


class InvalidArgumentError(WeaveRegistryError, ValueError):
    """Malformed input or a zero/sentinel value."""

    code = "invalid_argument"


class ConflictError(WeaveRegistryError):
    """A uniqueness rule was violated (weave id already taken)."""

    code = "conflict"


class NotFoundError(WeaveRegistryError, LookupError):
    """The referenced weave does not exist."""

    code = "not_found"


class OutOfRangeError(WeaveRegistryError, IndexError):
    """Entry index is not below the weave's current entry count."""

    code = "out_of_range"


class AuthorizationError(WeaveRegistryError, PermissionError):
    """Caller lacks the administrator or weave-creator authority."""

    code = "authorization"


class InvalidStateError(WeaveRegistryError):
    """Operation not permitted in the current lifecycle state."""

    code = "invalid_state"


class LedgerError(WeaveRegistryError):
    """Storage-level failure reading or writing the ledger."""

    code = "ledger"


class LedgerCorruptError(LedgerError):
    """Ledger content fails checksum, chain, or consistency checks."""

    code = "ledger_corrupt"
