"""
Value rules for weave ids, data hashes, and caller identities.

Weave ids are fixed-size (32 bytes of UTF-8), hashes are 32-byte commitments
written as hex, identities are opaque strings. Each kind has a zero value
that is never valid input:

- weave id: the empty string, or the hex form `0x` followed only by `0`s.
  Text such as "0", "000" or "0x" is an ordinary id.
- identity: the empty (or all-whitespace) string, or `0x` followed only by
  `0`s (the zero address).
- hash: 64 hex digits that are all `0`.

Identities are compared exactly as given. Validation never rewrites them,
so " human:alice" and "human:alice" are two different identities.
"""

from __future__ import annotations

import hashlib
import json
import re
from typing import Any

from .errors import InvalidArgumentError

WEAVE_ID_MAX_BYTES = 32
HASH_HEX_LENGTH = 64

_ZERO_HEX_RE = re.compile(r"^0x0+$", re.IGNORECASE)
_HEX_RE = re.compile(r"^[0-9a-f]+$")


def _strip_hex_prefix(value: str) -> str:
    if value[:2].lower() == "0x":
        return value[2:]
    return value


def is_zero_weave_id(weave_id: str | None) -> bool:
    """True for the empty id or the all-zero hex id."""
    if weave_id is None:
        return True
    return weave_id == "" or bool(_ZERO_HEX_RE.match(weave_id))


def is_zero_identity(identity: str | None) -> bool:
    """True for a missing identity or the all-zero address."""
    if identity is None:
        return True
    identity = identity.strip()
    return identity == "" or bool(_ZERO_HEX_RE.match(identity))


def is_zero_hash(data_hash: str | None) -> bool:
    if data_hash is None:
        return True
    digits = _strip_hex_prefix(data_hash.strip())
    return set(digits) <= {"0"}


def normalize_weave_id(weave_id: Any, *, operation: str | None = None) -> str:
    """
    Validate a weave id and return it unchanged.

    Raises:
        InvalidArgumentError: if the id is not text, is zero, or exceeds
            the fixed identifier size.
    """
    if not isinstance(weave_id, str):
        raise InvalidArgumentError(f"weave id must be a string, got {type(weave_id).__name__}", operation=operation)
    if is_zero_weave_id(weave_id):
        raise InvalidArgumentError("weave id must be non-zero", operation=operation)
    if len(weave_id.encode("utf-8")) > WEAVE_ID_MAX_BYTES:
        raise InvalidArgumentError(
            f"weave id exceeds {WEAVE_ID_MAX_BYTES} bytes: {weave_id!r}",
            operation=operation,
        )
    return weave_id


def normalize_data_hash(data_hash: Any, *, operation: str | None = None) -> str:
    """
    Validate a 32-byte hex commitment.

    Returns the lowercase hex digits without a `0x` prefix.
    """
    if not isinstance(data_hash, str):
        raise InvalidArgumentError(f"data hash must be a hex string, got {type(data_hash).__name__}", operation=operation)
    digits = _strip_hex_prefix(data_hash.strip()).lower()
    if len(digits) != HASH_HEX_LENGTH or not _HEX_RE.match(digits):
        raise InvalidArgumentError(
            f"data hash must be {HASH_HEX_LENGTH} hex digits: {data_hash!r}",
            operation=operation,
        )
    if is_zero_hash(digits):
        raise InvalidArgumentError("data hash must be non-zero", operation=operation)
    return digits


def normalize_identity(identity: Any, *, operation: str | None = None, role: str = "caller") -> str:
    """Validate a caller/owner identity and return it unchanged."""
    if not isinstance(identity, str):
        raise InvalidArgumentError(f"{role} must be a string", operation=operation)
    if is_zero_identity(identity):
        raise InvalidArgumentError(f"{role} must be a non-zero identity", operation=operation)
    return identity


def compute_data_hash(content: bytes | str | dict[str, Any]) -> str:
    """
    Compute the sha256 commitment of some content.

    Dicts are hashed over their canonical JSON form so that key order does
    not change the commitment.
    """
    if isinstance(content, dict):
        content = json.dumps(content, sort_keys=True, separators=(",", ":"))
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()
