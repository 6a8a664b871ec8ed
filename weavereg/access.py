"""
Identity & access checks for the weave registry.

Two authority scopes exist:

- Administrator: the single registry-wide owner. It may only transfer the
  administrator role; it holds no authority over any weave.
- Weave creator: the identity recorded on a weave at creation. It alone may
  toggle the weave's status and the status of any of its entries.

Appending entries is deliberately ungated: any identity may add to an active
weave it did not create.

The checks are plain functions over (stored authority, caller) so that no
component below the registry facade needs ambient caller context.
"""

from __future__ import annotations

from .errors import AuthorizationError
from .state import Weave


def is_administrator(owner: str | None, caller: str) -> bool:
    """True iff `caller` is the current owner. An uninitialized registry has none."""
    return owner is not None and caller == owner


def is_weave_creator(weave: Weave | None, caller: str) -> bool:
    """True iff the weave exists and `caller` created it."""
    return weave is not None and caller == weave.creator


def require_administrator(owner: str | None, caller: str, *, operation: str | None = None) -> None:
    if not is_administrator(owner, caller):
        raise AuthorizationError(f"{caller!r} is not the registry administrator", operation=operation)


def require_weave_creator(weave: Weave, caller: str, *, operation: str | None = None) -> None:
    """
    Require creator authority over `weave`.

    The administrator gets no override here; weave-level authority is fully
    delegated to the creator.
    """
    if not is_weave_creator(weave, caller):
        raise AuthorizationError(
            f"{caller!r} is not the creator of weave {weave.weave_id!r}",
            operation=operation,
        )
