"""Tests for weave id, hash, and identity value rules."""

from __future__ import annotations

import pytest

from weavereg.errors import InvalidArgumentError
from weavereg.identity import (
    compute_data_hash,
    is_zero_identity,
    is_zero_weave_id,
    normalize_data_hash,
    normalize_identity,
    normalize_weave_id,
)


@pytest.mark.parametrize("value", ["", "0x0", "0x0000", "0X" + "0" * 64, None])
def test_zero_weave_ids(value) -> None:
    assert is_zero_weave_id(value)


@pytest.mark.parametrize("value", ["w1", "0x01", "docs-2026", "10", "0", "000", "0x", "x0"])
def test_nonzero_weave_ids(value) -> None:
    assert not is_zero_weave_id(value)
    assert normalize_weave_id(value) == value


def test_weave_id_size_limit_counts_bytes() -> None:
    assert normalize_weave_id("x" * 32) == "x" * 32
    with pytest.raises(InvalidArgumentError):
        normalize_weave_id("é" * 17)  # 34 bytes


def test_weave_id_must_be_text() -> None:
    with pytest.raises(InvalidArgumentError):
        normalize_weave_id(b"w1")


def test_hash_normalization() -> None:
    digest = compute_data_hash("hello")
    assert normalize_data_hash("0x" + digest.upper()) == digest
    assert normalize_data_hash(f"  {digest}  ") == digest


@pytest.mark.parametrize("value", ["0" * 64, "0x" + "0" * 64, "abc", "zz" * 32, "ab" * 33, 123])
def test_invalid_hashes(value) -> None:
    with pytest.raises(InvalidArgumentError):
        normalize_data_hash(value)


def test_identities() -> None:
    assert is_zero_identity("")
    assert is_zero_identity("0x" + "0" * 40)
    assert not is_zero_identity("human:alice")
    assert is_zero_identity("   ")
    assert normalize_identity(" human:alice ") == " human:alice "
    with pytest.raises(InvalidArgumentError, match="owner"):
        normalize_identity("", role="owner")


def test_compute_data_hash_is_canonical_for_dicts() -> None:
    assert compute_data_hash({"a": 1, "b": 2}) == compute_data_hash({"b": 2, "a": 1})
    assert compute_data_hash("x") == compute_data_hash(b"x")
    assert len(compute_data_hash(b"")) == 64
