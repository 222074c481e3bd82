"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest

from didl import Nat, Opt, Rec, Record, Text, Variant


@pytest.fixture
def person_type() -> Record:
    """Record with one required and one optional field."""
    return Record({"name": Text, "age": Opt(Nat)})


@pytest.fixture
def result_type() -> Variant:
    """Two-armed variant."""
    return Variant({"ok": Nat, "err": Text})


@pytest.fixture
def linked_list_type() -> Rec:
    """Self-referential node: record {value: nat; next: opt node}."""
    node = Rec()
    node.fill(Record({"value": Nat, "next": Opt(node)}))
    return node


def _build_list(depth: int) -> dict:
    value: dict = {"value": depth, "next": []}
    for i in range(depth - 1, -1, -1):
        value = {"value": i, "next": [value]}
    return value


@pytest.fixture
def make_list():
    """Factory for linked list values with ``depth`` nodes after the head."""
    return _build_list
