from __future__ import annotations

import pytest

from dynamodel_py import EntityDescriptor, InvalidParametersError, build_key

COMPOSITE = EntityDescriptor(table_name="recipients", hash_key="listId", range_key="id")
HASH_ONLY = EntityDescriptor(table_name="lists", hash_key="id")


def test_build_key_with_hash_and_range() -> None:
    assert build_key(COMPOSITE, "L1", "R1") == {"listId": "L1", "id": "R1"}


def test_build_key_hash_only_entity_ignores_range_value() -> None:
    assert build_key(HASH_ONLY, "L1") == {"id": "L1"}
    assert build_key(HASH_ONLY, "L1", "ignored") == {"id": "L1"}


def test_build_key_missing_range_value_leaves_it_out() -> None:
    assert build_key(COMPOSITE, "L1") == {"listId": "L1"}


def test_build_key_requires_hash_value() -> None:
    with pytest.raises(InvalidParametersError, match="listId is required"):
        build_key(COMPOSITE, None, "R1")


def test_build_key_keeps_falsy_range_values() -> None:
    assert build_key(COMPOSITE, "L1", 0) == {"listId": "L1", "id": 0}
