from __future__ import annotations

from collections.abc import Collection, Mapping
from decimal import Decimal
from enum import StrEnum
from typing import Any

from .errors import InvalidParametersError


class UpdateAction(StrEnum):
    PUT = "PUT"
    ADD = "ADD"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def build_attribute_updates(
    attributes: Mapping[str, Any], protected: Collection[str] = ()
) -> dict[str, dict[str, Any]]:
    # protected names (keys) are dropped so callers can pass whole records
    return {
        name: {"Action": UpdateAction.PUT.value, "Value": value}
        for name, value in attributes.items()
        if name not in protected
    }


def build_increments(deltas: Mapping[str, Any], protected: Collection[str] = ()) -> dict[str, dict[str, Any]]:
    out: dict[str, dict[str, Any]] = {}
    for name, delta in deltas.items():
        if name in protected:
            continue
        if not _is_number(delta):
            raise InvalidParametersError(f"increment for {name} must be a number")
        out[name] = {"Action": UpdateAction.ADD.value, "Value": delta}
    return out
