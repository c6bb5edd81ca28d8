from __future__ import annotations

from typing import Any

from .descriptor import EntityDescriptor
from .errors import InvalidParametersError


def build_key(descriptor: EntityDescriptor, hash_value: Any, range_value: Any | None = None) -> dict[str, Any]:
    if hash_value is None:
        raise InvalidParametersError(f"{descriptor.hash_key} is required")

    key: dict[str, Any] = {descriptor.hash_key: hash_value}
    # a missing range value is the caller's contract; the store rejects it
    if descriptor.range_key is not None and range_value is not None:
        key[descriptor.range_key] = range_value
    return key
