from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

import pydantic


@runtime_checkable
class Schema(Protocol):
    def validate(self, item: Mapping[str, Any]) -> bool: ...


class PydanticSchema:
    """Schema backed by a pydantic model; an item is valid when the model accepts it."""

    def __init__(self, model_type: type[pydantic.BaseModel]) -> None:
        if not (isinstance(model_type, type) and issubclass(model_type, pydantic.BaseModel)):
            raise TypeError("model_type must be a pydantic BaseModel subclass")
        self.model_type = model_type

    def validate(self, item: Mapping[str, Any]) -> bool:
        return self.errors(item) == []

    def errors(self, item: Mapping[str, Any]) -> list[str]:
        if not isinstance(item, Mapping):
            return ["item must be a map"]
        try:
            self.model_type.model_validate(dict(item))
        except pydantic.ValidationError as err:
            return [
                f"{'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['msg']}"
                for error in err.errors()
            ]
        return []


def is_valid(item: Mapping[str, Any], schema: Schema | None) -> bool:
    if schema is None:
        return True
    return bool(schema.validate(item))
