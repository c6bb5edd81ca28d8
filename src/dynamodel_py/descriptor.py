from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .validation import Schema


_TABLE_HASH_KEY = "__TABLE_HASH_KEY__"


class ModelDefinitionError(ValueError):
    pass


@dataclass(frozen=True)
class IndexDefinition:
    name: str
    partition: str
    sort: str | None = None


def gsi(name: str, *, partition: str, sort: str | None = None) -> IndexDefinition:
    return IndexDefinition(name=name, partition=partition, sort=sort)


def lsi(name: str, *, sort: str) -> IndexDefinition:
    return IndexDefinition(name=name, partition=_TABLE_HASH_KEY, sort=sort)


@dataclass(frozen=True)
class EntityDescriptor:
    """Static metadata for one entity stored in one table.

    ``range_key`` is ``None`` for hash-only tables. ``schema`` is any object
    with a ``validate(item) -> bool`` method.
    """

    table_name: str
    hash_key: str
    range_key: str | None = None
    schema: Schema | None = None
    indexes: Sequence[IndexDefinition] = field(default_factory=tuple)
    created_at_attribute: str = "createdAt"

    def __post_init__(self) -> None:
        if not self.table_name:
            raise ModelDefinitionError("table_name is required")
        if not self.hash_key:
            raise ModelDefinitionError("hash_key is required")
        if self.range_key is not None and not self.range_key:
            raise ModelDefinitionError("range_key must be a non-empty name or None")
        if self.range_key == self.hash_key:
            raise ModelDefinitionError("range_key must differ from hash_key")

        resolved: list[IndexDefinition] = []
        seen: set[str] = set()
        for index in self.indexes:
            if index.name in seen:
                raise ModelDefinitionError(f"duplicate index name: {index.name}")
            seen.add(index.name)
            if index.partition == _TABLE_HASH_KEY:
                index = IndexDefinition(name=index.name, partition=self.hash_key, sort=index.sort)
            if not index.partition:
                raise ModelDefinitionError(f"index {index.name}: partition is required")
            resolved.append(index)
        object.__setattr__(self, "indexes", tuple(resolved))

    @property
    def key_attributes(self) -> tuple[str, ...]:
        if self.range_key is None:
            return (self.hash_key,)
        return (self.hash_key, self.range_key)

    def index(self, name: str) -> IndexDefinition:
        for index in self.indexes:
            if index.name == name:
                return index
        raise ModelDefinitionError(f"unknown index: {name}")

    def index_for(self, attribute: str) -> IndexDefinition | None:
        for index in self.indexes:
            if index.partition == attribute:
                return index
        return None
