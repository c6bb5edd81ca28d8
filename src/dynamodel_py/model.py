from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any, TypeAlias, TypeVar

from .client import StoreClient, Verb
from .descriptor import EntityDescriptor, IndexDefinition, ModelDefinitionError
from .errors import InvalidCursorError, InvalidParametersError, ValidationError
from .keys import build_key
from .options import Options, build_options, coerce_options, refine_item, refine_items
from .query import Page, build_pagination_key, decode_cursor
from .updates import build_attribute_updates, build_increments
from .validation import is_valid

logger = logging.getLogger(__name__)

# DynamoDB BatchWriteItem accepts at most 25 requests
BATCH_WRITE_LIMIT = 25

OptionsLike: TypeAlias = Options | Mapping[str, Any] | None

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _chunked(items: Sequence[T], size: int) -> list[Sequence[T]]:
    if size <= 0:
        raise ValueError("size must be > 0")
    return [items[i : i + size] for i in range(0, len(items), size)]


class Model:
    """Generic access layer for one entity.

    Entities compose a ``Model`` with their descriptor instead of subclassing
    it; any number of models can share one ``StoreClient``.
    """

    def __init__(
        self,
        descriptor: EntityDescriptor,
        client: StoreClient | Any,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._descriptor = descriptor
        self._client = client if isinstance(client, StoreClient) else StoreClient(client)
        self._clock = clock or _utcnow

    @property
    def descriptor(self) -> EntityDescriptor:
        return self._descriptor

    @property
    def client(self) -> StoreClient:
        return self._client

    @property
    def table_name(self) -> str:
        return self._descriptor.table_name

    async def get(
        self, hash_value: Any, range_value: Any | None = None, options: OptionsLike = None
    ) -> dict[str, Any] | None:
        opts = coerce_options(options)
        params: dict[str, Any] = {
            "TableName": self.table_name,
            "Key": build_key(self._descriptor, hash_value, range_value),
        }
        params.update(build_options(opts))

        resp = await self._client.execute(Verb.GET, params)
        return refine_item(resp.get("Item"), opts)

    async def all_by(self, attribute: str, value: Any, options: OptionsLike = None) -> Page:
        opts = coerce_options(options)
        index = self._resolve_index(attribute, opts.index_name)
        params = self._query_params(attribute, value, opts, index)

        projection = build_options(opts)
        if projection:
            params["ProjectionExpression"] = projection["ProjectionExpression"]
            params["ExpressionAttributeNames"].update(projection["ExpressionAttributeNames"])
        if opts.limit is not None:
            params["Limit"] = opts.limit

        resp = await self._client.execute(Verb.QUERY, params)
        items = resp.get("Items") or []
        next_page = build_pagination_key(
            items,
            resp.get("LastEvaluatedKey"),
            self._boundary_attributes(index),
            index=index.name if index else None,
            scan_forward=opts.scan_forward,
        )
        return Page(items=refine_items(items, opts), next_page=next_page)

    async def count_by(self, attribute: str, value: Any, options: OptionsLike = None) -> int:
        opts = coerce_options(options)
        index = self._resolve_index(attribute, opts.index_name)
        params = self._query_params(attribute, value, opts, index)
        params["Select"] = "COUNT"

        total = 0
        while True:
            resp = await self._client.execute(Verb.QUERY, params)
            total += int(resp.get("Count") or 0)
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                return total
            params["ExclusiveStartKey"] = last_key

    async def save(self, item: Mapping[str, Any], *, validate: bool | None = None) -> dict[str, Any]:
        """Stamp and write one item.

        ``validate=None`` checks the item against the descriptor schema when one
        is configured; pass ``False`` to skip the check.
        """
        if self._should_validate(validate):
            self._ensure_valid(item)
        record = self._stamp(item)
        await self._client.execute(Verb.PUT, {"TableName": self.table_name, "Item": record})
        return record

    async def save_all(
        self, items: Sequence[Mapping[str, Any]], *, validate: bool | None = None
    ) -> dict[str, Any]:
        if self._should_validate(validate):
            for item in items:
                self._ensure_valid(item)
        records = [self._stamp(item) for item in items]
        if not records:
            return {}

        leftover: list[dict[str, Any]] = []
        for chunk in _chunked(records, BATCH_WRITE_LIMIT):
            requests = [{"PutRequest": {"Item": record}} for record in chunk]
            resp = await self._client.execute(Verb.BATCH_WRITE, {"RequestItems": {self.table_name: requests}})
            leftover.extend((resp.get("UnprocessedItems") or {}).get(self.table_name, []))

        if leftover:
            logger.warning("%s: save_all left %d items unprocessed", self.table_name, len(leftover))
            return {"UnprocessedItems": {self.table_name: leftover}}
        return {}

    async def update(
        self, attributes: Mapping[str, Any], hash_value: Any, range_value: Any | None = None
    ) -> dict[str, Any] | None:
        updates = build_attribute_updates(attributes, self._protected_attributes())
        return await self._update(updates, hash_value, range_value)

    async def increment(
        self, attribute: str, delta: Any, hash_value: Any, range_value: Any | None = None
    ) -> dict[str, Any] | None:
        return await self.increment_all(hash_value, range_value, {attribute: delta})

    async def increment_all(
        self, hash_value: Any, range_value: Any | None, deltas: Mapping[str, Any]
    ) -> dict[str, Any] | None:
        updates = build_increments(deltas, self._protected_attributes())
        return await self._update(updates, hash_value, range_value)

    async def delete(self, hash_value: Any, range_value: Any | None = None) -> None:
        await self._client.execute(
            Verb.DELETE,
            {"TableName": self.table_name, "Key": build_key(self._descriptor, hash_value, range_value)},
        )

    def is_valid(self, item: Mapping[str, Any]) -> bool:
        return is_valid(item, self._descriptor.schema)

    async def _update(
        self, updates: dict[str, dict[str, Any]], hash_value: Any, range_value: Any | None
    ) -> dict[str, Any] | None:
        params: dict[str, Any] = {
            "TableName": self.table_name,
            "Key": build_key(self._descriptor, hash_value, range_value),
            "ReturnValues": "ALL_NEW",
        }
        if updates:
            params["AttributeUpdates"] = updates

        resp = await self._client.execute(Verb.UPDATE, params)
        return resp.get("Attributes")

    def _query_params(
        self, attribute: str, value: Any, opts: Options, index: IndexDefinition | None
    ) -> dict[str, Any]:
        if not attribute:
            raise InvalidParametersError("query attribute is required")

        params: dict[str, Any] = {
            "TableName": self.table_name,
            "KeyConditionExpression": "#hkey = :hvalue",
            "ExpressionAttributeNames": {"#hkey": attribute},
            "ExpressionAttributeValues": {":hvalue": value},
            "ScanIndexForward": opts.scan_forward,
        }
        if index is not None:
            params["IndexName"] = index.name
        if opts.page:
            params["ExclusiveStartKey"] = self._decode_page(opts, index)
        return params

    def _decode_page(self, opts: Options, index: IndexDefinition | None) -> dict[str, Any]:
        try:
            cursor = decode_cursor(opts.page or "")
        except ValueError as err:
            raise InvalidCursorError("invalid page token") from err

        index_name = index.name if index else None
        if cursor.index != index_name:
            raise InvalidCursorError("page token does not match query index")
        expected_sort = "ASC" if opts.scan_forward else "DESC"
        if cursor.sort is not None and cursor.sort != expected_sort:
            raise InvalidCursorError("page token does not match query sort order")
        return cursor.last_key

    def _resolve_index(self, attribute: str, index_name: str | None) -> IndexDefinition | None:
        if index_name is not None:
            try:
                index = self._descriptor.index(index_name)
            except ModelDefinitionError as err:
                raise InvalidParametersError(str(err)) from err
            if index.partition != attribute:
                raise InvalidParametersError(f"index {index_name} is not partitioned by {attribute}")
            return index

        if attribute == self._descriptor.hash_key:
            return None
        return self._descriptor.index_for(attribute)

    def _boundary_attributes(self, index: IndexDefinition | None) -> tuple[str, ...]:
        names = list(self._descriptor.key_attributes)
        if index is not None:
            for name in (index.partition, index.sort):
                if name is not None and name not in names:
                    names.append(name)
        return tuple(names)

    def _protected_attributes(self) -> tuple[str, ...]:
        return (*self._descriptor.key_attributes, self._descriptor.created_at_attribute)

    def _stamp(self, item: Mapping[str, Any]) -> dict[str, Any]:
        record = dict(item)
        if record.get(self._descriptor.created_at_attribute) is None:
            record[self._descriptor.created_at_attribute] = self._clock().isoformat()
        return record

    def _should_validate(self, validate: bool | None) -> bool:
        if validate is None:
            return self._descriptor.schema is not None
        return validate

    def _ensure_valid(self, item: Mapping[str, Any]) -> None:
        if not self.is_valid(item):
            raise ValidationError(f"{self.table_name}: item failed schema validation", item=item)
