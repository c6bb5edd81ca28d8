from __future__ import annotations

import copy
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from boto3.dynamodb.types import TypeDeserializer
from botocore.exceptions import ClientError


class _AnySentinel:
    def __repr__(self) -> str:  # pragma: no cover
        return "ANY"


ANY: Any = _AnySentinel()


def _assert_match(expected: Any, actual: Any, *, path: str) -> None:
    if expected is ANY:
        return

    if isinstance(expected, dict):
        if not isinstance(actual, dict):
            raise AssertionError(f"{path}: expected dict, got {type(actual).__name__}")
        for k, v in expected.items():
            if k not in actual:
                raise AssertionError(f"{path}: missing key {k!r}")
            _assert_match(v, actual[k], path=f"{path}.{k}")
        return

    if isinstance(expected, list):
        if not isinstance(actual, list):
            raise AssertionError(f"{path}: expected list, got {type(actual).__name__}")
        if len(expected) != len(actual):
            raise AssertionError(f"{path}: expected {len(expected)} items, got {len(actual)}")
        for i, (e, a) in enumerate(zip(expected, actual, strict=True)):
            _assert_match(e, a, path=f"{path}[{i}]")
        return

    if expected != actual:
        raise AssertionError(f"{path}: expected {expected!r}, got {actual!r}")


@dataclass(frozen=True)
class ExpectedCall:
    method: str
    expected: Mapping[str, Any] | Callable[[Mapping[str, Any]], None] | None = None
    response: Mapping[str, Any] | None = None
    error: Exception | None = None


class FakeDynamoDBClient:
    """Scripted async client: each call must match the next expectation."""

    def __init__(self) -> None:
        self._expected: list[ExpectedCall] = []
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def expect(
        self,
        method: str,
        expected: Mapping[str, Any] | Callable[[Mapping[str, Any]], None] | None = None,
        *,
        response: Mapping[str, Any] | None = None,
        error: Exception | None = None,
    ) -> None:
        self._expected.append(ExpectedCall(method=method, expected=expected, response=response, error=error))

    def assert_no_pending(self) -> None:
        if self._expected:
            raise AssertionError(f"pending expected calls: {self._expected!r}")

    def _handle(self, method: str, req: dict[str, Any]) -> Mapping[str, Any]:
        self.calls.append((method, copy.deepcopy(req)))
        if not self._expected:
            raise AssertionError(f"unexpected call: {method}")

        call = self._expected.pop(0)
        if call.method != method:
            raise AssertionError(f"expected {call.method}, got {method}")

        if callable(call.expected):
            call.expected(req)
        elif call.expected is not None:
            _assert_match(dict(call.expected), req, path=method)

        if call.error is not None:
            raise call.error

        return copy.deepcopy(dict(call.response or {}))

    async def put_item(self, **kwargs: Any) -> Mapping[str, Any]:
        return self._handle("put_item", kwargs)

    async def get_item(self, **kwargs: Any) -> Mapping[str, Any]:
        return self._handle("get_item", kwargs)

    async def update_item(self, **kwargs: Any) -> Mapping[str, Any]:
        return self._handle("update_item", kwargs)

    async def delete_item(self, **kwargs: Any) -> Mapping[str, Any]:
        return self._handle("delete_item", kwargs)

    async def query(self, **kwargs: Any) -> Mapping[str, Any]:
        return self._handle("query", kwargs)

    async def batch_write_item(self, **kwargs: Any) -> Mapping[str, Any]:
        return self._handle("batch_write_item", kwargs)


def client_error(code: str, message: str = "", operation: str = "Operation") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message or code}}, operation)


_KEY_CONDITION = re.compile(r"^\s*(#?[\w-]+)\s*=\s*(:[\w-]+)\s*$")
_deserializer = TypeDeserializer()


def _plain(av: Mapping[str, Any]) -> Any:
    return _deserializer.deserialize(dict(av))


def _sort_value(av: Mapping[str, Any] | None) -> tuple[int, Any]:
    if av is None:
        return (0, "")
    value = _plain(av)
    if isinstance(value, Decimal):
        return (1, value)
    if isinstance(value, (bytes, bytearray)):
        return (3, bytes(value))
    return (2, str(value))


@dataclass
class _MemoryTable:
    hash_key: str
    range_key: str | None
    indexes: dict[str, tuple[str, str | None]]
    items: dict[tuple[Any, ...], dict[str, Any]] = field(default_factory=dict)

    @property
    def key_attributes(self) -> tuple[str, ...]:
        return (self.hash_key,) if self.range_key is None else (self.hash_key, self.range_key)

    def identity(self, key: Mapping[str, Any]) -> tuple[Any, ...]:
        if set(key) != set(self.key_attributes):
            raise client_error("ValidationException", "The provided key element does not match the schema")
        return tuple(_sort_value(key[name]) for name in self.key_attributes)

    def key_of(self, item: Mapping[str, Any]) -> dict[str, Any]:
        return {name: item[name] for name in self.key_attributes if name in item}


class InMemoryDynamoDBClient:
    """Async in-memory stand-in for the low-level DynamoDB client.

    Supports the wire-form subset the access layer emits. ``unprocessed`` may
    return ``True`` for a (table, request) pair to leave it unprocessed on
    that attempt.
    """

    def __init__(
        self,
        *,
        unprocessed: Callable[[str, Mapping[str, Any]], bool] | None = None,
    ) -> None:
        self._tables: dict[str, _MemoryTable] = {}
        self._unprocessed = unprocessed
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def create_table(
        self,
        name: str,
        *,
        hash_key: str,
        range_key: str | None = None,
        indexes: Mapping[str, tuple[str, str | None]] | None = None,
    ) -> None:
        self._tables[name] = _MemoryTable(hash_key=hash_key, range_key=range_key, indexes=dict(indexes or {}))

    def items(self, table_name: str) -> list[dict[str, Any]]:
        return [copy.deepcopy(item) for item in self._table(table_name).items.values()]

    def _table(self, name: str) -> _MemoryTable:
        table = self._tables.get(name)
        if table is None:
            raise client_error("ResourceNotFoundException", f"Requested resource not found: {name}")
        return table

    def _record(self, method: str, req: Mapping[str, Any]) -> None:
        self.calls.append((method, copy.deepcopy(dict(req))))

    async def get_item(self, **req: Any) -> dict[str, Any]:
        self._record("get_item", req)
        table = self._table(req["TableName"])
        item = table.items.get(table.identity(req["Key"]))
        if item is None:
            return {}
        return {"Item": _project(item, req.get("ProjectionExpression"), req.get("ExpressionAttributeNames"))}

    async def put_item(self, **req: Any) -> dict[str, Any]:
        self._record("put_item", req)
        table = self._table(req["TableName"])
        item = req["Item"]
        table.items[table.identity(table.key_of(item))] = copy.deepcopy(dict(item))
        return {}

    async def delete_item(self, **req: Any) -> dict[str, Any]:
        self._record("delete_item", req)
        table = self._table(req["TableName"])
        table.items.pop(table.identity(req["Key"]), None)
        return {}

    async def update_item(self, **req: Any) -> dict[str, Any]:
        self._record("update_item", req)
        table = self._table(req["TableName"])
        identity = table.identity(req["Key"])
        item = copy.deepcopy(table.items.get(identity) or dict(req["Key"]))

        for name, update in (req.get("AttributeUpdates") or {}).items():
            if name in table.key_attributes:
                raise client_error(
                    "ValidationException", f"Cannot update attribute {name}. This attribute is part of the key"
                )
            _apply_attribute_update(item, name, update)

        table.items[identity] = item
        if req.get("ReturnValues") == "ALL_NEW":
            return {"Attributes": copy.deepcopy(item)}
        return {}

    async def query(self, **req: Any) -> dict[str, Any]:
        self._record("query", req)
        table = self._table(req["TableName"])
        names = dict(req.get("ExpressionAttributeNames") or {})
        values = dict(req.get("ExpressionAttributeValues") or {})

        match = _KEY_CONDITION.match(req.get("KeyConditionExpression") or "")
        if match is None:
            raise client_error("ValidationException", "Unsupported key condition")
        attribute = names.get(match.group(1), match.group(1))
        expected = values.get(match.group(2))
        if expected is None:
            raise client_error("ValidationException", f"Missing value for {match.group(2)}")

        partition, sort = table.hash_key, table.range_key
        index_name = req.get("IndexName")
        if index_name is not None:
            if index_name not in table.indexes:
                raise client_error("ValidationException", f"The table does not have the index: {index_name}")
            partition, sort = table.indexes[index_name]
        if attribute != partition:
            raise client_error("ValidationException", "Query condition missed key schema element")

        boundary_names = list(table.key_attributes)
        for name in (partition, sort):
            if name is not None and name not in boundary_names:
                boundary_names.append(name)

        def order(item: Mapping[str, Any]) -> tuple[Any, ...]:
            return (_sort_value(item.get(sort)) if sort else (0, ""), table.identity(table.key_of(item)))

        matches = sorted(
            (item for item in table.items.values() if item.get(attribute) == expected),
            key=order,
            reverse=not req.get("ScanIndexForward", True),
        )

        start_key = req.get("ExclusiveStartKey")
        if start_key:
            start = table.identity(table.key_of(start_key))
            for i, item in enumerate(matches):
                if table.identity(table.key_of(item)) == start:
                    matches = matches[i + 1 :]
                    break

        page = matches
        last_key: dict[str, Any] | None = None
        limit = req.get("Limit")
        if limit is not None and len(matches) > limit:
            page = matches[:limit]
            last_key = {name: page[-1][name] for name in boundary_names if name in page[-1]}

        out: dict[str, Any] = {"Count": len(page), "ScannedCount": len(page)}
        if req.get("Select") != "COUNT":
            out["Items"] = [_project(item, req.get("ProjectionExpression"), names) for item in page]
        if last_key is not None:
            out["LastEvaluatedKey"] = last_key
        return out

    async def batch_write_item(self, **req: Any) -> dict[str, Any]:
        self._record("batch_write_item", req)
        request_items: Mapping[str, Sequence[Any]] = req["RequestItems"]
        if sum(len(requests) for requests in request_items.values()) > 25:
            raise client_error("ValidationException", "Too many items requested for the BatchWriteItem call")

        unprocessed: dict[str, list[Any]] = {}
        for table_name, requests in request_items.items():
            table = self._table(table_name)
            for request in requests:
                if self._unprocessed is not None and self._unprocessed(table_name, request):
                    unprocessed.setdefault(table_name, []).append(copy.deepcopy(request))
                    continue
                if "PutRequest" in request:
                    item = request["PutRequest"]["Item"]
                    table.items[table.identity(table.key_of(item))] = copy.deepcopy(dict(item))
                elif "DeleteRequest" in request:
                    table.items.pop(table.identity(request["DeleteRequest"]["Key"]), None)

        return {"UnprocessedItems": unprocessed}


def _project(
    item: Mapping[str, Any], projection: str | None, names: Mapping[str, str] | None
) -> dict[str, Any]:
    if not projection:
        return copy.deepcopy(dict(item))
    wanted = [(names or {}).get(ref.strip(), ref.strip()) for ref in projection.split(",")]
    return {name: copy.deepcopy(item[name]) for name in wanted if name in item}


def _apply_attribute_update(item: dict[str, Any], name: str, update: Mapping[str, Any]) -> None:
    action = update.get("Action", "PUT")
    value = update.get("Value")

    if action == "PUT":
        item[name] = copy.deepcopy(value)
        return

    if action == "ADD":
        if value is None or len(value) != 1:
            raise client_error("ValidationException", f"ADD requires a value for {name}")
        (kind, operand), *_ = value.items()
        if kind == "N":
            current = Decimal(item.get(name, {}).get("N", "0"))
            item[name] = {"N": str(current + Decimal(operand))}
            return
        raise client_error("ValidationException", f"ADD is not supported for type {kind}")

    raise client_error("ValidationException", f"Unsupported action: {action}")
