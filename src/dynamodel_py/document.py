from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from boto3.dynamodb.types import Binary, TypeDeserializer, TypeSerializer


def _to_wire_value(value: Any) -> Any:
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, Mapping):
        return {str(k): _to_wire_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_wire_value(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return {_to_wire_value(v) for v in value}
    return value


def _from_wire_value(value: Any) -> Any:
    if isinstance(value, Binary):
        return value.value
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return int(value)
        return value
    if isinstance(value, dict):
        return {k: _from_wire_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_wire_value(v) for v in value]
    if isinstance(value, set):
        return {_from_wire_value(v) for v in value}
    return value


class DocumentCodec:
    """Converts plain Python request/response maps to and from the typed wire form."""

    def __init__(self) -> None:
        self._serializer = TypeSerializer()
        self._deserializer = TypeDeserializer()

    def serialize(self, value: Any) -> dict[str, Any]:
        return self._serializer.serialize(_to_wire_value(value))

    def deserialize(self, av: Mapping[str, Any]) -> Any:
        return _from_wire_value(self._deserializer.deserialize(dict(av)))

    def serialize_map(self, item: Mapping[str, Any]) -> dict[str, Any]:
        return {str(k): self.serialize(v) for k, v in item.items()}

    def deserialize_map(self, item: Mapping[str, Any]) -> dict[str, Any]:
        return {str(k): self.deserialize(v) for k, v in item.items()}

    def marshal(self, params: Mapping[str, Any]) -> dict[str, Any]:
        req = dict(params)
        for name in ("Key", "Item", "ExclusiveStartKey"):
            if req.get(name) is not None:
                req[name] = self.serialize_map(req[name])
        if req.get("ExpressionAttributeValues"):
            req["ExpressionAttributeValues"] = self.serialize_map(req["ExpressionAttributeValues"])
        if req.get("AttributeUpdates"):
            req["AttributeUpdates"] = {
                name: self._marshal_attribute_update(update) for name, update in req["AttributeUpdates"].items()
            }
        if req.get("RequestItems"):
            req["RequestItems"] = {
                table: [self._marshal_write_request(r) for r in requests]
                for table, requests in req["RequestItems"].items()
            }
        return req

    def unmarshal(self, response: Mapping[str, Any]) -> dict[str, Any]:
        out = dict(response)
        for name in ("Item", "Attributes", "LastEvaluatedKey"):
            if out.get(name):
                out[name] = self.deserialize_map(out[name])
        if "Items" in out:
            out["Items"] = [self.deserialize_map(item) for item in out.get("Items") or []]
        if out.get("UnprocessedItems"):
            out["UnprocessedItems"] = {
                table: [self._unmarshal_write_request(r) for r in requests]
                for table, requests in out["UnprocessedItems"].items()
            }
        # boto response metadata is transport detail
        out.pop("ResponseMetadata", None)
        return out

    def _marshal_attribute_update(self, update: Mapping[str, Any]) -> dict[str, Any]:
        out = dict(update)
        if "Value" in out:
            out["Value"] = self.serialize(out["Value"])
        return out

    def _marshal_write_request(self, request: Mapping[str, Any]) -> dict[str, Any]:
        if "PutRequest" in request:
            return {"PutRequest": {"Item": self.serialize_map(request["PutRequest"]["Item"])}}
        if "DeleteRequest" in request:
            return {"DeleteRequest": {"Key": self.serialize_map(request["DeleteRequest"]["Key"])}}
        return dict(request)

    def _unmarshal_write_request(self, request: Mapping[str, Any]) -> dict[str, Any]:
        if "PutRequest" in request:
            return {"PutRequest": {"Item": self.deserialize_map(request["PutRequest"]["Item"])}}
        if "DeleteRequest" in request:
            return {"DeleteRequest": {"Key": self.deserialize_map(request["DeleteRequest"]["Key"])}}
        return dict(request)
