from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Literal, TypeAlias

from .document import DocumentCodec
from .errors import InvalidParametersError

logger = logging.getLogger(__name__)

Backoff: TypeAlias = Literal["fixed", "exponential"]
Sleep: TypeAlias = Callable[[float], Awaitable[None]]


class Verb(StrEnum):
    GET = "get"
    QUERY = "query"
    PUT = "put"
    UPDATE = "update"
    DELETE = "delete"
    BATCH_WRITE = "batch_write"

    @property
    def operation(self) -> str:
        return _OPERATIONS[self]

    @classmethod
    def parse(cls, value: Verb | str) -> Verb:
        if isinstance(value, Verb):
            return value
        normalized = _ALIASES.get(str(value), str(value))
        try:
            return cls(normalized)
        except ValueError as err:
            raise InvalidParametersError(f"unsupported verb: {value}") from err


_OPERATIONS: dict[Verb, str] = {
    Verb.GET: "get_item",
    Verb.QUERY: "query",
    Verb.PUT: "put_item",
    Verb.UPDATE: "update_item",
    Verb.DELETE: "delete_item",
    Verb.BATCH_WRITE: "batch_write_item",
}

_ALIASES = {"batchWrite": "batch_write"} | {op: verb.value for verb, op in _OPERATIONS.items()}


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    delay_seconds: float = 0.1
    backoff: Backoff = "fixed"
    max_delay_seconds: float = 1.0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")
        if self.backoff not in {"fixed", "exponential"}:
            raise ValueError(f"unsupported backoff: {self.backoff}")

    def delay_for(self, attempt: int) -> float:
        if self.backoff == "fixed":
            return self.delay_seconds
        seconds = self.delay_seconds * (2.0 ** (attempt - 1))
        return min(seconds, self.max_delay_seconds)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ) -> RetryPolicy:
        default = cls()
        try:
            return cls(
                max_retries=int(environ.get("DYNAMODEL_MAX_RETRIES", default.max_retries)),
                delay_seconds=float(environ.get("DYNAMODEL_RETRY_DELAY_SECONDS", default.delay_seconds)),
                backoff=environ.get("DYNAMODEL_RETRY_BACKOFF", default.backoff),  # type: ignore[arg-type]
            )
        except ValueError as err:
            raise ValueError(f"invalid retry configuration: {err}") from err


DEFAULT_RETRY_POLICY = RetryPolicy()


def _require(params: Mapping[str, Any], name: str, verb: Verb) -> None:
    if not params.get(name):
        raise InvalidParametersError(f"{verb.value}: {name} is required")


def _validate_params(verb: Verb, params: Mapping[str, Any]) -> None:
    if not isinstance(params, Mapping):
        raise InvalidParametersError(f"{verb.value}: params must be a map")

    if verb is Verb.BATCH_WRITE:
        request_items = params.get("RequestItems")
        if not isinstance(request_items, Mapping) or not request_items:
            raise InvalidParametersError("batch_write: RequestItems is required")
        if not all(isinstance(table, str) and table for table in request_items):
            raise InvalidParametersError("batch_write: RequestItems must be keyed by table name")
        return

    _require(params, "TableName", verb)
    if verb in {Verb.GET, Verb.UPDATE, Verb.DELETE}:
        _require(params, "Key", verb)
    elif verb is Verb.PUT:
        _require(params, "Item", verb)
    elif verb is Verb.QUERY:
        _require(params, "KeyConditionExpression", verb)


def _unprocessed_count(result: Mapping[str, Any]) -> int:
    unprocessed = result.get("UnprocessedItems") or {}
    return sum(len(requests) for requests in unprocessed.values())


class StoreClient:
    """Single execution path for every store call.

    Wraps a low-level async DynamoDB client. Requests and responses use plain
    Python values; the wire form stays inside this class. Only ``batch_write``
    retries; everything else is one request and its errors propagate as-is.
    """

    def __init__(
        self,
        client: Any,
        *,
        retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self._retry_policy = retry_policy
        self._sleep = sleep
        self._codec = DocumentCodec()

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    async def execute(self, verb: Verb | str, params: Mapping[str, Any]) -> dict[str, Any]:
        parsed = Verb.parse(verb)
        _validate_params(parsed, params)

        if parsed is Verb.BATCH_WRITE:
            return await self._batch_write(params)
        return await self._call(parsed, params)

    async def _call(self, verb: Verb, params: Mapping[str, Any]) -> dict[str, Any]:
        target = params.get("TableName") or ",".join(params.get("RequestItems") or ())
        logger.debug("dynamodb %s table=%s", verb.operation, target)
        method = getattr(self._client, verb.operation)
        resp = await method(**self._codec.marshal(params))
        return self._codec.unmarshal(resp or {})

    async def _batch_write(self, params: Mapping[str, Any]) -> dict[str, Any]:
        result = await self._call(Verb.BATCH_WRITE, params)
        retries = 0

        while _unprocessed_count(result):
            if retries >= self._retry_policy.max_retries:
                logger.warning(
                    "batch_write: retry limit reached with %d unprocessed items", _unprocessed_count(result)
                )
                break

            retries += 1
            delay = self._retry_policy.delay_for(retries)
            logger.warning(
                "batch_write: %d unprocessed items, retry %d/%d in %.3fs",
                _unprocessed_count(result),
                retries,
                self._retry_policy.max_retries,
                delay,
            )
            await self._sleep(delay)
            result = await self._call(Verb.BATCH_WRITE, {"RequestItems": result["UnprocessedItems"]})

        return result
