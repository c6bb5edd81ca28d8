from __future__ import annotations

import inspect
import logging
import os
import time
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

import aioboto3
from botocore.config import Config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AwsCallMetric:
    service: str
    operation: str
    seconds: float
    ok: bool


def is_lambda_environment(environ: Mapping[str, str] = os.environ) -> bool:
    return bool(
        environ.get("AWS_LAMBDA_FUNCTION_NAME") or "AWS_Lambda" in (environ.get("AWS_EXECUTION_ENV") or "")
    )


def create_boto_config(
    *,
    connect_timeout: float = 1.0,
    read_timeout: float = 3.0,
    max_attempts: int = 3,
) -> Config:
    return Config(
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
        retries={"max_attempts": max_attempts, "mode": "adaptive"},
    )


class _InstrumentedClient:
    def __init__(self, client: Any, service: str, on_call: Callable[[AwsCallMetric], None]) -> None:
        self._client = client
        self._service = service
        self._on_call = on_call

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self._client, name)
        if name.startswith("_") or not inspect.iscoroutinefunction(attr):
            return attr

        async def wrapped(*args: Any, **kwargs: Any) -> Any:
            start = time.monotonic()
            try:
                out = await attr(*args, **kwargs)
            except Exception:
                self._report(name, start, ok=False)
                raise
            self._report(name, start, ok=True)
            return out

        return wrapped

    def _report(self, operation: str, start: float, *, ok: bool) -> None:
        self._on_call(
            AwsCallMetric(
                service=self._service,
                operation=operation,
                seconds=time.monotonic() - start,
                ok=ok,
            )
        )


def instrument_client(
    client: Any,
    *,
    service: str,
    on_call: Callable[[AwsCallMetric], None],
) -> Any:
    return _InstrumentedClient(client, service, on_call)


@asynccontextmanager
async def open_dynamodb_client(
    *,
    region: str | None = None,
    endpoint_url: str | None = None,
    config: Config | None = None,
    session: Any | None = None,
    metrics: Callable[[AwsCallMetric], None] | None = None,
) -> AsyncIterator[Any]:
    """Yield an async DynamoDB client, closed when the block exits."""
    sess = session or aioboto3.Session(region_name=region)
    if config is None and is_lambda_environment():
        config = create_boto_config()

    logger.debug("opening dynamodb client region=%s endpoint=%s", region, endpoint_url)
    async with sess.client("dynamodb", region_name=region, endpoint_url=endpoint_url, config=config) as client:
        if metrics is not None:
            yield instrument_client(client, service="dynamodb", on_call=metrics)
        else:
            yield client
