from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

from .mocks import ANY, FakeDynamoDBClient, InMemoryDynamoDBClient, client_error


async def no_sleep(_: float) -> None:
    return None


def fixed_clock(moment: datetime | None = None) -> Callable[[], datetime]:
    fixed = moment or datetime(2024, 1, 1, tzinfo=UTC)

    def clock() -> datetime:
        return fixed

    return clock


__all__ = [
    "ANY",
    "FakeDynamoDBClient",
    "InMemoryDynamoDBClient",
    "client_error",
    "fixed_clock",
    "no_sleep",
]
