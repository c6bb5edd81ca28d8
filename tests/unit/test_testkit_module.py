from __future__ import annotations

from datetime import UTC, datetime

import pytest

from dynamodel_py.testkit import fixed_clock, no_sleep


@pytest.mark.asyncio
async def test_no_sleep_is_noop() -> None:
    await no_sleep(0.0)
    await no_sleep(1.0)


def test_fixed_clock_returns_the_same_moment() -> None:
    clock = fixed_clock()
    assert clock() == datetime(2024, 1, 1, tzinfo=UTC)
    assert clock() is clock()


def test_fixed_clock_accepts_a_moment() -> None:
    moment = datetime(2030, 6, 1, 12, 30, tzinfo=UTC)
    assert fixed_clock(moment)().isoformat() == "2030-06-01T12:30:00+00:00"
