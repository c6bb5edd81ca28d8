from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import pytest

from dynamodel_py import EntityDescriptor, Model, RetryPolicy, StoreClient, gsi
from dynamodel_py.mocks import InMemoryDynamoDBClient
from dynamodel_py.testkit import fixed_clock, no_sleep

CREATED_AT = "2024-01-01T00:00:00+00:00"

CAMPAIGNS = EntityDescriptor(table_name="campaigns", hash_key="id")
NOTES = EntityDescriptor(
    table_name="notes",
    hash_key="myHash",
    range_key="myRange",
    indexes=(gsi("byOwner", partition="ownerId", sort="createdAt"),),
)


def _store(**kwargs: Any) -> InMemoryDynamoDBClient:
    mem = InMemoryDynamoDBClient(**kwargs)
    mem.create_table("campaigns", hash_key="id")
    mem.create_table("notes", hash_key="myHash", range_key="myRange", indexes={"byOwner": ("ownerId", "createdAt")})
    return mem


def _model(mem: InMemoryDynamoDBClient, descriptor: EntityDescriptor) -> Model:
    client = StoreClient(mem, retry_policy=RetryPolicy(max_retries=1, delay_seconds=0), sleep=no_sleep)
    return Model(descriptor, client, clock=fixed_clock())


@pytest.mark.asyncio
async def test_save_update_get_round_trip_keeps_creation_time() -> None:
    campaigns = _model(_store(), CAMPAIGNS)

    await campaigns.save({"id": "k"})
    updated = await campaigns.update({"att": "x", "createdAt": "overwritten"}, "k")
    got = await campaigns.get("k")

    assert updated == {"id": "k", "att": "x", "createdAt": CREATED_AT}
    assert got == {"id": "k", "att": "x", "createdAt": CREATED_AT}


@pytest.mark.asyncio
async def test_get_projection_and_delete() -> None:
    campaigns = _model(_store(), CAMPAIGNS)
    await campaigns.save({"id": "k", "name": "spring", "body": "long"})

    assert await campaigns.get("k", options={"fields": "name", "include_fields": True}) == {"name": "spring"}
    assert await campaigns.get("k", options={"fields": "body"}) == {"id": "k", "name": "spring", "createdAt": CREATED_AT}

    await campaigns.delete("k")
    assert await campaigns.get("k") is None


@pytest.mark.asyncio
async def test_all_by_walks_every_page() -> None:
    notes = _model(_store(), NOTES)
    for i in range(5):
        await notes.save({"myHash": "h", "myRange": str(i)})
    await notes.save({"myHash": "other", "myRange": "0"})

    seen: list[str] = []
    pages = 0
    page_token: str | None = None
    while True:
        page = await notes.all_by("myHash", "h", {"limit": 2, "page": page_token})
        pages += 1
        seen.extend(item["myRange"] for item in page.items)
        if page.next_page is None:
            break
        page_token = page.next_page

    assert seen == ["0", "1", "2", "3", "4"]
    assert pages == 3


@pytest.mark.asyncio
async def test_all_by_descending_order() -> None:
    notes = _model(_store(), NOTES)
    for i in range(3):
        await notes.save({"myHash": "h", "myRange": str(i)})

    first = await notes.all_by("myHash", "h", {"limit": 2, "scan_forward": False})
    assert [item["myRange"] for item in first.items] == ["2", "1"]
    assert first.next_page is not None

    rest = await notes.all_by("myHash", "h", {"page": first.next_page, "scan_forward": False})
    assert [item["myRange"] for item in rest.items] == ["0"]
    assert rest.next_page is None


@pytest.mark.asyncio
async def test_all_by_and_count_by_on_secondary_index() -> None:
    notes = _model(_store(), NOTES)
    await notes.save_all(
        [
            {"myHash": "a", "myRange": "1", "ownerId": "o1"},
            {"myHash": "b", "myRange": "1", "ownerId": "o1"},
            {"myHash": "c", "myRange": "1", "ownerId": "o2"},
        ]
    )

    page = await notes.all_by("ownerId", "o1")
    assert sorted(item["myHash"] for item in page.items) == ["a", "b"]
    assert await notes.count_by("ownerId", "o1") == 2
    assert await notes.count_by("ownerId", "nobody") == 0
    assert await notes.count_by("myHash", "c") == 1


@pytest.mark.asyncio
async def test_index_pages_resume_from_cursor() -> None:
    notes = _model(_store(), NOTES)
    await notes.save_all([{"myHash": f"h{i}", "myRange": "1", "ownerId": "o"} for i in range(3)])

    first = await notes.all_by("ownerId", "o", {"limit": 2})
    assert first.next_page is not None
    second = await notes.all_by("ownerId", "o", {"limit": 2, "page": first.next_page})

    hashes = [item["myHash"] for item in first.items + second.items]
    assert sorted(hashes) == ["h0", "h1", "h2"]
    assert second.next_page is None


@pytest.mark.asyncio
async def test_save_all_writes_more_than_one_batch() -> None:
    mem = _store()
    notes = _model(mem, NOTES)

    resp = await notes.save_all([{"myHash": "h", "myRange": f"{i:02d}"} for i in range(30)])

    assert resp == {}
    assert len(mem.items("notes")) == 30
    assert [method for method, _ in mem.calls] == ["batch_write_item", "batch_write_item"]


@pytest.mark.asyncio
async def test_save_all_returns_items_the_store_keeps_rejecting() -> None:
    def stuck(_: str, request: Mapping[str, Any]) -> bool:
        return request["PutRequest"]["Item"]["myRange"] == {"S": "07"}

    mem = _store(unprocessed=stuck)
    notes = _model(mem, NOTES)

    resp = await notes.save_all([{"myHash": "h", "myRange": f"{i:02d}"} for i in range(30)])

    leftover = resp["UnprocessedItems"]["notes"]
    assert [r["PutRequest"]["Item"]["myRange"] for r in leftover] == ["07"]
    assert len(mem.items("notes")) == 29
    # first chunk: initial attempt plus one retry; second chunk: one attempt
    assert len(mem.calls) == 3


@pytest.mark.asyncio
async def test_save_all_retry_recovers_transient_rejections() -> None:
    attempts: dict[str, int] = {}

    def flaky(_: str, request: Mapping[str, Any]) -> bool:
        key = request["PutRequest"]["Item"]["myRange"]["S"]
        attempts[key] = attempts.get(key, 0) + 1
        return attempts[key] == 1 and key == "1"

    mem = _store(unprocessed=flaky)
    notes = _model(mem, NOTES)

    assert await notes.save_all([{"myHash": "h", "myRange": str(i)} for i in range(3)]) == {}
    assert len(mem.items("notes")) == 3


@pytest.mark.asyncio
async def test_increment_and_decrement() -> None:
    campaigns = _model(_store(), CAMPAIGNS)
    await campaigns.save({"id": "k", "sent": 1})

    assert (await campaigns.increment("sent", 2, "k"))["sent"] == 3
    assert (await campaigns.increment("sent", -5, "k"))["sent"] == -2

    after = await campaigns.increment_all("k", None, {"opens": 1, "bounces": -1})
    assert after is not None
    assert (after["sent"], after["opens"], after["bounces"]) == (-2, 1, -1)
    assert after["createdAt"] == CREATED_AT
