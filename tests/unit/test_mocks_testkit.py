from __future__ import annotations

import pytest
from botocore.exceptions import ClientError

from dynamodel_py.mocks import ANY, FakeDynamoDBClient, InMemoryDynamoDBClient, client_error


@pytest.mark.asyncio
async def test_fake_dynamodb_client_records_and_matches_put_item() -> None:
    client = FakeDynamoDBClient()
    client.expect("put_item", {"TableName": "notes", "Item": ANY})

    await client.put_item(TableName="notes", Item={"pk": {"S": "A"}})

    client.assert_no_pending()
    assert client.calls[0] == ("put_item", {"TableName": "notes", "Item": {"pk": {"S": "A"}}})


@pytest.mark.asyncio
async def test_fake_dynamodb_client_rejects_mismatches() -> None:
    client = FakeDynamoDBClient()
    client.expect("get_item", {"TableName": "notes"})
    with pytest.raises(AssertionError, match="expected get_item, got put_item"):
        await client.put_item(TableName="notes")

    client.expect("get_item", {"TableName": "notes", "Key": {"pk": {"S": "A"}}})
    with pytest.raises(AssertionError, match=r"get_item\.Key\.pk\.S"):
        await client.get_item(TableName="notes", Key={"pk": {"S": "B"}})

    with pytest.raises(AssertionError, match="unexpected call"):
        await client.query(TableName="notes")


def test_fake_dynamodb_client_reports_pending_calls() -> None:
    client = FakeDynamoDBClient()
    client.expect("delete_item")
    with pytest.raises(AssertionError, match="pending"):
        client.assert_no_pending()


def test_client_error_shape() -> None:
    err = client_error("ResourceNotFoundException", operation="GetItem")
    assert isinstance(err, ClientError)
    assert err.response["Error"] == {"Code": "ResourceNotFoundException", "Message": "ResourceNotFoundException"}
    assert err.operation_name == "GetItem"


@pytest.mark.asyncio
async def test_in_memory_client_rejects_unknown_table_and_bad_keys() -> None:
    mem = InMemoryDynamoDBClient()
    mem.create_table("notes", hash_key="pk", range_key="sk")

    with pytest.raises(ClientError, match="ResourceNotFoundException"):
        await mem.get_item(TableName="missing", Key={"pk": {"S": "A"}})
    with pytest.raises(ClientError, match="ValidationException"):
        await mem.get_item(TableName="notes", Key={"pk": {"S": "A"}})


@pytest.mark.asyncio
async def test_in_memory_client_rejects_key_updates_and_oversized_batches() -> None:
    mem = InMemoryDynamoDBClient()
    mem.create_table("notes", hash_key="pk")

    with pytest.raises(ClientError, match="part of the key"):
        await mem.update_item(
            TableName="notes",
            Key={"pk": {"S": "A"}},
            AttributeUpdates={"pk": {"Action": "PUT", "Value": {"S": "B"}}},
        )

    requests = [{"PutRequest": {"Item": {"pk": {"S": str(i)}}}} for i in range(26)]
    with pytest.raises(ClientError, match="Too many items"):
        await mem.batch_write_item(RequestItems={"notes": requests})


@pytest.mark.asyncio
async def test_in_memory_client_applies_put_and_numeric_add_updates() -> None:
    mem = InMemoryDynamoDBClient()
    mem.create_table("notes", hash_key="pk")
    key = {"pk": {"S": "A"}}

    await mem.update_item(TableName="notes", Key=key, AttributeUpdates={"n": {"Action": "ADD", "Value": {"N": "2"}}})
    resp = await mem.update_item(
        TableName="notes",
        Key=key,
        AttributeUpdates={"n": {"Action": "ADD", "Value": {"N": "-0.5"}}, "note": {"Action": "PUT", "Value": {"S": "x"}}},
        ReturnValues="ALL_NEW",
    )

    assert resp == {"Attributes": {"pk": {"S": "A"}, "n": {"N": "1.5"}, "note": {"S": "x"}}}

    with pytest.raises(ClientError, match="ADD is not supported"):
        await mem.update_item(TableName="notes", Key=key, AttributeUpdates={"tags": {"Action": "ADD", "Value": {"SS": ["a"]}}})
    with pytest.raises(ClientError, match="Unsupported action"):
        await mem.update_item(TableName="notes", Key=key, AttributeUpdates={"note": {"Action": "DELETE"}})
