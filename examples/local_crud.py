from __future__ import annotations

import asyncio
import logging
import os
import uuid

from pydantic import BaseModel, Field

from dynamodel_py import EntityDescriptor, Model, PydanticSchema, StoreClient, gsi
from dynamodel_py.runtime import open_dynamodb_client


class Campaign(BaseModel):
    userId: str  # noqa: N815
    id: str
    name: str
    listIds: list[str] = Field(min_length=1)  # noqa: N815


def _descriptor(table_name: str) -> EntityDescriptor:
    return EntityDescriptor(
        table_name=table_name,
        hash_key="userId",
        range_key="id",
        schema=PydanticSchema(Campaign),
        indexes=(gsi("byList", partition="listId", sort="id"),),
    )


async def main() -> None:
    logging.basicConfig(level=logging.INFO)
    table_name = f"dynamodel_py_example_{uuid.uuid4().hex[:12]}"

    async with open_dynamodb_client(
        region=os.environ.get("AWS_REGION", "us-east-1"),
        endpoint_url=os.environ.get("DYNAMODB_ENDPOINT", "http://localhost:8000"),
    ) as client:
        await client.create_table(
            TableName=table_name,
            KeySchema=[{"AttributeName": "userId", "KeyType": "HASH"}, {"AttributeName": "id", "KeyType": "RANGE"}],
            AttributeDefinitions=[
                {"AttributeName": "userId", "AttributeType": "S"},
                {"AttributeName": "id", "AttributeType": "S"},
                {"AttributeName": "listId", "AttributeType": "S"},
            ],
            GlobalSecondaryIndexes=[
                {
                    "IndexName": "byList",
                    "KeySchema": [
                        {"AttributeName": "listId", "KeyType": "HASH"},
                        {"AttributeName": "id", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                }
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        await client.get_waiter("table_exists").wait(TableName=table_name)

        try:
            campaigns = Model(_descriptor(table_name), StoreClient(client))

            await campaigns.save(
                {"userId": "u1", "id": "c1", "name": "spring", "listIds": ["l1"], "listId": "l1"}, validate=True
            )
            await campaigns.save_all(
                [
                    {"userId": "u1", "id": f"c{i}", "name": f"batch {i}", "listIds": ["l2"], "listId": "l2"}
                    for i in range(2, 30)
                ],
                validate=True,
            )
            await campaigns.update({"status": "sent"}, "u1", "c1")
            await campaigns.increment("sentCount", 100, "u1", "c1")

            print("get:", await campaigns.get("u1", "c1"))
            print("count byList l2:", await campaigns.count_by("listId", "l2"))

            page = await campaigns.all_by("userId", "u1", {"limit": 10, "fields": "name", "include_fields": True})
            print("first page:", page.to_dict())
            if page.next_page:
                page = await campaigns.all_by("userId", "u1", {"limit": 10, "page": page.next_page})
                print("second page ids:", [item["id"] for item in page.items])

            await campaigns.delete("u1", "c1")
        finally:
            await client.delete_table(TableName=table_name)


if __name__ == "__main__":
    asyncio.run(main())
