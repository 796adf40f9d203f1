"""DynamoDB tabanlı doküman store'u.

Her koleksiyon ayrı bir tabloda tutulur (hash key: id). transact() iyimser
eşzamanlılık kullanır: doküman ConsistentRead ile okunur, yeni içerik
"version = :expected" koşuluyla yazılır. Koşul başarısız olursa işlem baştan
tekrarlanır; deneme hakkı biterse ConflictError fırlatılır.
"""

from __future__ import annotations

import logging
import math
import uuid
from decimal import Decimal
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from slotting.config import BOTO_CONFIG, DEFAULT_REGION, DEFAULT_TX_ATTEMPTS
from slotting.exceptions import ConflictError, StoreUnavailableError
from slotting.store.base import Document, DocumentStore, Mutation, Predicate

logger = logging.getLogger(__name__)

TABLE_NAMES = {
    "locations": "Locations",
    "items": "Items",
    "categories": "Categories",
    "movements": "Movements",
    "notifications": "Notifications",
    "actions": "Actions",
}

VERSION_ATTRIBUTE = "version"


def to_dynamo(value: Any) -> Any:
    """Python değerini DynamoDB'nin kabul ettiği tiplere çevirir (float -> Decimal)."""
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, float):
        if math.isinf(value) or math.isnan(value):
            return None
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_dynamo(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_dynamo(v) for v in value]
    return value


def from_dynamo(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == int(value) else float(value)
    if isinstance(value, dict):
        return {k: from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_dynamo(v) for v in value]
    return value


class DynamoDBDocumentStore(DocumentStore):
    """boto3 DynamoDB resource üzerinde çalışan store."""

    def __init__(
        self,
        dynamodb_resource: Optional[Any] = None,
        region_name: str = DEFAULT_REGION,
        table_prefix: str = "",
        endpoint_url: Optional[str] = None,
        max_attempts: int = DEFAULT_TX_ATTEMPTS,
    ):
        super().__init__()
        # dependency injection destekli
        self.dynamodb = dynamodb_resource or boto3.resource(
            "dynamodb",
            region_name=region_name,
            endpoint_url=endpoint_url,
            config=BOTO_CONFIG,
        )
        self.table_prefix = table_prefix
        self.max_attempts = max_attempts
        self._tables: dict[str, Any] = {}

    def table_name(self, collection: str) -> str:
        return f"{self.table_prefix}{TABLE_NAMES.get(collection, collection.title())}"

    def _table(self, collection: str) -> Any:
        if collection not in self._tables:
            self._tables[collection] = self.dynamodb.Table(self.table_name(collection))
        return self._tables[collection]

    @staticmethod
    def _strip(item: dict) -> Document:
        doc = from_dynamo(item)
        doc.pop(VERSION_ATTRIBUTE, None)
        return doc

    def _read(self, collection: str, doc_id: str) -> Optional[dict]:
        try:
            response = self._table(collection).get_item(Key={"id": doc_id}, ConsistentRead=True)
        except (ClientError, BotoCoreError) as e:
            logger.error("DynamoDB okuma hatası [%s/%s]: %s", collection, doc_id, e)
            raise StoreUnavailableError(f"{collection} okunamadı", e) from e
        return response.get("Item")

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        item = self._read(collection, doc_id)
        return self._strip(item) if item is not None else None

    def create(self, collection: str, data: Document) -> str:
        doc_id = uuid.uuid4().hex
        item = to_dynamo({**data, "id": doc_id, VERSION_ATTRIBUTE: 1})
        try:
            self._table(collection).put_item(
                Item=item,
                ConditionExpression="attribute_not_exists(id)",
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("DynamoDB yazma hatası [%s]: %s", collection, e)
            raise StoreUnavailableError(f"{collection} kaydı oluşturulamadı", e) from e
        self._notify(collection)
        return doc_id

    def delete(self, collection: str, doc_id: str) -> None:
        try:
            self._table(collection).delete_item(Key={"id": doc_id})
        except (ClientError, BotoCoreError) as e:
            logger.error("DynamoDB silme hatası [%s/%s]: %s", collection, doc_id, e)
            raise StoreUnavailableError(f"{collection} kaydı silinemedi", e) from e
        self._notify(collection)

    def query(self, collection: str, predicate: Optional[Predicate] = None) -> list[Document]:
        table = self._table(collection)
        items: list[dict] = []
        kwargs: dict[str, Any] = {"ConsistentRead": True}
        try:
            while True:
                response = table.scan(**kwargs)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as e:
            logger.error("DynamoDB tarama hatası [%s]: %s", collection, e)
            raise StoreUnavailableError(f"{collection} sorgulanamadı", e) from e

        docs = [self._strip(i) for i in items]
        if predicate is None:
            return docs
        return [d for d in docs if predicate(d)]

    def transact(self, collection: str, doc_id: str, mutation: Mutation) -> Document:
        table = self._table(collection)
        for attempt in range(1, self.max_attempts + 1):
            item = self._read(collection, doc_id)
            current = self._strip(item) if item is not None else None
            new_doc = dict(mutation(current))
            new_doc["id"] = doc_id

            if item is None:
                condition = "attribute_not_exists(id)"
                values: dict[str, Any] = {}
                next_version = 1
            elif VERSION_ATTRIBUTE in item:
                condition = "#v = :expected"
                values = {":expected": item[VERSION_ATTRIBUTE]}
                next_version = int(item[VERSION_ATTRIBUTE]) + 1
            else:
                condition = "attribute_not_exists(#v)"
                values = {}
                next_version = 1

            kwargs: dict[str, Any] = {
                "Item": to_dynamo({**new_doc, VERSION_ATTRIBUTE: next_version}),
                "ConditionExpression": condition,
            }
            if "#v" in condition:
                kwargs["ExpressionAttributeNames"] = {"#v": VERSION_ATTRIBUTE}
            if values:
                kwargs["ExpressionAttributeValues"] = values

            try:
                table.put_item(**kwargs)
            except ClientError as e:
                if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                    logger.debug(
                        "Versiyon çakışması [%s/%s], deneme %d/%d",
                        collection, doc_id, attempt, self.max_attempts,
                    )
                    continue
                logger.error("DynamoDB transaction hatası [%s/%s]: %s", collection, doc_id, e)
                raise StoreUnavailableError(f"{collection} güncellenemedi", e) from e
            except BotoCoreError as e:
                logger.error("DynamoDB transaction hatası [%s/%s]: %s", collection, doc_id, e)
                raise StoreUnavailableError(f"{collection} güncellenemedi", e) from e

            self._notify(collection)
            return new_doc

        logger.warning("Transaction deneme hakkı tükendi: %s/%s", collection, doc_id)
        raise ConflictError(
            f"{collection}/{doc_id} için eşzamanlı güncelleme çakışması ({self.max_attempts} deneme)"
        )
