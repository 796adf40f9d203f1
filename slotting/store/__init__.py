from slotting.store.base import DocumentStore
from slotting.store.dynamodb import DynamoDBDocumentStore
from slotting.store.memory import InMemoryDocumentStore

__all__ = [
    "DocumentStore",
    "DynamoDBDocumentStore",
    "InMemoryDocumentStore",
]
