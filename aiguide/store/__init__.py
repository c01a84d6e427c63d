from .backend import (
    SERVER_TIMESTAMP,
    ConditionFailed,
    DocumentNotFound,
    DocumentStore,
    InMemoryDocumentStore,
    StoreError,
)
from .dynamodb import DynamoDBDocumentStore

__all__ = [
    "SERVER_TIMESTAMP",
    "ConditionFailed",
    "DocumentNotFound",
    "DocumentStore",
    "InMemoryDocumentStore",
    "StoreError",
    "DynamoDBDocumentStore",
]
