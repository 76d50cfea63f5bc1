"""Database module - record store contract and DynamoDB implementation."""

from .base import ListParams, ListResult, RecordStore
from .dynamodb_client import DynamoRecordStore
from .exceptions import (
    RecordStoreError,
    NotFoundError,
    ConflictError,
    ThrottlingError,
    NetworkError,
    AccessDeniedError,
)

__all__ = [
    "ListParams",
    "ListResult",
    "RecordStore",
    "DynamoRecordStore",
    "RecordStoreError",
    "NotFoundError",
    "ConflictError",
    "ThrottlingError",
    "NetworkError",
    "AccessDeniedError",
]
