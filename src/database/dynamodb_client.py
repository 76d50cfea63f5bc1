"""
DynamoDB-backed record store for the admin collections.

Wraps boto3 table calls with throttling retries, structured logging and
translation of botocore errors into the RecordStoreError hierarchy.
"""

import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional

import boto3
from botocore.exceptions import ClientError, BotoCoreError

from src.utils.logger import get_logger
from .base import ListParams, ListResult, RecordStore
from .exceptions import (
    RecordStoreError,
    ConflictError,
    NotFoundError,
    ThrottlingError,
    NetworkError,
    AccessDeniedError,
)
from .query import apply_list_params


logger = get_logger(__name__)

# DynamoDB BatchWriteItem limit
BATCH_SIZE = 25

THROTTLING_CODES = {"ProvisionedThroughputExceededException", "ThrottlingException"}
ACCESS_DENIED_CODES = {"AccessDeniedException", "UnrecognizedClientException"}


def to_dynamo(value: Any) -> Any:
    """Convert floats (recursively) to Decimal; boto3 rejects Python floats."""
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_dynamo(v) for v in value]
    return value


def from_dynamo(value: Any) -> Any:
    """Convert Decimal (recursively) back to int or float."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_dynamo(v) for v in value]
    return value


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class DynamoRecordStore(RecordStore):
    """
    Record store over one DynamoDB table per collection.

    Every table is keyed by a string partition key `id`. The bookings table
    additionally carries the `MemberEmailIndex` GSI on `memberEmail`.
    """

    def __init__(
        self,
        table_names: Dict[str, str],
        dynamodb_resource: Optional[Any] = None,
        region_name: Optional[str] = None,
        max_retries: int = 3,
        backoff_base: float = 1.0,
    ):
        """
        Initialize the store.

        Args:
            table_names: Collection name -> DynamoDB table name
            dynamodb_resource: boto3 DynamoDB resource (default: creates new)
            region_name: Region used when creating the resource
            max_retries: Attempts for throttled calls
            backoff_base: Base exponential backoff multiplier (seconds)
        """
        self.table_names = dict(table_names)
        self.dynamodb = dynamodb_resource or boto3.resource("dynamodb", region_name=region_name)
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self._tables: Dict[str, Any] = {}

    def table(self, collection: str):
        """Return the boto3 Table for a collection."""
        if collection not in self.table_names:
            raise RecordStoreError(f"Unknown collection: {collection}")
        if collection not in self._tables:
            self._tables[collection] = self.dynamodb.Table(self.table_names[collection])
        return self._tables[collection]

    def _execute(
        self,
        operation: str,
        context: Dict[str, Any],
        call: Callable[[], Any],
        condition_error: Optional[Callable[[], RecordStoreError]] = None,
    ) -> Any:
        """
        Run a DynamoDB call with throttling retries and error translation.

        Args:
            operation: Operation name for logs
            context: Log context
            call: Zero-argument callable performing the request
            condition_error: Factory for the error raised on
                ConditionalCheckFailedException

        Raises:
            ThrottlingError: If throttled after max retries
            AccessDeniedError: If IAM permissions are insufficient
            NetworkError: If the connection fails
            RecordStoreError: For any other DynamoDB error
        """
        for attempt in range(self.max_retries):
            try:
                start_time = time.time()
                result = call()
                logger.info(
                    f"{operation} succeeded",
                    operation=operation,
                    context=context,
                    duration_ms=(time.time() - start_time) * 1000,
                )
                return result

            except ClientError as e:
                error_code = e.response.get("Error", {}).get("Code", "Unknown")

                if error_code in THROTTLING_CODES:
                    if attempt < self.max_retries - 1:
                        wait_time = self.backoff_base * (2**attempt)
                        logger.warning(
                            f"Throttled, retrying after {wait_time}s",
                            operation=operation,
                            context=context,
                            error=error_code,
                        )
                        time.sleep(wait_time)
                        continue
                    logger.error(
                        "Throttling after max retries",
                        operation=operation,
                        context=context,
                        error=error_code,
                    )
                    raise ThrottlingError(
                        f"DynamoDB throttled after {self.max_retries} retries"
                    ) from e

                if error_code == "ConditionalCheckFailedException" and condition_error:
                    logger.warning(
                        "Condition check failed",
                        operation=operation,
                        context=context,
                        error=error_code,
                    )
                    raise condition_error() from e

                if error_code in ACCESS_DENIED_CODES:
                    logger.error(
                        "Permission denied",
                        operation=operation,
                        context=context,
                        error=error_code,
                    )
                    raise AccessDeniedError(f"Insufficient IAM permissions: {error_code}") from e

                logger.error(
                    "DynamoDB error",
                    operation=operation,
                    context=context,
                    error=str(e),
                )
                raise RecordStoreError(f"DynamoDB error: {e}") from e

            except (BotoCoreError, OSError) as e:
                logger.error(
                    "Network error",
                    operation=operation,
                    context=context,
                    error=str(e),
                )
                raise NetworkError(f"Network error: {e}") from e

        raise ThrottlingError(f"DynamoDB throttled after {self.max_retries} retries")

    def scan_all(self, collection: str) -> List[Dict[str, Any]]:
        """Scan a whole table, following LastEvaluatedKey pagination."""
        table = self.table(collection)
        context = {"collection": collection}
        items: List[Dict[str, Any]] = []
        scan_kwargs: Dict[str, Any] = {}

        while True:
            response = self._execute("scan", context, lambda: table.scan(**scan_kwargs))
            items.extend(from_dynamo(item) for item in response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            scan_kwargs["ExclusiveStartKey"] = last_key

        return items

    def list(self, collection: str, params: Optional[ListParams] = None) -> ListResult:
        """
        Return a filtered, sorted page of a collection.

        The table is scanned in full and ListParams applied client-side.
        """
        params = params or ListParams()
        result = apply_list_params(self.scan_all(collection), params)
        logger.debug(
            f"Listed {len(result.data)} of {result.total} records",
            operation="list",
            context={"collection": collection, "page": params.page, "per_page": params.per_page},
        )
        return result

    def get_one(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Return a record by id, or None when it does not exist."""
        table = self.table(collection)
        context = {"collection": collection, "id": record_id}
        response = self._execute("get_one", context, lambda: table.get_item(Key={"id": record_id}))
        item = response.get("Item")
        return from_dynamo(item) if item is not None else None

    def query_by_member_email(self, collection: str, email: str) -> List[Dict[str, Any]]:
        """Return a member's records via MemberEmailIndex, newest first."""
        table = self.table(collection)
        context = {"collection": collection, "index": "MemberEmailIndex"}
        response = self._execute(
            "query_by_member_email",
            context,
            lambda: table.query(
                IndexName="MemberEmailIndex",
                KeyConditionExpression="memberEmail = :email",
                ExpressionAttributeValues={":email": email},
                ScanIndexForward=False,
            ),
        )
        return [from_dynamo(item) for item in response.get("Items", [])]

    def update(self, collection: str, record_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply a partial SET update and return the full record as stored.

        `updatedAt` is stamped automatically. The update is conditional on
        the record existing, so a missing id raises NotFoundError instead
        of creating a stub record. There is no version check: concurrent
        writers are last-write-wins.

        Raises:
            NotFoundError: If the record does not exist
            RecordStoreError: If fields is empty or tries to change `id`
        """
        if not fields:
            raise RecordStoreError("Update requires at least one field")
        if "id" in fields:
            raise RecordStoreError("Record id is immutable")

        updates = dict(fields)
        updates.setdefault("updatedAt", _utc_timestamp())

        expression_parts = []
        names: Dict[str, str] = {}
        values: Dict[str, Any] = {}
        for index, (name, value) in enumerate(updates.items()):
            expression_parts.append(f"#field{index} = :value{index}")
            names[f"#field{index}"] = name
            values[f":value{index}"] = to_dynamo(value)

        table = self.table(collection)
        context = {"collection": collection, "id": record_id, "fields": sorted(fields)}
        response = self._execute(
            "update",
            context,
            lambda: table.update_item(
                Key={"id": record_id},
                UpdateExpression="SET " + ", ".join(expression_parts),
                ConditionExpression="attribute_exists(id)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            ),
            condition_error=lambda: NotFoundError(f"{collection} record {record_id} not found"),
        )
        return from_dynamo(response.get("Attributes", {}))

    def create(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a new record; never overwrites.

        Raises:
            ConflictError: If a record with the same id exists
            RecordStoreError: If the record has no id
        """
        if not record.get("id"):
            raise RecordStoreError("Missing required field: id")

        # DynamoDB does not accept null attributes
        item = {key: value for key, value in record.items() if value is not None}
        now = _utc_timestamp()
        item.setdefault("createdAt", now)
        item.setdefault("updatedAt", now)

        table = self.table(collection)
        context = {"collection": collection, "id": item["id"]}
        self._execute(
            "create",
            context,
            lambda: table.put_item(
                Item=to_dynamo(item),
                ConditionExpression="attribute_not_exists(id)",
            ),
            condition_error=lambda: ConflictError(
                f"{collection} record {item['id']} already exists"
            ),
        )
        return item

    def delete(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Delete a record; returns the removed record or None if absent."""
        table = self.table(collection)
        context = {"collection": collection, "id": record_id}
        response = self._execute(
            "delete",
            context,
            lambda: table.delete_item(Key={"id": record_id}, ReturnValues="ALL_OLD"),
        )
        attributes = response.get("Attributes")
        return from_dynamo(attributes) if attributes else None

    def batch_put(
        self, collection: str, records: Iterable[Dict[str, Any]], batch_size: int = BATCH_SIZE
    ) -> int:
        """
        Write records in fixed-size batches (put semantics, overwrites).

        Returns:
            Number of records written
        """
        if not 1 <= batch_size <= BATCH_SIZE:
            raise ValueError(f"batch_size must be between 1 and {BATCH_SIZE}")

        items = [
            to_dynamo({k: v for k, v in record.items() if v is not None}) for record in records
        ]
        table = self.table(collection)

        def _write(batch: List[Dict[str, Any]]) -> None:
            with table.batch_writer() as writer:
                for item in batch:
                    writer.put_item(Item=item)

        for start in range(0, len(items), batch_size):
            batch = items[start : start + batch_size]
            context = {"collection": collection, "batch_start": start, "batch_len": len(batch)}
            self._execute("batch_put", context, lambda: _write(batch))

        return len(items)
