"""
Unit tests for DynamoRecordStore.

Uses moto to mock DynamoDB for isolated testing without AWS credentials.
Covers CRUD, list semantics, batching and error translation.
"""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from src.database.base import ListParams
from src.database.dynamodb_client import BATCH_SIZE, DynamoRecordStore
from src.database.exceptions import (
    AccessDeniedError,
    ConflictError,
    NetworkError,
    NotFoundError,
    RecordStoreError,
    ThrottlingError,
)

TEST_TABLE = "anmc-bookings-test"


@pytest.fixture
def store(dynamodb_resource):
    return DynamoRecordStore({"bookings": TEST_TABLE}, dynamodb_resource=dynamodb_resource)


def booking(booking_id, **overrides):
    record = {
        "id": booking_id,
        "preferredDate": "2030-05-01",
        "startTime": "09:00",
        "status": "pending",
        "memberEmail": "sita@example.com",
        "totalAmount": 250.5,
    }
    record.update(overrides)
    return record


def client_error(code, operation="GetItem"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class TestCreateAndGet:
    def test_create_then_get_one(self, store):
        created = store.create("bookings", booking("bk-1"))
        fetched = store.get_one("bookings", "bk-1")

        assert created["createdAt"] == created["updatedAt"]
        assert fetched["status"] == "pending"
        assert fetched["totalAmount"] == 250.5
        assert isinstance(fetched["totalAmount"], float)

    def test_get_one_missing_returns_none(self, store):
        assert store.get_one("bookings", "nope") is None

    def test_create_duplicate_raises_conflict(self, store):
        store.create("bookings", booking("bk-1"))
        with pytest.raises(ConflictError):
            store.create("bookings", booking("bk-1", status="confirmed"))
        assert store.get_one("bookings", "bk-1")["status"] == "pending"

    def test_create_requires_id(self, store):
        with pytest.raises(RecordStoreError, match="id"):
            store.create("bookings", {"status": "pending"})

    def test_unknown_collection(self, store):
        with pytest.raises(RecordStoreError, match="Unknown collection"):
            store.get_one("news", "1")


class TestUpdate:
    def test_partial_update_returns_full_record(self, store):
        store.create("bookings", booking("bk-1"))

        updated = store.update("bookings", "bk-1", {"status": "confirmed"})

        assert updated["status"] == "confirmed"
        assert updated["memberEmail"] == "sita@example.com"
        assert updated["updatedAt"] >= updated["createdAt"]
        assert store.get_one("bookings", "bk-1")["status"] == "confirmed"

    def test_update_missing_record_raises_not_found(self, store):
        with pytest.raises(NotFoundError):
            store.update("bookings", "ghost", {"status": "confirmed"})
        assert store.get_one("bookings", "ghost") is None

    def test_update_rejects_empty_fields_and_id_change(self, store):
        store.create("bookings", booking("bk-1"))
        with pytest.raises(RecordStoreError):
            store.update("bookings", "bk-1", {})
        with pytest.raises(RecordStoreError, match="immutable"):
            store.update("bookings", "bk-1", {"id": "bk-2"})

    def test_delete_returns_old_record(self, store):
        store.create("bookings", booking("bk-1"))

        assert store.delete("bookings", "bk-1")["id"] == "bk-1"
        assert store.delete("bookings", "bk-1") is None


class TestListAndQuery:
    def test_batch_put_and_list(self, store):
        records = [booking(f"bk-{i:02d}", preferredDate=f"2030-05-{(i % 28) + 1:02d}") for i in range(30)]

        assert store.batch_put("bookings", records) == 30

        result = store.list("bookings", ListParams(sort_field="preferredDate", per_page=10))
        assert result.total == 30
        assert len(result.data) == 10
        dates = [r["preferredDate"] for r in result.data]
        assert dates == sorted(dates)

    def test_batch_put_rejects_oversized_batches(self, store):
        with pytest.raises(ValueError):
            store.batch_put("bookings", [booking("bk-1")], batch_size=BATCH_SIZE + 1)

    def test_batch_put_writes_in_chunks(self, store):
        records = [booking(f"bk-{i}") for i in range(BATCH_SIZE + 5)]
        with patch.object(store, "_execute", wraps=store._execute) as execute:
            store.batch_put("bookings", records)
        assert execute.call_count == 2

    def test_list_filters(self, store):
        store.batch_put(
            "bookings",
            [booking("a", status="pending"), booking("b", status="confirmed"), booking("c")],
        )
        result = store.list("bookings", ListParams(filters={"status": "pending"}))
        assert sorted(r["id"] for r in result.data) == ["a", "c"]

    def test_query_by_member_email(self, store):
        store.batch_put(
            "bookings",
            [booking("a"), booking("b", memberEmail="ram@example.com"), booking("c")],
        )
        records = store.query_by_member_email("bookings", "sita@example.com")
        assert sorted(r["id"] for r in records) == ["a", "c"]


class TestErrorTranslation:
    @pytest.fixture
    def table(self):
        resource = MagicMock()
        table = MagicMock()
        resource.Table.return_value = table
        store = DynamoRecordStore(
            {"bookings": TEST_TABLE}, dynamodb_resource=resource, max_retries=3, backoff_base=0.01
        )
        return store, table

    def test_throttling_retries_then_raises(self, table):
        store, mock_table = table
        mock_table.get_item.side_effect = client_error("ProvisionedThroughputExceededException")

        with patch("src.database.dynamodb_client.time.sleep") as sleep:
            with pytest.raises(ThrottlingError):
                store.get_one("bookings", "bk-1")

        assert mock_table.get_item.call_count == 3
        assert sleep.call_count == 2

    def test_throttling_recovers(self, table):
        store, mock_table = table
        mock_table.get_item.side_effect = [
            client_error("ThrottlingException"),
            {"Item": {"id": "bk-1", "status": "pending"}},
        ]

        with patch("src.database.dynamodb_client.time.sleep"):
            assert store.get_one("bookings", "bk-1")["id"] == "bk-1"

    def test_access_denied(self, table):
        store, mock_table = table
        mock_table.get_item.side_effect = client_error("AccessDeniedException")

        with pytest.raises(AccessDeniedError):
            store.get_one("bookings", "bk-1")
        assert mock_table.get_item.call_count == 1

    def test_other_client_error(self, table):
        store, mock_table = table
        mock_table.scan.side_effect = client_error("ValidationException", "Scan")

        with pytest.raises(RecordStoreError):
            store.list("bookings")

    def test_network_error(self, table):
        store, mock_table = table
        mock_table.get_item.side_effect = EndpointConnectionError(endpoint_url="https://dynamodb")

        with pytest.raises(NetworkError):
            store.get_one("bookings", "bk-1")
