"""Tests for the DynamoDB record store."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, Mock, patch

import pytest
from botocore.exceptions import ClientError

from pharmadesk.store import DynamoDBStore, StoreError


def _async_cm(value):
    """Create an async context manager mock yielding value."""
    cm = AsyncMock()
    cm.__aenter__.return_value = value
    cm.__aexit__.return_value = False
    return cm


class TestDynamoDBStore:
    """Test cases for DynamoDBStore."""

    @pytest.fixture
    def mock_table(self):
        """Mock DynamoDB table with a batch writer."""
        table = MagicMock()
        table.batch = Mock()
        table.batch.put_item = AsyncMock()
        table.batch.delete_item = AsyncMock()
        table.batch_writer = Mock(return_value=_async_cm(table.batch))
        table.scan = AsyncMock(return_value={"Items": []})
        return table

    @pytest.fixture
    def mock_session(self, mock_table):
        """Mock aioboto3 session whose resource returns the mock table."""
        dynamodb = Mock()
        dynamodb.Table = AsyncMock(return_value=mock_table)

        session = Mock()
        session.resource = Mock(return_value=_async_cm(dynamodb))
        session.client = Mock()
        session.dynamodb = dynamodb
        return session

    @pytest.fixture
    def store(self):
        """Create a DynamoDB store."""
        return DynamoDBStore(table_prefix="test_", region_name="eu-west-1")

    def test_invalid_prefix(self):
        """Test that an invalid table prefix is rejected."""
        with pytest.raises(StoreError, match="Invalid DynamoDB table prefix"):
            DynamoDBStore(table_prefix="bad prefix!")

    def test_session_uses_profile(self):
        """Test that the configured profile is used for the session."""
        with patch("aioboto3.Session") as mock_session_class:
            DynamoDBStore(profile_name="pharmacy")._create_session()

        mock_session_class.assert_called_once_with(profile_name="pharmacy")

    @pytest.mark.asyncio
    async def test_insert(self, store, mock_session, mock_table):
        """Test inserting rows through the batch writer."""
        with patch("aioboto3.Session", return_value=mock_session):
            result = await store.insert("inventory", [{"name": "Dolo", "selling_price": 30.5}])

        assert result.is_success
        assert result.data[0]["id"]
        mock_session.resource.assert_called_once_with("dynamodb", region_name="eu-west-1")
        mock_session.dynamodb.Table.assert_awaited_once_with("test_inventory")
        item = mock_table.batch.put_item.call_args.kwargs["Item"]
        assert item["selling_price"] == Decimal("30.5")
        assert item["id"] == result.data[0]["id"]

    @pytest.mark.asyncio
    async def test_insert_client_error(self, store, mock_session, mock_table):
        """Test that a ClientError becomes a Failure with its error code."""
        mock_table.batch.put_item.side_effect = ClientError(
            {"Error": {"Code": "ResourceNotFoundException", "Message": "Table not found"}},
            "BatchWriteItem",
        )

        with patch("aioboto3.Session", return_value=mock_session):
            result = await store.insert("inventory", [{"name": "Dolo"}])

        assert not result.is_success
        assert result.error.code == "ResourceNotFoundException"
        assert result.error.message == "Table not found"
        assert result.error.details == {"table": "inventory"}

    @pytest.mark.asyncio
    async def test_select_paginates_and_converts_numbers(self, store, mock_session, mock_table):
        """Test that scans follow LastEvaluatedKey and Decimals are converted."""
        mock_table.scan.side_effect = [
            {"Items": [{"id": "1", "quantity": Decimal("10")}], "LastEvaluatedKey": {"id": "1"}},
            {"Items": [{"id": "2", "quantity": Decimal("2.5")}]},
        ]

        with patch("aioboto3.Session", return_value=mock_session):
            result = await store.select("inventory", filters={"migration_id": "m1"})

        assert result.data == [{"id": "1", "quantity": 10}, {"id": "2", "quantity": 2.5}]
        assert mock_table.scan.await_count == 2
        second_call = mock_table.scan.call_args_list[1].kwargs
        assert second_call["ExclusiveStartKey"] == {"id": "1"}
        assert "FilterExpression" in second_call

    @pytest.mark.asyncio
    async def test_select_orders_and_limits(self, store, mock_session, mock_table):
        """Test ordering and limiting of scanned rows."""
        mock_table.scan.return_value = {
            "Items": [
                {"id": "a", "timestamp": "2024-01-01"},
                {"id": "b", "timestamp": "2024-03-01"},
                {"id": "c", "timestamp": "2024-02-01"},
            ]
        }

        with patch("aioboto3.Session", return_value=mock_session):
            result = await store.select("migration_logs", order_by="timestamp", descending=True, limit=2)

        assert [row["id"] for row in result.data] == ["b", "c"]

    @pytest.mark.asyncio
    async def test_delete_where(self, store, mock_session, mock_table):
        """Test deleting scanned matches by key."""
        mock_table.scan.return_value = {"Items": [{"id": "1"}, {"id": "3"}]}

        with patch("aioboto3.Session", return_value=mock_session):
            result = await store.delete_where("inventory", "migration_id", "m1")

        assert result.data == 2
        scan_kwargs = mock_table.scan.call_args.kwargs
        assert scan_kwargs["ProjectionExpression"] == "id"
        deleted = [call.kwargs["Key"] for call in mock_table.batch.delete_item.call_args_list]
        assert deleted == [{"id": "1"}, {"id": "3"}]

    @pytest.mark.asyncio
    async def test_delete_where_without_matches(self, store, mock_session, mock_table):
        """Test that nothing is written when no rows match."""
        with patch("aioboto3.Session", return_value=mock_session):
            result = await store.delete_where("inventory", "migration_id", "unknown")

        assert result.data == 0
        mock_table.batch_writer.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_where_unexpected_error(self, store, mock_session, mock_table):
        """Test that unexpected exceptions become failures."""
        mock_table.scan.side_effect = RuntimeError("connection dropped")

        with patch("aioboto3.Session", return_value=mock_session):
            result = await store.delete_where("inventory", "migration_id", "m1")

        assert not result.is_success
        assert result.error.code == "RuntimeError"

    @pytest.mark.asyncio
    async def test_health_check(self, store, mock_session):
        """Test a successful health check."""
        client = Mock()
        client.list_tables = AsyncMock(return_value={"TableNames": []})
        mock_session.client.return_value = _async_cm(client)

        with patch("aioboto3.Session", return_value=mock_session):
            assert await store.health_check() is True

        client.list_tables.assert_awaited_once_with(Limit=1)

    @pytest.mark.asyncio
    async def test_health_check_failure(self, store, mock_session):
        """Test a failed health check."""
        mock_session.client.side_effect = RuntimeError("no network")

        with patch("aioboto3.Session", return_value=mock_session):
            assert await store.health_check() is False
