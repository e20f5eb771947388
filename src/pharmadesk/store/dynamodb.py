"""DynamoDB record store for the hosted deployment."""

import json
import logging
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional

import aioboto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError, NoCredentialsError

from ..query.result import ErrorInfo, Failure, Success, from_exception
from .base import RecordStore, Row, StoreError, order_rows

logger = logging.getLogger(__name__)


def _to_dynamo(row: Row) -> Row:
    """Convert floats to Decimal, which is the only number type DynamoDB accepts."""
    return json.loads(json.dumps(row, default=str), parse_float=Decimal)


def _from_dynamo(value: Any) -> Any:
    if isinstance(value, list):
        return [_from_dynamo(v) for v in value]
    if isinstance(value, dict):
        return {k: _from_dynamo(v) for k, v in value.items()}
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return value


class DynamoDBStore(RecordStore):
    """
    Record store using one DynamoDB table per record table.

    Tables are named ``<table_prefix><table>`` and keyed by a string ``id``
    attribute. Deletion by column scans with a filter expression and removes
    the matches through a batch writer.
    """

    backend_type = "dynamodb"

    def __init__(
        self,
        table_prefix: str = "pharmadesk_",
        region_name: Optional[str] = None,
        profile_name: Optional[str] = None,
        endpoint_url: Optional[str] = None,
    ):
        """
        Initialize DynamoDB store.

        Args:
            table_prefix: Prefix added to every table name
            region_name: AWS region for the tables
            profile_name: AWS profile to use for authentication
            endpoint_url: Custom endpoint (e.g. DynamoDB Local)
        """
        if table_prefix and not all(c.isalnum() or c in "_-." for c in table_prefix):
            raise StoreError(
                f"Invalid DynamoDB table prefix: {table_prefix!r}", backend_type=self.backend_type
            )

        self.table_prefix = table_prefix
        self.profile_name = profile_name
        self.resource_kwargs = {
            k: v for k, v in {"region_name": region_name, "endpoint_url": endpoint_url}.items() if v
        }

        logger.debug(
            f"Initialized DynamoDB store: prefix={table_prefix}, region={region_name}, "
            f"profile={profile_name}"
        )

    def _create_session(self) -> aioboto3.Session:
        if self.profile_name:
            return aioboto3.Session(profile_name=self.profile_name)
        return aioboto3.Session()

    def _table_name(self, table: str) -> str:
        return f"{self.table_prefix}{table}"

    @staticmethod
    def _client_failure(e: ClientError, table: str) -> Failure:
        error = e.response.get("Error", {})
        return Failure(
            ErrorInfo(
                code=error.get("Code", "ClientError"),
                message=error.get("Message", str(e)),
                details={"table": table},
            )
        )

    async def insert(self, table: str, rows: List[Row]):
        inserted = []
        for row in rows:
            stored = dict(row)
            stored.setdefault("id", str(uuid.uuid4()))
            inserted.append(stored)

        try:
            session = self._create_session()
            async with session.resource("dynamodb", **self.resource_kwargs) as dynamodb:
                dynamo_table = await dynamodb.Table(self._table_name(table))
                async with dynamo_table.batch_writer() as batch:
                    for row in inserted:
                        await batch.put_item(Item=_to_dynamo(row))

            logger.debug(f"Inserted {len(inserted)} rows into {self._table_name(table)}")
            return Success(inserted)

        except ClientError as e:
            logger.error(f"DynamoDB insert into {table} failed: {e}")
            return self._client_failure(e, table)
        except NoCredentialsError as e:
            logger.error(f"No AWS credentials available for DynamoDB: {e}")
            return from_exception(e, code="NoCredentials")
        except Exception as e:
            logger.error(f"Unexpected error inserting into {table}: {e}")
            return from_exception(e)

    async def _scan(self, dynamo_table, scan_kwargs: Dict[str, Any]) -> List[Row]:
        items: List[Row] = []
        while True:
            response = await dynamo_table.scan(**scan_kwargs)
            items.extend(response.get("Items", []))

            # Check if there are more items to scan
            if "LastEvaluatedKey" not in response:
                break
            scan_kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]
        return items

    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ):
        scan_kwargs: Dict[str, Any] = {}
        if filters:
            condition = None
            for column, value in filters.items():
                clause = Attr(column).eq(_to_dynamo({"v": value})["v"])
                condition = clause if condition is None else condition & clause
            scan_kwargs["FilterExpression"] = condition

        try:
            session = self._create_session()
            async with session.resource("dynamodb", **self.resource_kwargs) as dynamodb:
                dynamo_table = await dynamodb.Table(self._table_name(table))
                items = await self._scan(dynamo_table, scan_kwargs)

            rows = [_from_dynamo(item) for item in items]
            return Success(order_rows(rows, order_by, descending, limit))

        except ClientError as e:
            logger.error(f"DynamoDB scan of {table} failed: {e}")
            return self._client_failure(e, table)
        except Exception as e:
            logger.error(f"Unexpected error reading {table}: {e}")
            return from_exception(e)

    async def delete_where(self, table: str, column: str, value: Any):
        scan_kwargs = {
            "FilterExpression": Attr(column).eq(value),
            "ProjectionExpression": "id",
        }

        try:
            session = self._create_session()
            async with session.resource("dynamodb", **self.resource_kwargs) as dynamodb:
                dynamo_table = await dynamodb.Table(self._table_name(table))
                items = await self._scan(dynamo_table, scan_kwargs)

                if items:
                    async with dynamo_table.batch_writer() as batch:
                        for item in items:
                            await batch.delete_item(Key={"id": item["id"]})

            logger.debug(f"Deleted {len(items)} rows from {table} where {column} = {value}")
            return Success(len(items))

        except ClientError as e:
            logger.error(f"DynamoDB delete from {table} failed: {e}")
            return self._client_failure(e, table)
        except Exception as e:
            logger.error(f"Unexpected error deleting from {table}: {e}")
            return from_exception(e)

    async def health_check(self) -> bool:
        try:
            session = self._create_session()
            async with session.client("dynamodb", **self.resource_kwargs) as client:
                await client.list_tables(Limit=1)
            return True
        except Exception as e:
            logger.warning(f"DynamoDB health check failed: {e}")
            return False
