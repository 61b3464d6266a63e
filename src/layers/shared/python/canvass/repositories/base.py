"""Base repository class for DynamoDB operations."""

import os
from typing import Any, Generic, TypeVar

import boto3
import structlog
from boto3.dynamodb.conditions import ConditionBase
from boto3.dynamodb.types import TypeSerializer
from botocore.config import Config
from botocore.exceptions import ClientError

from canvass.models.base import BaseModel
from canvass.utils.exceptions import ConflictError, NotFoundError

logger = structlog.get_logger()

T = TypeVar("T", bound=BaseModel)

# DynamoDB caps a single transaction at 100 items
MAX_TRANSACTION_ITEMS = 100

DYNAMODB_CONFIG = Config(
    connect_timeout=5,
    read_timeout=10,
    retries={
        "max_attempts": 3,
        "mode": "adaptive",
    },
)


class BaseRepository(Generic[T]):
    """Base repository for DynamoDB single-table design.

    Provides common CRUD operations with optimistic locking support, plus
    paginated filtered scans and transactional writes.
    """

    def __init__(
        self,
        model_class: type[T],
        table_name: str | None = None,
    ):
        """Initialize repository.

        Args:
            model_class: The Pydantic model class for this repository.
            table_name: DynamoDB table name. Defaults to TABLE_NAME env var.
        """
        self.model_class = model_class
        self.table_name = table_name or os.environ.get("TABLE_NAME", "canvass-dev")
        self._dynamodb = None
        self._table = None
        self._client = None

    @property
    def dynamodb(self):
        """Get DynamoDB resource (lazy initialization)."""
        if self._dynamodb is None:
            self._dynamodb = boto3.resource("dynamodb", config=DYNAMODB_CONFIG)
        return self._dynamodb

    @property
    def table(self):
        """Get DynamoDB table (lazy initialization)."""
        if self._table is None:
            self._table = self.dynamodb.Table(self.table_name)
        return self._table

    @property
    def client(self):
        """Get low-level DynamoDB client (lazy initialization)."""
        if self._client is None:
            self._client = boto3.client("dynamodb", config=DYNAMODB_CONFIG)
        return self._client

    def _build_key(self, pk: str, sk: str) -> dict[str, str]:
        """Build key dictionary for DynamoDB operations."""
        return {"PK": pk, "SK": sk}

    def _build_item(self, item: T, gsi_keys: dict[str, str] | None = None) -> dict[str, Any]:
        """Build the stored item dict including key attributes."""
        db_item = item.to_dynamodb()
        db_item.update(item.get_keys())
        if gsi_keys:
            db_item.update(gsi_keys)
        return db_item

    def get(self, pk: str, sk: str) -> T | None:
        """Get an item by its primary key.

        Args:
            pk: Partition key value.
            sk: Sort key value.

        Returns:
            Model instance or None if not found.
        """
        try:
            response = self.table.get_item(Key=self._build_key(pk, sk))
            item = response.get("Item")

            if not item:
                return None

            return self.model_class.from_dynamodb(item)

        except ClientError as e:
            logger.error("DynamoDB get_item failed", error=str(e), pk=pk, sk=sk)
            raise

    def get_or_raise(self, pk: str, sk: str, resource_type: str) -> T:
        """Get an item or raise NotFoundError.

        Args:
            pk: Partition key value.
            sk: Sort key value.
            resource_type: Resource type name for error message.

        Returns:
            Model instance.

        Raises:
            NotFoundError: If item not found.
        """
        item = self.get(pk, sk)
        if not item:
            resource_id = pk.split("#", 1)[-1] if "#" in pk else pk
            raise NotFoundError(resource_type, resource_id)
        return item

    def put(
        self,
        item: T,
        condition_expression: str | None = None,
        gsi_keys: dict[str, str] | None = None,
    ) -> T:
        """Put an item into DynamoDB.

        Args:
            item: Model instance to save.
            condition_expression: Optional condition expression.
            gsi_keys: Optional GSI key values to add.

        Returns:
            The saved model instance.
        """
        try:
            item.update_timestamp()
            db_item = self._build_item(item, gsi_keys)

            kwargs: dict[str, Any] = {"Item": db_item}
            if condition_expression:
                kwargs["ConditionExpression"] = condition_expression

            self.table.put_item(**kwargs)

            logger.debug(
                "Item saved",
                pk=db_item["PK"],
                sk=db_item["SK"],
                model=self.model_class.__name__,
            )

            return item

        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise ConflictError("Item already exists or version mismatch")
            logger.error("DynamoDB put_item failed", error=str(e))
            raise

    def create(self, item: T, gsi_keys: dict[str, str] | None = None) -> T:
        """Create a new item (fails if exists).

        Raises:
            ConflictError: If item already exists.
        """
        return self.put(
            item,
            condition_expression="attribute_not_exists(PK)",
            gsi_keys=gsi_keys,
        )

    def update(
        self,
        item: T,
        gsi_keys: dict[str, str] | None = None,
        check_version: bool = True,
    ) -> T:
        """Update an existing item with optimistic locking.

        Args:
            item: Model instance to update.
            gsi_keys: Optional GSI key values.
            check_version: Whether to check version for optimistic locking.

        Returns:
            The updated model instance.

        Raises:
            ConflictError: If version mismatch (concurrent modification).
        """
        old_version = item.version
        item.increment_version()
        item.update_timestamp()

        try:
            db_item = self._build_item(item, gsi_keys)

            kwargs: dict[str, Any] = {"Item": db_item}
            if check_version:
                kwargs["ConditionExpression"] = "version = :old_version"
                kwargs["ExpressionAttributeValues"] = {":old_version": old_version}

            self.table.put_item(**kwargs)

            logger.debug(
                "Item updated",
                pk=db_item["PK"],
                sk=db_item["SK"],
                version=item.version,
            )

            return item

        except ClientError as e:
            item.version = old_version
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise ConflictError("Item was modified by another process")
            logger.error("DynamoDB update failed", error=str(e))
            raise

    def delete(self, pk: str, sk: str) -> bool:
        """Delete an item.

        Returns:
            True if deleted, False if not found.
        """
        try:
            self.table.delete_item(
                Key=self._build_key(pk, sk),
                ConditionExpression="attribute_exists(PK)",
            )
            logger.debug("Item deleted", pk=pk, sk=sk)
            return True

        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                return False
            logger.error("DynamoDB delete_item failed", error=str(e))
            raise

    def query(
        self,
        pk: str,
        sk_begins_with: str | None = None,
        index_name: str | None = None,
        limit: int | None = None,
        scan_forward: bool = True,
        filter_condition: ConditionBase | None = None,
        last_key: dict | None = None,
    ) -> tuple[list[T], dict | None]:
        """Query items by partition key.

        Args:
            pk: Partition key value (GSI partition key when index_name is set).
            sk_begins_with: Sort key prefix for begins_with condition.
            index_name: Optional GSI name ("GSI1").
            limit: Maximum items to evaluate.
            scan_forward: Sort direction (True = ascending).
            filter_condition: Optional boto3 filter condition.
            last_key: Last evaluated key for pagination.

        Returns:
            Tuple of (items, last_evaluated_key).
        """
        pk_name, sk_name = ("GSI1PK", "GSI1SK") if index_name == "GSI1" else ("PK", "SK")

        try:
            if sk_begins_with:
                key_condition = "#pk = :pk AND begins_with(#sk, :sk_prefix)"
                expr_names = {"#pk": pk_name, "#sk": sk_name}
                expr_values = {":pk": pk, ":sk_prefix": sk_begins_with}
            else:
                key_condition = "#pk = :pk"
                expr_names = {"#pk": pk_name}
                expr_values = {":pk": pk}

            kwargs: dict[str, Any] = {
                "KeyConditionExpression": key_condition,
                "ExpressionAttributeNames": expr_names,
                "ExpressionAttributeValues": expr_values,
                "ScanIndexForward": scan_forward,
            }

            if index_name:
                kwargs["IndexName"] = index_name
            if limit:
                kwargs["Limit"] = limit
            if last_key:
                kwargs["ExclusiveStartKey"] = last_key

            if filter_condition is not None:
                return self._query_filtered(kwargs, filter_condition, limit)

            response = self.table.query(**kwargs)

            items = [self.model_class.from_dynamodb(item) for item in response.get("Items", [])]
            return items, response.get("LastEvaluatedKey")

        except ClientError as e:
            logger.error("DynamoDB query failed", error=str(e), pk=pk, index=index_name)
            raise

    def _query_filtered(
        self,
        kwargs: dict[str, Any],
        filter_condition: ConditionBase,
        limit: int | None,
    ) -> tuple[list[T], dict | None]:
        """Run a filtered query, paging until ``limit`` matches are found."""
        kwargs = {**kwargs, "FilterExpression": filter_condition}
        kwargs.pop("Limit", None)
        items: list[T] = []

        while True:
            response = self.table.query(**kwargs)
            items.extend(self.model_class.from_dynamodb(item) for item in response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if limit and len(items) >= limit:
                return items[:limit], last_key
            if not last_key:
                return items, None
            kwargs["ExclusiveStartKey"] = last_key

    def scan(
        self,
        filter_condition: ConditionBase,
        limit: int | None = None,
    ) -> list[T]:
        """Scan the table for items matching a condition.

        Pages through the table until ``limit`` matches are collected or the
        table is exhausted. Used for lookups DynamoDB cannot index, such as
        membership in a list attribute.

        Args:
            filter_condition: boto3 condition, e.g. ``Attr("tokens").contains(t)``.
            limit: Maximum matches to return (None = all).

        Returns:
            List of model instances.
        """
        items: list[T] = []
        kwargs: dict[str, Any] = {"FilterExpression": filter_condition}

        try:
            while True:
                response = self.table.scan(**kwargs)
                items.extend(self.model_class.from_dynamodb(item) for item in response.get("Items", []))

                if limit and len(items) >= limit:
                    return items[:limit]

                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    return items
                kwargs["ExclusiveStartKey"] = last_key

        except ClientError as e:
            logger.error("DynamoDB scan failed", error=str(e))
            raise

    def scan_pages(self, filter_condition: ConditionBase, page_size: int = 400):
        """Yield lists of matching items, one per scanned page.

        Args:
            filter_condition: boto3 condition.
            page_size: Items evaluated per scan request.
        """
        kwargs: dict[str, Any] = {"FilterExpression": filter_condition, "Limit": page_size}

        while True:
            try:
                response = self.table.scan(**kwargs)
            except ClientError as e:
                logger.error("DynamoDB scan failed", error=str(e))
                raise

            page = [self.model_class.from_dynamodb(item) for item in response.get("Items", [])]
            if page:
                yield page

            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return
            kwargs["ExclusiveStartKey"] = last_key

    def put_operation(
        self,
        item: T,
        gsi_keys: dict[str, str] | None = None,
        expected_version: int | None = None,
        must_not_exist: bool = False,
    ) -> dict[str, Any]:
        """Build a TransactWriteItems ``Put`` for an item.

        Args:
            item: Model instance to write.
            gsi_keys: Optional GSI key values.
            expected_version: Require the stored version to equal this value.
            must_not_exist: Require that no item exists under the key.

        Returns:
            A single TransactItems entry.
        """
        serializer = TypeSerializer()
        db_item = self._build_item(item, gsi_keys)

        put: dict[str, Any] = {
            "TableName": self.table_name,
            "Item": {k: serializer.serialize(v) for k, v in db_item.items()},
        }
        if expected_version is not None:
            put["ConditionExpression"] = "version = :expected_version"
            put["ExpressionAttributeValues"] = {
                ":expected_version": serializer.serialize(expected_version),
            }
        elif must_not_exist:
            put["ConditionExpression"] = "attribute_not_exists(PK)"

        return {"Put": put}

    def transact_write(self, operations: list[dict[str, Any]]) -> None:
        """Commit operations atomically - all succeed or none are applied.

        Args:
            operations: TransactItems entries (see ``put_operation``).

        Raises:
            ConflictError: If a condition check failed (concurrent write).
            ValueError: If more operations are passed than one transaction holds.
        """
        if not operations:
            return
        if len(operations) > MAX_TRANSACTION_ITEMS:
            raise ValueError(f"A transaction holds at most {MAX_TRANSACTION_ITEMS} operations")

        try:
            self.client.transact_write_items(TransactItems=operations)
            logger.debug("Transaction committed", count=len(operations))

        except ClientError as e:
            if e.response["Error"]["Code"] == "TransactionCanceledException":
                reasons = e.response.get("CancellationReasons", [])
                if any(r.get("Code") == "ConditionalCheckFailed" for r in reasons):
                    raise ConflictError("Item was modified by another process")
                if "ConditionalCheckFailed" in e.response["Error"].get("Message", ""):
                    raise ConflictError("Item was modified by another process")
            logger.error("DynamoDB transact_write_items failed", error=str(e), count=len(operations))
            raise
