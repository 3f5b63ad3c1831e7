"""DynamoDB service wrapper plus DynamoDB-backed reservation store and room catalog."""

import datetime as dt
import os
from decimal import Decimal
from typing import Any

import boto3
from boto3.dynamodb.conditions import Key
from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import ClientError

from booking.models import ACTIVE_STATUSES, Payment, Reservation, ReservationStatus, RoomType
from booking.services.overlap import Interval
from booking.services.store import (
    InventoryChanged,
    InventorySnapshot,
    ReservationStore,
    RoomCatalog,
)
from booking.utils.logging import get_logger

logger = get_logger(__name__)

RESERVATIONS_TABLE = "reservations"
PAYMENTS_TABLE = "payments"
ROOM_TYPES_TABLE = "room-types"
INVENTORY_TABLE = "inventory-holds"

# Sort key of the per-room-type version row in the inventory-holds table
VERSION_HOLD_ID = "#version"

ROOM_TYPE_STATUS_INDEX = "room_type_status-index"
STATUS_INDEX = "status-index"
USER_INDEX = "user_id-index"

# Module-level singleton for connection reuse
_dynamodb_service_instance: "DynamoDBService | None" = None


def get_dynamodb_service(
    environment: str | None = None, name_prefix: str | None = None
) -> "DynamoDBService":
    """Get or create the singleton DynamoDB service instance.

    Args:
        environment: Environment name. Only used on first call.
        name_prefix: Table name prefix. Only used on first call.

    Returns:
        Shared DynamoDBService instance
    """
    global _dynamodb_service_instance
    if _dynamodb_service_instance is None:
        _dynamodb_service_instance = DynamoDBService(environment, name_prefix)
    return _dynamodb_service_instance


def reset_dynamodb_service() -> None:
    """Reset the singleton instance (for testing only).

    This allows tests to create a fresh DynamoDBService inside
    a mock_aws context.
    """
    global _dynamodb_service_instance
    _dynamodb_service_instance = None


class DynamoDBService:
    """Service for DynamoDB operations with environment-aware table names."""

    def __init__(self, environment: str | None = None, name_prefix: str | None = None) -> None:
        """Initialize DynamoDB service.

        Args:
            environment: Environment name (dev/prod). Defaults to ENVIRONMENT env var.
            name_prefix: Table name prefix. Defaults to DYNAMODB_TABLE_PREFIX or booking-{env}.
        """
        self.environment = environment or os.getenv("ENVIRONMENT", "dev")
        self.name_prefix = name_prefix or os.getenv(
            "DYNAMODB_TABLE_PREFIX", f"booking-{self.environment}"
        )
        self._dynamodb = boto3.resource("dynamodb")
        self._client = boto3.client("dynamodb")
        self._serializer = TypeSerializer()

    def table_name(self, table: str) -> str:
        """Get full table name with prefix."""
        return f"{self.name_prefix}-{table}"

    def _get_table(self, table: str) -> Any:
        return self._dynamodb.Table(self.table_name(table))

    def get_item(self, table: str, key: dict[str, Any]) -> dict[str, Any] | None:
        """Get a single item by key.

        Args:
            table: Table name without prefix
            key: Primary key dict

        Returns:
            Item dict or None if not found
        """
        response = self._get_table(table).get_item(Key=key, ConsistentRead=True)
        item: dict[str, Any] | None = response.get("Item")
        return item

    def put_item(
        self,
        table: str,
        item: dict[str, Any],
        condition_expression: str | None = None,
    ) -> bool:
        """Put an item into the table.

        Args:
            table: Table name without prefix
            item: Item to store
            condition_expression: Optional condition for write

        Returns:
            True if successful, False if condition failed
        """
        try:
            kwargs: dict[str, Any] = {"Item": item}
            if condition_expression:
                kwargs["ConditionExpression"] = condition_expression

            self._get_table(table).put_item(**kwargs)
            return True
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                return False
            raise

    def query(
        self,
        table: str,
        key_condition: Any,
        index_name: str | None = None,
        filter_expression: Any | None = None,
        consistent_read: bool = False,
    ) -> list[dict[str, Any]]:
        """Query table or GSI, following pagination.

        Args:
            table: Table name without prefix
            key_condition: Boto3 Key condition
            index_name: GSI name (optional)
            filter_expression: Additional filter (optional)
            consistent_read: Strongly consistent read (base table only)

        Returns:
            List of items
        """
        kwargs: dict[str, Any] = {"KeyConditionExpression": key_condition}
        if consistent_read:
            kwargs["ConsistentRead"] = True
        if index_name:
            kwargs["IndexName"] = index_name
        if filter_expression:
            kwargs["FilterExpression"] = filter_expression
        return self._paginate(self._get_table(table).query, kwargs)

    def scan(self, table: str, filter_expression: Any | None = None) -> list[dict[str, Any]]:
        """Scan a whole table, following pagination."""
        kwargs: dict[str, Any] = {}
        if filter_expression:
            kwargs["FilterExpression"] = filter_expression
        return self._paginate(self._get_table(table).scan, kwargs)

    @staticmethod
    def _paginate(operation: Any, kwargs: dict[str, Any]) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        while True:
            response = operation(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    def query_by_gsi(
        self,
        table: str,
        index_name: str,
        partition_key_name: str,
        partition_key_value: str,
    ) -> list[dict[str, Any]]:
        """Query a GSI by partition key.

        Args:
            table: Table name without prefix
            index_name: GSI name
            partition_key_name: Name of partition key attribute
            partition_key_value: Value to query

        Returns:
            List of items
        """
        return self.query(
            table, Key(partition_key_name).eq(partition_key_value), index_name=index_name
        )

    def put_request(
        self,
        table: str,
        item: dict[str, Any],
        condition_expression: str | None = None,
        expression_attribute_names: dict[str, str] | None = None,
        expression_attribute_values: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Build a TransactWriteItem Put in low-level attribute format."""
        put: dict[str, Any] = {
            "TableName": self.table_name(table),
            "Item": self._serialize(item),
        }
        if condition_expression:
            put["ConditionExpression"] = condition_expression
        if expression_attribute_names:
            put["ExpressionAttributeNames"] = expression_attribute_names
        if expression_attribute_values:
            put["ExpressionAttributeValues"] = self._serialize(expression_attribute_values)
        return {"Put": put}

    def update_request(
        self,
        table: str,
        key: dict[str, Any],
        update_expression: str,
        condition_expression: str | None = None,
        expression_attribute_names: dict[str, str] | None = None,
        expression_attribute_values: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Build a TransactWriteItem Update in low-level attribute format."""
        update: dict[str, Any] = {
            "TableName": self.table_name(table),
            "Key": self._serialize(key),
            "UpdateExpression": update_expression,
        }
        if condition_expression:
            update["ConditionExpression"] = condition_expression
        if expression_attribute_names:
            update["ExpressionAttributeNames"] = expression_attribute_names
        if expression_attribute_values:
            update["ExpressionAttributeValues"] = self._serialize(expression_attribute_values)
        return {"Update": update}

    def delete_request(self, table: str, key: dict[str, Any]) -> dict[str, Any]:
        """Build a TransactWriteItem Delete in low-level attribute format."""
        return {"Delete": {"TableName": self.table_name(table), "Key": self._serialize(key)}}

    def transact_write(self, items: list[dict[str, Any]]) -> bool:
        """Execute transactional write for multiple items.

        Args:
            items: List of TransactWriteItem dicts

        Returns:
            True if successful, False if transaction failed
        """
        try:
            self._client.transact_write_items(TransactItems=items)
            return True
        except ClientError as e:
            if e.response["Error"]["Code"] == "TransactionCanceledException":
                return False
            raise

    def _serialize(self, values: dict[str, Any]) -> dict[str, Any]:
        return {k: self._serializer.serialize(v) for k, v in values.items()}

    # =========================================================================
    # Room type methods
    # =========================================================================

    def get_room_type(self, room_type_id: str) -> RoomType | None:
        item = self.get_item(ROOM_TYPES_TABLE, {"room_type_id": room_type_id})
        return RoomType.model_validate(_plain(item), strict=False) if item else None

    def list_room_types(self) -> list[RoomType]:
        """Load the whole room type catalog."""
        return [
            RoomType.model_validate(_plain(item), strict=False)
            for item in self.scan(ROOM_TYPES_TABLE)
        ]

    def put_room_type(self, room_type: RoomType) -> None:
        """Create or replace a room type."""
        item = {k: v for k, v in room_type.model_dump(mode="json").items() if v is not None}
        self.put_item(ROOM_TYPES_TABLE, item)


# =============================================================================
# Item conversion
# =============================================================================


def _room_type_status(room_type_id: str, status: ReservationStatus) -> str:
    return f"{room_type_id}#{status.value}"


def _to_item(model: Reservation | Payment) -> dict[str, Any]:
    """Model to DynamoDB item: ISO strings for dates, no null attributes."""
    item = {k: v for k, v in model.model_dump(mode="json").items() if v is not None}
    if isinstance(model, Reservation):
        item["room_type_status"] = _room_type_status(model.room_type_id, model.status)
    return item


def _plain(item: dict[str, Any]) -> dict[str, Any]:
    """DynamoDB numbers come back as Decimal; all ours are integral cents."""
    return {k: int(v) if isinstance(v, Decimal) else v for k, v in item.items()}


def _reservation_from_item(item: dict[str, Any]) -> Reservation:
    data = _plain(item)
    data.pop("room_type_status", None)
    return Reservation.model_validate(data, strict=False)


def _payment_from_item(item: dict[str, Any]) -> Payment:
    return Payment.model_validate(_plain(item), strict=False)


def _hold_key(room_type_id: str, hold_id: str) -> dict[str, str]:
    return {"room_type_id": room_type_id, "hold_id": hold_id}


def _hold_interval(item: dict[str, Any]) -> Interval:
    return dt.date.fromisoformat(item["check_in"]), dt.date.fromisoformat(item["check_out"])


class DynamoDBReservationStore(ReservationStore):
    """Reservation store on three DynamoDB tables.

    Tables (name prefix from DynamoDBService):
        reservations: PK reservation_id; GSIs room_type_status-index
            (room_type_id#status), status-index, user_id-index
        payments: PK reservation_id; GSI user_id-index
        inventory-holds: PK room_type_id, SK hold_id; one row per active
            reservation plus a "#version" row per room type

    GSI reads are eventually consistent, so availability is read from
    inventory-holds with a consistent query instead. add() writes the hold
    and bumps the version in the same transaction as the reservation,
    conditioned on the version the caller read; commit() drops the hold
    when a reservation leaves the active statuses. Two processes booking
    the same room type therefore cannot both commit against one snapshot.

    commit() is a transaction whose reservation Put is conditioned on the
    stored status, so two writers can never both move the same reservation.
    """

    def __init__(self, db: DynamoDBService | None = None) -> None:
        self.db = db or get_dynamodb_service()

    def add(
        self,
        reservation: Reservation,
        payment: Payment | None = None,
        *,
        expected_version: int | None = None,
    ) -> None:
        room_type_id = reservation.room_type_id
        items = [
            self.db.put_request(
                RESERVATIONS_TABLE,
                _to_item(reservation),
                condition_expression="attribute_not_exists(reservation_id)",
            )
        ]
        if payment is not None:
            items.append(self.db.put_request(PAYMENTS_TABLE, _to_item(payment)))
        if reservation.status in ACTIVE_STATUSES:
            hold = {
                **_hold_key(room_type_id, reservation.reservation_id),
                "check_in": reservation.check_in.isoformat(),
                "check_out": reservation.check_out.isoformat(),
            }
            items.append(self.db.put_request(INVENTORY_TABLE, hold))
        items.append(self._version_bump(room_type_id, expected_version))

        if self.db.transact_write(items):
            return
        if self.get(reservation.reservation_id) is not None:
            raise ValueError(f"Reservation {reservation.reservation_id} already exists")
        logger.info(
            "Inventory version moved during booking",
            extra={"room_type_id": room_type_id, "expected_version": expected_version},
        )
        raise InventoryChanged(room_type_id)

    def _version_bump(self, room_type_id: str, expected_version: int | None) -> dict[str, Any]:
        names = {"#version": "version"}
        key = _hold_key(room_type_id, VERSION_HOLD_ID)
        if expected_version is None:
            return self.db.update_request(
                INVENTORY_TABLE,
                key,
                "ADD #version :one",
                expression_attribute_names=names,
                expression_attribute_values={":one": 1},
            )
        if expected_version == 0:
            condition = "attribute_not_exists(#version)"
            values: dict[str, Any] = {":next": 1}
        else:
            condition = "#version = :seen"
            values = {":next": expected_version + 1, ":seen": expected_version}
        return self.db.update_request(
            INVENTORY_TABLE,
            key,
            "SET #version = :next",
            condition_expression=condition,
            expression_attribute_names=names,
            expression_attribute_values=values,
        )

    def get(self, reservation_id: str) -> Reservation | None:
        item = self.db.get_item(RESERVATIONS_TABLE, {"reservation_id": reservation_id})
        return _reservation_from_item(item) if item else None

    def inventory(self, room_type_id: str) -> InventorySnapshot:
        items = self.db.query(
            INVENTORY_TABLE, Key("room_type_id").eq(room_type_id), consistent_read=True
        )
        version = 0
        intervals: list[Interval] = []
        for item in items:
            if item["hold_id"] == VERSION_HOLD_ID:
                version = int(item["version"])
            else:
                intervals.append(_hold_interval(item))
        return InventorySnapshot(intervals, version)

    def active_intervals(self, room_type_id: str) -> list[Interval]:
        return self.inventory(room_type_id).intervals

    def list_by_room_type_and_status(
        self, room_type_id: str, status: ReservationStatus
    ) -> list[Reservation]:
        items = self.db.query_by_gsi(
            RESERVATIONS_TABLE,
            ROOM_TYPE_STATUS_INDEX,
            "room_type_status",
            _room_type_status(room_type_id, status),
        )
        return [_reservation_from_item(i) for i in items]

    def list_by_status(self, status: ReservationStatus) -> list[Reservation]:
        items = self.db.query_by_gsi(RESERVATIONS_TABLE, STATUS_INDEX, "status", status.value)
        return [_reservation_from_item(i) for i in items]

    def list_by_user(self, user_id: str) -> list[Reservation]:
        items = self.db.query_by_gsi(RESERVATIONS_TABLE, USER_INDEX, "user_id", user_id)
        found = [_reservation_from_item(i) for i in items]
        return sorted(found, key=lambda r: r.created_at, reverse=True)

    def list_all(self) -> list[Reservation]:
        found = [_reservation_from_item(i) for i in self.db.scan(RESERVATIONS_TABLE)]
        return sorted(found, key=lambda r: r.created_at, reverse=True)

    def commit(
        self,
        reservation: Reservation,
        expected_status: ReservationStatus,
        payment: Payment | None = None,
    ) -> bool:
        items = [
            self.db.put_request(
                RESERVATIONS_TABLE,
                _to_item(reservation),
                condition_expression="#status = :expected",
                expression_attribute_names={"#status": "status"},
                expression_attribute_values={":expected": expected_status.value},
            )
        ]
        if payment is not None:
            items.append(self.db.put_request(PAYMENTS_TABLE, _to_item(payment)))
        if expected_status in ACTIVE_STATUSES and reservation.status not in ACTIVE_STATUSES:
            items.append(
                self.db.delete_request(
                    INVENTORY_TABLE,
                    _hold_key(reservation.room_type_id, reservation.reservation_id),
                )
            )
        committed = self.db.transact_write(items)
        if not committed:
            logger.info(
                "Conditional commit lost",
                extra={
                    "reservation_id": reservation.reservation_id,
                    "expected_status": expected_status.value,
                },
            )
        return committed

    def get_payment(self, reservation_id: str) -> Payment | None:
        item = self.db.get_item(PAYMENTS_TABLE, {"reservation_id": reservation_id})
        return _payment_from_item(item) if item else None

    def save_payment(self, payment: Payment) -> None:
        self.db.put_item(PAYMENTS_TABLE, _to_item(payment))

    def list_payments_by_user(self, user_id: str) -> list[Payment]:
        items = self.db.query_by_gsi(PAYMENTS_TABLE, USER_INDEX, "user_id", user_id)
        found = [_payment_from_item(i) for i in items]
        return sorted(found, key=lambda p: p.created_at, reverse=True)


class DynamoDBRoomCatalog(RoomCatalog):
    """Room catalog read through to the room-types table.

    Nothing is cached, so an upsert made by any process (a lowered
    total_rooms, a new room type) is seen by the next booking everywhere.
    """

    def __init__(self, db: DynamoDBService | None = None) -> None:
        super().__init__()
        self.db = db or get_dynamodb_service()

    def get(self, room_type_id: str) -> RoomType | None:
        return self.db.get_room_type(room_type_id)

    def list_room_types(self) -> list[RoomType]:
        return sorted(self.db.list_room_types(), key=lambda rt: rt.room_type_id)

    def upsert(self, room_type: RoomType) -> None:
        self.db.put_room_type(room_type)
