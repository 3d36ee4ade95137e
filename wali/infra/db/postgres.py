"""
PostgreSQL orders repository.

Uses a psycopg connection pool. Nested values (locations, items, price,
tracking history) live in JSONB columns; ``version`` guards every write.
"""
from __future__ import annotations

import json
import os
from contextlib import contextmanager
from dataclasses import asdict, replace
from datetime import date, datetime
from typing import Any, Iterator, Mapping

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

from logging_config import logger
from wali.core.exceptions import (
    ConcurrentModificationError,
    DatabaseException,
    OrderNotFoundException,
)
from wali.core.order_math import parse_json_list
from wali.domain.order import (
    Coordinate,
    Location,
    Order,
    OrderItem,
    OrderStatus,
    OrderType,
    PriceBreakdown,
    TrackingEvent,
)
from wali.infra.db.orders_repo import OrderPage, format_order_number
from wali.infra.db.schema import SCHEMA_STATEMENTS

MIN_CONNECTIONS = int(os.environ.get("DB_MIN_CONN", "1"))
MAX_CONNECTIONS = int(os.environ.get("DB_MAX_CONN", "5"))
POOL_WAIT_TIMEOUT = int(os.environ.get("DB_POOL_WAIT_TIMEOUT", "60"))

_COLUMNS = (
    "id",
    "order_number",
    "type",
    "status",
    "customer_id",
    "driver_id",
    "pickup",
    "delivery",
    "items",
    "price",
    "tracking",
    "notes",
    "scheduled_at",
    "proof_of_delivery",
    "cancellation_reason",
    "failure_reason",
    "picked_up_at",
    "delivered_at",
    "created_at",
    "updated_at",
    "version",
)


def _json_object(raw: Any) -> dict:
    if isinstance(raw, (str, bytes)):
        return json.loads(raw)
    return dict(raw or {})


def _location_to_json(location: Location) -> dict:
    return {
        "address": location.address,
        "latitude": location.coordinate.latitude,
        "longitude": location.coordinate.longitude,
    }


def _location_from_json(raw: Any) -> Location:
    data = _json_object(raw)
    return Location(
        Coordinate(data["latitude"], data["longitude"]),
        data.get("address", ""),
    )


def _tracking_to_json(event: TrackingEvent) -> dict:
    return {
        "status": event.status.value,
        "created_at": event.created_at.isoformat(),
        "description": event.description,
        "actor": event.actor,
    }


def _tracking_from_json(data: Mapping[str, Any]) -> TrackingEvent:
    return TrackingEvent(
        status=OrderStatus(data["status"]),
        created_at=datetime.fromisoformat(data["created_at"]),
        description=data.get("description"),
        actor=data.get("actor"),
    )


def order_to_row(order: Order) -> dict[str, Any]:
    """Flatten an order into column values (JSONB parts left as plain data)."""
    return {
        "id": order.id,
        "order_number": order.order_number,
        "type": order.type.value,
        "status": order.status.value,
        "customer_id": order.customer_id,
        "driver_id": order.driver_id,
        "pickup": _location_to_json(order.pickup),
        "delivery": _location_to_json(order.delivery),
        "items": [
            {
                "name": item.name,
                "description": item.description,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
            }
            for item in order.items
        ],
        "price": asdict(order.price),
        "tracking": [_tracking_to_json(event) for event in order.tracking],
        "notes": order.notes,
        "scheduled_at": order.scheduled_at,
        "proof_of_delivery": order.proof_of_delivery,
        "cancellation_reason": order.cancellation_reason,
        "failure_reason": order.failure_reason,
        "picked_up_at": order.picked_up_at,
        "delivered_at": order.delivered_at,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
        "version": order.version,
    }


def order_from_row(row: Mapping[str, Any]) -> Order:
    """Rebuild an ``Order`` from a ``dict_row`` (or ``order_to_row`` output)."""
    return Order(
        id=row["id"],
        order_number=row["order_number"],
        type=OrderType(row["type"]),
        status=OrderStatus(row["status"]),
        customer_id=row.get("customer_id"),
        driver_id=row.get("driver_id"),
        pickup=_location_from_json(row["pickup"]),
        delivery=_location_from_json(row["delivery"]),
        items=tuple(
            OrderItem(
                name=item["name"],
                quantity=int(item["quantity"]),
                unit_price=int(item["unit_price"]),
                description=item.get("description"),
            )
            for item in parse_json_list(row.get("items"))
        ),
        price=PriceBreakdown(**_json_object(row["price"])),
        tracking=tuple(_tracking_from_json(event) for event in parse_json_list(row.get("tracking"))),
        notes=row.get("notes"),
        scheduled_at=row.get("scheduled_at"),
        proof_of_delivery=row.get("proof_of_delivery"),
        cancellation_reason=row.get("cancellation_reason"),
        failure_reason=row.get("failure_reason"),
        picked_up_at=row.get("picked_up_at"),
        delivered_at=row.get("delivered_at"),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        version=int(row["version"]),
    )


def _params(order: Order, version: int) -> dict[str, Any]:
    values = order_to_row(order)
    for key in ("pickup", "delivery", "items", "price", "tracking"):
        values[key] = Jsonb(values[key])
    values["version"] = version
    return values


_INSERT_SQL = (
    f"INSERT INTO orders ({', '.join(_COLUMNS)}) "
    f"VALUES ({', '.join(f'%({name})s' for name in _COLUMNS)}) "
    "ON CONFLICT (id) DO NOTHING"
)

_UPDATE_SQL = (
    "UPDATE orders SET "
    + ", ".join(f"{name} = %({name})s" for name in _COLUMNS if name != "id")
    + " WHERE id = %(id)s AND version = %(expected_version)s"
)


class PostgresOrdersRepository:
    """Orders repository backed by PostgreSQL."""

    def __init__(self, database_url: str, *, pool: ConnectionPool | None = None) -> None:
        if not database_url and pool is None:
            raise ValueError("DATABASE_URL is required for PostgreSQL")

        safe_url = database_url.split("@")[1] if "@" in database_url else database_url
        logger.info(f"Connecting orders repository to ...@{safe_url}")

        self.pool = pool or ConnectionPool(
            database_url,
            min_size=MIN_CONNECTIONS,
            max_size=MAX_CONNECTIONS,
            timeout=POOL_WAIT_TIMEOUT,
            kwargs={"row_factory": dict_row},
            open=True,
        )
        self._schema_ready = False

    @contextmanager
    def get_connection(self) -> Iterator[psycopg.Connection]:
        try:
            with self.pool.connection() as conn:
                yield conn
        except psycopg.Error as exc:
            self._handle_db_error("connection", exc)

    def _handle_db_error(self, operation: str, error: Exception) -> None:
        raise DatabaseException(f"Database operation '{operation}' failed: {error}") from error

    def ensure_schema(self) -> None:
        if self._schema_ready:
            return
        with self.get_connection() as conn:
            cursor = conn.cursor()
            for statement in SCHEMA_STATEMENTS:
                cursor.execute(statement)
        self._schema_ready = True

    def load(self, order_id: str) -> Order:
        self.ensure_schema()
        with self.get_connection() as conn:
            cursor = conn.cursor(row_factory=dict_row)
            cursor.execute("SELECT * FROM orders WHERE id = %s", (order_id,))
            row = cursor.fetchone()
        if not row:
            raise OrderNotFoundException(order_id)
        return order_from_row(row)

    def find_by_number(self, order_number: str) -> Order | None:
        self.ensure_schema()
        with self.get_connection() as conn:
            cursor = conn.cursor(row_factory=dict_row)
            cursor.execute("SELECT * FROM orders WHERE order_number = %s", (order_number,))
            row = cursor.fetchone()
        return order_from_row(row) if row else None

    def save(self, order: Order) -> Order:
        self.ensure_schema()
        new_version = order.version + 1
        params = _params(order, new_version)
        with self.get_connection() as conn:
            cursor = conn.cursor()
            if order.version == 0:
                cursor.execute(_INSERT_SQL, params)
            else:
                params["expected_version"] = order.version
                cursor.execute(_UPDATE_SQL, params)
            if cursor.rowcount != 1:
                logger.info(
                    f"Stale write rejected for order {order.id} (version {order.version})"
                )
                raise ConcurrentModificationError(order.id, order.version)
        return replace(order, version=new_version)

    def next_order_number(self, day: date) -> str:
        self.ensure_schema()
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO order_number_counters (day, last_seq) VALUES (%s, 1)
                ON CONFLICT (day) DO UPDATE
                SET last_seq = order_number_counters.last_seq + 1
                RETURNING last_seq
                """,
                (day,),
            )
            row = cursor.fetchone()
        sequence = row["last_seq"] if isinstance(row, Mapping) else row[0]
        return format_order_number(day, int(sequence))

    def list_customer_orders(self, customer_id: str, page: int, limit: int) -> OrderPage:
        self.ensure_schema()
        with self.get_connection() as conn:
            cursor = conn.cursor(row_factory=dict_row)
            cursor.execute(
                "SELECT COUNT(*) AS total FROM orders WHERE customer_id = %s",
                (customer_id,),
            )
            total = int(cursor.fetchone()["total"])
            cursor.execute(
                """
                SELECT * FROM orders WHERE customer_id = %s
                ORDER BY created_at DESC, order_number DESC
                LIMIT %s OFFSET %s
                """,
                (customer_id, limit, (page - 1) * limit),
            )
            rows = cursor.fetchall()
        return OrderPage(tuple(order_from_row(row) for row in rows), total, page, limit)

    def close(self) -> None:
        self.pool.close()
