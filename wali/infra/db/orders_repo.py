"""Orders repository contract and the in-process implementation."""
from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import date
from typing import Protocol

from wali.core.exceptions import ConcurrentModificationError, OrderNotFoundException
from wali.domain.order import Order

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def format_order_number(day: date, sequence: int) -> str:
    """Human-readable order number: ``WL`` + ``YYMMDD`` + daily sequence."""
    return f"WL{day:%y%m%d}{sequence:04d}"


@dataclass(frozen=True, slots=True)
class OrderPage:
    """One page of a customer's orders, newest first."""

    orders: tuple[Order, ...]
    total: int
    page: int
    limit: int


class OrdersRepository(Protocol):
    """Persistence seam used by ``OrderService``.

    ``save`` is a compare-and-set on ``Order.version``: the stored version
    must equal the version the order was loaded with (0 for a new order).
    The stored copy, with the version incremented, is returned.
    """

    def load(self, order_id: str) -> Order:
        ...

    def save(self, order: Order) -> Order:
        ...

    def find_by_number(self, order_number: str) -> Order | None:
        ...

    def next_order_number(self, day: date) -> str:
        ...

    def list_customer_orders(self, customer_id: str, page: int, limit: int) -> OrderPage:
        ...


class InMemoryOrdersRepository:
    """Thread-safe dict-backed repository for tests and local runs."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._orders: dict[str, Order] = {}
        self._numbers: dict[str, str] = {}
        self._daily_sequence: dict[date, int] = {}

    def load(self, order_id: str) -> Order:
        with self._lock:
            order = self._orders.get(order_id)
        if order is None:
            raise OrderNotFoundException(order_id)
        return order

    def save(self, order: Order) -> Order:
        with self._lock:
            stored = self._orders.get(order.id)
            current_version = stored.version if stored else 0
            if current_version != order.version:
                raise ConcurrentModificationError(order.id, order.version)
            saved = replace(order, version=order.version + 1)
            self._orders[saved.id] = saved
            self._numbers[saved.order_number] = saved.id
            return saved

    def find_by_number(self, order_number: str) -> Order | None:
        with self._lock:
            order_id = self._numbers.get(order_number)
            return self._orders.get(order_id) if order_id else None

    def next_order_number(self, day: date) -> str:
        with self._lock:
            sequence = self._daily_sequence.get(day, 0) + 1
            self._daily_sequence[day] = sequence
        return format_order_number(day, sequence)

    def list_customer_orders(self, customer_id: str, page: int, limit: int) -> OrderPage:
        with self._lock:
            owned = [o for o in self._orders.values() if o.customer_id == customer_id]
        owned.sort(key=lambda o: (o.created_at, o.order_number), reverse=True)
        start = (page - 1) * limit
        return OrderPage(tuple(owned[start:start + limit]), len(owned), page, limit)

    def __len__(self) -> int:
        return len(self._orders)
