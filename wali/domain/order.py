"""Order domain types and status enums."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from wali.core.exceptions import InvalidCoordinateError


class OrderType(str, Enum):
    """What the courier is asked to do."""

    DELIVERY = "DELIVERY"
    FOOD = "FOOD"
    SHOPPING = "SHOPPING"

    @property
    def requires_items(self) -> bool:
        return self in (OrderType.FOOD, OrderType.SHOPPING)


class OrderStatus(str, Enum):
    """Unified order lifecycle statuses."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    ASSIGNED = "ASSIGNED"
    PICKED_UP = "PICKED_UP"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"

    @classmethod
    def normalize(cls, status: str | OrderStatus) -> OrderStatus:
        if isinstance(status, OrderStatus):
            return status
        return cls(str(status).strip().upper())


class PaymentEventType(str, Enum):
    """Provider-neutral payment outcomes."""

    PAYMENT_SUCCEEDED = "PAYMENT_SUCCEEDED"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    PAYMENT_CANCELLED = "PAYMENT_CANCELLED"


@dataclass(frozen=True, slots=True)
class Coordinate:
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        for name, value, bound in (
            ("latitude", self.latitude, 90.0),
            ("longitude", self.longitude, 180.0),
        ):
            try:
                number = float(value)
            except (TypeError, ValueError) as exc:
                raise InvalidCoordinateError(f"{name} must be a number, got {value!r}") from exc
            if math.isnan(number) or math.isinf(number):
                raise InvalidCoordinateError(f"{name} must be finite, got {value!r}")
            if not -bound <= number <= bound:
                raise InvalidCoordinateError(f"{name} {number} out of range [-{bound}, {bound}]")
            object.__setattr__(self, name, number)


@dataclass(frozen=True, slots=True)
class Location:
    coordinate: Coordinate
    address: str = ""


@dataclass(frozen=True, slots=True)
class OrderItem:
    name: str
    quantity: int
    unit_price: int
    description: str | None = None

    @property
    def total_price(self) -> int:
        return self.quantity * self.unit_price


@dataclass(frozen=True, slots=True)
class PriceBreakdown:
    distance_km: float
    estimated_duration_minutes: int
    base_price: int
    delivery_fee: int
    items_subtotal: int
    total_amount: int


@dataclass(frozen=True, slots=True)
class TrackingEvent:
    status: OrderStatus
    created_at: datetime
    description: str | None = None
    actor: str | None = None


@dataclass(frozen=True, slots=True)
class Order:
    """Persisted order value. Replaced, never mutated in place."""

    id: str
    order_number: str
    type: OrderType
    status: OrderStatus
    pickup: Location
    delivery: Location
    price: PriceBreakdown
    created_at: datetime
    updated_at: datetime
    items: tuple[OrderItem, ...] = ()
    customer_id: str | None = None
    driver_id: str | None = None
    notes: str | None = None
    scheduled_at: datetime | None = None
    proof_of_delivery: str | None = None
    cancellation_reason: str | None = None
    failure_reason: str | None = None
    picked_up_at: datetime | None = None
    delivered_at: datetime | None = None
    tracking: tuple[TrackingEvent, ...] = field(default_factory=tuple)
    version: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status in (OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.FAILED)
