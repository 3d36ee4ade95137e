"""Domain models for request validation."""

from .order import (
    CreateOrderRequest,
    LocationIn,
    OrderItemCreate,
    QuoteRequest,
    UpdateOrderRequest,
)

__all__ = [
    "CreateOrderRequest",
    "LocationIn",
    "OrderItemCreate",
    "QuoteRequest",
    "UpdateOrderRequest",
]
