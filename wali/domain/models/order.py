"""
Pydantic models for order request validation.

These models guard the boundary between callers (API layer, admin tooling,
driver app) and the order core:
- Amounts are integer FCFA
- Coordinates are range-checked before any pricing happens
- The FOOD/SHOPPING items rule is left to the pricing engine, which owns it
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from wali.domain.order import Coordinate, Location, OrderItem, OrderType


class OrderItemCreate(BaseModel):
    """One line of a FOOD/SHOPPING order (optional for DELIVERY)."""

    name: str = Field(..., min_length=2, max_length=100, description="Item name")
    description: Optional[str] = Field(None, max_length=500, description="Item details")
    quantity: int = Field(..., ge=1, le=100, description="Number of units")
    unit_price: int = Field(..., ge=0, description="Unit price in FCFA")

    def to_domain(self) -> OrderItem:
        return OrderItem(
            name=self.name,
            quantity=self.quantity,
            unit_price=self.unit_price,
            description=self.description,
        )


class LocationIn(BaseModel):
    """Geocoded address."""

    address: str = Field(..., min_length=1, max_length=255, description="Address text")
    latitude: float = Field(..., ge=-90, le=90, allow_inf_nan=False)
    longitude: float = Field(..., ge=-180, le=180, allow_inf_nan=False)

    def to_domain(self) -> Location:
        return Location(Coordinate(self.latitude, self.longitude), self.address)


class CreateOrderRequest(BaseModel):
    """Model for creating a new order."""

    type: OrderType
    pickup: LocationIn
    delivery: LocationIn
    items: list[OrderItemCreate] = Field(default_factory=list)
    notes: Optional[str] = Field(None, max_length=500)
    scheduled_at: Optional[datetime] = None

    def domain_items(self) -> tuple[OrderItem, ...]:
        return tuple(item.to_domain() for item in self.items)


class QuoteRequest(BaseModel):
    """Price a trip without creating an order."""

    type: OrderType
    pickup: LocationIn
    delivery: LocationIn
    items: list[OrderItemCreate] = Field(default_factory=list)

    def domain_items(self) -> tuple[OrderItem, ...]:
        return tuple(item.to_domain() for item in self.items)


class UpdateOrderRequest(BaseModel):
    """Editable details of an order that is still in progress."""

    notes: Optional[str] = Field(None, max_length=500)
    scheduled_at: Optional[datetime] = None
