"""Boundary validation of order requests."""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from wali.domain.models.order import CreateOrderRequest, OrderItemCreate, UpdateOrderRequest

LOCATION = {"address": "Marcory Zone 4", "latitude": 5.30, "longitude": -3.98}


def _payload(**overrides) -> dict:
    payload = {"type": "DELIVERY", "pickup": LOCATION, "delivery": LOCATION}
    payload.update(overrides)
    return payload


def test_valid_request_builds_domain_values() -> None:
    request = CreateOrderRequest.model_validate(
        _payload(type="FOOD", items=[{"name": "Kedjenou", "quantity": 1, "unit_price": 3500}])
    )
    assert request.pickup.to_domain().coordinate.latitude == 5.30
    assert request.domain_items()[0].total_price == 3500


@pytest.mark.parametrize(
    "item",
    [
        {"name": "K", "quantity": 1, "unit_price": 100},
        {"name": "Kedjenou", "quantity": 0, "unit_price": 100},
        {"name": "Kedjenou", "quantity": 101, "unit_price": 100},
        {"name": "Kedjenou", "quantity": 1, "unit_price": -5},
        {"name": "Kedjenou", "quantity": 1, "unit_price": 100, "description": "x" * 501},
    ],
)
def test_item_constraints(item) -> None:
    with pytest.raises(ValidationError):
        OrderItemCreate.model_validate(item)


@pytest.mark.parametrize(
    "location",
    [
        {"address": "Nowhere", "latitude": 95, "longitude": 0},
        {"address": "Nowhere", "latitude": 5.3, "longitude": float("nan")},
        {"address": "", "latitude": 5.3, "longitude": -4.0},
    ],
)
def test_location_constraints(location) -> None:
    with pytest.raises(ValidationError):
        CreateOrderRequest.model_validate(_payload(pickup=location))


def test_notes_length_limit() -> None:
    with pytest.raises(ValidationError):
        CreateOrderRequest.model_validate(_payload(notes="n" * 501))


def test_unknown_order_type_rejected() -> None:
    with pytest.raises(ValidationError):
        CreateOrderRequest.model_validate(_payload(type="TAXI"))


def test_update_request_tracks_explicit_fields() -> None:
    assert UpdateOrderRequest().model_fields_set == set()
    assert UpdateOrderRequest(notes=None).model_fields_set == {"notes"}
    with pytest.raises(ValidationError):
        UpdateOrderRequest(notes="n" * 501)
