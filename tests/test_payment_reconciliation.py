"""Tests for payment webhook reconciliation."""
from __future__ import annotations

import asyncio
import json

import pytest

from wali.application.orders.reconcile_payment import (
    MAX_RECONCILE_ATTEMPTS,
    PAYMENT_FAILED_REASON,
    PaymentReconciler,
    decide_transition,
)
from wali.core.exceptions import (
    ConcurrentModificationError,
    InvalidRequestError,
    InvalidSignatureError,
)
from wali.domain.order import OrderStatus, PaymentEventType
from wali.integrations.payment_providers import FlutterwaveAdapter

HASH = "flw-secret-hash"


def _body(order_id: str, status: str) -> bytes:
    return json.dumps(
        {"event": "charge.completed", "data": {"id": 1, "tx_ref": f"WALI_ORDER_{order_id}_1710400000000", "status": status}}
    ).encode()


@pytest.fixture()
def reconciler(order_service) -> PaymentReconciler:
    return PaymentReconciler(order_service, {"flutterwave": FlutterwaveAdapter(HASH)})


@pytest.fixture()
async def pending_order(order_service, make_request):
    return await order_service.create_order(make_request())


@pytest.mark.asyncio
async def test_success_confirms_pending_order(reconciler, pending_order, repo):
    result = await reconciler.handle_provider_event("flutterwave", _body(pending_order.id, "successful"), HASH)

    assert result.accepted
    assert result.order_id == pending_order.id
    assert result.applied_transition == OrderStatus.CONFIRMED
    stored = repo.load(pending_order.id)
    assert stored.status == OrderStatus.CONFIRMED
    assert stored.tracking[-1].actor == "payment:flutterwave"


@pytest.mark.asyncio
async def test_duplicate_success_is_idempotent(reconciler, pending_order, repo):
    body = _body(pending_order.id, "successful")
    first = await reconciler.handle_provider_event("flutterwave", body, HASH)
    second = await reconciler.handle_provider_event("flutterwave", body, HASH)

    assert first.applied_transition == OrderStatus.CONFIRMED
    assert second.accepted
    assert second.applied_transition is None
    confirmations = [e for e in repo.load(pending_order.id).tracking if e.status == OrderStatus.CONFIRMED]
    assert len(confirmations) == 1


@pytest.mark.asyncio
async def test_concurrent_duplicates_confirm_once(reconciler, pending_order, repo):
    body = _body(pending_order.id, "successful")
    results = await asyncio.gather(
        *(reconciler.handle_provider_event("flutterwave", body, HASH) for _ in range(5))
    )

    assert all(r.accepted for r in results)
    assert sum(1 for r in results if r.applied_transition == OrderStatus.CONFIRMED) == 1
    stored = repo.load(pending_order.id)
    assert stored.status == OrderStatus.CONFIRMED
    assert stored.version == 2


@pytest.mark.asyncio
async def test_failure_cancels_pending_order(reconciler, pending_order, repo):
    result = await reconciler.handle_provider_event("flutterwave", _body(pending_order.id, "failed"), HASH)

    assert result.applied_transition == OrderStatus.CANCELLED
    stored = repo.load(pending_order.id)
    assert stored.status == OrderStatus.CANCELLED
    assert stored.cancellation_reason == PAYMENT_FAILED_REASON


@pytest.mark.asyncio
async def test_failure_after_confirmation_is_ignored(reconciler, pending_order, order_service, repo):
    await order_service.confirm(pending_order.id, actor="admin")

    result = await reconciler.handle_provider_event("flutterwave", _body(pending_order.id, "failed"), HASH)

    assert result.accepted
    assert result.applied_transition is None
    assert repo.load(pending_order.id).status == OrderStatus.CONFIRMED


@pytest.mark.asyncio
async def test_success_for_cancelled_order_is_noop(reconciler, pending_order, order_service, repo):
    await order_service.cancel(pending_order.id, "client")

    result = await reconciler.handle_provider_event("flutterwave", _body(pending_order.id, "successful"), HASH)

    assert result.accepted
    assert result.applied_transition is None
    assert repo.load(pending_order.id).status == OrderStatus.CANCELLED


@pytest.mark.asyncio
async def test_unmapped_status_is_acknowledged(reconciler, pending_order, repo):
    result = await reconciler.handle_provider_event("flutterwave", _body(pending_order.id, "pending"), HASH)

    assert result.accepted
    assert result.applied_transition is None
    assert repo.load(pending_order.id).version == 1


@pytest.mark.asyncio
async def test_order_number_reference_is_resolved(reconciler, pending_order, repo):
    body = json.dumps(
        {"data": {"status": "successful", "meta": {"order_id": pending_order.order_number}}}
    ).encode()
    result = await reconciler.handle_provider_event("flutterwave", body, HASH)

    assert result.order_id == pending_order.id
    assert result.applied_transition == OrderStatus.CONFIRMED


@pytest.mark.asyncio
async def test_bad_signature_has_no_side_effects(reconciler, pending_order, repo):
    with pytest.raises(InvalidSignatureError):
        await reconciler.handle_provider_event("flutterwave", _body(pending_order.id, "successful"), "forged")
    assert repo.load(pending_order.id).status == OrderStatus.PENDING


@pytest.mark.asyncio
async def test_non_ascii_signature_is_invalid(reconciler, pending_order, repo):
    with pytest.raises(InvalidSignatureError):
        await reconciler.handle_provider_event("flutterwave", _body(pending_order.id, "successful"), "sigé")
    assert repo.load(pending_order.id).status == OrderStatus.PENDING


@pytest.mark.asyncio
async def test_unknown_provider_rejected(reconciler):
    with pytest.raises(InvalidRequestError):
        await reconciler.handle_provider_event("wave", b"{}", "sig")


@pytest.mark.asyncio
async def test_unknown_order_fails_softly(reconciler):
    result = await reconciler.handle_provider_event("flutterwave", _body("ghost", "successful"), HASH)
    assert result.accepted is False
    assert result.order_id is None


@pytest.mark.asyncio
async def test_malformed_payload_fails_softly(reconciler):
    result = await reconciler.handle_provider_event("flutterwave", b"<xml/>", HASH)
    assert result.accepted is False


class RacingOrderService:
    """Wraps a real service and loses the first N writes to a concurrent admin."""

    def __init__(self, inner, losses: int):
        self.inner = inner
        self.losses = losses

    async def find_order(self, ref):
        return await self.inner.find_order(ref)

    async def request_transition(self, order_id, target, context=None):
        if self.losses:
            self.losses -= 1
            raise ConcurrentModificationError(order_id, 1)
        return await self.inner.request_transition(order_id, target, context)


@pytest.mark.asyncio
async def test_lost_race_is_retried(order_service, pending_order, repo):
    racing = RacingOrderService(order_service, losses=MAX_RECONCILE_ATTEMPTS - 1)
    reconciler = PaymentReconciler(racing, {"flutterwave": FlutterwaveAdapter(HASH)})

    result = await reconciler.handle_provider_event("flutterwave", _body(pending_order.id, "successful"), HASH)

    assert result.applied_transition == OrderStatus.CONFIRMED
    assert repo.load(pending_order.id).status == OrderStatus.CONFIRMED


@pytest.mark.asyncio
async def test_retries_are_bounded(order_service, pending_order):
    racing = RacingOrderService(order_service, losses=MAX_RECONCILE_ATTEMPTS)
    reconciler = PaymentReconciler(racing, {"flutterwave": FlutterwaveAdapter(HASH)})

    with pytest.raises(ConcurrentModificationError):
        await reconciler.handle_provider_event("flutterwave", _body(pending_order.id, "successful"), HASH)


@pytest.mark.asyncio
async def test_retry_budget_stops_at_max_attempts(order_service, pending_order, repo):
    racing = RacingOrderService(order_service, losses=MAX_RECONCILE_ATTEMPTS + 5)
    reconciler = PaymentReconciler(racing, {"flutterwave": FlutterwaveAdapter(HASH)})

    with pytest.raises(ConcurrentModificationError):
        await reconciler.handle_provider_event("flutterwave", _body(pending_order.id, "successful"), HASH)

    assert racing.losses == 5
    assert repo.load(pending_order.id).status == OrderStatus.PENDING


def test_decide_transition_table() -> None:
    assert decide_transition(OrderStatus.PENDING, PaymentEventType.PAYMENT_SUCCEEDED)[0] == OrderStatus.CONFIRMED
    assert decide_transition(OrderStatus.ASSIGNED, PaymentEventType.PAYMENT_SUCCEEDED)[0] is None
    assert decide_transition(OrderStatus.PENDING, PaymentEventType.PAYMENT_CANCELLED)[0] == OrderStatus.CANCELLED
    assert decide_transition(OrderStatus.CONFIRMED, PaymentEventType.PAYMENT_FAILED)[0] is None
    assert decide_transition(OrderStatus.DELIVERED, PaymentEventType.PAYMENT_FAILED)[0] is None
