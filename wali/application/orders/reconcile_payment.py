"""Use case: reconcile a payment provider webhook with the order lifecycle."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from logging_config import logger
from wali.core.exceptions import (
    ConcurrentModificationError,
    InvalidRequestError,
    InvalidSignatureError,
    InvalidTransitionError,
    OrderNotFoundException,
)
from wali.domain.order import OrderStatus, PaymentEventType
from wali.domain.order_fsm import TransitionContext
from wali.integrations.payment_providers import ProviderAdapter, ProviderEvent
from wali.services.order_service import OrderService

MAX_RECONCILE_ATTEMPTS = 3
PAYMENT_FAILED_REASON = "payment_failed"


@dataclass
class ReconciliationResult:
    accepted: bool
    order_id: str | None = None
    applied_transition: OrderStatus | None = None
    detail: str | None = None


def decide_transition(
    status: OrderStatus,
    event_type: PaymentEventType,
) -> tuple[OrderStatus | None, str]:
    """Target status for a payment event, or None when the event is a no-op."""
    if event_type == PaymentEventType.PAYMENT_SUCCEEDED:
        if status == OrderStatus.PENDING:
            return OrderStatus.CONFIRMED, "payment confirmed"
        if status in (OrderStatus.CANCELLED, OrderStatus.FAILED):
            return None, f"payment succeeded for {status.value} order"
        return None, f"already {status.value}"

    if status == OrderStatus.PENDING:
        return OrderStatus.CANCELLED, PAYMENT_FAILED_REASON
    return None, f"{event_type.value} ignored, order is {status.value}"


class PaymentReconciler:
    """Applies provider payment events to orders, idempotently."""

    def __init__(self, order_service: OrderService, adapters: Mapping[str, ProviderAdapter]) -> None:
        self.order_service = order_service
        self.adapters = {name.lower(): adapter for name, adapter in adapters.items()}

    async def handle_provider_event(
        self,
        provider: str,
        raw_payload: bytes,
        signature: str | None,
    ) -> ReconciliationResult:
        adapter = self.adapters.get((provider or "").lower())
        if adapter is None:
            raise InvalidRequestError(f"Unknown payment provider: {provider}")

        if not adapter.verify_signature(raw_payload, signature):
            logger.warning(f"Rejected {provider} webhook: invalid signature")
            raise InvalidSignatureError(provider)

        try:
            event = adapter.normalize_event(raw_payload)
        except InvalidRequestError as exc:
            logger.warning(f"Ignoring malformed {provider} webhook: {exc.message}")
            return ReconciliationResult(False, detail=exc.message)

        return await self._apply(event)

    async def _apply(self, event: ProviderEvent) -> ReconciliationResult:
        attempt = 0
        while True:
            attempt += 1
            try:
                order = await self.order_service.find_order(event.order_reference)
            except OrderNotFoundException:
                logger.warning(
                    f"{event.provider} webhook for unknown order {event.order_reference}"
                )
                return ReconciliationResult(False, detail="unknown order")

            if event.event_type is None:
                logger.info(
                    f"{event.provider} status '{event.raw_status}' for order "
                    f"{order.order_number} acknowledged without transition"
                )
                return ReconciliationResult(True, order.id, None, f"status '{event.raw_status}' not actionable")

            target, detail = decide_transition(order.status, event.event_type)
            if target is None:
                if order.status in (OrderStatus.CANCELLED, OrderStatus.FAILED) and (
                    event.event_type == PaymentEventType.PAYMENT_SUCCEEDED
                ):
                    logger.warning(
                        f"{event.provider} payment succeeded for {order.status.value} "
                        f"order {order.order_number}; needs manual refund review"
                    )
                else:
                    logger.info(f"Order {order.order_number}: {detail} (no-op)")
                return ReconciliationResult(True, order.id, None, detail)

            context = TransitionContext(
                reason=detail,
                actor=f"payment:{event.provider}",
            )
            try:
                updated = await self.order_service.request_transition(order.id, target, context)
            except (ConcurrentModificationError, InvalidTransitionError) as exc:
                if attempt >= MAX_RECONCILE_ATTEMPTS:
                    logger.warning(
                        f"Giving up on {event.provider} webhook for order {order.order_number} "
                        f"after {attempt} attempts: {exc.message}"
                    )
                    raise
                # Status moved under us; re-read and decide again.
                logger.info(
                    f"Reconcile attempt {attempt} for order {order.order_number} lost a race: {exc.message}"
                )
                continue

            return ReconciliationResult(True, updated.id, target, detail)
