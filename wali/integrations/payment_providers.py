"""
Payment provider webhook adapters.

Each adapter verifies the provider's signature over the raw request body
and maps the provider's status vocabulary onto ``PaymentEventType``.
Statuses with no mapping (``pending`` and unknown values) yield an event
with ``event_type=None``.
"""
from __future__ import annotations

import hashlib
import hmac
import json
from dataclasses import dataclass
from typing import Any, Mapping, Protocol

from logging_config import logger
from wali.core.config import PaymentSecrets
from wali.core.exceptions import InvalidRequestError
from wali.domain.order import PaymentEventType

MERCHANT_REFERENCE_PREFIX = "WALI_ORDER_"


@dataclass(frozen=True, slots=True)
class ProviderEvent:
    """Provider-neutral view of a webhook payload."""

    provider: str
    order_reference: str
    event_type: PaymentEventType | None
    raw_status: str
    transaction_reference: str | None = None


class ProviderAdapter(Protocol):
    name: str

    def verify_signature(self, payload: bytes, signature: str | None) -> bool:
        ...

    def normalize_event(self, payload: bytes) -> ProviderEvent:
        ...


def order_id_from_reference(reference: str | None) -> str | None:
    """Extract the order id from ``WALI_ORDER_<order_id>_<timestamp>``."""
    if not reference or not reference.startswith(MERCHANT_REFERENCE_PREFIX):
        return None
    body = reference[len(MERCHANT_REFERENCE_PREFIX):]
    order_id, sep, stamp = body.rpartition("_")
    if not sep or not stamp.isdigit() or not order_id:
        return None
    return order_id


def _decode(payload: bytes) -> Mapping[str, Any]:
    try:
        data = json.loads(payload)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise InvalidRequestError(f"Malformed webhook body: {exc}") from exc
    if not isinstance(data, dict):
        raise InvalidRequestError("Webhook body must be a JSON object")
    return data


def _digest_matches(expected: str, signature: str) -> bool:
    # Header values may carry non-ASCII text; compare_digest only takes ASCII str.
    return hmac.compare_digest(
        expected.encode("utf-8"),
        signature.encode("utf-8", "surrogateescape"),
    )


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


class PaystackAdapter:
    """Paystack: ``x-paystack-signature`` is HMAC-SHA512 of the body with the secret key."""

    name = "paystack"
    signature_header = "x-paystack-signature"

    STATUS_MAP = {
        "success": PaymentEventType.PAYMENT_SUCCEEDED,
        "successful": PaymentEventType.PAYMENT_SUCCEEDED,
        "failed": PaymentEventType.PAYMENT_FAILED,
        "error": PaymentEventType.PAYMENT_FAILED,
        "abandoned": PaymentEventType.PAYMENT_CANCELLED,
    }

    def __init__(self, secret_key: str) -> None:
        self.secret_key = secret_key

    def verify_signature(self, payload: bytes, signature: str | None) -> bool:
        if not self.secret_key or not signature:
            return False
        expected = hmac.new(self.secret_key.encode(), payload, hashlib.sha512).hexdigest()
        return _digest_matches(expected, signature.strip().lower())

    def normalize_event(self, payload: bytes) -> ProviderEvent:
        data = _section(_decode(payload), "data")
        reference = data.get("reference")
        metadata = _section(data, "metadata")
        order_ref = metadata.get("order_id") or order_id_from_reference(reference)
        if not order_ref:
            raise InvalidRequestError("Paystack event carries no order reference")

        raw_status = str(data.get("status") or "").strip().lower()
        return ProviderEvent(
            provider=self.name,
            order_reference=str(order_ref),
            event_type=self.STATUS_MAP.get(raw_status),
            raw_status=raw_status,
            transaction_reference=reference,
        )


class FlutterwaveAdapter:
    """Flutterwave: ``verif-hash`` header must equal the configured secret hash."""

    name = "flutterwave"
    signature_header = "verif-hash"

    STATUS_MAP = {
        "successful": PaymentEventType.PAYMENT_SUCCEEDED,
        "success": PaymentEventType.PAYMENT_SUCCEEDED,
        "failed": PaymentEventType.PAYMENT_FAILED,
        "error": PaymentEventType.PAYMENT_FAILED,
        "cancelled": PaymentEventType.PAYMENT_CANCELLED,
    }

    def __init__(self, secret_hash: str) -> None:
        self.secret_hash = secret_hash

    def verify_signature(self, payload: bytes, signature: str | None) -> bool:
        if not self.secret_hash or not signature:
            return False
        return _digest_matches(self.secret_hash, signature.strip())

    def normalize_event(self, payload: bytes) -> ProviderEvent:
        body = _decode(payload)
        data = _section(body, "data") or body
        tx_ref = data.get("tx_ref")
        meta = _section(data, "meta")
        order_ref = meta.get("order_id") or order_id_from_reference(tx_ref)
        if not order_ref:
            raise InvalidRequestError("Flutterwave event carries no order reference")

        raw_status = str(data.get("status") or body.get("status") or "").strip().lower()
        transaction_id = data.get("id")
        return ProviderEvent(
            provider=self.name,
            order_reference=str(order_ref),
            event_type=self.STATUS_MAP.get(raw_status),
            raw_status=raw_status,
            transaction_reference=str(transaction_id) if transaction_id is not None else tx_ref,
        )


def build_default_adapters(secrets: PaymentSecrets) -> dict[str, ProviderAdapter]:
    """Adapters for every provider with a configured secret."""
    adapters: dict[str, ProviderAdapter] = {}
    if secrets.paystack_secret_key:
        adapters[PaystackAdapter.name] = PaystackAdapter(secrets.paystack_secret_key)
    else:
        logger.warning("PAYSTACK_SECRET_KEY not set - Paystack webhooks disabled")
    if secrets.flutterwave_secret_hash:
        adapters[FlutterwaveAdapter.name] = FlutterwaveAdapter(secrets.flutterwave_secret_hash)
    else:
        logger.warning("FLUTTERWAVE_SECRET_HASH not set - Flutterwave webhooks disabled")
    return adapters
