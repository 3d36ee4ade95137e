"""Payment webhook handlers for the aiohttp server."""
from __future__ import annotations

from datetime import datetime, timezone

from aiohttp import web

from logging_config import logger
from wali.application.orders.reconcile_payment import PaymentReconciler
from wali.core.exceptions import InvalidRequestError, InvalidSignatureError
from wali.core.sentry_integration import capture_exception

WEBHOOK_PATH = "/api/v1/payments/{provider}/webhook"

# Header carrying the signature, per provider.
SIGNATURE_HEADERS = {
    "paystack": "x-paystack-signature",
    "flutterwave": "verif-hash",
}


def build_payment_webhook(reconciler: PaymentReconciler):
    async def api_payment_webhook(request: web.Request) -> web.Response:
        """POST /api/v1/payments/{provider}/webhook - provider payment notification."""
        provider = request.match_info["provider"].lower()
        header = SIGNATURE_HEADERS.get(provider, "x-signature")
        signature = request.headers.get(header)
        body = await request.read()

        try:
            result = await reconciler.handle_provider_event(provider, body, signature)
        except InvalidSignatureError as e:
            return web.json_response({"success": False, "error": e.message}, status=401)
        except InvalidRequestError as e:
            return web.json_response({"success": False, "error": e.message}, status=400)
        except Exception as e:  # provider will redeliver on 5xx
            logger.error(f"Payment webhook error ({provider}): {e}", exc_info=True)
            capture_exception(e, provider=provider)
            return web.json_response({"success": False, "error": "internal_error"}, status=500)

        return web.json_response(
            {
                "success": True,
                "accepted": result.accepted,
                "order_id": result.order_id,
                "applied_transition": (
                    result.applied_transition.value if result.applied_transition else None
                ),
                "detail": result.detail,
            }
        )

    return api_payment_webhook


async def health_check(request: web.Request) -> web.Response:
    """GET /health - liveness check."""
    return web.json_response(
        {
            "status": "healthy",
            "service": "wali",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    )


def setup_payment_routes(app: web.Application, reconciler: PaymentReconciler) -> None:
    app.router.add_post(WEBHOOK_PATH, build_payment_webhook(reconciler))
    app.router.add_get("/health", health_check)
