"""Stripe payment gateway adapter"""

import asyncio
import json
import logging
from typing import Any, Callable, Dict, Optional

import stripe

from ...core.config import settings
from ...domain.value_objects.money import Money
from .payment_gateway import (
    IntentResult,
    InvalidWebhookSignature,
    PaymentGateway,
    PaymentGatewayError,
    PaymentGatewayTimeout,
    RefundResult,
)


logger = logging.getLogger(__name__)


def verify_stripe_signature(payload: bytes, signature: str, secret: str, tolerance: int) -> None:
    """Check a Stripe-Signature header (t=...,v1=...) against the signing secret"""
    if not signature:
        raise InvalidWebhookSignature("Missing signature header")
    try:
        stripe.WebhookSignature.verify_header(
            payload.decode("utf-8"), signature, secret, tolerance=tolerance
        )
    except (stripe.SignatureVerificationError, UnicodeDecodeError) as e:
        raise InvalidWebhookSignature(str(e)) from e


def _to_plain(obj: Any) -> Dict[str, Any]:
    # StripeObject renders itself as JSON
    return json.loads(str(obj))


class StripeGateway(PaymentGateway):

    def __init__(
        self,
        api_key: str = None,
        webhook_secret: str = None,
        timeout_seconds: float = None,
        tolerance_seconds: int = None,
    ):
        self.api_key = api_key or settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret or settings.STRIPE_WEBHOOK_SECRET
        self.timeout_seconds = timeout_seconds or settings.GATEWAY_TIMEOUT_SECONDS
        self.tolerance_seconds = tolerance_seconds or settings.WEBHOOK_TOLERANCE_SECONDS

    async def _call(self, operation: str, fn: Callable, **kwargs):
        """Run a blocking SDK call off the event loop with a bounded wait"""
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(fn, api_key=self.api_key, **kwargs),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            logger.error("Stripe %s timed out after %ss", operation, self.timeout_seconds)
            raise PaymentGatewayTimeout(f"Stripe {operation} timed out") from e
        except stripe.StripeError as e:
            logger.error("Stripe %s failed: %s", operation, e)
            raise PaymentGatewayError(f"Stripe {operation} failed: {e.user_message or e}") from e

    async def create_intent(
        self, amount: Money, metadata: Dict[str, str], idempotency_key: Optional[str] = None
    ) -> IntentResult:
        params = {
            "amount": amount.to_cents(),  # smallest currency unit (grosze)
            "currency": amount.currency.lower(),
            "metadata": metadata,
        }
        if idempotency_key:
            params["idempotency_key"] = idempotency_key
        intent = await self._call("payment intent creation", stripe.PaymentIntent.create, **params)
        return IntentResult(
            intent_id=intent.id,
            client_secret=intent.client_secret,
            status=intent.status,
            raw=_to_plain(intent),
        )

    async def create_refund(
        self,
        intent_id: str,
        amount: Optional[Money],
        reason: Optional[str],
        idempotency_key: Optional[str] = None,
    ) -> RefundResult:
        params = {"payment_intent": intent_id, "metadata": {"reason": reason or ""}}
        if amount is not None:
            params["amount"] = amount.to_cents()
        if idempotency_key:
            params["idempotency_key"] = idempotency_key
        refund = await self._call("refund", stripe.Refund.create, **params)
        return RefundResult(refund_id=refund.id, status=refund.status, raw=_to_plain(refund))

    def verify_webhook(self, payload: bytes, signature: str) -> None:
        verify_stripe_signature(payload, signature, self.webhook_secret, self.tolerance_seconds)
