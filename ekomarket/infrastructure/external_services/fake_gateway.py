"""Configurable fake payment gateway for development and testing.

Simulates Stripe without network calls: intents and refunds get fake ids,
and webhook payloads are signed and verified with the same header scheme
Stripe uses, so the settlement path is exercised end to end.
"""

import asyncio
import hashlib
import hmac
import time
from typing import Dict, List, Optional
from uuid import uuid4

from ...core.config import settings
from ...domain.value_objects.money import Money
from .payment_gateway import (
    IntentResult,
    PaymentGateway,
    PaymentGatewayError,
    PaymentGatewayTimeout,
    RefundResult,
)
from .stripe_gateway import verify_stripe_signature


class FakeGateway(PaymentGateway):

    def __init__(self, webhook_secret: str = None, timeout_seconds: float = None, tolerance_seconds: int = None):
        self.webhook_secret = webhook_secret or settings.STRIPE_WEBHOOK_SECRET
        self.timeout_seconds = timeout_seconds or settings.GATEWAY_TIMEOUT_SECONDS
        self.tolerance_seconds = tolerance_seconds or settings.WEBHOOK_TOLERANCE_SECONDS
        self.should_succeed: bool = True
        self.failure_reason: str = "Card declined"
        self.latency: float = 0.0
        self.calls: List[dict] = []
        self._replays: Dict[str, object] = {}

    def configure(self, should_succeed: bool = True, failure_reason: str = "Card declined", latency: float = 0.0) -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.latency = latency

    async def _respond(self) -> None:
        if self.latency:
            try:
                await asyncio.wait_for(asyncio.sleep(self.latency), timeout=self.timeout_seconds)
            except asyncio.TimeoutError as e:
                raise PaymentGatewayTimeout("Fake gateway timed out") from e
        if not self.should_succeed:
            raise PaymentGatewayError(self.failure_reason)

    async def create_intent(
        self, amount: Money, metadata: Dict[str, str], idempotency_key: Optional[str] = None
    ) -> IntentResult:
        self.calls.append({
            "method": "create_intent",
            "amount": amount,
            "metadata": dict(metadata),
            "idempotency_key": idempotency_key,
        })
        await self._respond()
        if idempotency_key in self._replays:
            return self._replays[idempotency_key]

        intent_id = f"pi_fake_{uuid4().hex[:16]}"
        raw = {
            "id": intent_id,
            "object": "payment_intent",
            "amount": amount.to_cents(),
            "currency": amount.currency.lower(),
            "metadata": dict(metadata),
            "status": "requires_payment_method",
        }
        return self._remember(idempotency_key, IntentResult(
            intent_id=intent_id,
            client_secret=f"{intent_id}_secret_{uuid4().hex[:8]}",
            status=raw["status"],
            raw=raw,
        ))

    async def create_refund(
        self,
        intent_id: str,
        amount: Optional[Money],
        reason: Optional[str],
        idempotency_key: Optional[str] = None,
    ) -> RefundResult:
        self.calls.append({
            "method": "create_refund",
            "intent_id": intent_id,
            "amount": amount,
            "reason": reason,
            "idempotency_key": idempotency_key,
        })
        await self._respond()
        if idempotency_key in self._replays:
            return self._replays[idempotency_key]

        refund_id = f"re_fake_{uuid4().hex[:16]}"
        return self._remember(idempotency_key, RefundResult(
            refund_id=refund_id,
            status="succeeded",
            raw={"id": refund_id, "payment_intent": intent_id, "status": "succeeded"},
        ))

    def _remember(self, idempotency_key: Optional[str], result):
        # Same key, same answer, the way Stripe replays keyed requests
        if idempotency_key:
            self._replays[idempotency_key] = result
        return result

    def issued(self, method: str) -> List[dict]:
        """Distinct requests of method; calls sharing an idempotency key count once"""
        seen = set()
        issued = []
        for call in self.calls:
            if call["method"] != method:
                continue
            key = call["idempotency_key"]
            if key is None or key not in seen:
                issued.append(call)
            seen.add(key)
        return issued

    def sign(self, payload: bytes, timestamp: int = None) -> str:
        """Build a Stripe-Signature header for payload"""
        timestamp = int(time.time()) if timestamp is None else timestamp
        signed = f"{timestamp}.".encode("utf-8") + payload
        digest = hmac.new(self.webhook_secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
        return f"t={timestamp},v1={digest}"

    def verify_webhook(self, payload: bytes, signature: str) -> None:
        verify_stripe_signature(payload, signature, self.webhook_secret, self.tolerance_seconds)
