"""Payment gateway port

Adapters: StripeGateway for production, FakeGateway for development and
tests. Use cases only see this interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ...domain.value_objects.money import Money


class PaymentGatewayError(Exception):
    """Gateway rejected the call or could not be reached"""


class PaymentGatewayTimeout(PaymentGatewayError):
    """Gateway did not answer within the configured bound; safe to retry"""


class InvalidWebhookSignature(Exception):
    pass


@dataclass(frozen=True)
class IntentResult:
    intent_id: str
    client_secret: Optional[str]
    status: str
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RefundResult:
    refund_id: str
    status: str
    raw: Dict[str, Any] = field(default_factory=dict)


class PaymentGateway(ABC):

    @abstractmethod
    async def create_intent(
        self, amount: Money, metadata: Dict[str, str], idempotency_key: Optional[str] = None
    ) -> IntentResult:
        """Create a payment intent for amount; raises PaymentGatewayError.

        Calls repeated with the same idempotency_key return the first intent.
        """
        ...

    @abstractmethod
    async def create_refund(
        self,
        intent_id: str,
        amount: Optional[Money],
        reason: Optional[str],
        idempotency_key: Optional[str] = None,
    ) -> RefundResult:
        """Refund amount (the whole intent when None); raises PaymentGatewayError"""
        ...

    @abstractmethod
    def verify_webhook(self, payload: bytes, signature: str) -> None:
        """Raise InvalidWebhookSignature unless payload was signed by the gateway"""
        ...
