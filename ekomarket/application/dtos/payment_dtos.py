"""Payment DTOs and the inbound webhook event"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ...domain.entities.payment import PaymentIntent
from ...domain.enums import WebhookEventType
from .common import CamelModel


# Gateway-native event names accepted next to the wire-stable ones
NATIVE_EVENT_ALIASES = {
    "payment_intent.succeeded": WebhookEventType.PAYMENT_SUCCEEDED,
    "payment_intent.payment_failed": WebhookEventType.PAYMENT_FAILED,
    "payment_intent.canceled": WebhookEventType.PAYMENT_CANCELED,
}


class PaymentIntentCreateDTO(CamelModel):
    """Request DTO for creating a payment intent (amount in major units)"""
    amount: Decimal
    currency: Optional[str] = None
    order_id: Optional[str] = None
    idempotency_key: Optional[str] = None


class PaymentIntentCreatedDTO(CamelModel):
    client_secret: Optional[str] = None
    payment_intent_id: str


class RefundCreateDTO(CamelModel):
    payment_intent_id: str
    amount: Optional[Decimal] = None
    reason: Optional[str] = None


class RefundResponseDTO(CamelModel):
    refund_id: str
    status: str
    amount: Decimal
    currency: str


class PaymentStatusDTO(CamelModel):
    payment_intent_id: str
    status: str
    amount: Decimal
    currency: str
    order_id: Optional[str] = None
    refunded_amount: Optional[Decimal] = None
    error_message: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, payment: PaymentIntent) -> "PaymentStatusDTO":
        return cls(
            payment_intent_id=payment.id.value,
            status=payment.status.value,
            amount=payment.amount.amount,
            currency=payment.amount.currency,
            order_id=payment.order_id.value if payment.order_id else None,
            refunded_amount=payment.refunded_amount.amount if payment.refunded_amount else None,
            error_message=payment.error_message,
            created_at=payment.created_at,
            updated_at=payment.updated_at,
        )


class WebhookIntentObject(BaseModel):
    id: str = Field(..., min_length=1)
    metadata: Dict[str, str] = {}
    last_payment_error: Optional[Dict[str, Any]] = None


class WebhookEventData(BaseModel):
    object: WebhookIntentObject


class WebhookEventDTO(BaseModel):
    """Signed event posted by the gateway"""
    id: str = Field(..., min_length=1)
    type: str
    data: WebhookEventData

    @property
    def event_type(self) -> Optional[WebhookEventType]:
        """Normalised type, None for events this service does not handle"""
        if self.type in NATIVE_EVENT_ALIASES:
            return NATIVE_EVENT_ALIASES[self.type]
        try:
            return WebhookEventType(self.type)
        except ValueError:
            return None

    @property
    def intent_id(self) -> str:
        return self.data.object.id

    @property
    def order_id(self) -> Optional[str]:
        return self.data.object.metadata.get("orderId") or None

    @property
    def failure_message(self) -> Optional[str]:
        error = self.data.object.last_payment_error or {}
        return error.get("message")


class WebhookAckDTO(CamelModel):
    received: bool = True
    applied: bool
    event_id: Optional[str] = None
    detail: Optional[str] = None
