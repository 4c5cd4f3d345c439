"""Payment intent entity"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, Optional

from ..value_objects.money import Money
from ..value_objects.entity_ids import OrderId, PaymentId, UserId
from ..enums import PaymentStatus
from .order import utcnow


# Statuses a settlement transition may start from
SETTLEMENT_SOURCES: Dict[PaymentStatus, FrozenSet[PaymentStatus]] = {
    PaymentStatus.COMPLETED: frozenset({PaymentStatus.PENDING, PaymentStatus.FAILED}),
    PaymentStatus.FAILED: frozenset({PaymentStatus.PENDING}),
}


@dataclass
class PaymentIntent:
    id: PaymentId
    buyer_id: UserId
    amount: Money
    status: PaymentStatus = PaymentStatus.PENDING
    order_id: Optional[OrderId] = None
    client_secret: Optional[str] = None
    gateway_response: Dict[str, Any] = field(default_factory=dict)
    error_message: Optional[str] = None
    last_event_id: Optional[str] = None
    refund_id: Optional[str] = None
    refunded_amount: Optional[Money] = None
    refund_reason: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_refundable(self) -> bool:
        return self.status == PaymentStatus.COMPLETED

    def belongs_to(self, user_id: UserId) -> bool:
        return self.buyer_id == user_id

    def refund_status_for(self, refund_amount: Money) -> PaymentStatus:
        """Full vs partial refund, judged against the original amount"""
        if refund_amount < self.amount:
            return PaymentStatus.PARTIALLY_REFUNDED
        return PaymentStatus.REFUNDED

    def record_refund(self, refund_id: Optional[str], refund_amount: Money, reason: Optional[str]) -> PaymentStatus:
        if not self.is_refundable:
            raise ValueError(f"Cannot refund payment with status: {self.status.value}")
        if self.amount < refund_amount:
            raise ValueError("Refund amount exceeds the original payment")

        self.status = self.refund_status_for(refund_amount)
        self.refund_id = refund_id
        self.refunded_amount = refund_amount
        self.refund_reason = reason
        self.updated_at = utcnow()
        return self.status
