"""Escrow entity: a single custodial hold per order"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import FrozenSet, Optional

from ..value_objects.money import Money
from ..value_objects.entity_ids import EscrowId, OrderId, PaymentId, UserId
from ..enums import EscrowStatus
from .order import utcnow
from .user import User


class EscrowAlreadySettled(ValueError):

    def __init__(self, status: EscrowStatus):
        super().__init__(f"Escrow is already {status.value}")
        self.status = status


@dataclass
class Escrow:
    id: EscrowId
    order_id: OrderId
    payment_id: PaymentId
    amount: Money
    buyer_id: UserId
    seller_ids: FrozenSet[UserId] = frozenset()
    status: EscrowStatus = EscrowStatus.HELD
    refund_reason: Optional[str] = None
    released_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_held(self) -> bool:
        return self.status == EscrowStatus.HELD

    def release(self) -> None:
        """Business logic: disburse the held funds to the sellers"""
        if not self.is_held:
            raise EscrowAlreadySettled(self.status)
        now = utcnow()
        self.status = EscrowStatus.RELEASED
        self.released_at = now
        self.updated_at = now

    def refund(self, reason: Optional[str] = None) -> None:
        """Business logic: return the held funds to the buyer"""
        if not self.is_held:
            raise EscrowAlreadySettled(self.status)
        now = utcnow()
        self.status = EscrowStatus.REFUNDED
        self.refund_reason = reason
        self.refunded_at = now
        self.updated_at = now

    def is_visible_to(self, user: User) -> bool:
        return user.is_admin or user.id == self.buyer_id or user.id in self.seller_ids
