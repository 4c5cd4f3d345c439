"""Escrow DTOs"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from ...domain.entities.escrow import Escrow
from .common import CamelModel


class EscrowCreateDTO(CamelModel):
    order_id: str = Field(..., min_length=1)
    payment_id: str = Field(..., min_length=1)


class EscrowRefundDTO(CamelModel):
    reason: Optional[str] = None


class EscrowResponseDTO(CamelModel):
    id: str
    order_id: str
    payment_id: str
    amount: Decimal
    currency: str
    buyer_id: str
    seller_ids: List[str]
    status: str
    refund_reason: Optional[str] = None
    released_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, escrow: Escrow) -> "EscrowResponseDTO":
        return cls(
            id=escrow.id.value,
            order_id=escrow.order_id.value,
            payment_id=escrow.payment_id.value,
            amount=escrow.amount.amount,
            currency=escrow.amount.currency,
            buyer_id=escrow.buyer_id.value,
            seller_ids=sorted(seller.value for seller in escrow.seller_ids),
            status=escrow.status.value,
            refund_reason=escrow.refund_reason,
            released_at=escrow.released_at,
            refunded_at=escrow.refunded_at,
            created_at=escrow.created_at,
            updated_at=escrow.updated_at,
        )
