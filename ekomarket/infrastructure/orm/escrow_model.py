"""Escrow ORM Model"""

from sqlalchemy import Column, String, Numeric, DateTime, Text, JSON

from ...db.models import Base
from ...domain.enums import EscrowStatus


class EscrowModel(Base):
    __tablename__ = 'escrows'

    id = Column(String(64), primary_key=True, index=True)
    # One escrow per order
    order_id = Column(String(64), nullable=False, unique=True, index=True)
    payment_id = Column(String(255), nullable=False)

    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    buyer_id = Column(String(64), nullable=False, index=True)
    seller_ids = Column(JSON, nullable=False, default=list)
    status = Column(String(20), default=EscrowStatus.HELD.value, nullable=False)

    refund_reason = Column(Text, nullable=True)
    released_at = Column(DateTime(timezone=True), nullable=True)
    refunded_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
