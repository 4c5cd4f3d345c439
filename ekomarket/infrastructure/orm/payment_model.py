"""Payment ORM Model"""

from sqlalchemy import Column, String, Numeric, DateTime, Text, JSON

from ...db.models import Base
from ...domain.enums import PaymentStatus


class PaymentModel(Base):
    __tablename__ = 'payments'

    # Gateway-assigned payment intent id
    id = Column(String(255), primary_key=True, index=True)
    buyer_id = Column(String(64), nullable=False, index=True)
    order_id = Column(String(64), nullable=True, index=True)

    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    status = Column(String(32), default=PaymentStatus.PENDING.value, nullable=False, index=True)

    client_secret = Column(String(255), nullable=True)
    gateway_response = Column(JSON, nullable=False, default=dict)
    error_message = Column(Text, nullable=True)
    last_event_id = Column(String(255), nullable=True)

    # Refund bookkeeping
    refund_id = Column(String(255), nullable=True)
    refunded_amount = Column(Numeric(12, 2), nullable=True)
    refund_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
