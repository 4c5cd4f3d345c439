"""Order ORM Models"""

from sqlalchemy import Column, Integer, String, Numeric, Float, Boolean, Date, DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from ...db.models import Base
from ...domain.enums import OrderStatus, PaymentStatus


class OrderModel(Base):
    __tablename__ = 'orders'

    id = Column(String(64), primary_key=True, index=True)
    buyer_id = Column(String(64), nullable=False, index=True)

    total_price = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), default='PLN', nullable=False)
    status = Column(String(20), default=OrderStatus.PENDING.value, nullable=False, index=True)

    # Shipping address
    shipping_street = Column(String(255), nullable=False)
    shipping_city = Column(String(128), nullable=False)
    shipping_postal_code = Column(String(32), nullable=False)
    shipping_country = Column(String(64), nullable=False)
    shipping_recipient = Column(String(255), nullable=True)
    delivery_date = Column(Date, nullable=True)

    # Payment and escrow linkage
    payment_id = Column(String(255), nullable=True, index=True)
    payment_status = Column(String(32), default=PaymentStatus.PENDING.value, nullable=False)
    escrow_id = Column(String(64), nullable=True)

    carbon_footprint = Column(Float, nullable=True)
    is_reviewed = Column(Boolean, default=False, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    # Optimistic concurrency
    version = Column(Integer, nullable=False, default=0)

    # Relationships
    items = relationship(
        'OrderItemModel',
        order_by='OrderItemModel.position',
        cascade='all, delete-orphan',
        lazy='selectin',
    )
    status_history = relationship(
        'OrderStatusHistoryModel',
        order_by='OrderStatusHistoryModel.position',
        cascade='all, delete-orphan',
        lazy='selectin',
    )


class OrderItemModel(Base):
    __tablename__ = 'order_items'

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(64), ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    # No foreign key: catalog products may be deleted while orders keep the reference
    product_id = Column(String(64), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    price_at_purchase = Column(Numeric(12, 2), nullable=False)


class OrderStatusHistoryModel(Base):
    __tablename__ = 'order_status_history'
    __table_args__ = (UniqueConstraint('order_id', 'position', name='uq_order_status_history_position'),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(64), ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False)
    changed_by = Column(String(64), nullable=False)
    note = Column(Text, nullable=True)
    timestamp = Column(DateTime(timezone=True), nullable=False)
