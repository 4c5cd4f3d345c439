"""Create marketplace schema

Revision ID: 5c1e0a7b9d21
Revises: 
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5c1e0a7b9d21'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create products, users, orders (with items and history), payments and escrows"""

    op.create_table('users',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('role', sa.String(20), server_default='consumer', nullable=False),
        sa.Column('full_name', sa.String(255), server_default='', nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('products',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('owner_id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency', sa.String(3), server_default='PLN', nullable=False),
        sa.Column('quantity', sa.Integer(), server_default='0', nullable=False),
        sa.Column('unit', sa.String(16), server_default='kg', nullable=False),
        sa.Column('status', sa.String(20), server_default='available', nullable=False),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('is_certified', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('category', sa.String(64), nullable=True),
        sa.Column('images', sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        # Stock never goes negative, whatever the caller does
        sa.CheckConstraint('quantity >= 0', name='ck_products_quantity_non_negative')
    )
    op.create_index('ix_products_owner_id', 'products', ['owner_id'])
    op.create_index('ix_products_status', 'products', ['status'])

    op.create_table('orders',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('buyer_id', sa.String(64), nullable=False),
        sa.Column('total_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency', sa.String(3), server_default='PLN', nullable=False),
        sa.Column('status', sa.String(20), server_default='pending', nullable=False),
        sa.Column('shipping_street', sa.String(255), nullable=False),
        sa.Column('shipping_city', sa.String(128), nullable=False),
        sa.Column('shipping_postal_code', sa.String(32), nullable=False),
        sa.Column('shipping_country', sa.String(64), nullable=False),
        sa.Column('shipping_recipient', sa.String(255), nullable=True),
        sa.Column('delivery_date', sa.Date(), nullable=True),
        sa.Column('payment_id', sa.String(255), nullable=True),
        sa.Column('payment_status', sa.String(32), server_default='pending', nullable=False),
        sa.Column('escrow_id', sa.String(64), nullable=True),
        sa.Column('carbon_footprint', sa.Float(), nullable=True),
        sa.Column('is_reviewed', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('version', sa.Integer(), server_default='0', nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_orders_buyer_id', 'orders', ['buyer_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_payment_id', 'orders', ['payment_id'])
    op.create_index('ix_orders_created_at', 'orders', ['created_at'])

    op.create_table('order_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('order_id', sa.String(64), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.String(64), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price_at_purchase', sa.Numeric(12, 2), nullable=False),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_order_items_product_id', 'order_items', ['product_id'])

    op.create_table('order_status_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('order_id', sa.String(64), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('changed_by', sa.String(64), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id', 'position', name='uq_order_status_history_position')
    )
    op.create_index('ix_order_status_history_order_id', 'order_status_history', ['order_id'])

    op.create_table('payments',
        sa.Column('id', sa.String(255), nullable=False),
        sa.Column('buyer_id', sa.String(64), nullable=False),
        sa.Column('order_id', sa.String(64), nullable=True),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('status', sa.String(32), server_default='pending', nullable=False),
        sa.Column('client_secret', sa.String(255), nullable=True),
        sa.Column('gateway_response', sa.JSON(), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('last_event_id', sa.String(255), nullable=True),
        sa.Column('refund_id', sa.String(255), nullable=True),
        sa.Column('refunded_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('refund_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_payments_buyer_id', 'payments', ['buyer_id'])
    op.create_index('ix_payments_order_id', 'payments', ['order_id'])
    op.create_index('ix_payments_status', 'payments', ['status'])

    op.create_table('escrows',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('order_id', sa.String(64), nullable=False),
        sa.Column('payment_id', sa.String(255), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('buyer_id', sa.String(64), nullable=False),
        sa.Column('seller_ids', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(20), server_default='held', nullable=False),
        sa.Column('refund_reason', sa.Text(), nullable=True),
        sa.Column('released_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('refunded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id', name='uq_escrows_order_id')
    )
    op.create_index('ix_escrows_buyer_id', 'escrows', ['buyer_id'])


def downgrade() -> None:
    op.drop_table('escrows')
    op.drop_table('payments')
    op.drop_table('order_status_history')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('products')
    op.drop_table('users')
