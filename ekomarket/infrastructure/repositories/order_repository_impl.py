"""Order repository implementation using SQLAlchemy ORM"""

from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ...domain.entities.order import Order, OrderItem, ProductReference, StatusHistoryEntry
from ...domain.enums import OrderStatus, PaymentStatus
from ...domain.errors import ConcurrentModificationError
from ...domain.repositories.order_repository import IOrderRepository
from ...domain.value_objects.entity_ids import EscrowId, OrderId, PaymentId, ProductId, UserId
from ...domain.value_objects.location import ShippingAddress
from ...domain.value_objects.money import Money
from ..orm.order_model import OrderItemModel, OrderModel, OrderStatusHistoryModel
from .mappers import as_utc, to_money


class OrderRepositoryImpl(IOrderRepository):
    """Repository implementation for Order aggregate"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, order_id: OrderId) -> Optional[Order]:
        stmt = (
            select(OrderModel)
            .where(OrderModel.id == order_id.value)
            .execution_options(populate_existing=True)
        )
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        return self._map_to_entity(model) if model else None

    async def add(self, order: Order) -> Order:
        model = self._create_model_from_entity(order)
        self.session.add(model)
        await self.session.flush()
        return order

    async def update(self, order: Order) -> Order:
        stmt = (
            update(OrderModel)
            .where(OrderModel.id == order.id.value, OrderModel.version == order.version)
            .values(
                status=order.status.value,
                payment_id=order.payment_id.value if order.payment_id else None,
                payment_status=order.payment_status.value,
                escrow_id=order.escrow_id.value if order.escrow_id else None,
                delivery_date=order.delivery_date,
                is_reviewed=order.is_reviewed,
                updated_at=order.updated_at,
                version=order.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount != 1:
            raise ConcurrentModificationError("Order", order.id.value)

        # The row is now locked by this transaction, so the stored count is stable
        persisted = (
            await self.session.execute(
                select(func.count(OrderStatusHistoryModel.id))
                .where(OrderStatusHistoryModel.order_id == order.id.value)
            )
        ).scalar_one()
        for position, entry in enumerate(order.status_history[persisted:], start=persisted):
            self.session.add(self._history_model(order.id, position, entry))
        await self.session.flush()

        order.version += 1
        return order

    async def list_by_buyer(
        self,
        buyer_id: UserId,
        status: Optional[OrderStatus] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Order], int]:
        conditions = [OrderModel.buyer_id == buyer_id.value]
        if status is not None:
            conditions.append(OrderModel.status == status.value)
        return await self._page(conditions, offset, limit)

    async def list_containing_products(
        self,
        product_ids: Sequence[ProductId],
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Order], int]:
        if not product_ids:
            return [], 0
        matching = (
            select(OrderItemModel.order_id)
            .where(OrderItemModel.product_id.in_([product_id.value for product_id in product_ids]))
        )
        return await self._page([OrderModel.id.in_(matching)], offset, limit)

    async def _page(self, conditions, offset: int, limit: int) -> Tuple[List[Order], int]:
        total = (
            await self.session.execute(select(func.count(OrderModel.id)).where(*conditions))
        ).scalar_one()
        stmt = (
            select(OrderModel)
            .where(*conditions)
            .order_by(desc(OrderModel.created_at), desc(OrderModel.id))
            .offset(offset)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        models = (await self.session.execute(stmt)).scalars().all()
        return [self._map_to_entity(model) for model in models], total

    def _history_model(self, order_id: OrderId, position: int, entry: StatusHistoryEntry) -> OrderStatusHistoryModel:
        return OrderStatusHistoryModel(
            order_id=order_id.value,
            position=position,
            status=entry.status.value,
            changed_by=entry.changed_by.value,
            note=entry.note,
            timestamp=entry.timestamp,
        )

    def _create_model_from_entity(self, order: Order) -> OrderModel:
        address = order.shipping_address
        return OrderModel(
            id=order.id.value,
            buyer_id=order.buyer_id.value,
            total_price=order.total_price.amount,
            currency=order.total_price.currency,
            status=order.status.value,
            shipping_street=address.street,
            shipping_city=address.city,
            shipping_postal_code=address.postal_code,
            shipping_country=address.country,
            shipping_recipient=address.recipient,
            delivery_date=order.delivery_date,
            payment_id=order.payment_id.value if order.payment_id else None,
            payment_status=order.payment_status.value,
            escrow_id=order.escrow_id.value if order.escrow_id else None,
            carbon_footprint=order.carbon_footprint,
            is_reviewed=order.is_reviewed,
            created_at=order.created_at,
            updated_at=order.updated_at,
            version=order.version,
            items=[
                OrderItemModel(
                    position=position,
                    product_id=item.product_id.value,
                    quantity=item.quantity,
                    price_at_purchase=item.price_at_purchase.amount,
                )
                for position, item in enumerate(order.items)
            ],
            status_history=[
                self._history_model(order.id, position, entry)
                for position, entry in enumerate(order.status_history)
            ],
        )

    def _map_to_entity(self, model: OrderModel) -> Order:
        currency = model.currency
        return Order(
            id=OrderId(model.id),
            buyer_id=UserId(model.buyer_id),
            items=[
                OrderItem(
                    product=ProductReference(ProductId(item.product_id)),
                    quantity=item.quantity,
                    price_at_purchase=Money(Decimal(item.price_at_purchase), currency),
                )
                for item in model.items
            ],
            total_price=to_money(model.total_price, currency),
            shipping_address=ShippingAddress(
                street=model.shipping_street,
                city=model.shipping_city,
                postal_code=model.shipping_postal_code,
                country=model.shipping_country,
                recipient=model.shipping_recipient,
            ),
            status=OrderStatus(model.status),
            status_history=[
                StatusHistoryEntry(
                    status=OrderStatus(entry.status),
                    timestamp=as_utc(entry.timestamp),
                    changed_by=UserId(entry.changed_by),
                    note=entry.note,
                )
                for entry in model.status_history
            ],
            delivery_date=model.delivery_date,
            payment_id=PaymentId(model.payment_id) if model.payment_id else None,
            payment_status=PaymentStatus(model.payment_status),
            escrow_id=EscrowId(model.escrow_id) if model.escrow_id else None,
            carbon_footprint=model.carbon_footprint,
            is_reviewed=model.is_reviewed,
            created_at=as_utc(model.created_at),
            updated_at=as_utc(model.updated_at),
            version=model.version,
        )
