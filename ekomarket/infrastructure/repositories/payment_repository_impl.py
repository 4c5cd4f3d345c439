"""Payment repository implementation using SQLAlchemy ORM"""

from typing import Collection, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ...domain.entities.payment import PaymentIntent
from ...domain.enums import PaymentStatus
from ...domain.repositories.payment_repository import IPaymentRepository
from ...domain.value_objects.entity_ids import OrderId, PaymentId, UserId
from ..orm.payment_model import PaymentModel
from .mappers import as_utc, to_money


class PaymentRepositoryImpl(IPaymentRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, payment_id: PaymentId) -> Optional[PaymentIntent]:
        stmt = (
            select(PaymentModel)
            .where(PaymentModel.id == payment_id.value)
            .execution_options(populate_existing=True)
        )
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        return self._map_to_entity(model) if model else None

    async def add(self, payment: PaymentIntent) -> PaymentIntent:
        self.session.add(PaymentModel(
            id=payment.id.value,
            buyer_id=payment.buyer_id.value,
            order_id=payment.order_id.value if payment.order_id else None,
            amount=payment.amount.amount,
            currency=payment.amount.currency,
            status=payment.status.value,
            client_secret=payment.client_secret,
            gateway_response=dict(payment.gateway_response),
            created_at=payment.created_at,
            updated_at=payment.updated_at,
        ))
        await self.session.flush()
        return payment

    async def count_by_order(self, order_id: OrderId) -> int:
        stmt = select(func.count(PaymentModel.id)).where(PaymentModel.order_id == order_id.value)
        return (await self.session.execute(stmt)).scalar_one()

    async def update_if_status(self, payment: PaymentIntent, expected: Collection[PaymentStatus]) -> bool:
        # Keyed on the stored status so concurrent deliveries serialize per intent
        stmt = (
            update(PaymentModel)
            .where(
                PaymentModel.id == payment.id.value,
                PaymentModel.status.in_([status.value for status in expected]),
            )
            .values(
                status=payment.status.value,
                gateway_response=dict(payment.gateway_response),
                error_message=payment.error_message,
                last_event_id=payment.last_event_id,
                refund_id=payment.refund_id,
                refunded_amount=payment.refunded_amount.amount if payment.refunded_amount else None,
                refund_reason=payment.refund_reason,
                updated_at=payment.updated_at,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    def _map_to_entity(self, model: PaymentModel) -> PaymentIntent:
        return PaymentIntent(
            id=PaymentId(model.id),
            buyer_id=UserId(model.buyer_id),
            amount=to_money(model.amount, model.currency),
            status=PaymentStatus(model.status),
            order_id=OrderId(model.order_id) if model.order_id else None,
            client_secret=model.client_secret,
            gateway_response=dict(model.gateway_response or {}),
            error_message=model.error_message,
            last_event_id=model.last_event_id,
            refund_id=model.refund_id,
            refunded_amount=to_money(model.refunded_amount, model.currency),
            refund_reason=model.refund_reason,
            created_at=as_utc(model.created_at),
            updated_at=as_utc(model.updated_at),
        )
