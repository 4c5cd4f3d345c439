"""Escrow repository implementation using SQLAlchemy ORM"""

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ...domain.entities.escrow import Escrow
from ...domain.enums import EscrowStatus
from ...domain.errors import ConcurrentModificationError
from ...domain.repositories.escrow_repository import IEscrowRepository
from ...domain.value_objects.entity_ids import EscrowId, OrderId, PaymentId, UserId
from ..orm.escrow_model import EscrowModel
from .mappers import as_utc, to_money


class EscrowRepositoryImpl(IEscrowRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, escrow_id: EscrowId) -> Optional[Escrow]:
        return await self._get_one(EscrowModel.id == escrow_id.value)

    async def get_by_order_id(self, order_id: OrderId) -> Optional[Escrow]:
        return await self._get_one(EscrowModel.order_id == order_id.value)

    async def _get_one(self, condition) -> Optional[Escrow]:
        stmt = select(EscrowModel).where(condition).execution_options(populate_existing=True)
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        return self._map_to_entity(model) if model else None

    async def add(self, escrow: Escrow) -> Escrow:
        self.session.add(EscrowModel(
            id=escrow.id.value,
            order_id=escrow.order_id.value,
            payment_id=escrow.payment_id.value,
            amount=escrow.amount.amount,
            currency=escrow.amount.currency,
            buyer_id=escrow.buyer_id.value,
            seller_ids=sorted(seller.value for seller in escrow.seller_ids),
            status=escrow.status.value,
            created_at=escrow.created_at,
            updated_at=escrow.updated_at,
        ))
        try:
            await self.session.flush()
        except IntegrityError as e:
            # Unique order_id: another request created the escrow first
            raise ConcurrentModificationError("Escrow for order", escrow.order_id.value) from e
        return escrow

    async def update_if_status(self, escrow: Escrow, expected: EscrowStatus) -> bool:
        stmt = (
            update(EscrowModel)
            .where(EscrowModel.id == escrow.id.value, EscrowModel.status == expected.value)
            .values(
                status=escrow.status.value,
                refund_reason=escrow.refund_reason,
                released_at=escrow.released_at,
                refunded_at=escrow.refunded_at,
                updated_at=escrow.updated_at,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    def _map_to_entity(self, model: EscrowModel) -> Escrow:
        return Escrow(
            id=EscrowId(model.id),
            order_id=OrderId(model.order_id),
            payment_id=PaymentId(model.payment_id),
            amount=to_money(model.amount, model.currency),
            buyer_id=UserId(model.buyer_id),
            seller_ids=frozenset(UserId(seller) for seller in model.seller_ids or []),
            status=EscrowStatus(model.status),
            refund_reason=model.refund_reason,
            released_at=as_utc(model.released_at),
            refunded_at=as_utc(model.refunded_at),
            created_at=as_utc(model.created_at),
            updated_at=as_utc(model.updated_at),
        )
