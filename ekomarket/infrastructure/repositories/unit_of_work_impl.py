"""Unit of Work implementation over an async SQLAlchemy session"""

from sqlalchemy.ext.asyncio import AsyncSession

from ...domain.repositories.unit_of_work import IUnitOfWork
from .user_repository_impl import UserRepositoryImpl
from .order_repository_impl import OrderRepositoryImpl
from .product_repository_impl import ProductRepositoryImpl
from .payment_repository_impl import PaymentRepositoryImpl
from .escrow_repository_impl import EscrowRepositoryImpl


class UnitOfWorkImpl(IUnitOfWork):

    def __init__(self, session: AsyncSession):
        self.session = session
        self.users = UserRepositoryImpl(session)
        self.orders = OrderRepositoryImpl(session)
        self.products = ProductRepositoryImpl(session)
        self.payments = PaymentRepositoryImpl(session)
        self.escrows = EscrowRepositoryImpl(session)
        self._committed = False

    async def __aenter__(self):
        self._committed = False
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        # Anything not explicitly committed is discarded, cancellation included
        if exc_type or not self._committed:
            await self.rollback()

    async def commit(self) -> None:
        """Commit transaction"""
        try:
            await self.session.commit()
            self._committed = True
        except Exception:
            await self.session.rollback()
            raise

    async def rollback(self) -> None:
        """Rollback transaction"""
        await self.session.rollback()
