"""Unit of Work interface for transaction management"""

from abc import ABC, abstractmethod

from .user_repository import IUserRepository
from .order_repository import IOrderRepository
from .product_repository import IProductRepository
from .payment_repository import IPaymentRepository
from .escrow_repository import IEscrowRepository


class IUnitOfWork(ABC):
    """Unit of Work interface for managing transactions across repositories

    Leaving the context with an exception (cancellation included) rolls back
    every write made through the repositories, stock decrements too.
    """

    users: IUserRepository
    orders: IOrderRepository
    products: IProductRepository
    payments: IPaymentRepository
    escrows: IEscrowRepository

    @abstractmethod
    async def __aenter__(self):
        """Enter async context"""
        pass

    @abstractmethod
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context"""
        pass

    @abstractmethod
    async def commit(self):
        """Commit transaction"""
        pass

    @abstractmethod
    async def rollback(self):
        """Rollback transaction"""
        pass
