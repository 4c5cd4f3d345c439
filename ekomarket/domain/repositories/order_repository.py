"""Order repository interface"""

from abc import ABC, abstractmethod
from typing import Optional, List, Sequence, Tuple

from ..entities.order import Order
from ..enums import OrderStatus
from ..value_objects.entity_ids import OrderId, ProductId, UserId


class IOrderRepository(ABC):

    @abstractmethod
    async def get_by_id(self, order_id: OrderId) -> Optional[Order]:
        pass

    @abstractmethod
    async def add(self, order: Order) -> Order:
        pass

    @abstractmethod
    async def update(self, order: Order) -> Order:
        """Persist changes, conditional on the version the order was loaded at.

        Raises ConcurrentModificationError when another writer got there first.
        """
        pass

    @abstractmethod
    async def list_by_buyer(
        self,
        buyer_id: UserId,
        status: Optional[OrderStatus] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Order], int]:
        """Newest first; returns (page, total)"""
        pass

    @abstractmethod
    async def list_containing_products(
        self,
        product_ids: Sequence[ProductId],
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Order], int]:
        """Orders with at least one item referencing product_ids, newest first"""
        pass
