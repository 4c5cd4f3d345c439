"""Product repository interface"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from ..entities.product import Product
from ..value_objects.entity_ids import ProductId, UserId


class IProductRepository(ABC):

    @abstractmethod
    async def get_by_id(self, product_id: ProductId) -> Optional[Product]:
        pass

    @abstractmethod
    async def get_many(self, product_ids: Iterable[ProductId]) -> Dict[ProductId, Product]:
        pass

    @abstractmethod
    async def get_ids_by_owner(self, owner_id: UserId) -> List[ProductId]:
        pass

    @abstractmethod
    async def add(self, product: Product) -> Product:
        pass

    @abstractmethod
    async def try_decrement(self, product_id: ProductId, quantity: int) -> Optional[Product]:
        """Atomically decrement stock if the product is available with enough left.

        Returns the product as it is after the decrement, or None when the
        condition did not hold (nothing is written in that case).
        """
        pass

    @abstractmethod
    async def increment(self, product_id: ProductId, quantity: int) -> bool:
        """Put stock back; False when the product no longer exists"""
        pass
