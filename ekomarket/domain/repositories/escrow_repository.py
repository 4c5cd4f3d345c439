"""Escrow repository interface"""

from abc import ABC, abstractmethod
from typing import Optional

from ..entities.escrow import Escrow
from ..enums import EscrowStatus
from ..value_objects.entity_ids import EscrowId, OrderId


class IEscrowRepository(ABC):

    @abstractmethod
    async def get_by_id(self, escrow_id: EscrowId) -> Optional[Escrow]:
        pass

    @abstractmethod
    async def get_by_order_id(self, order_id: OrderId) -> Optional[Escrow]:
        pass

    @abstractmethod
    async def add(self, escrow: Escrow) -> Escrow:
        """Raises ConcurrentModificationError if the order already has an escrow"""
        pass

    @abstractmethod
    async def update_if_status(self, escrow: Escrow, expected: EscrowStatus) -> bool:
        """Write the escrow only if its stored status is still expected"""
        pass
