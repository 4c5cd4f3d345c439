"""Payment repository interface"""

from abc import ABC, abstractmethod
from typing import Collection, Optional

from ..entities.payment import PaymentIntent
from ..enums import PaymentStatus
from ..value_objects.entity_ids import OrderId, PaymentId


class IPaymentRepository(ABC):

    @abstractmethod
    async def get_by_id(self, payment_id: PaymentId) -> Optional[PaymentIntent]:
        pass

    @abstractmethod
    async def add(self, payment: PaymentIntent) -> PaymentIntent:
        pass

    @abstractmethod
    async def count_by_order(self, order_id: OrderId) -> int:
        """Number of intents ever opened for order"""
        pass

    @abstractmethod
    async def update_if_status(self, payment: PaymentIntent, expected: Collection[PaymentStatus]) -> bool:
        """Write the payment only if its stored status is one of expected"""
        pass
