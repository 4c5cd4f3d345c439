"""Order domain events"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..value_objects.money import Money
from ..value_objects.entity_ids import OrderId, UserId
from ..enums import OrderStatus


@dataclass(frozen=True)
class OrderPlaced:
    order_id: OrderId
    buyer_id: UserId
    total_price: Money
    occurred_at: datetime


@dataclass(frozen=True)
class OrderStatusChanged:
    order_id: OrderId
    buyer_id: UserId
    previous_status: OrderStatus
    status: OrderStatus
    changed_by: UserId
    note: Optional[str]
    occurred_at: datetime
