"""Product as seen by the ordering core

The catalog owns the product lifecycle; ordering only reads it and moves
its remaining quantity through the inventory reservation.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from ..enums import ProductStatus
from ..value_objects.entity_ids import ProductId, UserId
from ..value_objects.location import GeoPoint
from ..value_objects.money import Money


@dataclass
class Product:
    id: ProductId
    owner_id: UserId
    name: str
    price: Money
    quantity: int
    unit: str = "kg"
    status: ProductStatus = ProductStatus.AVAILABLE
    location: Optional[GeoPoint] = None
    is_certified: bool = False
    category: Optional[str] = None
    images: List[str] = field(default_factory=list)

    @property
    def is_available(self) -> bool:
        return self.status == ProductStatus.AVAILABLE
