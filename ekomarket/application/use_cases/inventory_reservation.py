"""Inventory reservation: the only code that moves product stock for orders"""

import logging
from dataclasses import dataclass

from kungfu import Ok, Result

from ...domain.entities.product import Product
from ...domain.errors import DomainError, Errors
from ...domain.repositories.unit_of_work import IUnitOfWork
from ...domain.value_objects.entity_ids import ProductId
from ...domain.value_objects.money import Money


logger = logging.getLogger(__name__)

# A concurrent restock can make a failed conditional decrement look
# satisfiable on re-read; retry a bounded number of times
MAX_RESERVE_ATTEMPTS = 3


@dataclass(frozen=True)
class Reservation:
    product: Product
    quantity: int
    unit_price: Money


class InventoryReservation:
    """Reserve and release stock inside the caller's unit of work"""

    def __init__(self, unit_of_work: IUnitOfWork):
        self.unit_of_work = unit_of_work

    async def reserve(self, product_id: ProductId, quantity: int) -> Result[Reservation, DomainError]:
        """Decrement stock and lock the unit price, or explain why not"""
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            return Errors.invalid_quantity(product_id.value, quantity)

        products = self.unit_of_work.products
        for _ in range(MAX_RESERVE_ATTEMPTS):
            product = await products.try_decrement(product_id, quantity)
            if product is not None:
                return Ok(Reservation(product=product, quantity=quantity, unit_price=product.price))

            current = await products.get_by_id(product_id)
            if current is None:
                return Errors.product_not_found(product_id.value)
            if not current.is_available:
                return Errors.product_unavailable(product_id.value, current.name)
            if current.quantity < quantity:
                logger.info(
                    "Insufficient stock for product %s: available %s, requested %s",
                    product_id, current.quantity, quantity,
                )
                return Errors.insufficient_stock(product_id.value, current.name, current.quantity, quantity)

        return Errors.concurrent_modification("Product", product_id.value)

    async def release(self, product_id: ProductId, quantity: int) -> bool:
        """Best-effort compensation; a product that no longer resolves is skipped"""
        restored = await self.unit_of_work.products.increment(product_id, quantity)
        if not restored:
            logger.warning(
                "Restock skipped, product %s no longer exists (inventory drift of %s units)",
                product_id, quantity,
            )
        return restored
