"""Order queries: single order, buyer history and seller view"""

from typing import List, Optional, Tuple

from kungfu import Ok, Result

from ...core.config import settings
from ...domain.entities.order import Order, ProductSummary
from ...domain.entities.user import User
from ...domain.enums import OrderStatus
from ...domain.errors import DomainError, Errors
from ...domain.repositories.unit_of_work import IUnitOfWork
from ...domain.value_objects.entity_ids import OrderId
from ..dtos.common import PageDTO
from ..dtos.order_dtos import OrderResponseDTO


def normalize_page(page: int, limit: Optional[int]) -> Tuple[int, int]:
    page = max(page or 1, 1)
    limit = limit or settings.DEFAULT_PAGE_LIMIT
    return page, min(max(limit, 1), settings.MAX_PAGE_LIMIT)


async def resolve_products(unit_of_work: IUnitOfWork, orders: List[Order]) -> None:
    """Swap raw product references for catalog summaries where the product still exists"""
    product_ids = {product_id for order in orders for product_id in order.product_ids}
    products = await unit_of_work.products.get_many(product_ids)
    for order in orders:
        order.items = [
            item.with_product(ProductSummary(
                product_id=item.product_id,
                name=products[item.product_id].name,
                category=products[item.product_id].category,
                images=tuple(products[item.product_id].images),
            )) if item.product_id in products else item
            for item in order.items
        ]


class GetOrderUseCase:

    def __init__(self, unit_of_work: IUnitOfWork):
        self.unit_of_work = unit_of_work

    async def execute(self, order_id: str, requester: User) -> Result[OrderResponseDTO, DomainError]:
        async with self.unit_of_work:
            order = await self.unit_of_work.orders.get_by_id(OrderId(order_id))
            if order is None:
                return Errors.order_not_found(order_id)
            if not (requester.is_admin or order.is_buyer(requester.id)):
                return Errors.forbidden("You do not have permission to view this order.")
            await resolve_products(self.unit_of_work, [order])
        return Ok(OrderResponseDTO.from_entity(order))


class ListBuyerOrdersUseCase:

    def __init__(self, unit_of_work: IUnitOfWork):
        self.unit_of_work = unit_of_work

    async def execute(
        self,
        buyer: User,
        page: int = 1,
        limit: Optional[int] = None,
        status: Optional[str] = None,
    ) -> Result[PageDTO[OrderResponseDTO], DomainError]:
        status_filter = None
        if status:
            try:
                status_filter = OrderStatus(status)
            except ValueError:
                return Errors.invalid_status(status)

        page, limit = normalize_page(page, limit)
        async with self.unit_of_work:
            orders, total = await self.unit_of_work.orders.list_by_buyer(
                buyer.id, status_filter, offset=(page - 1) * limit, limit=limit
            )
            await resolve_products(self.unit_of_work, orders)
        return Ok(PageDTO[OrderResponseDTO].build(
            [OrderResponseDTO.from_entity(order) for order in orders], total, page, limit
        ))


class ListSellerOrdersUseCase:
    """Orders containing at least one product owned by the seller"""

    def __init__(self, unit_of_work: IUnitOfWork):
        self.unit_of_work = unit_of_work

    async def execute(
        self,
        seller: User,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> Result[PageDTO[OrderResponseDTO], DomainError]:
        if not (seller.is_farmer or seller.is_admin):
            return Errors.forbidden("Only farmers can view seller orders.")

        page, limit = normalize_page(page, limit)
        async with self.unit_of_work:
            product_ids = await self.unit_of_work.products.get_ids_by_owner(seller.id)
            orders, total = await self.unit_of_work.orders.list_containing_products(
                product_ids, offset=(page - 1) * limit, limit=limit
            )
            await resolve_products(self.unit_of_work, orders)
        return Ok(PageDTO[OrderResponseDTO].build(
            [OrderResponseDTO.from_entity(order) for order in orders], total, page, limit
        ))
