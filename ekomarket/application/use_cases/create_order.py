"""Create Order Use Case"""

import logging
from typing import List

from kungfu import Error, Ok, Result

from ...domain.entities.order import Order, OrderItem, ProductReference
from ...domain.entities.user import User
from ...domain.errors import DomainError, Errors
from ...domain.repositories.unit_of_work import IUnitOfWork
from ...domain.services.carbon_footprint import CarbonFootprintEstimator, CarbonLine
from ...domain.value_objects.entity_ids import ProductId
from ...domain.value_objects.location import ShippingAddress
from ...infrastructure.external_services.notification_service import NotificationPublisher
from ..dtos.order_dtos import CarbonFootprintDTO, OrderCreateDTO, OrderCreatedDTO, OrderResponseDTO
from .inventory_reservation import InventoryReservation, Reservation


logger = logging.getLogger(__name__)


class CreateOrderUseCase:
    """Turn a cart into a priced, stock-reserved pending order.

    Every reservation and the order insert share one unit of work: a failed
    item, an exception or a cancelled request leaves no stock decremented
    and no order behind.
    """

    def __init__(
        self,
        unit_of_work: IUnitOfWork,
        estimator: CarbonFootprintEstimator,
        publisher: NotificationPublisher,
    ):
        self.unit_of_work = unit_of_work
        self.estimator = estimator
        self.publisher = publisher

    async def execute(self, buyer: User, order_data: OrderCreateDTO) -> Result[OrderCreatedDTO, DomainError]:
        """Execute the create order use case"""
        if not order_data.items:
            return Errors.empty_order()
        for item in order_data.items:
            if item.quantity <= 0:
                return Errors.invalid_quantity(item.product_id, item.quantity)

        address = order_data.shipping_address
        try:
            shipping_address = ShippingAddress(
                street=address.street,
                city=address.city,
                postal_code=address.postal_code,
                country=address.country,
                recipient=address.recipient,
            )
        except ValueError as e:
            return Errors.validation("INVALID_ADDRESS", str(e))

        async with self.unit_of_work:
            reservation = InventoryReservation(self.unit_of_work)
            reserved: List[Reservation] = []
            for item in order_data.items:
                result = await reservation.reserve(ProductId(item.product_id), item.quantity)
                if isinstance(result, Error):
                    # Leaving the block without commit undoes earlier decrements
                    logger.info("Order for buyer %s rejected: %s", buyer.id, result.value)
                    return result
                reserved.append(result.value)

            buyer_profile = await self.unit_of_work.users.get_by_id(buyer.id)
            buyer_location = buyer_profile.location if buyer_profile else buyer.location
            estimate = self.estimator.estimate(buyer_location, [
                CarbonLine(
                    quantity=line.quantity,
                    unit=line.product.unit,
                    location=line.product.location,
                    is_certified=line.product.is_certified,
                )
                for line in reserved
            ])

            order = Order.place(
                buyer_id=buyer.id,
                items=[
                    OrderItem(
                        product=ProductReference(line.product.id),
                        quantity=line.quantity,
                        price_at_purchase=line.unit_price,
                    )
                    for line in reserved
                ],
                shipping_address=shipping_address,
                carbon_footprint=estimate.footprint,
                delivery_date=order_data.delivery_date,
            )
            await self.unit_of_work.orders.add(order)
            await self.unit_of_work.commit()

        logger.info("Order %s created for buyer %s, total %s", order.id, buyer.id, order.total_price)
        self.publisher.publish(order.get_events())
        return Ok(OrderCreatedDTO(
            order=OrderResponseDTO.from_entity(order),
            carbon=CarbonFootprintDTO.from_estimate(estimate),
        ))
