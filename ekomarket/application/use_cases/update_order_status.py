"""Update Order Status Use Case"""

from typing import Optional

from kungfu import Error, Ok, Result

from ...domain.entities.user import User
from ...domain.enums import OrderStatus
from ...domain.errors import DomainError, Errors
from ...domain.repositories.unit_of_work import IUnitOfWork
from ...domain.value_objects.entity_ids import OrderId
from ...infrastructure.external_services.notification_service import NotificationPublisher
from ..dtos.order_dtos import OrderResponseDTO
from .order_transitions import apply_transition


class UpdateOrderStatusUseCase:

    def __init__(self, unit_of_work: IUnitOfWork, publisher: NotificationPublisher):
        self.unit_of_work = unit_of_work
        self.publisher = publisher

    async def execute(
        self,
        order_id: str,
        status: str,
        requester: User,
        note: Optional[str] = None,
    ) -> Result[OrderResponseDTO, DomainError]:
        try:
            new_status = OrderStatus(status)
        except ValueError:
            return Errors.invalid_status(status)

        async with self.unit_of_work:
            order = await self.unit_of_work.orders.get_by_id(OrderId(order_id))
            if order is None:
                return Errors.order_not_found(order_id)
            if not (requester.is_admin or order.is_buyer(requester.id)):
                return Errors.forbidden("You do not have permission to update this order.")

            result = await apply_transition(self.unit_of_work, order, new_status, requester.id, note)
            if isinstance(result, Error):
                return result
            await self.unit_of_work.commit()

        self.publisher.publish(order.get_events())
        return Ok(OrderResponseDTO.from_entity(order))
