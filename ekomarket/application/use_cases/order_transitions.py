"""Order status transition shared by the status, webhook, refund and escrow flows"""

import logging
from typing import Optional

from kungfu import Ok, Result

from ...domain.entities.order import InvalidTransition, Order
from ...domain.enums import OrderStatus
from ...domain.errors import ConcurrentModificationError, DomainError, Errors
from ...domain.repositories.unit_of_work import IUnitOfWork
from ...domain.value_objects.entity_ids import UserId
from .inventory_reservation import InventoryReservation


logger = logging.getLogger(__name__)


async def apply_transition(
    unit_of_work: IUnitOfWork,
    order: Order,
    new_status: OrderStatus,
    changed_by: UserId,
    note: Optional[str] = None,
) -> Result[Order, DomainError]:
    """Move order to new_status inside the open unit of work.

    Cancelling puts back the stock of every item whose product still exists.
    The caller commits.
    """
    try:
        order.transition_to(new_status, changed_by, note)
    except InvalidTransition as e:
        return Errors.invalid_transition(e.current.value, e.requested.value)

    if new_status == OrderStatus.CANCELLED:
        reservation = InventoryReservation(unit_of_work)
        for item in order.items:
            await reservation.release(item.product_id, item.quantity)

    return await save_order(unit_of_work, order)


async def save_order(unit_of_work: IUnitOfWork, order: Order) -> Result[Order, DomainError]:
    try:
        await unit_of_work.orders.update(order)
    except ConcurrentModificationError:
        logger.info("Order %s changed underneath this request", order.id)
        return Errors.concurrent_modification("Order", order.id.value)
    logger.info("Order %s is now %s (payment %s)", order.id, order.status.value, order.payment_status.value)
    return Ok(order)
