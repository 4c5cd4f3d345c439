"""Escrow ledger use cases: create, release, refund, status"""

import logging
from typing import Optional

from kungfu import Error, Ok, Result

from ...domain.entities.escrow import Escrow
from ...domain.entities.user import User
from ...domain.enums import EscrowStatus, OrderStatus, PaymentStatus
from ...domain.errors import ConcurrentModificationError, DomainError, Errors
from ...domain.repositories.unit_of_work import IUnitOfWork
from ...domain.value_objects.entity_ids import EscrowId, OrderId, PaymentId
from ...infrastructure.external_services.notification_service import NotificationPublisher
from ...infrastructure.external_services.payment_gateway import PaymentGateway, PaymentGatewayError
from ..dtos.escrow_dtos import EscrowCreateDTO, EscrowResponseDTO
from .order_transitions import apply_transition, save_order
from .payment_use_cases import gateway_failure, refund_key, settled_error


logger = logging.getLogger(__name__)

REFUNDED_OR_CAPTURED = frozenset({
    PaymentStatus.COMPLETED,
    PaymentStatus.REFUNDED,
    PaymentStatus.PARTIALLY_REFUNDED,
})


class CreateEscrowUseCase:
    """Hold the paid order total against the order until release or refund"""

    def __init__(self, unit_of_work: IUnitOfWork):
        self.unit_of_work = unit_of_work

    async def execute(self, requester: User, data: EscrowCreateDTO) -> Result[EscrowResponseDTO, DomainError]:
        async with self.unit_of_work:
            order = await self.unit_of_work.orders.get_by_id(OrderId(data.order_id))
            if order is None:
                return Errors.order_not_found(data.order_id)
            if not (requester.is_admin or order.is_buyer(requester.id)):
                return Errors.forbidden("You do not have permission to open an escrow for this order.")
            if not order.is_paid:
                return Errors.payment_not_completed(order.payment_status.value)

            payment = await self.unit_of_work.payments.get_by_id(PaymentId(data.payment_id))
            if payment is None or payment.order_id != order.id:
                return Errors.payment_not_found(data.payment_id)
            # Only the captured intent the order was settled by can back the hold
            if payment.status != PaymentStatus.COMPLETED or payment.id != order.payment_id:
                return Errors.payment_not_completed(payment.status.value)
            if await self.unit_of_work.escrows.get_by_order_id(order.id) is not None:
                return Errors.escrow_exists(order.id.value)

            products = await self.unit_of_work.products.get_many(order.product_ids)
            escrow = Escrow(
                id=EscrowId.generate(),
                order_id=order.id,
                payment_id=payment.id,
                amount=payment.amount,
                buyer_id=order.buyer_id,
                seller_ids=frozenset(product.owner_id for product in products.values()),
            )
            try:
                await self.unit_of_work.escrows.add(escrow)
            except ConcurrentModificationError:
                return Errors.escrow_exists(order.id.value)

            order.link_escrow(escrow.id)
            result = await save_order(self.unit_of_work, order)
            if isinstance(result, Error):
                return result
            await self.unit_of_work.commit()

        logger.info("Escrow %s holds %s for order %s", escrow.id, escrow.amount, order.id)
        return Ok(EscrowResponseDTO.from_entity(escrow))


class ReleaseEscrowUseCase:
    """Disburse held funds to the sellers and mark the order delivered"""

    def __init__(self, unit_of_work: IUnitOfWork, publisher: NotificationPublisher):
        self.unit_of_work = unit_of_work
        self.publisher = publisher

    async def execute(self, escrow_id: str, requester: User) -> Result[EscrowResponseDTO, DomainError]:
        if not requester.is_admin:
            return Errors.forbidden("Only administrators can release escrow funds.")

        async with self.unit_of_work:
            escrow = await self.unit_of_work.escrows.get_by_id(EscrowId(escrow_id))
            if escrow is None:
                return Errors.escrow_not_found(escrow_id)
            if not escrow.is_held:
                return settled_error(escrow)

            escrow.release()
            if not await self.unit_of_work.escrows.update_if_status(escrow, EscrowStatus.HELD):
                return settled_error(await self.unit_of_work.escrows.get_by_id(escrow.id))

            order = await self.unit_of_work.orders.get_by_id(escrow.order_id)
            if order is not None and order.status != OrderStatus.DELIVERED:
                result = await apply_transition(
                    self.unit_of_work, order, OrderStatus.DELIVERED, requester.id, "Payment released to seller"
                )
                if isinstance(result, Error):
                    return result
            await self.unit_of_work.commit()

        logger.info("Escrow %s released by %s", escrow.id, requester.id)
        if order is not None:
            self.publisher.publish(order.get_events())
        return Ok(EscrowResponseDTO.from_entity(escrow))


class RefundEscrowUseCase:
    """Return held funds to the buyer and cancel the order.

    The hold is claimed before the gateway refund so a concurrent release
    is rejected; a gateway failure rolls the claim back and the escrow stays
    held.
    """

    def __init__(self, unit_of_work: IUnitOfWork, gateway: PaymentGateway, publisher: NotificationPublisher):
        self.unit_of_work = unit_of_work
        self.gateway = gateway
        self.publisher = publisher

    async def execute(
        self, escrow_id: str, requester: User, reason: Optional[str] = None
    ) -> Result[EscrowResponseDTO, DomainError]:
        if not requester.is_admin:
            return Errors.forbidden("Only administrators can refund escrow funds.")

        async with self.unit_of_work:
            escrow = await self.unit_of_work.escrows.get_by_id(EscrowId(escrow_id))
            if escrow is None:
                return Errors.escrow_not_found(escrow_id)
            if not escrow.is_held:
                return settled_error(escrow)
            order = await self.unit_of_work.orders.get_by_id(escrow.order_id)
            if order is not None and order.status == OrderStatus.DELIVERED:
                return Errors.invalid_transition(order.status.value, OrderStatus.CANCELLED.value)
            payment = await self.unit_of_work.payments.get_by_id(escrow.payment_id)
            if payment is None:
                return Errors.payment_not_found(escrow.payment_id.value)
            if payment.status not in REFUNDED_OR_CAPTURED:
                return Errors.payment_not_completed(payment.status.value)

            escrow.refund(reason)
            if not await self.unit_of_work.escrows.update_if_status(escrow, EscrowStatus.HELD):
                return settled_error(await self.unit_of_work.escrows.get_by_id(escrow.id))

            if payment.is_refundable:
                try:
                    refund = await self.gateway.create_refund(
                        payment.id.value, None, reason, idempotency_key=refund_key(payment.id, payment.amount)
                    )
                except PaymentGatewayError as e:
                    logger.error("Gateway refund for escrow %s failed: %s", escrow.id, e)
                    return gateway_failure(e)
                payment.record_refund(refund.refund_id, payment.amount, reason)
                if not await self.unit_of_work.payments.update_if_status(payment, {PaymentStatus.COMPLETED}):
                    logger.error(
                        "Gateway refund %s issued but payment %s changed meanwhile", refund.refund_id, payment.id
                    )
                    return Errors.already_refunded(payment.id.value)

            order = await self.unit_of_work.orders.get_by_id(escrow.order_id)
            if order is not None:
                order.record_payment_status(PaymentStatus.REFUNDED)
                if order.is_terminal:
                    result = await save_order(self.unit_of_work, order)
                else:
                    note = f"Order cancelled and refunded. Reason: {reason or 'Not specified'}"
                    result = await apply_transition(
                        self.unit_of_work, order, OrderStatus.CANCELLED, requester.id, note
                    )
                if isinstance(result, Error):
                    return result
            await self.unit_of_work.commit()

        logger.info("Escrow %s refunded by %s", escrow.id, requester.id)
        if order is not None:
            self.publisher.publish(order.get_events())
        return Ok(EscrowResponseDTO.from_entity(escrow))


class GetEscrowStatusUseCase:

    def __init__(self, unit_of_work: IUnitOfWork):
        self.unit_of_work = unit_of_work

    async def execute(self, escrow_id: str, requester: User) -> Result[EscrowResponseDTO, DomainError]:
        async with self.unit_of_work:
            escrow = await self.unit_of_work.escrows.get_by_id(EscrowId(escrow_id))
        if escrow is None:
            return Errors.escrow_not_found(escrow_id)
        if not escrow.is_visible_to(requester):
            return Errors.forbidden("You do not have permission to view this escrow.")
        return Ok(EscrowResponseDTO.from_entity(escrow))
