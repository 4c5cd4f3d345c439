"""Payment intent, refund and status use cases"""

import logging
from decimal import Decimal, InvalidOperation

from kungfu import Error, Ok, Result

from ...core.config import settings
from ...domain.entities.escrow import Escrow
from ...domain.entities.payment import PaymentIntent
from ...domain.entities.user import User
from ...domain.enums import EscrowStatus, OrderStatus, PaymentStatus
from ...domain.errors import DomainError, Errors
from ...domain.repositories.unit_of_work import IUnitOfWork
from ...domain.value_objects.entity_ids import OrderId, PaymentId
from ...domain.value_objects.money import Money
from ...infrastructure.external_services.notification_service import NotificationPublisher
from ...infrastructure.external_services.payment_gateway import (
    PaymentGateway,
    PaymentGatewayError,
    PaymentGatewayTimeout,
)
from ..dtos.payment_dtos import (
    PaymentIntentCreateDTO,
    PaymentIntentCreatedDTO,
    PaymentStatusDTO,
    RefundCreateDTO,
    RefundResponseDTO,
)
from .order_transitions import apply_transition, save_order


logger = logging.getLogger(__name__)


def parse_amount(value, currency: str) -> Result[Money, DomainError]:
    """Positive, finite amount in major units"""
    try:
        money = Money(Decimal(str(value)), currency)
    except (InvalidOperation, ValueError):
        return Errors.invalid_amount(value)
    if money.amount <= 0:
        return Errors.invalid_amount(value)
    return Ok(money)


def refund_key(payment_id: PaymentId, amount: Money) -> str:
    return f"refund:{payment_id.value}:{amount.to_cents()}"


def gateway_failure(error: PaymentGatewayError) -> Error:
    if isinstance(error, PaymentGatewayTimeout):
        return Errors.gateway_timeout()
    return Errors.gateway_error(str(error))


def settled_error(escrow: Escrow) -> Error:
    if escrow.status == EscrowStatus.RELEASED:
        return Errors.already_released(escrow.id.value)
    return Errors.already_refunded(escrow.id.value)


class CreatePaymentIntentUseCase:
    """Open a gateway payment intent, optionally bound to a pending order.

    An order-bound intent is always for the order total. The gateway call is
    keyed by order and attempt number, so a retry after a timeout gets back
    the intent the first call may have opened.
    """

    LINK_ATTEMPTS = 3

    def __init__(self, unit_of_work: IUnitOfWork, gateway: PaymentGateway):
        self.unit_of_work = unit_of_work
        self.gateway = gateway

    async def execute(
        self, buyer: User, data: PaymentIntentCreateDTO
    ) -> Result[PaymentIntentCreatedDTO, DomainError]:
        amount = parse_amount(data.amount, data.currency or settings.DEFAULT_CURRENCY)
        if isinstance(amount, Error):
            return amount
        amount = amount.value

        order_id = OrderId(data.order_id) if data.order_id else None
        idempotency_key = data.idempotency_key
        if order_id:
            async with self.unit_of_work:
                order = await self.unit_of_work.orders.get_by_id(order_id)
                attempt = await self.unit_of_work.payments.count_by_order(order_id)
            if order is None:
                return Errors.order_not_found(order_id.value)
            if not order.is_buyer(buyer.id):
                return Errors.forbidden("You do not have permission to create a payment for this order.")
            if order.is_paid or not order.can_transition_to(OrderStatus.PAID):
                return Errors.invalid_transition(order.status.value, OrderStatus.PAID.value)
            if amount != order.total_price:
                return Errors.validation(
                    "INVALID_AMOUNT",
                    "Amount does not match the order total.",
                    amount=str(amount.amount),
                    expected=str(order.total_price.amount),
                )
            idempotency_key = idempotency_key or f"intent:{order_id.value}:{attempt}"

        # No transaction is held open across the gateway call
        try:
            intent = await self.gateway.create_intent(amount, {
                "buyerId": buyer.id.value,
                "orderId": order_id.value if order_id else "",
            }, idempotency_key=idempotency_key)
        except PaymentGatewayError as e:
            logger.error("Payment intent creation failed for buyer %s: %s", buyer.id, e)
            return gateway_failure(e)

        payment = PaymentIntent(
            id=PaymentId(intent.intent_id),
            buyer_id=buyer.id,
            amount=amount,
            order_id=order_id,
            client_secret=intent.client_secret,
            gateway_response=intent.raw,
        )
        async with self.unit_of_work:
            if await self.unit_of_work.payments.get_by_id(payment.id) is None:
                await self.unit_of_work.payments.add(payment)
            if order_id:
                await self._link_order(order_id, payment.id)
            # The intent exists at the gateway, so its record is kept even when the link is lost
            await self.unit_of_work.commit()

        logger.info("Payment intent %s created for %s", payment.id, amount)
        return Ok(PaymentIntentCreatedDTO(client_secret=payment.client_secret, payment_intent_id=payment.id.value))

    async def _link_order(self, order_id: OrderId, payment_id: PaymentId) -> bool:
        """Point the order at its newest intent, re-reading it after a lost race"""
        for _ in range(self.LINK_ATTEMPTS):
            order = await self.unit_of_work.orders.get_by_id(order_id)
            if order is None or order.is_paid:
                break
            if order.payment_id == payment_id:
                return True
            order.link_payment(payment_id)
            if isinstance(await save_order(self.unit_of_work, order), Ok):
                return True
        logger.warning("Payment %s recorded without linking order %s", payment_id, order_id)
        return False


class CreateRefundUseCase:
    """Administrator refund of a completed payment; cancels the linked order.

    The payment and any held escrow are claimed with status-keyed writes
    before the gateway is called, so a concurrent release or refund cannot
    also succeed. A gateway failure rolls the claims back.
    """

    def __init__(self, unit_of_work: IUnitOfWork, gateway: PaymentGateway, publisher: NotificationPublisher):
        self.unit_of_work = unit_of_work
        self.gateway = gateway
        self.publisher = publisher

    async def execute(self, requester: User, data: RefundCreateDTO) -> Result[RefundResponseDTO, DomainError]:
        if not requester.is_admin:
            return Errors.forbidden("Only administrators can issue refunds.")

        payment_id = PaymentId(data.payment_intent_id)
        async with self.unit_of_work:
            payment = await self.unit_of_work.payments.get_by_id(payment_id)
            if payment is None:
                return Errors.payment_not_found(payment_id.value)
            checked = await self._check_refundable(payment)
            if isinstance(checked, Error):
                return checked

            refund_amount = payment.amount
            if data.amount is not None:
                parsed = parse_amount(data.amount, payment.amount.currency)
                if isinstance(parsed, Error):
                    return parsed
                if payment.amount < parsed.value:
                    return Errors.validation(
                        "INVALID_AMOUNT", "Refund amount exceeds the original payment.", amount=str(data.amount)
                    )
                refund_amount = parsed.value

            new_status = payment.record_refund(None, refund_amount, data.reason)
            if not await self.unit_of_work.payments.update_if_status(payment, {PaymentStatus.COMPLETED}):
                return Errors.already_refunded(payment_id.value)

            if payment.order_id:
                escrow = await self.unit_of_work.escrows.get_by_order_id(payment.order_id)
                if escrow is not None and escrow.is_held:
                    escrow.refund(data.reason)
                    if not await self.unit_of_work.escrows.update_if_status(escrow, EscrowStatus.HELD):
                        return settled_error(await self.unit_of_work.escrows.get_by_id(escrow.id))

            try:
                refund = await self.gateway.create_refund(
                    payment_id.value,
                    None if refund_amount == payment.amount else refund_amount,
                    data.reason,
                    idempotency_key=refund_key(payment_id, refund_amount),
                )
            except PaymentGatewayError as e:
                logger.error("Refund of payment %s failed: %s", payment_id, e)
                return gateway_failure(e)

            payment.refund_id = refund.refund_id
            await self.unit_of_work.payments.update_if_status(payment, {new_status})

            order = await self.unit_of_work.orders.get_by_id(payment.order_id) if payment.order_id else None
            if order is not None:
                order.record_payment_status(new_status)
                if order.is_terminal:
                    result = await save_order(self.unit_of_work, order)
                else:
                    note = f"Order cancelled and refunded. Reason: {data.reason or 'Not specified'}"
                    result = await apply_transition(
                        self.unit_of_work, order, OrderStatus.CANCELLED, requester.id, note
                    )
                if isinstance(result, Error):
                    logger.error(
                        "Gateway refund %s issued but order %s could not be updated", refund.refund_id, order.id
                    )
                    return result

            await self.unit_of_work.commit()

        if order is not None:
            self.publisher.publish(order.get_events())
        logger.info("Payment %s refunded (%s, %s)", payment_id, new_status.value, refund_amount)
        return Ok(RefundResponseDTO(
            refund_id=refund.refund_id,
            status=new_status.value,
            amount=refund_amount.amount,
            currency=refund_amount.currency,
        ))

    async def _check_refundable(self, payment: PaymentIntent) -> Result[PaymentIntent, DomainError]:
        if payment.status in (PaymentStatus.REFUNDED, PaymentStatus.PARTIALLY_REFUNDED):
            return Errors.already_refunded(payment.id.value)
        if payment.status != PaymentStatus.COMPLETED:
            return Errors.payment_not_completed(payment.status.value)

        if payment.order_id:
            order = await self.unit_of_work.orders.get_by_id(payment.order_id)
            if order is not None and order.status == OrderStatus.DELIVERED:
                return Errors.invalid_transition(order.status.value, OrderStatus.CANCELLED.value)
            escrow = await self.unit_of_work.escrows.get_by_order_id(payment.order_id)
            if escrow is not None and escrow.status == EscrowStatus.RELEASED:
                return Errors.already_released(escrow.id.value)
            if escrow is not None and escrow.status == EscrowStatus.REFUNDED:
                return Errors.already_refunded(escrow.id.value)
        return Ok(payment)


class GetPaymentStatusUseCase:

    def __init__(self, unit_of_work: IUnitOfWork):
        self.unit_of_work = unit_of_work

    async def execute(self, payment_id: str, requester: User) -> Result[PaymentStatusDTO, DomainError]:
        async with self.unit_of_work:
            payment = await self.unit_of_work.payments.get_by_id(PaymentId(payment_id))
        if payment is None:
            return Errors.payment_not_found(payment_id)
        if not (requester.is_admin or payment.belongs_to(requester.id)):
            return Errors.forbidden("You do not have permission to view this payment.")
        return Ok(PaymentStatusDTO.from_entity(payment))
