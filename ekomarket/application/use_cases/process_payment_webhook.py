"""Process payment webhook use case

Gateways retry and reorder deliveries, so every event is checked against
the stored payment status and applied through a status-keyed conditional
update. Duplicates and stale events are acknowledged without a write.
"""

import logging
from typing import Optional

from kungfu import Error, Ok, Result
from pydantic import ValidationError

from ...domain.entities.order import Order, utcnow
from ...domain.entities.payment import SETTLEMENT_SOURCES
from ...domain.entities.user import User
from ...domain.enums import OrderStatus, PaymentStatus, WebhookEventType
from ...domain.errors import DomainError, Errors
from ...domain.repositories.unit_of_work import IUnitOfWork
from ...domain.value_objects.entity_ids import OrderId, PaymentId
from ...infrastructure.external_services.notification_service import NotificationPublisher
from ...infrastructure.external_services.payment_gateway import InvalidWebhookSignature, PaymentGateway
from ..dtos.payment_dtos import WebhookAckDTO, WebhookEventDTO
from .order_transitions import save_order


logger = logging.getLogger(__name__)

ORDER_UPDATE_ATTEMPTS = 3

EVENT_TARGETS = {
    WebhookEventType.PAYMENT_SUCCEEDED: PaymentStatus.COMPLETED,
    WebhookEventType.PAYMENT_FAILED: PaymentStatus.FAILED,
    WebhookEventType.PAYMENT_CANCELED: PaymentStatus.FAILED,
}


class ProcessPaymentWebhookUseCase:

    def __init__(self, unit_of_work: IUnitOfWork, gateway: PaymentGateway, publisher: NotificationPublisher):
        self.unit_of_work = unit_of_work
        self.gateway = gateway
        self.publisher = publisher

    async def execute(self, payload: bytes, signature: str) -> Result[WebhookAckDTO, DomainError]:
        """Verify, decode and apply one gateway event"""
        try:
            self.gateway.verify_webhook(payload, signature)
        except InvalidWebhookSignature as e:
            logger.warning("Webhook signature verification failed: %s", e)
            return Errors.invalid_signature()

        try:
            event = WebhookEventDTO.model_validate_json(payload)
        except ValidationError as e:
            logger.warning("Webhook payload rejected: %s", e.errors()[:1])
            return Errors.invalid_payload()

        event_type = event.event_type
        if event_type is None:
            logger.info("Ignoring webhook event %s of type %s", event.id, event.type)
            return Ok(WebhookAckDTO(applied=False, event_id=event.id, detail="ignored"))

        return await self._settle(event, event_type)

    async def _settle(self, event: WebhookEventDTO, event_type: WebhookEventType) -> Result[WebhookAckDTO, DomainError]:
        target = EVENT_TARGETS[event_type]
        sources = SETTLEMENT_SOURCES[target]

        async with self.unit_of_work:
            payment = await self.unit_of_work.payments.get_by_id(PaymentId(event.intent_id))
            if payment is None:
                logger.warning("Webhook %s references unknown payment intent %s", event.id, event.intent_id)
                return Ok(WebhookAckDTO(applied=False, event_id=event.id, detail="unknown_payment"))

            if payment.status == target:
                logger.info("Duplicate webhook %s: payment %s already %s", event.id, payment.id, target.value)
                return Ok(WebhookAckDTO(applied=False, event_id=event.id, detail="duplicate"))
            if payment.status not in sources:
                logger.info(
                    "Stale webhook %s: payment %s is %s, not moving to %s",
                    event.id, payment.id, payment.status.value, target.value,
                )
                return Ok(WebhookAckDTO(applied=False, event_id=event.id, detail="stale"))

            payment.status = target
            payment.last_event_id = event.id
            payment.gateway_response = event.data.object.model_dump()
            payment.error_message = event.failure_message if target == PaymentStatus.FAILED else None
            payment.updated_at = utcnow()
            if not await self.unit_of_work.payments.update_if_status(payment, sources):
                # A concurrent delivery settled it first
                logger.info("Webhook %s lost the race for payment %s", event.id, payment.id)
                return Ok(WebhookAckDTO(applied=False, event_id=event.id, detail="duplicate"))

            order = None
            order_id = payment.order_id or (OrderId(event.order_id) if event.order_id else None)
            if order_id:
                result = await self._settle_order(order_id, payment.id, target)
                if isinstance(result, Error):
                    return result
                order = result.value

            await self.unit_of_work.commit()

        logger.info("Webhook %s applied: payment %s is %s", event.id, payment.id, target.value)
        if order is not None:
            self.publisher.publish(order.get_events())
        return Ok(WebhookAckDTO(applied=True, event_id=event.id, detail=target.value))

    async def _settle_order(
        self, order_id: OrderId, payment_id: PaymentId, target: PaymentStatus
    ) -> Result[Optional[Order], DomainError]:
        """Apply the settled payment to its order, re-reading it after a lost race"""
        for _ in range(ORDER_UPDATE_ATTEMPTS):
            order = await self.unit_of_work.orders.get_by_id(order_id)
            if order is None:
                logger.warning("Payment %s settled for missing order %s", payment_id, order_id)
                return Ok(None)
            result = await self._update_order(order, payment_id, target)
            if isinstance(result, Ok):
                return result
        return result

    async def _update_order(self, order: Order, payment_id: PaymentId, target: PaymentStatus):
        if target == PaymentStatus.COMPLETED:
            if order.is_paid and order.payment_id != payment_id:
                logger.warning("Order %s captured twice: %s and %s", order.id, order.payment_id, payment_id)
            # The order follows the intent that captured its funds
            order.link_payment(payment_id)
            order.record_payment_status(target)
            if order.can_transition_to(OrderStatus.PAID):
                order.transition_to(OrderStatus.PAID, User.system().id, f"Payment {payment_id} confirmed")
        elif order.payment_id == payment_id and not order.is_paid:
            # A failed payment never cancels the order by itself
            order.record_payment_status(target)
        else:
            return Ok(order)
        return await save_order(self.unit_of_work, order)
