import asyncio
import json
import time
from decimal import Decimal

import pytest

from ekomarket.application.dtos.payment_dtos import PaymentIntentCreateDTO, RefundCreateDTO
from ekomarket.application.use_cases.payment_use_cases import CreatePaymentIntentUseCase, CreateRefundUseCase
from ekomarket.application.use_cases.process_payment_webhook import ProcessPaymentWebhookUseCase
from ekomarket.application.use_cases.update_order_status import UpdateOrderStatusUseCase
from ekomarket.domain.enums import OrderStatus, PaymentStatus
from ekomarket.domain.value_objects.entity_ids import OrderId, PaymentId, SYSTEM_USER_ID
from ekomarket.infrastructure.repositories.in_memory import InMemoryUnitOfWork

from conftest import ConflictingUnitOfWork


@pytest.fixture
def deliver(uow, gateway, publisher):
    async def _deliver(payload, signature):
        return await ProcessPaymentWebhookUseCase(uow, gateway, publisher).execute(payload, signature)
    return _deliver


@pytest.fixture
def pending_payment(uow, gateway, buyer, place_order):
    """An order with an open payment intent; returns (order_id, payment_id)"""
    async def _pending():
        created = await place_order()
        intent = await CreatePaymentIntentUseCase(uow, gateway).execute(
            buyer, PaymentIntentCreateDTO(amount=created.order.total_price, order_id=created.order.id)
        )
        return created.order.id, intent.value.payment_intent_id
    return _pending


class TestPaymentSucceeded:
    async def test_completes_payment_and_marks_order_paid(self, db, deliver, webhook_event, pending_payment):
        order_id, payment_id = await pending_payment()

        result = await deliver(*webhook_event("payment.succeeded", payment_id, order_id, event_id="evt_1"))

        assert result.value.applied is True
        assert result.value.detail == "completed"
        payment = db.payments[PaymentId(payment_id)]
        assert payment.status == PaymentStatus.COMPLETED
        assert payment.last_event_id == "evt_1"
        order = db.orders[OrderId(order_id)]
        assert order.status == OrderStatus.PAID
        assert order.payment_status == PaymentStatus.COMPLETED
        assert [entry.status for entry in order.status_history] == [OrderStatus.PENDING, OrderStatus.PAID]
        assert order.status_history[-1].changed_by == SYSTEM_USER_ID

    async def test_native_event_name(self, db, deliver, webhook_event, pending_payment):
        order_id, payment_id = await pending_payment()

        result = await deliver(*webhook_event("payment_intent.succeeded", payment_id, order_id))

        assert result.value.applied is True
        assert db.orders[OrderId(order_id)].status == OrderStatus.PAID

    async def test_redelivery_is_acknowledged_without_a_second_write(
        self, db, deliver, webhook_event, pending_payment, publisher, dispatcher
    ):
        order_id, payment_id = await pending_payment()
        payload, signature = webhook_event("payment.succeeded", payment_id, order_id)

        first = await deliver(payload, signature)
        second = await deliver(payload, signature)
        await publisher.drain()

        assert first.value.applied is True
        assert second.value.applied is False
        assert second.value.detail == "duplicate"
        assert len(db.orders[OrderId(order_id)].status_history) == 2
        assert len(dispatcher.changed) == 1

    async def test_order_already_moved_on_keeps_its_status(
        self, uow, db, admin, publisher, deliver, webhook_event, pending_payment
    ):
        order_id, payment_id = await pending_payment()
        await UpdateOrderStatusUseCase(uow, publisher).execute(order_id, "processing", admin)

        result = await deliver(*webhook_event("payment.succeeded", payment_id, order_id))

        assert result.value.applied is True
        order = db.orders[OrderId(order_id)]
        assert order.status == OrderStatus.PROCESSING
        assert order.payment_status == PaymentStatus.COMPLETED

    async def test_standalone_payment_without_order(self, uow, db, gateway, buyer, deliver, webhook_event):
        intent = await CreatePaymentIntentUseCase(uow, gateway).execute(
            buyer, PaymentIntentCreateDTO(amount=Decimal("5.00"))
        )
        payment_id = intent.value.payment_intent_id

        result = await deliver(*webhook_event("payment.succeeded", payment_id))

        assert result.value.applied is True
        assert db.payments[PaymentId(payment_id)].status == PaymentStatus.COMPLETED


class TestPaymentFailed:
    async def test_failure_keeps_order_pending(self, db, deliver, webhook_event, pending_payment):
        order_id, payment_id = await pending_payment()

        result = await deliver(*webhook_event("payment.failed", payment_id, order_id))

        assert result.value.detail == "failed"
        assert db.payments[PaymentId(payment_id)].status == PaymentStatus.FAILED
        order = db.orders[OrderId(order_id)]
        assert order.status == OrderStatus.PENDING
        assert order.payment_status == PaymentStatus.FAILED

    async def test_canceled_maps_to_failed(self, db, deliver, webhook_event, pending_payment):
        _, payment_id = await pending_payment()

        await deliver(*webhook_event("payment_intent.canceled", payment_id))

        assert db.payments[PaymentId(payment_id)].status == PaymentStatus.FAILED

    async def test_failure_message_is_kept(self, db, gateway, deliver, pending_payment):
        _, payment_id = await pending_payment()
        payload = json.dumps({
            "id": "evt_declined",
            "type": "payment_intent.payment_failed",
            "data": {"object": {
                "id": payment_id,
                "metadata": {},
                "last_payment_error": {"message": "Your card was declined."},
            }},
        }).encode("utf-8")

        await deliver(payload, gateway.sign(payload))

        assert db.payments[PaymentId(payment_id)].error_message == "Your card was declined."

    async def test_retry_after_failure_can_still_succeed(self, db, deliver, webhook_event, pending_payment):
        order_id, payment_id = await pending_payment()

        await deliver(*webhook_event("payment.failed", payment_id, order_id))
        result = await deliver(*webhook_event("payment.succeeded", payment_id, order_id))

        assert result.value.applied is True
        assert db.orders[OrderId(order_id)].status == OrderStatus.PAID


class TestOutOfOrderDelivery:
    async def test_late_failure_does_not_undo_success(self, db, deliver, webhook_event, pending_payment):
        order_id, payment_id = await pending_payment()

        await deliver(*webhook_event("payment.succeeded", payment_id, order_id))
        late = await deliver(*webhook_event("payment.failed", payment_id, order_id))

        assert late.value.applied is False
        assert late.value.detail == "stale"
        assert db.payments[PaymentId(payment_id)].status == PaymentStatus.COMPLETED
        assert db.orders[OrderId(order_id)].status == OrderStatus.PAID

    async def test_event_after_refund_is_stale(self, uow, admin, gateway, publisher, db, deliver, webhook_event, paid_order):
        order_id, payment_id = await paid_order()
        await CreateRefundUseCase(uow, gateway, publisher).execute(admin, RefundCreateDTO(payment_intent_id=payment_id))

        late = await deliver(*webhook_event("payment.succeeded", payment_id, order_id.value))

        assert late.value.detail == "stale"
        assert db.payments[PaymentId(payment_id)].status == PaymentStatus.REFUNDED
        assert db.orders[order_id].status == OrderStatus.CANCELLED


class TestConcurrentDelivery:
    async def test_simultaneous_redeliveries_apply_once(
        self, db, gateway, publisher, dispatcher, webhook_event, pending_payment
    ):
        order_id, payment_id = await pending_payment()
        payload, signature = webhook_event("payment.succeeded", payment_id, order_id)

        results = await asyncio.gather(*(
            ProcessPaymentWebhookUseCase(InMemoryUnitOfWork(db), gateway, publisher).execute(payload, signature)
            for _ in range(4)
        ))
        await publisher.drain()

        assert sorted(result.value.detail for result in results) == ["completed"] + ["duplicate"] * 3
        assert [entry.status for entry in db.orders[OrderId(order_id)].status_history] == [
            OrderStatus.PENDING, OrderStatus.PAID,
        ]
        assert len(dispatcher.changed) == 1

    async def test_success_racing_failure_ends_completed(self, db, gateway, publisher, webhook_event, pending_payment):
        order_id, payment_id = await pending_payment()
        succeeded = webhook_event("payment.succeeded", payment_id, order_id)
        failed = webhook_event("payment.failed", payment_id, order_id)

        await asyncio.gather(*(
            ProcessPaymentWebhookUseCase(InMemoryUnitOfWork(db), gateway, publisher).execute(*event)
            for event in (failed, succeeded)
        ))

        assert db.payments[PaymentId(payment_id)].status == PaymentStatus.COMPLETED
        order = db.orders[OrderId(order_id)]
        assert order.status == OrderStatus.PAID
        assert order.payment_status == PaymentStatus.COMPLETED

    async def test_order_update_retried_after_lost_race(self, db, gateway, publisher, webhook_event, pending_payment):
        order_id, payment_id = await pending_payment()
        payload, signature = webhook_event("payment.succeeded", payment_id, order_id)

        result = await ProcessPaymentWebhookUseCase(ConflictingUnitOfWork(db, conflicts=1), gateway, publisher).execute(
            payload, signature
        )

        assert result.value.applied is True
        assert db.payments[PaymentId(payment_id)].status == PaymentStatus.COMPLETED
        assert db.orders[OrderId(order_id)].status == OrderStatus.PAID

    async def test_order_that_keeps_changing_rolls_back_the_payment(
        self, db, gateway, publisher, webhook_event, pending_payment
    ):
        order_id, payment_id = await pending_payment()
        payload, signature = webhook_event("payment.succeeded", payment_id, order_id)

        result = await ProcessPaymentWebhookUseCase(ConflictingUnitOfWork(db, conflicts=10), gateway, publisher).execute(
            payload, signature
        )

        assert result.value.code == "CONCURRENT_MODIFICATION"
        assert db.payments[PaymentId(payment_id)].status == PaymentStatus.PENDING
        assert db.orders[OrderId(order_id)].status == OrderStatus.PENDING


class TestRejectedDeliveries:
    async def test_bad_signature(self, db, deliver, webhook_event, pending_payment):
        order_id, payment_id = await pending_payment()
        payload, _ = webhook_event("payment.succeeded", payment_id, order_id)

        result = await deliver(payload, "t=1,v1=deadbeef")

        assert result.value.code == "INVALID_SIGNATURE"
        assert db.payments[PaymentId(payment_id)].status == PaymentStatus.PENDING

    async def test_missing_signature(self, deliver, webhook_event):
        payload, _ = webhook_event("payment.succeeded", "pi_x")
        result = await deliver(payload, "")
        assert result.value.code == "INVALID_SIGNATURE"

    async def test_tampered_payload(self, deliver, webhook_event, pending_payment):
        order_id, payment_id = await pending_payment()
        payload, signature = webhook_event("payment.failed", payment_id, order_id)

        result = await deliver(payload.replace(b"payment.failed", b"payment.succeeded"), signature)

        assert result.value.code == "INVALID_SIGNATURE"

    async def test_expired_signature(self, gateway, deliver, webhook_event, pending_payment):
        order_id, payment_id = await pending_payment()
        payload, _ = webhook_event("payment.succeeded", payment_id, order_id)

        result = await deliver(payload, gateway.sign(payload, timestamp=int(time.time()) - 3600))

        assert result.value.code == "INVALID_SIGNATURE"

    async def test_undecodable_payload(self, gateway, deliver):
        payload = b'{"id": "evt_1", "type": "payment.succeeded"}'
        result = await deliver(payload, gateway.sign(payload))
        assert result.value.code == "INVALID_PAYLOAD"

    async def test_unhandled_event_type_is_ignored(self, deliver, webhook_event):
        result = await deliver(*webhook_event("customer.created", "cus_1"))
        assert result.value.applied is False
        assert result.value.detail == "ignored"

    async def test_unknown_payment_is_acknowledged(self, db, deliver, webhook_event):
        result = await deliver(*webhook_event("payment.succeeded", "pi_unknown"))
        assert result.value.applied is False
        assert result.value.detail == "unknown_payment"
        assert db.payments == {}
