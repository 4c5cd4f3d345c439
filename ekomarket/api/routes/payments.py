"""Payment routes"""

from fastapi import APIRouter, Depends, Header, Request

from ...application.dtos.payment_dtos import PaymentIntentCreateDTO, RefundCreateDTO
from ...application.use_cases.payment_use_cases import (
    CreatePaymentIntentUseCase,
    CreateRefundUseCase,
    GetPaymentStatusUseCase,
)
from ...application.use_cases.process_payment_webhook import ProcessPaymentWebhookUseCase
from ...domain.entities.user import User
from ..dependencies import get_current_user, get_notification_publisher, get_payment_gateway, get_unit_of_work
from ..responses import respond


router = APIRouter(tags=["payments"])


@router.post("/create-intent")
async def create_payment_intent(
    data: PaymentIntentCreateDTO,
    current_user: User = Depends(get_current_user),
    unit_of_work=Depends(get_unit_of_work),
    gateway=Depends(get_payment_gateway),
):
    """Create a payment intent, optionally for one of the caller's orders"""
    use_case = CreatePaymentIntentUseCase(unit_of_work, gateway)
    return respond(await use_case.execute(current_user, data))


@router.post("/webhook")
async def payment_webhook(
    request: Request,
    stripe_signature: str = Header("", alias="Stripe-Signature"),
    unit_of_work=Depends(get_unit_of_work),
    gateway=Depends(get_payment_gateway),
    publisher=Depends(get_notification_publisher),
):
    """Process payment webhook"""
    # Signature covers the exact bytes, so the body is read raw
    payload = await request.body()
    use_case = ProcessPaymentWebhookUseCase(unit_of_work, gateway, publisher)
    return respond(await use_case.execute(payload, stripe_signature))


@router.post("/refund")
async def create_refund(
    data: RefundCreateDTO,
    current_user: User = Depends(get_current_user),
    unit_of_work=Depends(get_unit_of_work),
    gateway=Depends(get_payment_gateway),
    publisher=Depends(get_notification_publisher),
):
    """Refund a completed payment (administrators)"""
    use_case = CreateRefundUseCase(unit_of_work, gateway, publisher)
    return respond(await use_case.execute(current_user, data))


@router.get("/{payment_intent_id}/status")
async def get_payment_status(
    payment_intent_id: str,
    current_user: User = Depends(get_current_user),
    unit_of_work=Depends(get_unit_of_work),
):
    """Get payment status"""
    use_case = GetPaymentStatusUseCase(unit_of_work)
    return respond(await use_case.execute(payment_intent_id, current_user))
