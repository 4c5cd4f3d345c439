"""Escrow routes"""

from typing import Optional

from fastapi import APIRouter, Depends, status

from ...application.dtos.escrow_dtos import EscrowCreateDTO, EscrowRefundDTO
from ...application.use_cases.escrow_use_cases import (
    CreateEscrowUseCase,
    GetEscrowStatusUseCase,
    RefundEscrowUseCase,
    ReleaseEscrowUseCase,
)
from ...domain.entities.user import User
from ..dependencies import get_current_user, get_notification_publisher, get_payment_gateway, get_unit_of_work
from ..responses import respond


router = APIRouter(tags=["escrows"])


@router.post("")
async def create_escrow(
    data: EscrowCreateDTO,
    current_user: User = Depends(get_current_user),
    unit_of_work=Depends(get_unit_of_work),
):
    """Hold the payment of a paid order in escrow"""
    use_case = CreateEscrowUseCase(unit_of_work)
    return respond(await use_case.execute(current_user, data), status.HTTP_201_CREATED)


@router.get("/{escrow_id}")
async def get_escrow_status(
    escrow_id: str,
    current_user: User = Depends(get_current_user),
    unit_of_work=Depends(get_unit_of_work),
):
    use_case = GetEscrowStatusUseCase(unit_of_work)
    return respond(await use_case.execute(escrow_id, current_user))


@router.post("/{escrow_id}/release")
async def release_escrow(
    escrow_id: str,
    current_user: User = Depends(get_current_user),
    unit_of_work=Depends(get_unit_of_work),
    publisher=Depends(get_notification_publisher),
):
    use_case = ReleaseEscrowUseCase(unit_of_work, publisher)
    return respond(await use_case.execute(escrow_id, current_user))


@router.post("/{escrow_id}/refund")
async def refund_escrow(
    escrow_id: str,
    data: Optional[EscrowRefundDTO] = None,
    current_user: User = Depends(get_current_user),
    unit_of_work=Depends(get_unit_of_work),
    gateway=Depends(get_payment_gateway),
    publisher=Depends(get_notification_publisher),
):
    use_case = RefundEscrowUseCase(unit_of_work, gateway, publisher)
    return respond(await use_case.execute(escrow_id, current_user, data.reason if data else None))
