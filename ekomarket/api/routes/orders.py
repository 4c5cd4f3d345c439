"""Order routes"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ...application.dtos.order_dtos import OrderCreateDTO, OrderStatusUpdateDTO
from ...application.use_cases.create_order import CreateOrderUseCase
from ...application.use_cases.get_orders import GetOrderUseCase, ListBuyerOrdersUseCase, ListSellerOrdersUseCase
from ...application.use_cases.update_order_status import UpdateOrderStatusUseCase
from ...domain.entities.user import User
from ..dependencies import get_carbon_estimator, get_current_user, get_notification_publisher, get_unit_of_work
from ..responses import respond


router = APIRouter(tags=["orders"])


@router.post("")
async def create_order(
    order_data: OrderCreateDTO,
    current_user: User = Depends(get_current_user),
    unit_of_work=Depends(get_unit_of_work),
    estimator=Depends(get_carbon_estimator),
    publisher=Depends(get_notification_publisher),
):
    """Create a new order from the submitted cart"""
    use_case = CreateOrderUseCase(unit_of_work, estimator, publisher)
    return respond(await use_case.execute(current_user, order_data), status.HTTP_201_CREATED)


@router.get("")
async def get_my_orders(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    order_status: Optional[str] = Query(None, alias="status"),
    current_user: User = Depends(get_current_user),
    unit_of_work=Depends(get_unit_of_work),
):
    """Orders placed by the current user, newest first"""
    use_case = ListBuyerOrdersUseCase(unit_of_work)
    return respond(await use_case.execute(current_user, page, limit, order_status))


@router.get("/seller")
async def get_seller_orders(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    current_user: User = Depends(get_current_user),
    unit_of_work=Depends(get_unit_of_work),
):
    """Orders containing the current farmer's products"""
    use_case = ListSellerOrdersUseCase(unit_of_work)
    return respond(await use_case.execute(current_user, page, limit))


@router.get("/{order_id}")
async def get_order(
    order_id: str,
    current_user: User = Depends(get_current_user),
    unit_of_work=Depends(get_unit_of_work),
):
    """Get order by ID"""
    use_case = GetOrderUseCase(unit_of_work)
    return respond(await use_case.execute(order_id, current_user))


@router.patch("/{order_id}/status")
async def update_order_status(
    order_id: str,
    update: OrderStatusUpdateDTO,
    current_user: User = Depends(get_current_user),
    unit_of_work=Depends(get_unit_of_work),
    publisher=Depends(get_notification_publisher),
):
    """Move an order to a new status"""
    use_case = UpdateOrderStatusUseCase(unit_of_work, publisher)
    return respond(await use_case.execute(order_id, update.status, current_user, update.note))
