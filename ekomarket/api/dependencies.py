"""API dependencies for DDD architecture"""

from functools import lru_cache

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..db.database import get_db
from ..domain.entities.user import User
from ..domain.repositories.unit_of_work import IUnitOfWork
from ..domain.services.carbon_footprint import CarbonFactors, CarbonFootprintEstimator
from ..domain.value_objects.entity_ids import UserId
from ..infrastructure.external_services.fake_gateway import FakeGateway
from ..infrastructure.external_services.notification_service import (
    LoggingNotificationDispatcher,
    NotificationPublisher,
)
from ..infrastructure.external_services.payment_gateway import PaymentGateway
from ..infrastructure.external_services.stripe_gateway import StripeGateway
from ..infrastructure.repositories.unit_of_work_impl import UnitOfWorkImpl


def get_unit_of_work(db: AsyncSession = Depends(get_db)) -> IUnitOfWork:
    """Get unit of work"""
    return UnitOfWorkImpl(db)


async def get_current_user(
    x_user_id: str = Header(..., alias="X-User-Id"),
    unit_of_work: IUnitOfWork = Depends(get_unit_of_work),
) -> User:
    """Resolve the caller forwarded by the authentication proxy"""
    async with unit_of_work:
        user = await unit_of_work.users.get_by_id(UserId(x_user_id))
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )
    return user


@lru_cache
def get_payment_gateway() -> PaymentGateway:
    """Get payment gateway"""
    if settings.PAYMENT_GATEWAY == "stripe":
        return StripeGateway()
    return FakeGateway()


@lru_cache
def get_notification_publisher() -> NotificationPublisher:
    return NotificationPublisher(LoggingNotificationDispatcher())


@lru_cache
def get_carbon_estimator() -> CarbonFootprintEstimator:
    return CarbonFootprintEstimator(CarbonFactors(
        emission_factor=settings.CARBON_EMISSION_FACTOR,
        local_multiplier=settings.CARBON_LOCAL_MULTIPLIER,
        eco_multiplier=settings.CARBON_ECO_MULTIPLIER,
        local_radius_km=settings.LOCAL_PRODUCTION_RADIUS_KM,
        piece_weight_kg=settings.PIECE_WEIGHT_KG,
    ))
