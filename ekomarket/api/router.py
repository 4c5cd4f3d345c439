"""Main API router for DDD architecture"""

from fastapi import APIRouter

from .routes import orders, payments, escrows
from ..core.config import settings

# Main API router
api_router = APIRouter()

api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(payments.router, prefix="/payments", tags=["payments"])
api_router.include_router(escrows.router, prefix="/escrows", tags=["escrows"])


@api_router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "version": settings.VERSION}
