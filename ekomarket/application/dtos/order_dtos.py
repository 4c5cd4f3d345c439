"""Order DTOs for API requests and responses"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional, Union

from pydantic import Field

from ...domain.entities.order import Order, ProductSummary
from ...domain.services.carbon_footprint import CarbonEstimate
from .common import CamelModel


class OrderItemRequestDTO(CamelModel):
    product_id: str = Field(..., min_length=1)
    # Range is checked by the use case so the error names the offending item
    quantity: int


class ShippingAddressDTO(CamelModel):
    street: str
    city: str
    postal_code: str
    country: str
    recipient: Optional[str] = None


class OrderCreateDTO(CamelModel):
    """Request DTO for creating an order"""
    items: List[OrderItemRequestDTO]
    shipping_address: ShippingAddressDTO
    delivery_date: Optional[date] = None


class OrderStatusUpdateDTO(CamelModel):
    """Request DTO for moving an order to another status"""
    status: str
    note: Optional[str] = None


class ProductReferenceDTO(CamelModel):
    kind: Literal["reference"] = "reference"
    product_id: str


class ProductSummaryDTO(CamelModel):
    kind: Literal["summary"] = "summary"
    product_id: str
    name: str
    category: Optional[str] = None
    images: List[str] = []


class OrderItemDTO(CamelModel):
    product: Union[ProductReferenceDTO, ProductSummaryDTO] = Field(..., discriminator="kind")
    quantity: int
    price_at_purchase: Decimal


class StatusHistoryDTO(CamelModel):
    status: str
    timestamp: datetime
    changed_by: str
    note: Optional[str] = None


class OrderResponseDTO(CamelModel):
    """Response DTO for order data"""
    id: str
    buyer_id: str
    items: List[OrderItemDTO]
    total_price: Decimal
    currency: str
    status: str
    status_history: List[StatusHistoryDTO]
    shipping_address: ShippingAddressDTO
    delivery_date: Optional[date] = None
    payment_id: Optional[str] = None
    payment_status: str
    escrow_id: Optional[str] = None
    carbon_footprint: Optional[float] = None
    is_reviewed: bool = False
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, order: Order) -> "OrderResponseDTO":
        """Convert domain entity to DTO"""
        items = []
        for item in order.items:
            if isinstance(item.product, ProductSummary):
                product = ProductSummaryDTO(
                    product_id=item.product_id.value,
                    name=item.product.name,
                    category=item.product.category,
                    images=list(item.product.images),
                )
            else:
                product = ProductReferenceDTO(product_id=item.product_id.value)
            items.append(OrderItemDTO(
                product=product,
                quantity=item.quantity,
                price_at_purchase=item.price_at_purchase.amount,
            ))

        address = order.shipping_address
        return cls(
            id=order.id.value,
            buyer_id=order.buyer_id.value,
            items=items,
            total_price=order.total_price.amount,
            currency=order.total_price.currency,
            status=order.status.value,
            status_history=[
                StatusHistoryDTO(
                    status=entry.status.value,
                    timestamp=entry.timestamp,
                    changed_by=entry.changed_by.value,
                    note=entry.note,
                )
                for entry in order.status_history
            ],
            shipping_address=ShippingAddressDTO(
                street=address.street,
                city=address.city,
                postal_code=address.postal_code,
                country=address.country,
                recipient=address.recipient,
            ),
            delivery_date=order.delivery_date,
            payment_id=order.payment_id.value if order.payment_id else None,
            payment_status=order.payment_status.value,
            escrow_id=order.escrow_id.value if order.escrow_id else None,
            carbon_footprint=order.carbon_footprint,
            is_reviewed=order.is_reviewed,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class CarbonFootprintDTO(CamelModel):
    footprint: float
    rating: str
    savings: float
    average_distance_km: float
    total_weight_kg: float
    is_local_production: bool
    has_eco_certificates: bool
    recommendations: List[str]

    @classmethod
    def from_estimate(cls, estimate: CarbonEstimate) -> "CarbonFootprintDTO":
        return cls(
            footprint=estimate.footprint,
            rating=estimate.rating.value,
            savings=estimate.savings,
            average_distance_km=estimate.average_distance_km,
            total_weight_kg=estimate.total_weight_kg,
            is_local_production=estimate.is_local_production,
            has_eco_certificates=estimate.has_eco_certificates,
            recommendations=list(estimate.recommendations),
        )


class OrderCreatedDTO(CamelModel):
    order: OrderResponseDTO
    carbon: CarbonFootprintDTO
