"""Order aggregate with its status state machine"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from typing import List, Optional, Sequence, Tuple, Union

from ..value_objects.money import Money
from ..value_objects.entity_ids import EscrowId, OrderId, PaymentId, ProductId, UserId
from ..value_objects.location import ShippingAddress
from ..enums import OrderStatus, PaymentStatus
from ..events.order_events import OrderPlaced, OrderStatusChanged


FORWARD_FLOW = (
    OrderStatus.PENDING,
    OrderStatus.PAID,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)
TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InvalidTransition(ValueError):

    def __init__(self, current: OrderStatus, requested: OrderStatus):
        super().__init__(f"Cannot change order status from {current.value} to {requested.value}")
        self.current = current
        self.requested = requested


@dataclass(frozen=True)
class ProductReference:
    """Raw product id as stored on the order"""
    product_id: ProductId


@dataclass(frozen=True)
class ProductSummary:
    """Product resolved from the catalog for display"""
    product_id: ProductId
    name: str
    category: Optional[str] = None
    images: Tuple[str, ...] = ()


ProductRef = Union[ProductReference, ProductSummary]


@dataclass(frozen=True)
class OrderItem:
    product: ProductRef
    quantity: int
    price_at_purchase: Money

    def __post_init__(self):
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity <= 0:
            raise ValueError("Order item quantity must be a positive integer")

    @property
    def product_id(self) -> ProductId:
        return self.product.product_id

    @property
    def line_total(self) -> Money:
        return self.price_at_purchase * self.quantity

    def with_product(self, product: ProductRef) -> "OrderItem":
        return replace(self, product=product)


@dataclass(frozen=True)
class StatusHistoryEntry:
    status: OrderStatus
    timestamp: datetime
    changed_by: UserId
    note: Optional[str] = None


def sum_line_totals(items: Sequence[OrderItem]) -> Money:
    total = Money.zero(items[0].price_at_purchase.currency)
    for item in items:
        total = total + item.line_total
    return total


@dataclass
class Order:
    id: OrderId
    buyer_id: UserId
    items: List[OrderItem]
    total_price: Money
    shipping_address: ShippingAddress
    status: OrderStatus = OrderStatus.PENDING
    status_history: List[StatusHistoryEntry] = field(default_factory=list)
    delivery_date: Optional[date] = None
    payment_id: Optional[PaymentId] = None
    payment_status: PaymentStatus = PaymentStatus.PENDING
    escrow_id: Optional[EscrowId] = None
    carbon_footprint: Optional[float] = None
    is_reviewed: bool = False
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    version: int = 0

    # Domain events
    _events: List = field(default_factory=list, init=False, repr=False, compare=False)

    @classmethod
    def place(
        cls,
        buyer_id: UserId,
        items: Sequence[OrderItem],
        shipping_address: ShippingAddress,
        carbon_footprint: Optional[float] = None,
        delivery_date: Optional[date] = None,
        order_id: Optional[OrderId] = None,
    ) -> "Order":
        """Factory method: a new pending order with its first history entry"""
        if not items:
            raise ValueError("Order must have at least one item")

        now = utcnow()
        order = cls(
            id=order_id or OrderId.generate(),
            buyer_id=buyer_id,
            items=list(items),
            total_price=sum_line_totals(items),
            shipping_address=shipping_address,
            status=OrderStatus.PENDING,
            status_history=[StatusHistoryEntry(OrderStatus.PENDING, now, buyer_id)],
            delivery_date=delivery_date,
            carbon_footprint=carbon_footprint,
            created_at=now,
            updated_at=now,
        )
        order._events.append(OrderPlaced(
            order_id=order.id,
            buyer_id=buyer_id,
            total_price=order.total_price,
            occurred_at=now,
        ))
        return order

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.COMPLETED

    @property
    def product_ids(self) -> List[ProductId]:
        return [item.product_id for item in self.items]

    def is_buyer(self, user_id: UserId) -> bool:
        return self.buyer_id == user_id

    def can_transition_to(self, new_status: OrderStatus) -> bool:
        if self.is_terminal or new_status == self.status:
            return False
        if new_status == OrderStatus.CANCELLED:
            return True
        return FORWARD_FLOW.index(new_status) > FORWARD_FLOW.index(self.status)

    def transition_to(self, new_status: OrderStatus, changed_by: UserId, note: Optional[str] = None) -> None:
        """Business logic: move the order forward and append to its history"""
        if not self.can_transition_to(new_status):
            raise InvalidTransition(self.status, new_status)

        now = utcnow()
        previous = self.status
        self.status = new_status
        self.status_history.append(StatusHistoryEntry(new_status, now, changed_by, note))
        self.updated_at = now

        self._events.append(OrderStatusChanged(
            order_id=self.id,
            buyer_id=self.buyer_id,
            previous_status=previous,
            status=new_status,
            changed_by=changed_by,
            note=note,
            occurred_at=now,
        ))

    def link_payment(self, payment_id: PaymentId) -> None:
        self.payment_id = payment_id
        self.updated_at = utcnow()

    def link_escrow(self, escrow_id: EscrowId) -> None:
        self.escrow_id = escrow_id
        self.updated_at = utcnow()

    def record_payment_status(self, payment_status: PaymentStatus) -> None:
        self.payment_status = payment_status
        self.updated_at = utcnow()

    def get_events(self) -> List:
        """Get and clear domain events"""
        events = self._events.copy()
        self._events.clear()
        return events
