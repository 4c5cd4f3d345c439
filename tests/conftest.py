import os

os.environ.setdefault("TESTING", "true")
os.environ.setdefault("PAYMENT_GATEWAY", "fake")

import json
from decimal import Decimal
from uuid import uuid4

import pytest
from kungfu import Ok

from ekomarket.application.dtos.order_dtos import OrderCreateDTO, OrderItemRequestDTO, ShippingAddressDTO
from ekomarket.application.dtos.payment_dtos import PaymentIntentCreateDTO
from ekomarket.application.use_cases.create_order import CreateOrderUseCase
from ekomarket.application.use_cases.payment_use_cases import CreatePaymentIntentUseCase
from ekomarket.application.use_cases.process_payment_webhook import ProcessPaymentWebhookUseCase
from ekomarket.domain.entities.product import Product
from ekomarket.domain.entities.user import User
from ekomarket.domain.enums import UserRole
from ekomarket.domain.errors import ConcurrentModificationError
from ekomarket.domain.services.carbon_footprint import CarbonFootprintEstimator
from ekomarket.domain.value_objects.entity_ids import OrderId, ProductId, UserId
from ekomarket.domain.value_objects.location import GeoPoint
from ekomarket.domain.value_objects.money import Money
from ekomarket.infrastructure.external_services.fake_gateway import FakeGateway
from ekomarket.infrastructure.external_services.notification_service import (
    NotificationDispatcher,
    NotificationPublisher,
)
from ekomarket.infrastructure.repositories.in_memory import InMemoryDatabase, InMemoryUnitOfWork


WEBHOOK_SECRET = "whsec_test_secret"

BUYER_LOCATION = GeoPoint(latitude=52.0, longitude=21.0)
# Due north of the buyer, 30.0 km away
FARM_LOCATION = GeoPoint(latitude=52.2697965, longitude=21.0)
# Roughly 250 km away
FAR_LOCATION = GeoPoint(latitude=50.06, longitude=19.94)

ADDRESS = ShippingAddressDTO(street="Polna 1", city="Warszawa", postal_code="00-001", country="PL")


class RecordingDispatcher(NotificationDispatcher):

    def __init__(self):
        self.placed = []
        self.changed = []

    async def order_placed(self, event):
        self.placed.append(event)

    async def order_status_changed(self, event):
        self.changed.append(event)


class ConflictingOrders:
    """Order repository whose updates lose the race a set number of times"""

    def __init__(self, inner, uow):
        self._inner = inner
        self._uow = uow

    def __getattr__(self, name):
        return getattr(self._inner, name)

    async def update(self, order):
        if self._uow.conflicts > 0:
            self._uow.conflicts -= 1
            raise ConcurrentModificationError("Order", order.id.value)
        return await self._inner.update(order)


class ConflictingUnitOfWork(InMemoryUnitOfWork):

    def __init__(self, db, conflicts):
        self.conflicts = conflicts
        super().__init__(db)

    def _begin(self) -> None:
        super()._begin()
        self.orders = ConflictingOrders(self.orders, self)


@pytest.fixture
def db():
    return InMemoryDatabase()


@pytest.fixture
def uow(db):
    return InMemoryUnitOfWork(db)


def _add_user(db, user_id, role, location=None):
    user = User(id=UserId(user_id), role=role, full_name=user_id, location=location)
    db.users[user.id] = user
    return user


@pytest.fixture
def buyer(db):
    return _add_user(db, "buyer-1", UserRole.CONSUMER, BUYER_LOCATION)


@pytest.fixture
def other_buyer(db):
    return _add_user(db, "buyer-2", UserRole.CONSUMER, BUYER_LOCATION)


@pytest.fixture
def farmer(db):
    return _add_user(db, "farmer-1", UserRole.FARMER, FARM_LOCATION)


@pytest.fixture
def other_farmer(db):
    return _add_user(db, "farmer-2", UserRole.FARMER, FAR_LOCATION)


@pytest.fixture
def admin(db):
    return _add_user(db, "admin-1", UserRole.ADMIN)


@pytest.fixture
def make_product(db, farmer):
    def _make(quantity=5, price="10.00", **overrides):
        fields = dict(
            id=ProductId.generate(),
            owner_id=farmer.id,
            name="Apples",
            price=Money(Decimal(price)),
            quantity=quantity,
            unit="kg",
            location=FARM_LOCATION,
            is_certified=True,
            category="fruit",
        )
        fields.update(overrides)
        product = Product(**fields)
        db.products[product.id] = product
        return product
    return _make


@pytest.fixture
def gateway():
    return FakeGateway(webhook_secret=WEBHOOK_SECRET)


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def publisher(dispatcher):
    return NotificationPublisher(dispatcher)


@pytest.fixture
def estimator():
    return CarbonFootprintEstimator()


@pytest.fixture
def cart():
    def _cart(*lines):
        """lines are (product, quantity) pairs"""
        return OrderCreateDTO(
            items=[OrderItemRequestDTO(product_id=product.id.value, quantity=quantity) for product, quantity in lines],
            shipping_address=ADDRESS,
        )
    return _cart


@pytest.fixture
def place_order(uow, estimator, publisher, buyer, make_product, cart):
    async def _place(quantity=2, product=None, user=None):
        product = product or make_product()
        result = await CreateOrderUseCase(uow, estimator, publisher).execute(user or buyer, cart((product, quantity)))
        assert isinstance(result, Ok), result
        return result.value
    return _place


@pytest.fixture
def webhook_event(gateway):
    def _event(event_type, intent_id, order_id="", event_id=None):
        payload = json.dumps({
            "id": event_id or f"evt_{uuid4().hex[:12]}",
            "type": event_type,
            "data": {"object": {"id": intent_id, "metadata": {"buyerId": "buyer-1", "orderId": order_id}}},
        }).encode("utf-8")
        return payload, gateway.sign(payload)
    return _event


@pytest.fixture
def paid_order(uow, gateway, publisher, buyer, place_order, webhook_event):
    """A placed order whose payment intent has been confirmed by the gateway"""
    async def _paid(quantity=2, product=None):
        created = await place_order(quantity=quantity, product=product)
        order_id = created.order.id
        intent = await CreatePaymentIntentUseCase(uow, gateway).execute(
            buyer, PaymentIntentCreateDTO(amount=created.order.total_price, order_id=order_id)
        )
        assert isinstance(intent, Ok), intent
        payment_id = intent.value.payment_intent_id

        payload, signature = webhook_event("payment.succeeded", payment_id, order_id)
        settled = await ProcessPaymentWebhookUseCase(uow, gateway, publisher).execute(payload, signature)
        assert isinstance(settled, Ok) and settled.value.applied, settled
        return OrderId(order_id), payment_id
    return _paid
