from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ekomarket.application.use_cases.create_order import CreateOrderUseCase
from ekomarket.application.use_cases.update_order_status import UpdateOrderStatusUseCase
from ekomarket.db.database import build_engine, create_tables
from ekomarket.domain.entities.escrow import Escrow
from ekomarket.domain.entities.order import Order, OrderItem, ProductReference
from ekomarket.domain.entities.payment import PaymentIntent
from ekomarket.domain.entities.product import Product
from ekomarket.domain.entities.user import User
from ekomarket.domain.enums import EscrowStatus, OrderStatus, PaymentStatus, ProductStatus, UserRole
from ekomarket.domain.errors import ConcurrentModificationError
from ekomarket.domain.value_objects.entity_ids import EscrowId, OrderId, PaymentId, ProductId, UserId
from ekomarket.domain.value_objects.location import ShippingAddress
from ekomarket.domain.value_objects.money import Money
from ekomarket.infrastructure.repositories.unit_of_work_impl import UnitOfWorkImpl

from conftest import BUYER_LOCATION, FARM_LOCATION


BUYER = UserId("buyer-1")
FARMER = UserId("farmer-1")
ADDRESS = ShippingAddress(street="Polna 1", city="Warszawa", postal_code="00-001", country="PL")


@pytest.fixture
async def session_factory():
    engine = build_engine(testing=True)
    await create_tables(engine)
    yield async_sessionmaker(engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def sql_uow(session_factory):
    """Fresh SQL unit of work over its own session"""
    def _uow():
        return UnitOfWorkImpl(session_factory())
    return _uow


@pytest.fixture
async def seeded(sql_uow):
    product = Product(
        id=ProductId("apples"),
        owner_id=FARMER,
        name="Apples",
        price=Money(Decimal("10.00")),
        quantity=5,
        location=FARM_LOCATION,
        is_certified=True,
        category="fruit",
        images=["apples.jpg"],
    )
    async with sql_uow() as uow:
        await uow.users.add(User(BUYER, UserRole.CONSUMER, "Buyer", location=BUYER_LOCATION))
        await uow.users.add(User(FARMER, UserRole.FARMER, "Farmer", location=FARM_LOCATION))
        await uow.products.add(product)
        await uow.commit()
    return product


def new_order(quantity=2, product_id="apples"):
    return Order.place(
        BUYER,
        [OrderItem(ProductReference(ProductId(product_id)), quantity, Money(Decimal("10.00")))],
        ADDRESS,
        carbon_footprint=4.03,
    )


class TestProductRepository:
    async def test_round_trip(self, sql_uow, seeded):
        async with sql_uow() as uow:
            product = await uow.products.get_by_id(seeded.id)

        assert product == seeded

    async def test_conditional_decrement(self, sql_uow, seeded):
        async with sql_uow() as uow:
            updated = await uow.products.try_decrement(seeded.id, 2)
            refused = await uow.products.try_decrement(seeded.id, 4)
            await uow.commit()

        assert updated.quantity == 3
        assert refused is None
        async with sql_uow() as uow:
            assert (await uow.products.get_by_id(seeded.id)).quantity == 3

    async def test_decrement_skips_unavailable(self, sql_uow, seeded):
        async with sql_uow() as uow:
            await uow.products.add(Product(
                id=ProductId("closed"), owner_id=FARMER, name="Pears", price=Money(Decimal("3")),
                quantity=5, status=ProductStatus.UNAVAILABLE,
            ))
            await uow.commit()

        async with sql_uow() as uow:
            assert await uow.products.try_decrement(ProductId("closed"), 1) is None

    async def test_uncommitted_decrement_is_rolled_back(self, sql_uow, seeded):
        async with sql_uow() as uow:
            await uow.products.try_decrement(seeded.id, 5)

        async with sql_uow() as uow:
            assert (await uow.products.get_by_id(seeded.id)).quantity == 5

    async def test_increment_missing_product(self, sql_uow, seeded):
        async with sql_uow() as uow:
            assert await uow.products.increment(ProductId("gone"), 1) is False
            assert await uow.products.increment(seeded.id, 1) is True

    async def test_ids_by_owner(self, sql_uow, seeded):
        async with sql_uow() as uow:
            assert await uow.products.get_ids_by_owner(FARMER) == [seeded.id]
            assert await uow.products.get_ids_by_owner(BUYER) == []


class TestOrderRepository:
    async def test_round_trip(self, sql_uow, seeded):
        order = new_order()
        async with sql_uow() as uow:
            await uow.orders.add(order)
            await uow.commit()

        async with sql_uow() as uow:
            stored = await uow.orders.get_by_id(order.id)

        assert stored.total_price == Money(Decimal("20.00"))
        assert stored.items[0].product_id == ProductId("apples")
        assert stored.items[0].quantity == 2
        assert stored.shipping_address == ADDRESS
        assert stored.status_history[0].status == OrderStatus.PENDING
        assert stored.status_history[0].changed_by == BUYER
        assert stored.carbon_footprint == 4.03
        assert stored.version == 0

    async def test_update_appends_history_and_bumps_version(self, sql_uow, seeded):
        order = new_order()
        async with sql_uow() as uow:
            await uow.orders.add(order)
            await uow.commit()

        async with sql_uow() as uow:
            stored = await uow.orders.get_by_id(order.id)
            stored.transition_to(OrderStatus.PAID, UserId("system"), "paid")
            await uow.orders.update(stored)
            await uow.commit()

        async with sql_uow() as uow:
            reloaded = await uow.orders.get_by_id(order.id)

        assert reloaded.status == OrderStatus.PAID
        assert reloaded.version == 1
        assert [entry.status for entry in reloaded.status_history] == [OrderStatus.PENDING, OrderStatus.PAID]
        assert reloaded.status_history[1].note == "paid"

    async def test_stale_update_is_rejected(self, sql_uow, seeded):
        order = new_order()
        async with sql_uow() as uow:
            await uow.orders.add(order)
            await uow.commit()

        async with sql_uow() as uow:
            first = await uow.orders.get_by_id(order.id)
        async with sql_uow() as uow:
            second = await uow.orders.get_by_id(order.id)

        async with sql_uow() as uow:
            first.transition_to(OrderStatus.CANCELLED, BUYER)
            await uow.orders.update(first)
            await uow.commit()

        async with sql_uow() as uow:
            second.transition_to(OrderStatus.PAID, BUYER)
            with pytest.raises(ConcurrentModificationError):
                await uow.orders.update(second)

    async def test_buyer_listing(self, sql_uow, seeded):
        orders = [new_order(quantity=1) for _ in range(3)]
        async with sql_uow() as uow:
            for order in orders:
                await uow.orders.add(order)
            orders[0].transition_to(OrderStatus.CANCELLED, BUYER)
            await uow.orders.update(orders[0])
            await uow.commit()

        async with sql_uow() as uow:
            page, total = await uow.orders.list_by_buyer(BUYER, offset=0, limit=2)
            cancelled, cancelled_total = await uow.orders.list_by_buyer(BUYER, OrderStatus.CANCELLED)
            nothing, none_total = await uow.orders.list_by_buyer(UserId("nobody"))

        assert total == 3
        assert len(page) == 2
        assert cancelled_total == 1
        assert cancelled[0].id == orders[0].id
        assert (nothing, none_total) == ([], 0)

    async def test_orders_containing_products(self, sql_uow, seeded):
        wanted = new_order(product_id="apples")
        other = new_order(product_id="pears")
        async with sql_uow() as uow:
            await uow.orders.add(wanted)
            await uow.orders.add(other)
            await uow.commit()

        async with sql_uow() as uow:
            found, total = await uow.orders.list_containing_products([ProductId("apples")])
            empty, empty_total = await uow.orders.list_containing_products([])

        assert [order.id for order in found] == [wanted.id]
        assert total == 1
        assert (empty, empty_total) == ([], 0)


class TestPaymentAndEscrowRepositories:
    async def test_payment_update_is_keyed_on_status(self, sql_uow, seeded):
        payment = PaymentIntent(id=PaymentId("pi_1"), buyer_id=BUYER, amount=Money(Decimal("20.00")))
        async with sql_uow() as uow:
            await uow.payments.add(payment)
            await uow.commit()

        async with sql_uow() as uow:
            payment.status = PaymentStatus.COMPLETED
            assert await uow.payments.update_if_status(payment, {PaymentStatus.PENDING}) is True
            payment.status = PaymentStatus.FAILED
            assert await uow.payments.update_if_status(payment, {PaymentStatus.PENDING}) is False
            await uow.commit()

        async with sql_uow() as uow:
            assert (await uow.payments.get_by_id(payment.id)).status == PaymentStatus.COMPLETED

    async def test_one_escrow_per_order(self, sql_uow, seeded):
        def escrow():
            return Escrow(
                id=EscrowId.generate(),
                order_id=OrderId("order-1"),
                payment_id=PaymentId("pi_1"),
                amount=Money(Decimal("20.00")),
                buyer_id=BUYER,
                seller_ids=frozenset({FARMER}),
            )

        first = escrow()
        async with sql_uow() as uow:
            await uow.escrows.add(first)
            await uow.commit()

        async with sql_uow() as uow:
            with pytest.raises(ConcurrentModificationError):
                await uow.escrows.add(escrow())

        async with sql_uow() as uow:
            stored = await uow.escrows.get_by_order_id(OrderId("order-1"))
            stored.release()
            assert await uow.escrows.update_if_status(stored, EscrowStatus.HELD) is True
            assert await uow.escrows.update_if_status(stored, EscrowStatus.HELD) is False
            await uow.commit()

        assert stored.id == first.id
        assert stored.seller_ids == frozenset({FARMER})


class TestUseCasesOnSql:
    async def test_create_and_cancel_order(self, sql_uow, seeded, estimator, publisher, cart):
        buyer = User(BUYER, location=BUYER_LOCATION)

        created = await CreateOrderUseCase(sql_uow(), estimator, publisher).execute(buyer, cart((seeded, 2)))
        assert created.value.carbon.footprint == 4.03

        failed = await CreateOrderUseCase(sql_uow(), estimator, publisher).execute(buyer, cart((seeded, 2), (seeded, 2)))
        assert failed.value.code == "INSUFFICIENT_STOCK"

        cancelled = await UpdateOrderStatusUseCase(sql_uow(), publisher).execute(
            created.value.order.id, "cancelled", buyer
        )
        assert cancelled.value.status == "cancelled"

        async with sql_uow() as uow:
            assert (await uow.products.get_by_id(seeded.id)).quantity == 5
