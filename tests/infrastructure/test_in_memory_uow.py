from decimal import Decimal

import pytest

from ekomarket.domain.entities.order import Order, OrderItem, ProductReference
from ekomarket.domain.enums import OrderStatus
from ekomarket.domain.errors import ConcurrentModificationError
from ekomarket.domain.value_objects.entity_ids import ProductId, UserId
from ekomarket.domain.value_objects.location import ShippingAddress
from ekomarket.domain.value_objects.money import Money
from ekomarket.infrastructure.repositories.in_memory import InMemoryUnitOfWork


BUYER = UserId("buyer-1")
ADDRESS = ShippingAddress(street="Polna 1", city="Warszawa", postal_code="00-001", country="PL")


def new_order():
    return Order.place(
        BUYER, [OrderItem(ProductReference(ProductId("p-1")), 1, Money(Decimal("5.00")))], ADDRESS
    )


class TestInMemoryUnitOfWork:
    async def test_inserts_wait_for_commit(self, db):
        order = new_order()

        async with InMemoryUnitOfWork(db) as uow:
            await uow.orders.add(order)
            assert await uow.orders.get_by_id(order.id) is not None
            assert order.id not in db.orders

        assert db.orders == {}

    async def test_commit_publishes_inserts(self, db):
        order = new_order()

        async with InMemoryUnitOfWork(db) as uow:
            await uow.orders.add(order)
            await uow.commit()

        assert order.id in db.orders

    async def test_exception_rolls_back_conditional_writes(self, db, make_product):
        product = make_product(quantity=5)

        with pytest.raises(RuntimeError):
            async with InMemoryUnitOfWork(db) as uow:
                await uow.products.try_decrement(product.id, 3)
                raise RuntimeError("boom")

        assert db.products[product.id].quantity == 5

    async def test_reads_are_copies(self, db):
        order = new_order()
        async with InMemoryUnitOfWork(db) as uow:
            await uow.orders.add(order)
            await uow.commit()

        async with InMemoryUnitOfWork(db) as uow:
            loaded = await uow.orders.get_by_id(order.id)
            loaded.transition_to(OrderStatus.PAID, BUYER)

        assert db.orders[order.id].status == OrderStatus.PENDING
        assert loaded.get_events()

    async def test_version_check(self, db):
        order = new_order()
        async with InMemoryUnitOfWork(db) as uow:
            await uow.orders.add(order)
            await uow.commit()

        async with InMemoryUnitOfWork(db) as uow:
            first = await uow.orders.get_by_id(order.id)
        async with InMemoryUnitOfWork(db) as uow:
            second = await uow.orders.get_by_id(order.id)

        async with InMemoryUnitOfWork(db) as uow:
            first.transition_to(OrderStatus.CANCELLED, BUYER)
            await uow.orders.update(first)
            await uow.commit()

        async with InMemoryUnitOfWork(db) as uow:
            second.transition_to(OrderStatus.PAID, BUYER)
            with pytest.raises(ConcurrentModificationError):
                await uow.orders.update(second)

        assert db.orders[order.id].status == OrderStatus.CANCELLED
        assert db.orders[order.id].version == 1

    async def test_rolled_back_update_restores_previous_version(self, db):
        order = new_order()
        async with InMemoryUnitOfWork(db) as uow:
            await uow.orders.add(order)
            await uow.commit()

        async with InMemoryUnitOfWork(db) as uow:
            loaded = await uow.orders.get_by_id(order.id)
            loaded.transition_to(OrderStatus.PAID, BUYER)
            await uow.orders.update(loaded)

        assert db.orders[order.id].status == OrderStatus.PENDING
        assert db.orders[order.id].version == 0
