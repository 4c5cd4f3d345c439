import pytest
from kungfu import Ok

from ekomarket.application.use_cases.get_orders import (
    GetOrderUseCase,
    ListBuyerOrdersUseCase,
    ListSellerOrdersUseCase,
    normalize_page,
)
from ekomarket.application.use_cases.update_order_status import UpdateOrderStatusUseCase
from ekomarket.core.config import settings


class TestGetOrder:
    async def test_buyer_sees_order_with_resolved_products(self, uow, buyer, place_order):
        created = await place_order()

        result = await GetOrderUseCase(uow).execute(created.order.id, buyer)

        item = result.value.items[0]
        assert item.product.kind == "summary"
        assert item.product.name == "Apples"
        assert item.product.category == "fruit"

    async def test_deleted_product_stays_a_reference(self, uow, db, buyer, make_product, place_order):
        product = make_product()
        created = await place_order(product=product)
        del db.products[product.id]

        result = await GetOrderUseCase(uow).execute(created.order.id, buyer)

        item = result.value.items[0]
        assert item.product.kind == "reference"
        assert item.product.product_id == product.id.value

    async def test_admin_can_view_any_order(self, uow, admin, place_order):
        created = await place_order()
        result = await GetOrderUseCase(uow).execute(created.order.id, admin)
        assert isinstance(result, Ok)

    async def test_other_buyer_is_forbidden(self, uow, other_buyer, place_order):
        created = await place_order()
        result = await GetOrderUseCase(uow).execute(created.order.id, other_buyer)
        assert result.value.code == "FORBIDDEN"

    async def test_unknown_order(self, uow, buyer):
        result = await GetOrderUseCase(uow).execute("missing", buyer)
        assert result.value.code == "ORDER_NOT_FOUND"


class TestListBuyerOrders:
    async def test_paginates(self, uow, buyer, place_order):
        placed = [(await place_order(quantity=1)).order.id for _ in range(3)]

        first = await ListBuyerOrdersUseCase(uow).execute(buyer, page=1, limit=2)
        second = await ListBuyerOrdersUseCase(uow).execute(buyer, page=2, limit=2)

        assert first.value.total == 3
        assert first.value.total_pages == 2
        assert len(first.value.items) == 2
        assert len(second.value.items) == 1
        seen = [order.id for order in first.value.items + second.value.items]
        assert sorted(seen) == sorted(placed)

    async def test_only_own_orders(self, uow, buyer, other_buyer, place_order):
        await place_order()
        await place_order(user=other_buyer)

        result = await ListBuyerOrdersUseCase(uow).execute(buyer)

        assert result.value.total == 1
        assert result.value.items[0].buyer_id == buyer.id.value

    async def test_status_filter(self, uow, buyer, publisher, place_order):
        keep = await place_order(quantity=1)
        cancel = await place_order(quantity=1)
        await UpdateOrderStatusUseCase(uow, publisher).execute(cancel.order.id, "cancelled", buyer)

        result = await ListBuyerOrdersUseCase(uow).execute(buyer, status="pending")

        assert [order.id for order in result.value.items] == [keep.order.id]

    async def test_invalid_status_filter(self, uow, buyer):
        result = await ListBuyerOrdersUseCase(uow).execute(buyer, status="lost")
        assert result.value.code == "INVALID_STATUS"


class TestListSellerOrders:
    async def test_farmer_sees_orders_with_their_products(self, uow, farmer, other_farmer, make_product, place_order):
        mine = make_product()
        theirs = make_product(owner_id=other_farmer.id)
        with_mine = await place_order(quantity=1, product=mine)
        await place_order(quantity=1, product=theirs)

        result = await ListSellerOrdersUseCase(uow).execute(farmer)

        assert [order.id for order in result.value.items] == [with_mine.order.id]

    async def test_farmer_without_products(self, uow, other_farmer, place_order):
        await place_order()
        result = await ListSellerOrdersUseCase(uow).execute(other_farmer)
        assert result.value.total == 0
        assert result.value.items == []

    async def test_consumers_are_forbidden(self, uow, buyer):
        result = await ListSellerOrdersUseCase(uow).execute(buyer)
        assert result.value.code == "FORBIDDEN"


class TestNormalizePage:
    @pytest.mark.parametrize("page, limit, expected", [
        (1, None, (1, settings.DEFAULT_PAGE_LIMIT)),
        (0, 5, (1, 5)),
        (3, 10_000, (3, settings.MAX_PAGE_LIMIT)),
    ])
    def test_bounds(self, page, limit, expected):
        assert normalize_page(page, limit) == expected
