"""In-memory repositories and unit of work

Used by tests and local runs without a database. Conditional writes (stock
decrements, version-checked order updates, status-keyed payment and escrow
updates) hit the shared store immediately under its lock, the way a row
lock would, and are undone on rollback. Inserts are staged until commit.
"""

import asyncio
import copy
from dataclasses import replace
from typing import Callable, Collection, Dict, Iterable, List, Optional, Sequence, Tuple

from ...domain.entities.escrow import Escrow
from ...domain.entities.order import Order
from ...domain.entities.payment import PaymentIntent
from ...domain.entities.product import Product
from ...domain.entities.user import User
from ...domain.enums import EscrowStatus, OrderStatus, PaymentStatus
from ...domain.errors import ConcurrentModificationError
from ...domain.repositories.escrow_repository import IEscrowRepository
from ...domain.repositories.order_repository import IOrderRepository
from ...domain.repositories.payment_repository import IPaymentRepository
from ...domain.repositories.product_repository import IProductRepository
from ...domain.repositories.unit_of_work import IUnitOfWork
from ...domain.repositories.user_repository import IUserRepository
from ...domain.value_objects.entity_ids import EscrowId, OrderId, PaymentId, ProductId, UserId


class InMemoryDatabase:
    """Committed state shared by every unit of work"""

    def __init__(self):
        self.users: Dict[UserId, User] = {}
        self.products: Dict[ProductId, Product] = {}
        self.orders: Dict[OrderId, Order] = {}
        self.payments: Dict[PaymentId, PaymentIntent] = {}
        self.escrows: Dict[EscrowId, Escrow] = {}
        self.lock = asyncio.Lock()


def _copy(entity):
    duplicate = copy.deepcopy(entity)
    if isinstance(duplicate, Order):
        # Pending domain events belong to the caller that raised them
        duplicate._events = []
    return duplicate


class _Transaction:
    """Staged inserts plus the undo log of one unit of work"""

    def __init__(self, db: InMemoryDatabase):
        self.db = db
        self.inserts: List[Tuple[dict, object, object]] = []
        self.undo: List[Callable[[], None]] = []

    def stage(self, table: dict, key, entity) -> None:
        self.inserts.append((table, key, _copy(entity)))

    def staged(self, table: dict, key):
        for staged_table, staged_key, entity in reversed(self.inserts):
            if staged_table is table and staged_key == key:
                return entity
        return None

    def staged_values(self, table: dict) -> list:
        return [entity for staged_table, _, entity in self.inserts if staged_table is table]

    def overwrite(self, table: dict, key, entity) -> None:
        previous = table.get(key)
        table[key] = _copy(entity)

        def restore():
            if previous is None:
                table.pop(key, None)
            else:
                table[key] = previous
        self.undo.append(restore)

    def commit(self) -> None:
        for table, key, entity in self.inserts:
            table[key] = entity
        self.inserts.clear()
        self.undo.clear()

    def rollback(self) -> None:
        for step in reversed(self.undo):
            step()
        self.inserts.clear()
        self.undo.clear()


class InMemoryUserRepository(IUserRepository):

    def __init__(self, tx: _Transaction):
        self.tx = tx

    async def get_by_id(self, user_id: UserId) -> Optional[User]:
        user = self.tx.staged(self.tx.db.users, user_id) or self.tx.db.users.get(user_id)
        return _copy(user) if user else None

    async def add(self, user: User) -> User:
        self.tx.stage(self.tx.db.users, user.id, user)
        return user


class InMemoryProductRepository(IProductRepository):

    def __init__(self, tx: _Transaction):
        self.tx = tx

    def _lookup(self, product_id: ProductId) -> Optional[Product]:
        return self.tx.staged(self.tx.db.products, product_id) or self.tx.db.products.get(product_id)

    async def get_by_id(self, product_id: ProductId) -> Optional[Product]:
        product = self._lookup(product_id)
        return _copy(product) if product else None

    async def get_many(self, product_ids: Iterable[ProductId]) -> Dict[ProductId, Product]:
        found = {}
        for product_id in product_ids:
            product = self._lookup(product_id)
            if product:
                found[product_id] = _copy(product)
        return found

    async def get_ids_by_owner(self, owner_id: UserId) -> List[ProductId]:
        products = list(self.tx.db.products.values()) + self.tx.staged_values(self.tx.db.products)
        return list(dict.fromkeys(p.id for p in products if p.owner_id == owner_id))

    async def add(self, product: Product) -> Product:
        self.tx.stage(self.tx.db.products, product.id, product)
        return product

    async def try_decrement(self, product_id: ProductId, quantity: int) -> Optional[Product]:
        db = self.tx.db
        async with db.lock:
            product = db.products.get(product_id)
            if product is None or not product.is_available or product.quantity < quantity:
                return None
            db.products[product_id] = replace(product, quantity=product.quantity - quantity)

        def undo():
            current = db.products.get(product_id)
            if current is not None:
                db.products[product_id] = replace(current, quantity=current.quantity + quantity)
        self.tx.undo.append(undo)
        return _copy(db.products[product_id])

    async def increment(self, product_id: ProductId, quantity: int) -> bool:
        db = self.tx.db
        async with db.lock:
            product = db.products.get(product_id)
            if product is None:
                return False
            db.products[product_id] = replace(product, quantity=product.quantity + quantity)

        def undo():
            current = db.products.get(product_id)
            if current is not None:
                db.products[product_id] = replace(current, quantity=current.quantity - quantity)
        self.tx.undo.append(undo)
        return True


class InMemoryOrderRepository(IOrderRepository):

    def __init__(self, tx: _Transaction):
        self.tx = tx

    def _all(self) -> List[Order]:
        staged = {order.id: order for order in self.tx.staged_values(self.tx.db.orders)}
        merged = dict(self.tx.db.orders)
        merged.update(staged)
        return list(merged.values())

    async def get_by_id(self, order_id: OrderId) -> Optional[Order]:
        order = self.tx.staged(self.tx.db.orders, order_id) or self.tx.db.orders.get(order_id)
        return _copy(order) if order else None

    async def add(self, order: Order) -> Order:
        self.tx.stage(self.tx.db.orders, order.id, order)
        return order

    async def update(self, order: Order) -> Order:
        staged = self.tx.staged(self.tx.db.orders, order.id)
        if staged is not None:
            if staged.version != order.version:
                raise ConcurrentModificationError("Order", order.id.value)
            order.version += 1
            self.tx.stage(self.tx.db.orders, order.id, order)
            return order

        async with self.tx.db.lock:
            current = self.tx.db.orders.get(order.id)
            if current is None or current.version != order.version:
                raise ConcurrentModificationError("Order", order.id.value)
            order.version += 1
            self.tx.overwrite(self.tx.db.orders, order.id, order)
        return order

    async def list_by_buyer(
        self,
        buyer_id: UserId,
        status: Optional[OrderStatus] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Order], int]:
        matching = [
            order for order in self._all()
            if order.buyer_id == buyer_id and (status is None or order.status == status)
        ]
        return self._page(matching, offset, limit)

    async def list_containing_products(
        self,
        product_ids: Sequence[ProductId],
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Order], int]:
        wanted = set(product_ids)
        matching = [order for order in self._all() if wanted.intersection(order.product_ids)]
        return self._page(matching, offset, limit)

    def _page(self, orders: List[Order], offset: int, limit: int) -> Tuple[List[Order], int]:
        orders.sort(key=lambda order: (order.created_at, order.id.value), reverse=True)
        return [_copy(order) for order in orders[offset:offset + limit]], len(orders)


class InMemoryPaymentRepository(IPaymentRepository):

    def __init__(self, tx: _Transaction):
        self.tx = tx

    async def get_by_id(self, payment_id: PaymentId) -> Optional[PaymentIntent]:
        payment = self.tx.staged(self.tx.db.payments, payment_id) or self.tx.db.payments.get(payment_id)
        return _copy(payment) if payment else None

    async def add(self, payment: PaymentIntent) -> PaymentIntent:
        self.tx.stage(self.tx.db.payments, payment.id, payment)
        return payment

    async def count_by_order(self, order_id: OrderId) -> int:
        stored = {payment.id for payment in self.tx.db.payments.values() if payment.order_id == order_id}
        staged = {
            payment.id for payment in self.tx.staged_values(self.tx.db.payments) if payment.order_id == order_id
        }
        return len(stored | staged)

    async def update_if_status(self, payment: PaymentIntent, expected: Collection[PaymentStatus]) -> bool:
        staged = self.tx.staged(self.tx.db.payments, payment.id)
        if staged is not None:
            if staged.status not in expected:
                return False
            self.tx.stage(self.tx.db.payments, payment.id, payment)
            return True

        async with self.tx.db.lock:
            current = self.tx.db.payments.get(payment.id)
            if current is None or current.status not in expected:
                return False
            self.tx.overwrite(self.tx.db.payments, payment.id, payment)
        return True


class InMemoryEscrowRepository(IEscrowRepository):

    def __init__(self, tx: _Transaction):
        self.tx = tx

    async def get_by_id(self, escrow_id: EscrowId) -> Optional[Escrow]:
        escrow = self.tx.staged(self.tx.db.escrows, escrow_id) or self.tx.db.escrows.get(escrow_id)
        return _copy(escrow) if escrow else None

    async def get_by_order_id(self, order_id: OrderId) -> Optional[Escrow]:
        escrows = self.tx.staged_values(self.tx.db.escrows) + list(self.tx.db.escrows.values())
        for escrow in escrows:
            if escrow.order_id == order_id:
                return _copy(escrow)
        return None

    async def add(self, escrow: Escrow) -> Escrow:
        # Claimed at once so two units of work cannot both open one for the order
        async with self.tx.db.lock:
            if any(existing.order_id == escrow.order_id for existing in self.tx.db.escrows.values()):
                raise ConcurrentModificationError("Escrow for order", escrow.order_id.value)
            self.tx.overwrite(self.tx.db.escrows, escrow.id, escrow)
        return escrow

    async def update_if_status(self, escrow: Escrow, expected: EscrowStatus) -> bool:
        async with self.tx.db.lock:
            current = self.tx.db.escrows.get(escrow.id)
            if current is None or current.status != expected:
                return False
            self.tx.overwrite(self.tx.db.escrows, escrow.id, escrow)
        return True


class InMemoryUnitOfWork(IUnitOfWork):

    def __init__(self, db: InMemoryDatabase):
        self.db = db
        self._begin()

    def _begin(self) -> None:
        self._tx = _Transaction(self.db)
        self._committed = False
        self.users = InMemoryUserRepository(self._tx)
        self.products = InMemoryProductRepository(self._tx)
        self.orders = InMemoryOrderRepository(self._tx)
        self.payments = InMemoryPaymentRepository(self._tx)
        self.escrows = InMemoryEscrowRepository(self._tx)

    async def __aenter__(self):
        self._begin()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type or not self._committed:
            await self.rollback()

    async def commit(self) -> None:
        self._tx.commit()
        self._committed = True

    async def rollback(self) -> None:
        self._tx.rollback()
