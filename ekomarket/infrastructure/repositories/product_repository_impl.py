"""Product repository implementation using SQLAlchemy ORM"""

from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ...domain.entities.product import Product
from ...domain.enums import ProductStatus
from ...domain.repositories.product_repository import IProductRepository
from ...domain.value_objects.entity_ids import ProductId, UserId
from ..orm.product_model import ProductModel
from .mappers import to_geo_point, to_money


class ProductRepositoryImpl(IProductRepository):
    """Repository implementation for the catalog products ordering touches"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, product_id: ProductId) -> Optional[Product]:
        stmt = (
            select(ProductModel)
            .where(ProductModel.id == product_id.value)
            .execution_options(populate_existing=True)
        )
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        return self._map_to_entity(model) if model else None

    async def get_many(self, product_ids: Iterable[ProductId]) -> Dict[ProductId, Product]:
        ids = [product_id.value for product_id in product_ids]
        if not ids:
            return {}
        stmt = select(ProductModel).where(ProductModel.id.in_(ids))
        models = (await self.session.execute(stmt)).scalars().all()
        return {ProductId(model.id): self._map_to_entity(model) for model in models}

    async def get_ids_by_owner(self, owner_id: UserId) -> List[ProductId]:
        stmt = select(ProductModel.id).where(ProductModel.owner_id == owner_id.value)
        return [ProductId(value) for value in (await self.session.execute(stmt)).scalars().all()]

    async def add(self, product: Product) -> Product:
        self.session.add(self._create_model_from_entity(product))
        await self.session.flush()
        return product

    async def try_decrement(self, product_id: ProductId, quantity: int) -> Optional[Product]:
        # Single conditional UPDATE: the check and the decrement cannot interleave
        stmt = (
            update(ProductModel)
            .where(
                ProductModel.id == product_id.value,
                ProductModel.status == ProductStatus.AVAILABLE.value,
                ProductModel.quantity >= quantity,
            )
            .values(quantity=ProductModel.quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount != 1:
            return None
        return await self.get_by_id(product_id)

    async def increment(self, product_id: ProductId, quantity: int) -> bool:
        stmt = (
            update(ProductModel)
            .where(ProductModel.id == product_id.value)
            .values(quantity=ProductModel.quantity + quantity)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    def _create_model_from_entity(self, product: Product) -> ProductModel:
        return ProductModel(
            id=product.id.value,
            owner_id=product.owner_id.value,
            name=product.name,
            price=product.price.amount,
            currency=product.price.currency,
            quantity=product.quantity,
            unit=product.unit,
            status=product.status.value,
            latitude=product.location.latitude if product.location else None,
            longitude=product.location.longitude if product.location else None,
            is_certified=product.is_certified,
            category=product.category,
            images=list(product.images),
        )

    def _map_to_entity(self, model: ProductModel) -> Product:
        return Product(
            id=ProductId(model.id),
            owner_id=UserId(model.owner_id),
            name=model.name,
            price=to_money(model.price, model.currency),
            quantity=model.quantity,
            unit=model.unit,
            status=ProductStatus(model.status),
            location=to_geo_point(model.latitude, model.longitude),
            is_certified=model.is_certified,
            category=model.category,
            images=list(model.images or []),
        )
