"""Product ORM Model (catalog table read and decremented by ordering)"""

from sqlalchemy import Column, String, Integer, Numeric, Float, Boolean, JSON, CheckConstraint

from ...db.models import Base
from ...domain.enums import ProductStatus


class ProductModel(Base):
    __tablename__ = 'products'
    __table_args__ = (CheckConstraint('quantity >= 0', name='ck_products_quantity_non_negative'),)

    id = Column(String(64), primary_key=True, index=True)
    owner_id = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), default='PLN', nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    unit = Column(String(16), nullable=False, default='kg')
    status = Column(String(20), nullable=False, default=ProductStatus.AVAILABLE.value, index=True)

    # Source location
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    is_certified = Column(Boolean, nullable=False, default=False)
    category = Column(String(64), nullable=True)
    images = Column(JSON, nullable=False, default=list)
