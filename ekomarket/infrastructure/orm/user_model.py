"""User ORM Model (directory projection used for roles and locations)"""

from sqlalchemy import Column, String, Float

from ...db.models import Base
from ...domain.enums import UserRole


class UserModel(Base):
    __tablename__ = 'users'

    id = Column(String(64), primary_key=True, index=True)
    role = Column(String(20), nullable=False, default=UserRole.CONSUMER.value)
    full_name = Column(String(255), nullable=False, default='')
    email = Column(String(255), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
