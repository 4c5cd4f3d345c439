"""User directory implementation using SQLAlchemy ORM"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ...domain.entities.user import User
from ...domain.enums import UserRole
from ...domain.repositories.user_repository import IUserRepository
from ...domain.value_objects.entity_ids import UserId
from ..orm.user_model import UserModel
from .mappers import to_geo_point


class UserRepositoryImpl(IUserRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: UserId) -> Optional[User]:
        model = (
            await self.session.execute(select(UserModel).where(UserModel.id == user_id.value))
        ).scalar_one_or_none()
        return self._map_to_entity(model) if model else None

    async def add(self, user: User) -> User:
        self.session.add(UserModel(
            id=user.id.value,
            role=user.role.value,
            full_name=user.full_name,
            email=user.email,
            latitude=user.location.latitude if user.location else None,
            longitude=user.location.longitude if user.location else None,
        ))
        await self.session.flush()
        return user

    def _map_to_entity(self, model: UserModel) -> User:
        return User(
            id=UserId(model.id),
            role=UserRole(model.role),
            full_name=model.full_name,
            email=model.email,
            location=to_geo_point(model.latitude, model.longitude),
        )
