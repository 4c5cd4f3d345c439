"""User directory interface (read side of the user profiles)"""

from abc import ABC, abstractmethod
from typing import Optional

from ..entities.user import User
from ..value_objects.entity_ids import UserId


class IUserRepository(ABC):

    @abstractmethod
    async def get_by_id(self, user_id: UserId) -> Optional[User]:
        pass

    @abstractmethod
    async def add(self, user: User) -> User:
        pass
