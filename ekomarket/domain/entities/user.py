"""User as exposed by the user directory"""

from dataclasses import dataclass
from typing import Optional

from ..value_objects.entity_ids import UserId, SYSTEM_USER_ID
from ..value_objects.location import GeoPoint
from ..enums import UserRole


@dataclass
class User:
    id: UserId
    role: UserRole = UserRole.CONSUMER
    full_name: str = ""
    email: Optional[str] = None
    location: Optional[GeoPoint] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_farmer(self) -> bool:
        return self.role == UserRole.FARMER

    @classmethod
    def system(cls) -> "User":
        """Actor used for gateway-driven transitions"""
        return cls(id=SYSTEM_USER_ID, role=UserRole.ADMIN, full_name="system")
