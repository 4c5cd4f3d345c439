"""Entity ID value objects

Identifiers are opaque strings: store-generated ids, gateway-assigned payment
intent ids and user ids issued by the user directory all fit.
"""

from dataclasses import dataclass
from uuid import uuid4


@dataclass(frozen=True)
class EntityId:
    value: str

    def __post_init__(self):
        if not isinstance(self.value, str) or not self.value.strip():
            raise ValueError(f"{type(self).__name__} must be a non-empty string")

    @classmethod
    def generate(cls):
        """Generate a new random identifier"""
        return cls(uuid4().hex)

    @classmethod
    def from_str(cls, value: str):
        return cls(value)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class UserId(EntityId):
    pass


@dataclass(frozen=True)
class OrderId(EntityId):
    pass


@dataclass(frozen=True)
class ProductId(EntityId):
    pass


@dataclass(frozen=True)
class PaymentId(EntityId):
    pass


@dataclass(frozen=True)
class EscrowId(EntityId):
    pass


SYSTEM_USER_ID = UserId("system")
