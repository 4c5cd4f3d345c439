"""Location value objects"""

import math
from dataclasses import dataclass
from typing import Optional


class InvalidCoordinate(ValueError):
    pass


def validate_coordinate(latitude: float, longitude: float) -> None:
    for name, value, limit in (("latitude", latitude, 90.0), ("longitude", longitude, 180.0)):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidCoordinate(f"{name} must be a number, got {value!r}")
        if not math.isfinite(value):
            raise InvalidCoordinate(f"{name} must be finite, got {value!r}")
        if abs(value) > limit:
            raise InvalidCoordinate(f"{name} {value} is outside [-{limit}, {limit}]")


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float

    def __post_init__(self):
        validate_coordinate(self.latitude, self.longitude)

    @classmethod
    def from_lon_lat(cls, coordinates) -> "GeoPoint":
        """Build from a GeoJSON style [longitude, latitude] pair"""
        longitude, latitude = coordinates
        return cls(latitude=latitude, longitude=longitude)


@dataclass(frozen=True)
class ShippingAddress:
    street: str
    city: str
    postal_code: str
    country: str
    recipient: Optional[str] = None

    def __post_init__(self):
        for name in ("street", "city", "postal_code", "country"):
            if not getattr(self, name):
                raise ValueError(f"Shipping address {name} is required")
