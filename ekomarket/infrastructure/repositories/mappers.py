"""Column <-> value object conversions shared by the SQLAlchemy repositories"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from ...domain.value_objects.location import GeoPoint
from ...domain.value_objects.money import Money


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything stored is UTC"""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def to_money(amount: Optional[Decimal], currency: str) -> Optional[Money]:
    if amount is None:
        return None
    return Money(Decimal(amount), currency)


def to_geo_point(latitude: Optional[float], longitude: Optional[float]) -> Optional[GeoPoint]:
    if latitude is None or longitude is None:
        return None
    return GeoPoint(latitude=latitude, longitude=longitude)
