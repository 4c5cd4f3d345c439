"""Carbon footprint estimator

A coarse heuristic: emissions grow with distance travelled and weight carried,
discounted when every item comes from a local producer and again when every
item is certified.
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional

from ..enums import CarbonRating
from ..value_objects.location import GeoPoint
from .geo import distance_between


LOW_RATING_LIMIT = 5.0
MEDIUM_RATING_LIMIT = 15.0

RECOMMENDATIONS = {
    CarbonRating.LOW: [],
    CarbonRating.MEDIUM: [
        "Choose products from local farmers (within 30 km).",
        "Prefer products with ecological certificates.",
    ],
    CarbonRating.HIGH: [
        "Choose products from local farmers (within 30 km).",
        "Prefer products with ecological certificates.",
        "Consider placing larger orders less often.",
        "Choose seasonal products that do not need long-distance transport.",
    ],
}

# kilograms per unit of quantity; piece units are filled in from the configured piece weight
UNIT_WEIGHTS_KG = {
    "kg": 1.0,
    "g": 0.001,
    "l": 1.0,
    "ml": 0.001,
}
PIECE_UNITS = {"szt", "pcs", "piece", "pieces", "szt."}


def _round(value: float, places: str) -> float:
    return float(Decimal(repr(value)).quantize(Decimal(places), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class CarbonFactors:
    emission_factor: float = 0.12
    local_multiplier: float = 0.7
    eco_multiplier: float = 0.8
    local_radius_km: float = 50.0
    piece_weight_kg: float = 0.5


@dataclass(frozen=True)
class CarbonLine:
    """One order line as seen by the estimator"""
    quantity: int
    unit: str
    location: Optional[GeoPoint]
    is_certified: bool


@dataclass(frozen=True)
class CarbonEstimate:
    footprint: float
    rating: CarbonRating
    savings: float
    average_distance_km: float
    total_weight_kg: float
    is_local_production: bool
    has_eco_certificates: bool
    recommendations: List[str] = field(default_factory=list)


class CarbonFootprintEstimator:

    def __init__(self, factors: Optional[CarbonFactors] = None):
        self.factors = factors or CarbonFactors()

    def calculate(
        self,
        distance_km: float,
        weight_kg: float,
        is_local_production: bool = False,
        has_eco_certificates: bool = False,
    ) -> float:
        footprint = distance_km * weight_kg * self.factors.emission_factor
        if is_local_production:
            footprint *= self.factors.local_multiplier
        if has_eco_certificates:
            footprint *= self.factors.eco_multiplier
        return _round(footprint, "0.01")

    @staticmethod
    def rating(footprint: float) -> CarbonRating:
        if footprint < LOW_RATING_LIMIT:
            return CarbonRating.LOW
        if footprint < MEDIUM_RATING_LIMIT:
            return CarbonRating.MEDIUM
        return CarbonRating.HIGH

    def recommendations(self, footprint: float) -> List[str]:
        return list(RECOMMENDATIONS[self.rating(footprint)])

    @staticmethod
    def savings(footprint: float) -> float:
        """Savings against conventional shopping, assumed to emit 1.5x as much"""
        return _round(footprint * 1.5 - footprint, "0.01")

    def weight_in_kg(self, quantity: int, unit: str) -> float:
        normalized = (unit or "").strip().lower()
        if normalized in PIECE_UNITS:
            return quantity * self.factors.piece_weight_kg
        return quantity * UNIT_WEIGHTS_KG.get(normalized, 1.0)

    def estimate(self, buyer_location: Optional[GeoPoint], lines: Iterable[CarbonLine]) -> CarbonEstimate:
        """Score a whole order.

        Lines without a known location (or a buyer without one) add nothing to
        distance or weight and cannot contradict the locality/certification
        flags; the average distance is still taken over every line.
        """
        lines = list(lines)
        total_distance = 0.0
        total_weight = 0.0
        is_local = True
        has_eco = True

        for line in lines:
            if buyer_location is None or line.location is None:
                continue
            distance = distance_between(buyer_location, line.location)
            total_distance += distance
            total_weight += self.weight_in_kg(line.quantity, line.unit)
            if distance > self.factors.local_radius_km:
                is_local = False
            if not line.is_certified:
                has_eco = False

        average_distance = total_distance / len(lines) if lines else 0.0
        footprint = self.calculate(average_distance, total_weight, is_local, has_eco)
        return CarbonEstimate(
            footprint=footprint,
            rating=self.rating(footprint),
            savings=self.savings(footprint),
            average_distance_km=_round(average_distance, "0.1"),
            total_weight_kg=_round(total_weight, "0.001"),
            is_local_production=is_local,
            has_eco_certificates=has_eco,
            recommendations=self.recommendations(footprint),
        )
