import pytest

from ekomarket.domain.enums import CarbonRating
from ekomarket.domain.services.carbon_footprint import (
    CarbonFactors,
    CarbonFootprintEstimator,
    CarbonLine,
)
from ekomarket.domain.value_objects.location import GeoPoint


BUYER = GeoPoint(latitude=52.0, longitude=21.0)
NEAR = GeoPoint(latitude=52.2697965, longitude=21.0)  # 30 km
FAR = GeoPoint(latitude=50.06, longitude=19.94)


@pytest.fixture
def estimator():
    return CarbonFootprintEstimator()


class TestCalculate:
    def test_plain_footprint(self, estimator):
        assert estimator.calculate(100, 2) == 24.0

    def test_local_and_certified_discounts_stack(self, estimator):
        # 30 km * 2 kg * 0.12 * 0.7 * 0.8 = 4.032
        assert estimator.calculate(30, 2, True, True) == 4.03

    def test_local_only(self, estimator):
        assert estimator.calculate(30, 2, is_local_production=True) == 5.04

    def test_zero_inputs(self, estimator):
        assert estimator.calculate(0, 0, True, True) == 0

    def test_custom_factors(self):
        estimator = CarbonFootprintEstimator(CarbonFactors(emission_factor=1.0, local_multiplier=0.5))
        assert estimator.calculate(10, 1, is_local_production=True) == 5.0


class TestRating:
    @pytest.mark.parametrize("footprint, rating", [
        (0, CarbonRating.LOW),
        (4.99, CarbonRating.LOW),
        (5.00, CarbonRating.MEDIUM),
        (14.99, CarbonRating.MEDIUM),
        (15.00, CarbonRating.HIGH),
        (120, CarbonRating.HIGH),
    ])
    def test_boundaries(self, footprint, rating):
        assert CarbonFootprintEstimator.rating(footprint) == rating

    def test_recommendations_follow_rating(self, estimator):
        assert estimator.recommendations(1) == []
        assert len(estimator.recommendations(10)) == 2
        assert len(estimator.recommendations(20)) == 4

    def test_savings(self):
        assert CarbonFootprintEstimator.savings(10) == 5.0
        assert CarbonFootprintEstimator.savings(0) == 0


class TestWeight:
    @pytest.mark.parametrize("quantity, unit, kg", [
        (2, "kg", 2.0),
        (500, "g", 0.5),
        (3, "szt", 1.5),
        (2, "L", 2.0),
        (250, "ml", 0.25),
        (4, "crate", 4.0),
    ])
    def test_unit_table(self, estimator, quantity, unit, kg):
        assert estimator.weight_in_kg(quantity, unit) == pytest.approx(kg)


class TestEstimate:
    def test_local_certified_order(self, estimator):
        estimate = estimator.estimate(BUYER, [CarbonLine(2, "kg", NEAR, True)])

        assert estimate.average_distance_km == 30.0
        assert estimate.total_weight_kg == 2.0
        assert estimate.is_local_production is True
        assert estimate.has_eco_certificates is True
        assert estimate.footprint == 4.03
        assert estimate.rating == CarbonRating.LOW

    def test_one_far_item_makes_the_whole_order_non_local(self, estimator):
        estimate = estimator.estimate(BUYER, [
            CarbonLine(1, "kg", NEAR, True),
            CarbonLine(1, "kg", FAR, True),
        ])
        assert estimate.is_local_production is False
        assert estimate.has_eco_certificates is True

    def test_one_uncertified_item_drops_eco_flag(self, estimator):
        estimate = estimator.estimate(BUYER, [
            CarbonLine(1, "kg", NEAR, True),
            CarbonLine(1, "kg", NEAR, False),
        ])
        assert estimate.has_eco_certificates is False
        assert estimate.is_local_production is True

    def test_missing_locations_default_to_zero(self, estimator):
        estimate = estimator.estimate(None, [CarbonLine(3, "kg", NEAR, False)])

        assert estimate.footprint == 0
        assert estimate.average_distance_km == 0
        assert estimate.total_weight_kg == 0
        # Nothing contradicted the flags
        assert estimate.is_local_production is True
        assert estimate.has_eco_certificates is True

    def test_average_distance_counts_every_line(self, estimator):
        estimate = estimator.estimate(BUYER, [
            CarbonLine(1, "kg", NEAR, True),
            CarbonLine(1, "kg", None, False),
        ])
        assert estimate.average_distance_km == 15.0

    def test_empty_order(self, estimator):
        estimate = estimator.estimate(BUYER, [])
        assert estimate.footprint == 0
        assert estimate.rating == CarbonRating.LOW
