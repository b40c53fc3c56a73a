"""Tests for ingredient density estimates."""

import pytest

from kitchen_matcher.density import DensityEstimator


@pytest.fixture
def estimator():
    return DensityEstimator()


class TestVolumeToWeight:
    """Tests for volume -> weight estimates."""

    def test_cup_of_flour(self, estimator):
        estimate = estimator.estimate("cup", "g", "flour")
        assert estimate.factor == pytest.approx(120.0)
        assert estimate.confidence == 0.7
        assert "flour" in estimate.notes

    def test_longest_key_wins(self, estimator):
        estimate = estimator.estimate("cup", "g", "Brown Sugar, packed")
        assert estimate.factor == pytest.approx(220.0)
        assert "brown sugar" in estimate.notes

    def test_tablespoon_to_kilograms(self, estimator):
        estimate = estimator.estimate("tbsp", "kg", "sugar")
        assert estimate.factor == pytest.approx(15 / 240 * 200 / 1000)

    def test_unknown_ingredient(self, estimator):
        assert estimator.estimate("cup", "g", "unobtainium") is None


class TestWeightToVolume:
    """Tests for weight -> volume estimates."""

    def test_grams_of_flour_to_cups(self, estimator):
        estimate = estimator.estimate("g", "cup", "all-purpose flour")
        assert 240 * estimate.factor == pytest.approx(2.0)


class TestPieceWeights:
    """Tests for count <-> weight estimates."""

    def test_eggs_to_grams(self, estimator):
        estimate = estimator.estimate("units", "g", "Large Eggs")
        assert estimate.factor == pytest.approx(50.0)
        assert estimate.confidence == 0.6

    def test_dozen_eggs_to_kilograms(self, estimator):
        estimate = estimator.estimate("dozen", "kg", "eggs")
        assert estimate.factor == pytest.approx(0.6)

    def test_grams_to_onions(self, estimator):
        estimate = estimator.estimate("g", "units", "yellow onion")
        assert estimate.factor == pytest.approx(1 / 150)


class TestUnsupportedPairs:
    """Pairs the estimator does not cover."""

    def test_volume_to_count(self, estimator):
        assert estimator.estimate("cup", "units", "flour") is None

    def test_custom_tables(self):
        estimator = DensityEstimator(grams_per_cup={"stock": 250.0}, grams_per_piece={})
        assert estimator.estimate("cup", "g", "chicken stock").factor == pytest.approx(250.0)
        assert estimator.estimate("cup", "g", "flour") is None
