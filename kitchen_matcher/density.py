"""Ingredient-specific volume/weight estimation.

Used as the last resort when no formal conversion path exists between two
units, e.g. "2 cups flour" -> grams. Estimates are heuristic and carry a
lower confidence than table conversions.
"""

import logging
from dataclasses import dataclass

from .config import DENSITY_CONFIDENCE, PIECE_WEIGHT_CONFIDENCE
from .normalizer import normalize_ingredient_name
from .units import conversion_factor, get_unit_type, normalize_unit

logger = logging.getLogger(__name__)

# Typical weight of one US cup (240 ml), in grams
GRAMS_PER_CUP: dict[str, float] = {
    "flour": 120.0,
    "all purpose flour": 120.0,
    "bread flour": 127.0,
    "wheat flour": 120.0,
    "almond flour": 96.0,
    "sugar": 200.0,
    "brown sugar": 220.0,
    "powdered sugar": 120.0,
    "icing sugar": 120.0,
    "rice": 180.0,
    "oat": 80.0,
    "rolled oat": 80.0,
    "butter": 227.0,
    "water": 240.0,
    "milk": 245.0,
    "cream": 238.0,
    "heavy cream": 238.0,
    "yogurt": 245.0,
    "honey": 340.0,
    "maple syrup": 322.0,
    "salt": 292.0,
    "kosher salt": 240.0,
    "cocoa powder": 85.0,
    "cornstarch": 128.0,
    "oil": 218.0,
    "olive oil": 216.0,
    "cheese": 113.0,
    "parmesan": 100.0,
    "chocolate chip": 170.0,
    "breadcrumb": 108.0,
}

# Typical weight of a single piece, in grams
GRAMS_PER_PIECE: dict[str, float] = {
    "egg": 50.0,
    "onion": 150.0,
    "garlic": 5.0,
    "garlic clove": 5.0,
    "lemon": 100.0,
    "lime": 67.0,
    "potato": 200.0,
    "tomato": 120.0,
    "carrot": 60.0,
    "apple": 180.0,
    "banana": 120.0,
    "bell pepper": 150.0,
    "avocado": 200.0,
    "shallot": 40.0,
}


@dataclass
class DensityEstimate:
    """An estimated conversion factor with its provenance."""

    factor: float
    confidence: float
    notes: str


def _lookup(table: dict[str, float], ingredient: str) -> tuple[str, float] | None:
    """Find the longest table key appearing as whole words in the ingredient."""
    normalized = normalize_ingredient_name(ingredient)
    if not normalized:
        return None

    padded = f" {normalized} "
    best: tuple[str, float] | None = None
    for key, value in table.items():
        if f" {key} " in padded and (best is None or len(key) > len(best[0])):
            best = (key, value)

    return best


class DensityEstimator:
    """Estimate conversions between volume, weight and count for an ingredient."""

    def __init__(
        self,
        grams_per_cup: dict[str, float] | None = None,
        grams_per_piece: dict[str, float] | None = None,
    ):
        self.grams_per_cup = GRAMS_PER_CUP if grams_per_cup is None else grams_per_cup
        self.grams_per_piece = GRAMS_PER_PIECE if grams_per_piece is None else grams_per_piece

    def estimate(self, from_unit: str, to_unit: str, ingredient: str) -> DensityEstimate | None:
        """
        Estimate the factor converting from_unit -> to_unit for an ingredient.

        Args:
            from_unit: Source unit
            to_unit: Target unit
            ingredient: Ingredient name, e.g. "plain flour"

        Returns:
            DensityEstimate, or None if the ingredient or unit pair is not covered
        """
        from_unit = normalize_unit(from_unit)
        to_unit = normalize_unit(to_unit)
        from_type = get_unit_type(from_unit)
        to_type = get_unit_type(to_unit)

        if from_type == "volume" and to_type == "weight":
            found = _lookup(self.grams_per_cup, ingredient)
            if found:
                key, grams = found
                factor = _factor(from_unit, "cup") * grams * _factor("g", to_unit)
                return DensityEstimate(
                    factor=factor,
                    confidence=DENSITY_CONFIDENCE,
                    notes=f"Estimated based on typical {key} density",
                )

        elif from_type == "weight" and to_type == "volume":
            found = _lookup(self.grams_per_cup, ingredient)
            if found:
                key, grams = found
                factor = _factor(from_unit, "g") / grams * _factor("cup", to_unit)
                return DensityEstimate(
                    factor=factor,
                    confidence=DENSITY_CONFIDENCE,
                    notes=f"Estimated based on typical {key} density",
                )

        elif from_type == "count" and to_type == "weight":
            found = _lookup(self.grams_per_piece, ingredient)
            if found:
                key, grams = found
                factor = _factor(from_unit, "units") * grams * _factor("g", to_unit)
                return DensityEstimate(
                    factor=factor,
                    confidence=PIECE_WEIGHT_CONFIDENCE,
                    notes=f"Estimated based on typical {key} weight per piece",
                )

        elif from_type == "weight" and to_type == "count":
            found = _lookup(self.grams_per_piece, ingredient)
            if found:
                key, grams = found
                factor = _factor(from_unit, "g") / grams * _factor("units", to_unit)
                return DensityEstimate(
                    factor=factor,
                    confidence=PIECE_WEIGHT_CONFIDENCE,
                    notes=f"Estimated based on typical {key} weight per piece",
                )

        logger.debug(f"No density estimate for {from_unit} -> {to_unit} ({ingredient!r})")
        return None


def _factor(from_unit: str, to_unit: str) -> float:
    # Both units share a category here, so the built-in graph always connects them
    factor = conversion_factor(from_unit, to_unit)
    if factor is None:
        raise ValueError(f"No built-in conversion from {from_unit} to {to_unit}")
    return factor
