"""Kitchen Matcher: ingredient-to-catalog matching and unit conversion."""

__version__ = "1.0.0"

from .converter import ConversionRequest, ConversionResult, UnitConverter
from .matcher import IngredientMatcher, MatchCandidate, MatchOptions
from .normalizer import normalize_ingredient_name
from .service import IngredientService, create_service

__all__ = [
    "ConversionRequest",
    "ConversionResult",
    "IngredientMatcher",
    "IngredientService",
    "MatchCandidate",
    "MatchOptions",
    "UnitConverter",
    "create_service",
    "normalize_ingredient_name",
]
