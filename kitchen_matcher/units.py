"""Unit normalization and the built-in conversion graph."""

import re
from dataclasses import dataclass
from typing import Literal

UnitCategory = Literal["weight", "volume", "count", "temperature"]
UnitType = Literal["weight", "volume", "count", "temperature", "unknown"]


@dataclass(frozen=True)
class ConversionRule:
    """A conversion factor from one unit to another.

    For temperature rules the factor is unused; temperature is always
    converted with the affine formula.
    """

    from_unit: str
    to_unit: str
    factor: float
    category: UnitCategory
    user_id: str | None = None
    notes: str | None = None
    is_active: bool = True

    def __post_init__(self) -> None:
        if self.category != "temperature" and not self.factor > 0:
            raise ValueError(
                f"Conversion factor must be positive ({self.from_unit} -> {self.to_unit}: "
                f"{self.factor})"
            )

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "from_unit": self.from_unit,
            "to_unit": self.to_unit,
            "factor": self.factor,
            "category": self.category,
            "user_id": self.user_id,
            "notes": self.notes,
            "is_active": self.is_active,
        }


# Spellings, plurals and abbreviations -> canonical unit token
UNIT_ALIASES: dict[str, str] = {
    # Weight
    "gr": "g",
    "gram": "g",
    "grams": "g",
    "gramme": "g",
    "grammes": "g",
    "gms": "g",
    "kgs": "kg",
    "kilo": "kg",
    "kilos": "kg",
    "kilogram": "kg",
    "kilograms": "kg",
    "kilogramme": "kg",
    "kilogrammes": "kg",
    "milligram": "mg",
    "milligrams": "mg",
    "lbs": "lb",
    "pound": "lb",
    "pounds": "lb",
    "ounce": "oz",
    "ounces": "oz",
    # Volume
    "mls": "ml",
    "milliliter": "ml",
    "milliliters": "ml",
    "millilitre": "ml",
    "millilitres": "ml",
    "liter": "l",
    "liters": "l",
    "litre": "l",
    "litres": "l",
    "lt": "l",
    "ltr": "l",
    "centiliter": "cl",
    "centiliters": "cl",
    "centilitre": "cl",
    "centilitres": "cl",
    "deciliter": "dl",
    "deciliters": "dl",
    "decilitre": "dl",
    "decilitres": "dl",
    "cups": "cup",
    "tablespoon": "tbsp",
    "tablespoons": "tbsp",
    "tbs": "tbsp",
    "tbl": "tbsp",
    "tbsps": "tbsp",
    "teaspoon": "tsp",
    "teaspoons": "tsp",
    "tsps": "tsp",
    "fluid ounce": "fl oz",
    "fluid ounces": "fl oz",
    "floz": "fl oz",
    "pints": "pint",
    "pt": "pint",
    "quarts": "quart",
    "qt": "quart",
    "gallons": "gallon",
    "gal": "gallon",
    # Count
    "unit": "units",
    "each": "units",
    "ea": "units",
    "piece": "units",
    "pieces": "units",
    "pc": "units",
    "pcs": "units",
    "item": "units",
    "items": "units",
    "count": "units",
    "ct": "units",
    "dozens": "dozen",
    "doz": "dozen",
    "pairs": "pair",
    # Temperature
    "celsius": "c",
    "centigrade": "c",
    "fahrenheit": "f",
    "kelvin": "k",
}

UNIT_CATEGORIES: dict[str, UnitCategory] = {
    "g": "weight",
    "kg": "weight",
    "mg": "weight",
    "lb": "weight",
    "oz": "weight",
    "ml": "volume",
    "l": "volume",
    "cl": "volume",
    "dl": "volume",
    "cup": "volume",
    "tbsp": "volume",
    "tsp": "volume",
    "fl oz": "volume",
    "pint": "volume",
    "quart": "volume",
    "gallon": "volume",
    "units": "count",
    "dozen": "count",
    "pair": "count",
    "c": "temperature",
    "f": "temperature",
    "k": "temperature",
}

# Standard conversion factors (weight to grams, volume to milliliters, count to units)
STANDARD_CONVERSIONS: list[ConversionRule] = [
    # Weight
    ConversionRule("kg", "g", 1000.0, "weight"),
    ConversionRule("mg", "g", 0.001, "weight"),
    ConversionRule("lb", "g", 453.592, "weight"),
    ConversionRule("oz", "g", 28.3495, "weight"),
    # Volume
    ConversionRule("l", "ml", 1000.0, "volume"),
    ConversionRule("cl", "ml", 10.0, "volume"),
    ConversionRule("dl", "ml", 100.0, "volume"),
    ConversionRule("cup", "ml", 240.0, "volume"),
    ConversionRule("tbsp", "ml", 15.0, "volume"),
    ConversionRule("tsp", "ml", 5.0, "volume"),
    ConversionRule("fl oz", "ml", 29.5735, "volume"),
    ConversionRule("pint", "ml", 473.176, "volume"),
    ConversionRule("quart", "ml", 946.353, "volume"),
    ConversionRule("gallon", "ml", 3785.41, "volume"),
    # Temperature (factor unused, see convert_temperature)
    ConversionRule("f", "c", 0.0, "temperature", notes="Special formula"),
    ConversionRule("k", "c", 0.0, "temperature", notes="Special formula"),
    # Count
    ConversionRule("dozen", "units", 12.0, "count"),
    ConversionRule("pair", "units", 2.0, "count"),
]

# Hub units used to compose two-hop conversions
INTERMEDIATE_UNITS: tuple[str, ...] = ("g", "ml", "units")

TEMPERATURE_UNITS: set[str] = {"c", "f", "k"}

# Common target units offered for a given unit
CONVERSION_SUGGESTIONS: dict[str, list[str]] = {
    # Weight
    "g": ["kg", "oz", "lb"],
    "kg": ["g", "lb", "oz"],
    "lb": ["kg", "g", "oz"],
    "oz": ["g", "lb", "kg"],
    # Volume
    "ml": ["l", "cup", "fl oz", "tbsp", "tsp"],
    "l": ["ml", "cup", "fl oz", "quart", "gallon"],
    "cup": ["ml", "l", "fl oz", "tbsp"],
    "tbsp": ["tsp", "ml", "cup"],
    "tsp": ["tbsp", "ml"],
    # Temperature
    "c": ["f"],
    "f": ["c"],
    # Count
    "units": ["dozen", "pair"],
}

_DIRECT_INDEX: dict[tuple[str, str], ConversionRule] = {
    (rule.from_unit, rule.to_unit): rule for rule in STANDARD_CONVERSIONS
}

_DEGREE_PREFIX = re.compile(r"^(degrees?|deg)\s+")


def normalize_unit(unit: str | None) -> str:
    """
    Fold unit spellings and abbreviations to a canonical token.

    Examples:
        "Kilograms" -> "kg"
        "tbsp." -> "tbsp"
        "fl. oz." -> "fl oz"
        "°F" -> "f"
        None -> "units"

    Args:
        unit: Raw unit string

    Returns:
        Canonical unit token (unknown units are returned lower-cased)
    """
    if not unit or not isinstance(unit, str):
        return "units"

    text = unit.lower().replace("°", " ").replace(".", " ")
    text = " ".join(text.split())
    text = _DEGREE_PREFIX.sub("", text)

    if not text:
        return "units"

    return UNIT_ALIASES.get(text, text)


def get_unit_type(unit: str | None) -> UnitType:
    """Get the category of a unit (weight, volume, count, temperature, or unknown)."""
    if unit is None:
        return "unknown"
    return UNIT_CATEGORIES.get(normalize_unit(unit), "unknown")


def can_convert(from_unit: str | None, to_unit: str | None) -> bool:
    """
    Check if two units can be converted without ingredient knowledge.

    Args:
        from_unit: Source unit
        to_unit: Target unit

    Returns:
        True if both units are known and share a category
    """
    from_type = get_unit_type(from_unit)
    to_type = get_unit_type(to_unit)

    if from_type == "unknown" or to_type == "unknown":
        return False

    return from_type == to_type


def is_temperature_unit(unit: str) -> bool:
    """Check if a canonical unit token is a temperature scale."""
    return unit in TEMPERATURE_UNITS


def _to_celsius(amount: float, unit: str) -> float:
    if unit == "f":
        return (amount - 32) * 5 / 9
    if unit == "k":
        return amount - 273.15
    return amount


def _from_celsius(amount: float, unit: str) -> float:
    if unit == "f":
        return amount * 9 / 5 + 32
    if unit == "k":
        return amount + 273.15
    return amount


def convert_temperature(amount: float, from_unit: str, to_unit: str) -> float | None:
    """
    Convert a temperature using the affine formula, via Celsius.

    Args:
        amount: Temperature value
        from_unit: Canonical source scale ("c", "f" or "k")
        to_unit: Canonical target scale

    Returns:
        Converted temperature, or None if either unit is not a temperature scale
    """
    if not (is_temperature_unit(from_unit) and is_temperature_unit(to_unit)):
        return None
    if from_unit == to_unit:
        return amount
    return _from_celsius(_to_celsius(amount, from_unit), to_unit)


def temperature_formula(from_unit: str, to_unit: str) -> str:
    """Describe the affine formula used between two temperature scales."""
    names = {"c": "°C", "f": "°F", "k": "K"}
    return f"Temperature formula {names[from_unit]} -> {names[to_unit]} (via °C)"


def find_direct_conversion(from_unit: str, to_unit: str) -> ConversionRule | None:
    """Find a built-in rule converting exactly from_unit -> to_unit."""
    return _DIRECT_INDEX.get((from_unit, to_unit))


def _factor_to_hub(unit: str, hub: str) -> float | None:
    if unit == hub:
        return 1.0

    direct = find_direct_conversion(unit, hub)
    if direct and direct.category != "temperature":
        return direct.factor

    reverse = find_direct_conversion(hub, unit)
    if reverse and reverse.category != "temperature":
        return 1 / reverse.factor

    return None


def find_intermediate_conversion(from_unit: str, to_unit: str) -> tuple[float, str] | None:
    """
    Compose a conversion through a hub unit (e.g., lb -> g -> kg).

    Each leg may use a built-in rule directly or inverted.

    Args:
        from_unit: Canonical source unit
        to_unit: Canonical target unit

    Returns:
        Tuple of (total_factor, hub_unit), or None if no hub connects the units
    """
    for hub in INTERMEDIATE_UNITS:
        to_hub = _factor_to_hub(from_unit, hub)
        from_hub = _factor_to_hub(to_unit, hub)
        if to_hub is not None and from_hub is not None:
            return to_hub / from_hub, hub

    return None


def conversion_factor(from_unit: str, to_unit: str) -> float | None:
    """
    Get the multiplicative factor between two units using built-in rules only.

    Tries identity, direct, reverse and two-hop conversions. Temperature
    is never multiplicative, so temperature units return None.
    """
    from_unit = normalize_unit(from_unit)
    to_unit = normalize_unit(to_unit)

    if is_temperature_unit(from_unit) or is_temperature_unit(to_unit):
        return None
    if from_unit == to_unit:
        return 1.0

    direct = find_direct_conversion(from_unit, to_unit)
    if direct:
        return direct.factor

    reverse = find_direct_conversion(to_unit, from_unit)
    if reverse:
        return 1 / reverse.factor

    intermediate = find_intermediate_conversion(from_unit, to_unit)
    if intermediate:
        return intermediate[0]

    return None


def get_conversion_suggestions(unit: str) -> list[str]:
    """Get common target units for a unit (empty list if none are known)."""
    return list(CONVERSION_SUGGESTIONS.get(normalize_unit(unit), []))
