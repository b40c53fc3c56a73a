"""Unit conversion pipeline.

Resolution order, first success wins:

    same unit -> temperature formula -> built-in table (direct, reverse)
    -> custom rules -> two-hop via a hub unit -> ingredient density estimate

A conversion never raises for unknown units; it returns a failed result
with an explanatory note instead.
"""

import logging
from dataclasses import dataclass
from typing import Any, Literal

from .config import CALCULATED_CONVERSION_CONFIDENCE, DATABASE_CONVERSION_CONFIDENCE
from .density import DensityEstimator
from .rules import ConversionRuleStore
from .units import (
    convert_temperature,
    find_direct_conversion,
    find_intermediate_conversion,
    get_unit_type,
    is_temperature_unit,
    normalize_unit,
    temperature_formula,
)

logger = logging.getLogger(__name__)

ConversionType = Literal["direct", "database", "calculated", "estimated"]


@dataclass
class ConversionResult:
    """Outcome of a unit conversion."""

    success: bool
    converted_amount: float
    from_unit: str
    to_unit: str
    conversion_factor: float
    conversion_type: ConversionType
    confidence: float
    notes: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "success": self.success,
            "converted_amount": self.converted_amount,
            "from_unit": self.from_unit,
            "to_unit": self.to_unit,
            "conversion_factor": self.conversion_factor,
            "conversion_type": self.conversion_type,
            "confidence": self.confidence,
            "notes": self.notes,
        }


@dataclass
class ConversionRequest:
    """One quantity to convert, e.g. as part of a batch."""

    amount: float
    from_unit: str
    to_unit: str
    ingredient: str | None = None


def failed_conversion(amount: float, from_unit: str, to_unit: str, notes: str) -> ConversionResult:
    """Build an unsuccessful result that leaves the amount unchanged."""
    return ConversionResult(
        success=False,
        converted_amount=amount,
        from_unit=from_unit,
        to_unit=to_unit,
        conversion_factor=0.0,
        conversion_type="direct",
        confidence=0.0,
        notes=notes,
    )


class UnitConverter:
    """Convert quantities between units, using custom rules and density data when needed."""

    def __init__(
        self,
        rules: ConversionRuleStore | None = None,
        density: DensityEstimator | None = None,
    ):
        self.rules = rules
        self.density = density if density is not None else DensityEstimator()

    async def convert(
        self,
        amount: float,
        from_unit: str,
        to_unit: str,
        *,
        user_id: str | None = None,
        ingredient: str | None = None,
    ) -> ConversionResult:
        """
        Convert an amount from one unit to another.

        Args:
            amount: Quantity to convert
            from_unit: Source unit (any common spelling)
            to_unit: Target unit (any common spelling)
            user_id: User whose custom rules apply (global rules always apply)
            ingredient: Ingredient name, enables density estimates (e.g. cups -> grams)

        Returns:
            ConversionResult; success=False with notes when no path exists
        """
        source = normalize_unit(from_unit)
        target = normalize_unit(to_unit)

        def converted(factor: float, kind: ConversionType, confidence: float, notes: str | None = None):
            return ConversionResult(
                success=True,
                converted_amount=amount * factor,
                from_unit=source,
                to_unit=target,
                conversion_factor=factor,
                conversion_type=kind,
                confidence=confidence,
                notes=notes,
            )

        if source == target:
            return converted(1.0, "direct", 1.0)

        if is_temperature_unit(source) or is_temperature_unit(target):
            temperature = convert_temperature(amount, source, target)
            if temperature is None:
                return failed_conversion(
                    amount,
                    source,
                    target,
                    f"Cannot convert between {get_unit_type(source)} and {get_unit_type(target)}",
                )
            return ConversionResult(
                success=True,
                converted_amount=temperature,
                from_unit=source,
                to_unit=target,
                conversion_factor=0.0,
                conversion_type="direct",
                confidence=1.0,
                notes=temperature_formula(source, target),
            )

        direct = find_direct_conversion(source, target)
        if direct:
            return converted(direct.factor, "direct", 1.0, direct.notes)

        reverse = find_direct_conversion(target, source)
        if reverse:
            return converted(1 / reverse.factor, "direct", 1.0, reverse.notes)

        custom = await self._custom_factor(source, target, user_id)
        if custom is not None:
            factor, notes = custom
            return converted(factor, "database", DATABASE_CONVERSION_CONFIDENCE, notes)

        intermediate = find_intermediate_conversion(source, target)
        if intermediate:
            factor, hub = intermediate
            return converted(factor, "calculated", CALCULATED_CONVERSION_CONFIDENCE, f"Via {hub}")

        if ingredient:
            estimate = self.density.estimate(source, target, ingredient)
            if estimate:
                return converted(estimate.factor, "estimated", estimate.confidence, estimate.notes)

        logger.info(f"No conversion available from {source} to {target}")
        return failed_conversion(
            amount, source, target, f"No conversion available from {source} to {target}"
        )

    async def _custom_factor(
        self, source: str, target: str, user_id: str | None
    ) -> tuple[float, str | None] | None:
        """Look up a stored rule, forward first, then the inverted reverse rule."""
        if self.rules is None:
            return None

        try:
            rule = await self.rules.get(source, target, user_id)
            if rule and rule.factor > 0:
                return rule.factor, rule.notes

            rule = await self.rules.get(target, source, user_id)
            if rule and rule.factor > 0:
                return 1 / rule.factor, rule.notes
        except Exception as e:
            logger.warning(f"Conversion rule lookup failed for {source} -> {target}: {e}")

        return None
