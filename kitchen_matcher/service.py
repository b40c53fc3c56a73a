"""Public facade over matching, conversion and their stores."""

import logging
from pathlib import Path
from typing import Any

from .batch import BatchCoordinator
from .cache import InMemoryMatchCache, MatchCacheStore, SQLiteMatchCache
from .catalog import InventoryCatalog, JsonCatalog
from .config import get_cache_max_age, get_semantic_api_key
from .converter import ConversionRequest, ConversionResult, UnitConverter
from .db import StoreError
from .density import DensityEstimator
from .matcher import IngredientMatcher
from .models import MatchCandidate, MatchOptions
from .rules import ConversionRuleStore, SQLiteRuleStore
from .semantic import ChatCompletionClient, SemanticMatchCapability, SemanticMatcher
from .units import ConversionRule, UnitCategory, get_unit_type, is_temperature_unit, normalize_unit

logger = logging.getLogger(__name__)


class IngredientService:
    """Entry point used by import workflows and the CLI."""

    def __init__(
        self,
        catalog: InventoryCatalog,
        *,
        cache: MatchCacheStore | None = None,
        rules: ConversionRuleStore | None = None,
        semantic: SemanticMatchCapability | None = None,
        density: DensityEstimator | None = None,
        batch_size: int | None = None,
        item_timeout: float | None = None,
    ):
        self.catalog = catalog
        self.cache = cache if cache is not None else InMemoryMatchCache()
        self.rules = rules
        self.matcher = IngredientMatcher(
            catalog,
            self.cache,
            SemanticMatcher(semantic) if semantic is not None else None,
        )
        self.converter = UnitConverter(rules, density)

        batch_options: dict[str, Any] = {"item_timeout": item_timeout}
        if batch_size is not None:
            batch_options["batch_size"] = batch_size
        self.batch = BatchCoordinator(self.matcher, self.converter, **batch_options)

    def close(self) -> None:
        """Close database connections held by the stores."""
        for store in (self.cache, self.rules):
            close = getattr(store, "close", None)
            if close is not None:
                close()

    # =========================================================================
    # Matching
    # =========================================================================

    async def match_ingredient(self, name: str, user_id: str, **opts: Any) -> list[MatchCandidate]:
        """
        Match one ingredient name to catalog items.

        Args:
            name: Ingredient name as written
            user_id: Owner of the catalog and cache
            **opts: min_confidence, max_results, enable_semantic, use_cache

        Returns:
            Ranked candidates (possibly empty)
        """
        return await self.matcher.match(name, MatchOptions(user_id=user_id, **opts))

    async def batch_match_ingredients(
        self,
        names: list[str],
        user_id: str,
        batch_size: int | None = None,
        **opts: Any,
    ) -> dict[str, list[MatchCandidate]]:
        """Match many ingredient names; see BatchCoordinator.batch_match."""
        cancel_event = opts.pop("cancel_event", None)
        options = MatchOptions(user_id=user_id, **opts)
        return await self.batch.batch_match(
            names, options, batch_size=batch_size, cancel_event=cancel_event
        )

    async def invalidate_catalog_item(self, user_id: str, catalog_item_id: str) -> int:
        """Forget cached matches pointing at a catalog item (after a rename or delete)."""
        removed = await self.cache.invalidate(user_id, catalog_item_id=catalog_item_id)
        logger.info(f"Invalidated {removed} cached matches for item {catalog_item_id!r}")
        return removed

    async def clear_match_cache(self, user_id: str) -> int:
        """Forget every cached match for a user."""
        removed = await self.cache.clear(user_id)
        logger.info(f"Cleared {removed} cached matches for user {user_id!r}")
        return removed

    # =========================================================================
    # Conversion
    # =========================================================================

    async def convert_unit(
        self,
        amount: float,
        from_unit: str,
        to_unit: str,
        user_id: str | None = None,
        ingredient: str | None = None,
    ) -> ConversionResult:
        """Convert a quantity; never raises for unknown units."""
        return await self.converter.convert(
            amount, from_unit, to_unit, user_id=user_id, ingredient=ingredient
        )

    async def batch_convert_units(
        self, requests: list[ConversionRequest], user_id: str | None = None
    ) -> list[ConversionResult]:
        """Convert many quantities, one result per request in input order."""
        return await self.batch.batch_convert(requests, user_id=user_id)

    async def store_custom_conversion(
        self,
        from_unit: str,
        to_unit: str,
        factor: float,
        user_id: str,
        notes: str | None = None,
    ) -> bool:
        """
        Store (or replace) a user's conversion rule, e.g. 1 case = 24 units.

        Args:
            from_unit: Source unit
            to_unit: Target unit
            factor: Multiplier from source to target (must be positive)
            user_id: Owner of the rule
            notes: Free-text explanation

        Returns:
            True if stored, False if the store failed

        Raises:
            ValueError: For a non-positive factor, identical units or temperature units
        """
        source = normalize_unit(from_unit)
        target = normalize_unit(to_unit)

        if not factor > 0:
            raise ValueError(f"Conversion factor must be positive, got {factor}")
        if source == target:
            raise ValueError(f"Cannot store a conversion from {source} to itself")
        if is_temperature_unit(source) or is_temperature_unit(target):
            raise ValueError("Temperature conversions use a fixed formula and cannot be stored")
        if self.rules is None:
            raise ValueError("No conversion rule store is configured")

        rule = ConversionRule(
            from_unit=source,
            to_unit=target,
            factor=factor,
            category=_infer_category(source, target),
            user_id=user_id,
            notes=notes,
        )
        try:
            await self.rules.upsert(rule)
        except StoreError as e:
            logger.error(f"Failed to store conversion {source} -> {target}: {e}")
            return False

        logger.info(f"Stored custom conversion: {source} -> {target} ({factor}x)")
        return True

    async def deactivate_custom_conversion(self, from_unit: str, to_unit: str, user_id: str) -> bool:
        """Deactivate a user's rule. Returns True if an active rule was found."""
        if self.rules is None:
            return False
        try:
            return await self.rules.deactivate(normalize_unit(from_unit), normalize_unit(to_unit), user_id)
        except StoreError as e:
            logger.error(f"Failed to deactivate conversion {from_unit} -> {to_unit}: {e}")
            return False

    async def list_custom_conversions(self, user_id: str) -> list[ConversionRule]:
        """List the rules visible to a user (their own plus global ones)."""
        if self.rules is None:
            return []
        return await self.rules.list_rules(user_id)


def _infer_category(source: str, target: str) -> UnitCategory:
    for unit in (source, target):
        unit_type = get_unit_type(unit)
        if unit_type != "unknown":
            return unit_type
    # Packaging units such as "case" or "bag" count items
    return "count"


def create_service(
    catalog_path: Path | str | None = None,
    db_path: Path | str | None = None,
    *,
    api_key: str | None = None,
    enable_semantic: bool = True,
) -> IngredientService:
    """
    Wire a service from configuration.

    Args:
        catalog_path: JSON catalog file (defaults to CATALOG_FILE)
        db_path: SQLite database (defaults to DATABASE_FILE)
        api_key: Semantic API key (defaults to the environment)
        enable_semantic: Set False to never call the semantic service

    Returns:
        IngredientService backed by the JSON catalog and SQLite stores
    """
    semantic: SemanticMatchCapability | None = None
    key = api_key or get_semantic_api_key()
    if enable_semantic and key:
        semantic = ChatCompletionClient(key)
    elif enable_semantic:
        logger.debug("No semantic API key configured; semantic matching disabled")

    return IngredientService(
        JsonCatalog(catalog_path),
        cache=SQLiteMatchCache(db_path, max_age=get_cache_max_age()),
        rules=SQLiteRuleStore(db_path),
        semantic=semantic,
    )
