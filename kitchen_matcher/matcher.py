"""Ingredient to catalog item matching.

Stages run cheapest first and stop as soon as enough candidates are found:

    cache -> exact -> fuzzy -> semantic

Store, catalog and semantic failures are logged and treated as "no
candidates" for that stage, so a match never fails outright.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from .cache import CachedMatchEntry, MatchCacheStore
from .catalog import CatalogItem, InventoryCatalog
from .config import FUZZY_CONFIDENCE_CAP
from .models import MatchCandidate, MatchOptions, MatchType
from .normalizer import normalize_ingredient_name
from .scorer import match_reason, score_similarity
from .semantic import SemanticMatcher

logger = logging.getLogger(__name__)

__all__ = ["IngredientMatcher", "MatchCandidate", "MatchOptions", "MatchType", "rank_candidates"]


def rank_candidates(candidates: list[MatchCandidate], max_results: int) -> list[MatchCandidate]:
    """Stable-sort by confidence (highest first), drop repeated ids and truncate."""
    ordered = sorted(candidates, key=lambda c: c.confidence, reverse=True)
    seen: set[str] = set()
    unique = []
    for candidate in ordered:
        if candidate.catalog_item_id in seen:
            continue
        seen.add(candidate.catalog_item_id)
        unique.append(candidate)

    return unique[:max_results]


class IngredientMatcher:
    """Match free-text ingredient names to a user's catalog items."""

    def __init__(
        self,
        catalog: InventoryCatalog,
        cache: MatchCacheStore | None = None,
        semantic: SemanticMatcher | None = None,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.catalog = catalog
        self.cache = cache
        self.semantic = semantic
        self._clock = clock

    async def match(self, name: str, options: MatchOptions) -> list[MatchCandidate]:
        """
        Find the most probable catalog items for an ingredient name.

        Args:
            name: Ingredient name as written, e.g. "Fresh Tomatoes, diced"
            options: User and matching thresholds

        Returns:
            Up to options.max_results candidates, best first. An empty list
            means nothing matched.
        """
        normalized = normalize_ingredient_name(name)
        if not normalized:
            logger.debug(f"Nothing to match after normalizing {name!r}")
            return []

        catalog_items, catalog_ok = await self._load_catalog(options.user_id)

        if options.use_cache and self.cache is not None:
            cached = await self._cached_matches(normalized, options, catalog_items, catalog_ok)
            if cached:
                logger.info(f"Found {len(cached)} cached matches for {normalized!r}")
                return rank_candidates(cached, options.max_results)

        matches = self._exact_matches(normalized, catalog_items)

        if len(matches) < options.max_results:
            present = {m.catalog_item_id for m in matches}
            fuzzy = self._fuzzy_matches(normalized, catalog_items, options.min_confidence)
            matches.extend(m for m in fuzzy if m.catalog_item_id not in present)

        if options.enable_semantic and self.semantic is not None and len(matches) < options.max_results:
            present = {m.catalog_item_id for m in matches}
            semantic = await self.semantic.match(
                name, normalized, catalog_items, options.min_confidence
            )
            matches.extend(m for m in semantic if m.catalog_item_id not in present)

        top = rank_candidates(matches, options.max_results)

        if options.use_cache and self.cache is not None and top:
            await self._store_matches(normalized, top, options.user_id)

        logger.info(
            f"Found {len(top)} matches for {normalized!r} "
            f"with confidence >= {options.min_confidence}"
        )
        return top

    async def _load_catalog(self, user_id: str) -> tuple[list[CatalogItem], bool]:
        try:
            return await self.catalog.list_active(user_id), True
        except Exception as e:
            logger.warning(f"Could not load catalog for user {user_id!r}: {e}")
            return [], False

    async def _cached_matches(
        self,
        normalized: str,
        options: MatchOptions,
        catalog_items: list[CatalogItem],
        catalog_ok: bool,
    ) -> list[MatchCandidate]:
        try:
            entries = await self.cache.get(options.user_id, normalized)
        except Exception as e:
            logger.warning(f"Match cache lookup failed for {normalized!r}: {e}")
            return []

        names = {item.id: item.name for item in catalog_items}
        results = []
        for entry in entries:
            if entry.confidence < options.min_confidence:
                continue

            if catalog_ok:
                # Item was deleted, deactivated or is otherwise gone
                if entry.catalog_item_id not in names:
                    logger.debug(f"Ignoring stale cache entry {entry.catalog_item_id!r}")
                    continue
                item_name = names[entry.catalog_item_id]
            else:
                item_name = entry.match_metadata.get("catalog_item_name") or entry.catalog_item_id

            results.append(
                MatchCandidate(
                    catalog_item_id=entry.catalog_item_id,
                    catalog_item_name=item_name,
                    confidence=entry.confidence,
                    match_type="cached",
                    reason=entry.match_metadata.get("reason"),
                )
            )

        return results

    def _exact_matches(self, normalized: str, catalog_items: list[CatalogItem]) -> list[MatchCandidate]:
        matches = []
        for item in catalog_items:
            names = [normalize_ingredient_name(item.name)]
            if item.brand:
                names.append(normalize_ingredient_name(item.brand))
            if normalized in names:
                matches.append(
                    MatchCandidate(
                        catalog_item_id=item.id,
                        catalog_item_name=item.name,
                        confidence=1.0,
                        match_type="exact",
                        reason=match_reason(1.0),
                    )
                )
        return matches

    def _fuzzy_matches(
        self, normalized: str, catalog_items: list[CatalogItem], min_confidence: float
    ) -> list[MatchCandidate]:
        matches = []
        for item in catalog_items:
            score = score_similarity(normalized, normalize_ingredient_name(item.name))
            if item.brand:
                score = max(score, score_similarity(normalized, normalize_ingredient_name(item.brand)))

            # Only an exact match may reach 1.0
            confidence = min(score, FUZZY_CONFIDENCE_CAP)
            if confidence >= min_confidence:
                matches.append(
                    MatchCandidate(
                        catalog_item_id=item.id,
                        catalog_item_name=item.name,
                        confidence=confidence,
                        match_type="fuzzy",
                        reason=match_reason(confidence),
                    )
                )

        matches.sort(key=lambda m: m.confidence, reverse=True)
        return matches

    async def _store_matches(self, normalized: str, matches: list[MatchCandidate], user_id: str) -> None:
        now = self._clock()
        entries = [
            CachedMatchEntry(
                user_id=user_id,
                normalized_name=normalized,
                catalog_item_id=m.catalog_item_id,
                confidence=m.confidence,
                match_type=m.match_type,
                match_metadata={
                    "catalog_item_name": m.catalog_item_name,
                    "reason": m.reason,
                    "cached_at": now.isoformat(),
                },
                last_updated=now,
            )
            for m in matches
        ]
        try:
            await self.cache.upsert(entries)
        except Exception as e:
            logger.warning(f"Failed to cache matches for {normalized!r}: {e}")
