"""Tests for the matching orchestrator."""

import pytest

from kitchen_matcher.cache import CachedMatchEntry
from kitchen_matcher.matcher import IngredientMatcher, MatchCandidate, MatchOptions, rank_candidates
from kitchen_matcher.semantic import SemanticMatcher


def options(user, **kwargs) -> MatchOptions:
    return MatchOptions(user_id=user, **kwargs)


class CountingCompletion:
    """Semantic capability that records how often it was asked."""

    def __init__(self, reply='{"matches": []}'):
        self.reply = reply
        self.calls = 0

    async def complete(self, prompt: str) -> str:
        self.calls += 1
        return self.reply


class TestMatchOptions:
    """Tests for MatchOptions validation."""

    def test_defaults(self):
        opts = MatchOptions(user_id="u")
        assert opts.min_confidence == 0.6
        assert opts.max_results == 5
        assert opts.enable_semantic is True
        assert opts.use_cache is True

    def test_invalid_max_results(self):
        with pytest.raises(ValueError):
            MatchOptions(user_id="u", max_results=0)
        with pytest.raises(ValueError):
            MatchOptions(user_id="u", max_results=-3)

    def test_invalid_min_confidence(self):
        with pytest.raises(ValueError):
            MatchOptions(user_id="u", min_confidence=1.5)
        with pytest.raises(ValueError):
            MatchOptions(user_id="u", min_confidence=-0.1)


class TestMatchCandidate:
    """Tests for MatchCandidate."""

    def test_needs_review(self):
        assert MatchCandidate("1", "Milk", 0.65, "fuzzy").needs_review
        assert not MatchCandidate("1", "Milk", 0.7, "fuzzy").needs_review

    def test_to_dict(self):
        data = MatchCandidate("1", "Milk", 0.95, "fuzzy", "Contains match").to_dict()
        assert data == {
            "catalog_item_id": "1",
            "catalog_item_name": "Milk",
            "confidence": 0.95,
            "match_type": "fuzzy",
            "reason": "Contains match",
            "needs_review": False,
        }


class TestRankCandidates:
    """Tests for rank_candidates function."""

    def test_sorted_unique_truncated(self):
        ranked = rank_candidates(
            [
                MatchCandidate("a", "A", 0.7, "fuzzy"),
                MatchCandidate("b", "B", 0.9, "fuzzy"),
                MatchCandidate("a", "A", 0.8, "semantic"),
                MatchCandidate("c", "C", 0.9, "fuzzy"),
            ],
            max_results=2,
        )
        # stable: b before c at equal confidence
        assert [c.catalog_item_id for c in ranked] == ["b", "c"]

    def test_duplicate_keeps_best(self):
        ranked = rank_candidates(
            [MatchCandidate("a", "A", 0.7, "fuzzy"), MatchCandidate("a", "A", 0.8, "semantic")], 5
        )
        assert len(ranked) == 1
        assert ranked[0].confidence == 0.8


class TestStringMatching:
    """Exact and fuzzy stages."""

    @pytest.mark.asyncio
    async def test_chicken_matches_chicken_breast(self, catalog, user):
        matches = await IngredientMatcher(catalog).match("chicken", options(user))

        assert matches[0].catalog_item_id == "1"
        assert matches[0].catalog_item_name == "Chicken Breast, Boneless"
        assert matches[0].match_type == "fuzzy"
        assert matches[0].confidence >= 0.6

    @pytest.mark.asyncio
    async def test_exact_match(self, catalog, user):
        matches = await IngredientMatcher(catalog).match("Heavy Cream", options(user))

        assert matches[0].catalog_item_id == "12"
        assert matches[0].confidence == 1.0
        assert matches[0].match_type == "exact"
        assert matches[0].reason == "Exact match"

    @pytest.mark.asyncio
    async def test_exact_match_after_normalization(self, catalog, user):
        matches = await IngredientMatcher(catalog).match("fresh garlic, minced", options(user))
        assert matches[0].catalog_item_id == "10"
        assert matches[0].match_type == "exact"

    @pytest.mark.asyncio
    async def test_exact_match_on_brand(self, catalog, user):
        matches = await IngredientMatcher(catalog).match("Land O'Lakes", options(user))
        assert matches[0].catalog_item_id == "11"
        assert matches[0].confidence == 1.0

    @pytest.mark.asyncio
    async def test_exact_match_is_deterministic(self, catalog, user):
        matcher = IngredientMatcher(catalog)
        first = await matcher.match("Heavy Cream", options(user, use_cache=False))
        second = await matcher.match("Heavy Cream", options(user, use_cache=False))
        assert first == second

    @pytest.mark.asyncio
    async def test_fuzzy_never_reaches_one(self, catalog, user):
        matches = await IngredientMatcher(catalog).match("tomato", options(user))
        assert matches[0].catalog_item_id == "5"
        assert matches[0].confidence == 0.95

    @pytest.mark.asyncio
    async def test_results_sorted_unique_and_bounded(self, catalog, user):
        matches = await IngredientMatcher(catalog).match(
            "sugar", options(user, min_confidence=0.3, max_results=3)
        )

        assert 0 < len(matches) <= 3
        ids = [m.catalog_item_id for m in matches]
        assert len(ids) == len(set(ids))
        confidences = [m.confidence for m in matches]
        assert confidences == sorted(confidences, reverse=True)
        assert all(m.confidence >= 0.3 for m in matches)

    @pytest.mark.asyncio
    async def test_no_match(self, catalog, user):
        assert await IngredientMatcher(catalog).match("xyzfoo", options(user)) == []

    @pytest.mark.asyncio
    async def test_empty_name(self, catalog, user):
        assert await IngredientMatcher(catalog).match("  fresh  ", options(user)) == []

    @pytest.mark.asyncio
    async def test_catalog_failure_gives_no_matches(self, failing_catalog, user):
        assert await IngredientMatcher(failing_catalog).match("chicken", options(user)) == []


class TestSemanticStage:
    """Semantic stage integration."""

    @pytest.mark.asyncio
    async def test_semantic_fills_gaps(self, catalog, user, stub_completion):
        capability = stub_completion(
            {"matches": [{"catalog_item_id": "4", "confidence": 0.95, "reasoning": "Prawns are shrimp"}]}
        )
        matcher = IngredientMatcher(catalog, semantic=SemanticMatcher(capability))

        matches = await matcher.match("tiger prawns", options(user))

        assert [m.catalog_item_id for m in matches] == ["4"]
        assert matches[0].match_type == "semantic"
        assert matches[0].confidence == pytest.approx(0.8075)
        assert matches[0].confidence <= 0.9

    @pytest.mark.asyncio
    async def test_semantic_disabled(self, catalog, user):
        capability = CountingCompletion()
        matcher = IngredientMatcher(catalog, semantic=SemanticMatcher(capability))

        await matcher.match("tiger prawns", options(user, enable_semantic=False))
        assert capability.calls == 0

    @pytest.mark.asyncio
    async def test_semantic_skipped_when_enough_matches(self, catalog, user):
        capability = CountingCompletion()
        matcher = IngredientMatcher(catalog, semantic=SemanticMatcher(capability))

        await matcher.match("Heavy Cream", options(user, max_results=1))
        assert capability.calls == 0

    @pytest.mark.asyncio
    async def test_semantic_does_not_duplicate(self, catalog, user, stub_completion):
        capability = stub_completion({"matches": [{"catalog_item_id": "1", "confidence": 1.0}]})
        matcher = IngredientMatcher(catalog, semantic=SemanticMatcher(capability))

        matches = await matcher.match("chicken", options(user))

        assert [m.catalog_item_id for m in matches].count("1") == 1
        assert matches[0].match_type == "fuzzy"

    @pytest.mark.asyncio
    async def test_semantic_failure_degrades(self, catalog, user, failing_completion):
        matcher = IngredientMatcher(catalog, semantic=SemanticMatcher(failing_completion))

        matches = await matcher.match("chicken", options(user))
        assert matches[0].catalog_item_id == "1"
        assert failing_completion.calls == 1


class TestCaching:
    """Cache read and write behaviour."""

    @pytest.mark.asyncio
    async def test_results_are_cached(self, catalog, cache, clock, user):
        await IngredientMatcher(catalog, cache, clock=clock).match("chicken", options(user))

        entries = await cache.get(user, "chicken")
        assert entries[0].catalog_item_id == "1"
        assert entries[0].match_type == "fuzzy"
        assert entries[0].match_metadata["catalog_item_name"] == "Chicken Breast, Boneless"
        assert entries[0].match_metadata["cached_at"] == "2026-03-01T12:00:00"

    @pytest.mark.asyncio
    async def test_cache_short_circuits(self, catalog, cache, user):
        capability = CountingCompletion()
        matcher = IngredientMatcher(catalog, cache, SemanticMatcher(capability))
        await cache.upsert(
            [CachedMatchEntry(user, "tiger prawn", "4", 0.8, "semantic", {"reason": "Prawns are shrimp"})]
        )

        matches = await matcher.match("Tiger Prawns", options(user))

        assert len(matches) == 1
        assert matches[0].catalog_item_id == "4"
        assert matches[0].catalog_item_name == "Shrimp, Large, Peeled"
        assert matches[0].match_type == "cached"
        assert matches[0].reason == "Prawns are shrimp"
        assert capability.calls == 0

    @pytest.mark.asyncio
    async def test_second_match_comes_from_cache(self, catalog, cache, user):
        matcher = IngredientMatcher(catalog, cache)
        first = await matcher.match("chicken", options(user))
        second = await matcher.match("chicken", options(user))

        assert [m.catalog_item_id for m in second] == [m.catalog_item_id for m in first]
        assert all(m.match_type == "cached" for m in second)

    @pytest.mark.asyncio
    async def test_cached_entries_below_threshold_ignored(self, catalog, cache, user):
        await cache.upsert([CachedMatchEntry(user, "chicken", "13", 0.4, "semantic")])

        matches = await IngredientMatcher(catalog, cache).match("chicken", options(user))
        assert matches[0].catalog_item_id == "1"
        assert matches[0].match_type == "fuzzy"

    @pytest.mark.asyncio
    async def test_stale_entries_ignored(self, catalog, cache, user):
        await cache.upsert([CachedMatchEntry(user, "chicken", "999", 0.9, "fuzzy")])

        matches = await IngredientMatcher(catalog, cache).match("chicken", options(user))
        assert matches[0].catalog_item_id == "1"
        assert "999" not in [m.catalog_item_id for m in matches]

    @pytest.mark.asyncio
    async def test_cache_names_used_when_catalog_down(self, failing_catalog, cache, user):
        await cache.upsert(
            [CachedMatchEntry(user, "chicken", "1", 0.95, "fuzzy", {"catalog_item_name": "Chicken Breast"})]
        )

        matches = await IngredientMatcher(failing_catalog, cache).match("chicken", options(user))
        assert matches[0].catalog_item_name == "Chicken Breast"
        assert matches[0].match_type == "cached"

    @pytest.mark.asyncio
    async def test_use_cache_false(self, catalog, cache, user):
        await cache.upsert([CachedMatchEntry(user, "chicken", "13", 0.9, "semantic")])

        matches = await IngredientMatcher(catalog, cache).match("chicken", options(user, use_cache=False))

        assert matches[0].catalog_item_id == "1"
        assert [e.catalog_item_id for e in await cache.get(user, "chicken")] == ["13"]

    @pytest.mark.asyncio
    async def test_empty_results_not_cached(self, catalog, cache, user):
        await IngredientMatcher(catalog, cache).match("xyzfoo", options(user))
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_cache_write_failure_does_not_change_result(self, catalog, failing_cache, user):
        expected = await IngredientMatcher(catalog).match("chicken", options(user))
        matches = await IngredientMatcher(catalog, failing_cache).match("chicken", options(user))
        assert matches == expected
