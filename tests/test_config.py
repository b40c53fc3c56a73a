"""Tests for configuration getters."""

from datetime import timedelta

from kitchen_matcher import config


class TestSemanticSettings:
    """Tests for the semantic endpoint settings."""

    def test_api_key_precedence(self, monkeypatch):
        monkeypatch.setenv("KITCHEN_MATCHER_API_KEY", "own-key")
        monkeypatch.setenv("OPENROUTER_API_KEY", "router-key")
        assert config.get_semantic_api_key() == "own-key"

    def test_api_key_fallback(self, monkeypatch):
        monkeypatch.delenv("KITCHEN_MATCHER_API_KEY", raising=False)
        monkeypatch.setenv("OPENROUTER_API_KEY", "router-key")
        assert config.get_semantic_api_key() == "router-key"

    def test_no_api_key(self, monkeypatch):
        monkeypatch.delenv("KITCHEN_MATCHER_API_KEY", raising=False)
        monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
        assert config.get_semantic_api_key() is None

    def test_model(self, monkeypatch):
        monkeypatch.delenv("KITCHEN_MATCHER_MODEL", raising=False)
        assert config.get_semantic_model() == config.SEMANTIC_MODEL

        monkeypatch.setenv("KITCHEN_MATCHER_MODEL", "openai/gpt-4o-mini")
        assert config.get_semantic_model() == "openai/gpt-4o-mini"

    def test_base_url_strips_slash(self, monkeypatch):
        monkeypatch.setenv("KITCHEN_MATCHER_BASE_URL", "http://localhost:11434/v1/")
        assert config.get_semantic_base_url() == "http://localhost:11434/v1"


class TestCacheMaxAge:
    """Tests for get_cache_max_age."""

    def test_default(self, monkeypatch):
        monkeypatch.delenv("KITCHEN_MATCHER_CACHE_MAX_AGE_DAYS", raising=False)
        assert config.get_cache_max_age() == timedelta(days=30)

    def test_custom(self, monkeypatch):
        monkeypatch.setenv("KITCHEN_MATCHER_CACHE_MAX_AGE_DAYS", "7")
        assert config.get_cache_max_age() == timedelta(days=7)

    def test_zero_disables_expiry(self, monkeypatch):
        monkeypatch.setenv("KITCHEN_MATCHER_CACHE_MAX_AGE_DAYS", "0")
        assert config.get_cache_max_age() is None

    def test_invalid_uses_default(self, monkeypatch):
        monkeypatch.setenv("KITCHEN_MATCHER_CACHE_MAX_AGE_DAYS", "abc")
        assert config.get_cache_max_age() == timedelta(days=30)


class TestConstants:
    """Sanity checks on tuning constants."""

    def test_caps_keep_exact_matches_on_top(self):
        assert config.FUZZY_CONFIDENCE_CAP < 1.0
        assert config.SEMANTIC_CONFIDENCE_CAP < 1.0
        assert config.REVIEW_THRESHOLD > config.DEFAULT_MIN_CONFIDENCE

    def test_config_dir_exists(self):
        assert config.CONFIG_DIR.is_dir()
