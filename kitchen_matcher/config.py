"""Configuration and tuning constants for Kitchen Matcher."""

import os
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# App directories
APP_NAME = "kitchen-matcher"
CONFIG_DIR = Path.home() / f".{APP_NAME}"
DATABASE_FILE = CONFIG_DIR / "kitchen.db"  # Match cache + custom conversions
CATALOG_FILE = CONFIG_DIR / "catalog.json"  # Inventory snapshot, keyed by user id

# Ensure config directory exists
CONFIG_DIR.mkdir(parents=True, exist_ok=True)

# Semantic matching endpoint (any OpenAI-compatible chat completions API)
SEMANTIC_BASE_URL = "https://openrouter.ai/api/v1"
SEMANTIC_MODEL = "anthropic/claude-sonnet-4"
SEMANTIC_MAX_TOKENS = 1024
SEMANTIC_TIMEOUT = 20.0  # seconds

# User whose catalog and rules the CLI works with unless --user is given
DEFAULT_USER_ID = "default"

# Matching defaults
DEFAULT_MIN_CONFIDENCE = 0.6
DEFAULT_MAX_RESULTS = 5
DEFAULT_BATCH_SIZE = 5

# Matches below this confidence should be flagged for human review
REVIEW_THRESHOLD = 0.7

# Confidence tuning knobs. Only an exact match may reach 1.0.
FUZZY_CONFIDENCE_CAP = 0.95
SYNONYM_BONUS = 0.2
SEMANTIC_CONFIDENCE_MULTIPLIER = 0.85
SEMANTIC_CONFIDENCE_CAP = 0.9

# Unit conversion confidences
DATABASE_CONVERSION_CONFIDENCE = 0.9
CALCULATED_CONVERSION_CONFIDENCE = 0.95
DENSITY_CONFIDENCE = 0.7
PIECE_WEIGHT_CONFIDENCE = 0.6

# Cached matches older than this are ignored (0 disables expiry)
CACHE_MAX_AGE_DAYS = 30


def get_semantic_api_key() -> str | None:
    """Get the API key for the semantic matching endpoint."""
    return os.getenv("KITCHEN_MATCHER_API_KEY") or os.getenv("OPENROUTER_API_KEY")


def get_semantic_model() -> str:
    """Get the model name used for semantic matching."""
    return os.getenv("KITCHEN_MATCHER_MODEL") or SEMANTIC_MODEL


def get_semantic_base_url() -> str:
    """Get the base URL of the chat completions API."""
    return (os.getenv("KITCHEN_MATCHER_BASE_URL") or SEMANTIC_BASE_URL).rstrip("/")


def get_cache_max_age() -> timedelta | None:
    """Get the maximum age of cached matches, or None if they never expire."""
    raw = os.getenv("KITCHEN_MATCHER_CACHE_MAX_AGE_DAYS")
    days: float = CACHE_MAX_AGE_DAYS
    if raw:
        try:
            days = float(raw)
        except ValueError:
            days = CACHE_MAX_AGE_DAYS

    if days <= 0:
        return None
    return timedelta(days=days)
