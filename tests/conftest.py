"""Shared fixtures for kitchen-matcher tests."""

import json
from datetime import datetime

import pytest
import respx

from kitchen_matcher.cache import InMemoryMatchCache
from kitchen_matcher.catalog import CatalogItem, InMemoryCatalog

USER = "restaurant-1"
FIXED_NOW = datetime(2026, 3, 1, 12, 0, 0)

# A small restaurant inventory
SAMPLE_ITEMS = [
    ("1", "Chicken Breast, Boneless", None, "Poultry"),
    ("2", "Ground Beef, 80/20", None, "Meat"),
    ("3", "Salmon Fillet, Fresh", None, "Seafood"),
    ("4", "Shrimp, Large, Peeled", None, "Seafood"),
    ("5", "Tomatoes, Roma", "Local Farm", "Vegetables"),
    ("6", "Onions, Yellow", None, "Vegetables"),
    ("7", "Bell Peppers, Red", None, "Vegetables"),
    ("8", "Carrots, Organic", None, "Vegetables"),
    ("9", "Potatoes, Russet", None, "Vegetables"),
    ("10", "Garlic, Fresh", None, "Vegetables"),
    ("11", "Butter, Unsalted", "Land O Lakes", "Dairy"),
    ("12", "Heavy Cream", None, "Dairy"),
    ("13", "Milk, Whole", None, "Dairy"),
    ("14", "Cheese, Cheddar, Sharp", None, "Dairy"),
    ("15", "Parmesan Cheese, Grated", None, "Dairy"),
    ("16", "All-Purpose Flour", None, "Baking"),
    ("17", "Sugar, White Granulated", None, "Baking"),
    ("18", "Brown Sugar, Light", None, "Baking"),
    ("19", "Olive Oil, Extra Virgin", None, "Oils"),
    ("20", "Salt, Kosher", None, "Seasonings"),
    ("21", "Black Pepper, Ground", None, "Seasonings"),
    ("22", "Vanilla Extract, Pure", None, "Extracts"),
    ("23", "Basil, Fresh", None, "Herbs"),
    ("24", "Oregano, Dried", None, "Spices"),
    ("25", "Thyme, Fresh", None, "Herbs"),
    ("26", "Paprika, Smoked", None, "Spices"),
    ("27", "Chocolate Chips, Semi-Sweet", None, "Baking"),
    ("28", "Baking Soda", None, "Baking"),
    ("29", "Baking Powder", None, "Baking"),
    ("30", "Eggs, Large Grade A", None, "Dairy"),
]


class StubCompletion:
    """Semantic capability returning a canned reply and recording prompts."""

    def __init__(self, reply: str | dict = '{"matches": []}'):
        self.reply = reply if isinstance(reply, str) else json.dumps(reply)
        self.prompts: list[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.reply


class FailingCompletion:
    """Semantic capability that always fails."""

    def __init__(self):
        self.calls = 0

    async def complete(self, prompt: str) -> str:
        self.calls += 1
        raise RuntimeError("semantic service unavailable")


class FailingCatalog:
    """Catalog whose backend is down."""

    async def list_active(self, user_id: str) -> list[CatalogItem]:
        raise ConnectionError("inventory store unreachable")


class FailingCache(InMemoryMatchCache):
    """Cache whose writes fail (reads work)."""

    async def upsert(self, entries):
        raise ConnectionError("cache store unreachable")


@pytest.fixture
def mock_httpx():
    """Activate respx mock for HTTP requests."""
    with respx.mock(assert_all_called=False) as respx_mock:
        yield respx_mock


@pytest.fixture
def sample_items() -> list[CatalogItem]:
    """The sample restaurant inventory."""
    return [
        CatalogItem(id=item_id, name=name, brand=brand, category=category)
        for item_id, name, brand, category in SAMPLE_ITEMS
    ]


@pytest.fixture
def catalog(sample_items) -> InMemoryCatalog:
    """In-memory catalog holding the sample inventory for every user."""
    return InMemoryCatalog(sample_items)


@pytest.fixture
def clock():
    """Clock frozen at FIXED_NOW."""
    return lambda: FIXED_NOW


@pytest.fixture
def cache(clock) -> InMemoryMatchCache:
    """Empty in-memory match cache."""
    return InMemoryMatchCache(clock=clock)


@pytest.fixture
def catalog_file(tmp_path, sample_items):
    """JSON catalog file holding the sample inventory for USER."""
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({USER: [item.to_dict() for item in sample_items]}))
    return path


@pytest.fixture
def db_path(tmp_path):
    """Path to a fresh SQLite database."""
    return tmp_path / "kitchen.db"


@pytest.fixture
def user() -> str:
    """User id that owns the sample catalog."""
    return USER


@pytest.fixture
def stub_completion():
    """Factory for semantic capabilities returning a canned reply."""
    return StubCompletion


@pytest.fixture
def failing_completion() -> FailingCompletion:
    return FailingCompletion()


@pytest.fixture
def failing_catalog() -> FailingCatalog:
    return FailingCatalog()


@pytest.fixture
def failing_cache(clock) -> FailingCache:
    return FailingCache(clock=clock)
