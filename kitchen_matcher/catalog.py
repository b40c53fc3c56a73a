"""Inventory catalog: the items an ingredient can be matched against."""

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from .config import CATALOG_FILE

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Exception raised when the inventory catalog cannot be loaded."""

    pass


@dataclass
class CatalogItem:
    """A purchasable inventory item."""

    id: str
    name: str
    brand: str | None = None
    category: str | None = None
    is_active: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CatalogItem":
        """Create from a dictionary (accepts item_name/category_name aliases)."""
        item_id = data.get("id")
        name = data.get("name") or data.get("item_name")
        if item_id is None or not name:
            raise ValueError(f"Catalog item needs an id and a name: {data!r}")

        return cls(
            id=str(item_id),
            name=str(name),
            brand=data.get("brand") or None,
            category=data.get("category") or data.get("category_name") or None,
            is_active=bool(data.get("is_active", True)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "brand": self.brand,
            "category": self.category,
            "is_active": self.is_active,
        }


class InventoryCatalog(Protocol):
    """Source of a user's active catalog items."""

    async def list_active(self, user_id: str) -> list[CatalogItem]: ...


class InMemoryCatalog:
    """Catalog held in memory, either shared by all users or per user."""

    def __init__(
        self,
        items: list[CatalogItem] | None = None,
        *,
        by_user: dict[str, list[CatalogItem]] | None = None,
    ) -> None:
        self.items = list(items or [])
        self.by_user = dict(by_user or {})

    async def list_active(self, user_id: str) -> list[CatalogItem]:
        items = self.by_user.get(user_id, self.items)
        return [item for item in items if item.is_active]


class JsonCatalog:
    """
    Catalog read from a JSON file.

    The file holds either a list of items shared by every user, or an object
    mapping user ids to item lists:

        {"restaurant-1": [{"id": "1", "name": "Heavy Cream", "category": "Dairy"}]}

    The file is re-read on every call so edits show up without a restart.
    """

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path is not None else CATALOG_FILE

    def _load(self, user_id: str) -> list[CatalogItem]:
        if not self.path.exists():
            raise CatalogError(f"Catalog file not found: {self.path}")

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise CatalogError(f"Failed to read catalog {self.path}: {e}") from e

        if isinstance(data, dict):
            raw_items = data.get(user_id, [])
        elif isinstance(data, list):
            raw_items = data
        else:
            raise CatalogError(f"Catalog {self.path} must hold a list or an object")

        items = []
        for raw in raw_items:
            if not isinstance(raw, dict):
                logger.warning(f"Skipping malformed catalog entry in {self.path}: {raw!r}")
                continue
            try:
                items.append(CatalogItem.from_dict(raw))
            except ValueError as e:
                logger.warning(f"Skipping catalog entry: {e}")

        return items

    async def list_active(self, user_id: str) -> list[CatalogItem]:
        """
        Load the user's active items.

        Raises:
            CatalogError: If the file is missing or malformed
        """
        items = await asyncio.to_thread(self._load, user_id)
        return [item for item in items if item.is_active]
