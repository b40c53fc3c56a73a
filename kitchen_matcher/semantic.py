"""Semantic matching through an LLM chat-completion service."""

import asyncio
import json
import logging
import re
from typing import Any, Protocol

import httpx

from .catalog import CatalogItem
from .config import (
    SEMANTIC_CONFIDENCE_CAP,
    SEMANTIC_CONFIDENCE_MULTIPLIER,
    SEMANTIC_MAX_TOKENS,
    SEMANTIC_TIMEOUT,
    get_semantic_api_key,
    get_semantic_base_url,
    get_semantic_model,
)
from .models import MatchCandidate

logger = logging.getLogger(__name__)


class SemanticServiceError(Exception):
    """Exception raised when the semantic matching service fails."""

    pass


class SemanticMatchCapability(Protocol):
    """Anything that can answer a prompt with text."""

    async def complete(self, prompt: str) -> str: ...


class NullCompletion:
    """Capability that never proposes a match."""

    async def complete(self, prompt: str) -> str:
        return '{"matches": []}'


class ChatCompletionClient:
    """OpenAI-compatible chat completions client (OpenRouter by default)."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        model: str | None = None,
        base_url: str | None = None,
        max_tokens: int = SEMANTIC_MAX_TOKENS,
        temperature: float = 0.1,
        timeout: float = 60.0,
    ):
        self.api_key = api_key or get_semantic_api_key()
        if not self.api_key:
            raise ValueError(
                "An API key is required for semantic matching. "
                "Set KITCHEN_MATCHER_API_KEY or OPENROUTER_API_KEY, or pass api_key."
            )
        self.model = model or get_semantic_model()
        self.base_url = (base_url or get_semantic_base_url()).rstrip("/")
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout

    async def complete(self, prompt: str) -> str:
        """
        Send a single-message prompt and return the reply text.

        Raises:
            SemanticServiceError: On transport errors, non-200 responses or malformed bodies
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "X-Title": "Kitchen Matcher",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }

        logger.debug(f"Calling semantic matching API ({self.model})...")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers=headers,
                    json=payload,
                )
        except httpx.HTTPError as e:
            raise SemanticServiceError(f"Semantic API request failed: {e}") from e

        if response.status_code != 200:
            raise SemanticServiceError(
                f"Semantic API failed ({response.status_code}): {response.text[:200]}"
            )

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise SemanticServiceError(f"Semantic API returned unexpected response: {e}") from e

        if not isinstance(content, str):
            raise SemanticServiceError("Semantic API returned no text content")

        return content


def build_prompt(raw_name: str, catalog: list[CatalogItem]) -> str:
    """Build the matching prompt listing every catalog item as "id: name (brand)"."""
    inventory_list = "\n".join(
        f"{item.id}: {item.name}" + (f" ({item.brand})" if item.brand else "") for item in catalog
    )

    return f"""Match the recipe ingredient "{raw_name}" to the best inventory item(s) from this list:

{inventory_list}

Rules:
- Consider semantic meaning, not just string similarity
- Match "chicken breast" to "Chicken Breast Fillets"
- Match "tomatoes" to "Roma Tomatoes" or "Canned Tomatoes"
- Match "flour" to "Plain Flour" or "All-Purpose Flour"
- Ignore cooking preparation terms (diced, chopped, etc.)
- Return up to 3 matches with confidence scores between 0 and 1
- Only use ids from the list above

Return JSON only:
{{
  "matches": [
    {{
      "catalog_item_id": "id from the list",
      "confidence": 0.85,
      "reasoning": "brief explanation"
    }}
  ]
}}"""


_CODE_FENCE = re.compile(r"```(?:json)?\s*|```")


def parse_semantic_response(text: str) -> list[dict[str, Any]]:
    """
    Extract the "matches" list from a reply, tolerating Markdown code fences.

    Returns:
        The raw match entries, or an empty list if the reply is not a JSON
        object holding a "matches" list
    """
    cleaned = _CODE_FENCE.sub("", text or "").strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        logger.warning(f"Semantic reply is not valid JSON: {cleaned[:100]!r}")
        return []

    if not isinstance(data, dict) or not isinstance(data.get("matches"), list):
        logger.warning("Semantic reply has no 'matches' list")
        return []

    return [m for m in data["matches"] if isinstance(m, dict)]


class SemanticMatcher:
    """Propose catalog matches by asking a semantic capability."""

    def __init__(
        self,
        capability: SemanticMatchCapability,
        *,
        timeout: float = SEMANTIC_TIMEOUT,
    ):
        self.capability = capability
        self.timeout = timeout

    async def match(
        self,
        raw_name: str,
        normalized_name: str,
        catalog: list[CatalogItem],
        min_confidence: float,
    ) -> list[MatchCandidate]:
        """
        Ask the capability for matches among the catalog items.

        Confidences are scaled down and capped so a semantic guess never
        outranks a string match, then filtered by min_confidence. Failures
        and timeouts yield an empty list.

        Args:
            raw_name: Ingredient name as written in the recipe
            normalized_name: Normalized form (for logging)
            catalog: Active catalog snapshot
            min_confidence: Minimum confidence after scaling

        Returns:
            Candidates with match_type "semantic", best first, unique by id
        """
        if not catalog:
            return []

        prompt = build_prompt(raw_name, catalog)
        try:
            reply = await asyncio.wait_for(self.capability.complete(prompt), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Semantic matching timed out for {normalized_name!r}")
            return []
        except Exception as e:
            logger.warning(f"Semantic matching failed for {normalized_name!r}: {e}")
            return []

        items_by_id = {item.id: item for item in catalog}
        best: dict[str, MatchCandidate] = {}

        for entry in parse_semantic_response(reply):
            item_id = entry.get("catalog_item_id", entry.get("inventory_id"))
            item = items_by_id.get(str(item_id)) if item_id is not None else None
            if item is None:
                logger.debug(f"Semantic reply references unknown item {item_id!r}")
                continue

            raw_confidence = entry.get("confidence")
            if isinstance(raw_confidence, bool) or not isinstance(raw_confidence, (int, float)):
                continue

            clamped = min(max(float(raw_confidence), 0.0), 1.0)
            confidence = min(clamped * SEMANTIC_CONFIDENCE_MULTIPLIER, SEMANTIC_CONFIDENCE_CAP)
            if confidence < min_confidence:
                continue

            reasoning = entry.get("reasoning")
            candidate = MatchCandidate(
                catalog_item_id=item.id,
                catalog_item_name=item.name,
                confidence=confidence,
                match_type="semantic",
                reason=reasoning if isinstance(reasoning, str) and reasoning else "Semantic match",
            )
            existing = best.get(item.id)
            if existing is None or candidate.confidence > existing.confidence:
                best[item.id] = candidate

        logger.debug(f"Semantic matching proposed {len(best)} items for {normalized_name!r}")
        return sorted(best.values(), key=lambda c: c.confidence, reverse=True)
