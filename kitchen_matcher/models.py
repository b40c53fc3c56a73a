"""Match result types shared by the matching stages."""

from dataclasses import dataclass
from typing import Any, Literal

from .config import DEFAULT_MAX_RESULTS, DEFAULT_MIN_CONFIDENCE, REVIEW_THRESHOLD

MatchType = Literal["exact", "fuzzy", "semantic", "cached"]


@dataclass
class MatchCandidate:
    """A catalog item proposed for an ingredient name."""

    catalog_item_id: str
    catalog_item_name: str
    confidence: float
    match_type: MatchType
    reason: str | None = None

    @property
    def needs_review(self) -> bool:
        """Whether the match is too uncertain to accept without a human check."""
        return self.confidence < REVIEW_THRESHOLD

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "catalog_item_id": self.catalog_item_id,
            "catalog_item_name": self.catalog_item_name,
            "confidence": round(self.confidence, 4),
            "match_type": self.match_type,
            "reason": self.reason,
            "needs_review": self.needs_review,
        }


@dataclass
class MatchOptions:
    """Options for a single match request."""

    user_id: str
    min_confidence: float = DEFAULT_MIN_CONFIDENCE
    max_results: int = DEFAULT_MAX_RESULTS
    enable_semantic: bool = True
    use_cache: bool = True

    def __post_init__(self) -> None:
        if self.max_results < 1:
            raise ValueError(f"max_results must be at least 1, got {self.max_results}")
        if not 0.0 <= self.min_confidence <= 1.0:
            raise ValueError(f"min_confidence must be within [0, 1], got {self.min_confidence}")
