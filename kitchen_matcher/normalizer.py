"""Ingredient name normalization for consistent matching."""

import re

# Cooking qualifiers that don't identify the ingredient itself
QUALIFIER_WORDS: set[str] = {
    # Freshness
    "fresh",
    "frozen",
    "canned",
    "dried",
    "raw",
    "ripe",
    # Preparation
    "chopped",
    "diced",
    "sliced",
    "minced",
    "grated",
    "shredded",
    "crushed",
    "ground",
    "peeled",
    "cubed",
    "whole",
    "boneless",
    "skinless",
    "finely",
    "coarsely",
    "roughly",
    "thinly",
    # Size
    "large",
    "medium",
    "small",
    "extra",
    "jumbo",
    "baby",
    # Doneness
    "cooked",
    "boiled",
    "steamed",
    "roasted",
    "grilled",
    "fried",
    "baked",
    # Provenance
    "organic",
    "local",
}

# Multi-word provenance qualifiers (matched after punctuation becomes spaces)
QUALIFIER_PHRASES: tuple[str, ...] = (
    "free range",
    "cage free",
    "grass fed",
    "wild caught",
)

# Plurals the suffix rules get wrong
IRREGULAR_PLURALS: dict[str, str] = {
    "leaves": "leaf",
    "loaves": "loaf",
    "halves": "half",
    "knives": "knife",
    "olives": "olive",
    "chives": "chive",
    "cloves": "clove",
    "endives": "endive",
    "cookies": "cookie",
    "brownies": "brownie",
    "molasses": "molasses",
}

_PHRASE_PATTERN = re.compile(r"\b(" + "|".join(QUALIFIER_PHRASES) + r")\b")
_NON_WORD_PATTERN = re.compile(r"[^\w\s]")
_WHITESPACE_PATTERN = re.compile(r"\s+")


def singularize(word: str) -> str:
    """Collapse common English plural endings of a single word."""
    if word in IRREGULAR_PLURALS:
        return IRREGULAR_PLURALS[word]
    if len(word) > 4 and word.endswith("ies"):
        return word[:-3] + "y"
    if len(word) > 4 and word.endswith("ves"):
        return word[:-3] + "f"
    if len(word) > 4 and word.endswith("oes"):
        return word[:-2]
    if len(word) > 4 and word.endswith(("ches", "shes", "xes", "sses")):
        return word[:-2]
    if len(word) > 3 and word.endswith("s") and not word.endswith(("ss", "us", "is")):
        return word[:-1]
    return word


def _normalize_pass(name: str) -> str:
    text = name.casefold().strip()
    text = _NON_WORD_PATTERN.sub(" ", text)
    text = text.replace("_", " ")
    text = _PHRASE_PATTERN.sub(" ", text)

    words = []
    for word in text.split():
        if word in QUALIFIER_WORDS:
            continue
        singular = singularize(word)
        if singular in QUALIFIER_WORDS:
            continue
        words.append(singular)

    return _WHITESPACE_PATTERN.sub(" ", " ".join(words)).strip()


def normalize_ingredient_name(name: str) -> str:
    """
    Normalize a free-text ingredient name for matching.

    Lower-cases, turns punctuation into spaces, strips cooking qualifiers
    (freshness, preparation, size, doneness, provenance), singularizes each
    word and collapses whitespace. The result is a fixed point, so
    normalizing twice gives the same string.

    Examples:
        "Fresh Tomatoes" -> "tomato"
        "Chicken Breast, Boneless" -> "chicken breast"
        "All-Purpose Flour" -> "all purpose flour"

    Args:
        name: Raw ingredient name

    Returns:
        Normalized name (may be empty for degenerate input)
    """
    if not name:
        return ""

    previous = None
    normalized = name
    while normalized != previous:
        previous = normalized
        normalized = _normalize_pass(normalized)

    return normalized
