"""String similarity between normalized ingredient names."""

from rapidfuzz.distance import Levenshtein

from .config import SYNONYM_BONUS

# Kitchen-specific variant pairs, in normalized form. A pair matches when each
# side contains one of the two variants.
SYNONYM_PAIRS: list[tuple[str, str]] = [
    # Produce
    ("bell pepper", "pepper"),
    ("black pepper", "pepper"),
    ("garlic clove", "garlic"),
    ("roma tomato", "tomato"),
    ("yellow onion", "onion"),
    ("russet potato", "potato"),
    ("scallion", "green onion"),
    ("cilantro", "coriander"),
    ("zucchini", "courgette"),
    ("eggplant", "aubergine"),
    # Proteins
    ("chicken breast", "chicken"),
    ("beef", "mince"),
    ("salmon fillet", "salmon"),
    ("pork chop", "pork"),
    ("lamb chop", "lamb"),
    ("shrimp", "prawn"),
    ("scallop", "sea scallop"),
    # Dairy
    ("heavy cream", "cream"),
    ("unsalted butter", "butter"),
    ("cheddar cheese", "cheddar"),
    ("mozzarella cheese", "mozzarella"),
    ("parmesan cheese", "parmesan"),
    ("milk", "dairy"),
    # Pantry
    ("olive oil", "extra virgin olive oil"),
    ("all purpose flour", "flour"),
    ("plain flour", "all purpose flour"),
    ("kosher salt", "salt"),
    ("powdered sugar", "icing sugar"),
    ("cornstarch", "cornflour"),
    ("baking soda", "bicarbonate"),
]


def _words(text: str) -> list[str]:
    return [w for w in text.split() if len(w) > 2]


def has_synonym(name1: str, name2: str) -> bool:
    """Check if two normalized names are a known variant pair (either direction)."""
    for variant1, variant2 in SYNONYM_PAIRS:
        if (variant1 in name1 and variant2 in name2) or (variant2 in name1 and variant1 in name2):
            return True
    return False


def score_similarity(name1: str, name2: str) -> float:
    """
    Score the similarity of two normalized ingredient names.

    Tiers, highest first:
    - identical names score 1.0
    - one name containing the other scores 0.95
    - shared words (longer than two letters) score 0.85-0.95 by overlap ratio
    - otherwise normalized Levenshtein similarity, boosted for known variants

    Args:
        name1: Normalized ingredient name
        name2: Normalized catalog item name

    Returns:
        Similarity in [0, 1]; 0.0 if either name is empty
    """
    if not name1 or not name2:
        return 0.0

    if name1 == name2:
        return 1.0

    if name1 in name2 or name2 in name1:
        return 0.95

    words1 = _words(name1)
    words2 = _words(name2)
    common = set(words1) & set(words2)
    if common:
        return 0.85 + 0.1 * len(common) / max(len(words1), len(words2))

    similarity = Levenshtein.normalized_similarity(name1, name2)
    if has_synonym(name1, name2):
        similarity += SYNONYM_BONUS

    return min(similarity, 1.0)


def match_reason(confidence: float) -> str:
    """Get a human-readable label for a match confidence."""
    if confidence >= 1.0:
        return "Exact match"
    elif confidence >= 0.95:
        return "Contains match"
    elif confidence >= 0.85:
        return "Word match"
    elif confidence >= 0.7:
        return "Similar name"
    elif confidence >= 0.5:
        return "Possible match"
    return "Weak match"
