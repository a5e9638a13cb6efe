"""
Fuzzy string matching utilities.

Wraps the thefuzz library to provide a best-candidate lookup.  Used by the
template matcher to suggest the closest template for an unrecognized file;
recognition itself never depends on it.
"""

import logging

from thefuzz import fuzz

from utils.text_utils import fold_text

logger = logging.getLogger(__name__)


def best_match(
    value: str,
    candidates: dict[str, str],
    threshold: int = 80,
) -> tuple[str | None, int]:
    """
    Find the best fuzzy match for *value* among *candidates* keys.

    Uses token_sort_ratio, so "ventas diario reporte" and
    "reporte diario ventas" score as equals.

    Args:
        value: The string to match (folded internally).
        candidates: Dict of candidate_key → canonical_value.
        threshold: Minimum score (0-100) to accept a match.

    Returns:
        (canonical_value, score) for the highest-scoring candidate at or
        above threshold, or (None, 0) if none qualifies.
    """
    if not value or not candidates:
        return None, 0

    value_folded = fold_text(value)

    best_canonical: str | None = None
    best_score: int = 0

    for candidate_key, canonical_value in candidates.items():
        score = fuzz.token_sort_ratio(value_folded, fold_text(candidate_key))
        if score > best_score:
            best_score = score
            best_canonical = canonical_value

    if best_canonical is not None and best_score >= threshold:
        logger.debug(
            f"Fuzzy matched '{value}' → '{best_canonical}' (score={best_score})"
        )
        return best_canonical, best_score

    logger.debug(
        f"No fuzzy match for '{value}' above threshold {threshold} "
        f"(best was '{best_canonical}' at {best_score})"
    )
    return None, 0
