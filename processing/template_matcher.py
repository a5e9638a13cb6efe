"""
Template matcher — recognizes which provider template a filename belongs to.

Both the filename and every template id are reduced to a compact key
(accent-stripped, lowercased, alphanumerics only), then scored:

  1. Identical keys                       → 1.0
  2. Template key contained in filename   → 0.9
  3. Template key longer than filename    → 0.0
  4. Otherwise, ordered subsequence ratio: walk the template key left to
     right, searching forward in the filename for each character; every
     character found is a hit and moves the cursor past it.
     Score = hits / len(filename key).

The template with the strictly highest score wins (earlier templates keep
ties) and must reach MATCH_THRESHOLD, otherwise the file is unrecognized.
Arbitrary prefixes, suffixes and timestamps around a provider's base name
are tolerated; short generic names score low because the ratio is taken
over the whole filename.

Public API:
    match(file_name, registry) → MatchResult | None
    score_template(file_name, template_id) → float
    suggest_template(file_name, registry) → tuple[str | None, int]
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from config.templates import CONTAINED_MATCH_SCORE, EXACT_MATCH_SCORE, MATCH_THRESHOLD
from processing.registry import Registry, Template
from utils.fuzzy_match import best_match
from utils.text_utils import compact_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchResult:
    """The template recognized for a file and the score that won."""

    template: Template
    score: float


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def match(file_name: str, registry: Registry) -> MatchResult | None:
    """
    Find the registry template that best matches *file_name*.

    Args:
        file_name: Uploaded filename (a full path is reduced to its name).
        registry: Session registry; only its templates are consulted.

    Returns:
        MatchResult for the best template at or above MATCH_THRESHOLD,
        or None when the file is unrecognized.
    """
    name = Path(file_name).name

    best: Template | None = None
    best_score = 0.0

    for template in registry.templates:
        score = score_template(name, template.template_id)
        logger.debug(f"  '{template.template_id}' vs '{name}' → {score:.3f}")
        if score > best_score:
            best = template
            best_score = score

    if best is None or best_score < MATCH_THRESHOLD:
        logger.warning(
            f"No template recognized for '{name}' "
            f"(best score {best_score:.2f}, threshold {MATCH_THRESHOLD})"
        )
        return None

    logger.info(f"Matched '{name}' → template '{best.template_id}' ({best_score:.2f})")
    return MatchResult(template=best, score=best_score)


def score_template(file_name: str, template_id: str) -> float:
    """Score one template id against one filename (0.0 – 1.0)."""
    file_key = compact_key(file_name)
    template_key = compact_key(template_id)

    if not file_key or not template_key:
        return 0.0

    if file_key == template_key:
        return EXACT_MATCH_SCORE

    if template_key in file_key:
        return CONTAINED_MATCH_SCORE

    if len(template_key) > len(file_key):
        return 0.0

    return _subsequence_hits(template_key, file_key) / len(file_key)


def suggest_template(file_name: str, registry: Registry) -> tuple[str | None, int]:
    """
    Name the closest template for an unrecognized file.

    Uses a word-order-insensitive fuzzy ratio over the folded names, so it
    is only a hint for the operator and never drives recognition.

    Returns:
        (template_id, score 0-100), or (None, 0) for an empty registry.
    """
    candidates = {
        _spaced(t.template_id): t.template_id for t in registry.templates
    }
    return best_match(_spaced(Path(file_name).stem), candidates, threshold=0)


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _subsequence_hits(template_key: str, file_key: str) -> int:
    """Count template characters found, in order, in the filename."""
    hits = 0
    cursor = 0
    for char in template_key:
        position = file_key.find(char, cursor)
        if position == -1:
            continue
        hits += 1
        cursor = position + 1
    return hits


def _spaced(text: str) -> str:
    """Turn separators into spaces so token-based ratios see the words."""
    return " ".join(
        part for part in "".join(
            ch if ch.isalnum() else " " for ch in text.lower()
        ).split()
    )
