"""
Text folding helpers shared by every matching stage.

fold_text   — accent-stripped, lowercased, whitespace-collapsed text.
compact_key — fold_text with every non-alphanumeric character removed.
is_blank    — True for None, NaN, NaT and whitespace-only strings.
plain_text  — str() without the ".0" pandas adds to whole floats.
"""

import re
import unicodedata

import numpy as np
import pandas as pd

_WHITESPACE = re.compile(r"\s+")
_NON_ALNUM = re.compile(r"[^a-z0-9]")


def fold_text(value: object) -> str:
    """Return *value* as accent-stripped, lowercased, single-spaced text."""
    if is_blank(value):
        return ""
    decomposed = unicodedata.normalize("NFD", str(value))
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    return _WHITESPACE.sub(" ", stripped.lower()).strip()


def compact_key(value: object) -> str:
    """Fold *value* and drop everything that is not a-z or 0-9."""
    return _NON_ALNUM.sub("", fold_text(value))


def is_blank(value: object) -> bool:
    """True when a cell carries no usable value."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        # pd.isna on list-like values returns an array
        return False


def plain_text(value: object) -> str:
    """Render *value* as trimmed text; whole floats lose their '.0'."""
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        return str(int(value))
    return str(value).strip()
