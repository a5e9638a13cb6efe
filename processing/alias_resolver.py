"""
Store alias resolver — rewrites provider store spellings to canonical stores.

Every cell of every row is compared (accent-folded, case-insensitive)
against the template's aliases in registry order:

  - containment mode: the cell equals or contains the alias spelling
  - exact mode: the whole cell equals the alias spelling

The first alias that hits a cell replaces that cell with the alias's
canonical store name.  When several cells of one row hit (e.g. a short code
column and a full-name column), the row's store is chosen by an explicit
tie-break policy: "last" (default) keeps the alias hit in the right-most
column, "first" the left-most.  The chosen store is attached to the row as
STORE_ID_FIELD (numeric code) and STORE_NAME_FIELD (canonical name).

Rows with no hit keep their cells untouched and get blank store fields.
Numeric cells are compared by their plain text ("10203040.0" as "10203040")
and, like digit-only text, only as whole cells; dates and times are never
scanned.

Public API:
    resolve(dataframe, aliases, exact_only, tie_break) → AliasResolution
"""

import datetime as dt
import logging
from dataclasses import dataclass, field

import pandas as pd

from config.column_rules import STORE_ID_FIELD, STORE_NAME_FIELD
from processing.registry import StoreAlias
from utils.text_utils import fold_text, is_blank, plain_text

logger = logging.getLogger(__name__)

TIE_BREAK_LAST = "last"
TIE_BREAK_FIRST = "first"
_TIE_BREAKS = (TIE_BREAK_LAST, TIE_BREAK_FIRST)


@dataclass
class AliasResolution:
    """Output of resolve()."""

    dataframe: pd.DataFrame = field(default_factory=pd.DataFrame)
    mapped_rows: int = 0
    stores_found: set[str] = field(default_factory=set)
    replaced_cells: int = 0


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def resolve(
    dataframe: pd.DataFrame,
    aliases: tuple[StoreAlias, ...] | list[StoreAlias],
    exact_only: bool = False,
    tie_break: str = TIE_BREAK_LAST,
) -> AliasResolution:
    """
    Replace store aliases with canonical names and attach store fields.

    Args:
        dataframe: Rows to resolve; never modified.
        aliases: Aliases to try, in priority (registry) order.
        exact_only: Require whole-cell matches instead of containment.
        tie_break: "last" or "first": which cell's store wins in a row
                   with several hits.

    Returns:
        AliasResolution with a new DataFrame (original columns in order,
        then STORE_ID_FIELD and STORE_NAME_FIELD) and mapping statistics.
    """
    if tie_break not in _TIE_BREAKS:
        raise ValueError(f"tie_break must be one of {_TIE_BREAKS}, got {tie_break!r}")

    prepared = [
        (fold_text(alias.alias_text), alias)
        for alias in aliases
        if not is_blank(alias.alias_text) and fold_text(alias.alias_text)
    ]

    columns = [c for c in dataframe.columns if c not in (STORE_ID_FIELD, STORE_NAME_FIELD)]
    new_rows: list[dict] = []
    store_ids: list[int | None] = []
    store_names: list[str | None] = []
    result = AliasResolution()

    for row_number, row in enumerate(dataframe[columns].itertuples(index=False, name=None)):
        new_row = dict(zip(columns, row))
        hits: list[StoreAlias] = []

        for column, value in zip(columns, row):
            alias = _match_cell(value, prepared, exact_only)
            if alias is None:
                continue
            new_row[column] = alias.canonical_name
            hits.append(alias)
            result.replaced_cells += 1

        new_rows.append(new_row)

        if not hits:
            store_ids.append(None)
            store_names.append(None)
            if row_number < 3:
                logger.debug(f"  Row {row_number + 1}: no store alias found")
            continue

        chosen = hits[-1] if tie_break == TIE_BREAK_LAST else hits[0]
        store_ids.append(chosen.canonical_code)
        store_names.append(chosen.canonical_name)
        result.mapped_rows += 1
        result.stores_found.add(chosen.canonical_name)

    resolved = pd.DataFrame(new_rows, columns=columns)
    resolved[STORE_ID_FIELD] = pd.Series(store_ids, dtype=object, index=resolved.index)
    resolved[STORE_NAME_FIELD] = pd.Series(store_names, dtype=object, index=resolved.index)
    result.dataframe = resolved

    logger.info(
        f"Alias resolution: {result.mapped_rows}/{len(resolved)} rows mapped, "
        f"{len(result.stores_found)} distinct stores, "
        f"{result.replaced_cells} cells rewritten "
        f"({'exact' if exact_only else 'containment'} mode, {len(prepared)} aliases)"
    )
    return result


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _match_cell(
    value: object,
    prepared: list[tuple[str, StoreAlias]],
    exact_only: bool,
) -> StoreAlias | None:
    """Return the first alias hitting *value*, or None."""
    if is_blank(value) or isinstance(value, (bool, dt.date, dt.time, pd.Timestamp)):
        return None

    folded = fold_text(plain_text(value))
    # numbers and digit-only codes match whole cells only
    contains_ok = not exact_only and isinstance(value, str) and not folded.isdigit()
    for alias_key, alias in prepared:
        if folded == alias_key or (contains_ok and alias_key in folded):
            return alias
    return None
