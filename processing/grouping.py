"""
Grouping & sorting — regroups every normalized row by store and by source.

Step 1  Source label per file: the first SOURCE_LABEL_GROUPS entry whose
        keyword appears in the filename or template id.  Otherwise the
        template id (collapsed, upper-cased), or the raw filename for an
        unrecognized file, with SOURCE_LABEL_OVERRIDES applied afterwards.
Step 2  Buckets: (store, source).  The store is the row's canonical store
        name, trimmed and upper-cased, or UNASSIGNED_STORE.  Rows keep file
        processing order; sources keep first-encountered order per store.
Step 3  Inside each bucket rows are sorted by a business-code column chosen
        through BUSINESS_CODE_PREDICATES (blank last, numbers numerically,
        everything else in natural, case- and accent-insensitive order).
        A bucket without such a column keeps its order.
Step 4  Stores are ordered by canonical numeric code; stores without a code
        follow, alphabetically.

This stage is the synchronization point of a batch and runs
single-threaded over all files.

Public API:
    source_label(file_name, template_id) → str
    find_business_code_column(columns, dataframe) → str | None
    sort_bucket_rows(dataframe, column) → pd.DataFrame
    group(files, registry) → GroupedDataset
"""

import logging
import math
import re
from dataclasses import dataclass, field
from functools import cmp_to_key

import pandas as pd

from config.column_rules import STORE_NAME_FIELD
from config.grouping_rules import (
    BUSINESS_CODE_PREDICATES,
    SOURCE_LABEL_GROUPS,
    SOURCE_LABEL_OVERRIDES,
    UNASSIGNED_STORE,
)
from processing.column_roles import is_internal
from processing.registry import Registry
from processing.uploaded_file import UploadedFile
from utils.text_utils import fold_text, is_blank

logger = logging.getLogger(__name__)

_NATURAL_CHUNKS = re.compile(r"(\d+)")


# ═══════════════════════════════════════════════════════════════════════════
# Data classes
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class Bucket:
    """The rows of one (store, source) pair and the columns they show."""

    store: str
    source: str
    rows: pd.DataFrame = field(default_factory=pd.DataFrame)
    columns: list[str] = field(default_factory=list)
    sort_column: str | None = None

    def __len__(self) -> int:
        return len(self.rows)


@dataclass
class GroupedDataset:
    """store → source → Bucket, both levels in report order."""

    stores: dict[str, dict[str, Bucket]] = field(default_factory=dict)
    store_codes: dict[str, int] = field(default_factory=dict)

    @property
    def total_rows(self) -> int:
        return sum(len(b) for b in self.buckets())

    def buckets(self) -> list[Bucket]:
        return [b for sources in self.stores.values() for b in sources.values()]


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def source_label(file_name: str, template_id: str | None) -> str:
    """
    Derive the human-facing provider label for a file.

    Examples:
        ("transactions_enero.xlsx", "transactions") → "ADDI"
        ("banco.csv", "Transferencias Bancolombia")  → "TRANSFERENCIAS"
        ("otro.csv", None)                           → "otro.csv"
    """
    haystacks = [fold_text(file_name), fold_text(template_id)]

    for label, keywords in SOURCE_LABEL_GROUPS:
        if any(k in text for k in keywords for text in haystacks if text):
            return label

    if template_id and not is_blank(template_id):
        fallback = " ".join(str(template_id).split()).upper()
    else:
        fallback = str(file_name).strip()

    folded = fold_text(fallback)
    for needle, label in SOURCE_LABEL_OVERRIDES:
        if needle in folded:
            return label
    return fallback


def find_business_code_column(
    columns: list[str],
    dataframe: pd.DataFrame,
) -> str | None:
    """
    Return the column to sort a bucket by, or None.

    Predicates are tried in priority order; for each, the first visible
    column (in column order) that satisfies it and holds at least one
    non-blank value wins.
    """
    candidates = [
        c for c in columns
        if c in dataframe.columns and not is_internal(c)
        and any(not is_blank(v) for v in dataframe[c])
    ]
    folded = [(c, fold_text(c)) for c in candidates]

    for name, predicate in BUSINESS_CODE_PREDICATES:
        for column, folded_name in folded:
            if predicate(folded_name):
                logger.debug(f"Business code column '{column}' (rule {name})")
                return column
    return None


def sort_bucket_rows(dataframe: pd.DataFrame, column: str | None) -> pd.DataFrame:
    """Stable sort of *dataframe* by *column*; unchanged order when None."""
    if column is None or column not in dataframe.columns or len(dataframe) < 2:
        return dataframe.reset_index(drop=True)

    values = list(dataframe[column])
    order = sorted(
        range(len(values)),
        key=cmp_to_key(lambda a, b: compare_codes(values[a], values[b])),
    )
    return dataframe.iloc[order].reset_index(drop=True)


def compare_codes(a: object, b: object) -> int:
    """Three-way comparison of two business-code values."""
    a_blank, b_blank = is_blank(a), is_blank(b)
    if a_blank and b_blank:
        return 0
    if a_blank:
        return 1
    if b_blank:
        return -1

    a_num, b_num = _as_number(a), _as_number(b)
    if a_num is not None and b_num is not None:
        return (a_num > b_num) - (a_num < b_num)

    a_key, b_key = _natural_key(a), _natural_key(b)
    return (a_key > b_key) - (a_key < b_key)


def group(
    files: list[UploadedFile],
    registry: Registry | None = None,
) -> GroupedDataset:
    """
    Build the GroupedDataset from normalized files.

    Args:
        files: Files in processing order.  Files not yet normalized are
               skipped with a warning.
        registry: Supplies the canonical store codes used for store order.

    Returns:
        GroupedDataset whose buckets partition every input row.
    """
    store_codes = registry.store_codes() if registry is not None else {}

    pieces: dict[str, dict[str, list[pd.DataFrame]]] = {}
    bucket_columns: dict[tuple[str, str], list[str]] = {}

    for uploaded in files:
        if not uploaded.normalized:
            logger.warning(f"Skipping '{uploaded.file_name}': not normalized")
            continue

        label = source_label(uploaded.file_name, uploaded.template_id)
        frame = uploaded.dataframe.reset_index(drop=True)
        stores = [_store_key(frame, i) for i in range(len(frame))]
        logger.debug(f"'{uploaded.file_name}' → source {label}, {len(frame)} rows")

        for store in dict.fromkeys(stores):
            positions = [i for i, s in enumerate(stores) if s == store]
            pieces.setdefault(store, {}).setdefault(label, []).append(frame.iloc[positions])

            known = bucket_columns.setdefault((store, label), [])
            known.extend(c for c in uploaded.columns if c not in known)

    stores_dict: dict[str, dict[str, Bucket]] = {}
    for store in _order_stores(list(pieces), store_codes):
        stores_dict[store] = {}
        for label, frames in pieces[store].items():
            columns = bucket_columns[(store, label)]
            rows = pd.concat(frames, ignore_index=True, sort=False)
            for column in columns:
                if column not in rows.columns:
                    rows[column] = ""
                else:
                    rows[column] = rows[column].astype(object).where(rows[column].notna(), "")
            sort_column = find_business_code_column(columns, rows)
            stores_dict[store][label] = Bucket(
                store=store,
                source=label,
                rows=sort_bucket_rows(rows, sort_column),
                columns=list(columns),
                sort_column=sort_column,
            )

    dataset = GroupedDataset(stores=stores_dict, store_codes=store_codes)
    logger.info(
        f"Grouped {dataset.total_rows} rows into {len(dataset.buckets())} buckets "
        f"across {len(stores_dict)} stores"
    )
    return dataset


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _store_key(frame: pd.DataFrame, position: int) -> str:
    if STORE_NAME_FIELD not in frame.columns:
        return UNASSIGNED_STORE
    value = frame[STORE_NAME_FIELD].iat[position]
    if is_blank(value):
        return UNASSIGNED_STORE
    return str(value).strip().upper()


def _order_stores(stores: list[str], store_codes: dict[str, int]) -> list[str]:
    coded = sorted(
        (s for s in stores if s in store_codes),
        key=lambda s: (store_codes[s], s),
    )
    uncoded = sorted(
        (s for s in stores if s not in store_codes),
        key=fold_text,
    )
    return coded + uncoded


def _as_number(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    return None if math.isnan(number) or math.isinf(number) else number


def _natural_key(value: object) -> tuple:
    """Split into digit/text chunks so "T2" sorts before "T10"."""
    key = []
    for chunk in _NATURAL_CHUNKS.split(fold_text(value)):
        if not chunk:
            continue
        if chunk.isdigit():
            key.append((0, int(chunk), ""))
        else:
            key.append((1, 0, chunk))
    return tuple(key)
