"""
Mapping validator — reports how well a normalized file was understood.

Statistics:
  total_rows, mapped_rows (rows with a resolved store), percent_mapped
  (0 for an empty file, never NaN), distinct_stores_found.

Diagnostics:
  - warning when some rows carry no store (count of unmapped rows)
  - error when rows exist but none carries a store, which almost always
    means the file was matched to the wrong template

The result is advisory only; unmapped rows still flow on to the
UNASSIGNED bucket.

Public API:
    validate(dataframe) → ValidationResult
"""

import logging
from dataclasses import dataclass, field

import pandas as pd

from config.column_rules import STORE_ID_FIELD, STORE_NAME_FIELD
from utils.text_utils import is_blank

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Data classes
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class MappingStatistics:
    """Row and store counts for one file."""

    total_rows: int = 0
    mapped_rows: int = 0
    percent_mapped: float = 0.0
    distinct_stores_found: set[str] = field(default_factory=set)

    @property
    def unmapped_rows(self) -> int:
        return self.total_rows - self.mapped_rows


@dataclass
class ValidationResult:
    """Operator-facing diagnostics for one file."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    statistics: MappingStatistics = field(default_factory=MappingStatistics)

    @property
    def is_valid(self) -> bool:
        return not self.errors


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def validate(dataframe: pd.DataFrame, file_name: str = "") -> ValidationResult:
    """
    Compute mapping statistics and diagnostics for a normalized file.

    Args:
        dataframe: Rows after alias resolution (store fields may be absent
                   when no resolution ran; every row then counts unmapped).
        file_name: Used in messages and logs only.

    Returns:
        ValidationResult.
    """
    stats = MappingStatistics(total_rows=len(dataframe))

    for store_id, store_name in zip(
        _field_values(dataframe, STORE_ID_FIELD),
        _field_values(dataframe, STORE_NAME_FIELD),
    ):
        if is_blank(store_id) and is_blank(store_name):
            continue
        stats.mapped_rows += 1
        if not is_blank(store_name):
            stats.distinct_stores_found.add(str(store_name).strip())

    if stats.total_rows > 0:
        stats.percent_mapped = stats.mapped_rows / stats.total_rows * 100

    result = ValidationResult(statistics=stats)

    if stats.total_rows > 0 and stats.mapped_rows < stats.total_rows:
        result.warnings.append(
            f"{stats.unmapped_rows} rows without a store "
            f"({stats.percent_mapped:.1f}% mapped)"
        )
    if stats.total_rows > 0 and stats.mapped_rows == 0:
        label = f" in '{file_name}'" if file_name else ""
        result.errors.append(
            f"No row{label} could be mapped to a store; "
            f"the file was probably matched to the wrong template"
        )

    logger.info(
        f"Validation{' of ' + repr(file_name) if file_name else ''}: "
        f"{stats.mapped_rows}/{stats.total_rows} rows mapped "
        f"({stats.percent_mapped:.1f}%), "
        f"{len(stats.distinct_stores_found)} stores, "
        f"{len(result.errors)} errors, {len(result.warnings)} warnings"
    )
    return result


def _field_values(dataframe: pd.DataFrame, column: str) -> list:
    if column in dataframe.columns:
        return list(dataframe[column])
    return [None] * len(dataframe)
