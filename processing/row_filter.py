"""
Row filter — drops provider noise rows before store resolution.

A row is discarded when any of its cells:
  - contains a test-merchant marker ("prueba rbm"),
  - is exactly a subtotal label ("TOTAL"; "TOTAL SPORT" is kept),
  - contains a rejected-transaction marker ("rechazada" / "rechazado").

Public API:
    filter_invalid_rows(dataframe) → RowFilterResult
"""

import logging
from dataclasses import dataclass, field

import pandas as pd

from config.templates import REJECTED_ROW_MARKERS, SUBTOTAL_ROW_VALUES, TEST_ROW_MARKERS
from utils.text_utils import fold_text

logger = logging.getLogger(__name__)


@dataclass
class RowFilterResult:
    """Rows kept, plus a count of discarded rows per reason."""

    dataframe: pd.DataFrame = field(default_factory=pd.DataFrame)
    discarded: dict[str, int] = field(default_factory=dict)

    @property
    def discarded_total(self) -> int:
        return sum(self.discarded.values())


def filter_invalid_rows(dataframe: pd.DataFrame) -> RowFilterResult:
    """
    Return a copy of *dataframe* without test, subtotal and rejected rows.

    The index is reset so downstream stages see 0..n-1.
    """
    keep: list[bool] = []
    discarded: dict[str, int] = {}

    for row in dataframe.itertuples(index=False, name=None):
        reason = _discard_reason(row)
        keep.append(reason is None)
        if reason is not None:
            discarded[reason] = discarded.get(reason, 0) + 1

    kept = dataframe.loc[keep].reset_index(drop=True) if len(dataframe) else dataframe.copy()

    if discarded:
        logger.info(
            f"Discarded {sum(discarded.values())} of {len(dataframe)} rows: {discarded}"
        )

    return RowFilterResult(dataframe=kept, discarded=discarded)


def _discard_reason(values: tuple) -> str | None:
    """Name the first rule a row trips, or None for a valid row."""
    folded = [fold_text(v) for v in values]

    if any(marker in cell for cell in folded for marker in TEST_ROW_MARKERS):
        return "test"
    if any(cell in SUBTOTAL_ROW_VALUES for cell in folded):
        return "subtotal"
    if any(marker in cell for cell in folded for marker in REJECTED_ROW_MARKERS):
        return "rejected"
    return None
