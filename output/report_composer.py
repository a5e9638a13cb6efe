"""
Report composer — lays the grouped dataset out as a pure report model.

Layout, per store (in dataset order):
  store header        "TIENDA: <store>"
  per source (first-encountered order):
    source header     "FUENTE: <source>"
    column header row (the bucket's columns, or a compact selection)
    data rows         every value formatted through value_formatter
    totals row        every monetary column summed; the label
                      "TOTAL <source>:" sits in the cell right before the
                      first monetary column (first cell when there is none)

No serialization happens here; utils/excel_formatter.py writes the model.

Public API:
    select_report_columns(columns) → list[str]
    compose(dataset, generated_on, compact) → ReportModel
"""

import datetime as dt
import logging
from dataclasses import dataclass, field

from config.column_rules import DISPLAY_DEFAULT_PRIORITY, DISPLAY_PRIORITY, ColumnRole
from config.grouping_rules import (
    SOURCE_HEADER_TEMPLATE,
    STORE_HEADER_TEMPLATE,
    TOTAL_LABEL_TEMPLATE,
)
from processing.column_roles import is_internal, is_monetary, roles_for
from processing.grouping import Bucket, GroupedDataset
from processing.value_formatter import (
    KIND_CURRENCY,
    KIND_TEXT,
    ReportCell,
    format_cell,
    format_currency,
    parse_amount,
)
from utils.text_utils import fold_text

logger = logging.getLogger(__name__)

_BLANK = ReportCell(value="", kind=KIND_TEXT, display="")


# ═══════════════════════════════════════════════════════════════════════════
# Data classes
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class SourceSection:
    """One (store, source) bucket, ready to be written."""

    source: str
    header: str
    columns: list[str] = field(default_factory=list)
    rows: list[list[ReportCell]] = field(default_factory=list)
    totals: list[ReportCell] = field(default_factory=list)
    total_amounts: dict[str, float] = field(default_factory=dict)

    @property
    def width(self) -> int:
        return max(len(self.columns), 1)


@dataclass
class StoreSection:
    """All sources of one canonical store."""

    store: str
    code: int | None
    header: str
    sources: list[SourceSection] = field(default_factory=list)

    @property
    def width(self) -> int:
        return max((s.width for s in self.sources), default=1)


@dataclass
class ReportModel:
    """The consolidated report."""

    generated_on: dt.date
    sections: list[StoreSection] = field(default_factory=list)

    @property
    def width(self) -> int:
        return max((s.width for s in self.sections), default=1)

    @property
    def row_count(self) -> int:
        return sum(len(src.rows) for s in self.sections for src in s.sources)


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def select_report_columns(columns: list[str]) -> list[str]:
    """
    Compact column selection: display-keyword columns only, ordered
    date → document → store → amount → others (stable within a rank).

    Falls back to every visible column when no column qualifies.
    """
    visible = [
        c for c in columns
        if not is_internal(c) and ColumnRole.DISCOUNT not in roles_for(c)
    ]
    shown = [c for c in visible if ColumnRole.DISPLAY in roles_for(c)]
    if not shown:
        return visible
    return sorted(shown, key=_display_priority)


def compose(
    dataset: GroupedDataset,
    generated_on: dt.date | None = None,
    compact: bool = False,
) -> ReportModel:
    """
    Compose the report model from a grouped dataset.

    Args:
        dataset: Output of processing.grouping.group().
        generated_on: Report date (defaults to today).
        compact: Use select_report_columns() instead of every column.

    Returns:
        ReportModel with one StoreSection per store, in dataset order.
    """
    report = ReportModel(generated_on=generated_on or dt.date.today())

    for store, sources in dataset.stores.items():
        section = StoreSection(
            store=store,
            code=dataset.store_codes.get(store),
            header=STORE_HEADER_TEMPLATE.format(store=store.upper()),
        )
        for bucket in sources.values():
            section.sources.append(_compose_source(bucket, compact))
        report.sections.append(section)

    logger.info(
        f"Composed report: {len(report.sections)} stores, "
        f"{sum(len(s.sources) for s in report.sections)} source sections, "
        f"{report.row_count} rows"
    )
    return report


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _compose_source(bucket: Bucket, compact: bool) -> SourceSection:
    columns = select_report_columns(bucket.columns) if compact else [
        c for c in bucket.columns if not is_internal(c)
    ]
    section = SourceSection(
        source=bucket.source,
        header=SOURCE_HEADER_TEMPLATE.format(source=bucket.source.upper()),
        columns=columns,
    )

    frame = bucket.rows
    present = [c for c in columns if c in frame.columns]
    for record in frame[present].to_dict("records"):
        section.rows.append([format_cell(record.get(c, ""), c) for c in columns])

    monetary = [c for c in columns if is_monetary(c)]
    for column in monetary:
        values = frame[column] if column in frame.columns else []
        section.total_amounts[column] = sum(parse_amount(v) or 0.0 for v in values)

    section.totals = _totals_row(bucket.source, columns, section.total_amounts)
    return section


def _totals_row(
    source: str,
    columns: list[str],
    total_amounts: dict[str, float],
) -> list[ReportCell]:
    """Totals row aligned with *columns*."""
    label = TOTAL_LABEL_TEMPLATE.format(source=source.upper())
    cells = [_BLANK] * max(len(columns), 1)

    for position, column in enumerate(columns):
        if column in total_amounts:
            amount = total_amounts[column]
            cells[position] = ReportCell(
                value=amount, kind=KIND_CURRENCY, display=format_currency(amount)
            )

    monetary_positions = [i for i, c in enumerate(columns) if c in total_amounts]
    if not monetary_positions:
        cells[0] = ReportCell(value=label, kind=KIND_TEXT, display=label)
    elif monetary_positions[0] > 0:
        cells[monetary_positions[0] - 1] = ReportCell(value=label, kind=KIND_TEXT, display=label)
    else:
        # First column is an amount; label goes in the first blank cell.
        gap = next((i for i, c in enumerate(cells) if c is _BLANK), None)
        if gap is not None:
            cells[gap] = ReportCell(value=label, kind=KIND_TEXT, display=label)
    return cells


def _display_priority(column: str) -> int:
    name = fold_text(column)
    for keywords, priority in DISPLAY_PRIORITY:
        if any(k in name for k in keywords):
            return priority
    return DISPLAY_DEFAULT_PRIORITY
