"""
Column projector — decides the final column set emitted for a file.

Two independent decisions are taken per original column name:

  Document consolidation
    A column carrying a document-identifier keyword (and no excluded
    keyword such as date, amount or terminal metadata) feeds the synthetic
    DOCUMENT_COLUMN and is then removed, unless it already is that column.
    When several columns feed it, the first non-blank value in column order
    wins for each row.

  Forced elimination
    Discount columns are always removed.  Columns listed in the template's
    dropped_columns are removed unless their name carries a protected
    (financially critical) keyword: date, amount, invoice, promissory note.

Templates in ADDRESS_IN_DOCUMENT_TEMPLATES carry an address in the field
that looks like a document, so DOCUMENT_COLUMN is never emitted for them.

Output order: DOCUMENT_COLUMN (when synthesized) first, then the surviving
original columns in their original order.  Internal fields (store id,
"_"-prefixed) stay in the DataFrame but never in the column list.

Public API:
    project(columns, dataframe, template) → ProjectionResult
"""

import logging
from dataclasses import dataclass, field

import pandas as pd

from config.column_rules import DOCUMENT_COLUMN, ColumnRole
from config.templates import ADDRESS_IN_DOCUMENT_TEMPLATES
from processing.column_roles import is_document_column, is_internal, roles_for
from processing.registry import Template
from utils.text_utils import compact_key, fold_text, is_blank, plain_text

logger = logging.getLogger(__name__)


@dataclass
class ProjectionResult:
    """Output of project()."""

    columns: list[str] = field(default_factory=list)
    dataframe: pd.DataFrame = field(default_factory=pd.DataFrame)
    document_sources: list[str] = field(default_factory=list)
    dropped: list[str] = field(default_factory=list)


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def project(
    columns: list[str],
    dataframe: pd.DataFrame,
    template: Template | None,
) -> ProjectionResult:
    """
    Project a file's columns and rows.

    Args:
        columns: Visible columns in file order.
        dataframe: Rows (may also hold internal fields); never modified.
        template: Recognized template, or None (no elimination rules).

    Returns:
        ProjectionResult with the final column list, a new DataFrame holding
        those columns plus internal fields, the columns that fed
        DOCUMENT_COLUMN, and the columns removed.
    """
    address_template = _has_address_document(template)
    template_drops = {fold_text(c) for c in template.dropped_columns} if template else set()

    document_sources: list[str] = []
    dropped: list[str] = []

    for column in columns:
        name = fold_text(column)

        if address_template and "document" in name:
            dropped.append(column)
            continue

        is_document = is_document_column(column)
        if is_document:
            document_sources.append(column)

        if ColumnRole.DISCOUNT in roles_for(column):
            dropped.append(column)
        elif is_document and column != DOCUMENT_COLUMN:
            dropped.append(column)
        elif name in template_drops and ColumnRole.PROTECTED not in roles_for(column):
            dropped.append(column)

    kept = [c for c in columns if c not in dropped]

    result_df = dataframe.copy()
    if document_sources and not address_template:
        result_df[DOCUMENT_COLUMN] = _consolidate_documents(dataframe, document_sources)
        if DOCUMENT_COLUMN not in kept:
            kept = [DOCUMENT_COLUMN] + kept
    if address_template:
        kept = [c for c in kept if fold_text(c) != fold_text(DOCUMENT_COLUMN)]

    for column in kept:
        if column not in result_df.columns:
            result_df[column] = ""

    internal = [c for c in result_df.columns if is_internal(c) and c not in kept]
    result_df = result_df[kept + internal]

    if dropped:
        logger.info(f"Projection dropped {len(dropped)} columns: {dropped}")
    if document_sources:
        logger.debug(f"Document column fed by: {document_sources}")

    return ProjectionResult(
        columns=kept,
        dataframe=result_df,
        document_sources=document_sources,
        dropped=dropped,
    )


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _has_address_document(template: Template | None) -> bool:
    return template is not None and compact_key(template.template_id) in ADDRESS_IN_DOCUMENT_TEMPLATES


def _consolidate_documents(
    dataframe: pd.DataFrame,
    sources: list[str],
) -> pd.Series:
    """First non-blank document value per row, as trimmed text."""
    values: list[str] = []
    present = [c for c in sources if c in dataframe.columns]

    for row in dataframe[present].itertuples(index=False, name=None):
        document = ""
        for value in row:
            if not is_blank(value):
                document = plain_text(value)
                break
        values.append(document)

    return pd.Series(values, index=dataframe.index, dtype=object)
