"""
Column roles — classifies a column name against the declarative rule table.

The projector (which columns to consolidate, drop or protect) and the report
composer (which columns to sum, render as dates or keep as plain text) both
classify through this module.

Public API:
    roles_for(column) → frozenset[ColumnRole]
    is_document_column(column), is_monetary(column), is_identity(column),
    is_internal(column)
"""

import re
from functools import lru_cache

from config.column_rules import (
    INTERNAL_PREFIX,
    ROLE_KEYWORDS,
    STORE_ID_FIELD,
    WHOLE_WORD_KEYWORDS,
    ColumnRole,
)
from utils.text_utils import fold_text


@lru_cache(maxsize=1024)
def roles_for(column: str) -> frozenset[ColumnRole]:
    """Every role whose keywords appear in the folded column name."""
    name = fold_text(column)
    return frozenset(
        role
        for role, keywords in ROLE_KEYWORDS.items()
        if any(_has_keyword(name, keyword) for keyword in keywords)
    )


def is_document_column(column: str) -> bool:
    """A document-identifier column that is not date/amount/terminal metadata."""
    roles = roles_for(column)
    has_keyword = ColumnRole.DOCUMENT in roles or ColumnRole.DOCUMENT_WEAK in roles
    return has_keyword and ColumnRole.DOCUMENT_EXCLUDED not in roles


def is_monetary(column: str) -> bool:
    """Amount columns are summed in totals and rendered as currency."""
    roles = roles_for(column)
    return ColumnRole.MONETARY in roles and ColumnRole.DATE not in roles


def is_identity(column: str) -> bool:
    """Identifier/name columns render as plain text even when numeric."""
    return ColumnRole.IDENTITY in roles_for(column) and not is_monetary(column)


def is_internal(column: str) -> bool:
    """Pipeline bookkeeping fields that are never shown as columns."""
    return str(column).startswith(INTERNAL_PREFIX) or column == STORE_ID_FIELD


def _has_keyword(name: str, keyword: str) -> bool:
    if keyword in WHOLE_WORD_KEYWORDS:
        return re.search(rf"(?<![a-z]){re.escape(keyword)}(?![a-z])", name) is not None
    return keyword in name
