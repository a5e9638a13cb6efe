"""
Grouping, sorting and report-label configuration.

Source-label keyword groups, business-code predicates, the sentinel store
bucket, and the labels written into the consolidated report.
Consumed by processing/grouping.py and output/report_composer.py.
"""

import re
from typing import Callable

# ---------------------------------------------------------------------------
# Sentinel store for rows that carry no resolved store.
# ---------------------------------------------------------------------------
UNASSIGNED_STORE: str = "UNASSIGNED"

# ---------------------------------------------------------------------------
# Source labels: (label, keywords).  Tested in order against the lowercased
# filename and template id; the first group with any keyword match wins.
# ---------------------------------------------------------------------------
SOURCE_LABEL_GROUPS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("ADDI", ("transactions", "addi")),
    ("REDEBANA", ("reportediario", "ventascomercio", "redebana")),
    ("TRANSFERENCIAS", ("maria", "perez", "occidente", "transferencias")),
    ("SISTECREDITOS", ("creditos", "sistecreditos")),
)

# Applied to the fallback label (lowercased substring → canonical label).
SOURCE_LABEL_OVERRIDES: tuple[tuple[str, str], ...] = (
    ("transferencia", "TRANSFERENCIAS"),
)


# ---------------------------------------------------------------------------
# Business-code predicates, highest priority first.  Each predicate receives
# an accent-folded, lowercased, stripped column name.  The first predicate
# satisfied by any column of a bucket selects that bucket's sort key.
# ---------------------------------------------------------------------------
def _pattern(regex: str) -> Callable[[str], bool]:
    compiled = re.compile(regex)
    return lambda name: compiled.search(name) is not None


BUSINESS_CODE_PREDICATES: tuple[tuple[str, Callable[[str], bool]], ...] = (
    ("code_ultra", _pattern(r"^codigo\s*ultra$")),
    ("code", _pattern(r"^codigo$")),
    ("code_ultra_loose", _pattern(r"codigo.*ultra|ultra.*codigo")),
    ("code_short", _pattern(r"^cod$")),
    ("code_any", _pattern(r"codigo")),
    ("terminal", _pattern(r"^terminal$")),
    ("terminal_id", _pattern(r"^id\s*terminal$")),
    ("reference", _pattern(r"^referencia$")),
    ("invoice", _pattern(r"^factura$")),
    ("transaction", _pattern(r"^transaccion$")),
    ("transaction_id", _pattern(r"^id.*transacci")),
    ("document", _pattern(r"^documento?$")),
)

# ---------------------------------------------------------------------------
# Report labels.
# ---------------------------------------------------------------------------
STORE_HEADER_TEMPLATE: str = "TIENDA: {store}"
SOURCE_HEADER_TEMPLATE: str = "FUENTE: {source}"
TOTAL_LABEL_TEMPLATE: str = "TOTAL {source}:"
CURRENCY_SYMBOL: str = "$"
