"""
Value formatter — coerces report cells to one textual form per type.

Rules, applied in this order for each cell of a named column:
  1. Blank                           → "" (kind "text")
  2. Time column (hora, time, ...)   → "HH:MM:SS" when the value parses,
     except datetime values in a date column (fecha), which fall to rule 3
  3. Date-like value                 → "YYYY-MM-DD"
     Accepts datetime/date/Timestamp, ISO strings with a time part,
     DD/MM/YYYY (or DD-MM-YYYY) and YYYY/MM/DD (or YYYY-MM-DD).
  4. Identity column (document, name, store, code...) → plain text, even
     when numeric, so leading zeros and ids are never shown as money
  5. Number, or text parseable as an amount → currency
  6. Anything else                   → raw text, trimmed

Amount parsing follows Colombian conventions ("$1,200", "1.234.567",
"1.234,56", "195.900").  Nothing here raises: an unparseable value keeps
its raw text.

Public API:
    parse_amount(value) → float | None
    normalize_date(value) → str | None
    normalize_time(value) → str | None
    format_currency(amount) → str
    format_cell(value, column) → ReportCell
"""

import datetime as dt
import logging
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

import numpy as np
import pandas as pd

from config.column_rules import ColumnRole
from config.grouping_rules import CURRENCY_SYMBOL
from processing.column_roles import is_identity, roles_for
from utils.text_utils import is_blank, plain_text

logger = logging.getLogger(__name__)

KIND_TEXT = "text"
KIND_DATE = "date"
KIND_TIME = "time"
KIND_CURRENCY = "currency"

_ISO_WITH_TIME = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})[T ]\d{1,2}:\d{2}")
_DAY_FIRST = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})(?:\D|$)")
_YEAR_FIRST = re.compile(r"^(\d{4})[/-](\d{1,2})[/-](\d{1,2})(?:\D|$)")

_MERIDIEM_TIME = re.compile(
    r"(\d{1,2}):(\d{1,2})(?::(\d{1,2}))?\s*([ap])\.?\s*m\.?",
    re.IGNORECASE,
)
_CLOCK_TIME = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?(?:\.\d+)?$")

_AMOUNT_NOISE = re.compile(r"[$\s]|COP", re.IGNORECASE)
_AMOUNT_SHAPE = re.compile(r"^-?[\d.,]*\d[\d.,]*$")
_COMMA_THOUSANDS = re.compile(r"^-?\d{1,3}(,\d{3})+$")
_DOT_THOUSANDS_TAIL = re.compile(r"\.\d{3}$")


@dataclass(frozen=True)
class ReportCell:
    """A formatted report value.

    value is what a writer should store (a float for currency, text
    otherwise); display is the human-readable rendering.
    """

    value: object
    kind: str
    display: str


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def parse_amount(value: object) -> float | None:
    """
    Parse a monetary value, returning None when it is not a number.

    Examples:
        1000        → 1000.0
        "$1,200"    → 1200.0
        "1.234.567" → 1234567.0
        "1.234,56"  → 1234.56
        "195.900"   → 195900.0
        "12,5"      → 12.5
        "ARMENIA"   → None
    """
    if isinstance(value, bool) or is_blank(value):
        return None
    if isinstance(value, (int, float, np.integer, np.floating)):
        return float(value) if np.isfinite(value) else None
    if not isinstance(value, str):
        return None

    text = _AMOUNT_NOISE.sub("", value.strip())
    if not text or not _AMOUNT_SHAPE.match(text):
        return None

    if "." in text and "," in text:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif "," in text:
        if _COMMA_THOUSANDS.match(text):
            text = text.replace(",", "")
        else:
            text = text.replace(",", ".", 1)
    elif text.count(".") > 1 or _DOT_THOUSANDS_TAIL.search(text):
        text = text.replace(".", "")

    try:
        return float(text)
    except ValueError:
        return None


def normalize_date(value: object) -> str | None:
    """Return *value* as "YYYY-MM-DD", or None when it is not a date."""
    if is_blank(value):
        return None
    if isinstance(value, (pd.Timestamp, dt.datetime, dt.date)):
        return value.strftime("%Y-%m-%d")
    if not isinstance(value, str):
        return None

    text = value.strip()
    if len(text) < 8:
        return None

    for pattern, order in (
        (_ISO_WITH_TIME, "ymd"),
        (_DAY_FIRST, "dmy"),
        (_YEAR_FIRST, "ymd"),
    ):
        found = pattern.match(text)
        if not found:
            continue
        parts = found.groups()
        if order == "dmy":
            day, month, year = parts
        else:
            year, month, day = parts
        try:
            return dt.date(int(year), int(month), int(day)).isoformat()
        except ValueError:
            logger.debug(f"Not a calendar date: {value!r}")
            return None
    return None


def normalize_time(value: object) -> str | None:
    """Return *value* as "HH:MM:SS", or None when it is not a time."""
    if is_blank(value):
        return None
    if isinstance(value, (pd.Timestamp, dt.datetime, dt.time)):
        return value.strftime("%H:%M:%S")

    text = str(value).strip()

    found = _MERIDIEM_TIME.search(text)
    if found:
        hours, minutes, seconds, meridiem = found.groups()
        hour = int(hours)
        is_pm = meridiem.lower() == "p"
        if is_pm and hour < 12:
            hour += 12
        if not is_pm and hour == 12:
            hour = 0
        return _clock(hour, int(minutes), int(seconds or 0))

    found = _CLOCK_TIME.match(text)
    if found:
        hours, minutes, seconds = found.groups()
        return _clock(int(hours), int(minutes), int(seconds or 0))

    return None


def format_currency(amount: float) -> str:
    """Render *amount* with thousands separators and no decimals: "$ 1,200"."""
    rounded = int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    sign = "-" if rounded < 0 else ""
    return f"{sign}{CURRENCY_SYMBOL} {abs(rounded):,}"


def format_cell(value: object, column: str) -> ReportCell:
    """
    Format one cell for the report according to its column's role.

    Args:
        value: Raw cell value.
        column: Column name, classified through the shared rule table.

    Returns:
        ReportCell (never raises; falls back to the raw text).
    """
    if is_blank(value):
        return ReportCell(value="", kind=KIND_TEXT, display="")

    roles = roles_for(column)
    dated = ColumnRole.DATE in roles and isinstance(value, (pd.Timestamp, dt.datetime, dt.date))
    if ColumnRole.TIME in roles and not dated:
        time_text = normalize_time(value)
        if time_text is not None:
            return ReportCell(value=time_text, kind=KIND_TIME, display=time_text)

    date_text = normalize_date(value)
    if date_text is not None:
        return ReportCell(value=date_text, kind=KIND_DATE, display=date_text)

    if is_identity(column):
        text = plain_text(value)
        return ReportCell(value=text, kind=KIND_TEXT, display=text)

    if isinstance(value, str) and re.search(r"[a-zA-Z]", _AMOUNT_NOISE.sub("", value)):
        text = value.strip()
        return ReportCell(value=text, kind=KIND_TEXT, display=text)

    amount = parse_amount(value)
    if amount is not None:
        return ReportCell(value=amount, kind=KIND_CURRENCY, display=format_currency(amount))

    text = plain_text(value)
    return ReportCell(value=text, kind=KIND_TEXT, display=text)


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _clock(hour: int, minute: int, second: int) -> str | None:
    if not (0 <= hour < 24 and 0 <= minute < 60 and 0 <= second < 60):
        return None
    return f"{hour:02d}:{minute:02d}:{second:02d}"
