"""
File reader — turns an uploaded CSV or Excel export into named rows.

Supported inputs:
  .csv          read with pandas, every cell as text; UTF-8 first, Latin-1
                as fallback; the delimiter (",", ";", tab, "|") is sniffed.
  .xlsx/.xlsm   read with openpyxl (cached values, not formulas).  Sheets
                whose name contains "portada" (cover sheets) are skipped;
                the first remaining sheet with data is used.

Structure rules (both formats):
  - the first non-empty row is the header row
  - fully empty rows are dropped
  - missing cells become "" (never NaN, never an exception)
  - blank header cells become "Unnamed: <n>" (0-based column position)
  - duplicate header names get ".1", ".2" suffixes

Failures are reported in FileReadResult.errors, never raised.  An empty
file is not a failure: it yields zero rows and zero columns.

Public API:
    read_file(file_path) → FileReadResult
    SUPPORTED_EXTENSIONS
"""

import csv
import io
import logging
from dataclasses import dataclass, field
from pathlib import Path

import openpyxl
import pandas as pd

from utils.text_utils import fold_text, is_blank

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS: tuple[str, ...] = (".csv", ".xlsx", ".xlsm")

# Sheets skipped when choosing the data sheet of a workbook.
_COVER_SHEET_MARKERS: tuple[str, ...] = ("portada",)

_CSV_ENCODINGS: tuple[str, ...] = ("utf-8-sig", "latin-1")
_CSV_DELIMITERS: str = ",;\t|"


# ═══════════════════════════════════════════════════════════════════════════
# Data classes
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class FileReadResult:
    """Complete result of reading one file."""

    file_name: str = ""
    dataframe: pd.DataFrame = field(default_factory=pd.DataFrame)
    columns: list[str] = field(default_factory=list)
    sheet_name: str = ""
    total_rows_read: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def read_file(file_path: Path) -> FileReadResult:
    """
    Read one uploaded file into a DataFrame of text/number cells.

    Args:
        file_path: Path to a .csv, .xlsx or .xlsm file.

    Returns:
        FileReadResult with the rows, the header names in file order and
        any errors encountered.
    """
    file_path = Path(file_path)
    result = FileReadResult(file_name=file_path.name)
    suffix = file_path.suffix.lower()

    if suffix not in SUPPORTED_EXTENSIONS:
        _fail(result, f"Unsupported file type '{suffix or file_path.name}' "
                      f"(expected one of {', '.join(SUPPORTED_EXTENSIONS)})")
        return result

    if suffix == ".csv":
        grid = _read_csv_grid(file_path, result)
    else:
        grid = _read_workbook_grid(file_path, result)

    if grid is None:
        return result

    header_index = next(
        (i for i, row in enumerate(grid) if any(not is_blank(v) for v in row)),
        None,
    )
    if header_index is None:
        logger.warning(f"'{file_path.name}' is empty: no header row, no data rows")
        result.dataframe = pd.DataFrame(dtype=object)
        return result

    columns = _header_names(grid[header_index])
    records = []
    for row in grid[header_index + 1:]:
        if all(is_blank(v) for v in row):
            continue
        cells = list(row[:len(columns)]) + [""] * (len(columns) - len(row))
        records.append(["" if is_blank(v) else v for v in cells])

    result.columns = columns
    result.dataframe = pd.DataFrame(records, columns=columns, dtype=object)
    result.total_rows_read = len(records)

    logger.info(
        f"Finished reading '{file_path.name}'"
        f"{' sheet ' + repr(result.sheet_name) if result.sheet_name else ''}: "
        f"{result.total_rows_read} data rows, {len(columns)} columns"
    )
    return result


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _fail(result: FileReadResult, message: str) -> None:
    logger.error(message)
    result.errors.append(message)


def _read_csv_grid(file_path: Path, result: FileReadResult) -> list[list] | None:
    """Decode a CSV into a list of rows (all cells as text)."""
    try:
        raw = file_path.read_bytes()
    except OSError as exc:
        _fail(result, f"Cannot open file '{file_path.name}': {exc}")
        return None

    text = None
    for encoding in _CSV_ENCODINGS:
        try:
            text = raw.decode(encoding)
            break
        except UnicodeDecodeError:
            logger.debug(f"'{file_path.name}' is not {encoding}, trying next encoding")
    if text is None:
        _fail(result, f"Cannot decode '{file_path.name}'")
        return None

    if not text.strip():
        return []

    delimiter = _sniff_delimiter(text)
    width = max(
        (len(row) for row in csv.reader(io.StringIO(text), delimiter=delimiter)),
        default=0,
    )
    try:
        frame = pd.read_csv(
            io.StringIO(text),
            sep=delimiter,
            header=None,
            names=list(range(width)),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=False,
            engine="python",
        )
    except (pd.errors.ParserError, ValueError) as exc:
        _fail(result, f"Cannot parse CSV '{file_path.name}': {exc}")
        return None

    logger.debug(f"'{file_path.name}': delimiter {delimiter!r}, {len(frame)} raw rows")
    return frame.fillna("").values.tolist()


def _sniff_delimiter(text: str) -> str:
    sample = "\n".join(text.splitlines()[:20])
    try:
        return csv.Sniffer().sniff(sample, delimiters=_CSV_DELIMITERS).delimiter
    except csv.Error:
        counts = {d: sample.count(d) for d in _CSV_DELIMITERS}
        best = max(counts, key=counts.get)
        return best if counts[best] else ","


def _read_workbook_grid(file_path: Path, result: FileReadResult) -> list[list] | None:
    """Decode the data sheet of a workbook into a list of rows."""
    try:
        workbook = openpyxl.load_workbook(file_path, data_only=True, read_only=True)
    except Exception as exc:
        _fail(result, f"Cannot open file '{file_path.name}': {exc}")
        return None

    try:
        for worksheet in workbook.worksheets:
            if any(m in fold_text(worksheet.title) for m in _COVER_SHEET_MARKERS):
                logger.info(f"Skipping cover sheet '{worksheet.title}' in '{file_path.name}'")
                continue
            grid = [list(row) for row in worksheet.iter_rows(values_only=True)]
            if any(any(not is_blank(v) for v in row) for row in grid):
                result.sheet_name = worksheet.title
                logger.info(f"Reading sheet '{worksheet.title}' from '{file_path.name}'")
                return grid
        return []
    finally:
        workbook.close()


def _header_names(row: list) -> list[str]:
    """Header cells as unique strings."""
    last = len(row)
    while last > 0 and is_blank(row[last - 1]):
        last -= 1

    names: list[str] = []
    seen: dict[str, int] = {}
    for position, value in enumerate(row[:last]):
        name = f"Unnamed: {position}" if is_blank(value) else str(value).strip()
        if name in seen:
            seen[name] += 1
            candidate = f"{name}.{seen[name]}"
            while candidate in seen:
                seen[name] += 1
                candidate = f"{name}.{seen[name]}"
            name = candidate
        seen.setdefault(name, 0)
        names.append(name)
    return names
