"""
Excel formatter — writes the consolidated report workbook.

Sheet 1: "Reporte" — every store section of the ReportModel, top to bottom:
         store header merged across the full width (blue fill, white bold),
         bold source header, styled column header row, bordered data rows
         with currency cells as "$"#,##0, and a bold grey totals row.
Sheet 2: "Validación" (optional) — one row per file: template, match score,
         rows, mapped %, stores, errors and warnings.

Public API:
    write_report(report, output_path, files, validations) → Path
"""

import logging
from pathlib import Path

import openpyxl
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from output.report_composer import ReportModel, SourceSection
from processing.mapping_validator import ValidationResult
from processing.uploaded_file import UploadedFile
from processing.value_formatter import KIND_CURRENCY, ReportCell

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Constants
# ═══════════════════════════════════════════════════════════════════════════

REPORT_SHEET_TITLE = "Reporte"
VALIDATION_SHEET_TITLE = "Validación"

_STORE_FILL = PatternFill(start_color="1976D2", end_color="1976D2", fill_type="solid")
_STORE_FONT = Font(color="FFFFFF", bold=True, size=14)
_SOURCE_FONT = Font(color="333333", bold=True, size=12)
_HEADER_FILL = PatternFill(start_color="424242", end_color="424242", fill_type="solid")
_HEADER_FONT = Font(color="FFFFFF", bold=True, size=10)
_TOTAL_FILL = PatternFill(start_color="F5F5F5", end_color="F5F5F5", fill_type="solid")
_NORMAL_FONT = Font(size=10)
_BOLD_FONT = Font(bold=True, size=10)

_THIN = Side(style="thin")
_BORDER = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)

CURRENCY_FORMAT = '"$"#,##0'

_MAX_COL_WIDTH = 50
_MIN_COL_WIDTH = 8

_VALIDATION_HEADERS = [
    "Archivo", "Plantilla", "Puntaje", "Filas", "Filas mapeadas",
    "% mapeado", "Tiendas", "Errores", "Advertencias",
]


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def write_report(
    report: ReportModel,
    output_path: Path,
    files: list[UploadedFile] | None = None,
    validations: list[ValidationResult] | None = None,
) -> Path:
    """
    Write the report workbook.

    Args:
        report: Output of output.report_composer.compose().
        output_path: Path where the .xlsx file should be saved.
        files: Normalized files, aligned with *validations*.  The validation
               sheet is written only when both are given.
        validations: One ValidationResult per file.

    Returns:
        The output_path (same as input, for convenience).
    """
    workbook = openpyxl.Workbook()

    report_sheet = workbook.active
    report_sheet.title = REPORT_SHEET_TITLE
    _write_report_sheet(report_sheet, report)

    if files is not None and validations is not None:
        validation_sheet = workbook.create_sheet(VALIDATION_SHEET_TITLE)
        _write_validation_sheet(validation_sheet, files, validations)

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(str(output_path))
    workbook.close()

    logger.info(
        f"Report saved to '{output_path}' "
        f"({len(report.sections)} stores, {report.row_count} rows)"
    )
    return output_path


# ═══════════════════════════════════════════════════════════════════════════
# Sheet 1: Report
# ═══════════════════════════════════════════════════════════════════════════

def _write_report_sheet(
    worksheet: openpyxl.worksheet.worksheet.Worksheet,
    report: ReportModel,
) -> None:
    """Write every store section, one blank row between sections."""
    width = report.width
    current_row = 1
    merged_rows: set[int] = set()

    for section in report.sections:
        cell = worksheet.cell(row=current_row, column=1, value=section.header)
        cell.fill = _STORE_FILL
        cell.font = _STORE_FONT
        cell.alignment = Alignment(horizontal="center")
        if width > 1:
            worksheet.merge_cells(
                start_row=current_row, start_column=1,
                end_row=current_row, end_column=width,
            )
        merged_rows.add(current_row)
        current_row += 2

        for source in section.sources:
            current_row = _write_source(worksheet, source, current_row)
            current_row += 1

        current_row += 1

    _auto_fit_column_widths(worksheet, skip_rows=merged_rows)


def _write_source(
    worksheet: openpyxl.worksheet.worksheet.Worksheet,
    source: SourceSection,
    current_row: int,
) -> int:
    """Write one source block starting at *current_row*; return the next free row."""
    worksheet.cell(row=current_row, column=1, value=source.header).font = _SOURCE_FONT
    current_row += 1

    for col_idx, column in enumerate(source.columns, start=1):
        cell = worksheet.cell(row=current_row, column=col_idx, value=str(column).upper())
        cell.fill = _HEADER_FILL
        cell.font = _HEADER_FONT
        cell.alignment = Alignment(horizontal="center")
        cell.border = _BORDER
    current_row += 1

    for row in source.rows:
        for col_idx, report_cell in enumerate(row, start=1):
            cell = _write_cell(worksheet, current_row, col_idx, report_cell)
            cell.font = _NORMAL_FONT
            cell.border = _BORDER
        current_row += 1

    for col_idx, report_cell in enumerate(source.totals, start=1):
        cell = _write_cell(worksheet, current_row, col_idx, report_cell)
        cell.font = _BOLD_FONT
        cell.fill = _TOTAL_FILL
    return current_row + 1


def _write_cell(
    worksheet: openpyxl.worksheet.worksheet.Worksheet,
    row: int,
    column: int,
    report_cell: ReportCell,
):
    """Currency cells keep their number so Excel can sum them."""
    if report_cell.kind == KIND_CURRENCY:
        cell = worksheet.cell(row=row, column=column, value=report_cell.value)
        cell.number_format = CURRENCY_FORMAT
        return cell
    value = report_cell.display if report_cell.display != "" else None
    return worksheet.cell(row=row, column=column, value=value)


# ═══════════════════════════════════════════════════════════════════════════
# Sheet 2: Validation
# ═══════════════════════════════════════════════════════════════════════════

def _write_validation_sheet(
    worksheet: openpyxl.worksheet.worksheet.Worksheet,
    files: list[UploadedFile],
    validations: list[ValidationResult],
) -> None:
    """One row of diagnostics per normalized file."""
    for col_idx, header in enumerate(_VALIDATION_HEADERS, start=1):
        cell = worksheet.cell(row=1, column=col_idx, value=header)
        cell.fill = _HEADER_FILL
        cell.font = _HEADER_FONT
        cell.alignment = Alignment(horizontal="center")

    for excel_row, (uploaded, validation) in enumerate(zip(files, validations), start=2):
        stats = validation.statistics
        values = [
            uploaded.file_name,
            uploaded.template_id or "(no reconocida)",
            round(uploaded.match_score, 2),
            stats.total_rows,
            stats.mapped_rows,
            round(stats.percent_mapped, 1),
            ", ".join(sorted(stats.distinct_stores_found)),
            "\n".join(validation.errors),
            "\n".join(validation.warnings),
        ]
        for col_idx, value in enumerate(values, start=1):
            cell = worksheet.cell(row=excel_row, column=col_idx, value=value)
            cell.font = _NORMAL_FONT
            if col_idx >= 8:
                cell.alignment = Alignment(wrap_text=True, vertical="top")

    if files:
        last_col = get_column_letter(len(_VALIDATION_HEADERS))
        worksheet.auto_filter.ref = f"A1:{last_col}{len(files) + 1}"

    _auto_fit_column_widths(worksheet)


# ═══════════════════════════════════════════════════════════════════════════
# Formatting helpers
# ═══════════════════════════════════════════════════════════════════════════

def _auto_fit_column_widths(
    worksheet: openpyxl.worksheet.worksheet.Worksheet,
    skip_rows: set[int] | None = None,
) -> None:
    """
    Set column widths based on content length.

    Cells in *skip_rows* (merged store headers) are ignored; widths are
    clamped between _MIN_COL_WIDTH and _MAX_COL_WIDTH.
    """
    skip_rows = skip_rows or set()

    for col_idx in range(1, worksheet.max_column + 1):
        max_length = _MIN_COL_WIDTH
        for row_idx in range(1, worksheet.max_row + 1):
            if row_idx in skip_rows:
                continue
            value = worksheet.cell(row=row_idx, column=col_idx).value
            if value is None:
                continue
            longest_line = max(len(line) for line in str(value).split("\n"))
            max_length = max(max_length, longest_line)

        adjusted_width = min(max_length + 2, _MAX_COL_WIDTH)
        worksheet.column_dimensions[get_column_letter(col_idx)].width = adjusted_width
