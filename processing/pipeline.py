"""
Batch pipeline — runs every stage over a set of uploaded files.

Per file (independent, run on a bounded thread pool):
    read → match template → drop noise rows → resolve store aliases
    → project columns → validate

Per batch (single-threaded, after every file finished):
    group by store and source → compose the report model

Files share nothing but the read-only Registry.  A failure in one file is
logged and recorded as a FailedFile; the others carry on.  When the optional
cancel_event is set, files that have not started yet are reported as skipped
and files already normalized are kept intact.

Public API:
    prepare_file(file_name, dataframe, columns, registry) → UploadedFile
    load_file(file_path, registry) → UploadedFile
    normalize_file(uploaded, registry, tie_break) → (UploadedFile, ValidationResult)
    process_batch(sources, registry, ...) → BatchResult
"""

import datetime as dt
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from pathlib import Path

import pandas as pd

from output.report_composer import ReportModel, compose
from processing.alias_resolver import TIE_BREAK_LAST, resolve
from processing.column_projector import project
from processing.file_reader import read_file
from processing.grouping import GroupedDataset, group
from processing.mapping_validator import ValidationResult, validate
from processing.registry import Registry
from processing.row_filter import filter_invalid_rows
from processing.template_matcher import match, suggest_template
from processing.uploaded_file import UploadedFile

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS: int = 4


class FileReadError(RuntimeError):
    """An uploaded file could not be decoded into rows."""


# ═══════════════════════════════════════════════════════════════════════════
# Data classes
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class FailedFile:
    """A file that could not be read or normalized."""

    file_name: str
    error: str


@dataclass
class BatchResult:
    """Everything a batch produced, in input order."""

    files: list[UploadedFile] = field(default_factory=list)
    validations: list[ValidationResult] = field(default_factory=list)
    failed: list[FailedFile] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    dataset: GroupedDataset = field(default_factory=GroupedDataset)
    report: ReportModel | None = None

    @property
    def failed_names(self) -> list[str]:
        return [f.file_name for f in self.failed]


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def prepare_file(
    file_name: str,
    dataframe: pd.DataFrame,
    columns: list[str] | None,
    registry: Registry,
) -> UploadedFile:
    """Wrap already-decoded rows and recognize their template."""
    matched = match(file_name, registry)
    return UploadedFile(
        file_name=Path(file_name).name,
        dataframe=dataframe,
        columns=tuple(columns if columns is not None else dataframe.columns),
        resolved_template=matched.template if matched else None,
        match_score=matched.score if matched else 0.0,
    )


def load_file(file_path: Path, registry: Registry) -> UploadedFile:
    """
    Read a file from disk and recognize its template.

    Raises:
        FileReadError: the reader reported errors.
    """
    read = read_file(Path(file_path))
    if read.errors:
        raise FileReadError("; ".join(read.errors))
    return prepare_file(read.file_name, read.dataframe, read.columns, registry)


def normalize_file(
    uploaded: UploadedFile,
    registry: Registry,
    tie_break: str = TIE_BREAK_LAST,
) -> tuple[UploadedFile, ValidationResult]:
    """
    Normalize one file without touching the original.

    Aliases scoped to the file's template are matched by containment.  A file
    whose template is unrecognized, or has no aliases of its own, is matched
    against the whole alias table, whole cells only.

    Returns:
        (new UploadedFile with normalized=True, its ValidationResult)
    """
    if uploaded.normalized:
        logger.debug(f"'{uploaded.file_name}' already normalized")
        return uploaded, validate(uploaded.dataframe, uploaded.file_name)

    filtered = filter_invalid_rows(uploaded.dataframe)

    aliases = registry.aliases_for(uploaded.template_id)
    exact_only = not aliases
    if exact_only:
        aliases = registry.aliases
        logger.info(
            f"'{uploaded.file_name}': no template aliases, "
            f"exact matching against all {len(aliases)} aliases"
        )

    resolution = resolve(filtered.dataframe, aliases, exact_only=exact_only, tie_break=tie_break)
    projection = project(list(uploaded.columns), resolution.dataframe, uploaded.resolved_template)
    validation = validate(projection.dataframe, uploaded.file_name)

    if filtered.discarded_total:
        details = ", ".join(f"{n} {reason}" for reason, n in filtered.discarded.items())
        validation.warnings.append(
            f"{filtered.discarded_total} rows discarded before mapping ({details})"
        )

    if uploaded.resolved_template is None:
        suggestion, score = suggest_template(uploaded.file_name, registry)
        message = "Template not recognized; no column elimination applied"
        if suggestion is not None:
            message += f" (closest template: '{suggestion}', similarity {score}%)"
        validation.warnings.append(message)

    normalized = replace(
        uploaded,
        dataframe=projection.dataframe,
        columns=tuple(projection.columns),
        normalized=True,
    )
    return normalized, validation


def process_batch(
    sources: list,
    registry: Registry,
    max_workers: int = DEFAULT_MAX_WORKERS,
    cancel_event: threading.Event | None = None,
    compact: bool = False,
    tie_break: str = TIE_BREAK_LAST,
    generated_on: dt.date | None = None,
) -> BatchResult:
    """
    Run the full pipeline over a batch of files.

    Args:
        sources: File paths and/or already-decoded UploadedFile objects.
        registry: Session registry (read-only, shared by every worker).
        max_workers: Upper bound on files processed at the same time.
        cancel_event: When set, files not yet started are skipped.
        compact: Compose the report with the compact column selection.
        tie_break: Alias tie-break policy ("last" or "first").
        generated_on: Report date (defaults to today).

    Returns:
        BatchResult with normalized files and validations in input order,
        failed and skipped files, the grouped dataset and the report.
    """
    if max_workers < 1:
        raise ValueError("max_workers must be a positive integer")

    result = BatchResult()
    if not sources:
        result.report = compose(result.dataset, generated_on=generated_on, compact=compact)
        return result

    def _run(source) -> tuple:
        name = _source_name(source)
        if cancel_event is not None and cancel_event.is_set():
            return "skipped", name, None
        try:
            uploaded = source if isinstance(source, UploadedFile) else load_file(source, registry)
            return "done", name, normalize_file(uploaded, registry, tie_break=tie_break)
        except Exception as exc:
            logger.exception(f"Failed to process '{name}'")
            return "failed", name, FailedFile(file_name=name, error=str(exc))

    logger.info(f"Processing {len(sources)} files with up to {max_workers} workers")
    with ThreadPoolExecutor(max_workers=min(max_workers, len(sources))) as pool:
        futures = [pool.submit(_run, source) for source in sources]
        outcomes = [future.result() for future in futures]

    for status, name, payload in outcomes:
        if status == "done":
            uploaded, validation = payload
            result.files.append(uploaded)
            result.validations.append(validation)
        elif status == "failed":
            result.failed.append(payload)
        else:
            logger.warning(f"Skipped '{name}': batch cancelled")
            result.skipped.append(name)

    result.dataset = group(result.files, registry)
    result.report = compose(result.dataset, generated_on=generated_on, compact=compact)

    logger.info(
        f"Batch complete: {len(result.files)} normalized, "
        f"{len(result.failed)} failed, {len(result.skipped)} skipped"
    )
    return result


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _source_name(source: object) -> str:
    if isinstance(source, UploadedFile):
        return source.file_name
    return Path(source).name
