"""
Command-line entry point: consolidate provider exports into one report.

Usage:
    python build_report.py FILE [FILE ...] --output report.xlsx
        (--registry registry.json | --registry-url URL [--token TOKEN])
        [--workers N] [--compact] [--tie-break last|first] [--verbose]

When neither --registry nor --registry-url is given, the REGISTRY_URL and
REGISTRY_TOKEN environment variables are used.

Exit codes: 0 every file processed, 1 usage or registry error,
2 at least one file failed.
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from processing.alias_resolver import TIE_BREAK_FIRST, TIE_BREAK_LAST
from processing.pipeline import DEFAULT_MAX_WORKERS, BatchResult, process_batch
from processing.registry import (
    Registry,
    RegistryLoadError,
    build_registry,
    fetch_alias_records,
    load_registry_file,
)
from utils.excel_formatter import write_report

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_FILES_FAILED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="build_report",
        description="Normalize provider settlement files and write a store-by-store report.",
    )
    parser.add_argument("files", nargs="+", type=Path, help="CSV/XLSX files to consolidate")
    parser.add_argument("--output", "-o", type=Path, required=True, help="Report .xlsx path")

    source = parser.add_mutually_exclusive_group()
    source.add_argument("--registry", type=Path, help="Registry JSON document")
    source.add_argument("--registry-url", help="Directus base URL holding the alias table")
    parser.add_argument("--token", help="Directus access token (default: $REGISTRY_TOKEN)")

    parser.add_argument("--workers", type=int, default=DEFAULT_MAX_WORKERS,
                        help=f"Files processed in parallel (default {DEFAULT_MAX_WORKERS})")
    parser.add_argument("--compact", action="store_true",
                        help="Show only date, document, store and amount columns")
    parser.add_argument("--tie-break", choices=(TIE_BREAK_LAST, TIE_BREAK_FIRST),
                        default=TIE_BREAK_LAST,
                        help="Which alias wins when a row names several stores")
    parser.add_argument("--no-validation-sheet", action="store_true",
                        help="Do not add the per-file validation sheet")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def load_registry(args: argparse.Namespace) -> Registry:
    """Registry from --registry, --registry-url or the environment."""
    if args.registry is not None:
        return load_registry_file(args.registry)

    url = args.registry_url or os.environ.get("REGISTRY_URL")
    if not url:
        raise RegistryLoadError(
            "No registry given: use --registry, --registry-url or set REGISTRY_URL"
        )
    token = args.token or os.environ.get("REGISTRY_TOKEN")
    return build_registry(fetch_alias_records(url, token=token))


def print_summary(result: BatchResult) -> None:
    for uploaded, validation in zip(result.files, result.validations):
        stats = validation.statistics
        template = uploaded.template_id or "unrecognized"
        print(
            f"[OK] {uploaded.file_name}: template {template}, "
            f"{stats.mapped_rows}/{stats.total_rows} rows mapped "
            f"({stats.percent_mapped:.0f}%), {len(stats.distinct_stores_found)} stores"
        )
        for error in validation.errors:
            print(f"  ERROR: {error}")
        for warning in validation.warnings:
            print(f"  warning: {warning}")
    for failed in result.failed:
        print(f"[FAILED] {failed.file_name}: {failed.error}")
    for name in result.skipped:
        print(f"[SKIPPED] {name}")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.workers < 1:
        print("--workers must be at least 1", file=sys.stderr)
        return EXIT_COMMAND_ERROR

    try:
        registry = load_registry(args)
    except RegistryLoadError as exc:
        logger.error(str(exc))
        return EXIT_COMMAND_ERROR

    result = process_batch(
        args.files,
        registry,
        max_workers=args.workers,
        compact=args.compact,
        tie_break=args.tie_break,
    )

    if args.no_validation_sheet:
        output = write_report(result.report, args.output)
    else:
        output = write_report(result.report, args.output, result.files, result.validations)

    print_summary(result)
    print(f"Report written to {output}")
    return EXIT_FILES_FAILED if result.failed else EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
