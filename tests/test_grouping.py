"""
Tests for processing/grouping.py

Covers: source labels, business-code column detection, code comparison,
bucket sorting, store ordering, and the partition property of group().
"""

import pandas as pd
import pytest

from config.column_rules import STORE_ID_FIELD, STORE_NAME_FIELD
from config.grouping_rules import UNASSIGNED_STORE
from processing.grouping import (
    compare_codes,
    find_business_code_column,
    group,
    sort_bucket_rows,
    source_label,
)
from processing.registry import Registry, StoreAlias, Template
from processing.uploaded_file import UploadedFile


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

REGISTRY = Registry(
    templates=(Template("transactions"), Template("Creditos")),
    aliases=(
        StoreAlias("transactions", "cll80", "Calle 80", 12),
        StoreAlias("transactions", "andino", "ANDINO", 5),
        StoreAlias("Creditos", "c80", "CALLE 80", 99),
    ),
)


def _make_file(
    name: str,
    template_id: str | None,
    rows: list[dict],
    normalized: bool = True,
) -> UploadedFile:
    df = pd.DataFrame(rows, dtype=object)
    columns = tuple(c for c in df.columns if c not in (STORE_ID_FIELD, STORE_NAME_FIELD))
    return UploadedFile(
        file_name=name,
        dataframe=df,
        columns=columns,
        resolved_template=Template(template_id) if template_id else None,
        normalized=normalized,
    )


# ═══════════════════════════════════════════════════════════════════════════
# source_label
# ═══════════════════════════════════════════════════════════════════════════

class TestSourceLabel:
    @pytest.mark.parametrize("file_name, template_id, expected", [
        ("transactions_enero.xlsx", "transactions", "ADDI"),
        ("addi_pagos.csv", None, "ADDI"),
        ("ReporteDiariodeVentasComercio (3).xlsx", "ReporteDiariodeVentasComercio", "REDEBANA"),
        ("Maria Perez - Bco Occidente.xlsx", "Maria Perez - Bco Occidente", "TRANSFERENCIAS"),
        ("Creditos.xlsx", "Creditos", "SISTECREDITOS"),
        ("enero.xlsx", "Transferencia Nequi", "TRANSFERENCIAS"),
        ("pagos.csv", "Bold  Pagos", "BOLD PAGOS"),
        ("otro.csv", None, "otro.csv"),
    ])
    def test_labels(self, file_name, template_id, expected):
        assert source_label(file_name, template_id) == expected


# ═══════════════════════════════════════════════════════════════════════════
# Business code detection and comparison
# ═══════════════════════════════════════════════════════════════════════════

class TestFindBusinessCodeColumn:
    def test_priority_order(self):
        df = pd.DataFrame({"Referencia": ["b"], "Codigo Ultra": ["1"]})
        assert find_business_code_column(["Referencia", "Codigo Ultra"], df) == "Codigo Ultra"

    def test_accented_name(self):
        df = pd.DataFrame({"Transacción": ["9"]})
        assert find_business_code_column(["Transacción"], df) == "Transacción"

    def test_blank_column_ignored(self):
        df = pd.DataFrame({"Codigo": ["", None], "Factura": ["F2", "F1"]})
        assert find_business_code_column(["Codigo", "Factura"], df) == "Factura"

    def test_none_found(self):
        df = pd.DataFrame({"Nombre": ["x"], "Valor": [1]})
        assert find_business_code_column(["Nombre", "Valor"], df) is None


class TestCompareCodes:
    def test_blank_sorts_last(self):
        assert compare_codes("", "5") == 1
        assert compare_codes(None, "5") == 1
        assert compare_codes("5", None) == -1
        assert compare_codes(None, "") == 0

    def test_numeric(self):
        assert compare_codes("10", "9") > 0
        assert compare_codes(2, "2.0") == 0

    def test_natural_case_insensitive(self):
        assert compare_codes("T2", "t10") < 0
        assert compare_codes("abc", "ABC") == 0


class TestSortBucketRows:
    def test_sorted_with_blanks_last(self):
        df = pd.DataFrame({"Codigo": ["10", "2", "", "1"], "n": [0, 1, 2, 3]})
        result = sort_bucket_rows(df, "Codigo")
        assert list(result["Codigo"]) == ["1", "2", "10", ""]

    def test_stable_for_equal_keys(self):
        df = pd.DataFrame({"Codigo": ["5", "1", "5"], "n": ["a", "b", "c"]})
        result = sort_bucket_rows(df, "Codigo")
        assert list(result["n"]) == ["b", "a", "c"]

    def test_no_column_keeps_order(self):
        df = pd.DataFrame({"n": [3, 1, 2]})
        assert list(sort_bucket_rows(df, None)["n"]) == [3, 1, 2]


# ═══════════════════════════════════════════════════════════════════════════
# group()
# ═══════════════════════════════════════════════════════════════════════════

class TestGroup:
    def _files(self) -> list[UploadedFile]:
        addi = _make_file("transactions_enero.xlsx", "transactions", [
            {"Codigo": "30", "Valor": 100, STORE_ID_FIELD: 12, STORE_NAME_FIELD: "CALLE 80"},
            {"Codigo": "4", "Valor": 200, STORE_ID_FIELD: 5, STORE_NAME_FIELD: "ANDINO"},
            {"Codigo": "", "Valor": 300, STORE_ID_FIELD: None, STORE_NAME_FIELD: None},
            {"Codigo": "2", "Valor": 400, STORE_ID_FIELD: 12, STORE_NAME_FIELD: "calle 80 "},
        ])
        creditos = _make_file("Creditos.xlsx", "Creditos", [
            {"Nombre": "z", "Monto": 1, STORE_ID_FIELD: None, STORE_NAME_FIELD: "SUBA"},
            {"Nombre": "y", "Monto": 2, STORE_ID_FIELD: 99, STORE_NAME_FIELD: "CALLE 80"},
            {"Nombre": "x", "Monto": 3, STORE_ID_FIELD: None, STORE_NAME_FIELD: "SUBA"},
        ])
        return [addi, creditos]

    def test_partition(self):
        files = self._files()
        dataset = group(files, REGISTRY)
        assert dataset.total_rows == sum(f.row_count for f in files)

    def test_store_keys_trimmed_upper(self):
        dataset = group(self._files(), REGISTRY)
        assert len(dataset.stores["CALLE 80"]["ADDI"]) == 2

    def test_unmapped_rows_in_sentinel(self):
        dataset = group(self._files(), REGISTRY)
        assert len(dataset.stores[UNASSIGNED_STORE]["ADDI"]) == 1

    def test_store_order_by_code_then_name(self):
        dataset = group(self._files(), REGISTRY)
        assert list(dataset.stores) == ["ANDINO", "CALLE 80", "SUBA", UNASSIGNED_STORE]

    def test_store_codes_monotonic(self):
        dataset = group(self._files(), REGISTRY)
        codes = [dataset.store_codes[s] for s in dataset.stores if s in dataset.store_codes]
        assert codes == sorted(codes)

    def test_sources_in_first_seen_order(self):
        dataset = group(self._files(), REGISTRY)
        assert list(dataset.stores["CALLE 80"]) == ["ADDI", "SISTECREDITOS"]

    def test_bucket_sorted_by_code(self):
        dataset = group(self._files(), REGISTRY)
        bucket = dataset.stores["CALLE 80"]["ADDI"]
        assert bucket.sort_column == "Codigo"
        assert list(bucket.rows["Codigo"]) == ["2", "30"]

    def test_bucket_without_code_keeps_file_order(self):
        dataset = group(self._files(), REGISTRY)
        bucket = dataset.stores["SUBA"]["SISTECREDITOS"]
        assert bucket.sort_column is None
        assert list(bucket.rows["Nombre"]) == ["z", "x"]

    def test_bucket_columns_exclude_internal_fields(self):
        dataset = group(self._files(), REGISTRY)
        assert dataset.stores["ANDINO"]["ADDI"].columns == ["Codigo", "Valor"]

    def test_same_source_from_two_files_merges_columns(self):
        first = _make_file("addi_1.csv", None, [
            {"A": "1", STORE_NAME_FIELD: "ANDINO"},
        ])
        second = _make_file("addi_2.csv", None, [
            {"B": "2", STORE_NAME_FIELD: "ANDINO"},
        ])
        dataset = group([first, second], REGISTRY)
        bucket = dataset.stores["ANDINO"]["ADDI"]
        assert bucket.columns == ["A", "B"]
        assert list(bucket.rows["A"]) == ["1", ""]
        assert list(bucket.rows["B"]) == ["", "2"]

    def test_unnormalized_files_skipped(self):
        pending = _make_file("x.csv", None, [{"A": "1"}], normalized=False)
        dataset = group([pending], REGISTRY)
        assert dataset.stores == {}

    def test_without_registry_all_stores_alphabetical(self):
        dataset = group(self._files())
        assert list(dataset.stores) == ["ANDINO", "CALLE 80", "SUBA", UNASSIGNED_STORE]
