"""
Tests for processing/column_projector.py

Covers: Document consolidation, forced discount removal, template drops with
protected columns, the address-in-document template override, output order,
idempotence, and internal-field handling.
"""

import pandas as pd
import pytest

from config.column_rules import DOCUMENT_COLUMN, STORE_ID_FIELD, STORE_NAME_FIELD
from processing.column_projector import project
from processing.registry import Template


def _make_df(columns: dict[str, list]) -> pd.DataFrame:
    return pd.DataFrame(columns, dtype=object)


def _is_subsequence(sub: list[str], full: list[str]) -> bool:
    iterator = iter(full)
    return all(item in iterator for item in sub)


# ═══════════════════════════════════════════════════════════════════════════
# Document consolidation
# ═══════════════════════════════════════════════════════════════════════════

class TestDocumentConsolidation:
    def test_document_columns_merged_and_prepended(self):
        df = _make_df({
            "Fecha": ["2025-01-05", "2025-01-06"],
            "Cedula": ["123", ""],
            "NIT Cliente": ["", "900"],
            "Valor": [1000, 2000],
        })
        result = project(list(df.columns), df, None)

        assert result.columns == [DOCUMENT_COLUMN, "Fecha", "Valor"]
        assert list(result.dataframe[DOCUMENT_COLUMN]) == ["123", "900"]
        assert result.document_sources == ["Cedula", "NIT Cliente"]

    def test_first_non_blank_wins(self):
        df = _make_df({"Cedula": ["111"], "Nro_Doc": ["222"]})
        result = project(list(df.columns), df, None)
        assert result.dataframe.at[0, DOCUMENT_COLUMN] == "111"

    def test_whole_float_rendered_without_decimals(self):
        df = pd.DataFrame({"Cedula": [1234567.0]})
        result = project(["Cedula"], df, None)
        assert result.dataframe.at[0, DOCUMENT_COLUMN] == "1234567"

    def test_excluded_keywords_not_documents(self):
        df = _make_df({
            "Fecha Identificacion": ["2025-01-05"],
            "ID Terminal": ["T1"],
            "Valor": [1],
        })
        result = project(list(df.columns), df, None)
        assert DOCUMENT_COLUMN not in result.columns
        assert result.columns == ["Fecha Identificacion", "ID Terminal", "Valor"]

    def test_address_column_not_a_document(self):
        df = _make_df({"Dirección": ["Cra 7 # 80-10"], "Valor": [1]})
        result = project(list(df.columns), df, Template("transactions"))
        assert DOCUMENT_COLUMN not in result.columns
        assert result.columns == ["Dirección", "Valor"]

    @pytest.mark.parametrize("column", ["CC", "CC Cliente", "Numero_CC"])
    def test_cc_as_whole_word_is_a_document(self, column):
        df = _make_df({column: ["1010"], "Valor": [1]})
        result = project(list(df.columns), df, None)
        assert result.columns == [DOCUMENT_COLUMN, "Valor"]
        assert result.dataframe.at[0, DOCUMENT_COLUMN] == "1010"

    def test_existing_document_column_kept_in_place(self):
        df = _make_df({"Valor": [1], "Document": [""], "Cedula": ["555"]})
        result = project(list(df.columns), df, None)
        assert result.columns == ["Valor", "Document"]
        assert result.dataframe.at[0, "Document"] == "555"


# ═══════════════════════════════════════════════════════════════════════════
# Forced elimination
# ═══════════════════════════════════════════════════════════════════════════

class TestForcedElimination:
    def test_discount_always_removed(self):
        df = _make_df({"Valor": [1], "Descuento": [0], "Valor Descuento": [0]})
        result = project(list(df.columns), df, None)
        assert result.columns == ["Valor"]

    def test_template_drops_applied(self):
        template = Template("transactions", frozenset({"Canal", "Estado"}))
        df = _make_df({"Canal": ["web"], "Estado": ["ok"], "Tienda": ["x"]})
        result = project(list(df.columns), df, template)
        assert result.columns == ["Tienda"]
        assert set(result.dropped) == {"Canal", "Estado"}

    def test_template_drops_match_accent_insensitive(self):
        template = Template("Creditos", frozenset({"Almacén"}))
        df = _make_df({"almacen": ["x"], "Tienda": ["y"]})
        result = project(list(df.columns), df, template)
        assert result.columns == ["Tienda"]

    def test_protected_columns_survive_template_drops(self):
        template = Template(
            "transactions",
            frozenset({"Fecha Cancelación", "Monto Total", "Factura", "Canal"}),
        )
        df = _make_df({
            "Fecha Cancelación": ["2025-01-05"],
            "Monto Total": [1000],
            "Factura": ["F-1"],
            "Canal": ["web"],
        })
        result = project(list(df.columns), df, template)
        assert result.columns == ["Fecha Cancelación", "Monto Total", "Factura"]

    def test_unrecognized_template_passes_columns_through(self):
        df = _make_df({"Canal": ["web"], "Estado": ["ok"]})
        result = project(list(df.columns), df, None)
        assert result.columns == ["Canal", "Estado"]
        assert result.dropped == []


# ═══════════════════════════════════════════════════════════════════════════
# Address-in-document template
# ═══════════════════════════════════════════════════════════════════════════

class TestAddressTemplate:
    def test_document_never_emitted(self):
        template = Template("ReporteDiariodeVentasComercio")
        df = _make_df({"Documento": ["CRA 7 # 12-30"], "Valor": [1000]})
        result = project(list(df.columns), df, template)

        assert result.columns == ["Valor"]
        assert DOCUMENT_COLUMN not in result.dataframe.columns

    def test_other_templates_keep_document(self):
        template = Template("transactions")
        df = _make_df({"Documento": ["123"], "Valor": [1000]})
        result = project(list(df.columns), df, template)
        assert result.columns == [DOCUMENT_COLUMN, "Valor"]


# ═══════════════════════════════════════════════════════════════════════════
# Order, idempotence and internal fields
# ═══════════════════════════════════════════════════════════════════════════

class TestProjectionProperties:
    def _sample(self) -> tuple[pd.DataFrame, Template]:
        df = _make_df({
            "Fecha": ["2025-01-05"],
            "Canal": ["web"],
            "Tienda": ["ANDINO"],
            "Cedula": ["123"],
            "Descuento": [0],
            "Valor": [1000],
            STORE_ID_FIELD: [5],
            STORE_NAME_FIELD: ["ANDINO"],
        })
        return df, Template("transactions", frozenset({"Canal"}))

    def test_output_is_subsequence_after_document(self):
        df, template = self._sample()
        columns = ["Fecha", "Canal", "Tienda", "Cedula", "Descuento", "Valor"]
        result = project(columns, df, template)

        assert result.columns[0] == DOCUMENT_COLUMN
        assert _is_subsequence(result.columns[1:], columns)

    def test_idempotent(self):
        df, template = self._sample()
        columns = ["Fecha", "Canal", "Tienda", "Cedula", "Descuento", "Valor"]
        first = project(columns, df, template)
        second = project(first.columns, first.dataframe, template)

        assert second.columns == first.columns
        assert list(second.dataframe[DOCUMENT_COLUMN]) == list(first.dataframe[DOCUMENT_COLUMN])

    def test_internal_fields_kept_out_of_columns(self):
        df, template = self._sample()
        columns = ["Fecha", "Tienda", "Valor"]
        result = project(columns, df, template)

        assert STORE_ID_FIELD not in result.columns
        assert STORE_NAME_FIELD not in result.columns
        assert result.dataframe.at[0, STORE_ID_FIELD] == 5
        assert result.dataframe.at[0, STORE_NAME_FIELD] == "ANDINO"

    def test_input_not_mutated(self):
        df, template = self._sample()
        before = df.copy()
        project(list(before.columns[:6]), df, template)
        assert df.equals(before)
