"""
Tests for processing/alias_resolver.py

Covers: containment and exact matching, canonical rewriting, store fields,
both tie-break policies, registry-order precedence, numeric and date
cells, and that the input DataFrame is never modified.
"""

import datetime as dt

import pandas as pd
import pytest

from config.column_rules import STORE_ID_FIELD, STORE_NAME_FIELD
from processing.alias_resolver import TIE_BREAK_FIRST, TIE_BREAK_LAST, resolve
from processing.registry import StoreAlias


CLL80 = StoreAlias("transactions", "cll80", "CALLE 80", 12)
ANDINO = StoreAlias("transactions", "andino", "ANDINO", 5)
C80 = StoreAlias("transactions", "c80", "CALLE 80", 12)


# ═══════════════════════════════════════════════════════════════════════════
# Basic resolution
# ═══════════════════════════════════════════════════════════════════════════

class TestResolve:
    def test_contained_alias_rewritten(self):
        df = pd.DataFrame({"Tienda": ["CLL80 Principal"]})
        result = resolve(df, [CLL80])

        assert result.dataframe.at[0, "Tienda"] == "CALLE 80"
        assert result.dataframe.at[0, STORE_ID_FIELD] == 12
        assert result.dataframe.at[0, STORE_NAME_FIELD] == "CALLE 80"
        assert result.mapped_rows == 1
        assert result.stores_found == {"CALLE 80"}

    def test_unmatched_row_untouched(self):
        df = pd.DataFrame({"Tienda": ["Otra tienda"], "Valor": [100]})
        result = resolve(df, [CLL80])

        assert result.dataframe.at[0, "Tienda"] == "Otra tienda"
        assert result.dataframe.at[0, STORE_ID_FIELD] is None
        assert result.dataframe.at[0, STORE_NAME_FIELD] is None
        assert result.mapped_rows == 0

    def test_every_matching_cell_rewritten(self):
        df = pd.DataFrame({"Origen": ["cll80"], "Destino": ["Sede CLL80"], "Nota": ["x"]})
        result = resolve(df, [CLL80])
        row = result.dataframe.iloc[0]
        assert row["Origen"] == "CALLE 80"
        assert row["Destino"] == "CALLE 80"
        assert row["Nota"] == "x"
        assert result.replaced_cells == 2

    def test_accent_and_case_insensitive(self):
        alias = StoreAlias("t", "Bogotá Norte", "BOGOTA NORTE", 3)
        df = pd.DataFrame({"Tienda": ["  BOGOTA   norte 2 "]})
        result = resolve(df, [alias])
        assert result.dataframe.at[0, "Tienda"] == "BOGOTA NORTE"

    def test_numeric_code_cell_resolved(self):
        alias = StoreAlias("t", "80", "CALLE 80", 12)
        df = pd.DataFrame({"Codigo": [80], "Valor": [5000]}, dtype=object)
        result = resolve(df, [alias])

        assert result.dataframe.at[0, "Codigo"] == "CALLE 80"
        assert result.dataframe.at[0, STORE_ID_FIELD] == 12
        assert result.dataframe.at[0, "Valor"] == 5000
        assert result.mapped_rows == 1

    def test_whole_float_code_resolved(self):
        alias = StoreAlias("t", "10203040", "CALLE 80", 12)
        df = pd.DataFrame({"Codigo Comercio": [10203040.0]})
        result = resolve(df, [alias])
        assert result.dataframe.at[0, STORE_ID_FIELD] == 12

    @pytest.mark.parametrize("amount", [1800, 1800.0, "1800"])
    def test_numbers_never_matched_by_containment(self, amount):
        alias = StoreAlias("t", "80", "CALLE 80", 12)
        df = pd.DataFrame({"Valor": [amount]}, dtype=object)
        result = resolve(df, [alias])
        assert result.mapped_rows == 0
        assert result.dataframe.at[0, "Valor"] == amount

    def test_dates_never_scanned(self):
        alias = StoreAlias("t", "2025-01-05", "CALLE 80", 12)
        df = pd.DataFrame({
            "Fecha": [dt.datetime(2025, 1, 5, 10, 30)],
            "Dia": [dt.date(2025, 1, 5)],
        }, dtype=object)
        result = resolve(df, [alias])
        assert result.mapped_rows == 0
        assert result.dataframe.at[0, "Fecha"] == dt.datetime(2025, 1, 5, 10, 30)

    def test_first_alias_in_registry_order_wins_per_cell(self):
        df = pd.DataFrame({"Tienda": ["andino c80"]})
        result = resolve(df, [C80, ANDINO])
        assert result.dataframe.at[0, "Tienda"] == "CALLE 80"

    def test_blank_alias_ignored(self):
        blank = StoreAlias("t", "   ", "NADA", 1)
        df = pd.DataFrame({"Tienda": ["Andino"]})
        result = resolve(df, [blank, ANDINO])
        assert result.dataframe.at[0, "Tienda"] == "ANDINO"

    def test_columns_order_kept_and_store_fields_appended(self):
        df = pd.DataFrame({"B": ["andino"], "A": ["x"]})
        result = resolve(df, [ANDINO])
        assert list(result.dataframe.columns) == ["B", "A", STORE_ID_FIELD, STORE_NAME_FIELD]

    def test_input_not_mutated(self):
        df = pd.DataFrame({"Tienda": ["CLL80 Principal"]})
        resolve(df, [CLL80])
        assert df.at[0, "Tienda"] == "CLL80 Principal"
        assert list(df.columns) == ["Tienda"]

    def test_empty_frame(self):
        result = resolve(pd.DataFrame({"Tienda": []}), [CLL80])
        assert len(result.dataframe) == 0
        assert result.mapped_rows == 0


# ═══════════════════════════════════════════════════════════════════════════
# Exact-only mode
# ═══════════════════════════════════════════════════════════════════════════

class TestExactOnly:
    def test_whole_cell_required(self):
        df = pd.DataFrame({"Tienda": ["CLL80 Principal", "CLL80"]})
        result = resolve(df, [CLL80], exact_only=True)

        assert result.dataframe.at[0, "Tienda"] == "CLL80 Principal"
        assert result.dataframe.at[0, STORE_ID_FIELD] is None
        assert result.dataframe.at[1, "Tienda"] == "CALLE 80"
        assert result.dataframe.at[1, STORE_ID_FIELD] == 12


# ═══════════════════════════════════════════════════════════════════════════
# Tie-break
# ═══════════════════════════════════════════════════════════════════════════

class TestTieBreak:
    def _row(self) -> pd.DataFrame:
        return pd.DataFrame({"Cod": ["C80"], "Nombre": ["Tienda Andino"]})

    def test_last_is_default(self):
        result = resolve(self._row(), [C80, ANDINO])
        assert result.dataframe.at[0, STORE_ID_FIELD] == 5
        assert result.dataframe.at[0, STORE_NAME_FIELD] == "ANDINO"

    def test_last_explicit(self):
        result = resolve(self._row(), [C80, ANDINO], tie_break=TIE_BREAK_LAST)
        assert result.dataframe.at[0, STORE_ID_FIELD] == 5

    def test_first(self):
        result = resolve(self._row(), [C80, ANDINO], tie_break=TIE_BREAK_FIRST)
        assert result.dataframe.at[0, STORE_ID_FIELD] == 12
        assert result.dataframe.at[0, STORE_NAME_FIELD] == "CALLE 80"

    def test_both_cells_rewritten_regardless_of_policy(self):
        result = resolve(self._row(), [C80, ANDINO], tie_break=TIE_BREAK_FIRST)
        assert result.dataframe.at[0, "Cod"] == "CALLE 80"
        assert result.dataframe.at[0, "Nombre"] == "ANDINO"

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            resolve(self._row(), [C80], tie_break="middle")
