"""
Template registry configuration.

Matching threshold, per-template column elimination rules, and the
row-level markers that identify provider noise rows.  Consumed by
processing/template_matcher.py, processing/column_projector.py,
processing/row_filter.py and processing/registry.py.
"""

# ---------------------------------------------------------------------------
# Minimum score (0-1) for a filename to be accepted as a known template.
# A score equal to the threshold is accepted.
# ---------------------------------------------------------------------------
MATCH_THRESHOLD: float = 0.5

# Scores assigned by the matcher before falling back to subsequence matching.
EXACT_MATCH_SCORE: float = 1.0
CONTAINED_MATCH_SCORE: float = 0.9

# ---------------------------------------------------------------------------
# Columns always removed for each template (keyed by template id).
# Financially critical columns (see config/column_rules.py PROTECTED role)
# survive even when listed here.
# ---------------------------------------------------------------------------
DEFAULT_DROPPED_COLUMNS: dict[str, tuple[str, ...]] = {
    "Maria Perez - Bco Occidente": (
        "RESPUESTA",
        "ALIASEMISOR",
        "TIPO",
        "ENTIDAD_ORIGEN",
        "ENTIDAD_DESTINO",
        "CANAL",
        "CODIGOAPROBACIONDEPOSITO",
        "IDADQUIRIENTE",
        "IDEMISOR",
        "IDTERMINAL",
        "TRANSACCION",
        "IDOPERACION",
    ),
    "transactions": (
        "ID Transacción",
        "Nombre Cliente",
        "Tipo de venta",
        "Fecha Cancelación",
        "Nombre Aliado",
        "Ally Slug",
        "Store Slug",
        "ID Crédito",
        "Canal",
        "Estado",
        "Sub-estado",
        "ID Cancelación",
        "Razón Cancelación",
        "Usuario Cancelación",
        "Email vendedor",
        "ID Orden",
    ),
    "ReporteDiariodeVentasComercio": (
        "Dirección",
        "Cantidad de Transacciones",
        "Tasa Aerop o Propina",
        "comisión",
        "Retenciones",
    ),
    "Creditos": (
        "Almacén",
        "Identificación",
        "Pagaré",
        "Factura",
        "Retención",
        "Usuario Almacén",
    ),
}

# ---------------------------------------------------------------------------
# Templates whose "document" field actually carries a street address.
# The synthetic Document column is never emitted for these (compared on the
# compact key: lowercase, alphanumerics only).
# ---------------------------------------------------------------------------
ADDRESS_IN_DOCUMENT_TEMPLATES: frozenset[str] = frozenset({
    "reportediariodeventascomercio",
})

# ---------------------------------------------------------------------------
# Rows discarded before store resolution.
# Matched against accent-folded, lowercased cell text.
# ---------------------------------------------------------------------------
TEST_ROW_MARKERS: tuple[str, ...] = ("prueba rbm",)   # substring match
SUBTOTAL_ROW_VALUES: frozenset[str] = frozenset({"total"})   # whole cell
REJECTED_ROW_MARKERS: tuple[str, ...] = ("rechazada", "rechazado")   # substring
