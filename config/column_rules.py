"""
Declarative column-role rule table.

Every keyword that classifies a column name lives here, keyed by the role it
assigns.  Column names are compared after accent-stripping and lowercasing
(see utils/text_utils.fold_text), using substring search; keywords listed in
WHOLE_WORD_KEYWORDS must stand alone between non-letters instead.

Both the column projector and the report composer read roles through
processing/column_roles.py, so the two always agree on what a "monetary" or
"identity" column is.
"""

from enum import Enum


class ColumnRole(str, Enum):
    """A classification a column can receive from its name."""

    DOCUMENT = "document"            # strong document-identifier keyword
    DOCUMENT_WEAK = "document_weak"  # generic "document"/"identification"
    DOCUMENT_EXCLUDED = "document_excluded"
    DISCOUNT = "discount"
    PROTECTED = "protected"          # never eliminated by template rules
    MONETARY = "monetary"
    DATE = "date"
    TIME = "time"
    IDENTITY = "identity"            # rendered as plain text, never currency
    DISPLAY = "display"              # kept by the compact column selection


# ---------------------------------------------------------------------------
# Keyword → role table.  Order inside each tuple carries no meaning.
# ---------------------------------------------------------------------------
ROLE_KEYWORDS: dict[ColumnRole, tuple[str, ...]] = {
    ColumnRole.DOCUMENT: ("cedula", "nit", "cc", "idemisor", "nro_doc", "identi"),
    ColumnRole.DOCUMENT_WEAK: ("document", "identificaci"),
    ColumnRole.DOCUMENT_EXCLUDED: (
        "fecha",
        "valor",
        "monto",
        "total",
        "neto",
        "operacion",
        "transaccion",
        "terminal",
        "adquiriente",
    ),
    ColumnRole.DISCOUNT: ("descuento",),
    ColumnRole.PROTECTED: ("fecha", "valor", "monto", "total", "neto", "factura", "pagare"),
    ColumnRole.MONETARY: ("valor", "monto", "total", "neto"),
    ColumnRole.DATE: ("fecha",),
    ColumnRole.TIME: ("hora", "time", "creacion", "cancelacion"),
    ColumnRole.IDENTITY: (
        "document",
        "cc",
        "nit",
        "cedula",
        "identificaci",
        "idemisor",
        "nro_",
        "id_",
        "almacen",
        "nombre",
        "tienda",
        "store",
        "cliente",
        "factura",
        "pagare",
        "referencia",
        "codigo",
        "comercio",
    ),
    ColumnRole.DISPLAY: (
        "fecha",
        "document",
        "cedula",
        "nit",
        "cc",
        "idemisor",
        "identificaci",
        "referencia",
        "tienda",
        "valor",
        "monto",
        "total",
        "cliente",
        "hora",
        "comercio",
        "sucursal",
    ),
}

# ---------------------------------------------------------------------------
# Keywords too short for substring search ("cc" inside "direccion").
# ---------------------------------------------------------------------------
WHOLE_WORD_KEYWORDS: frozenset[str] = frozenset({"cc"})

# ---------------------------------------------------------------------------
# Synthetic and internal fields.
# Internal fields (prefixed with "_") and STORE_ID_FIELD travel with the
# rows but are never part of a file's visible column list.
# ---------------------------------------------------------------------------
DOCUMENT_COLUMN: str = "Document"
STORE_ID_FIELD: str = "storeId"
STORE_NAME_FIELD: str = "_store"
INTERNAL_PREFIX: str = "_"

# ---------------------------------------------------------------------------
# Priority used by the compact column selection: lower sorts first.
# Each entry is (role keywords, priority); unmatched columns get
# DISPLAY_DEFAULT_PRIORITY.
# ---------------------------------------------------------------------------
DISPLAY_PRIORITY: tuple[tuple[tuple[str, ...], int], ...] = (
    (("fecha",), 0),
    (("document", "cedula", "nit"), 1),
    (("tienda",), 2),
    (("valor", "monto", "total"), 3),
)
DISPLAY_DEFAULT_PRIORITY: int = 10
