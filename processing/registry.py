"""
Template registry and store alias table.

Both are loaded once per session and then passed explicitly, as one frozen
Registry object, into every pipeline call.  Three sources are supported:

  1. Records shaped like the remote configuration store's
     mapeo_nombres_archivos collection (build_registry).
  2. A JSON document with "templates" and "aliases" lists
     (load_registry_file).
  3. A live fetch from a Directus instance (fetch_alias_records, then
     build_registry).

Public API:
    Template, StoreAlias, Registry
    build_registry(alias_records, dropped_columns) → Registry
    load_registry_file(path) → Registry
    fetch_alias_records(base_url, token, timeout) → list[dict]
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

import requests

from config.templates import DEFAULT_DROPPED_COLUMNS
from utils.text_utils import fold_text, is_blank

logger = logging.getLogger(__name__)

_ALIAS_COLLECTION = "mapeo_nombres_archivos"
_ALIAS_FIELDS = "archivo_origen,tienda_archivo,tienda_id.id,tienda_id.nombre"


class RegistryLoadError(RuntimeError):
    """The registry could not be fetched or parsed."""


# ═══════════════════════════════════════════════════════════════════════════
# Data classes
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Template:
    """A known provider export format."""

    template_id: str
    dropped_columns: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class StoreAlias:
    """One known spelling of a store inside one template's files."""

    template_id: str
    alias_text: str
    canonical_name: str
    canonical_code: int | None = None


@dataclass(frozen=True)
class Registry:
    """Read-only session configuration: templates plus store aliases."""

    templates: tuple[Template, ...] = ()
    aliases: tuple[StoreAlias, ...] = ()

    def aliases_for(self, template_id: str | None) -> tuple[StoreAlias, ...]:
        """Aliases scoped to *template_id* (case-insensitive), in registry order."""
        if template_id is None:
            return ()
        wanted = fold_text(template_id)
        return tuple(a for a in self.aliases if fold_text(a.template_id) == wanted)

    def store_codes(self) -> dict[str, int]:
        """Canonical store name (trimmed, upper-cased) → numeric code.

        The first alias in registry order that carries a code wins.
        """
        codes: dict[str, int] = {}
        for alias in self.aliases:
            if alias.canonical_code is None:
                continue
            key = alias.canonical_name.strip().upper()
            codes.setdefault(key, alias.canonical_code)
        return codes


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def build_registry(
    alias_records: list[dict],
    dropped_columns: dict[str, tuple[str, ...]] | None = None,
) -> Registry:
    """
    Build a Registry from remote-store records.

    Each record has "archivo_origen" (template id), "tienda_archivo" (alias
    spelling) and "tienda_id" ({"id": code, "nombre": canonical name}).
    Templates are the distinct template ids in record order, followed by any
    template that only appears in *dropped_columns*.

    Records missing a template id, spelling or canonical name are skipped.

    Args:
        alias_records: Raw records from the configuration store.
        dropped_columns: template id → columns to drop.  Defaults to
                         DEFAULT_DROPPED_COLUMNS.

    Returns:
        Frozen Registry.
    """
    if dropped_columns is None:
        dropped_columns = DEFAULT_DROPPED_COLUMNS

    aliases: list[StoreAlias] = []
    template_ids: list[str] = []

    for record in alias_records:
        template_id = record.get("archivo_origen")
        alias_text = record.get("tienda_archivo")
        store = record.get("tienda_id") or {}
        if not isinstance(store, dict):
            store = {"id": store}
        canonical_name = store.get("nombre")

        if is_blank(template_id) or is_blank(alias_text) or is_blank(canonical_name):
            logger.debug(f"Skipping incomplete alias record: {record}")
            continue

        template_id = str(template_id).strip()
        if template_id not in template_ids:
            template_ids.append(template_id)

        aliases.append(StoreAlias(
            template_id=template_id,
            alias_text=str(alias_text).strip(),
            canonical_name=str(canonical_name).strip(),
            canonical_code=_to_code(store.get("id")),
        ))

    for template_id in dropped_columns:
        if template_id not in template_ids:
            template_ids.append(template_id)

    templates = tuple(
        Template(
            template_id=template_id,
            dropped_columns=frozenset(dropped_columns.get(template_id, ())),
        )
        for template_id in template_ids
    )

    logger.info(
        f"Registry built: {len(templates)} templates, {len(aliases)} store aliases"
    )
    return Registry(templates=templates, aliases=tuple(aliases))


def load_registry_file(path: Path) -> Registry:
    """
    Load a Registry from a JSON document.

    Expected shape:
        {
          "templates": [{"id": "transactions", "dropped_columns": ["Canal"]}],
          "aliases": [{"template_id": "transactions", "alias": "cll80",
                       "name": "CALLE 80", "code": 12}]
        }

    Raises:
        RegistryLoadError: file missing, invalid JSON, or wrong shape.
    """
    path = Path(path)
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise RegistryLoadError(f"Cannot read registry '{path}': {exc}") from exc

    if not isinstance(document, dict):
        raise RegistryLoadError(f"Registry '{path}' must be a JSON object")

    try:
        templates = tuple(
            Template(
                template_id=str(entry["id"]).strip(),
                dropped_columns=frozenset(entry.get("dropped_columns", [])),
            )
            for entry in document.get("templates", [])
        )
        aliases = tuple(
            StoreAlias(
                template_id=str(entry["template_id"]).strip(),
                alias_text=str(entry["alias"]).strip(),
                canonical_name=str(entry["name"]).strip(),
                canonical_code=_to_code(entry.get("code")),
            )
            for entry in document.get("aliases", [])
        )
    except (KeyError, TypeError, AttributeError) as exc:
        raise RegistryLoadError(f"Malformed registry entry in '{path}': {exc}") from exc

    logger.info(
        f"Registry loaded from '{path.name}': {len(templates)} templates, "
        f"{len(aliases)} store aliases"
    )
    return Registry(templates=templates, aliases=aliases)


def fetch_alias_records(
    base_url: str,
    token: str | None = None,
    timeout: float = 10,
) -> list[dict]:
    """
    Fetch every alias record from a Directus instance.

    Args:
        base_url: Directus root URL, e.g. "https://cms.example.com".
        token: Optional static or access token (sent as a bearer token).
        timeout: Request timeout in seconds.

    Returns:
        The "data" list of the response.

    Raises:
        RegistryLoadError: on any transport, HTTP or payload error.
    """
    url = f"{base_url.rstrip('/')}/items/{_ALIAS_COLLECTION}"
    headers = {"Authorization": f"Bearer {token}"} if token else {}

    try:
        response = requests.get(
            url,
            params={"fields": _ALIAS_FIELDS, "limit": -1},
            headers=headers,
            timeout=timeout,
        )
        response.raise_for_status()
        payload = response.json()
    except (requests.RequestException, ValueError) as exc:
        raise RegistryLoadError(f"Cannot fetch store aliases from {url}: {exc}") from exc

    records = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(records, list):
        raise RegistryLoadError(f"Unexpected payload from {url}: missing 'data' list")

    logger.info(f"Fetched {len(records)} alias records from {url}")
    return records


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _to_code(value: object) -> int | None:
    """Coerce a store id to int; None when absent or not numeric."""
    if is_blank(value):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.debug(f"Ignoring non-numeric store code {value!r}")
        return None
