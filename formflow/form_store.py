"""Helpers for working with locally stored form schema files."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Tuple

from formflow.logging_utils import create_logger
from formflow.schema import FormSchema
from formflow.validator import ensure_valid_schema

logger = create_logger(__name__)

FORM_SCHEMA_FILENAME = "form_schema.json"
SCHEMAS_ROOT = Path("form_schemas")


def discover_local_forms() -> Dict[str, Path]:
    """Return a mapping of ``form_key -> path`` for local schema files."""

    forms: Dict[str, Path] = {}
    if SCHEMAS_ROOT.exists():
        for entry in sorted(SCHEMAS_ROOT.iterdir()):
            if not entry.is_dir():
                continue
            schema_path = entry / FORM_SCHEMA_FILENAME
            if schema_path.exists():
                forms[entry.name] = schema_path
    return forms


def _read_document(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, Mapping):
        raise ValueError(f"{path} does not contain a JSON object")
    return dict(payload)


def load_local_forms() -> Tuple[Dict[str, FormSchema], Dict[str, Path], Dict[str, Dict[str, Any]]]:
    """Load all local forms returning parsed schemas, sources and raw documents.

    Files that are not valid JSON objects are skipped with a warning.
    """

    forms: Dict[str, FormSchema] = {}
    sources: Dict[str, Path] = {}
    raw_documents: Dict[str, Dict[str, Any]] = {}

    for form_key, path in discover_local_forms().items():
        try:
            document = _read_document(path)
        except (OSError, ValueError) as exc:
            logger.warning("Skipping unreadable form schema %s: %s", path, exc)
            continue
        raw_documents[form_key] = document
        forms[form_key] = FormSchema.from_dict(document)
        sources[form_key] = path

    return forms, sources, raw_documents


def load_form_schema(form_key: str) -> FormSchema:
    """Return the parsed schema stored under ``form_key``.

    Raises ``KeyError`` for unknown keys; JSON errors propagate.
    """

    path = discover_local_forms().get(form_key)
    if path is None:
        raise KeyError(form_key)
    return FormSchema.from_dict(_read_document(path))


def ensure_form_directory(form_key: str) -> Path:
    """Ensure the directory for ``form_key`` exists and return it."""

    target_dir = SCHEMAS_ROOT / form_key
    target_dir.mkdir(parents=True, exist_ok=True)
    return target_dir


def local_form_path(form_key: str, sources: Mapping[str, Path]) -> Path:
    """Return the on-disk path for ``form_key`` using known sources."""

    if form_key in sources:
        return sources[form_key]
    return ensure_form_directory(form_key) / FORM_SCHEMA_FILENAME


def save_form_schema(form_key: str, document: Mapping[str, Any]) -> Path:
    """Validate ``document`` and write it to the store.

    Raises :class:`formflow.validator.SchemaValidationError` without touching
    the file when the document is rejected.
    """

    key = form_key.strip()
    if not key or "/" in key or "\\" in key or key.startswith("."):
        raise ValueError(f"Invalid form key: {form_key!r}")

    ensure_valid_schema(document)
    path = local_form_path(key, discover_local_forms())
    with path.open("w", encoding="utf-8") as handle:
        json.dump(document, handle, indent=2, ensure_ascii=False)
        handle.write("\n")
    logger.info("Saved form schema %s to %s", key, path)
    return path


def available_form_keys() -> List[str]:
    """Return the list of known form identifiers."""

    return list(discover_local_forms().keys())


__all__ = [
    "FORM_SCHEMA_FILENAME",
    "SCHEMAS_ROOT",
    "available_form_keys",
    "discover_local_forms",
    "ensure_form_directory",
    "load_form_schema",
    "load_local_forms",
    "local_form_path",
    "save_form_schema",
]
