"""Tests for the local form schema store and submission files."""

from __future__ import annotations

import importlib
import json
from pathlib import Path

import pytest

form_store = importlib.import_module("formflow.form_store")
submission_storage = importlib.import_module("formflow.submission_storage")
validator = importlib.import_module("formflow.validator")

VALID_DOCUMENT = {
    "id": "contact",
    "title": "Contact",
    "fields": [{"id": "f", "type": "text", "fieldName": "name"}],
    "settings": {
        "stepForm": {
            "enabled": True,
            "steps": [{"id": "a", "title": "A", "order": 0}, {"id": "b", "title": "B", "order": 1}],
        }
    },
}


@pytest.fixture
def schemas_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    root = tmp_path / "form_schemas"
    monkeypatch.setattr(form_store, "SCHEMAS_ROOT", root)
    return root


def test_save_then_load_round_trip(schemas_root: Path) -> None:
    path = form_store.save_form_schema("contact", VALID_DOCUMENT)

    assert path == schemas_root / "contact" / "form_schema.json"
    assert path.read_text(encoding="utf-8").endswith("}\n")
    assert form_store.available_form_keys() == ["contact"]
    schema = form_store.load_form_schema("contact")
    assert schema.title == "Contact"
    assert len(schema.settings.steps) == 2


def test_invalid_document_is_not_written(schemas_root: Path) -> None:
    document = dict(VALID_DOCUMENT)
    document["settings"] = {"stepForm": {"enabled": True, "steps": [{"id": "a", "title": "A", "order": 0}]}}

    with pytest.raises(validator.SchemaValidationError) as excinfo:
        form_store.save_form_schema("contact", document)

    assert excinfo.value.code == validator.STEP_VALIDATION_ERROR
    assert not (schemas_root / "contact").exists()


def test_save_rejects_path_like_keys(schemas_root: Path) -> None:
    with pytest.raises(ValueError):
        form_store.save_form_schema("../escape", VALID_DOCUMENT)


def test_load_local_forms_skips_broken_files(schemas_root: Path) -> None:
    form_store.save_form_schema("good", VALID_DOCUMENT)
    broken = schemas_root / "broken"
    broken.mkdir()
    (broken / "form_schema.json").write_text("{not json", encoding="utf-8")

    forms, sources, raw = form_store.load_local_forms()

    assert list(forms) == ["good"]
    assert sources["good"].name == "form_schema.json"
    assert raw["good"]["id"] == "contact"


def test_load_form_schema_unknown_key(schemas_root: Path) -> None:
    with pytest.raises(KeyError):
        form_store.load_form_schema("missing")


def test_local_submissions_are_stored_newest_first(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(submission_storage, "SUBMISSIONS_ROOT", tmp_path / "form_submissions")

    first = submission_storage.store_local_submission("contact", {"name": "Ada"})
    second = submission_storage.store_local_submission("contact", {"name": "Grace"}, {"stepEvents": []})

    stored = tmp_path / "form_submissions" / "contact" / f"{first.submission_id}.json"
    payload = json.loads(stored.read_text(encoding="utf-8"))
    assert payload["values"] == {"name": "Ada"}
    assert "metadata" not in payload

    older = {"id": "old", "submitted_at": "2020-01-01T00:00:00+00:00", "values": {}}
    (stored.parent / "old.json").write_text(json.dumps(older), encoding="utf-8")
    (stored.parent / "junk.json").write_text("[not json", encoding="utf-8")

    records = submission_storage.load_local_submissions("contact")
    assert {record["id"] for record in records[:2]} == {first.submission_id, second.submission_id}
    assert records[-1]["id"] == "old"
    assert len(records) == 3
