"""Tests for parsing schema documents into dataclasses."""

from __future__ import annotations

import importlib

schema_module = importlib.import_module("formflow.schema")
field_types = importlib.import_module("formflow.field_types")


def test_unknown_field_type_falls_back_to_text() -> None:
    field = schema_module.FormField.from_dict({"id": "x", "type": "signature", "fieldName": "x"})

    assert field.type is field_types.FieldType.TEXT
    assert field.is_input


def test_display_elements_are_not_inputs() -> None:
    for tag in ("heading", "image", "text_block", "divider", "group"):
        field = schema_module.FormField.from_dict({"id": tag, "type": tag})
        assert field.is_display
        assert not field.is_input


def test_steps_are_sorted_by_order_and_enabled_requires_true() -> None:
    settings = schema_module.FormSettings.from_dict(
        {
            "stepForm": {
                "enabled": "true",
                "steps": [
                    {"id": "b", "title": "B", "order": 1},
                    {"id": "a", "title": "A", "order": 0},
                ],
            }
        }
    )

    assert [step.id for step in settings.steps] == ["a", "b"]
    assert settings.step_form_enabled is False


def test_settings_argument_overrides_nested_settings() -> None:
    payload = {"id": "form-1", "title": "Form", "fields": [], "settings": {"stepForm": {"enabled": False}}}
    settings = {"stepForm": {"enabled": True, "steps": [{"id": "a", "title": "A", "order": 0}]}}

    schema = schema_module.FormSchema.from_dict(payload, settings)

    assert schema.settings.step_form_enabled is True
    assert schema.raw["settings"] == settings
    assert payload["settings"] == {"stepForm": {"enabled": False}}


def test_field_lookup_helpers() -> None:
    schema = schema_module.FormSchema.from_dict(
        {
            "fields": [
                {"id": "h", "type": "heading", "label": "Intro", "order": 1},
                {"id": "f", "type": "select", "fieldName": "colour", "order": 0, "options": ["red", {"label": "Blue", "value": 2}]},
            ]
        }
    )

    field = schema.field_by_name("colour")
    assert field is schema.field_by_id("f")
    assert field.option_values == ["red", "2"]
    assert [item.id for item in schema.sorted_fields()] == ["f", "h"]
    assert [item.id for item in schema.input_fields] == ["f"]
    assert schema.field_by_name("missing") is None


def test_conditional_without_watch_field_is_ignored() -> None:
    field = schema_module.FormField.from_dict(
        {"id": "x", "type": "text", "fieldName": "x", "conditional": {"operator": "equals", "value": 1}}
    )

    assert field.conditional is None
