"""Tests for building controls and their validators from a schema."""

from __future__ import annotations

import importlib
from typing import Any, Dict

import pytest

controls_module = importlib.import_module("formflow.controls")
schema_module = importlib.import_module("formflow.schema")


def _field(**overrides: Any):
    data: Dict[str, Any] = {"id": "f", "type": "text", "fieldName": "f"}
    data.update(overrides)
    return schema_module.FormField.from_dict(data)


def _schema(*fields: Dict[str, Any]):
    return schema_module.FormSchema.from_dict({"fields": list(fields)})


def test_display_elements_get_no_control() -> None:
    schema = _schema(
        {"id": "h", "type": "heading", "label": "Hello"},
        {"id": "d", "type": "divider"},
        {"id": "n", "type": "text", "fieldName": "name"},
    )

    controls = controls_module.build_controls(schema)

    assert list(controls) == ["name"]


@pytest.mark.parametrize(
    ("default", "expected"),
    [
        ("a,c", ["a"]),
        ("a, b", ["a", "b"]),
        (["b", "zzz"], ["b"]),
        ("", []),
        (None, []),
        ("a", ["a"]),
    ],
)
def test_checkbox_group_default_is_filtered_to_options(default: Any, expected: list) -> None:
    field = _field(type="checkbox", defaultValue=default, options=[{"label": "A", "value": "a"}, {"label": "B", "value": "b"}])

    assert controls_module.get_default_value(field) == expected


@pytest.mark.parametrize(
    ("default", "expected"),
    [("true", True), ("Yes", True), ("on", True), ("1", True), ("false", False), (0, False), (None, False), (True, True)],
)
def test_single_checkbox_default_is_boolean(default: Any, expected: bool) -> None:
    field = _field(type="checkbox", defaultValue=default)

    assert controls_module.get_default_value(field) is expected


def test_text_default_is_empty_string_and_number_keeps_none() -> None:
    assert controls_module.get_default_value(_field()) == ""
    assert controls_module.get_default_value(_field(type="number")) is None
    assert controls_module.get_default_value(_field(type="number", defaultValue=3)) == 3


def test_required_and_email_validators() -> None:
    control = controls_module.Control(
        "email",
        "",
        controls_module.build_validators(_field(type="email", required=True)),
    )

    assert control.errors == {"required": True}

    control.set_value("not-an-email")
    assert control.errors == {"email": True}

    control.set_value("person@example.com")
    assert control.valid


def test_length_bounds_and_pattern() -> None:
    field = _field(validation={"minLength": 3, "maxLength": 5, "pattern": "[a-z]+"})
    control = controls_module.Control("f", "", controls_module.build_validators(field))

    assert control.valid

    control.set_value("ab")
    assert set(control.errors) == {"minlength"}

    control.set_value("abcdef")
    assert set(control.errors) == {"maxlength"}

    control.set_value("abc1")
    assert set(control.errors) == {"pattern"}


def test_numeric_bounds_and_messages() -> None:
    field = _field(type="number", validation={"min": 1, "max": 10})
    control = controls_module.Control("f", None, controls_module.build_validators(field))

    control.set_value(0)
    assert controls_module.error_message(field, control) == "Value must be at least 1"

    control.set_value(11)
    assert controls_module.error_message(field, control) == "Value must be at most 10"

    control.set_value(5)
    assert controls_module.error_message(field, control) == ""


def test_custom_error_message_wins() -> None:
    field = _field(required=True, validation={"errorMessage": "Tell us your name"})
    control = controls_module.Control("f", "", controls_module.build_validators(field))

    assert controls_module.error_message(field, control) == "Tell us your name"


def test_invalid_pattern_is_skipped() -> None:
    field = _field(validation={"pattern": "[unclosed"})

    assert controls_module.build_validators(field) == []


def test_toggle_option_tracks_selections() -> None:
    schema = _schema(
        {
            "id": "g",
            "type": "checkbox",
            "fieldName": "tags",
            "options": [{"label": "A", "value": "a"}, {"label": "B", "value": "b"}],
        }
    )
    controls = controls_module.build_controls(schema)

    assert controls.toggle_option("tags", "b", True) == ["b"]
    assert controls.toggle_option("tags", "a", True) == ["b", "a"]
    assert controls.toggle_option("tags", "b", False) == ["a"]
    assert controls["tags"].value == ["a"]
    assert controls["tags"].touched
    assert controls.is_option_selected("tags", "a")


def test_reset_restores_defaults() -> None:
    schema = _schema({"id": "n", "type": "text", "fieldName": "name", "defaultValue": "Ada"})
    controls = controls_module.build_controls(schema)

    controls.set_value("name", "Grace")
    controls["name"].mark_as_touched()
    controls.reset(schema)

    assert controls["name"].value == "Ada"
    assert not controls["name"].touched
