"""Tests for conditional field visibility."""

from __future__ import annotations

import importlib

import pytest

visibility = importlib.import_module("formflow.visibility")
controls_module = importlib.import_module("formflow.controls")
schema_module = importlib.import_module("formflow.schema")


def _yes_no_schema():
    return schema_module.FormSchema.from_dict(
        {
            "fields": [
                {
                    "id": "f1",
                    "type": "radio",
                    "fieldName": "has_pet",
                    "options": [{"label": "Yes", "value": "yes"}, {"label": "No", "value": "no"}],
                },
                {
                    "id": "f2",
                    "type": "text",
                    "fieldName": "pet_name",
                    "required": True,
                    "conditional": {"watchFieldId": "f1", "operator": "equals", "value": "yes"},
                },
            ]
        }
    )


def test_hidden_field_value_is_cleared() -> None:
    schema = _yes_no_schema()
    controls = controls_module.build_controls(schema)
    pet_name = schema.field_by_id("f2")

    controls.set_value("has_pet", "yes")
    assert visibility.is_field_visible(pet_name, schema, controls)
    controls.set_value("pet_name", "Rex")

    controls.set_value("has_pet", "no")
    cleared = visibility.evaluate_conditional_visibility(schema, controls)

    assert cleared == ["pet_name"]
    assert not visibility.is_field_visible(pet_name, schema, controls)
    assert controls["pet_name"].value is None


def test_hidden_checkbox_group_selections_are_cleared() -> None:
    schema = schema_module.FormSchema.from_dict(
        {
            "fields": [
                {"id": "w", "type": "toggle", "fieldName": "more"},
                {
                    "id": "g",
                    "type": "checkbox",
                    "fieldName": "extras",
                    "defaultValue": "a",
                    "options": [{"label": "A", "value": "a"}],
                    "conditional": {"watchFieldId": "w", "operator": "equals", "value": True},
                },
            ]
        }
    )
    controls = controls_module.build_controls(schema)

    assert visibility.evaluate_conditional_visibility(schema, controls) == ["extras"]
    assert controls.checkbox_selections["extras"] == []


def test_dangling_watch_field_keeps_field_visible() -> None:
    schema = schema_module.FormSchema.from_dict(
        {
            "fields": [
                {
                    "id": "f",
                    "type": "text",
                    "fieldName": "orphan",
                    "conditional": {"watchFieldId": "missing", "operator": "equals", "value": "x"},
                }
            ]
        }
    )
    controls = controls_module.build_controls(schema)

    assert visibility.visible_fields(schema, controls) == list(schema.fields)


@pytest.mark.parametrize(
    ("operator", "watch", "target", "expected"),
    [
        ("equals", "yes", "yes", True),
        ("equals", 1, "1", False),
        ("equals", True, 1, False),
        ("notEquals", "a", "b", True),
        ("contains", "hello world", "lo w", True),
        ("contains", ["a"], "a", False),
        ("contains", "abc", None, True),
        ("greaterThan", "10", 9, True),
        ("greaterThan", "ten", 9, False),
        ("lessThan", 3, "4", True),
        ("lessThan", None, 1, True),
        ("between", "anything", None, True),
    ],
)
def test_evaluate_operator(operator: str, watch, target, expected: bool) -> None:
    assert visibility.evaluate_operator(operator, watch, target) is expected
