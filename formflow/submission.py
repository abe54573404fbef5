"""Conversion of control values into the submission wire format."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from formflow.controls import (
    ControlSet,
    is_checkbox_group,
    normalize_single_checkbox_value,
    split_selection_string,
)
from formflow.field_types import FieldType
from formflow.schema import FormField, FormSchema


def prepare_checkbox_value(
    field: FormField,
    raw_value: Any,
    tracked_selections: Optional[Sequence[str]] = None,
) -> str:
    """Return the comma-joined selections of a checkbox group.

    Selections come from the control value when it holds any, otherwise from
    the tracked selections. Duplicates and values that are not options are
    dropped; an empty selection is ``""``.
    """

    valid_values = set(field.option_values)

    selections: List[str] = []
    if isinstance(raw_value, (list, tuple)):
        selections = [str(item) for item in raw_value]
    elif isinstance(raw_value, str) and raw_value.strip():
        selections = split_selection_string(raw_value)
    elif tracked_selections:
        selections = [str(item) for item in tracked_selections]

    unique: List[str] = []
    for item in selections:
        if item in unique:
            continue
        if valid_values and item not in valid_values:
            continue
        unique.append(item)
    return ",".join(unique)


def prepare_submission(schema: FormSchema, controls: ControlSet) -> Dict[str, Any]:
    """Return ``fieldName -> wire value`` for every input field of ``schema``.

    ``controls`` is only read. Checkbox selections come from the control
    values, so stale tracked selections never leak into the result.
    """

    prepared: Dict[str, Any] = {}
    for field in schema.fields:
        if field.is_display or not field.field_name:
            continue
        control = controls.get(field.field_name)
        value = control.value if control is not None else None

        if is_checkbox_group(field):
            prepared[field.field_name] = prepare_checkbox_value(field, value)
        elif field.type in (FieldType.CHECKBOX, FieldType.TOGGLE):
            prepared[field.field_name] = normalize_single_checkbox_value(value)
        else:
            prepared[field.field_name] = value
    return prepared


def build_submission_payload(
    values: Dict[str, Any],
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"values": values}
    if metadata:
        payload["metadata"] = metadata
    return payload


__all__ = ["build_submission_payload", "prepare_checkbox_value", "prepare_submission"]
