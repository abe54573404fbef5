"""Conditional field visibility.

Visibility is recomputed for the whole field list after every value change.
A rule whose watched field has no control (dangling ``watchFieldId``, or a
watched display element) leaves the dependent field visible.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, List, Optional

from formflow.controls import ControlSet, is_checkbox_group
from formflow.logging_utils import create_logger
from formflow.schema import FormField, FormSchema

logger = create_logger(__name__)


def _strict_equals(left: Any, right: Any) -> bool:
    """Equality that does not mix booleans, numbers and strings."""

    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left is right
    left_numeric = isinstance(left, (int, float))
    right_numeric = isinstance(right, (int, float))
    if left_numeric or right_numeric:
        return left_numeric and right_numeric and left == right
    if type(left) is not type(right) and not (left is None or right is None):
        return False
    return left == right


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _to_number(value: Any) -> float:
    """Coerce ``value`` for numeric comparisons; ``nan`` never compares true."""

    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def evaluate_operator(operator: str, watch_value: Any, target_value: Any) -> bool:
    if operator == "equals":
        return _strict_equals(watch_value, target_value)
    if operator == "notEquals":
        return not _strict_equals(watch_value, target_value)
    if operator == "contains":
        return isinstance(watch_value, str) and _stringify(target_value) in watch_value
    if operator == "greaterThan":
        return _to_number(watch_value) > _to_number(target_value)
    if operator == "lessThan":
        return _to_number(watch_value) < _to_number(target_value)
    logger.debug("Unknown conditional operator %r treated as visible", operator)
    return True


def is_field_visible(field: FormField, schema: FormSchema, controls: ControlSet) -> bool:
    """Return whether ``field`` should be shown for the current values."""

    rule = field.conditional
    if rule is None:
        return True

    watched = schema.field_by_id(rule.watch_field_id)
    watch_control = controls.get(watched.field_name) if watched and watched.field_name else None
    if watch_control is None:
        return True
    return evaluate_operator(rule.operator, watch_control.value, rule.value)


def visible_fields(
    schema: FormSchema,
    controls: ControlSet,
    fields: Optional[Iterable[FormField]] = None,
) -> List[FormField]:
    candidates = schema.fields if fields is None else fields
    return [field for field in candidates if is_field_visible(field, schema, controls)]


def evaluate_conditional_visibility(schema: FormSchema, controls: ControlSet) -> List[str]:
    """Clear the value of every hidden field and return the names cleared.

    Runs a single pass: clearing a value does not trigger another
    evaluation, the next value change does.
    """

    cleared: List[str] = []
    for field in schema.fields:
        if is_field_visible(field, schema, controls):
            continue
        control = controls.get(field.field_name) if field.field_name else None
        if control is None:
            continue
        if is_checkbox_group(field):
            controls.checkbox_selections[field.field_name] = []
        if control.value is None or control.value == "":
            continue
        control.set_value(None)
        cleared.append(field.field_name)

    if cleared:
        logger.debug("Cleared hidden fields: %s", ", ".join(cleared))
    return cleared


__all__ = [
    "evaluate_conditional_visibility",
    "evaluate_operator",
    "is_field_visible",
    "visible_fields",
]
