"""Authoring-time validation of form schema documents.

Every check appends to a list of messages instead of stopping at the first
problem, so the editor can show all of them at once. An empty list means the
document may be persisted.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set

from formflow.field_types import is_input_field, parse_field_type
from formflow.logging_utils import create_logger
from formflow.schema import FormSchema

logger = create_logger(__name__)

MIN_STEPS = 2
MAX_STEPS = 10
MAX_STEP_TITLE_LENGTH = 100
MAX_STEP_DESCRIPTION_LENGTH = 500
MAX_COLUMNS = 4
MAX_SUB_COLUMNS = 4

STEP_VALIDATION_ERROR = "STEP_VALIDATION_ERROR"
SCHEMA_VALIDATION_ERROR = "SCHEMA_VALIDATION_ERROR"

_FRACTIONAL_UNIT = re.compile(r"^[1-9]\d*fr$")
_LEADING_ZERO_UNIT = re.compile(r"^0\d*fr$")


class SchemaValidationError(ValueError):
    """Raised when a schema document fails validation before persistence."""

    def __init__(self, details: Sequence[str], *, code: str = SCHEMA_VALIDATION_ERROR, message: str = "Schema validation failed") -> None:
        super().__init__(f"{message}: {'; '.join(details)}")
        self.code = code
        self.message = message
        self.details = list(details)

    def to_response(self) -> Dict[str, Any]:
        """Return the structured body an HTTP layer sends with a 400 status."""

        return {
            "success": False,
            "error": {
                "code": self.code,
                "message": self.message,
                "details": list(self.details),
            },
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }


def _document(schema: Any) -> Dict[str, Any]:
    if isinstance(schema, FormSchema):
        return dict(schema.raw)
    return dict(schema) if isinstance(schema, Mapping) else {}


def _is_int(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def validate_step_form(schema: Any) -> List[str]:
    """Check the step configuration of ``schema``.

    Only ``settings.stepForm`` with ``enabled`` set to the boolean ``true`` is
    checked. Anything else passes untouched, like documents that predate
    step forms.
    """

    document = _document(schema)
    settings = document.get("settings")
    step_form = settings.get("stepForm") if isinstance(settings, Mapping) else None
    if not isinstance(step_form, Mapping) or step_form.get("enabled") is not True:
        return []

    errors: List[str] = []
    steps = step_form.get("steps")
    if not isinstance(steps, list):
        errors.append("stepForm.steps must be an array")
        return errors

    if not MIN_STEPS <= len(steps) <= MAX_STEPS:
        errors.append(
            f"Step count must be between {MIN_STEPS} and {MAX_STEPS} when enabled. "
            f"Found: {len(steps)} steps"
        )

    step_ids: Set[str] = set()
    order_indices: Set[int] = set()
    duplicate_ids: List[str] = []
    duplicate_orders: List[int] = []

    for index, raw_step in enumerate(steps):
        step = raw_step if isinstance(raw_step, Mapping) else {}
        step_id = step.get("id")
        label = step_id or index

        if not step_id:
            errors.append(f"Step at index {index} is missing required 'id' property")
        elif step_id in step_ids:
            if step_id not in duplicate_ids:
                duplicate_ids.append(step_id)
        else:
            step_ids.add(step_id)

        title = step.get("title")
        if not title:
            errors.append(f"Step '{label}' is missing required 'title' property")
        elif not isinstance(title, str):
            errors.append(f"Step '{label}' title must be a string")
        elif not title.strip():
            errors.append(f"Step '{label}' title cannot be empty")
        elif len(title) > MAX_STEP_TITLE_LENGTH:
            errors.append(
                f"Step '{label}' title must be between 1 and {MAX_STEP_TITLE_LENGTH} characters. "
                f"Found: {len(title)} characters"
            )

        description = step.get("description")
        if description is not None:
            if not isinstance(description, str):
                errors.append(f"Step '{label}' description must be a string")
            elif len(description) > MAX_STEP_DESCRIPTION_LENGTH:
                errors.append(
                    f"Step '{label}' description must not exceed {MAX_STEP_DESCRIPTION_LENGTH} "
                    f"characters. Found: {len(description)} characters"
                )

        order = step.get("order")
        if order is None:
            errors.append(f"Step '{label}' is missing required 'order' property")
        elif isinstance(order, bool) or not isinstance(order, (int, float)):
            errors.append(f"Step '{label}' order must be a number")
        elif not _is_int(order):
            errors.append(f"Step '{label}' order must be an integer")
        elif order < 0:
            errors.append(f"Step '{label}' order must be non-negative (0-based)")
        elif int(order) in order_indices:
            if int(order) not in duplicate_orders:
                duplicate_orders.append(int(order))
        else:
            order_indices.add(int(order))

    for step_id in duplicate_ids:
        errors.append(f"Duplicate step ID found: {step_id}")
    for order in duplicate_orders:
        errors.append(f"Duplicate step order index found: {order}")

    # Only meaningful once every order is a unique non-negative integer.
    if not errors:
        sorted_orders = sorted(order_indices)
        expected_orders = list(range(len(steps)))
        if sorted_orders != expected_orders:
            errors.append(
                "Step order indices must be sequential starting from 0. "
                f"Expected: [{', '.join(str(item) for item in expected_orders)}], "
                f"Found: [{', '.join(str(item) for item in sorted_orders)}]"
            )

    if step_ids:
        fields = document.get("fields")
        for index, raw_field in enumerate(fields if isinstance(fields, list) else []):
            field = raw_field if isinstance(raw_field, Mapping) else {}
            position = field.get("position")
            step_ref = position.get("stepId") if isinstance(position, Mapping) else None
            if step_ref and step_ref not in step_ids:
                label = field.get("fieldName") or field.get("id") or index
                errors.append(f"Field '{label}' references non-existent step ID: {step_ref}")

        for row in _row_entries(document):
            step_ref = row.get("stepId")
            if step_ref and step_ref not in step_ids:
                errors.append(
                    f"Row '{row.get('rowId') or '<unknown>'}' references non-existent step ID: {step_ref}"
                )

    if errors:
        logger.warning("Step form validation failed with %d error(s)", len(errors))
    return errors


def validate_fields(schema: Any) -> List[str]:
    """Check that input fields carry unique, non-empty field names."""

    document = _document(schema)
    fields = document.get("fields")
    if fields is None:
        return []
    if not isinstance(fields, list):
        return ["fields must be an array"]

    errors: List[str] = []
    seen: Set[str] = set()
    duplicates: List[str] = []
    for index, raw_field in enumerate(fields):
        if not isinstance(raw_field, Mapping):
            errors.append(f"Field at index {index} must be an object")
            continue
        if not is_input_field(parse_field_type(raw_field.get("type"))):
            continue
        field_name = raw_field.get("fieldName")
        if not isinstance(field_name, str) or not field_name.strip():
            errors.append(f"Field '{raw_field.get('id') or index}' is missing required 'fieldName' property")
            continue
        if field_name in seen:
            if field_name not in duplicates:
                duplicates.append(field_name)
        seen.add(field_name)

    for field_name in duplicates:
        errors.append(f"Duplicate field name found: {field_name}")
    return errors


def validate_fractional_units(widths: Any) -> Optional[str]:
    """Return an error for ``widths`` unless every entry is an ``Nfr`` unit."""

    if not isinstance(widths, list) or not widths:
        return "Width array cannot be empty"
    for width in widths:
        if width is None:
            return "Width values cannot be undefined or null"
        text = str(width).strip()
        if _LEADING_ZERO_UNIT.match(text):
            return f"Invalid unit '{text}': Leading zeros not allowed"
        if not _FRACTIONAL_UNIT.match(text):
            return f"Invalid unit '{text}': expected a positive fractional unit such as '1fr'"
    return None


def _row_entries(document: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    settings = document.get("settings")
    row_layout = settings.get("rowLayout") if isinstance(settings, Mapping) else None
    rows = row_layout.get("rows") if isinstance(row_layout, Mapping) else None
    return [row for row in rows if isinstance(row, Mapping)] if isinstance(rows, list) else []


def validate_row_layout(schema: Any) -> List[str]:
    """Check column widths and nested sub-column definitions of each row."""

    errors: List[str] = []
    for row in _row_entries(_document(schema)):
        row_id = row.get("rowId") or "<unknown>"
        column_count = row.get("columnCount")
        if not _is_int(column_count) or not 0 <= column_count <= MAX_COLUMNS:
            errors.append(f"Row '{row_id}' columnCount must be between 0 and {MAX_COLUMNS}")
            continue

        widths = row.get("columnWidths")
        if widths is not None:
            if not isinstance(widths, list) or len(widths) != column_count:
                found = len(widths) if isinstance(widths, list) else 0
                errors.append(
                    f"Row '{row_id}' columnWidths length ({found}) must match columnCount ({column_count})"
                )
            else:
                problem = validate_fractional_units(widths)
                if problem:
                    errors.append(f"Row '{row_id}' has invalid columnWidths: {problem}")

        sub_columns = row.get("subColumns")
        if sub_columns is None:
            continue
        if not isinstance(sub_columns, list):
            errors.append(f"Row '{row_id}' subColumns must be an array")
            continue
        for config in sub_columns:
            problem = _sub_column_problem(config, column_count)
            if problem:
                errors.append(f"Row '{row_id}' {problem}")
    return errors


def _sub_column_problem(config: Any, column_count: int) -> Optional[str]:
    if not isinstance(config, Mapping):
        return "sub-column config must be an object"
    column_index = config.get("columnIndex")
    if column_index is None:
        return "sub-column columnIndex is required"
    if not _is_int(column_index):
        return "sub-column columnIndex must be an integer"
    if column_index < 0:
        return "sub-column columnIndex cannot be negative"
    if column_index >= column_count:
        return f"sub-column columnIndex {column_index} exceeds parent row column count ({column_count})"

    count = config.get("subColumnCount")
    if count is None:
        return "subColumnCount is required"
    if not _is_int(count) or not 1 <= count <= MAX_SUB_COLUMNS:
        return "subColumnCount must be 1, 2, 3, or 4"

    widths = config.get("subColumnWidths")
    if widths is None:
        return None
    if not isinstance(widths, list) or len(widths) != count:
        return "subColumnWidths length does not match subColumnCount"
    problem = validate_fractional_units(widths)
    if problem:
        return f"Invalid subColumnWidths: {problem}"
    return None


def validate_schema(schema: Any) -> List[str]:
    """Run every authoring check and return the combined error list."""

    return validate_fields(schema) + validate_row_layout(schema) + validate_step_form(schema)


def ensure_valid_schema(schema: Any) -> None:
    """Raise :class:`SchemaValidationError` when ``schema`` is not persistable."""

    step_errors = validate_step_form(schema)
    other_errors = validate_fields(schema) + validate_row_layout(schema)
    if other_errors:
        raise SchemaValidationError(other_errors + step_errors)
    if step_errors:
        raise SchemaValidationError(
            step_errors, code=STEP_VALIDATION_ERROR, message="Step form validation failed"
        )


__all__ = [
    "MAX_STEPS",
    "MIN_STEPS",
    "SCHEMA_VALIDATION_ERROR",
    "STEP_VALIDATION_ERROR",
    "SchemaValidationError",
    "ensure_valid_schema",
    "validate_fields",
    "validate_fractional_units",
    "validate_row_layout",
    "validate_schema",
    "validate_step_form",
]
