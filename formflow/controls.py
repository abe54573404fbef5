"""Editable value model built from a form schema.

``build_controls`` creates one :class:`Control` per input field, keyed by
``fieldName``. Display elements (headings, dividers, groups, ...) never get
a control. Each control carries the validators derived from the field
definition; a control is valid when every validator passes.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence

from formflow.field_types import FieldType
from formflow.logging_utils import create_logger
from formflow.schema import FormField, FormSchema
from formflow.schema_defaults import FALLBACK_FIELD_ERROR, FIELD_ERROR_MESSAGES

logger = create_logger(__name__)

ValidationErrors = Dict[str, Any]
Validator = Callable[[Any], Optional[ValidationErrors]]

TRUTHY_STRINGS = ("true", "1", "yes", "on")

EMAIL_PATTERN = re.compile(
    r"^(?=.{1,254}$)(?=.{1,64}@)[a-zA-Z0-9!#$%&'*+/=?^_`{|}~-]+"
    r"(?:\.[a-zA-Z0-9!#$%&'*+/=?^_`{|}~-]+)*@[a-zA-Z0-9]"
    r"(?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)


def is_empty_value(value: Any) -> bool:
    """Return ``True`` for ``None``, empty strings and empty sequences."""

    if value is None:
        return True
    if isinstance(value, (str, list, tuple)):
        return len(value) == 0
    return False


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if number != number else number


def required_validator(value: Any) -> Optional[ValidationErrors]:
    return {"required": True} if is_empty_value(value) else None


def email_validator(value: Any) -> Optional[ValidationErrors]:
    if is_empty_value(value):
        return None
    return None if EMAIL_PATTERN.match(str(value)) else {"email": True}


def min_length_validator(limit: int) -> Validator:
    def validate(value: Any) -> Optional[ValidationErrors]:
        if is_empty_value(value) or not isinstance(value, (str, list, tuple)):
            return None
        if len(value) < limit:
            return {"minlength": {"requiredLength": limit, "actualLength": len(value)}}
        return None

    return validate


def max_length_validator(limit: int) -> Validator:
    def validate(value: Any) -> Optional[ValidationErrors]:
        if is_empty_value(value) or not isinstance(value, (str, list, tuple)):
            return None
        if len(value) > limit:
            return {"maxlength": {"requiredLength": limit, "actualLength": len(value)}}
        return None

    return validate


def min_validator(limit: float) -> Validator:
    def validate(value: Any) -> Optional[ValidationErrors]:
        number = None if is_empty_value(value) else _as_number(value)
        if number is not None and number < limit:
            return {"min": {"min": limit, "actual": value}}
        return None

    return validate


def max_validator(limit: float) -> Validator:
    def validate(value: Any) -> Optional[ValidationErrors]:
        number = None if is_empty_value(value) else _as_number(value)
        if number is not None and number > limit:
            return {"max": {"max": limit, "actual": value}}
        return None

    return validate


def pattern_validator(pattern: str) -> Optional[Validator]:
    """Return a validator matching the whole value against ``pattern``.

    Returns ``None`` when the stored pattern does not compile, so a broken
    pattern never blocks respondents.
    """

    anchored = pattern
    if not anchored.startswith("^"):
        anchored = "^" + anchored
    if not anchored.endswith("$"):
        anchored = anchored + "$"
    try:
        compiled = re.compile(anchored)
    except re.error as exc:
        logger.warning("Ignoring invalid validation pattern %r: %s", pattern, exc)
        return None

    def validate(value: Any) -> Optional[ValidationErrors]:
        if is_empty_value(value):
            return None
        text = str(value)
        if compiled.match(text):
            return None
        return {"pattern": {"requiredPattern": anchored, "actualValue": text}}

    return validate


def build_validators(field: FormField) -> List[Validator]:
    """Derive the validators for ``field`` from its configuration."""

    validators: List[Validator] = []
    if field.required:
        validators.append(required_validator)
    if field.type is FieldType.EMAIL:
        validators.append(email_validator)

    rules = field.validation
    if rules is not None:
        if rules.min_length is not None:
            validators.append(min_length_validator(rules.min_length))
        if rules.max_length is not None:
            validators.append(max_length_validator(rules.max_length))
        if rules.min is not None:
            validators.append(min_validator(rules.min))
        if rules.max is not None:
            validators.append(max_validator(rules.max))
        if rules.pattern:
            compiled = pattern_validator(rules.pattern)
            if compiled is not None:
                validators.append(compiled)
    return validators


def split_selection_string(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def normalize_checkbox_default(field: FormField) -> List[str]:
    """Return the default selections of a checkbox group.

    The stored default may be a list, a comma-separated string or a single
    value. Anything that is not one of the field's option values is dropped.
    """

    valid_values = set(field.option_values)
    if not valid_values:
        return []

    raw_default = field.default_value
    if raw_default is None:
        return []
    if isinstance(raw_default, (list, tuple)):
        parsed = [str(item) for item in raw_default]
    elif isinstance(raw_default, str):
        parsed = split_selection_string(raw_default)
    else:
        parsed = [str(raw_default)]
    return [item for item in parsed if item in valid_values]


def normalize_single_checkbox_value(value: Any) -> bool:
    """Coerce legacy single-checkbox values to a strict boolean."""

    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_STRINGS
    if isinstance(value, (int, float)):
        return value != 0
    return bool(value)


def is_checkbox_group(field: FormField) -> bool:
    return field.type is FieldType.CHECKBOX and bool(field.options)


def get_default_value(field: FormField) -> Any:
    """Return the initial control value for ``field`` based on its type."""

    if field.type is FieldType.CHECKBOX:
        if field.options:
            return normalize_checkbox_default(field)
        return normalize_single_checkbox_value(field.default_value)
    if field.type is FieldType.TOGGLE:
        return normalize_single_checkbox_value(field.default_value)
    if field.type is FieldType.NUMBER:
        return field.default_value
    return "" if field.default_value is None else field.default_value


class Control:
    """Current value, validators and touched flag of one input field."""

    def __init__(self, name: str, default_value: Any, validators: Sequence[Validator] = ()) -> None:
        self.name = name
        self.default_value = default_value
        self.validators = list(validators)
        self.value = _copy_value(default_value)
        self.touched = False

    def __repr__(self) -> str:
        return f"Control(name={self.name!r}, value={self.value!r}, touched={self.touched})"

    @property
    def errors(self) -> ValidationErrors:
        collected: ValidationErrors = {}
        for validator in self.validators:
            result = validator(self.value)
            if result:
                collected.update(result)
        return collected

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def invalid(self) -> bool:
        return not self.valid

    def set_value(self, value: Any) -> None:
        self.value = value

    def mark_as_touched(self) -> None:
        self.touched = True

    def reset(self) -> None:
        self.value = _copy_value(self.default_value)
        self.touched = False


def _copy_value(value: Any) -> Any:
    return list(value) if isinstance(value, list) else value


class ControlSet(Mapping[str, Control]):
    """All controls of one render session plus live checkbox selections.

    Checkbox groups report one toggled option per change event, so the
    selected values are tracked in ``checkbox_selections`` next to the
    control value.
    """

    def __init__(self, controls: Optional[Dict[str, Control]] = None) -> None:
        self._controls: Dict[str, Control] = dict(controls or {})
        self.checkbox_selections: Dict[str, List[str]] = {}

    def __getitem__(self, name: str) -> Control:
        return self._controls[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._controls)

    def __len__(self) -> int:
        return len(self._controls)

    def add(self, control: Control) -> None:
        self._controls[control.name] = control

    def current_values(self) -> Dict[str, Any]:
        return {name: control.value for name, control in self._controls.items()}

    @property
    def valid(self) -> bool:
        return all(control.valid for control in self._controls.values())

    def set_value(self, name: str, value: Any) -> None:
        control = self._controls.get(name)
        if control is None:
            return
        control.set_value(value)
        if name in self.checkbox_selections:
            self.checkbox_selections[name] = _selections_from_value(value)

    def toggle_option(self, name: str, option_value: Any, checked: bool) -> List[str]:
        """Apply one checkbox change event and return the new selections."""

        control = self._controls.get(name)
        if control is None:
            return []
        current = self.checkbox_selections.get(name, [])
        option = str(option_value)
        if checked and option not in current:
            updated = [*current, option]
        elif not checked and option in current:
            updated = [item for item in current if item != option]
        else:
            updated = list(current)
        self.checkbox_selections[name] = updated
        control.set_value(list(updated))
        control.mark_as_touched()
        return updated

    def is_option_selected(self, name: str, option_value: Any) -> bool:
        option = str(option_value)
        selections = self.checkbox_selections.get(name)
        if selections is not None:
            return option in selections
        control = self._controls.get(name)
        if control is None:
            return False
        return option in _selections_from_value(control.value) or control.value == option

    def sync_checkbox_selections(self, schema: FormSchema) -> None:
        """Rebuild tracked selections from the current control values."""

        self.checkbox_selections.clear()
        for field in schema.fields:
            if not is_checkbox_group(field):
                continue
            control = self._controls.get(field.field_name)
            value = control.value if control is not None else None
            self.checkbox_selections[field.field_name] = _selections_from_value(value)

    def mark_all_as_touched(self) -> None:
        for control in self._controls.values():
            control.mark_as_touched()

    def reset(self, schema: Optional[FormSchema] = None) -> None:
        for control in self._controls.values():
            control.reset()
        if schema is not None:
            self.sync_checkbox_selections(schema)


def _selections_from_value(value: Any) -> List[str]:
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    if isinstance(value, str) and value.strip():
        return split_selection_string(value)
    return []


def build_controls(schema: FormSchema) -> ControlSet:
    """Create the control set for every input field of ``schema``."""

    controls = ControlSet()
    for field in schema.fields:
        if field.is_display or not field.field_name:
            continue
        default_value = get_default_value(field)
        controls.add(Control(field.field_name, default_value, build_validators(field)))
        if is_checkbox_group(field):
            controls.checkbox_selections[field.field_name] = list(default_value)
    logger.debug("Built %d controls for schema %s", len(controls), schema.id or "<unsaved>")
    return controls


def error_message(field: FormField, control: Optional[Control]) -> str:
    """Return the message shown under ``field`` for its first failing check."""

    if control is None:
        return ""
    errors = control.errors
    if not errors:
        return ""
    if field.validation and field.validation.error_message:
        return field.validation.error_message

    for key in ("required", "email", "minlength", "maxlength", "min", "max", "pattern"):
        if key not in errors:
            continue
        details = errors[key]
        limit: Any = None
        if key in {"minlength", "maxlength"}:
            limit = details["requiredLength"]
        elif key in {"min", "max"}:
            limit = _format_number(details[key])
        return FIELD_ERROR_MESSAGES[key].format(limit=limit)
    return FALLBACK_FIELD_ERROR


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


__all__ = [
    "Control",
    "ControlSet",
    "build_controls",
    "build_validators",
    "error_message",
    "get_default_value",
    "is_checkbox_group",
    "is_empty_value",
    "normalize_checkbox_default",
    "normalize_single_checkbox_value",
]
