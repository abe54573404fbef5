"""Typed view over a stored form schema document.

Schemas arrive as JSON documents (from the forms API or from
``form_schemas/<key>/form_schema.json``). The helpers here turn the raw
mapping into frozen dataclasses the renderer works with. Parsing is lenient:
missing or malformed optional entries fall back to defaults instead of
raising, so older documents keep rendering. Strict checks live in
:mod:`formflow.validator` and run on the authoring path.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from formflow.field_types import FieldType, is_display_element, is_input_field, parse_field_type

CONDITIONAL_OPERATORS = ("equals", "notEquals", "contains", "greaterThan", "lessThan")


def _ensure_mapping(value: Any) -> Dict[str, Any]:
    """Return ``value`` if it is a mapping, otherwise an empty dict."""

    return dict(value) if isinstance(value, Mapping) else {}


def _ensure_list(value: Any) -> List[Any]:
    """Return ``value`` if it is a list, otherwise an empty list."""

    return list(value) if isinstance(value, list) else []


def _optional_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _optional_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _optional_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


@dataclass(frozen=True)
class FieldOption:
    label: str
    value: Any

    @classmethod
    def from_dict(cls, payload: Any) -> "FieldOption":
        if not isinstance(payload, Mapping):
            return cls(label=str(payload), value=payload)
        value = payload.get("value", payload.get("label", ""))
        label = payload.get("label")
        return cls(label=str(label if label is not None else value), value=value)


@dataclass(frozen=True)
class FieldValidation:
    """Optional bounds attached to an input field."""

    min_length: Optional[int] = None
    max_length: Optional[int] = None
    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = None
    error_message: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Any) -> Optional["FieldValidation"]:
        data = _ensure_mapping(payload)
        if not data:
            return None
        return cls(
            min_length=_optional_int(data.get("minLength")),
            max_length=_optional_int(data.get("maxLength")),
            min=_optional_number(data.get("min")),
            max=_optional_number(data.get("max")),
            pattern=_optional_text(data.get("pattern")),
            error_message=_optional_text(data.get("errorMessage")),
        )


@dataclass(frozen=True)
class ConditionalRule:
    """Visibility predicate tying a field to another field's value."""

    watch_field_id: str
    operator: str
    value: Any = None

    @classmethod
    def from_dict(cls, payload: Any) -> Optional["ConditionalRule"]:
        data = _ensure_mapping(payload)
        watch_field_id = data.get("watchFieldId")
        if not isinstance(watch_field_id, str) or not watch_field_id:
            return None
        return cls(
            watch_field_id=watch_field_id,
            operator=str(data.get("operator") or "equals"),
            value=data.get("value"),
        )


@dataclass(frozen=True)
class FieldPosition:
    row_id: str
    column_index: int = 0
    order_in_column: int = 0
    sub_column_index: Optional[int] = None
    step_id: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Any) -> Optional["FieldPosition"]:
        data = _ensure_mapping(payload)
        if not data:
            return None
        return cls(
            row_id=str(data.get("rowId") or ""),
            column_index=_optional_int(data.get("columnIndex")) or 0,
            order_in_column=_optional_int(data.get("orderInColumn")) or 0,
            sub_column_index=_optional_int(data.get("subColumnIndex")),
            step_id=_optional_text(data.get("stepId")),
        )


@dataclass(frozen=True)
class FormField:
    """One element of a form schema, input or display."""

    id: str
    type: FieldType
    field_name: str = ""
    label: str = ""
    required: bool = False
    order: int = 0
    placeholder: Optional[str] = None
    help_text: Optional[str] = None
    validation: Optional[FieldValidation] = None
    default_value: Any = None
    options: Tuple[FieldOption, ...] = ()
    conditional: Optional[ConditionalRule] = None
    position: Optional[FieldPosition] = None

    @classmethod
    def from_dict(cls, payload: Any, *, index: int = 0) -> "FormField":
        data = _ensure_mapping(payload)
        field_name = str(data.get("fieldName") or "")
        identifier = str(data.get("id") or field_name or f"field-{index}")
        order = _optional_int(data.get("order"))
        return cls(
            id=identifier,
            type=parse_field_type(data.get("type")),
            field_name=field_name,
            label=str(data.get("label") or field_name),
            required=bool(data.get("required")),
            order=index if order is None else order,
            placeholder=_optional_text(data.get("placeholder")),
            help_text=_optional_text(data.get("helpText")),
            validation=FieldValidation.from_dict(data.get("validation")),
            default_value=data.get("defaultValue"),
            options=tuple(FieldOption.from_dict(item) for item in _ensure_list(data.get("options"))),
            conditional=ConditionalRule.from_dict(data.get("conditional")),
            position=FieldPosition.from_dict(data.get("position")),
        )

    @property
    def is_input(self) -> bool:
        return is_input_field(self.type)

    @property
    def is_display(self) -> bool:
        return is_display_element(self.type)

    @property
    def step_id(self) -> Optional[str]:
        return self.position.step_id if self.position else None

    @property
    def option_values(self) -> List[str]:
        """Return option values as strings, the form used for selections."""

        return [str(option.value) for option in self.options]


@dataclass(frozen=True)
class FormStep:
    id: str
    title: str
    order: int
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Any, *, index: int = 0) -> "FormStep":
        data = _ensure_mapping(payload)
        order = _optional_int(data.get("order"))
        return cls(
            id=str(data.get("id") or ""),
            title=str(data.get("title") or ""),
            order=index if order is None else order,
            description=_optional_text(data.get("description")),
        )


@dataclass(frozen=True)
class StepFormConfig:
    enabled: bool = False
    steps: Tuple[FormStep, ...] = ()

    @classmethod
    def from_dict(cls, payload: Any) -> Optional["StepFormConfig"]:
        data = _ensure_mapping(payload)
        if not data:
            return None
        steps = [
            FormStep.from_dict(item, index=index)
            for index, item in enumerate(_ensure_list(data.get("steps")))
        ]
        # Navigation follows ``order``; ``sorted`` keeps ties in document order.
        steps.sort(key=lambda step: step.order)
        return cls(enabled=data.get("enabled") is True, steps=tuple(steps))


@dataclass(frozen=True)
class SubColumnConfig:
    column_index: int
    sub_column_count: int
    sub_column_widths: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, payload: Any) -> "SubColumnConfig":
        data = _ensure_mapping(payload)
        widths = [str(item) for item in _ensure_list(data.get("subColumnWidths"))]
        return cls(
            column_index=_optional_int(data.get("columnIndex")) or 0,
            sub_column_count=_optional_int(data.get("subColumnCount")) or 1,
            sub_column_widths=tuple(widths),
        )


@dataclass(frozen=True)
class RowLayoutConfig:
    row_id: str
    column_count: int
    order: int = 0
    column_widths: Tuple[str, ...] = ()
    sub_columns: Tuple[SubColumnConfig, ...] = ()
    step_id: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Any, *, index: int = 0) -> "RowLayoutConfig":
        data = _ensure_mapping(payload)
        order = _optional_int(data.get("order"))
        column_count = _optional_int(data.get("columnCount"))
        return cls(
            row_id=str(data.get("rowId") or ""),
            column_count=1 if column_count is None else column_count,
            order=index if order is None else order,
            column_widths=tuple(str(item) for item in _ensure_list(data.get("columnWidths"))),
            sub_columns=tuple(
                SubColumnConfig.from_dict(item) for item in _ensure_list(data.get("subColumns"))
            ),
            step_id=_optional_text(data.get("stepId")),
        )


@dataclass(frozen=True)
class SubmissionSettings:
    show_success_message: bool = True
    success_message: Optional[str] = None
    redirect_url: Optional[str] = None
    allow_multiple_submissions: bool = True

    @classmethod
    def from_dict(cls, payload: Any) -> "SubmissionSettings":
        data = _ensure_mapping(payload)
        return cls(
            show_success_message=data.get("showSuccessMessage", True) is not False,
            success_message=_optional_text(data.get("successMessage")),
            redirect_url=_optional_text(data.get("redirectUrl")),
            allow_multiple_submissions=data.get("allowMultipleSubmissions", True) is not False,
        )


@dataclass(frozen=True)
class FormSettings:
    layout_columns: int = 1
    spacing: str = "medium"
    submission: SubmissionSettings = field(default_factory=SubmissionSettings)
    row_layout_enabled: bool = False
    rows: Tuple[RowLayoutConfig, ...] = ()
    step_form: Optional[StepFormConfig] = None
    theme_id: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Any) -> "FormSettings":
        data = _ensure_mapping(payload)
        layout = _ensure_mapping(data.get("layout"))
        row_layout = _ensure_mapping(data.get("rowLayout"))
        rows = [
            RowLayoutConfig.from_dict(item, index=index)
            for index, item in enumerate(_ensure_list(row_layout.get("rows")))
        ]
        return cls(
            layout_columns=_optional_int(layout.get("columns")) or 1,
            spacing=str(layout.get("spacing") or "medium"),
            submission=SubmissionSettings.from_dict(data.get("submission")),
            row_layout_enabled=row_layout.get("enabled") is True,
            rows=tuple(sorted(rows, key=lambda row: row.order)),
            step_form=StepFormConfig.from_dict(data.get("stepForm")),
            theme_id=_optional_text(data.get("themeId")),
        )

    @property
    def step_form_enabled(self) -> bool:
        return bool(self.step_form and self.step_form.enabled)

    @property
    def steps(self) -> Tuple[FormStep, ...]:
        return self.step_form.steps if self.step_form else ()


@dataclass(frozen=True)
class FormSchema:
    """The authored form document: fields plus settings."""

    fields: Tuple[FormField, ...]
    settings: FormSettings = field(default_factory=FormSettings)
    id: str = ""
    title: str = ""
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, payload: Any, settings: Any = None) -> "FormSchema":
        """Parse ``payload``; ``settings`` overrides ``payload['settings']``.

        The forms API returns schema and settings side by side, while stored
        documents nest the settings inside the schema, so both shapes are
        accepted.
        """

        data = _ensure_mapping(payload)
        settings_payload = settings if settings is not None else data.get("settings")
        fields = tuple(
            FormField.from_dict(item, index=index)
            for index, item in enumerate(_ensure_list(data.get("fields")))
        )
        raw = dict(data)
        if settings is not None:
            raw["settings"] = settings
        return cls(
            fields=fields,
            settings=FormSettings.from_dict(settings_payload),
            id=str(data.get("id") or ""),
            title=str(data.get("title") or ""),
            raw=raw,
        )

    @property
    def input_fields(self) -> List[FormField]:
        return [item for item in self.fields if item.is_input]

    def sorted_fields(self) -> List[FormField]:
        return sorted(self.fields, key=lambda item: item.order)

    def field_by_id(self, field_id: str) -> Optional[FormField]:
        for item in self.fields:
            if item.id == field_id:
                return item
        return None

    def field_by_name(self, field_name: str) -> Optional[FormField]:
        for item in self.fields:
            if item.is_input and item.field_name == field_name:
                return item
        return None


__all__ = [
    "CONDITIONAL_OPERATORS",
    "ConditionalRule",
    "FieldOption",
    "FieldPosition",
    "FieldValidation",
    "FormField",
    "FormSchema",
    "FormSettings",
    "FormStep",
    "RowLayoutConfig",
    "StepFormConfig",
    "SubColumnConfig",
    "SubmissionSettings",
]
