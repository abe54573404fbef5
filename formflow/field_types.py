"""Field type tags shared by the schema, controls and renderer."""

from __future__ import annotations

from enum import Enum
from typing import Any


class FieldType(str, Enum):
    """Closed set of field types a form schema may contain."""

    TEXT = "text"
    EMAIL = "email"
    NUMBER = "number"
    SELECT = "select"
    TEXTAREA = "textarea"
    FILE = "file"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    DATE = "date"
    DATETIME = "datetime"
    TOGGLE = "toggle"
    IMAGE_GALLERY = "image_gallery"
    HEADING = "heading"
    IMAGE = "image"
    TEXT_BLOCK = "text_block"
    DIVIDER = "divider"
    GROUP = "group"


INPUT_FIELD_TYPES = frozenset(
    {
        FieldType.TEXT,
        FieldType.EMAIL,
        FieldType.NUMBER,
        FieldType.SELECT,
        FieldType.TEXTAREA,
        FieldType.FILE,
        FieldType.CHECKBOX,
        FieldType.RADIO,
        FieldType.DATE,
        FieldType.DATETIME,
        FieldType.TOGGLE,
        FieldType.IMAGE_GALLERY,
    }
)

DISPLAY_FIELD_TYPES = frozenset(
    {
        FieldType.HEADING,
        FieldType.IMAGE,
        FieldType.TEXT_BLOCK,
        FieldType.DIVIDER,
        FieldType.GROUP,
    }
)


def parse_field_type(value: Any) -> FieldType:
    """Return the :class:`FieldType` for ``value``.

    Unknown tags fall back to ``TEXT`` so slightly malformed legacy schemas
    still render as a plain input.
    """

    if isinstance(value, FieldType):
        return value
    try:
        return FieldType(str(value or "").strip().lower())
    except ValueError:
        return FieldType.TEXT


def is_input_field(field_type: FieldType) -> bool:
    return field_type in INPUT_FIELD_TYPES


def is_display_element(field_type: FieldType) -> bool:
    return field_type in DISPLAY_FIELD_TYPES


__all__ = [
    "DISPLAY_FIELD_TYPES",
    "FieldType",
    "INPUT_FIELD_TYPES",
    "is_display_element",
    "is_input_field",
    "parse_field_type",
]
