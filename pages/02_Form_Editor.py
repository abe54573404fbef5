"""Streamlit page to author form schema documents as JSON."""

from __future__ import annotations

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import pandas as pd
import streamlit as st

from formflow.form_store import load_local_forms, save_form_schema
from formflow.logging_utils import create_logger
from formflow.schema import FormSchema
from formflow.ui_theme import apply_app_theme, page_header
from formflow.validator import SchemaValidationError, validate_schema

logger = create_logger(__name__)

EDITOR_SELECTED_STATE_KEY = "editor_selected_form"
EDITOR_TEXT_STATE_PREFIX = "editor_document"
NEW_FORM_OPTION = "+ New form"

NEW_FORM_TEMPLATE: Dict[str, Any] = {
    "id": "",
    "title": "Untitled form",
    "fields": [
        {
            "id": "field-name",
            "type": "text",
            "fieldName": "name",
            "label": "Your name",
            "required": True,
            "order": 0,
        }
    ],
    "settings": {
        "layout": {"columns": 1, "spacing": "medium"},
        "submission": {"showSuccessMessage": True},
    },
}


@contextmanager
def section_card(
    title: Optional[str] = None,
    description: Optional[str] = None,
) -> Any:
    """Render a container with optional title and description."""

    container = st.container(border=True)
    if title:
        container.markdown(f"### {title}")
    if description:
        container.caption(description)
    yield container


def parse_document(raw_text: str) -> Tuple[Optional[Dict[str, Any]], List[str]]:
    """Return the parsed document and any problems found in ``raw_text``."""

    try:
        document = json.loads(raw_text)
    except json.JSONDecodeError as exc:
        return None, [f"Invalid JSON at line {exc.lineno}, column {exc.colno}: {exc.msg}"]
    if not isinstance(document, Mapping):
        return None, ["The schema must be a JSON object."]
    return dict(document), []


def step_summary_rows(document: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """Return one row per step with the number of fields assigned to it.

    Fields without a ``stepId`` are counted on the first step.
    """

    schema = FormSchema.from_dict(document)
    steps = schema.settings.steps
    if not steps:
        return []

    rows: List[Dict[str, Any]] = []
    for index, step in enumerate(steps):
        count = sum(
            1
            for field in schema.fields
            if (field.step_id == step.id if field.step_id else index == 0)
        )
        rows.append(
            {
                "Order": step.order,
                "Step ID": step.id,
                "Title": step.title,
                "Fields": count,
            }
        )
    return rows


def handle_save(form_key: str, raw_text: str) -> Optional[Path]:
    """Validate ``raw_text`` and store it under ``form_key``.

    Problems are reported with ``st.error``; nothing is written unless the
    document passes validation.
    """

    key = form_key.strip()
    if not key:
        st.error("Enter a form key before saving.")
        return None

    document, problems = parse_document(raw_text)
    if document is None:
        for problem in problems:
            st.error(problem)
        return None

    try:
        path = save_form_schema(key, document)
    except SchemaValidationError as exc:
        st.error(f"{exc.message}. Fix the following before saving:")
        for detail in exc.details:
            st.error(detail)
        return None
    except (OSError, ValueError) as exc:
        st.error(f"Could not save the schema: {exc}")
        return None

    st.success(f"Schema saved to {path}.")
    return path


def _initial_text(raw_documents: Mapping[str, Dict[str, Any]], form_key: str) -> str:
    document = raw_documents.get(form_key, NEW_FORM_TEMPLATE)
    return json.dumps(document, indent=2, ensure_ascii=False)


def main() -> None:
    """Render the form editor page."""

    apply_app_theme(page_title="Form editor", page_icon="🛠️")
    page_header(
        "Form editor",
        "Edit a form schema as JSON. Documents are validated before they are saved.",
        icon="🛠️",
    )

    _, _, raw_documents = load_local_forms()
    options = [*raw_documents.keys(), NEW_FORM_OPTION]
    selected = st.session_state.get(EDITOR_SELECTED_STATE_KEY)
    if selected not in options:
        selected = options[0]
    selected = st.radio(
        "Select form",
        options=options,
        index=options.index(selected),
        horizontal=True,
    )
    st.session_state[EDITOR_SELECTED_STATE_KEY] = selected

    if selected == NEW_FORM_OPTION:
        form_key = st.text_input("Form key", help="Folder name under form_schemas/.")
    else:
        form_key = selected
        st.caption(f"Editing form_schemas/{form_key}/form_schema.json")

    text_key = f"{EDITOR_TEXT_STATE_PREFIX}_{selected}"
    raw_text = st.text_area(
        "Schema JSON",
        value=_initial_text(raw_documents, selected),
        key=text_key,
        height=480,
    )

    document, problems = parse_document(raw_text)
    if document is not None:
        problems = validate_schema(document)

    with section_card("Validation", "Results for the document above.") as card:
        if problems:
            for problem in problems:
                card.error(problem)
        else:
            card.success("The schema is valid.")

    if document is not None:
        rows = step_summary_rows(document)
        if rows:
            with section_card("Steps", "Fields per step, in navigation order.") as card:
                card.dataframe(pd.DataFrame(rows), hide_index=True, use_container_width=True)

    st.divider()
    if st.button("Save", type="primary", disabled=bool(problems)):
        if handle_save(form_key or "", raw_text):
            st.session_state.pop(text_key, None)

    st.page_link("pages/01_Form_Renderer.py", label="Open renderer", icon="📝")


if __name__ == "__main__":
    main()
