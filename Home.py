"""Streamlit home screen listing the stored form schemas."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping

import pandas as pd
import streamlit as st

from formflow.form_store import load_local_forms
from formflow.schema import FormSchema
from formflow.submission_storage import load_local_submissions
from formflow.ui_theme import apply_app_theme, page_header
from formflow.validator import validate_schema

DEFAULT_TABLE_COLUMNS = (
    "Form",
    "Title",
    "Fields",
    "Step form",
    "Steps",
    "Submissions",
    "Last submission",
    "Problems",
)


def form_overview_rows(
    forms: Mapping[str, FormSchema],
    raw_documents: Mapping[str, Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """Return one table row per stored form."""

    rows: List[Dict[str, Any]] = []
    for form_key, schema in forms.items():
        submissions = load_local_submissions(form_key)
        problems = validate_schema(raw_documents.get(form_key, schema.raw))
        rows.append(
            {
                "Form": form_key,
                "Title": schema.title or form_key,
                "Fields": len(schema.input_fields),
                "Step form": schema.settings.step_form_enabled,
                "Steps": len(schema.settings.steps) if schema.settings.step_form_enabled else 0,
                "Submissions": len(submissions),
                "Last submission": str(submissions[0].get("submitted_at") or "") if submissions else "",
                "Problems": len(problems),
            }
        )
    return rows


def _problem_details(raw_documents: Mapping[str, Dict[str, Any]]) -> Iterable[tuple[str, List[str]]]:
    for form_key, document in raw_documents.items():
        problems = validate_schema(document)
        if problems:
            yield form_key, problems


def main() -> None:
    """Render the overview of stored forms."""

    apply_app_theme(page_title="Forms", page_icon="🗂️")
    page_header(
        "Forms",
        "Stored form schemas, their step configuration and collected submissions.",
        icon="🗂️",
    )

    forms, _, raw_documents = load_local_forms()
    if not forms:
        st.info("No forms stored yet. Create one in the editor.")
        st.page_link("pages/02_Form_Editor.py", label="Open editor", icon="🛠️")
        return

    rows = form_overview_rows(forms, raw_documents)
    table_df = pd.DataFrame(rows, columns=list(DEFAULT_TABLE_COLUMNS))

    metric_col1, metric_col2, metric_col3 = st.columns(3)
    metric_col1.metric("Forms", len(table_df))
    metric_col2.metric("Step forms", int(table_df["Step form"].sum()))
    metric_col3.metric("Submissions", int(table_df["Submissions"].sum()))

    st.dataframe(
        table_df,
        hide_index=True,
        use_container_width=True,
        column_config={
            "Step form": st.column_config.CheckboxColumn("Step form", disabled=True),
            "Problems": st.column_config.NumberColumn(
                "Problems",
                help="Validation problems that would block saving this schema.",
            ),
        },
    )

    for form_key, problems in _problem_details(raw_documents):
        with st.expander(f"Problems in {form_key}"):
            for problem in problems:
                st.error(problem)

    st.page_link("pages/01_Form_Renderer.py", label="Open renderer", icon="📝")
    st.page_link("pages/02_Form_Editor.py", label="Open editor", icon="🛠️")


if __name__ == "__main__":
    main()
