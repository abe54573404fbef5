"""Shared page chrome and per-form theme styling for the Streamlit pages."""

from __future__ import annotations

import re
from html import escape as html_escape
from typing import Any, Dict, Mapping, Optional, Sequence

import streamlit as st

_BASE_CSS = """
<style>
:root {
    --form-accent: #2563EB;
    --form-surface: #FFFFFF;
    --form-text: #1F2933;
    --form-muted: #52606D;
    --form-radius: 1rem;
    --form-font: "Inter", "Segoe UI", system-ui, -apple-system, sans-serif;
}

html, body {
    font-family: var(--form-font);
    color: var(--form-text);
}

.app-header {
    display: flex;
    align-items: center;
    gap: 1.25rem;
    padding: 1.5rem 1.75rem;
    background: var(--form-surface);
    border-radius: var(--form-radius);
    border: 1px solid rgba(37, 99, 235, 0.15);
    margin-bottom: 1.5rem;
}

.app-header__icon {
    font-size: 2.5rem;
    line-height: 1;
}

.app-header__title {
    margin: 0;
    font-size: 2rem;
    font-weight: 700;
}

.app-header__subtitle {
    margin: 0.25rem 0 0 0;
    color: var(--form-muted);
}

.form-step-header h3 {
    margin-bottom: 0.25rem;
}

.form-step-header p {
    color: var(--form-muted);
}

.form-step-dots {
    display: flex;
    gap: 0.5rem;
    align-items: center;
    justify-content: center;
    margin: 1rem 0 1.5rem 0;
}

.form-step-dot {
    width: 0.75rem;
    height: 0.75rem;
    border-radius: 50%;
    background: rgba(82, 96, 109, 0.25);
}

.form-step-dot--validated {
    background: rgba(37, 99, 235, 0.45);
}

.form-step-dot--current {
    background: var(--form-accent);
    transform: scale(1.3);
}

.form-step-ellipsis {
    color: var(--form-muted);
    letter-spacing: 0.1rem;
}

.form-field__error {
    color: #DC2626;
    font-size: 0.9rem;
    margin-top: -0.5rem;
}

.stButton>button {
    border-radius: calc(var(--form-radius) / 2);
}
</style>
"""

# Theme keys copied into CSS variables, with the variable each one sets.
THEME_VARIABLES: Dict[str, str] = {
    "primaryColor": "--form-accent",
    "backgroundColor": "--form-surface",
    "textColor": "--form-text",
    "fontFamily": "--form-font",
    "borderRadius": "--form-radius",
}

_SAFE_CSS_VALUE = re.compile(r"^[#\w\s\-\.,%()\"']+$")


def apply_app_theme(page_title: str, page_icon: Optional[str] = None) -> None:
    """Set up consistent page configuration and inject the shared CSS."""

    st.set_page_config(
        page_title=page_title,
        page_icon=page_icon,
        layout="wide",
        initial_sidebar_state="expanded",
    )
    st.markdown(_BASE_CSS, unsafe_allow_html=True)


def page_header(
    title: str,
    subtitle: Optional[str] = None,
    icon: Optional[str] = None,
    *,
    container: Optional[Any] = None,
) -> None:
    """Render a header block with a title, subtitle, and optional icon."""

    icon_markup = f"<span class='app-header__icon'>{icon}</span>" if icon else ""
    subtitle_markup = (
        f"<p class='app-header__subtitle'>{html_escape(subtitle)}</p>" if subtitle else ""
    )
    target = container.markdown if container is not None else st.markdown
    target(
        f"""
        <div class="app-header">
            {icon_markup}
            <div>
                <h1 class="app-header__title">{html_escape(title)}</h1>
                {subtitle_markup}
            </div>
        </div>
        """,
        unsafe_allow_html=True,
    )


def theme_css(theme: Optional[Mapping[str, Any]]) -> str:
    """Return a ``<style>`` block overriding the base variables from ``theme``.

    Values that look like anything other than plain CSS tokens are skipped.
    """

    if not isinstance(theme, Mapping):
        return ""
    declarations = []
    for key, variable in THEME_VARIABLES.items():
        value = theme.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if key == "borderRadius" and isinstance(value, (int, float)) and not isinstance(value, bool):
            text = f"{value}px"
        if not text or not _SAFE_CSS_VALUE.match(text):
            continue
        declarations.append(f"    {variable}: {text};")
    if not declarations:
        return ""
    return "<style>\n:root {\n" + "\n".join(declarations) + "\n}\n</style>"


def apply_form_theme(theme: Optional[Mapping[str, Any]]) -> bool:
    """Inject the theme CSS for the current run; return whether any applied."""

    css = theme_css(theme)
    if css:
        st.markdown(css, unsafe_allow_html=True)
    return bool(css)


def step_dots_markup(markers: Sequence[Any], current_index: int, validated: Sequence[int] = ()) -> str:
    """Return the HTML for pagination ``markers`` produced by ``step_dots``."""

    parts = ["<div class='form-step-dots'>"]
    for marker in markers:
        if marker.is_ellipsis:
            parts.append("<span class='form-step-ellipsis'>…</span>")
            continue
        classes = ["form-step-dot"]
        if marker.index == current_index:
            classes.append("form-step-dot--current")
        elif marker.index in validated:
            classes.append("form-step-dot--validated")
        parts.append(
            f"<span class='{' '.join(classes)}' title='Step {marker.index + 1}'></span>"
        )
    parts.append("</div>")
    return "".join(parts)


__all__ = [
    "THEME_VARIABLES",
    "apply_app_theme",
    "apply_form_theme",
    "page_header",
    "step_dots_markup",
    "theme_css",
]
