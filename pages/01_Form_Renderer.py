"""Streamlit page that renders a form schema one step at a time."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from html import escape as html_escape
from typing import Any, Callable, Dict, List, Optional

import streamlit as st

from formflow.client import (
    DEFAULT_TIMEOUT,
    FormRenderError,
    FormRenderErrorType,
    FormsApiClient,
    RenderPayload,
)
from formflow.controls import is_checkbox_group
from formflow.field_types import FieldType
from formflow.form_store import available_form_keys, load_form_schema
from formflow.logging_utils import create_logger
from formflow.schema import FormField, RowLayoutConfig
from formflow.schema_defaults import (
    DEFAULT_DEBUG_LABEL,
    DEFAULT_NEXT_LABEL,
    DEFAULT_PAGE_TITLE,
    DEFAULT_PREVIOUS_LABEL,
    DEFAULT_SHOW_DEBUG,
    DEFAULT_SUBMIT_LABEL,
)
from formflow.session import RenderSession, SubmissionSink
from formflow.submission_storage import store_local_submission
from formflow.ui_theme import apply_app_theme, apply_form_theme, page_header, step_dots_markup

logger = create_logger(__name__)

SESSION_STATE_KEY = "form_render_session"
SOURCE_STATE_KEY = "form_render_source"
WIDGET_PREFIX = "formflow_widget"
TOKEN_QUERY_PARAM = "token"
CODE_QUERY_PARAM = "code"
FORM_QUERY_PARAM = "form"
DEBUG_QUERY_PARAM = "debug"
DATETIME_PLACEHOLDER = "YYYY-MM-DDTHH:MM"


def _secrets_dict(name: str) -> Dict[str, Any]:
    """Return a mapping stored under ``name`` in Streamlit secrets."""

    value = st.secrets.get(name, {})  # type: ignore[arg-type]
    if isinstance(value, Mapping):
        return dict(value)
    return {}


def _forms_api_settings() -> Dict[str, Any]:
    """Return the forms API configuration, or ``{}`` when none is set."""

    secrets = _secrets_dict("forms_api")
    base_url = secrets.get("base_url")
    timeout = secrets.get("timeout")

    if not base_url:
        base_url = st.secrets.get("forms_api_url", base_url)
    if timeout is None:
        timeout = st.secrets.get("forms_api_timeout", timeout)

    if not base_url:
        return {}
    try:
        timeout_value = float(timeout) if timeout is not None else float(DEFAULT_TIMEOUT)
    except (TypeError, ValueError):
        timeout_value = float(DEFAULT_TIMEOUT)
    return {"base_url": str(base_url), "timeout": timeout_value}


def _api_client() -> Optional[FormsApiClient]:
    settings = _forms_api_settings()
    if not settings:
        return None
    return FormsApiClient(settings["base_url"], timeout=settings["timeout"])


def _get_query_param(name: str) -> Optional[str]:
    """Return the first query parameter value if present."""

    params = st.query_params
    values = params.get(name)
    if not values:
        return None
    if isinstance(values, list):
        return next((str(value) for value in values if value is not None), None)
    return str(values)


def load_render_payload(
    *,
    token: Optional[str] = None,
    short_code: Optional[str] = None,
    form_key: Optional[str] = None,
) -> RenderPayload:
    """Load the form behind a render token, a short code or a local key.

    Remote failures raise :class:`FormRenderError`; an unknown local key
    raises ``KeyError`` and a broken local file ``ValueError``.
    """

    if token or short_code:
        client = _api_client()
        if client is None:
            raise FormRenderError(
                FormRenderErrorType.NETWORK_ERROR,
                "The forms API is not configured. Add a [forms_api] base_url to the secrets.",
            )
        if token:
            return client.fetch_schema(token)
        return client.fetch_by_short_code(str(short_code))
    if not form_key:
        raise KeyError("form")
    return RenderPayload(schema=load_form_schema(form_key))


def make_submission_sink(session: RenderSession, form_key: Optional[str]) -> SubmissionSink:
    """Return the sink for ``session``: the forms API or the local store.

    Forms loaded from the API (by token or short code) always submit to the
    API; only local forms are written to disk.
    """

    if session.render_token or session.short_code:
        client = _api_client()
        token = session.render_token

        def remote_sink(values: Dict[str, Any], metadata: Optional[Dict[str, Any]]):
            if not token:
                raise FormRenderError(
                    FormRenderErrorType.INVALID_TOKEN,
                    "This form link cannot accept submissions. Please request a new link.",
                )
            if client is None:
                raise FormRenderError(
                    FormRenderErrorType.NETWORK_ERROR,
                    "The forms API is not configured.",
                )
            return client.submit(token, values, metadata)

        return remote_sink

    def local_sink(values: Dict[str, Any], metadata: Optional[Dict[str, Any]]):
        return store_local_submission(form_key or "default", values, metadata)

    return local_sink


def _clear_widget_state(prefix: str = WIDGET_PREFIX) -> None:
    for key in [key for key in st.session_state.keys() if str(key).startswith(prefix)]:
        st.session_state.pop(key)


def get_session(
    source: str,
    *,
    token: Optional[str] = None,
    short_code: Optional[str] = None,
    form_key: Optional[str] = None,
) -> Optional[RenderSession]:
    """Return the render session for ``source``, loading the form if needed."""

    session = st.session_state.get(SESSION_STATE_KEY)
    if isinstance(session, RenderSession) and st.session_state.get(SOURCE_STATE_KEY) == source:
        return session

    try:
        payload = load_render_payload(token=token, short_code=short_code, form_key=form_key)
    except FormRenderError as exc:
        st.error(exc.message)
        return None
    except KeyError:
        st.error(f"Form '{form_key}' was not found. Check form_schemas/<form_key>/form_schema.json.")
        return None
    except ValueError:
        st.error(
            f"The stored form '{form_key}' is not valid JSON. "
            "Fix form_schemas/<form_key>/form_schema.json or re-save it from the editor."
        )
        return None

    session = RenderSession.from_payload(payload)
    _clear_widget_state()
    st.session_state[SESSION_STATE_KEY] = session
    st.session_state[SOURCE_STATE_KEY] = source
    return session


def _widget_key(field: FormField) -> str:
    return f"{WIDGET_PREFIX}_{field.field_name or field.id}"


def _drop_hidden_widgets(session: RenderSession) -> None:
    """Forget widget state of hidden fields so they reappear with fresh values."""

    for field in session.schema.fields:
        if field.is_display or session.is_visible(field):
            continue
        widget_key = _widget_key(field)
        stale = [
            key
            for key in st.session_state.keys()
            if key == widget_key or str(key).startswith(f"{widget_key}__")
        ]
        for key in stale:
            st.session_state.pop(key)


def _on_value_change(
    session: RenderSession,
    field: FormField,
    widget_key: str,
    convert: Optional[Callable[[Any], Any]] = None,
) -> None:
    value = st.session_state.get(widget_key)
    if convert is not None:
        value = convert(value)
    cleared = session.set_value(field.field_name, value)
    control = session.controls.get(field.field_name)
    if control is not None:
        control.mark_as_touched()
    if cleared:
        _drop_hidden_widgets(session)


def _on_option_toggle(session: RenderSession, field: FormField, option_value: str, widget_key: str) -> None:
    cleared = session.toggle_option(field.field_name, option_value, bool(st.session_state.get(widget_key)))
    if cleared:
        _drop_hidden_widgets(session)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool) or value == "":
        return None
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_date(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def _date_to_text(value: Any) -> Optional[str]:
    return value.isoformat() if isinstance(value, date) else None


def _uploaded_name(value: Any) -> Optional[str]:
    return getattr(value, "name", None) if value is not None else None


def _option_index(field: FormField, value: Any) -> Optional[int]:
    values = field.option_values
    text = _text(value)
    return values.index(text) if text in values else None


def _field_label(field: FormField) -> str:
    return f"{field.label} *" if field.required else field.label


def render_display_element(field: FormField, container: Any = st) -> None:
    """Render headings, text blocks, images, dividers and group captions."""

    if field.type is FieldType.HEADING:
        container.subheader(field.label)
    elif field.type is FieldType.DIVIDER:
        container.divider()
    elif field.type is FieldType.TEXT_BLOCK:
        container.markdown(field.help_text or field.label)
    elif field.type is FieldType.IMAGE:
        source = field.default_value
        if isinstance(source, str) and source.strip():
            container.image(source, caption=field.label or None)
        elif field.label:
            container.caption(field.label)
    elif field.type is FieldType.GROUP:
        container.markdown(f"**{field.label}**")
        if field.help_text:
            container.caption(field.help_text)


def render_field(session: RenderSession, field: FormField, container: Any = st) -> None:
    """Render the widget for ``field`` bound to its control."""

    if field.is_display:
        render_display_element(field, container)
        return

    control = session.controls.get(field.field_name)
    if control is None:
        return

    widget_key = _widget_key(field)
    label = _field_label(field)
    value = control.value
    callback_args = (session, field, widget_key)
    labels = {str(option.value): option.label for option in field.options}

    if is_checkbox_group(field):
        container.markdown(f"**{label}**")
        if field.help_text:
            container.caption(field.help_text)
        for index, option in enumerate(field.options):
            option_key = f"{widget_key}__{index}"
            container.checkbox(
                option.label,
                value=session.controls.is_option_selected(field.field_name, option.value),
                key=option_key,
                on_change=_on_option_toggle,
                args=(session, field, str(option.value), option_key),
            )
    elif field.type is FieldType.CHECKBOX:
        container.checkbox(
            label,
            value=bool(value),
            key=widget_key,
            help=field.help_text,
            on_change=_on_value_change,
            args=callback_args,
        )
    elif field.type is FieldType.TOGGLE:
        container.toggle(
            label,
            value=bool(value),
            key=widget_key,
            help=field.help_text,
            on_change=_on_value_change,
            args=callback_args,
        )
    elif field.type is FieldType.NUMBER:
        container.number_input(
            label,
            value=_number(value),
            key=widget_key,
            placeholder=field.placeholder,
            help=field.help_text,
            on_change=_on_value_change,
            args=callback_args,
        )
    elif field.type is FieldType.TEXTAREA:
        container.text_area(
            label,
            value=_text(value),
            key=widget_key,
            placeholder=field.placeholder,
            help=field.help_text,
            on_change=_on_value_change,
            args=callback_args,
        )
    elif field.type is FieldType.SELECT:
        container.selectbox(
            label,
            options=field.option_values,
            index=_option_index(field, value),
            key=widget_key,
            placeholder=field.placeholder or "Select an option",
            format_func=lambda item: labels.get(item, item),
            help=field.help_text,
            on_change=_on_value_change,
            args=callback_args,
        )
    elif field.type in (FieldType.RADIO, FieldType.IMAGE_GALLERY):
        container.radio(
            label,
            options=field.option_values,
            index=_option_index(field, value),
            key=widget_key,
            format_func=lambda item: labels.get(item, item),
            help=field.help_text,
            on_change=_on_value_change,
            args=callback_args,
        )
    elif field.type is FieldType.DATE:
        container.date_input(
            label,
            value=_parse_date(value),
            key=widget_key,
            help=field.help_text,
            on_change=_on_value_change,
            args=(*callback_args, _date_to_text),
        )
    elif field.type is FieldType.FILE:
        container.file_uploader(
            label,
            key=widget_key,
            help=field.help_text,
            on_change=_on_value_change,
            args=(*callback_args, _uploaded_name),
        )
        if value:
            container.caption(f"Selected file: `{value}`")
    else:
        placeholder = field.placeholder
        if field.type is FieldType.DATETIME and not placeholder:
            placeholder = DATETIME_PLACEHOLDER
        container.text_input(
            label,
            value=_text(value),
            key=widget_key,
            placeholder=placeholder,
            help=field.help_text,
            on_change=_on_value_change,
            args=callback_args,
        )

    message = session.field_error(field)
    if message:
        container.markdown(
            f"<p class='form-field__error'>{html_escape(message)}</p>",
            unsafe_allow_html=True,
        )


def column_weights(row: RowLayoutConfig) -> List[int]:
    """Return ``st.columns`` weights for ``row`` from its ``Nfr`` widths."""

    count = max(row.column_count, 1)
    weights: List[int] = []
    for width in row.column_widths[:count]:
        text = width.strip()
        if text.endswith("fr") and text[:-2].isdigit() and int(text[:-2]) > 0:
            weights.append(int(text[:-2]))
        else:
            weights.append(1)
    if len(weights) != count:
        return [1] * count
    return weights


def render_fields(session: RenderSession) -> None:
    """Render the visible fields of the current step, in rows when configured."""

    fields = session.visible_fields_for_current_step()
    settings = session.schema.settings
    remaining = fields

    if settings.row_layout_enabled and settings.rows:
        placed = set()
        for row in session.navigator.rows_for_current_step():
            row_fields = [
                field for field in fields if field.position and field.position.row_id == row.row_id
            ]
            if not row_fields:
                continue
            columns = st.columns(column_weights(row))
            row_fields.sort(key=lambda item: (item.position.column_index, item.position.order_in_column))
            for field in row_fields:
                column = columns[min(field.position.column_index, len(columns) - 1)]
                render_field(session, field, column)
                placed.add(field.id)
        remaining = [field for field in fields if field.id not in placed]

    for field in remaining:
        render_field(session, field)


def render_step_header(session: RenderSession) -> None:
    navigator = session.navigator
    step = navigator.current_step
    if step is None:
        return

    description = f"<p>{html_escape(step.description)}</p>" if step.description else ""
    st.markdown(
        f"<div class='form-step-header'><h3>{html_escape(step.title)}</h3>{description}</div>",
        unsafe_allow_html=True,
    )
    st.caption(f"Step {navigator.current_index + 1} of {navigator.step_count}")
    st.progress((navigator.current_index + 1) / navigator.step_count)
    st.markdown(
        step_dots_markup(
            navigator.visible_step_dots(),
            navigator.current_index,
            sorted(navigator.validated_steps),
        ),
        unsafe_allow_html=True,
    )


def _submit(session: RenderSession, sink: SubmissionSink) -> None:
    session.submit(sink)


def render_actions(session: RenderSession, sink: SubmissionSink) -> None:
    """Render Previous / Next / Submit for the current position."""

    navigator = session.navigator
    show_submit = not session.step_form_enabled or navigator.is_last_step

    previous_col, _, next_col = st.columns([1, 2, 1])
    if session.step_form_enabled and not navigator.is_first_step:
        previous_col.button(
            DEFAULT_PREVIOUS_LABEL,
            key="formflow_previous",
            on_click=session.previous_step,
            disabled=session.submitting,
            use_container_width=True,
        )
    if show_submit:
        next_col.button(
            DEFAULT_SUBMIT_LABEL,
            key="formflow_submit",
            type="primary",
            on_click=_submit,
            args=(session, sink),
            disabled=session.submitting,
            use_container_width=True,
        )
    else:
        next_col.button(
            DEFAULT_NEXT_LABEL,
            key="formflow_next",
            type="primary",
            on_click=session.next_step,
            use_container_width=True,
        )


def render_success(session: RenderSession) -> None:
    submission_settings = session.schema.settings.submission
    if submission_settings.show_success_message:
        st.success(session.success_message)
    if session.outcome is not None and session.outcome.submission_id:
        st.caption(f"Reference: `{session.outcome.submission_id}`")
    if submission_settings.redirect_url:
        st.link_button("Continue", submission_settings.redirect_url)
    if session.can_submit_again:
        st.button("Submit another response", key="formflow_again", on_click=session.reset)


def _select_local_form(form_key: Optional[str]) -> Optional[str]:
    keys = available_form_keys()
    if not keys:
        return None
    if not form_key or form_key not in keys:
        form_key = keys[0]
    if len(keys) > 1:
        form_key = st.selectbox(
            "Form",
            options=keys,
            index=keys.index(form_key),
            help="Choose which stored form to fill in.",
        )
    if _get_query_param(FORM_QUERY_PARAM) != form_key:
        st.query_params[FORM_QUERY_PARAM] = form_key
    return form_key


def main() -> None:
    """Render the form page."""

    apply_app_theme(page_title="Form renderer", page_icon="📝")
    header_placeholder = st.empty()

    def update_header(title: str, subtitle: Optional[str] = None) -> None:
        page_header(title, subtitle, icon="📝", container=header_placeholder)

    update_header("Form renderer", "Loading form…")

    token = _get_query_param(TOKEN_QUERY_PARAM)
    short_code = _get_query_param(CODE_QUERY_PARAM)
    form_key: Optional[str] = None
    if token:
        source = f"token:{token}"
    elif short_code:
        source = f"code:{short_code}"
    else:
        form_key = _select_local_form(_get_query_param(FORM_QUERY_PARAM))
        if form_key is None:
            update_header("Form renderer", "No forms available.")
            st.error("No forms configured. Use the editor to add one.")
            return
        source = f"form:{form_key}"

    session = get_session(source, token=token, short_code=short_code, form_key=form_key)
    if session is None:
        update_header("Form renderer", "The form could not be loaded.")
        return

    apply_form_theme(session.theme)
    subtitle = None
    if session.step_form_enabled:
        subtitle = f"{session.navigator.step_count} steps"
    update_header(session.schema.title or DEFAULT_PAGE_TITLE, subtitle)

    if session.submitted:
        render_success(session)
        return

    _drop_hidden_widgets(session)
    if session.step_form_enabled:
        render_step_header(session)

    banner = session.error or session.navigator.last_error
    if banner:
        st.error(banner)

    render_fields(session)
    render_actions(session, make_submission_sink(session, form_key))

    if DEFAULT_SHOW_DEBUG or _get_query_param(DEBUG_QUERY_PARAM) == "1":
        with st.expander(DEFAULT_DEBUG_LABEL, expanded=False):
            st.json(session.controls.current_values())


if __name__ == "__main__":
    main()
