"""Tests for a full render session: visibility, steps and submission."""

from __future__ import annotations

import importlib
from typing import Any, Dict, List, Optional, Tuple

session_module = importlib.import_module("formflow.session")
client_module = importlib.import_module("formflow.client")
schema_module = importlib.import_module("formflow.schema")
schema_defaults = importlib.import_module("formflow.schema_defaults")


class RecordingSink:
    """Collects submissions and answers with a fixed result."""

    def __init__(self, result=None, error: Optional[Exception] = None) -> None:
        self.calls: List[Tuple[Dict[str, Any], Optional[Dict[str, Any]]]] = []
        self.result = result or client_module.SubmissionResult(submission_id="sub-1", message="Stored")
        self.error = error

    def __call__(self, values, metadata):
        self.calls.append((values, metadata))
        if self.error is not None:
            raise self.error
        return self.result


def _step_form(settings_extra: Optional[Dict[str, Any]] = None):
    settings: Dict[str, Any] = {
        "stepForm": {
            "enabled": True,
            "steps": [
                {"id": "s1", "title": "Contact", "order": 0},
                {"id": "s2", "title": "Details", "order": 1},
            ],
        }
    }
    settings.update(settings_extra or {})
    return schema_module.FormSchema.from_dict(
        {
            "id": "form-1",
            "fields": [
                {"id": "name", "type": "text", "fieldName": "name", "required": True, "position": {"rowId": "r1", "stepId": "s1"}},
                {
                    "id": "pet",
                    "type": "radio",
                    "fieldName": "pet",
                    "options": [{"label": "Yes", "value": "yes"}, {"label": "No", "value": "no"}],
                    "position": {"rowId": "r2", "stepId": "s2"},
                },
                {
                    "id": "pet_name",
                    "type": "text",
                    "fieldName": "pet_name",
                    "required": True,
                    "conditional": {"watchFieldId": "pet", "operator": "equals", "value": "yes"},
                    "position": {"rowId": "r3", "stepId": "s2"},
                },
            ],
        },
        settings,
    )


def test_submit_is_blocked_without_calling_sink() -> None:
    session = session_module.RenderSession(_step_form())
    sink = RecordingSink()

    outcome = session.submit(sink)

    assert outcome.success is False
    assert outcome.message == schema_defaults.SUBMIT_VALIDATION_MESSAGE
    assert sink.calls == []
    assert not session.submitted


def test_submit_sends_values_and_step_events() -> None:
    session = session_module.RenderSession(_step_form())
    sink = RecordingSink()

    session.set_value("name", "Ada")
    assert session.next_step() is True
    session.set_value("pet", "yes")
    session.set_value("pet_name", "Rex")
    session.set_value("pet", "no")

    outcome = session.submit(sink)

    assert outcome.success is True
    assert outcome.submission_id == "sub-1"
    values, metadata = sink.calls[0]
    assert values == {"name": "Ada", "pet": "no", "pet_name": None}
    actions = [event["action"] for event in metadata["stepEvents"]]
    assert actions == ["view", "next", "view", "submit"]
    assert session.submitted


def test_visible_fields_follow_step_and_conditions() -> None:
    session = session_module.RenderSession(_step_form())
    session.set_value("name", "Ada")
    session.next_step()

    assert [field.id for field in session.visible_fields_for_current_step()] == ["pet"]

    session.set_value("pet", "yes")
    assert [field.id for field in session.visible_fields_for_current_step()] == ["pet", "pet_name"]


def test_field_error_shows_only_after_touch() -> None:
    session = session_module.RenderSession(_step_form())
    name_field = session.schema.field_by_name("name")

    assert session.field_error(name_field) == ""
    session.next_step()
    assert session.field_error(name_field) == "This field is required"


def test_sink_errors_become_a_failed_outcome() -> None:
    error = client_module.FormRenderError(
        client_module.FormRenderErrorType.VALIDATION_ERROR, "Email already used", 400
    )
    schema = schema_module.FormSchema.from_dict({"fields": [{"id": "a", "type": "text", "fieldName": "a"}]})
    session = session_module.RenderSession(schema)
    sink = RecordingSink(error=error)

    outcome = session.submit(sink)

    assert outcome.success is False
    assert outcome.error is error
    assert session.error == "Email already used"
    assert not session.submitting
    assert not session.submitted


def test_single_page_form_sends_no_metadata_and_checks_fields() -> None:
    schema = schema_module.FormSchema.from_dict(
        {"fields": [{"id": "a", "type": "email", "fieldName": "email", "required": True}]}
    )
    session = session_module.RenderSession(schema)
    sink = RecordingSink()

    blocked = session.submit(sink)
    assert blocked.message == schema_defaults.FORM_VALIDATION_MESSAGE
    assert sink.calls == []

    session.set_value("email", "ada@example.com")
    outcome = session.submit(sink)

    assert outcome.success
    assert sink.calls == [({"email": "ada@example.com"}, None)]


def test_success_message_priority() -> None:
    configured = session_module.RenderSession(
        _step_form({"submission": {"successMessage": "Configured thanks"}})
    )
    configured.outcome = session_module.SubmissionOutcome(success=True, message="From server")
    assert configured.success_message == "Configured thanks"

    session = session_module.RenderSession(_step_form())
    session.outcome = session_module.SubmissionOutcome(success=True, message="From server")
    assert session.success_message == "From server"

    session.outcome = session_module.SubmissionOutcome(success=True)
    assert session.success_message == schema_defaults.DEFAULT_SUBMIT_SUCCESS_MESSAGE


def test_reset_starts_a_new_response() -> None:
    session = session_module.RenderSession(_step_form())
    session.set_value("name", "Ada")
    session.next_step()

    session.reset()

    assert session.controls["name"].value == ""
    assert session.navigator.current_index == 0
    assert [event.action for event in session.navigator.events] == ["view"]
    assert session.outcome is None


def test_from_payload_keeps_theme_and_tokens() -> None:
    payload = client_module.RenderPayload(
        schema=_step_form(),
        theme={"primaryColor": "#ff0000"},
        short_code="abc",
        render_token="tok",
    )

    session = session_module.RenderSession.from_payload(payload)

    assert session.theme == {"primaryColor": "#ff0000"}
    assert session.render_token == "tok"
    assert session.short_code == "abc"
