"""One respondent's pass through a form.

A :class:`RenderSession` keeps the controls, the step navigator and the
submission state together so the Streamlit page can store a single object in
``st.session_state`` between reruns.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from formflow.client import FormRenderError, RenderPayload, SubmissionResult
from formflow.controls import ControlSet, build_controls, error_message
from formflow.logging_utils import create_logger
from formflow.schema import FormField, FormSchema
from formflow.schema_defaults import DEFAULT_SUBMIT_SUCCESS_MESSAGE, FORM_VALIDATION_MESSAGE
from formflow.steps import StepNavigator
from formflow.submission import prepare_submission
from formflow.visibility import evaluate_conditional_visibility, is_field_visible

logger = create_logger(__name__)

SubmissionSink = Callable[[Dict[str, Any], Optional[Dict[str, Any]]], SubmissionResult]


@dataclass(frozen=True)
class SubmissionOutcome:
    success: bool
    submission_id: Optional[str] = None
    message: Optional[str] = None
    error: Optional[FormRenderError] = None
    values: Optional[Dict[str, Any]] = None


class RenderSession:
    def __init__(
        self,
        schema: FormSchema,
        *,
        theme: Optional[Mapping[str, Any]] = None,
        render_token: Optional[str] = None,
        short_code: Optional[str] = None,
        navigator_factory: Callable[[FormSchema, ControlSet], StepNavigator] = StepNavigator,
    ) -> None:
        self.schema = schema
        self.theme = dict(theme) if theme else None
        self.render_token = render_token
        self.short_code = short_code
        self._navigator_factory = navigator_factory
        self.controls = build_controls(schema)
        evaluate_conditional_visibility(schema, self.controls)
        self.navigator = navigator_factory(schema, self.controls)
        self.submitted = False
        self.submitting = False
        self.outcome: Optional[SubmissionOutcome] = None
        self.error: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: RenderPayload) -> "RenderSession":
        return cls(
            payload.schema,
            theme=payload.theme,
            render_token=payload.render_token,
            short_code=payload.short_code,
        )

    @property
    def step_form_enabled(self) -> bool:
        return self.navigator.enabled

    def set_value(self, field_name: str, value: Any) -> List[str]:
        """Store ``value`` and re-evaluate visibility; return cleared fields."""

        self.controls.set_value(field_name, value)
        return evaluate_conditional_visibility(self.schema, self.controls)

    def toggle_option(self, field_name: str, option_value: Any, checked: bool) -> List[str]:
        self.controls.toggle_option(field_name, option_value, checked)
        return evaluate_conditional_visibility(self.schema, self.controls)

    def is_visible(self, field: FormField) -> bool:
        return is_field_visible(field, self.schema, self.controls)

    def visible_fields_for_current_step(self) -> List[FormField]:
        """Fields to render now, in authored order."""

        fields = self.navigator.fields_for_current_step(self.schema.sorted_fields())
        return [field for field in fields if self.is_visible(field)]

    def field_error(self, field: FormField) -> str:
        """Return the message to show under ``field``, once it was touched."""

        control = self.controls.get(field.field_name) if field.field_name else None
        if control is None or not control.touched:
            return ""
        return error_message(field, control)

    def next_step(self) -> bool:
        self.error = None
        return self.navigator.next()

    def previous_step(self) -> bool:
        self.error = None
        return self.navigator.previous()

    def go_to_step(self, index: int) -> bool:
        self.error = None
        return self.navigator.go_to_step(index)

    def _visible_inputs_valid(self) -> bool:
        is_valid = True
        for field in self.schema.fields:
            if not field.is_input or not field.field_name or not self.is_visible(field):
                continue
            control = self.controls.get(field.field_name)
            if control is None:
                continue
            control.mark_as_touched()
            if control.invalid:
                is_valid = False
        return is_valid

    def submit(self, sink: SubmissionSink) -> SubmissionOutcome:
        """Validate, prepare and hand the values to ``sink``.

        Nothing reaches ``sink`` while a step or a visible field is invalid.
        Step events are attached as metadata only for step forms.
        """

        self.error = None
        if self.step_form_enabled and not self.navigator.validate_for_submit():
            self.error = self.navigator.last_error
            return SubmissionOutcome(success=False, message=self.error)
        if not self._visible_inputs_valid():
            self.error = FORM_VALIDATION_MESSAGE
            logger.warning("Submission blocked: form has invalid fields")
            return SubmissionOutcome(success=False, message=self.error)

        values = prepare_submission(self.schema, self.controls)
        metadata = self.navigator.event_metadata() if self.step_form_enabled else None

        self.submitting = True
        try:
            result = sink(values, metadata)
        except FormRenderError as exc:
            logger.warning("Submission failed (%s): %s", exc.error_type.value, exc.message)
            self.error = exc.message
            self.outcome = SubmissionOutcome(success=False, message=exc.message, error=exc, values=values)
            return self.outcome
        finally:
            self.submitting = False

        self.submitted = True
        self.outcome = SubmissionOutcome(
            success=True,
            submission_id=result.submission_id,
            message=result.message,
            values=values,
        )
        logger.info("Submitted form %s as %s", self.schema.id or "<unsaved>", result.submission_id)
        return self.outcome

    @property
    def success_message(self) -> str:
        configured = self.schema.settings.submission.success_message
        if configured:
            return configured
        if self.outcome is not None and self.outcome.message:
            return self.outcome.message
        return DEFAULT_SUBMIT_SUCCESS_MESSAGE

    @property
    def can_submit_again(self) -> bool:
        return self.submitted and self.schema.settings.submission.allow_multiple_submissions

    def reset(self) -> None:
        """Start over with default values and a fresh navigator."""

        self.controls.reset(self.schema)
        evaluate_conditional_visibility(self.schema, self.controls)
        self.navigator = self._navigator_factory(self.schema, self.controls)
        self.submitted = False
        self.submitting = False
        self.outcome = None
        self.error = None


__all__ = ["RenderSession", "SubmissionOutcome", "SubmissionSink"]
