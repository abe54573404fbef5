"""Default texts shared between the renderer, the editor and the engine."""

from __future__ import annotations

from typing import Dict

DEFAULT_PAGE_TITLE = "Form"
DEFAULT_SUBMIT_LABEL = "Submit"
DEFAULT_NEXT_LABEL = "Next"
DEFAULT_PREVIOUS_LABEL = "Previous"
DEFAULT_SUBMIT_SUCCESS_MESSAGE = "Thank you! Your response has been submitted."
STEP_VALIDATION_MESSAGE = "Please fix the errors before continuing to the next step."
SUBMIT_VALIDATION_MESSAGE = "Please complete all steps before submitting."
FORM_VALIDATION_MESSAGE = "Please fix the highlighted fields before submitting."
DEFAULT_DEBUG_LABEL = "Debug: current values"
DEFAULT_SHOW_DEBUG = False

FIELD_ERROR_MESSAGES: Dict[str, str] = {
    "required": "This field is required",
    "email": "Invalid email address",
    "minlength": "Minimum length is {limit} characters",
    "maxlength": "Maximum length is {limit} characters",
    "min": "Value must be at least {limit}",
    "max": "Value must be at most {limit}",
    "pattern": "Invalid format",
}
FALLBACK_FIELD_ERROR = "Invalid value"
