"""Dynamic form engine behind the renderer and editor pages."""

from .controls import ControlSet, build_controls  # noqa: F401
from .schema import FormSchema  # noqa: F401
from .session import RenderSession, SubmissionOutcome  # noqa: F401
from .steps import StepNavigator, step_dots  # noqa: F401
from .submission import prepare_checkbox_value, prepare_submission  # noqa: F401
from .validator import (  # noqa: F401
    SchemaValidationError,
    ensure_valid_schema,
    validate_schema,
    validate_step_form,
)
from .visibility import evaluate_conditional_visibility  # noqa: F401
