"""HTTP client for the public forms API (schema source and submission sink)."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

import requests

from formflow.logging_utils import create_logger
from formflow.schema import FormSchema
from formflow.submission import build_submission_payload

logger = create_logger(__name__)

DEFAULT_TIMEOUT = 10
NETWORK_ERROR_MESSAGE = "Network error occurred. Please check your connection."


class FormRenderErrorType(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    EXPIRED = "EXPIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    RATE_LIMITED = "RATE_LIMITED"
    NETWORK_ERROR = "NETWORK_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    SUBMISSION_ERROR = "SUBMISSION_ERROR"
    PARSE_ERROR = "PARSE_ERROR"


class FormRenderError(Exception):
    """Typed failure of a schema fetch or a submission."""

    def __init__(self, error_type: FormRenderErrorType, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.error_type = error_type
        self.message = message
        self.status_code = status_code

    def __repr__(self) -> str:
        return f"FormRenderError({self.error_type.value}, {self.message!r}, {self.status_code})"


@dataclass(frozen=True)
class RenderPayload:
    """A form ready to render, as returned by the schema source."""

    schema: FormSchema
    theme: Optional[Dict[str, Any]] = None
    short_code: Optional[str] = None
    render_token: Optional[str] = None


@dataclass(frozen=True)
class SubmissionResult:
    submission_id: str
    message: Optional[str] = None


def _error_message(response: requests.Response) -> Optional[str]:
    """Return the server-provided message from an error body, if any."""

    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, Mapping):
        return None
    message = body.get("message")
    if isinstance(message, str) and message:
        return message
    error = body.get("error")
    if isinstance(error, Mapping) and isinstance(error.get("message"), str):
        return error["message"] or None
    return None


def fetch_error(response: requests.Response) -> FormRenderError:
    """Map a failed schema fetch to a :class:`FormRenderError`."""

    status = response.status_code
    message = _error_message(response)
    if status == 404:
        return FormRenderError(FormRenderErrorType.NOT_FOUND, message or "Form not found", 404)
    if status == 410:
        return FormRenderError(FormRenderErrorType.EXPIRED, message or "This form has expired", 410)
    if status == 429:
        return FormRenderError(
            FormRenderErrorType.RATE_LIMITED, "Too many requests. Please try again later.", 429
        )
    if message and "Invalid" in message:
        return FormRenderError(FormRenderErrorType.INVALID_TOKEN, "Invalid form link", status)
    return FormRenderError(
        FormRenderErrorType.NETWORK_ERROR,
        "An unexpected error occurred. Please try again later.",
        status,
    )


def submit_error(response: requests.Response) -> FormRenderError:
    """Map a failed submission to a :class:`FormRenderError`."""

    status = response.status_code
    message = _error_message(response)
    if status == 400:
        return FormRenderError(
            FormRenderErrorType.VALIDATION_ERROR,
            message or "Validation failed. Please check your input.",
            400,
        )
    if status == 404:
        return FormRenderError(FormRenderErrorType.NOT_FOUND, message or "Form not found", 404)
    if status == 410:
        return FormRenderError(FormRenderErrorType.EXPIRED, message or "This form has expired", 410)
    if status == 429:
        return FormRenderError(
            FormRenderErrorType.RATE_LIMITED,
            message or "Too many submissions. Please try again later.",
            429,
        )
    return FormRenderError(
        FormRenderErrorType.SUBMISSION_ERROR,
        message or "Submission failed. Please try again.",
        status,
    )


@dataclass
class FormsApiClient:
    """Thin wrapper around the public render and submit endpoints."""

    base_url: str
    timeout: float = DEFAULT_TIMEOUT

    def _url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def _get(self, path: str) -> Dict[str, Any]:
        url = self._url(path)
        try:
            response = requests.get(url, headers={"Accept": "application/json"}, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("Schema fetch from %s failed: %s", url, exc)
            raise FormRenderError(FormRenderErrorType.NETWORK_ERROR, NETWORK_ERROR_MESSAGE, 0) from exc
        if not response.ok:
            error = fetch_error(response)
            logger.warning("Schema fetch from %s returned %s (%s)", url, response.status_code, error.error_type.value)
            raise error
        return self._json(response)

    @staticmethod
    def _json(response: requests.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError as exc:
            raise FormRenderError(
                FormRenderErrorType.PARSE_ERROR,
                "The server returned an unreadable response.",
                response.status_code,
            ) from exc
        if not isinstance(body, dict):
            raise FormRenderError(
                FormRenderErrorType.PARSE_ERROR,
                "The server returned an unreadable response.",
                response.status_code,
            )
        return body

    def fetch_schema(self, token: str) -> RenderPayload:
        """Fetch the form behind a render ``token``."""

        body = self._get(f"public/forms/render/{token}")
        data = body.get("data")
        if not isinstance(data, Mapping) or not isinstance(data.get("schema"), Mapping):
            raise FormRenderError(FormRenderErrorType.PARSE_ERROR, "The form definition is incomplete.")
        theme = data.get("theme")
        return RenderPayload(
            schema=FormSchema.from_dict(data["schema"], data.get("settings")),
            theme=dict(theme) if isinstance(theme, Mapping) else None,
            render_token=token,
        )

    def fetch_by_short_code(self, short_code: str) -> RenderPayload:
        """Fetch the form published under ``short_code``."""

        body = self._get(f"public/forms/{short_code}")
        form = body.get("form")
        if not isinstance(form, Mapping) or not isinstance(form.get("schema"), Mapping):
            raise FormRenderError(FormRenderErrorType.PARSE_ERROR, "The form definition is incomplete.")
        theme = form.get("theme")
        return RenderPayload(
            schema=FormSchema.from_dict(form["schema"], form.get("settings")),
            theme=dict(theme) if isinstance(theme, Mapping) else None,
            short_code=form.get("shortCode") or short_code,
            render_token=form.get("renderToken"),
        )

    def submit(
        self,
        token: str,
        values: Dict[str, Any],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> SubmissionResult:
        """Post prepared ``values`` (and optional ``metadata``) for ``token``."""

        url = self._url(f"public/forms/submit/{token}")
        payload = build_submission_payload(values, metadata)
        try:
            response = requests.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("Submission to %s failed: %s", url, exc)
            raise FormRenderError(FormRenderErrorType.NETWORK_ERROR, NETWORK_ERROR_MESSAGE, 0) from exc
        if not response.ok:
            error = submit_error(response)
            logger.warning("Submission to %s returned %s (%s)", url, response.status_code, error.error_type.value)
            raise error

        data = self._json(response).get("data")
        data = data if isinstance(data, Mapping) else {}
        message = data.get("message")
        return SubmissionResult(
            submission_id=str(data.get("submissionId") or ""),
            message=message if isinstance(message, str) and message else None,
        )


__all__ = [
    "FormRenderError",
    "FormRenderErrorType",
    "FormsApiClient",
    "RenderPayload",
    "SubmissionResult",
    "fetch_error",
    "submit_error",
]
