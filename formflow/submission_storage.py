"""Local JSON storage for submissions of forms loaded from the form store."""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from formflow.client import FormRenderError, FormRenderErrorType, SubmissionResult
from formflow.logging_utils import create_logger

logger = create_logger(__name__)

SUBMISSIONS_ROOT = Path("form_submissions")


def submissions_directory(form_key: str) -> Path:
    return SUBMISSIONS_ROOT / form_key


def store_local_submission(
    form_key: str,
    values: Dict[str, Any],
    metadata: Optional[Dict[str, Any]] = None,
) -> SubmissionResult:
    """Write one submission to ``form_submissions/<form_key>/<id>.json``.

    ``OSError`` is reported as a :class:`FormRenderError` so the renderer
    handles local and remote sinks the same way.
    """

    submission_id = uuid.uuid4().hex
    record: Dict[str, Any] = {
        "id": submission_id,
        "form_key": form_key,
        "submitted_at": datetime.now(timezone.utc).isoformat(),
        "values": values,
    }
    if metadata:
        record["metadata"] = metadata

    target_dir = submissions_directory(form_key)
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        with (target_dir / f"{submission_id}.json").open("w", encoding="utf-8") as handle:
            json.dump(record, handle, indent=2, ensure_ascii=False)
            handle.write("\n")
    except OSError as exc:
        logger.warning("Failed to store submission for %s: %s", form_key, exc)
        raise FormRenderError(
            FormRenderErrorType.SUBMISSION_ERROR,
            "Submission failed. Please try again.",
        ) from exc

    logger.info("Stored submission %s for %s", submission_id, form_key)
    return SubmissionResult(submission_id=submission_id)


def load_local_submissions(form_key: str) -> List[Dict[str, Any]]:
    """Return stored submissions for ``form_key``, newest first.

    Unreadable files are skipped.
    """

    directory = submissions_directory(form_key)
    if not directory.exists():
        return []

    records: List[Dict[str, Any]] = []
    for submission_file in sorted(directory.glob("*.json")):
        try:
            with submission_file.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except (OSError, json.JSONDecodeError):
            continue
        if isinstance(payload, dict):
            records.append(payload)
    return sorted(records, key=lambda item: str(item.get("submitted_at") or ""), reverse=True)


__all__ = [
    "SUBMISSIONS_ROOT",
    "load_local_submissions",
    "store_local_submission",
    "submissions_directory",
]
