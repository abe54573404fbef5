"""Multi-step form navigation.

A :class:`StepNavigator` owns the position of one render session inside a
step form: the current step index, the set of steps that passed validation,
and the ordered log of navigation events sent along with the submission.

Fields and rows without a ``stepId`` belong to the first step, which keeps
schemas authored before step forms rendering on a single page.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set

from formflow.controls import ControlSet
from formflow.logging_utils import create_logger
from formflow.schema import FormField, FormSchema, FormStep, RowLayoutConfig
from formflow.schema_defaults import STEP_VALIDATION_MESSAGE, SUBMIT_VALIDATION_MESSAGE
from formflow.visibility import is_field_visible

logger = create_logger(__name__)

STEP_ACTIONS = ("view", "next", "previous", "submit")
MAX_DOTS_WITHOUT_ELLIPSIS = 7


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class StepEvent:
    step_id: str
    step_order: int
    action: str
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stepId": self.step_id,
            "stepOrder": self.step_order,
            "action": self.action,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class StepDot:
    """One pagination marker: a step dot or a collapsed gap."""

    kind: str
    index: Optional[int] = None

    @property
    def is_ellipsis(self) -> bool:
        return self.kind == "ellipsis"


def step_dots(total_steps: int, current_index: int) -> List[StepDot]:
    """Return the pagination markers for ``total_steps`` at ``current_index``.

    Up to seven steps every dot is shown. Beyond that the first two and last
    two steps are always shown, plus a window of two steps either side of the
    current one; hidden runs collapse into a single ellipsis.

    >>> [dot.index for dot in step_dots(30, 20)]
    [0, 1, None, 18, 19, 20, 21, 22, None, 28, 29]
    """

    if total_steps <= MAX_DOTS_WITHOUT_ELLIPSIS:
        return [StepDot("dot", index) for index in range(total_steps)]

    ellipsis = StepDot("ellipsis")
    dots = [StepDot("dot", 0), StepDot("dot", 1)]

    if current_index <= 3:
        dots.extend([StepDot("dot", 2), StepDot("dot", 3), ellipsis])
    elif current_index >= total_steps - 4:
        dots.append(ellipsis)
        dots.extend(StepDot("dot", index) for index in range(total_steps - 4, total_steps - 2))
    else:
        dots.append(ellipsis)
        for index in range(current_index - 2, current_index + 3):
            if 1 < index < total_steps - 2:
                dots.append(StepDot("dot", index))
        dots.append(ellipsis)

    dots.extend([StepDot("dot", total_steps - 2), StepDot("dot", total_steps - 1)])
    return dots


class StepNavigator:
    """Step position, validation gating and event log for one render session."""

    def __init__(
        self,
        schema: FormSchema,
        controls: ControlSet,
        *,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.schema = schema
        self.controls = controls
        self._clock = clock
        self.current_index = 0
        self.validated_steps: Set[int] = set()
        self.events: List[StepEvent] = []
        self.last_error: Optional[str] = None
        self.record_event("view")

    @property
    def enabled(self) -> bool:
        return self.schema.settings.step_form_enabled

    @property
    def steps(self) -> Sequence[FormStep]:
        return self.schema.settings.steps

    @property
    def step_count(self) -> int:
        return len(self.steps)

    @property
    def current_step(self) -> Optional[FormStep]:
        if 0 <= self.current_index < self.step_count:
            return self.steps[self.current_index]
        return None

    @property
    def is_first_step(self) -> bool:
        return self.current_index == 0

    @property
    def is_last_step(self) -> bool:
        return self.current_index == self.step_count - 1

    def record_event(self, action: str) -> None:
        if action not in STEP_ACTIONS:
            raise ValueError(f"Unknown step action: {action}")
        if not self.enabled:
            return
        step = self.current_step
        if step is None:
            return
        self.events.append(StepEvent(step.id, step.order, action, self._clock()))
        logger.debug("Step event %s on step %s (%d)", action, step.id, self.current_index)

    def fields_for_step(self, index: int, fields: Optional[Iterable[FormField]] = None) -> List[FormField]:
        candidates = list(self.schema.fields if fields is None else fields)
        if not self.enabled:
            return candidates
        if not 0 <= index < self.step_count:
            return []
        step_id = self.steps[index].id
        return [
            field
            for field in candidates
            if (field.step_id == step_id if field.step_id else index == 0)
        ]

    def fields_for_current_step(self, fields: Optional[Iterable[FormField]] = None) -> List[FormField]:
        return self.fields_for_step(self.current_index, fields)

    def rows_for_current_step(self, rows: Optional[Iterable[RowLayoutConfig]] = None) -> List[RowLayoutConfig]:
        candidates = list(self.schema.settings.rows if rows is None else rows)
        if not self.enabled:
            return candidates
        step = self.current_step
        if step is None:
            return []
        return [
            row
            for row in candidates
            if (row.step_id == step.id if row.step_id else self.current_index == 0)
        ]

    def validate_step(self, index: int) -> bool:
        """Touch and check every visible input control of step ``index``."""

        if self.enabled and not 0 <= index < self.step_count:
            return True
        is_valid = True
        for field in self.fields_for_step(index):
            if not field.is_input or not field.field_name:
                continue
            if not is_field_visible(field, self.schema, self.controls):
                continue
            control = self.controls.get(field.field_name)
            if control is None:
                continue
            control.mark_as_touched()
            if control.invalid:
                is_valid = False
        return is_valid

    def validate_current_step(self) -> bool:
        if self.current_step is None:
            return True
        is_valid = self.validate_step(self.current_index)
        self.last_error = None if is_valid else STEP_VALIDATION_MESSAGE
        if not is_valid:
            logger.warning("Step %d failed validation", self.current_index)
        return is_valid

    def next(self) -> bool:
        """Advance one step when the current step validates."""

        if not self.enabled or self.is_last_step or self.current_step is None:
            return False
        if not self.validate_current_step():
            return False
        self.record_event("next")
        self.validated_steps.add(self.current_index)
        self.current_index += 1
        self.record_event("view")
        return True

    def previous(self) -> bool:
        if not self.enabled or self.is_first_step or self.current_step is None:
            return False
        self.last_error = None
        self.record_event("previous")
        self.current_index -= 1
        self.record_event("view")
        return True

    def go_to_step(self, target: int) -> bool:
        """Jump to ``target``; jumping forward requires a valid current step."""

        if not self.enabled or not 0 <= target < self.step_count:
            return False
        if target > self.current_index and not self.validate_current_step():
            return False
        if target <= self.current_index:
            self.last_error = None
        self.current_index = target
        self.record_event("view")
        return True

    def validate_for_submit(self) -> bool:
        """Re-check steps ``0..current`` in order before submission.

        Records the ``submit`` event only when every step passes.
        """

        if not self.enabled:
            return True
        for index in range(self.current_index + 1):
            if not self.validate_step(index):
                self.last_error = SUBMIT_VALIDATION_MESSAGE
                logger.warning("Submission blocked: step %d is invalid", index)
                return False
        self.last_error = None
        self.record_event("submit")
        return True

    def visible_step_dots(self) -> List[StepDot]:
        return step_dots(self.step_count, self.current_index)

    def event_metadata(self) -> Dict[str, Any]:
        return {"stepEvents": [event.to_dict() for event in self.events]}


__all__ = [
    "STEP_ACTIONS",
    "StepDot",
    "StepEvent",
    "StepNavigator",
    "step_dots",
]
