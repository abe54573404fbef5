"""Tests for step navigation, gating and pagination markers."""

from __future__ import annotations

import importlib
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import pytest

steps_module = importlib.import_module("formflow.steps")
controls_module = importlib.import_module("formflow.controls")
schema_module = importlib.import_module("formflow.schema")
schema_defaults = importlib.import_module("formflow.schema_defaults")


class FakeClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self) -> None:
        self.current = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


def _field(field_id: str, step_id: Any, **extra: Any) -> Dict[str, Any]:
    data: Dict[str, Any] = {"id": field_id, "type": "text", "fieldName": field_id, "required": True}
    if step_id is not None:
        data["position"] = {"rowId": f"row-{field_id}", "stepId": step_id}
    data.update(extra)
    return data


def _schema(fields: List[Dict[str, Any]], *, enabled: bool = True, step_count: int = 3):
    steps = [{"id": f"s{index}", "title": f"Step {index + 1}", "order": index} for index in range(step_count)]
    return schema_module.FormSchema.from_dict(
        {"fields": fields, "settings": {"stepForm": {"enabled": enabled, "steps": steps}}}
    )


def _navigator(schema):
    controls = controls_module.build_controls(schema)
    return steps_module.StepNavigator(schema, controls, clock=FakeClock()), controls


def test_next_is_blocked_until_current_step_is_valid() -> None:
    schema = _schema([_field("a", "s0"), _field("b", "s1"), _field("c", "s2")])
    navigator, controls = _navigator(schema)

    assert navigator.next() is False
    assert navigator.current_index == 0
    assert navigator.last_error == schema_defaults.STEP_VALIDATION_MESSAGE
    assert controls["a"].touched
    assert [event.action for event in navigator.events] == ["view"]

    controls.set_value("a", "filled")
    assert navigator.next() is True

    assert navigator.current_index == 1
    assert navigator.validated_steps == {0}
    assert navigator.last_error is None
    assert [(event.action, event.step_id) for event in navigator.events] == [
        ("view", "s0"),
        ("next", "s0"),
        ("view", "s1"),
    ]


def test_events_are_chronological() -> None:
    schema = _schema([_field("a", "s0", required=False)], step_count=2)
    navigator, _ = _navigator(schema)

    navigator.next()
    navigator.previous()

    timestamps = [event.timestamp for event in navigator.events]
    assert timestamps == sorted(timestamps)
    assert [event.action for event in navigator.events] == ["view", "next", "view", "previous", "view"]


def test_previous_does_not_validate_and_stops_at_first_step() -> None:
    schema = _schema([_field("a", "s0", required=False), _field("b", "s1")])
    navigator, _ = _navigator(schema)

    assert navigator.previous() is False
    assert navigator.next() is True
    assert navigator.previous() is True
    assert navigator.current_index == 0


def test_next_on_last_step_is_a_no_op() -> None:
    schema = _schema([], step_count=2)
    navigator, _ = _navigator(schema)

    assert navigator.next() is True
    assert navigator.is_last_step
    assert navigator.next() is False
    assert navigator.current_index == 1


def test_go_to_step_validates_only_forward_jumps() -> None:
    schema = _schema([_field("a", "s0"), _field("b", "s1")])
    navigator, controls = _navigator(schema)

    assert navigator.go_to_step(2) is False
    assert navigator.go_to_step(5) is False

    controls.set_value("a", "x")
    assert navigator.go_to_step(2) is True
    assert navigator.go_to_step(0) is True
    assert navigator.current_index == 0


def test_fields_without_step_belong_to_first_step() -> None:
    schema = _schema([_field("legacy", None), _field("b", "s1")])
    navigator, _ = _navigator(schema)

    assert [field.id for field in navigator.fields_for_current_step()] == ["legacy"]


def test_hidden_fields_do_not_block_progress() -> None:
    fields = [
        {"id": "toggle", "type": "toggle", "fieldName": "toggle", "position": {"rowId": "r", "stepId": "s0"}},
        _field(
            "detail",
            "s0",
            conditional={"watchFieldId": "toggle", "operator": "equals", "value": True},
        ),
    ]
    navigator, _ = _navigator(_schema(fields, step_count=2))

    assert navigator.next() is True


def test_submit_is_blocked_when_an_earlier_step_is_invalid() -> None:
    schema = _schema([_field("a", "s0"), _field("b", "s1", required=False), _field("c", "s2", required=False)])
    navigator, controls = _navigator(schema)

    controls.set_value("a", "ok")
    navigator.next()
    navigator.next()
    controls.set_value("a", "")

    assert navigator.validate_for_submit() is False
    assert navigator.last_error == schema_defaults.SUBMIT_VALIDATION_MESSAGE
    assert "submit" not in [event.action for event in navigator.events]

    controls.set_value("a", "fixed")
    assert navigator.validate_for_submit() is True
    assert navigator.events[-1].action == "submit"


def test_disabled_step_form_shows_everything_and_records_nothing() -> None:
    schema = _schema([_field("a", "s0"), _field("b", "s1")], enabled=False)
    navigator, _ = _navigator(schema)

    assert len(navigator.fields_for_current_step()) == 2
    assert navigator.events == []
    assert navigator.next() is False
    assert navigator.validate_for_submit() is True


def test_event_metadata_is_serialisable() -> None:
    schema = _schema([], step_count=2)
    navigator, _ = _navigator(schema)

    metadata = navigator.event_metadata()

    assert metadata == {
        "stepEvents": [
            {
                "stepId": "s0",
                "stepOrder": 0,
                "action": "view",
                "timestamp": "2024-01-01T00:00:01+00:00",
            }
        ]
    }


def test_record_event_rejects_unknown_actions() -> None:
    navigator, _ = _navigator(_schema([], step_count=2))

    with pytest.raises(ValueError):
        navigator.record_event("skip")


def test_step_dots_show_every_step_up_to_seven() -> None:
    dots = steps_module.step_dots(7, 3)

    assert [dot.index for dot in dots] == list(range(7))
    assert not any(dot.is_ellipsis for dot in dots)


@pytest.mark.parametrize(
    ("total", "current", "expected"),
    [
        (30, 20, [0, 1, None, 18, 19, 20, 21, 22, None, 28, 29]),
        (10, 0, [0, 1, 2, 3, None, 8, 9]),
        (10, 9, [0, 1, None, 6, 7, 8, 9]),
        (10, 5, [0, 1, None, 3, 4, 5, 6, 7, None, 8, 9]),
    ],
)
def test_step_dots_collapse_long_ranges(total: int, current: int, expected: List[Any]) -> None:
    dots = steps_module.step_dots(total, current)

    assert [None if dot.is_ellipsis else dot.index for dot in dots] == expected
