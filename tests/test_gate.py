from types import SimpleNamespace

import pytest

from setup_wizard.core.fields import FieldDefinition, FieldType
from setup_wizard.core.gate import can_advance, unsatisfied_fields
from setup_wizard.core.validation import ValidationResult


def state(results=None, process_finished=False):
    return SimpleNamespace(results={} if results is None else results, process_finished=process_finished)


NAME = FieldDefinition(name="name", type=FieldType.TEXT, required=True)
PHONE = FieldDefinition(name="phone", type=FieldType.TEXT)
INTRO = FieldDefinition(name="intro", type=FieldType.STATIC, required=True)
PROGRESS = FieldDefinition(name="progress", type=FieldType.PROGRESS)


def test_empty_step_is_open():
    assert can_advance({}, state())


def test_required_field_without_result_blocks():
    assert not can_advance({"name": NAME}, state())
    assert unsatisfied_fields({"name": NAME, "phone": PHONE}, state()) == ["name"]


def test_required_field_filled_without_error_passes():
    assert can_advance({"name": NAME}, state({"name": ValidationResult.ok()}))


@pytest.mark.parametrize("result", [
    ValidationResult(error=True, filled=True),
    ValidationResult(error=False, filled=False),
    ValidationResult.failed("invalid"),
])
def test_required_field_errored_or_unfilled_blocks(result):
    assert not can_advance({"name": NAME}, state({"name": result}))


def test_static_text_and_optional_fields_always_pass():
    assert can_advance({"intro": INTRO, "phone": PHONE}, state())


def test_progress_field_waits_for_the_process():
    assert not can_advance({"progress": PROGRESS}, state())
    assert can_advance({"progress": PROGRESS}, state(process_finished=True))


def test_gate_is_recomputed_on_every_call():
    results = {}
    current = state(results)
    assert not can_advance({"name": NAME}, current)
    results["name"] = ValidationResult.ok()
    assert can_advance({"name": NAME}, current)
    results["name"] = ValidationResult.failed()
    assert not can_advance({"name": NAME}, current)
