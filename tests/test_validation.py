import pytest

from setup_wizard.core.fields import FieldDefinition, FieldType
from setup_wizard.core.validation import FieldValidator, ValidationResult, ValidatorRegistry


@pytest.fixture
def validator():
    return FieldValidator(ValidatorRegistry.with_builtins())


def text(required=True, rule=None):
    return FieldDefinition(name="name", type=FieldType.TEXT, required=required, validation_callback=rule)


def test_required_text_needs_a_value(validator):
    assert validator.validate(text(), "") == ValidationResult(error=True, filled=False)
    assert validator.validate(text(), "Alice") == ValidationResult(error=False, filled=True)


def test_optional_field_is_always_valid(validator):
    result = validator.validate(text(required=False), "")
    assert not result.error
    assert not result.filled


@pytest.mark.parametrize("value, ok", [(1, True), (0, False), ("", False)])
def test_required_checkbox_needs_the_set_sentinel(validator, value, ok):
    field = FieldDefinition(name="agree", type=FieldType.CHECKBOX, required=True)
    result = validator.validate(field, value)
    assert result.error is not ok
    assert result.filled is ok


def test_number_counts_zero_as_set(validator):
    field = FieldDefinition(name="count", type=FieldType.NUMBER, required=True)
    assert validator.validate(field, 0).filled


def test_number_bounds(validator):
    field = FieldDefinition(name="batch", type=FieldType.NUMBER, min=10, max=500)
    assert validator.validate(field, 5) == ValidationResult.failed("Number must be between 10 and 500.")
    assert validator.validate(field, "abc").text == "Not a valid number."
    assert not validator.validate(field, "20").error
    assert not validator.validate(field, "").error


def test_email_rule(validator):
    field = text(rule="email")
    assert validator.validate(field, "not-an-address") == ValidationResult.failed("Invalid email address.")
    assert validator.validate(field, "alice@example.com") == ValidationResult.ok()


def test_unresolvable_rule_accepts_the_value(validator, caplog):
    result = validator.validate(text(rule="does-not-exist"), "whatever")
    assert result == ValidationResult.ok()
    assert "does-not-exist" in caplog.text


def test_callable_rule_returning_wire_payload():
    registry = ValidatorRegistry()
    registry.register("no_admin", lambda v: {"error": True, "text": "reserved"} if v == "admin" else "")
    validator = FieldValidator(registry)

    assert validator.validate(text(rule="no_admin"), "admin") == ValidationResult.failed("reserved")
    assert validator.validate(text(rule="no_admin"), "bob") == ValidationResult.ok()


def test_integer_rule_rejects_text():
    registry = ValidatorRegistry.with_builtins()
    assert registry.resolve("integer").validate("12").error is False
    assert registry.resolve("integer").validate("twelve").error is True


@pytest.mark.parametrize("payload, error, text_", [
    ("", False, None),
    ([], False, None),
    ({"error": True, "text": "invalid"}, True, "invalid"),
    ({"error": True}, True, None),
    ("error", True, None),
])
def test_result_from_payload(payload, error, text_):
    result = ValidationResult.from_payload(payload)
    assert result.error is error
    assert result.text == text_


def test_result_payload_shape():
    assert ValidationResult.ok().to_payload() == ""
    assert ValidationResult.failed("invalid").to_payload() == {"error": True, "text": "invalid"}


def test_filled_is_sticky_when_merged():
    previous = ValidationResult.ok(filled=True)
    assert ValidationResult.ok(filled=False).merged_into(previous).filled
    assert ValidationResult.failed("x").merged_into(previous).error
