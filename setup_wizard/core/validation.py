"""
Field validation.

A field either has no rule, in which case only its required-ness is checked,
or it names a rule in the :class:`ValidatorRegistry`. Rules implement the
:class:`Validator` interface. The built-in ones run WTForms validators
through a single-field form so the messages and edge cases are the ones
WTForms users already know.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional, Protocol

from wtforms import FloatField, Form, IntegerField, StringField
from wtforms.validators import URL, NumberRange, Regexp

from .fields import CHECKBOX_SET, FieldDefinition, FieldType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationResult:
    error: bool = False
    text: Optional[str] = None
    filled: bool = False

    @classmethod
    def ok(cls, filled: bool = True) -> "ValidationResult":
        return cls(error=False, filled=filled)

    @classmethod
    def failed(cls, text: Optional[str] = None) -> "ValidationResult":
        return cls(error=True, text=text or None, filled=False)

    @classmethod
    def from_payload(cls, payload: Any, filled: bool = True) -> "ValidationResult":
        """
        Read the wire form of a result: ``""`` (or an empty list) means valid,
        ``{"error": true, "text": ...}`` or the bare string ``"error"`` means
        invalid.
        """
        if payload in ("", None) or payload == [] or payload == {}:
            return cls.ok(filled=filled)
        if isinstance(payload, dict):
            if payload.get("error"):
                return cls.failed(payload.get("text"))
            return cls.ok(filled=filled)
        if isinstance(payload, str):
            return cls.failed(None if payload == "error" else payload)
        return cls.failed()

    def to_payload(self) -> Any:
        if not self.error:
            return ""
        payload: Dict[str, Any] = {"error": True}
        if self.text:
            payload["text"] = self.text
        return payload

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error, "text": self.text, "filled": self.filled}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValidationResult":
        return cls(error=bool(data.get("error")), text=data.get("text"), filled=bool(data.get("filled")))

    def merged_into(self, previous: Optional["ValidationResult"]) -> "ValidationResult":
        """Filled is sticky: a field that once held a good value stays filled."""
        if previous is None or not previous.filled or self.filled:
            return self
        return ValidationResult(error=self.error, text=self.text, filled=True)


class Validator(Protocol):
    def validate(self, value: Any) -> ValidationResult:
        ...


class CallableRule:
    """Adapts a plain function returning the wire form of a result."""

    def __init__(self, func: Callable[[Any], Any]):
        self.func = func

    def validate(self, value: Any) -> ValidationResult:
        return ValidationResult.from_payload(self.func(value), filled=has_value(value))


class FormRule:
    """Runs WTForms validators against one value."""

    def __init__(self, field_class=StringField, validators: Iterable = ()):
        self.field_class = field_class
        self.form_class = type("RuleForm", (Form,), {"value": field_class(validators=list(validators))})

    def validate(self, value: Any) -> ValidationResult:
        if self.field_class is StringField and value is not None:
            value = str(value)
        form = self.form_class(data={"value": value})
        if form.validate():
            return ValidationResult.ok(filled=has_value(value))
        return ValidationResult.failed("; ".join(str(e) for e in form.value.errors))


EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class ValidatorRegistry:
    def __init__(self):
        self._rules: Dict[str, Validator] = {}

    def register(self, name: str, rule: Any) -> None:
        if callable(rule) and not hasattr(rule, "validate"):
            rule = CallableRule(rule)
        self._rules[name] = rule

    def resolve(self, name: Optional[str]) -> Optional[Validator]:
        if not name:
            return None
        return self._rules.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._rules

    def names(self) -> list:
        return sorted(self._rules)

    @classmethod
    def with_builtins(cls) -> "ValidatorRegistry":
        registry = cls()
        registry.register("email", FormRule(validators=[Regexp(EMAIL_PATTERN, message="Invalid email address.")]))
        registry.register("url", FormRule(validators=[URL(require_tld=False, message="Invalid URL.")]))
        registry.register("integer", FormRule(IntegerField))
        registry.register("slug", FormRule(validators=[
            Regexp(SLUG_PATTERN, message="Use lowercase letters, digits and dashes only."),
        ]))
        return registry


def has_value(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return bool(value)
    if isinstance(value, (int, float)):
        return True
    return len(value) > 0


def is_set(field: FieldDefinition, value: Any) -> bool:
    if field.type == FieldType.CHECKBOX:
        return value == CHECKBOX_SET
    return has_value(value)


def check_bounds(field: FieldDefinition, value: Any) -> Optional[ValidationResult]:
    """Only reports failures; a number inside its bounds yields None."""
    if field.type != FieldType.NUMBER or (field.min is None and field.max is None):
        return None
    if not has_value(value):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return ValidationResult.failed("Not a valid number.")
    rule = FormRule(FloatField, [NumberRange(min=field.min, max=field.max, message=_range_message(field))])
    result = rule.validate(number)
    return result if result.error else None


def _range_message(field: FieldDefinition) -> str:
    if field.min is not None and field.max is not None:
        return f"Number must be between {_fmt(field.min)} and {_fmt(field.max)}."
    if field.min is not None:
        return f"Number must be at least {_fmt(field.min)}."
    return f"Number must be at most {_fmt(field.max)}."


def _fmt(number: float) -> str:
    return str(int(number)) if float(number).is_integer() else str(number)


class FieldValidator:
    def __init__(self, registry: Optional[ValidatorRegistry] = None):
        self.registry = registry or ValidatorRegistry.with_builtins()

    def validate(self, field: FieldDefinition, value: Any) -> ValidationResult:
        if field.validation_callback:
            return self.validate_with_rule(field, value)

        bounds = check_bounds(field, value)
        if bounds is not None:
            return bounds

        if is_set(field, value):
            return ValidationResult.ok()
        if field.required:
            return ValidationResult.failed()
        return ValidationResult.ok(filled=False)

    def validate_with_rule(self, field: FieldDefinition, value: Any) -> ValidationResult:
        rule = self.registry.resolve(field.validation_callback)
        if rule is None:
            logger.warning("Validation rule %r for field %s is not registered, accepting value",
                           field.validation_callback, field.name)
            return ValidationResult.ok(filled=is_set(field, value))
        result = rule.validate(value)
        if result.error:
            return result
        return ValidationResult.ok(filled=is_set(field, value))
