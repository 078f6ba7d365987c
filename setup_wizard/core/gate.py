from typing import Any, Mapping

from .fields import FieldDefinition, FieldType


def is_satisfied(field: FieldDefinition, state: Any) -> bool:
    if field.type == FieldType.STATIC:
        return True
    if field.type == FieldType.PROGRESS:
        return bool(state.process_finished)
    if not field.required:
        return True
    result = state.results.get(field.name)
    return result is not None and result.filled and not result.error


def can_advance(step_fields: Mapping[str, FieldDefinition], state: Any) -> bool:
    """
    Whether continue/finish is enabled for a step.

    ``state`` needs ``results`` (field name -> ValidationResult) and
    ``process_finished``. Evaluated on every call; an empty step passes.
    """
    satisfied = sum(1 for f in step_fields.values() if is_satisfied(f, state))
    return satisfied == len(step_fields)


def unsatisfied_fields(step_fields: Mapping[str, FieldDefinition], state: Any) -> list:
    return [name for name, f in step_fields.items() if not is_satisfied(f, state)]
