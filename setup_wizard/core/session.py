"""
Session state machine.

A :class:`SessionState` is an immutable snapshot. :func:`reduce` takes a
snapshot and an event and returns the next snapshot, or raises
:class:`~setup_wizard.errors.TransitionError` when the event is not allowed
in the current state. Side effects (saving values, telling the completion
registry, refreshing steps) belong to the caller.

    loading --ValuesLoaded--> editing(1) --StepAdvanced--> editing(2) ...
    editing(N) --Finished--> completed
    editing(1) --Skipped--> completed
"""
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from setup_wizard.errors import TransitionError

from .fields import Configuration, FieldDefinition, Steps, field_names, parse_steps, steps_to_dict
from .gate import can_advance, unsatisfied_fields
from .progress import ProgressSnapshot
from .validation import ValidationResult, is_set


class SessionStatus:
    LOADING = "loading"
    EDITING = "editing"
    COMPLETED = "completed"

    ALL = [LOADING, EDITING, COMPLETED]


def _frozen(data: Optional[Dict] = None) -> Mapping:
    return MappingProxyType(dict(data or {}))


@dataclass(frozen=True)
class SessionState:
    config_name: str
    steps: Steps
    status: str = SessionStatus.LOADING
    step: int = 1
    values: Mapping[str, Any] = field(default_factory=_frozen)
    results: Mapping[str, ValidationResult] = field(default_factory=_frozen)
    loaded: bool = False
    process_started: bool = False
    process_finished: bool = False
    skip_available: bool = False
    skipped: bool = False
    forward: Optional[str] = None

    @classmethod
    def start(cls, config: Configuration, steps: Optional[Steps] = None) -> "SessionState":
        return cls(
            config_name=config.name,
            steps=steps if steps is not None else config.steps,
            skip_available=bool(config.skip_url),
        )

    @property
    def last_step(self) -> int:
        return len(self.steps)

    @property
    def current_fields(self) -> Mapping[str, FieldDefinition]:
        return self.steps.get(self.step, MappingProxyType({}))

    @property
    def is_editing(self) -> bool:
        return self.status == SessionStatus.EDITING

    @property
    def gate_open(self) -> bool:
        return self.is_editing and can_advance(self.current_fields, self)

    @property
    def can_go_back(self) -> bool:
        return self.is_editing and 1 < self.step != self.last_step

    @property
    def can_continue(self) -> bool:
        return self.step < self.last_step and self.gate_open

    @property
    def can_finish(self) -> bool:
        return self.step == self.last_step and self.gate_open

    @property
    def can_skip(self) -> bool:
        return self.is_editing and self.step == 1 and self.skip_available

    def to_dict(self) -> Dict[str, Any]:
        return {
            "config_name": self.config_name,
            "status": self.status,
            "step": self.step,
            "steps": steps_to_dict(self.steps),
            "values": dict(self.values),
            "results": {name: r.to_dict() for name, r in self.results.items()},
            "loaded": self.loaded,
            "process_started": self.process_started,
            "process_finished": self.process_finished,
            "skip_available": self.skip_available,
            "skipped": self.skipped,
            "forward": self.forward,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionState":
        return cls(
            config_name=data["config_name"],
            steps=parse_steps(data["steps"]),
            status=data.get("status", SessionStatus.LOADING),
            step=int(data.get("step", 1)),
            values=_frozen(data.get("values")),
            results=_frozen({n: ValidationResult.from_dict(r) for n, r in (data.get("results") or {}).items()}),
            loaded=bool(data.get("loaded")),
            process_started=bool(data.get("process_started")),
            process_finished=bool(data.get("process_finished")),
            skip_available=bool(data.get("skip_available")),
            skipped=bool(data.get("skipped")),
            forward=data.get("forward"),
        )

    def public(self) -> Dict[str, Any]:
        """What a front end needs to render the current step."""
        data = self.to_dict()
        data.update({
            "last_step": self.last_step,
            "fields": list(self.current_fields),
            "missing": unsatisfied_fields(self.current_fields, self) if self.is_editing else [],
            "can_go_back": self.can_go_back,
            "can_continue": self.can_continue,
            "can_finish": self.can_finish,
            "can_skip": self.can_skip,
        })
        return data


@dataclass(frozen=True)
class ValuesLoaded:
    values: Mapping[str, Any]


@dataclass(frozen=True)
class FieldChanged:
    name: str
    value: Any
    result: ValidationResult


@dataclass(frozen=True)
class FieldsReplaced:
    steps: Steps


@dataclass(frozen=True)
class StepBack:
    pass


@dataclass(frozen=True)
class StepAdvanced:
    pass


@dataclass(frozen=True)
class ProcessStarted:
    pass


@dataclass(frozen=True)
class ProgressObserved:
    snapshot: ProgressSnapshot


@dataclass(frozen=True)
class Finished:
    forward: Optional[str] = None


@dataclass(frozen=True)
class Skipped:
    forward: Optional[str] = None


def _require_editing(state: SessionState, action: str) -> None:
    if state.status == SessionStatus.LOADING:
        raise TransitionError(f"Cannot {action}: initial values are not loaded yet")
    if state.status == SessionStatus.COMPLETED:
        raise TransitionError(f"Cannot {action}: setup is already completed")


def _on_values_loaded(state: SessionState, event: ValuesLoaded) -> SessionState:
    if state.status != SessionStatus.LOADING:
        raise TransitionError("Initial values are already loaded")

    known = field_names(state.steps)
    definitions = {name: f for fields in state.steps.values() for name, f in fields.items()}
    values = {name: "" for name in known}
    results = {}
    for name in known:
        if name in event.values and event.values[name] is not None:
            values[name] = event.values[name]
            results[name] = ValidationResult.ok(filled=is_set(definitions[name], values[name]))

    return replace(state, status=SessionStatus.EDITING, step=1, loaded=True,
                   values=_frozen(values), results=_frozen(results))


def _on_field_changed(state: SessionState, event: FieldChanged) -> SessionState:
    _require_editing(state, "change a field")
    if event.name not in state.current_fields:
        raise TransitionError(f"Field '{event.name}' is not part of step {state.step}")

    values = dict(state.values)
    values[event.name] = event.value
    results = dict(state.results)
    results[event.name] = event.result.merged_into(state.results.get(event.name))
    return replace(state, values=_frozen(values), results=_frozen(results))


def _on_fields_replaced(state: SessionState, event: FieldsReplaced) -> SessionState:
    _require_editing(state, "replace fields")
    if state.step not in event.steps:
        raise TransitionError(f"Refreshed steps no longer contain step {state.step}")
    values = dict(state.values)
    for name in field_names(event.steps):
        values.setdefault(name, "")
    return replace(state, steps=event.steps, values=_frozen(values))


def _on_step_back(state: SessionState, event: StepBack) -> SessionState:
    _require_editing(state, "go back")
    if not state.can_go_back:
        raise TransitionError(f"Going back is not available on step {state.step}")
    return replace(state, step=state.step - 1)


def _on_step_advanced(state: SessionState, event: StepAdvanced) -> SessionState:
    _require_editing(state, "continue")
    if state.step >= state.last_step:
        raise TransitionError("Already on the last step, use finish")
    if not state.gate_open:
        raise TransitionError(f"Step {state.step} is not complete: "
                              f"{', '.join(unsatisfied_fields(state.current_fields, state))}")
    return replace(state, step=state.step + 1)


def _on_process_started(state: SessionState, event: ProcessStarted) -> SessionState:
    _require_editing(state, "start the process")
    return replace(state, process_started=True, process_finished=False)


def _on_progress_observed(state: SessionState, event: ProgressObserved) -> SessionState:
    _require_editing(state, "observe progress")
    if state.process_started and event.snapshot.finished:
        return replace(state, process_finished=True)
    return state


def _on_finished(state: SessionState, event: Finished) -> SessionState:
    _require_editing(state, "finish")
    if state.step != state.last_step:
        raise TransitionError("Finish is only available on the last step")
    if not state.gate_open:
        raise TransitionError(f"Step {state.step} is not complete: "
                              f"{', '.join(unsatisfied_fields(state.current_fields, state))}")
    return replace(state, status=SessionStatus.COMPLETED, forward=event.forward)


def _on_skipped(state: SessionState, event: Skipped) -> SessionState:
    _require_editing(state, "skip")
    if not state.can_skip:
        raise TransitionError("Skipping is only available on the first step of a setup with a skip target")
    return replace(state, status=SessionStatus.COMPLETED, skipped=True, forward=event.forward)


_HANDLERS = {
    ValuesLoaded: _on_values_loaded,
    FieldChanged: _on_field_changed,
    FieldsReplaced: _on_fields_replaced,
    StepBack: _on_step_back,
    StepAdvanced: _on_step_advanced,
    ProcessStarted: _on_process_started,
    ProgressObserved: _on_progress_observed,
    Finished: _on_finished,
    Skipped: _on_skipped,
}


def reduce(state: SessionState, event: Any) -> SessionState:
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"Unknown session event: {event!r}")
    return handler(state, event)
