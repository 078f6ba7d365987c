import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from setup_wizard.errors import ConfigurationError

logger = logging.getLogger(__name__)


class FieldType:
    TEXT = "TextControl"
    CHECKBOX = "CheckboxControl"
    RADIO = "RadioControl"
    NUMBER = "NumberControl"
    PROGRESS = "ProgressBar"
    STATIC = "Text"

    ALL = [TEXT, CHECKBOX, RADIO, NUMBER, PROGRESS, STATIC]
    INPUTS = [TEXT, CHECKBOX, RADIO, NUMBER]


CHECKBOX_SET = 1


@dataclass(frozen=True)
class FieldDefinition:
    name: str
    type: str = FieldType.STATIC
    label: str = ""
    help: str = ""
    text: str = ""
    required: bool = False
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    options: Tuple[Tuple[str, str], ...] = ()
    validation_callback: Optional[str] = None

    @property
    def is_input(self) -> bool:
        return self.type in FieldType.INPUTS

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "FieldDefinition":
        if not isinstance(data, dict):
            raise ConfigurationError(f"Field '{name}' must be an object")

        field_type = data.get("type") or FieldType.STATIC
        if field_type not in FieldType.ALL:
            # unknown widgets are shown as plain text
            logger.warning("Field %s has unknown type %r, treating it as static text", name, field_type)
            field_type = FieldType.STATIC

        options = data.get("options") or []
        if isinstance(options, dict):
            options = list(options.items())
        try:
            options = tuple((str(o["value"]), str(o.get("label", o["value"]))) if isinstance(o, dict)
                            else (str(o[0]), str(o[1])) for o in options)
        except (KeyError, IndexError, TypeError) as e:
            raise ConfigurationError(f"Field '{name}' has malformed options") from e

        return cls(
            name=name,
            type=field_type,
            label=data.get("label", ""),
            help=data.get("help", ""),
            text=data.get("text", ""),
            required=bool(data.get("required", False)),
            min=_number_or_none(name, data.get("min")),
            max=_number_or_none(name, data.get("max")),
            step=_number_or_none(name, data.get("step")),
            options=options,
            validation_callback=data.get("validation_callback") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "type": self.type,
            "label": self.label,
            "help": self.help,
            "required": self.required,
            "validation_callback": self.validation_callback or "",
        }
        if self.text:
            data["text"] = self.text
        for key in ("min", "max", "step"):
            if getattr(self, key) is not None:
                data[key] = getattr(self, key)
        if self.options:
            data["options"] = [{"value": v, "label": l} for v, l in self.options]
        return data


def _number_or_none(name: str, value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Field '{name}' has a non-numeric bound {value!r}") from e


Steps = Mapping[int, Mapping[str, FieldDefinition]]


def parse_steps(raw: Any) -> Steps:
    """
    Turn a raw ``{step: {field_name: {...}}}`` mapping into read-only field
    definitions. Step keys may be strings (JSON) and are normalised to ints;
    they must form the sequence 1..N.
    """
    if not isinstance(raw, dict) or not raw:
        raise ConfigurationError("Configuration has no steps")

    steps: Dict[int, Mapping[str, FieldDefinition]] = {}
    for key, fields in raw.items():
        try:
            index = int(key)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid step index {key!r}") from e
        if fields is None:
            fields = {}
        if not isinstance(fields, dict):
            raise ConfigurationError(f"Step {index} must map field names to definitions")
        steps[index] = MappingProxyType({
            name: FieldDefinition.from_dict(name, data) for name, data in fields.items()
        })

    if sorted(steps) != list(range(1, len(steps) + 1)):
        raise ConfigurationError(f"Steps must be numbered 1..{len(steps)}, got {sorted(steps)}")

    return MappingProxyType({i: steps[i] for i in sorted(steps)})


def steps_to_dict(steps: Steps) -> Dict[str, Dict[str, Any]]:
    return {
        str(index): {name: f.to_dict() for name, f in fields.items()}
        for index, fields in steps.items()
    }


def field_names(steps: Steps) -> list:
    names = []
    for fields in steps.values():
        for name, f in fields.items():
            if f.is_input and name not in names:
                names.append(name)
    return names


@dataclass(frozen=True)
class Configuration:
    name: str
    steps: Steps
    title: str = ""
    back_button_label: str = "Back"
    continue_button_label: str = "Continue"
    finish_button_label: str = "Finish"
    skip_button_label: str = "Skip"
    skip_url: Optional[str] = None
    forward_url: Optional[str] = None
    update_fields: bool = False
    extra: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    LABEL_KEYS = ("title", "back_button_label", "continue_button_label",
                  "finish_button_label", "skip_button_label")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Configuration":
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration must be an object")
        name = data.get("name")
        if not name:
            raise ConfigurationError("Configuration has no name")
        if not data.get("steps"):
            raise ConfigurationError(f"Configuration '{name}' has no steps")

        labels = {k: data[k] for k in cls.LABEL_KEYS if data.get(k)}
        known = set(cls.LABEL_KEYS) | {"name", "steps", "skip_url", "forward_url", "update_fields"}
        return cls(
            name=str(name),
            steps=parse_steps(data["steps"]),
            skip_url=data.get("skip_url") or None,
            forward_url=data.get("forward_url") or None,
            update_fields=bool(data.get("update_fields", False)),
            extra=MappingProxyType({k: v for k, v in data.items() if k not in known}),
            **labels,
        )

    @classmethod
    def from_json_file(cls, path: str) -> "Configuration":
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Cannot read configuration {path}: {e}") from e
        return cls.from_dict(data)

    @property
    def last_step(self) -> int:
        return len(self.steps)

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update({
            "name": self.name,
            "title": self.title,
            "back_button_label": self.back_button_label,
            "continue_button_label": self.continue_button_label,
            "finish_button_label": self.finish_button_label,
            "skip_button_label": self.skip_button_label,
            "update_fields": self.update_fields,
            "steps": steps_to_dict(self.steps),
        })
        if self.skip_url:
            data["skip_url"] = self.skip_url
        if self.forward_url:
            data["forward_url"] = self.forward_url
        return data
