import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Optional

from flask import url_for
from flask_wtf.csrf import generate_csrf
from itsdangerous import BadSignature, URLSafeTimedSerializer
from markupsafe import Markup, escape

from .core.fields import Configuration, Steps, parse_steps, steps_to_dict
from .core.progress import DEFAULT_POLL_INTERVAL, ProgressStore
from .core.registry import CompletionRegistry
from .core.store import KeyValueStore
from .core.validation import FieldValidator, ValidatorRegistry
from .errors import ConfigurationError, UnknownConfigurationError
from . import signals

logger = logging.getLogger(__name__)

STEPS_FILTER = "steps"
COMPLETED_FILTER = "completed"
FORWARD_FILTER = "forward"

SKIP_SALT = "setup-skip"


class SetupWizard:
    """
    Process-wide wizard state: the registered configurations, filters,
    validation rules and the texts the front end needs. One instance lives in
    ``extensions``; ``init_app`` binds it to the application once.
    """

    def __init__(self, app=None):
        self.configurations: Dict[str, Configuration] = {}
        self.filters: Dict[str, List[Callable]] = {}
        self.validators = ValidatorRegistry.with_builtins()
        self.store_factory: Optional[Callable[[], KeyValueStore]] = None
        self.enabled = True
        self.texts: Dict[str, str] = {}
        self.error_help = ""
        self.display_endpoint = ""
        self.poll_interval = DEFAULT_POLL_INTERVAL
        self.skip_max_age: Optional[int] = None
        self.secret_key = ""
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        from .models.option import OptionStore

        self.store_factory = OptionStore
        self.enabled = app.config.get("SETUP_ENABLED", True)
        self.texts = dict(app.config.get("SETUP_TEXTS") or {})
        self.error_help = app.config.get("SETUP_ERROR_HELP", "")
        self.display_endpoint = app.config.get("SETUP_DISPLAY_ENDPOINT", "")
        self.poll_interval = float(app.config.get("SETUP_POLL_INTERVAL", DEFAULT_POLL_INTERVAL))
        self.skip_max_age = app.config.get("SETUP_SKIP_MAX_AGE")
        self.secret_key = app.config["SECRET_KEY"]
        self.configurations = {}

        config_dir = app.config.get("SETUP_CONFIG_DIR")
        if config_dir:
            self.load_directory(config_dir)

        app.extensions["setup_wizard"] = self

    # configurations

    def register(self, config: Any) -> bool:
        """
        Register a configuration given as a dict or :class:`Configuration`.
        Incomplete configurations are dropped with a warning; a name can only
        be registered once.
        """
        if not isinstance(config, Configuration):
            try:
                config = Configuration.from_dict(config)
            except ConfigurationError as e:
                logger.warning("Dropping setup configuration: %s", e.message)
                return False

        if config.name in self.configurations:
            logger.warning("Setup configuration %s is already registered, ignoring", config.name)
            return False

        self.configurations[config.name] = config
        logger.debug("Registered setup configuration %s with %d steps", config.name, config.last_step)
        return True

    def load_directory(self, path: str) -> int:
        count = 0
        for file in sorted(Path(path).glob("*.json")):
            try:
                config = Configuration.from_json_file(str(file))
            except ConfigurationError as e:
                logger.warning("Dropping setup configuration %s: %s", file.name, e.message)
                continue
            count += self.register(config)
        return count

    def get_config(self, name: Optional[str]) -> Optional[Configuration]:
        if not name:
            return None
        return self.configurations.get(name)

    def require_config(self, name: Optional[str]) -> Configuration:
        config = self.get_config(name)
        if config is None:
            raise UnknownConfigurationError(name or "")
        return config

    def get_setup_steps(self, name: str) -> Steps:
        config = self.require_config(name)
        steps = self.apply_filters(STEPS_FILTER, config.steps, name)
        if not isinstance(steps, MappingProxyType):
            steps = parse_steps(steps)
        return steps

    # hooks

    def add_filter(self, name: str, func: Callable) -> Callable:
        self.filters.setdefault(name, []).append(func)
        return func

    def apply_filters(self, name: str, value: Any, *args) -> Any:
        for func in self.filters.get(name, []):
            value = func(value, *args)
        return value

    def validator(self, name: str) -> Callable:
        """Decorator registering a validation rule under ``name``."""
        def decorator(func):
            self.validators.register(name, func)
            return func
        return decorator

    # collaborators

    def store(self) -> KeyValueStore:
        if self.store_factory is None:
            raise RuntimeError("SetupWizard is not initialised, call init_app() first")
        return self.store_factory()

    def field_validator(self) -> FieldValidator:
        return FieldValidator(self.validators)

    def progress(self, store: Optional[KeyValueStore] = None) -> ProgressStore:
        return ProgressStore(store or self.store())

    def registry(self, store: Optional[KeyValueStore] = None) -> CompletionRegistry:
        return CompletionRegistry(
            store or self.store(),
            policy=self._completion_policy,
            on_completed=self._on_completed,
            known=lambda name: name in self.configurations,
        )

    def _completion_policy(self, completed: bool, config_name: str) -> bool:
        if not self.enabled:
            return True
        return bool(self.apply_filters(COMPLETED_FILTER, completed, config_name))

    @staticmethod
    def _on_completed(config_name: str) -> None:
        signals.setup_completed.send(config_name)

    def is_completed(self, config_name: str) -> bool:
        return self.registry().is_completed(config_name)

    def forward_url(self, config_name: str) -> Optional[str]:
        config = self.get_config(config_name)
        default = config.forward_url if config else None
        return self.apply_filters(FORWARD_FILTER, default, config_name) or None

    # skip links

    def _serializer(self) -> URLSafeTimedSerializer:
        return URLSafeTimedSerializer(self.secret_key, salt=SKIP_SALT)

    def get_skip_url(self, config_name: str, url: str) -> str:
        token = self._serializer().dumps(config_name)
        return url_for("setup.skip_setup", token=token, config_name=config_name, url=url)

    def check_skip_token(self, token: str, config_name: str) -> bool:
        try:
            signed_name = self._serializer().loads(token, max_age=self.skip_max_age)
        except BadSignature:
            return False
        return signed_name == config_name

    # rendering

    def config_payload(self, name: str) -> Dict[str, Any]:
        config = self.require_config(name)
        data = config.to_dict()
        if config.skip_url:
            data["skip_url"] = self.get_skip_url(name, config.skip_url)
        return data

    def display(self, name: str) -> Markup:
        """The container the front-end widgets mount into."""
        config = self.config_payload(name)
        fields = steps_to_dict(self.get_setup_steps(name))
        return Markup('<div id="setup-wizard" data-config="{}" data-fields="{}">{}</div>').format(
            json.dumps(config), json.dumps(fields), escape(self.error_help),
        )

    def should_load_assets(self, endpoint: Optional[str]) -> bool:
        if not self.texts:
            return False
        if self.display_endpoint and display_mismatch(endpoint, self.display_endpoint):
            return False
        return True

    def script_context(self, config_name: str) -> Dict[str, Any]:
        return {
            "csrf_token": generate_csrf(),
            "fields_url": url_for("setup.get_fields", config_name=config_name),
            "validation_url": url_for("setup.validate_field"),
            "process_url": url_for("setup.process_init"),
            "process_info_url": url_for("setup.get_process_info"),
            "completed_url": url_for("setup.set_completed_by_request"),
            "settings_url": url_for("setup.settings"),
            "poll_interval": self.poll_interval,
            "title_error": self.texts.get("title_error", ""),
            "txt_error_1": self.texts.get("txt_error_1", ""),
            "txt_error_2": self.texts.get("txt_error_2", ""),
        }


def display_mismatch(endpoint: Optional[str], expected: str) -> bool:
    return not endpoint or expected not in endpoint
