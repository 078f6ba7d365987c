class SetupError(Exception):
    """Base class for setup wizard failures that map onto an HTTP status."""

    status_code = 400

    def __init__(self, message: str = "", status_code: int | None = None):
        super().__init__(message)
        self.message = message or self.__class__.__name__
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"error": self.message}


class ConfigurationError(SetupError):
    """A configuration or field definition could not be parsed."""

    status_code = 500


class UnknownConfigurationError(SetupError):
    status_code = 404

    def __init__(self, config_name: str):
        super().__init__(f"Unknown setup configuration: {config_name}")
        self.config_name = config_name


class TransitionError(SetupError):
    """The requested action is not available in the current session state."""

    status_code = 409


class SettingsLoadError(SetupError):
    status_code = 503


class RemoteFetchError(SetupError):
    status_code = 502
