import json
import os


def _flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///setup_wizard.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    SETUP_CONFIG_DIR = os.getenv(
        "SETUP_CONFIG_DIR",
        os.path.join(os.path.dirname(__file__), "setup", "config"),
    )
    SETUP_ENABLED = _flag("SETUP_ENABLED", True)
    SETUP_POLL_INTERVAL = float(os.getenv("SETUP_POLL_INTERVAL", "0.2"))
    # seconds a skip link stays valid, None for no expiry
    SETUP_SKIP_MAX_AGE = int(os.getenv("SETUP_SKIP_MAX_AGE", "3600")) or None
    SETUP_TEXTS = json.loads(os.getenv("SETUP_TEXTS", "null")) or {
        "title_error": "Error",
        "txt_error_1": "The following error occurred:",
        "txt_error_2": "Please contact the site administrator.",
    }
    SETUP_ERROR_HELP = os.getenv("SETUP_ERROR_HELP", "The setup could not be loaded. Please reload the page.")
    SETUP_DISPLAY_ENDPOINT = os.getenv("SETUP_DISPLAY_ENDPOINT", "")

class DevConfig(Config):
    DEBUG = True
    LOG_LEVEL = "DEBUG"

class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    WTF_CSRF_ENABLED = False
    SETUP_POLL_INTERVAL = 0.0
    SETUP_CONFIG_DIR = None
