from .user import User, Role
from .option import Option, OptionStore
from .wizard_session import WizardSession  # noqa: F401
