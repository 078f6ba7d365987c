from .fields import Configuration, FieldDefinition, FieldType
from .gate import can_advance
from .progress import ProgressPoller, ProgressSnapshot, ProgressStore
from .registry import CompletionRegistry
from .session import SessionState, SessionStatus, reduce
from .store import KeyValueStore, MemoryStore
from .validation import FieldValidator, ValidationResult, Validator, ValidatorRegistry
