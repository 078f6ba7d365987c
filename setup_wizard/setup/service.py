import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..core.fields import FieldDefinition, field_names
from ..core.progress import ProgressStore
from ..core.session import (
    FieldChanged, FieldsReplaced, Finished, ProcessStarted, ProgressObserved,
    SessionState, Skipped, StepAdvanced, StepBack, ValuesLoaded, reduce,
)
from ..core.store import KeyValueStore
from ..core.validation import ValidationResult
from ..errors import RemoteFetchError, SettingsLoadError, TransitionError
from ..extensions import db
from ..manager import SetupWizard
from ..models.wizard_session import WizardSession
from .process import ProcessRunner

logger = logging.getLogger(__name__)


class SetupSessionService:
    def __init__(self, wizard: SetupWizard, store: Optional[KeyValueStore] = None):
        self.wizard = wizard
        self.store = store or wizard.store()
        self.validator = wizard.field_validator()

    def create(self, config_name: str, user_id: Optional[int] = None) -> WizardSession:
        config = self.wizard.require_config(config_name)
        state = SessionState.start(config, self.wizard.get_setup_steps(config_name))
        ws = WizardSession(config_name=config.name, user_id=user_id)
        self._save(ws, state)
        return ws

    def get(self, session_id: int) -> WizardSession:
        return db.get_or_404(WizardSession, session_id)

    def state(self, ws: WizardSession) -> SessionState:
        return SessionState.from_dict(ws.state)

    def _save(self, ws: WizardSession, state: SessionState) -> None:
        ws.state = state.to_dict()
        ws.status = state.status
        ws.step = state.step
        db.session.add(ws)
        db.session.commit()

    def _discard(self, ws: WizardSession) -> None:
        db.session.delete(ws)
        db.session.commit()

    def load(self, ws: WizardSession) -> SessionState:
        """Fetch initial values from the settings store: loading -> editing(1)."""
        state = self.state(ws)
        try:
            values = {name: self.store.get(name) for name in field_names(state.steps) if name in self.store}
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error("Loading initial values for setup %s failed: %s", state.config_name, e)
            raise SettingsLoadError("Initial values could not be loaded, the setup cannot continue") from e

        state = reduce(state, ValuesLoaded(values))
        self._save(ws, state)
        return state

    def validate(self, field: FieldDefinition, value: Any) -> ValidationResult:
        return self.validator.validate(field, value)

    def change_fields(self, ws: WizardSession, changes: Dict[str, Any]) -> SessionState:
        state = self.state(ws)
        for name, value in changes.items():
            field = state.current_fields.get(name)
            if field is None:
                raise TransitionError(f"Field '{name}' is not part of step {state.step}")
            state = reduce(state, FieldChanged(name, value, self.validate(field, value)))
        self._save(ws, state)
        return state

    def back(self, ws: WizardSession) -> SessionState:
        state = reduce(self.state(ws), StepBack())
        self._save(ws, state)
        return state

    def advance(self, ws: WizardSession) -> SessionState:
        state = self.state(ws)
        # raises while the current step is incomplete, before anything is saved
        reduce(state, StepAdvanced())

        self.save_values(state)

        config = self.wizard.require_config(state.config_name)
        if config.update_fields:
            state = reduce(state, FieldsReplaced(self._fetch_steps(state.config_name)))

        state = reduce(state, StepAdvanced())
        self._save(ws, state)
        return state

    def _fetch_steps(self, config_name: str):
        try:
            return self.wizard.get_setup_steps(config_name)
        except Exception as e:
            logger.exception("Refreshing the steps of setup %s failed", config_name)
            raise RemoteFetchError(f"Could not refresh the steps of setup {config_name}") from e

    def save_values(self, state: SessionState) -> None:
        """Best effort: failures are logged and otherwise ignored."""
        for name in field_names(state.steps):
            if name not in state.values:
                continue
            try:
                self.store.set(name, state.values[name])
            except SQLAlchemyError as e:
                db.session.rollback()
                logger.warning("Saving setting %s for setup %s failed: %s", name, state.config_name, e)

    def run_process(self, ws: WizardSession) -> SessionState:
        state = reduce(self.state(ws), ProcessStarted())
        self._save(ws, state)

        progress = ProgressStore(self.store)
        snapshot = ProcessRunner(progress).run(state.config_name)

        state = reduce(state, ProgressObserved(snapshot))
        self._save(ws, state)
        return state

    def observe_progress(self, ws: WizardSession) -> SessionState:
        state = reduce(self.state(ws), ProgressObserved(ProgressStore(self.store).snapshot()))
        self._save(ws, state)
        return state

    def finish(self, ws: WizardSession) -> SessionState:
        state = self.state(ws)
        state = reduce(state, Finished(self.wizard.forward_url(state.config_name)))
        self.wizard.registry(self.store).set_completed(state.config_name, run_hooks=True)
        self._discard(ws)
        return state

    def skip(self, ws: WizardSession) -> SessionState:
        state = self.state(ws)
        config = self.wizard.require_config(state.config_name)
        state = reduce(state, Skipped(config.skip_url))
        self.wizard.registry(self.store).set_completed(state.config_name, run_hooks=False)
        logger.info("Setup %s skipped", state.config_name)
        self._discard(ws)
        return state

    @staticmethod
    def public(session_id: int, state: SessionState) -> Dict[str, Any]:
        data = state.public()
        data["id"] = session_id
        return data
