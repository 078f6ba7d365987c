import logging
from typing import Callable, List, Optional

from .store import KeyValueStore

logger = logging.getLogger(__name__)

COMPLETED_KEY = "setup_completed"


class CompletionRegistry:
    """
    Which setup configurations have been finished, stored as one list under
    ``COMPLETED_KEY``.

    ``policy`` may override the raw membership check; it receives the raw
    answer and the configuration name. ``on_completed`` runs when a setup is
    marked completed with hooks enabled. ``known`` limits which names may be
    stored at all.
    """

    def __init__(
        self,
        store: KeyValueStore,
        policy: Optional[Callable[[bool, str], bool]] = None,
        on_completed: Optional[Callable[[str], None]] = None,
        known: Optional[Callable[[str], bool]] = None,
    ):
        self.store = store
        self.policy = policy
        self.on_completed = on_completed
        self.known = known

    def completed_names(self) -> List[str]:
        names = self.store.get(COMPLETED_KEY, [])
        if not isinstance(names, list):
            return []
        return list(names)

    def is_completed(self, config_name: str) -> bool:
        completed = config_name in self.completed_names()
        if self.policy is not None:
            return bool(self.policy(completed, config_name))
        return completed

    def set_completed(self, config_name: str, run_hooks: bool = True) -> bool:
        """Return True when the name was newly stored."""
        names = self.completed_names()
        stored = False
        if config_name not in names and (self.known is None or self.known(config_name)):
            names.append(config_name)
            self.store.set(COMPLETED_KEY, names)
            stored = True
            logger.info("Setup %s marked as completed", config_name)

        if run_hooks and self.on_completed is not None:
            self.on_completed(config_name)
        return stored

    def remove(self, config_name: str) -> bool:
        names = self.completed_names()
        if config_name not in names:
            return False
        names = [n for n in names if n != config_name]
        if not names:
            self.store.delete(COMPLETED_KEY)
        else:
            self.store.set(COMPLETED_KEY, names)
        logger.info("Setup %s removed from completed setups", config_name)
        return True
