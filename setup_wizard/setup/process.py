import logging

from ..core.progress import ProgressSnapshot, ProgressStore
from .. import signals

logger = logging.getLogger(__name__)


class ProcessRunner:
    """
    Runs the background setup process in the calling request. Receivers of
    ``signals.process`` do the work and report through the ProgressStore
    they are handed; the running flag is cleared even when one of them fails.
    """

    def __init__(self, progress: ProgressStore):
        self.progress = progress

    def run(self, config_name: str) -> ProgressSnapshot:
        if self.progress.running:
            # no mutual exclusion, a second run simply starts over
            logger.warning("Setup process for %s started while another run is still marked running", config_name)

        signals.process_init.send(config_name)

        self.progress.begin()
        logger.info("Setup process for %s started", config_name)
        try:
            signals.process.send(config_name, progress=self.progress)
        finally:
            self.progress.end()

        snapshot = self.progress.snapshot()
        logger.info("Setup process for %s finished at step %d/%d", config_name, snapshot.step, snapshot.max)
        return snapshot
