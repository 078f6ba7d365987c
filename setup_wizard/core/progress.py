"""
Progress of the background setup process.

The process writes four counters into the settings store while it runs;
the wizard reads them back as :class:`ProgressSnapshot` objects by polling.
"""
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Optional

from .store import KeyValueStore

logger = logging.getLogger(__name__)

RUNNING_KEY = "setup_running"
MAX_STEPS_KEY = "setup_max_steps"
STEP_KEY = "setup_step"
STEP_LABEL_KEY = "setup_step_label"

DEFAULT_POLL_INTERVAL = 0.2


def _as_count(value: Any) -> int:
    try:
        return abs(int(value))
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class ProgressSnapshot:
    running: int = 0
    max: int = 0
    step: int = 0
    step_label: str = ""

    @property
    def finished(self) -> bool:
        return not self.running

    @property
    def indeterminate(self) -> bool:
        return self.max == 0

    @property
    def percent(self) -> Optional[float]:
        if self.indeterminate:
            return None
        return round(100.0 * min(self.step, self.max) / self.max, 1)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ProgressSnapshot":
        return cls(
            running=1 if _as_count(payload.get("running")) else 0,
            max=_as_count(payload.get("max")),
            step=_as_count(payload.get("step")),
            step_label=str(payload.get("step_label") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"running": self.running, "max": self.max, "step": self.step, "step_label": self.step_label}


class ProgressStore:
    def __init__(self, store: KeyValueStore):
        self.store = store

    def snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            running=1 if _as_count(self.store.get(RUNNING_KEY, 0)) else 0,
            max=_as_count(self.store.get(MAX_STEPS_KEY, 0)),
            step=_as_count(self.store.get(STEP_KEY, 0)),
            step_label=str(self.store.get(STEP_LABEL_KEY, "") or ""),
        )

    @property
    def running(self) -> bool:
        return bool(_as_count(self.store.get(RUNNING_KEY, 0)))

    def begin(self) -> None:
        self.store.set(STEP_LABEL_KEY, "")
        self.store.set(RUNNING_KEY, 1)
        self.store.set(MAX_STEPS_KEY, 0)
        self.store.set(STEP_KEY, 0)

    def set_max(self, max_steps: int) -> None:
        max_steps = _as_count(max_steps)
        self.store.set(MAX_STEPS_KEY, max_steps)
        # a total given late or lowered mid-run pulls the step back under it
        if max_steps and _as_count(self.store.get(STEP_KEY, 0)) > max_steps:
            self.store.set(STEP_KEY, max_steps)

    def advance(self, label: str = "", by: int = 1) -> int:
        """Move the step counter by ``by``, kept within 0..max once max is known."""
        step = max(_as_count(self.store.get(STEP_KEY, 0)) + by, 0)
        max_steps = _as_count(self.store.get(MAX_STEPS_KEY, 0))
        if max_steps and step > max_steps:
            step = max_steps
        self.store.set(STEP_KEY, step)
        if label:
            self.store.set(STEP_LABEL_KEY, label)
        return step

    def set_label(self, label: str) -> None:
        self.store.set(STEP_LABEL_KEY, label)

    def end(self) -> None:
        self.store.set(RUNNING_KEY, 0)


class ProgressPoller:
    """
    Poll ``fetch`` every ``interval`` seconds until the process is seen as
    finished or :meth:`cancel` is called. Cancelling only stops polling; the
    process itself keeps running.
    """

    def __init__(self, fetch: Callable[[], Any], interval: float = DEFAULT_POLL_INTERVAL):
        self.fetch = fetch
        self.interval = interval
        self.last: Optional[ProgressSnapshot] = None
        self._cancelled = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def _fetch(self) -> ProgressSnapshot:
        data = self.fetch()
        if isinstance(data, ProgressSnapshot):
            return data
        return ProgressSnapshot.from_payload(data)

    def __iter__(self) -> Iterator[ProgressSnapshot]:
        while not self.cancelled:
            self.last = self._fetch()
            yield self.last
            if self.last.finished:
                return
            if self._cancelled.wait(self.interval):
                logger.debug("Progress polling cancelled")
                return

    def wait(self) -> Optional[ProgressSnapshot]:
        for _ in self:
            pass
        return self.last
