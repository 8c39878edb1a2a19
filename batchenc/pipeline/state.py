import threading
from typing import Callable, Optional
from batchenc.domain.models import RunState

TERMINAL_STATES = (RunState.STOP, RunState.DONE)


class RunStateMachine:
    """Pause/stop state of one stage run.

    Transitions:
        in-progress -> pause        request_pause()
        pause -> in-progress        resume()
        in-progress|pause -> stop   request_stop()
        any non-terminal -> done    finish()

    Requests arrive from the keyboard thread; the stage loop only reads the
    state at its checkpoints. Requests against a terminal state are no-ops.
    """

    def __init__(self, on_change: Optional[Callable[[RunState], None]] = None):
        self._state = RunState.IN_PROGRESS
        self._lock = threading.Lock()
        self._on_change = on_change

    @property
    def current(self) -> RunState:
        with self._lock:
            return self._state

    def _transition(self, allowed, target: RunState) -> bool:
        with self._lock:
            if self._state not in allowed:
                return False
            self._state = target
        if self._on_change:
            self._on_change(target)
        return True

    def request_pause(self) -> bool:
        return self._transition((RunState.IN_PROGRESS,), RunState.PAUSE)

    def request_stop(self) -> bool:
        return self._transition((RunState.IN_PROGRESS, RunState.PAUSE), RunState.STOP)

    def resume(self) -> bool:
        return self._transition((RunState.PAUSE,), RunState.IN_PROGRESS)

    def finish(self) -> bool:
        return self._transition((RunState.IN_PROGRESS, RunState.PAUSE), RunState.DONE)
