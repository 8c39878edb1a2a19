"""Domain events for the scan/encode pipeline.

Process events are yielded by ``ProcessHandle.events()`` and drained by the
caller. Stage events flow through the EventBus so the progress view and the
controller stay decoupled from the stage runners.

See `infrastructure/event_bus.py` for the pub/sub mechanism.
"""

from typing import Literal
from pydantic import BaseModel
from .models import RunState


class Event(BaseModel):
    """Base class for all domain events."""

    pass


# ── Subprocess stream ──────────────────────────────────────────────────────────

class ProcessOutput(Event):
    """One line of raw tool output."""

    stream: Literal["stdout", "stderr"]
    text: str


class ProcessProgress(Event):
    """Whole-percent progress of the running tool (0-100)."""

    percent: int


# ── Stage lifecycle ────────────────────────────────────────────────────────────

class StageEvent(Event):
    stage: str


class StageStarted(StageEvent):
    """Emitted once the stage knows its queue length."""

    total: int
    progress_total: float


class ItemStarted(StageEvent):
    index: int
    name: str


class StageProgress(StageEvent):
    """Aggregate progress in stage units (files for scan, N*100 for encode)."""

    completed: float


class StageStateChanged(StageEvent):
    state: RunState


class StagePaused(StageEvent):
    """Emitted from the stage loop right before the pause menu is shown."""

    pass


class StageResumed(StageEvent):
    pass


class StageFinished(StageEvent):
    state: RunState


# ── Operator requests ──────────────────────────────────────────────────────────

class PauseRequested(Event):
    """Event emitted when user asks to pause the running stage (Key 'P')."""

    pass


class StopRequested(Event):
    """Event emitted when user asks to stop the running stage (Key 'Q')."""

    pass


class InterruptRequested(Event):
    """Event emitted on Ctrl+C read from the terminal; handled as a stop."""

    pass
