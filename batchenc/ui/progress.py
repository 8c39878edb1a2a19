from pathlib import Path
from typing import Optional
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskID, TextColumn, TimeRemainingColumn
from batchenc.domain.events import (
    ItemStarted,
    StageFinished,
    StagePaused,
    StageProgress,
    StageResumed,
    StageStarted,
    StageStateChanged,
)
from batchenc.domain.models import RunState
from batchenc.infrastructure.event_bus import EventBus
from batchenc.infrastructure.paths import trim_file_name

STATUS_ICONS = {
    RunState.IN_PROGRESS: ">",
    RunState.PAUSE: "II",
    RunState.STOP: "[]",
    RunState.DONE: "O",
}

class ProgressView:
    """Renders stage events as a single rich progress bar.

    The bar is stopped while the pause menu is shown and when the stage ends,
    so prompts and the run summary print on a clean terminal.
    """

    def __init__(self, event_bus: EventBus, console: Optional[Console] = None):
        self.event_bus = event_bus
        self.console = console or Console()
        self.progress: Optional[Progress] = None
        self.task_id: Optional[TaskID] = None
        self.total_items = 0
        self._subscriptions = [
            (StageStarted, self.on_stage_started),
            (ItemStarted, self.on_item_started),
            (StageProgress, self.on_stage_progress),
            (StageStateChanged, self.on_state_changed),
            (StagePaused, self.on_paused),
            (StageResumed, self.on_resumed),
            (StageFinished, self.on_finished),
        ]

    def attach(self):
        for event_type, callback in self._subscriptions:
            self.event_bus.subscribe(event_type, callback)

    def detach(self):
        for event_type, callback in self._subscriptions:
            self.event_bus.unsubscribe(event_type, callback)
        self._close()

    def _build_progress(self) -> Progress:
        return Progress(
            TextColumn("{task.fields[status]:>2}"),
            TextColumn("{task.description}"),
            BarColumn(),
            TextColumn("{task.percentage:>3.0f}%"),
            TextColumn("{task.fields[items]}"),
            TimeRemainingColumn(),
            console=self.console,
        )

    def _close(self):
        if self.progress is not None:
            self.progress.stop()
        self.progress = None
        self.task_id = None

    def on_stage_started(self, event: StageStarted):
        self._close()
        self.total_items = event.total
        self.progress = self._build_progress()
        self.progress.start()
        self.task_id = self.progress.add_task(
            event.stage.capitalize(),
            total=event.progress_total,
            status=STATUS_ICONS[RunState.IN_PROGRESS],
            items=f"0/{event.total}",
        )

    def on_item_started(self, event: ItemStarted):
        if self.progress is None or self.task_id is None:
            return
        name = trim_file_name(Path(event.name).name)
        self.progress.update(
            self.task_id,
            description=f"{event.stage.capitalize()} {name}",
            items=f"{event.index + 1}/{self.total_items}",
        )

    def on_stage_progress(self, event: StageProgress):
        if self.progress is not None and self.task_id is not None:
            self.progress.update(self.task_id, completed=event.completed)

    def on_state_changed(self, event: StageStateChanged):
        # Published from the keyboard thread while the stage thread may close the bar
        progress, task_id = self.progress, self.task_id
        if progress is not None and task_id is not None:
            progress.update(task_id, status=STATUS_ICONS[event.state])

    def on_paused(self, event: StagePaused):
        if self.progress is not None:
            self.progress.stop()

    def on_resumed(self, event: StageResumed):
        if self.progress is not None:
            self.progress.start()

    def on_finished(self, event: StageFinished):
        if self.progress is not None and self.task_id is not None:
            self.progress.update(self.task_id, status=STATUS_ICONS[event.state])
        self._close()
