import logging
from typing import Callable, ContextManager, Optional, Protocol, TypeVar
from batchenc.domain.events import InterruptRequested, PauseRequested, StopRequested
from batchenc.domain.models import PauseAction
from batchenc.domain.result import RunResult
from batchenc.infrastructure.event_bus import EventBus
from batchenc.pipeline.stage import Stage

InputT = TypeVar("InputT")
ItemT = TypeVar("ItemT")


class KeySource(Protocol):
    """What the controller needs from a keyboard listener."""

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def released(self) -> ContextManager[None]: ...


class StageController:
    """Runs any Stage with keyboard pause/stop wired to it.

    Keyboard events only call the stage's request methods; the stage reacts at
    its next checkpoint (pause) or immediately interrupts the active tool (stop).
    """

    def __init__(
        self,
        event_bus: EventBus,
        keyboard: Optional[KeySource] = None,
        pause_menu: Optional[Callable[[], PauseAction]] = None,
    ):
        self.event_bus = event_bus
        self.keyboard = keyboard
        self.pause_menu = pause_menu
        self.logger = logging.getLogger(__name__)

    def prompt_pause(self) -> PauseAction:
        """Asks the operator how to continue, with the terminal released from cbreak mode."""
        if self.pause_menu is None:
            return PauseAction.RESUME
        if self.keyboard is None:
            return self.pause_menu()
        with self.keyboard.released():
            return self.pause_menu()

    def run(self, stage: Stage[InputT, ItemT], stage_input: InputT) -> RunResult[ItemT]:
        def on_pause(_event):
            stage.pause()

        def on_stop(_event):
            stage.stop()

        subscriptions = [
            (PauseRequested, on_pause),
            (StopRequested, on_stop),
            (InterruptRequested, on_stop),
        ]
        for event_type, callback in subscriptions:
            self.event_bus.subscribe(event_type, callback)

        if self.keyboard is not None:
            self.keyboard.start()
            self.logger.info('Press "p" to pause, "q" to stop')
        try:
            return stage.run_once(stage_input)
        except KeyboardInterrupt:
            stage.stop()
            raise
        finally:
            if self.keyboard is not None:
                self.keyboard.stop()
            for event_type, callback in subscriptions:
                self.event_bus.unsubscribe(event_type, callback)
