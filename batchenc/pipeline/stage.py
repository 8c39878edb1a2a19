"""Common loop for pausable stage runners.

A stage exposes `pause()`, `stop()` and `run_once(stage_input)`. The
controller drives any stage through those three calls only.

The per-item loop checks the state machine before every item. Pausing is
cooperative (the running item finishes first); stopping also interrupts the
active tool invocation through `_interrupt_active()`.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, Optional, Sequence, TypeVar
from batchenc.config.models import AppConfig
from batchenc.domain.errors import ItemInterrupted, RunAbortedError, StoreContractError
from batchenc.domain.events import (
    ItemStarted,
    StageFinished,
    StagePaused,
    StageProgress,
    StageResumed,
    StageStarted,
    StageStateChanged,
)
from batchenc.domain.models import PauseAction, RunState
from batchenc.domain.result import RunResult, Stopwatch
from batchenc.infrastructure.event_bus import EventBus
from batchenc.pipeline.state import TERMINAL_STATES, RunStateMachine

InputT = TypeVar("InputT")
ItemT = TypeVar("ItemT")

PausePrompt = Callable[[], PauseAction]


class Stage(ABC, Generic[InputT, ItemT]):
    name = "stage"
    paused_message = "Paused"
    progress_unit = 1.0  # Aggregate progress per finished item

    def __init__(self, config: AppConfig, event_bus: EventBus, pause_prompt: Optional[PausePrompt] = None):
        self.config = config
        self.event_bus = event_bus
        self.pause_prompt = pause_prompt
        self.logger = logging.getLogger(__name__)
        self.state = RunStateMachine(on_change=self._on_state_change)
        self.timer = Stopwatch()

    # ── Capability ─────────────────────────────────────────────────────────────

    def pause(self):
        self.state.request_pause()

    def stop(self):
        if self.state.request_stop():
            self._interrupt_active()

    @abstractmethod
    def run_once(self, stage_input: InputT) -> RunResult[ItemT]:
        ...

    # ── Hooks ──────────────────────────────────────────────────────────────────

    def _interrupt_active(self):
        """Cancels the in-flight tool invocation, if the stage has one."""
        pass

    def _on_state_change(self, state: RunState):
        self.event_bus.publish(StageStateChanged(stage=self.name, state=state))

    # ── Loop ───────────────────────────────────────────────────────────────────

    def _checkpoint(self) -> bool:
        """Returns False when the loop must end; blocks on the pause menu while paused."""
        current = self.state.current
        if current in TERMINAL_STATES:
            return False
        if current is not RunState.PAUSE:
            return True

        self.timer.stop()
        self.logger.warning(self.paused_message)
        self.event_bus.publish(StagePaused(stage=self.name))
        action = self.pause_prompt() if self.pause_prompt else PauseAction.RESUME
        if action is PauseAction.STOP:
            self.logger.warning("Processing stopped")
            self.state.request_stop()
            return False

        self.state.resume()
        self.event_bus.publish(StageResumed(stage=self.name))
        self.timer.start()
        return True

    def _mark_done_empty(self, result: RunResult[ItemT], message: str) -> RunResult[ItemT]:
        self.logger.warning(message)
        self.state.finish()
        self.event_bus.publish(StageFinished(stage=self.name, state=self.state.current))
        return result

    def _run_items(
        self,
        items: Sequence[Any],
        result: RunResult[ItemT],
        handle_item: Callable[[int, Any], Optional[ItemT]],
        describe: Callable[[Any], str],
    ) -> RunResult[ItemT]:
        """Runs handle_item over items; None from the handler means skipped."""
        self.event_bus.publish(StageStarted(
            stage=self.name,
            total=len(items),
            progress_total=len(items) * self.progress_unit,
        ))
        self.timer.start()
        try:
            for index, item in enumerate(items):
                if not self._checkpoint():
                    break

                name = describe(item)
                self.event_bus.publish(ItemStarted(stage=self.name, index=index, name=name))
                try:
                    outcome = handle_item(index, item)
                except StoreContractError:
                    raise
                except ItemInterrupted as e:
                    self.logger.info(f"Interrupted: {name}. {e}")
                    break
                except Exception as e:
                    result.add_failure(name, e)
                    if self.config.careful:
                        self.logger.error(f"Error processing file: {name}. {e}")
                        raise RunAbortedError(result, name, e) from e
                    self.logger.debug(f"Error processing file: {name}. {e}")
                else:
                    if outcome is None:
                        result.skipped.append(name)
                    else:
                        result.success.append(outcome)

                self.event_bus.publish(StageProgress(stage=self.name, completed=(index + 1) * self.progress_unit))
        finally:
            self.timer.stop()
            self.state.finish()
            result.elapsed_seconds = self.timer.total_seconds
            self.event_bus.publish(StageFinished(stage=self.name, state=self.state.current))

        return result
