import os
import sys
import threading
import termios
import tty
import select
from contextlib import contextmanager
from typing import Iterator, Optional
from batchenc.domain.events import InterruptRequested, PauseRequested, StopRequested
from batchenc.infrastructure.event_bus import EventBus

class KeyboardListener:
    """Listens for keyboard input in a background thread.

    The terminal is put into cbreak mode while listening. `released()` hands
    the terminal back (original settings, no reads) so a prompt can run.
    """

    def __init__(self, event_bus: EventBus):
        self.event_bus = event_bus
        self._stop_event = threading.Event()
        self._release_requested = threading.Event()
        self._released = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def _handle_key(self, key: str):
        if key in ('P', 'p'):
            self.event_bus.publish(PauseRequested())
        elif key in ('Q', 'q'):
            self.event_bus.publish(StopRequested())
        elif key == '\x03':
            self.event_bus.publish(InterruptRequested())

    def _wait_while_released(self, fd: int, old_settings):
        termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)
        self._released.set()
        while self._release_requested.is_set() and not self._stop_event.is_set():
            self._stop_event.wait(0.05)
        if not self._stop_event.is_set():
            tty.setcbreak(fd)
        self._released.clear()

    def _run(self):
        """Main loop for the listener thread."""
        if not sys.stdin.isatty():
            return

        fd = sys.stdin.fileno()
        old_settings = termios.tcgetattr(fd)
        try:
            tty.setcbreak(fd)

            while not self._stop_event.is_set():
                if self._release_requested.is_set():
                    self._wait_while_released(fd, old_settings)
                    continue

                if fd in select.select([fd], [], [], 0.1)[0]:
                    try:
                        raw = os.read(fd, 1)
                    except OSError:
                        continue
                    if not raw:
                        continue
                    self._handle_key(raw.decode('utf-8', errors='replace'))
        finally:
            termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @contextmanager
    def released(self) -> Iterator[None]:
        """Suspends key reading and restores the terminal for the duration of the block."""
        if not self.is_running:
            yield
            return

        self._release_requested.set()
        self._released.wait(timeout=1.0)
        try:
            yield
        finally:
            self._release_requested.clear()

    def start(self):
        """Starts the listener thread."""
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def stop(self):
        """Stops the listener thread."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=1.0)
        self._thread = None
