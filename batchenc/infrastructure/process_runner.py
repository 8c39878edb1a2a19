"""Subprocess wrapper for ffmpeg/ffprobe.

``ProcessRunner.start`` spawns the tool and returns a ``ProcessHandle``. The
caller drains ``handle.events()`` (raw stdout/stderr lines plus derived
progress) and then collects a single ``ProcessOutcome`` from ``handle.wait()``.
Nothing is registered on the runner, so an aborted run leaves no listeners
behind.

Progress protocol:
- stderr carries ``Duration: HH:MM:SS.ff`` once; that fixes the total length.
- stdout (``-progress pipe:1``) carries ``out_time_ms=<microseconds>`` lines.
- Percent = ceil(out_time / duration * 100), clamped to 0-100 and never lower
  than the previous value. Nothing is emitted while duration is below 1s.
"""

import logging
import math
import queue
import re
import subprocess
import threading
from typing import Iterator, List, Optional, Sequence, Tuple, Union
from pydantic import BaseModel
from batchenc.domain.errors import ToolExitError
from batchenc.domain.events import ProcessOutput, ProcessProgress

DURATION_REGEX = re.compile(r"Duration: (\d+):(\d+):(\d+(?:\.\d+)?)")
ProcessEvent = Union[ProcessOutput, ProcessProgress]


class ProcessOutcome(BaseModel):
    command: str
    returncode: int
    cancelled: bool = False  # Ended by stop(); not an error
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0 or self.cancelled

    def raise_for_status(self):
        if not self.ok:
            raise ToolExitError(self.command, self.returncode, self.stderr)


class ProgressTracker:
    """Turns duration/out_time markers into whole percentages."""

    def __init__(self):
        self.duration = 0.0
        self.last_percent: Optional[int] = None

    def feed_stderr(self, text: str):
        if self.duration > 0 or "Duration:" not in text:
            return
        match = DURATION_REGEX.search(text)
        if match:
            h, m, s = match.groups()
            self.duration = int(h) * 3600 + int(m) * 60 + float(s)

    def feed_stdout(self, text: str) -> Optional[int]:
        """Returns a new percent value, or None if nothing should be emitted."""
        if self.duration < 1:
            return None
        for line in text.splitlines():
            key, sep, value = line.partition("=")
            if not sep or key.strip() != "out_time_ms":
                continue
            try:
                out_time = float(value.strip()) / 1_000_000
            except ValueError:
                return None
            percent = max(0, min(100, math.ceil(out_time / self.duration * 100)))
            if self.last_percent is not None and percent < self.last_percent:
                return None
            self.last_percent = percent
            return percent
        return None


class ProcessHandle:
    """A running tool invocation."""

    def __init__(self, process: subprocess.Popen, command: str):
        self.process = process
        self.command = command
        self.tracker = ProgressTracker()
        self._terminated = threading.Event()
        self._queue: "queue.Queue[Tuple[str, Optional[str]]]" = queue.Queue()
        self._stdout: List[str] = []
        self._stderr: List[str] = []
        self._open_streams = 2
        self._readers = [
            threading.Thread(target=self._reader, args=("stdout", process.stdout), daemon=True),
            threading.Thread(target=self._reader, args=("stderr", process.stderr), daemon=True),
        ]
        for reader in self._readers:
            reader.start()

    def _reader(self, name: str, stream):
        try:
            if stream is not None:
                for line in stream:
                    self._queue.put((name, line))
        finally:
            self._queue.put((name, None))

    def events(self) -> Iterator[ProcessEvent]:
        """Yields output and progress events in arrival order until both pipes close."""
        while self._open_streams:
            name, line = self._queue.get()
            if line is None:
                self._open_streams -= 1
                continue
            if name == "stderr":
                self._stderr.append(line)
                self.tracker.feed_stderr(line)
                yield ProcessOutput(stream="stderr", text=line)
            else:
                self._stdout.append(line)
                yield ProcessOutput(stream="stdout", text=line)
                percent = self.tracker.feed_stdout(line)
                if percent is not None:
                    yield ProcessProgress(percent=percent)

    def terminate(self):
        """Asks the tool to exit; the outcome is then reported as cancelled."""
        if self.process.poll() is None:
            self._terminated.set()
            self.process.terminate()

    def wait(self) -> ProcessOutcome:
        for _ in self.events():
            pass
        if self._terminated.is_set():
            try:
                self.process.wait(timeout=3)
            except subprocess.TimeoutExpired:
                self.process.kill()
                self.process.wait()
        else:
            self.process.wait()
        for reader in self._readers:
            reader.join(timeout=1.0)

        returncode = self.process.returncode
        return ProcessOutcome(
            command=self.command,
            returncode=returncode if returncode is not None else -1,
            cancelled=self._terminated.is_set(),
            stdout="".join(self._stdout),
            stderr="".join(self._stderr),
        )


class ProcessRunner:
    """Spawns one tool invocation at a time and can cancel it from another thread."""

    def __init__(self, command: Optional[str] = None, default_command: str = "ffmpeg"):
        self.command = command or default_command
        self.logger = logging.getLogger(__name__)
        self._current: Optional[ProcessHandle] = None
        self._lock = threading.Lock()

    def start(self, args: Sequence[str]) -> ProcessHandle:
        cmd = [self.command, *args]
        self.logger.debug(f"PROCESS_START: {' '.join(cmd)}")
        process = subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,  # Keep keypresses away from the tool
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            universal_newlines=True,
            errors="replace",
            bufsize=1,
        )
        handle = ProcessHandle(process, self.command)
        with self._lock:
            self._current = handle
        return handle

    def execute(self, args: Sequence[str]) -> ProcessOutcome:
        """Runs the tool to completion, discarding intermediate events."""
        handle = self.start(args)
        try:
            return handle.wait()
        finally:
            self._release(handle)

    def finish(self, handle: ProcessHandle) -> ProcessOutcome:
        """Waits for a handle obtained from start() and forgets it."""
        try:
            return handle.wait()
        finally:
            self._release(handle)

    def _release(self, handle: ProcessHandle):
        with self._lock:
            if self._current is handle:
                self._current = None

    def stop(self):
        """Terminates the running invocation, if any."""
        with self._lock:
            handle = self._current
        if handle is not None:
            self.logger.info(f"PROCESS_STOP: {self.command}")
            handle.terminate()
