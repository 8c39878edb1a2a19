import time
from typing import Generic, List, NamedTuple, Optional, TypeVar

T = TypeVar("T")


def format_duration(seconds: Optional[float]) -> str:
    """Format elapsed time: 850ms, 59s, 01m 01s, 1h 01m 05s."""
    if seconds is None:
        return "--:--"
    if seconds < 1:
        return f"{int(seconds * 1000)}ms"
    if seconds < 60:
        return f"{int(seconds)}s"
    if seconds < 3600:
        return f"{int(seconds // 60):02d}m {int(seconds % 60):02d}s"
    return f"{int(seconds // 3600)}h {int((seconds % 3600) // 60):02d}m {int(seconds % 60):02d}s"


class Stopwatch:
    """Accumulates wall-clock time across start/stop intervals."""

    def __init__(self):
        self._total = 0.0
        self._started_at: Optional[float] = None

    def start(self):
        if self._started_at is None:
            self._started_at = time.monotonic()

    def stop(self):
        if self._started_at is not None:
            self._total += time.monotonic() - self._started_at
            self._started_at = None

    @property
    def total_seconds(self) -> float:
        if self._started_at is not None:
            return self._total + (time.monotonic() - self._started_at)
        return self._total


class FailedItem(NamedTuple):
    item: str
    error: BaseException


class RunResult(Generic[T]):
    """Per-run aggregate of item outcomes."""

    def __init__(self, total_queue_length: int):
        self.total_queue_length = total_queue_length
        self.success: List[T] = []
        self.skipped: List[str] = []
        self.failed: List[FailedItem] = []
        self.notes: List[str] = []
        self.elapsed_seconds: float = 0.0

    @property
    def processed(self) -> int:
        return len(self.success) + len(self.skipped) + len(self.failed)

    def add_failure(self, item: str, error: BaseException):
        self.failed.append(FailedItem(item, error))

    @property
    def time_elapsed(self) -> str:
        return format_duration(self.elapsed_seconds)

    def report(self) -> str:
        lines = [
            f"Total: {self.total_queue_length}, Processed: {self.processed}, "
            f"Success: {len(self.success)}, Skipped: {len(self.skipped)}, "
            f"Failed: {len(self.failed)}, Elapsed: {self.time_elapsed}"
        ]
        lines.extend(self.notes)
        lines.extend(f"Failed: {item}, Reason: {error}" for item, error in self.failed)
        return "\n".join(lines)
