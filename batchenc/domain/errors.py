"""Exception types shared by the stages and adapters.

Per-item errors (missing files, tool exits) are folded into the run result by
the stage runner. ``StoreContractError`` is never folded: it means a candidate
record is corrupt and always propagates.
"""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from batchenc.domain.result import RunResult


class SourceFileMissingError(FileNotFoundError):
    """Raised when a discovered file no longer exists."""

    def __init__(self, path):
        super().__init__(f"File not found: {path}")
        self.path = path


class InvalidPathError(ValueError):
    """Raised when a path escapes its base directory or is not a file/directory."""


class ToolExitError(RuntimeError):
    """Raised when ffmpeg/ffprobe exits with a non-zero, non-signal code."""

    def __init__(self, command: str, returncode: int, stderr: str = ""):
        super().__init__(f"{command} process exited with code {returncode}")
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class ProbeParseError(ValueError):
    """Raised when ffprobe output cannot be turned into media info."""


class StoreContractError(ValueError):
    """Raised when a fingerprint record violates the store's identity contract."""


class ItemInterrupted(Exception):
    """Raised when the running tool was cancelled by a stop request."""


class RunAbortedError(RuntimeError):
    """Raised in careful mode after the first per-item error.

    Carries the partial result so the caller can still report it.
    """

    def __init__(self, result: "RunResult", item: str, error: Optional[BaseException] = None):
        reason = str(error) if error else "unknown error"
        super().__init__(f"Run aborted on {item}: {reason}")
        self.result = result
        self.item = item
