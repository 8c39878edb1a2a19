from enum import Enum
from pathlib import Path
from typing import Optional
from pydantic import BaseModel

class RunState(str, Enum):
    IN_PROGRESS = "in-progress"
    PAUSE = "pause"
    STOP = "stop"
    DONE = "done"  # Input exhausted

class PauseAction(str, Enum):
    RESUME = "resume"
    STOP = "stop"

class MenuAction(str, Enum):
    SCAN = "scan"
    PROCESS = "process"
    TOGGLE_FORCE = "toggleForce"
    DROP = "drop"
    QUIT = "quit"

class JobStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"

class MediaInfo(BaseModel):
    width: int
    height: int
    codec: str

    @property
    def has_odd_dimensions(self) -> bool:
        return self.width % 2 != 0 or self.height % 2 != 0

class FileInfo(BaseModel):
    """Filesystem snapshot of a discovered file."""
    path: Path
    inode: int
    size: int
    mtime: float

class FingerprintRecord(BaseModel):
    """Persisted identity and probe cache for one physical file (keyed by inode)."""
    inode: Optional[int] = None
    path: Optional[str] = None
    processed: bool = False
    mtime: Optional[float] = None
    size: Optional[int] = None
    media_info: Optional[MediaInfo] = None

class OutputTarget(BaseModel):
    """Where ffmpeg writes (output) and where the result ends up (final_name)."""
    output: Path
    final_name: Path

    @property
    def needs_rename(self) -> bool:
        return self.output != self.final_name

class EncodeJob(BaseModel):
    source: FingerprintRecord
    target: OutputTarget
    status: JobStatus = JobStatus.PENDING
    duration_seconds: Optional[float] = None
    progress_percent: float = 0.0
