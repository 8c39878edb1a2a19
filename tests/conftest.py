import pytest
from pathlib import Path
from typing import Dict, List, Optional, Sequence
from batchenc.config.models import AppConfig
from batchenc.domain.events import ProcessOutput, ProcessProgress
from batchenc.domain.models import MediaInfo
from batchenc.infrastructure.event_bus import EventBus
from batchenc.infrastructure.ffmpeg import FFmpegAdapter
from batchenc.infrastructure.ffprobe import FFprobeAdapter
from batchenc.infrastructure.fingerprint_store import FingerprintStore
from batchenc.infrastructure.process_runner import ProcessOutcome

# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def src_dir(tmp_path):
    """Source tree root shared by config and file fixtures."""
    d = tmp_path / "src"
    d.mkdir()
    return d

@pytest.fixture
def sample_config(src_dir):
    """Returns an AppConfig encoding in place (dst_dir == src_dir)."""
    return AppConfig(
        src_dir=src_dir,
        dst_dir=src_dir,
        delete_original=False,
        preserve_attributes=True,
        careful=False,
        deep=2,
        extensions=[".mp4", ".mkv"],
        register_outputs=True,
        video_options={"ffmpeg_command": "-c:v libx265 -crf 28", "output_container": "mp4"},
    )

@pytest.fixture
def config_yaml_path(tmp_path, src_dir):
    """Creates a batchenc.yaml next to the source directory."""
    config_file = tmp_path / "batchenc.yaml"
    config_file.write_text(
        "src_dir: src\n"
        "dst_dir: ''\n"
        "deep: 1\n"
        "extensions: [mp4, .MKV]\n"
        "video_options:\n"
        "  ffmpeg_command: -c:v libx265\n"
        "  output_container: .mkv\n"
        "filter_by:\n"
        "  codec: 'h26[45]'\n"
    )
    return config_file

# ============================================================================
# Infrastructure Fixtures
# ============================================================================

@pytest.fixture
def event_bus():
    """Returns a fresh EventBus instance."""
    return EventBus()

@pytest.fixture
def store(tmp_path):
    """SQLite fingerprint store on disk, closed after the test."""
    with FingerprintStore(tmp_path / "db" / "fingerprints.sqlite") as s:
        yield s

@pytest.fixture
def video_files(src_dir):
    """Creates dummy video files (two at the root, one nested)."""
    files = []
    for name in ("alpha.mp4", "beta.mp4"):
        f = src_dir / name
        f.write_bytes(b"dummy video content " * 50)
        files.append(f)

    subdir = src_dir / "nested"
    subdir.mkdir()
    f = subdir / "gamma.mp4"
    f.write_bytes(b"dummy video content " * 50)
    files.append(f)
    return files

# ============================================================================
# Tool fakes
# ============================================================================

class FakeProbe(FFprobeAdapter):
    """FFprobeAdapter answering from a name -> MediaInfo map (None = nothing usable)."""

    def __init__(self, media: Optional[Dict[str, Optional[MediaInfo]]] = None, default: Optional[MediaInfo] = None):
        super().__init__()
        self.media = media or {}
        self.default = default if default is not None else MediaInfo(width=1920, height=1080, codec="h264")
        self.calls: List[str] = []
        self.stopped = False

    def probe(self, file_path):
        name = Path(file_path).name
        self.calls.append(name)
        if name in self.media:
            return self.media[name]
        return self.default

    def stop(self):
        self.stopped = True


class FakeHandle:
    def __init__(self, args: Sequence[str], returncode: int, percents: Sequence[int], stderr: str):
        self.args = list(args)
        self.returncode = returncode
        self.percents = list(percents)
        self.stderr = stderr
        self.cancelled = False

    def events(self):
        for line in self.stderr.splitlines(keepends=True):
            yield ProcessOutput(stream="stderr", text=line)
        for percent in self.percents:
            if self.cancelled:
                return
            yield ProcessOutput(stream="stdout", text=f"out_time_ms={percent}\n")
            yield ProcessProgress(percent=percent)


class FakeFFmpeg(FFmpegAdapter):
    """FFmpegAdapter that writes the output file itself instead of spawning ffmpeg.

    `fail_for` names inputs that exit with code 1; `on_start(call_number)`
    runs while the handle is active, so it can stop the stage mid-item.
    With `touch_output=False` a failing input never writes its output.
    """

    def __init__(self, fail_for=(), percents=(25, 50, 100), stderr="Duration: 00:00:10.00, start: 0\n", on_start=None, touch_output=True):
        super().__init__()
        self.touch_output = touch_output
        self.fail_for = set(fail_for)
        self.percents = percents
        self.stderr = stderr
        self.on_start = on_start
        self.calls: List[List[str]] = []
        self._active: Optional[FakeHandle] = None

    def start(self, args):
        self.calls.append(list(args))
        input_name = Path(args[args.index("-i") + 1]).name
        returncode = 1 if input_name in self.fail_for else 0
        output = Path(args[-1])
        if self.touch_output or returncode == 0:
            output.write_bytes(b"encoded" if returncode == 0 else b"partial")
        self._active = FakeHandle(args, returncode, self.percents, self.stderr)
        if self.on_start:
            self.on_start(len(self.calls))
        return self._active

    def finish(self, handle):
        self._active = None
        return ProcessOutcome(
            command="ffmpeg",
            returncode=-15 if handle.cancelled else handle.returncode,
            cancelled=handle.cancelled,
            stderr=handle.stderr,
        )

    def stop(self):
        if self._active is not None:
            self._active.cancelled = True


@pytest.fixture
def fake_probe():
    return FakeProbe()

@pytest.fixture
def fake_ffmpeg():
    return FakeFFmpeg()

# ============================================================================
# Markers
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
