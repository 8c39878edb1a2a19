import pytest
from pathlib import Path
from pydantic import ValidationError
from batchenc.domain.models import (
    EncodeJob,
    FingerprintRecord,
    JobStatus,
    MediaInfo,
    MenuAction,
    OutputTarget,
    PauseAction,
    RunState,
)

def test_run_state_values():
    assert RunState.IN_PROGRESS.value == "in-progress"
    assert RunState.PAUSE.value == "pause"
    assert RunState.STOP.value == "stop"
    assert RunState.DONE.value == "done"

def test_action_enums():
    assert PauseAction("resume") is PauseAction.RESUME
    assert MenuAction("toggleForce") is MenuAction.TOGGLE_FORCE

@pytest.mark.parametrize("width,height,odd", [
    (1920, 1080, False),
    (3840, 2161, True),
    (1279, 720, True),
])
def test_media_info_odd_dimensions(width, height, odd):
    assert MediaInfo(width=width, height=height, codec="h264").has_odd_dimensions is odd

def test_media_info_requires_fields():
    with pytest.raises(ValidationError):
        MediaInfo(width=1920, codec="h264")

def test_fingerprint_record_defaults():
    record = FingerprintRecord()
    assert record.inode is None
    assert record.path is None
    assert record.processed is False
    assert record.media_info is None

def test_fingerprint_record_media_info_from_dict():
    record = FingerprintRecord(inode=1, path="/a.mp4", media_info={"width": 2, "height": 2, "codec": "hevc"})
    assert isinstance(record.media_info, MediaInfo)
    assert record.media_info.codec == "hevc"

def test_output_target_needs_rename():
    same = OutputTarget(output=Path("/v/a.mp4"), final_name=Path("/v/a.mp4"))
    temp = OutputTarget(output=Path("/v/a_encoded.mp4"), final_name=Path("/v/a.mp4"))
    assert not same.needs_rename
    assert temp.needs_rename

def test_encode_job_defaults():
    job = EncodeJob(
        source=FingerprintRecord(inode=1, path="/v/a.mp4"),
        target=OutputTarget(output=Path("/v/a.mkv"), final_name=Path("/v/a.mkv")),
    )
    assert job.status == JobStatus.PENDING
    assert job.progress_percent == 0.0
    assert job.duration_seconds is None
