import io
import pytest
from rich.console import Console
from batchenc.domain.events import ItemStarted, StopRequested
from batchenc.domain.models import FingerprintRecord, MenuAction
from batchenc.pipeline.controller import StageController
from batchenc.pipeline.session import Session
from conftest import FakeFFmpeg, FakeProbe

@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=200)

def _session(config, store, bus, console, ffmpeg=None, **kwargs):
    return Session(
        config,
        store,
        bus,
        console=console,
        controller=StageController(bus),
        ffprobe_adapter=FakeProbe(),
        ffmpeg_adapter=ffmpeg or FakeFFmpeg(),
        **kwargs,
    )

def test_scan_prints_report(sample_config, store, event_bus, console, video_files):
    result = _session(sample_config, store, event_bus, console).scan()

    assert len(result.success) == 3
    assert "Total: 3, Processed: 3, Success: 3, Skipped: 0, Failed: 0" in console.file.getvalue()

def test_process_scans_then_encodes(sample_config, store, event_bus, console, video_files):
    ffmpeg = FakeFFmpeg()
    result = _session(sample_config, store, event_bus, console, ffmpeg).process()

    assert len(result.success) == 3
    assert len(ffmpeg.calls) == 3
    assert all(store.lookup(f.stat().st_ino).processed for f in video_files)

def test_process_twice_does_not_reencode(sample_config, store, event_bus, console, video_files):
    session = _session(sample_config, store, event_bus, console)
    session.process()
    ffmpeg = FakeFFmpeg()
    session.ffmpeg = ffmpeg

    result = session.process()

    assert result.total_queue_length == 0
    assert ffmpeg.calls == []

def test_process_skips_encode_when_scan_stopped(sample_config, store, event_bus, console, video_files):
    event_bus.subscribe(ItemStarted, lambda e: event_bus.publish(StopRequested()))
    ffmpeg = FakeFFmpeg()

    assert _session(sample_config, store, event_bus, console, ffmpeg).process() is None
    assert ffmpeg.calls == []

def test_process_reports_careful_abort(sample_config, store, event_bus, console, video_files):
    sample_config.careful = True
    ffmpeg = FakeFFmpeg(fail_for={"alpha.mp4"})

    assert _session(sample_config, store, event_bus, console, ffmpeg).process() is None
    output = console.file.getvalue()
    assert "Failed: 1" in output
    assert "ffmpeg process exited with code 1" in output

def test_toggle_force_flips_skip_probe(sample_config, store, event_bus, console):
    session = _session(sample_config, store, event_bus, console)
    assert session.toggle_force() is True
    assert sample_config.skip_probe is True
    assert session.toggle_force() is False

def test_drop_requires_confirmation(sample_config, store, event_bus, console):
    store.insert(FingerprintRecord(inode=1, path="/a.mp4"))

    declined = _session(sample_config, store, event_bus, console, confirm=lambda console: False)
    assert declined.drop() is False
    assert store.count() == 1

    accepted = _session(sample_config, store, event_bus, console, confirm=lambda console: True)
    assert accepted.drop() is True
    assert store.count() == 0

def test_loop_dispatches_until_quit(sample_config, store, event_bus, console, video_files):
    actions = iter([MenuAction.SCAN, MenuAction.TOGGLE_FORCE, MenuAction.QUIT])
    seen_force = []

    def main_menu(console, skip_probe):
        seen_force.append(skip_probe)
        return next(actions)

    _session(sample_config, store, event_bus, console, main_menu=main_menu).loop()

    assert seen_force == [False, False, True]
    assert store.count() == 3

def test_loop_requires_menu(sample_config, store, event_bus, console):
    with pytest.raises(RuntimeError):
        _session(sample_config, store, event_bus, console).loop()
