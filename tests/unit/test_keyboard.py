import time
from unittest.mock import MagicMock

from batchenc.domain.events import InterruptRequested, PauseRequested, StopRequested
from batchenc.infrastructure.event_bus import EventBus
from batchenc.ui.keyboard import KeyboardListener

def test_keyboard_listener_initialization():
    """Test that KeyboardListener can be initialized with EventBus."""
    bus = EventBus()
    listener = KeyboardListener(bus)
    assert listener.event_bus is bus
    assert not listener._stop_event.is_set()
    assert not listener.is_running

def test_keyboard_listener_stop_event():
    """Calling stop() without start() only sets the stop event."""
    listener = KeyboardListener(EventBus())
    listener.stop()
    assert listener._stop_event.is_set()

def _fake_terminal(monkeypatch, listener, keys):
    class FakeStdin:
        def isatty(self):
            return True

        def fileno(self):
            return 0

    monkeypatch.setattr("batchenc.ui.keyboard.sys.stdin", FakeStdin())

    def fake_select(_read, _write, _err, _timeout):
        if keys:
            return ([0], [], [])
        listener._stop_event.set()
        return ([], [], [])

    monkeypatch.setattr("batchenc.ui.keyboard.select.select", fake_select)
    monkeypatch.setattr("batchenc.ui.keyboard.os.read", lambda _fd, _n: keys.pop(0).encode())
    monkeypatch.setattr("batchenc.ui.keyboard.termios.tcgetattr", MagicMock(return_value="old"))
    tcset = MagicMock()
    monkeypatch.setattr("batchenc.ui.keyboard.termios.tcsetattr", tcset)
    monkeypatch.setattr("batchenc.ui.keyboard.tty.setcbreak", MagicMock())
    return tcset

def test_keyboard_listener_run_handles_keys(monkeypatch):
    """Test _run publishes events for p/q/Ctrl+C and ignores other keys."""
    bus = MagicMock()
    listener = KeyboardListener(bus)
    tcset = _fake_terminal(monkeypatch, listener, ['p', 'x', 'Q', '\x03'])

    listener._run()

    published = [call.args[0] for call in bus.publish.call_args_list]
    assert [type(e) for e in published] == [PauseRequested, StopRequested, InterruptRequested]
    assert tcset.call_args.args[2] == "old"

def test_keyboard_listener_restores_terminal(monkeypatch):
    bus = MagicMock()
    listener = KeyboardListener(bus)
    tcset = _fake_terminal(monkeypatch, listener, [])

    listener._run()

    assert tcset.call_args.args[0] == 0
    assert tcset.call_args.args[2] == "old"

def test_keyboard_listener_not_a_tty(monkeypatch):
    class FakeStdin:
        def isatty(self):
            return False

    monkeypatch.setattr("batchenc.ui.keyboard.sys.stdin", FakeStdin())
    bus = MagicMock()
    KeyboardListener(bus)._run()
    bus.publish.assert_not_called()

def test_released_without_thread_is_noop():
    listener = KeyboardListener(EventBus())
    with listener.released():
        pass
    assert not listener._release_requested.is_set()

def test_released_hands_terminal_back(monkeypatch):
    """While released, the listener restores the terminal and reads nothing."""
    bus = MagicMock()
    listener = KeyboardListener(bus)
    keys = []
    tcset = _fake_terminal(monkeypatch, listener, keys)
    # keep the loop alive until the test stops it explicitly
    monkeypatch.setattr("batchenc.ui.keyboard.select.select", lambda *_: (time.sleep(0.01), ([], [], []))[1])

    listener.start()
    try:
        with listener.released():
            assert listener._released.is_set()
            assert tcset.called
    finally:
        listener.stop()

    assert not listener._release_requested.is_set()
    bus.publish.assert_not_called()
