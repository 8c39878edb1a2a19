from batchenc.domain.models import RunState
from batchenc.pipeline.state import TERMINAL_STATES, RunStateMachine

def test_initial_state_is_in_progress():
    machine = RunStateMachine()
    assert machine.current is RunState.IN_PROGRESS
    assert machine.current not in TERMINAL_STATES

def test_pause_and_resume():
    machine = RunStateMachine()
    assert machine.request_pause()
    assert machine.current is RunState.PAUSE
    assert machine.resume()
    assert machine.current is RunState.IN_PROGRESS

def test_pause_only_from_in_progress():
    machine = RunStateMachine()
    machine.request_pause()
    assert not machine.request_pause()
    assert machine.current is RunState.PAUSE

def test_resume_requires_pause():
    machine = RunStateMachine()
    assert not machine.resume()
    assert machine.current is RunState.IN_PROGRESS

def test_stop_from_in_progress_and_from_pause():
    running = RunStateMachine()
    assert running.request_stop()
    assert running.current is RunState.STOP

    paused = RunStateMachine()
    paused.request_pause()
    assert paused.request_stop()
    assert paused.current is RunState.STOP

def test_terminal_states_ignore_further_requests():
    stopped = RunStateMachine()
    stopped.request_stop()
    assert not stopped.request_pause()
    assert not stopped.request_stop()
    assert not stopped.finish()
    assert stopped.current is RunState.STOP
    assert stopped.current in TERMINAL_STATES

    done = RunStateMachine()
    assert done.finish()
    assert not done.request_pause()
    assert not done.request_stop()
    assert done.current is RunState.DONE
    assert done.current in TERMINAL_STATES

def test_on_change_called_for_each_transition_only():
    seen = []
    machine = RunStateMachine(on_change=seen.append)

    machine.request_pause()
    machine.request_pause()  # no-op
    machine.resume()
    machine.request_stop()
    machine.finish()  # no-op

    assert seen == [RunState.PAUSE, RunState.IN_PROGRESS, RunState.STOP]
