"""Tests for pause, resume, step_forward and stop on a running engine."""

import threading

import pytest

from visualizer.engine import EngineBusyError, ExecutionEngine
from visualizer.run_types import ExecutionOptions, ExecutionState

WAIT = 10.0
FAST = 1_000_000.0

LOOP_SOURCE = "let i = 0;\nwhile (i < 50) {\n  i++;\n}\nconsole.log(i);\n"
ENDLESS_SOURCE = "let i = 0;\nwhile (true) {\n  i++;\n}\n"


class _PauseAt:
    """Step callback that pauses the engine once ``step`` has been delivered."""

    def __init__(self, engine, step):
        self.engine = engine
        self.step = step
        self.records = []
        self.paused = threading.Event()
        self.arrived = {}

    def __call__(self, record):
        self.records.append(record)
        event = self.arrived.get(record.step)
        if event is not None:
            event.set()
        if record.step == self.step:
            self.engine.pause()
            self.paused.set()

    def expect(self, step):
        event = self.arrived[step] = threading.Event()
        return event


def _finish(engine, thread):
    engine.stop()
    thread.join(WAIT)
    assert not thread.is_alive()


def _summary(records):
    return [
        (r.step, r.node_id, r.line, r.values(), tuple(f.name for f in r.call_stack))
        for r in records
    ]


class TestStop:
    def test_stop_from_step_callback(self):
        engine = ExecutionEngine()

        def on_step(record):
            if record.step == 5:
                engine.stop()

        trace = engine.execute(ENDLESS_SOURCE, ExecutionOptions(speed=FAST, on_step=on_step))
        assert trace.state == ExecutionState.STOPPED
        assert len(trace.steps) == 5
        assert engine.state == ExecutionState.STOPPED

    def test_stop_on_last_step_still_reports_stopped(self):
        engine = ExecutionEngine()
        source = 'let a = 1;\nconsole.log("tail");\n'

        def on_step(record):
            if record.step == 2:
                engine.stop()

        trace = engine.execute(source, ExecutionOptions(speed=FAST, on_step=on_step))
        assert trace.state == ExecutionState.STOPPED
        assert len(trace.steps) == 2

    def test_stop_while_paused(self):
        engine = ExecutionEngine()
        pauser = _PauseAt(engine, 3)
        thread = engine.start(ENDLESS_SOURCE, ExecutionOptions(speed=FAST, on_step=pauser))
        assert pauser.paused.wait(WAIT)
        _finish(engine, thread)
        assert engine.state == ExecutionState.STOPPED
        assert len(pauser.records) == 3

    def test_controls_on_idle_engine_are_noops(self):
        engine = ExecutionEngine()
        engine.pause()
        engine.step_forward()
        engine.resume()
        engine.stop()
        assert engine.state == ExecutionState.IDLE
        assert engine.control_state.current_step == 0


class TestPauseResume:
    def test_pause_then_resume_completes(self):
        expected = ExecutionEngine().execute(LOOP_SOURCE, ExecutionOptions(speed=FAST))

        engine = ExecutionEngine()
        pauser = _PauseAt(engine, 3)
        thread = engine.start(LOOP_SOURCE, ExecutionOptions(speed=FAST, on_step=pauser))
        assert pauser.paused.wait(WAIT)

        assert engine.state == ExecutionState.PAUSED
        control = engine.control_state
        assert (control.running, control.paused, control.current_step) == (True, True, 3)
        thread.join(0.1)
        assert thread.is_alive()
        assert engine.control_state.current_step == 3

        engine.resume()
        thread.join(WAIT)
        assert not thread.is_alive()
        assert engine.state == ExecutionState.COMPLETED
        assert _summary(pauser.records) == _summary(expected.steps)

    def test_step_forward_releases_one_step(self):
        engine = ExecutionEngine()
        pauser = _PauseAt(engine, 2)
        third = pauser.expect(3)
        thread = engine.start(ENDLESS_SOURCE, ExecutionOptions(speed=FAST, on_step=pauser))
        assert pauser.paused.wait(WAIT)

        engine.step_forward()
        assert third.wait(WAIT)
        thread.join(0.1)
        assert engine.control_state.current_step == 3
        assert engine.state == ExecutionState.PAUSED
        assert len(pauser.records) == 3

        _finish(engine, thread)
        assert engine.state == ExecutionState.STOPPED


class TestBusy:
    def test_second_run_rejected_while_active(self):
        engine = ExecutionEngine()
        pauser = _PauseAt(engine, 1)
        thread = engine.start(ENDLESS_SOURCE, ExecutionOptions(speed=FAST, on_step=pauser))
        assert pauser.paused.wait(WAIT)

        with pytest.raises(EngineBusyError):
            engine.execute(LOOP_SOURCE)
        with pytest.raises(EngineBusyError):
            engine.start(LOOP_SOURCE)

        _finish(engine, thread)
        trace = engine.execute(LOOP_SOURCE, ExecutionOptions(speed=FAST))
        assert trace.output == ["50"]

    def test_back_to_back_start_rejected_by_caller(self):
        for _ in range(20):
            engine = ExecutionEngine()
            thread = engine.start(ENDLESS_SOURCE, ExecutionOptions(speed=FAST))
            with pytest.raises(EngineBusyError):
                engine.start(LOOP_SOURCE)
            _finish(engine, thread)
            assert engine.state == ExecutionState.STOPPED

    def test_rejected_syntax_error_keeps_live_run(self):
        engine = ExecutionEngine()
        errors = []
        engine.subscribe_error(errors.append)
        pauser = _PauseAt(engine, 2)
        thread = engine.start(ENDLESS_SOURCE, ExecutionOptions(speed=FAST, on_step=pauser))
        assert pauser.paused.wait(WAIT)

        with pytest.raises(EngineBusyError):
            engine.execute("let = ;")
        assert engine.state == ExecutionState.PAUSED
        assert engine.control_state.current_step == 2
        assert errors == []

        _finish(engine, thread)

    def test_stop_right_after_start(self):
        engine = ExecutionEngine()
        thread = engine.start(ENDLESS_SOURCE, ExecutionOptions(speed=FAST))
        engine.stop()
        thread.join(WAIT)
        assert not thread.is_alive()
        assert engine.state == ExecutionState.STOPPED
