"""Tests for ExecutionEngine runs: step records, console output and errors."""

import pytest

from visualizer import constants
from visualizer.engine import ExecutionEngine, type_tag
from visualizer.parser import SourceSyntaxError
from visualizer.run_types import ExecutionOptions, ExecutionState
from visualizer.runtime import UNDEFINED
from visualizer.trace_types import ErrorRecord, ExecutionTrace

FAST = 1_000_000.0

FIB_SOURCE = """\
function fib(n) {
  if (n <= 1) return n;
  return fib(n - 1) + fib(n - 2);
}
console.log(fib(5));
"""


def _run(source, **options):
    return ExecutionEngine().execute(source, ExecutionOptions(speed=FAST, **options))


class TestCompletedRun:
    def test_fib(self):
        trace = _run(FIB_SOURCE)
        assert isinstance(trace, ExecutionTrace)
        assert trace.state == ExecutionState.COMPLETED
        assert trace.output == ["5"]
        assert trace.errors == []
        assert trace.stats.steps == len(trace.steps) == 32
        assert trace.stats.console_messages == 1

    def test_step_numbers_are_consecutive(self):
        trace = _run(FIB_SOURCE)
        assert [s.step for s in trace.steps] == list(range(1, 33))
        assert [s.line for s in trace.steps[:4]] == [1, 5, 2, 3]

    def test_call_stack_in_steps(self):
        trace = _run(FIB_SOURCE)
        assert trace.steps[0].call_stack == ()
        frames = trace.steps[3].call_stack
        assert [f.name for f in frames] == ["fib"]
        assert frames[0].arguments == (5,)
        deepest = max(len(s.call_stack) for s in trace.steps)
        assert deepest == 5

    def test_memory_usage(self):
        trace = _run(FIB_SOURCE)
        assert trace.steps[0].memory_usage == 0
        assert trace.steps[3].memory_usage == constants.FRAME_MEMORY_COST
        assert trace.stats.peak_memory == 5 * constants.FRAME_MEMORY_COST

    def test_engine_is_idle_state_after_run(self):
        engine = ExecutionEngine()
        engine.execute("let a = 1;\n", ExecutionOptions(speed=FAST))
        assert engine.state == ExecutionState.COMPLETED
        control = engine.control_state
        assert not control.running and not control.paused

    def test_engine_can_run_again(self):
        engine = ExecutionEngine()
        first = engine.execute("let a = 1;\n", ExecutionOptions(speed=FAST))
        second = engine.execute(FIB_SOURCE, ExecutionOptions(speed=FAST))
        assert len(first.steps) == 1
        assert second.steps[0].step == 1
        assert second.output == ["5"]


class TestVariableSnapshots:
    def test_snapshots_are_copies(self):
        trace = _run("let x = 1;\nx = 2;\nx = 3;\n")
        assert [s.values() for s in trace.steps] == [{}, {"x": 1}, {"x": 2}]

    def test_type_tags(self):
        source = """\
let a = null;
let b;
let c = "s";
let d = [1, { k: true }];
let e = () => 1;
console.log("end");
"""
        last = _run(source).steps[-1]
        assert {k: v.type for k, v in last.variables.items()} == {
            "a": "null",
            "b": "undefined",
            "c": "string",
            "d": "object",
            "e": "function",
        }
        assert last.values() == {
            "a": None,
            "b": None,
            "c": "s",
            "d": [1, {"k": True}],
            "e": "[Function: e]",
        }

    def test_type_tag_function(self):
        assert type_tag(None) == "null"
        assert type_tag(UNDEFINED) == "undefined"
        assert type_tag(2.0) == "number"

    def test_loop_variable_captured(self):
        source = "let total = 0;\nfor (let i = 0; i < 3; i++) {\n  total += i;\n}\n"
        trace = _run(source)
        assert trace.steps[-1].values() == {"total": 1, "i": 2}


class TestConsole:
    def test_formatting(self):
        source = 'console.log("a", 1, {x: [1, 2]}, [1, "b"], null, undefined, true, 0.5);\n'
        assert _run(source).output == ['a 1 {"x":[1,2]} [1,"b"] null undefined true 0.5']

    def test_kinds(self):
        trace = _run('console.warn("w");\nconsole.error("e");\n')
        assert [(c.kind, c.message) for c in trace.console] == [("warn", "w"), ("error", "e")]

    def test_console_callback(self):
        received = []
        _run('console.log("hi");\n', on_console=received.append)
        assert [c.message for c in received] == ["hi"]

    def test_circular_object_is_catchable(self):
        source = """\
const o = {};
o.self = o;
try { console.log(o); } catch (e) { console.log(e.name); }
"""
        assert _run(source).output == ["TypeError"]


class TestRuntimeErrors:
    def test_uncaught_type_error(self):
        received = []
        trace = _run("let x = 1;\nnull.foo;\n", on_error=received.append)
        assert trace.state == ExecutionState.FAILED
        assert len(trace.steps) == 2
        (error,) = trace.errors
        assert error.name == "TypeError"
        assert error.message == "Cannot read properties of null (reading 'foo')"
        assert error.line == 2
        assert received == [error]

    def test_thrown_error_object(self):
        trace = _run('throw new RangeError("bad");\n')
        assert (trace.errors[0].name, trace.errors[0].message) == ("RangeError", "bad")
        assert str(trace.errors[0]) == "RangeError: bad (line 1)"

    def test_deep_recursion(self):
        trace = _run("function f() { return f(); }\nf();\n")
        assert trace.state == ExecutionState.FAILED
        assert trace.errors[0].name == "RangeError"

    def test_callback_exception_propagates_and_resets(self):
        engine = ExecutionEngine()

        def explode(record):
            raise RuntimeError("callback failed")

        with pytest.raises(RuntimeError):
            engine.execute("let a = 1;\n", ExecutionOptions(speed=FAST, on_step=explode))
        assert engine.state == ExecutionState.FAILED
        assert not engine.control_state.running


class TestSyntaxErrors:
    def test_raises_and_reports(self):
        engine = ExecutionEngine()
        received = []
        engine.subscribe_error(received.append)
        with pytest.raises(SourceSyntaxError):
            engine.execute("function( { ", ExecutionOptions(speed=FAST))
        assert engine.state == ExecutionState.FAILED
        (record,) = received
        assert isinstance(record, ErrorRecord)
        assert record.name == "SyntaxError"
        assert record.line == 1


class TestOptions:
    def test_max_steps_stops_infinite_loop(self):
        trace = _run("let i = 0;\nwhile (true) {\n  i++;\n}\n", max_steps=10)
        assert trace.state == ExecutionState.STOPPED
        assert len(trace.steps) == 10
        assert trace.errors == []

    def test_invalid_speed(self):
        with pytest.raises(ValueError):
            ExecutionEngine().execute("let a = 1;\n", ExecutionOptions(speed=0))

    def test_step_delay(self):
        assert ExecutionOptions(speed=4).step_delay() == 0.25

    def test_subscribers_and_option_callbacks(self):
        engine = ExecutionEngine()
        subscribed, optioned = [], []
        engine.subscribe_step(subscribed.append)
        engine.execute(FIB_SOURCE, ExecutionOptions(speed=FAST, on_step=optioned.append))
        assert len(subscribed) == len(optioned) == 32
        assert subscribed == optioned

    def test_execute_instrumented_source(self):
        source = '__step(0, 1); console.log("direct");\n'
        trace = ExecutionEngine().execute_instrumented(source, ExecutionOptions(speed=FAST))
        assert trace.output == ["direct"]
        assert [(s.node_id, s.line) for s in trace.steps] == [(0, 1)]
