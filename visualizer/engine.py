"""Execution Engine: runs instrumented programs and streams trace records.

One engine runs one program at a time.  The instrumented program calls back
into the engine through its hook globals; the step hook is the only place a
run can be paused, throttled or stopped.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable

from . import constants
from .instrument import instrument
from .parser import SourceSyntaxError, parse
from .run_types import (
    ExecutionControlState,
    ExecutionOptions,
    ExecutionState,
    ExecutionStats,
)
from .runtime import ExecutionContext, ExecutionStopped, Interpreter, JSError, JSThrow
from .runtime.builtins import json_stringify
from .runtime.operators import default_to_string
from .runtime.values import JSObject, is_callable, to_python, type_of
from .trace_types import (
    CallFrame,
    ConsoleRecord,
    ErrorRecord,
    ExecutionTrace,
    StepRecord,
    VariableSnapshot,
)

logger = logging.getLogger(__name__)


class EngineBusyError(RuntimeError):
    """Raised when a run is requested while another one is active."""


def type_tag(value: Any) -> str:
    """Closed type tag for a captured value."""
    if value is None:
        return "null"
    return type_of(value)


class ExecutionEngine:
    """Runs one program at a time and delivers step, console and error records."""

    def __init__(self):
        self._cond = threading.Condition()
        self._state = ExecutionState.IDLE
        self._busy = False
        self._running = False
        self._paused = False
        self._step_allowance = 0
        self._stop_requested = False
        self._options = ExecutionOptions()
        self._interpreter: Interpreter | None = None
        self._step_subscribers: list[Callable[[StepRecord], Any]] = []
        self._console_subscribers: list[Callable[[ConsoleRecord], Any]] = []
        self._error_subscribers: list[Callable[[ErrorRecord], Any]] = []
        self._reset(self._options)

    # ── subscription ─────────────────────────────────────────────

    def subscribe_step(self, callback: Callable[[StepRecord], Any]) -> None:
        with self._cond:
            self._step_subscribers.append(callback)

    def subscribe_console(self, callback: Callable[[ConsoleRecord], Any]) -> None:
        with self._cond:
            self._console_subscribers.append(callback)

    def subscribe_error(self, callback: Callable[[ErrorRecord], Any]) -> None:
        with self._cond:
            self._error_subscribers.append(callback)

    # ── state ────────────────────────────────────────────────────

    @property
    def state(self) -> ExecutionState:
        with self._cond:
            return self._state

    @property
    def control_state(self) -> ExecutionControlState:
        with self._cond:
            return ExecutionControlState(
                running=self._running,
                paused=self._paused,
                current_step=self._step,
            )

    # ── control ──────────────────────────────────────────────────

    def pause(self) -> None:
        with self._cond:
            if not self._running or self._paused:
                return
            self._paused = True
            self._state = ExecutionState.PAUSED
            logger.debug("Paused at step %d", self._step)
            self._cond.notify_all()

    def resume(self) -> None:
        with self._cond:
            if not self._paused:
                return
            self._paused = False
            if self._running:
                self._state = ExecutionState.RUNNING
            logger.debug("Resumed at step %d", self._step)
            self._cond.notify_all()

    def stop(self) -> None:
        """Stop the active run; a run claimed but not yet started ends STOPPED at once."""
        with self._cond:
            if not self._busy or self._stop_requested:
                return
            self._running = False
            self._paused = False
            self._stop_requested = True
            logger.debug("Stop requested at step %d", self._step)
            self._cond.notify_all()

    def step_forward(self) -> None:
        """Let exactly one more step through while paused."""
        with self._cond:
            if not (self._running and self._paused):
                return
            self._step_allowance = 1
            self._cond.notify_all()

    # ── runs ─────────────────────────────────────────────────────

    def execute(self, source: str, options: ExecutionOptions | None = None) -> ExecutionTrace:
        """Parse, instrument and run *source*.

        Raises SourceSyntaxError (after reporting it to error callbacks) when
        the source does not parse; the engine then ends FAILED without ever
        reaching RUNNING.
        """
        options = options or ExecutionOptions()
        options.step_delay()
        self._claim()
        return self._execute_claimed(source, options)

    def start(self, source: str, options: ExecutionOptions | None = None) -> threading.Thread:
        """Run ``execute`` on a daemon thread and return it.

        The engine is claimed before the thread starts, so a second request
        raises EngineBusyError here rather than inside the worker.
        """
        options = options or ExecutionOptions()
        options.step_delay()
        self._claim()

        def target():
            try:
                self._execute_claimed(source, options)
            except SourceSyntaxError:
                logger.debug("Background run failed to parse")

        thread = threading.Thread(target=target, name="visualizer-run", daemon=True)
        try:
            thread.start()
        except RuntimeError:
            self._release()
            raise
        return thread

    def execute_instrumented(
        self, instrumented_source: str, options: ExecutionOptions | None = None
    ) -> ExecutionTrace:
        """Run already-instrumented source and return its trace."""
        options = options or ExecutionOptions()
        options.step_delay()
        self._claim()
        return self._run(instrumented_source, options)

    def _execute_claimed(self, source: str, options: ExecutionOptions) -> ExecutionTrace:
        try:
            tree = parse(source)
            logger.info("Parsed %d bytes; instrumenting", len(tree.source))
            instrumented = instrument(tree)
        except SourceSyntaxError as exc:
            record = ErrorRecord(
                message=exc.message,
                name="SyntaxError",
                line=exc.line,
                column=exc.column,
                timestamp=time.time(),
            )
            with self._cond:
                self._reset(options)
                self._errors.append(record)
                self._state = ExecutionState.FAILED
                self._busy = False
                self._cond.notify_all()
            self._deliver(self._error_callbacks(), record)
            raise
        except Exception:
            self._release()
            raise
        return self._run(instrumented, options)

    def _run(self, instrumented_source: str, options: ExecutionOptions) -> ExecutionTrace:
        with self._cond:
            self._reset(options)
            self._running = not self._stop_requested
            self._state = ExecutionState.RUNNING

        started = time.perf_counter()
        final = ExecutionState.FAILED
        try:
            interp = Interpreter(
                ExecutionContext(
                    step=self._hook_step,
                    track_variable=self._hook_track_variable,
                    enter_function=self._hook_enter_function,
                    exit_function=self._hook_exit_function,
                    update_memory=self._hook_update_memory,
                    console=self._hook_console,
                )
            )
            self._interpreter = interp
            interp.run(parse(instrumented_source))
            final = ExecutionState.COMPLETED
        except ExecutionStopped:
            final = ExecutionState.STOPPED
        except (JSThrow, JSError) as exc:
            name, message = interp.error_details(exc)
            self._report_error(name, message)
        except SourceSyntaxError as exc:
            self._report_error("SyntaxError", exc.message, exc.line, exc.column)
        except RecursionError:
            self._report_error("RangeError", "Maximum call stack size exceeded")
        finally:
            with self._cond:
                if final == ExecutionState.COMPLETED and self._stop_requested:
                    final = ExecutionState.STOPPED
                self._running = False
                self._busy = False
                self._paused = False
                self._state = final
                self._interpreter = None
                self._cond.notify_all()

        with self._cond:
            trace = ExecutionTrace(
                steps=list(self._steps),
                console=list(self._console),
                errors=list(self._errors),
                state=final,
                stats=ExecutionStats(
                    steps=self._step,
                    console_messages=len(self._console),
                    peak_memory=self._peak_memory,
                    duration=time.perf_counter() - started,
                ),
            )
        logger.info(
            "Run finished %s after %d steps in %.1fms",
            final.value,
            trace.stats.steps,
            trace.stats.duration * 1000,
        )
        return trace

    def _claim(self) -> None:
        with self._cond:
            if self._busy:
                raise EngineBusyError("An execution is already running")
            self._busy = True
            self._stop_requested = False

    def _release(self) -> None:
        with self._cond:
            self._busy = False
            self._cond.notify_all()

    def _reset(self, options: ExecutionOptions) -> None:
        self._options = options
        self._paused = False
        self._step_allowance = 0
        self._step = 0
        self._last_line: int | None = None
        self._variables: dict[str, VariableSnapshot] = {}
        self._call_stack: list[CallFrame] = []
        self._memory = 0
        self._peak_memory = 0
        self._steps: list[StepRecord] = []
        self._console: list[ConsoleRecord] = []
        self._errors: list[ErrorRecord] = []

    # ── delivery ─────────────────────────────────────────────────

    def _step_callbacks(self) -> list[Callable]:
        extra = [self._options.on_step] if self._options.on_step else []
        return list(self._step_subscribers) + extra

    def _console_callbacks(self) -> list[Callable]:
        extra = [self._options.on_console] if self._options.on_console else []
        return list(self._console_subscribers) + extra

    def _error_callbacks(self) -> list[Callable]:
        extra = [self._options.on_error] if self._options.on_error else []
        return list(self._error_subscribers) + extra

    @staticmethod
    def _deliver(callbacks: list[Callable], record: Any) -> None:
        for callback in callbacks:
            callback(record)

    def _report_error(self, name: str, message: str, line: int | None = None, column: int | None = None) -> None:
        with self._cond:
            record = ErrorRecord(
                message=message,
                name=name,
                line=line if line is not None else self._last_line,
                column=column,
                timestamp=time.time(),
            )
            self._errors.append(record)
            callbacks = self._error_callbacks()
        logger.info("Program raised %s", record)
        self._deliver(callbacks, record)

    # ── hooks ────────────────────────────────────────────────────

    def _recompute_memory(self) -> None:
        self._memory = (
            len(self._variables) * constants.VARIABLE_MEMORY_COST
            + len(self._call_stack) * constants.FRAME_MEMORY_COST
        )
        self._peak_memory = max(self._peak_memory, self._memory)

    def _hook_step(self, node_id: int, line: int) -> None:
        with self._cond:
            if not self._running:
                raise ExecutionStopped()
            while self._paused and self._running and not self._step_allowance:
                self._cond.wait(constants.PAUSE_POLL_INTERVAL)
            if not self._running:
                raise ExecutionStopped()
            if self._step_allowance:
                self._step_allowance -= 1
            max_steps = self._options.max_steps
            if max_steps is not None and self._step >= max_steps:
                logger.info("Step limit %d reached; stopping", max_steps)
                self._running = False
                self._paused = False
                self._stop_requested = True
                raise ExecutionStopped()
            self._step += 1
            self._last_line = line
            self._recompute_memory()
            record = StepRecord(
                step=self._step,
                node_id=node_id,
                line=line,
                variables=dict(self._variables),
                call_stack=tuple(self._call_stack),
                memory_usage=self._memory,
                timestamp=time.time(),
            )
            self._steps.append(record)
            callbacks = self._step_callbacks()
        logger.debug("Step %d: node %d line %d", record.step, node_id, line)
        self._deliver(callbacks, record)
        self._throttle()

    def _throttle(self) -> None:
        delay = self._options.step_delay()
        deadline = time.monotonic() + delay
        with self._cond:
            while self._running and not self._paused:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self._cond.wait(remaining)

    def _hook_track_variable(self, name: str, value: Any) -> None:
        snapshot = VariableSnapshot(
            value=to_python(value), type=type_tag(value), timestamp=time.time()
        )
        with self._cond:
            self._variables[name] = snapshot

    def _hook_enter_function(self, name: str, args: list) -> None:
        frame = CallFrame(
            name=name or constants.ANONYMOUS_FUNCTION,
            arguments=tuple(to_python(a) for a in args),
            timestamp=time.time(),
        )
        with self._cond:
            self._call_stack.append(frame)
            self._recompute_memory()

    def _hook_exit_function(self, value: Any) -> None:
        with self._cond:
            if self._call_stack:
                self._call_stack.pop()
            self._recompute_memory()

    def _hook_update_memory(self) -> None:
        with self._cond:
            self._recompute_memory()

    def _hook_console(self, kind: str, args: list) -> None:
        message = " ".join(self._format_console_arg(a) for a in args)
        record = ConsoleRecord(kind=kind, message=message, timestamp=time.time())
        with self._cond:
            self._console.append(record)
            callbacks = self._console_callbacks()
        self._deliver(callbacks, record)

    def _format_console_arg(self, value: Any) -> str:
        if isinstance(value, JSObject) and not is_callable(value):
            text = json_stringify(self._interpreter, value)
            return "undefined" if text is None else text
        if is_callable(value):
            return self._interpreter.to_string(value)
        return default_to_string(value)
