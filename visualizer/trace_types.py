"""Trace data types for step-by-step execution replay."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .run_types import ExecutionState, ExecutionStats


@dataclass(frozen=True)
class VariableSnapshot:
    value: Any  # plain Python data, see runtime.values.to_python
    type: str  # number | string | boolean | object | function | undefined | null
    timestamp: float


@dataclass(frozen=True)
class CallFrame:
    name: str
    arguments: tuple = ()
    timestamp: float = 0.0


@dataclass(frozen=True)
class StepRecord:
    """A single step in the execution trace.

    Captures the statement about to run and a copy of the engine's variable
    map and call stack at that moment.  Safe to retain after the run.
    """

    step: int
    node_id: int
    line: int
    variables: dict[str, VariableSnapshot]
    call_stack: tuple[CallFrame, ...]
    memory_usage: int
    timestamp: float

    def values(self) -> dict[str, Any]:
        """Variable name to captured value."""
        return {name: snap.value for name, snap in self.variables.items()}


@dataclass(frozen=True)
class ConsoleRecord:
    kind: str
    message: str
    timestamp: float


@dataclass(frozen=True)
class ErrorRecord:
    message: str
    name: str = "Error"
    line: int | None = None
    column: int | None = None
    timestamp: float = 0.0

    def __str__(self) -> str:
        location = f" (line {self.line})" if self.line else ""
        return f"{self.name}: {self.message}{location}"


@dataclass(frozen=True)
class ExecutionTrace:
    """Complete trace of an execution run.

    Records delivered before a failure or stop are kept; ``state`` is the
    engine state the run ended in.
    """

    steps: list[StepRecord] = field(default_factory=list)
    console: list[ConsoleRecord] = field(default_factory=list)
    errors: list[ErrorRecord] = field(default_factory=list)
    state: ExecutionState = ExecutionState.IDLE
    stats: ExecutionStats = field(default_factory=ExecutionStats)

    @property
    def output(self) -> list[str]:
        """Console messages in order."""
        return [record.message for record in self.console]
