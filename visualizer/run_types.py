"""Run pipeline data types (pure data, no business logic)."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable

from . import constants


class ExecutionState(Enum):
    """Lifecycle of one engine run."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"
    STOPPED = "stopped"


@dataclass(frozen=True)
class ExecutionOptions:
    """Groups execution configuration for one run.

    ``speed`` is in steps per second: the engine waits ``1000 / speed`` ms
    after delivering each step.  ``max_steps`` (``None`` for no limit) stops
    the run once that many steps have been delivered.
    """

    speed: float = constants.DEFAULT_SPEED
    on_step: Callable | None = None
    on_console: Callable | None = None
    on_error: Callable | None = None
    max_steps: int | None = None

    def step_delay(self) -> float:
        """Seconds to wait after each step."""
        if self.speed <= 0:
            raise ValueError(f"speed must be positive, got {self.speed}")
        return 1.0 / self.speed


@dataclass(frozen=True)
class ExecutionControlState:
    """Read-only snapshot of the control flags; ``paused`` implies ``running``."""

    running: bool = False
    paused: bool = False
    current_step: int = 0


@dataclass
class ExecutionStats:
    """Returned execution metrics from one run."""

    steps: int = 0
    console_messages: int = 0
    peak_memory: int = 0
    duration: float = 0.0
