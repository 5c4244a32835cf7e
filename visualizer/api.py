"""Composable API functions for the visualizer pipelines.

Each function corresponds to a CLI workflow (--analyze, --instrument, --run)
but is callable programmatically without argparse.
"""

from __future__ import annotations

import logging

from . import constants
from .analysis_types import AnalysisReport
from .analyzer import analyze
from .engine import ExecutionEngine
from .instrument import instrument
from .parser import SyntaxTree, parse
from .run_types import ExecutionOptions
from .trace_types import ExecutionTrace

logger = logging.getLogger(__name__)


def parse_source(source: str) -> SyntaxTree:
    """Parse JavaScript source; raises SourceSyntaxError on invalid input."""
    logger.info("Parsing source (%d chars)", len(source))
    return parse(source)


def analyze_source(source: str) -> AnalysisReport:
    """Parse and statically analyze source code.

    Args:
        source: The JavaScript source text.

    Returns:
        The AnalysisReport for the whole program.
    """
    return analyze(parse_source(source))


def instrument_source(source: str, strategy: str = "") -> str:
    """Return the instrumented form of *source*.

    Args:
        source: The JavaScript source text.
        strategy: "structural", "synthesis", or empty for structural with
            synthesis as the fallback.
    """
    logger.info("Instrumenting source (strategy=%s)", strategy or "auto")
    return instrument(parse_source(source), strategy)


def execute_source(source: str, options: ExecutionOptions | None = None) -> ExecutionTrace:
    """Run *source* on a fresh engine and return its trace."""
    return ExecutionEngine().execute(source, options)


def execute_traced(
    source: str,
    max_steps: int | None = None,
    speed: float = constants.DEFAULT_SPEED,
) -> ExecutionTrace:
    """Parse, instrument and execute with full trace recording.

    Composes: parse_source → instrument → ExecutionEngine.execute.  Returns
    an ExecutionTrace whose StepRecords hold per-step variable snapshots
    suitable for replay.

    Args:
        source: The JavaScript source text.
        max_steps: Stop after this many steps (``None`` for no limit).
        speed: Steps per second.

    Returns:
        An ExecutionTrace with steps, console output, errors and stats.
    """
    logger.info("execute_traced: max_steps=%s, speed=%s", max_steps, speed)
    return execute_source(source, ExecutionOptions(speed=speed, max_steps=max_steps))
