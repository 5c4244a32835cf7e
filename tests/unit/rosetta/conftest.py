"""Shared helpers for the Rosetta cross-strategy test suite.

Each Rosetta program is instrumented with every strategy, executed on the
engine, and checked against the same program run without instrumentation.
"""

import logging

from visualizer import constants
from visualizer.analyzer import analyze
from visualizer.engine import ExecutionEngine
from visualizer.instrument import instrument
from visualizer.parser import parse
from visualizer.run_types import ExecutionOptions
from visualizer.runtime import ExecutionContext, Interpreter, to_python
from visualizer.trace_types import ExecutionTrace

logger = logging.getLogger(__name__)

STRATEGIES: tuple[str, ...] = (
    constants.STRATEGY_STRUCTURAL,
    constants.STRATEGY_SYNTHESIS,
)

FAST_SPEED = 1_000_000.0


def instrument_for_strategy(strategy: str, source: str) -> str:
    """Parse *source* and instrument it with the named strategy."""
    return instrument(parse(source), strategy)


def hook_count(instrumented: str, hook: str) -> int:
    """Number of call sites of *hook* in instrumented text."""
    return instrumented.count(f"{hook}(")


def assert_clean_instrumentation(
    source: str,
    instrumented: str,
    *,
    min_steps: int,
    strategy: str,
) -> None:
    """Run the standard 4-tier assertion battery on one instrumented program."""
    # Tier 1: output parses
    parse(instrumented)

    # Tier 2: no unsupported placeholders
    assert (
        "Unsupported node type" not in instrumented
    ), f"[{strategy}] instrumented output contains unsupported placeholders"

    # Tier 3: minimum step hooks
    steps = hook_count(instrumented, constants.STEP_HOOK)
    assert steps >= min_steps, f"[{strategy}] expected >= {min_steps} step hooks, got {steps}"

    # Tier 4: one enter hook per analyzed function
    functions = analyze(parse(source)).functions
    enters = hook_count(instrumented, constants.ENTER_FUNCTION_HOOK)
    assert enters == len(functions), (
        f"[{strategy}] {enters} enter hooks for {len(functions)} functions"
    )


def execute_for_strategy(
    strategy: str, source: str, max_steps: int = 20000
) -> ExecutionTrace:
    """Instrument *source* with *strategy* and run it on a fresh engine."""
    logger.info("Executing program under %s (max_steps=%d)", strategy, max_steps)
    instrumented = instrument_for_strategy(strategy, source)
    trace = ExecutionEngine().execute_instrumented(
        instrumented, ExecutionOptions(speed=FAST_SPEED, max_steps=max_steps)
    )
    logger.info(
        "Execution complete for %s: %d steps, state %s",
        strategy,
        trace.stats.steps,
        trace.state.value,
    )
    return trace


def run_uninstrumented(source: str) -> object:
    """Run *source* as written and return the first argument of its last console call."""
    calls: list[list] = []
    Interpreter(ExecutionContext(console=lambda kind, args: calls.append(args))).run_source(source)
    assert calls, "program logged nothing"
    return to_python(calls[-1][0])


def extract_answer(trace: ExecutionTrace, strategy: str) -> object:
    """Extract the ``answer`` variable from the last step's snapshot."""
    assert trace.steps, f"[{strategy}] no steps recorded"
    variables = trace.steps[-1].values()
    assert "answer" in variables, (
        f"[{strategy}] expected 'answer' in captured variables, got: {sorted(variables)}"
    )
    return variables["answer"]


def assert_cross_strategy_consistency(traces: dict[str, ExecutionTrace]) -> None:
    """Every strategy must walk the same steps and print the same output."""
    assert set(traces) == set(STRATEGIES), f"Missing strategies: {set(STRATEGIES) - set(traces)}"

    reference = traces[constants.STRATEGY_STRUCTURAL]
    expected_path = [(r.node_id, r.line) for r in reference.steps]
    for strategy, trace in traces.items():
        path = [(r.node_id, r.line) for r in trace.steps]
        assert path == expected_path, f"[{strategy}] step path differs from structural"
        assert trace.output == reference.output, f"[{strategy}] console output differs"
        assert (
            trace.steps[-1].values() == reference.steps[-1].values()
        ), f"[{strategy}] final variables differ"
