#!/usr/bin/env python3
"""JavaScript step visualizer: command line front end.

Analyzes, instruments or runs a JavaScript file and prints the result.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys

from visualizer import constants
from visualizer.api import analyze_source, instrument_source
from visualizer.engine import ExecutionEngine
from visualizer.instrument import InstrumentationError
from visualizer.parser import SourceSyntaxError
from visualizer.run_types import ExecutionOptions, ExecutionState
from visualizer.trace_types import ConsoleRecord, ErrorRecord, StepRecord

logger = logging.getLogger(__name__)

DEMO_SOURCE = """\
function fib(n) {
  if (n <= 1) return n;
  return fib(n - 1) + fib(n - 2);
}
console.log(fib(5));
"""


def _print_step(record: StepRecord) -> None:
    frames = " > ".join(frame.name for frame in record.call_stack) or "<main>"
    values = ", ".join(
        f"{name}={json.dumps(snap.value, default=str)}"
        for name, snap in record.variables.items()
    )
    print(f"[step {record.step}] line {record.line}  {frames}  {values}")


def _print_console(record: ConsoleRecord) -> None:
    print(f"console.{record.kind}: {record.message}")


def _print_error(record: ErrorRecord) -> None:
    print(f"error: {record}", file=sys.stderr)


def _positive_float(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: '{text}'")
    if not value > 0:
        raise argparse.ArgumentTypeError(f"must be greater than 0: '{text}'")
    return value


def _run(source: str, args: argparse.Namespace) -> int:
    engine = ExecutionEngine()
    options = ExecutionOptions(
        speed=args.speed,
        on_step=_print_step if args.verbose else None,
        on_console=_print_console,
        on_error=_print_error,
        max_steps=args.max_steps,
    )
    if args.strategy:
        trace = engine.execute_instrumented(instrument_source(source, args.strategy), options)
    else:
        trace = engine.execute(source, options)
    stats = trace.stats
    print(
        f"\n({trace.state.value}: {stats.steps} steps, "
        f"{stats.console_messages} console messages, "
        f"peak memory {stats.peak_memory}, {stats.duration * 1000:.1f}ms)"
    )
    return 1 if trace.state == ExecutionState.FAILED else 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="JavaScript step visualizer")
    parser.add_argument("file", nargs="?", help="JavaScript file to process")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--analyze", action="store_true", help="Print the static analysis report as JSON")
    mode.add_argument("--instrument", action="store_true", help="Print the instrumented source")
    mode.add_argument("--run", action="store_true", help="Execute the program (default)")
    parser.add_argument(
        "--strategy",
        default="",
        choices=["", constants.STRATEGY_STRUCTURAL, constants.STRATEGY_SYNTHESIS],
        help="Instrumentation strategy (default: structural, falling back to synthesis)",
    )
    parser.add_argument(
        "--speed",
        type=_positive_float,
        default=constants.DEFAULT_SPEED,
        help=f"Steps per second (default: {constants.DEFAULT_SPEED:g})",
    )
    parser.add_argument("--max-steps", "-n", type=int, default=None, help="Stop after this many steps")
    parser.add_argument("--verbose", "-v", action="store_true", help="Print every step and debug logging")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.file:
        source = DEMO_SOURCE
        print("No file provided. Using built-in demo:\n")
        print(source)
    else:
        with open(args.file, encoding="utf-8") as f:
            source = f.read()
    logger.info("Processing %s (%d chars)", args.file or "demo", len(source))

    try:
        if args.analyze:
            print(analyze_source(source).model_dump_json(indent=2))
            return 0
        if args.instrument:
            print(instrument_source(source, args.strategy))
            return 0
        return _run(source, args)
    except SourceSyntaxError as exc:
        print(f"SyntaxError: {exc}", file=sys.stderr)
        return 1
    except InstrumentationError as exc:
        print(f"Instrumentation failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
