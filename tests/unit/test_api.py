"""Tests for the composable API functions in visualizer.api."""

import pytest

from visualizer.analysis_types import AnalysisReport
from visualizer.api import (
    analyze_source,
    execute_source,
    execute_traced,
    instrument_source,
    parse_source,
)
from visualizer.parser import SourceSyntaxError, SyntaxTree
from visualizer.run_types import ExecutionOptions, ExecutionState
from visualizer.trace_types import ExecutionTrace

SIMPLE_SOURCE = "let x = 42;\nconsole.log(x);\n"

FUNCTION_SOURCE = """\
function greet(name) {
  return "hi " + name;
}
console.log(greet("world"));
"""

FAST = 1_000_000.0


class TestParseSource:
    def test_returns_syntax_tree(self):
        tree = parse_source(SIMPLE_SOURCE)
        assert isinstance(tree, SyntaxTree)
        assert tree.root.type == "program"
        assert tree.source == SIMPLE_SOURCE.encode("utf-8")

    def test_invalid_source(self):
        with pytest.raises(SourceSyntaxError):
            parse_source("let = ;")


class TestAnalyzeSource:
    def test_returns_report(self):
        report = analyze_source(FUNCTION_SOURCE)
        assert isinstance(report, AnalysisReport)
        assert [f.name for f in report.functions] == ["greet"]

    def test_report_serializes(self):
        report = analyze_source(FUNCTION_SOURCE)
        assert AnalysisReport.model_validate_json(report.model_dump_json()) == report


class TestInstrumentSource:
    def test_default_strategy(self):
        output = instrument_source(SIMPLE_SOURCE)
        assert output.startswith("__step(0, 1); let x = 42;")

    def test_synthesis_strategy(self):
        output = instrument_source(SIMPLE_SOURCE, "synthesis")
        assert output.splitlines()[:2] == ["__step(0, 1);", "let x = 42;"]

    def test_unknown_strategy(self):
        with pytest.raises(ValueError):
            instrument_source(SIMPLE_SOURCE, "bogus")


class TestExecuteSource:
    def test_returns_trace(self):
        trace = execute_source(FUNCTION_SOURCE, ExecutionOptions(speed=FAST))
        assert isinstance(trace, ExecutionTrace)
        assert trace.output == ["hi world"]
        assert trace.state == ExecutionState.COMPLETED


class TestExecuteTraced:
    def test_records_steps(self):
        trace = execute_traced(SIMPLE_SOURCE, speed=FAST)
        assert [s.line for s in trace.steps] == [1, 2]
        assert trace.steps[1].values() == {"x": 42}

    def test_max_steps(self):
        trace = execute_traced(FUNCTION_SOURCE, max_steps=1, speed=FAST)
        assert trace.state == ExecutionState.STOPPED
        assert len(trace.steps) == 1
        assert trace.output == []
