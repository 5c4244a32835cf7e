"""Tests for the static analyzer."""

import pytest

from visualizer.analysis_types import AnalysisReport, Severity
from visualizer.analyzer import analyze
from visualizer.api import analyze_source
from visualizer.parser import SourceSyntaxError, parse

FIB_SOURCE = """\
function fib(n) {
  if (n <= 1) return n;
  return fib(n - 1) + fib(n - 2);
}
console.log(fib(5));
"""


class TestFunctions:
    def test_recursive_function(self):
        report = analyze_source(FIB_SOURCE)
        fib = report.function("fib")
        assert fib is not None
        assert fib.kind == "declaration"
        assert fib.params == ["n"]
        assert fib.is_recursive
        assert fib.line == 1
        assert fib.column == 0

    def test_program_complexity(self):
        report = analyze_source(FIB_SOURCE)
        assert report.complexity == 2
        assert report.function("fib").complexity == 2

    def test_every_decision_point_counts(self):
        source = """\
function f(a, b, c) {
  try {} catch (e) {}
  switch (a) { case 1: case 2: default: }
  return a && b || c ? 1 : 2;
}
"""
        report = analyze_source(source)
        assert report.function("f").complexity == 7
        assert report.complexity == 7

    @pytest.mark.parametrize(
        "addition",
        [
            "if (a) {}",
            "while (a) {}",
            "do {} while (a);",
            "for (;;) {}",
            "for (const k of b) {}",
            "for (const k in b) {}",
            "c = a ? 1 : 2;",
            "c = a && b;",
            "c = a || b;",
            "c = a ?? b;",
            "try {} catch (e) {}",
            "switch (a) { case 1: break; }",
            "switch (a) { default: break; }",
        ],
    )
    def test_complexity_never_decreases(self, addition):
        base = "function g(a, b, c) {\n  return a;\n}\n"
        grown = base.replace("  return a;", f"  {addition}\n  return a;")
        before = analyze_source(base).function("g").complexity
        after = analyze_source(grown).function("g").complexity
        assert after >= before
        assert after - before == (0 if "??" in addition or "default" in addition else 1)

    def test_non_recursive_function(self):
        report = analyze_source("function add(a, b) { return a + b; }\n")
        assert not report.function("add").is_recursive

    def test_arrow_function(self):
        report = analyze_source("const sq = (x) => x * x;\n")
        (func,) = report.functions
        assert func.kind == "arrow"
        assert func.name == "arrow function"
        assert func.params == ["x"]

    def test_anonymous_function_expression(self):
        report = analyze_source("const f = function (a) { return a; };\n")
        (func,) = report.functions
        assert func.kind == "expression"
        assert func.name == "anonymous"

    def test_method_definition(self):
        report = analyze_source("class A { area(w, h) { return w * h; } }\n")
        area = report.function("area")
        assert area.kind == "method"
        assert area.params == ["w", "h"]

    def test_high_complexity_suggestion(self):
        conditions = "\n".join(f"  if (x === {i}) return {i};" for i in range(11))
        source = f"function big(x) {{\n{conditions}\n  return -1;\n}}\n"
        report = analyze_source(source)
        assert report.function("big").complexity == 12
        high = report.suggestions_with(Severity.HIGH)
        assert len(high) == 1
        assert "big" in high[0].message


class TestVariables:
    def test_var_let_const(self):
        report = analyze_source("var a = 1; let b; const c = 3;\n")
        kinds = {v.name: v.kind for v in report.variables}
        assert kinds == {"a": "var", "b": "let", "c": "const"}

    def test_var_suggestion_is_medium(self):
        report = analyze_source("var x = 1; let y = 2;\n")
        assert len(report.suggestions) == 1
        suggestion = report.suggestions[0]
        assert suggestion.severity == Severity.MEDIUM
        assert suggestion.kind == "warning"
        assert suggestion.line == 1

    def test_initializer_flag(self):
        report = analyze_source("let a = 1; let b;\n")
        flags = {v.name: v.has_initializer for v in report.variables}
        assert flags == {"a": True, "b": False}

    def test_reassignment_tracked(self):
        report = analyze_source("let a = 1; let b = 2; a += 1; b;\n")
        reassigned = {v.name: v.reassigned for v in report.variables}
        assert reassigned == {"a": True, "b": False}

    def test_update_expression_counts_as_reassignment(self):
        report = analyze_source("let i = 0; i++;\n")
        assert report.variables[0].reassigned

    def test_scopes(self):
        source = """\
let g = 1;
function f() {
  var v = 2;
  let l = 3;
  if (l) { let inner = 4; }
}
"""
        report = analyze_source(source)
        scopes = {v.name: v.scope for v in report.variables}
        assert scopes == {
            "g": "global",
            "v": "function",
            "l": "function",
            "inner": "block",
        }


class TestLoops:
    def test_while_true_is_infinite(self):
        report = analyze_source("while (true) {}\n")
        (loop,) = report.loops
        assert loop.kind == "while"
        assert loop.is_infinite
        critical = report.suggestions_with(Severity.CRITICAL)
        assert len(critical) == 1
        assert critical[0].kind == "error"

    def test_for_without_test_is_infinite(self):
        report = analyze_source("for (;;) { break; }\n")
        (loop,) = report.loops
        assert loop.is_infinite
        assert loop.has_init is False
        assert loop.has_test is False
        assert loop.has_update is False

    def test_bounded_for_loop(self):
        report = analyze_source("for (let i = 0; i < 3; i++) {}\n")
        (loop,) = report.loops
        assert loop.kind == "for"
        assert loop.has_init and loop.has_test and loop.has_update
        assert not loop.is_infinite
        assert report.suggestions == []

    def test_for_of_and_for_in(self):
        report = analyze_source(
            "for (const x of [1]) {}\nfor (const k in {a: 1}) {}\n"
        )
        assert [loop.kind for loop in report.loops] == ["for-of", "for-in"]

    def test_do_while(self):
        report = analyze_source("let i = 0; do { i++; } while (i < 3);\n")
        assert report.loops[0].kind == "do-while"


class TestConditionals:
    def test_if_else_if(self):
        report = analyze_source("if (a) {} else if (b) {} else {}\n")
        outer, inner = report.conditionals
        assert outer.kind == "if"
        assert outer.has_else
        assert outer.is_else_if
        assert inner.has_else
        assert not inner.is_else_if

    def test_condition_complexity(self):
        report = analyze_source("if (a > 1 && b < 2) {}\n")
        assert report.conditionals[0].complexity == 4

    def test_ternary(self):
        report = analyze_source("const y = x ? 1 : 2;\n")
        assert report.conditionals[0].kind == "ternary"

    def test_switch(self):
        source = "switch (x) { case 1: break; case 2: break; default: break; }\n"
        report = analyze_source(source)
        switch = report.conditionals[0]
        assert switch.kind == "switch"
        assert switch.case_count == 3
        assert switch.has_default


class TestDependencies:
    def test_builtins_and_globals(self):
        source = "parseInt('4'); Math.max(1, 2); Math.min(1, 2); JSON.stringify({});\n"
        deps = analyze_source(source).dependencies
        assert deps.builtins == ["parseInt"]
        assert deps.globals == ["Math", "JSON"]

    def test_imports(self):
        source = "import fs, { readFile as rf, join } from 'fs';\nimport * as path from 'path';\n"
        deps = analyze_source(source).dependencies
        assert [i.source for i in deps.imports] == ["fs", "path"]
        assert deps.imports[0].specifiers == ["fs", "rf", "join"]
        assert deps.imports[1].specifiers == ["path"]


class TestMetrics:
    def test_counts(self):
        report = analyze_source(FIB_SOURCE)
        metrics = report.metrics
        assert metrics.lines_of_code == 5
        assert metrics.functions == 1
        assert metrics.variables == 0
        assert metrics.complexity == report.complexity
        assert metrics.statements >= 4
        assert metrics.expressions >= 5

    def test_report_serializes_to_json(self):
        report = analyze_source(FIB_SOURCE)
        restored = AnalysisReport.model_validate_json(report.model_dump_json())
        assert restored == report


class TestAnalyzeErrors:
    def test_syntax_error_propagates(self):
        with pytest.raises(SourceSyntaxError) as exc_info:
            analyze_source("function( { ")
        assert exc_info.value.line == 1

    def test_analyze_accepts_parsed_tree(self):
        report = analyze(parse("let x = 1;\n"))
        assert report.variables[0].name == "x"
