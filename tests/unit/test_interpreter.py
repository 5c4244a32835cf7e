"""Tests for the tree-walking interpreter on plain (uninstrumented) programs."""

import sys

import pytest

from visualizer.runtime import (
    ExecutionContext,
    Interpreter,
    JSError,
    JSThrow,
    to_python,
)
from visualizer.runtime.interpreter import RECURSION_LIMIT


def run_js(source, **hooks):
    """Run *source* and return every value passed to console.*, in order."""
    logged = []
    context = ExecutionContext(
        console=lambda kind, args: logged.extend(to_python(a) for a in args), **hooks
    )
    Interpreter(context).run_source(source)
    return logged


def run_js_error(source):
    """Run *source* expecting an uncaught exception; return (name, message)."""
    interp = Interpreter()
    with pytest.raises((JSError, JSThrow)) as exc_info:
        interp.run_source(source)
    return interp.error_details(exc_info.value)


class TestExpressions:
    def test_arithmetic_and_concatenation(self):
        assert run_js('console.log(1 + 2 * 3); console.log("a" + 1); console.log(7 / 2);') == [
            7,
            "a1",
            3.5,
        ]

    def test_logical_operators_short_circuit(self):
        source = """\
let calls = 0;
function bump() { calls++; return true; }
false && bump();
true || bump();
null ?? bump();
console.log(calls);
"""
        assert run_js(source) == [1]

    def test_template_literal(self):
        assert run_js("const n = 3; console.log(`n is ${n + 1}!`);") == ["n is 4!"]

    def test_string_escapes(self):
        assert run_js(r'console.log("a\tbA\x42");') == ["a\tbAB"]

    def test_typeof_undeclared(self):
        assert run_js("console.log(typeof nope); console.log(typeof (() => 1));") == [
            "undefined",
            "function",
        ]

    def test_optional_chaining_and_nullish(self):
        source = """\
const o = { a: { b: 1 } };
console.log(o?.a?.b);
console.log(o.x?.y);
console.log(o.x ?? "fallback");
"""
        assert run_js(source) == [1, None, "fallback"]

    def test_augmented_and_update(self):
        source = "let x = 5; x += 2; x *= 3; x **= 2; let y = x++; console.log([x, y, --x]);"
        assert run_js(source) == [[442, 441, 441]]


class TestScoping:
    def test_closure_counter(self):
        source = """\
function makeCounter() {
  let n = 0;
  return () => ++n;
}
const c = makeCounter();
c(); c();
console.log(c());
"""
        assert run_js(source) == [3]

    def test_let_binding_per_iteration(self):
        source = """\
const fns = [];
for (let i = 0; i < 3; i++) fns.push(() => i);
console.log(fns.map(f => f()));
"""
        assert run_js(source) == [[0, 1, 2]]

    def test_var_and_function_hoisting(self):
        source = """\
console.log(typeof x);
console.log(square(4));
var x = 1;
function square(n) { return n * n; }
"""
        assert run_js(source) == ["undefined", 16]

    def test_temporal_dead_zone(self):
        name, message = run_js_error("console.log(y); let y = 1;")
        assert name == "ReferenceError"
        assert "before initialization" in message

    def test_const_assignment(self):
        name, message = run_js_error("const a = 1; a = 2;")
        assert (name, message) == ("TypeError", "Assignment to constant variable.")

    def test_implicit_global(self):
        assert run_js("function f() { g = 3; } f(); console.log(g);") == [3]

    def test_undefined_variable(self):
        assert run_js_error("missing + 1;") == ("ReferenceError", "missing is not defined")


class TestControlFlow:
    def test_labeled_continue(self):
        source = """\
const out = [];
outer: for (let i = 0; i < 3; i++) {
  for (let j = 0; j < 3; j++) {
    if (j === 1) continue outer;
    out.push(`${i}${j}`);
  }
}
console.log(out.join(","));
"""
        assert run_js(source) == ["00,10,20"]

    def test_switch_fallthrough(self):
        source = """\
function f(x) {
  let r = "";
  switch (x) {
    case 1: r += "a";
    case 2: r += "b"; break;
    default: r += "d";
  }
  return r;
}
console.log(f(1)); console.log(f(2)); console.log(f(3));
"""
        assert run_js(source) == ["ab", "b", "d"]

    def test_loops(self):
        source = """\
const o = { x: 1, y: 2 };
const keys = [];
for (const k in o) keys.push(k);
let total = 0;
for (const v of [1, 2, 3]) total += v;
let n = 0;
do { n++; } while (n < 5);
while (true) { if (--n === 2) break; }
console.log(keys); console.log(total); console.log(n);
"""
        assert run_js(source) == [["x", "y"], 6, 2]

    def test_try_catch_finally(self):
        source = """\
const log = [];
try {
  null.x;
} catch (e) {
  log.push(e instanceof TypeError, e.name);
} finally {
  log.push("done");
}
console.log(log);
"""
        assert run_js(source) == [[True, "TypeError", "done"]]

    def test_finally_runs_on_return(self):
        source = """\
const log = [];
function f() { try { return "body"; } finally { log.push("cleanup"); } }
log.push(f());
console.log(log);
"""
        assert run_js(source) == [["cleanup", "body"]]


class TestFunctions:
    def test_default_params_and_arguments(self):
        source = "function f(a, b = a * 2) { return [a, b, arguments.length]; } console.log(f(3));"
        assert run_js(source) == [[3, 6, 1]]

    def test_rest_and_spread(self):
        source = "function sum(...xs) { return xs.reduce((a, b) => a + b, 0); } console.log(sum(...[1, 2], 3));"
        assert run_js(source) == [6]

    def test_destructuring(self):
        source = """\
const { a, b: [c, d = 4], ...rest } = { a: 1, b: [3], e: 5, f: 6 };
let p = 1, q = 2;
[p, q] = [q, p];
console.log([a, c, d]); console.log(rest); console.log([p, q]);
"""
        assert run_js(source) == [[1, 3, 4], {"e": 5, "f": 6}, [2, 1]]

    def test_this_binding(self):
        source = """\
const obj = { v: 2, value() { return this.v; } };
const g = obj.value;
console.log(obj.value());
console.log(g.call({ v: 5 }));
console.log(g.bind({ v: 7 })());
"""
        assert run_js(source) == [2, 5, 7]

    def test_function_name_inference(self):
        source = "const sq = (x) => x * x; const o = { m: function () {} }; console.log(sq.name, o.m.name);"
        assert run_js(source) == ["sq", "m"]

    def test_recursion_limit(self):
        name, message = run_js_error("function f(n) { return f(n + 1); } f(0);")
        assert (name, message) == ("RangeError", "Maximum call stack size exceeded")


class TestClasses:
    def test_inheritance_getter_and_static(self):
        source = """\
class Shape {
  constructor(name) { this.name = name; }
  describe() { return `${this.name} with area ${this.area}`; }
  static create() { return new Square(2); }
}
class Square extends Shape {
  constructor(side) { super("square"); this.side = side; }
  get area() { return this.side * this.side; }
}
const s = Shape.create();
console.log(s.describe());
console.log(s instanceof Shape);
"""
        assert run_js(source) == ["square with area 4", True]

    def test_fields_and_super_method(self):
        source = """\
class A { greet() { return "A"; } }
class B extends A {
  count = 1;
  static label = "bee";
  greet() { return super.greet() + "B" + this.count; }
}
console.log(new B().greet()); console.log(B.label);
"""
        assert run_js(source) == ["AB1", "bee"]

    def test_error_subclass(self):
        source = """\
class MyErr extends Error {
  constructor(m) { super(m); this.name = "MyErr"; }
}
try { throw new MyErr("bad"); } catch (e) {
  console.log(e.name + ": " + e.message);
  console.log(e instanceof Error);
}
"""
        assert run_js(source) == ["MyErr: bad", True]

    def test_class_called_without_new(self):
        name, _ = run_js_error("class A {} A();")
        assert name == "TypeError"


class TestUncaught:
    def test_thrown_error_object(self):
        assert run_js_error('throw new Error("boom");') == ("Error", "boom")

    def test_thrown_primitive(self):
        assert run_js_error('throw "oops";') == ("Error", "oops")

    def test_calling_non_function(self):
        name, message = run_js_error("const x = 1; x();")
        assert (name, message) == ("TypeError", "x is not a function")

    def test_regex_literal_unsupported(self):
        name, _ = run_js_error("const r = /ab+c/;")
        assert name == "SyntaxError"

    def test_generator_unsupported(self):
        name, _ = run_js_error("function* g() { yield 1; } g();")
        assert name == "TypeError"


class TestRecursionLimit:
    def test_limit_raised_for_the_run(self):
        assert run_js("function d(n) { return n === 0 ? 0 : d(n - 1); } console.log(d(100));") == [0]
        assert sys.getrecursionlimit() >= RECURSION_LIMIT

    def test_higher_limit_left_alone(self, monkeypatch):
        calls = []
        monkeypatch.setattr(sys, "getrecursionlimit", lambda: RECURSION_LIMIT * 2)
        monkeypatch.setattr(sys, "setrecursionlimit", calls.append)
        assert run_js("console.log(1);") == [1]
        assert calls == []


class TestHooks:
    def test_hook_globals_reach_context(self):
        steps, tracked, frames = [], [], []
        source = """\
__step(3, 7);
__trackVariable("x", 41);
__enterFunction("f", [1, 2]);
console.log(__exitFunction(5));
"""
        logged = run_js(
            source,
            step=lambda node_id, line: steps.append((node_id, line)),
            track_variable=lambda name, value: tracked.append((name, to_python(value))),
            enter_function=lambda name, args: frames.append((name, [to_python(a) for a in args])),
        )
        assert steps == [(3, 7)]
        assert tracked == [("x", 41)]
        assert frames == [("f", [1, 2])]
        assert logged == [5]

    def test_hooks_are_constant(self):
        name, _ = run_js_error("__step = 1;")
        assert name == "TypeError"

    def test_console_kinds(self):
        kinds = []
        Interpreter(ExecutionContext(console=lambda kind, args: kinds.append(kind))).run_source(
            'console.log(1); console.warn(2); console.error(3); console.info(4);'
        )
        assert kinds == ["log", "warn", "error", "info"]
