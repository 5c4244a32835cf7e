"""Tree-walking JavaScript interpreter over tree-sitter syntax trees."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import Any, Callable

from .. import constants
from ..parser import SyntaxTree, parse
from ..syntax import (
    COMMENT_TYPES,
    LOOP_NODE_TYPES,
    declaration_kind,
    declared_names,
    bound_names,
    function_params,
    has_child_token,
    named_children,
    node_text,
    operator_token,
    unwrap_clause,
    walk_scope,
)
from .builtins import Realm
from .control import (
    BreakSignal,
    ContinueSignal,
    ExecutionStopped,
    JSError,
    JSThrow,
    OptionalChainShortCircuit,
    ReturnSignal,
)
from .environment import UNINITIALIZED, Binding, Environment
from .operators import (
    Operators,
    default_to_string,
    loose_equals,
    number_to_string,
    strict_equals,
    to_boolean,
    to_integer,
)
from .operators import to_number as primitive_to_number
from .values import (
    ABSENT,
    UNDEFINED,
    Accessor,
    JSArray,
    JSDate,
    JSFunction,
    JSMap,
    JSObject,
    JSSet,
    NativeFunction,
    array_index,
    is_callable,
    is_nullish,
    type_of,
)

logger = logging.getLogger(__name__)

RECURSION_LIMIT = 10000

_GENERATOR_TYPES: frozenset[str] = frozenset(
    {"generator_function_declaration", "generator_function"}
)

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}

_CHAIN_TYPES: frozenset[str] = frozenset(
    {"member_expression", "subscript_expression", "call_expression"}
)


def _noop(*args) -> None:
    return None


@dataclass
class ExecutionContext:
    """Callbacks the instrumented program reaches through its hook globals."""

    step: Callable[[int, int], None] = _noop
    track_variable: Callable[[str, Any], None] = _noop
    enter_function: Callable[[str, list], None] = _noop
    exit_function: Callable[[Any], None] = _noop
    update_memory: Callable[[], None] = _noop
    console: Callable[[str, list], None] = _noop


def ensure_recursion_limit(limit: int = RECURSION_LIMIT) -> None:
    """Raise the process-wide recursion limit to *limit*.

    The limit is shared by every thread and is never lowered or restored, so
    concurrent runs cannot undo each other.
    """
    if sys.getrecursionlimit() < limit:
        sys.setrecursionlimit(limit)


def decode_escape(sequence: str) -> str:
    body = sequence[1:]
    if not body:
        return ""
    head = body[0]
    if head in _SIMPLE_ESCAPES and len(body) == 1:
        return _SIMPLE_ESCAPES[head]
    if head == "x":
        return chr(int(body[1:3], 16))
    if head == "u":
        if body[1:2] == "{":
            return chr(int(body[2:-1], 16))
        return chr(int(body[1:5], 16))
    if head in "\r\n\u2028\u2029":
        return ""
    return body


def parse_number_literal(text: str) -> float:
    cleaned = text.replace("_", "")
    if cleaned.endswith("n"):
        cleaned = cleaned[:-1]
    prefix = cleaned[:2].lower()
    if prefix == "0x":
        return float(int(cleaned[2:], 16))
    if prefix == "0o":
        return float(int(cleaned[2:], 8))
    if prefix == "0b":
        return float(int(cleaned[2:], 2))
    if len(cleaned) > 1 and cleaned[0] == "0" and cleaned.isdigit():
        if all(c in "01234567" for c in cleaned):
            return float(int(cleaned, 8))
    return float(cleaned)


def _join_surrogates(text: str) -> str:
    if any("\ud800" <= c <= "\udfff" for c in text):
        return text.encode("utf-16", "surrogatepass").decode("utf-16", "replace")
    return text


class _Reference:
    """An assignable location: a variable or an object property."""

    def __init__(self, interp: Interpreter, env: Environment, name=None, obj=None, key=None):
        self.interp = interp
        self.env = env
        self.name = name
        self.obj = obj
        self.key = key

    def get(self) -> Any:
        if self.name is not None:
            return self.env.get(self.name)
        return self.interp.get_property(self.obj, self.key)

    def set(self, value: Any) -> None:
        if self.name is not None:
            self.env.assign(self.name, value)
        else:
            self.interp.set_property(self.obj, self.key, value)


class Interpreter:
    """Evaluates a parsed program.

    Statements and expressions are dispatched on the tree-sitter node type
    through ``_STMT_DISPATCH`` / ``_EXPR_DISPATCH``.  JavaScript exceptions
    travel as JSThrow / JSError; ``break``, ``continue`` and ``return`` as
    control signals.
    """

    def __init__(self, context: ExecutionContext | None = None):
        self.context = context or ExecutionContext()
        self.realm: Realm | None = None
        self._source: bytes = b""
        self._depth: int = 0
        self._STMT_DISPATCH: dict[str, Callable] = {
            "expression_statement": self._exec_expression_statement,
            "lexical_declaration": self._exec_declaration,
            "variable_declaration": self._exec_declaration,
            "statement_block": self._exec_block,
            "if_statement": self._exec_if,
            "while_statement": self._exec_while,
            "do_statement": self._exec_do,
            "for_statement": self._exec_for,
            "for_in_statement": self._exec_for_in,
            "return_statement": self._exec_return,
            "break_statement": self._exec_break,
            "continue_statement": self._exec_continue,
            "throw_statement": self._exec_throw,
            "try_statement": self._exec_try,
            "switch_statement": self._exec_switch,
            "labeled_statement": self._exec_labeled,
            "empty_statement": _noop,
            "debugger_statement": _noop,
            "function_declaration": _noop,
            "generator_function_declaration": _noop,
            "class_declaration": self._exec_class_declaration,
            "import_statement": self._exec_module_statement,
            "export_statement": self._exec_module_statement,
        }
        self._EXPR_DISPATCH: dict[str, Callable] = {
            "identifier": self._eval_identifier,
            "number": self._eval_number,
            "string": self._eval_string,
            "template_string": self._eval_template,
            "true": lambda node, env: True,
            "false": lambda node, env: False,
            "null": lambda node, env: None,
            "undefined": lambda node, env: UNDEFINED,
            "this": lambda node, env: env.lookup_this(),
            "regex": self._eval_regex,
            "array": self._eval_array,
            "object": self._eval_object,
            "function_expression": self._eval_function,
            "function": self._eval_function,
            "generator_function": self._eval_function,
            "arrow_function": self._eval_function,
            "class": self._eval_class,
            "member_expression": self._eval_chain,
            "subscript_expression": self._eval_chain,
            "call_expression": self._eval_chain,
            "new_expression": self._eval_new,
            "parenthesized_expression": self._eval_parenthesized,
            "binary_expression": self._eval_binary,
            "unary_expression": self._eval_unary,
            "update_expression": self._eval_update,
            "assignment_expression": self._eval_assignment,
            "augmented_assignment_expression": self._eval_augmented,
            "ternary_expression": self._eval_ternary,
            "sequence_expression": self._eval_sequence,
            "await_expression": self._eval_await,
        }

    # ── entry points ─────────────────────────────────────────────

    def run(self, tree: SyntaxTree) -> None:
        """Execute *tree* to completion.

        Uncaught JavaScript exceptions propagate as JSThrow / JSError.
        """
        self._source = tree.source
        self._depth = 0
        self.realm = Realm(self)
        global_env = Environment(has_this=True, this=UNDEFINED)
        for name, value in self.realm.globals().items():
            global_env.declare(name, "var", value)
        self._install_hooks(global_env)
        root = tree.root
        logger.info("Running program (%d bytes)", len(tree.source))
        ensure_recursion_limit()
        self._hoist_function_scope(root, global_env)
        self._exec_statements(named_children(root), global_env)

    def run_source(self, source: str) -> None:
        self.run(parse(source))

    def _install_hooks(self, env: Environment) -> None:
        ctx = self.context

        def step(interp, this, args):
            ctx.step(
                int(primitive_to_number(_arg(args, 0))),
                int(primitive_to_number(_arg(args, 1))),
            )
            return UNDEFINED

        def track_variable(interp, this, args):
            ctx.track_variable(self.to_string(_arg(args, 0)), _arg(args, 1))
            return UNDEFINED

        def enter_function(interp, this, args):
            params = _arg(args, 1)
            values = list(params.elements) if isinstance(params, JSArray) else []
            ctx.enter_function(self.to_string(_arg(args, 0)), values)
            return UNDEFINED

        def exit_function(interp, this, args):
            value = _arg(args, 0)
            ctx.exit_function(value)
            return value

        def update_memory(interp, this, args):
            ctx.update_memory()
            return UNDEFINED

        hooks = {
            constants.STEP_HOOK: step,
            constants.TRACK_VARIABLE_HOOK: track_variable,
            constants.ENTER_FUNCTION_HOOK: enter_function,
            constants.EXIT_FUNCTION_HOOK: exit_function,
            constants.UPDATE_MEMORY_HOOK: update_memory,
        }
        for name, fn in hooks.items():
            env.declare(name, "const", self.new_function(name, fn))

        console = self.new_object()
        for kind in constants.CONSOLE_KINDS:
            console.properties[kind] = self.new_function(kind, self._console_method(kind))
        env.declare("console", "var", console)

    def _console_method(self, kind: str) -> Callable:
        def method(interp, this, args):
            self.context.console(kind, list(args))
            return UNDEFINED

        return method

    # ── object helpers used by built-ins ─────────────────────────

    def new_object(self, proto: JSObject | None = None) -> JSObject:
        return JSObject(proto=proto or self.realm.object_prototype)

    def new_array(self, elements=()) -> JSArray:
        return JSArray(list(elements), proto=self.realm.array_prototype)

    def new_function(self, name: str, fn: Callable, construct: Callable | None = None) -> NativeFunction:
        return NativeFunction(
            name, fn, proto=self.realm.function_prototype, construct=construct
        )

    def make_error(self, name: str, message: str) -> JSObject:
        ctor = self.realm.error_constructors.get(name, self.realm.error_constructors["Error"])
        proto = ctor.properties["prototype"]
        error = JSObject(proto=proto, class_name="Error")
        error.properties["message"] = message
        error.properties["stack"] = f"{name}: {message}"
        return error

    def prototype_for(self, new_target: Any, fallback: JSObject) -> JSObject:
        if isinstance(new_target, JSObject):
            proto = self.get_property(new_target, "prototype")
            if isinstance(proto, JSObject):
                return proto
        return fallback

    def thrown_value(self, exc: Exception) -> Any:
        if isinstance(exc, JSThrow):
            return exc.value
        if isinstance(exc, JSError):
            return self.make_error(exc.name, exc.message)
        raise TypeError(f"Not a JavaScript exception: {exc!r}")

    def error_details(self, exc: Exception) -> tuple[str, str]:
        """(error name, message) for an uncaught JavaScript exception."""
        if isinstance(exc, JSError):
            return exc.name, exc.message
        value = exc.value if isinstance(exc, JSThrow) else UNDEFINED
        if isinstance(value, JSObject):
            name = self.get_property(value, "name")
            message = self.get_property(value, "message")
            return (
                "Error" if is_nullish(name) else self.to_string(name),
                "" if is_nullish(message) else self.to_string(message),
            )
        return "Error", self.to_string(value)

    # ── conversions ──────────────────────────────────────────────

    def to_primitive(self, value: Any, hint: str = "default") -> Any:
        if not isinstance(value, JSObject):
            return value
        if isinstance(value, JSDate) and hint != "string":
            return value.time
        order = ("toString", "valueOf") if hint == "string" else ("valueOf", "toString")
        for method_name in order:
            method = self.get_property(value, method_name)
            if is_callable(method):
                result = self.call(method, value, [])
                if not isinstance(result, JSObject):
                    return result
        raise JSError("TypeError", "Cannot convert object to primitive value")

    def to_string(self, value: Any) -> str:
        return default_to_string(self.to_primitive(value, "string"))

    def to_number(self, value: Any) -> float:
        return primitive_to_number(self.to_primitive(value, "number"))

    def to_property_key(self, value: Any) -> str:
        if isinstance(value, str):
            return value
        if isinstance(value, float) and not isinstance(value, bool):
            return number_to_string(value)
        return self.to_string(value)

    # ── property access ──────────────────────────────────────────

    def get_property(self, value: Any, key: str) -> Any:
        if is_nullish(value):
            raise JSError(
                "TypeError",
                f"Cannot read properties of {default_to_string(value)} (reading '{key}')",
            )
        if isinstance(value, str):
            if key == "length":
                return float(len(value))
            index = array_index(key)
            if index is not None:
                return value[index] if index < len(value) else UNDEFINED
            return self._get_from(self.realm.string_prototype, key, value)
        if isinstance(value, bool):
            return self._get_from(self.realm.boolean_prototype, key, value)
        if isinstance(value, (int, float)):
            return self._get_from(self.realm.number_prototype, key, value)
        if isinstance(value, JSArray):
            if key == "length":
                return float(len(value.elements))
            index = array_index(key)
            if index is not None:
                return value.elements[index] if index < len(value.elements) else UNDEFINED
        if isinstance(value, (JSFunction, NativeFunction)) and key not in value.properties:
            if key == "name":
                return value.name
            if key == "length":
                return float(self._function_length(value))
        return self._get_from(value, key, value)

    def _get_from(self, holder: JSObject, key: str, receiver: Any) -> Any:
        slot = holder.lookup(key)
        if slot is ABSENT:
            return UNDEFINED
        if isinstance(slot, Accessor):
            if slot.getter is None:
                return UNDEFINED
            return self.call(slot.getter, receiver, [])
        return slot

    def set_property(self, target: Any, key: str, value: Any) -> None:
        if is_nullish(target):
            raise JSError(
                "TypeError",
                f"Cannot set properties of {default_to_string(target)} (setting '{key}')",
            )
        if not isinstance(target, JSObject) or target.frozen:
            return
        if isinstance(target, JSArray):
            if key == "length":
                length = max(0, to_integer(value))
                del target.elements[length:]
                target.elements.extend([UNDEFINED] * (length - len(target.elements)))
                return
            index = array_index(key)
            if index is not None:
                if index >= len(target.elements):
                    target.elements.extend([UNDEFINED] * (index + 1 - len(target.elements)))
                target.elements[index] = value
                return
        slot = target.lookup(key)
        if isinstance(slot, Accessor):
            if slot.setter is not None:
                self.call(slot.setter, target, [value])
            return
        target.properties[key] = value

    def _function_length(self, fn: Any) -> int:
        if not isinstance(fn, JSFunction) or fn.node is None:
            return 0
        count = 0
        for param in function_params(fn.node):
            if param.type in ("assignment_pattern", "rest_pattern"):
                break
            count += 1
        return count

    # ── iteration ────────────────────────────────────────────────

    def iterate(self, value: Any) -> list:
        if isinstance(value, JSArray):
            return list(value.elements)
        if isinstance(value, str):
            return list(value)
        if isinstance(value, JSMap):
            return [self.new_array([k, v]) for k, v in value.entries.values()]
        if isinstance(value, JSSet):
            return list(value.entries.values())
        raise JSError("TypeError", f"{self._describe(value)} is not iterable")

    def _iter_values(self, value: Any):
        if isinstance(value, JSArray):
            index = 0
            while index < len(value.elements):
                yield value.elements[index]
                index += 1
            return
        yield from self.iterate(value)

    def enumerable_keys(self, value: Any) -> list[str]:
        if isinstance(value, str):
            return [str(i) for i in range(len(value))]
        if isinstance(value, JSObject):
            return [
                k for k in value.own_keys()
                if not isinstance(value.properties.get(k), Accessor)
            ]
        return []

    def _describe(self, value: Any) -> str:
        if isinstance(value, str):
            return f'"{value}"'
        if isinstance(value, JSObject) and not is_callable(value):
            return "object"
        return default_to_string(value)

    # ── calls ────────────────────────────────────────────────────

    def call(self, fn: Any, this: Any, args: list) -> Any:
        if isinstance(fn, NativeFunction):
            return fn.fn(self, this, list(args))
        if isinstance(fn, JSFunction):
            if fn.is_class_constructor:
                raise JSError(
                    "TypeError",
                    f"Class constructor {fn.name} cannot be invoked without 'new'",
                )
            env = self._call_env(fn, this, None)
            return self._invoke(fn, env, list(args))
        raise JSError("TypeError", f"{self._describe(fn)} is not a function")

    def construct(self, fn: Any, args: list, new_target: Any = None) -> Any:
        new_target = new_target or fn
        if isinstance(fn, NativeFunction):
            if fn.construct is None:
                raise JSError("TypeError", f"{fn.name} is not a constructor")
            return fn.construct(self, list(args), new_target)
        if not isinstance(fn, JSFunction) or fn.is_arrow or (
            fn.is_method and not fn.is_class_constructor
        ):
            raise JSError("TypeError", f"{self._describe(fn)} is not a constructor")
        if fn.is_derived:
            this = UNINITIALIZED
        else:
            this = JSObject(proto=self.prototype_for(new_target, self.realm.object_prototype))
            self._initialize_fields(fn, this)
        env = self._call_env(fn, this, new_target)
        result = self._invoke(fn, env, list(args))
        if isinstance(result, JSObject):
            return result
        return env.lookup_this()

    def _call_env(self, fn: JSFunction, this: Any, new_target: Any) -> Environment:
        return Environment(
            fn.closure,
            has_this=not fn.is_arrow,
            this=this,
            function=fn,
            home_object=fn.home_object,
            new_target=new_target,
        )

    def _invoke(self, fn: JSFunction, env: Environment, args: list) -> Any:
        if fn.node is None:
            if fn.is_derived:
                self._super_construct(args, env)
            return UNDEFINED
        if fn.node.type in _GENERATOR_TYPES:
            raise JSError("TypeError", "Generator functions are not supported")
        if self._depth >= constants.MAX_CALL_DEPTH:
            raise JSError("RangeError", "Maximum call stack size exceeded")
        self._depth += 1
        try:
            self._bind_parameters(fn, env, args)
            body = fn.body
            if body.type != "statement_block":
                return self._eval(body, env)
            self._hoist_function_scope(body, env)
            self._exec_statements(named_children(body), env)
            return UNDEFINED
        except ReturnSignal as signal:
            return signal.value
        except RecursionError as exc:
            raise JSError("RangeError", "Maximum call stack size exceeded") from exc
        finally:
            self._depth -= 1

    def _bind_parameters(self, fn: JSFunction, env: Environment, args: list) -> None:
        if not fn.is_arrow:
            env.declare("arguments", "var", self.new_array(args))
        for index, param in enumerate(function_params(fn.node)):
            if param.type == "rest_pattern":
                inner = named_children(param)[0]
                self._bind_pattern(inner, self.new_array(args[index:]), env, "param")
                break
            value = args[index] if index < len(args) else UNDEFINED
            self._bind_pattern(param, value, env, "param")

    def _super_construct(self, args: list, env: Environment) -> Any:
        fenv = env.function_env()
        ctor = fenv.function
        parent = ctor.proto if isinstance(ctor, JSFunction) else None
        if not is_callable(parent):
            raise JSError("TypeError", "Super constructor is not a constructor")
        if fenv.this is not UNINITIALIZED:
            raise JSError("ReferenceError", "Super constructor may only be called once")
        this = self.construct(parent, args, fenv.new_target or ctor)
        fenv.this = this
        self._initialize_fields(ctor, this)
        return UNDEFINED

    def _initialize_fields(self, ctor: JSFunction, obj: JSObject) -> None:
        for key, value_node in ctor.fields:
            field_env = Environment(
                ctor.closure,
                has_this=True,
                this=obj,
                function=ctor,
                home_object=ctor.home_object,
            )
            value = (
                UNDEFINED
                if value_node is None
                else self._eval_named(value_node, field_env, key)
            )
            obj.properties[key] = value

    # ── hoisting ─────────────────────────────────────────────────

    def _hoist_function_scope(self, body, env: Environment) -> None:
        for node in walk_scope(body):
            if node.type == "variable_declaration":
                for name in declared_names(node, self._source):
                    env.declare(name, "var")
            elif node.type == "for_in_statement":
                kind = node.child_by_field_name("kind")
                if kind is not None and self._text(kind) == "var":
                    for name in bound_names(node.child_by_field_name("left"), self._source):
                        env.declare(name, "var")
        self._hoist_block(named_children(body), env)

    def _hoist_block(self, statements, env: Environment) -> None:
        for statement in statements:
            stype = statement.type
            if stype in ("function_declaration", "generator_function_declaration"):
                name = self._text(statement.child_by_field_name("name"))
                env.declare(name, "function", self._make_function(statement, env))
            elif stype == "lexical_declaration":
                kind = declaration_kind(statement, self._source)
                for name in declared_names(statement, self._source):
                    env.declare(name, kind, UNINITIALIZED)
            elif stype == "class_declaration":
                name = self._text(statement.child_by_field_name("name"))
                env.declare(name, "class", UNINITIALIZED)

    # ── statements ───────────────────────────────────────────────

    def _exec(self, node, env: Environment) -> None:
        handler = self._STMT_DISPATCH.get(node.type)
        if handler is None:
            if node.type in COMMENT_TYPES:
                return
            raise JSError("SyntaxError", f"Unsupported statement: {node.type}")
        handler(node, env)

    def _exec_statements(self, statements, env: Environment) -> None:
        for statement in statements:
            self._exec(statement, env)

    def _exec_block(self, node, env: Environment) -> None:
        block_env = Environment(env)
        statements = named_children(node)
        self._hoist_block(statements, block_env)
        self._exec_statements(statements, block_env)

    def _exec_expression_statement(self, node, env: Environment) -> None:
        children = named_children(node)
        if children:
            self._eval(children[0], env)

    def _exec_declaration(self, node, env: Environment) -> None:
        kind = declaration_kind(node, self._source)
        for declarator in node.children:
            if declarator.type != "variable_declarator":
                continue
            target = declarator.child_by_field_name("name")
            value_node = declarator.child_by_field_name("value")
            if value_node is None:
                if kind == "var":
                    continue
                value = UNDEFINED
            else:
                hint = self._text(target) if target.type == "identifier" else ""
                value = self._eval_named(value_node, env, hint)
            self._bind_pattern(target, value, env, kind)

    def _exec_if(self, node, env: Environment) -> None:
        if to_boolean(self._eval(node.child_by_field_name("condition"), env)):
            self._exec(node.child_by_field_name("consequence"), env)
            return
        alternative = node.child_by_field_name("alternative")
        if alternative is not None:
            for statement in named_children(alternative):
                self._exec(statement, env)

    @staticmethod
    def _owns(signal, labels) -> bool:
        return signal.label is None or signal.label in labels

    def _exec_while(self, node, env: Environment, labels=frozenset()) -> None:
        condition = node.child_by_field_name("condition")
        body = node.child_by_field_name("body")
        while to_boolean(self._eval(condition, env)):
            try:
                self._exec(body, env)
            except BreakSignal as signal:
                if self._owns(signal, labels):
                    break
                raise
            except ContinueSignal as signal:
                if not self._owns(signal, labels):
                    raise

    def _exec_do(self, node, env: Environment, labels=frozenset()) -> None:
        condition = node.child_by_field_name("condition")
        body = node.child_by_field_name("body")
        while True:
            try:
                self._exec(body, env)
            except BreakSignal as signal:
                if self._owns(signal, labels):
                    break
                raise
            except ContinueSignal as signal:
                if not self._owns(signal, labels):
                    raise
            if not to_boolean(self._eval(condition, env)):
                break

    def _exec_for(self, node, env: Environment, labels=frozenset()) -> None:
        initializer = node.child_by_field_name("initializer")
        condition = unwrap_clause(node.child_by_field_name("condition"))
        increment = node.child_by_field_name("increment")
        body = node.child_by_field_name("body")

        loop_env = Environment(env)
        per_iteration: list[str] = []
        if initializer is not None and initializer.type in (
            "lexical_declaration",
            "variable_declaration",
        ):
            if initializer.type == "lexical_declaration":
                per_iteration = declared_names(initializer, self._source)
            self._exec_declaration(initializer, loop_env)
        else:
            init_expr = unwrap_clause(initializer)
            if init_expr is not None:
                self._eval(init_expr, loop_env)

        iter_env = self._iteration_env(loop_env, env, per_iteration)
        while True:
            if condition is not None and not to_boolean(self._eval(condition, iter_env)):
                break
            try:
                self._exec(body, iter_env)
            except BreakSignal as signal:
                if self._owns(signal, labels):
                    break
                raise
            except ContinueSignal as signal:
                if not self._owns(signal, labels):
                    raise
            iter_env = self._iteration_env(iter_env, env, per_iteration)
            if increment is not None:
                self._eval(increment, iter_env)

    def _iteration_env(self, source: Environment, parent: Environment, names) -> Environment:
        if not names:
            return source
        env = Environment(parent)
        for name in names:
            binding = source.bindings[name]
            env.bindings[name] = Binding(value=binding.value, kind=binding.kind)
        return env

    def _for_operator(self, node) -> str:
        op = node.child_by_field_name("operator")
        if op is not None:
            return self._text(op)
        return "of" if has_child_token(node, "of") else "in"

    def _exec_for_in(self, node, env: Environment, labels=frozenset()) -> None:
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        body = node.child_by_field_name("body")
        kind_node = node.child_by_field_name("kind")
        kind = self._text(kind_node) if kind_node is not None else None

        collection = self._eval(right, env)
        if self._for_operator(node) == "of":
            items = self._iter_values(collection)
        else:
            items = iter([] if is_nullish(collection) else self.enumerable_keys(collection))

        for item in items:
            if kind in ("let", "const"):
                iter_env = Environment(env)
                self._bind_pattern(left, item, iter_env, kind)
            else:
                iter_env = env
                self._bind_pattern(left, item, env, "var" if kind == "var" else "assign")
            try:
                self._exec(body, iter_env)
            except BreakSignal as signal:
                if self._owns(signal, labels):
                    break
                raise
            except ContinueSignal as signal:
                if not self._owns(signal, labels):
                    raise

    def _exec_return(self, node, env: Environment) -> None:
        children = named_children(node)
        value = self._eval(children[0], env) if children else UNDEFINED
        raise ReturnSignal(value)

    def _exec_break(self, node, env: Environment) -> None:
        label = node.child_by_field_name("label")
        raise BreakSignal(self._text(label) if label is not None else None)

    def _exec_continue(self, node, env: Environment) -> None:
        label = node.child_by_field_name("label")
        raise ContinueSignal(self._text(label) if label is not None else None)

    def _exec_throw(self, node, env: Environment) -> None:
        raise JSThrow(self._eval(named_children(node)[0], env))

    def _exec_try(self, node, env: Environment) -> None:
        body = node.child_by_field_name("body")
        handler = node.child_by_field_name("handler")
        finalizer = node.child_by_field_name("finalizer")
        stopped = False
        try:
            try:
                self._exec(body, env)
            except (JSThrow, JSError) as exc:
                if handler is None:
                    raise
                self._run_catch(handler, exc, env)
        except ExecutionStopped:
            stopped = True
            raise
        finally:
            if finalizer is not None and not stopped:
                self._exec(finalizer.child_by_field_name("body"), env)

    def _run_catch(self, handler, exc: Exception, env: Environment) -> None:
        catch_env = Environment(env)
        param = handler.child_by_field_name("parameter")
        if param is not None:
            self._bind_pattern(param, self.thrown_value(exc), catch_env, "let")
        self._exec(handler.child_by_field_name("body"), catch_env)

    def _exec_switch(self, node, env: Environment, labels=frozenset()) -> None:
        discriminant = self._eval(node.child_by_field_name("value"), env)
        body = node.child_by_field_name("body")
        cases = [
            c for c in named_children(body) if c.type in ("switch_case", "switch_default")
        ]
        block_env = Environment(env)
        case_statements = []
        for case in cases:
            value = case.child_by_field_name("value")
            statements = [c for c in named_children(case) if value is None or c != value]
            case_statements.append(statements)
            self._hoist_block(statements, block_env)

        start = None
        for index, case in enumerate(cases):
            if case.type != "switch_case":
                continue
            test = self._eval(case.child_by_field_name("value"), block_env)
            if strict_equals(test, discriminant):
                start = index
                break
        if start is None:
            start = next(
                (i for i, c in enumerate(cases) if c.type == "switch_default"), None
            )
        if start is None:
            return
        try:
            for statements in case_statements[start:]:
                self._exec_statements(statements, block_env)
        except BreakSignal as signal:
            if not self._owns(signal, labels):
                raise

    def _exec_labeled(self, node, env: Environment, labels=frozenset()) -> None:
        labels = labels | {self._text(node.child_by_field_name("label"))}
        body = node.child_by_field_name("body")
        if body.type in LOOP_NODE_TYPES or body.type in ("labeled_statement", "switch_statement"):
            self._STMT_DISPATCH[body.type](body, env, labels)
            return
        try:
            self._exec(body, env)
        except BreakSignal as signal:
            if signal.label is None or signal.label not in labels:
                raise

    def _exec_class_declaration(self, node, env: Environment) -> None:
        ctor = self._eval_class(node, env)
        env.declare(ctor.name, "class", ctor)

    def _exec_module_statement(self, node, env: Environment) -> None:
        raise JSError("SyntaxError", "Cannot use import statement outside a module")

    # ── patterns ─────────────────────────────────────────────────

    def _bind_pattern(self, pattern, value: Any, env: Environment, mode: str) -> None:
        ptype = pattern.type
        if ptype in ("identifier", "shorthand_property_identifier_pattern"):
            self._bind_name(self._text(pattern), value, env, mode)
        elif ptype in ("assignment_pattern", "object_assignment_pattern"):
            left = pattern.child_by_field_name("left")
            if value is UNDEFINED:
                hint = self._text(left) if left.type in ("identifier", "shorthand_property_identifier_pattern") else ""
                value = self._eval_named(pattern.child_by_field_name("right"), env, hint)
            self._bind_pattern(left, value, env, mode)
        elif ptype == "array_pattern":
            self._bind_array_pattern(pattern, value, env, mode)
        elif ptype == "object_pattern":
            self._bind_object_pattern(pattern, value, env, mode)
        elif ptype == "parenthesized_expression":
            self._bind_pattern(named_children(pattern)[0], value, env, mode)
        elif mode == "assign" and ptype in ("member_expression", "subscript_expression"):
            self._reference(pattern, env).set(value)
        else:
            raise JSError("SyntaxError", f"Invalid destructuring target: {ptype}")

    def _bind_name(self, name: str, value: Any, env: Environment, mode: str) -> None:
        if mode in ("assign", "var"):
            env.assign(name, value)
        else:
            env.declare(name, mode if mode in ("const", "param") else "let", value)

    def _bind_array_pattern(self, pattern, value: Any, env: Environment, mode: str) -> None:
        if is_nullish(value):
            raise JSError("TypeError", f"{default_to_string(value)} is not iterable")
        items = self.iterate(value)
        index = 0
        for child in pattern.children:
            ctype = child.type
            if ctype in ("[", "]") or ctype in COMMENT_TYPES:
                continue
            if ctype == ",":
                index += 1
                continue
            if ctype == "rest_pattern":
                self._bind_pattern(named_children(child)[0], self.new_array(items[index:]), env, mode)
                continue
            item = items[index] if index < len(items) else UNDEFINED
            self._bind_pattern(child, item, env, mode)

    def _bind_object_pattern(self, pattern, value: Any, env: Environment, mode: str) -> None:
        if is_nullish(value):
            raise JSError(
                "TypeError",
                f"Cannot destructure '{default_to_string(value)}' as it is {default_to_string(value)}.",
            )
        used: list[str] = []
        for child in named_children(pattern):
            ctype = child.type
            if ctype == "pair_pattern":
                key = self._property_key(child.child_by_field_name("key"), env)
                used.append(key)
                self._bind_pattern(child.child_by_field_name("value"), self.get_property(value, key), env, mode)
            elif ctype == "shorthand_property_identifier_pattern":
                key = self._text(child)
                used.append(key)
                self._bind_pattern(child, self.get_property(value, key), env, mode)
            elif ctype == "object_assignment_pattern":
                key = self._text(child.child_by_field_name("left"))
                used.append(key)
                self._bind_pattern(child, self.get_property(value, key), env, mode)
            elif ctype == "rest_pattern":
                rest = self.new_object()
                for key in self.enumerable_keys(value):
                    if key not in used:
                        rest.properties[key] = self.get_property(value, key)
                self._bind_pattern(named_children(child)[0], rest, env, mode)

    def _reference(self, node, env: Environment) -> _Reference:
        ntype = node.type
        if ntype == "parenthesized_expression":
            return self._reference(named_children(node)[0], env)
        if ntype in ("identifier", "shorthand_property_identifier_pattern"):
            return _Reference(self, env, name=self._text(node))
        if ntype == "member_expression":
            obj = self._member_object(node, env)
            key = self._text(node.child_by_field_name("property"))
            return _Reference(self, env, obj=obj, key=key)
        if ntype == "subscript_expression":
            obj = self._member_object(node, env)
            key = self.to_property_key(self._eval(node.child_by_field_name("index"), env))
            return _Reference(self, env, obj=obj, key=key)
        raise JSError("SyntaxError", "Invalid left-hand side in assignment")

    def _member_object(self, node, env: Environment) -> Any:
        obj_node = node.child_by_field_name("object")
        if obj_node.type == "super":
            return env.lookup_this()
        return self._eval(obj_node, env)

    # ── expressions ──────────────────────────────────────────────

    def _eval(self, node, env: Environment) -> Any:
        handler = self._EXPR_DISPATCH.get(node.type)
        if handler is None:
            raise JSError("SyntaxError", f"Unsupported expression: {node.type}")
        return handler(node, env)

    def _eval_named(self, node, env: Environment, name: str) -> Any:
        value = self._eval(node, env)
        if (
            name
            and isinstance(value, JSFunction)
            and not value.name
            and node.type in ("arrow_function", "function_expression", "function", "class")
        ):
            value.name = name
        return value

    def _text(self, node) -> str:
        return node_text(node, self._source)

    def source_text(self, node) -> str:
        """Source text of *node* in the program being run."""
        return self._text(node)

    def _eval_identifier(self, node, env: Environment) -> Any:
        name = self._text(node)
        if name == "undefined" and env.resolve(name) is None:
            return UNDEFINED
        return env.get(name)

    def _eval_number(self, node, env: Environment) -> float:
        return parse_number_literal(self._text(node))

    def _eval_string(self, node, env: Environment) -> str:
        parts: list[str] = []
        for child in node.children:
            if child.type == "string_fragment":
                parts.append(self._text(child))
            elif child.type == "escape_sequence":
                parts.append(decode_escape(self._text(child)))
        return _join_surrogates("".join(parts))

    def _eval_template(self, node, env: Environment) -> str:
        parts: list[str] = []
        for child in node.children:
            if child.type == "string_fragment":
                parts.append(self._text(child))
            elif child.type == "escape_sequence":
                parts.append(decode_escape(self._text(child)))
            elif child.type == "template_substitution":
                parts.append(self.to_string(self._eval(named_children(child)[0], env)))
        return _join_surrogates("".join(parts))

    def _eval_regex(self, node, env: Environment) -> Any:
        raise JSError("SyntaxError", "Regular expression literals are not supported")

    def _eval_array(self, node, env: Environment) -> JSArray:
        values: list[Any] = []
        filled = False
        for child in node.children:
            ctype = child.type
            if ctype in ("[", "]") or ctype in COMMENT_TYPES:
                continue
            if ctype == ",":
                if not filled:
                    values.append(UNDEFINED)
                filled = False
                continue
            if ctype == "spread_element":
                values.extend(self.iterate(self._eval(named_children(child)[0], env)))
            else:
                values.append(self._eval(child, env))
            filled = True
        return self.new_array(values)

    def _eval_object(self, node, env: Environment) -> JSObject:
        obj = self.new_object()
        for child in named_children(node):
            ctype = child.type
            if ctype == "pair":
                key = self._property_key(child.child_by_field_name("key"), env)
                obj.properties[key] = self._eval_named(child.child_by_field_name("value"), env, key)
            elif ctype == "shorthand_property_identifier":
                name = self._text(child)
                obj.properties[name] = env.get(name)
            elif ctype == "spread_element":
                source = self._eval(named_children(child)[0], env)
                if not is_nullish(source):
                    for key in self.enumerable_keys(source):
                        obj.properties[key] = self.get_property(source, key)
            elif ctype == "method_definition":
                key = self._property_key(child.child_by_field_name("name"), env)
                fn = self._make_function(child, env, name=key, home_object=obj, is_method=True)
                self._define_method(obj, key, fn, child)
        return obj

    def _property_key(self, node, env: Environment) -> str:
        ntype = node.type
        if ntype == "string":
            return self._eval_string(node, env)
        if ntype == "number":
            return number_to_string(parse_number_literal(self._text(node)))
        if ntype == "computed_property_name":
            return self.to_property_key(self._eval(named_children(node)[0], env))
        return self._text(node)

    def _define_method(self, target: JSObject, key: str, fn: JSFunction, node) -> None:
        if has_child_token(node, "get") or has_child_token(node, "set"):
            slot = target.properties.get(key)
            if not isinstance(slot, Accessor):
                slot = Accessor()
                target.properties[key] = slot
            if has_child_token(node, "get"):
                slot.getter = fn
            else:
                slot.setter = fn
            return
        target.properties[key] = fn

    def _make_function(self, node, env: Environment, name: str = "", home_object=None, is_method=False) -> JSFunction:
        name_node = node.child_by_field_name("name")
        if not name and name_node is not None and node.type != "method_definition":
            name = self._text(name_node)
        closure = env
        named_expression = node.type in ("function_expression", "function", "generator_function")
        if named_expression and name_node is not None:
            closure = Environment(env)
        fn = JSFunction(
            name,
            node,
            closure,
            proto=self.realm.function_prototype,
            is_arrow=node.type == "arrow_function",
            is_method=is_method,
        )
        if closure is not env:
            closure.declare(name, "const", fn)
        fn.home_object = home_object
        if not fn.is_arrow and not is_method:
            prototype = self.new_object()
            prototype.properties["constructor"] = fn
            fn.properties["prototype"] = prototype
        return fn

    def _eval_function(self, node, env: Environment) -> JSFunction:
        return self._make_function(node, env)

    def _eval_class(self, node, env: Environment) -> JSFunction:
        name_node = node.child_by_field_name("name")
        name = self._text(name_node) if name_node is not None else ""

        heritage = next((c for c in node.children if c.type == "class_heritage"), None)
        parent: Any = None
        if heritage is not None:
            parent = self._eval(named_children(heritage)[0], env)
            if parent is not None and not is_callable(parent):
                raise JSError(
                    "TypeError",
                    f"Class extends value {self._describe(parent)} is not a constructor or null",
                )

        class_env = Environment(env)
        if name:
            class_env.declare(name, "const", UNINITIALIZED)

        if heritage is None:
            proto_parent = self.realm.object_prototype
        elif parent is None:
            proto_parent = None
        else:
            parent_proto = self.get_property(parent, "prototype")
            proto_parent = parent_proto if isinstance(parent_proto, JSObject) else None
        prototype = JSObject(proto=proto_parent)

        body = node.child_by_field_name("body")
        members = named_children(body)
        ctor_node = next(
            (
                m
                for m in members
                if m.type == "method_definition"
                and not has_child_token(m, "static")
                and self._text(m.child_by_field_name("name")) == "constructor"
            ),
            None,
        )
        ctor = JSFunction(
            name,
            ctor_node,
            class_env,
            proto=parent if is_callable(parent) else self.realm.function_prototype,
            is_method=True,
        )
        ctor.is_class_constructor = True
        ctor.is_derived = heritage is not None and parent is not None
        ctor.home_object = prototype
        ctor.properties["prototype"] = prototype
        prototype.properties["constructor"] = ctor

        static_inits: list[tuple[str | None, Any]] = []
        for member in members:
            if member.type == "method_definition":
                if member == ctor_node:
                    continue
                is_static = has_child_token(member, "static")
                target = ctor if is_static else prototype
                key = self._property_key(member.child_by_field_name("name"), class_env)
                fn = self._make_function(member, class_env, name=key, home_object=target, is_method=True)
                self._define_method(target, key, fn, member)
            elif member.type == "field_definition":
                key = self._property_key(member.child_by_field_name("property"), class_env)
                value_node = member.child_by_field_name("value")
                if has_child_token(member, "static"):
                    static_inits.append((key, value_node))
                else:
                    ctor.fields.append((key, value_node))
            elif member.type == "class_static_block":
                static_inits.append((None, member.child_by_field_name("body")))

        if name:
            class_env.bindings[name].value = ctor

        static_env = Environment(class_env, has_this=True, this=ctor, function=ctor, home_object=ctor)
        for key, value_node in static_inits:
            if key is None:
                self._exec(value_node, static_env)
            else:
                ctor.properties[key] = (
                    UNDEFINED if value_node is None else self._eval_named(value_node, static_env, key)
                )
        return ctor

    def _eval_parenthesized(self, node, env: Environment) -> Any:
        return self._eval(named_children(node)[0], env)

    # ── member access and calls ──────────────────────────────────

    def _continues_chain(self, node) -> bool:
        parent = node.parent
        if parent is None or parent.type not in _CHAIN_TYPES:
            return False
        field_name = "function" if parent.type == "call_expression" else "object"
        target = parent.child_by_field_name(field_name)
        return target is not None and target == node

    def _eval_chain(self, node, env: Environment) -> Any:
        if self._continues_chain(node):
            return self._eval_chain_link(node, env)
        try:
            return self._eval_chain_link(node, env)
        except OptionalChainShortCircuit:
            return UNDEFINED

    def _eval_chain_link(self, node, env: Environment) -> Any:
        if node.type == "call_expression":
            return self._eval_call(node, env)
        obj, key = self._member_target(node, env)
        if node.child_by_field_name("object").type == "super":
            return self._get_from(env.function_env().home_object.proto, key, obj)
        return self.get_property(obj, key)

    @staticmethod
    def _is_optional(node) -> bool:
        return any(c.type in ("optional_chain", "?.") for c in node.children)

    def _member_target(self, node, env: Environment) -> tuple[Any, str]:
        obj = self._member_object(node, env)
        if is_nullish(obj) and self._is_optional(node):
            raise OptionalChainShortCircuit()
        if node.type == "member_expression":
            key = self._text(node.child_by_field_name("property"))
        else:
            key = self.to_property_key(self._eval(node.child_by_field_name("index"), env))
        return obj, key

    def _eval_call(self, node, env: Environment) -> Any:
        callee = node.child_by_field_name("function")
        args_node = node.child_by_field_name("arguments")
        if callee.type == "super":
            return self._super_construct(self._eval_arguments(args_node, env), env)
        if callee.type in ("member_expression", "subscript_expression"):
            this, key = self._member_target(callee, env)
            if callee.child_by_field_name("object").type == "super":
                fn = self._get_from(env.function_env().home_object.proto, key, this)
            else:
                fn = self.get_property(this, key)
        else:
            this = UNDEFINED
            fn = self._eval(callee, env)
        if is_nullish(fn) and self._is_optional(node):
            raise OptionalChainShortCircuit()
        if args_node is not None and args_node.type == "template_string":
            raise JSError("SyntaxError", "Tagged templates are not supported")
        args = self._eval_arguments(args_node, env)
        if not is_callable(fn):
            raise JSError("TypeError", f"{self._text(callee)} is not a function")
        return self.call(fn, this, args)

    def _eval_arguments(self, node, env: Environment) -> list:
        if node is None:
            return []
        args: list[Any] = []
        for child in named_children(node):
            if child.type == "spread_element":
                args.extend(self.iterate(self._eval(named_children(child)[0], env)))
            else:
                args.append(self._eval(child, env))
        return args

    def _eval_new(self, node, env: Environment) -> Any:
        ctor_node = node.child_by_field_name("constructor")
        ctor = self._eval(ctor_node, env)
        args = self._eval_arguments(node.child_by_field_name("arguments"), env)
        if not is_callable(ctor):
            raise JSError("TypeError", f"{self._text(ctor_node)} is not a constructor")
        return self.construct(ctor, args)

    def _eval_await(self, node, env: Environment) -> Any:
        return self._eval(named_children(node)[0], env)

    # ── operators ────────────────────────────────────────────────

    def binary_op(self, op: str, left: Any, right: Any) -> Any:
        if op == "+":
            return Operators.add(self.to_primitive(left), self.to_primitive(right))
        if op in Operators.NUMERIC_TABLE:
            return Operators.eval_numeric(
                op, self.to_primitive(left, "number"), self.to_primitive(right, "number")
            )
        if op in Operators.BITWISE_TABLE:
            return Operators.eval_bitwise(
                op, self.to_primitive(left, "number"), self.to_primitive(right, "number")
            )
        if op in Operators.RELATIONAL_OPERATORS:
            return Operators.compare(
                op, self.to_primitive(left, "number"), self.to_primitive(right, "number")
            )
        if op == "===":
            return strict_equals(left, right)
        if op == "!==":
            return not strict_equals(left, right)
        if op == "==":
            return loose_equals(left, right, self.to_primitive)
        if op == "!=":
            return not loose_equals(left, right, self.to_primitive)
        if op == "instanceof":
            return self.instance_of(left, right)
        if op == "in":
            if not isinstance(right, JSObject):
                raise JSError(
                    "TypeError",
                    f"Cannot use 'in' operator to search for '{self.to_string(left)}' in {self.to_string(right)}",
                )
            return right.has_property(self.to_property_key(left))
        raise JSError("SyntaxError", f"Unsupported operator {op}")

    def instance_of(self, value: Any, ctor: Any) -> bool:
        if not is_callable(ctor):
            raise JSError("TypeError", "Right-hand side of 'instanceof' is not callable")
        if not isinstance(value, JSObject):
            return False
        proto = self.get_property(ctor, "prototype")
        current = value.proto
        while current is not None:
            if current is proto:
                return True
            current = current.proto
        return False

    def _eval_binary(self, node, env: Environment) -> Any:
        op = operator_token(node, self._source)
        left_node = node.child_by_field_name("left")
        right_node = node.child_by_field_name("right")
        if op == "&&":
            left = self._eval(left_node, env)
            return self._eval(right_node, env) if to_boolean(left) else left
        if op == "||":
            left = self._eval(left_node, env)
            return left if to_boolean(left) else self._eval(right_node, env)
        if op == "??":
            left = self._eval(left_node, env)
            return self._eval(right_node, env) if is_nullish(left) else left
        left = self._eval(left_node, env)
        right = self._eval(right_node, env)
        return self.binary_op(op, left, right)

    def _eval_unary(self, node, env: Environment) -> Any:
        op = operator_token(node, self._source)
        argument = node.child_by_field_name("argument")
        if op == "typeof":
            if argument.type == "identifier" and env.resolve(self._text(argument)) is None:
                return "undefined"
            return type_of(self._eval(argument, env))
        if op == "delete":
            return self._delete(argument, env)
        value = self._eval(argument, env)
        if op in ("-", "+", "~"):
            value = self.to_primitive(value, "number")
        return Operators.eval_unary(op, value)

    def _delete(self, argument, env: Environment) -> bool:
        if argument.type not in ("member_expression", "subscript_expression"):
            return True
        obj, key = self._member_target(argument, env)
        if not isinstance(obj, JSObject) or obj.frozen:
            return True
        index = array_index(key) if isinstance(obj, JSArray) else None
        if index is not None:
            if index < len(obj.elements):
                obj.elements[index] = UNDEFINED
        else:
            obj.properties.pop(key, None)
        return True

    def _eval_update(self, node, env: Environment) -> float:
        op = operator_token(node, self._source)
        ref = self._reference(node.child_by_field_name("argument"), env)
        old = self.to_number(ref.get())
        new = old + 1 if op == "++" else old - 1
        ref.set(new)
        prefix = node.children[0].type in ("++", "--")
        return new if prefix else old

    def _eval_assignment(self, node, env: Environment) -> Any:
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        if left.type in ("array_pattern", "object_pattern"):
            value = self._eval(right, env)
            self._bind_pattern(left, value, env, "assign")
            return value
        ref = self._reference(left, env)
        hint = self._text(left) if left.type == "identifier" else ""
        value = self._eval_named(right, env, hint)
        ref.set(value)
        return value

    def _eval_augmented(self, node, env: Environment) -> Any:
        op = operator_token(node, self._source)[:-1]
        ref = self._reference(node.child_by_field_name("left"), env)
        right = node.child_by_field_name("right")
        current = ref.get()
        if op == "&&":
            if not to_boolean(current):
                return current
            value = self._eval(right, env)
        elif op == "||":
            if to_boolean(current):
                return current
            value = self._eval(right, env)
        elif op == "??":
            if not is_nullish(current):
                return current
            value = self._eval(right, env)
        else:
            value = self.binary_op(op, current, self._eval(right, env))
        ref.set(value)
        return value

    def _eval_ternary(self, node, env: Environment) -> Any:
        if to_boolean(self._eval(node.child_by_field_name("condition"), env)):
            return self._eval(node.child_by_field_name("consequence"), env)
        return self._eval(node.child_by_field_name("alternative"), env)

    def _eval_sequence(self, node, env: Environment) -> Any:
        value = UNDEFINED
        for child in named_children(node):
            value = self._eval(child, env)
        return value


def _arg(args: list, index: int) -> Any:
    return args[index] if index < len(args) else UNDEFINED
