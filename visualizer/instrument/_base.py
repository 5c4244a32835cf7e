"""Annotator and strategy interface: syntax tree to annotated tree to instrumented source."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from .. import constants
from ..parser import SyntaxTree
from ..syntax import (
    COMMENT_TYPES,
    FUNCTION_NODE_TYPES,
    LOOP_NODE_TYPES,
    DECLARATION_NODE_TYPES,
    bound_names,
    declared_names,
    function_params,
    named_children,
    node_text,
    start_line,
)

logger = logging.getLogger(__name__)


class InstrumentationError(Exception):
    """The annotated tree could not be turned into executable source."""


STEP_STATEMENT_TYPES: frozenset[str] = frozenset(
    {
        "expression_statement",
        "lexical_declaration",
        "variable_declaration",
        "if_statement",
        "while_statement",
        "do_statement",
        "for_statement",
        "for_in_statement",
        "return_statement",
        "break_statement",
        "continue_statement",
        "throw_statement",
        "try_statement",
        "switch_statement",
        "labeled_statement",
        "function_declaration",
        "generator_function_declaration",
        "class_declaration",
        "debugger_statement",
        "import_statement",
        "export_statement",
    }
)

# Parents whose statement children form a statement list.
STATEMENT_LIST_TYPES: frozenset[str] = frozenset(
    {"program", "statement_block", "switch_case", "switch_default"}
)

_ASSIGNMENT_TYPES: frozenset[str] = frozenset(
    {"assignment_expression", "augmented_assignment_expression"}
)


@dataclass(frozen=True)
class StepMarker:
    node_id: int
    line: int


@dataclass(frozen=True)
class FunctionMarker:
    name: str
    params: tuple[str, ...] = ()


@dataclass(frozen=True)
class AnnotatedTree:
    """A syntax tree plus instrumentation annotations keyed by tree-sitter node id.

    The tree itself is untouched; annotations are immutable side tables
    describing what to insert around which node.
    """

    syntax_tree: SyntaxTree
    steps: dict[int, StepMarker] = field(default_factory=dict)
    captures_after: dict[int, tuple[str, ...]] = field(default_factory=dict)
    captures_at_start: dict[int, tuple[str, ...]] = field(default_factory=dict)
    functions: dict[int, FunctionMarker] = field(default_factory=dict)
    returns: frozenset[int] = frozenset()

    @property
    def step_count(self) -> int:
        return len(self.steps)


def _is_field(parent, field_name: str, node) -> bool:
    child = parent.child_by_field_name(field_name)
    return child is not None and child == node


def in_statement_position(node) -> bool:
    """True for statements that execute as statements (not for-header clauses)."""
    parent = node.parent
    if parent is None:
        return False
    ptype = parent.type
    if ptype in STATEMENT_LIST_TYPES:
        return True
    if ptype == "else_clause":
        return node.is_named and node.type not in COMMENT_TYPES
    if ptype == "if_statement":
        return _is_field(parent, "consequence", node)
    if ptype in LOOP_NODE_TYPES:
        return _is_field(parent, "body", node)
    return False


def needs_braces(node) -> bool:
    """A statement used as a single-statement body must be wrapped to take a prefix."""
    parent = node.parent
    return parent is not None and parent.type not in STATEMENT_LIST_TYPES


def step_call(marker: StepMarker) -> str:
    return f"{constants.STEP_HOOK}({marker.node_id}, {marker.line});"


def capture_calls(names: tuple[str, ...]) -> str:
    return " ".join(
        f"{constants.TRACK_VARIABLE_HOOK}({json.dumps(name)}, {name});"
        for name in names
    )


def enter_call(marker: FunctionMarker) -> str:
    args = ", ".join(marker.params)
    return f"{constants.ENTER_FUNCTION_HOOK}({json.dumps(marker.name)}, [{args}]);"


def exit_call() -> str:
    return f"{constants.EXIT_FUNCTION_HOOK}();"


def return_argument(node):
    """The returned expression of a return_statement, or None for a bare return."""
    children = named_children(node)
    return children[0] if children else None


class Annotator:
    """Walks a syntax tree and records where instrumentation belongs.

    Node ids are assigned in source order starting at 0, one per step.
    """

    def __init__(self):
        self._reset()

    def _reset(self):
        self._source: bytes = b""
        self._next_id: int = 0
        self._steps: dict[int, StepMarker] = {}
        self._captures_after: dict[int, tuple[str, ...]] = {}
        self._captures_at_start: dict[int, list[str]] = {}
        self._functions: dict[int, FunctionMarker] = {}
        self._returns: set[int] = set()

    def annotate(self, tree: SyntaxTree) -> AnnotatedTree:
        self._reset()
        self._source = tree.source
        self._visit(tree.root, owner=None)
        annotated = AnnotatedTree(
            syntax_tree=tree,
            steps=dict(self._steps),
            captures_after=dict(self._captures_after),
            captures_at_start={
                k: tuple(v) for k, v in self._captures_at_start.items()
            },
            functions=dict(self._functions),
            returns=frozenset(self._returns),
        )
        logger.debug(
            "Annotated %d steps, %d functions",
            annotated.step_count,
            len(annotated.functions),
        )
        return annotated

    # ── walk ─────────────────────────────────────────────────────

    def _visit(self, node, owner):
        ntype = node.type
        if ntype in STEP_STATEMENT_TYPES and in_statement_position(node):
            self._mark_step(node)
            self._mark_captures(node)
        if ntype in LOOP_NODE_TYPES:
            self._mark_loop_header(node)
        if ntype in FUNCTION_NODE_TYPES:
            body = node.child_by_field_name("body")
            if body is not None:
                self._functions[node.id] = FunctionMarker(
                    name=self._function_name(node),
                    params=tuple(self._param_names(node)),
                )
                owner = node
        if ntype == "return_statement" and owner is not None:
            self._returns.add(node.id)
        for child in node.children:
            self._visit(child, owner)

    def _mark_step(self, node):
        parent = node.parent
        if parent is not None and parent.type == "labeled_statement":
            return
        self._steps[node.id] = StepMarker(node_id=self._next_id, line=start_line(node))
        self._next_id += 1

    def _mark_captures(self, node):
        names: list[str] = []
        if node.type in DECLARATION_NODE_TYPES:
            names = declared_names(node, self._source)
        elif node.type == "expression_statement":
            expr = next(iter(named_children(node)), None)
            names = self._assigned_names(expr)
        if names:
            self._captures_after[node.id] = tuple(dict.fromkeys(names))

    def _assigned_names(self, expr) -> list[str]:
        if expr is None:
            return []
        if expr.type in _ASSIGNMENT_TYPES:
            left = expr.child_by_field_name("left")
            if left is not None and left.type == "parenthesized_expression":
                left = next(iter(named_children(left)), None)
            return self._target_names(left)
        if expr.type == "update_expression":
            return self._target_names(expr.child_by_field_name("argument"))
        if expr.type == "sequence_expression":
            names: list[str] = []
            for part in named_children(expr):
                names.extend(self._assigned_names(part))
            return names
        return []

    def _target_names(self, target) -> list[str]:
        if target is None:
            return []
        if target.type == "identifier":
            return [node_text(target, self._source)]
        if target.type in ("array_pattern", "object_pattern"):
            return bound_names(target, self._source)
        return []

    def _mark_loop_header(self, node):
        body = node.child_by_field_name("body")
        if body is None:
            return
        names: list[str] = []
        if node.type == "for_statement":
            init = node.child_by_field_name("initializer")
            if init is not None and init.type in DECLARATION_NODE_TYPES:
                names = declared_names(init, self._source)
        elif node.type == "for_in_statement":
            if node.child_by_field_name("kind") is not None:
                names = bound_names(node.child_by_field_name("left"), self._source)
            else:
                names = self._target_names(node.child_by_field_name("left"))
        if not names:
            return
        existing = self._captures_at_start.setdefault(body.id, [])
        existing.extend(n for n in dict.fromkeys(names) if n not in existing)

    # ── naming ───────────────────────────────────────────────────

    def _function_name(self, node) -> str:
        name_node = node.child_by_field_name("name")
        if node.type == "method_definition" and name_node is not None:
            name = node_text(name_node, self._source)
            if name == "constructor":
                return self._class_name(node) or name
            return name
        if name_node is not None:
            return node_text(name_node, self._source)
        parent = node.parent
        if parent is not None and parent.type == "variable_declarator":
            target = parent.child_by_field_name("name")
            if target is not None and target.type == "identifier":
                return node_text(target, self._source)
        if parent is not None and parent.type in _ASSIGNMENT_TYPES:
            target = parent.child_by_field_name("left")
            if target is not None and target.type == "identifier":
                return node_text(target, self._source)
        if parent is not None and parent.type == "pair":
            key = parent.child_by_field_name("key")
            if key is not None and key.type in ("property_identifier", "identifier"):
                return node_text(key, self._source)
        return constants.ANONYMOUS_FUNCTION

    def _class_name(self, method) -> str:
        cls = method.parent.parent if method.parent is not None else None
        if cls is None:
            return ""
        name_node = cls.child_by_field_name("name")
        if name_node is not None:
            return node_text(name_node, self._source)
        parent = cls.parent
        if parent is not None and parent.type == "variable_declarator":
            target = parent.child_by_field_name("name")
            if target is not None:
                return node_text(target, self._source)
        return ""

    def _param_names(self, node) -> list[str]:
        names: list[str] = []
        for param in function_params(node):
            names.extend(bound_names(param, self._source))
        return names


class InstrumentationStrategy(ABC):
    """Turns an annotated tree into executable JavaScript source."""

    name: str = ""

    @abstractmethod
    def generate(self, annotated: AnnotatedTree) -> str: ...
