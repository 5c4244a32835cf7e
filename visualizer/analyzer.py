"""Static Analyzer: walks a JavaScript syntax tree and builds an AnalysisReport.

Recursion is a callee-name match and an infinite loop is a literal ``true``
(or missing) test.  Findings are reported as suggestions, never raised.
"""

from __future__ import annotations

import logging
from typing import Callable

from . import constants
from .analysis_types import (
    AnalysisReport,
    CodeMetrics,
    ConditionalInfo,
    DependencySummary,
    FunctionInfo,
    ImportInfo,
    LoopInfo,
    Severity,
    Suggestion,
    VariableInfo,
)
from .parser import SyntaxTree
from .syntax import (
    FUNCTION_NODE_TYPES,
    bound_names,
    declaration_kind,
    function_params,
    has_child_token,
    named_children,
    node_text,
    operator_token,
    start_col,
    start_line,
    unwrap_clause,
    unwrap_parens,
    walk,
)

logger = logging.getLogger(__name__)

_BRANCH_NODE_TYPES: frozenset[str] = frozenset(
    {
        "if_statement",
        "while_statement",
        "for_statement",
        "do_statement",
        "for_in_statement",
        "switch_case",
        "ternary_expression",
        "catch_clause",
    }
)

_SHORT_CIRCUIT_OPERATORS: frozenset[str] = frozenset({"&&", "||"})

_STATEMENT_TYPES: frozenset[str] = frozenset(
    {
        "expression_statement",
        "statement_block",
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
        "empty_statement",
        "debugger_statement",
        "lexical_declaration",
        "variable_declaration",
        "function_declaration",
        "generator_function_declaration",
        "class_declaration",
        "import_statement",
        "export_statement",
    }
)

_EXPRESSION_TYPES: frozenset[str] = frozenset(
    {
        "call_expression",
        "member_expression",
        "subscript_expression",
        "binary_expression",
        "unary_expression",
        "update_expression",
        "assignment_expression",
        "augmented_assignment_expression",
        "ternary_expression",
        "array",
        "object",
        "function_expression",
        "function",
        "arrow_function",
        "new_expression",
        "this",
        "sequence_expression",
        "await_expression",
        "yield_expression",
        "class",
    }
)

_FUNCTION_KINDS: dict[str, str] = {
    "function_declaration": "declaration",
    "generator_function_declaration": "declaration",
    "function_expression": "expression",
    "function": "expression",
    "generator_function": "expression",
    "arrow_function": "arrow",
    "method_definition": "method",
}


def is_branch_node(node, source: bytes) -> bool:
    """True when *node* adds one to cyclomatic complexity."""
    if node.type in _BRANCH_NODE_TYPES:
        return True
    if node.type == "binary_expression":
        return operator_token(node, source) in _SHORT_CIRCUIT_OPERATORS
    return False


def cyclomatic_complexity(node, source: bytes) -> int:
    """1 + number of decision points in the subtree rooted at *node*."""
    return 1 + sum(1 for n in walk(node) if is_branch_node(n, source))


def _is_true_literal(node) -> bool:
    node = unwrap_parens(node)
    return node is not None and node.type == "true"


def is_infinite_loop(node) -> bool:
    """Literal-``true`` while loops and test-less / literal-``true`` for loops."""
    if node.type == "while_statement":
        return _is_true_literal(node.child_by_field_name("condition"))
    if node.type == "for_statement":
        test = unwrap_clause(node.child_by_field_name("condition"))
        return test is None or _is_true_literal(test)
    return False


class CodeAnalyzer:
    """Single-pass static analyzer over a tree-sitter JavaScript tree.

    Handlers are registered per node type in ``_DISPATCH``; the walk visits
    every node once in source order and each handler appends to the
    report under construction.
    """

    def __init__(self):
        self._reset()
        self._DISPATCH: dict[str, Callable] = {
            "function_declaration": self._visit_function,
            "generator_function_declaration": self._visit_function,
            "function_expression": self._visit_function,
            "function": self._visit_function,
            "generator_function": self._visit_function,
            "arrow_function": self._visit_function,
            "method_definition": self._visit_function,
            "lexical_declaration": self._visit_declaration,
            "variable_declaration": self._visit_declaration,
            "assignment_expression": self._visit_assignment,
            "augmented_assignment_expression": self._visit_assignment,
            "update_expression": self._visit_update,
            "for_statement": self._visit_for,
            "while_statement": self._visit_while,
            "do_statement": self._visit_do,
            "for_in_statement": self._visit_for_in,
            "if_statement": self._visit_if,
            "ternary_expression": self._visit_ternary,
            "switch_statement": self._visit_switch,
            "call_expression": self._visit_call,
            "import_statement": self._visit_import,
        }

    def _reset(self):
        self._source: bytes = b""
        self._functions: list[FunctionInfo] = []
        self._variables: list[dict] = []
        self._loops: list[LoopInfo] = []
        self._conditionals: list[ConditionalInfo] = []
        self._suggestions: list[Suggestion] = []
        self._builtins: list[str] = []
        self._globals: list[str] = []
        self._imports: list[ImportInfo] = []
        self._reassigned: set[str] = set()
        self._complexity: int = 1
        self._statements: int = 0
        self._expressions: int = 0
        self._max_line: int = 0

    # ── entry point ──────────────────────────────────────────────

    def analyze(self, tree: SyntaxTree) -> AnalysisReport:
        self._reset()
        self._source = tree.source
        root = tree.root

        for node in walk(root):
            if not node.is_named:
                continue
            if node is not root and node.type != "program":
                self._max_line = max(self._max_line, node.end_point[0] + 1)
            if node.type in _STATEMENT_TYPES:
                self._statements += 1
            if node.type in _EXPRESSION_TYPES:
                self._expressions += 1
            if is_branch_node(node, self._source):
                self._complexity += 1
            handler = self._DISPATCH.get(node.type)
            if handler:
                handler(node)

        variables = [
            VariableInfo(**v, reassigned=v["name"] in self._reassigned)
            for v in self._variables
        ]
        report = AnalysisReport(
            functions=self._functions,
            variables=variables,
            loops=self._loops,
            conditionals=self._conditionals,
            complexity=self._complexity,
            dependencies=DependencySummary(
                builtins=self._builtins,
                globals=self._globals,
                imports=self._imports,
            ),
            suggestions=self._suggestions,
            metrics=CodeMetrics(
                lines_of_code=self._max_line,
                statements=self._statements,
                expressions=self._expressions,
                functions=len(self._functions),
                variables=len(variables),
                complexity=self._complexity,
            ),
        )
        logger.info(
            "Analyzed %d functions, %d variables, %d loops (complexity %d)",
            len(report.functions),
            len(report.variables),
            len(report.loops),
            report.complexity,
        )
        return report

    # ── helpers ──────────────────────────────────────────────────

    def _text(self, node) -> str:
        return node_text(node, self._source)

    def _suggest(self, kind: str, message: str, node, severity: Severity):
        self._suggestions.append(
            Suggestion(
                kind=kind, message=message, line=start_line(node), severity=severity
            )
        )

    def _function_name(self, node) -> str:
        if node.type == "arrow_function":
            return constants.ARROW_FUNCTION_NAME
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return constants.ANONYMOUS_FUNCTION
        return self._text(name_node)

    def _param_name(self, param) -> str:
        names = bound_names(param, self._source)
        return names[0] if len(names) == 1 else self._text(param)

    def _is_recursive(self, node, name: str) -> bool:
        if node.type in ("arrow_function", "method_definition"):
            return False
        if node.child_by_field_name("name") is None:
            return False
        for inner in walk(node):
            if inner.type != "call_expression":
                continue
            callee = inner.child_by_field_name("function")
            if callee is not None and callee.type == "identifier":
                if self._text(callee) == name:
                    return True
        return False

    def _enclosing_function(self, node):
        parent = node.parent
        while parent is not None:
            if parent.type in FUNCTION_NODE_TYPES:
                return parent
            parent = parent.parent
        return None

    def _scope_tag(self, declaration, kind: str) -> str:
        func = self._enclosing_function(declaration)
        if kind == "var":
            return "function" if func is not None else "global"
        parent = declaration.parent
        if parent is not None and parent.type == "program":
            return "global"
        if func is not None and parent == func.child_by_field_name("body"):
            return "function"
        return "block"

    # ── visitors ─────────────────────────────────────────────────

    def _visit_function(self, node):
        name = self._function_name(node)
        complexity = cyclomatic_complexity(node, self._source)
        self._functions.append(
            FunctionInfo(
                kind=_FUNCTION_KINDS[node.type],
                name=name,
                params=[self._param_name(p) for p in function_params(node)],
                line=start_line(node),
                column=start_col(node),
                complexity=complexity,
                is_recursive=self._is_recursive(node, name),
            )
        )
        if complexity > constants.COMPLEXITY_THRESHOLD:
            self._suggest(
                "warning",
                f"Function '{name}' has high complexity. Consider breaking it down.",
                node,
                Severity.HIGH,
            )

    def _visit_declaration(self, node):
        kind = declaration_kind(node, self._source)
        if kind == "var":
            self._suggest(
                "warning",
                "Consider using let or const instead of var",
                node,
                Severity.MEDIUM,
            )
        scope = self._scope_tag(node, kind)
        for declarator in node.children:
            if declarator.type != "variable_declarator":
                continue
            name_node = declarator.child_by_field_name("name")
            if name_node is None or name_node.type != "identifier":
                continue
            self._variables.append(
                {
                    "name": self._text(name_node),
                    "kind": kind,
                    "line": start_line(declarator),
                    "column": start_col(declarator),
                    "has_initializer": declarator.child_by_field_name("value")
                    is not None,
                    "scope": scope,
                }
            )

    def _visit_assignment(self, node):
        left = node.child_by_field_name("left")
        if left is not None and left.type == "identifier":
            self._reassigned.add(self._text(left))

    def _visit_update(self, node):
        argument = node.child_by_field_name("argument")
        if argument is not None and argument.type == "identifier":
            self._reassigned.add(self._text(argument))

    def _visit_for(self, node):
        infinite = is_infinite_loop(node)
        self._loops.append(
            LoopInfo(
                kind="for",
                line=start_line(node),
                column=start_col(node),
                has_init=unwrap_clause(node.child_by_field_name("initializer"))
                is not None,
                has_test=unwrap_clause(node.child_by_field_name("condition"))
                is not None,
                has_update=node.child_by_field_name("increment") is not None,
                is_infinite=infinite,
            )
        )
        if infinite:
            self._suggest(
                "error", "Potential infinite loop detected", node, Severity.CRITICAL
            )

    def _visit_while(self, node):
        infinite = is_infinite_loop(node)
        self._loops.append(
            LoopInfo(
                kind="while",
                line=start_line(node),
                column=start_col(node),
                is_infinite=infinite,
            )
        )
        if infinite:
            self._suggest(
                "error", "Potential infinite loop detected", node, Severity.CRITICAL
            )

    def _visit_do(self, node):
        self._loops.append(
            LoopInfo(kind="do-while", line=start_line(node), column=start_col(node))
        )

    def _visit_for_in(self, node):
        is_of = has_child_token(node, "of")
        self._loops.append(
            LoopInfo(
                kind="for-of" if is_of else "for-in",
                line=start_line(node),
                column=start_col(node),
            )
        )
        kind_node = node.child_by_field_name("kind")
        left = node.child_by_field_name("left")
        if kind_node is not None and left is not None and left.type == "identifier":
            kind = self._text(kind_node)
            self._variables.append(
                {
                    "name": self._text(left),
                    "kind": kind,
                    "line": start_line(left),
                    "column": start_col(left),
                    "has_initializer": False,
                    "scope": self._scope_tag(node, kind),
                }
            )

    def _condition_complexity(self, test) -> int:
        if test is None:
            return 1
        return 1 + sum(1 for n in walk(test) if n.type == "binary_expression")

    def _visit_if(self, node):
        alternative = node.child_by_field_name("alternative")
        alt_body = named_children(alternative) if alternative is not None else []
        self._conditionals.append(
            ConditionalInfo(
                kind="if",
                line=start_line(node),
                column=start_col(node),
                has_else=alternative is not None,
                is_else_if=bool(alt_body) and alt_body[0].type == "if_statement",
                complexity=self._condition_complexity(
                    node.child_by_field_name("condition")
                ),
            )
        )

    def _visit_ternary(self, node):
        self._conditionals.append(
            ConditionalInfo(
                kind="ternary",
                line=start_line(node),
                column=start_col(node),
                complexity=self._condition_complexity(
                    node.child_by_field_name("condition")
                ),
            )
        )

    def _visit_switch(self, node):
        body = node.child_by_field_name("body")
        cases = [
            c
            for c in (body.children if body is not None else [])
            if c.type in ("switch_case", "switch_default")
        ]
        self._conditionals.append(
            ConditionalInfo(
                kind="switch",
                line=start_line(node),
                column=start_col(node),
                case_count=len(cases),
                has_default=any(c.type == "switch_default" for c in cases),
            )
        )

    def _visit_call(self, node):
        callee = node.child_by_field_name("function")
        if callee is None:
            return
        if callee.type == "identifier":
            name = self._text(callee)
            if name in constants.BUILTIN_FUNCTIONS and name not in self._builtins:
                self._builtins.append(name)
        elif callee.type == "member_expression":
            obj = callee.child_by_field_name("object")
            if obj is not None and obj.type == "identifier":
                name = self._text(obj)
                if name in constants.GLOBAL_OBJECTS and name not in self._globals:
                    self._globals.append(name)

    def _visit_import(self, node):
        source_node = node.child_by_field_name("source")
        source = self._text(source_node)[1:-1] if source_node is not None else ""
        specifiers: list[str] = []
        for clause in node.children:
            if clause.type != "import_clause":
                continue
            for part in named_children(clause):
                if part.type == "identifier":
                    specifiers.append(self._text(part))
                elif part.type == "namespace_import":
                    specifiers.extend(
                        self._text(c) for c in named_children(part)
                        if c.type == "identifier"
                    )
                elif part.type == "named_imports":
                    for item in named_children(part):
                        local = item.child_by_field_name(
                            "alias"
                        ) or item.child_by_field_name("name")
                        if local is not None:
                            specifiers.append(self._text(local))
        self._imports.append(ImportInfo(source=source, specifiers=specifiers))


def analyze(tree: SyntaxTree) -> AnalysisReport:
    return CodeAnalyzer().analyze(tree)
