"""Synthesis instrumentation: regenerate source node by node.

Statements are emitted one per line with their hooks on lines of their own;
expressions are rebuilt child by child, keeping the original text between
tokens.  Composite node kinds without a handler are replaced by a
placeholder comment.
"""

from __future__ import annotations

import logging
from typing import Callable

from .. import constants
from ..syntax import COMMENT_TYPES, named_children
from ._base import (
    STATEMENT_LIST_TYPES,
    AnnotatedTree,
    InstrumentationStrategy,
    capture_calls,
    enter_call,
    exit_call,
    in_statement_position,
    return_argument,
    step_call,
)

logger = logging.getLogger(__name__)

INDENT = "  "

_TERMINATED_TYPES: frozenset[str] = frozenset(
    {
        "expression_statement",
        "lexical_declaration",
        "variable_declaration",
        "break_statement",
        "continue_statement",
        "throw_statement",
        "debugger_statement",
    }
)

# Composite kinds whose text is rebuilt from their children unchanged.
_REBUILT_TYPES: frozenset[str] = frozenset(
    {
        # statements
        "expression_statement",
        "lexical_declaration",
        "variable_declaration",
        "variable_declarator",
        "if_statement",
        "else_clause",
        "while_statement",
        "do_statement",
        "for_statement",
        "for_in_statement",
        "break_statement",
        "continue_statement",
        "throw_statement",
        "try_statement",
        "catch_clause",
        "finally_clause",
        "switch_statement",
        "switch_body",
        "labeled_statement",
        "empty_statement",
        "debugger_statement",
        "class_declaration",
        "class",
        "class_heritage",
        "class_body",
        "field_definition",
        "class_static_block",
        # expressions
        "parenthesized_expression",
        "binary_expression",
        "unary_expression",
        "update_expression",
        "assignment_expression",
        "augmented_assignment_expression",
        "ternary_expression",
        "sequence_expression",
        "call_expression",
        "new_expression",
        "member_expression",
        "subscript_expression",
        "arguments",
        "array",
        "object",
        "pair",
        "spread_element",
        "await_expression",
        "template_string",
        "template_substitution",
        "computed_property_name",
        "string",
        "regex",
        # patterns and parameters
        "formal_parameters",
        "array_pattern",
        "object_pattern",
        "assignment_pattern",
        "object_assignment_pattern",
        "rest_pattern",
        "pair_pattern",
    }
)

_FUNCTION_TYPES: frozenset[str] = frozenset(
    {
        "function_declaration",
        "generator_function_declaration",
        "function_expression",
        "function",
        "generator_function",
        "arrow_function",
        "method_definition",
    }
)


class SynthesisStrategy(InstrumentationStrategy):
    """Regenerates the whole program from the annotated tree."""

    name = constants.STRATEGY_SYNTHESIS

    def __init__(self):
        self._annotated: AnnotatedTree | None = None
        self._source: bytes = b""
        self._indent: int = 0
        self._DISPATCH: dict[str, Callable] = {
            t: self._rebuild for t in _REBUILT_TYPES
        }
        self._DISPATCH.update({t: self._function for t in _FUNCTION_TYPES})
        self._DISPATCH.update(
            {
                "statement_block": self._body,
                "return_statement": self._return,
                "switch_case": self._switch_case,
                "switch_default": self._switch_case,
            }
        )

    def generate(self, annotated: AnnotatedTree) -> str:
        self._annotated = annotated
        self._source = annotated.syntax_tree.source
        self._indent = 0
        lines: list[str] = []
        for statement in named_children(annotated.syntax_tree.root):
            lines.extend(self._statement_lines(statement))
        logger.debug("Synthesized %d lines", len(lines))
        return "\n".join(lines) + "\n"

    # ── statements ───────────────────────────────────────────────

    def _pad(self) -> str:
        return INDENT * self._indent

    def _statement_lines(self, node) -> list[str]:
        core = self._emit(node)
        if node.type in _TERMINATED_TYPES:
            core = core.rstrip()
            if not core.endswith(";"):
                core += ";"
        lines: list[str] = []
        marker = self._annotated.steps.get(node.id)
        if marker is not None:
            lines.append(self._pad() + step_call(marker))
        lines.append(self._pad() + core)
        after = self._annotated.captures_after.get(node.id)
        if after:
            lines.append(self._pad() + capture_calls(after))
        return lines

    def _block(self, statements, prologue=(), epilogue=()) -> str:
        self._indent += 1
        lines = [self._pad() + text for text in prologue]
        for statement in statements:
            lines.extend(self._statement_lines(statement))
        lines.extend(self._pad() + text for text in epilogue)
        self._indent -= 1
        if not lines:
            return "{}"
        return "{\n" + "\n".join(lines) + "\n" + self._pad() + "}"

    def _body(self, node, prologue=(), epilogue=()) -> str:
        captures = self._annotated.captures_at_start.get(node.id)
        if captures:
            prologue = (capture_calls(captures),) + tuple(prologue)
        if node.type == "statement_block":
            return self._block(named_children(node), prologue, epilogue)
        return self._block([node], prologue, epilogue)

    def _switch_case(self, node) -> str:
        colon = next(c for c in node.children if c.type == ":")
        header = self._rebuild(node, stop_byte=colon.end_byte)
        statements = [
            c
            for c in named_children(node)
            if c.start_byte >= colon.end_byte
        ]
        self._indent += 1
        lines: list[str] = []
        for statement in statements:
            lines.extend(self._statement_lines(statement))
        self._indent -= 1
        return "\n".join([header] + lines)

    def _return(self, node) -> str:
        if node.id not in self._annotated.returns:
            return self._rebuild(node)
        argument = return_argument(node)
        if argument is None:
            return f"return {constants.EXIT_FUNCTION_HOOK}();"
        value = self._emit(argument)
        if argument.type == "sequence_expression":
            value = f"({value})"
        return f"return {constants.EXIT_FUNCTION_HOOK}({value});"

    # ── functions ────────────────────────────────────────────────

    def _function(self, node) -> str:
        marker = self._annotated.functions.get(node.id)
        body = node.child_by_field_name("body")
        if marker is None or body is None:
            return self._rebuild(node)
        if body.type == "statement_block":
            text = self._body(body, (enter_call(marker),), (exit_call(),))
        else:
            text = (
                "{ "
                + enter_call(marker)
                + f" return {constants.EXIT_FUNCTION_HOOK}("
                + self._emit(body)
                + "); }"
            )
        return self._rebuild(node, overrides={body.id: text})

    # ── expressions ──────────────────────────────────────────────

    def _emit(self, node) -> str:
        if node.type in COMMENT_TYPES:
            return ""
        handler = self._DISPATCH.get(node.type)
        if handler is not None:
            return handler(node)
        if node.child_count == 0:
            return self._source[node.start_byte : node.end_byte].decode("utf-8")
        logger.debug("No synthesis handler for %s", node.type)
        return constants.UNSUPPORTED_NODE_TEMPLATE.format(kind=node.type)

    def _rebuild(self, node, overrides=None, stop_byte=None) -> str:
        """Re-emit *node* child by child, keeping the source text between children."""
        overrides = overrides or {}
        end = node.end_byte if stop_byte is None else stop_byte
        parts: list[str] = []
        cursor = node.start_byte
        for child in node.children:
            if child.start_byte >= end:
                break
            parts.append(self._gap(cursor, child.start_byte))
            if child.id in overrides:
                parts.append(overrides[child.id])
            elif (
                node.type not in STATEMENT_LIST_TYPES
                and child.type != "statement_block"
                and in_statement_position(child)
            ):
                parts.append(self._body(child))
            else:
                parts.append(self._emit(child))
            cursor = child.end_byte
        parts.append(self._gap(cursor, end))
        return "".join(parts)

    def _gap(self, start: int, end: int) -> str:
        if end <= start:
            return ""
        return self._source[start:end].decode("utf-8")
