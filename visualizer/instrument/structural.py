"""Structural instrumentation: splice hook calls into the original source text.

Every insertion is anchored to a byte offset of the parsed tree, so the
original formatting survives and no newline is ever added: line numbers in
the instrumented source match the input.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .. import constants
from ..parser import SourceSyntaxError, parse
from ._base import (
    AnnotatedTree,
    InstrumentationError,
    InstrumentationStrategy,
    capture_calls,
    enter_call,
    exit_call,
    needs_braces,
    return_argument,
    step_call,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Insertion:
    """Text to place at *offset*.

    At a shared offset, closing insertions go before opening ones; closings
    are ordered innermost-first and openings outermost-first so that nested
    wrappers stay balanced.
    """

    offset: int
    text: str
    closing: bool
    depth: int
    seq: int

    def sort_key(self) -> tuple[int, int, int, int]:
        if self.closing:
            return (self.offset, 0, -self.depth, self.seq)
        return (self.offset, 1, self.depth, self.seq)


class _Splicer:
    def __init__(self):
        self.insertions: list[Insertion] = []

    def opening(self, offset: int, text: str, depth: int):
        self.insertions.append(
            Insertion(offset, text, False, depth, len(self.insertions))
        )

    def closing(self, offset: int, text: str, depth: int):
        self.insertions.append(
            Insertion(offset, text, True, depth, len(self.insertions))
        )

    def apply(self, source: bytes) -> str:
        ordered = sorted(self.insertions, key=Insertion.sort_key)
        parts: list[bytes] = []
        cursor = 0
        for ins in ordered:
            parts.append(source[cursor : ins.offset])
            parts.append(ins.text.encode("utf-8"))
            cursor = ins.offset
        parts.append(source[cursor:])
        return b"".join(parts).decode("utf-8")


class StructuralStrategy(InstrumentationStrategy):
    """Inserts hooks around statements of the unmodified source."""

    name = constants.STRATEGY_STRUCTURAL

    def generate(self, annotated: AnnotatedTree) -> str:
        tree = annotated.syntax_tree
        if tree.root.has_error:
            raise InstrumentationError("Cannot splice into a tree with syntax errors")
        splicer = _Splicer()
        self._collect(tree.root, 0, annotated, splicer)
        output = splicer.apply(tree.source)
        logger.debug(
            "Structural instrumentation: %d insertions", len(splicer.insertions)
        )
        try:
            parse(output)
        except SourceSyntaxError as exc:
            raise InstrumentationError(
                f"Instrumented source does not parse: {exc}"
            ) from exc
        return output

    def _collect(self, node, depth: int, annotated: AnnotatedTree, splicer: _Splicer):
        slot = depth * 4
        body_captures = annotated.captures_at_start.get(node.id, ())
        marker = annotated.steps.get(node.id)

        if marker is not None:
            after = annotated.captures_after.get(node.id, ())
            after_text = f"; {capture_calls(after)}" if after else ""
            if needs_braces(node):
                prefix = capture_calls(body_captures) + " " if body_captures else ""
                splicer.opening(node.start_byte, "{ " + prefix + step_call(marker) + " ", slot)
                splicer.closing(node.end_byte, after_text + " }", slot)
            else:
                splicer.opening(node.start_byte, step_call(marker) + " ", slot + 2)
                if after_text:
                    splicer.closing(node.end_byte, after_text, slot + 2)
        elif body_captures:
            self._loop_body_captures(node, slot, body_captures, splicer)

        function = annotated.functions.get(node.id)
        if function is not None:
            self._function_hooks(node, depth, function, splicer)

        if node.id in annotated.returns:
            self._return_hook(node, slot, splicer)

        for child in node.children:
            self._collect(child, depth + 1, annotated, splicer)

    def _loop_body_captures(self, body, slot: int, names, splicer: _Splicer):
        text = capture_calls(names)
        if body.type == "statement_block":
            splicer.opening(body.start_byte + 1, " " + text, slot + 1)
        else:
            splicer.opening(body.start_byte, "{ " + text + " } ", slot + 1)

    def _function_hooks(self, node, depth: int, function, splicer: _Splicer):
        body = node.child_by_field_name("body")
        body_slot = (depth + 1) * 4
        if body.type == "statement_block":
            splicer.opening(body.start_byte + 1, " " + enter_call(function), body_slot + 1)
            splicer.closing(body.end_byte - 1, "; " + exit_call() + " ", body_slot + 1)
            return
        splicer.opening(
            body.start_byte,
            "{ "
            + enter_call(function)
            + f" return {constants.EXIT_FUNCTION_HOOK}(",
            body_slot,
        )
        splicer.closing(body.end_byte, "); }", body_slot)

    def _return_hook(self, node, slot: int, splicer: _Splicer):
        argument = return_argument(node)
        if argument is None:
            keyword = node.children[0]
            splicer.opening(
                keyword.end_byte, f" {constants.EXIT_FUNCTION_HOOK}()", slot + 3
            )
            return
        wrap_open, wrap_close = "(", ")"
        if argument.type == "sequence_expression":
            wrap_open, wrap_close = "((", "))"
        splicer.opening(
            argument.start_byte, constants.EXIT_FUNCTION_HOOK + wrap_open, slot + 3
        )
        splicer.closing(argument.end_byte, wrap_close, slot + 3)
