"""Syntax tree helpers: source spans, node text and traversal over tree-sitter nodes."""

from __future__ import annotations

from typing import Iterator

from pydantic import BaseModel


class SourceLocation(BaseModel):
    """Structured source span from tree-sitter AST nodes.

    Lines are 1-based, columns are 0-based (the convention editors and
    JavaScript parsers use when reporting positions).
    """

    start_line: int
    start_col: int
    end_line: int
    end_col: int

    def is_unknown(self) -> bool:
        return (
            self.start_line == 0
            and self.start_col == 0
            and self.end_line == 0
            and self.end_col == 0
        )

    def __str__(self) -> str:
        if self.is_unknown():
            return "<unknown>"
        return f"{self.start_line}:{self.start_col}-{self.end_line}:{self.end_col}"


NO_SOURCE_LOCATION = SourceLocation(start_line=0, start_col=0, end_line=0, end_col=0)


FUNCTION_NODE_TYPES: frozenset[str] = frozenset(
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

LOOP_NODE_TYPES: frozenset[str] = frozenset(
    {"for_statement", "for_in_statement", "while_statement", "do_statement"}
)

DECLARATION_NODE_TYPES: frozenset[str] = frozenset(
    {"lexical_declaration", "variable_declaration"}
)

BLOCK_NODE_TYPES: frozenset[str] = frozenset({"program", "statement_block"})

COMMENT_TYPES: frozenset[str] = frozenset({"comment", "html_comment"})


def node_text(node, source: bytes) -> str:
    return source[node.start_byte : node.end_byte].decode("utf-8")


def source_loc(node) -> SourceLocation:
    s, e = node.start_point, node.end_point
    return SourceLocation(
        start_line=s[0] + 1,
        start_col=s[1],
        end_line=e[0] + 1,
        end_col=e[1],
    )


def start_line(node) -> int:
    return node.start_point[0] + 1


def start_col(node) -> int:
    return node.start_point[1]


def walk(node) -> Iterator:
    """Pre-order traversal of *node* and all of its descendants."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def walk_named(node) -> Iterator:
    return (n for n in walk(node) if n.is_named)


def walk_scope(node) -> Iterator:
    """Pre-order traversal that does not descend into nested functions or classes."""
    stack = list(reversed(node.children))
    while stack:
        current = stack.pop()
        yield current
        if current.type in FUNCTION_NODE_TYPES or current.type in (
            "class_declaration",
            "class",
        ):
            continue
        stack.extend(reversed(current.children))


def named_children(node) -> list:
    return [c for c in node.children if c.is_named and c.type not in COMMENT_TYPES]


def unwrap_parens(node):
    """Strip any number of enclosing ``parenthesized_expression`` wrappers."""
    while node is not None and node.type == "parenthesized_expression":
        inner = named_children(node)
        if not inner:
            return node
        node = inner[0]
    return node


def unwrap_clause(node):
    """Return the expression inside a for-header clause.

    Older grammars wrap for-loop initializers and conditions in
    ``expression_statement`` / ``empty_statement`` nodes; newer ones expose the
    bare expression.  ``None`` means the clause is absent.
    """
    if node is None or node.type in ("empty_statement", ";"):
        return None
    if node.type == "expression_statement":
        inner = named_children(node)
        return inner[0] if inner else None
    return node


def operator_token(node, source: bytes) -> str:
    op_node = node.child_by_field_name("operator")
    if op_node is not None:
        return node_text(op_node, source)
    unnamed = [c for c in node.children if not c.is_named]
    return node_text(unnamed[0], source) if unnamed else ""


def has_child_token(node, token: str) -> bool:
    return any(not c.is_named and c.type == token for c in node.children)


def bound_names(pattern, source: bytes) -> list[str]:
    """Identifiers bound by a declaration target or destructuring pattern."""
    if pattern is None:
        return []
    ptype = pattern.type
    if ptype in ("identifier", "shorthand_property_identifier_pattern"):
        return [node_text(pattern, source)]
    if ptype == "assignment_pattern":
        return bound_names(pattern.child_by_field_name("left"), source)
    if ptype == "object_assignment_pattern":
        return bound_names(pattern.child_by_field_name("left"), source)
    if ptype == "pair_pattern":
        return bound_names(pattern.child_by_field_name("value"), source)
    if ptype in ("rest_pattern", "array_pattern", "object_pattern"):
        names: list[str] = []
        for child in named_children(pattern):
            names.extend(bound_names(child, source))
        return names
    return []


def declared_names(declaration, source: bytes) -> list[str]:
    """Names declared by a ``lexical_declaration`` / ``variable_declaration``."""
    names: list[str] = []
    for child in declaration.children:
        if child.type == "variable_declarator":
            names.extend(bound_names(child.child_by_field_name("name"), source))
    return names


def declaration_kind(declaration, source: bytes) -> str:
    kind_node = declaration.child_by_field_name("kind")
    if kind_node is not None:
        return node_text(kind_node, source)
    first = declaration.children[0] if declaration.children else None
    return node_text(first, source) if first is not None else "var"


def function_params(node):
    """Return the parameter node list of any function-like node."""
    params = node.child_by_field_name("parameters")
    if params is not None:
        return [c for c in params.children if c.is_named and c.type not in COMMENT_TYPES]
    single = node.child_by_field_name("parameter")
    return [single] if single is not None else []
