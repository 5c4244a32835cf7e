"""Tree-Sitter Parsing Layer."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from . import constants
from .syntax import node_text, walk

logger = logging.getLogger(__name__)


class SourceSyntaxError(Exception):
    """Source text is not valid JavaScript; carries the offending position."""

    def __init__(self, message: str, line: int, column: int):
        super().__init__(f"{message} ({line}:{column})")
        self.message = message
        self.line = line
        self.column = column


class ParserFactory(ABC):
    """Abstract factory for obtaining a language parser."""

    @abstractmethod
    def get_parser(self, language: str): ...


class TreeSitterParserFactory(ParserFactory):
    """Concrete factory that delegates to tree-sitter-language-pack."""

    def get_parser(self, language: str):
        import tree_sitter_language_pack as tslp

        return tslp.get_parser(language)


@dataclass(frozen=True)
class SyntaxTree:
    """A parsed program: the tree-sitter tree plus the bytes it was parsed from."""

    tree: object
    source: bytes

    @property
    def root(self):
        return self.tree.root_node

    def text(self, node) -> str:
        return node_text(node, self.source)


class Parser:
    """Thin wrapper around a parser factory."""

    def __init__(self, parser_factory: ParserFactory):
        self._factory = parser_factory

    def parse(self, source: str, language: str = constants.LANGUAGE) -> SyntaxTree:
        parser = self._factory.get_parser(language)
        source_bytes = source.encode("utf-8")
        tree = parser.parse(source_bytes)
        syntax_tree = SyntaxTree(tree=tree, source=source_bytes)
        check_syntax(syntax_tree)
        return syntax_tree


def check_syntax(syntax_tree: SyntaxTree) -> None:
    """Raise SourceSyntaxError at the first ERROR or MISSING node, if any."""
    root = syntax_tree.root
    if not root.has_error:
        return
    for node in walk(root):
        if node.is_missing:
            line, col = node.start_point[0] + 1, node.start_point[1]
            raise SourceSyntaxError(f"Expected '{node.type}'", line, col)
        if node.type == "ERROR":
            line, col = node.start_point[0] + 1, node.start_point[1]
            raise SourceSyntaxError(_unexpected(node, syntax_tree.source), line, col)
    line, col = root.start_point[0] + 1, root.start_point[1]
    raise SourceSyntaxError("Unexpected token", line, col)


def _unexpected(error_node, source: bytes) -> str:
    leaf = error_node
    while leaf.children:
        leaf = leaf.children[0]
    token = node_text(leaf, source).strip()
    if not token:
        return "Unexpected end of input"
    return f"Unexpected token '{token[:20]}'"


def parse(source: str) -> SyntaxTree:
    """Parse JavaScript *source*; raises SourceSyntaxError when it is malformed."""
    logger.debug("Parsing %d bytes of JavaScript", len(source))
    return Parser(TreeSitterParserFactory()).parse(source)
