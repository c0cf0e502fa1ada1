"""
Generic syntax tree shared by the tree-based extractors.

Both tree-sitter trees and the hand-written Move parser are converted into
``SyntaxNode`` values (type, text, children, named fields), so the extractors
walk one shape regardless of where the tree came from. Traversal always uses
an explicit stack; contract files can nest deeply enough to make recursion a
liability.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List

from tree_sitter import Language, Node, Parser
from tree_sitter_rust import language as rust_language

logger = logging.getLogger(__name__)


@dataclass
class SyntaxNode:
    type: str
    text: str = ""
    children: List["SyntaxNode"] = field(default_factory=list)
    fields: Dict[str, "SyntaxNode"] = field(default_factory=dict)

    def child_by_field(self, name: str) -> "SyntaxNode | None":
        return self.fields.get(name)

    def children_of_type(self, *types: str) -> List["SyntaxNode"]:
        return [c for c in self.children if c.type in types]

    def add(self, child: "SyntaxNode", field_name: str | None = None) -> "SyntaxNode":
        self.children.append(child)
        if field_name:
            self.fields.setdefault(field_name, child)
        return child


def walk(node: SyntaxNode, *, skip: Iterable[str] = ()) -> Iterable[SyntaxNode]:
    """
    Pre-order traversal in source order.

    Args:
        node: Root of the walk (yielded first)
        skip: Node types whose subtrees are not entered (the node itself is
            still yielded)
    """
    skip = frozenset(skip)
    stack = [node]
    while stack:
        n = stack.pop()
        yield n
        if n is not node and n.type in skip:
            continue
        for c in reversed(n.children):
            stack.append(c)


def _node_text(source_bytes: bytes, node: Node) -> str:
    return source_bytes[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")


def from_tree_sitter(root: Node, source_bytes: bytes) -> SyntaxNode:
    """Convert a tree-sitter tree into ``SyntaxNode`` form (named nodes only)."""
    top = SyntaxNode(root.type, _node_text(source_bytes, root))
    stack = [(root, top)]
    while stack:
        ts_node, node = stack.pop()
        cursor = ts_node.walk()
        if not cursor.goto_first_child():
            continue
        while True:
            child = cursor.node
            if child.is_named:
                converted = node.add(
                    SyntaxNode(child.type, _node_text(source_bytes, child)),
                    cursor.field_name,
                )
                stack.append((child, converted))
            if not cursor.goto_next_sibling():
                break
    return top


def _set_parser_language(parser: Parser, raw: object) -> None:
    # Grammar packages return a PyCapsule; tree_sitter.Parser expects tree_sitter.Language.
    lang: Language
    if isinstance(raw, Language):
        lang = raw
    else:
        lang = Language(raw)  # type: ignore[arg-type]

    # tree-sitter API differs by version; support both.
    if hasattr(parser, "set_language"):
        parser.set_language(lang)  # type: ignore[attr-defined]
    else:
        parser.language = lang  # type: ignore[assignment]


_GRAMMARS: Dict[str, Callable[[], object]] = {
    "rust": rust_language,
}


class ParserContext:
    """
    Owner of the tree-sitter parsers used during a parse request.

    Parsers are built on first use and reused for the lifetime of the context.
    Callers that parse many files share one context; nothing here is global.
    """

    def __init__(self) -> None:
        self._parsers: Dict[str, Parser] = {}

    def parser(self, grammar: str) -> Parser:
        if grammar not in self._parsers:
            if grammar not in _GRAMMARS:
                raise KeyError(f"No tree-sitter grammar registered for {grammar!r}")
            parser = Parser()
            _set_parser_language(parser, _GRAMMARS[grammar]())
            self._parsers[grammar] = parser
            logger.debug(f"Initialised tree-sitter parser for {grammar}")
        return self._parsers[grammar]

    def parse(self, grammar: str, source: str) -> SyntaxNode:
        source_bytes = source.encode("utf-8")
        tree = self.parser(grammar).parse(source_bytes)
        return from_tree_sitter(tree.root_node, source_bytes)

    @property
    def loaded(self) -> List[str]:
        return sorted(self._parsers)
