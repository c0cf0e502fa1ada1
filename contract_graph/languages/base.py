from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, FrozenSet, List, Tuple

from contract_graph.models import (
    DEFAULT_CLASSIFICATION,
    CallEdge,
    FunctionRecord,
    ParsedSource,
)
from contract_graph.resolver import resolve_call_edges
from contract_graph.scanner import Keyword, scan_functions
from contract_graph.syntax import ParserContext

ParseFn = Callable[[str, ParserContext], ParsedSource]
EdgeFn = Callable[[ParsedSource], List[CallEdge]]

REGULAR_ONLY: Tuple[Tuple[str, str], ...] = ((DEFAULT_CLASSIFICATION, "Regular"),)


@dataclass(frozen=True)
class LanguageAdapter:
    """Everything the pipeline needs to know about one contract language."""

    language_id: str
    display_name: str
    extensions: FrozenSet[str]
    parse: ParseFn
    build_call_graph: EdgeFn
    # (value, label) pairs offered as function type filters, in display order.
    classifications: Tuple[Tuple[str, str], ...] = REGULAR_ONLY
    comment_markers: Tuple[str, ...] = ("//",)


def simple_parse(source: str, keyword: Keyword) -> ParsedSource:
    """Keyword-scanner parse: every function is ``regular`` in scope ``Contract``."""
    return ParsedSource(
        functions=[
            FunctionRecord.build(fn.name, fn.params, fn.body)
            for fn in scan_functions(source, keyword)
        ]
    )


def simple_edges(parsed: ParsedSource, comment_markers: Tuple[str, ...] = ("//",)) -> List[CallEdge]:
    return resolve_call_edges(parsed.functions, comment_markers=comment_markers)


def keyword_adapter(
    language_id: str,
    display_name: str,
    keyword: Keyword,
    extensions: Tuple[str, ...],
    comment_markers: Tuple[str, ...] = ("//",),
) -> LanguageAdapter:
    """Adapter for a language handled entirely by the generic scanner."""

    def parse(source: str, context: ParserContext) -> ParsedSource:
        return simple_parse(source, keyword)

    def build_call_graph(parsed: ParsedSource) -> List[CallEdge]:
        return simple_edges(parsed, comment_markers)

    return LanguageAdapter(
        language_id=language_id,
        display_name=display_name,
        extensions=frozenset(extensions),
        parse=parse,
        build_call_graph=build_call_graph,
        comment_markers=comment_markers,
    )


def structural_edges(parsed: ParsedSource) -> List[CallEdge]:
    """Edges from pre-resolved call pairs, deduplicated per source."""
    edges: List[CallEdge] = []
    seen = set()
    for source, target in parsed.calls:
        key = f"{source}->{target}"
        if key in seen:
            continue
        seen.add(key)
        edges.append(CallEdge(source=source, target=target))
    return edges
