"""
Call edge resolver.

Finds calls between known functions by name, including method-style calls
(``x.foo(``, ``x~foo(``). One combined pattern is built from every target
name, longest name first, so ``foobar(`` is never read as a call to ``foo``.
Qualification of names that collide across modules happens
in the extractors before this runs.
"""
from __future__ import annotations

import logging
import re
from typing import Iterable, Mapping, Pattern, Sequence

from contract_graph.lexing import line_prefix, mask_strings
from contract_graph.models import CallEdge, FunctionRecord

logger = logging.getLogger(__name__)


def build_call_pattern(names: Iterable[str]) -> Pattern[str] | None:
    """Combined call pattern over ``names``, longest first."""
    ordered = sorted(set(names), key=lambda n: (-len(n), n))
    if not ordered:
        return None
    # Names starting with a sigil (FunC ``~load``) carry their own boundary.
    alternatives = "|".join(
        (r"(?<![\w$])" if _is_word_start(name) else "") + re.escape(name)
        for name in ordered
    )
    return re.compile(rf"({alternatives})\s*\(")


def _is_word_start(name: str) -> bool:
    return name[:1].isalnum() or name[:1] in "_$"


def find_called_names(
    body: str,
    pattern: Pattern[str],
    comment_markers: Sequence[str] = ("//",),
) -> list[str]:
    """Names called in ``body``, in first-call order, without duplicates."""
    text = mask_strings(body)
    seen: set[str] = set()
    called: list[str] = []
    for m in pattern.finditer(text):
        prefix = line_prefix(text, m.start())
        if any(marker in prefix for marker in comment_markers):
            continue
        name = m.group(1)
        if name not in seen:
            seen.add(name)
            called.append(name)
    return called


def resolve_call_edges(
    functions: Iterable[FunctionRecord],
    targets: Mapping[str, str] | None = None,
    comment_markers: Sequence[str] = ("//",),
) -> list[CallEdge]:
    """
    Build call edges from function bodies.

    Args:
        functions: Functions whose bodies are scanned
        targets: Call name -> target id. Defaults to each function's
            ``name`` mapped to its ``id``
        comment_markers: Line comment markers of the source language

    Returns:
        Edges in scan order, deduplicated per source, without self calls
    """
    functions = list(functions)
    if targets is None:
        targets = {fn.name: fn.id for fn in functions}
    pattern = build_call_pattern(targets)
    if pattern is None:
        return []

    edges: list[CallEdge] = []
    for fn in functions:
        seen: set[str] = set()
        for name in find_called_names(fn.body, pattern, comment_markers):
            target = targets[name]
            key = f"{fn.id}->{target}"
            if target == fn.id or key in seen:
                continue
            seen.add(key)
            edges.append(CallEdge(source=fn.id, target=target))
    logger.debug(f"Resolved {len(edges)} call edges across {len(functions)} functions")
    return edges
