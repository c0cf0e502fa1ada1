"""
Generic function scanner used by the keyword-driven language adapters.

Finds ``<keyword> name ( params ) [tail] { body }`` spans. Parameters and
bodies are delimited with running depth counters, so nested parentheses and
braces are handled at any depth. Comments are not stripped first: a keyword
inside a comment can produce a false match, which callers needing comment
safety avoid by using a specialised extractor.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Pattern, Union

from contract_graph.lexing import balanced_span

Keyword = Union[str, Pattern[str]]

# Return annotations / modifiers allowed between ")" and "{".
_TAIL = re.compile(r"[^{};]*")


@dataclass(frozen=True)
class ScannedFunction:
    name: str
    params: str
    body: str
    start: int


def compile_keyword(keyword: Keyword) -> Pattern[str]:
    source = keyword if isinstance(keyword, str) else keyword.pattern
    return re.compile(rf"(?<![\w$])(?:{source})\s+([A-Za-z_]\w*)\s*\(")


def iter_functions(source: str, keyword: Keyword) -> Iterator[ScannedFunction]:
    pattern = compile_keyword(keyword)
    pos = 0
    while True:
        m = pattern.search(source, pos)
        if m is None:
            return
        pos = m.end()

        open_paren = m.end() - 1
        close_paren = balanced_span(source, open_paren, "(", ")")
        if close_paren is None:
            continue

        brace = _TAIL.match(source, close_paren + 1).end()
        if brace >= len(source) or source[brace] != "{":
            continue
        close_brace = balanced_span(source, brace)
        if close_brace is None:
            continue

        yield ScannedFunction(
            name=m.group(1),
            params=source[open_paren + 1 : close_paren].strip(),
            body=source[brace + 1 : close_brace],
            start=m.start(),
        )


def scan_functions(source: str, keyword: Keyword) -> list[ScannedFunction]:
    """
    Scan ``source`` for functions introduced by ``keyword``.

    Args:
        source: Contract source text
        keyword: Regex (string or compiled) matching the declaration keyword,
            e.g. ``"fn"`` or ``"defun|defpact"``

    Returns:
        Functions in source order; duplicate names are not merged
    """
    return list(iter_functions(source, keyword))
