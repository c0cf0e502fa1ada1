"""
Tolk extractor.

Declarations are found line by line (``fun``, ``get fun``, legacy ``get``),
with decorators collected from the declaration line and from the
decorator-only lines right above it. Parameter lists and bodies are then cut
from the comment-free text by offset, so both may span several lines.
"""
from __future__ import annotations

import logging
import re
from typing import List, Set

from contract_graph.languages.base import LanguageAdapter
from contract_graph.lexing import balanced_span, mask_strings, strip_comments
from contract_graph.models import CallEdge, FunctionRecord, ParsedSource
from contract_graph.resolver import resolve_call_edges
from contract_graph.syntax import ParserContext

logger = logging.getLogger(__name__)

KEYWORDS = frozenset(
    {"if", "else", "while", "do", "repeat", "until", "for", "return", "break", "continue", "match", "try", "catch"}
)

_DECL = re.compile(
    r"^\s*(?:@\w+(?:\([^)]*\))?\s+)*"
    r"(?:(get)\s+(?:fun\s+)?|fun\s+)"
    r"(?:[A-Za-z_]\w*(?:<[^>]*>)?\.)?"
    r"([A-Za-z_]\w*)"
)
_DECORATOR = re.compile(r"@(\w+)")
_GLOBAL = re.compile(r"\bglobal\s+([A-Za-z_]\w*)\s*:")
_GENERICS = re.compile(r"\s*(?:<[^()]*>)?\s*")
_ASM_KEYWORD = re.compile(r"\basm\b")
_ASM = re.compile(r"asm(?:\s*\([^)]*\))?\s*((?:\"[^\"]*\"\s*)+)")


def global_names(code: str) -> Set[str]:
    return {m.group(1) for m in _GLOBAL.finditer(code)}


def collect_decorators(lines: List[str], index: int) -> Set[str]:
    """Decorators on ``lines[index]`` plus decorator-only lines directly above it."""
    decorators = set(_DECORATOR.findall(lines[index].split("fun", 1)[0]))
    j = index - 1
    while j >= 0:
        line = lines[j].strip()
        if not line.startswith("@") or "fun" in line:
            break
        decorators.update(_DECORATOR.findall(line))
        j -= 1
    return decorators


def classify(is_get: bool, decorators: Set[str]) -> str:
    if "pure" in decorators:
        return "pure_fun"
    if is_get:
        return "get"
    if "inline" in decorators or "inline_ref" in decorators:
        return "inline_fun"
    return "fun"


def parse_tolk(code: str, context: ParserContext | None = None) -> ParsedSource:
    cleaned = strip_comments(code.replace("\r\n", "\n"))
    structure = mask_strings(cleaned)
    excluded = global_names(structure)
    lines = structure.split("\n")

    line_starts = [0]
    for line in lines[:-1]:
        line_starts.append(line_starts[-1] + len(line) + 1)

    functions: List[FunctionRecord] = []
    resume = 0
    for index, line in enumerate(lines):
        if line_starts[index] < resume:
            continue
        m = _DECL.match(line)
        if m is None:
            continue
        name = m.group(2)
        if name in KEYWORDS or name in excluded:
            continue

        open_paren = structure.find("(", line_starts[index] + m.end())
        if open_paren == -1 or not _GENERICS.fullmatch(structure[line_starts[index] + m.end() : open_paren]):
            continue
        close_paren = balanced_span(structure, open_paren, "(", ")", skip_strings=False)
        if close_paren is None:
            continue
        params = cleaned[open_paren + 1 : close_paren].strip()

        brace = structure.find("{", close_paren)
        asm = _ASM_KEYWORD.search(structure, close_paren)
        semicolon = structure.find(";", close_paren)
        if asm is not None and (brace == -1 or asm.start() < brace):
            if semicolon != -1 and semicolon < asm.start():
                continue
            asm_form = _ASM.match(cleaned, asm.start())
            if asm_form is None:
                continue
            body = " ".join(re.findall(r"\"[^\"]*\"", asm_form.group(1)))
            end = asm_form.end()
        else:
            if brace == -1 or (semicolon != -1 and semicolon < brace):
                continue
            close_brace = balanced_span(structure, brace, skip_strings=False)
            if close_brace is None:
                continue
            body = cleaned[brace + 1 : close_brace]
            end = close_brace + 1
        resume = end
        if not body.strip():
            continue

        decorators = collect_decorators(lines, index)
        functions.append(
            FunctionRecord.build(name, params, body, classification=classify(bool(m.group(1)), decorators))
        )

    logger.debug(f"Tolk: {len(functions)} functions, {len(excluded)} globals excluded")
    return ParsedSource(functions=functions)


def build_tolk_edges(parsed: ParsedSource) -> List[CallEdge]:
    return resolve_call_edges(parsed.functions)


TOLK_ADAPTER = LanguageAdapter(
    language_id="tolk",
    display_name="Tolk",
    extensions=frozenset({".tolk"}),
    parse=parse_tolk,
    build_call_graph=build_tolk_edges,
    classifications=(
        ("fun", "Fun"),
        ("pure_fun", "Pure Fun"),
        ("inline_fun", "Inline Fun"),
        ("get", "Get"),
    ),
)
