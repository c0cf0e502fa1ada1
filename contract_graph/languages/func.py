"""
FunC extractor.

Declarations are only recognised at brace depth 0, so calls inside bodies are
never mistaken for definitions. Three declaration shapes are handled:

- ``<ret> name(params) [modifiers] { body }``
- ``<ret> name(params) [impure] asm "..." ;`` (the asm text is the body)
- ``<ret> name(params) [modifiers];`` prototypes, which are skipped
"""
from __future__ import annotations

import logging
import re
from typing import Dict, List, Set

from contract_graph.languages.base import LanguageAdapter
from contract_graph.lexing import balanced_span, mask_strings, strip_comments
from contract_graph.models import CallEdge, FunctionRecord, ParsedSource
from contract_graph.resolver import resolve_call_edges
from contract_graph.syntax import ParserContext

logger = logging.getLogger(__name__)

COMMENT_MARKERS = (";;",)

# Words that can precede "(" at top level without starting a function.
KEYWORDS = frozenset(
    {
        "if", "ifnot", "elseif", "elseifnot", "else", "while", "until", "repeat", "do",
        "return", "try", "catch", "asm", "global", "const", "var", "int", "cell",
        "slice", "builder", "cont", "tuple", "forall", "extern", "impure", "inline",
        "inline_ref", "method_id",
    }
)

_DECL = re.compile(r"(~?[A-Za-z_][\w?!']*)\s*\(")
_ASM = re.compile(
    r"\s*((?:(?:impure|inline|inline_ref)\s+)*)asm(?:\s*\([^)]*\))?\s*(?:\"[^\"]*\"\s*)+;"
)
_GLOBAL = re.compile(r"\bglobal\s+(?:(?:\([^)]*\)|[A-Za-z_][\w:]*)\s+)?([A-Za-z_]\w*)")
_TOP_ASSIGN = re.compile(r"^([A-Za-z_]\w*)\s*=", re.MULTILINE)
_MODIFIER = re.compile(r"\b(impure|method_id|inline_ref|inline)\b")

# Highest precedence first.
_MODIFIER_ORDER = ("impure", "method_id", "inline")


def global_names(code: str) -> Set[str]:
    """Names declared with ``global`` or assigned at the start of a line."""
    names = {m.group(1) for m in _GLOBAL.finditer(code)}
    names.update(m.group(1) for m in _TOP_ASSIGN.finditer(code))
    return names


def fold_modifiers(modifiers: str) -> str:
    found = {m.group(1) for m in _MODIFIER.finditer(modifiers)}
    if "inline_ref" in found:
        found.add("inline")
    for modifier in _MODIFIER_ORDER:
        if modifier in found:
            return modifier
    return "regular"


def parse_func(code: str, context: ParserContext | None = None) -> ParsedSource:
    cleaned = strip_comments(
        code.replace("\r\n", "\n"),
        line_markers=(";;",),
        block_pairs=(("{-", "-}"),),
        nested=True,
    )
    # Structure is scanned on a string-masked copy; text is cut from ``cleaned``.
    structure = mask_strings(cleaned)
    excluded = global_names(structure)

    functions: Dict[str, FunctionRecord] = {}
    pos = 0
    scan = 0
    depth = 0
    while True:
        m = _DECL.search(structure, pos)
        if m is None:
            break
        segment = structure[scan : m.start()]
        depth = max(0, depth + segment.count("{") - segment.count("}"))
        scan = m.start()
        pos = m.end()
        if depth:
            continue

        name = m.group(1)
        if name in KEYWORDS or name in excluded:
            continue

        open_paren = m.end() - 1
        close_paren = balanced_span(structure, open_paren, "(", ")", skip_strings=False)
        if close_paren is None:
            continue
        params = cleaned[open_paren + 1 : close_paren].strip()

        asm = _ASM.match(cleaned, close_paren + 1)
        if asm is not None:
            body = cleaned[asm.start() : asm.end()].strip()
            classification = "impure" if "impure" in asm.group(1) else "regular"
            functions[name] = FunctionRecord.build(name, params, body, classification)
            pos = scan = asm.end()
            continue

        brace = structure.find("{", close_paren)
        semicolon = structure.find(";", close_paren)
        if brace == -1 or (semicolon != -1 and semicolon < brace):
            # Prototype or a top-level expression.
            pos = close_paren + 1
            continue

        close_brace = balanced_span(structure, brace, skip_strings=False)
        if close_brace is None:
            continue
        body = cleaned[brace + 1 : close_brace]
        pos = scan = close_brace + 1
        if not body.strip():
            continue

        classification = fold_modifiers(structure[close_paren + 1 : brace])
        functions[name] = FunctionRecord.build(name, params, body, classification)

    logger.debug(f"FunC: {len(functions)} functions, {len(excluded)} globals excluded")
    return ParsedSource(functions=list(functions.values()))


def build_func_edges(parsed: ParsedSource) -> List[CallEdge]:
    return resolve_call_edges(parsed.functions, comment_markers=COMMENT_MARKERS)


FUNC_ADAPTER = LanguageAdapter(
    language_id="func",
    display_name="FunC",
    extensions=frozenset({".fc", ".func"}),
    parse=parse_func,
    build_call_graph=build_func_edges,
    classifications=(
        ("impure", "Impure"),
        ("inline", "Inline"),
        ("method_id", "Method ID"),
        ("regular", "Regular"),
    ),
    comment_markers=COMMENT_MARKERS,
)
