"""
Move extractor.

``parse_move_tree`` turns Move source into a generic ``SyntaxNode`` tree::

    source_file
      module_definition        fields: name, address
        use_declaration        text: normalised use path
        function_definition    fields: name, parameters, body; modifier children
          block
            call_expression    fields: function (path, generics stripped)

Only what the call graph needs is modelled: struct, const and ``spec`` items
are skipped, and expressions are reduced to the calls they contain.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from contract_graph.languages.base import LanguageAdapter, structural_edges
from contract_graph.lexing import split_parameters, strip_comments
from contract_graph.models import (
    ENTRY_CLASSIFICATION,
    EXTERNAL_CLASSIFICATION,
    GROUP_BY_SCOPE,
    FunctionRecord,
    ParsedSource,
)
from contract_graph.syntax import ParserContext, SyntaxNode, walk

logger = logging.getLogger(__name__)

_TOKEN = re.compile(
    r"""
    (?P<ws>\s+)
    | (?P<string>[bx]?"(?:\\.|[^"\\])*")
    | (?P<address>@?0x[0-9a-fA-F_]+)
    | (?P<number>\d[\w]*)
    | (?P<ident>[A-Za-z_]\w*)
    | (?P<sep>::)
    | (?P<punct>.)
    """,
    re.VERBOSE | re.DOTALL,
)

_MODIFIERS = {"public", "entry", "native", "inline", "macro"}
# Expression keywords that can be followed by "(".
_KEYWORDS = {
    "if", "else", "while", "loop", "return", "abort", "let", "move", "copy", "mut",
    "spec", "match", "break", "continue", "fun", "use", "as",
}
_GENERIC_TOKENS = {"::", ",", "&", "<", ">", "mut"}


@dataclass(frozen=True)
class Token:
    kind: str
    value: str
    start: int
    end: int


def tokenize(code: str) -> List[Token]:
    return [
        Token(m.lastgroup or "punct", m.group(), m.start(), m.end())
        for m in _TOKEN.finditer(code)
        if m.lastgroup != "ws"
    ]


class _MoveTreeBuilder:
    def __init__(self, code: str) -> None:
        self.code = code
        self.tokens = tokenize(code)
        self.i = 0

    def value(self, offset: int = 0) -> str:
        j = self.i + offset
        return self.tokens[j].value if j < len(self.tokens) else ""

    def matching(self, index: int, opener: str, closer: str) -> Optional[int]:
        depth = 0
        for j in range(index, len(self.tokens)):
            value = self.tokens[j].value
            if value == opener:
                depth += 1
            elif value == closer:
                depth -= 1
                if depth == 0:
                    return j
        return None

    def text(self, first: int, last: int) -> str:
        """Source text from token ``first`` through token ``last`` inclusive."""
        return self.code[self.tokens[first].start : self.tokens[last].end]

    def build(self) -> SyntaxNode:
        root = SyntaxNode("source_file", self.code)
        address = ""
        while self.i < len(self.tokens):
            value = self.value()
            if value == "address" and self.value(2) == "{":
                address = self.value(1)
                self.i += 3
            elif value == "module":
                root.add(self.module(address))
            elif value == "script" and self.value(1) == "{":
                root.add(self.module(address, script=True))
            else:
                self.i += 1
        return root

    def module(self, address: str, script: bool = False) -> SyntaxNode:
        self.i += 1
        name = "script"
        if not script:
            path: List[str] = []
            while self.value() not in ("{", ";", ""):
                if self.value() != "::":
                    path.append(self.value())
                self.i += 1
            if path:
                name = path[-1]
            if len(path) > 1:
                address = path[-2]

        node = SyntaxNode("module_definition", name)
        node.add(SyntaxNode("identifier", name), "name")
        if address:
            node.add(SyntaxNode("address", address), "address")

        if self.value() == "{":
            end = self.matching(self.i, "{", "}")
            end = len(self.tokens) if end is None else end
        else:
            # ``module a::m;`` spans the rest of the file.
            end = len(self.tokens)
        self.i += 1
        self.items(node, end)
        self.i = end + 1
        return node

    def items(self, module: SyntaxNode, end: int) -> None:
        while self.i < end:
            value = self.value()
            if value == "use":
                semicolon = self.find(";", end)
                stop = self.tokens[semicolon].start if semicolon < len(self.tokens) else len(self.code)
                text = " ".join(self.code[self.tokens[self.i].end : stop].split())
                module.add(SyntaxNode("use_declaration", text))
                self.i = semicolon + 1
                continue
            if value == "spec":
                self.skip_item(end)
                continue

            modifiers: List[str] = []
            while self.value() in _MODIFIERS:
                if self.value() == "public" and self.value(1) == "(":
                    close = self.matching(self.i + 1, "(", ")")
                    if close is None:
                        break
                    modifiers.append(self.text(self.i, close).replace(" ", ""))
                    self.i = close + 1
                else:
                    modifiers.append(self.value())
                    self.i += 1

            if self.value() == "fun":
                function = self.function(modifiers)
                if function is not None:
                    module.add(function)
            elif self.value() == "{":
                self.skip_item(end)
            else:
                self.i += 1

    def find(self, value: str, end: int) -> int:
        j = self.i
        while j < end and self.tokens[j].value != value:
            j += 1
        return min(j, end)

    def skip_item(self, end: int) -> None:
        """Skip to the end of the current ``{...}`` block or ``;``-terminated item."""
        j = self.i
        while j < end and self.tokens[j].value not in ("{", ";"):
            j += 1
        if j < end and self.tokens[j].value == "{":
            close = self.matching(j, "{", "}")
            j = end if close is None else close
        self.i = j + 1

    def function(self, modifiers: List[str]) -> Optional[SyntaxNode]:
        start = self.i
        if self.i + 1 >= len(self.tokens) or self.tokens[self.i + 1].kind != "ident":
            self.i += 1
            return None
        name = self.value(1)
        self.i += 2
        if self.value() == "<":
            close = self.matching(self.i, "<", ">")
            self.i = self.i + 1 if close is None else close + 1
        if self.value() != "(":
            return None
        close_paren = self.matching(self.i, "(", ")")
        if close_paren is None:
            self.i += 1
            return None
        params = self.code[self.tokens[self.i].end : self.tokens[close_paren].start].strip()

        j = close_paren + 1
        while j < len(self.tokens) and self.tokens[j].value not in ("{", ";"):
            j += 1
        if j >= len(self.tokens) or self.tokens[j].value == ";":
            # Native functions have no body.
            self.i = j + 1
            return None
        close_brace = self.matching(j, "{", "}")
        if close_brace is None:
            self.i = j + 1
            return None

        node = SyntaxNode("function_definition", self.text(start, close_brace))
        for modifier in modifiers:
            node.add(SyntaxNode("modifier", modifier))
        node.add(SyntaxNode("identifier", name), "name")
        node.add(SyntaxNode("parameters", params), "parameters")
        body = node.add(
            SyntaxNode("block", self.code[self.tokens[j].end : self.tokens[close_brace].start]),
            "body",
        )
        for call in self.calls(j + 1, close_brace):
            body.add(call)
        self.i = close_brace + 1
        return node

    def generic_end(self, index: int, end: int) -> Optional[int]:
        """Index of the ``>`` closing type arguments at ``index``, if they are type arguments."""
        depth = 0
        for j in range(index, end):
            token = self.tokens[j]
            if token.value not in _GENERIC_TOKENS and token.kind not in ("ident", "address"):
                return None
            if token.value == "<":
                depth += 1
            elif token.value == ">":
                depth -= 1
                if depth == 0:
                    return j
        return None

    def calls(self, start: int, end: int) -> List[SyntaxNode]:
        found: List[SyntaxNode] = []
        k = start
        while k < end:
            token = self.tokens[k]
            previous = self.tokens[k - 1].value if k > start else ""
            if token.kind not in ("ident", "address") or previous in (".", "::"):
                k += 1
                continue
            parts = [token.value.lstrip("@")]
            j = k
            while j + 2 < end and self.tokens[j + 1].value == "::" and self.tokens[j + 2].kind == "ident":
                parts.append(self.tokens[j + 2].value)
                j += 2
            after = j + 1
            if after < end and self.tokens[after].value == "<":
                close = self.generic_end(after, end)
                if close is not None:
                    after = close + 1
            if after < end and self.tokens[after].value == "(" and parts[0] not in _KEYWORDS:
                path = "::".join(parts)
                call = SyntaxNode("call_expression", path)
                call.add(SyntaxNode("path" if len(parts) > 1 else "identifier", path), "function")
                found.append(call)
            k = j + 1
        return found


def parse_move_tree(code: str) -> SyntaxNode:
    """Parse Move source into a generic syntax tree; comments are ignored."""
    return _MoveTreeBuilder(strip_comments(code)).build()


def expand_use(text: str) -> List[Tuple[str, str]]:
    """
    Expand a ``use`` path into (alias, qualified path) pairs.

    ``0x1::m::{Self, f as g}`` -> ``[("m", "0x1::m"), ("g", "0x1::m::f")]``
    """
    text = text.strip()
    brace = text.find("{")
    if brace != -1 and text.endswith("}"):
        prefix = text[:brace].rstrip(": ")
        pairs: List[Tuple[str, str]] = []
        for item in split_parameters(text[brace + 1 : -1]):
            pairs.extend(expand_use(f"{prefix}::{item}" if prefix else item))
        return pairs

    path, _, alias = (part.strip() for part in text.partition(" as "))
    if path.endswith("::Self"):
        path = path[: -len("::Self")]
    if not alias:
        alias = path.rsplit("::", 1)[-1]
    return [(alias, path)]


def use_aliases(module: SyntaxNode) -> Dict[str, str]:
    aliases: Dict[str, str] = {}
    for use in module.children_of_type("use_declaration"):
        for alias, path in expand_use(use.text):
            aliases[alias] = path
    return aliases


def _function_id(path: str) -> str:
    # Addresses are dropped: ``0x1::coin::transfer`` -> ``coin::transfer``.
    return "::".join(path.split("::")[-2:])


def qualify_call(target: str, module: str, aliases: Dict[str, str], local: set) -> Optional[str]:
    """
    Resolve a call target to a function id.

    Bare names go through the alias table, then the current module; a bare
    name that is neither (a built-in) resolves to None.
    """
    parts = target.split("::")
    if len(parts) == 1:
        if target in aliases:
            return _function_id(aliases[target])
        if target in local:
            return f"{module}::{target}"
        return None
    head, rest = parts[0], parts[1:]
    if head == "Self":
        return f"{module}::{'::'.join(rest)}"
    if head in aliases:
        return _function_id("::".join([aliases[head], *rest]))
    return _function_id(target)


def classify(modifiers: List[str]) -> str:
    if "entry" in modifiers:
        return ENTRY_CLASSIFICATION
    if any(m.startswith("public") for m in modifiers):
        return "public"
    return "regular"


def parse_move(code: str, context: ParserContext | None = None) -> ParsedSource:
    tree = parse_move_tree(code)
    modules = [n for n in walk(tree) if n.type == "module_definition"]

    parsed = ParsedSource(grouping=GROUP_BY_SCOPE)
    for module in modules:
        module_name = module.child_by_field("name").text
        for fn in module.children_of_type("function_definition"):
            parsed.functions.append(
                FunctionRecord.build(
                    f"{module_name}::{fn.child_by_field('name').text}",
                    fn.child_by_field("parameters").text,
                    fn.child_by_field("body").text,
                    classification=classify([m.text for m in fn.children_of_type("modifier")]),
                    origin_scope=module_name,
                )
            )

    known = {fn.id for fn in parsed.functions}
    externals: Dict[str, FunctionRecord] = {}
    for module in modules:
        module_name = module.child_by_field("name").text
        aliases = use_aliases(module)
        local = {
            fn.child_by_field("name").text for fn in module.children_of_type("function_definition")
        }
        for fn in module.children_of_type("function_definition"):
            source = f"{module_name}::{fn.child_by_field('name').text}"
            for call in walk(fn.child_by_field("body")):
                if call.type != "call_expression":
                    continue
                target = qualify_call(call.child_by_field("function").text, module_name, aliases, local)
                if target is None:
                    continue
                parsed.calls.append((source, target))
                if target not in known and target not in externals:
                    externals[target] = FunctionRecord.build(
                        target,
                        classification=EXTERNAL_CLASSIFICATION,
                        origin_scope=target.rsplit("::", 1)[0],
                    )

    parsed.externals = list(externals.values())
    logger.debug(
        f"Move: {len(modules)} modules, {len(parsed.functions)} functions, "
        f"{len(parsed.externals)} external targets"
    )
    return parsed


MOVE_ADAPTER = LanguageAdapter(
    language_id="move",
    display_name="Move",
    extensions=frozenset({".move"}),
    parse=parse_move,
    build_call_graph=structural_edges,
    classifications=(
        (ENTRY_CLASSIFICATION, "Entry"),
        ("public", "Public"),
        ("regular", "Regular"),
    ),
)
