"""
Tact extractor.

Tokenises with one compiled master regex and walks the token list with a
scope stack. Declarations inside ``contract``/``trait`` blocks get ids of the
form ``Scope::name``; free functions keep their bare name.
"""
from __future__ import annotations

import logging
import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from contract_graph.languages.base import LanguageAdapter
from contract_graph.models import DEFAULT_SCOPE, CallEdge, FunctionRecord, ParsedSource
from contract_graph.resolver import resolve_call_edges
from contract_graph.syntax import ParserContext

logger = logging.getLogger(__name__)

_TOKEN = re.compile(
    r"""
    (?P<ws>\s+)
    | (?P<comment>//[^\n]*)
    | (?P<mlcomment>/\*.*?\*/)
    | (?P<string>"(?:\\.|[^"\\\n])*")
    | (?P<ident>[A-Za-z_]\w*)
    | (?P<number>0x[0-9a-fA-F_]+|\d[\d_]*)
    | (?P<punct>[(){},;:<>.?!=])
    | (?P<other>.)
    """,
    re.VERBOSE | re.DOTALL,
)

_SKIPPED = {"ws", "comment", "mlcomment"}
_HANDLERS = ("init", "receive", "external", "bounced")
_SCOPE_KINDS = ("contract", "trait")


@dataclass(frozen=True)
class Token:
    kind: str
    value: str
    start: int
    end: int


@dataclass
class _Scope:
    kind: str
    name: str
    traits: List[str] = field(default_factory=list)
    depth: int = 0


@dataclass
class _Declaration:
    scope: Optional[str]
    name: str
    classification: str
    params: str
    body: str


def tokenize(code: str) -> List[Token]:
    tokens: List[Token] = []
    for m in _TOKEN.finditer(code):
        kind = m.lastgroup or "other"
        if kind in _SKIPPED:
            continue
        tokens.append(Token(kind, m.group(), m.start(), m.end()))
    return tokens


def _matching(tokens: List[Token], index: int, opener: str, closer: str) -> Optional[int]:
    depth = 0
    for j in range(index, len(tokens)):
        value = tokens[j].value
        if value == opener:
            depth += 1
        elif value == closer:
            depth -= 1
            if depth == 0:
                return j
    return None


def _handler_name(kind: str, params: List[Token]) -> str:
    """``receive("increment")`` -> ``receive_increment``, ``receive(m: Transfer)`` -> ``receive_Transfer``."""
    if not params:
        return kind
    if params[0].kind == "string":
        text = re.sub(r"\W+", "_", params[0].value[1:-1]).strip("_")
        return f"{kind}_{text}" if text else kind
    colon = next((i for i, t in enumerate(params) if t.value == ":"), None)
    if colon is not None:
        # bounced(msg: bounced<Transfer>) names the inner type.
        type_names = [t.value for t in params[colon + 1 :] if t.kind == "ident"]
        if type_names:
            return f"{kind}_{type_names[-1]}"
    return kind


def _declarations(code: str, tokens: List[Token]) -> Tuple[List[_Declaration], List[_Scope]]:
    declarations: List[_Declaration] = []
    scopes: List[_Scope] = []
    stack: List[_Scope] = []
    depth = 0
    i = 0
    n = len(tokens)
    while i < n:
        tok = tokens[i]

        if tok.value == "{":
            depth += 1
            i += 1
            continue
        if tok.value == "}":
            depth -= 1
            if stack and depth < stack[-1].depth:
                stack.pop()
            i += 1
            continue

        if tok.kind == "ident" and tok.value in _SCOPE_KINDS and i + 1 < n and tokens[i + 1].kind == "ident":
            scope = _Scope(tok.value, tokens[i + 1].value)
            j = i + 2
            while j < n and tokens[j].value not in ("{", ";"):
                if tokens[j].kind == "ident" and tokens[j].value != "with":
                    scope.traits.append(tokens[j].value)
                j += 1
            if j < n and tokens[j].value == "{":
                depth += 1
                scope.depth = depth
                stack.append(scope)
                scopes.append(scope)
            i = j + 1
            continue

        kind = None
        name = None
        name_index = i
        if tok.kind == "ident" and tok.value in _HANDLERS and i + 1 < n and tokens[i + 1].value == "(":
            kind = tok.value
        elif tok.value == "get" and i + 2 < n and tokens[i + 1].value == "fun" and tokens[i + 2].kind == "ident":
            kind, name, name_index = "get_fun", tokens[i + 2].value, i + 2
        elif tok.value == "fun" and i + 1 < n and tokens[i + 1].kind == "ident":
            kind, name, name_index = "fun", tokens[i + 1].value, i + 1

        if kind is None:
            i += 1
            continue

        open_paren = name_index + 1
        if open_paren >= n or tokens[open_paren].value != "(":
            i += 1
            continue
        close_paren = _matching(tokens, open_paren, "(", ")")
        if close_paren is None:
            i += 1
            continue
        params = tokens[open_paren + 1 : close_paren]

        j = close_paren + 1
        while j < n and tokens[j].value not in ("{", ";", "}"):
            j += 1
        if j >= n or tokens[j].value != "{":
            # Abstract or native declaration: no body.
            i = j
            continue
        close_brace = _matching(tokens, j, "{", "}")
        if close_brace is None:
            i = j + 1
            continue

        if name is None:
            name = _handler_name(kind, params)
        declarations.append(
            _Declaration(
                scope=stack[-1].name if stack else None,
                name=name,
                classification=kind,
                params=code[tokens[open_paren].end : tokens[close_paren].start].strip(),
                body=code[tokens[j].end : tokens[close_brace].start],
            )
        )
        i = close_brace + 1
    return declarations, scopes


def _owner(scope: Optional[str], scopes: Dict[str, _Scope]) -> Optional[str]:
    info = scopes.get(scope) if scope else None
    if info is None or info.kind != "trait":
        return scope
    implementers = [s.name for s in scopes.values() if s.kind == "contract" and info.name in s.traits]
    return implementers[0] if len(implementers) == 1 else scope


def parse_tact(code: str, context: ParserContext | None = None) -> ParsedSource:
    declarations, scope_list = _declarations(code, tokenize(code))
    scopes = {s.name: s for s in scope_list}

    functions: List[FunctionRecord] = []
    for decl in declarations:
        owner = _owner(decl.scope, scopes)
        node_id = f"{owner}::{decl.name}" if owner else decl.name
        functions.append(
            FunctionRecord.build(
                node_id,
                decl.params,
                decl.body,
                classification=decl.classification,
                origin_scope=owner or DEFAULT_SCOPE,
            )
        )
    logger.debug(f"Tact: {len(functions)} functions in {len(scopes)} contracts/traits")
    return ParsedSource(functions=functions)


def build_tact_edges(parsed: ParsedSource) -> List[CallEdge]:
    top_level = {fn.name: fn.id for fn in parsed.functions if "::" not in fn.id}
    by_scope: Dict[str, List[FunctionRecord]] = defaultdict(list)
    for fn in parsed.functions:
        by_scope[fn.id.rsplit("::", 1)[0] if "::" in fn.id else ""].append(fn)

    edges: List[CallEdge] = []
    for scope, members in by_scope.items():
        targets = dict(top_level)
        if scope:
            # Members shadow free functions of the same name.
            targets.update({fn.name: fn.id for fn in members})
        edges.extend(resolve_call_edges(members, targets=targets))
    return edges


TACT_ADAPTER = LanguageAdapter(
    language_id="tact",
    display_name="Tact",
    extensions=frozenset({".tact"}),
    parse=parse_tact,
    build_call_graph=build_tact_edges,
    classifications=(
        ("init", "Init"),
        ("receive", "Receive"),
        ("external", "External"),
        ("bounced", "Bounced"),
        ("fun", "Fun"),
        ("get_fun", "Get Fun"),
    ),
)
