"""
Noir extractor.

Noir is close enough to Rust for the tree-sitter Rust grammar to recover its
module, impl and function structure. Noir-only keywords are blanked or swapped
for Rust keywords of the same length before parsing, so byte offsets in the
tree still line up with the original text.
"""
from __future__ import annotations

import logging
import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from contract_graph.languages.base import LanguageAdapter, structural_edges
from contract_graph.models import (
    DEFAULT_SCOPE,
    EXTERNAL_CLASSIFICATION,
    FunctionRecord,
    ParsedSource,
)
from contract_graph.syntax import ParserContext, SyntaxNode, walk

logger = logging.getLogger(__name__)

Path = Tuple[str, ...]

_BLANKED = re.compile(r"\b(?:unconstrained|comptime)\b|\bcall_data\s*\(\s*\d+\s*\)|\breturn_data\b")
_PUB_TYPE = re.compile(r"(?<=:)(\s*)pub\b|(?<=->)(\s*)pub\b")
_GLOBAL = re.compile(r"\bglobal\b")
_GENERIC_ARGS = re.compile(r"<[^<>]*>")


def neutralize(code: str) -> str:
    """Rewrite Noir-only syntax into Rust-compatible text of identical length."""
    code = _BLANKED.sub(lambda m: " " * len(m.group()), code)
    code = _PUB_TYPE.sub(lambda m: (m.group(1) or m.group(2) or "") + "   ", code)
    return _GLOBAL.sub("static", code)


def strip_generics(text: str) -> str:
    """``utils::inc::<Field>`` -> ``utils::inc``."""
    text = "".join(text.split())
    while "<" in text:
        stripped = _GENERIC_ARGS.sub("", text)
        if stripped == text:
            break
        text = stripped
    return text.replace("::::", "::").rstrip(":")


def _segments(text: str) -> List[str]:
    return [s for s in strip_generics(text).split("::") if s]


def _normalize(parts: List[str], module: Path) -> List[str]:
    """Apply ``crate::``, ``self::`` and ``super::`` prefixes relative to ``module``."""
    if not parts:
        return parts
    head = parts[0]
    if head == "crate":
        return parts[1:]
    if head == "self":
        return [*module, *parts[1:]]
    if head == "super":
        base = list(module)
        while parts and parts[0] == "super":
            base = base[:-1]
            parts = parts[1:]
        return [*base, *parts]
    return parts


def _type_name(node: Optional[SyntaxNode]) -> Optional[str]:
    if node is None:
        return None
    if node.type == "generic_type":
        return _type_name(node.child_by_field("type"))
    if node.type == "scoped_type_identifier":
        name = node.child_by_field("name")
        return name.text if name is not None else None
    return strip_generics(node.text).rsplit("::", 1)[-1] or None


def parameter_names(parameters: Optional[SyntaxNode]) -> Tuple[str, ...]:
    """Pattern names only: ``(self, x: Field)`` -> ``("self", "x")``."""
    if parameters is None:
        return ()
    names: List[str] = []
    for child in parameters.children:
        if child.type == "self_parameter":
            names.append("self")
        elif child.type == "parameter":
            pattern = child.child_by_field("pattern")
            if pattern is not None:
                names.append(" ".join(pattern.text.split()))
    return tuple(names)


@dataclass
class _Function:
    node_id: str
    node: SyntaxNode
    module: Path
    owner: Optional[str]


@dataclass
class _Scopes:
    aliases: Dict[Path, Dict[str, List[str]]] = field(default_factory=lambda: defaultdict(dict))
    wildcards: Dict[Path, List[List[str]]] = field(default_factory=lambda: defaultdict(list))

    def add_use(self, node: SyntaxNode, module: Path, prefix: List[str]) -> None:
        kind = node.type
        if kind in ("identifier", "scoped_identifier", "crate", "self", "super"):
            path = _normalize(prefix + _segments(node.text), module)
            if path and path[-1] == "self":
                path = path[:-1]
            if path:
                self.aliases[module][path[-1]] = path
        elif kind == "use_as_clause":
            path_node = node.child_by_field("path")
            alias = node.child_by_field("alias")
            if path_node is not None and alias is not None:
                self.aliases[module][alias.text] = _normalize(prefix + _segments(path_node.text), module)
        elif kind == "scoped_use_list":
            path_node = node.child_by_field("path")
            base = prefix + (_segments(path_node.text) if path_node is not None else [])
            listing = node.child_by_field("list")
            if listing is not None:
                self.add_use(listing, module, base)
        elif kind == "use_list":
            for child in node.children:
                self.add_use(child, module, prefix)
        elif kind == "use_wildcard":
            base = prefix + (_segments(node.children[0].text) if node.children else [])
            self.wildcards[module].append(_normalize(base, module))

    def alias(self, name: str, module: Path) -> Optional[List[str]]:
        return self.aliases[module].get(name) or self.aliases[()].get(name)

    def wildcard_prefixes(self, module: Path) -> List[List[str]]:
        return self.wildcards[module] + (self.wildcards[()] if module else [])


def _collect(root: SyntaxNode) -> Tuple[List[_Function], _Scopes]:
    functions: List[_Function] = []
    scopes = _Scopes()
    stack: List[Tuple[SyntaxNode, Path, Optional[str]]] = [(root, (), None)]
    while stack:
        node, module, owner = stack.pop()
        kind = node.type

        if kind == "function_item":
            name = node.child_by_field("name")
            if name is not None and node.child_by_field("body") is not None:
                qualifier = (owner,) if owner else module
                functions.append(_Function("::".join((*qualifier, name.text)), node, module, owner))
            continue
        if kind == "use_declaration":
            argument = node.child_by_field("argument")
            if argument is not None:
                scopes.add_use(argument, module, [])
            continue

        children = node.children
        if kind == "mod_item":
            name = node.child_by_field("name")
            body = node.child_by_field("body")
            if name is None or body is None:
                continue
            module, children = (*module, name.text), [body]
        elif kind == "impl_item":
            owner = _type_name(node.child_by_field("type"))
        elif kind == "trait_item":
            name = node.child_by_field("name")
            owner = name.text if name is not None else owner

        for child in reversed(children):
            stack.append((child, module, owner))
    return functions, scopes


class _CallResolver:
    def __init__(self, functions: List[_Function], scopes: _Scopes) -> None:
        self.scopes = scopes
        self.known = {fn.node_id for fn in functions}
        self.methods: Dict[str, List[str]] = defaultdict(list)
        for fn in functions:
            if fn.owner:
                self.methods[fn.node_id.rsplit("::", 1)[-1]].append(fn.node_id)

    def method(self, name: str, receiver: str, owner: Optional[str]) -> Optional[str]:
        if receiver == "self" and owner and f"{owner}::{name}" in self.known:
            return f"{owner}::{name}"
        candidates = set(self.methods.get(name, ()))
        return candidates.pop() if len(candidates) == 1 else None

    def resolve(self, target: SyntaxNode, caller: _Function) -> Tuple[Optional[str], bool]:
        """Resolve a call's function node to (target id, is_external)."""
        if target.type == "generic_function":
            inner = target.child_by_field("function")
            if inner is None:
                return None, False
            target = inner
        if target.type == "field_expression":
            name = target.child_by_field("field")
            value = target.child_by_field("value")
            if name is None:
                return None, False
            receiver = value.text.strip() if value is not None else ""
            return self.method(name.text, receiver, caller.owner), False
        if target.type not in ("identifier", "scoped_identifier"):
            return None, False

        parts = _segments(target.text)
        if parts and parts[0] == "Self" and caller.owner:
            parts = [caller.owner, *parts[1:]]
        parts = _normalize(parts, caller.module)
        if not parts:
            return None, False
        aliased = self.scopes.alias(parts[0], caller.module)
        if aliased:
            parts = [*aliased, *parts[1:]]

        candidates = [[*caller.module, *parts], parts]
        if len(parts) == 1:
            candidates.extend([*prefix, *parts] for prefix in self.scopes.wildcard_prefixes(caller.module))
        for candidate in candidates:
            node_id = "::".join(candidate)
            if node_id in self.known:
                return node_id, False
        if len(parts) > 1:
            return "::".join(parts), True
        return None, False


def parse_noir(code: str, context: ParserContext | None = None) -> ParsedSource:
    context = context or ParserContext()
    root = context.parse("rust", neutralize(code))
    functions, scopes = _collect(root)
    resolver = _CallResolver(functions, scopes)

    parsed = ParsedSource()
    externals: Dict[str, FunctionRecord] = {}
    for fn in functions:
        parameters = fn.node.child_by_field("parameters")
        params = " ".join(parameters.text.split())[1:-1] if parameters is not None else ""
        body = fn.node.child_by_field("body")
        parsed.functions.append(
            FunctionRecord.build(
                fn.node_id,
                params,
                body.text if body is not None else "",
                origin_scope=fn.owner or ("::".join(fn.module) or DEFAULT_SCOPE),
                parameters=parameter_names(parameters),
            )
        )
        for call in walk(body):
            if call.type != "call_expression":
                continue
            function = call.child_by_field("function")
            if function is None:
                continue
            target, external = resolver.resolve(function, fn)
            if target is None:
                continue
            parsed.calls.append((fn.node_id, target))
            if external and target not in externals:
                externals[target] = FunctionRecord.build(
                    target,
                    classification=EXTERNAL_CLASSIFICATION,
                    origin_scope=target.rsplit("::", 1)[0],
                )

    parsed.externals = list(externals.values())
    logger.debug(f"Noir: {len(parsed.functions)} functions, {len(parsed.externals)} external targets")
    return parsed


NOIR_ADAPTER = LanguageAdapter(
    language_id="noir",
    display_name="Noir",
    extensions=frozenset({".nr", ".noir"}),
    parse=parse_noir,
    build_call_graph=structural_edges,
)
