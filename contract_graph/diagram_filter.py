"""
Diagram filtering by function classification and name.

Works on the rendered Mermaid text alone, so a saved diagram can be filtered
after the graph it came from is gone. The text is parsed back into nodes,
edges, cluster blocks and style lines, filtered, and rebuilt from the original
lines of whatever survives.

Filter rules:
- Type: a node is hidden when its id ends in known classifications and none
  of them is allowed. A function name can itself end in another
  classification (`cache_get_fun` ends in both `get_fun` and `fun`), so every
  matching suffix counts. Ids without a known suffix are never hidden by type.
- Name: nodes whose label (or, failing any label match, id) contains the
  text, plus their direct neighbours, minus nodes hidden by type.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from contract_graph.config import SETTINGS
from contract_graph.languages import known_classifications

logger = logging.getLogger(__name__)

_ENTITIES = (("&#95;", "_"), ("&gt;", ">"), ("&lt;", "<"), ("&quot;", '"'), ("&amp;", "&"))

_DIRECTIVE = re.compile(r"^\s*(?:graph|flowchart)(?:\s+\S+|\s*;?\s*$)")
_SUBGRAPH = re.compile(r"^\s*subgraph\s+([^\s\[]+)")
_CLASS = re.compile(r"^\s*class\s+(\S+?)\s+(\S+?);?\s*$")
_EDGE = re.compile(r'^\s*(\S+?)\s*(-->|==>)\s*(?:\|"(.*)"\|\s*)?(\S+?)\s*;?\s*$')
_NODE = re.compile(r"^\s*([A-Za-z0-9_]+)\s*(\(\[|\[\[|\[)(.*?)(\]\)|\]\]|\])\s*;?\s*$")
_ENTITY_TAIL = re.compile(r"&#?\w+$")


def split_statements(line: str) -> List[str]:
    """
    Split a line on ``;`` outside quotes and entities, keeping each terminator.

    A line holding one statement is returned unchanged; statements split out
    of a longer line are re-indented so each can stand on its own line.
    """
    parts: List[str] = []
    start = 0
    quoted = False
    for i, ch in enumerate(line):
        if ch == '"':
            quoted = not quoted
        elif ch == ";" and not quoted and not _ENTITY_TAIL.search(line, start, i):
            parts.append(line[start : i + 1])
            start = i + 1
    parts.append(line[start:])
    parts = [p for p in parts if p.strip()]
    if len(parts) <= 1:
        return [line] if line.strip() else []
    return ["    " + p.strip() for p in parts]


def decode_entities(text: str) -> str:
    for entity, ch in _ENTITIES:
        text = text.replace(entity, ch)
    return text


def split_classification(node_id: str, classifications: Iterable[str]) -> Tuple[str, Optional[str]]:
    """``foo_method_id`` -> ``("foo", "method_id")``, using the longest known suffix."""
    for value in sorted(classifications, key=len, reverse=True):
        suffix = f"_{value}"
        if node_id.endswith(suffix) and len(node_id) > len(suffix):
            return node_id[: -len(suffix)], value
    return node_id, None


def classification_suffixes(node_id: str, classifications: Iterable[str]) -> List[str]:
    """Every known classification ``node_id`` could end in, longest first."""
    return [
        value
        for value in sorted(classifications, key=len, reverse=True)
        if node_id.endswith(f"_{value}") and len(node_id) > len(value) + 1
    ]


@dataclass
class _Node:
    node_id: str
    label: str
    cluster: Optional[str] = None
    # None for nodes only seen as edge endpoints.
    raw: Optional[str] = None


@dataclass
class _Cluster:
    key: str
    raw: str
    members: List[str] = field(default_factory=list)


@dataclass
class ParsedDiagram:
    directive: Optional[str] = None
    nodes: Dict[str, _Node] = field(default_factory=dict)
    clusters: Dict[str, _Cluster] = field(default_factory=dict)
    edges: List[Tuple[str, str, str]] = field(default_factory=list)
    class_defs: List[str] = field(default_factory=list)
    class_lines: List[Tuple[str, str]] = field(default_factory=list)


def parse_diagram(document: str) -> ParsedDiagram:
    """Parse diagram text; lines of no recognised shape are dropped."""
    parsed = ParsedDiagram()
    current: Optional[_Cluster] = None
    for raw in (s for line in document.splitlines() for s in split_statements(line)):
        line = decode_entities(raw)
        stripped = line.strip()
        if not stripped:
            continue

        if _DIRECTIVE.match(line):
            if parsed.directive is None:
                parsed.directive = raw.strip()
            continue
        m = _SUBGRAPH.match(line)
        if m:
            current = parsed.clusters.setdefault(m.group(1), _Cluster(m.group(1), raw))
            continue
        if stripped == "end":
            current = None
            continue
        if stripped.startswith("classDef"):
            parsed.class_defs.append(raw)
            continue
        m = _CLASS.match(line)
        if m:
            parsed.class_lines.append((m.group(1), raw))
            continue
        m = _EDGE.match(line)
        if m:
            source, target = m.group(1), m.group(4)
            for endpoint in (source, target):
                parsed.nodes.setdefault(endpoint, _Node(endpoint, endpoint))
            parsed.edges.append((source, target, raw))
            continue
        m = _NODE.match(line)
        if m:
            node_id = m.group(1)
            existing = parsed.nodes.get(node_id)
            if existing is not None and existing.raw is not None:
                continue
            label = m.group(3).strip().strip('"')
            parsed.nodes[node_id] = _Node(
                node_id, label, current.key if current else None, raw
            )
            if current is not None:
                current.members.append(node_id)
            continue
        logger.debug(f"Dropping unrecognised diagram line: {raw!r}")
    return parsed


def _validate(lines: List[str]) -> str:
    """Keep the first direction directive, inserting a default when there is none."""
    out: List[str] = []
    seen = False
    for line in lines:
        if _DIRECTIVE.match(decode_entities(line)):
            if seen:
                continue
            seen = True
        out.append(line)
    if not seen:
        out.insert(0, f"graph {SETTINGS.direction};")
    return "\n".join(out) + "\n"


class DiagramFilter:
    """Filters rendered diagrams by classification and name."""

    def __init__(self, classifications: Optional[Iterable[str]] = None):
        self.classifications = frozenset(classifications or known_classifications())

    def visible_nodes(
        self,
        parsed: ParsedDiagram,
        allowed: Set[str],
        name_filter: str,
    ) -> Set[str]:
        visible: Set[str] = set()
        for node_id in parsed.nodes:
            suffixes = classification_suffixes(node_id, self.classifications)
            if allowed and suffixes and not allowed.intersection(suffixes):
                continue
            visible.add(node_id)

        needle = name_filter.strip().lower()
        if not needle:
            return visible

        direct = {n for n in visible if needle in parsed.nodes[n].label.lower()}
        if not direct:
            direct = {
                n for n in visible
                if needle in split_classification(n, self.classifications)[0].lower()
            }
        matched = set(direct)
        for source, target, _ in parsed.edges:
            if source in direct:
                matched.add(target)
            if target in direct:
                matched.add(source)
        return matched & visible

    def filter(
        self,
        document: str,
        allowed_classifications: Iterable[str] = (),
        name_filter: str = "",
    ) -> str:
        """
        Filter a diagram.

        Args:
            document: Mermaid text produced by ``render_diagram`` (or a
                previous ``filter`` call)
            allowed_classifications: Classifications to keep; empty keeps all
            name_filter: Case-insensitive label/id substring; empty disables

        Returns:
            Filtered diagram text, or ``document`` unchanged if filtering fails
        """
        try:
            parsed = parse_diagram(document)
            visible = self.visible_nodes(parsed, set(allowed_classifications), name_filter or "")

            lines: List[str] = [parsed.directive or f"graph {SETTINGS.direction};"]
            for cluster in parsed.clusters.values():
                members = [n for n in cluster.members if n in visible]
                if not members:
                    continue
                lines.append(cluster.raw)
                lines.extend(parsed.nodes[n].raw for n in members)
                lines.append("    end")
            for node in parsed.nodes.values():
                if node.raw is not None and node.cluster is None and node.node_id in visible:
                    lines.append(node.raw)

            seen: Set[Tuple[str, str]] = set()
            for source, target, raw in parsed.edges:
                if source in visible and target in visible and (source, target) not in seen:
                    seen.add((source, target))
                    lines.append(raw)

            lines.extend(parsed.class_defs)
            lines.extend(raw for target, raw in parsed.class_lines if target in visible)

            logger.debug(f"Filter kept {len(visible)} of {len(parsed.nodes)} nodes")
            return _validate(lines)
        except Exception:
            logger.error("Diagram filtering failed; returning the unfiltered diagram", exc_info=True)
            return document


def apply_filters(
    document: str,
    allowed_classifications: Iterable[str] = (),
    name_filter: str = "",
) -> str:
    return DiagramFilter().filter(document, allowed_classifications, name_filter)
