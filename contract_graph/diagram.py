from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from contract_graph.clustering import cluster_nodes, cluster_title
from contract_graph.config import SETTINGS
from contract_graph.models import (
    DEFAULT_CLASSIFICATION,
    ENTRY_CLASSIFICATION,
    EXTERNAL_CLASSIFICATION,
    GROUP_BY_SCOPE,
    ClusterMap,
    ContractGraph,
    FunctionRecord,
)

PALETTE = ("#fae8ee", "#e8faee", "#e8eefa", "#faefe8", "#eee8fa", "#e8faef", "#fafae8", "#e8fafa")

_UNSAFE_ID = re.compile(r"[^a-zA-Z0-9]")
_COMMENT_FRAGMENT = re.compile(r"(;;|//).*$")


@dataclass(frozen=True)
class MermaidGraph:
    mermaid: str
    node_count: int
    edge_count: int


def escape_label(label: str) -> str:
    # Quotes would end the label; brackets and operators are read as markdown.
    label = label.replace('"', "'").replace("<", "&lt;").replace(">", "&gt;")
    for ch in "*+-[]":
        label = label.replace(ch, "\\" + ch)
    return label


def safe_id(value: str) -> str:
    return _UNSAFE_ID.sub("_", value)


def node_id(node: FunctionRecord) -> str:
    """Diagram id of a node: sanitised id plus classification suffix."""
    return f"{safe_id(node.id)}_{node.classification or DEFAULT_CLASSIFICATION}"


def _node_line(node: FunctionRecord) -> str:
    label = escape_label(node.label.split("(")[0])
    if node.classification == ENTRY_CLASSIFICATION:
        return f'        {node_id(node)}(["{label}"])'
    if node.classification == EXTERNAL_CLASSIFICATION:
        return f'        {node_id(node)}[["{label}"]]'
    return f'        {node_id(node)}["{label}"]'


def _edge_label(target: FunctionRecord) -> str:
    params = [_COMMENT_FRAGMENT.sub("", p).strip() for p in target.parameters]
    params = [p for p in params if p]
    return escape_label(f"({', '.join(params)})") if params else ""


def _ordered_keys(graph: ContractGraph, clusters: ClusterMap) -> List[str]:
    keys: List[str] = []
    for node in graph.nodes:
        key = clusters.get(node.id, "0")
        if key not in keys:
            keys.append(key)
    if graph.grouping != GROUP_BY_SCOPE and all(k.isdigit() for k in keys):
        keys.sort(key=int)
    return keys


def render_diagram(
    graph: ContractGraph,
    clusters: Optional[ClusterMap] = None,
    direction: str = SETTINGS.direction,
) -> MermaidGraph:
    """
    Render a call graph as a Mermaid flowchart.

    Args:
        graph: Graph to render
        clusters: Node id -> cluster key; computed with ``cluster_nodes`` when omitted
        direction: Mermaid direction (TB, LR, ...)

    Returns:
        The diagram text with node and edge counts
    """
    if clusters is None:
        clusters = cluster_nodes(graph)
    keys = _ordered_keys(graph, clusters)
    nodes: Dict[str, FunctionRecord] = {node.id: node for node in graph.nodes}

    lines: List[str] = [f"graph {direction};"]
    for key in keys:
        title = escape_label(cluster_title(key, graph.grouping))
        lines.append(f'    subgraph Cluster_{safe_id(key)}["{title}"]')
        for node in graph.nodes:
            if clusters.get(node.id, "0") == key:
                lines.append(_node_line(node))
        lines.append("    end")
        lines.append("")

    edge_count = 0
    for e in graph.edges:
        source, target = nodes.get(e.source), nodes.get(e.target)
        if source is None or target is None:
            continue
        label = _edge_label(target)
        arrow = "-->" if clusters.get(e.source, "0") == clusters.get(e.target, "0") else "==>"
        label_part = f'|"{label}"|' if label else ""
        lines.append(f"    {node_id(source)} {arrow}{label_part} {node_id(target)}")
        edge_count += 1

    for index, key in enumerate(keys):
        color = PALETTE[index % len(PALETTE)]
        lines.append(f"    classDef cluster{safe_id(key)} fill:{color},stroke:#333,stroke-width:1px;")
    for node in graph.nodes:
        lines.append(f"    class {node_id(node)} cluster{safe_id(clusters.get(node.id, '0'))};")

    return MermaidGraph(mermaid="\n".join(lines) + "\n", node_count=len(nodes), edge_count=edge_count)


def write_diagram(graph: ContractGraph, out_path: Path, **kwargs) -> MermaidGraph:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    result = render_diagram(graph, **kwargs)
    out_path.write_text(result.mermaid, encoding="utf-8")
    return result
