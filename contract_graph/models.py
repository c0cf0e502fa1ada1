"""
Graph data model shared by the extractors, the renderer and the filter.

A parse request produces a ``ParsedSource`` (the adapter-level AST) which the
assembler folds into a ``ContractGraph``. Both are plain values: nothing here
holds parser state or caches.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from contract_graph.lexing import split_parameters

# Graph grouping strategies understood by the clustering step.
GROUP_BY_CONNECTIVITY = "connectivity"
GROUP_BY_SCOPE = "scope"

DEFAULT_SCOPE = "Contract"
DEFAULT_CLASSIFICATION = "regular"
EXTERNAL_CLASSIFICATION = "external"
ENTRY_CLASSIFICATION = "entry"

ClusterMap = Dict[str, str]


@dataclass(frozen=True)
class FunctionRecord:
    """A function extracted from contract source."""

    id: str
    label: str
    parameters: Tuple[str, ...] = ()
    body: str = ""
    classification: str = DEFAULT_CLASSIFICATION
    origin_scope: str = DEFAULT_SCOPE

    @property
    def name(self) -> str:
        """Unqualified function name (last ``::`` segment of the id)."""
        return self.id.rsplit("::", 1)[-1]

    @classmethod
    def build(
        cls,
        node_id: str,
        params: str = "",
        body: str = "",
        classification: str = DEFAULT_CLASSIFICATION,
        origin_scope: str = DEFAULT_SCOPE,
        parameters: Tuple[str, ...] | None = None,
    ) -> "FunctionRecord":
        name = node_id.rsplit("::", 1)[-1]
        return cls(
            id=node_id,
            label=f"{name}({params})",
            parameters=tuple(parameters) if parameters is not None else split_parameters(params),
            body=body,
            classification=classification,
            origin_scope=origin_scope,
        )


@dataclass(frozen=True)
class CallEdge:
    """A call from one function id to another."""

    source: str
    target: str
    label: str = ""


@dataclass
class ParsedSource:
    """Adapter-level parse result consumed by ``build_call_graph``."""

    functions: List[FunctionRecord] = field(default_factory=list)
    # Placeholder nodes for cross-module targets the extractor could not see.
    externals: List[FunctionRecord] = field(default_factory=list)
    # Calls already resolved structurally, as (source id, target id).
    calls: List[Tuple[str, str]] = field(default_factory=list)
    grouping: str = GROUP_BY_CONNECTIVITY


@dataclass
class ContractGraph:
    """Call graph of one parse request."""

    nodes: List[FunctionRecord] = field(default_factory=list)
    edges: List[CallEdge] = field(default_factory=list)
    grouping: str = GROUP_BY_CONNECTIVITY

    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]

    def get(self, node_id: str) -> FunctionRecord | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        return len(self.edges)
