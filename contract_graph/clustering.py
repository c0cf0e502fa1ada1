from __future__ import annotations

from collections import defaultdict, deque
from string import ascii_uppercase

from contract_graph.models import GROUP_BY_SCOPE, ClusterMap, ContractGraph


def _connectivity_clusters(graph: ContractGraph) -> ClusterMap:
    adj: dict[str, set[str]] = defaultdict(set)
    for e in graph.edges:
        adj[e.source].add(e.target)
        adj[e.target].add(e.source)

    clusters: ClusterMap = {}
    isolated = [node.id for node in graph.nodes if node.id not in adj]
    for node_id in isolated:
        clusters[node_id] = "0"

    index = 1 if isolated else 0
    for node in graph.nodes:
        if node.id in clusters:
            continue
        key = str(index)
        index += 1
        q = deque([node.id])
        while q:
            cur = q.popleft()
            if cur in clusters:
                continue
            clusters[cur] = key
            for nxt in adj[cur]:
                if nxt not in clusters:
                    q.append(nxt)

    # Edge endpoints without a node never get a key.
    return {node.id: clusters[node.id] for node in graph.nodes}


def cluster_nodes(graph: ContractGraph) -> ClusterMap:
    """
    Assign every node a cluster key.

    Scope-grouped graphs (module-oriented languages) use each node's origin
    scope. Otherwise functions touched by no edge share key ``"0"`` and each
    connected component (edge direction ignored) gets the next number, in
    node order.
    """
    if graph.grouping == GROUP_BY_SCOPE:
        return {node.id: node.origin_scope for node in graph.nodes}
    return _connectivity_clusters(graph)


def cluster_title(key: str, grouping: str) -> str:
    """Display title of a cluster: the scope name, or ``Main``/``Cluster A``... by component number."""
    if grouping == GROUP_BY_SCOPE or not key.isdigit():
        return key
    index = int(key)
    if index == 0:
        return "Main"
    if index <= len(ascii_uppercase):
        return f"Cluster {ascii_uppercase[index - 1]}"
    return f"Cluster {index}"
