"""Groups of files that change together.

A cluster is a connected component over strong edges between files that
changed often enough to matter and are not hubs touched by everything.
"""

from __future__ import annotations

from dataclasses import dataclass

import networkx as nx

from .graph import CorrelationGraph


@dataclass
class ClusterFile:
    file_path: str
    commit_count: int
    connection_count: int


@dataclass
class ClusterConnection:
    source: str
    target: str
    correlation: float
    co_commit_count: int


@dataclass
class FileCluster:
    files: list[ClusterFile]
    connections: list[ClusterConnection]


def strong_edge_graph(
    graph: CorrelationGraph,
    min_commits: int = 2,
    max_connections: int = 15,
    min_correlation: float = 0.4,
) -> nx.Graph:
    adjacent: dict[str, set[str]] = {p: set() for p in graph.nodes}
    for edge in graph.iter_edges():
        adjacent[edge.source_file_path].add(edge.target_file_path)
        adjacent[edge.target_file_path].add(edge.source_file_path)

    eligible = {
        path
        for path, node in graph.nodes.items()
        if node.commit_count >= min_commits and len(adjacent[path]) <= max_connections
    }

    G = nx.Graph()
    for edge in graph.iter_edges():
        a, b = edge.source_file_path, edge.target_file_path
        if a not in eligible or b not in eligible:
            continue
        if edge.correlation < min_correlation:
            continue
        G.add_edge(a, b, correlation=edge.correlation, co_commit_count=edge.co_commit_count)
    return G


def identify_clusters(
    graph: CorrelationGraph,
    min_commits: int = 2,
    max_connections: int = 15,
    min_correlation: float = 0.4,
) -> list[FileCluster]:
    """Connected components of two or more files, largest first."""
    G = strong_edge_graph(graph, min_commits, max_connections, min_correlation)

    clusters: list[FileCluster] = []
    for component in nx.connected_components(G):
        sub = G.subgraph(component)
        files = [
            ClusterFile(p, graph.nodes[p].commit_count, sub.degree(p))
            for p in sorted(component)
        ]
        connections = [
            ClusterConnection(*sorted((a, b)), d["correlation"], d["co_commit_count"])
            for a, b, d in sub.edges(data=True)
        ]
        connections.sort(key=lambda c: (-c.correlation, c.source, c.target))
        clusters.append(FileCluster(files=files, connections=connections))

    clusters.sort(key=lambda c: (-len(c.files), c.files[0].file_path))
    return clusters
