from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator

from .exceptions import GraphIntegrityError, GraphLoadError
from .models import (
    FileEdge,
    FileNode,
    ProcessingState,
    SerializableFileEdge,
    SerializableFileNode,
    SerializableGraph,
    SerializableProcessingState,
)

logger = logging.getLogger(__name__)


def _rank_key(edge: FileEdge) -> tuple:
    return (-edge.correlation, -edge.co_commit_count, edge.source_file_path, edge.target_file_path)


@dataclass
class CorrelationGraph:
    """In-memory co-change graph: file nodes, pairwise edges and the resume checkpoint.

    Each pair of files has at most one edge record. It lives in the edge
    map of whichever file was the source when the pair was first seen;
    `find_edge` and `get_or_create_edge` accept the pair in either order.
    """

    nodes: dict[str, FileNode] = field(default_factory=dict)
    processing_state: ProcessingState = field(default_factory=ProcessingState)

    def get_or_create_node(self, path: str) -> FileNode:
        node = self.nodes.get(path)
        if node is None:
            node = FileNode(path)
            self.nodes[path] = node
        return node

    def get_or_create_edge(self, source_path: str, target_path: str) -> FileEdge:
        source = self.get_or_create_node(source_path)
        target = self.get_or_create_node(target_path)

        edge = source.edges.get(target_path)
        if edge is not None:
            return edge
        # Pair already recorded the other way round
        edge = target.edges.get(source_path)
        if edge is not None:
            return edge

        edge = FileEdge(source_path, target_path, source_node=source, target_node=target)
        source.edges[target_path] = edge
        return edge

    def find_edge(self, a: str, b: str) -> FileEdge | None:
        for src, dst in ((a, b), (b, a)):
            node = self.nodes.get(src)
            if node is not None and dst in node.edges:
                return node.edges[dst]
        return None

    def remove_node(self, path: str) -> bool:
        """Drop `path` and every edge touching it. Returns False if it was not present."""
        node = self.nodes.pop(path, None)
        if node is None:
            return False

        for other in self.nodes.values():
            inbound = other.edges.pop(path, None)
            if inbound is not None:
                inbound.source_node = inbound.target_node = None
        for outbound in node.edges.values():
            outbound.source_node = outbound.target_node = None
        return True

    def iter_edges(self) -> Iterator[FileEdge]:
        for node in self.nodes.values():
            yield from node.edges.values()

    def edge_count(self) -> int:
        return sum(len(n.edges) for n in self.nodes.values())

    def neighbors(self, path: str) -> list[str]:
        """Paths sharing an edge with `path`, from either side of the edge."""
        out: set[str] = set()
        node = self.nodes.get(path)
        if node is not None:
            out.update(node.edges)
        for other in self.nodes.values():
            if path in other.edges:
                out.add(other.file_path)
        return sorted(out)

    def get_top_correlations(self, count: int) -> list[FileEdge]:
        """Strongest edges first.

        Ties on correlation break on co-commit count (higher first), then
        source path and target path.
        """
        if count <= 0:
            return []
        return sorted(self.iter_edges(), key=_rank_key)[:count]

    def check_integrity(self) -> None:
        for node in self.nodes.values():
            for key, edge in node.edges.items():
                if key not in self.nodes:
                    raise GraphIntegrityError(f"edge {node.file_path} -> {key} points at a missing node")
                if edge.source_file_path != node.file_path or edge.target_file_path != key:
                    raise GraphIntegrityError(f"edge stored under {node.file_path}[{key}] has the wrong endpoints")

    def stats(self) -> dict:
        st = self.processing_state
        return {
            "nodes": len(self.nodes),
            "edges": self.edge_count(),
            "total_commits_processed": st.total_commits_processed,
            "last_processed_commit_hash": st.last_processed_commit_hash,
            "last_processed_commit_date": st.last_processed_commit_date.isoformat(),
        }

    # ---- Document conversion (used by every store) ----

    def to_document(self) -> SerializableGraph:
        st = self.processing_state
        return SerializableGraph(
            nodes=[
                SerializableFileNode(
                    file_path=n.file_path,
                    commit_count=n.commit_count,
                    edges=[
                        SerializableFileEdge(
                            source_file_path=e.source_file_path,
                            target_file_path=e.target_file_path,
                            co_commit_count=e.co_commit_count,
                        )
                        for e in n.edges.values()
                    ],
                )
                for n in self.nodes.values()
            ],
            processing_state=SerializableProcessingState(
                last_processed_commit_hash=st.last_processed_commit_hash,
                last_processed_commit_date=st.last_processed_commit_date,
                total_commits_processed=st.total_commits_processed,
            ),
        )

    @classmethod
    def from_document(cls, doc: SerializableGraph) -> "CorrelationGraph":
        """Rebuild a graph; edge endpoints are resolved by path once every node exists."""
        graph = cls()
        for n in doc.nodes:
            if n.file_path in graph.nodes:
                raise GraphLoadError(f"duplicate node {n.file_path!r}")
            graph.nodes[n.file_path] = FileNode(n.file_path, commit_count=n.commit_count)

        for n in doc.nodes:
            for e in n.edges:
                if e.source_file_path != n.file_path:
                    raise GraphLoadError(
                        f"edge {e.source_file_path!r} -> {e.target_file_path!r} listed under {n.file_path!r}"
                    )
                target = graph.nodes.get(e.target_file_path)
                if target is None:
                    raise GraphLoadError(f"edge {n.file_path!r} -> {e.target_file_path!r} has no target node")
                source = graph.nodes[n.file_path]
                if e.co_commit_count > min(source.commit_count, target.commit_count):
                    raise GraphLoadError(
                        f"edge {n.file_path!r} -> {e.target_file_path!r} co-commit count exceeds its commit counts"
                    )
                source.edges[e.target_file_path] = FileEdge(
                    e.source_file_path,
                    e.target_file_path,
                    co_commit_count=e.co_commit_count,
                    source_node=source,
                    target_node=target,
                )

        ps = doc.processing_state
        graph.processing_state = ProcessingState(
            last_processed_commit_hash=ps.last_processed_commit_hash,
            last_processed_commit_date=ps.last_processed_commit_date,
            total_commits_processed=ps.total_commits_processed,
        )
        logger.debug("rebuilt graph with %d nodes and %d edges", len(graph.nodes), graph.edge_count())
        return graph
