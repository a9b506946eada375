from __future__ import annotations

from dataclasses import dataclass, field

from .graph import CorrelationGraph
from .models import SerializableGraph


@dataclass
class MemoryGraphStore:
    """In-process store.

    Keeps a detached snapshot so later mutations of a loaded graph do not
    leak into the store. Data is NOT persisted.
    """

    snapshot: SerializableGraph | None = None
    saves: int = field(default=0)

    @property
    def location(self) -> str:
        return "memory"

    def load(self) -> CorrelationGraph:
        if self.snapshot is None:
            return CorrelationGraph()
        return CorrelationGraph.from_document(self.snapshot)

    def save(self, graph: CorrelationGraph) -> None:
        self.snapshot = graph.to_document()
        self.saves += 1
