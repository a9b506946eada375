from __future__ import annotations

from pathlib import Path
from typing import Protocol

from .graph import CorrelationGraph
from .settings import Settings
from .store_json import JsonGraphStore
from .store_memory import MemoryGraphStore
from .store_sqlite import SQLiteGraphStore


class GraphStore(Protocol):
    @property
    def location(self) -> str: ...

    def load(self) -> CorrelationGraph: ...

    def save(self, graph: CorrelationGraph) -> None: ...


def make_store(settings: Settings, repo_path: str | Path) -> GraphStore:
    if settings.graph_backend == "memory":
        return MemoryGraphStore()
    path = settings.graph_file_for(repo_path)
    if settings.graph_backend == "sqlite":
        return SQLiteGraphStore(path)
    return JsonGraphStore(path)
