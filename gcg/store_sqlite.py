from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from .exceptions import GraphLoadError
from .graph import CorrelationGraph
from .models import (
    SerializableFileEdge,
    SerializableFileNode,
    SerializableGraph,
    SerializableProcessingState,
)

logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS nodes (
  file_path TEXT PRIMARY KEY,
  commit_count INTEGER NOT NULL,
  position INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS edges (
  source_file_path TEXT NOT NULL,
  target_file_path TEXT NOT NULL,
  co_commit_count INTEGER NOT NULL,
  position INTEGER NOT NULL,
  PRIMARY KEY (source_file_path, target_file_path),
  FOREIGN KEY(source_file_path) REFERENCES nodes(file_path),
  FOREIGN KEY(target_file_path) REFERENCES nodes(file_path)
);

CREATE TABLE IF NOT EXISTS processing_state (
  id INTEGER PRIMARY KEY CHECK (id = 1),
  last_processed_commit_hash TEXT NOT NULL,
  last_processed_commit_date TEXT NOT NULL,
  total_commits_processed INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_edges_target ON edges(target_file_path);
"""


@dataclass
class SQLiteGraphStore:
    """Persistent local graph in a SQLite database."""

    path: Path

    def __post_init__(self) -> None:
        self.path = Path(self.path)

    @property
    def location(self) -> str:
        return str(self.path)

    def _connect(self) -> sqlite3.Connection:
        con = sqlite3.connect(self.path)
        con.execute("PRAGMA journal_mode=WAL")
        con.execute("PRAGMA synchronous=NORMAL")
        return con

    def load(self) -> CorrelationGraph:
        if not self.path.exists():
            logger.info("no graph at %s; starting empty", self.path)
            return CorrelationGraph()

        try:
            con = self._connect()
        except sqlite3.DatabaseError as e:
            raise GraphLoadError(f"Malformed graph database {self.path}", cause=e) from e
        try:
            con.executescript(SCHEMA)
            node_rows = con.execute(
                "SELECT file_path, commit_count FROM nodes ORDER BY position"
            ).fetchall()
            edge_rows = con.execute(
                "SELECT source_file_path, target_file_path, co_commit_count FROM edges ORDER BY position"
            ).fetchall()
            state_row = con.execute(
                "SELECT last_processed_commit_hash, last_processed_commit_date, total_commits_processed "
                "FROM processing_state WHERE id = 1"
            ).fetchone()
        except sqlite3.DatabaseError as e:
            raise GraphLoadError(f"Malformed graph database {self.path}", cause=e) from e
        finally:
            con.close()

        try:
            doc = self._document(node_rows, edge_rows, state_row)
        except ValidationError as e:
            raise GraphLoadError(f"Malformed graph database {self.path}", cause=e) from e
        except ValueError as e:
            raise GraphLoadError(f"Malformed processing state in {self.path}", cause=e) from e
        return CorrelationGraph.from_document(doc)

    def _document(self, node_rows, edge_rows, state_row) -> SerializableGraph:
        edges_by_source: dict[str, list[SerializableFileEdge]] = {}
        for src, dst, count in edge_rows:
            edges_by_source.setdefault(src, []).append(
                SerializableFileEdge(source_file_path=src, target_file_path=dst, co_commit_count=count)
            )

        state = SerializableProcessingState()
        if state_row:
            state = SerializableProcessingState(
                last_processed_commit_hash=state_row[0],
                last_processed_commit_date=datetime.fromisoformat(state_row[1]),
                total_commits_processed=state_row[2],
            )

        doc = SerializableGraph(
            nodes=[
                SerializableFileNode(file_path=p, commit_count=c, edges=edges_by_source.pop(p, []))
                for p, c in node_rows
            ],
            processing_state=state,
        )
        if edges_by_source:
            raise GraphLoadError(f"Edges in {self.path} reference missing nodes: {sorted(edges_by_source)}")
        return doc

    def save(self, graph: CorrelationGraph) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        st = graph.processing_state
        with self._connect() as con:
            con.executescript(SCHEMA)
            con.execute("DELETE FROM edges")
            con.execute("DELETE FROM nodes")
            con.executemany(
                "INSERT INTO nodes(file_path, commit_count, position) VALUES(?,?,?)",
                [(n.file_path, n.commit_count, i) for i, n in enumerate(graph.nodes.values())],
            )
            con.executemany(
                "INSERT INTO edges(source_file_path, target_file_path, co_commit_count, position) VALUES(?,?,?,?)",
                [
                    (e.source_file_path, e.target_file_path, e.co_commit_count, i)
                    for i, e in enumerate(graph.iter_edges())
                ],
            )
            con.execute(
                "INSERT OR REPLACE INTO processing_state"
                "(id, last_processed_commit_hash, last_processed_commit_date, total_commits_processed) "
                "VALUES(1,?,?,?)",
                (st.last_processed_commit_hash, st.last_processed_commit_date.isoformat(), st.total_commits_processed),
            )
        con.close()
        logger.info("graph saved to %s", self.path)
