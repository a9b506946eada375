from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, ContextManager

from rich.console import Console
from rich.table import Table

from .filters import PathFilter
from .graph import CorrelationGraph
from .history import GitHistoryReader, HistoryReader
from .models import FileEdge
from .processor import CommitProcessor
from .stores import GraphStore

logger = logging.getLogger(__name__)

ReaderFactory = Callable[[Path, PathFilter], ContextManager[HistoryReader]]


@dataclass
class AnalysisResult:
    graph: CorrelationGraph
    processed_count: int
    saved: bool


def correlation_row(edge: FileEdge) -> dict:
    return {
        "source": edge.source_file_path,
        "target": edge.target_file_path,
        "correlation": edge.correlation,
        "co_commit_count": edge.co_commit_count,
        "min_commit_count": edge.min_commit_count,
    }


@dataclass
class CorrelationAnalyzer:
    """Runs one incremental pass: load, apply the next batch of commits, save.

    Each call resumes from the checkpoint stored with the graph, so it can
    be re-run against a growing history without reprocessing commits.
    """

    repo_path: Path
    store: GraphStore
    batch_size: int = 100
    path_filter: PathFilter = field(default_factory=PathFilter.default)
    reader_factory: ReaderFactory = GitHistoryReader

    def run(self) -> AnalysisResult:
        graph = self.store.load()

        with self.reader_factory(Path(self.repo_path), self.path_filter) as reader:
            processor = CommitProcessor(reader)
            start = graph.processing_state.last_processed_commit_hash
            processed = processor.process_batch(start, self.batch_size, graph)

        st = graph.processing_state
        logger.info(
            "processed %d commits (total %d, %d files)",
            processed,
            st.total_commits_processed,
            len(graph.nodes),
        )

        if processed == 0:
            logger.info("no new commits to process")
            return AnalysisResult(graph, 0, saved=False)

        self.store.save(graph)
        logger.info(
            "last processed commit %s (%s)",
            st.last_processed_commit_hash,
            st.last_processed_commit_date.isoformat(),
        )
        return AnalysisResult(graph, processed, saved=True)

    def analyze(self) -> CorrelationGraph:
        return self.run().graph

    def display_top_correlations(
        self, graph: CorrelationGraph, count: int = 10, console: Console | None = None
    ) -> None:
        console = console or Console()
        table = Table(title=f"Top {count} file correlations")
        table.add_column("Source")
        table.add_column("Target")
        table.add_column("Correlation", justify="right")
        table.add_column("Co-commits", justify="right")

        for edge in graph.get_top_correlations(count):
            table.add_row(
                edge.source_file_path,
                edge.target_file_path,
                f"{edge.correlation:.2%}",
                f"{edge.co_commit_count}/{edge.min_commit_count}",
            )
        console.print(table)
