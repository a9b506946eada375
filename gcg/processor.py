from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import combinations

from .graph import CorrelationGraph
from .history import CommitRef, HistoryReader

logger = logging.getLogger(__name__)


@dataclass
class CommitProcessor:
    reader: HistoryReader

    def process_commit(self, commit: CommitRef, graph: CorrelationGraph) -> None:
        """Fold one commit into the graph and move the checkpoint to it.

        Pair counting is quadratic in the number of files the commit
        touches.
        """
        files = list(dict.fromkeys(self.reader.get_files_in_commit(commit, include_deleted=False)))

        # Deletions first, so a path deleted and re-added here ends up present
        if not commit.is_root:
            for path in self.reader.get_deleted_files(commit):
                if graph.remove_node(path):
                    logger.debug("removed deleted file %s", path)

        for path in files:
            graph.get_or_create_node(path).commit_count += 1

        for a, b in combinations(files, 2):
            graph.get_or_create_edge(a, b).co_commit_count += 1

        # Advances even when no file survived filtering
        st = graph.processing_state
        st.last_processed_commit_hash = commit.sha
        st.last_processed_commit_date = commit.authored_at
        st.total_commits_processed += 1

        logger.debug("processed %s (%d files)", commit.sha[:12], len(files))

    def process_batch(self, start_commit_hash: str, max_count: int, graph: CorrelationGraph) -> int:
        """Apply up to `max_count` commits after `start_commit_hash`; returns how many were applied."""
        commits = self.reader.get_commit_batch(start_commit_hash, max_count)
        for commit in commits:
            self.process_commit(commit, graph)
        return len(commits)
