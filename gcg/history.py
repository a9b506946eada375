"""Git history access.

The processor only needs three things from history: an ordered batch of
commits after a checkpoint, the paths each commit added or modified, and
the paths it deleted. `HistoryReader` names that contract;
`GitHistoryReader` implements it on top of GitPython.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Protocol

from git import Repo
from git.exc import BadName, BadObject, GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from .exceptions import RepositoryError
from .filters import PathFilter

logger = logging.getLogger(__name__)

# Diff change types (git diff-tree letters)
_ADDED_OR_CHANGED = {"A", "M", "T", "C"}


@dataclass(frozen=True)
class CommitRef:
    sha: str
    authored_at: datetime
    parents: tuple[str, ...] = ()

    @property
    def is_root(self) -> bool:
        return not self.parents


def _closes_over(commits: list[CommitRef], in_range: dict[str, CommitRef], k: int, start_hash: str) -> bool:
    """True when commits[:k] is exactly the new ancestry of commits[k - 1].

    Also requires commits[k - 1] to descend from `start_hash`, so that
    everything processed so far stays reachable from the next checkpoint.
    """
    seen: set[str] = set()
    reaches_start = not start_hash
    stack = [commits[k - 1].sha]
    while stack:
        sha = stack.pop()
        if sha in seen:
            continue
        seen.add(sha)
        for p in in_range[sha].parents:
            if p == start_hash:
                reaches_start = True
            elif p in in_range:
                stack.append(p)
    return reaches_start and len(seen) == k


def batch_cut(commits: list[CommitRef], start_hash: str, batch_size: int) -> int:
    """How many of the topologically ordered `commits` to take.

    Resuming works from "not reachable from the last applied commit", so a
    batch may only end where its last commit's ancestry covers the whole
    batch. Otherwise a commit from a sibling branch would come back next
    time. Takes the longest such cut within `batch_size`, else the shortest
    one beyond it.
    """
    if batch_size >= len(commits):
        return len(commits)
    in_range = {c.sha: c for c in commits}
    for k in range(batch_size, 0, -1):
        if _closes_over(commits, in_range, k, start_hash):
            return k
    for k in range(batch_size + 1, len(commits)):
        if _closes_over(commits, in_range, k, start_hash):
            return k
    return len(commits)


class HistoryReader(Protocol):
    def get_commit_batch(self, start_hash: str, batch_size: int) -> list[CommitRef]: ...

    def get_files_in_commit(self, commit: CommitRef, include_deleted: bool = False) -> list[str]: ...

    def get_deleted_files(self, commit: CommitRef) -> list[str]: ...


class GitHistoryReader:
    """Reads commits and their changed paths from a git repository."""

    def __init__(self, repo_path: str | Path, path_filter: PathFilter | None = None):
        self.repo_path = Path(repo_path).expanduser().resolve()
        self.path_filter = path_filter or PathFilter.default()
        # (sha, touched, deleted) of the last diffed commit
        self._last_changes: tuple[str, list[str], list[str]] | None = None
        try:
            self.repo = Repo(self.repo_path)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise RepositoryError(f"No git repository found at {self.repo_path}", cause=e) from e

    def __enter__(self) -> "GitHistoryReader":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self.repo.close()

    def _resolve(self, sha: str):
        try:
            return self.repo.commit(sha)
        except (BadName, BadObject, ValueError):
            return None

    def get_commit_batch(self, start_hash: str, batch_size: int) -> list[CommitRef]:
        """Oldest-first commits reachable from HEAD but not from `start_hash`.

        An empty `start_hash` means the whole history. If `start_hash` no
        longer resolves (rewritten history), the whole history is returned
        and a warning is logged. The batch is cut where its last commit's
        ancestry covers the whole batch (see `batch_cut`), so it can end up
        shorter or longer than `batch_size` on merge-heavy history.
        """
        if batch_size <= 0 or not self.repo.head.is_valid():
            return []

        rev = "HEAD"
        if start_hash:
            if self._resolve(start_hash) is None:
                logger.warning(
                    "checkpoint %s not found in %s; processing history from the first commit",
                    start_hash,
                    self.repo_path,
                )
                start_hash = ""
            else:
                rev = f"{start_hash}..HEAD"

        try:
            commits = [
                CommitRef(
                    sha=c.hexsha,
                    authored_at=c.authored_datetime,
                    parents=tuple(p.hexsha for p in c.parents),
                )
                for c in self.repo.iter_commits(rev, topo_order=True, reverse=True)
            ]
        except GitCommandError as e:
            raise RepositoryError(f"Failed to walk history of {self.repo_path}", cause=e) from e

        n = batch_cut(commits, start_hash, batch_size)
        if n != min(batch_size, len(commits)):
            logger.debug("batch cut at %d commits instead of %d to end on a closed ancestry", n, batch_size)
        return commits[:n]

    def _changes(self, commit: CommitRef) -> tuple[list[str], list[str]]:
        """(added or modified, deleted) paths relative to the first parent."""
        if self._last_changes is not None and self._last_changes[0] == commit.sha:
            return self._last_changes[1], self._last_changes[2]

        c = self.repo.commit(commit.sha)
        touched: list[str] = []
        deleted: list[str] = []
        if not c.parents:
            touched = sorted(b.path for b in c.tree.traverse() if b.type == "blob")
        else:
            for d in c.parents[0].diff(c):
                kind = d.change_type
                if kind == "D":
                    deleted.append(d.a_path)
                elif kind == "R":
                    deleted.append(d.a_path)
                    touched.append(d.b_path)
                elif kind in _ADDED_OR_CHANGED:
                    touched.append(d.b_path or d.a_path)

        self._last_changes = (commit.sha, touched, deleted)
        return touched, deleted

    def get_files_in_commit(self, commit: CommitRef, include_deleted: bool = False) -> list[str]:
        touched, deleted = self._changes(commit)
        paths = touched + deleted if include_deleted else touched
        return self.path_filter.filter_paths(dict.fromkeys(paths))

    def get_deleted_files(self, commit: CommitRef) -> list[str]:
        if commit.is_root:
            return []
        return list(self._changes(commit)[1])
