"""Pytest configuration for gcg tests."""

import shutil
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from gcg.filters import PathFilter
from gcg.graph import CorrelationGraph
from gcg.history import CommitRef

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


# =============================================================================
# In-memory history
# =============================================================================


class FakeHistoryReader:
    """Linear history held in memory; implements the HistoryReader contract.

    Usage:
        reader = FakeHistoryReader()
        reader.add(["a.py", "b.py"])
        reader.add(["b.py"], deleted=["a.py"])
    """

    def __init__(self, path_filter: PathFilter | None = None):
        self.path_filter = path_filter or PathFilter.permissive()
        self.commits: list[CommitRef] = []
        self.touched: dict[str, list[str]] = {}
        self.deleted: dict[str, list[str]] = {}
        self.closed = False
        self.batch_calls: list[tuple[str, int]] = []

    def add(self, touched=(), deleted=(), sha: str | None = None) -> CommitRef:
        sha = sha or f"{len(self.commits) + 1:040x}"
        parents = (self.commits[-1].sha,) if self.commits else ()
        ref = CommitRef(sha=sha, authored_at=BASE_TIME + timedelta(hours=len(self.commits)), parents=parents)
        self.commits.append(ref)
        self.touched[sha] = list(touched)
        self.deleted[sha] = list(deleted)
        return ref

    def get_commit_batch(self, start_hash: str, batch_size: int) -> list[CommitRef]:
        self.batch_calls.append((start_hash, batch_size))
        shas = [c.sha for c in self.commits]
        start = shas.index(start_hash) + 1 if start_hash in shas else 0
        return self.commits[start:start + max(batch_size, 0)]

    def get_files_in_commit(self, commit: CommitRef, include_deleted: bool = False) -> list[str]:
        paths = self.touched[commit.sha] + (self.deleted[commit.sha] if include_deleted else [])
        return self.path_filter.filter_paths(paths)

    def get_deleted_files(self, commit: CommitRef) -> list[str]:
        return [] if commit.is_root else list(self.deleted[commit.sha])

    # Lets a reader stand in for GitHistoryReader in CorrelationAnalyzer
    def __call__(self, repo_path, path_filter):
        return self

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True


@pytest.fixture
def reader() -> FakeHistoryReader:
    return FakeHistoryReader()


@pytest.fixture
def scenario_reader() -> FakeHistoryReader:
    """C1 adds file1, C2 adds file2, C3 adds file3 and modifies file1."""
    r = FakeHistoryReader()
    r.add(["file1.txt"])
    r.add(["file2.txt"])
    r.add(["file3.txt", "file1.txt"])
    return r


@pytest.fixture
def small_graph() -> CorrelationGraph:
    """Four files, three edges, checkpoint set."""
    g = CorrelationGraph()
    for path, count in (("src/a.py", 4), ("src/b.py", 2), ("src/c.py", 3), ("docs/d.md", 1)):
        g.get_or_create_node(path).commit_count = count
    g.get_or_create_edge("src/a.py", "src/b.py").co_commit_count = 2
    g.get_or_create_edge("src/a.py", "src/c.py").co_commit_count = 1
    g.get_or_create_edge("src/c.py", "docs/d.md").co_commit_count = 1
    st = g.processing_state
    st.last_processed_commit_hash = "f" * 40
    st.last_processed_commit_date = BASE_TIME
    st.total_commits_processed = 7
    return g


# =============================================================================
# Real git repositories
# =============================================================================

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git executable not available")


class GitRepoBuilder:
    """Creates commits in a throwaway repository through GitPython."""

    def __init__(self, path: Path):
        from git import Actor, Repo

        self.path = path
        self.repo = Repo.init(path)
        self.actor = Actor("Test User", "test@example.com")
        self.shas: list[str] = []

    def commit(self, files: dict[str, str] | None = None, delete=(), message: str = "change", parents=()) -> str:
        """Commit onto HEAD; `parents` (shas) overrides HEAD as the parent list, e.g. for a merge."""
        files = files or {}
        for rel, content in files.items():
            target = self.path / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
        if files:
            self.repo.index.add(list(files))
        if delete:
            self.repo.index.remove(list(delete), working_tree=True)
        parent_commits = [self.repo.commit(p) for p in parents] or None
        c = self.repo.index.commit(
            message, parent_commits=parent_commits, author=self.actor, committer=self.actor
        )
        self.shas.append(c.hexsha)
        return c.hexsha

    def close(self) -> None:
        self.repo.close()


@pytest.fixture
def git_repo(tmp_path):
    if shutil.which("git") is None:
        pytest.skip("git executable not available")
    builder = GitRepoBuilder(tmp_path / "repo")
    yield builder
    builder.close()


@pytest.fixture
def scenario_repo(git_repo) -> GitRepoBuilder:
    git_repo.commit({"file1.txt": "Test content 1"}, message="Initial commit")
    git_repo.commit({"file2.txt": "Test content 2"}, message="Second commit")
    git_repo.commit({"file1.txt": "Modified content 1", "file3.txt": "Test content 3"}, message="Third commit")
    return git_repo


@pytest.fixture
def merge_repo(git_repo) -> GitRepoBuilder:
    """root, then a side-branch commit and a main commit, joined by a merge commit."""
    root = git_repo.commit({"base.txt": "0"}, message="root")
    trunk = git_repo.repo.active_branch
    git_repo.repo.create_head("side", root).checkout()
    side = git_repo.commit({"side/a.py": "a", "side/b.py": "b", "base.txt": "1"}, message="side")
    trunk.checkout()
    main = git_repo.commit({"main/c.py": "c", "main/d.py": "d"}, message="main")
    git_repo.commit({"side/a.py": "a", "side/b.py": "b", "base.txt": "1"}, message="merge", parents=(main, side))
    return git_repo
