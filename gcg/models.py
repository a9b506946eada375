from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

# Checkpoint date of a graph that has not processed anything yet.
NEVER = datetime.min


@dataclass(eq=False)
class FileNode:
    file_path: str              # relative to the repository root
    commit_count: int = 0
    # Outbound edges only, keyed by the other file's path
    edges: dict[str, "FileEdge"] = field(default_factory=dict, repr=False)


@dataclass(eq=False)
class FileEdge:
    """Co-change record for a pair of files.

    Stored once, in the edge map of `source_file_path`'s node. The
    relationship it describes is symmetric.
    """

    source_file_path: str
    target_file_path: str
    co_commit_count: int = 0
    source_node: FileNode | None = field(default=None, repr=False)
    target_node: FileNode | None = field(default=None, repr=False)

    @property
    def correlation(self) -> float:
        """co_commit_count / min(commit counts), 0 when an endpoint is gone or unseen."""
        if self.source_node is None or self.target_node is None:
            return 0.0
        lowest = min(self.source_node.commit_count, self.target_node.commit_count)
        if lowest <= 0:
            return 0.0
        return self.co_commit_count / lowest

    @property
    def min_commit_count(self) -> int:
        if self.source_node is None or self.target_node is None:
            return 0
        return min(self.source_node.commit_count, self.target_node.commit_count)

    def other(self, path: str) -> str:
        return self.target_file_path if path == self.source_file_path else self.source_file_path


@dataclass
class ProcessingState:
    last_processed_commit_hash: str = ""
    last_processed_commit_date: datetime = NEVER
    # Lifetime counter; survives save/load
    total_commits_processed: int = 0


# ---- Persisted document ----
#
# PascalCase keys are the on-disk contract shared with the visualization
# front-end. Python code uses the snake_case field names.


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SerializableFileEdge(_Document):
    source_file_path: str = Field(alias="SourceFilePath", min_length=1)
    target_file_path: str = Field(alias="TargetFilePath", min_length=1)
    co_commit_count: int = Field(alias="CoCommitCount", ge=0)


class SerializableFileNode(_Document):
    file_path: str = Field(alias="FilePath", min_length=1)
    commit_count: int = Field(alias="CommitCount", ge=0)
    edges: list[SerializableFileEdge] = Field(default_factory=list, alias="Edges")


class SerializableProcessingState(_Document):
    last_processed_commit_hash: str = Field(default="", alias="LastProcessedCommitHash")
    last_processed_commit_date: datetime = Field(default=NEVER, alias="LastProcessedCommitDate")
    total_commits_processed: int = Field(default=0, alias="TotalCommitsProcessed", ge=0)


class SerializableGraph(_Document):
    nodes: list[SerializableFileNode] = Field(default_factory=list, alias="Nodes")
    processing_state: SerializableProcessingState = Field(
        default_factory=SerializableProcessingState, alias="ProcessingState"
    )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)
