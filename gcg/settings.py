from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ConfigurationError

BACKENDS = ("json", "sqlite", "memory")


def _env_list(name: str, default: str) -> list[str]:
    raw = os.getenv(name, default)
    return [x.strip() for x in raw.split(",") if x.strip()]


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    # Env-derived defaults go through the same validators as explicit values
    model_config = ConfigDict(validate_default=True)

    # Commits pulled from history per analyze() pass
    batch_size: int = Field(default_factory=lambda: int(os.getenv("GCG_BATCH_SIZE", "100")))
    top_count: int = Field(default_factory=lambda: int(os.getenv("GCG_TOP_COUNT", "10")))

    # Persistence backend: "json" (portable document), "sqlite" (local db) or "memory" (no persistence)
    graph_backend: str = Field(default_factory=lambda: os.getenv("GCG_GRAPH_BACKEND", "json"))
    graph_path: str | None = Field(default_factory=lambda: os.getenv("GCG_GRAPH_PATH") or None)

    excluded_extensions: list[str] = Field(
        default_factory=lambda: _env_list("GCG_EXCLUDED_EXTENSIONS", ".csproj,.sln")
    )
    excluded_file_names: list[str] = Field(
        default_factory=lambda: _env_list("GCG_EXCLUDED_FILE_NAMES", "Program.cs,package.json,tsconfig.json")
    )
    exclude_root_files: bool = Field(default_factory=lambda: _env_bool("GCG_EXCLUDE_ROOT_FILES", "1"))

    log_level: str = Field(default_factory=lambda: os.getenv("GCG_LOG_LEVEL", "INFO"))

    # Only read by the HTTP server; the CLI takes the repository as an argument.
    repo_path: str = Field(default_factory=lambda: os.getenv("GCG_REPO_PATH", "."))

    @field_validator("batch_size")
    @classmethod
    def _positive_batch(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("batch_size must be positive")
        return v

    @field_validator("graph_backend")
    @classmethod
    def _known_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in BACKENDS:
            raise ValueError(f"graph_backend must be one of {', '.join(BACKENDS)}")
        return v

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        v = v.strip().upper()
        if not isinstance(logging.getLevelName(v), int):
            raise ValueError(f"unknown log level {v!r}")
        return v

    @classmethod
    def load(cls, **overrides) -> "Settings":
        """Build settings from the environment, applying non-None overrides."""
        try:
            return cls(**{k: v for k, v in overrides.items() if v is not None})
        except (ValidationError, ValueError) as e:
            raise ConfigurationError("invalid gcg settings", cause=e) from e

    def graph_file_for(self, repo_path: str | Path) -> Path:
        """Where the graph for `repo_path` lives.

        Derived from the repository path unless GCG_GRAPH_PATH is set.
        """
        if self.graph_path:
            return Path(self.graph_path).expanduser()
        suffix = ".sqlite" if self.graph_backend == "sqlite" else ".json"
        return Path(repo_path).expanduser().resolve() / f"correlation-graph{suffix}"
