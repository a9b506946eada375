from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from .settings import Settings


@dataclass
class PathFilter:
    """Decides which changed paths take part in the graph.

    Matching on extension and file name ignores case.
    """

    excluded_extensions: set[str] = field(default_factory=set)
    excluded_file_names: set[str] = field(default_factory=set)
    exclude_root_files: bool = False

    def __post_init__(self) -> None:
        self.excluded_extensions = {_ext(e) for e in self.excluded_extensions if e}
        self.excluded_file_names = {n.lower() for n in self.excluded_file_names if n}

    @classmethod
    def default(cls) -> "PathFilter":
        return cls(
            excluded_extensions={".csproj", ".sln"},
            excluded_file_names={"Program.cs", "package.json", "tsconfig.json"},
            exclude_root_files=True,
        )

    @classmethod
    def permissive(cls) -> "PathFilter":
        return cls()

    @classmethod
    def from_settings(cls, settings: "Settings") -> "PathFilter":
        return cls(
            excluded_extensions=set(settings.excluded_extensions),
            excluded_file_names=set(settings.excluded_file_names),
            exclude_root_files=settings.exclude_root_files,
        )

    def should_exclude(self, path: str) -> bool:
        if not path or not path.strip():
            return True

        if self.exclude_root_files and "/" not in path and "\\" not in path:
            return True

        name = posixpath.basename(path.replace("\\", "/"))
        ext = posixpath.splitext(name)[1].lower()
        if ext and ext in self.excluded_extensions:
            return True

        return name.lower() in self.excluded_file_names

    def filter_paths(self, paths: Iterable[str]) -> list[str]:
        return [p for p in paths if not self.should_exclude(p)]


def _ext(e: str) -> str:
    e = e.strip().lower()
    return e if e.startswith(".") else f".{e}"
