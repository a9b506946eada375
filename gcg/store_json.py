from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from .exceptions import GraphLoadError
from .graph import CorrelationGraph
from .models import SerializableGraph

logger = logging.getLogger(__name__)


@dataclass
class JsonGraphStore:
    """Graph persisted as one indented JSON document (the visualization input format)."""

    path: Path

    def __post_init__(self) -> None:
        self.path = Path(self.path)

    @property
    def location(self) -> str:
        return str(self.path)

    def load(self) -> CorrelationGraph:
        if not self.path.exists():
            logger.info("no graph at %s; starting empty", self.path)
            return CorrelationGraph()

        try:
            raw = self.path.read_text(encoding="utf-8")
            doc = SerializableGraph.model_validate(json.loads(raw))
        except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
            raise GraphLoadError(f"Malformed graph file {self.path}", cause=e) from e
        return CorrelationGraph.from_document(doc)

    def save(self, graph: CorrelationGraph) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # atomic replace
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(graph.to_document().to_json(), encoding="utf-8")
        tmp.replace(self.path)
        logger.info("graph saved to %s", self.path)
