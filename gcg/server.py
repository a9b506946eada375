from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .settings import Settings
from .filters import PathFilter
from .analyzer import CorrelationAnalyzer, correlation_row
from .clusters import identify_clusters
from .exceptions import GraphError, GraphLoadError, RepositoryError
from .stores import GraphStore, make_store


@dataclass
class AppState:
    settings: Settings
    store: GraphStore
    analyzer: CorrelationAnalyzer


def make_state() -> AppState:
    st = Settings.load()
    repo = Path(st.repo_path)
    store = make_store(st, repo)
    an = CorrelationAnalyzer(
        repo_path=repo,
        store=store,
        batch_size=st.batch_size,
        path_filter=PathFilter.from_settings(st),
    )
    return AppState(settings=st, store=store, analyzer=an)


app = FastAPI(title="git-correlation-graph", version=__version__)

# The visualization front-end is served from elsewhere
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

STATE = make_state()


@app.exception_handler(GraphError)
def graph_error(request, exc: GraphError):
    status = 500
    if isinstance(exc, GraphLoadError):
        status = 422
    elif isinstance(exc, RepositoryError):
        status = 400
    return JSONResponse(status_code=status, content={"error": type(exc).__name__, "detail": str(exc)})


@app.get("/health")
def health():
    return {
        "ok": True,
        "repo_path": os.path.abspath(STATE.settings.repo_path),
        "graph_backend": STATE.settings.graph_backend,
        "graph_location": STATE.store.location,
        "batch_size": STATE.settings.batch_size,
    }


@app.post("/analyze")
def analyze():
    """Process the next batch of commits and save the graph if anything changed."""
    result = STATE.analyzer.run()
    return {
        "processed": result.processed_count,
        "saved": result.saved,
        "stats": result.graph.stats(),
    }


@app.get("/graph")
def graph():
    # Same document the JSON store writes; the front-end reads this shape
    g = STATE.store.load()
    return g.to_document().model_dump(by_alias=True, mode="json")


@app.get("/correlations")
def correlations(count: int = 10):
    g = STATE.store.load()
    return {"correlations": [correlation_row(e) for e in g.get_top_correlations(count)]}


@app.get("/clusters")
def clusters(min_correlation: float = 0.4, min_commits: int = 2, max_connections: int = 15):
    g = STATE.store.load()
    found = identify_clusters(
        g,
        min_commits=min_commits,
        max_connections=max_connections,
        min_correlation=min_correlation,
    )
    return {
        "clusters": [
            {
                "files": [f.__dict__ for f in cl.files],
                "connections": [c.__dict__ for c in cl.connections],
            }
            for cl in found
        ]
    }


@app.get("/nodes/{path:path}/neighbors")
def neighbors(path: str):
    g = STATE.store.load()
    node = g.nodes.get(path)
    if node is None:
        return JSONResponse(status_code=404, content={"error": "unknown_file", "path": path})
    out = []
    for other in g.neighbors(path):
        edge = g.find_edge(path, other)
        out.append({"path": other, **correlation_row(edge)})
    out.sort(key=lambda r: (-r["correlation"], r["path"]))
    return {"path": path, "commit_count": node.commit_count, "neighbors": out}
