import logging
from pathlib import Path
from typing import NoReturn

import typer
from rich import print
from rich.logging import RichHandler
from dotenv import load_dotenv

from .settings import Settings
from .filters import PathFilter
from .analyzer import CorrelationAnalyzer
from .clusters import identify_clusters
from .exceptions import GraphError
from .stores import make_store

app = typer.Typer(add_completion=False)


def _setup(**overrides) -> Settings:
    load_dotenv()
    st = Settings.load(**overrides)
    logging.basicConfig(
        level=st.log_level,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
        force=True,
    )
    return st


def _analyzer(st: Settings, repo: Path) -> CorrelationAnalyzer:
    return CorrelationAnalyzer(
        repo_path=repo,
        store=make_store(st, repo),
        batch_size=st.batch_size,
        path_filter=PathFilter.from_settings(st),
    )


def _fail(e: GraphError) -> NoReturn:
    print(f"[red]Error:[/red] {e}")
    raise typer.Exit(code=1)


@app.command()
def analyze(
    repo: Path = typer.Argument(Path("."), help="Path to the git repository"),
    batch_size: int = typer.Option(None, help="Maximum commits to process in this pass"),
    top: int = typer.Option(None, help="How many correlations to report"),
):
    """Process the next batch of commits and report the strongest correlations.

    Resumes from the checkpoint stored in the graph file, so repeated runs
    walk the history forward batch by batch.
    """
    try:
        st = _setup(batch_size=batch_size, top_count=top)
        an = _analyzer(st, repo)
        print(f"Repository: {repo}  batch size: {st.batch_size}  graph: {an.store.location}")
        result = an.run()
    except GraphError as e:
        _fail(e)

    state = result.graph.processing_state
    print(f"Processed [bold]{result.processed_count}[/bold] commits")
    print(f"Total commits processed: {state.total_commits_processed}")
    print(f"Total files: {len(result.graph.nodes)}")
    if not result.saved:
        print("[yellow]No new commits to process[/yellow]")

    an.display_top_correlations(result.graph, st.top_count)


@app.command()
def top(
    repo: Path = typer.Argument(Path("."), help="Path to the git repository"),
    count: int = typer.Option(None, help="How many correlations to report"),
):
    """Report the strongest correlations from the saved graph without processing commits."""
    try:
        st = _setup(top_count=count)
        an = _analyzer(st, repo)
        graph = an.store.load()
    except GraphError as e:
        _fail(e)
    an.display_top_correlations(graph, st.top_count)


@app.command()
def clusters(
    repo: Path = typer.Argument(Path("."), help="Path to the git repository"),
    min_correlation: float = typer.Option(0.4, help="Weakest correlation that links two files"),
    min_commits: int = typer.Option(2, help="Ignore files changed fewer times than this"),
    max_connections: int = typer.Option(15, help="Ignore files with more neighbours than this"),
):
    """Print groups of files that tend to change together."""
    try:
        st = _setup()
        graph = make_store(st, repo).load()
    except GraphError as e:
        _fail(e)

    found = identify_clusters(
        graph,
        min_commits=min_commits,
        max_connections=max_connections,
        min_correlation=min_correlation,
    )
    if not found:
        print("(no clusters)")
        return
    for i, cl in enumerate(found, 1):
        print(f"\n[bold]Cluster {i}[/bold] ({len(cl.files)} files)")
        for f in cl.files:
            print(f"- {f.file_path} (commits: {f.commit_count}, links: {f.connection_count})")


@app.command()
def stats(repo: Path = typer.Argument(Path("."), help="Path to the git repository")):
    """Show node and edge counts and the resume checkpoint."""
    try:
        st = _setup()
        graph = make_store(st, repo).load()
    except GraphError as e:
        _fail(e)
    for k, v in graph.stats().items():
        print(f"{k}: {v}")


@app.command()
def serve(host: str = "127.0.0.1", port: int = 8099):
    """Run the HTTP API over the saved graph. Requires: pip install -e .[server]"""
    load_dotenv()
    import uvicorn
    uvicorn.run("gcg.server:app", host=host, port=port, reload=False)


if __name__ == "__main__":
    app()
