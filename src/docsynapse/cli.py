"""Command line interface for DocSynapse."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn
from rich.table import Table

from docsynapse.config import AppConfig
from docsynapse.errors import BusyError, DocSynapseError, ProviderError, SearchError
from docsynapse.index.keyword import KeywordScanner
from docsynapse.models import IndexComplete, KeywordConfig, KeywordScanComplete, ScanProgress
from docsynapse.services import AppServices

console = Console()
app = typer.Typer(help="DocSynapse - local knowledge assistant for your files")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _load_services(index: Optional[Path]) -> AppServices:
    try:
        config = AppConfig.from_env()
        if index is not None:
            config.index_path = index
        return AppServices(config, base_dir=Path.cwd())
    except (DocSynapseError, ValueError) as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc


@app.command()
def index(
    directories: List[Path] = typer.Argument(
        ..., help="Directories to index.", exists=True, file_okay=False, resolve_path=True
    ),
    index_path: Optional[Path] = typer.Option(None, "--index", help="Index file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Embed every document under the given directories."""
    _setup_logging(verbose)
    services = _load_services(index_path)
    console.print(f"Indexing into [bold]{services.index_path}[/bold]...")

    summary: IndexComplete | None = None
    try:
        with Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("Indexing", total=None)
            for event in services.indexer.index(directories):
                if isinstance(event, ScanProgress):
                    progress.update(
                        task, completed=event.files_processed, total=event.total_files
                    )
                elif isinstance(event, IndexComplete):
                    summary = event
    except (BusyError, ProviderError) as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    except DocSynapseError as exc:
        console.print(f"[red]Indexing failed: {exc}[/red]")
        raise typer.Exit(code=1) from exc

    if summary is not None:
        console.print(
            f"Files: {summary.files_processed}, skipped: {summary.skipped_files}, "
            f"failed: {summary.failed_files}, new chunks: {summary.new_chunks}, "
            f"total chunks: {summary.total_chunks}"
        )


@app.command()
def search(
    query: str = typer.Argument(..., help="Query text"),
    index_path: Optional[Path] = typer.Option(None, "--index", help="Index file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Execute a semantic search."""
    _setup_logging(verbose)
    services = _load_services(index_path)
    try:
        results = services.searcher.search(query)
    except (SearchError, ProviderError) as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    if not results:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score")
    table.add_column("Document")
    table.add_column("Preview")
    for hit in results:
        table.add_row(f"{hit.score:.4f}", hit.source_path, hit.preview_text.replace("\n", " "))
    console.print(table)


@app.command()
def status(
    index_path: Optional[Path] = typer.Option(None, "--index", help="Index file path"),
) -> None:
    """Show how many chunks the index holds."""
    services = _load_services(index_path)
    store = services.store
    if store.is_empty():
        console.print(f"[yellow]No index at {services.index_path}.[/yellow]")
        return
    console.print(
        f"{len(store)} chunks from {len(store.paths())} files "
        f"(dimension {store.dimension}) in [bold]{services.index_path}[/bold]"
    )


@app.command()
def scan(
    directories: List[Path] = typer.Argument(
        ..., help="Directories to scan.", exists=True, file_okay=False, resolve_path=True
    ),
    keywords: List[str] = typer.Option(
        ..., "--keywords", "-k", help="Comma separated keywords that must all match; repeatable"
    ),
) -> None:
    """Find files containing every keyword of at least one keyword set."""
    configs = [
        KeywordConfig(keywords=[kw.strip() for kw in group.split(",") if kw.strip()])
        for group in keywords
    ]
    result: KeywordScanComplete | None = None
    for event in KeywordScanner().scan(directories, configs):
        if isinstance(event, KeywordScanComplete):
            result = event

    if result is None or not result.results:
        console.print("[yellow]No matching files.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("File")
    table.add_column("Keywords")
    table.add_column("Size")
    for match in result.results:
        table.add_row(match.path, ", ".join(match.keywords), str(match.size))
    console.print(table)
    console.print(f"{len(result.results)} of {result.total_files} files matched.")


@app.command()
def analyze(
    file: Path = typer.Argument(..., help="File to analyse.", exists=True, dir_okay=False),
    index_path: Optional[Path] = typer.Option(None, "--index", help="Index file path"),
) -> None:
    """Summarise, tag and classify a file with the chat model."""
    services = _load_services(index_path)
    try:
        analysis = services.insights.analyze(file)
    except DocSynapseError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    console.print(f"[bold]Summary:[/bold] {analysis.summary}")
    console.print(f"[bold]Tags:[/bold] {', '.join(analysis.tags)}")
    console.print(f"[bold]Category:[/bold] {analysis.category}")
    console.print(f"[bold]Sensitivity:[/bold] {analysis.sensitivity}")


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question about your indexed documents"),
    index_path: Optional[Path] = typer.Option(None, "--index", help="Index file path"),
) -> None:
    """Answer a question from the indexed documents."""
    services = _load_services(index_path)
    try:
        answer = services.insights.ask(question)
    except DocSynapseError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    console.print(answer.reply)
    for source in answer.sources:
        console.print(f"  [dim]- {source}[/dim]")


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(3001, help="Server port"),
) -> None:
    """Start the HTTP API."""
    import uvicorn

    from docsynapse.web.app import app as web_app

    console.print(f"Starting DocSynapse API on http://{host}:{port}")
    uvicorn.run(web_app, host=host, port=port, reload=False, log_level="info")
