# src/localmind/cli/app.py
"""Command-line interface for LocalMind.

A thin Typer wrapper around the library API. Each command:
1. Parses args (via Typer)
2. Builds a LocalMind instance (or just the stores) from configuration
3. Calls the library
4. Renders results with Rich
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from localmind import __version__
from localmind.config import DEFAULT_DATA_DIR, get_localmind, load_config
from localmind.configuration import LocalStorage, Stores
from localmind.exceptions import LocalMindError
from localmind.localmind import LocalMind
from localmind.log import configure_logging

app = typer.Typer(
    name="localmind",
    help="LocalMind - a local-first assistant over your own documents.",
    no_args_is_help=True,
)
console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"localmind {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logging."),
) -> None:
    """LocalMind - a local-first assistant over your own documents."""
    configure_logging(logging.DEBUG if verbose else logging.WARNING)


def _fail(error: LocalMindError) -> None:
    console.print(f"[red]Error: {error}[/red]")
    suggestion = getattr(error, "suggestion", None)
    if suggestion:
        console.print(f"[dim]{suggestion}[/dim]")
    raise typer.Exit(1)


def _data_dir(data_dir: str | None, config_file: str | None) -> str:
    try:
        config = load_config(config_file)
    except LocalMindError as e:
        _fail(e)
        raise
    return data_dir or config.get("data_dir") or DEFAULT_DATA_DIR


def _open_stores(data_dir: str | None, config_file: str | None) -> Stores:
    """Open the stores without building any model-backed component."""
    return LocalStorage(_data_dir(data_dir, config_file)).build_stores()


def _open(data_dir: str | None, config_file: str | None) -> LocalMind:
    try:
        return get_localmind(data_dir, config_file)
    except LocalMindError as e:
        _fail(e)
        raise


def _collect_files(mind: LocalMind, path: Path) -> list[Path]:
    if path.is_dir():
        registry = mind.ingestor.loader_registry
        return sorted(p for p in path.rglob("*") if p.is_file() and registry.supports(str(p)))
    return [path]


@app.command()
def ingest(
    path: str = typer.Argument(..., help="File or directory to ingest"),
    data_dir: str = typer.Option(None, "--data-dir", "-d", help="Data directory"),
    config_file: str = typer.Option(None, "--config", "-c", help="Path to config file"),
) -> None:
    """Ingest a file or directory into the corpus."""
    target = Path(path)
    if not target.exists():
        console.print(f"[red]Error: {path} does not exist[/red]")
        raise typer.Exit(1)

    mind = _open(data_dir, config_file)
    ingested = skipped = failed = chunks = 0
    try:
        for file_path in _collect_files(mind, target):
            try:
                result = mind.ingest_path(str(file_path))
            except LocalMindError as e:
                failed += 1
                console.print(f"[red]Failed {file_path}: {e}[/red]")
                continue
            if result.skipped:
                skipped += 1
                console.print(f"[dim]Skipped {file_path}: {result.reason}[/dim]")
            else:
                ingested += 1
                chunks += result.chunks
                console.print(f"[green]Ingested {file_path}[/green] (version {result.version})")
    finally:
        asyncio.run(mind.close())

    console.print()
    console.print(f"[green]Ingested {ingested} files ({chunks} chunks)[/green]")
    if skipped:
        console.print(f"[dim]Skipped {skipped} unchanged files[/dim]")
    if failed and not ingested:
        raise typer.Exit(1)


async def _ask(mind: LocalMind, question: str, session_id: str | None) -> str:
    async with mind:
        if session_id is None:
            session_id = mind.create_session(question[:60]).id
        async for token in mind.stream_reply(session_id, question):
            console.print(token, end="", markup=False, highlight=False)
        console.print()
    return session_id


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question to ask"),
    session: str = typer.Option(None, "--session", "-s", help="Continue an existing session"),
    data_dir: str = typer.Option(None, "--data-dir", "-d", help="Data directory"),
    config_file: str = typer.Option(None, "--config", "-c", help="Path to config file"),
) -> None:
    """Ask a question about the corpus, streaming the answer."""
    mind = _open(data_dir, config_file)
    try:
        session_id = asyncio.run(_ask(mind, question, session))
    except LocalMindError as e:
        _fail(e)
    else:
        console.print(f"[dim]Session: {session_id}[/dim]")


@app.command()
def sessions(
    data_dir: str = typer.Option(None, "--data-dir", "-d", help="Data directory"),
    config_file: str = typer.Option(None, "--config", "-c", help="Path to config file"),
) -> None:
    """List chat sessions, most recent first."""
    stores = _open_stores(data_dir, config_file)
    try:
        all_sessions = stores.session_store.list_sessions()
    finally:
        stores.vector_store.close()

    if not all_sessions:
        console.print("[dim]No sessions yet. Run 'localmind ask' first.[/dim]")
        raise typer.Exit(0)

    table = Table(title=f"Sessions ({len(all_sessions)})")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Updated", style="dim")
    for s in all_sessions:
        table.add_row(s.id, s.title, s.updated_at.strftime("%Y-%m-%d %H:%M"))
    console.print(table)


@app.command("delete-session")
def delete_session(
    session_id: str = typer.Argument(..., help="Session to delete"),
    data_dir: str = typer.Option(None, "--data-dir", "-d", help="Data directory"),
    config_file: str = typer.Option(None, "--config", "-c", help="Path to config file"),
) -> None:
    """Delete a session and all its messages."""
    stores = _open_stores(data_dir, config_file)
    try:
        deleted = stores.session_store.delete_session(session_id)
    finally:
        stores.vector_store.close()

    if not deleted:
        console.print(f"[yellow]Session {session_id} not found[/yellow]")
        raise typer.Exit(1)
    console.print(f"[green]Deleted session {session_id}[/green]")


@app.command()
def status(
    data_dir: str = typer.Option(None, "--data-dir", "-d", help="Data directory"),
    config_file: str = typer.Option(None, "--config", "-c", help="Path to config file"),
) -> None:
    """Show corpus and session statistics."""
    effective_data_dir = _data_dir(data_dir, config_file)
    stores = _open_stores(data_dir, config_file)
    try:
        documents = stores.document_registry.list_documents()
        chunk_count = stores.chunk_store.count_chunks()
        vector_count = stores.vector_store.count()
        model_versions = stores.vector_store.model_versions()
        session_count = len(stores.session_store.list_sessions())
    except LocalMindError as e:
        _fail(e)
        raise
    finally:
        stores.vector_store.close()

    table = Table(title="LocalMind Status")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_row("Data directory", effective_data_dir)
    table.add_row("Documents", str(len(documents)))
    table.add_row("Chunks", str(chunk_count))
    table.add_row("Vectors", str(vector_count))
    table.add_row("Embedding models", ", ".join(sorted(model_versions)) or "-")
    table.add_row("Sessions", str(session_count))
    console.print(table)

    if len(model_versions) > 1:
        console.print(
            "[yellow]Vectors from several embedding models are stored; "
            "re-ingest or re-embed the corpus.[/yellow]"
        )
