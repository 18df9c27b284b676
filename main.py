import os
import subprocess
import sys
import webbrowser
from contextlib import contextmanager
from typing import Optional, Iterator

import typer
from rich.console import Console

from audiobook import Audiobook, DEFAULT_STATUS
from config import settings
from library import AudiobookLibrary, AudiobookNotFound
from ui_helpers import set_output_mode, print_list_result, print_listened_result, print_stats_result

APP_NAME = "Audiobook Library CLI"

console = Console()
app = typer.Typer(help=APP_NAME)

_options = {"db_file": None}


@contextmanager
def open_library(enrich: bool = False) -> Iterator[AudiobookLibrary]:
    """Open the store for one command and always close it afterwards."""
    lib = AudiobookLibrary(db_file=_options["db_file"], enrich=enrich)
    try:
        yield lib
    finally:
        lib.close()


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
    db: Optional[str] = typer.Option(
        None,
        "--db",
        help="SQLite file to use instead of DB_PATH",
    ),
):
    """Global options (output mode, database file)."""
    if output:
        set_output_mode(output)
    _options["db_file"] = db


@app.command("list")
def cli_list():
    """List all audiobooks, newest first."""
    with open_library() as lib:
        print_list_result(lib.list_audiobooks())


@app.command("stats")
def cli_stats():
    """Show counts per status."""
    with open_library() as lib:
        print_stats_result(lib.get_statistics())


@app.command("listened")
def cli_listened():
    """Show completed audiobooks in the order they were started."""
    with open_library() as lib:
        print_listened_result(lib.list_listened())


@app.command("add")
def cli_add(
    title: str,
    author: Optional[str] = typer.Option(None, "--author", "-a"),
    narrator: Optional[str] = typer.Option(None, "--narrator", "-n"),
    duration: Optional[str] = typer.Option(None, "--duration"),
    genre: Optional[str] = typer.Option(None, "--genre"),
    status: str = typer.Option(DEFAULT_STATUS, "--status", "-s", help="to_listen | listening | completed"),
    started: Optional[str] = typer.Option(None, "--started", help="Date started listening (YYYY-MM-DD)"),
    finished: Optional[str] = typer.Option(None, "--finished", help="Date finished listening (YYYY-MM-DD)"),
    notes: Optional[str] = typer.Option(None, "--notes"),
    lookup: bool = typer.Option(True, "--lookup/--no-lookup", help="Fetch cover and description from Open Library"),
):
    """Add an audiobook."""
    book = Audiobook(
        title=title, author=author, narrator=narrator, duration=duration, genre=genre,
        status=status, date_started_listening=started, date_end_listened=finished, notes=notes,
    )
    with open_library(enrich=lookup) as lib:
        try:
            created = lib.add_audiobook(book)
        except ValueError as e:
            print(f"Error: {e}")
            raise typer.Exit(code=1)
    by = f" by {created.author}" if created.author else ""
    print(f"Added #{created.id}: {created.title}{by}")


@app.command("remove")
def cli_remove(audiobook_id: int):
    """Remove an audiobook by id."""
    with open_library() as lib:
        try:
            lib.remove_audiobook(audiobook_id)
        except AudiobookNotFound:
            print(f"Audiobook {audiobook_id} not found.")
            return
    print(f"Audiobook {audiobook_id} has been removed.")


@app.command("serve")
def serve(
    host: Optional[str] = typer.Option(None, "--host"),
    port: Optional[int] = typer.Option(None, "--port"),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes"),
    open_browser: bool = typer.Option(True, "--open/--no-open", help="Open the web UI in a browser"),
):
    """Start the web UI with Uvicorn."""
    host = host or settings.api_host
    port = int(port or settings.api_port)
    url = f"http://{'localhost' if host == '0.0.0.0' else host}:{port}/"
    console.print(f"[green]Starting web UI on [link={url}]{url}[/link][/]")

    if open_browser:
        try:
            webbrowser.open(url)
        except Exception:
            console.print("[yellow]Could not open a web browser automatically.[/]")

    args = [
        sys.executable,
        "-m", "uvicorn",
        "api:app",
        "--host", host,
        "--port", str(port),
    ]
    if reload:
        args.append("--reload")

    env = dict(os.environ)
    if _options["db_file"]:
        env["DB_PATH"] = _options["db_file"]

    try:
        # Ctrl+C reaches uvicorn too, which closes the database during shutdown.
        subprocess.run(args, env=env)
    except FileNotFoundError:
        console.print("[bold red]Error:[/] `uvicorn` not found. Make sure it is installed.")
    except KeyboardInterrupt:
        console.print("[green]Server stopped.[/]")


if __name__ == "__main__":
    app()
