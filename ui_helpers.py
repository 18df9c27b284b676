import os
import json
from typing import List, Any, Dict
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

# Environment variable controlling CLI output mode.
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "AUDIOBOOK_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def _label(status: Any) -> str:
    return str(status).replace("_", " ") if status else "-"


def print_list_result(books: List[Any]) -> None:
    """Print audiobooks in the current output mode.
    - plain: '#id Title by Author [status]' lines, or 'No audiobooks in library.'
    - json: JSON array of full records
    - rich: Rich table
    """
    mode = get_output_mode()

    if not books:
        print("No audiobooks in library.")
        return

    if mode == "json":
        print(json.dumps([b.to_dict() for b in books], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="🎧 Audiobooks", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Author", style="white")
        table.add_column("Narrator", style="white")
        table.add_column("Status", style="green")
        for b in books:
            table.add_row(str(b.id), b.title, b.author or "", b.narrator or "", _label(b.status))
        _console.print(table)
    else:
        for b in books:
            by = f" by {b.author}" if b.author else ""
            print(f"#{b.id} {b.title}{by} [{_label(b.status)}]")


def print_listened_result(rows: List[Dict[str, Any]]) -> None:
    """Print the numbered listened list."""
    mode = get_output_mode()

    if not rows:
        print("No listened audiobooks yet.")
        return

    if mode == "json":
        print(json.dumps(rows, ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="📖 Listened", header_style="bold cyan")
        table.add_column("#", style="bold", justify="right")
        table.add_column("Title", style="white")
        table.add_column("Author", style="white")
        table.add_column("Started", style="dim")
        for r in rows:
            table.add_row(str(r["number"]), r["title"], r.get("author") or "Unknown",
                          r.get("date_started_listening") or "N/A")
        _console.print(table)
    else:
        for r in rows:
            started = r.get("date_started_listening") or "N/A"
            print(f"{r['number']}. {r['title']} - {r.get('author') or 'Unknown'} ({started})")


def print_stats_result(stats: Dict[str, Any]) -> None:
    """Print statistics in the current output mode."""
    mode = get_output_mode()

    if not stats:
        print("No statistics available.")
        return

    keys = ("total", "completed", "listening", "to_listen")
    values = {k: stats.get(k, 0) for k in keys}

    if mode == "json":
        print(json.dumps(values, ensure_ascii=False))
    elif mode == "rich":
        content = (
            f"[bold]Total:[/] {values['total']}\n"
            f"[bold]Completed:[/] {values['completed']}\n"
            f"[bold]Listening:[/] {values['listening']}\n"
            f"[bold]To Listen:[/] {values['to_listen']}"
        )
        _console.print(Panel.fit(content, title="📊 Stats", border_style="blue"))
    else:
        print(f"Total: {values['total']}")
        print(f"Completed: {values['completed']}")
        print(f"Listening: {values['listening']}")
        print(f"To Listen: {values['to_listen']}")
