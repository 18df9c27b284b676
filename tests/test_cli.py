import json
from unittest.mock import patch, MagicMock

import pytest
from typer.testing import CliRunner

from main import app
from book_info_service import BookInfo, BookInfoService
from ui_helpers import OUTPUT_MODE_ENV

runner = CliRunner()


@pytest.fixture(autouse=True)
def plain_output(monkeypatch):
    # --output writes to os.environ; make sure it is undone after each test
    monkeypatch.setenv(OUTPUT_MODE_ENV, "plain")


def _invoke(db_file, *args):
    return runner.invoke(app, ["--db", db_file, *args])


def test_list_no_audiobooks(db_file):
    result = _invoke(db_file, "list")
    assert result.exit_code == 0
    assert "No audiobooks in library." in result.stdout


def test_add_and_list(db_file):
    result = _invoke(db_file, "add", "Dune", "--author", "Frank Herbert", "--no-lookup")
    assert result.exit_code == 0
    assert "Added #1: Dune by Frank Herbert" in result.stdout

    result = _invoke(db_file, "list")
    assert "#1 Dune by Frank Herbert [completed]" in result.stdout


def test_add_uses_lookup(db_file, monkeypatch):
    lookup = MagicMock(return_value=BookInfo(author="Frank Herbert"))
    monkeypatch.setattr(BookInfoService, "lookup", lookup)

    result = _invoke(db_file, "add", "Dune")

    assert result.exit_code == 0
    assert "Dune by Frank Herbert" in result.stdout
    lookup.assert_called_once_with("Dune", None)


def test_add_empty_title_fails(db_file):
    result = _invoke(db_file, "add", "", "--no-lookup")
    assert result.exit_code == 1
    assert "Error: Title is required" in result.stdout


def test_list_json_output(db_file):
    _invoke(db_file, "add", "Dune", "--status", "listening", "--no-lookup")

    result = _invoke(db_file, "-o", "json", "list")

    payload = json.loads(result.stdout.strip().splitlines()[-1])
    assert payload[0]["title"] == "Dune"
    assert payload[0]["status"] == "listening"


def test_stats(db_file):
    _invoke(db_file, "add", "A", "--no-lookup")
    _invoke(db_file, "add", "B", "--status", "to_listen", "--no-lookup")

    result = _invoke(db_file, "stats")

    assert result.exit_code == 0
    assert "Total: 2" in result.stdout
    assert "Completed: 1" in result.stdout
    assert "Listening: 0" in result.stdout
    assert "To Listen: 1" in result.stdout


def test_listened(db_file):
    _invoke(db_file, "add", "Later", "--started", "2024-05-01", "--no-lookup")
    _invoke(db_file, "add", "Sooner", "--author", "Someone", "--started", "2023-01-01", "--no-lookup")

    result = _invoke(db_file, "listened")

    lines = result.stdout.strip().splitlines()
    assert lines[0] == "1. Sooner - Someone (2023-01-01)"
    assert lines[1] == "2. Later - Unknown (2024-05-01)"


def test_listened_empty(db_file):
    result = _invoke(db_file, "listened")
    assert "No listened audiobooks yet." in result.stdout


def test_remove(db_file):
    _invoke(db_file, "add", "Gone", "--no-lookup")

    result = _invoke(db_file, "remove", "1")
    assert result.exit_code == 0
    assert "Audiobook 1 has been removed." in result.stdout

    result = _invoke(db_file, "remove", "1")
    assert "Audiobook 1 not found." in result.stdout


@patch("main.subprocess.run")
@patch("main.webbrowser.open")
def test_serve_command(mock_webbrowser_open, mock_subprocess_run, db_file):
    result = runner.invoke(app, ["--db", db_file, "serve", "--host", "0.0.0.0", "--port", "4000"])

    assert result.exit_code == 0
    assert "Starting web UI on" in result.stdout
    mock_webbrowser_open.assert_called_once_with("http://localhost:4000/")
    mock_subprocess_run.assert_called_once()
    args = mock_subprocess_run.call_args[0][0]
    assert "uvicorn" in args
    assert "api:app" in args
    assert args[args.index("--port") + 1] == "4000"
    assert "--reload" not in args
    assert mock_subprocess_run.call_args.kwargs["env"]["DB_PATH"] == db_file


@patch("main.subprocess.run")
@patch("main.webbrowser.open")
def test_serve_no_open_with_reload(mock_webbrowser_open, mock_subprocess_run):
    result = runner.invoke(app, ["serve", "--no-open", "--reload"])

    assert result.exit_code == 0
    mock_webbrowser_open.assert_not_called()
    assert "--reload" in mock_subprocess_run.call_args[0][0]
