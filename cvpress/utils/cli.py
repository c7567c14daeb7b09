"""Helpers shared by the command-line scripts."""

from pathlib import Path
from typing import NoReturn

import typer

from cvpress.utils.event_logging import LOGS_PATH
from cvpress.utils.settings import PROJECT_ROOT
from cvpress.utils.timestamp import now


def display_path(path: Path) -> str:
    """Return path relative to PROJECT_ROOT for cleaner display."""
    try:
        return str(Path(path).resolve().relative_to(PROJECT_ROOT.resolve()))
    except ValueError:
        return str(path)


def session_log_dir(context_name: str) -> Path:
    """Timestamped log directory for one CLI session (e.g. outs/logs/render_20251114_123456)."""
    return LOGS_PATH / f"{context_name}_{now()}"


def fail(message: str) -> NoReturn:
    """Print an error in red and exit with code 1."""
    typer.secho(f"Error: {message}\n", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)
