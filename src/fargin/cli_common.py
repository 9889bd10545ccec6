"""Shared CLI helpers for ``cli.py`` and the ``cli_commands/*.py`` modules."""

from __future__ import annotations

import json as json_mod
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any, NoReturn, TypeVar

import click

from fargin.core import FARGIN_DIR_NAME, find_fargin_root
from fargin.logging import setup_logging

F = TypeVar("F", bound=Callable[..., Any])


def path_option(f: F) -> F:
    """``--path`` option shared by every command (default: current directory)."""
    return click.option(
        "--path",
        "path",
        default=".",
        show_default=True,
        type=click.Path(file_okay=False, path_type=Path),
        help="Project directory",
    )(f)


def get_project_root(path: Path) -> Path:
    """Discover .fargin/ from ``path`` upwards, attach the log file, return the project root."""
    try:
        base = find_fargin_root(path)
    except FileNotFoundError:
        click.echo(f"No {FARGIN_DIR_NAME}/ found. Run 'fargin init' first.", err=True)
        sys.exit(1)
    setup_logging(base)
    return base.parent


def fail(message: str, *, as_json: bool = False) -> NoReturn:
    if as_json:
        click.echo(json_mod.dumps({"error": message}))
    else:
        click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def not_found(record_id: str, *, as_json: bool = False) -> NoReturn:
    if as_json:
        click.echo(json_mod.dumps({"error": f"Not found: {record_id}"}))
    else:
        click.echo(f"Not found: {record_id}", err=True)
    sys.exit(1)


def split_csv(value: str | None) -> list[str] | None:
    """``"a, b,,c"`` -> ``["a", "b", "c"]``; None stays None."""
    if value is None:
        return None
    return [part.strip() for part in value.split(",") if part.strip()]


def write_or_echo(text: str, output: Path | None) -> None:
    if output is None:
        click.echo(text)
        return
    output.write_text(text, encoding="utf-8")
    click.echo(f"Written to {output}")
