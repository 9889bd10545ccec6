"""CLI commands for design documents: design create, list, show."""

from __future__ import annotations

import json as json_mod
from pathlib import Path

import click

from fargin.cli_common import fail, get_project_root, not_found, path_option
from fargin.designs import create_design, list_designs, read_design


@click.group()
def design() -> None:
    """Manage design documents under .fargin/docs/."""


@design.command("create")
@click.argument("name")
@click.option("--description", "-d", default=None, help="What the design covers")
@path_option
def design_create(name: str, description: str | None, path: Path) -> None:
    """Create a Draft design document."""
    root = get_project_root(path)
    try:
        design_id = create_design(root, name, description)
    except (OSError, ValueError) as e:
        fail(str(e))
    click.echo(f"Created design {design_id}")


@design.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@path_option
def design_list(as_json: bool, path: Path) -> None:
    """List design documents, oldest first."""
    root = get_project_root(path)
    ids = list_designs(root)
    if as_json:
        click.echo(json_mod.dumps(ids, indent=2))
        return
    if not ids:
        click.echo("No design documents found.")
        return
    for design_id in ids:
        click.echo(design_id)


@design.command("show")
@click.argument("design_id")
@path_option
def design_show(design_id: str, path: Path) -> None:
    """Print a design document."""
    root = get_project_root(path)
    try:
        click.echo(read_design(root, design_id))
    except KeyError:
        not_found(design_id)


def register(cli: click.Group) -> None:
    """Register design document commands with the CLI group."""
    cli.add_command(design)
