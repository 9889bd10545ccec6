"""CLI commands for the project lifecycle: init, validate, progress, goal, marker, suggest, docs, reset, howto."""

from __future__ import annotations

import json as json_mod
import sys
from pathlib import Path
from typing import cast

import click

from fargin.check import OutputFormat, format_output
from fargin.cli_common import fail, get_project_root, not_found, path_option, write_or_echo
from fargin.core import (
    CONFIG_FILENAME,
    DEFAULT_DESCRIPTION,
    FARGIN_DIR_NAME,
    fargin_dir,
    init_project,
    planned_paths,
    reset_project,
    to_rfc3339,
    write_atomic,
)
from fargin.docs import DOCS_FOCUSES, generate_llm_documentation, render_json, render_markdown
from fargin.howto import HOWTO_TOPICS, render_howto
from fargin.logging import setup_logging
from fargin.progress import (
    add_goal,
    add_progress_marker,
    build_progress_report,
    complete_progress_marker,
    render_progress,
)
from fargin.suggestions import (
    SUGGESTION_TYPES,
    generate_suggestions,
    suggestions_to_json,
    suggestions_to_markdown,
    suggestions_to_text,
)
from fargin.validation import sanitize_name, validate_project


@click.command()
@path_option
@click.option("--name", default=None, help="Project name (default: directory name)")
@click.option("--description", "-d", default=DEFAULT_DESCRIPTION, help="Project description")
@click.option("--git-hooks", is_flag=True, help="Install pre-commit/pre-push hooks into .git/hooks")
@click.option("--dry-run", is_flag=True, help="Show what would be created without writing anything")
def init(path: Path, name: str | None, description: str, git_hooks: bool, dry_run: bool) -> None:
    """Initialize .fargin/ in the project directory."""
    if dry_run:
        click.echo(f"Would initialize {FARGIN_DIR_NAME}/ in {path.resolve()}:")
        for planned in planned_paths(path):
            click.echo(f"  {planned}")
        return

    if name is not None:
        name, err = sanitize_name(name, what="Project name")
        if err:
            fail(err)

    existed = (fargin_dir(path) / CONFIG_FILENAME).exists()
    try:
        config = init_project(path, name, description, git_hooks=git_hooks)
    except (OSError, ValueError) as e:
        fail(str(e))
    setup_logging(fargin_dir(path))

    if existed:
        click.echo(f"{FARGIN_DIR_NAME}/ already exists in {path.resolve()}")
        return
    click.echo(f"Initialized {FARGIN_DIR_NAME}/ in {path.resolve()}")
    click.echo(f"  Name: {config.name}")
    click.echo(f"  Description: {config.description}")
    if git_hooks:
        click.echo("  Git hooks: pre-commit, pre-push")
    click.echo("\nNext: fargin goal add \"...\"")


@click.command()
@path_option
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def validate(path: Path, as_json: bool) -> None:
    """Check project structure and configuration."""
    root = get_project_root(path)
    try:
        report = validate_project(root)
    except (OSError, ValueError) as e:
        fail(str(e), as_json=as_json)

    if as_json:
        click.echo(json_mod.dumps([c.to_dict() for c in report.checks], indent=2))
    else:
        for check in report.checks:
            suffix = f": {check.message}" if check.message else ""
            click.echo(f"  {check.icon}  {check.name}{suffix}")
        if not report.has_errors():
            click.echo("\nProject is valid.")
    if report.has_errors():
        sys.exit(1)


@click.command()
@path_option
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def progress(path: Path, as_json: bool) -> None:
    """Show goals and progress markers."""
    root = get_project_root(path)
    try:
        report = build_progress_report(root)
    except (OSError, ValueError) as e:
        fail(str(e), as_json=as_json)

    if as_json:
        data = {
            "project_name": report.project_name,
            "total_markers": report.total_markers,
            "completed_markers": report.completed_markers,
            "percent_complete": round(report.percent_complete, 1),
            "last_updated": to_rfc3339(report.last_updated),
            "goals": report.goals,
            "markers": [m.to_dict() for m in report.markers],
        }
        click.echo(json_mod.dumps(data, indent=2, default=str))
        return
    click.echo(render_progress(report))


@click.group()
def goal() -> None:
    """Manage project goals."""


@goal.command("add")
@click.argument("text")
@path_option
def goal_add(text: str, path: Path) -> None:
    """Append a goal to the project config."""
    root = get_project_root(path)
    text, err = sanitize_name(text, what="Goal")
    if err:
        fail(err)
    try:
        add_goal(root, text)
    except (OSError, ValueError) as e:
        fail(str(e))
    click.echo(f"Added goal: {text}")


@click.group()
def marker() -> None:
    """Manage progress markers."""


@marker.command("add")
@click.argument("name")
@click.option("--description", "-d", default="", help="What reaching this marker means")
@path_option
def marker_add(name: str, description: str, path: Path) -> None:
    """Add a progress marker."""
    root = get_project_root(path)
    name, err = sanitize_name(name, what="Marker name")
    if err:
        fail(err)
    try:
        add_progress_marker(root, name, description)
    except (OSError, ValueError) as e:
        fail(str(e))
    click.echo(f"Added progress marker: {name}")


@marker.command("complete")
@click.argument("name")
@path_option
def marker_complete(name: str, path: Path) -> None:
    """Mark a progress marker as completed."""
    root = get_project_root(path)
    try:
        done = complete_progress_marker(root, name)
    except KeyError:
        not_found(name)
    except (OSError, ValueError) as e:
        fail(str(e))
    assert done.completed_at is not None
    click.echo(f"Completed {done.name} at {to_rfc3339(done.completed_at)}")


@click.command()
@path_option
@click.option(
    "--type",
    "-t",
    "suggestion_type",
    type=click.Choice(SUGGESTION_TYPES, case_sensitive=False),
    default="all",
    help="Suggestion category to generate",
)
@click.option(
    "--verbosity",
    "-v",
    type=click.Choice(["brief", "detailed"], case_sensitive=False),
    default="brief",
    help="brief keeps only High and Critical suggestions",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["text", "json", "markdown"], case_sensitive=False),
    default="text",
    help="Output format",
)
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Write to a file")
def suggest(path: Path, suggestion_type: str, verbosity: str, fmt: str, output: Path | None) -> None:
    """Suggest next steps for the project."""
    root = get_project_root(path)
    try:
        suggestions = generate_suggestions(root, suggestion_type.lower(), verbosity.lower())
    except (OSError, ValueError) as e:
        fail(str(e), as_json=fmt == "json")

    if fmt == "json":
        text = suggestions_to_json(suggestions)
    elif fmt == "markdown":
        text = suggestions_to_markdown(suggestions)
    else:
        text = suggestions_to_text(suggestions)
    write_or_echo(text, output)


@click.command()
@path_option
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["markdown", "json"], case_sensitive=False),
    default="markdown",
    help="Output format",
)
@click.option(
    "--focus",
    type=click.Choice(DOCS_FOCUSES, case_sensitive=False),
    default="all",
    help="Limit the document to one section",
)
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Write to a file")
def docs(path: Path, fmt: str, focus: str, output: Path | None) -> None:
    """Generate an LLM-oriented guide to the project."""
    root = get_project_root(path)
    try:
        doc = generate_llm_documentation(root)
    except (OSError, ValueError) as e:
        fail(str(e), as_json=fmt == "json")
    focus = focus.lower()
    text = render_json(doc, focus) if fmt == "json" else render_markdown(doc, focus)
    write_or_echo(text, output)


@click.command()
@path_option
@click.option("--force", "-f", is_flag=True, help="Skip the confirmation prompt")
def reset(path: Path, force: bool) -> None:
    """Remove .fargin/ and everything in it."""
    target = fargin_dir(path)
    if not target.exists():
        click.echo(f"No {FARGIN_DIR_NAME}/ found in {path.resolve()}")
        return
    if not force and not click.confirm(f"Delete {target.resolve()} and all its records?", default=False):
        click.echo("Aborted.")
        return
    try:
        reset_project(path)
    except OSError as e:
        fail(str(e))
    click.echo(f"Removed {target.resolve()}")


@click.command()
@click.argument("topic", required=False, type=click.Choice(HOWTO_TOPICS, case_sensitive=False))
@click.option(
    "--verbosity",
    "-v",
    type=click.Choice(["brief", "low", "standard", "normal", "detailed", "high"], case_sensitive=False),
    default="standard",
    show_default=True,
    help="Level of detail",
)
@click.option(
    "--output",
    "-o",
    "output",
    type=click.Choice(["terminal", "markdown", "html"], case_sensitive=False),
    default="terminal",
    show_default=True,
    help="Output format",
)
@click.option("--save-path", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Also write to a file")
@click.option("--list-topics", is_flag=True, help="List available topics")
def howto(topic: str | None, verbosity: str, output: str, save_path: Path | None, list_topics: bool) -> None:
    """Show built-in guides for using fargin."""
    if list_topics:
        click.echo("Available Howto Topics:")
        for name in HOWTO_TOPICS:
            click.echo(f"  - {name}")
        return
    try:
        text = render_howto(topic.lower() if topic else None, verbosity)
    except ValueError as e:
        fail(str(e))
    text = format_output(text, cast(OutputFormat, output.lower()))
    click.echo(text)
    if save_path is not None:
        try:
            write_atomic(save_path, text + "\n")
        except OSError as e:
            fail(str(e))
        click.echo(f"Saved to {save_path}")


def register(cli: click.Group) -> None:
    """Register project lifecycle commands with the CLI group."""
    cli.add_command(init)
    cli.add_command(validate)
    cli.add_command(progress)
    cli.add_command(goal)
    cli.add_command(marker)
    cli.add_command(suggest)
    cli.add_command(docs)
    cli.add_command(reset)
    cli.add_command(howto)
