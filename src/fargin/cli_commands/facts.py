"""CLI commands for facts (prompts, history, templates): fact add, list, show, update, remove, search."""

from __future__ import annotations

import json as json_mod
from pathlib import Path

import click

from fargin.cli_common import fail, get_project_root, not_found, path_option, split_csv
from fargin.core import to_rfc3339
from fargin.facts import (
    Fact,
    FactMetadata,
    add_fact,
    delete_fact,
    list_facts,
    load_fact,
    parse_fact_type,
    search_facts,
    update_fact,
)

_TYPE_CHOICES = ["prompt", "history", "template"]


def _one_line(text: str, width: int = 60) -> str:
    flat = " ".join(text.split())
    return flat if len(flat) <= width else flat[: width - 3] + "..."


def _echo_fact(fact: Fact) -> None:
    meta = fact.metadata
    click.echo(f"ID:          {fact.id}")
    click.echo(f"Type:        {fact.fact_type}")
    if meta.description:
        click.echo(f"Description: {meta.description}")
    if meta.version:
        click.echo(f"Version:     {meta.version}")
    if meta.tags:
        click.echo(f"Tags:        {', '.join(meta.tags)}")
    if meta.references:
        click.echo(f"References:  {', '.join(meta.references)}")
    click.echo(f"Created:     {to_rfc3339(fact.created_at)}")
    click.echo(f"Updated:     {to_rfc3339(fact.updated_at)}")
    click.echo(f"\n--- Content ---\n{fact.content}")


def _echo_fact_rows(facts: list[Fact]) -> None:
    for fact in facts:
        label = fact.metadata.description or _one_line(fact.content)
        tag_str = f" [{', '.join(fact.metadata.tags)}]" if fact.metadata.tags else ""
        click.echo(f"{fact.id}  {fact.fact_type:<8}  {label}{tag_str}")


@click.group()
def fact() -> None:
    """Manage prompts, interaction history and templates."""


@fact.command("add")
@click.argument("fact_type", type=click.Choice(_TYPE_CHOICES, case_sensitive=False))
@click.argument("content")
@click.option("--description", "-d", default=None, help="Short description")
@click.option("--tags", "-t", default=None, help="Comma-separated tags")
@click.option("--version", "-v", "fact_version", default=None, help="Version label")
@click.option("--references", "-r", default=None, help="Comma-separated references")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@path_option
def fact_add(
    fact_type: str,
    content: str,
    description: str | None,
    tags: str | None,
    fact_version: str | None,
    references: str | None,
    as_json: bool,
    path: Path,
) -> None:
    """Record a new fact."""
    root = get_project_root(path)
    metadata = FactMetadata(
        tags=split_csv(tags) or [],
        description=description,
        version=fact_version,
        references=split_csv(references) or [],
    )
    try:
        created = add_fact(root, parse_fact_type(fact_type), content, metadata)
    except (OSError, ValueError) as e:
        fail(str(e), as_json=as_json)
    if as_json:
        click.echo(json_mod.dumps(created.to_dict(), indent=2))
    else:
        click.echo(f"Created {created.fact_type} {created.id}")


@fact.command("list")
@click.argument("fact_type", type=click.Choice(_TYPE_CHOICES, case_sensitive=False))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@path_option
def fact_list(fact_type: str, as_json: bool, path: Path) -> None:
    """List facts of one kind, newest first."""
    root = get_project_root(path)
    try:
        facts = list_facts(root, parse_fact_type(fact_type))
    except (OSError, ValueError) as e:
        fail(str(e), as_json=as_json)
    if as_json:
        click.echo(json_mod.dumps([f.to_dict() for f in facts], indent=2))
        return
    if not facts:
        click.echo(f"No {fact_type} facts found.")
        return
    _echo_fact_rows(facts)


@fact.command("show")
@click.argument("fact_type", type=click.Choice(_TYPE_CHOICES, case_sensitive=False))
@click.argument("fact_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@path_option
def fact_show(fact_type: str, fact_id: str, as_json: bool, path: Path) -> None:
    """Show one fact."""
    root = get_project_root(path)
    try:
        found = load_fact(root, fact_id, parse_fact_type(fact_type))
    except (OSError, ValueError) as e:
        fail(str(e), as_json=as_json)
    if found is None:
        not_found(fact_id, as_json=as_json)
    if as_json:
        click.echo(json_mod.dumps(found.to_dict(), indent=2))
    else:
        _echo_fact(found)


@fact.command("update")
@click.argument("fact_type", type=click.Choice(_TYPE_CHOICES, case_sensitive=False))
@click.argument("fact_id")
@click.option("--content", "-c", default=None, help="New content")
@click.option("--description", "-d", default=None, help="New description")
@click.option("--tags", "-t", default=None, help="Comma-separated tags (replaces existing)")
@click.option("--version", "-v", "fact_version", default=None, help="New version label")
@click.option("--references", "-r", default=None, help="Comma-separated references (replaces existing)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@path_option
def fact_update(
    fact_type: str,
    fact_id: str,
    content: str | None,
    description: str | None,
    tags: str | None,
    fact_version: str | None,
    references: str | None,
    as_json: bool,
    path: Path,
) -> None:
    """Update fields of a fact; omitted options are left unchanged."""
    root = get_project_root(path)
    try:
        updated = update_fact(
            root,
            fact_id,
            parse_fact_type(fact_type),
            content=content,
            description=description,
            tags=split_csv(tags),
            version=fact_version,
            references=split_csv(references),
        )
    except KeyError:
        not_found(fact_id, as_json=as_json)
    except (OSError, ValueError) as e:
        fail(str(e), as_json=as_json)
    if as_json:
        click.echo(json_mod.dumps(updated.to_dict(), indent=2))
    else:
        click.echo(f"Updated {updated.fact_type} {updated.id}")


@fact.command("remove")
@click.argument("fact_type", type=click.Choice(_TYPE_CHOICES, case_sensitive=False))
@click.argument("fact_id")
@path_option
def fact_remove(fact_type: str, fact_id: str, path: Path) -> None:
    """Delete a fact."""
    root = get_project_root(path)
    try:
        removed = delete_fact(root, fact_id, parse_fact_type(fact_type))
    except OSError as e:
        fail(str(e))
    if not removed:
        not_found(fact_id)
    click.echo(f"Removed {fact_id}")


@fact.command("search")
@click.argument("query")
@click.option(
    "--type",
    "fact_type",
    type=click.Choice(_TYPE_CHOICES, case_sensitive=False),
    default=None,
    help="Limit the search to one kind",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@path_option
def fact_search(query: str, fact_type: str | None, as_json: bool, path: Path) -> None:
    """Search fact content, descriptions and tags (case-insensitive)."""
    root = get_project_root(path)
    kind = parse_fact_type(fact_type) if fact_type else None
    try:
        results = search_facts(root, query, kind)
    except (OSError, ValueError) as e:
        fail(str(e), as_json=as_json)
    if as_json:
        click.echo(json_mod.dumps([f.to_dict() for f in results], indent=2))
        return
    if not results:
        click.echo(f"No facts match '{query}'.")
        return
    click.echo(f"{len(results)} match(es) for '{query}':")
    _echo_fact_rows(results)


def register(cli: click.Group) -> None:
    """Register fact commands with the CLI group."""
    cli.add_command(fact)
