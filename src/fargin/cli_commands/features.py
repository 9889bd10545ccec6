"""CLI commands for feature records: feature add, list, show, update, remove."""

from __future__ import annotations

import json as json_mod
from pathlib import Path

import click

from fargin.cli_common import fail, get_project_root, not_found, path_option, split_csv
from fargin.core import to_rfc3339
from fargin.features import (
    UNASSIGNED,
    Feature,
    FeatureManager,
    FeatureStatus,
    FeatureUpdate,
    Priority,
    parse_priority,
    parse_status,
)
from fargin.validation import sanitize_name


def _status_or_fail(value: str | None, as_json: bool) -> FeatureStatus | None:
    if value is None:
        return None
    try:
        return parse_status(value)
    except ValueError as e:
        fail(str(e), as_json=as_json)


def _priority_or_fail(value: str | None, as_json: bool) -> Priority | None:
    if value is None:
        return None
    try:
        return parse_priority(value)
    except ValueError as e:
        fail(str(e), as_json=as_json)


def _echo_feature(feature: Feature) -> None:
    click.echo(f"ID:         {feature.id}")
    click.echo(f"Name:       {feature.name}")
    click.echo(f"Status:     {feature.status}")
    click.echo(f"Priority:   {feature.priority}")
    click.echo(f"Assigned:   {feature.assigned_to or UNASSIGNED}")
    if feature.complexity is not None:
        click.echo(f"Complexity: {feature.complexity}")
    click.echo(f"Created:    {to_rfc3339(feature.created_at)}")
    click.echo(f"Updated:    {to_rfc3339(feature.updated_at)}")
    if feature.tags:
        click.echo(f"Tags:       {', '.join(feature.tags)}")
    if feature.related_features:
        click.echo(f"Related:    {', '.join(feature.related_features)}")
    if feature.description:
        click.echo(f"\n--- Description ---\n{feature.description}")
    if feature.acceptance_criteria:
        click.echo("\n--- Acceptance Criteria ---")
        for criterion in feature.acceptance_criteria:
            click.echo(f"  - {criterion}")


@click.group()
def feature() -> None:
    """Manage feature records."""


@feature.command("add")
@click.argument("name")
@click.option("--description", "-d", default=None, help="Description")
@click.option("--tags", "-t", default=None, help="Comma-separated tags")
@click.option("--priority", "-p", default=None, help="Critical, High, Medium (default) or Low")
@click.option("--assign", "assigned_to", default=None, help="Assignee")
@click.option("--complexity", type=int, default=None, help="Estimated complexity")
@click.option("--related", default=None, help="Comma-separated related feature IDs")
@click.option("--criterion", "-c", multiple=True, help="Acceptance criterion (repeatable)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@path_option
def feature_add(
    name: str,
    description: str | None,
    tags: str | None,
    priority: str | None,
    assigned_to: str | None,
    complexity: int | None,
    related: str | None,
    criterion: tuple[str, ...],
    as_json: bool,
    path: Path,
) -> None:
    """Create a feature (status Proposed)."""
    root = get_project_root(path)
    name, err = sanitize_name(name, what="Feature name")
    if err:
        fail(err, as_json=as_json)
    prio = _priority_or_fail(priority, as_json)

    manager = FeatureManager(root)
    try:
        feature_id = manager.add_feature(
            name,
            description,
            split_csv(tags),
            prio,
            assigned_to,
            complexity=complexity,
            related_features=split_csv(related),
            acceptance_criteria=list(criterion) or None,
        )
    except (OSError, ValueError) as e:
        fail(str(e), as_json=as_json)

    if as_json:
        created = manager.get_feature(feature_id)
        assert created is not None
        click.echo(json_mod.dumps(created.to_dict(), indent=2))
    else:
        click.echo(f"Created {feature_id}: {name}")


@feature.command("list")
@click.option("--tag", default=None, help="Filter by tag")
@click.option("--status", default=None, help="Filter by status")
@click.option("--priority", "-p", default=None, help="Filter by priority")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@path_option
def feature_list(tag: str | None, status: str | None, priority: str | None, as_json: bool, path: Path) -> None:
    """List features, oldest first."""
    root = get_project_root(path)
    wanted_status = _status_or_fail(status, as_json)
    wanted_priority = _priority_or_fail(priority, as_json)
    features = FeatureManager(root).list_features(tag, wanted_status, wanted_priority)

    if as_json:
        click.echo(json_mod.dumps([f.to_dict() for f in features], indent=2))
        return
    if not features:
        click.echo("No features found.")
        return
    for f in features:
        tag_str = f" [{', '.join(f.tags)}]" if f.tags else ""
        click.echo(f"{f.id}  {f.status:<11}  {f.priority:<8}  {f.name}{tag_str}")


@feature.command("show")
@click.argument("feature_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--markdown", "as_markdown", is_flag=True, help="Print the stored Markdown")
@path_option
def feature_show(feature_id: str, as_json: bool, as_markdown: bool, path: Path) -> None:
    """Show one feature."""
    root = get_project_root(path)
    found = FeatureManager(root).get_feature(feature_id)
    if found is None:
        not_found(feature_id, as_json=as_json)
    if as_json:
        click.echo(json_mod.dumps(found.to_dict(), indent=2))
    elif as_markdown:
        click.echo(found.to_markdown())
    else:
        _echo_feature(found)


@feature.command("update")
@click.argument("feature_id")
@click.option("--name", default=None, help="New name")
@click.option("--description", "-d", default=None, help="New description")
@click.option("--status", "-s", default=None, help="Proposed, InProgress, Implemented, Blocked or Deprecated")
@click.option("--tags", "-t", default=None, help="Comma-separated tags (replaces existing)")
@click.option("--priority", "-p", default=None, help="New priority")
@click.option("--assign", "assigned_to", default=None, help="New assignee")
@click.option("--complexity", type=int, default=None, help="New complexity estimate")
@click.option("--related", default=None, help="Comma-separated related feature IDs (replaces existing)")
@click.option("--criterion", "-c", multiple=True, help="Acceptance criterion (repeatable, replaces existing)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@path_option
def feature_update(
    feature_id: str,
    name: str | None,
    description: str | None,
    status: str | None,
    tags: str | None,
    priority: str | None,
    assigned_to: str | None,
    complexity: int | None,
    related: str | None,
    criterion: tuple[str, ...],
    as_json: bool,
    path: Path,
) -> None:
    """Update fields of a feature; omitted options are left unchanged."""
    root = get_project_root(path)
    if name is not None:
        name, err = sanitize_name(name, what="Feature name")
        if err:
            fail(err, as_json=as_json)
    updates = FeatureUpdate(
        name=name,
        description=description,
        status=_status_or_fail(status, as_json),
        tags=split_csv(tags),
        priority=_priority_or_fail(priority, as_json),
        assigned_to=assigned_to,
        complexity=complexity,
        related_features=split_csv(related),
        acceptance_criteria=list(criterion) or None,
    )
    try:
        updated = FeatureManager(root).update_feature(feature_id, updates)
    except KeyError:
        not_found(feature_id, as_json=as_json)
    except (OSError, ValueError) as e:
        fail(str(e), as_json=as_json)

    if as_json:
        click.echo(json_mod.dumps(updated.to_dict(), indent=2))
    else:
        click.echo(f"Updated {updated.id}: {updated.name} [{updated.status}]")


@feature.command("remove")
@click.argument("feature_id")
@path_option
def feature_remove(feature_id: str, path: Path) -> None:
    """Delete a feature file."""
    root = get_project_root(path)
    manager = FeatureManager(root)
    if manager.get_feature(feature_id) is None:
        not_found(feature_id)
    try:
        manager.delete_feature(feature_id)
    except OSError as e:
        fail(str(e))
    click.echo(f"Removed {feature_id}")


def register(cli: click.Group) -> None:
    """Register feature commands with the CLI group."""
    cli.add_command(feature)
