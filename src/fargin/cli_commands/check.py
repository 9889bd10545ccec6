"""CLI commands for dev-cycle checks and project health: check run, loop, fmt, lint, test, git, progress, report."""

from __future__ import annotations

import json as json_mod
import sys
from dataclasses import asdict
from pathlib import Path
from typing import cast

import click

from fargin.check import (
    CheckFailedError,
    CheckStep,
    OutputFormat,
    ProjectChecker,
    format_output,
)
from fargin.cli_common import fail, get_project_root, path_option
from fargin.core import ARTIFACTS_DIR_NAME, fargin_dir, now_utc, read_dev_cycle, write_atomic

_SUFFIXES = {"terminal": "txt", "markdown": "md", "html": "html"}


def _checker(path: Path, *, with_tools: bool = False) -> ProjectChecker:
    root = get_project_root(path)
    if not with_tools:
        return ProjectChecker(root)
    try:
        return ProjectChecker(root, read_dev_cycle(root))
    except ValueError as e:
        fail(str(e))


@click.group()
def check() -> None:
    """Run format/lint/test tooling and inspect project health."""


@check.command("run")
@path_option
def check_run(path: Path) -> None:
    """Run format, lint and test in order; stop at the first failure."""
    checker = _checker(path, with_tools=True)
    try:
        checker.run_project_checks()
    except CheckFailedError as e:
        click.echo(f"Project checks failed: {e}", err=True)
        sys.exit(1)
    click.echo("\nAll project checks completed successfully.")


@check.command("loop")
@click.option("--interval", default=5.0, type=float, show_default=True, help="Seconds between iterations")
@click.option("--iterations", default=0, type=int, show_default=True, help="Stop after N iterations (0 = forever)")
@path_option
def check_loop(interval: float, iterations: int, path: Path) -> None:
    """Re-run the project checks on a fixed interval."""
    if interval < 0 or iterations < 0:
        fail("--interval and --iterations must not be negative")
    checker = _checker(path, with_tools=True)
    try:
        outcomes = checker.run_check_loop(interval, iterations)
    except KeyboardInterrupt:
        click.echo("\nStopped.")
        return
    if outcomes and not outcomes[-1]:
        sys.exit(1)


def _single(step: CheckStep, path: Path) -> None:
    checker = _checker(path, with_tools=True)
    try:
        checker.run_single_check(step)
    except CheckFailedError as e:
        click.echo(str(e), err=True)
        sys.exit(1)


@check.command("fmt")
@path_option
def check_fmt(path: Path) -> None:
    """Run the configured formatter check."""
    _single("format", path)


@check.command("lint")
@path_option
def check_lint(path: Path) -> None:
    """Run the configured linter."""
    _single("lint", path)


@check.command("test")
@path_option
def check_test(path: Path) -> None:
    """Run the configured test suite."""
    _single("test", path)


@check.command("git")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@path_option
def check_git(as_json: bool, path: Path) -> None:
    """Show branch, uncommitted changes and unpushed commits."""
    git = _checker(path).check_git_status()
    if as_json:
        click.echo(json_mod.dumps(asdict(git), indent=2))
        return
    if not git.is_git_repo:
        click.echo("Not a git repository.")
        return

    def show(value: bool | None) -> str:
        return "unknown" if value is None else ("yes" if value else "no")

    click.echo(f"Branch:              {git.branch_name or 'unknown'}")
    click.echo(f"Uncommitted changes: {show(git.uncommitted_changes)}")
    click.echo(f"Unpushed commits:    {show(git.unpushed_commits)}")


@check.command("progress")
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
@click.option("--save", is_flag=True, help="Also write the summary to .fargin/artifacts/")
@path_option
def check_progress(verbosity: str, output: str, save: bool, path: Path) -> None:
    """Summarize feature, dependency and git health."""
    checker = _checker(path)
    try:
        summary = checker.generate_progress_summary(verbosity)
    except (OSError, ValueError) as e:
        fail(str(e))
    text = format_output(summary, cast(OutputFormat, output.lower()))
    click.echo(text)
    if save:
        artifacts = fargin_dir(checker.project_root) / ARTIFACTS_DIR_NAME
        artifacts.mkdir(parents=True, exist_ok=True)
        stamp = now_utc().strftime("%Y%m%d_%H%M%S")
        target = artifacts / f"progress_summary_{stamp}.{_SUFFIXES[output.lower()]}"
        write_atomic(target, text + "\n")
        click.echo(f"Saved to {target}")


@check.command("report")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@path_option
def check_report(as_json: bool, path: Path) -> None:
    """Full project health report."""
    checker = _checker(path)
    try:
        report = checker.run_all_checks()
    except (OSError, ValueError) as e:
        fail(str(e), as_json=as_json)
    if as_json:
        click.echo(json_mod.dumps(asdict(report), indent=2))
        return
    click.echo(report.generate_report())


def register(cli: click.Group) -> None:
    """Register check commands with the CLI group."""
    cli.add_command(check)
