"""CLI tests for design document commands."""

from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from fargin.cli import cli


class TestDesignCommands:
    def test_create_list_show(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        result = runner.invoke(cli, ["design", "create", "Auth Flow", "-d", "Token based login"])
        assert result.exit_code == 0
        assert result.output.startswith("Created design ")
        design_id = result.output.split()[-1]
        assert design_id.endswith("__auth_flow")
        assert (root / ".fargin" / "docs" / f"{design_id}.md").is_file()

        listed = runner.invoke(cli, ["design", "list"])
        assert design_id in listed.output
        assert json.loads(runner.invoke(cli, ["design", "list", "--json"]).output) == [design_id]

        shown = runner.invoke(cli, ["design", "show", design_id])
        assert shown.exit_code == 0
        assert shown.output.startswith("# Design: Auth Flow")
        assert "Token based login" in shown.output
        assert "## Status\nDraft" in shown.output

    def test_create_without_description(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        design_id = runner.invoke(cli, ["design", "create", "Storage"]).output.split()[-1]
        shown = runner.invoke(cli, ["design", "show", design_id])
        assert "No description provided" in shown.output

    def test_empty_list(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["design", "list"])
        assert result.exit_code == 0
        assert "No design documents found." in result.output

    def test_show_not_found(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["design", "show", "missing"])
        assert result.exit_code == 1
        assert "Not found: missing" in result.output

    def test_blank_name_rejected(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["design", "create", "  "])
        assert result.exit_code == 1
        assert "cannot be empty" in result.output
