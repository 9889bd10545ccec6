"""CLI tests for project lifecycle commands (init, validate, progress, goal, marker, suggest, docs, reset, howto)."""

from __future__ import annotations

import json
import os
import shutil
from pathlib import Path

from click.testing import CliRunner

from fargin import __version__
from fargin.cli import cli
from fargin.core import FARGIN_DIR_NAME, ProjectConfig
from fargin.logging import LOG_FILENAME


class TestInit:
    def test_init_shows_next(self, tmp_path: Path, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["init", "--path", str(tmp_path), "--name", "demo"])
        assert result.exit_code == 0
        assert "Initialized .fargin/" in result.output
        assert "Next: fargin goal add" in result.output
        assert ProjectConfig.load(tmp_path).name == "demo"

    def test_init_creates_log_file(self, tmp_path: Path, cli_runner: CliRunner) -> None:
        cli_runner.invoke(cli, ["init", "--path", str(tmp_path)])
        assert (tmp_path / FARGIN_DIR_NAME / LOG_FILENAME).exists()

    def test_init_twice(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["init", "--name", "other"])
        assert result.exit_code == 0
        assert "already exists" in result.output

    def test_dry_run_writes_nothing(self, tmp_path: Path, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["init", "--path", str(tmp_path), "--dry-run"])
        assert result.exit_code == 0
        assert "config.toml" in result.output
        assert "dev_cycle.toml" in result.output
        assert not (tmp_path / FARGIN_DIR_NAME).exists()

    def test_init_rejects_control_characters_in_name(self, tmp_path: Path, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["init", "--path", str(tmp_path), "--name", "bad\x01name"])
        assert result.exit_code == 1
        assert "control characters" in result.output

    def test_init_git_hooks(self, tmp_path: Path, cli_runner: CliRunner) -> None:
        (tmp_path / ".git").mkdir()
        result = cli_runner.invoke(cli, ["init", "--path", str(tmp_path), "--git-hooks"])
        assert result.exit_code == 0
        assert (tmp_path / ".git" / "hooks" / "pre-commit").is_file()

    def test_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--version"])
        assert __version__ in result.output


class TestNoProject:
    def test_commands_require_project(self, tmp_path: Path, cli_runner: CliRunner) -> None:
        for args in (["validate"], ["progress"], ["feature", "list"], ["fact", "list", "prompt"], ["check", "report"]):
            result = cli_runner.invoke(cli, [*args, "--path", str(tmp_path)])
            assert result.exit_code == 1, args
            assert "Run 'fargin init' first" in result.output

    def test_discovers_project_from_subdirectory(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        nested = root / "src" / "pkg"
        nested.mkdir(parents=True)
        result = runner.invoke(cli, ["progress", "--path", str(nested)])
        assert result.exit_code == 0
        assert "Progress Report for demo" in result.output


class TestValidate:
    def test_valid_project(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["validate"])
        assert result.exit_code == 0
        assert "OK  Directory Structure" in result.output
        assert "Project is valid." in result.output

    def test_missing_directory_exits_nonzero(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        shutil.rmtree(root / FARGIN_DIR_NAME / "templates")
        result = runner.invoke(cli, ["validate"])
        assert result.exit_code == 1
        assert "!!  Directory Structure: Missing required directory: .fargin/templates" in result.output

    def test_json(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["validate", "--json"])
        data = json.loads(result.output)
        assert [c["name"] for c in data] == ["Directory Structure", "Configuration"]
        assert all(c["status"] == "Pass" for c in data)


class TestGoalsAndMarkers:
    def test_goal_and_marker_flow(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        assert runner.invoke(cli, ["goal", "add", "Ship v1"]).exit_code == 0
        assert runner.invoke(cli, ["marker", "add", "mvp", "-d", "first cut"]).exit_code == 0
        assert runner.invoke(cli, ["marker", "add", "beta"]).exit_code == 0
        result = runner.invoke(cli, ["marker", "complete", "mvp"])
        assert result.exit_code == 0
        assert "Completed mvp at" in result.output

        result = runner.invoke(cli, ["progress"])
        assert "Progress: 1/2 markers completed" in result.output
        assert "  - Ship v1" in result.output

        data = json.loads(runner.invoke(cli, ["progress", "--json"]).output)
        assert data["percent_complete"] == 50.0
        assert data["goals"] == ["Ship v1"]
        assert data["markers"][0]["completed"] is True

    def test_duplicate_marker(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        runner.invoke(cli, ["marker", "add", "mvp"])
        result = runner.invoke(cli, ["marker", "add", "mvp"])
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_complete_unknown_marker(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["marker", "complete", "ghost"])
        assert result.exit_code == 1
        assert "Not found: ghost" in result.output

    def test_empty_goal_rejected(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["goal", "add", "   "])
        assert result.exit_code == 1


class TestSuggest:
    def test_text(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["suggest"])
        assert result.exit_code == 0
        assert "Suggested Next Steps:" in result.output
        assert "No Project Prompts Documented" in result.output

    def test_json_detailed(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["suggest", "--format", "json", "--verbosity", "detailed"])
        data = json.loads(result.output)
        assert {s["priority"] for s in data} == {"High", "Medium"}

    def test_type_filter_and_output_file(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        target = root / "suggestions.md"
        result = runner.invoke(cli, ["suggest", "-t", "project", "--format", "markdown", "-o", str(target)])
        assert result.exit_code == 0
        text = target.read_text()
        assert "## Suggestion 1: Define Project Goals" in text
        assert "No Project Prompts" not in text

    def test_unknown_type_rejected(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["suggest", "--type", "security"])
        assert result.exit_code == 2


class TestDocs:
    def test_markdown(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        runner.invoke(cli, ["goal", "add", "Ship v1"])
        result = runner.invoke(cli, ["docs"])
        assert result.exit_code == 0
        assert result.output.startswith("# demo: Project Guide")
        assert "- Ship v1" in result.output

    def test_json_focus(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["docs", "--format", "json", "--focus", "project"])
        data = json.loads(result.output)
        assert data["project_info"]["description"] == "CLI test project"


class TestReset:
    def test_force(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        result = runner.invoke(cli, ["reset", "--force"])
        assert result.exit_code == 0
        assert not (root / FARGIN_DIR_NAME).exists()

    def test_confirmation_declined(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        result = runner.invoke(cli, ["reset"], input="n\n")
        assert "Aborted." in result.output
        assert (root / FARGIN_DIR_NAME).exists()

    def test_confirmation_accepted(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        result = runner.invoke(cli, ["reset"], input="y\n")
        assert result.exit_code == 0
        assert not (root / FARGIN_DIR_NAME).exists()

    def test_nothing_to_reset(self, tmp_path: Path, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["reset", "--force", "--path", str(tmp_path)])
        assert result.exit_code == 0
        assert "No .fargin/ found" in result.output
        assert os.listdir(tmp_path) == []


class TestHowto:
    def test_list_topics(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["howto", "--list-topics"])
        assert result.exit_code == 0
        assert "  - feature-status" in result.output

    def test_topic_works_outside_a_project(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["howto", "git-health", "-v", "detailed"])
        assert result.exit_code == 0
        assert result.output.startswith("# Git Health")
        assert "## Tips" in result.output

    def test_html_saved(self, tmp_path: Path, cli_runner: CliRunner) -> None:
        target = tmp_path / "howto.html"
        result = cli_runner.invoke(cli, ["howto", "logging", "-o", "html", "--save-path", str(target)])
        assert result.exit_code == 0
        assert target.read_text().startswith("<pre># Logging")
        assert f"Saved to {target}" in result.output

    def test_unknown_topic(self, cli_runner: CliRunner) -> None:
        assert cli_runner.invoke(cli, ["howto", "deploy"]).exit_code == 2
