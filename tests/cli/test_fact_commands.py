"""CLI tests for fact commands (prompts, history, templates)."""

from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from fargin.cli import cli
from tests.cli.conftest import _extract_id


def _add(runner: CliRunner, fact_type: str, content: str, *args: str) -> str:
    result = runner.invoke(cli, ["fact", "add", fact_type, content, *args])
    assert result.exit_code == 0, result.output
    return _extract_id(result.output)


class TestFactAdd:
    def test_add_prompt(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        result = runner.invoke(cli, ["fact", "add", "prompt", "Summarize the diff", "-d", "Diff summary"])
        assert result.exit_code == 0
        assert result.output.startswith("Created Prompt ")
        fact_id = _extract_id(result.output)
        assert (root / ".fargin" / "prompts" / f"{fact_id}.json").is_file()

    def test_add_json_metadata(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(
            cli,
            ["fact", "add", "TEMPLATE", "body", "-t", "api,auth", "-v", "1.2", "-r", "doc-1, doc-2", "--json"],
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["fact_type"] == "Template"
        assert data["metadata"] == {
            "tags": ["api", "auth"],
            "description": None,
            "version": "1.2",
            "references": ["doc-1", "doc-2"],
        }

    def test_unknown_type(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["fact", "add", "note", "x"])
        assert result.exit_code == 2


class TestFactListAndShow:
    def test_empty_list(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["fact", "list", "history"])
        assert result.exit_code == 0
        assert "No history facts found." in result.output

    def test_list_uses_description_or_content(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        _add(runner, "prompt", "first prompt body", "-d", "Described prompt")
        _add(runner, "prompt", "second   prompt\nbody", "-t", "pattern")
        result = runner.invoke(cli, ["fact", "list", "prompt"])
        assert "Described prompt" in result.output
        assert "second prompt body [pattern]" in result.output

    def test_list_json_only_one_kind(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        prompt_id = _add(runner, "prompt", "p")
        _add(runner, "history", "h")
        data = json.loads(runner.invoke(cli, ["fact", "list", "prompt", "--json"]).output)
        assert [f["id"] for f in data] == [prompt_id]

    def test_show(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        fact_id = _add(runner, "history", "We tried caching", "-d", "Cache attempt", "-t", "lesson")
        result = runner.invoke(cli, ["fact", "show", "history", fact_id])
        assert result.exit_code == 0
        assert "Type:        History" in result.output
        assert "Description: Cache attempt" in result.output
        assert "Tags:        lesson" in result.output
        assert "We tried caching" in result.output

    def test_show_wrong_type_is_not_found(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        fact_id = _add(runner, "prompt", "p")
        result = runner.invoke(cli, ["fact", "show", "template", fact_id])
        assert result.exit_code == 1
        assert f"Not found: {fact_id}" in result.output

    def test_malformed_file_reports_error(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        (root / ".fargin" / "prompts" / "broken.json").write_text("{not json")
        result = runner.invoke(cli, ["fact", "list", "prompt"])
        assert result.exit_code == 1
        assert "broken.json" in result.output

    def test_non_object_metadata_reports_error(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        fact_id = _add(runner, "prompt", "p")
        path = root / ".fargin" / "prompts" / f"{fact_id}.json"
        data = json.loads(path.read_text())
        data["metadata"] = "x"
        path.write_text(json.dumps(data))
        result = runner.invoke(cli, ["fact", "show", "prompt", fact_id])
        assert result.exit_code == 1
        assert "metadata must be an object" in result.output
        assert isinstance(result.exception, SystemExit)


class TestFactUpdateAndRemove:
    def test_update_keeps_unspecified_fields(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        fact_id = _add(runner, "prompt", "v1", "-d", "first", "-t", "a")
        result = runner.invoke(cli, ["fact", "update", "prompt", fact_id, "-c", "v2", "-v", "2"])
        assert result.exit_code == 0
        assert f"Updated Prompt {fact_id}" in result.output

        data = json.loads(runner.invoke(cli, ["fact", "show", "prompt", fact_id, "--json"]).output)
        assert data["content"] == "v2"
        assert data["metadata"]["version"] == "2"
        assert data["metadata"]["description"] == "first"
        assert data["metadata"]["tags"] == ["a"]

    def test_update_not_found(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["fact", "update", "prompt", "ghost", "-c", "x"])
        assert result.exit_code == 1
        assert "Not found: ghost" in result.output

    def test_remove(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        fact_id = _add(runner, "template", "t")
        result = runner.invoke(cli, ["fact", "remove", "template", fact_id])
        assert result.exit_code == 0
        assert f"Removed {fact_id}" in result.output
        assert runner.invoke(cli, ["fact", "remove", "template", fact_id]).exit_code == 1


class TestFactSearch:
    def test_search_all_kinds(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        prompt_id = _add(runner, "prompt", "Implement OAuth login")
        history_id = _add(runner, "history", "unrelated", "-t", "oauth")
        _add(runner, "template", "Dashboard layout")
        result = runner.invoke(cli, ["fact", "search", "oauth"])
        assert result.exit_code == 0
        assert "2 match(es) for 'oauth':" in result.output
        assert prompt_id in result.output
        assert history_id in result.output

    def test_search_scoped(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        _add(runner, "prompt", "auth prompt")
        history_id = _add(runner, "history", "auth history")
        data = json.loads(runner.invoke(cli, ["fact", "search", "AUTH", "--type", "history", "--json"]).output)
        assert [f["id"] for f in data] == [history_id]

    def test_no_match(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        _add(runner, "prompt", "hello")
        result = runner.invoke(cli, ["fact", "search", "zzz"])
        assert result.exit_code == 0
        assert "No facts match 'zzz'." in result.output
