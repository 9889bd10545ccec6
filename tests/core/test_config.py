"""Tests for project config, dev-cycle config and the project lifecycle."""

from __future__ import annotations

import os
import stat
import tomllib
from datetime import UTC, datetime
from pathlib import Path

import pytest

from fargin.core import (
    CONFIG_FILENAME,
    DEFAULT_DESCRIPTION,
    DEV_CYCLE_FILENAME,
    FARGIN_DIR_NAME,
    PROJECT_SUBDIRS,
    DevCycleConfig,
    ProgressMarker,
    ProjectConfig,
    find_fargin_root,
    init_project,
    install_git_hooks,
    parse_timestamp,
    planned_paths,
    read_dev_cycle,
    reset_project,
    slugify,
    timestamped_id,
    write_dev_cycle,
)


class TestProjectConfigRoundTrip:
    @pytest.mark.parametrize(
        ("name", "description"),
        [
            ("demo", "A demo project"),
            ("Ünïcode ✓", "quotes \" and 'apostrophes'\nand a second line"),
            ("x", ""),
        ],
    )
    def test_save_then_load_preserves_fields(self, tmp_path: Path, name: str, description: str) -> None:
        config = ProjectConfig(
            name=name,
            description=description,
            goals=["Ship v1", "Write docs"],
            progress_markers=[
                ProgressMarker("mvp", "first cut"),
                ProgressMarker("beta", "", completed=True, completed_at=datetime(2026, 3, 1, 12, 0, tzinfo=UTC)),
            ],
        )
        config.save(tmp_path)
        loaded = ProjectConfig.load(tmp_path)
        assert loaded.name == name
        assert loaded.description == description
        assert loaded.goals == config.goals
        assert loaded.progress_markers == config.progress_markers

    def test_timestamps_match_to_the_second(self, tmp_path: Path) -> None:
        created = datetime(2026, 1, 2, 3, 4, 5, 678901, tzinfo=UTC)
        config = ProjectConfig(name="demo", description="d", created_at=created.replace(microsecond=0))
        config.save(tmp_path)
        loaded = ProjectConfig.load(tmp_path)
        assert loaded.created_at == created.replace(microsecond=0)
        assert loaded.last_updated.replace(microsecond=0) == config.last_updated.replace(microsecond=0)

    def test_save_refreshes_last_updated(self, tmp_path: Path) -> None:
        old = datetime(2020, 1, 1, tzinfo=UTC)
        config = ProjectConfig(name="demo", description="d", created_at=old, last_updated=old)
        config.save(tmp_path)
        assert config.last_updated > old
        assert ProjectConfig.load(tmp_path).last_updated == config.last_updated

    def test_uncompleted_marker_has_no_completed_at_key(self, tmp_path: Path) -> None:
        ProjectConfig(name="demo", description="d", progress_markers=[ProgressMarker("mvp")]).save(tmp_path)
        data = tomllib.loads((tmp_path / FARGIN_DIR_NAME / CONFIG_FILENAME).read_text())
        assert "completed_at" not in data["progress_markers"][0]

    def test_load_missing_config_names_path(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match=CONFIG_FILENAME):
            ProjectConfig.load(tmp_path)

    def test_load_malformed_toml(self, tmp_path: Path) -> None:
        (tmp_path / FARGIN_DIR_NAME).mkdir()
        (tmp_path / FARGIN_DIR_NAME / CONFIG_FILENAME).write_text("name = [unclosed\n")
        with pytest.raises(ValueError, match="Malformed TOML"):
            ProjectConfig.load(tmp_path)

    def test_load_missing_field(self, tmp_path: Path) -> None:
        (tmp_path / FARGIN_DIR_NAME).mkdir()
        (tmp_path / FARGIN_DIR_NAME / CONFIG_FILENAME).write_text('description = "no name"\n')
        with pytest.raises(ValueError, match="Invalid project config"):
            ProjectConfig.load(tmp_path)


class TestTimestampsAndIds:
    def test_parse_timestamp_accepts_z_suffix(self) -> None:
        assert parse_timestamp("2026-01-02T03:04:05Z") == datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)

    def test_parse_timestamp_naive_is_utc(self) -> None:
        assert parse_timestamp(datetime(2026, 1, 1)).tzinfo == UTC

    def test_parse_timestamp_rejects_garbage(self) -> None:
        with pytest.raises(ValueError):
            parse_timestamp("yesterday")
        with pytest.raises(ValueError):
            parse_timestamp(42)

    def test_slugify(self) -> None:
        assert slugify("User Login Flow") == "user_login_flow"
        assert slugify("OAuth2: v2 (beta)!") == "oauth2_v2_beta"

    def test_timestamped_id_format(self) -> None:
        when = datetime(2026, 10, 19, 8, 5, 9, tzinfo=UTC)
        assert timestamped_id("Auth Flow", when) == "20261019_080509__auth_flow"


class TestDevCycleConfig:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        cfg = read_dev_cycle(tmp_path)
        assert cfg == DevCycleConfig()
        assert cfg.command_for("format") == ["cargo", "fmt"]

    def test_round_trip(self, tmp_path: Path) -> None:
        cfg = DevCycleConfig(format=["ruff", "format", "--check"], lint=["ruff", "check"], test=["pytest", "-q"])
        write_dev_cycle(tmp_path, cfg)
        assert read_dev_cycle(tmp_path) == cfg

    def test_string_command_is_split(self, tmp_path: Path) -> None:
        (tmp_path / FARGIN_DIR_NAME).mkdir()
        (tmp_path / FARGIN_DIR_NAME / DEV_CYCLE_FILENAME).write_text('[test]\ncommand = "pytest -k \'not slow\'"\n')
        cfg = read_dev_cycle(tmp_path)
        assert cfg.test == ["pytest", "-k", "not slow"]
        assert cfg.format == ["cargo", "fmt"]

    def test_empty_command_rejected(self, tmp_path: Path) -> None:
        (tmp_path / FARGIN_DIR_NAME).mkdir()
        (tmp_path / FARGIN_DIR_NAME / DEV_CYCLE_FILENAME).write_text("[lint]\ncommand = []\n")
        with pytest.raises(ValueError, match="lint"):
            read_dev_cycle(tmp_path)

    def test_malformed_toml(self, tmp_path: Path) -> None:
        (tmp_path / FARGIN_DIR_NAME).mkdir()
        (tmp_path / FARGIN_DIR_NAME / DEV_CYCLE_FILENAME).write_text("[lint\n")
        with pytest.raises(ValueError, match="Malformed TOML"):
            read_dev_cycle(tmp_path)

    def test_unknown_step(self) -> None:
        with pytest.raises(ValueError, match="deploy"):
            DevCycleConfig().command_for("deploy")


class TestInitProject:
    def test_creates_layout(self, tmp_path: Path) -> None:
        config = init_project(tmp_path, "demo")
        base = tmp_path / FARGIN_DIR_NAME
        assert (base / CONFIG_FILENAME).is_file()
        assert (base / DEV_CYCLE_FILENAME).is_file()
        for sub in PROJECT_SUBDIRS:
            assert (base / sub).is_dir()
        assert config.name == "demo"
        assert config.description == DEFAULT_DESCRIPTION

    def test_name_defaults_to_directory(self, tmp_path: Path) -> None:
        root = tmp_path / "my-app"
        assert init_project(root).name == "my-app"

    def test_existing_config_left_untouched(self, tmp_path: Path) -> None:
        init_project(tmp_path, "original", "first")
        again = init_project(tmp_path, "other", "second")
        assert again.name == "original"
        assert ProjectConfig.load(tmp_path).description == "first"

    def test_planned_paths_match_created(self, tmp_path: Path) -> None:
        planned = planned_paths(tmp_path)
        assert not (tmp_path / FARGIN_DIR_NAME).exists()
        init_project(tmp_path, "demo")
        assert all(p.exists() for p in planned)

    def test_git_hooks(self, tmp_path: Path) -> None:
        (tmp_path / ".git").mkdir()
        init_project(tmp_path, "demo", git_hooks=True)
        pre_commit = tmp_path / ".git" / "hooks" / "pre-commit"
        pre_push = tmp_path / ".git" / "hooks" / "pre-push"
        assert "cargo fmt" in pre_commit.read_text()
        assert "cargo clippy -- -D warnings" in pre_commit.read_text()
        assert "cargo test" in pre_push.read_text()
        assert pre_commit.stat().st_mode & stat.S_IXUSR

    def test_git_hooks_quote_arguments(self, tmp_path: Path) -> None:
        cfg = DevCycleConfig(test=["pytest", "-k", "not slow"], pre_commit=[], pre_push=["test"])
        written = install_git_hooks(tmp_path, cfg)
        assert len(written) == 2
        assert "pytest -k 'not slow'" in (tmp_path / ".git" / "hooks" / "pre-push").read_text()


class TestDiscoveryAndReset:
    def test_find_root_from_subdirectory(self, project: Path) -> None:
        nested = project / "src" / "pkg"
        nested.mkdir(parents=True)
        assert find_fargin_root(nested) == (project / FARGIN_DIR_NAME).resolve()

    def test_find_root_missing(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            find_fargin_root(tmp_path)

    def test_reset_removes_everything(self, project: Path) -> None:
        assert reset_project(project) is True
        assert not (project / FARGIN_DIR_NAME).exists()

    def test_reset_without_project(self, tmp_path: Path) -> None:
        assert reset_project(tmp_path) is False

    def test_reset_leaves_other_files(self, project: Path) -> None:
        (project / "README.md").write_text("keep me")
        reset_project(project)
        assert (project / "README.md").read_text() == "keep me"
        assert os.listdir(project) == ["README.md"]
