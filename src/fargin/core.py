"""Project configuration and convention-based discovery.

Each project has a `.fargin/` directory containing `config.toml` (name,
description, goals, progress markers), `dev_cycle.toml` (format/lint/test
tooling), and one subdirectory per record kind: `features/` (Markdown),
`prompts/`, `history/` and `templates/` (JSON facts), `docs/` (design notes)
and `artifacts/`.
"""

from __future__ import annotations

import contextlib
import logging
import os
import re
import shlex
import shutil
import stat
import tomllib
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import tomli_w

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Convention-based discovery
# ---------------------------------------------------------------------------

FARGIN_DIR_NAME = ".fargin"
CONFIG_FILENAME = "config.toml"
DEV_CYCLE_FILENAME = "dev_cycle.toml"
FEATURES_DIR_NAME = "features"
DOCS_DIR_NAME = "docs"
ARTIFACTS_DIR_NAME = "artifacts"

# Subdirectories created by ``init_project`` (relative to .fargin/)
PROJECT_SUBDIRS: tuple[str, ...] = (
    "prompts",
    "history",
    "templates",
    FEATURES_DIR_NAME,
    DOCS_DIR_NAME,
    ARTIFACTS_DIR_NAME,
)

DEFAULT_DESCRIPTION = "A new LLM-driven project"


def find_fargin_root(start: Path | None = None) -> Path:
    """Walk up from start (default cwd) looking for .fargin/ directory.

    Returns the .fargin/ directory path (not the project root).
    """
    current = (start or Path.cwd()).resolve()
    for parent in [current, *current.parents]:
        candidate = parent / FARGIN_DIR_NAME
        if candidate.is_dir():
            return candidate
    msg = f"No {FARGIN_DIR_NAME}/ directory found in {current} or any parent"
    raise FileNotFoundError(msg)


def fargin_dir(project_root: Path) -> Path:
    return project_root / FARGIN_DIR_NAME


def write_atomic(path: Path, content: str) -> None:
    """Write content to path atomically via temp file + os.replace()."""
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        tmp.write_text(content, encoding="utf-8")
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise


# ---------------------------------------------------------------------------
# Timestamps and identifiers
# ---------------------------------------------------------------------------


def now_utc() -> datetime:
    """Current UTC time truncated to whole seconds."""
    return datetime.now(UTC).replace(microsecond=0)


def to_rfc3339(dt: datetime) -> str:
    return dt.astimezone(UTC).isoformat(timespec="seconds")


def parse_timestamp(value: Any) -> datetime:
    """Parse an RFC 3339 string (or pass a datetime through) as aware UTC.

    Naive values get UTC attached. Raises ValueError on garbage.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    else:
        msg = f"Not a timestamp: {value!r}"
        raise ValueError(msg)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


_SLUG_DROP_RE = re.compile(r"[^a-z0-9_]")


def slugify(name: str) -> str:
    """Lowercase, whitespace to underscores, drop everything else non-alphanumeric."""
    lowered = re.sub(r"\s", "_", name.lower())
    return _SLUG_DROP_RE.sub("", lowered)


def timestamped_id(name: str, when: datetime | None = None) -> str:
    """Sortable identifier: ``YYYYMMDD_HHMMSS__<slug>``."""
    stamp = (when or datetime.now(UTC)).strftime("%Y%m%d_%H%M%S")
    return f"{stamp}__{slugify(name)}"


# ---------------------------------------------------------------------------
# Project config (.fargin/config.toml)
# ---------------------------------------------------------------------------


@dataclass
class ProgressMarker:
    name: str
    description: str = ""
    completed: bool = False
    completed_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "completed": self.completed,
        }
        # TOML has no null; an absent key means "not completed yet"
        if self.completed_at is not None:
            data["completed_at"] = self.completed_at
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProgressMarker:
        completed_at = data.get("completed_at")
        return cls(
            name=data["name"],
            description=data.get("description", ""),
            completed=bool(data.get("completed", False)),
            completed_at=parse_timestamp(completed_at) if completed_at is not None else None,
        )


@dataclass
class ProjectConfig:
    """Shape of .fargin/config.toml."""

    name: str
    description: str
    created_at: datetime = field(default_factory=now_utc)
    last_updated: datetime = field(default_factory=now_utc)
    goals: list[str] = field(default_factory=list)
    progress_markers: list[ProgressMarker] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "created_at": self.created_at,
            "last_updated": self.last_updated,
            "goals": list(self.goals),
            "progress_markers": [m.to_dict() for m in self.progress_markers],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectConfig:
        try:
            return cls(
                name=data["name"],
                description=data.get("description", ""),
                created_at=parse_timestamp(data["created_at"]),
                last_updated=parse_timestamp(data["last_updated"]),
                goals=[str(g) for g in data.get("goals", [])],
                progress_markers=[ProgressMarker.from_dict(m) for m in data.get("progress_markers", [])],
            )
        except (KeyError, TypeError) as exc:
            msg = f"Invalid project config: missing or malformed field {exc}"
            raise ValueError(msg) from exc

    def save(self, project_root: Path) -> Path:
        """Rewrite the whole config file; refreshes ``last_updated``."""
        config_dir = fargin_dir(project_root)
        config_dir.mkdir(parents=True, exist_ok=True)
        self.last_updated = max(now_utc(), self.created_at)
        config_path = config_dir / CONFIG_FILENAME
        write_atomic(config_path, tomli_w.dumps(self.to_dict()))
        logger.debug("Saved project config to %s", config_path)
        return config_path

    @classmethod
    def load(cls, project_root: Path) -> ProjectConfig:
        config_path = fargin_dir(project_root) / CONFIG_FILENAME
        try:
            raw = config_path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            msg = f"Failed to read config file at {config_path}"
            raise FileNotFoundError(msg) from exc
        try:
            data = tomllib.loads(raw)
        except tomllib.TOMLDecodeError as exc:
            msg = f"Malformed TOML in {config_path}: {exc}"
            raise ValueError(msg) from exc
        return cls.from_dict(data)


# ---------------------------------------------------------------------------
# Dev-cycle config (.fargin/dev_cycle.toml)
# ---------------------------------------------------------------------------


def _default_format() -> list[str]:
    return ["cargo", "fmt"]


def _default_lint() -> list[str]:
    return ["cargo", "clippy", "--", "-D", "warnings"]


def _default_test() -> list[str]:
    return ["cargo", "test"]


@dataclass
class DevCycleConfig:
    """External tools run by ``fargin check`` and wired into git hooks."""

    format: list[str] = field(default_factory=_default_format)
    lint: list[str] = field(default_factory=_default_lint)
    test: list[str] = field(default_factory=_default_test)
    pre_commit: list[str] = field(default_factory=lambda: ["format", "lint"])
    pre_push: list[str] = field(default_factory=lambda: ["test"])

    def command_for(self, step: str) -> list[str]:
        if step not in ("format", "lint", "test"):
            msg = f"Unknown check step: {step!r}"
            raise ValueError(msg)
        command: list[str] = getattr(self, step)
        return command

    def to_dict(self) -> dict[str, Any]:
        return {
            "format": {"command": self.format},
            "lint": {"command": self.lint},
            "test": {"command": self.test},
            "git_hooks": {"pre_commit": self.pre_commit, "pre_push": self.pre_push},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DevCycleConfig:
        defaults = cls()
        hooks = data.get("git_hooks", {})

        def _command(step: str) -> list[str]:
            command = data.get(step, {}).get("command")
            if command is None:
                fallback: list[str] = getattr(defaults, step)
                return fallback
            if isinstance(command, str):
                return shlex.split(command)
            if not isinstance(command, list) or not command:
                msg = f"dev_cycle.toml: [{step}].command must be a non-empty list or string"
                raise ValueError(msg)
            return [str(part) for part in command]

        return cls(
            format=_command("format"),
            lint=_command("lint"),
            test=_command("test"),
            pre_commit=list(hooks.get("pre_commit", defaults.pre_commit)),
            pre_push=list(hooks.get("pre_push", defaults.pre_push)),
        )


def read_dev_cycle(project_root: Path) -> DevCycleConfig:
    """Read .fargin/dev_cycle.toml. Returns defaults if the file is missing."""
    path = fargin_dir(project_root) / DEV_CYCLE_FILENAME
    if not path.exists():
        return DevCycleConfig()
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        msg = f"Malformed TOML in {path}: {exc}"
        raise ValueError(msg) from exc
    return DevCycleConfig.from_dict(data)


def write_dev_cycle(project_root: Path, config: DevCycleConfig) -> Path:
    path = fargin_dir(project_root) / DEV_CYCLE_FILENAME
    path.parent.mkdir(parents=True, exist_ok=True)
    write_atomic(path, tomli_w.dumps(config.to_dict()))
    return path


# ---------------------------------------------------------------------------
# Project lifecycle
# ---------------------------------------------------------------------------


def planned_paths(project_root: Path) -> list[Path]:
    """Every path ``init_project`` creates, in creation order."""
    base = fargin_dir(project_root)
    return [
        base / CONFIG_FILENAME,
        *(base / sub for sub in PROJECT_SUBDIRS),
        base / DEV_CYCLE_FILENAME,
    ]


def init_project(
    project_root: Path,
    name: str | None = None,
    description: str = DEFAULT_DESCRIPTION,
    *,
    git_hooks: bool = False,
) -> ProjectConfig:
    """Create .fargin/ with config, dev-cycle config and record directories.

    An existing config.toml is left untouched and returned as loaded.
    """
    project_root.mkdir(parents=True, exist_ok=True)
    config_path = fargin_dir(project_root) / CONFIG_FILENAME
    if config_path.exists():
        config = ProjectConfig.load(project_root)
    else:
        config = ProjectConfig(name=name or project_root.resolve().name, description=description)
        config.save(project_root)

    for sub in PROJECT_SUBDIRS:
        (fargin_dir(project_root) / sub).mkdir(parents=True, exist_ok=True)

    dev_cycle_path = fargin_dir(project_root) / DEV_CYCLE_FILENAME
    if not dev_cycle_path.exists():
        write_dev_cycle(project_root, DevCycleConfig())

    if git_hooks:
        install_git_hooks(project_root, read_dev_cycle(project_root))

    logger.info("Initialized project %s at %s", config.name, project_root)
    return config


def install_git_hooks(project_root: Path, dev_cycle: DevCycleConfig) -> list[Path]:
    """Write executable pre-commit / pre-push scripts running the configured tools."""
    hooks_dir = project_root / ".git" / "hooks"
    hooks_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for hook_name, steps in (("pre-commit", dev_cycle.pre_commit), ("pre-push", dev_cycle.pre_push)):
        lines = ["#!/bin/sh", "", f"# {hook_name} hook installed by fargin", "set -e"]
        for step in steps:
            try:
                lines.append(shlex.join(dev_cycle.command_for(step)))
            except ValueError:
                logger.warning("Skipping unknown git hook step %r", step)
        hook_path = hooks_dir / hook_name
        hook_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        hook_path.chmod(hook_path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        written.append(hook_path)
    return written


def reset_project(project_root: Path) -> bool:
    """Remove .fargin/ entirely. Returns False when there was nothing to remove."""
    base = fargin_dir(project_root)
    if not base.exists():
        return False
    # Drop our log handler first so the file is not held open.
    fargin_logger = logging.getLogger("fargin")
    for handler in fargin_logger.handlers[:]:
        if getattr(handler, "baseFilename", "").startswith(os.path.abspath(str(base))):
            fargin_logger.removeHandler(handler)
            handler.close()
    shutil.rmtree(base)
    logger.info("Removed %s", base)
    return True
