"""Design documents under .fargin/docs/, one Markdown file per design."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from fargin.core import DOCS_DIR_NAME, fargin_dir, now_utc, timestamped_id, write_atomic

logger = logging.getLogger(__name__)

NO_DESCRIPTION = "No description provided"


def designs_dir(project_root: Path) -> Path:
    return fargin_dir(project_root) / DOCS_DIR_NAME


def render_design(name: str, description: str | None, created: datetime) -> str:
    return (
        f"# Design: {name}\n\n"
        f"## Description\n{description or NO_DESCRIPTION}\n\n"
        f"## Created\n{created.strftime('%Y-%m-%d %H:%M:%S')}\n\n"
        "## Status\nDraft\n"
    )


def create_design(
    project_root: Path,
    name: str,
    description: str | None = None,
    *,
    now: datetime | None = None,
) -> str:
    """Write a new Draft design document and return its id.

    Raises ValueError on an empty name or if the id is already taken.
    """
    if not name.strip():
        msg = "Design name cannot be empty"
        raise ValueError(msg)
    when = now or now_utc()
    design_id = timestamped_id(name, when)
    directory = designs_dir(project_root)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{design_id}.md"
    if path.exists():
        msg = f"Design document already exists: {design_id}"
        raise ValueError(msg)
    write_atomic(path, render_design(name.strip(), description, when))
    logger.info("Created design document %s", design_id)
    return design_id


def list_designs(project_root: Path) -> list[str]:
    directory = designs_dir(project_root)
    if not directory.is_dir():
        return []
    return sorted(p.stem for p in directory.glob("*.md"))


def read_design(project_root: Path, design_id: str) -> str:
    """Return the Markdown text of a design. Raises KeyError if missing."""
    path = designs_dir(project_root) / f"{design_id}.md"
    if not path.is_file():
        raise KeyError(design_id)
    return path.read_text(encoding="utf-8")
