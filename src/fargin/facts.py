"""Fact records: prompts, history entries and templates as JSON files.

Each fact lives at ``.fargin/<kind>/<uuid>.json``. Nothing is cached: every
list, search and load reads the directory again.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Literal

from fargin.core import FARGIN_DIR_NAME, now_utc, parse_timestamp, to_rfc3339, write_atomic

logger = logging.getLogger(__name__)

FactType = Literal["Prompt", "History", "Template"]

FACT_TYPES: tuple[FactType, ...] = ("Prompt", "History", "Template")

# Fact type -> subdirectory of .fargin/
FACT_DIRS: dict[FactType, str] = {
    "Prompt": "prompts",
    "History": "history",
    "Template": "templates",
}

_FACT_TYPE_LOOKUP: dict[str, FactType] = {t.lower(): t for t in FACT_TYPES}
# Directory names work as aliases on the command line ("prompts", "templates")
_FACT_TYPE_LOOKUP.update({d: t for t, d in FACT_DIRS.items()})


def parse_fact_type(value: str) -> FactType:
    try:
        return _FACT_TYPE_LOOKUP[value.strip().lower()]
    except KeyError:
        msg = f"Invalid fact type: {value}"
        raise ValueError(msg) from None


def facts_dir(project_root: Path, fact_type: FactType) -> Path:
    return project_root / FARGIN_DIR_NAME / FACT_DIRS[fact_type]


@dataclass
class FactMetadata:
    tags: list[str] = field(default_factory=list)
    description: str | None = None
    version: str | None = None
    references: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tags": self.tags,
            "description": self.description,
            "version": self.version,
            "references": self.references,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FactMetadata:
        if not isinstance(data, dict):
            msg = f"metadata must be an object, got {type(data).__name__}"
            raise ValueError(msg)
        return cls(
            tags=list(data.get("tags", [])),
            description=data.get("description"),
            version=data.get("version"),
            references=list(data.get("references", [])),
        )


@dataclass
class Fact:
    id: str
    fact_type: FactType
    content: str
    metadata: FactMetadata = field(default_factory=FactMetadata)
    created_at: datetime = field(default_factory=now_utc)
    updated_at: datetime = field(default_factory=now_utc)

    @classmethod
    def new(cls, fact_type: FactType, content: str, metadata: FactMetadata | None = None) -> Fact:
        now = now_utc()
        return cls(
            id=str(uuid.uuid4()),
            fact_type=fact_type,
            content=content,
            metadata=metadata or FactMetadata(),
            created_at=now,
            updated_at=now,
        )

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on content, description or any tag."""
        needle = query.lower()
        if needle in self.content.lower():
            return True
        if self.metadata.description and needle in self.metadata.description.lower():
            return True
        return any(needle in tag.lower() for tag in self.metadata.tags)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "fact_type": self.fact_type,
            "content": self.content,
            "metadata": self.metadata.to_dict(),
            "created_at": to_rfc3339(self.created_at),
            "updated_at": to_rfc3339(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Fact:
        fact_type = data["fact_type"]
        if fact_type not in FACT_TYPES:
            msg = f"Invalid fact type: {fact_type!r}"
            raise ValueError(msg)
        return cls(
            id=data["id"],
            fact_type=fact_type,
            content=data["content"],
            metadata=FactMetadata.from_dict(data.get("metadata") or {}),
            created_at=parse_timestamp(data["created_at"]),
            updated_at=parse_timestamp(data["updated_at"]),
        )


def _read_fact(path: Path) -> Fact:
    try:
        return Fact.from_dict(json.loads(path.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError) as exc:
        msg = f"Malformed fact file {path}: {exc}"
        raise ValueError(msg) from exc


def save_fact(project_root: Path, fact: Fact) -> Path:
    directory = facts_dir(project_root, fact.fact_type)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{fact.id}.json"
    write_atomic(path, json.dumps(fact.to_dict(), indent=2) + "\n")
    logger.debug("Saved %s fact %s", fact.fact_type, fact.id)
    return path


def add_fact(
    project_root: Path,
    fact_type: FactType,
    content: str,
    metadata: FactMetadata | None = None,
) -> Fact:
    fact = Fact.new(fact_type, content, metadata)
    save_fact(project_root, fact)
    logger.info("Added %s fact %s", fact_type, fact.id)
    return fact


def load_fact(project_root: Path, fact_id: str, fact_type: FactType) -> Fact | None:
    """Read one fact from disk, or None when no such file exists."""
    path = facts_dir(project_root, fact_type) / f"{fact_id}.json"
    if not path.is_file():
        return None
    return _read_fact(path)


def list_facts(project_root: Path, fact_type: FactType) -> list[Fact]:
    """Every fact of one kind, newest first. A malformed file fails the whole listing."""
    directory = facts_dir(project_root, fact_type)
    directory.mkdir(parents=True, exist_ok=True)
    facts = [_read_fact(p) for p in directory.glob("*.json")]
    facts.sort(key=lambda f: f.created_at, reverse=True)
    return facts


def update_fact(
    project_root: Path,
    fact_id: str,
    fact_type: FactType,
    *,
    content: str | None = None,
    description: str | None = None,
    tags: list[str] | None = None,
    version: str | None = None,
    references: list[str] | None = None,
) -> Fact:
    """Merge the supplied fields into a stored fact. Raises KeyError if missing."""
    fact = load_fact(project_root, fact_id, fact_type)
    if fact is None:
        raise KeyError(fact_id)
    if content is not None:
        fact.content = content
    if description is not None:
        fact.metadata.description = description
    if tags is not None:
        fact.metadata.tags = list(tags)
    if version is not None:
        fact.metadata.version = version
    if references is not None:
        fact.metadata.references = list(references)
    fact.updated_at = now_utc()
    save_fact(project_root, fact)
    logger.info("Updated %s fact %s", fact_type, fact_id)
    return fact


def delete_fact(project_root: Path, fact_id: str, fact_type: FactType) -> bool:
    """Remove a fact file. Returns False when it did not exist."""
    path = facts_dir(project_root, fact_type) / f"{fact_id}.json"
    if not path.exists():
        return False
    path.unlink()
    logger.info("Deleted %s fact %s", fact_type, fact_id)
    return True


def search_facts(project_root: Path, query: str, fact_type: FactType | None = None) -> list[Fact]:
    """Facts matching ``query`` across one kind (or all kinds), newest first."""
    kinds = [fact_type] if fact_type is not None else list(FACT_TYPES)
    results = [fact for kind in kinds for fact in list_facts(project_root, kind) if fact.matches(query)]
    results.sort(key=lambda f: f.created_at, reverse=True)
    return results
