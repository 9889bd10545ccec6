"""Feature records: one Markdown file per feature under .fargin/features/.

``FeatureManager`` reads every feature file once at construction and keeps an
in-memory index for the rest of the process. Mutations write through to disk
immediately; edits made to the files by someone else are only seen after an
explicit ``reload()``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Literal

from fargin.core import (
    FARGIN_DIR_NAME,
    FEATURES_DIR_NAME,
    now_utc,
    parse_timestamp,
    timestamped_id,
    to_rfc3339,
    write_atomic,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Status and priority
# ---------------------------------------------------------------------------

FeatureStatus = Literal["Proposed", "InProgress", "Implemented", "Blocked", "Deprecated"]
Priority = Literal["Critical", "High", "Medium", "Low"]

FEATURE_STATUSES: tuple[FeatureStatus, ...] = ("Proposed", "InProgress", "Implemented", "Blocked", "Deprecated")
# Highest first
PRIORITIES: tuple[Priority, ...] = ("Critical", "High", "Medium", "Low")

DEFAULT_STATUS: FeatureStatus = "Proposed"
DEFAULT_PRIORITY: Priority = "Medium"

_STATUS_LOOKUP: dict[str, FeatureStatus] = {s.lower(): s for s in FEATURE_STATUSES}
_PRIORITY_LOOKUP: dict[str, Priority] = {p.lower(): p for p in PRIORITIES}


def parse_status(value: str) -> FeatureStatus:
    """Case-insensitive status name to its canonical spelling.

    ``in_progress`` and ``in-progress`` are accepted for ``InProgress``.
    """
    key = value.strip().lower().replace("_", "").replace("-", "")
    try:
        return _STATUS_LOOKUP[key]
    except KeyError:
        msg = f"Invalid feature status: {value}"
        raise ValueError(msg) from None


def parse_priority(value: str) -> Priority:
    try:
        return _PRIORITY_LOOKUP[value.strip().lower()]
    except KeyError:
        msg = f"Invalid priority: {value}"
        raise ValueError(msg) from None


def priority_rank(priority: Priority) -> int:
    """0 for Critical, 3 for Low."""
    return PRIORITIES.index(priority)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

_ONE_SECOND = timedelta(seconds=1)

NO_DESCRIPTION = "No description"
UNASSIGNED = "Unassigned"
UNESTIMATED = "Unestimated"


@dataclass
class Feature:
    id: str
    name: str
    description: str | None = None
    status: FeatureStatus = DEFAULT_STATUS
    tags: list[str] = field(default_factory=list)
    priority: Priority = DEFAULT_PRIORITY
    assigned_to: str | None = None
    complexity: int | None = None
    created_at: datetime = field(default_factory=now_utc)
    updated_at: datetime = field(default_factory=now_utc)
    related_features: list[str] = field(default_factory=list)
    acceptance_criteria: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "tags": self.tags,
            "priority": self.priority,
            "assigned_to": self.assigned_to,
            "complexity": self.complexity,
            "created_at": to_rfc3339(self.created_at),
            "updated_at": to_rfc3339(self.updated_at),
            "related_features": self.related_features,
            "acceptance_criteria": self.acceptance_criteria,
        }

    def to_markdown(self) -> str:
        criteria = "\n".join(f"- {c}" for c in self.acceptance_criteria)
        complexity = str(self.complexity) if self.complexity is not None else UNESTIMATED
        return (
            f"# Feature: {self.name}\n\n"
            "## Details\n"
            f"- **ID**: {self.id}\n"
            f"- **Status**: {self.status}\n"
            f"- **Priority**: {self.priority}\n"
            f"- **Assigned To**: {self.assigned_to or UNASSIGNED}\n"
            f"- **Complexity**: {complexity}\n"
            f"- **Created At**: {to_rfc3339(self.created_at)}\n"
            f"- **Updated At**: {to_rfc3339(self.updated_at)}\n\n"
            "## Description\n"
            f"{self.description or NO_DESCRIPTION}\n\n"
            "## Acceptance Criteria\n"
            f"{criteria}\n\n"
            "## Related Features\n"
            f"{', '.join(self.related_features)}\n\n"
            "## Tags\n"
            f"{', '.join(self.tags)}\n"
        )

    @classmethod
    def from_markdown(cls, feature_id: str, text: str) -> Feature:
        """Parse the template written by ``to_markdown``.

        Never raises: anything missing or unreadable keeps its default.
        """
        name, sections = _split_sections(text)
        feature = cls(id=feature_id, name=name or feature_id)

        details = _parse_details(sections.get("details", []))
        if "status" in details:
            try:
                feature.status = parse_status(details["status"])
            except ValueError:
                logger.warning("Feature %s: unknown status %r", feature_id, details["status"])
        if "priority" in details:
            try:
                feature.priority = parse_priority(details["priority"])
            except ValueError:
                logger.warning("Feature %s: unknown priority %r", feature_id, details["priority"])
        assignee = details.get("assigned to", "")
        if assignee and assignee != UNASSIGNED:
            feature.assigned_to = assignee
        complexity = details.get("complexity", "")
        if complexity.isdigit():
            feature.complexity = int(complexity)
        for key, attr in (("created at", "created_at"), ("updated at", "updated_at")):
            if key in details:
                try:
                    setattr(feature, attr, parse_timestamp(details[key]))
                except ValueError:
                    logger.warning("Feature %s: bad timestamp %r", feature_id, details[key])

        description = "\n".join(sections.get("description", [])).strip()
        if description and description != NO_DESCRIPTION:
            feature.description = description
        feature.acceptance_criteria = _parse_criteria(sections.get("acceptance criteria", []))
        feature.related_features = _split_csv(sections.get("related features", []))
        feature.tags = _split_csv(sections.get("tags", []))
        return feature


_DETAIL_RE = re.compile(r"^- \*\*(?P<key>[^*]+)\*\*:\s*(?P<value>.*)$")


_SECTIONS = ("details", "description", "acceptance criteria", "related features", "tags")


def _split_sections(text: str) -> tuple[str | None, dict[str, list[str]]]:
    """Split on the template's own headers; any other ``## `` line is body text.

    Each known header opens its section only once, so a description that
    contains e.g. ``## Details`` keeps that line.
    """
    name: str | None = None
    sections: dict[str, list[str]] = {}
    current: list[str] | None = None
    for line in text.splitlines():
        header = line[3:].strip().lower() if line.startswith("## ") else None
        if line.startswith("# Feature: ") and name is None:
            name = line[len("# Feature: ") :].strip()
            current = None
        elif header in _SECTIONS and header not in sections:
            current = sections.setdefault(header, [])
        elif current is not None:
            current.append(line)
    return name, sections


def _parse_details(lines: list[str]) -> dict[str, str]:
    details: dict[str, str] = {}
    for line in lines:
        m = _DETAIL_RE.match(line.strip())
        if m:
            details[m.group("key").strip().lower()] = m.group("value").strip()
    return details


def _parse_criteria(lines: list[str]) -> list[str]:
    criteria: list[str] = []
    for line in lines:
        if line.startswith("- "):
            criteria.append(line[2:])
        elif criteria and line.strip():
            criteria[-1] += "\n" + line
    return [c.strip() for c in criteria if c.strip()]


def check_list_items(field_name: str, items: list[str] | None) -> None:
    """Tags and related ids are stored comma-separated on one line.

    Raises ValueError for an item containing a comma or a line break.
    """
    for item in items or []:
        if "," in item or "\n" in item or "\r" in item:
            msg = f"{field_name} must not contain commas or line breaks: {item!r}"
            raise ValueError(msg)


def _split_csv(lines: list[str]) -> list[str]:
    joined = ",".join(line for line in lines if line.strip())
    return [part.strip() for part in joined.split(",") if part.strip()]


@dataclass
class FeatureUpdate:
    """Partial update: every field that is not None replaces the stored value."""

    name: str | None = None
    description: str | None = None
    status: FeatureStatus | None = None
    tags: list[str] | None = None
    priority: Priority | None = None
    assigned_to: str | None = None
    complexity: int | None = None
    related_features: list[str] | None = None
    acceptance_criteria: list[str] | None = None


_UPDATE_FIELDS = (
    "name",
    "description",
    "status",
    "tags",
    "priority",
    "assigned_to",
    "complexity",
    "related_features",
    "acceptance_criteria",
)


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------


class FeatureManager:
    """In-memory feature index backed by .fargin/features/<id>.md files."""

    def __init__(self, project_root: Path) -> None:
        self.project_root = project_root
        self.features_dir = project_root / FARGIN_DIR_NAME / FEATURES_DIR_NAME
        self._features: dict[str, Feature] = {}
        self.reload()

    def reload(self) -> None:
        """Rebuild the index from disk (filename order, i.e. chronological)."""
        self.features_dir.mkdir(parents=True, exist_ok=True)
        self._features.clear()
        for path in sorted(self.features_dir.glob("*.md")):
            feature = Feature.from_markdown(path.stem, path.read_text(encoding="utf-8", errors="replace"))
            self._features[feature.id] = feature
        logger.debug("Loaded %d features from %s", len(self._features), self.features_dir)

    def __len__(self) -> int:
        return len(self._features)

    def _path_for(self, feature_id: str) -> Path:
        return self.features_dir / f"{feature_id}.md"

    def _save(self, feature: Feature) -> None:
        self.features_dir.mkdir(parents=True, exist_ok=True)
        write_atomic(self._path_for(feature.id), feature.to_markdown())

    def add_feature(
        self,
        name: str,
        description: str | None = None,
        tags: list[str] | None = None,
        priority: Priority | None = None,
        assigned_to: str | None = None,
        *,
        complexity: int | None = None,
        related_features: list[str] | None = None,
        acceptance_criteria: list[str] | None = None,
    ) -> str:
        """Create and persist a feature. Returns its id.

        Raises ValueError for an empty name, for tags or related ids containing
        commas, or for an id already in the index (same name added twice within
        one second).
        """
        if not name.strip():
            msg = "Feature name cannot be empty"
            raise ValueError(msg)
        check_list_items("Tags", tags)
        check_list_items("Related features", related_features)
        now = now_utc()
        feature_id = timestamped_id(name, now)
        if feature_id in self._features:
            msg = f"Feature with this name already exists: {feature_id}"
            raise ValueError(msg)

        feature = Feature(
            id=feature_id,
            name=name,
            description=description,
            status=DEFAULT_STATUS,
            tags=list(tags or []),
            priority=priority or DEFAULT_PRIORITY,
            assigned_to=assigned_to,
            complexity=complexity,
            created_at=now,
            updated_at=now,
            related_features=list(related_features or []),
            acceptance_criteria=list(acceptance_criteria or []),
        )
        self._save(feature)
        self._features[feature_id] = feature
        logger.info("Added feature %s", feature_id)
        return feature_id

    def get_feature(self, feature_id: str) -> Feature | None:
        return self._features.get(feature_id)

    def update_feature(self, feature_id: str, updates: FeatureUpdate) -> Feature:
        """Merge non-None fields of ``updates`` into the feature and rewrite it.

        Raises KeyError if the feature is not in the index and ValueError for
        tags or related ids containing commas. The index entry is only replaced
        once the file has been written.
        """
        current = self._features.get(feature_id)
        if current is None:
            raise KeyError(feature_id)
        check_list_items("Tags", updates.tags)
        check_list_items("Related features", updates.related_features)

        changes: dict[str, Any] = {}
        for name in _UPDATE_FIELDS:
            value = getattr(updates, name)
            if value is not None:
                changes[name] = list(value) if isinstance(value, list) else value
        # Never move backwards, and always move forwards within the same second.
        refreshed = now_utc()
        if refreshed <= current.updated_at:
            refreshed = current.updated_at.replace(microsecond=0) + _ONE_SECOND
        feature = replace(current, **changes, updated_at=refreshed)

        self._save(feature)
        self._features[feature_id] = feature
        logger.info("Updated feature %s (%s)", feature_id, ", ".join(changes) or "timestamp only")
        return feature

    def delete_feature(self, feature_id: str) -> None:
        """Remove the file and index entry. Unknown ids are a no-op."""
        path = self._path_for(feature_id)
        if path.exists():
            path.unlink()
            logger.info("Deleted feature %s", feature_id)
        self._features.pop(feature_id, None)

    def list_features(
        self,
        tag: str | None = None,
        status: FeatureStatus | None = None,
        priority: Priority | None = None,
    ) -> list[Feature]:
        """Features matching every supplied filter, in index order."""
        return [
            f
            for f in self._features.values()
            if (tag is None or tag in f.tags)
            and (status is None or f.status == status)
            and (priority is None or f.priority == priority)
        ]

