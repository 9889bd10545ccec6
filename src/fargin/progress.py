"""Progress markers and goals stored in .fargin/config.toml."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from fargin.core import ProgressMarker, ProjectConfig, now_utc, to_rfc3339

logger = logging.getLogger(__name__)


@dataclass
class ProgressReport:
    project_name: str
    total_markers: int
    completed_markers: int
    last_updated: datetime
    markers: list[ProgressMarker] = field(default_factory=list)
    goals: list[str] = field(default_factory=list)

    @property
    def percent_complete(self) -> float:
        if self.total_markers == 0:
            return 0.0
        return 100.0 * self.completed_markers / self.total_markers


def build_progress_report(project_root: Path) -> ProgressReport:
    config = ProjectConfig.load(project_root)
    markers = list(config.progress_markers)
    return ProgressReport(
        project_name=config.name,
        total_markers=len(markers),
        completed_markers=sum(1 for m in markers if m.completed),
        last_updated=config.last_updated,
        markers=markers,
        goals=list(config.goals),
    )


def render_progress(report: ProgressReport) -> str:
    lines = [
        f"Progress Report for {report.project_name}",
        f"Last updated: {to_rfc3339(report.last_updated)}",
        f"Progress: {report.completed_markers}/{report.total_markers} markers completed",
    ]
    if report.goals:
        lines.append("")
        lines.append("Goals:")
        lines.extend(f"  - {goal}" for goal in report.goals)
    if report.markers:
        lines.append("")
        lines.append("Progress Markers:")
        for marker in report.markers:
            icon = "[x]" if marker.completed else "[ ]"
            suffix = f" - {marker.description}" if marker.description else ""
            lines.append(f"{icon} {marker.name}{suffix}")
            if marker.completed_at is not None:
                lines.append(f"    Completed at: {to_rfc3339(marker.completed_at)}")
    return "\n".join(lines)


def add_goal(project_root: Path, goal: str) -> ProjectConfig:
    config = ProjectConfig.load(project_root)
    config.goals.append(goal)
    config.save(project_root)
    logger.info("Added goal %r", goal)
    return config


def add_progress_marker(project_root: Path, name: str, description: str = "") -> ProjectConfig:
    """Append a marker. Raises ValueError if a marker with that name exists."""
    config = ProjectConfig.load(project_root)
    if any(m.name == name for m in config.progress_markers):
        msg = f"Progress marker already exists: {name}"
        raise ValueError(msg)
    config.progress_markers.append(ProgressMarker(name=name, description=description))
    config.save(project_root)
    logger.info("Added progress marker %r", name)
    return config


def complete_progress_marker(project_root: Path, name: str) -> ProgressMarker:
    """Mark a marker done. Raises KeyError if no marker has that name.

    Completing an already-completed marker keeps its original timestamp.
    """
    config = ProjectConfig.load(project_root)
    for marker in config.progress_markers:
        if marker.name == name:
            if not marker.completed:
                marker.completed = True
                marker.completed_at = now_utc()
                config.save(project_root)
                logger.info("Completed progress marker %r", name)
            return marker
    raise KeyError(name)
