"""Rule-based next-step suggestions.

Every rule is a fixed threshold over the validation report, the progress
report and the number of recorded prompts/templates. Rules are independent,
so overlapping rules can produce overlapping advice.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from fargin.facts import Fact, list_facts
from fargin.progress import ProgressReport, build_progress_report
from fargin.validation import ValidationReport, validate_project

SuggestionCategory = Literal["Technical", "Documentation", "Refactoring", "Testing", "ProjectManagement"]
SuggestionPriority = Literal["Critical", "High", "Medium", "Low"]

# Highest first
SUGGESTION_PRIORITIES: tuple[SuggestionPriority, ...] = ("Critical", "High", "Medium", "Low")

SuggestionType = Literal["all", "technical", "documentation", "refactoring", "testing", "project"]
SUGGESTION_TYPES: tuple[SuggestionType, ...] = (
    "all",
    "technical",
    "documentation",
    "refactoring",
    "testing",
    "project",
)

MIN_DOCUMENTED_PROMPTS = 5


def _rank(priority: SuggestionPriority) -> int:
    return SUGGESTION_PRIORITIES.index(priority)


@dataclass
class Suggestion:
    category: SuggestionCategory
    priority: SuggestionPriority
    title: str
    description: str
    recommended_actions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "priority": self.priority,
            "title": self.title,
            "description": self.description,
            "recommended_actions": self.recommended_actions,
        }


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


def technical_suggestions(validation: ValidationReport, progress: ProgressReport) -> list[Suggestion]:
    suggestions: list[Suggestion] = []
    for check in validation.checks:
        if check.status == "Error":
            suggestions.append(
                Suggestion(
                    "Technical",
                    "Critical",
                    f"Critical Technical Issue: {check.name}",
                    check.message or "",
                    [
                        "Immediately address the reported configuration issue",
                        "Review and correct project configuration",
                    ],
                )
            )
        elif check.status == "Warning":
            suggestions.append(
                Suggestion(
                    "Technical",
                    "Medium",
                    f"Technical Configuration Warning: {check.name}",
                    check.message or "",
                    [
                        "Review and improve project configuration",
                        "Consider potential optimizations",
                    ],
                )
            )

    # Integer halving: zero markers never trips this rule.
    if progress.completed_markers < progress.total_markers // 2:
        suggestions.append(
            Suggestion(
                "Technical",
                "High",
                "Low Progress Detected",
                "Project progress is below 50% of planned markers",
                [
                    "Review project timeline and milestones",
                    "Identify and address bottlenecks",
                    "Consider breaking down complex tasks",
                ],
            )
        )
    return suggestions


def documentation_suggestions(prompts: list[Fact], templates: list[Fact]) -> list[Suggestion]:
    suggestions: list[Suggestion] = []
    if not prompts:
        suggestions.append(
            Suggestion(
                "Documentation",
                "High",
                "No Project Prompts Documented",
                "No prompts have been captured for this project",
                [
                    "Create initial project prompts",
                    "Document key interaction patterns",
                    "Capture successful prompt strategies",
                ],
            )
        )
    elif len(prompts) < MIN_DOCUMENTED_PROMPTS:
        suggestions.append(
            Suggestion(
                "Documentation",
                "Medium",
                "Limited Prompt Documentation",
                "Few prompts have been documented for this project",
                [
                    "Expand prompt documentation",
                    "Add more context to existing prompts",
                    "Tag and categorize prompts",
                ],
            )
        )
    if not templates:
        suggestions.append(
            Suggestion(
                "Documentation",
                "Medium",
                "No Project Templates Documented",
                "No templates have been created for this project",
                [
                    "Create initial project templates",
                    "Identify common interaction patterns",
                    "Develop reusable template structures",
                ],
            )
        )
    return suggestions


def refactoring_suggestions(validation: ValidationReport) -> list[Suggestion]:
    quality = [c for c in validation.checks if "code" in c.name or "style" in c.name]
    if not quality:
        return []
    return [
        Suggestion(
            "Refactoring",
            "Medium",
            "Code Quality Improvement Opportunities",
            "Multiple code quality checks suggest potential refactoring",
            [c.message or "" for c in quality],
        )
    ]


def testing_suggestions(progress: ProgressReport) -> list[Suggestion]:
    if progress.total_markers > 0 and progress.completed_markers == 0:
        return [
            Suggestion(
                "Testing",
                "High",
                "No Progress Markers Completed",
                "No project milestones have been marked as complete",
                [
                    "Create initial test coverage for project milestones",
                    "Develop comprehensive test suite",
                    "Implement continuous integration checks",
                ],
            )
        ]
    return []


def project_management_suggestions(progress: ProgressReport) -> list[Suggestion]:
    if progress.goals:
        return []
    return [
        Suggestion(
            "ProjectManagement",
            "High",
            "Define Project Goals",
            "The project has no goals recorded",
            ["Add clear, measurable goals to guide project development"],
        )
    ]


def filter_and_sort(suggestions: list[Suggestion], verbosity: str) -> list[Suggestion]:
    """``brief`` keeps High and Critical; the result is highest priority first."""
    if verbosity == "brief":
        suggestions = [s for s in suggestions if _rank(s.priority) <= _rank("High")]
    return sorted(suggestions, key=lambda s: _rank(s.priority))


def generate_suggestions(
    project_root: Path,
    suggestion_type: str = "all",
    verbosity: str = "brief",
) -> list[Suggestion]:
    """Apply every rule selected by ``suggestion_type`` to the project.

    Raises ValueError for an unknown suggestion type; a missing or malformed
    project config propagates from validation.
    """
    if suggestion_type not in SUGGESTION_TYPES:
        msg = f"Unknown suggestion type: {suggestion_type!r} (expected one of {', '.join(SUGGESTION_TYPES)})"
        raise ValueError(msg)

    validation = validate_project(project_root)
    progress = build_progress_report(project_root)
    prompts = list_facts(project_root, "Prompt")
    templates = list_facts(project_root, "Template")

    def wanted(kind: str) -> bool:
        return suggestion_type in ("all", kind)

    suggestions: list[Suggestion] = []
    if wanted("technical"):
        suggestions.extend(technical_suggestions(validation, progress))
    if wanted("documentation"):
        suggestions.extend(documentation_suggestions(prompts, templates))
    if wanted("refactoring"):
        suggestions.extend(refactoring_suggestions(validation))
    if wanted("testing"):
        suggestions.extend(testing_suggestions(progress))
    if wanted("project"):
        suggestions.extend(project_management_suggestions(progress))
    return filter_and_sort(suggestions, verbosity)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def suggestions_to_json(suggestions: list[Suggestion]) -> str:
    return json.dumps([s.to_dict() for s in suggestions], indent=2)


def suggestions_to_markdown(suggestions: list[Suggestion]) -> str:
    parts: list[str] = []
    for i, s in enumerate(suggestions, 1):
        parts.append(f"## Suggestion {i}: {s.title}\n")
        parts.append(f"**Category:** {s.category}\n")
        parts.append(f"**Priority:** {s.priority}\n")
        parts.append(f"**Description:** {s.description}\n")
        parts.append("**Recommended Actions:**")
        parts.extend(f"- {action}" for action in s.recommended_actions)
        parts.append("\n---\n")
    return "\n".join(parts)


def suggestions_to_text(suggestions: list[Suggestion]) -> str:
    if not suggestions:
        return "No suggestions at this time. Project is progressing well!"
    lines = ["Suggested Next Steps:"]
    for i, s in enumerate(suggestions, 1):
        lines.append(f"{i}. [{s.priority}] {s.title} ({s.category})")
        if s.description:
            lines.append(f"   {s.description}")
        lines.extend(f"   - {action}" for action in s.recommended_actions)
    return "\n".join(lines)
