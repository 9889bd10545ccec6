"""Project validation: directory layout and configuration sanity.

Pure functions over the filesystem; no Click dependencies.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from fargin.core import ProjectConfig

ValidationStatus = Literal["Pass", "Warning", "Error"]

REQUIRED_DIRS: tuple[str, ...] = (
    ".fargin",
    ".fargin/prompts",
    ".fargin/history",
    ".fargin/templates",
)

_MAX_NAME_LENGTH = 200


@dataclass
class ValidationCheck:
    name: str
    status: ValidationStatus
    message: str | None = None

    @property
    def icon(self) -> str:
        return {"Pass": "OK", "Warning": "??", "Error": "!!"}[self.status]

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "status": self.status, "message": self.message}


@dataclass
class ValidationReport:
    checks: list[ValidationCheck] = field(default_factory=list)

    def add_check(self, check: ValidationCheck) -> None:
        self.checks.append(check)

    def has_errors(self) -> bool:
        return any(check.status == "Error" for check in self.checks)

    def has_warnings(self) -> bool:
        return any(check.status == "Warning" for check in self.checks)


def validate_directory_structure(project_root: Path) -> ValidationCheck:
    """Error naming the first required directory that is missing."""
    for rel in REQUIRED_DIRS:
        if not (project_root / rel).is_dir():
            return ValidationCheck("Directory Structure", "Error", f"Missing required directory: {rel}")
    return ValidationCheck("Directory Structure", "Pass")


def validate_configuration(config: ProjectConfig) -> ValidationCheck:
    if not config.name.strip():
        return ValidationCheck("Configuration", "Error", "Project name cannot be empty")
    if not config.description.strip():
        return ValidationCheck("Configuration", "Warning", "Project description is empty")
    return ValidationCheck("Configuration", "Pass")


def validate_project(project_root: Path) -> ValidationReport:
    """Load the project config and run every check.

    A missing or malformed config.toml is fatal (the exception propagates).
    """
    config = ProjectConfig.load(project_root)
    report = ValidationReport()
    report.add_check(validate_directory_structure(project_root))
    report.add_check(validate_configuration(config))
    return report


def sanitize_name(value: Any, *, what: str = "name") -> tuple[str, str | None]:
    """Validate and clean a user-supplied record name.

    Returns (cleaned, None) on success or ("", error_message) on failure.
    Checks: non-empty after stripping, max length, no control/format chars.
    """
    if not isinstance(value, str):
        return ("", f"{what} must be a string")
    for ch in value:
        cat = unicodedata.category(ch)
        if cat.startswith("C"):
            return ("", f"{what} must not contain control characters (found U+{ord(ch):04X})")
    cleaned = value.strip()
    if not cleaned:
        return ("", f"{what} must not be empty")
    if len(cleaned) > _MAX_NAME_LENGTH:
        return ("", f"{what} must be at most {_MAX_NAME_LENGTH} characters")
    return (cleaned, None)
