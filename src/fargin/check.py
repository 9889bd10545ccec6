"""Project health checks (``fargin check``).

Two halves:

- read-only inspection of the project (features, directory layout,
  declared dependencies, git state) aggregated into ``ProjectHealthReport``
  and rendered at three verbosity levels;
- the dev-cycle runner, which runs the configured formatter, linter and test
  runner one after another in the project directory, streaming their output
  as it arrives and stopping at the first failure.
"""

from __future__ import annotations

import html
import logging
import queue
import re
import subprocess
import threading
import time
import tomllib
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import IO, Any, Literal

import click

from fargin.core import FARGIN_DIR_NAME, FEATURES_DIR_NAME, DevCycleConfig, read_dev_cycle
from fargin.features import FEATURE_STATUSES, FeatureStatus, parse_status

logger = logging.getLogger(__name__)

STALE_THRESHOLD_DAYS = 30
GIT_TIMEOUT_SECONDS = 5

RECOMMENDED_DIRS: tuple[str, ...] = (
    ".fargin",
    ".fargin/features",
    ".fargin/docs",
    ".fargin/templates",
    ".fargin/artifacts",
    "src",
    "tests",
    "docs",
)

CheckStep = Literal["format", "lint", "test"]
CHECK_STEPS: tuple[CheckStep, ...] = ("format", "lint", "test")
STEP_LABELS: dict[CheckStep, str] = {
    "format": "Formatting Check",
    "lint": "Linting",
    "test": "Test Suite",
}

Verbosity = Literal["brief", "standard", "detailed"]
_VERBOSITY_ALIASES: dict[str, Verbosity] = {
    "brief": "brief",
    "low": "brief",
    "standard": "standard",
    "normal": "standard",
    "detailed": "detailed",
    "high": "detailed",
}

OutputFormat = Literal["terminal", "markdown", "html"]

# Accepts both "Status: X" and the feature template's "**Status**: X".
_STATUS_LINE_RE = re.compile(
    r"^\s*(?:-\s*)?(?:\*\*)?Status(?:\*\*)?:\s*(?:\*\*)?(?P<value>[A-Za-z_ -]+?)\s*$",
    re.MULTILINE,
)


class CheckFailedError(Exception):
    """An external dev-cycle tool failed or could not be started."""

    def __init__(self, stage: str, message: str, returncode: int | None = None) -> None:
        super().__init__(f"{stage} failed: {message}")
        self.stage = stage
        self.returncode = returncode


# ---------------------------------------------------------------------------
# Report types
# ---------------------------------------------------------------------------


@dataclass
class FeatureHealthReport:
    total_features: int = 0
    status_distribution: dict[FeatureStatus, int] = field(default_factory=dict)
    stale_features: list[str] = field(default_factory=list)

    def count(self, status: FeatureStatus) -> int:
        return self.status_distribution.get(status, 0)


@dataclass
class FileStructureReport:
    existing_dirs: list[str] = field(default_factory=list)
    missing_dirs: list[str] = field(default_factory=list)


@dataclass
class DependencyHealthReport:
    """Declared dependency count from the project manifest.

    Outdated-version detection is not implemented: ``outdated_checked`` is
    always False and ``outdated_dependencies`` always empty.
    """

    total_dependencies: int = 0
    manifest: str | None = None
    outdated_dependencies: list[str] = field(default_factory=list)
    outdated_checked: bool = False


@dataclass
class GitHealthReport:
    """Git state; None means "could not be determined", never a guess."""

    is_git_repo: bool = False
    branch_name: str | None = None
    uncommitted_changes: bool | None = None
    unpushed_commits: bool | None = None


@dataclass
class ProjectHealthReport:
    feature_health: FeatureHealthReport = field(default_factory=FeatureHealthReport)
    file_structure: FileStructureReport = field(default_factory=FileStructureReport)
    dependency_health: DependencyHealthReport = field(default_factory=DependencyHealthReport)
    git_health: GitHealthReport = field(default_factory=GitHealthReport)

    def generate_report(self) -> str:
        """Every facet, every list, no commentary."""
        fh = self.feature_health
        lines = ["Feature Health:", f"   Total Features: {fh.total_features}", "   Status Distribution:"]
        lines.extend(f"     - {status}: {count}" for status, count in _ordered_distribution(fh))
        if fh.stale_features:
            lines.append("   Stale Features:")
            lines.extend(f"     - {name}" for name in fh.stale_features)

        fs = self.file_structure
        lines += ["", "Project Structure:", "   Existing Directories:"]
        lines.extend(f"     - {d}" for d in fs.existing_dirs)
        if fs.missing_dirs:
            lines.append("   Missing Recommended Directories:")
            lines.extend(f"     - {d}" for d in fs.missing_dirs)

        dh = self.dependency_health
        lines += ["", "Dependency Health:", f"   Manifest: {dh.manifest or 'none found'}"]
        lines.append(f"   Total Dependencies: {dh.total_dependencies}")
        lines.append(f"   Outdated Dependencies: {_outdated_label(dh)}")

        lines += ["", "Git Repository Health:", *_git_lines(self.git_health, indent="   ")]
        return "\n".join(lines) + "\n"


def _ordered_distribution(report: FeatureHealthReport) -> list[tuple[FeatureStatus, int]]:
    return [(s, report.status_distribution[s]) for s in FEATURE_STATUSES if s in report.status_distribution]


def _yes_no(value: bool | None) -> str:
    if value is None:
        return "Unknown"
    return "Yes" if value else "No"


def _outdated_label(report: DependencyHealthReport) -> str:
    if not report.outdated_checked:
        return "not checked"
    return str(len(report.outdated_dependencies))


def _git_lines(git: GitHealthReport, indent: str = "") -> list[str]:
    return [
        f"{indent}Is Git Repository: {_yes_no(git.is_git_repo)}",
        f"{indent}Current Branch: {git.branch_name or 'Unknown'}",
        f"{indent}Uncommitted Changes: {_yes_no(git.uncommitted_changes)}",
        f"{indent}Unpushed Commits: {_yes_no(git.unpushed_commits)}",
    ]


def status_from_markdown(text: str) -> FeatureStatus:
    """Status named on the first ``Status`` line, Proposed when absent or unknown."""
    m = _STATUS_LINE_RE.search(text)
    if m is None:
        return "Proposed"
    try:
        return parse_status(m.group("value"))
    except ValueError:
        return "Proposed"


def normalize_verbosity(value: str) -> Verbosity:
    try:
        return _VERBOSITY_ALIASES[value.strip().lower()]
    except KeyError:
        msg = f"Unknown verbosity: {value!r} (expected brief, standard or detailed)"
        raise ValueError(msg) from None


def format_output(text: str, output: OutputFormat) -> str:
    if output == "markdown":
        return f"```markdown\n{text}\n```"
    if output == "html":
        return f"<pre>{html.escape(text)}</pre>"
    return text


# ---------------------------------------------------------------------------
# Streaming subprocess runner
# ---------------------------------------------------------------------------

_EOF = None


def _pump(stream: IO[str], sink: queue.Queue[str | None]) -> None:
    try:
        for line in stream:
            sink.put(line.rstrip("\r\n"))
    finally:
        sink.put(_EOF)


def _drain(source: queue.Queue[str | None], stage: str, is_err: bool) -> None:
    while True:
        line = source.get()
        if line is _EOF:
            return
        click.echo(line, err=is_err)
        if is_err:
            logger.warning("%s stderr: %s", stage, line, extra={"stage": stage, "stream": "stderr"})
        else:
            logger.debug("%s stdout: %s", stage, line, extra={"stage": stage, "stream": "stdout"})


def run_streaming(command: list[str], stage: str, cwd: Path) -> int:
    """Run ``command`` in ``cwd``, echoing and logging its output line by line.

    Each pipe gets a reader thread feeding a queue and a consumer thread
    draining it, so a child that fills both pipes cannot deadlock us.
    Returns the exit code. Raises CheckFailedError if the binary is missing.
    """
    logger.info("Running %s", stage, extra={"stage": stage, "command": command})
    try:
        proc = subprocess.Popen(
            command,
            cwd=str(cwd),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
        )
    except (FileNotFoundError, PermissionError) as exc:
        logger.error(
            "%s could not start: %s", stage, exc, extra={"stage": stage, "command": command, "error": str(exc)}
        )
        raise CheckFailedError(stage, f"could not run {command[0]!r}: {exc}") from exc

    assert proc.stdout is not None
    assert proc.stderr is not None
    out_q: queue.Queue[str | None] = queue.Queue()
    err_q: queue.Queue[str | None] = queue.Queue()
    threads = [
        threading.Thread(target=_pump, args=(proc.stdout, out_q), daemon=True),
        threading.Thread(target=_pump, args=(proc.stderr, err_q), daemon=True),
        threading.Thread(target=_drain, args=(out_q, stage, False), daemon=True),
        threading.Thread(target=_drain, args=(err_q, stage, True), daemon=True),
    ]
    for t in threads:
        t.start()
    returncode = proc.wait()
    for t in threads:
        t.join()
    proc.stdout.close()
    proc.stderr.close()
    return returncode


# ---------------------------------------------------------------------------
# Checker
# ---------------------------------------------------------------------------


class ProjectChecker:
    """Health inspection and dev-cycle runs for one project root."""

    def __init__(self, project_root: Path, dev_cycle: DevCycleConfig | None = None) -> None:
        self.project_root = project_root
        self._dev_cycle = dev_cycle

    @property
    def dev_cycle(self) -> DevCycleConfig:
        if self._dev_cycle is None:
            self._dev_cycle = read_dev_cycle(self.project_root)
        return self._dev_cycle

    # -- inspection ---------------------------------------------------------

    def run_all_checks(self) -> ProjectHealthReport:
        return ProjectHealthReport(
            feature_health=self.check_feature_health(),
            file_structure=self.check_file_structure(),
            dependency_health=self.check_dependencies(),
            git_health=self.check_git_status(),
        )

    def check_feature_health(self, now: datetime | None = None) -> FeatureHealthReport:
        features_dir = self.project_root / FARGIN_DIR_NAME / FEATURES_DIR_NAME
        report = FeatureHealthReport()
        if not features_dir.is_dir():
            return report

        cutoff = (now or datetime.now(UTC)) - timedelta(days=STALE_THRESHOLD_DAYS)
        for path in sorted(features_dir.glob("*.md")):
            status = status_from_markdown(path.read_text(encoding="utf-8"))
            report.status_distribution[status] = report.status_distribution.get(status, 0) + 1
            report.total_features += 1
            modified = datetime.fromtimestamp(path.stat().st_mtime, tz=UTC)
            if modified < cutoff:
                report.stale_features.append(path.name)
        return report

    def check_file_structure(self) -> FileStructureReport:
        report = FileStructureReport()
        for rel in RECOMMENDED_DIRS:
            if (self.project_root / rel).exists():
                report.existing_dirs.append(rel)
            else:
                report.missing_dirs.append(rel)
        return report

    def check_dependencies(self) -> DependencyHealthReport:
        """Count dependencies declared in Cargo.toml or pyproject.toml."""
        cargo = self.project_root / "Cargo.toml"
        pyproject = self.project_root / "pyproject.toml"
        if cargo.is_file():
            data = _load_manifest(cargo)
            deps = data.get("dependencies", {})
            return DependencyHealthReport(total_dependencies=len(deps), manifest=cargo.name)
        if pyproject.is_file():
            data = _load_manifest(pyproject)
            deps = data.get("project", {}).get("dependencies", [])
            return DependencyHealthReport(total_dependencies=len(deps), manifest=pyproject.name)
        return DependencyHealthReport()

    def check_git_status(self) -> GitHealthReport:
        if not (self.project_root / ".git").exists():
            return GitHealthReport(is_git_repo=False)

        report = GitHealthReport(is_git_repo=True)
        branch = self._git("rev-parse", "--abbrev-ref", "HEAD")
        if branch:
            report.branch_name = branch
        porcelain = self._git("status", "--porcelain")
        if porcelain is not None:
            report.uncommitted_changes = bool(porcelain)
        ahead = self._git("rev-list", "--count", "@{u}..HEAD")
        if ahead is not None and ahead.isdigit():
            report.unpushed_commits = int(ahead) > 0
        return report

    def _git(self, *args: str) -> str | None:
        """Stripped stdout of a git command, or None if it could not answer."""
        try:
            result = subprocess.run(
                ["git", *args],
                cwd=str(self.project_root),
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=GIT_TIMEOUT_SECONDS,
            )
        except FileNotFoundError:
            return None  # git not installed
        except subprocess.TimeoutExpired:
            logger.warning(
                "git %s timed out (%ss)", " ".join(args), GIT_TIMEOUT_SECONDS, extra={"command": ["git", *args]}
            )
            return None
        if result.returncode != 0:
            logger.debug(
                "git %s exited %d: %s",
                " ".join(args),
                result.returncode,
                result.stderr.strip(),
                extra={"command": ["git", *args]},
            )
            return None
        return result.stdout.strip()

    # -- dev-cycle runs -----------------------------------------------------

    def run_single_check(self, step: CheckStep) -> None:
        """Run one configured tool. Raises CheckFailedError on non-zero exit."""
        stage = STEP_LABELS[step]
        command = self.dev_cycle.command_for(step)
        click.echo(f"\n>> {stage}: {' '.join(command)}")
        returncode = run_streaming(command, stage, self.project_root)
        if returncode != 0:
            logger.error(
                "%s failed with exit code %d", stage, returncode, extra={"stage": stage, "command": command}
            )
            click.echo(f"!! {stage} failed (exit code {returncode})")
            raise CheckFailedError(stage, f"exit code {returncode}", returncode)
        logger.info("%s passed", stage, extra={"stage": stage})
        click.echo(f"OK {stage} passed")

    def run_project_checks(self) -> None:
        """Format, lint, test in order; the first failure stops the run."""
        logger.info("Starting project checks in %s", self.project_root)
        for step in CHECK_STEPS:
            self.run_single_check(step)
        logger.info("All project checks completed successfully")

    def run_check_loop(
        self,
        interval: float,
        iterations: int = 0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> list[bool]:
        """Repeat ``run_project_checks``; ``iterations == 0`` runs forever.

        A failed iteration is reported and the loop carries on. Returns the
        pass/fail outcome of each iteration.
        """
        outcomes: list[bool] = []
        count = 0
        while True:
            count += 1
            click.echo(f"\n== Check iteration {count}")
            try:
                self.run_project_checks()
            except CheckFailedError as exc:
                click.echo(f"!! Project checks failed: {exc}", err=True)
                outcomes.append(False)
            else:
                click.echo("OK Project checks completed successfully")
                outcomes.append(True)
            if iterations > 0 and count >= iterations:
                click.echo("Reached maximum iterations. Stopping.")
                return outcomes
            sleep(interval)

    # -- summaries ----------------------------------------------------------

    def generate_progress_summary(self, verbosity: str = "standard") -> str:
        report = self.run_all_checks()
        level = normalize_verbosity(verbosity)
        if level == "brief":
            return render_brief_summary(report)
        if level == "detailed":
            return render_detailed_summary(report)
        return render_standard_summary(report)


def _load_manifest(path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        msg = f"Malformed TOML in {path}: {exc}"
        raise ValueError(msg) from exc


# ---------------------------------------------------------------------------
# Summary rendering
# ---------------------------------------------------------------------------


def render_brief_summary(report: ProjectHealthReport) -> str:
    fh = report.feature_health
    git = "Healthy" if report.git_health.is_git_repo else "Not a Git Repo"
    return (
        "Project Progress Summary:\n"
        f"- Features: {fh.total_features} total ({fh.count('Implemented')} implemented)\n"
        f"- Dependencies: {report.dependency_health.total_dependencies} total\n"
        f"- Git Status: {git}\n"
    )


def render_standard_summary(report: ProjectHealthReport) -> str:
    fh = report.feature_health
    dh = report.dependency_health
    lines = [
        "Project Progress Summary",
        "",
        "Feature Health:",
        f"Total Features: {fh.total_features}",
        "Feature Status Distribution:",
        *(f"  - {status}: {count}" for status, count in _ordered_distribution(fh)),
        f"Stale Features: {', '.join(fh.stale_features) or 'none'}",
        "",
        "Dependency Health:",
        f"Total Dependencies: {dh.total_dependencies}",
        f"Outdated Dependencies: {_outdated_label(dh)}",
        "",
        "Git Repository Health:",
        *_git_lines(report.git_health),
    ]
    return "\n".join(lines) + "\n"


def render_detailed_summary(report: ProjectHealthReport) -> str:
    fh = report.feature_health
    dh = report.dependency_health
    fs = report.file_structure
    lines = [
        "Comprehensive Project Progress Summary",
        "",
        "Feature Health:",
        f"Total Features: {fh.total_features}",
        "Feature Status Distribution:",
        *(f"  - {status}: {count}" for status, count in _ordered_distribution(fh)),
        f"Stale Features (>{STALE_THRESHOLD_DAYS} days):",
        *(f"  - {name}" for name in fh.stale_features or ["none"]),
        "Potential Actions:",
        "  - Review and update stale features",
        "  - Close or reactivate inactive features",
        "",
        "Project Structure:",
        f"Existing Directories: {len(fs.existing_dirs)}",
        "Missing Recommended Directories:",
        *(f"  - {d}" for d in fs.missing_dirs or ["none"]),
        "",
        "Dependency Health:",
        f"Manifest: {dh.manifest or 'none found'}",
        f"Total Dependencies: {dh.total_dependencies}",
        f"Outdated Dependencies: {_outdated_label(dh)}",
        *(f"  - {dep}" for dep in dh.outdated_dependencies),
        "Potential Actions:",
        "  - Update dependencies to latest versions",
        "  - Review security and compatibility",
        "",
        "Git Repository Health:",
        *_git_lines(report.git_health),
        "Potential Actions:",
        "  - Commit or stash uncommitted changes",
        "  - Push local commits to remote",
        "  - Consider creating feature branches",
        "",
        "Recommendations:",
        "  1. Prioritize features with 'Blocked' or 'InProgress' status",
        "  2. Address stale features and outdated dependencies",
        "  3. Maintain consistent Git workflow",
    ]
    return "\n".join(lines) + "\n"
