"""Built-in usage guides shown by ``fargin howto``."""

from __future__ import annotations

from typing import Any

from fargin.check import normalize_verbosity

HOWTO_TOPICS: tuple[str, ...] = (
    "check",
    "feature-status",
    "dependency-management",
    "git-health",
    "logging",
    "cli-usage",
)

_GUIDES: dict[str, dict[str, Any]] = {
    "check": {
        "title": "Project Checks",
        "overview": (
            "Runs the formatter, linter and test suite configured in .fargin/dev_cycle.toml, "
            "in that order, from the project root. The first failing tool stops the run."
        ),
        "commands": [
            "fargin check run",
            "fargin check fmt | lint | test",
            "fargin check loop --interval 30 --iterations 10",
        ],
        "tips": [
            "Commands may be lists or shell-style strings: command = \"pytest -q\"",
            "fargin init --git-hooks runs format and lint before each commit and test before each push",
            "Tool output is mirrored to .fargin/fargin.log",
        ],
    },
    "feature-status": {
        "title": "Feature Status",
        "overview": (
            "Every feature is one Markdown file in .fargin/features/ with a status of "
            "Proposed, InProgress, Implemented, Blocked or Deprecated."
        ),
        "commands": [
            'fargin feature add "Login" -p High -c "Valid password logs in"',
            "fargin feature update <id> --status in_progress",
            "fargin feature list --status Blocked",
        ],
        "tips": [
            "Status names are case-insensitive; in_progress and in-progress both mean InProgress",
            "fargin check progress counts features per status and lists files untouched for 30 days",
        ],
    },
    "dependency-management": {
        "title": "Dependency Health",
        "overview": (
            "Counts the dependencies declared in Cargo.toml or pyproject.toml. "
            "Outdated versions are not checked."
        ),
        "commands": ["fargin check report", "fargin check progress -v detailed"],
        "tips": ["Cargo.toml wins when both manifests exist"],
    },
    "git-health": {
        "title": "Git Health",
        "overview": (
            "Reports the current branch, uncommitted changes and commits not yet pushed upstream. "
            "Anything git cannot answer is shown as unknown."
        ),
        "commands": ["fargin check git", "fargin check git --json"],
        "tips": ["Unpushed commits need an upstream branch to be known"],
    },
    "logging": {
        "title": "Logging",
        "overview": (
            "Commands run inside a project append JSON lines to .fargin/fargin.log "
            "(rotated at 5 MB, 3 backups)."
        ),
        "commands": ["tail -f .fargin/fargin.log"],
        "tips": [
            "Each record carries ts, level and msg; check output adds stage and stream",
            "Tool stderr is logged at WARNING, stdout at DEBUG",
        ],
    },
    "cli-usage": {
        "title": "CLI Usage",
        "overview": "Every command takes --path and finds .fargin/ by walking up from there.",
        "commands": [
            "fargin init --name demo",
            "fargin validate",
            "fargin fact add prompt \"...\" -t api",
            "fargin suggest --verbosity detailed",
            "fargin docs --format json",
            "fargin design create \"Auth flow\"",
        ],
        "tips": ["Most read commands accept --json", "fargin reset --force removes .fargin/ without asking"],
    },
}


def _overview() -> str:
    lines = ["# fargin Guides", "", "Available topics:"]
    lines.extend(f"  - {topic}" for topic in HOWTO_TOPICS)
    lines += ["", "Use `fargin howto <topic>` for details."]
    return "\n".join(lines)


def render_howto(topic: str | None = None, verbosity: str = "standard") -> str:
    """Guide text for ``topic`` (or the topic list when None).

    ``brief`` shows the overview only, ``standard`` adds example commands and
    ``detailed`` adds tips. Raises ValueError for an unknown topic or verbosity.
    """
    level = normalize_verbosity(verbosity)
    if topic is None:
        return _overview()
    guide = _GUIDES.get(topic)
    if guide is None:
        msg = f"Unknown howto topic: {topic!r} (expected one of {', '.join(HOWTO_TOPICS)})"
        raise ValueError(msg)

    lines = [f"# {guide['title']}", "", guide["overview"]]
    if level in ("standard", "detailed"):
        lines += ["", "## Commands"]
        lines.extend(f"  $ {cmd}" for cmd in guide["commands"])
    if level == "detailed" and guide["tips"]:
        lines += ["", "## Tips"]
        lines.extend(f"  - {tip}" for tip in guide["tips"])
    return "\n".join(lines)
