"""LLM-oriented project documentation (``fargin docs``).

Collects the project config and every fact into one document an assistant
can read at session start, rendered as Markdown or JSON.
"""

from __future__ import annotations

import json
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Literal

from fargin.core import ProjectConfig
from fargin.facts import Fact, list_facts

DocsFocus = Literal["all", "project", "prompts", "templates", "history"]
DOCS_FOCUSES: tuple[DocsFocus, ...] = ("all", "project", "prompts", "templates", "history")
DocsFormat = Literal["markdown", "json"]

# Matches C0/C1 control characters except tab/newline
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")

DEFAULT_PATTERNS = [
    "Start with clear project goals",
    "Break down complex tasks",
    "Iterate based on feedback",
]
DEFAULT_APPROACHES = [
    "Use specific, context-rich prompts",
    "Maintain consistent project structure",
    "Document decisions and rationale",
]
DEFAULT_LESSONS = [
    "Keep prompts focused and specific",
    "Maintain clear project context",
    "Document successful patterns",
]


@dataclass
class ProjectInfo:
    name: str
    description: str
    goals: list[str]
    progress_markers: list[str]


@dataclass
class FactInfo:
    id: str
    description: str | None
    tags: list[str]
    version: str | None
    content: str
    references: list[str]


@dataclass
class FactGuide:
    entries: list[FactInfo]
    categories: list[str]
    usage: list[str]


@dataclass
class InteractionHistory:
    common_patterns: list[str]
    successful_approaches: list[str]
    lessons_learned: list[str]


@dataclass
class LLMDocumentation:
    project_info: ProjectInfo
    prompts_guide: FactGuide
    templates_guide: FactGuide
    interaction_history: InteractionHistory
    best_practices: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _sanitize(text: str) -> str:
    return _CONTROL_CHARS_RE.sub("", text)


def _fact_guide(facts: list[Fact], usage: list[str]) -> FactGuide:
    categories: set[str] = set()
    entries: list[FactInfo] = []
    for fact in facts:
        categories.update(fact.metadata.tags)
        entries.append(
            FactInfo(
                id=fact.id,
                description=fact.metadata.description,
                tags=list(fact.metadata.tags),
                version=fact.metadata.version,
                content=fact.content,
                references=list(fact.metadata.references),
            )
        )
    return FactGuide(entries=entries, categories=sorted(categories), usage=usage)


def analyze_history(history: list[Fact]) -> InteractionHistory:
    """Sort history entries by their ``success``/``pattern``/``lesson`` tags.

    A bucket with no tagged entries falls back to generic advice.
    """
    patterns = [f.content for f in history if "pattern" in f.metadata.tags]
    approaches = [f.content for f in history if "success" in f.metadata.tags]
    lessons = [f.content for f in history if "lesson" in f.metadata.tags]
    return InteractionHistory(
        common_patterns=patterns or list(DEFAULT_PATTERNS),
        successful_approaches=approaches or list(DEFAULT_APPROACHES),
        lessons_learned=lessons or list(DEFAULT_LESSONS),
    )


def best_practices(prompts: list[Fact], templates: list[Fact], history: list[Fact]) -> list[str]:
    practices: list[str] = []
    if prompts:
        practices += ["Use structured prompts with clear objectives", "Include relevant context in each prompt"]
    if templates:
        practices += ["Leverage existing templates for consistency", "Customize templates based on project needs"]
    if history:
        practices += [
            "Learn from past interactions and outcomes",
            "Document successful approaches for future reference",
        ]
    practices += [
        "Maintain clear project goals and progress markers",
        "Use consistent terminology across interactions",
        "Document important decisions and their rationale",
        "Keep interaction history organized and tagged",
    ]
    return practices


def generate_llm_documentation(project_root: Path) -> LLMDocumentation:
    config = ProjectConfig.load(project_root)
    prompts = list_facts(project_root, "Prompt")
    templates = list_facts(project_root, "Template")
    history = list_facts(project_root, "History")

    return LLMDocumentation(
        project_info=ProjectInfo(
            name=config.name,
            description=config.description,
            goals=list(config.goals),
            progress_markers=[f"{m.name}: {m.description}" for m in config.progress_markers],
        ),
        prompts_guide=_fact_guide(
            prompts,
            [
                "Start with high-level prompts before diving into specifics",
                "Include context from previous interactions when relevant",
                "Reference specific project goals in your prompts",
            ],
        ),
        templates_guide=_fact_guide(
            templates,
            [
                "Use templates as starting points for common tasks",
                "Customize templates based on specific project needs",
                "Reference templates in prompts for consistent output",
            ],
        ),
        interaction_history=analyze_history(history),
        best_practices=best_practices(prompts, templates, history),
    )


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _render_guide(title: str, guide: FactGuide) -> list[str]:
    lines = [f"## {title}", ""]
    if guide.entries:
        for entry in guide.entries:
            heading = entry.description or entry.id
            lines.append(f"### {_sanitize(heading)}")
            meta = [f"id: {entry.id}"]
            if entry.version:
                meta.append(f"version: {entry.version}")
            if entry.tags:
                meta.append(f"tags: {', '.join(entry.tags)}")
            lines.append(f"_{' | '.join(meta)}_")
            lines.append("")
            lines.append("```")
            lines.append(_sanitize(entry.content))
            lines.append("```")
            if entry.references:
                lines.append("References: " + ", ".join(entry.references))
            lines.append("")
    else:
        lines.append("(none)")
        lines.append("")
    if guide.categories:
        lines.append("Categories: " + ", ".join(guide.categories))
        lines.append("")
    lines.append("Recommended usage:")
    lines.extend(f"- {u}" for u in guide.usage)
    lines.append("")
    return lines


def render_markdown(doc: LLMDocumentation, focus: str = "all") -> str:
    if focus not in DOCS_FOCUSES:
        msg = f"Unknown docs focus: {focus!r} (expected one of {', '.join(DOCS_FOCUSES)})"
        raise ValueError(msg)
    info = doc.project_info
    lines: list[str] = [f"# {_sanitize(info.name)}: Project Guide", ""]

    if focus in ("all", "project"):
        lines += ["## Project", "", _sanitize(info.description) or "(no description)", ""]
        lines.append("### Goals")
        lines.extend([f"- {g}" for g in info.goals] or ["(none)"])
        lines.append("")
        lines.append("### Progress Markers")
        lines.extend([f"- {m}" for m in info.progress_markers] or ["(none)"])
        lines.append("")
    if focus in ("all", "prompts"):
        lines += _render_guide("Prompts", doc.prompts_guide)
    if focus in ("all", "templates"):
        lines += _render_guide("Templates", doc.templates_guide)
    if focus in ("all", "history"):
        hist = doc.interaction_history
        lines += ["## Interaction History", "", "### Common Patterns"]
        lines.extend(f"- {p}" for p in hist.common_patterns)
        lines += ["", "### Successful Approaches"]
        lines.extend(f"- {a}" for a in hist.successful_approaches)
        lines += ["", "### Lessons Learned"]
        lines.extend(f"- {les}" for les in hist.lessons_learned)
        lines.append("")
    if focus == "all":
        lines += ["## Best Practices", ""]
        lines.extend(f"- {p}" for p in doc.best_practices)
        lines.append("")
    return "\n".join(lines)


def render_json(doc: LLMDocumentation, focus: str = "all") -> str:
    data = doc.to_dict()
    sections = {
        "project": "project_info",
        "prompts": "prompts_guide",
        "templates": "templates_guide",
        "history": "interaction_history",
    }
    if focus != "all":
        if focus not in sections:
            msg = f"Unknown docs focus: {focus!r} (expected one of {', '.join(DOCS_FOCUSES)})"
            raise ValueError(msg)
        data = {sections[focus]: data[sections[focus]]}
    return json.dumps(data, indent=2)
