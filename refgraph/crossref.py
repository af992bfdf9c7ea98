"""Cross-Reference Validator: every declared reference must resolve.

For each component the validator asks ``refgraph.references`` for outgoing
references and the index whether the targets exist. A missing target is an
error carrying the path of the file that would satisfy it.

Two companion checks run on commands:
- allowed-tools entries never exercised in the body (info)
- ``--flags`` documented in the command but absent from the agent it
  delegates to and that agent's skills (suggestion, "may be fake")

Tree-level checks take the lint root: ``references/`` files mentioned by
skills, and the skill and agent names in trigger map routing tables.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from collections.abc import Iterable
from pathlib import Path

from refgraph.component_index import ComponentIndex
from refgraph.models import Component, ComponentKind, Diagnostic, Severity, Source
from refgraph.references import (
    Reference,
    find_skill_agent_references,
    find_skill_references,
    find_task_references,
    frontmatter_agent,
    frontmatter_skills,
    frontmatter_tool_agents,
    is_builtin_agent,
    is_tool_used,
    parse_allowed_tools,
)
from refgraph.triggers import find_trigger_maps, parse_trigger_table

logger = logging.getLogger(__name__)

# How each pattern's match is quoted back in messages
REFERENCE_SYNTAX = {
    "task_call": "Task({name})",
    "skill_label": "Skill: {name}",
    "skill_bold": "**Skill**: {name}",
    "skill_call": "Skill({name})",
    "skill_list": "Skills: - {name}",
    "delegate_to_specialist": "delegate to {name}",
    "use_specialist": "use {name}",
    "see_specialist": "see {name}",
    "task_specialist": "Task({name})",
    "task_generic": "Task({name})",
    "delegate_via": "delegate via {name}",
    "agent_handles": "{name} handles",
}

# --flag-name anywhere in a command
FLAG_PATTERN = re.compile(r"--([a-z][a-z0-9-]*)")

# Flags used as dispatch keys in the command itself: `--flag` | (table cell)
# or --flag: (label)
ROUTING_FLAG_PATTERN = re.compile(r"`--([a-z][a-z0-9-]*)`\s*\||--([a-z][a-z0-9-]*)\s*:")

# Mentions of references/<file>.md inside a skill
REFERENCE_FILE_PATTERN = re.compile(r"references/([a-zA-Z0-9_-]+\.md)")

_DECLARATIVE_HINTS = ("saved as", "write to", "output to", "save to")


def expected_path(kind: ComponentKind, name: str) -> str:
    """Relative path of the file that would define ``kind:name``."""
    if kind == ComponentKind.SKILL:
        return f"skills/{name}/SKILL.md"
    if kind == ComponentKind.COMMAND:
        return f"commands/{name}.md"
    return f"agents/{name}.md"


def describe_reference(ref: Reference) -> str:
    template = REFERENCE_SYNTAX.get(ref.pattern, "{name}")
    return template.format(name=ref.name)


def _first(seen: set[tuple[ComponentKind, str]], ref: Reference) -> bool:
    """Record ``ref``'s target; False if it was already reported."""
    key = (ref.kind, ref.name)
    if key in seen:
        return False
    seen.add(key)
    return True


class CrossReferenceValidator:
    """Validates references between indexed components."""

    def __init__(self, index: ComponentIndex, builtin_agents: Iterable[str] = ()):
        self.index = index
        self.builtin_agents = frozenset(builtin_agents)

    def validate(self, component: Component) -> list[Diagnostic]:
        """Run the checks that apply to the component's kind."""
        if component.kind == ComponentKind.COMMAND:
            return self.validate_command(component)
        if component.kind == ComponentKind.AGENT:
            return self.validate_agent(component)
        if component.kind == ComponentKind.SKILL:
            return self.validate_skill(component)
        return []

    # ── Per-kind entry points ────────────────────────────────────────

    def validate_command(self, component: Component) -> list[Diagnostic]:
        text = component.scan_text
        task_refs = find_task_references(text)

        diagnostics = self._missing_agents(component, task_refs)
        diagnostics.extend(self._missing_skills(component, find_skill_references(text)))
        diagnostics.extend(self.check_unused_allowed_tools(component))
        diagnostics.extend(self.check_fake_flags(component, task_refs))
        return diagnostics

    def validate_agent(self, component: Component) -> list[Diagnostic]:
        text = component.scan_text
        # Body and frontmatter may name the same target; report it once
        seen: set[tuple[ComponentKind, str]] = set()
        diagnostics = self._missing_skills(component, find_skill_references(text), seen)
        diagnostics.extend(self._missing_agents(component, find_task_references(text), seen))

        for ref in frontmatter_skills(component.frontmatter):
            if self.index.has(ComponentKind.SKILL, ref.name) or not _first(seen, ref):
                continue
            diagnostics.append(
                self._missing(
                    component,
                    ref,
                    f"Frontmatter skills references non-existent skill '{ref.name}'",
                    source=Source.ANTHROPIC_DOCS,
                )
            )

        # Agent teams: tools: Task(member) spawns another agent
        for ref in frontmatter_tool_agents(component.frontmatter):
            if self._agent_resolves(ref.name) or not _first(seen, ref):
                continue
            diagnostics.append(
                self._missing(
                    component,
                    ref,
                    f"tools field Task({ref.name}) references non-existent agent",
                    severity=Severity.WARNING,
                )
            )
        return diagnostics

    def validate_skill(self, component: Component) -> list[Diagnostic]:
        text = component.scan_text
        seen: set[tuple[ComponentKind, str]] = set()
        diagnostics = self._missing_agents(component, find_skill_agent_references(text), seen)
        diagnostics.extend(self._missing_skills(component, find_skill_references(text), seen))

        bound = frontmatter_agent(component.frontmatter)
        if bound is not None and not self._agent_resolves(bound.name) and _first(seen, bound):
            diagnostics.append(
                self._missing(
                    component,
                    bound,
                    f"Frontmatter agent field references non-existent agent '{bound.name}'",
                    source=Source.ANTHROPIC_DOCS,
                )
            )
        return diagnostics

    # ── Companion checks ─────────────────────────────────────────────

    def check_unused_allowed_tools(self, component: Component) -> list[Diagnostic]:
        """Flag allowed-tools entries the command body never exercises."""
        if not component.frontmatter:
            return []
        declared = component.frontmatter.get("allowed-tools")
        if isinstance(declared, list):
            declared = ", ".join(str(tool) for tool in declared)
        if not isinstance(declared, str):
            return []

        body = component.body
        lowered = body.lower()
        is_declarative = (
            any(hint in lowered for hint in _DECLARATIVE_HINTS)
            or ".md" in body
            or ".json" in body
        )

        diagnostics: list[Diagnostic] = []
        for tool in parse_allowed_tools(declared):
            if is_tool_used(tool, body):
                continue

            if is_declarative and tool in ("Write", "Read"):
                message = (
                    f"allowed-tools declares '{tool}' - consider making tool usage more "
                    f"explicit for LLM (e.g., 'Use {tool} tool to ...')"
                )
            elif is_declarative:
                message = (
                    f"allowed-tools declares '{tool}' without obvious invocation "
                    "(consider making tool usage explicit)"
                )
            else:
                message = f"allowed-tools declares '{tool}' but it's never used in command body"

            diagnostics.append(
                Diagnostic(file=component.rel_path, message=message, severity=Severity.INFO)
            )
        return diagnostics

    def check_fake_flags(
        self, component: Component, task_refs: list[Reference] | None = None
    ) -> list[Diagnostic]:
        """Flag --options documented in a command but unknown to its agent."""
        if task_refs is None:
            task_refs = find_task_references(component.scan_text)

        primary = self._primary_agent(task_refs)
        if primary is None:
            return []
        searched = [primary.contents, *self._skill_contents(primary)]

        contents = component.contents
        routing: set[str] = set()
        for match in ROUTING_FLAG_PATTERN.finditer(contents):
            routing.update(group for group in match.groups() if group)

        diagnostics: list[Diagnostic] = []
        seen: set[str] = set()
        for match in FLAG_PATTERN.finditer(contents):
            flag = match.group(1)
            if flag in seen:
                continue
            seen.add(flag)
            if flag in routing:
                continue
            # Only the literal --flag form counts, bare words are prose
            if any(f"--{flag}" in text for text in searched):
                continue
            diagnostics.append(
                Diagnostic(
                    file=component.rel_path,
                    message=(
                        f"Flag '--{flag}' documented but not found in agent "
                        f"'{primary.name}' or its skills - may be fake"
                    ),
                    severity=Severity.SUGGESTION,
                    line=component.contents.count("\n", 0, match.start()) + 1,
                )
            )
        return diagnostics

    # ── Helpers ──────────────────────────────────────────────────────

    def _agent_resolves(self, name: str) -> bool:
        return is_builtin_agent(name, self.builtin_agents) or self.index.has(
            ComponentKind.AGENT, name
        )

    def _primary_agent(self, task_refs: list[Reference]) -> Component | None:
        """First Task() target that resolves to an agent file."""
        for ref in task_refs:
            agent = self.index.get(ComponentKind.AGENT, ref.name)
            if agent is not None:
                return agent
        return None

    def _skill_contents(self, agent: Component) -> list[str]:
        refs = find_skill_references(agent.scan_text) + frontmatter_skills(agent.frontmatter)
        contents: list[str] = []
        seen: set[str] = set()
        for ref in refs:
            skill = self.index.get(ComponentKind.SKILL, ref.name)
            if skill is not None and ref.name not in seen:
                seen.add(ref.name)
                contents.append(skill.contents)
        return contents

    def _missing_agents(
        self,
        component: Component,
        refs: list[Reference],
        seen: set[tuple[ComponentKind, str]] | None = None,
    ) -> list[Diagnostic]:
        seen = set() if seen is None else seen
        diagnostics: list[Diagnostic] = []
        for ref in refs:
            if self._agent_resolves(ref.name) or not _first(seen, ref):
                continue
            diagnostics.append(
                self._missing(
                    component, ref, f"{describe_reference(ref)} references non-existent agent"
                )
            )
        return diagnostics

    def _missing_skills(
        self,
        component: Component,
        refs: list[Reference],
        seen: set[tuple[ComponentKind, str]] | None = None,
    ) -> list[Diagnostic]:
        seen = set() if seen is None else seen
        diagnostics: list[Diagnostic] = []
        for ref in refs:
            if self.index.has(ComponentKind.SKILL, ref.name) or not _first(seen, ref):
                continue
            diagnostics.append(
                self._missing(
                    component, ref, f"{describe_reference(ref)} references non-existent skill"
                )
            )
        return diagnostics

    def _missing(
        self,
        component: Component,
        ref: Reference,
        message: str,
        severity: Severity = Severity.ERROR,
        source: Source = Source.OBSERVATION,
    ) -> Diagnostic:
        path = expected_path(ref.kind, ref.name)
        return Diagnostic(
            file=component.rel_path,
            message=f"{message}. Create {path}",
            severity=severity,
            source=source,
            line=ref.line or None,
            suggested_path=path,
        )


def validate_skill_reference_files(index: ComponentIndex, root: Path) -> list[Diagnostic]:
    """Check references/*.md mentions in each skill against the disk.

    Mentioned but missing is an error; present but never mentioned is info.
    """
    diagnostics: list[Diagnostic] = []
    for skill in index.components(ComponentKind.SKILL):
        skill_dir = (root / skill.rel_path).parent
        refs_dir = skill_dir / "references"

        mentioned = sorted(set(REFERENCE_FILE_PATTERN.findall(skill.scan_text)))
        actual = _list_reference_files(refs_dir)

        for name in mentioned:
            if name not in actual:
                diagnostics.append(
                    Diagnostic(
                        file=skill.rel_path,
                        message=f"references/{name} is mentioned but does not exist on disk",
                        severity=Severity.ERROR,
                        suggested_path=str(Path(skill.rel_path).parent / "references" / name),
                    )
                )
        for name in sorted(actual):
            if name not in mentioned:
                diagnostics.append(
                    Diagnostic(
                        file=str(Path(skill.rel_path).parent / "references" / name),
                        message=(
                            f"references/{name} exists but is not mentioned in SKILL.md - "
                            "add a reference or remove the file"
                        ),
                        severity=Severity.INFO,
                    )
                )
    return diagnostics


def _list_reference_files(refs_dir: Path) -> set[str]:
    if not refs_dir.is_dir():
        return set()
    try:
        return {p.name for p in refs_dir.iterdir() if p.is_file() and p.suffix == ".md"}
    except OSError as e:
        logger.warning("Cannot list %s: %s", refs_dir, e)
        return set()


def validate_trigger_maps(
    index: ComponentIndex, root: Path, builtin_agents: Iterable[str] = ()
) -> list[Diagnostic]:
    """Every skill and agent named in a trigger map must exist.

    One error per distinct target per map file. Built-in agents are exempt.
    """
    diagnostics: list[Diagnostic] = []
    for rel_path, contents in find_trigger_maps(root):
        seen: set[tuple[ComponentKind, str]] = set()
        for mapping in parse_trigger_table(rel_path, contents):
            key = (mapping.kind, mapping.name)
            if key in seen:
                continue
            seen.add(key)
            if mapping.kind == ComponentKind.AGENT and is_builtin_agent(
                mapping.name, builtin_agents
            ):
                continue
            if index.has(mapping.kind, mapping.name):
                continue
            path = expected_path(mapping.kind, mapping.name)
            diagnostics.append(
                Diagnostic(
                    file=rel_path,
                    message=(
                        f"Trigger map references non-existent {mapping.kind} "
                        f"'{mapping.name}'. Create {path}"
                    ),
                    severity=Severity.ERROR,
                    suggested_path=path,
                )
            )
    return diagnostics


def detect_trigger_conflicts(root: Path) -> list[Diagnostic]:
    """Warn when one trigger keyword routes to different targets.

    The same target reached from several files is not a conflict. One warning
    per keyword, filed against the first file (by path) that maps it.
    """
    targets: defaultdict[str, defaultdict[tuple[ComponentKind, str], list[str]]] = defaultdict(
        lambda: defaultdict(list)
    )
    for rel_path, contents in find_trigger_maps(root):
        for mapping in parse_trigger_table(rel_path, contents):
            if mapping.keyword:
                targets[mapping.keyword][(mapping.kind, mapping.name)].append(rel_path)

    diagnostics: list[Diagnostic] = []
    for keyword in sorted(targets):
        by_target = targets[keyword]
        if len(by_target) <= 1:
            continue
        parts = [
            f"'{name}' ({kind}, in {min(by_target[(kind, name)])})"
            for kind, name in sorted(by_target)
        ]
        diagnostics.append(
            Diagnostic(
                file=min(file for files in by_target.values() for file in files),
                message=(
                    f"Trigger keyword '{keyword}' routes to conflicting targets: "
                    + ", ".join(parts)
                ),
                severity=Severity.WARNING,
            )
        )
    return diagnostics
