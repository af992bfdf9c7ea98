"""Reference extraction from component text and frontmatter.

References between components are not declared anywhere structured; they are
written in prose using a handful of conventions. Each convention is one named
pattern below. Extractors run every pattern of a family, union the matches and
report each literal target once.

All body patterns run on ``Component.scan_text`` (frontmatter and fenced code
blanked), so examples inside code fences never count as references.

Recognised conventions:
    Task(agent-name)              agent delegation
    Skill: name / **Skill**: name skill usage
    Skill(name)                   skill usage
    Skills:\\n- name\\n- other       skill usage (bulleted list)
    delegate to foo-specialist    skill body -> agent (and friends, see
                                  SKILL_AGENT_PATTERNS)
    skills: [a, b]                frontmatter, agent preloads skills
    agent: name                   frontmatter, skill bound to an agent
    tools: Task(name)             frontmatter, agent team member
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Callable

from refgraph.models import Component, ComponentKind
from refgraph.text import line_of

# Task() targets provided by the runtime rather than by agent files:
# built-in subagent types and model names used for model selection.
BUILTIN_AGENTS: frozenset[str] = frozenset(
    {
        "general-purpose",
        "statusline-setup",
        "Explore",
        "Plan",
        "claude-code-guide",
        "haiku",
        "sonnet",
        "opus",
    }
)

# Substrings marking a Task() argument as a variable rather than an agent name
DYNAMIC_MARKERS = ("subagent_type", "$", "{", "[", ".", "=", "\n")

_NAME = r"[a-z0-9][a-z0-9-]*"


@dataclass(frozen=True)
class Reference:
    """A single reference found in a component."""

    kind: ComponentKind  # Kind of the referenced component
    name: str
    pattern: str  # Tag of the pattern that matched
    line: int = 0  # 0 for frontmatter-declared references


# Agent delegation: Task(name), Task("name", ...), Task('name')
TASK_PATTERNS: dict[str, re.Pattern[str]] = {
    "task_call": re.compile(r"Task\(([^,)]+)"),
}

SKILL_PATTERNS: dict[str, re.Pattern[str]] = {
    # Skill: foo-bar. Line-local, and no '*' before the label on that line
    "skill_label": re.compile(rf"^[^*\n]*\bSkill:[ \t]*({_NAME})", re.MULTILINE),
    # **Skill**: foo-bar
    "skill_bold": re.compile(rf"\*\*Skill\*\*:[ \t]*({_NAME})"),
    # Skill(foo-bar) or Skill("foo-bar")
    "skill_call": re.compile(rf"Skill\(\s*[\"']?({_NAME})[\"']?\s*\)"),
}

# "Skills:" (or "Skill:") alone at the end of a line, followed by a bullet list
_SKILL_LIST_HEADER = re.compile(r"\bSkills?:[ \t]*$")
_SKILL_LIST_ITEM = re.compile(rf"^[ \t]*[-*][ \t]*({_NAME})")

# Skill body -> agent. Ordered from most to least specific; the first pattern
# to report a name owns it.
SKILL_AGENT_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("delegate_to_specialist", re.compile(rf"\bdelegate to\s+({_NAME}-specialist)")),
    ("use_specialist", re.compile(rf"\buse\s+({_NAME}-specialist)")),
    ("see_specialist", re.compile(rf"\bsee\s+({_NAME}-specialist)")),
    ("task_specialist", re.compile(rf"Task\(({_NAME}-specialist)")),
    ("task_generic", re.compile(rf"Task\(\s*[\"']?({_NAME})[\"']?\s*[,)]")),
    ("delegate_via", re.compile(rf"\bdelegate via\s+({_NAME})")),
    ("agent_handles", re.compile(rf"({_NAME}-agent)\s+handles")),
]

# Task(name) inside a frontmatter tools field
_TOOLS_TASK_PATTERN = re.compile(rf"Task\(({_NAME})\)")

# Task(...) tokens in an allowed-tools string; atomic even with commas inside
_ALLOWED_TASK_TOKEN = re.compile(r"Task\([^)]+\)")


def is_dynamic_reference(ref: str) -> bool:
    return any(marker in ref for marker in DYNAMIC_MARKERS)


def is_builtin_agent(name: str, extra: Iterable[str] = ()) -> bool:
    return name in BUILTIN_AGENTS or name in set(extra)


def _clean_task_ref(raw: str) -> str:
    return raw.strip().strip("\"'").strip()


def find_task_references(text: str, unique: bool = True) -> list[Reference]:
    """Agent names delegated to with Task(...).

    With ``unique=False`` every occurrence is kept, in text order.
    """
    refs: list[Reference] = []
    seen: set[str] = set()
    for tag, pattern in TASK_PATTERNS.items():
        for match in pattern.finditer(text):
            name = _clean_task_ref(match.group(1))
            if not name or is_dynamic_reference(name) or (unique and name in seen):
                continue
            seen.add(name)
            refs.append(Reference(ComponentKind.AGENT, name, tag, line_of(text, match.start(1))))
    return refs


def _find_skill_list_items(text: str) -> Iterable[tuple[str, int]]:
    """Yield (name, offset) for each bullet under a Skills: header."""
    offset = 0
    in_list = False
    started = False
    for line in text.split("\n"):
        if in_list:
            item = _SKILL_LIST_ITEM.match(line)
            if item:
                started = True
                yield item.group(1), offset + item.start(1)
            elif line.strip() or started:
                # Blank lines are allowed before the first item only
                in_list = False
        if not in_list and _SKILL_LIST_HEADER.search(line):
            in_list = True
            started = False
        offset += len(line) + 1


def find_skill_references(text: str) -> list[Reference]:
    """Skill names used via any of the four skill conventions."""
    refs: list[Reference] = []
    seen: set[str] = set()

    def add(name: str, tag: str, offset: int) -> None:
        name = name.strip()
        if name and name not in seen:
            seen.add(name)
            refs.append(Reference(ComponentKind.SKILL, name, tag, line_of(text, offset)))

    for tag, pattern in SKILL_PATTERNS.items():
        for match in pattern.finditer(text):
            add(match.group(1), tag, match.start(1))
    for name, offset in _find_skill_list_items(text):
        add(name, "skill_list", offset)
    return refs


def find_skill_agent_references(text: str) -> list[Reference]:
    """Agent names mentioned in a skill body's narrative."""
    refs: list[Reference] = []
    seen: set[str] = set()
    for tag, pattern in SKILL_AGENT_PATTERNS:
        for match in pattern.finditer(text):
            name = match.group(1).strip()
            if not name or name in seen or is_dynamic_reference(name):
                continue
            seen.add(name)
            refs.append(Reference(ComponentKind.AGENT, name, tag, line_of(text, match.start(1))))
    return refs


def frontmatter_skills(frontmatter: dict[str, Any] | None) -> list[Reference]:
    """Skills an agent preloads via its ``skills`` frontmatter field."""
    if not frontmatter:
        return []
    value = frontmatter.get("skills")
    if isinstance(value, str):
        items: list[Any] = value.split(",")
    elif isinstance(value, list):
        items = value
    else:
        return []

    refs: list[Reference] = []
    seen: set[str] = set()
    for item in items:
        if not isinstance(item, str):
            continue
        name = item.strip()
        if name and name not in seen:
            seen.add(name)
            refs.append(Reference(ComponentKind.SKILL, name, "frontmatter_skills"))
    return refs


def frontmatter_agent(frontmatter: dict[str, Any] | None) -> Reference | None:
    """The agent a skill is bound to via its ``agent`` frontmatter field."""
    if not frontmatter:
        return None
    value = frontmatter.get("agent")
    if not isinstance(value, str) or not value.strip():
        return None
    return Reference(ComponentKind.AGENT, value.strip(), "frontmatter_agent")


def frontmatter_tool_agents(frontmatter: dict[str, Any] | None) -> list[Reference]:
    """Task(agent) entries in an agent's ``tools`` field (string or list)."""
    if not frontmatter:
        return []
    tools = frontmatter.get("tools")
    if isinstance(tools, str):
        values = [tools]
    elif isinstance(tools, list):
        values = [t for t in tools if isinstance(t, str)]
    else:
        return []

    refs: list[Reference] = []
    seen: set[str] = set()
    for value in values:
        for match in _TOOLS_TASK_PATTERN.finditer(value):
            name = match.group(1)
            if name not in seen:
                seen.add(name)
                refs.append(Reference(ComponentKind.AGENT, name, "frontmatter_tools"))
    return refs


def parse_allowed_tools(value: str) -> list[str]:
    """Split an allowed-tools string into tool tokens.

    Task(...) tokens are taken whole first, then the rest is split on commas:

        >>> parse_allowed_tools("Task(a), Task(b), Write")
        ['Task(a)', 'Task(b)', 'Write']
    """
    tools: list[str] = []
    seen: set[str] = set()

    for token in _ALLOWED_TASK_TOKEN.findall(value):
        if token not in seen:
            tools.append(token)
            seen.add(token)

    remaining = _ALLOWED_TASK_TOKEN.sub("", value)
    for part in remaining.split(","):
        tool = part.strip()
        if tool and tool not in seen:
            tools.append(tool)
            seen.add(tool)
    return tools


def _called_or_named(tool: str) -> Callable[[str], bool]:
    return lambda body: f"{tool}(" in body or f"{tool} tool" in body


# Usage checks for the core tools
TOOL_USAGE_CHECKS: dict[str, Callable[[str], bool]] = {
    "Task": lambda body: "Task(" in body,
    "Read": _called_or_named("Read"),
    "Write": _called_or_named("Write"),
    "Edit": _called_or_named("Edit"),
    "Bash": _called_or_named("Bash"),
    "Glob": _called_or_named("Glob"),
    "Grep": _called_or_named("Grep"),
}


def is_tool_used(tool: str, body: str) -> bool:
    """Check whether a declared tool is exercised in a command body."""
    if tool.startswith("Task(") and tool.endswith(")"):
        agent = tool[len("Task(") : -1].strip()
        return re.search(rf"Task\(\s*{re.escape(agent)}\s*[,)]", body) is not None

    check = TOOL_USAGE_CHECKS.get(tool)
    if check is not None:
        return check(body)
    return tool in body


def outgoing_references(component: Component) -> list[Reference]:
    """Every reference a graph component declares, body and frontmatter.

    Deduplicated by (kind, name); body references come before frontmatter
    ones.
    """
    text = component.scan_text
    refs: list[Reference] = []

    if component.kind == ComponentKind.COMMAND:
        refs.extend(find_task_references(text))
        refs.extend(find_skill_references(text))
    elif component.kind == ComponentKind.AGENT:
        refs.extend(find_task_references(text))
        refs.extend(find_skill_references(text))
        refs.extend(frontmatter_skills(component.frontmatter))
        refs.extend(frontmatter_tool_agents(component.frontmatter))
    elif component.kind == ComponentKind.SKILL:
        refs.extend(find_skill_agent_references(text))
        refs.extend(find_skill_references(text))
        bound = frontmatter_agent(component.frontmatter)
        if bound is not None:
            refs.append(bound)

    unique: list[Reference] = []
    seen: set[tuple[ComponentKind, str]] = set()
    for ref in refs:
        key = (ref.kind, ref.name)
        if key not in seen:
            seen.add(key)
            unique.append(ref)
    return unique
