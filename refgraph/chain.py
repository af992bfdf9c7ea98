"""Chain Tracer: the delegation tree below a command, agent or skill.

Tracing follows a fixed kind ladder:

    command --Task()--> agent --skill usage--> skill (leaf)

Only components that exist in the index appear in the tree. There is no
visited set. Every step moves one rung down the ladder, so a trace ends after
at most three levels even when agents delegate to each other in a loop; run
the cycle detector for those.

Usage:
    from refgraph.chain import format_chain, trace_chain

    link = trace_chain(index, ComponentKind.COMMAND, "deploy")
    if link:
        print(format_chain(link))
"""

from __future__ import annotations

from dataclasses import dataclass, field

from refgraph.component_index import ComponentIndex
from refgraph.models import Component, ComponentKind
from refgraph.references import (
    Reference,
    find_skill_references,
    find_task_references,
    frontmatter_skills,
)


@dataclass
class ChainLink:
    """One node of a traced chain."""

    kind: ComponentKind
    name: str
    path: str
    lines: int
    children: list[ChainLink] = field(default_factory=list)

    @property
    def depth(self) -> int:
        """Number of levels in the tree rooted here (a leaf is 1)."""
        return 1 + max((child.depth for child in self.children), default=0)


def _next_rung(component: Component) -> list[Reference]:
    if component.kind == ComponentKind.COMMAND:
        # One child per Task() call, repeats included
        return find_task_references(component.scan_text, unique=False)
    if component.kind == ComponentKind.AGENT:
        refs = find_skill_references(component.scan_text)
        known = {ref.name for ref in refs}
        refs.extend(r for r in frontmatter_skills(component.frontmatter) if r.name not in known)
        return refs
    return []


def trace_chain(index: ComponentIndex, kind: ComponentKind, name: str) -> ChainLink | None:
    """Trace outgoing references from ``kind:name``; None if it does not exist."""
    component = index.get(kind, name)
    if component is None:
        return None

    link = ChainLink(
        kind=component.kind,
        name=component.name,
        path=component.rel_path,
        lines=component.line_count,
    )
    for ref in _next_rung(component):
        child = trace_chain(index, ref.kind, ref.name)
        if child is not None:
            link.children.append(child)
    return link


def _format_node(link: ChainLink) -> str:
    return f"{link.name} ({link.kind}, {link.lines} lines)"


def _format_child(link: ChainLink, prefix: str, is_last: bool, lines: list[str]) -> None:
    """Format a child node and recurse."""
    connector = "└── " if is_last else "├── "
    lines.append(f"{prefix}{connector}{_format_node(link)}")

    child_prefix = prefix + ("    " if is_last else "│   ")
    for i, child in enumerate(link.children):
        _format_child(child, child_prefix, i == len(link.children) - 1, lines)


def format_chain(link: ChainLink) -> str:
    """Render a traced chain as a box-drawing tree, depth first."""
    lines = [_format_node(link)]
    for i, child in enumerate(link.children):
        _format_child(child, "", i == len(link.children) - 1, lines)
    return "\n".join(lines) + "\n"
