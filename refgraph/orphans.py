"""Orphan Finder: skills nothing points at.

A skill counts as referenced when:
- a command names it with skill usage, or in Task() when the target is not a
  ``-specialist`` agent name
- an agent uses it in its body or preloads it via frontmatter ``skills``
- a trigger map under the lint root routes to it
- another skill's text (frontmatter included) contains its name anywhere

The last rule is a plain substring test. A skill whose name happens to occur
in unrelated prose is never reported.
"""

from __future__ import annotations

import logging
from pathlib import Path

from refgraph.component_index import ComponentIndex
from refgraph.models import ComponentKind, Diagnostic, Severity
from refgraph.references import find_skill_references, find_task_references, frontmatter_skills
from refgraph.text import strip_code_fences
from refgraph.triggers import find_trigger_maps, parse_trigger_table

logger = logging.getLogger(__name__)


def referenced_skills(index: ComponentIndex, root: Path | None = None) -> set[str]:
    """Names of skills with at least one incoming reference.

    With ``root``, skills routed to from trigger maps count as referenced.
    """
    referenced: set[str] = set()

    if root is not None:
        for rel_path, contents in find_trigger_maps(root):
            for mapping in parse_trigger_table(rel_path, contents):
                if mapping.kind == ComponentKind.SKILL:
                    referenced.add(mapping.name)

    for command in index.components(ComponentKind.COMMAND):
        for ref in find_task_references(command.scan_text):
            if not ref.name.endswith("-specialist") and index.has(ComponentKind.SKILL, ref.name):
                referenced.add(ref.name)
        referenced.update(ref.name for ref in find_skill_references(command.scan_text))

    for agent in index.components(ComponentKind.AGENT):
        referenced.update(ref.name for ref in find_skill_references(agent.scan_text))
        referenced.update(ref.name for ref in frontmatter_skills(agent.frontmatter))

    # Unnameable skills are indexed under "", which every string contains
    names = [name for name in index.names(ComponentKind.SKILL) if name]
    for skill in index.components(ComponentKind.SKILL):
        # Frontmatter counts here: a description may name a sibling skill
        text = strip_code_fences(skill.contents)
        referenced.update(name for name in names if name != skill.name and name in text)

    return referenced


def find_orphaned_skills(index: ComponentIndex, root: Path | None = None) -> list[Diagnostic]:
    """One info diagnostic per unreferenced skill, sorted by name."""
    referenced = referenced_skills(index, root)
    orphans: list[Diagnostic] = []
    for skill in index.components(ComponentKind.SKILL):
        if not skill.name or skill.name in referenced:
            continue
        orphans.append(
            Diagnostic(
                file=skill.rel_path,
                message=(
                    f"Skill '{skill.name}' has no incoming references - "
                    "consider adding crossrefs from commands/agents/skills"
                ),
                severity=Severity.INFO,
            )
        )
    logger.debug("%d of %d skills are orphaned", len(orphans), len(index.skills))
    return orphans
