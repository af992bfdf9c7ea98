"""Component Index: canonical names and per-kind lookup.

Every graph component is indexed by ``(kind, canonical name)``. The name is
derived from the relative path alone (see ``refgraph.names``):

    agents/foo-specialist.md          -> agent "foo-specialist"
    .claude/skills/foo/SKILL.md       -> skill "foo"
    commands/deploy.md                -> command "deploy"

Usage:
    from refgraph.component_index import ComponentIndex, load_component

    index = ComponentIndex([load_component(kind, rel_path, text), ...])
    agent = index.get(ComponentKind.AGENT, "foo-specialist")
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from refgraph.frontmatter import parse_frontmatter
from refgraph.models import GRAPH_KINDS, Component, ComponentKind
from refgraph.names import (
    extract_agent_name,
    extract_command_name,
    extract_name,
    extract_skill_name,
)

__all__ = [
    "ComponentIndex",
    "extract_agent_name",
    "extract_command_name",
    "extract_name",
    "extract_skill_name",
    "load_component",
]

logger = logging.getLogger(__name__)


def load_component(kind: ComponentKind, rel_path: str, contents: str) -> Component:
    """Build a Component from a discovered file, parsing its frontmatter."""
    frontmatter, _ = parse_frontmatter(contents)
    if frontmatter is None:
        logger.debug("%s: frontmatter could not be parsed, skipping its checks", rel_path)
    return Component(kind=kind, rel_path=rel_path, contents=contents, frontmatter=frontmatter)


class ComponentIndex:
    """Read-only ``(kind, name) -> Component`` lookup for one run.

    Duplicate names within a kind are not an error: the last one discovered
    wins, as it would on a case-folding filesystem.
    """

    def __init__(self, components: Iterable[Component]):
        maps: dict[ComponentKind, dict[str, Component]] = {kind: {} for kind in GRAPH_KINDS}
        for component in components:
            if component.kind not in maps:
                continue
            existing = maps[component.kind].get(component.name)
            if existing is not None:
                logger.debug(
                    "Duplicate %s name %r: %s replaces %s",
                    component.kind,
                    component.name,
                    component.rel_path,
                    existing.rel_path,
                )
            maps[component.kind][component.name] = component

        self._maps: dict[ComponentKind, Mapping[str, Component]] = {
            kind: MappingProxyType(entries) for kind, entries in maps.items()
        }

    @property
    def agents(self) -> Mapping[str, Component]:
        return self._maps[ComponentKind.AGENT]

    @property
    def skills(self) -> Mapping[str, Component]:
        return self._maps[ComponentKind.SKILL]

    @property
    def commands(self) -> Mapping[str, Component]:
        return self._maps[ComponentKind.COMMAND]

    def get(self, kind: ComponentKind, name: str) -> Component | None:
        # The empty name is where unnameable files land; nothing may resolve to it
        if not name or kind not in self._maps:
            return None
        return self._maps[kind].get(name)

    def has(self, kind: ComponentKind, name: str) -> bool:
        return self.get(kind, name) is not None

    def names(self, kind: ComponentKind) -> list[str]:
        """Sorted names for ``kind``, for deterministic iteration."""
        return sorted(self._maps.get(kind, {}))

    def components(self, kind: ComponentKind) -> list[Component]:
        entries = self._maps.get(kind, {})
        return [entries[name] for name in sorted(entries)]

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._maps.values())
