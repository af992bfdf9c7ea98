"""File discovery and classification.

Walks a configuration tree and turns each recognised file into a Component.
Classification is by relative path; the first matching rule wins.
"""

from __future__ import annotations

import fnmatch
import logging
import re
from collections.abc import Iterable, Iterator
from pathlib import Path

from refgraph.component_index import load_component
from refgraph.models import Component, ComponentKind

logger = logging.getLogger(__name__)

# Directories to skip
SKIP_DIRS = {
    "__pycache__",
    ".pytest_cache",
    ".git",
    "node_modules",
    ".venv",
    "venv",
    ".mypy_cache",
    ".ruff_cache",
}

# Every rule may sit under a .claude/ directory
_PREFIX = r"^(?:\.claude/)?"

# Classification rules (regex on the relative path, component kind).
# Order matters: SKILL.md files live under skills/ and must not fall through
# to a broader rule.
_PATH_KIND_RULES: list[tuple[re.Pattern[str], ComponentKind]] = [
    (re.compile(_PREFIX + r"skills/.+/(?:SKILL|skill)\.md$"), ComponentKind.SKILL),
    (re.compile(_PREFIX + r"settings\.json$"), ComponentKind.SETTINGS),
    (re.compile(_PREFIX + r"CLAUDE\.md$"), ComponentKind.CONTEXT),
    (re.compile(r"(?:^|/)\.claude-plugin/plugin\.json$"), ComponentKind.PLUGIN),
    (re.compile(_PREFIX + r"rules/(?:.+/)?[^/]+\.md$"), ComponentKind.RULE),
    (re.compile(_PREFIX + r"agents/(?:.+/)?[^/]+\.md$"), ComponentKind.AGENT),
    (re.compile(_PREFIX + r"output-styles/(?:.+/)?[^/]+\.md$"), ComponentKind.OUTPUT_STYLE),
    (re.compile(_PREFIX + r"commands/(?:.+/)?[^/]+\.md$"), ComponentKind.COMMAND),
]


def classify_path(rel_path: str) -> ComponentKind | None:
    """Component kind for a relative path, or None if it is not a component."""
    normalized = rel_path.replace("\\", "/")
    for pattern, kind in _PATH_KIND_RULES:
        if pattern.search(normalized):
            return kind
    return None


def _is_excluded(rel_path: str, exclude: Iterable[str]) -> bool:
    return any(fnmatch.fnmatch(rel_path, pattern) for pattern in exclude)


def iter_component_files(root: Path, exclude: Iterable[str] = ()) -> Iterator[tuple[Path, str]]:
    """Yield ``(path, relative posix path)`` for candidate files, sorted."""
    exclude = list(exclude)
    # Hidden .claude and .claude-plugin directories are part of the tree
    for path in sorted(root.rglob("*")):
        rel = path.relative_to(root)
        if any(part in SKIP_DIRS for part in rel.parts):
            continue
        if not path.is_file():
            continue
        rel_path = rel.as_posix()
        if _is_excluded(rel_path, exclude):
            logger.debug("Excluded %s", rel_path)
            continue
        yield path, rel_path


def discover_components(root: Path, exclude: Iterable[str] = ()) -> list[Component]:
    """Load every recognised component under ``root``, sorted by path.

    Files that cannot be read as UTF-8 are logged and skipped.
    """
    components: list[Component] = []
    for path, rel_path in iter_component_files(root, exclude):
        kind = classify_path(rel_path)
        if kind is None:
            continue
        try:
            contents = path.read_text(encoding="utf-8")
        except (UnicodeDecodeError, OSError) as e:
            logger.warning("Skipping unreadable file %s: %s", rel_path, e)
            continue
        components.append(load_component(kind, rel_path, contents))

    logger.info("Discovered %d components under %s", len(components), root)
    return components
