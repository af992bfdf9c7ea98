"""YAML frontmatter parsing for component files.

Components are markdown files with an optional ``---`` delimited YAML block at
the top. Parsing never raises: a broken block only means the component's
frontmatter-based checks are skipped.
"""

from __future__ import annotations

import logging
import re
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# Opening delimiter on the first line, closing delimiter on its own line
_FRONTMATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
# Empty block: "---\n---"
_EMPTY_FRONTMATTER_RE = re.compile(r"\A---[ \t]*\r?\n---[ \t]*(?:\r?\n|\Z)")


def split_frontmatter(content: str) -> tuple[str | None, str]:
    """Split content into (raw YAML, body).

    Returns ``(None, content)`` when the file has no frontmatter block.
    """
    if not content.startswith("---"):
        return None, content

    empty = _EMPTY_FRONTMATTER_RE.match(content)
    if empty:
        return "", content[empty.end():]

    match = _FRONTMATTER_RE.match(content)
    if not match:
        return None, content
    return match.group(1), content[match.end():]


def parse_frontmatter(content: str) -> tuple[dict[str, Any] | None, str]:
    """Parse YAML frontmatter.

    Args:
        content: Full file contents.

    Returns:
        ``(data, body)``. ``data`` is ``{}`` when there is no frontmatter and
        ``None`` when the block is malformed or not a mapping.
    """
    raw, body = split_frontmatter(content)
    if raw is None or not raw.strip():
        return {}, body

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        logger.debug("Ignoring malformed frontmatter: %s", e)
        return None, body

    if data is None:
        return {}, body
    if not isinstance(data, dict):
        logger.debug("Ignoring non-mapping frontmatter (%s)", type(data).__name__)
        return None, body

    # YAML allows non-string keys; the checks only look up string keys
    return {str(k): v for k, v in data.items()}, body
