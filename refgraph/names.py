"""Canonical component names, derived from relative paths alone.

    agents/foo-specialist.md          -> agent "foo-specialist"
    .claude/skills/foo/SKILL.md       -> skill "foo"
    plugins/x/skills/foo/refs/SKILL.md -> skill "foo"
    commands/deploy.md                -> command "deploy"
"""

from __future__ import annotations

import posixpath


def _last_segment(path: str) -> str:
    return path.replace("\\", "/").rstrip("/").split("/")[-1]


def extract_agent_name(path: str) -> str:
    """agents/foo-specialist.md -> foo-specialist"""
    return posixpath.splitext(_last_segment(path))[0]


def extract_command_name(path: str) -> str:
    """commands/foo.md -> foo"""
    return posixpath.splitext(_last_segment(path))[0]


def extract_skill_name(path: str) -> str:
    """skills/foo-bar/SKILL.md -> foo-bar

    Returns "" when the path has no ``skills`` directory segment followed by
    another segment.
    """
    parts = path.replace("\\", "/").split("/")
    for i, part in enumerate(parts[:-1]):
        if part == "skills":
            return parts[i + 1]
    return ""


def extract_name(kind: str, path: str) -> str:
    """Canonical name for a component of ``kind`` at ``path``."""
    if kind == "skill":
        return extract_skill_name(path)
    if kind == "agent":
        return extract_agent_name(path)
    if kind == "command":
        return extract_command_name(path)
    # Non-graph kinds are named after their file
    return _last_segment(path)
