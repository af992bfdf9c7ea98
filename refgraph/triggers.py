"""Trigger maps: routing tables that send keywords to skills and agents.

A skill's ``references/*.md`` file may hold a markdown table whose first
column is a trigger keyword and whose other columns name where the request
goes:

    | Trigger        | Route To              | Never Do |
    |----------------|-----------------------|----------|
    | "run tests"    | `Task(quality-agent)` | ...      |
    | test coverage  | code-testing-qa       |          |

``Task(name)`` in a routing cell is an agent; otherwise every hyphenated
lowercase word in the cell is taken as a skill name. Columns whose header
mentions route, skill, agent or target are routing columns. A table with
none of those treats every column after the keyword as routing.

Usage:
    from refgraph.triggers import find_trigger_maps, parse_trigger_table

    for rel_path, contents in find_trigger_maps(root):
        for mapping in parse_trigger_table(rel_path, contents):
            ...
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from refgraph.models import ComponentKind

logger = logging.getLogger(__name__)

# A table header row with a Trigger column first
TRIGGER_HEADER_PATTERN = re.compile(r"^\|\s*Trigger[^|]*\|", re.IGNORECASE)

# Task(agent) or Task(`agent`) in a routing cell
TRIGGER_TASK_PATTERN = re.compile(r"Task\(\s*`?([a-z0-9][a-z0-9-]*)`?\s*\)")

# Bare lowercase words in a routing cell; only hyphenated ones are kept
TRIGGER_NAME_PATTERN = re.compile(r"\b([a-z][a-z0-9-]{2,})\b")

# references/foo.md inside a cell is a file, not a skill name
REFERENCE_PATH_PATTERN = re.compile(r"references/[^\s)|]+")

ROUTING_KEYWORDS = ("route", "skill", "agent", "target")

REFERENCE_FILE_GLOBS = ("skills/*/references/*.md", ".claude/skills/*/references/*.md")


@dataclass(frozen=True)
class TriggerMapping:
    """One keyword -> target pair from a trigger table row."""

    file: str  # Relative path of the references/*.md file
    keyword: str  # Lowercased first cell of the row
    kind: ComponentKind  # AGENT for Task() cells, SKILL otherwise
    name: str


def is_trigger_map(contents: str) -> bool:
    return any(TRIGGER_HEADER_PATTERN.match(line.strip()) for line in contents.split("\n"))


def is_separator_row(line: str) -> bool:
    """|---|:--:| style rows between the header and the data."""
    stripped = line.strip()
    if not stripped.startswith("|") or "-" not in stripped:
        return False
    return all(ch in "|-: \t" for ch in stripped)


def is_likely_name(word: str) -> bool:
    # Real skill and agent names are hyphenated; single words are prose
    return len(word) >= 4 and "-" in word


def routing_columns(header: str) -> list[int]:
    """Indices into ``header.split("|")`` of the columns holding targets."""
    cells = header.split("|")
    candidates = range(2, len(cells) - 1)
    columns = [
        i
        for i in candidates
        if any(keyword in cells[i].strip().lower() for keyword in ROUTING_KEYWORDS)
    ]
    return columns or list(candidates)


def _row_targets(cell: str) -> Iterator[tuple[ComponentKind, str]]:
    agents = TRIGGER_TASK_PATTERN.findall(cell)
    if agents:
        for name in agents:
            yield ComponentKind.AGENT, name.strip()
        return
    for name in TRIGGER_NAME_PATTERN.findall(REFERENCE_PATH_PATTERN.sub("", cell)):
        if is_likely_name(name):
            yield ComponentKind.SKILL, name


def parse_row(file: str, row: str, columns: list[int]) -> list[TriggerMapping]:
    """Mappings from one data row, each target once."""
    cells = row.split("|")
    if len(cells) < 3:
        return []
    keyword = cells[1].strip().lower()

    mappings: list[TriggerMapping] = []
    seen: set[tuple[ComponentKind, str]] = set()
    for i in columns:
        if i >= len(cells):
            continue
        for kind, name in _row_targets(cells[i].strip()):
            if (kind, name) in seen:
                continue
            seen.add((kind, name))
            mappings.append(TriggerMapping(file=file, keyword=keyword, kind=kind, name=name))
    return mappings


def parse_trigger_table(file: str, contents: str) -> list[TriggerMapping]:
    """Every keyword -> target mapping in the trigger tables of ``contents``.

    Several tables per file are fine; leaving a table (a line that does not
    start with ``|``) resets the header state.
    """
    mappings: list[TriggerMapping] = []
    columns: list[int] | None = None
    for raw_line in contents.split("\n"):
        line = raw_line.strip()
        if not line.startswith("|"):
            columns = None
            continue
        if columns is None:
            if TRIGGER_HEADER_PATTERN.match(line):
                columns = routing_columns(line)
            continue
        if is_separator_row(line):
            continue
        mappings.extend(parse_row(file, line, columns))
    return mappings


def find_trigger_maps(root: Path) -> Iterator[tuple[str, str]]:
    """Yield ``(relative path, contents)`` of each trigger map under ``root``."""
    seen: set[Path] = set()
    for pattern in REFERENCE_FILE_GLOBS:
        for path in sorted(root.glob(pattern)):
            if path in seen or not path.is_file():
                continue
            seen.add(path)
            try:
                contents = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Cannot read %s: %s", path, e)
                continue
            if is_trigger_map(contents):
                yield path.relative_to(root).as_posix(), contents
