"""Cycle Detector: circular references between agents, skills and commands.

The reference graph is a ``networkx.DiGraph`` keyed by node ids
(``"agent:foo"``). Only references that resolve in the index become edges.
Cycle search is a three-colour DFS (white unvisited, gray on the current
path, black finished) driven by an explicit stack, so deep delegation chains
cannot hit the recursion limit.

The same DFS finds ``@path`` import cycles between context files.
"""

from __future__ import annotations

import logging
import posixpath
import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field

import networkx as nx

from refgraph.component_index import ComponentIndex
from refgraph.models import Component, ComponentKind, Diagnostic, LintSummary, Severity
from refgraph.references import outgoing_references
from refgraph.text import strip_code_fences

logger = logging.getLogger(__name__)

ARROW = " → "

# DFS start order; within a kind nodes are visited by sorted name
START_ORDER = (ComponentKind.COMMAND, ComponentKind.AGENT, ComponentKind.SKILL)

WHITE, GRAY, BLACK = 0, 1, 2

# @path imports; a backtick earlier on the line means inline code
IMPORT_PATTERN = re.compile(r"^[^`\n]*?@([~./][^\s]+)", re.MULTILINE)


@dataclass
class Cycle:
    """A closed walk through the reference graph (first node == last node)."""

    path: list[str]  # Node ids
    kind: str  # Component kinds along the path, e.g. "agent → skill → agent"
    canonical: tuple[str, ...] = field(init=False)

    def __post_init__(self) -> None:
        self.canonical = canonical_form(self.path)

    @property
    def names(self) -> list[str]:
        return [node.split(":", 1)[1] for node in self.path]


def canonical_form(path: list[str]) -> tuple[str, ...]:
    """Rotation of the open cycle that starts at its smallest node id."""
    open_path = path[:-1] if len(path) > 1 and path[0] == path[-1] else path
    if not open_path:
        return ()
    start = open_path.index(min(open_path))
    return tuple(open_path[start:] + open_path[:start])


def build_reference_graph(index: ComponentIndex) -> nx.DiGraph:
    """Directed graph of resolved references between graph components."""
    graph = nx.DiGraph()
    for kind in START_ORDER:
        for component in index.components(kind):
            graph.add_node(
                component.node_id,
                kind=component.kind,
                name=component.name,
                path=component.rel_path,
            )

    for kind in START_ORDER:
        for component in index.components(kind):
            for ref in outgoing_references(component):
                target = index.get(ref.kind, ref.name)
                if target is None:
                    continue
                # Self-loops stay: an agent that delegates to itself is a cycle
                graph.add_edge(component.node_id, target.node_id, pattern=ref.pattern)

    logger.debug(
        "Reference graph built: %d nodes, %d edges",
        graph.number_of_nodes(),
        graph.number_of_edges(),
    )
    return graph


def _walk_cycles(
    successors: Mapping[str, Iterable[str]], starts: Iterable[str]
) -> Iterator[list[str]]:
    """Yield every cycle closed by a back edge, as ``path[idx:] + [node]``."""
    color: dict[str, int] = {}
    for start in starts:
        if color.get(start, WHITE) != WHITE:
            continue

        color[start] = GRAY
        path = [start]
        position = {start: 0}
        frames = [iter(successors[start])]

        while frames:
            for succ in frames[-1]:
                state = color.get(succ, WHITE)
                if state == GRAY:
                    yield path[position[succ] :] + [succ]
                elif state == WHITE and succ in successors:
                    color[succ] = GRAY
                    position[succ] = len(path)
                    path.append(succ)
                    frames.append(iter(successors[succ]))
                    break
            else:
                done = path.pop()
                del position[done]
                color[done] = BLACK
                frames.pop()


def detect_cycles(graph: nx.DiGraph) -> list[Cycle]:
    """All distinct cycles reachable by DFS, in discovery order."""
    starts: list[str] = []
    for kind in START_ORDER:
        starts.extend(
            sorted(
                (node for node, data in graph.nodes(data=True) if data.get("kind") == kind),
                key=lambda node: graph.nodes[node]["name"],
            )
        )

    cycles: list[Cycle] = []
    seen: set[tuple[str, ...]] = set()
    for path in _walk_cycles(graph.adj, starts):
        kinds = ARROW.join(str(graph.nodes[node]["kind"]) for node in path)
        cycle = Cycle(path=path, kind=kinds)
        if cycle.canonical in seen:
            continue
        seen.add(cycle.canonical)
        cycles.append(cycle)
    return cycles


def format_cycle(cycle: Cycle) -> str:
    """Component names joined by arrows: ``a → b → a``."""
    return ARROW.join(cycle.names)


def report_cycles(summary: LintSummary, cycles: list[Cycle]) -> None:
    """Attach one error per distinct cycle to every component on it.

    Runs once, after all per-file results are recorded. Components with no
    result in the summary are skipped.
    """
    # Keyed on node ids: an agent and a skill may share a name
    reported: set[tuple[str, ...]] = set()
    for cycle in cycles:
        if cycle.canonical in reported:
            continue
        reported.add(cycle.canonical)
        formatted = format_cycle(cycle)
        summary.cycles.append(formatted)

        touched: set[str] = set()
        for node in cycle.path:
            if node in touched:
                continue
            touched.add(node)
            kind, name = node.split(":", 1)
            result = summary.find_result(ComponentKind(kind), name)
            if result is None:
                continue
            summary.attach_error(
                result,
                Diagnostic(
                    file=result.file,
                    message=f"Circular dependency detected: {formatted}",
                    severity=Severity.ERROR,
                ),
            )

    if reported:
        logger.info("Found %d reference cycle(s)", len(reported))


def find_cycles(index: ComponentIndex) -> list[Cycle]:
    return detect_cycles(build_reference_graph(index))


# ── @import cycles ──────────────────────────────────────────────────


def extract_imports(contents: str) -> list[str]:
    """Raw ``@path`` import targets outside fenced code, first-seen order."""
    imports: list[str] = []
    for match in IMPORT_PATTERN.finditer(strip_code_fences(contents)):
        target = match.group(1)
        if target not in imports:
            imports.append(target)
    return imports


def resolve_import(target: str, importer: str) -> str | None:
    """Resolve an import against the importing file's directory.

    Home-relative and absolute imports point outside the scanned tree and
    resolve to None.
    """
    if target.startswith(("~", "/")):
        return None
    resolved = posixpath.normpath(posixpath.join(posixpath.dirname(importer), target))
    if resolved.startswith("../"):
        return None
    return resolved


def detect_import_cycles(files: Mapping[str, str]) -> list[Diagnostic]:
    """Find circular @imports among ``files`` (relative path -> contents).

    One error per cycle, filed against the first file of the cycle.
    """
    edges: dict[str, list[str]] = {}
    for path in sorted(files):
        targets: list[str] = []
        for target in extract_imports(files[path]):
            resolved = resolve_import(target, path)
            if resolved is not None and resolved in files and resolved not in targets:
                targets.append(resolved)
        edges[path] = targets

    diagnostics: list[Diagnostic] = []
    seen: set[tuple[str, ...]] = set()
    for path in _walk_cycles(edges, sorted(edges)):
        canonical = canonical_form(path)
        if canonical in seen:
            continue
        seen.add(canonical)
        chain = " -> ".join(posixpath.basename(node) for node in path)
        diagnostics.append(
            Diagnostic(
                file=path[0],
                message=f"Circular @import detected: {chain}",
                severity=Severity.ERROR,
            )
        )
    return diagnostics


def context_files(components: Iterable[Component]) -> dict[str, str]:
    """Markdown components that can take part in @import chains."""
    return {c.rel_path: c.contents for c in components if c.rel_path.endswith(".md")}
