"""Shared data models for refgraph.

Components, diagnostics and lint results are plain pydantic models so they can
be dumped straight to JSON by the CLI. Nothing here knows how references are
extracted; see ``refgraph.references`` for that.
"""

from __future__ import annotations

from enum import StrEnum
from functools import cached_property
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from refgraph.frontmatter import split_frontmatter
from refgraph.names import extract_name
from refgraph.text import blank_frontmatter, strip_code_fences


class ComponentKind(StrEnum):
    AGENT = "agent"
    SKILL = "skill"
    COMMAND = "command"

    # Discovered but not part of the reference graph
    CONTEXT = "context"
    RULE = "rule"
    SETTINGS = "settings"
    PLUGIN = "plugin"
    OUTPUT_STYLE = "output-style"


GRAPH_KINDS: frozenset[ComponentKind] = frozenset(
    {ComponentKind.AGENT, ComponentKind.SKILL, ComponentKind.COMMAND}
)


class Severity(StrEnum):
    """Diagnostic severity tiers, most severe first."""

    ERROR = "error"  # Broken reference, fails the run
    WARNING = "warning"
    SUGGESTION = "suggestion"
    INFO = "info"  # Style observation only

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def at_least(self, threshold: Severity) -> bool:
        """True if this severity is as severe as ``threshold`` or more."""
        return self.rank <= threshold.rank


_SEVERITY_RANK = {
    Severity.ERROR: 0,
    Severity.WARNING: 1,
    Severity.SUGGESTION: 2,
    Severity.INFO: 3,
}


class Source(StrEnum):
    """Where a rule comes from. Used for report grouping only."""

    OBSERVATION = "refgraph-observation"
    ANTHROPIC_DOCS = "anthropic-docs"


class Component(BaseModel):
    """One discovered agent, skill, command (or other) definition file."""

    model_config = ConfigDict(
        frozen=True,
        # Derived text views are computed once per component
        ignored_types=(cached_property,),
    )

    kind: ComponentKind
    rel_path: str
    contents: str
    # None when the frontmatter block exists but could not be parsed
    frontmatter: dict[str, Any] | None = None

    @cached_property
    def name(self) -> str:
        """Canonical name, always derived from kind and path."""
        return extract_name(self.kind, self.rel_path)

    @property
    def node_id(self) -> str:
        return f"{self.kind}:{self.name}"

    @property
    def line_count(self) -> int:
        return self.contents.count("\n") + 1

    @cached_property
    def body(self) -> str:
        """Contents below the frontmatter block."""
        return split_frontmatter(self.contents)[1]

    @cached_property
    def scan_text(self) -> str:
        """Contents with frontmatter and fenced code blanked out.

        Reference extraction runs on this text. Line numbers are unchanged.
        """
        return strip_code_fences(blank_frontmatter(self.contents))


class Diagnostic(BaseModel):
    """A single finding attached to a component file."""

    file: str
    message: str
    severity: Severity
    source: Source = Source.OBSERVATION
    line: int | None = None
    suggested_path: str | None = Field(
        None, description="File that would satisfy a missing reference."
    )

    def __str__(self) -> str:
        location = f"{self.file}:{self.line}" if self.line else self.file
        return f"{location}: {self.severity.value} {self.message}"


class LintResult(BaseModel):
    """Diagnostics for a single component, bucketed by severity."""

    file: str
    kind: ComponentKind
    name: str
    errors: list[Diagnostic] = Field(default_factory=list)
    warnings: list[Diagnostic] = Field(default_factory=list)
    suggestions: list[Diagnostic] = Field(default_factory=list)
    infos: list[Diagnostic] = Field(default_factory=list)
    success: bool = True

    def add(self, diagnostic: Diagnostic) -> None:
        if diagnostic.severity == Severity.ERROR:
            self.errors.append(diagnostic)
            self.success = False
        elif diagnostic.severity == Severity.WARNING:
            self.warnings.append(diagnostic)
        elif diagnostic.severity == Severity.SUGGESTION:
            self.suggestions.append(diagnostic)
        else:
            self.infos.append(diagnostic)

    def extend(self, diagnostics: list[Diagnostic]) -> None:
        for diagnostic in diagnostics:
            self.add(diagnostic)

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return [*self.errors, *self.warnings, *self.suggestions, *self.infos]


class LintSummary(BaseModel):
    """Aggregate results for one run.

    Counters are kept in step with ``results``; batch passes that attach
    diagnostics after the fact (cycle reporting) must go through
    ``attach_error`` so the counts stay consistent.
    """

    root: str = ""
    results: list[LintResult] = Field(default_factory=list)
    total_files: int = 0
    successful_files: int = 0
    failed_files: int = 0
    total_errors: int = 0
    total_warnings: int = 0
    total_suggestions: int = 0
    total_infos: int = 0
    cycles: list[str] = Field(default_factory=list)
    orphans: list[Diagnostic] = Field(default_factory=list)
    # Findings that belong to no single component result (e.g. @import cycles)
    extra: list[Diagnostic] = Field(default_factory=list)

    def record(self, result: LintResult) -> None:
        self.results.append(result)
        self.total_files += 1
        if result.success:
            self.successful_files += 1
        else:
            self.failed_files += 1
        self.total_errors += len(result.errors)
        self.total_warnings += len(result.warnings)
        self.total_suggestions += len(result.suggestions)
        self.total_infos += len(result.infos)

    def attach_error(self, result: LintResult, diagnostic: Diagnostic) -> None:
        """Attach an error to an already-recorded result."""
        was_successful = result.success
        result.add(diagnostic)
        self.total_errors += 1
        if was_successful:
            self.successful_files -= 1
            self.failed_files += 1

    def add_extra(self, diagnostic: Diagnostic) -> None:
        self.extra.append(diagnostic)
        self._count(diagnostic)

    def add_orphan(self, diagnostic: Diagnostic) -> None:
        self.orphans.append(diagnostic)
        self._count(diagnostic)

    def _count(self, diagnostic: Diagnostic) -> None:
        if diagnostic.severity == Severity.ERROR:
            self.total_errors += 1
        elif diagnostic.severity == Severity.WARNING:
            self.total_warnings += 1
        elif diagnostic.severity == Severity.SUGGESTION:
            self.total_suggestions += 1
        else:
            self.total_infos += 1

    def find_result(self, kind: ComponentKind, name: str) -> LintResult | None:
        for result in self.results:
            if result.kind == kind and result.name == name:
                return result
        return None

    def iter_diagnostics(self) -> list[Diagnostic]:
        diagnostics: list[Diagnostic] = []
        for result in self.results:
            diagnostics.extend(result.diagnostics)
        diagnostics.extend(self.extra)
        diagnostics.extend(self.orphans)
        return diagnostics

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return self.model_dump(mode="json")
