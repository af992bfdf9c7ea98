"""Shared fixtures: build component sets in memory or on disk."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from refgraph.component_index import ComponentIndex, load_component
from refgraph.discovery import classify_path
from refgraph.models import Component


def build_components(files: dict[str, str]) -> list[Component]:
    """Classify each relative path and load it as a Component."""
    components = []
    for rel_path, contents in files.items():
        kind = classify_path(rel_path)
        assert kind is not None, f"Fixture path is not a component: {rel_path}"
        components.append(load_component(kind, rel_path, contents))
    return components


@pytest.fixture
def make_components() -> Callable[[dict[str, str]], list[Component]]:
    return build_components


@pytest.fixture
def make_index() -> Callable[[dict[str, str]], ComponentIndex]:
    def _make(files: dict[str, str]) -> ComponentIndex:
        return ComponentIndex(build_components(files))

    return _make


@pytest.fixture
def write_tree(tmp_path: Path) -> Callable[[dict[str, str]], Path]:
    """Write ``{relative path: contents}`` under tmp_path and return the root."""

    def _write(files: dict[str, str]) -> Path:
        for rel_path, contents in files.items():
            path = tmp_path / rel_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(contents, encoding="utf-8")
        return tmp_path

    return _write
