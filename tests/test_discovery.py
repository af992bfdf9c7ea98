"""Tests for file discovery and path classification."""

import pytest

from refgraph.discovery import classify_path, discover_components
from refgraph.models import ComponentKind


@pytest.mark.parametrize(
    ("rel_path", "kind"),
    [
        ("skills/foo/SKILL.md", ComponentKind.SKILL),
        (".claude/skills/foo/SKILL.md", ComponentKind.SKILL),
        ("skills/group/foo/skill.md", ComponentKind.SKILL),
        ("agents/x.md", ComponentKind.AGENT),
        (".claude/agents/team/x.md", ComponentKind.AGENT),
        (".claude/commands/sub/y.md", ComponentKind.COMMAND),
        ("CLAUDE.md", ComponentKind.CONTEXT),
        (".claude/settings.json", ComponentKind.SETTINGS),
        ("plugin/.claude-plugin/plugin.json", ComponentKind.PLUGIN),
        ("rules/r.md", ComponentKind.RULE),
        ("output-styles/terse.md", ComponentKind.OUTPUT_STYLE),
        ("README.md", None),
        ("skills/foo/references/guide.md", None),
        ("skills/SKILL.md", None),
        ("agents/notes.txt", None),
        ("docs/agents/x.md", None),
    ],
)
def test_classify_path(rel_path, kind):
    assert classify_path(rel_path) == kind


def test_discover_components(write_tree):
    root = write_tree(
        {
            "agents/b.md": "---\nname: b\n---\nBody\n",
            "agents/draft-wip.md": "Not ready\n",
            "commands/a.md": "Task(b)\n",
            "skills/s/SKILL.md": "Skill body\n",
            "node_modules/pkg/agents/x.md": "Vendored\n",
            "notes.md": "Not a component\n",
        }
    )

    components = discover_components(root, exclude=["agents/draft-*"])

    assert [c.rel_path for c in components] == [
        "agents/b.md",
        "commands/a.md",
        "skills/s/SKILL.md",
    ]
    agent = components[0]
    assert (agent.kind, agent.name) == (ComponentKind.AGENT, "b")
    assert agent.frontmatter == {"name": "b"}


def test_unreadable_file_is_skipped(tmp_path):
    (tmp_path / "agents").mkdir()
    (tmp_path / "agents" / "bad.md").write_bytes(b"\xff\xfe\x00bad")
    (tmp_path / "agents" / "good.md").write_text("ok", encoding="utf-8")

    components = discover_components(tmp_path)

    assert [c.name for c in components] == ["good"]
