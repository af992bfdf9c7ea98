"""Tests for orphaned skill detection."""

from refgraph.component_index import ComponentIndex
from refgraph.discovery import discover_components
from refgraph.models import Severity
from refgraph.orphans import find_orphaned_skills


def test_only_unreferenced_skill_is_reported(make_index):
    """{used, orphan}: only 'orphan' has no incoming reference."""
    # Arrange
    index = make_index(
        {
            "agents/a.md": "Skill: used\n",
            "skills/used/SKILL.md": "Does things.\n",
            "skills/orphan/SKILL.md": "Nothing here.\n",
        }
    )

    # Act
    diagnostics = find_orphaned_skills(index)

    # Assert
    assert len(diagnostics) == 1, f"Expected one orphan, got {diagnostics}"
    assert diagnostics[0].file == "skills/orphan/SKILL.md"
    assert diagnostics[0].severity == Severity.INFO
    assert diagnostics[0].message == (
        "Skill 'orphan' has no incoming references - "
        "consider adding crossrefs from commands/agents/skills"
    )


def test_substring_mention_in_another_skill_counts(make_index):
    """The skill-to-skill check is a raw substring test and stays that way."""
    index = make_index(
        {
            "agents/a.md": "Skill: guide\n",
            "skills/guide/SKILL.md": "For layout questions see the formatting notes.\n",
            "skills/formatting/SKILL.md": "Formatting.\n",
        }
    )

    assert find_orphaned_skills(index) == []


def test_self_mention_does_not_count(make_index):
    index = make_index({"skills/lonely/SKILL.md": "The lonely skill.\n"})

    assert [d.file for d in find_orphaned_skills(index)] == ["skills/lonely/SKILL.md"]


def test_agent_frontmatter_and_command_references_count(make_index):
    index = make_index(
        {
            "agents/a.md": "---\nskills: [preloaded]\n---\nBody.\n",
            "commands/c.md": "Task(direct)\nSkill(called)\n",
            "skills/preloaded/SKILL.md": "P.\n",
            "skills/direct/SKILL.md": "D.\n",
            "skills/called/SKILL.md": "C.\n",
        }
    )

    assert find_orphaned_skills(index) == []


def test_specialist_task_target_is_not_a_skill_reference(make_index):
    index = make_index(
        {
            "commands/c.md": "Task(db-specialist)\n",
            "skills/db-specialist/SKILL.md": "Database work.\n",
        }
    )

    assert len(find_orphaned_skills(index)) == 1


def test_orphans_are_sorted_by_name(make_index):
    index = make_index(
        {
            "skills/zulu/SKILL.md": "Z.\n",
            "skills/alpha/SKILL.md": "A.\n",
        }
    )

    assert [d.file for d in find_orphaned_skills(index)] == [
        "skills/alpha/SKILL.md",
        "skills/zulu/SKILL.md",
    ]


def test_mention_in_sibling_frontmatter_counts(make_index):
    """A sibling skill's description naming this skill is an incoming reference."""
    index = make_index(
        {
            "skills/guide/SKILL.md": "---\ndescription: Pairs with helper\n---\nStart here.\n",
            "skills/helper/SKILL.md": "Read the guide first.\n",
        }
    )

    assert find_orphaned_skills(index) == []


def test_mention_inside_code_fence_does_not_count(make_index):
    index = make_index(
        {
            "skills/guide/SKILL.md": "Start here.\n```\nhelper\n```\n",
            "skills/helper/SKILL.md": "Read the guide first.\n",
        }
    )

    assert [d.file for d in find_orphaned_skills(index)] == ["skills/helper/SKILL.md"]


def test_trigger_map_route_counts_when_root_given(write_tree):
    root = write_tree(
        {
            "skills/router/SKILL.md": "Routes requests.\n",
            "skills/router/references/map.md": "| Trigger | Skill |\n|---|---|\n| db | db-tuning |\n",
            "skills/db-tuning/SKILL.md": "Tune queries.\n",
        }
    )
    index = ComponentIndex(discover_components(root))

    assert "skills/db-tuning/SKILL.md" in [d.file for d in find_orphaned_skills(index)]
    assert [d.file for d in find_orphaned_skills(index, root)] == ["skills/router/SKILL.md"]
