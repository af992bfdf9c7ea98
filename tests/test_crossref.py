"""Tests for the cross-reference validator."""

from refgraph.crossref import (
    CrossReferenceValidator,
    detect_trigger_conflicts,
    validate_skill_reference_files,
    validate_trigger_maps,
)
from refgraph.component_index import ComponentIndex
from refgraph.discovery import discover_components
from refgraph.models import ComponentKind, Severity, Source

KNOWN_AGENT = "---\nname: known\n---\nI help with things.\n"


def _validate(make_index, files, kind, name, builtin_agents=()):
    index = make_index(files)
    validator = CrossReferenceValidator(index, builtin_agents)
    return validator.validate(index.get(kind, name))


def test_missing_task_agent_reported_once(make_index):
    """One diagnostic per distinct missing agent, naming the file to create."""
    # Arrange
    files = {
        "agents/known.md": KNOWN_AGENT,
        "commands/run.md": (
            "Task(known)\nTask(missing-agent)\nTask(general-purpose)\nTask(missing-agent)\n"
        ),
    }

    # Act
    diagnostics = _validate(make_index, files, ComponentKind.COMMAND, "run")

    # Assert
    assert len(diagnostics) == 1, f"Expected exactly one diagnostic, got {diagnostics}"
    diagnostic = diagnostics[0]
    assert diagnostic.severity == Severity.ERROR
    assert diagnostic.message == (
        "Task(missing-agent) references non-existent agent. Create agents/missing-agent.md"
    )
    assert diagnostic.suggested_path == "agents/missing-agent.md"
    assert diagnostic.file == "commands/run.md"
    assert diagnostic.line == 2


def test_configured_builtin_agents_are_allowed(make_index):
    files = {"commands/run.md": "Task(house-reviewer)\n"}

    assert _validate(make_index, files, ComponentKind.COMMAND, "run") != []
    assert (
        _validate(
            make_index, files, ComponentKind.COMMAND, "run", builtin_agents=["house-reviewer"]
        )
        == []
    )


def test_command_missing_skill(make_index):
    diagnostics = _validate(
        make_index, {"commands/run.md": "Load Skill(ghost) first.\n"}, ComponentKind.COMMAND, "run"
    )

    assert [d.message for d in diagnostics] == [
        "Skill(ghost) references non-existent skill. Create skills/ghost/SKILL.md"
    ]


def test_agent_frontmatter_skills_are_validated(make_index):
    files = {
        "skills/present/SKILL.md": "Present.\n",
        "agents/lead.md": "---\nskills:\n  - present\n  - absent\n---\nLead the team.\n",
    }

    diagnostics = _validate(make_index, files, ComponentKind.AGENT, "lead")

    assert len(diagnostics) == 1
    assert diagnostics[0].message == (
        "Frontmatter skills references non-existent skill 'absent'. "
        "Create skills/absent/SKILL.md"
    )
    assert diagnostics[0].source == Source.ANTHROPIC_DOCS


def test_agent_body_references(make_index):
    files = {"agents/lead.md": "Skill: missing-skill\nTask(missing-helper)\n"}

    diagnostics = _validate(make_index, files, ComponentKind.AGENT, "lead")

    assert [d.suggested_path for d in diagnostics] == [
        "skills/missing-skill/SKILL.md",
        "agents/missing-helper.md",
    ]
    assert all(d.severity == Severity.ERROR for d in diagnostics)


def test_agent_tools_task_member_missing_is_warning(make_index):
    files = {"agents/lead.md": "---\ntools: Read, Task(ghost-member)\n---\nLead.\n"}

    diagnostics = _validate(make_index, files, ComponentKind.AGENT, "lead")

    assert len(diagnostics) == 1
    assert diagnostics[0].severity == Severity.WARNING
    assert diagnostics[0].suggested_path == "agents/ghost-member.md"


def test_target_named_in_body_and_frontmatter_reported_once(make_index):
    """Body mention wins; the frontmatter repeat adds nothing."""
    files = {
        "agents/lead.md": "---\nskills: [ghost]\ntools: Task(absent)\n---\nSkill: ghost\nTask(absent)\n",
        "skills/s/SKILL.md": "---\nagent: nobody\n---\nWhen stuck, delegate via nobody.\n",
    }

    agent_diagnostics = _validate(make_index, files, ComponentKind.AGENT, "lead")
    skill_diagnostics = _validate(make_index, files, ComponentKind.SKILL, "s")

    assert [d.message for d in agent_diagnostics] == [
        "Skill: ghost references non-existent skill. Create skills/ghost/SKILL.md",
        "Task(absent) references non-existent agent. Create agents/absent.md",
    ]
    assert all(d.severity == Severity.ERROR for d in agent_diagnostics)
    assert [d.suggested_path for d in skill_diagnostics] == ["agents/nobody.md"]


def test_skill_narrative_and_frontmatter_agent(make_index):
    files = {"skills/s/SKILL.md": "---\nagent: nobody\n---\nFor hard cases delegate to ghost-specialist.\n"}

    diagnostics = _validate(make_index, files, ComponentKind.SKILL, "s")

    assert [d.message for d in diagnostics] == [
        "delegate to ghost-specialist references non-existent agent. "
        "Create agents/ghost-specialist.md",
        "Frontmatter agent field references non-existent agent 'nobody'. Create agents/nobody.md",
    ]
    assert diagnostics[1].source == Source.ANTHROPIC_DOCS


def test_skill_resolving_references_are_clean(make_index):
    files = {
        "agents/owner.md": "Owner.\n",
        "skills/other/SKILL.md": "Other.\n",
        "skills/s/SKILL.md": "---\nagent: owner\n---\nSee Skill(other). Use Task(general-purpose).\n",
    }

    assert _validate(make_index, files, ComponentKind.SKILL, "s") == []


def test_unused_allowed_tools(make_index):
    files = {
        "agents/known.md": KNOWN_AGENT,
        "commands/run.md": (
            "---\nallowed-tools: Task(known), Bash, Grep\n---\n"
            "Run Task(known) then use the Bash tool.\n"
        ),
    }

    diagnostics = _validate(make_index, files, ComponentKind.COMMAND, "run")

    assert [(d.severity, d.message) for d in diagnostics] == [
        (Severity.INFO, "allowed-tools declares 'Grep' but it's never used in command body")
    ]


def test_unused_allowed_tools_in_declarative_command(make_index):
    index = make_index(
        {
            "commands/report.md": (
                "---\nallowed-tools: Write, Glob\n---\nSave the summary to report.md when done.\n"
            )
        }
    )
    validator = CrossReferenceValidator(index)

    diagnostics = validator.check_unused_allowed_tools(index.get(ComponentKind.COMMAND, "report"))

    assert len(diagnostics) == 2
    assert "more explicit for LLM" in diagnostics[0].message
    assert "'Write'" in diagnostics[0].message
    assert "without obvious invocation" in diagnostics[1].message


def test_fake_flags(make_index):
    """Flags absent from the primary agent are suggestions; routing keys are exempt."""
    files = {
        "agents/known.md": "Supports --verbose mode.\n",
        "commands/run.md": (
            '---\nargument-hint: "[--verbose] [--turbo]"\n---\n'
            "Task(known)\n"
            "| `--route` | goes somewhere |\n"
            "Use --turbo to go fast.\n"
        ),
    }

    diagnostics = _validate(make_index, files, ComponentKind.COMMAND, "run")

    assert len(diagnostics) == 1, f"Only --turbo should be flagged, got {diagnostics}"
    assert diagnostics[0].severity == Severity.SUGGESTION
    assert diagnostics[0].message == (
        "Flag '--turbo' documented but not found in agent 'known' or its skills - may be fake"
    )
    assert diagnostics[0].line == 2


def test_flags_found_in_agent_skills_are_real(make_index):
    files = {
        "skills/speed/SKILL.md": "Pass --turbo to skip checks.\n",
        "agents/known.md": "Skill: speed\n",
        "commands/run.md": "Task(known) with --turbo\n",
    }

    assert _validate(make_index, files, ComponentKind.COMMAND, "run") == []


def test_bare_word_does_not_count_as_flag(make_index):
    files = {
        "agents/known.md": "Runs in turbo mode.\n",
        "commands/run.md": "Task(known) with --turbo\n",
    }

    diagnostics = _validate(make_index, files, ComponentKind.COMMAND, "run")

    assert len(diagnostics) == 1
    assert "--turbo" in diagnostics[0].message


def test_fake_flags_need_a_resolved_agent(make_index):
    files = {"commands/run.md": "Task(general-purpose) with --anything\n"}

    assert _validate(make_index, files, ComponentKind.COMMAND, "run") == []


def test_other_kinds_are_not_validated(make_components):
    components = make_components({"CLAUDE.md": "Task(ghost)\n", "rules/r.md": "Skill: ghost\n"})
    validator = CrossReferenceValidator(ComponentIndex(components))

    assert [validator.validate(c) for c in components] == [[], []]


def test_skill_reference_files(write_tree):
    root = write_tree(
        {
            "skills/s/SKILL.md": "See references/guide.md and references/missing.md.\n",
            "skills/s/references/guide.md": "Guide.\n",
            "skills/s/references/extra.md": "Extra.\n",
        }
    )
    index = ComponentIndex(discover_components(root))

    diagnostics = validate_skill_reference_files(index, root)

    assert [(d.severity, d.file) for d in diagnostics] == [
        (Severity.ERROR, "skills/s/SKILL.md"),
        (Severity.INFO, "skills/s/references/extra.md"),
    ]
    assert diagnostics[0].message == "references/missing.md is mentioned but does not exist on disk"


ROUTING = (
    "| Trigger | Route To |\n"
    "|---------|----------|\n"
    "| review | code-review |\n"
    "| ship it | `Task(release-agent)` |\n"
    "| explore | `Task(general-purpose)` |\n"
    "| again | code-review, ghost-skill |\n"
)


def test_trigger_map_targets_must_exist(write_tree):
    """Missing skills and agents in a routing table are errors; built-ins pass."""
    # Arrange
    root = write_tree(
        {
            "skills/code-review/SKILL.md": "Review code.\n",
            "skills/code-review/references/routing.md": ROUTING,
        }
    )
    index = ComponentIndex(discover_components(root))

    # Act
    diagnostics = validate_trigger_maps(index, root)

    # Assert
    assert [d.message for d in diagnostics] == [
        "Trigger map references non-existent agent 'release-agent'. "
        "Create agents/release-agent.md",
        "Trigger map references non-existent skill 'ghost-skill'. "
        "Create skills/ghost-skill/SKILL.md",
    ]
    assert all(d.file == "skills/code-review/references/routing.md" for d in diagnostics)
    assert all(d.severity == Severity.ERROR for d in diagnostics)
    configured = validate_trigger_maps(index, root, builtin_agents=["release-agent"])
    assert [d.suggested_path for d in configured] == ["skills/ghost-skill/SKILL.md"]


def test_trigger_keyword_routed_two_ways_is_a_warning(write_tree):
    root = write_tree(
        {
            "skills/a/references/map.md": "| Trigger | Skill |\n|---|---|\n| deploy | ship-fast |\n",
            "skills/b/references/map.md": (
                "| Trigger | Agent |\n|---|---|\n"
                "| deploy | Task(deploy-agent) |\n| review | ship-fast |\n"
            ),
            "skills/c/references/map.md": "| Trigger | Skill |\n|---|---|\n| review | ship-fast |\n",
        }
    )

    diagnostics = detect_trigger_conflicts(root)

    assert len(diagnostics) == 1, "Same target from two files is not a conflict"
    assert diagnostics[0].severity == Severity.WARNING
    assert diagnostics[0].file == "skills/a/references/map.md"
    assert diagnostics[0].message == (
        "Trigger keyword 'deploy' routes to conflicting targets: "
        "'deploy-agent' (agent, in skills/b/references/map.md), "
        "'ship-fast' (skill, in skills/a/references/map.md)"
    )
