"""Tests for format_injection."""

from pathlib import Path

import pytest

from skillset.errors import UnresolvedSkillsError
from skillset.render import HEADER, WARNINGS_HEADING, format_injection
from skillset.tokenizer import tokenize
from skillset.types import (
    Ambiguous,
    OutputSettings,
    Resolved,
    ResolvedSet,
    RuleSettings,
    Skill,
    SkillSet,
    Unmatched,
)

SHIP = Skill(
    skill_ref="project:ship",
    name="ship",
    description="Cut a release.",
    path=Path("/repo/.claude/skills/ship/SKILL.md"),
)
PROD = Skill("project:deploy-prod", "deploy-prod", None, Path("/s/deploy-prod/SKILL.md"))
STAGING = Skill("project:deploy-staging", "deploy-staging", None, Path("/s/deploy-staging/SKILL.md"))

SHIP_DOC = "---\nname: ship\n---\n# Ship\n\nTag and publish.\n"


def test_single_resolved_skill() -> None:
    tokens = tokenize("Use $ship to release")
    outcomes = [Resolved(tokens[0], SHIP, "exact")]

    text, diagnostics = format_injection(tokens, outcomes, {"project:ship": SHIP_DOC}, "warn")

    assert diagnostics == ()
    assert text.startswith(HEADER)
    assert "### $ship" in text
    assert "- **Skill:** project:ship" in text
    assert "- **Description:** Cut a release." in text
    assert "```markdown skill:ship\n# Ship\n\nTag and publish.\n```" in text
    assert "name: ship" not in text
    assert WARNINGS_HEADING not in text


def test_repeated_ref_is_emitted_once() -> None:
    tokens = tokenize("$ship then $ship again")
    outcomes = [Resolved(t, SHIP, "exact") for t in tokens]

    text, _ = format_injection(tokens, outcomes, {"project:ship": SHIP_DOC}, "warn")

    assert text.count("```markdown skill:ship") == 1


def test_blocks_follow_span_order() -> None:
    tokens = tokenize("$deploy-prod and $ship")
    outcomes = [Resolved(tokens[0], PROD, "exact"), Resolved(tokens[1], SHIP, "exact")]
    contents = {"project:ship": SHIP_DOC, "project:deploy-prod": "# Prod\n"}

    text, _ = format_injection(list(reversed(tokens)), list(reversed(outcomes)), contents, "warn")

    assert text.index("### $deploy-prod") < text.index("### $ship")


def test_warn_mode_keeps_text_and_reports() -> None:
    tokens = tokenize("$ship and $deploy and $nope")
    outcomes = [
        Resolved(tokens[0], SHIP, "exact"),
        Ambiguous(tokens[1], "deploy", (PROD, STAGING), (0.7059, 0.6)),
        Unmatched(tokens[2], "nope", suggestions=(SHIP,)),
    ]

    text, diagnostics = format_injection(tokens, outcomes, {"project:ship": SHIP_DOC}, "warn")

    assert [d.kind for d in diagnostics] == ["ambiguous", "unmatched"]
    assert diagnostics[0].refs == ("project:deploy-prod", "project:deploy-staging")
    assert all(d.severity == "warn" for d in diagnostics)
    assert "```markdown skill:ship" in text
    assert WARNINGS_HEADING in text
    assert "- **Ambiguous:** $deploy matches several skills" in text
    assert "did you mean: project:ship" in text


def test_strict_mode_raises_with_all_diagnostics() -> None:
    tokens = tokenize("$ship and $nope and $deploy")
    outcomes = [
        Resolved(tokens[0], SHIP, "exact"),
        Unmatched(tokens[1], "nope"),
        Ambiguous(tokens[2], "deploy", (PROD, STAGING), (0.7059, 0.6)),
    ]

    with pytest.raises(UnresolvedSkillsError) as exc:
        format_injection(tokens, outcomes, {"project:ship": SHIP_DOC}, "strict")

    assert [d.kind for d in exc.value.diagnostics] == ["unmatched", "ambiguous"]
    assert all(d.severity == "error" for d in exc.value.diagnostics)


def test_strict_mode_all_resolved_succeeds() -> None:
    tokens = tokenize("$ship")
    text, diagnostics = format_injection(
        tokens, [Resolved(tokens[0], SHIP, "exact")], {"project:ship": SHIP_DOC}, "strict"
    )
    assert diagnostics == ()
    assert "### $ship" in text


def test_rules_ignore_and_error() -> None:
    tokens = tokenize("$deploy $nope")
    outcomes = [
        Ambiguous(tokens[0], "deploy", (PROD, STAGING), (0.7059, 0.6)),
        Unmatched(tokens[1], "nope"),
    ]

    text, diagnostics = format_injection(
        tokens, outcomes, {}, "warn", rules=RuleSettings(unresolved="ignore", ambiguous="ignore")
    )
    assert (text, diagnostics) == ("", ())

    with pytest.raises(UnresolvedSkillsError) as exc:
        format_injection(tokens, outcomes, {}, "warn", rules=RuleSettings(ambiguous="error"))
    severities = {d.kind: d.severity for d in exc.value.diagnostics}
    assert severities == {"ambiguous": "error", "unmatched": "warn"}


def test_unreadable_content_is_reported() -> None:
    tokens = tokenize("$ship")
    text, diagnostics = format_injection(
        tokens, [Resolved(tokens[0], SHIP, "exact")], {"project:ship": None}, "warn"
    )
    (diag,) = diagnostics
    assert diag.kind == "unreadable"
    assert "```markdown" not in text


def test_truncation_note() -> None:
    body = "\n".join(f"line {i}" for i in range(1, 11))
    content = f"---\nname: ship\n---\n{body}\n"
    tokens = tokenize("$ship")

    text, _ = format_injection(
        tokens,
        [Resolved(tokens[0], SHIP, "exact")],
        {"project:ship": content},
        "warn",
        output=OutputSettings(max_lines=4),
    )

    assert "line 4\n```" in text
    assert "line 5" not in text
    assert "**Truncated:** Lines 1-4 of 10" in text
    assert f"Continue: sed -n '8,13p' {SHIP.path}" in text


def test_layout_listing_when_enabled() -> None:
    tokens = tokenize("$ship")
    outcomes = [Resolved(tokens[0], SHIP, "exact")]
    layouts = {"project:ship": "- SKILL.md\n- scripts/"}

    with_layout, _ = format_injection(
        tokens, outcomes, {"project:ship": SHIP_DOC}, "warn",
        output=OutputSettings(include_layout=True), layouts=layouts,
    )
    without, _ = format_injection(
        tokens, outcomes, {"project:ship": SHIP_DOC}, "warn", layouts=layouts
    )

    assert "- **Structure:**" in with_layout
    assert "- scripts/" in with_layout
    assert "- **Structure:**" not in without


def test_nothing_to_inject_is_empty() -> None:
    assert format_injection([], [], {}, "warn") == ("", ())


def test_misaligned_inputs_rejected() -> None:
    with pytest.raises(ValueError):
        format_injection(tokenize("$ship"), [], {}, "warn")


RELEASE = SkillSet("release", "Release", "Everything for a release", ("project:ship", "project:gone"))


def test_set_block_lists_members_and_bodies() -> None:
    tokens = tokenize("$set:release")
    outcome = ResolvedSet(tokens[0], RELEASE, (SHIP,), missing=("project:gone",))

    text, diagnostics = format_injection(tokens, [outcome], {"project:ship": SHIP_DOC}, "warn")

    assert "### $set:release\n\n- **Set:** release\n- **Name:** Release" in text
    assert "- **Description:** Everything for a release" in text
    assert "- **Skills:**\n  - project:ship\n  - project:gone (missing)" in text
    assert "#### project:ship" in text
    assert "```markdown skill:project:ship\n# Ship" in text
    (diag,) = diagnostics
    assert diag.kind == "missing_set_members"
    assert diag.refs == ("project:gone",)
    assert "- **Missing set members:** $set:release set release is missing: project:gone" in text


def test_set_member_already_shown_is_not_repeated() -> None:
    tokens = tokenize("$ship and $set:release")
    outcomes = [Resolved(tokens[0], SHIP, "exact"), ResolvedSet(tokens[1], RELEASE, (SHIP,))]

    text, _ = format_injection(tokens, outcomes, {"project:ship": SHIP_DOC}, "warn")

    assert text.count("# Ship") == 1
    assert "- **Set:** release" in text


def test_missing_set_members_follow_rules_and_mode() -> None:
    tokens = tokenize("$set:release")
    outcome = ResolvedSet(tokens[0], RELEASE, (SHIP,), missing=("project:gone",))
    contents = {"project:ship": SHIP_DOC}

    _, quiet = format_injection(
        tokens, [outcome], contents, "warn", rules=RuleSettings(missing_set_members="ignore")
    )
    assert quiet == ()

    with pytest.raises(UnresolvedSkillsError):
        format_injection(tokens, [outcome], contents, "strict")


def test_collision_message_names_skill_and_set() -> None:
    tokens = tokenize("$release")
    outcome = Ambiguous(tokens[0], "release", (SHIP,), (1.0,), set_candidates=(RELEASE,))

    _, (diag,) = format_injection(tokens, [outcome], {}, "warn")

    assert diag.refs == ("project:ship", "set:release")
    assert diag.message == "$release names both a skill and a set: project:ship, set:release"


def test_include_full_skips_truncation() -> None:
    body = "\n".join(f"line {i}" for i in range(1, 11))
    tokens = tokenize("$ship")
    outcome = Resolved(tokens[0], SHIP, "entry", include_full=True)

    text, _ = format_injection(
        tokens, [outcome], {"project:ship": body}, "warn", output=OutputSettings(max_lines=4)
    )

    assert "line 10\n```" in text
    assert "**Truncated:**" not in text


def test_include_layout_overrides_output_setting() -> None:
    tokens = tokenize("$ship")
    layouts = {"project:ship": "- SKILL.md\n- scripts/"}
    contents = {"project:ship": SHIP_DOC}

    shown, _ = format_injection(
        tokens, [Resolved(tokens[0], SHIP, "entry", include_layout=True)], contents, "warn",
        layouts=layouts,
    )
    hidden, _ = format_injection(
        tokens, [Resolved(tokens[0], SHIP, "entry", include_layout=False)], contents, "warn",
        output=OutputSettings(include_layout=True), layouts=layouts,
    )

    assert "- **Structure:**" in shown
    assert "- **Structure:**" not in hidden
