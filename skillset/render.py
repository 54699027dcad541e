"""Render resolved skills into the context block injected into a prompt."""

from __future__ import annotations

from typing import Mapping, Sequence

from .errors import UnresolvedSkillsError
from .parser import strip_frontmatter
from .types import (
    Ambiguous,
    Diagnostic,
    InvocationToken,
    Mode,
    OutputSettings,
    Resolved,
    ResolvedSet,
    ResolveResult,
    RuleSettings,
    Skill,
    Unmatched,
)

HEADER = """\
## skillset: Resolved Skills

The user invoked skills explicitly via `$alias`. These are loaded below. \
Ignore the literal `$...` tokens in the prompt.

---"""

WARNINGS_HEADING = "## skillset: Warnings"


def _severity(rule: str, mode: Mode) -> str | None:
    """Map a rule setting to a diagnostic severity; None means suppressed.

    Strict mode overrides the rule: nothing unresolved is ever dropped.
    """
    if rule == "error" or mode == "strict":
        return "error"
    if rule == "ignore":
        return None
    return "warn"


def _skill_names(skills) -> str:
    return ", ".join(skill.skill_ref for skill in skills)


def diagnose(outcome: ResolveResult, mode: Mode, rules: RuleSettings) -> Diagnostic | None:
    """Turn a non-resolved outcome into a diagnostic (None when suppressed)."""
    raw = outcome.token.raw
    if isinstance(outcome, Ambiguous):
        severity = _severity(rules.ambiguous, mode)
        if severity is None:
            return None
        refs = tuple(skill.skill_ref for skill in outcome.candidates)
        refs += tuple(f"set:{skill_set.set_ref}" for skill_set in outcome.set_candidates)
        if outcome.set_candidates and outcome.candidates:
            message = f"{raw} names both a skill and a set: {', '.join(refs)}"
        elif outcome.set_candidates:
            message = f"{raw} matches several sets: {', '.join(refs)}"
        else:
            message = f"{raw} matches several skills: {', '.join(refs)}"
        return Diagnostic(
            kind="ambiguous",
            message=message,
            alias=outcome.alias,
            raw=raw,
            refs=refs,
            severity=severity,
        )
    if isinstance(outcome, Unmatched):
        severity = _severity(rules.unresolved, mode)
        if severity is None:
            return None
        message = outcome.reason or f"{raw} does not match any indexed skill"
        if outcome.suggestions:
            message += f" (did you mean: {_skill_names(outcome.suggestions)})"
        return Diagnostic(
            kind="unmatched",
            message=message,
            alias=outcome.alias,
            raw=raw,
            refs=tuple(skill.skill_ref for skill in outcome.suggestions),
            severity=severity,
        )
    if isinstance(outcome, ResolvedSet) and outcome.missing:
        severity = _severity(rules.missing_set_members, mode)
        if severity is None:
            return None
        return Diagnostic(
            kind="missing_set_members",
            message=f"{raw} set {outcome.skill_set.set_ref} is missing: {', '.join(outcome.missing)}",
            alias=outcome.token.alias,
            raw=raw,
            refs=outcome.missing,
            severity=severity,
        )
    return None


def format_skill_block(
    skill: Skill,
    content: str,
    *,
    heading: str,
    label: str,
    max_lines: int | None = None,
    layout: str | None = None,
) -> str:
    """One skill: metadata bullets, optional layout, fenced body.

    `max_lines=None` emits the whole body.
    """
    body = strip_frontmatter(content)
    body_lines = body.splitlines()
    total = len(content.splitlines())

    lines = [heading, ""]
    lines.append(f"- **Skill:** {skill.skill_ref}")
    lines.append(f"- **Path:** {skill.path}")
    lines.append(f"- **Name:** {skill.name}")
    if skill.description:
        lines.append(f"- **Description:** {skill.description}")
    if layout:
        lines.extend(["- **Structure:**", "```text", layout.rstrip(), "```"])

    truncated = max_lines is not None and len(body_lines) > max_lines
    if truncated:
        body_lines = body_lines[:max_lines]
    lines.append("")
    lines.append(f"```markdown skill:{label}")
    lines.extend(body_lines)
    lines.append("```")
    if truncated:
        # Body line N is file line N + offset once front-matter is stripped.
        shown_until = total - len(body.splitlines()) + max_lines
        lines.append("")
        lines.append(f"**Truncated:** Lines 1-{max_lines} of {len(body.splitlines())}")
        lines.append(f"Continue: sed -n '{shown_until + 1},{total}p' {skill.path}")
    return "\n".join(lines)


def format_set_intro(outcome: ResolvedSet) -> str:
    skill_set = outcome.skill_set
    lines = [f"### {outcome.token.raw}", ""]
    lines.append(f"- **Set:** {skill_set.set_ref}")
    lines.append(f"- **Name:** {skill_set.name}")
    if skill_set.description:
        lines.append(f"- **Description:** {skill_set.description}")
    lines.append("- **Skills:**")
    lines.extend(f"  - {skill.skill_ref}" for skill in outcome.members)
    lines.extend(f"  - {ref} (missing)" for ref in outcome.missing)
    return "\n".join(lines)


def _unreadable(token: InvocationToken, skill: Skill, severity: str) -> Diagnostic:
    return Diagnostic(
        kind="unreadable",
        message=f"{token.raw} resolved to {skill.skill_ref} but {skill.path} could not be read",
        alias=token.alias,
        raw=token.raw,
        refs=(skill.skill_ref,),
        severity=severity,
    )


def _warning_line(diag: Diagnostic) -> str:
    label = diag.kind.replace("_", " ").capitalize()
    return f"- **{label}:** {diag.message}"


def format_injection(
    tokens: Sequence[InvocationToken],
    outcomes: Sequence[ResolveResult],
    contents: Mapping[str, str | None],
    mode: Mode,
    *,
    output: OutputSettings | None = None,
    rules: RuleSettings | None = None,
    layouts: Mapping[str, str] | None = None,
    extra: Sequence[Diagnostic] = (),
) -> tuple[str, tuple[Diagnostic, ...]]:
    """Build the injected text and its diagnostics.

    Args:
        tokens: Tokens in any order; blocks follow their span order.
        outcomes: One resolve result per token, aligned with `tokens`.
        contents: Raw document text by skill ref; None marks an unreadable file.
        mode: ``warn`` returns diagnostics with the text; ``strict`` fails.
        layouts: Directory listings by skill ref, shown where layout is enabled.
        extra: Pipeline diagnostics (e.g. timeout) listed with the others.

    Raises:
        UnresolvedSkillsError: In strict mode, or when a rule marks a
            diagnostic as an error. No partial text is returned.
    """
    if len(tokens) != len(outcomes):
        raise ValueError("tokens and outcomes must be aligned")
    output = output or OutputSettings()
    rules = rules or RuleSettings()
    layouts = layouts or {}

    blocks: list[str] = []
    diagnostics: list[Diagnostic] = list(extra)
    seen_refs: set[str] = set()
    seen_sets: set[str] = set()
    seen_diagnostics: set[tuple[str, str | None]] = set()

    def skill_block(
        token: InvocationToken,
        skill: Skill,
        heading: str,
        label: str,
        include_full: bool | None = None,
        include_layout: bool | None = None,
    ) -> str | None:
        ref = skill.skill_ref
        if ref in seen_refs:
            return None
        seen_refs.add(ref)
        content = contents.get(ref)
        if content is None:
            severity = _severity(rules.unresolved, mode)
            if severity is not None:
                diagnostics.append(_unreadable(token, skill, severity))
            return None
        show_layout = output.include_layout if include_layout is None else include_layout
        return format_skill_block(
            skill,
            content,
            heading=heading,
            label=label,
            max_lines=None if include_full else output.max_lines,
            layout=layouts.get(ref) if show_layout else None,
        )

    for _, outcome in sorted(zip(tokens, outcomes), key=lambda pair: pair[0].span):
        if isinstance(outcome, Resolved):
            block = skill_block(
                outcome.token,
                outcome.skill,
                f"### {outcome.token.raw}",
                outcome.token.alias,
                outcome.include_full,
                outcome.include_layout,
            )
            if block is not None:
                blocks.append(block)
            continue

        if isinstance(outcome, ResolvedSet):
            if outcome.skill_set.set_ref in seen_sets:
                continue
            seen_sets.add(outcome.skill_set.set_ref)
            parts = [format_set_intro(outcome)]
            for skill in outcome.members:
                block = skill_block(
                    outcome.token, skill, f"#### {skill.skill_ref}", skill.skill_ref
                )
                if block is not None:
                    parts.append(block)
            blocks.append("\n\n".join(parts))

        diag = diagnose(outcome, mode, rules)
        if diag is None:
            continue
        key = (diag.kind, diag.alias)
        if key in seen_diagnostics:
            continue
        seen_diagnostics.add(key)
        diagnostics.append(diag)

    blocking = [d for d in diagnostics if d.severity == "error"]
    if blocking:
        raise UnresolvedSkillsError(diagnostics)

    if not blocks and not diagnostics:
        return "", ()

    parts = [HEADER]
    for block in blocks:
        parts.extend(["", block])
    if diagnostics:
        parts.extend(["", "---", "", WARNINGS_HEADING, ""])
        parts.append("\n".join(_warning_line(d) for d in diagnostics))
    return "\n".join(parts) + "\n", tuple(diagnostics)
