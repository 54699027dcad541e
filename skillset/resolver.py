"""Resolve invocation tokens to indexed skills and configured skill sets.

Strategies, in order: explicit mapping, `skills:` entry, set name, exact
name match, fuzzy similarity. `resolve` is a pure function of
(token, snapshot, config): every traversal of a mapping is sorted before it
can influence ordering.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Sequence, TypeVar

from .matching import SCORE_PRECISION, is_exact, score
from .normalize import normalize_ref, normalize_segment
from .types import (
    Ambiguous,
    CacheSnapshot,
    EffectiveConfig,
    InvocationToken,
    Resolved,
    ResolvedSet,
    ResolveResult,
    Skill,
    SkillEntry,
    SkillSet,
    Unmatched,
)

T = TypeVar("T")

# Built-in namespace shortcuts, applied after config namespaceAliases.
NAMESPACE_SHORTCUTS = {
    "p": "project",
    "proj": "project",
    "project": "project",
    "u": "user",
    "g": "user",
    "global": "user",
    "user": "user",
    "plugin": "plugin",
}


def _normalize_alias(alias: str) -> str:
    return normalize_ref(alias) if "/" in alias else normalize_segment(alias)


def resolve_namespace(namespace: str | None, config: EffectiveConfig) -> str | None:
    if not namespace:
        return None
    aliased = config.namespace_aliases.get(namespace)
    if aliased is None:
        key = normalize_segment(namespace)
        aliased = next(
            (v for k, v in config.namespace_aliases.items() if normalize_segment(k) == key),
            namespace,
        )
    resolved = normalize_segment(aliased)
    return NAMESPACE_SHORTCUTS.get(resolved, resolved)


def _priority(skill: Skill, order: Sequence[str]) -> int:
    return order.index(skill.namespace) if skill.namespace in order else len(order)


def _rank(
    scored: Iterable[tuple[Skill, float]],
    config: EffectiveConfig,
    order: Sequence[str] | None = None,
) -> list[tuple[Skill, float]]:
    order = order or config.resolution.scope_priority
    return sorted(scored, key=lambda item: (-item[1], _priority(item[0], order), item[0].skill_ref))


def _find_skill(snapshot: CacheSnapshot, ref: str) -> Skill | None:
    if ref in snapshot.skills:
        return snapshot.skills[ref]
    wanted = normalize_ref(ref)
    for key in sorted(snapshot.skills):
        if normalize_ref(key) == wanted:
            return snapshot.skills[key]
    return None


def _find_set(config: EffectiveConfig, ref: str) -> SkillSet | None:
    if ref in config.sets:
        return config.sets[ref]
    wanted = normalize_ref(ref)
    for key in sorted(config.sets):
        if normalize_ref(key) == wanted:
            return config.sets[key]
    return None


def _lookup(
    token: InvocationToken, table: Mapping[str, T], config: EffectiveConfig
) -> tuple[str, T] | None:
    """Find the table entry for `ns:alias`, then `alias`; exact key before normalised."""
    if not table:
        return None
    keys: list[str] = []
    if token.namespace:
        keys.append(f"{token.namespace}:{token.alias}")
        translated = resolve_namespace(token.namespace, config)
        if translated and translated != token.namespace:
            keys.append(f"{translated}:{token.alias}")
    keys.append(token.alias)

    for key in keys:
        if key in table:
            return key, table[key]
        wanted = normalize_ref(key)
        for candidate in sorted(table):
            if normalize_ref(candidate) == wanted:
                return candidate, table[candidate]
    return None


def find_mapping(
    token: InvocationToken, config: EffectiveConfig
) -> tuple[str, str] | None:
    """Return (key, skillRef) of the mapping entry matching the token."""
    return _lookup(token, config.mappings, config)


def find_skill_entry(
    token: InvocationToken, config: EffectiveConfig
) -> tuple[str, SkillEntry] | None:
    """Return (key, entry) of the `skills:` entry matching the token."""
    return _lookup(token, config.skills, config)


def candidate_pool(
    namespace: str | None, snapshot: CacheSnapshot, config: EffectiveConfig
) -> list[Skill]:
    pool = []
    for ref in sorted(snapshot.skills):
        skill = snapshot.skills[ref]
        if skill.namespace in config.ignore_scopes:
            continue
        if namespace and not (
            skill.namespace == namespace
            or (skill.plugin is not None and normalize_segment(skill.plugin) == namespace)
        ):
            continue
        pool.append(skill)
    return pool


def match_sets(alias: str, config: EffectiveConfig) -> list[SkillSet]:
    """Sets whose key or display name normalises to the alias."""
    return [
        config.sets[key]
        for key in sorted(config.sets)
        if alias in (normalize_ref(key), normalize_segment(config.sets[key].name))
    ]


def _suggest(
    alias: str, scored: Sequence[tuple[Skill, float]], config: EffectiveConfig
) -> tuple[Skill, ...]:
    settings = config.resolution
    # With fuzzy matching off, near matches above the threshold are hints too.
    ceiling = settings.match_threshold if settings.fuzzy_matching else 1.0
    hints = [
        (skill, value)
        for skill, value in scored
        if settings.suggestion_floor <= value < ceiling
    ]
    return tuple(skill for skill, _ in _rank(hints, config)[: settings.max_suggestions])


def _pick_exact(exact: list[Skill], order: Sequence[str]) -> Skill | None:
    """Pick by scope priority: unique winner in the first scope holding any match."""
    for scope in order:
        scoped = [skill for skill in exact if skill.namespace == scope]
        if len(scoped) == 1:
            return scoped[0]
        if scoped:
            return None
    return None


def _ambiguous_exact(
    token: InvocationToken,
    alias: str,
    exact: list[Skill],
    config: EffectiveConfig,
    order: Sequence[str] | None = None,
    sets: Sequence[SkillSet] = (),
) -> Ambiguous:
    ranked = _rank(((skill, 1.0) for skill in exact), config, order)
    return Ambiguous(
        token=token,
        alias=alias,
        candidates=tuple(skill for skill, _ in ranked),
        scores=tuple(value for _, value in ranked),
        set_candidates=tuple(sets),
    )


def _unique_exact(alias: str, pool: Sequence[Skill], order: Sequence[str]) -> Skill | None:
    exact = [skill for skill in pool if is_exact(alias, skill)]
    if len(exact) == 1:
        return exact[0]
    return _pick_exact(exact, order) if exact else None


def _resolve_set(
    token: InvocationToken, skill_set: SkillSet, snapshot: CacheSnapshot, config: EffectiveConfig
) -> ResolvedSet:
    """Look up each member by ref, then by unique exact name."""
    pool = candidate_pool(None, snapshot, config)
    members: list[Skill] = []
    missing: list[str] = []
    for ref in skill_set.skill_refs:
        skill = _find_skill(snapshot, ref)
        if skill is not None and skill.namespace in config.ignore_scopes:
            skill = None
        if skill is None and ":" not in ref:
            skill = _unique_exact(_normalize_alias(ref), pool, config.resolution.scope_priority)
        if skill is None:
            missing.append(ref)
        elif skill not in members:
            members.append(skill)
    return ResolvedSet(token=token, skill_set=skill_set, members=tuple(members), missing=tuple(missing))


def _resolve_entry(
    token: InvocationToken,
    alias: str,
    key: str,
    entry: SkillEntry,
    snapshot: CacheSnapshot,
    config: EffectiveConfig,
) -> ResolveResult:
    overrides = {"include_full": entry.include_full, "include_layout": entry.include_layout}
    if entry.path is not None:
        # Read by the pipeline like any indexed document; never part of the index.
        skill = Skill(
            skill_ref=f"project:{normalize_ref(key)}",
            name=normalize_segment(key) or key,
            description=None,
            path=entry.path,
        )
        return Resolved(token=token, skill=skill, strategy="path", **overrides)

    target = entry.skill or key
    if ":" in target:
        direct = _find_skill(snapshot, target)
        if direct is not None and (not entry.scopes or direct.namespace in entry.scopes):
            return Resolved(token=token, skill=direct, strategy="entry", **overrides)

    order = entry.scopes or config.resolution.scope_priority
    pool = [
        skill
        for skill in candidate_pool(None, snapshot, config)
        if not entry.scopes or skill.namespace in entry.scopes
    ]
    wanted = _normalize_alias(target.rpartition(":")[2])
    exact = [skill for skill in pool if is_exact(wanted, skill)]
    if exact:
        picked = exact[0] if len(exact) == 1 else _pick_exact(exact, order)
        if picked is not None:
            return Resolved(token=token, skill=picked, strategy="entry", **overrides)
        return _ambiguous_exact(token, alias, exact, config, order)

    scored = [(skill, score(wanted, skill)) for skill in pool]
    return Unmatched(
        token=token,
        alias=alias,
        suggestions=_suggest(wanted, scored, config),
        reason=f"skills entry '{key}' points to {target}, which matches no indexed skill",
    )


def resolve(token: InvocationToken, snapshot: CacheSnapshot, config: EffectiveConfig) -> ResolveResult:
    """Map one token to Resolved, ResolvedSet, Ambiguous, or Unmatched."""
    alias = _normalize_alias(token.alias)
    namespace = resolve_namespace(token.namespace, config)
    pool = candidate_pool(namespace, snapshot, config)
    scored = [(skill, score(alias, skill)) for skill in pool]

    mapping = find_mapping(token, config)
    if mapping is not None:
        key, ref = mapping
        mapped = _find_skill(snapshot, ref)
        if mapped is not None and token.kind != "set":
            return Resolved(token=token, skill=mapped, strategy="mapping")
        mapped_set = _find_set(config, ref)
        if mapped_set is not None and token.kind != "skill":
            return _resolve_set(token, mapped_set, snapshot, config)
        return Unmatched(
            token=token,
            alias=alias,
            suggestions=_suggest(alias, scored, config),
            reason=f"mapping '{key}' points to missing ref {ref}",
        )

    if token.kind != "set":
        found = find_skill_entry(token, config)
        if found is not None:
            return _resolve_entry(token, alias, found[0], found[1], snapshot, config)

    # Sets live in config without a namespace, so a namespaced token never names one.
    sets = match_sets(alias, config) if token.kind != "skill" and not namespace else []
    if token.kind == "set":
        if len(sets) == 1:
            return _resolve_set(token, sets[0], snapshot, config)
        if sets:
            return Ambiguous(token=token, alias=alias, candidates=(), scores=(), set_candidates=tuple(sets))
        return Unmatched(token=token, alias=alias, reason=f"no skill set named '{alias}'")

    exact = [skill for skill in pool if is_exact(alias, skill)]
    if exact and sets:
        return _ambiguous_exact(token, alias, exact, config, sets=sets)
    if sets:
        if len(sets) == 1:
            return _resolve_set(token, sets[0], snapshot, config)
        return Ambiguous(token=token, alias=alias, candidates=(), scores=(), set_candidates=tuple(sets))

    if len(exact) == 1:
        return Resolved(token=token, skill=exact[0], strategy="exact")
    if exact:
        picked = _pick_exact(exact, config.resolution.scope_priority)
        if picked is not None:
            return Resolved(token=token, skill=picked, strategy="exact")
        return _ambiguous_exact(token, alias, exact, config)

    settings = config.resolution
    if settings.fuzzy_matching:
        ranked = _rank(
            ((skill, value) for skill, value in scored if value >= settings.match_threshold),
            config,
        )
        if ranked:
            top = ranked[0][1]
            if len(ranked) == 1 or round(top - ranked[1][1], SCORE_PRECISION) >= settings.ambiguity_margin:
                return Resolved(token=token, skill=ranked[0][0], strategy="fuzzy")
            close = [
                (skill, value)
                for skill, value in ranked
                if round(top - value, SCORE_PRECISION) < settings.ambiguity_margin
            ]
            return Ambiguous(
                token=token,
                alias=alias,
                candidates=tuple(skill for skill, _ in close),
                scores=tuple(value for _, value in close),
            )

    return Unmatched(token=token, alias=alias, suggestions=_suggest(alias, scored, config))


def resolve_all(
    tokens: Iterable[InvocationToken], snapshot: CacheSnapshot, config: EffectiveConfig
) -> list[ResolveResult]:
    return [resolve(token, snapshot, config) for token in tokens]
