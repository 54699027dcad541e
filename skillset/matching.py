"""Name matching and similarity scoring for alias resolution."""

from __future__ import annotations

from difflib import SequenceMatcher

from .normalize import normalize_ref, normalize_segment
from .types import Skill

# Scores are rounded so threshold and margin comparisons are stable.
SCORE_PRECISION = 4


def match_keys(skill: Skill) -> tuple[str, ...]:
    """Normalised forms an alias may equal: display name, ref name, ref path."""
    keys = {
        normalize_segment(skill.name),
        normalize_segment(skill.ref_name),
        normalize_ref(skill.skill_ref.partition(":")[2]),
    }
    keys.discard("")
    return tuple(sorted(keys))


def is_exact(alias: str, skill: Skill) -> bool:
    return alias in match_keys(skill)


def similarity(alias: str, value: str) -> float:
    """SequenceMatcher ratio: 1.0 identical, 0.0 nothing in common."""
    if not alias or not value:
        return 0.0
    if alias == value:
        return 1.0
    return round(SequenceMatcher(None, alias, value).ratio(), SCORE_PRECISION)


def score(alias: str, skill: Skill) -> float:
    """Best similarity between the alias and the skill's name or ref name."""
    return max(
        similarity(alias, normalize_segment(skill.name)),
        similarity(alias, normalize_segment(skill.ref_name)),
    )
