"""Data models for the skill resolution pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Union

Mode = Literal["warn", "strict"]
RuleSeverity = Literal["ignore", "warn", "error"]
TokenKind = Literal["skill", "set"]

SCOPES = ("project", "user", "plugin")


@dataclass(frozen=True)
class Skill:
    skill_ref: str
    name: str
    description: str | None
    path: Path

    @property
    def namespace(self) -> str:
        return self.skill_ref.partition(":")[0]

    @property
    def ref_name(self) -> str:
        """Name component of the ref (`plugin:tools/deploy` -> `deploy`)."""
        return self.skill_ref.partition(":")[2].rsplit("/", 1)[-1]

    @property
    def plugin(self) -> str | None:
        if self.namespace != "plugin":
            return None
        rest = self.skill_ref.partition(":")[2]
        return rest.split("/", 1)[0] if "/" in rest else None

    @property
    def directory(self) -> Path:
        return self.path.parent

    def to_dict(self) -> dict[str, str | None]:
        return {
            "name": self.name,
            "description": self.description,
            "path": str(self.path),
        }


@dataclass(frozen=True)
class Collision:
    """Two documents claimed the same ref; `kept` won by sorted path order."""

    skill_ref: str
    kept: Path
    discarded: Path

    def to_dict(self) -> dict[str, str]:
        return {
            "skillRef": self.skill_ref,
            "kept": str(self.kept),
            "discarded": str(self.discarded),
        }


@dataclass(frozen=True)
class InvocationToken:
    raw: str
    namespace: str | None
    alias: str
    span: tuple[int, int]
    # Set by a `$skill:` or `$set:` prefix; None searches both.
    kind: TokenKind | None = None


@dataclass(frozen=True)
class SkillSet:
    """A named bundle of skills declared under `sets:` in config."""

    set_ref: str
    name: str
    description: str | None
    skill_refs: tuple[str, ...]


@dataclass(frozen=True)
class SkillEntry:
    """An alias declared under `skills:`.

    Exactly one of `skill` (an alias or ref to look up) and `path` (a file
    outside the index) is the target; `skill` defaults to the alias itself.
    """

    skill: str | None = None
    path: Path | None = None
    scopes: tuple[str, ...] = ()
    include_full: bool | None = None
    include_layout: bool | None = None


@dataclass(frozen=True)
class Resolved:
    token: InvocationToken
    skill: Skill
    strategy: Literal["mapping", "entry", "path", "exact", "fuzzy"]
    # Per-skill output overrides from a `skills:` entry; None uses `output`.
    include_full: bool | None = None
    include_layout: bool | None = None

    kind = "resolved"


@dataclass(frozen=True)
class ResolvedSet:
    token: InvocationToken
    skill_set: SkillSet
    members: tuple[Skill, ...]
    missing: tuple[str, ...] = ()

    kind = "set"


@dataclass(frozen=True)
class Ambiguous:
    token: InvocationToken
    alias: str
    candidates: tuple[Skill, ...]
    scores: tuple[float, ...]
    set_candidates: tuple[SkillSet, ...] = ()

    kind = "ambiguous"


@dataclass(frozen=True)
class Unmatched:
    token: InvocationToken
    alias: str
    suggestions: tuple[Skill, ...] = ()
    reason: str | None = None

    kind = "unmatched"


ResolveResult = Union[Resolved, ResolvedSet, Ambiguous, Unmatched]


@dataclass(frozen=True)
class CacheSnapshot:
    version: int
    generated_at: int  # unix milliseconds
    ttl_seconds: int
    skills: dict[str, Skill] = field(default_factory=dict)
    collisions: tuple[Collision, ...] = ()

    def is_fresh(self, now_ms: int, max_age: float) -> bool:
        return now_ms - self.generated_at <= max_age * 1000


@dataclass(frozen=True)
class ScanRoot:
    namespace: str
    path: Path


@dataclass(frozen=True)
class OutputSettings:
    max_lines: int = 500
    include_layout: bool = False


@dataclass(frozen=True)
class RuleSettings:
    unresolved: RuleSeverity = "warn"
    ambiguous: RuleSeverity = "warn"
    missing_set_members: RuleSeverity = "warn"


@dataclass(frozen=True)
class ResolutionSettings:
    fuzzy_matching: bool = True
    match_threshold: float = 0.6
    ambiguity_margin: float = 0.15
    max_suggestions: int = 3
    suggestion_floor: float = 0.3
    scope_priority: tuple[str, ...] = SCOPES


@dataclass(frozen=True)
class EffectiveConfig:
    mode: Mode = "warn"
    mappings: dict[str, str] = field(default_factory=dict)
    skills: dict[str, SkillEntry] = field(default_factory=dict)
    sets: dict[str, SkillSet] = field(default_factory=dict)
    namespace_aliases: dict[str, str] = field(default_factory=dict)
    scan_roots: tuple[ScanRoot, ...] = ()
    output: OutputSettings = field(default_factory=OutputSettings)
    rules: RuleSettings = field(default_factory=RuleSettings)
    resolution: ResolutionSettings = field(default_factory=ResolutionSettings)
    ignore_scopes: tuple[str, ...] = ()
    sources: tuple[Path, ...] = ()


@dataclass(frozen=True)
class Diagnostic:
    kind: Literal[
        "ambiguous",
        "unmatched",
        "unreadable",
        "missing_set_members",
        "timeout",
        "index",
        "config",
    ]
    message: str
    alias: str | None = None
    raw: str | None = None
    refs: tuple[str, ...] = ()
    severity: Literal["warn", "error"] = "warn"

    def to_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind,
            "message": self.message,
            "alias": self.alias,
            "raw": self.raw,
            "refs": list(self.refs),
            "severity": self.severity,
        }


@dataclass(frozen=True)
class InjectResult:
    text: str
    diagnostics: tuple[Diagnostic, ...] = ()
    exit_code: int = 0
    results: tuple[ResolveResult, ...] = ()

    @property
    def ok(self) -> bool:
        return self.exit_code == 0
