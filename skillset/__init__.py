"""Resolve `$alias` skill tokens in prompts and inject the matching SKILL.md documents."""

from .cache import CacheStore
from .errors import (
    CacheCorruptionError,
    ConfigError,
    SkillIndexError,
    SkillsetError,
    UnresolvedSkillsError,
)
from .hook import run_prompt_hook
from .indexer import build_index
from .inject import SkillInjector, inject_prompt
from .render import format_injection
from .resolver import resolve, resolve_all
from .settings import ConfigLoader
from .tokenizer import tokenize
from .types import (
    Ambiguous,
    CacheSnapshot,
    Diagnostic,
    EffectiveConfig,
    InjectResult,
    InvocationToken,
    Resolved,
    ResolvedSet,
    Skill,
    SkillEntry,
    SkillSet,
    Unmatched,
)

__all__ = [
    "Ambiguous",
    "CacheCorruptionError",
    "CacheSnapshot",
    "CacheStore",
    "ConfigError",
    "ConfigLoader",
    "Diagnostic",
    "EffectiveConfig",
    "InjectResult",
    "InvocationToken",
    "Resolved",
    "ResolvedSet",
    "Skill",
    "SkillEntry",
    "SkillIndexError",
    "SkillInjector",
    "SkillSet",
    "SkillsetError",
    "UnresolvedSkillsError",
    "Unmatched",
    "build_index",
    "format_injection",
    "inject_prompt",
    "resolve",
    "resolve_all",
    "run_prompt_hook",
    "tokenize",
]
