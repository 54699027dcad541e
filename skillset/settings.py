"""Layered scope configuration for alias resolution.

Three optional YAML layers are merged over built-in defaults. Precedence,
most to least authoritative: ``project`` > ``project.local`` > ``user``.
Map-valued keys merge key by key; scalars take the most authoritative
explicit value.
"""

from __future__ import annotations

import asyncio
import os
from dataclasses import replace
from pathlib import Path
from typing import Any, Iterable

import aiofiles.os
import yaml

from config import Config
from utils import get_logger
from utils.runtime import get_project_dir, get_project_root, get_user_config_dir

from .errors import ConfigError
from .parser import read_text
from .types import (
    SCOPES,
    EffectiveConfig,
    OutputSettings,
    ResolutionSettings,
    RuleSettings,
    ScanRoot,
    SkillEntry,
    SkillSet,
)

logger = get_logger(__name__)

# Least to most authoritative.
SCOPE_ORDER = ("user", "project.local", "project")

_MODES = ("warn", "strict")
_SEVERITIES = ("ignore", "warn", "error")


def default_scan_roots(project_root: Path) -> dict[str, list[Path]]:
    home = Path.home()
    return {
        "project": [project_root / ".claude" / "skills"],
        "user": [home / ".claude" / "skills"],
        "plugin": [home / ".claude" / "plugins"],
    }


def default_resolution() -> ResolutionSettings:
    return ResolutionSettings(
        match_threshold=Config.MATCH_THRESHOLD,
        ambiguity_margin=Config.AMBIGUITY_MARGIN,
        max_suggestions=Config.MAX_SUGGESTIONS,
        suggestion_floor=Config.SUGGESTION_FLOOR,
    )


class ConfigLoader:
    """Reads the scope files for one project and merges them."""

    def __init__(self, project_root: str | Path | None = None) -> None:
        self.project_root = Path(project_root or get_project_root()).resolve()

    def scope_path(self, scope: str) -> Path:
        if scope == "user":
            return Path(get_user_config_dir()) / "config.yaml"
        project_dir = Path(get_project_dir(str(self.project_root)))
        if scope == "project":
            return project_dir / "config.yaml"
        if scope == "project.local":
            return project_dir / "config.local.yaml"
        raise ValueError(f"Unknown config scope: {scope}")

    async def load_scope(self, scope: str) -> dict[str, Any]:
        """Load one scope document; a missing file is an empty layer.

        Raises:
            ConfigError: If the file exists but is not a YAML mapping.
        """
        path = self.scope_path(scope)
        if not await aiofiles.os.path.isfile(path):
            return {}
        try:
            content = await read_text(path)
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigError(f"Cannot read {scope} config: {e}", path) from e
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {scope} config: {e}", path) from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"{scope} config must be a mapping at top level", path)
        logger.debug(f"Loaded {scope} config from {path}")
        return data

    async def load_effective(self, scopes: Iterable[str] | None = None) -> EffectiveConfig:
        """Load and merge the requested scopes (all three by default)."""
        wanted = set(scopes) if scopes is not None else set(SCOPE_ORDER)
        unknown = wanted - set(SCOPE_ORDER)
        if unknown:
            raise ValueError(f"Unknown config scope(s): {', '.join(sorted(unknown))}")

        ordered = [scope for scope in SCOPE_ORDER if scope in wanted]
        layers = await asyncio.gather(*(self.load_scope(scope) for scope in ordered))
        sources = tuple(
            self.scope_path(scope) for scope, layer in zip(ordered, layers) if layer
        )
        return merge_layers(
            [(self.scope_path(scope), layer) for scope, layer in zip(ordered, layers)],
            project_root=self.project_root,
            sources=sources,
        )


def merge_layers(
    layers: list[tuple[Path, dict[str, Any]]],
    project_root: Path,
    sources: tuple[Path, ...] = (),
) -> EffectiveConfig:
    """Merge raw layers given least to most authoritative."""
    mode = "warn"
    mappings: dict[str, str] = {}
    skills: dict[str, SkillEntry] = {}
    sets: dict[str, SkillSet] = {}
    namespace_aliases: dict[str, str] = {}
    scan_roots = default_scan_roots(project_root)
    output: dict[str, Any] = {}
    rules: dict[str, Any] = {}
    resolution: dict[str, Any] = {}
    ignore_scopes: tuple[str, ...] = ()

    for path, data in layers:
        if not data:
            continue
        if "mode" in data:
            if data["mode"] in _MODES:
                mode = data["mode"]
            else:
                _warn(path, "mode", "expected 'warn' or 'strict'")
        mappings.update(_parse_mappings(path, data.get("mappings")))
        skills.update(_parse_skill_entries(path, data.get("skills"), project_root))
        sets.update(_parse_sets(path, data.get("sets")))
        namespace_aliases.update(
            _parse_str_map(path, "namespaceAliases", data.get("namespaceAliases"))
        )
        scan_roots.update(_parse_scan_roots(path, data.get("scanRoots"), project_root))
        output.update(_parse_section(path, "output", data.get("output"), _OUTPUT_FIELDS))
        rules.update(_parse_section(path, "rules", data.get("rules"), _RULE_FIELDS))
        resolution.update(
            _parse_section(path, "resolution", data.get("resolution"), _RESOLUTION_FIELDS)
        )
        if "ignoreScopes" in data:
            parsed = _parse_scopes(path, "ignoreScopes", data["ignoreScopes"])
            if parsed is not None:
                ignore_scopes = parsed

    roots = tuple(
        ScanRoot(namespace=namespace, path=root)
        for namespace in sorted(scan_roots)
        for root in scan_roots[namespace]
    )
    return EffectiveConfig(
        mode=mode,
        mappings=dict(sorted(mappings.items())),
        skills=dict(sorted(skills.items())),
        sets=dict(sorted(sets.items())),
        namespace_aliases=dict(sorted(namespace_aliases.items())),
        scan_roots=roots,
        output=replace(OutputSettings(max_lines=Config.OUTPUT_MAX_LINES), **output),
        rules=replace(RuleSettings(), **rules),
        resolution=replace(default_resolution(), **resolution),
        ignore_scopes=ignore_scopes,
        sources=sources,
    )


def _warn(path: Path, key: str, problem: str) -> None:
    logger.warning(f"Ignoring invalid '{key}' in {path}: {problem}")


def _parse_str_map(path: Path, key: str, value: Any) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        _warn(path, key, "expected a mapping")
        return {}
    result: dict[str, str] = {}
    for k, v in value.items():
        if isinstance(k, str) and isinstance(v, str) and k.strip() and v.strip():
            result[k.strip()] = v.strip()
        else:
            _warn(path, f"{key}.{k}", "expected a string value")
    return result


def _parse_mappings(path: Path, value: Any) -> dict[str, str]:
    if isinstance(value, dict):
        # `{alias: {skillRef: ...}}` is accepted alongside `{alias: ref}`.
        value = {
            k: v.get("skillRef") if isinstance(v, dict) else v for k, v in value.items()
        }
    return _parse_str_map(path, "mappings", value)


def _resolve_path(entry: str, project_root: Path) -> Path:
    resolved = Path(os.path.expanduser(entry.strip()))
    return resolved if resolved.is_absolute() else project_root / resolved


def _looks_like_path(value: str) -> bool:
    # Refs carry a namespace colon; `plugin:tools/deploy` is not a path.
    if ":" in value:
        return False
    return "/" in value or "\\" in value or value.endswith(".md")


def _parse_skill_entries(path: Path, value: Any, project_root: Path) -> dict[str, SkillEntry]:
    """Parse `skills:` as alias -> string shorthand or entry mapping.

    A string is a file path when it looks like one, otherwise the alias or
    ref to resolve. Mappings accept `skill` or `path` (not both), `scope`
    (one scope or a priority list), `include_full` and `include_layout`.
    """
    if value is None:
        return {}
    if not isinstance(value, dict):
        _warn(path, "skills", "expected a mapping of alias to entry")
        return {}
    result: dict[str, SkillEntry] = {}
    for key, raw in value.items():
        where = f"skills.{key}"
        if not isinstance(key, str) or not key.strip():
            _warn(path, where, "alias must be a non-empty string")
            continue
        if isinstance(raw, str) and raw.strip():
            raw = {"path": raw} if _looks_like_path(raw.strip()) else {"skill": raw}
        if not isinstance(raw, dict):
            _warn(path, where, "expected a string or a mapping")
            continue

        target, file = raw.get("skill"), raw.get("path")
        if target is not None and file is not None:
            _warn(path, where, "'skill' and 'path' are mutually exclusive")
            continue
        if any(v is not None and not (isinstance(v, str) and v.strip()) for v in (target, file)):
            _warn(path, where, "'skill' and 'path' must be non-empty strings")
            continue
        scopes: tuple[str, ...] = ()
        if raw.get("scope") is not None:
            parsed = _parse_scopes(path, f"{where}.scope", raw["scope"])
            if parsed is None:
                continue
            scopes = parsed
        flags = {}
        for flag in ("include_full", "include_layout"):
            if raw.get(flag) is not None:
                if isinstance(raw[flag], bool):
                    flags[flag] = raw[flag]
                else:
                    _warn(path, f"{where}.{flag}", "expected true or false")

        result[key.strip()] = SkillEntry(
            skill=target.strip() if target else None,
            path=_resolve_path(file, project_root) if file else None,
            scopes=scopes,
            **flags,
        )
    return result


def _parse_sets(path: Path, value: Any) -> dict[str, SkillSet]:
    """Parse `sets:` as key -> {name, description, skills} or a bare list."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        _warn(path, "sets", "expected a mapping of set name to definition")
        return {}
    result: dict[str, SkillSet] = {}
    for key, raw in value.items():
        where = f"sets.{key}"
        if isinstance(raw, list):
            raw = {"skills": raw}
        if not isinstance(key, str) or not key.strip() or not isinstance(raw, dict):
            _warn(path, where, "expected a named mapping with a 'skills' list")
            continue
        members = raw.get("skills")
        if not isinstance(members, list) or not members or not all(
            isinstance(m, str) and m.strip() for m in members
        ):
            _warn(path, f"{where}.skills", "expected a non-empty list of skill refs or aliases")
            continue
        name = raw.get("name")
        description = raw.get("description")
        result[key.strip()] = SkillSet(
            set_ref=key.strip(),
            name=name.strip() if isinstance(name, str) and name.strip() else key.strip(),
            description=(description.strip() or None) if isinstance(description, str) else None,
            skill_refs=tuple(m.strip() for m in members),
        )
    return result


def _parse_scan_roots(path: Path, value: Any, project_root: Path) -> dict[str, list[Path]]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        _warn(path, "scanRoots", "expected a mapping of namespace to path(s)")
        return {}
    result: dict[str, list[Path]] = {}
    for namespace, raw in value.items():
        if namespace not in SCOPES:
            _warn(path, f"scanRoots.{namespace}", f"namespace must be one of {', '.join(SCOPES)}")
            continue
        entries = raw if isinstance(raw, list) else [raw]
        if not entries or not all(isinstance(entry, str) and entry.strip() for entry in entries):
            _warn(path, f"scanRoots.{namespace}", "expected a path or list of paths")
            continue
        result[namespace] = [_resolve_path(entry, project_root) for entry in entries]
    return result


def _parse_scopes(path: Path, key: str, value: Any) -> tuple[str, ...] | None:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not all(v in SCOPES for v in value):
        _warn(path, key, f"expected a list drawn from {', '.join(SCOPES)}")
        return None
    return tuple(value)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_ratio(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and 0 <= value <= 1


_OUTPUT_FIELDS = {
    "max_lines": lambda v: _is_int(v) and v > 0,
    "include_layout": lambda v: isinstance(v, bool),
}
_RULE_FIELDS = {
    "unresolved": lambda v: v in _SEVERITIES,
    "ambiguous": lambda v: v in _SEVERITIES,
    "missing_set_members": lambda v: v in _SEVERITIES,
}
_RESOLUTION_FIELDS = {
    "fuzzy_matching": lambda v: isinstance(v, bool),
    "match_threshold": _is_ratio,
    "ambiguity_margin": _is_ratio,
    "max_suggestions": lambda v: _is_int(v) and v >= 0,
    "suggestion_floor": _is_ratio,
    "scope_priority": lambda v: isinstance(v, list) and all(s in SCOPES for s in v),
}


def _parse_section(path: Path, key: str, value: Any, fields: dict[str, Any]) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        _warn(path, key, "expected a mapping")
        return {}
    result: dict[str, Any] = {}
    for name, item in value.items():
        check = fields.get(name)
        if check is None:
            _warn(path, f"{key}.{name}", "unknown setting")
        elif not check(item):
            _warn(path, f"{key}.{name}", f"unexpected value {item!r}")
        else:
            result[name] = tuple(item) if isinstance(item, list) else item
    return result
