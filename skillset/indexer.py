"""Discover SKILL.md documents under the configured scan roots."""

from __future__ import annotations

import asyncio
import os
import time
from pathlib import Path
from typing import Iterable

from config import Config
from utils import get_logger

from .errors import SkillIndexError
from .normalize import normalize_segment
from .parser import SKILL_FILENAME, SkillDocument, extract_metadata, read_text
from .types import CacheSnapshot, Collision, ScanRoot, Skill

logger = get_logger(__name__)


def walk_root(root: Path, max_depth: int) -> list[Path] | None:
    """Collect SKILL.md files below root.

    Returns None when the root does not exist or cannot be listed at all.
    """
    try:
        if not root.is_dir():
            return None
        os.listdir(root)
    except PermissionError as e:
        logger.warning(f"Skipping unreadable scan root {root}: {e}")
        return None

    found: list[Path] = []
    visited: set[str] = set()
    stack: list[tuple[Path, int]] = [(root, 0)]
    while stack:
        current, depth = stack.pop()
        real = os.path.realpath(current)
        if real in visited:
            continue
        visited.add(real)
        try:
            entries = list(os.scandir(current))
        except OSError as e:
            logger.warning(f"Skipping unreadable directory {current}: {e}")
            continue
        for entry in entries:
            try:
                if entry.is_dir():
                    if depth + 1 <= max_depth:
                        stack.append((Path(entry.path), depth + 1))
                elif entry.name == SKILL_FILENAME and entry.is_file():
                    found.append(Path(entry.path))
            except OSError:
                continue
    return found


def skill_ref_for(path: Path, root: ScanRoot) -> str:
    """Build the ref for a document found under a scan root.

    project/user: ``<scope>:<skill dir>``
    plugin:       ``plugin:<plugin>/<skill dir>``
    """
    skill_dir = normalize_segment(path.parent.name) or "unknown"
    if root.namespace == "plugin":
        try:
            parts = path.relative_to(root.path).parts
        except ValueError:
            parts = ()
        plugin = normalize_segment(parts[0]) if len(parts) > 2 else ""
        if plugin and plugin != skill_dir:
            return f"plugin:{plugin}/{skill_dir}"
        return f"plugin:{skill_dir}"
    return f"{root.namespace}:{skill_dir}"


async def load_skill(path: Path, ref: str) -> Skill:
    try:
        text = await read_text(path)
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Could not read {path}: {e}")
        return Skill(skill_ref=ref, name=path.parent.name, description=None, path=path)
    meta = extract_metadata(SkillDocument.from_text(path, text))
    return Skill(skill_ref=ref, name=meta.name or path.parent.name, description=meta.description, path=path)


async def build_index(
    scan_roots: Iterable[ScanRoot],
    *,
    max_depth: int | None = None,
    ttl_seconds: int | None = None,
) -> CacheSnapshot:
    """Walk every scan root and return a fresh snapshot.

    Raises:
        SkillIndexError: If none of the roots could be walked.
    """
    roots = list(scan_roots)
    depth = max_depth if max_depth is not None else Config.MAX_SCAN_DEPTH
    walks = await asyncio.gather(
        *(asyncio.to_thread(walk_root, root.path, depth) for root in roots)
    )
    if roots and all(walk is None for walk in walks):
        raise SkillIndexError(
            "No skill directory is reachable",
            context={"roots": [str(root.path) for root in roots]},
        )

    matches = sorted(
        (path, skill_ref_for(path, root))
        for root, walk in zip(roots, walks)
        for path in walk or ()
    )
    claimed: dict[str, Path] = {}
    collisions: list[Collision] = []
    for path, ref in matches:
        if ref in claimed:
            collisions.append(Collision(skill_ref=ref, kept=claimed[ref], discarded=path))
        else:
            claimed[ref] = path

    skills = await asyncio.gather(*(load_skill(path, ref) for ref, path in claimed.items()))
    snapshot = CacheSnapshot(
        version=Config.CACHE_VERSION,
        generated_at=int(time.time() * 1000),
        ttl_seconds=ttl_seconds if ttl_seconds is not None else Config.CACHE_TTL_SECONDS,
        skills={skill.skill_ref: skill for skill in sorted(skills, key=lambda s: s.skill_ref)},
        collisions=tuple(collisions),
    )
    logger.info(
        f"Indexed {len(snapshot.skills)} skills from {len(roots)} roots "
        f"({len(collisions)} collisions)"
    )
    return snapshot


def _layout_entries(directory: Path, depth: int) -> list[tuple[Path, int, bool]]:
    try:
        entries = list(os.scandir(directory))
    except OSError:
        return []
    rows = [(Path(e.path), depth, e.is_dir(follow_symlinks=False)) for e in entries]
    return sorted(rows, key=lambda row: (not row[2], row[0].name))


def describe_layout(directory: Path, max_depth: int = 6, max_lines: int | None = None) -> str:
    """Indented listing of a skill directory, directories before files."""
    lines: list[str] = []
    stack = list(reversed(_layout_entries(directory, 0)))
    while stack:
        path, depth, is_dir = stack.pop()
        lines.append(f"{'  ' * depth}- {path.name}{'/' if is_dir else ''}")
        if is_dir and depth + 1 < max_depth:
            stack.extend(reversed(_layout_entries(path, depth + 1)))
    if max_lines is not None and len(lines) > max_lines:
        lines = lines[:max_lines] + ["..."]
    return "\n".join(lines)
