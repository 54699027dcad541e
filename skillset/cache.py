"""Persisted skill index snapshot with staleness-driven rebuilds.

File layout (``<project>/.skillset/cache.json``)::

    {
      "version": 1,
      "generatedAt": 1700000000000,
      "ttlSeconds": 3600,
      "skills": {"project:ship": {"name": ..., "description": ..., "path": ...}},
      "collisions": [{"skillRef": ..., "kept": ..., "discarded": ...}]
    }
"""

from __future__ import annotations

import asyncio
import json
import os
import time
from pathlib import Path
from typing import Any, Iterable

import aiofiles
import aiofiles.os

from config import Config
from utils import get_logger

from .errors import CacheCorruptionError
from .indexer import build_index
from .parser import read_text
from .types import CacheSnapshot, Collision, ScanRoot, Skill

logger = get_logger(__name__)


def snapshot_to_dict(snapshot: CacheSnapshot) -> dict[str, Any]:
    return {
        "version": snapshot.version,
        "generatedAt": snapshot.generated_at,
        "ttlSeconds": snapshot.ttl_seconds,
        "skills": {ref: skill.to_dict() for ref, skill in sorted(snapshot.skills.items())},
        "collisions": [collision.to_dict() for collision in snapshot.collisions],
    }


def snapshot_from_dict(data: Any) -> CacheSnapshot:
    """Rebuild a snapshot from decoded JSON.

    Raises:
        CacheCorruptionError: If the document does not have the cache shape.
    """
    if not isinstance(data, dict):
        raise CacheCorruptionError("Cache root is not an object")
    try:
        version = data["version"]
        if version != Config.CACHE_VERSION:
            raise CacheCorruptionError(
                f"Cache version {version!r} does not match {Config.CACHE_VERSION}"
            )
        skills = {}
        for ref, entry in data["skills"].items():
            description = entry.get("description")
            skills[ref] = Skill(
                skill_ref=ref,
                name=str(entry["name"]),
                description=str(description) if description is not None else None,
                path=Path(entry["path"]),
            )
        collisions = tuple(
            Collision(
                skill_ref=item["skillRef"],
                kept=Path(item["kept"]),
                discarded=Path(item["discarded"]),
            )
            for item in data.get("collisions", [])
        )
        return CacheSnapshot(
            version=int(version),
            generated_at=int(data["generatedAt"]),
            ttl_seconds=int(data.get("ttlSeconds", Config.CACHE_TTL_SECONDS)),
            skills=dict(sorted(skills.items())),
            collisions=collisions,
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise CacheCorruptionError(f"Malformed cache entry: {e}") from e


class CacheStore:
    """Reads, rebuilds and atomically persists one project's snapshot."""

    def __init__(
        self,
        path: str | Path,
        scan_roots: Iterable[ScanRoot],
        max_depth: int | None = None,
        ttl_seconds: int | None = None,
    ) -> None:
        self.path = Path(path)
        self.scan_roots = tuple(scan_roots)
        self.max_depth = max_depth
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else Config.CACHE_TTL_SECONDS
        self._stale = False

    async def _read_file(self) -> CacheSnapshot:
        """Raises CacheCorruptionError for unreadable or invalid content."""
        try:
            content = await read_text(self.path)
            data = json.loads(content)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CacheCorruptionError(f"Cannot read cache {self.path}: {e}") from e
        return snapshot_from_dict(data)

    async def read(self) -> CacheSnapshot | None:
        """Return the persisted snapshot regardless of age, or None."""
        if not await aiofiles.os.path.isfile(self.path):
            return None
        try:
            return await self._read_file()
        except CacheCorruptionError as e:
            logger.debug(f"Ignoring unusable cache: {e}")
            return None

    async def load(self, max_age: float | None = None) -> CacheSnapshot:
        """Return a fresh snapshot, rebuilding when absent, corrupt or stale."""
        max_age = self.ttl_seconds if max_age is None else max_age
        if not self._stale and await aiofiles.os.path.isfile(self.path):
            try:
                snapshot = await self._read_file()
            except CacheCorruptionError as e:
                logger.warning(f"Rebuilding skill cache: {e}")
            else:
                if snapshot.is_fresh(int(time.time() * 1000), max_age):
                    return snapshot
                logger.debug(f"Skill cache older than {max_age}s, rebuilding")

        snapshot = await build_index(
            self.scan_roots, max_depth=self.max_depth, ttl_seconds=self.ttl_seconds
        )
        await self.save(snapshot)
        return snapshot

    async def rebuild(self) -> CacheSnapshot:
        await self.invalidate()
        return await self.load()

    async def save(self, snapshot: CacheSnapshot) -> None:
        """Atomically write the snapshot to disk."""
        await aiofiles.os.makedirs(self.path.parent, exist_ok=True)
        # Temp name is per process: concurrent hooks may save at once.
        tmp_path = f"{self.path}.{os.getpid()}.tmp"
        content = json.dumps(snapshot_to_dict(snapshot), indent=2, ensure_ascii=False)
        async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
            await f.write(content)
        await asyncio.to_thread(os.replace, tmp_path, self.path)
        self._stale = False
        logger.debug(f"Saved skill cache to {self.path}")

    async def invalidate(self) -> None:
        """Drop the persisted snapshot; the next load rebuilds."""
        self._stale = True
        try:
            await aiofiles.os.remove(self.path)
        except FileNotFoundError:
            pass
