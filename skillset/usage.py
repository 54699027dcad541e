"""Append-only usage log of injected skills."""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from typing import Iterable

import aiofiles
import aiofiles.os

from utils import get_logger
from utils.runtime import get_log_dir

from .types import Resolved, ResolvedSet, ResolveResult

logger = get_logger(__name__)

USAGE_FILENAME = "usage.jsonl"


def get_usage_file() -> str:
    return os.path.join(get_log_dir(), USAGE_FILENAME)


async def log_usage(results: Iterable[ResolveResult], source: str) -> int:
    """Record one line per distinct resolved skill, set members included.

    Returns the number of lines written.
    """
    refs = []
    for result in results:
        if isinstance(result, Resolved):
            skills = [result.skill]
        elif isinstance(result, ResolvedSet):
            skills = list(result.members)
        else:
            continue
        for skill in skills:
            if skill.skill_ref not in refs:
                refs.append(skill.skill_ref)
    if not refs:
        return 0

    timestamp = datetime.now(timezone.utc).isoformat()
    lines = "".join(
        json.dumps({"timestamp": timestamp, "action": "inject", "skill": ref, "source": source})
        + "\n"
        for ref in refs
    )
    path = get_usage_file()
    try:
        await aiofiles.os.makedirs(os.path.dirname(path), exist_ok=True)
        async with aiofiles.open(path, "a", encoding="utf-8") as f:
            await f.write(lines)
    except OSError as e:
        logger.debug(f"Failed to write usage log {path}: {e}")
        return 0
    return len(refs)
