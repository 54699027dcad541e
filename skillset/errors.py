"""Exception taxonomy for skillset."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence

from .types import Diagnostic


class SkillsetError(Exception):
    """Base error; `code` is a stable machine-readable identifier."""

    code = "SKILLSET_ERROR"

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ConfigError(SkillsetError):
    """A config file exists but cannot be parsed."""

    code = "CONFIG_ERROR"

    def __init__(self, message: str, path: Path | str) -> None:
        super().__init__(f"{message} ({path})", {"path": str(path)})
        self.path = Path(path)


class SkillIndexError(SkillsetError):
    """No configured scan root could be read at all."""

    code = "INDEX_ERROR"


class CacheCorruptionError(SkillsetError):
    """Persisted cache is unreadable or has the wrong version.

    Internal only: the cache store always recovers by rebuilding.
    """

    code = "CACHE_CORRUPT"


class UnresolvedSkillsError(SkillsetError):
    """Injection blocked because some tokens did not resolve."""

    code = "UNRESOLVED"

    def __init__(self, diagnostics: Sequence[Diagnostic]) -> None:
        self.diagnostics = tuple(diagnostics)
        aliases = ", ".join(d.raw or d.alias or d.kind for d in self.diagnostics)
        super().__init__(
            f"{len(self.diagnostics)} skill reference(s) could not be injected: {aliases}",
            {"diagnostics": [d.to_dict() for d in self.diagnostics]},
        )
