"""Runtime tunables for skillset.

Values come from ~/.skillset/settings (KEY=VALUE) and may be overridden by
SKILLSET_<KEY> environment variables. Per-project resolution behaviour
(mode, mappings, thresholds) lives in the YAML scope configs instead; the
values here are only their defaults.
"""

import os

from utils.runtime import get_settings_file

# Default settings template
_DEFAULT_SETTINGS = """\
# skillset runtime settings

# Logging (only active with --verbose)
LOG_LEVEL=DEBUG

# Skill index cache freshness, in seconds
CACHE_TTL_SECONDS=3600

# Alias resolution defaults (YAML `resolution:` overrides these per scope)
MATCH_THRESHOLD=0.6
AMBIGUITY_MARGIN=0.15
MAX_SUGGESTIONS=3
SUGGESTION_FLOOR=0.3

# Indexer
MAX_SCAN_DEPTH=12

# Output
OUTPUT_MAX_LINES=500

# Hook deadline in seconds for tokenize + index + resolve + format
HOOK_TIMEOUT=5

# Token sigil ("$" or the legacy "w/")
TOKEN_SIGIL=$
"""


def _load_config(path: str) -> dict[str, str]:
    """Parse a KEY=VALUE config file, skipping comments and blank lines."""
    cfg: dict[str, str] = {}
    if not os.path.isfile(path):
        return cfg
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue
            key, _, value = line.partition("=")
            # Strip inline comments (# ...) from the value
            if "#" in value:
                value = value[: value.index("#")]
            cfg[key.strip()] = value.strip()
    return cfg


def ensure_settings_file() -> str:
    """Create the settings file with defaults if it does not exist."""
    path = get_settings_file()
    if not os.path.exists(path):
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(_DEFAULT_SETTINGS)
    return path


_cfg = _load_config(get_settings_file())


def _get(key: str, default: str) -> str:
    return os.environ.get(f"SKILLSET_{key}") or _cfg.get(key) or default


class Config:
    """Runtime tunables for skillset.

    All tunables are centralized here. Access values directly via Config.XXX.
    """

    # Logging Configuration
    # Note: Logging is controlled via --verbose flag; logs go to ~/.skillset/logs/
    LOG_LEVEL = _get("LOG_LEVEL", "DEBUG").upper()

    # Cache Configuration
    CACHE_TTL_SECONDS = int(_get("CACHE_TTL_SECONDS", "3600"))
    CACHE_VERSION = 1

    # Resolution Configuration
    MATCH_THRESHOLD = float(_get("MATCH_THRESHOLD", "0.6"))
    AMBIGUITY_MARGIN = float(_get("AMBIGUITY_MARGIN", "0.15"))
    MAX_SUGGESTIONS = int(_get("MAX_SUGGESTIONS", "3"))
    SUGGESTION_FLOOR = float(_get("SUGGESTION_FLOOR", "0.3"))

    # Indexer Configuration
    MAX_SCAN_DEPTH = int(_get("MAX_SCAN_DEPTH", "12"))

    # Output Configuration
    OUTPUT_MAX_LINES = int(_get("OUTPUT_MAX_LINES", "500"))

    # Hook Configuration
    HOOK_TIMEOUT = float(_get("HOOK_TIMEOUT", "5"))
    TOKEN_SIGIL = _get("TOKEN_SIGIL", "$")

    @classmethod
    def validate(cls):
        """Validate tunables.

        Raises:
            ValueError: If a tunable is out of range
        """
        if not 0.0 <= cls.MATCH_THRESHOLD <= 1.0:
            raise ValueError(f"MATCH_THRESHOLD must be within [0, 1], got {cls.MATCH_THRESHOLD}")
        if not 0.0 <= cls.AMBIGUITY_MARGIN <= 1.0:
            raise ValueError(
                f"AMBIGUITY_MARGIN must be within [0, 1], got {cls.AMBIGUITY_MARGIN}"
            )
        if cls.CACHE_TTL_SECONDS < 0:
            raise ValueError("CACHE_TTL_SECONDS must not be negative")
        if cls.MAX_SCAN_DEPTH < 1:
            raise ValueError("MAX_SCAN_DEPTH must be at least 1")
        if cls.HOOK_TIMEOUT <= 0:
            raise ValueError("HOOK_TIMEOUT must be positive")
        if not cls.TOKEN_SIGIL:
            raise ValueError("TOKEN_SIGIL must not be empty")
