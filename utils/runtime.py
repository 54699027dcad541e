"""Runtime directory management for skillset.

Per-user runtime data lives under ~/.skillset/ (override with SKILLSET_HOME):
- settings: KEY=VALUE tunables read by config.py
- config.yaml: user-scope resolution config (unless XDG_CONFIG_HOME is set)
- logs/: Log files (only created with --verbose) and usage.jsonl

Per-project data lives under <project>/.skillset/:
- config.yaml / config.local.yaml: project-scope resolution config
- cache.json: indexed skill snapshot
"""

import os


def get_runtime_dir() -> str:
    """Get the runtime directory path.

    Returns:
        Path to ~/.skillset (or $SKILLSET_HOME)
    """
    return os.environ.get("SKILLSET_HOME") or os.path.join(os.path.expanduser("~"), ".skillset")


def get_settings_file() -> str:
    """Get the KEY=VALUE settings file path.

    Returns:
        Path to ~/.skillset/settings
    """
    return os.path.join(get_runtime_dir(), "settings")


def get_user_config_dir() -> str:
    """Get the directory holding the user-scope config.yaml.

    Returns:
        $XDG_CONFIG_HOME/skillset when set, otherwise the runtime directory
    """
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return os.path.join(xdg, "skillset")
    return get_runtime_dir()


def get_project_root() -> str:
    """Get the project root (override with SKILLSET_PROJECT_ROOT).

    Returns:
        Absolute project root path
    """
    return os.path.abspath(os.environ.get("SKILLSET_PROJECT_ROOT") or os.getcwd())


def get_project_dir(project_root: str | None = None) -> str:
    """Get the per-project data directory.

    Returns:
        Path to <project>/.skillset
    """
    return os.path.join(project_root or get_project_root(), ".skillset")


def get_cache_file(project_root: str | None = None) -> str:
    """Get the skill index cache path.

    Returns:
        Path to <project>/.skillset/cache.json
    """
    return os.path.join(get_project_dir(project_root), "cache.json")


def get_log_dir() -> str:
    """Get the log directory path.

    Returns:
        Path to ~/.skillset/logs/
    """
    return os.path.join(get_runtime_dir(), "logs")


def ensure_runtime_dirs(create_logs: bool = False) -> None:
    """Ensure runtime directories exist.

    Creates:
    - ~/.skillset/
    - ~/.skillset/logs/ (only if create_logs=True)

    Args:
        create_logs: Whether to create the logs directory (for --verbose mode)
    """
    os.makedirs(get_runtime_dir(), exist_ok=True)

    if create_logs:
        os.makedirs(get_log_dir(), exist_ok=True)
