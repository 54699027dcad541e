"""Shared fixtures: an isolated home directory and skill document builders."""

import textwrap
from pathlib import Path

import pytest

from config import Config


@pytest.fixture
def isolated_home(tmp_path, monkeypatch):
    """Point HOME and the runtime dir at tmp_path; return (home, project)."""
    home = tmp_path / "home"
    project = tmp_path / "project"
    home.mkdir()
    project.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("SKILLSET_HOME", str(home / ".skillset"))
    monkeypatch.setenv("SKILLSET_PROJECT_ROOT", str(project))
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    return home, project


@pytest.fixture
def set_config(monkeypatch):
    """Temporarily override Config tunables.

    Usage:
        def test_something(set_config):
            set_config(HOOK_TIMEOUT=0.01)
    """

    def _set_config(**kwargs):
        for key, value in kwargs.items():
            monkeypatch.setattr(Config, key, value)

    return _set_config


def write_skill(root: Path, dirname: str, body: str = "", **frontmatter) -> Path:
    """Create <root>/<dirname>/SKILL.md and return its path."""
    skill_dir = root / dirname
    skill_dir.mkdir(parents=True, exist_ok=True)
    lines = []
    if frontmatter:
        lines.append("---")
        lines.extend(f"{key}: {value}" for key, value in frontmatter.items())
        lines.append("---")
        lines.append("")
    lines.append(textwrap.dedent(body).strip() or f"# {dirname}")
    path = skill_dir / "SKILL.md"
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def write_yaml(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content).lstrip(), encoding="utf-8")
    return path


@pytest.fixture
def make_skill():
    return write_skill


@pytest.fixture
def make_yaml():
    return write_yaml
