"""Tests for the UserPromptSubmit hook runner."""

import json

import pytest

from skillset.hook import extract_prompt, run_prompt_hook


def test_extract_prompt_keys() -> None:
    assert extract_prompt(json.dumps({"prompt": "a", "inputText": "b"})) == "a"
    assert extract_prompt(json.dumps({"inputText": "b"})) == "b"
    assert extract_prompt(json.dumps({"prompt": 3})) == json.dumps({"prompt": 3})
    assert extract_prompt("plain $ship") == "plain $ship"


@pytest.fixture
def project(isolated_home, make_skill):
    _, project = isolated_home
    make_skill(project / ".claude" / "skills", "ship", "# Ship\n\nRelease steps.")
    return project


@pytest.mark.asyncio
async def test_hook_injects_context(project) -> None:
    payload = json.dumps({"prompt": "Use $ship", "session_id": "abc"})

    output, exit_code, stderr = await run_prompt_hook(payload, project_root=project)

    data = json.loads(output)
    assert data["hookSpecificOutput"]["hookEventName"] == "UserPromptSubmit"
    assert "Release steps." in data["hookSpecificOutput"]["additionalContext"]
    assert exit_code == 0
    assert stderr == ""


@pytest.mark.asyncio
async def test_hook_without_tokens(project) -> None:
    output, exit_code, _ = await run_prompt_hook(json.dumps({"prompt": "hi"}), project_root=project)

    assert json.loads(output)["hookSpecificOutput"]["additionalContext"] == ""
    assert exit_code == 0


@pytest.mark.asyncio
async def test_hook_blocked_in_strict_mode(project, make_yaml) -> None:
    make_yaml(project / ".skillset" / "config.yaml", "mode: strict\n")

    output, exit_code, stderr = await run_prompt_hook(
        json.dumps({"inputText": "$unknown-thing"}), project_root=project
    )

    assert exit_code == 2
    assert json.loads(output)["hookSpecificOutput"]["additionalContext"] == ""
    assert "$unknown-thing" in stderr
