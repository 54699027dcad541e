"""UserPromptSubmit hook protocol: JSON payload on stdin, JSON on stdout."""

from __future__ import annotations

import json
from typing import Any

from .inject import inject_prompt

HOOK_EVENT = "UserPromptSubmit"


def extract_prompt(stdin_text: str) -> str:
    """Return `prompt`, else `inputText`, else the raw input."""
    try:
        payload: Any = json.loads(stdin_text)
    except json.JSONDecodeError:
        return stdin_text
    if isinstance(payload, dict):
        for key in ("prompt", "inputText"):
            if isinstance(payload.get(key), str):
                return payload[key]
    return stdin_text


def hook_response(context: str) -> str:
    return json.dumps(
        {"hookSpecificOutput": {"hookEventName": HOOK_EVENT, "additionalContext": context}}
    )


async def run_prompt_hook(stdin_text: str, **kwargs: Any) -> tuple[str, int, str]:
    """Run injection for a hook payload.

    Returns:
        (stdout JSON, exit code, stderr text). stderr lists diagnostics when
        the prompt is blocked or injection failed.
    """
    result = await inject_prompt(extract_prompt(stdin_text), source="hook", **kwargs)
    stderr = ""
    if not result.ok:
        stderr = "\n".join(f"skillset: {d.message}" for d in result.diagnostics)
    return hook_response(result.text), result.exit_code, stderr
