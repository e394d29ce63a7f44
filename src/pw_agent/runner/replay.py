"""Replay of a recorded command sequence (actions.json)."""

from __future__ import annotations

import asyncio
import json
import pathlib
from typing import Any

from pw_agent.core.errors import ReplayError
from pw_agent.mcp.dispatcher import CommandDispatcher


def load_actions(path: pathlib.Path) -> list[dict[str, Any]]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ReplayError(f"Cannot read actions file {path}: {exc}") from exc
    if not isinstance(data, list):
        raise ReplayError(f"Actions file must contain a JSON list: {path}")
    for i, rec in enumerate(data, 1):
        if not isinstance(rec, dict) or "action" not in rec:
            raise ReplayError(f"Entry {i} has no 'action' field")
    return data


async def replay_actions(
    actions: list[dict[str, Any]],
    dispatcher: CommandDispatcher,
    step_delay_ms: int = 0,
    stop_on_error: bool = False,
) -> list[dict[str, Any]]:
    """Dispatch each recorded action in order.

    The session is always shut down afterwards, so a recording that never
    called closeBrowser still saves its trace. Returns one result per step.
    """
    results: list[dict[str, Any]] = []
    try:
        for i, rec in enumerate(actions, 1):
            action = rec["action"]
            result = await dispatcher.dispatch(action, rec.get("args", {}))
            entry: dict[str, Any] = {"step": i, "action": action}
            if result.success:
                entry["result"] = result.data
            else:
                entry["error"] = result.error
                if result.evidence:
                    entry["evidence"] = result.evidence
            results.append(entry)
            if not result.success and stop_on_error:
                break
            if step_delay_ms > 0:
                await asyncio.sleep(step_delay_ms / 1000.0)
    finally:
        await dispatcher.lifecycle.shutdown("replay finished")
    return results
