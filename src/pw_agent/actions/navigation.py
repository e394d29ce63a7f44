"""Navigation and page information."""

from __future__ import annotations

from typing import Any

from pw_agent.actions.common import action_failed
from pw_agent.config import TimeoutConfig
from pw_agent.mcp.types import GotoArgs, NoArgs


async def goto(page: Any, args: GotoArgs, timeouts: TimeoutConfig) -> str:
    try:
        response = await page.goto(
            args.url, wait_until="domcontentloaded", timeout=timeouts.wait_ms
        )
    except Exception as exc:
        raise action_failed(
            f"Error navigating to {args.url}", exc,
            timeout_message=f"Timeout navigating within {timeouts.wait_ms}ms.",
        ) from exc
    status = response.status if response is not None else "unknown"
    return f"Successfully navigated to {args.url}. Page status: {status}."


async def get_current_url(page: Any, args: NoArgs, timeouts: TimeoutConfig) -> str:
    try:
        return page.url
    except Exception as exc:
        raise action_failed("Error getting current URL", exc) from exc


async def get_current_title(page: Any, args: NoArgs, timeouts: TimeoutConfig) -> str:
    try:
        return await page.title()
    except Exception as exc:
        raise action_failed("Error getting current title", exc) from exc
