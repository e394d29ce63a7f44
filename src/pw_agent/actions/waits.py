"""Explicit waits."""

from __future__ import annotations

from typing import Any

from pw_agent.actions.common import action_failed
from pw_agent.config import TimeoutConfig
from pw_agent.core.errors import ActionFailedError
from pw_agent.mcp.types import WaitForNavigationArgs, WaitForSelectorArgs, WaitForTimeoutArgs


async def wait_for_selector(
    page: Any, args: WaitForSelectorArgs, timeouts: TimeoutConfig
) -> str:
    s, state = args.selector, args.state
    timeout = args.timeout or timeouts.wait_ms
    try:
        await page.wait_for_selector(s, state=state, timeout=timeout)
    except Exception as exc:
        raise action_failed(
            f"Error waiting for selector '{s}'", exc,
            timeout_message=(
                f"Timeout waiting for element '{s}' to reach state '{state}' "
                f"within {timeout}ms."
            ),
        ) from exc
    return f"Element '{s}' reached state '{state}'."


async def wait_for_navigation(
    page: Any, args: WaitForNavigationArgs, timeouts: TimeoutConfig
) -> str:
    """Wait for the next navigation (e.g. one triggered by a prior click)."""
    timeout = args.timeout or timeouts.wait_ms
    try:
        async with page.expect_navigation(wait_until="domcontentloaded", timeout=timeout):
            pass
    except Exception as exc:
        raise action_failed(
            "Error waiting for navigation", exc,
            timeout_message=f"Timeout waiting for navigation within {timeout}ms.",
        ) from exc
    return f"Navigation completed. New URL: {page.url}"


async def wait_for_timeout(
    page: Any, args: WaitForTimeoutArgs, timeouts: TimeoutConfig
) -> str:
    ms = args.milliseconds
    if ms > timeouts.max_wait_ms:
        raise ActionFailedError(
            f"Error during waitForTimeout: {ms}ms exceeds the maximum of "
            f"{timeouts.max_wait_ms}ms."
        )
    try:
        await page.wait_for_timeout(ms)
    except Exception as exc:
        raise action_failed("Error during waitForTimeout", exc) from exc
    return f"Waited for {ms}ms."
