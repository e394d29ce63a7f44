"""Element interactions. Each call attempts once with the action timeout."""

from __future__ import annotations

from typing import Any

from pw_agent.actions.common import action_failed
from pw_agent.config import TimeoutConfig
from pw_agent.mcp.types import (
    FillArgs,
    OptionByIndex,
    OptionByLabel,
    PressKeyArgs,
    SelectOptionArgs,
    SelectorArgs,
)


async def click(page: Any, args: SelectorArgs, timeouts: TimeoutConfig) -> str:
    s = args.selector
    try:
        await page.click(s, timeout=timeouts.action_ms)
    except Exception as exc:
        raise action_failed(
            f"Error clicking element '{s}'", exc,
            timeout_message=f"Timeout waiting for element: {s}",
            hints={"selector resolved to hidden": f"Element '{s}' found but hidden."},
        ) from exc
    return f"Successfully clicked element: {s}"


async def fill(page: Any, args: FillArgs, timeouts: TimeoutConfig) -> str:
    s = args.selector
    try:
        await page.fill(s, args.text, timeout=timeouts.action_ms)
    except Exception as exc:
        raise action_failed(
            f"Error filling element '{s}'", exc,
            timeout_message=f"Timeout waiting for element: {s}",
            hints={"Element is not an <input>": f"Element '{s}' is not an input field.",
                   "Element is not an input": f"Element '{s}' is not an input field."},
        ) from exc
    return f"Successfully filled element '{s}'."


async def hover(page: Any, args: SelectorArgs, timeouts: TimeoutConfig) -> str:
    s = args.selector
    try:
        await page.hover(s, timeout=timeouts.action_ms)
    except Exception as exc:
        raise action_failed(
            f"Error hovering over element '{s}'", exc,
            timeout_message=f"Timeout waiting for element: {s}",
        ) from exc
    return f"Successfully hovered over element: {s}"


async def get_element_text(page: Any, args: SelectorArgs, timeouts: TimeoutConfig) -> str:
    s = args.selector
    try:
        text = await page.text_content(s, timeout=timeouts.action_ms)
    except Exception as exc:
        raise action_failed(
            f"Error getting text for element '{s}'", exc,
            timeout_message=f"Timeout waiting for element: {s}",
        ) from exc
    return text or ""


async def press_key(page: Any, args: PressKeyArgs, timeouts: TimeoutConfig) -> str:
    key, s = args.key, args.selector
    on = f" on element '{s}'" if s else ""
    try:
        if s:
            await page.press(s, key, timeout=timeouts.action_ms)
        else:
            await page.keyboard.press(key)
    except Exception as exc:
        raise action_failed(
            f"Error pressing key '{key}'" + (f" on '{s}'" if s else ""), exc,
            timeout_message=f"Timeout waiting for element: {s}" if s else None,
        ) from exc
    return f"Successfully pressed key '{key}'{on}."


async def select_option(page: Any, args: SelectOptionArgs, timeouts: TimeoutConfig) -> str:
    s = args.selector
    option = args.option
    if isinstance(option, OptionByIndex):
        kwargs: dict[str, Any] = {"index": option.index}
    elif isinstance(option, OptionByLabel):
        kwargs = {"label": option.label}
    else:
        kwargs = {"value": option.value}
    try:
        await page.select_option(s, timeout=timeouts.action_ms, **kwargs)
    except Exception as exc:
        raise action_failed(
            f"Error selecting option in '{s}'", exc,
            timeout_message=f"Timeout waiting for element or option: {s}",
        ) from exc
    return f"Successfully selected option in '{s}'."
