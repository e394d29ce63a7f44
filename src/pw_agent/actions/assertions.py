"""Web-first assertions backed by Playwright ``expect``."""

from __future__ import annotations

from typing import Any

from playwright.async_api import expect

from pw_agent.config import TimeoutConfig
from pw_agent.core.errors import ActionFailedError
from pw_agent.mcp.types import AssertArgs

# Assertion types that compare against ``value``
_NEEDS_VALUE = {"hasText", "containsText", "hasValue", "hasAttribute", "hasURL", "hasTitle"}
_PAGE_LEVEL = {"hasURL", "hasTitle"}


def _check_args(args: AssertArgs) -> None:
    if args.type not in _PAGE_LEVEL and not args.selector:
        raise ValueError(f"Selector is required for assertion type '{args.type}'.")
    if args.type in _NEEDS_VALUE and args.value is None:
        raise ValueError(f"Value is required for assertion type '{args.type}'.")
    if args.type == "hasAttribute" and args.attribute is None:
        raise ValueError(f"Attribute name is required for assertion type '{args.type}'.")


async def _run(page: Any, args: AssertArgs, timeout: int) -> None:
    t = args.type
    if t == "hasURL":
        await expect(page).to_have_url(args.value, timeout=timeout)
        return
    if t == "hasTitle":
        await expect(page).to_have_title(args.value, timeout=timeout)
        return

    locator = expect(page.locator(args.selector))
    if t == "visible":
        await locator.to_be_visible(timeout=timeout)
    elif t == "hidden":
        await locator.to_be_hidden(timeout=timeout)
    elif t == "enabled":
        await locator.to_be_enabled(timeout=timeout)
    elif t == "disabled":
        await locator.to_be_disabled(timeout=timeout)
    elif t == "checked":
        await locator.to_be_checked(timeout=timeout)
    elif t == "unchecked":
        await locator.not_to_be_checked(timeout=timeout)
    elif t == "hasText":
        await locator.to_have_text(args.value, timeout=timeout)
    elif t == "containsText":
        await locator.to_contain_text(args.value, timeout=timeout)
    elif t == "hasValue":
        await locator.to_have_value(args.value, timeout=timeout)
    elif t == "hasAttribute":
        await locator.to_have_attribute(args.attribute, args.value, timeout=timeout)
    else:
        raise ValueError(f"Unsupported type: {t}")


def success_message(args: AssertArgs) -> str:
    msg = f"Assertion passed: {args.type}"
    if args.selector:
        msg += f" for '{args.selector}'"
    if args.value is not None:
        msg += f' value "{args.value}"'
    if args.attribute is not None:
        msg += f' attr "{args.attribute}"'
    return msg


async def run_assertion(page: Any, args: AssertArgs, timeouts: TimeoutConfig) -> str:
    try:
        _check_args(args)
        await _run(page, args, args.timeout or timeouts.wait_ms)
    except Exception as exc:
        raise ActionFailedError(f"Assertion failed: {exc}") from exc
    return success_message(args)
