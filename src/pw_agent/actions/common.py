"""Error normalization shared by the page actions."""

from __future__ import annotations

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from pw_agent.core.errors import ActionFailedError


def is_timeout(exc: BaseException) -> bool:
    return isinstance(exc, PlaywrightTimeoutError) or "Timeout" in str(exc)


def action_failed(
    prefix: str,
    exc: BaseException,
    timeout_message: str | None = None,
    hints: dict[str, str] | None = None,
) -> ActionFailedError:
    """Build an ActionFailedError with a readable reason.

    Engine messages are verbose; a timeout is replaced by *timeout_message*
    and a known substring in *hints* by its mapped text.
    """
    reason = str(exc)
    if timeout_message and is_timeout(exc):
        reason = timeout_message
    else:
        for needle, text in (hints or {}).items():
            if needle in str(exc):
                reason = text
                break
    return ActionFailedError(f"{prefix}: {reason}")
