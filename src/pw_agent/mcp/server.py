"""FastMCP server exposing the browser automation tools."""

from __future__ import annotations

import asyncio
import os
import signal
import sys
from typing import Any, Awaitable, Callable, Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from pw_agent.artifacts.paths import ensure_artifact_dirs, generate_file_path
from pw_agent.config import AgentConfig
from pw_agent.core.errors import EXIT_OK
from pw_agent.mcp.dispatcher import CommandDispatcher
from pw_agent.runner.logging import open_logger

# Bounded wait for the stdio task after shutdown
TRANSPORT_JOIN_TIMEOUT_S = 1.0


def build_server(dispatcher: CommandDispatcher) -> FastMCP:
    """Register one MCP tool per dispatcher command.

    Tools return the JSON envelope ``{"success": true, "data": ...}`` or
    ``{"success": false, "error": ..., "evidence": ...}``.
    """
    mcp = FastMCP("pw-agent")

    async def _call(name: str, **args: Any) -> str:
        result = await dispatcher.dispatch(name, args)
        if not result.success:
            # FastMCP reports a raised ToolError as isError=True
            raise ToolError(result.to_json())
        return result.to_json()

    # ── Lifecycle ─────────────────────────────────────────────────

    @mcp.tool()
    async def launchBrowser(
        browserType: str,
        headless: Optional[bool] = None,
        args: Optional[list[str]] = None,
        recordVideo: Optional[bool] = None,
    ) -> str:
        """Launch chromium, firefox or webkit. Video and trace recording start
        automatically and are saved when the browser is closed. Omitted
        options come from the server's launch defaults."""
        return await _call(
            "launchBrowser", browserType=browserType, headless=headless,
            args=args, recordVideo=recordVideo,
        )

    @mcp.tool()
    async def closeBrowser() -> str:
        """Close the browser, saving the trace and finalizing the video."""
        return await _call("closeBrowser")

    @mcp.tool()
    async def goto(url: str) -> str:
        """Navigate the active page to an absolute URL."""
        return await _call("goto", url=url)

    # ── Interactions ──────────────────────────────────────────────

    @mcp.tool()
    async def click(selector: str) -> str:
        """Click an element."""
        return await _call("click", selector=selector)

    @mcp.tool()
    async def fill(selector: str, text: str) -> str:
        """Fill text into an input element."""
        return await _call("fill", selector=selector, text=text)

    @mcp.tool()
    async def hover(selector: str) -> str:
        """Hover over an element."""
        return await _call("hover", selector=selector)

    @mcp.tool()
    async def pressKey(key: str, selector: Optional[str] = None) -> str:
        """Press a key (e.g. 'Enter', 'Tab', 'A'), optionally focusing a selector first."""
        return await _call("pressKey", key=key, selector=selector)

    @mcp.tool()
    async def selectOption(selector: str, option: dict[str, Any]) -> str:
        """Select an option in a <select>.

        option MUST be an object specifying ONE of:
        {"value": "optionValue"}, {"label": "Visible Text"} or {"index": 0}.
        """
        return await _call("selectOption", selector=selector, option=option)

    @mcp.tool()
    async def getElementText(selector: str) -> str:
        """Return the text content of an element."""
        return await _call("getElementText", selector=selector)

    # ── Assertions and waits ──────────────────────────────────────

    @mcp.tool(name="assert")
    async def assert_(
        type: str,
        selector: Optional[str] = None,
        value: Optional[str] = None,
        attribute: Optional[str] = None,
        timeout: Optional[int] = None,
    ) -> str:
        """Assert page or element state.

        Types: visible, hidden, enabled, disabled, checked, unchecked,
        hasText, containsText, hasValue, hasAttribute, hasURL, hasTitle.
        """
        return await _call(
            "assert", type=type, selector=selector, value=value,
            attribute=attribute, timeout=timeout,
        )

    @mcp.tool()
    async def waitForSelector(
        selector: str, state: str = "visible", timeout: Optional[int] = None
    ) -> str:
        """Wait for an element to be attached, detached, visible or hidden."""
        return await _call("waitForSelector", selector=selector, state=state, timeout=timeout)

    @mcp.tool()
    async def waitForNavigation(timeout: Optional[int] = None) -> str:
        """Wait for the next navigation to complete."""
        return await _call("waitForNavigation", timeout=timeout)

    @mcp.tool()
    async def waitForTimeout(milliseconds: int) -> str:
        """Wait for a fixed duration in milliseconds (max 60000 by default)."""
        return await _call("waitForTimeout", milliseconds=milliseconds)

    # ── Information ───────────────────────────────────────────────

    @mcp.tool()
    async def getCurrentURL() -> str:
        """Return the URL of the active page."""
        return await _call("getCurrentURL")

    @mcp.tool()
    async def getCurrentTitle() -> str:
        """Return the title of the active page."""
        return await _call("getCurrentTitle")

    return mcp


async def serve(
    config: AgentConfig,
    dispatcher: CommandDispatcher | None = None,
    transport: Callable[[], Awaitable[None]] | None = None,
    stop: asyncio.Event | None = None,
    join_timeout_s: float = TRANSPORT_JOIN_TIMEOUT_S,
) -> str:
    """Run the stdio server until the transport closes or a signal arrives.

    Either way the session is shut down before the transport task is
    touched: the stdio reader blocks in a worker thread and may not honor
    cancellation until the next line arrives on stdin. Returns the shutdown
    reason.
    """
    ensure_artifact_dirs(config.artifacts)
    if dispatcher is None:
        dispatcher = CommandDispatcher.create(config, open_logger(config))
    logger = dispatcher.logger
    if transport is None:
        transport = build_server(dispatcher).run_stdio_async
    if stop is None:
        stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    received: list[str] = []
    installed: list[signal.Signals] = []

    def _on_signal(sig: signal.Signals) -> None:
        received.append(sig.name)
        stop.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _on_signal, sig)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            pass  # Windows event loops

    logger.info("server.start", commands=dispatcher.command_names)
    serve_task = asyncio.create_task(transport())
    stop_task = asyncio.create_task(stop.wait())
    try:
        done, _ = await asyncio.wait(
            {serve_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
        )
        if stop_task in done:
            reason = f"Received {received[0]}" if received else "Shutdown requested"
        elif serve_task.exception() is not None:
            reason = f"Transport error: {serve_task.exception()}"
            logger.error("server.transport_error", error=str(serve_task.exception()))
        else:
            reason = "Transport closed"

        stop_task.cancel()
        await asyncio.gather(stop_task, return_exceptions=True)
        await dispatcher.lifecycle.shutdown(reason)
        if dispatcher.recorder.actions:
            path = dispatcher.recorder.save(
                generate_file_path(config.artifacts.log_dir, None, "json", "actions")
            )
            logger.info("server.actions_saved", path=str(path))
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)

    if not serve_task.done():
        serve_task.cancel()
        await asyncio.wait({serve_task}, timeout=join_timeout_s)
        if not serve_task.done():
            logger.warning("server.transport_abandoned", reason=reason)
    logger.info("server.exit", reason=reason)
    logger.close()
    return reason


def run_server(config: AgentConfig | None = None) -> str:
    """Start the MCP server on stdio.

    If the stdin reader is still blocked after shutdown the process exits
    directly; cleanup has already run by then.
    """
    loop = asyncio.new_event_loop()
    try:
        reason = loop.run_until_complete(serve(config or AgentConfig.load()))
        stuck = [t for t in asyncio.all_tasks(loop) if not t.done()]
    finally:
        loop.close()
    if stuck:
        sys.stdout.flush()
        sys.stderr.flush()
        os._exit(EXIT_OK)
    return reason
