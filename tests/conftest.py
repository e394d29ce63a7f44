"""Shared fixtures: in-memory stand-ins for the Playwright browser objects."""

from __future__ import annotations

import io
import json
from contextlib import asynccontextmanager
from typing import Any

import pytest

from pw_agent.config import AgentConfig, ArtifactConfig
from pw_agent.mcp.dispatcher import CommandDispatcher
from pw_agent.runner.logging import StepLogger


class FakeResponse:
    def __init__(self, status: int = 200):
        self.status = status


class FakeKeyboard:
    def __init__(self, page: FakePage):
        self._page = page

    async def press(self, key: str) -> None:
        self._page._record("keyboard.press", key)


class FakePage:
    """Records every call; ``errors[name]`` makes that call raise."""

    def __init__(self) -> None:
        self.url = "about:blank"
        self.title_text = ""
        self.texts: dict[str, str | None] = {}
        self.errors: dict[str, Exception] = {}
        self.calls: list[tuple[str, tuple, dict]] = []
        self.keyboard = FakeKeyboard(self)

    def _record(self, name: str, *args: Any, **kwargs: Any) -> None:
        self.calls.append((name, args, kwargs))
        if name in self.errors:
            raise self.errors[name]

    def called(self, name: str) -> list[tuple[tuple, dict]]:
        return [(a, k) for n, a, k in self.calls if n == name]

    async def goto(self, url: str, **kwargs: Any) -> FakeResponse:
        self._record("goto", url, **kwargs)
        self.url = url
        return FakeResponse()

    async def title(self) -> str:
        self._record("title")
        return self.title_text

    async def click(self, selector: str, **kwargs: Any) -> None:
        self._record("click", selector, **kwargs)

    async def fill(self, selector: str, text: str, **kwargs: Any) -> None:
        self._record("fill", selector, text, **kwargs)

    async def hover(self, selector: str, **kwargs: Any) -> None:
        self._record("hover", selector, **kwargs)

    async def text_content(self, selector: str, **kwargs: Any) -> str | None:
        self._record("text_content", selector, **kwargs)
        return self.texts.get(selector)

    async def press(self, selector: str, key: str, **kwargs: Any) -> None:
        self._record("press", selector, key, **kwargs)

    async def select_option(self, selector: str, **kwargs: Any) -> list[str]:
        self._record("select_option", selector, **kwargs)
        return []

    async def wait_for_selector(self, selector: str, **kwargs: Any) -> None:
        self._record("wait_for_selector", selector, **kwargs)

    async def wait_for_timeout(self, ms: int) -> None:
        self._record("wait_for_timeout", ms)

    @asynccontextmanager
    async def expect_navigation(self, **kwargs: Any):
        self._record("expect_navigation", **kwargs)
        yield
        self.url = "https://example.com/next"

    def locator(self, selector: str) -> tuple[str, str]:
        return ("locator", selector)

    async def screenshot(self, path: str, **kwargs: Any) -> bytes:
        self._record("screenshot", path=path, **kwargs)
        with open(path, "wb") as fh:
            fh.write(b"\x89PNG")
        return b"\x89PNG"


class FakeTracing:
    def __init__(self) -> None:
        self.started: dict[str, Any] | None = None
        self.stopped_path: str | None = None
        self.stop_error: Exception | None = None

    async def start(self, **kwargs: Any) -> None:
        self.started = kwargs

    async def stop(self, path: str | None = None) -> None:
        if self.stop_error is not None:
            raise self.stop_error
        self.stopped_path = path
        if path:
            with open(path, "wb") as fh:
                fh.write(b"PK")


class FakeContext:
    def __init__(self, options: dict[str, Any]):
        self.options = options
        self.tracing = FakeTracing()
        self.page = FakePage()
        self.page_error: Exception | None = None

    async def new_page(self) -> FakePage:
        if self.page_error is not None:
            raise self.page_error
        return self.page


class FakeBrowser:
    def __init__(self) -> None:
        self.connected = True
        self.closed = False
        self.close_error: Exception | None = None
        self.context_error: Exception | None = None
        self.context: FakeContext | None = None

    def is_connected(self) -> bool:
        return self.connected

    async def new_context(self, **options: Any) -> FakeContext:
        if self.context_error is not None:
            raise self.context_error
        self.context = FakeContext(options)
        return self.context

    async def close(self) -> None:
        if self.close_error is not None:
            raise self.close_error
        self.closed = True
        self.connected = False


class FakeLauncher:
    """EngineLauncher that hands out FakeBrowser instances."""

    def __init__(self) -> None:
        self.launches: list[tuple[str, bool, list[str]]] = []
        self.browser: FakeBrowser | None = None
        self.next_browser: FakeBrowser | None = None
        self.launch_error: Exception | None = None
        self.stopped = 0

    async def launch(self, browser_type: str, headless: bool, args: list[str]) -> FakeBrowser:
        self.launches.append((browser_type, headless, list(args)))
        if self.launch_error is not None:
            raise self.launch_error
        self.browser = self.next_browser or FakeBrowser()
        self.next_browser = None
        return self.browser

    async def stop(self) -> None:
        self.stopped += 1

    @property
    def page(self) -> FakePage:
        return self.browser.context.page


@pytest.fixture()
def config(tmp_path) -> AgentConfig:
    return AgentConfig(artifacts=ArtifactConfig(root=str(tmp_path)), log_to_file=False)


@pytest.fixture()
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture()
def logger(log_stream) -> StepLogger:
    return StepLogger(stream=log_stream)


@pytest.fixture()
def launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture()
def dispatcher(config, logger, launcher) -> CommandDispatcher:
    return CommandDispatcher.create(config, logger, launcher=launcher)


def log_events(stream: io.StringIO) -> list[dict[str, Any]]:
    """Parse every JSON line written to *stream*."""
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]
