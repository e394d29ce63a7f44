"""Tests for command dispatch: guard, delegation, evidence, envelopes."""

import asyncio
import json
import pathlib

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from conftest import log_events
from pw_agent.actions import assertions
from pw_agent.config import AgentConfig, ArtifactConfig, LaunchDefaults
from pw_agent.constants import NO_SESSION_MESSAGE
from pw_agent.mcp.dispatcher import CommandDispatcher


async def _launch(dispatcher):
    result = await dispatcher.dispatch(
        "launchBrowser", {"browserType": "chromium", "headless": True}
    )
    assert result.success, result.error
    return result


def _screenshots(config) -> list[pathlib.Path]:
    d = config.artifacts.screenshot_dir
    return sorted(d.iterdir()) if d.exists() else []


# ── guard ─────────────────────────────────────────────────────────

@pytest.mark.asyncio
@pytest.mark.parametrize("name,args", [
    ("click", {"selector": "#a"}),
    ("goto", {"url": "https://example.com"}),
    ("getCurrentURL", {}),
    ("waitForTimeout", {"milliseconds": 10}),
])
async def test_page_commands_require_session(dispatcher, config, name, args):
    result = await dispatcher.dispatch(name, args)
    assert not result.success
    assert result.error == NO_SESSION_MESSAGE
    assert result.evidence is None
    assert _screenshots(config) == []


@pytest.mark.asyncio
async def test_disconnected_browser_is_rejected(dispatcher, launcher):
    await _launch(dispatcher)
    launcher.browser.connected = False
    result = await dispatcher.dispatch("click", {"selector": "#a"})
    assert result.error == NO_SESSION_MESSAGE
    assert launcher.page.called("click") == []


# ── lifecycle commands ────────────────────────────────────────────

@pytest.mark.asyncio
async def test_launch_uses_default_args(dispatcher, launcher):
    result = await _launch(dispatcher)
    assert launcher.launches == [("chromium", True, ["--no-sandbox"])]
    assert "chromium launched successfully" in result.data


@pytest.fixture()
def configured_dispatcher(tmp_path, logger, launcher):
    cfg = AgentConfig(
        artifacts=ArtifactConfig(root=str(tmp_path)),
        launch=LaunchDefaults(headless=True, args=["--foo"], record_video=False),
        log_to_file=False,
    )
    return CommandDispatcher.create(cfg, logger, launcher=launcher)


@pytest.mark.asyncio
async def test_launch_fills_omitted_options_from_config(configured_dispatcher, launcher):
    result = await configured_dispatcher.dispatch("launchBrowser", {"browserType": "chromium"})
    assert result.success, result.error
    assert launcher.launches == [("chromium", True, ["--foo"])]
    assert configured_dispatcher.session.video_path is None
    assert "record_video_dir" not in launcher.browser.context.options
    assert result.data.endswith("Trace active.")
    assert "Video" not in result.data


@pytest.mark.asyncio
async def test_explicit_launch_options_beat_config(configured_dispatcher, launcher):
    result = await configured_dispatcher.dispatch("launchBrowser", {
        "browserType": "firefox", "headless": False, "args": [], "recordVideo": True,
    })
    assert result.success, result.error
    assert launcher.launches == [("firefox", False, [])]
    assert configured_dispatcher.session.video_path is not None
    assert result.data.endswith("Video/Trace active.")



@pytest.mark.asyncio
async def test_second_launch_fails(dispatcher):
    await _launch(dispatcher)
    result = await dispatcher.dispatch("launchBrowser", {"browserType": "webkit"})
    assert not result.success
    assert result.error == "Error: Browser already launched (chromium). Use closeBrowser first."


@pytest.mark.asyncio
async def test_close_then_act(dispatcher):
    await _launch(dispatcher)
    closed = await dispatcher.dispatch("closeBrowser")
    assert closed.success
    assert closed.data.startswith("Browser closed successfully.")

    result = await dispatcher.dispatch("click", {"selector": "#a"})
    assert result.error == NO_SESSION_MESSAGE

    again = await dispatcher.dispatch("closeBrowser")
    assert again.data == "Info: No browser was open."


@pytest.mark.asyncio
async def test_close_error_is_a_failure(dispatcher, launcher):
    await _launch(dispatcher)
    launcher.browser.close_error = RuntimeError("boom")
    result = await dispatcher.dispatch("closeBrowser")
    assert not result.success
    assert result.error.startswith("Error closing browser: boom")


# ── page actions ──────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_goto_and_page_info(dispatcher, launcher):
    await _launch(dispatcher)
    launcher.page.title_text = "Example"

    result = await dispatcher.dispatch("goto", {"url": "https://example.com/"})
    assert result.data == "Successfully navigated to https://example.com/. Page status: 200."
    (_, kwargs), = launcher.page.called("goto")
    assert kwargs == {"wait_until": "domcontentloaded", "timeout": 30000}

    assert (await dispatcher.dispatch("getCurrentURL")).data == "https://example.com/"
    assert (await dispatcher.dispatch("getCurrentTitle")).data == "Example"


@pytest.mark.asyncio
async def test_click_uses_action_timeout(dispatcher, launcher):
    await _launch(dispatcher)
    result = await dispatcher.dispatch("click", {"selector": "#ok"})
    assert result.data == "Successfully clicked element: #ok"
    assert launcher.page.called("click") == [(("#ok",), {"timeout": 5000})]


@pytest.mark.asyncio
async def test_click_timeout_captures_evidence(dispatcher, launcher, config):
    await _launch(dispatcher)
    launcher.page.errors["click"] = PlaywrightTimeoutError("Timeout 5000ms exceeded.")

    result = await dispatcher.dispatch("click", {"selector": "#missing"})

    assert not result.success
    assert result.error.startswith(
        "Error clicking element '#missing': Timeout waiting for element: #missing"
    )
    assert result.evidence is not None
    assert f"Screenshot saved to: {result.evidence}" in result.error
    shot = pathlib.Path(result.evidence)
    assert shot.name == "error-click-error-_missing.png"
    assert shot.exists()
    assert _screenshots(config) == [shot]


@pytest.mark.asyncio
async def test_click_hidden_element_hint(dispatcher, launcher):
    await _launch(dispatcher)
    launcher.page.errors["click"] = RuntimeError("element: selector resolved to hidden <div>")
    result = await dispatcher.dispatch("click", {"selector": ".menu"})
    assert "Element '.menu' found but hidden." in result.error


@pytest.mark.asyncio
async def test_evidence_failure_still_returns_action_error(dispatcher, launcher):
    await _launch(dispatcher)
    launcher.page.errors["fill"] = RuntimeError("Element is not an <input>")
    launcher.page.errors["screenshot"] = RuntimeError("no screen")

    result = await dispatcher.dispatch("fill", {"selector": "#div", "text": "x"})

    assert result.error == "Error filling element '#div': Element '#div' is not an input field."
    assert result.evidence is None


@pytest.mark.asyncio
async def test_get_element_text(dispatcher, launcher):
    await _launch(dispatcher)
    launcher.page.texts["h1"] = "Hello"
    assert (await dispatcher.dispatch("getElementText", {"selector": "h1"})).data == "Hello"
    assert (await dispatcher.dispatch("getElementText", {"selector": "p"})).data == ""


@pytest.mark.asyncio
async def test_press_key_with_and_without_selector(dispatcher, launcher):
    await _launch(dispatcher)
    r1 = await dispatcher.dispatch("pressKey", {"key": "Enter"})
    r2 = await dispatcher.dispatch("pressKey", {"key": "Tab", "selector": "#q"})
    assert r1.data == "Successfully pressed key 'Enter'."
    assert r2.data == "Successfully pressed key 'Tab' on element '#q'."
    assert launcher.page.called("keyboard.press") == [(("Enter",), {})]
    assert launcher.page.called("press") == [(("#q", "Tab"), {"timeout": 5000})]


@pytest.mark.asyncio
@pytest.mark.parametrize("option,expected", [
    ({"value": "v2"}, {"value": "v2"}),
    ({"label": "Two"}, {"label": "Two"}),
    ({"index": 1}, {"index": 1}),
])
async def test_select_option_variants(dispatcher, launcher, option, expected):
    await _launch(dispatcher)
    result = await dispatcher.dispatch("selectOption", {"selector": "#s", "option": option})
    assert result.data == "Successfully selected option in '#s'."
    (_, kwargs), = launcher.page.called("select_option")
    assert kwargs == {"timeout": 5000, **expected}


@pytest.mark.asyncio
async def test_waits(dispatcher, launcher):
    await _launch(dispatcher)
    r = await dispatcher.dispatch("waitForSelector", {"selector": "#x", "state": "attached"})
    assert r.data == "Element '#x' reached state 'attached'."
    (_, kwargs), = launcher.page.called("wait_for_selector")
    assert kwargs == {"state": "attached", "timeout": 30000}

    r = await dispatcher.dispatch("waitForNavigation", {"timeout": 1000})
    assert r.data == "Navigation completed. New URL: https://example.com/next"

    r = await dispatcher.dispatch("waitForTimeout", {"milliseconds": 250})
    assert r.data == "Waited for 250ms."


@pytest.mark.asyncio
async def test_wait_for_timeout_cap(dispatcher, launcher, config):
    await _launch(dispatcher)
    result = await dispatcher.dispatch("waitForTimeout", {"milliseconds": 60001})
    assert not result.success
    assert "exceeds the maximum of 60000ms" in result.error
    assert result.evidence is None
    assert launcher.page.called("wait_for_timeout") == []


@pytest.mark.asyncio
async def test_wait_for_selector_timeout_message(dispatcher, launcher):
    await _launch(dispatcher)
    launcher.page.errors["wait_for_selector"] = PlaywrightTimeoutError("Timeout 50ms exceeded.")
    result = await dispatcher.dispatch("waitForSelector", {"selector": "#x", "timeout": 50})
    assert "Timeout waiting for element '#x' to reach state 'visible' within 50ms." in result.error
    assert "error-waitForSelector-error-_x" in result.evidence


# ── assertions ────────────────────────────────────────────────────

class _FakeExpectation:
    def __init__(self, target, calls, fail):
        self.target = target
        self.calls = calls
        self.fail = fail

    def __getattr__(self, matcher):
        async def check(*args, **kwargs):
            self.calls.append((self.target, matcher, args, kwargs))
            if self.fail:
                raise AssertionError(f"Locator expected: {matcher}")
        return check


@pytest.fixture()
def fake_expect(monkeypatch):
    state = {"calls": [], "fail": False}

    def expect(target):
        return _FakeExpectation(target, state["calls"], state["fail"])

    monkeypatch.setattr(assertions, "expect", expect)
    return state


@pytest.mark.asyncio
async def test_assert_page_level(dispatcher, fake_expect):
    await _launch(dispatcher)
    result = await dispatcher.dispatch("assert", {"type": "hasTitle", "value": "Home"})
    assert result.data == 'Assertion passed: hasTitle value "Home"'
    (_, matcher, args, kwargs), = fake_expect["calls"]
    assert matcher == "to_have_title"
    assert args == ("Home",)
    assert kwargs == {"timeout": 30000}


@pytest.mark.asyncio
async def test_assert_attribute(dispatcher, fake_expect):
    await _launch(dispatcher)
    result = await dispatcher.dispatch("assert", {
        "type": "hasAttribute", "selector": "a", "attribute": "href",
        "value": "/x", "timeout": 100,
    })
    assert result.data == 'Assertion passed: hasAttribute for \'a\' value "/x" attr "href"'
    (target, matcher, args, kwargs), = fake_expect["calls"]
    assert target == ("locator", "a")
    assert matcher == "to_have_attribute"
    assert args == ("href", "/x")
    assert kwargs == {"timeout": 100}


@pytest.mark.asyncio
async def test_assert_unchecked_uses_negated_matcher(dispatcher, fake_expect):
    await _launch(dispatcher)
    await dispatcher.dispatch("assert", {"type": "unchecked", "selector": "#c"})
    assert fake_expect["calls"][0][1] == "not_to_be_checked"


@pytest.mark.asyncio
async def test_assert_failure_captures_evidence(dispatcher, fake_expect):
    await _launch(dispatcher)
    fake_expect["fail"] = True
    result = await dispatcher.dispatch("assert", {"type": "visible", "selector": "#gone"})
    assert result.error.startswith("Assertion failed: Locator expected: to_be_visible")
    assert pathlib.Path(result.evidence).name == "error-assert-visible-failed-_gone.png"


@pytest.mark.asyncio
async def test_assert_missing_selector(dispatcher, fake_expect):
    await _launch(dispatcher)
    result = await dispatcher.dispatch("assert", {"type": "enabled"})
    assert result.error.startswith(
        "Assertion failed: Selector is required for assertion type 'enabled'."
    )
    assert fake_expect["calls"] == []


# ── validation, aliases, logging ──────────────────────────────────

@pytest.mark.asyncio
async def test_invalid_arguments(dispatcher, launcher):
    result = await dispatcher.dispatch("goto", {"url": "not a url"})
    assert not result.success
    assert result.error.startswith("Error: Invalid arguments for goto")
    assert launcher.launches == []


@pytest.mark.asyncio
async def test_unknown_command(dispatcher):
    result = await dispatcher.dispatch("teleport", {})
    assert result.error == "Error: Unknown command 'teleport'."


@pytest.mark.asyncio
async def test_aliases(dispatcher, launcher):
    assert (await dispatcher.dispatch("launch", {"browserType": "firefox"})).success
    assert launcher.launches[0][0] == "firefox"
    assert (await dispatcher.dispatch("navigate", {"url": "https://a.test/"})).success
    assert (await dispatcher.dispatch("close")).success


@pytest.mark.asyncio
async def test_none_args_are_dropped(dispatcher, launcher):
    await _launch(dispatcher)
    result = await dispatcher.dispatch("pressKey", {"key": "A", "selector": None})
    assert result.success
    assert dispatcher.recorder.actions[-1]["args"] == {"key": "A"}


@pytest.mark.asyncio
async def test_every_command_is_recorded_and_logged(dispatcher, log_stream):
    await dispatcher.dispatch("getCurrentURL")
    await dispatcher.dispatch("closeBrowser")

    assert [a["action"] for a in dispatcher.recorder.actions] == [
        "getCurrentURL", "closeBrowser",
    ]
    steps = [e for e in log_events(log_stream) if e["event"] == "command"]
    assert [s["step"] for s in steps] == [1, 2]
    assert steps[0]["level"] == "error"
    assert steps[1]["result"] == "Info: No browser was open."


def test_result_envelope_json():
    from pw_agent.mcp.types import ToolResult

    assert json.loads(ToolResult.ok("done").to_json()) == {"success": True, "data": "done"}
    assert json.loads(ToolResult.fail("bad", evidence="/x.png").to_json()) == {
        "success": False, "error": "bad", "evidence": "/x.png",
    }


@pytest.mark.asyncio
async def test_shutdown_during_pending_action(dispatcher, launcher, log_stream):
    await _launch(dispatcher)
    started = asyncio.Event()
    gate = asyncio.Event()

    async def slow_click(selector, **kwargs):
        started.set()
        await gate.wait()
        raise RuntimeError("Target page, context or browser has been closed")

    launcher.page.click = slow_click
    action = asyncio.create_task(dispatcher.dispatch("click", {"selector": "#a"}))
    await asyncio.wait_for(started.wait(), 1)

    report = await dispatcher.lifecycle.shutdown("Received SIGTERM")
    assert report.browser_closed
    assert launcher.stopped == 1
    assert not dispatcher.session.is_active

    gate.set()
    result = await asyncio.wait_for(action, 1)
    assert not result.success
    assert "has been closed" in result.error
    assert result.evidence is None
    events = [e["event"] for e in log_events(log_stream)]
    assert "evidence.unavailable" in events
