"""Command dispatch: guard, delegate, capture evidence, build the result.

Every command returns a :class:`ToolResult`; nothing raised by a handler
escapes :meth:`CommandDispatcher.dispatch`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel, ValidationError

from pw_agent.actions import assertions, interactions, navigation, waits
from pw_agent.artifacts.evidence import capture_failure
from pw_agent.config import AgentConfig
from pw_agent.core.errors import PwAgentError
from pw_agent.core.guard import ensure_active
from pw_agent.core.lifecycle import EngineLauncher, SessionLifecycle
from pw_agent.core.session import Session
from pw_agent.mcp.types import (
    AssertArgs,
    FillArgs,
    GotoArgs,
    LaunchBrowserArgs,
    NoArgs,
    PressKeyArgs,
    SelectOptionArgs,
    SelectorArgs,
    ToolResult,
    WaitForNavigationArgs,
    WaitForSelectorArgs,
    WaitForTimeoutArgs,
)
from pw_agent.runner.logging import ActionRecorder, StepLogger

# (args) -> (category, detail) for the failure screenshot
EvidenceFn = Callable[[Any], tuple[str, Optional[str]]]


@dataclass(frozen=True)
class CommandSpec:
    name: str
    args_model: type[BaseModel]
    handler: Callable[..., Awaitable[str]]
    needs_page: bool = True
    evidence: Optional[EvidenceFn] = None


def _selector_evidence(category: str) -> EvidenceFn:
    return lambda a: (category, a.selector)


def _page_evidence(category: str) -> EvidenceFn:
    return lambda a: (category, a.selector or "page")


PAGE_COMMANDS: dict[str, CommandSpec] = {
    spec.name: spec
    for spec in [
        CommandSpec("goto", GotoArgs, navigation.goto,
                    evidence=lambda a: ("goto-error", a.url)),
        CommandSpec("click", SelectorArgs, interactions.click,
                    evidence=_selector_evidence("click-error")),
        CommandSpec("fill", FillArgs, interactions.fill,
                    evidence=_selector_evidence("fill-error")),
        CommandSpec("hover", SelectorArgs, interactions.hover,
                    evidence=_selector_evidence("hover-error")),
        CommandSpec("pressKey", PressKeyArgs, interactions.press_key,
                    evidence=_page_evidence("pressKey-error")),
        CommandSpec("selectOption", SelectOptionArgs, interactions.select_option,
                    evidence=_selector_evidence("selectOption-error")),
        CommandSpec("getElementText", SelectorArgs, interactions.get_element_text,
                    evidence=_selector_evidence("getText-error")),
        CommandSpec("assert", AssertArgs, assertions.run_assertion,
                    evidence=lambda a: (f"assert-{a.type}-failed", a.selector or "page")),
        CommandSpec("waitForSelector", WaitForSelectorArgs, waits.wait_for_selector,
                    evidence=_selector_evidence("waitForSelector-error")),
        CommandSpec("waitForNavigation", WaitForNavigationArgs, waits.wait_for_navigation,
                    evidence=lambda a: ("waitForNavigation-error", "page")),
        CommandSpec("waitForTimeout", WaitForTimeoutArgs, waits.wait_for_timeout),
        CommandSpec("getCurrentURL", NoArgs, navigation.get_current_url),
        CommandSpec("getCurrentTitle", NoArgs, navigation.get_current_title),
    ]
}


# Short names accepted from scenario and replay files
COMMAND_ALIASES = {
    "launch": "launchBrowser",
    "close": "closeBrowser",
    "navigate": "goto",
}


class CommandDispatcher:
    """Maps command name + flat args to a lifecycle transition or page action."""

    def __init__(
        self,
        session: Session,
        lifecycle: SessionLifecycle,
        config: AgentConfig,
        logger: StepLogger,
        recorder: ActionRecorder | None = None,
    ):
        self.session = session
        self.lifecycle = lifecycle
        self.config = config
        self.logger = logger
        self.recorder = recorder or ActionRecorder()
        self.commands: dict[str, CommandSpec] = {
            "launchBrowser": CommandSpec(
                "launchBrowser", LaunchBrowserArgs, self._launch, needs_page=False
            ),
            "closeBrowser": CommandSpec(
                "closeBrowser", NoArgs, self._close, needs_page=False
            ),
            **PAGE_COMMANDS,
        }

    @classmethod
    def create(
        cls,
        config: AgentConfig,
        logger: StepLogger,
        launcher: EngineLauncher | None = None,
    ) -> CommandDispatcher:
        """Wire a fresh idle session, its lifecycle and a dispatcher."""
        session = Session()
        lifecycle = SessionLifecycle(session, config, logger, launcher=launcher)
        return cls(session, lifecycle, config, logger)

    @property
    def command_names(self) -> list[str]:
        return list(self.commands)

    async def dispatch(self, name: str, args: dict[str, Any] | None = None) -> ToolResult:
        raw = {k: v for k, v in (args or {}).items() if v is not None}
        step = self.logger.next_step()
        self.recorder.record(name, raw)
        try:
            result = await self._dispatch(name, raw)
        except Exception as exc:
            # Last line of defense; handlers already convert their own errors
            result = ToolResult.fail(f"Error: {exc}")
        self.logger.log_step(
            step, name, raw,
            result=result.data if result.success else None,
            error=result.error,
            screenshot_path=result.evidence,
        )
        return result

    async def _dispatch(self, name: str, raw: dict[str, Any]) -> ToolResult:
        spec = self.commands.get(COMMAND_ALIASES.get(name, name))
        if spec is None:
            return ToolResult.fail(f"Error: Unknown command '{name}'.")

        try:
            args = spec.args_model.model_validate(raw)
        except ValidationError as exc:
            return ToolResult.fail(f"Error: Invalid arguments for {name}: {exc}")

        if not spec.needs_page:
            try:
                return ToolResult.ok(await spec.handler(args))
            except PwAgentError as exc:
                return ToolResult.fail(str(exc))

        try:
            page = ensure_active(self.session)
        except PwAgentError as exc:
            self.logger.warning("guard.rejected", action=name)
            return ToolResult.fail(str(exc))

        try:
            return ToolResult.ok(await spec.handler(page, args, self.config.timeouts))
        except Exception as exc:
            message = str(exc) if isinstance(exc, PwAgentError) else f"Error in {name}: {exc}"
            evidence = None
            if spec.evidence is not None:
                category, detail = spec.evidence(args)
                evidence = await capture_failure(
                    self.session, category, detail,
                    self.config.artifacts, self.logger,
                    timeout_ms=self.config.timeouts.evidence_ms,
                )
            if evidence:
                message += f" Screenshot saved to: {evidence}"
            return ToolResult.fail(message, evidence=evidence)

    # ── Lifecycle commands ────────────────────────────────────────

    async def _launch(self, args: LaunchBrowserArgs) -> str:
        # Options the caller left out come from the configured launch defaults
        defaults = self.config.launch
        given = args.model_fields_set
        report = await self.lifecycle.launch(
            args.browser_type,
            args.headless if "headless" in given else defaults.headless,
            args.args if "args" in given else list(defaults.args),
            args.record_video if "record_video" in given else defaults.record_video,
        )
        return report.message

    async def _close(self, args: NoArgs) -> str:
        report = await self.lifecycle.close("closeBrowser")
        if report.is_error:
            raise PwAgentError(report.message)
        return report.message
