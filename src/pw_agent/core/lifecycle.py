"""Session lifecycle: launch, close and shutdown transitions.

Launch order is engine -> recording context (video) -> tracing -> page, so
that every user action happens inside both recording scopes. Close runs its
cleanup steps independently: trace stop, browser close (which finalizes the
video), then an unconditional reset of the session record.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from playwright.async_api import async_playwright

from pw_agent.artifacts.paths import generate_file_path
from pw_agent.config import AgentConfig
from pw_agent.core.errors import AlreadyActiveError, LaunchFailedError
from pw_agent.core.session import Session
from pw_agent.runner.logging import StepLogger


class EngineLauncher(Protocol):
    async def launch(self, browser_type: str, headless: bool, args: list[str]) -> Any: ...

    async def stop(self) -> None: ...


class PlaywrightLauncher:
    """Starts the Playwright driver lazily and launches browsers from it."""

    def __init__(self) -> None:
        self._playwright = None

    async def launch(self, browser_type: str, headless: bool, args: list[str]) -> Any:
        if self._playwright is None:
            self._playwright = await async_playwright().start()
        browser_cls = getattr(self._playwright, browser_type)
        return await browser_cls.launch(headless=headless, args=args)

    async def stop(self) -> None:
        if self._playwright is None:
            return
        pw, self._playwright = self._playwright, None
        await pw.stop()


# ── Reports ───────────────────────────────────────────────────────

@dataclass
class LaunchReport:
    browser_type: str
    headless: bool
    args: list[str]
    record_video: bool
    trace_path: str
    video_path: Optional[str]

    @property
    def message(self) -> str:
        active = "Video/Trace active." if self.record_video else "Trace active."
        return (
            f"{self.browser_type} launched successfully "
            f"(headless: {str(self.headless).lower()}, args: {', '.join(self.args)}). {active}"
        )


@dataclass
class CleanupStep:
    name: str
    ok: bool
    skipped: bool = False
    detail: str = ""


@dataclass
class CloseReport:
    was_active: bool
    reason: str = ""
    steps: list[CleanupStep] = field(default_factory=list)
    trace_path: Optional[str] = None
    video_path: Optional[str] = None

    def _step(self, name: str) -> CleanupStep | None:
        for s in self.steps:
            if s.name == name:
                return s
        return None

    @property
    def trace_saved(self) -> bool:
        s = self._step("trace")
        return bool(s and s.ok and not s.skipped)

    @property
    def browser_closed(self) -> bool:
        s = self._step("browser")
        return bool(s and s.ok and not s.skipped)

    @property
    def is_error(self) -> bool:
        s = self._step("browser")
        return bool(s and not s.ok and not s.skipped)

    @property
    def warnings(self) -> list[str]:
        return [s.detail for s in self.steps if s.detail and (s.skipped or not s.ok)]

    @property
    def message(self) -> str:
        if not self.was_active:
            return "Info: No browser was open."
        if self.is_error:
            msg = f"Error closing browser: {self._step('browser').detail}"
        elif self.browser_closed:
            msg = "Browser closed successfully."
        else:
            msg = "Browser was already disconnected."
        if self.video_path:
            msg += f" Video saved near: {self.video_path}."
        if self.trace_saved:
            msg += f" Trace saved to: {self.trace_path}."
        elif self.trace_path:
            msg += f" Trace not saved (expected at: {self.trace_path})."
        return msg


# ── Lifecycle ─────────────────────────────────────────────────────

class SessionLifecycle:
    """Owns every transition of the session record."""

    def __init__(
        self,
        session: Session,
        config: AgentConfig,
        logger: StepLogger,
        launcher: EngineLauncher | None = None,
    ):
        self.session = session
        self.config = config
        self.logger = logger
        self.launcher = launcher or PlaywrightLauncher()
        self._lock = asyncio.Lock()

    async def launch(
        self,
        browser_type: str,
        headless: bool,
        args: list[str],
        record_video: bool = True,
    ) -> LaunchReport:
        async with self._lock:
            if self.session.is_active:
                self.logger.warning("launch.rejected", reason="already launched")
                raise AlreadyActiveError(self.session.browser_type)
            return await self._launch(browser_type, headless, args, record_video)

    async def _launch(
        self, browser_type: str, headless: bool, args: list[str], record_video: bool
    ) -> LaunchReport:
        s = self.session
        artifacts = self.config.artifacts
        self.logger.info(
            "launch.start", browser_type=browser_type, headless=headless,
            args=args, record_video=record_video,
        )
        try:
            s.engine = await self.launcher.launch(browser_type, headless, args)
            s.browser_type = browser_type

            context_options: dict[str, Any] = {}
            if record_video:
                artifacts.video_dir.mkdir(parents=True, exist_ok=True)
                s.video_path = str(generate_file_path(
                    artifacts.video_dir, None, "webm", f"session-{browser_type}"
                ))
                context_options["record_video_dir"] = str(artifacts.video_dir)
                context_options["record_video_size"] = self.config.launch.video_size
            s.context = await s.engine.new_context(**context_options)

            artifacts.trace_dir.mkdir(parents=True, exist_ok=True)
            s.trace_path = str(generate_file_path(
                artifacts.trace_dir, None, "zip", f"session-{browser_type}"
            ))
            await s.context.tracing.start(
                name=f"trace-{browser_type}-{int(time.time() * 1000)}",
                screenshots=True,
                snapshots=True,
                sources=True,
            )

            s.page = await s.context.new_page()
            s.launched_at = time.time()
        except Exception as exc:
            self.logger.error("launch.failed", error=str(exc))
            await self._rollback()
            raise LaunchFailedError(str(exc)) from exc

        self.logger.info(
            "launch.done", browser_type=browser_type,
            trace_path=s.trace_path, video_path=s.video_path,
        )
        return LaunchReport(
            browser_type=browser_type,
            headless=headless,
            args=list(args),
            record_video=record_video,
            trace_path=s.trace_path,
            video_path=s.video_path,
        )

    async def _rollback(self) -> None:
        engine = self.session.engine
        self.session.reset()
        if engine is None:
            return
        try:
            await engine.close()
        except Exception as exc:
            self.logger.warning("launch.rollback_close_failed", error=str(exc))

    async def close(self, reason: str = "closeBrowser") -> CloseReport:
        async with self._lock:
            return await self._close(reason)

    async def shutdown(self, reason: str) -> CloseReport:
        """Close the session and stop the driver. Never raises."""
        self.logger.info("shutdown.start", reason=reason)
        try:
            async with self._lock:
                report = await self._close(reason)
        except Exception as exc:
            self.logger.error("shutdown.close_failed", reason=reason, error=str(exc))
            self.session.reset()
            report = CloseReport(
                was_active=True, reason=reason,
                steps=[CleanupStep("browser", ok=False, detail=str(exc))],
            )
        try:
            await self.launcher.stop()
        except Exception as exc:
            self.logger.warning("shutdown.driver_stop_failed", error=str(exc))
        self.logger.info("shutdown.done", reason=reason, message=report.message)
        return report

    async def _close(self, reason: str) -> CloseReport:
        s = self.session
        if not s.is_active:
            s.reset()
            self.logger.info("close.noop", reason=reason)
            return CloseReport(was_active=False, reason=reason)

        report = CloseReport(
            was_active=True,
            reason=reason,
            trace_path=s.trace_path,
            video_path=s.video_path,
        )
        elapsed_s = s.elapsed_s
        try:
            report.steps.append(await self._stop_trace())
            report.steps.append(await self._close_engine())
        finally:
            s.reset()
        self.logger.info(
            "close.done", reason=reason, elapsed_s=round(elapsed_s, 3),
            browser_closed=report.browser_closed,
            trace_saved=report.trace_saved, warnings=report.warnings,
        )
        return report

    async def _stop_trace(self) -> CleanupStep:
        s = self.session
        if s.trace_path is None:
            return CleanupStep("trace", ok=True, skipped=True)
        if s.context is None:
            detail = "Trace path set, but context missing. Cannot stop trace."
            self.logger.warning("close.trace_skipped", detail=detail)
            return CleanupStep("trace", ok=False, skipped=True, detail=detail)
        if not s.is_connected:
            detail = "Browser disconnected before trace could be stopped."
            self.logger.warning("close.trace_skipped", detail=detail)
            return CleanupStep("trace", ok=False, skipped=True, detail=detail)
        try:
            await s.context.tracing.stop(path=s.trace_path)
        except Exception as exc:
            self.logger.error("close.trace_failed", error=str(exc))
            return CleanupStep("trace", ok=False, detail=f"Error stopping trace: {exc}")
        self.logger.info("close.trace_saved", path=s.trace_path)
        return CleanupStep("trace", ok=True)

    async def _close_engine(self) -> CleanupStep:
        s = self.session
        if not s.is_connected:
            detail = "No connected browser to close."
            self.logger.warning("close.browser_skipped", detail=detail)
            return CleanupStep("browser", ok=False, skipped=True, detail=detail)
        try:
            await s.engine.close()
        except Exception as exc:
            self.logger.error("close.browser_failed", error=str(exc))
            return CleanupStep("browser", ok=False, detail=str(exc))
        if s.video_path:
            self.logger.info("close.video_finalized", near=s.video_path)
        return CleanupStep("browser", ok=True)
