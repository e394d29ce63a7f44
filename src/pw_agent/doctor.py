"""Environment checks behind `pw-agent doctor`."""

from __future__ import annotations

import importlib.util
import os
import sys
from dataclasses import dataclass, field
from importlib import metadata
from pathlib import Path
from typing import Callable, List, Optional

from pw_agent.config import AgentConfig
from pw_agent.constants import BROWSER_TYPES, DEFAULT_BROWSER_TYPE
from pw_agent.core.errors import ConfigError

MIN_PYTHON = (3, 10)

# Distributions that must be importable (distribution name, import name)
REQUIRED_PACKAGES = [("playwright", "playwright"), ("mcp", "mcp")]


@dataclass
class CheckResult:
    name: str
    passed: bool
    message: str
    hint: Optional[str] = None


@dataclass
class DoctorReport:
    checks: List[CheckResult] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(c.passed for c in self.checks)

    def add(self, result: CheckResult) -> None:
        self.checks.append(result)


# ---------------------------------------------------------------------------
# Individual checks
# ---------------------------------------------------------------------------


def check_python_version() -> CheckResult:
    """Verify that the running Python meets the minimum version requirement."""
    current = sys.version_info[:2]
    ver_str = f"{current[0]}.{current[1]}"
    min_str = f"{MIN_PYTHON[0]}.{MIN_PYTHON[1]}"
    if current >= MIN_PYTHON:
        return CheckResult(
            name="Python version",
            passed=True,
            message=f"Python {ver_str} ✓ (>= {min_str} required)",
        )
    return CheckResult(
        name="Python version",
        passed=False,
        message=f"Python {ver_str} is too old (need >= {min_str})",
        hint=f"Install Python {min_str}+ from https://python.org/downloads/",
    )


def check_packages() -> List[CheckResult]:
    """Check that every required package is installed."""
    results = []
    for dist, module in REQUIRED_PACKAGES:
        if importlib.util.find_spec(module) is None:
            results.append(CheckResult(
                name=f"Package: {dist}",
                passed=False,
                message=f"'{dist}' is not installed",
                hint=f"pip install {dist}",
            ))
            continue
        try:
            version = metadata.version(dist)
        except metadata.PackageNotFoundError:
            version = "unknown version"
        results.append(CheckResult(
            name=f"Package: {dist}",
            passed=True,
            message=f"'{dist}' {version} ✓",
        ))
    return results


def _playwright_executables() -> dict[str, str]:
    from playwright.sync_api import sync_playwright  # noqa: PLC0415

    with sync_playwright() as p:
        return {name: getattr(p, name).executable_path for name in BROWSER_TYPES}


def check_browsers(
    required: str = DEFAULT_BROWSER_TYPE,
    lookup: Optional[Callable[[], dict[str, str]]] = None,
) -> List[CheckResult]:
    """Report which Playwright browsers are installed.

    Only *required* fails the run; the others are informational.
    """
    try:
        paths = (lookup or _playwright_executables)()
    except Exception as exc:
        return [CheckResult(
            name="Browsers",
            passed=False,
            message=f"Could not query Playwright browsers: {exc}",
            hint="pip install playwright && playwright install",
        )]

    results = []
    for name in BROWSER_TYPES:
        path = paths.get(name)
        installed = bool(path) and Path(path).exists()
        if installed:
            results.append(CheckResult(
                name=f"Browser: {name}", passed=True, message=f"{path} ✓",
            ))
        else:
            results.append(CheckResult(
                name=f"Browser: {name}",
                passed=name != required,
                message=f"{name} is not installed"
                        + ("" if name == required else " (optional)"),
                hint=f"playwright install {name}",
            ))
    return results


def check_artifact_dirs(config: AgentConfig) -> List[CheckResult]:
    """Verify that artifact directories exist (or can be created) and are writable."""
    a = config.artifacts
    results = []
    for p in (a.screenshot_dir, a.trace_dir, a.video_dir, a.log_dir):
        try:
            p.mkdir(parents=True, exist_ok=True)
        except OSError:
            pass  # reported below

        if p.exists() and os.access(p, os.W_OK):
            results.append(CheckResult(
                name=f"Artifact path: {p}", passed=True, message=f"'{p}' is writable ✓",
            ))
        elif not p.exists():
            results.append(CheckResult(
                name=f"Artifact path: {p}",
                passed=False,
                message=f"'{p}' does not exist and could not be created",
                hint=f"Create the directory manually: mkdir -p \"{p}\"",
            ))
        else:
            results.append(CheckResult(
                name=f"Artifact path: {p}",
                passed=False,
                message=f"'{p}' exists but is not writable",
                hint=f"Fix permissions: chmod u+w \"{p}\"",
            ))
    return results


def check_config(config_path: Optional[str] = None) -> CheckResult:
    """Validate the config file, if one was given."""
    if config_path is None:
        return CheckResult(
            name="Config", passed=True, message="No config specified (defaults)",
        )
    try:
        AgentConfig.from_file(Path(config_path))
    except ConfigError as exc:
        return CheckResult(
            name="Config",
            passed=False,
            message=str(exc),
            hint="Fix the file or regenerate it with `pw-agent init`.",
        )
    return CheckResult(name="Config", passed=True, message=f"'{config_path}' is valid ✓")


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def run_doctor(
    config: AgentConfig | None = None,
    config_path: Optional[str] = None,
    browser_lookup: Optional[Callable[[], dict[str, str]]] = None,
) -> DoctorReport:
    """Run all environment checks and return a :class:`DoctorReport`."""
    config = config or AgentConfig()
    report = DoctorReport()

    report.add(check_python_version())
    for result in check_packages():
        report.add(result)
    for result in check_browsers(config.launch.browser_type, lookup=browser_lookup):
        report.add(result)
    for result in check_artifact_dirs(config):
        report.add(result)
    report.add(check_config(config_path))

    return report
