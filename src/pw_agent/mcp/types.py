"""Pydantic models for MCP tool arguments and responses."""

from __future__ import annotations

from typing import Any, Literal, Optional, Union
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pw_agent.constants import DEFAULT_LAUNCH_ARGS

BrowserType = Literal["chromium", "firefox", "webkit"]
AssertionType = Literal[
    "visible", "hidden", "enabled", "disabled", "checked", "unchecked",
    "hasText", "containsText", "hasValue", "hasAttribute", "hasURL", "hasTitle",
]
SelectorState = Literal["attached", "detached", "visible", "hidden"]


class ToolArgs(BaseModel):
    """Flat argument record; accepts wire (camelCase) or snake_case names."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


# ── Lifecycle ─────────────────────────────────────────────────────

class LaunchBrowserArgs(ToolArgs):
    browser_type: BrowserType = Field(alias="browserType")
    headless: bool = False
    args: list[str] = Field(default_factory=lambda: list(DEFAULT_LAUNCH_ARGS))
    record_video: bool = Field(default=True, alias="recordVideo")


class NoArgs(ToolArgs):
    pass


class GotoArgs(ToolArgs):
    url: str

    @field_validator("url")
    @classmethod
    def _absolute_url(cls, v: str) -> str:
        parsed = urlparse(v)
        if not parsed.scheme or not (parsed.netloc or parsed.scheme in ("file", "data", "about")):
            raise ValueError("Invalid URL.")
        return v


# ── Interactions ──────────────────────────────────────────────────

class SelectorArgs(ToolArgs):
    selector: str = Field(min_length=1)


class FillArgs(SelectorArgs):
    text: str


class PressKeyArgs(ToolArgs):
    key: str = Field(min_length=1)
    selector: Optional[str] = None


class OptionByValue(ToolArgs):
    value: str


class OptionByLabel(ToolArgs):
    label: str


class OptionByIndex(ToolArgs):
    index: int


class SelectOptionArgs(SelectorArgs):
    option: Union[OptionByValue, OptionByLabel, OptionByIndex]


# ── Assertions and waits ──────────────────────────────────────────

class AssertArgs(ToolArgs):
    type: AssertionType
    selector: Optional[str] = None
    value: Optional[str] = None
    attribute: Optional[str] = None
    timeout: Optional[int] = Field(default=None, gt=0)


class WaitForSelectorArgs(SelectorArgs):
    state: SelectorState = "visible"
    timeout: Optional[int] = Field(default=None, gt=0)


class WaitForNavigationArgs(ToolArgs):
    timeout: Optional[int] = Field(default=None, gt=0)


class WaitForTimeoutArgs(ToolArgs):
    milliseconds: int = Field(gt=0)


# ── Response wrapper ──────────────────────────────────────────────

class ToolResult(BaseModel):
    success: bool = True
    data: Any = None
    error: Optional[str] = None
    evidence: Optional[str] = None

    @property
    def text(self) -> str:
        if self.success:
            return "" if self.data is None else str(self.data)
        return self.error or ""

    @classmethod
    def ok(cls, data: Any) -> ToolResult:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, evidence: str | None = None) -> ToolResult:
        return cls(success=False, error=error, evidence=evidence)

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)
