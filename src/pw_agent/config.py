"""Server configuration (YAML file + defaults)."""

from __future__ import annotations

import pathlib
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from pw_agent.constants import (
    ACTION_TIMEOUT_MS,
    DEFAULT_BROWSER_TYPE,
    DEFAULT_CONFIG_FILE,
    DEFAULT_LAUNCH_ARGS,
    EVIDENCE_TIMEOUT_MS,
    LOG_DIRNAME,
    MAX_WAIT_MS,
    SCREENSHOT_DIRNAME,
    TRACE_DIRNAME,
    VIDEO_DIRNAME,
    VIDEO_SIZE,
    WAIT_TIMEOUT_MS,
)
from pw_agent.core.errors import ConfigError


class TimeoutConfig(BaseModel):
    action_ms: int = ACTION_TIMEOUT_MS
    wait_ms: int = WAIT_TIMEOUT_MS
    evidence_ms: int = EVIDENCE_TIMEOUT_MS
    max_wait_ms: int = MAX_WAIT_MS


class ArtifactConfig(BaseModel):
    root: Optional[str] = None  # None = current working directory
    screenshots: str = SCREENSHOT_DIRNAME
    traces: str = TRACE_DIRNAME
    videos: str = VIDEO_DIRNAME
    logs: str = LOG_DIRNAME

    @property
    def root_dir(self) -> pathlib.Path:
        return pathlib.Path(self.root) if self.root else pathlib.Path.cwd()

    @property
    def screenshot_dir(self) -> pathlib.Path:
        return self.root_dir / self.screenshots

    @property
    def trace_dir(self) -> pathlib.Path:
        return self.root_dir / self.traces

    @property
    def video_dir(self) -> pathlib.Path:
        return self.root_dir / self.videos

    @property
    def log_dir(self) -> pathlib.Path:
        return self.root_dir / self.logs


class LaunchDefaults(BaseModel):
    browser_type: str = DEFAULT_BROWSER_TYPE
    headless: bool = False
    args: list[str] = Field(default_factory=lambda: list(DEFAULT_LAUNCH_ARGS))
    record_video: bool = True
    video_width: int = VIDEO_SIZE["width"]
    video_height: int = VIDEO_SIZE["height"]

    @property
    def video_size(self) -> dict[str, int]:
        return {"width": self.video_width, "height": self.video_height}


class AgentConfig(BaseModel):
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)
    artifacts: ArtifactConfig = Field(default_factory=ArtifactConfig)
    launch: LaunchDefaults = Field(default_factory=LaunchDefaults)
    log_to_file: bool = True

    @classmethod
    def from_file(cls, path: pathlib.Path) -> AgentConfig:
        """Load AgentConfig from a YAML file."""
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigError(f"Config root must be a mapping: {path}")
        try:
            return cls(**raw)
        except ValidationError as exc:
            raise ConfigError(f"Invalid config {path}: {exc}") from exc

    @classmethod
    def load(cls, path: str | pathlib.Path | None = None) -> AgentConfig:
        """Explicit path > ./pw-agent.yaml > defaults."""
        if path is not None:
            return cls.from_file(pathlib.Path(path))
        default = pathlib.Path.cwd() / DEFAULT_CONFIG_FILE
        if default.exists():
            return cls.from_file(default)
        return cls()

    def to_yaml(self) -> str:
        data: dict[str, Any] = self.model_dump(exclude_none=True)
        return yaml.safe_dump(data, sort_keys=False)

    def write_default(self, path: pathlib.Path) -> bool:
        """Write this config to *path* unless it exists. Returns True if written."""
        if path.exists():
            return False
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_yaml(), encoding="utf-8")
        return True
