"""Structured JSON-lines logging and command recording."""

from __future__ import annotations

import json
import pathlib
import sys
import time
from typing import Any, TextIO

from pw_agent.config import AgentConfig
from pw_agent.constants import DEFAULT_LOG_TAIL


class StepLogger:
    """Append-only structured log.

    Every entry is one JSON object. Entries always go to stderr (stdout is
    owned by the MCP stdio transport) and, once :meth:`open` has been
    called, are appended to *log_path* as well.
    """

    def __init__(
        self,
        log_path: pathlib.Path | None = None,
        stream: TextIO | None = None,
    ):
        self._log_path = log_path
        self._stream = stream
        self._fh = None
        self._step = 0

    @property
    def log_path(self) -> pathlib.Path | None:
        return self._log_path

    def open(self) -> None:
        if self._log_path is None or self._fh is not None:
            return
        self._log_path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = open(self._log_path, "a", encoding="utf-8")

    def close(self) -> None:
        if self._fh:
            self._fh.close()
            self._fh = None

    def _write(self, entry: dict[str, Any]) -> None:
        line = json.dumps(entry, ensure_ascii=False, default=str)
        if self._fh:
            self._fh.write(line + "\n")
            self._fh.flush()
        print(line, file=self._stream or sys.stderr)

    def log(self, level: str, event: str, **fields: Any) -> None:
        entry = {"timestamp": time.time(), "level": level, "event": event}
        entry.update(fields)
        self._write(entry)

    def info(self, event: str, **fields: Any) -> None:
        self.log("info", event, **fields)

    def warning(self, event: str, **fields: Any) -> None:
        self.log("warning", event, **fields)

    def error(self, event: str, **fields: Any) -> None:
        self.log("error", event, **fields)

    def next_step(self) -> int:
        self._step += 1
        return self._step

    def log_step(
        self,
        step: int,
        action: str,
        args: dict[str, Any],
        result: str | None = None,
        error: str | None = None,
        screenshot_path: str | None = None,
    ) -> None:
        self._write({
            "step": step,
            "timestamp": time.time(),
            "level": "error" if error else "info",
            "event": "command",
            "action": action,
            "args": args,
            "result": result,
            "error": error,
            "screenshot": screenshot_path,
        })

    def read_last_n(self, n: int = DEFAULT_LOG_TAIL) -> list[dict[str, Any]]:
        if self._log_path is None or not self._log_path.exists():
            return []
        lines = self._log_path.read_text(encoding="utf-8").strip().splitlines()
        return [json.loads(l) for l in lines[-n:]]


class ActionRecorder:
    """Record dispatched commands for replay."""

    def __init__(self) -> None:
        self._actions: list[dict[str, Any]] = []

    def record(self, action: str, args: dict[str, Any]) -> None:
        self._actions.append({
            "step": len(self._actions) + 1,
            "action": action,
            "args": args,
            "timestamp": time.time(),
        })

    def save(self, path: pathlib.Path) -> pathlib.Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(self._actions, indent=2, ensure_ascii=False, default=str),
            encoding="utf-8",
        )
        return path

    @property
    def actions(self) -> list[dict[str, Any]]:
        return list(self._actions)


def open_logger(config: AgentConfig, filename: str = "server.log") -> StepLogger:
    """StepLogger writing to stderr and, if enabled, ``<logs dir>/<filename>``."""
    log_path = config.artifacts.log_dir / filename if config.log_to_file else None
    logger = StepLogger(log_path)
    logger.open()
    return logger
