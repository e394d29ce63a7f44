"""The single browser session record."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class Session:
    """One launched browser = one session.

    Containment: ``page`` implies ``context`` implies ``engine``. Only
    :class:`~pw_agent.core.lifecycle.SessionLifecycle` populates or resets
    these fields.
    """

    engine: Optional[Any] = None  # playwright.async_api.Browser
    context: Optional[Any] = None  # playwright.async_api.BrowserContext
    page: Optional[Any] = None  # playwright.async_api.Page
    trace_path: Optional[str] = None
    video_path: Optional[str] = None
    browser_type: Optional[str] = None
    launched_at: Optional[float] = None

    @property
    def is_active(self) -> bool:
        return self.engine is not None

    @property
    def is_connected(self) -> bool:
        if self.engine is None:
            return False
        try:
            return bool(self.engine.is_connected())
        except Exception:
            return False

    @property
    def elapsed_s(self) -> float:
        if self.launched_at is None:
            return 0.0
        return time.time() - self.launched_at

    def reset(self) -> None:
        """Clear every field. Idempotent."""
        self.engine = None
        self.context = None
        self.page = None
        self.trace_path = None
        self.video_path = None
        self.browser_type = None
        self.launched_at = None
