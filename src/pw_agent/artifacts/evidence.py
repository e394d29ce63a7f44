"""Failure screenshots attached to error results."""

from __future__ import annotations

import re

from pw_agent.artifacts.paths import generate_file_path
from pw_agent.config import ArtifactConfig
from pw_agent.constants import DETAIL_MAX_LEN, EVIDENCE_TIMEOUT_MS
from pw_agent.core.errors import EvidenceCaptureError
from pw_agent.core.session import Session
from pw_agent.runner.logging import StepLogger

_UNSAFE_DETAIL = re.compile(r"[^A-Za-z0-9_\-]")


def detail_slug(detail: str | None) -> str:
    """Sanitize and shorten a selector or description for a file name."""
    if not detail:
        return "details"
    return _UNSAFE_DETAIL.sub("_", detail)[:DETAIL_MAX_LEN]


async def capture_failure(
    session: Session,
    category: str,
    detail: str | None,
    artifacts: ArtifactConfig,
    logger: StepLogger,
    timeout_ms: int = EVIDENCE_TIMEOUT_MS,
) -> str | None:
    """Screenshot the active page after a failed action.

    Best effort: returns the saved path, or None when there is no usable
    page or the capture itself fails. Never raises.
    """
    if session.page is None or not session.is_connected:
        logger.warning(
            "evidence.unavailable", category=category,
            reason="page/browser not available",
        )
        return None

    path = generate_file_path(
        artifacts.screenshot_dir,
        f"error-{category}-{detail_slug(detail)}",
        "png",
        "error-screenshot",
    )
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        await session.page.screenshot(path=str(path), timeout=timeout_ms)
    except Exception as exc:
        err = EvidenceCaptureError(f"Failed to take error screenshot: {exc}")
        logger.warning("evidence.failed", category=category, error=str(err))
        return None

    logger.info("evidence.saved", category=category, path=str(path))
    return str(path)
