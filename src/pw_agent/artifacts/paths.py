"""Artifact file naming for screenshots, traces and videos."""

from __future__ import annotations

import pathlib
import re
from datetime import datetime, timezone

from pw_agent.config import ArtifactConfig

_UNSAFE_NAME = re.compile(r"[^A-Za-z0-9_.\-]")


def sanitize_name(name: str) -> str:
    """Replace every character outside ``[A-Za-z0-9_.-]`` with ``_``."""
    return _UNSAFE_NAME.sub("_", name)


def timestamp_slug(now: datetime | None = None) -> str:
    """ISO-8601 UTC timestamp with ``:`` and ``.`` made file-name safe.

    ``2024-05-01T12:30:45.123Z`` -> ``2024-05-01T12-30-45-123Z``
    """
    now = now or datetime.now(timezone.utc)
    iso = now.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    iso = iso.replace("+00:00", "Z")
    return re.sub(r"[:.]", "-", iso)


def generate_file_path(
    directory: str | pathlib.Path,
    base_name: str | None,
    extension: str,
    prefix: str,
) -> pathlib.Path:
    """Build ``<directory>/<sanitized base>.<extension>``.

    Without a base name one is synthesized from *prefix* and the current
    timestamp. Uniqueness relies on timestamp granularity only; two unnamed
    allocations within the same millisecond collide.
    """
    base = base_name or f"{prefix}-{timestamp_slug()}"
    return pathlib.Path(directory) / f"{sanitize_name(base)}.{extension}"


def ensure_artifact_dirs(config: ArtifactConfig) -> list[pathlib.Path]:
    """Create screenshot, trace, video and log directories if absent."""
    dirs = [config.screenshot_dir, config.trace_dir, config.video_dir, config.log_dir]
    for d in dirs:
        d.mkdir(parents=True, exist_ok=True)
    return dirs
