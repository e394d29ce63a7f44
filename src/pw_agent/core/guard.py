"""Precondition shared by every page action."""

from __future__ import annotations

from typing import Any

from pw_agent.core.errors import NoActiveSessionError
from pw_agent.core.session import Session


def ensure_active(session: Session) -> Any:
    """Return the active page, or raise NoActiveSessionError.

    Point-in-time check: the engine may still disconnect before the caller
    uses the page, which then surfaces as an engine error from the action.
    """
    if session.page is None or not session.is_connected:
        raise NoActiveSessionError()
    return session.page
