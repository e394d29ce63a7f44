"""Custom exception hierarchy and process exit codes."""

from pw_agent.constants import NO_SESSION_MESSAGE

# Exit codes
EXIT_OK = 0
EXIT_STARTUP_FAILURE = 2
EXIT_SCENARIO_FAILURE = 3
EXIT_DOCTOR_FAILURE = 10

_EXIT_DESCRIPTIONS = {
    EXIT_OK: "Success",
    EXIT_STARTUP_FAILURE: "Server failed to start",
    EXIT_SCENARIO_FAILURE: "Scenario or replay reported failures",
    EXIT_DOCTOR_FAILURE: "Environment check failed (run `pw-agent doctor` for details)",
}


def exit_description(code: int) -> str:
    """Return a human-readable description for *code*."""
    return _EXIT_DESCRIPTIONS.get(code, f"Unknown error (code {code})")


class PwAgentError(Exception):
    """Base exception for pw-agent."""


class AlreadyActiveError(PwAgentError):
    """launchBrowser was requested while a session is active."""

    def __init__(self, browser_type: str | None = None):
        self.browser_type = browser_type
        running = f" ({browser_type})" if browser_type else ""
        super().__init__(
            f"Error: Browser already launched{running}. Use closeBrowser first."
        )


class NoActiveSessionError(PwAgentError):
    """An action needs a live page but the session is idle or disconnected."""

    def __init__(self, message: str = NO_SESSION_MESSAGE):
        super().__init__(message)


class LaunchFailedError(PwAgentError):
    """The launch sequence failed part-way; the session was rolled back."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Error launching browser: {detail}")


class ActionFailedError(PwAgentError):
    """A delegated engine operation failed (timeout, hidden element, ...)."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class EvidenceCaptureError(PwAgentError):
    """Failure screenshot could not be taken. Logged, never surfaced."""


class ConfigError(PwAgentError):
    """Configuration file is missing or malformed."""


class ScenarioError(PwAgentError):
    """Scenario definition or execution error."""


class ReplayError(PwAgentError):
    """Replay execution error."""
