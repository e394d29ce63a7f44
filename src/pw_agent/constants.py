"""Global constants."""

DEFAULT_CONFIG_FILE = "pw-agent.yaml"

# Artifact directory names, resolved against the working directory
SCREENSHOT_DIRNAME = "screenshots"
TRACE_DIRNAME = "traces"
VIDEO_DIRNAME = "videos"
LOG_DIRNAME = "logs"

BROWSER_TYPES = ("chromium", "firefox", "webkit")
DEFAULT_BROWSER_TYPE = "chromium"
DEFAULT_LAUNCH_ARGS = ["--no-sandbox"]
VIDEO_SIZE = {"width": 1280, "height": 720}

# Timeouts (ms)
ACTION_TIMEOUT_MS = 5000
WAIT_TIMEOUT_MS = 30000
EVIDENCE_TIMEOUT_MS = 3000
MAX_WAIT_MS = 60000

DETAIL_MAX_LEN = 50
DEFAULT_LOG_TAIL = 20

NO_SESSION_MESSAGE = (
    "Error: No active page or browser disconnected. Use launchBrowser first."
)
