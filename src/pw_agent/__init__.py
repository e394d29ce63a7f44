"""pw-agent: Playwright browser automation over MCP."""

__version__ = "0.5.0"
