"""
Browser Automation Module - Lightpanda over CDP

Environment Variables Used:
    LIGHTPANDA_PATH - Explicit path to the lightpanda binary
    LIGHTPANDA_HOST / LIGHTPANDA_PORT - CDP listen address (default 127.0.0.1:9222)
"""

from .manager import (
    BrowserManager,
    HealthCheckResult,
    BrowserError,
    BrowserShuttingDownError,
    BrowserBinaryNotFoundError,
    BrowserConnectionError,
)

__all__ = [
    "BrowserManager",
    "HealthCheckResult",
    "BrowserError",
    "BrowserShuttingDownError",
    "BrowserBinaryNotFoundError",
    "BrowserConnectionError",
]
