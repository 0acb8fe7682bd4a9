"""
Unified Configuration Module for the Submission Worker

All configuration settings are centralized here.
Import from this module: from api.config import config
"""

import os
from typing import List, Optional
from dataclasses import dataclass


@dataclass
class AppConfig:
    """Unified application configuration."""

    # === Server Settings ===
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "3000"))
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Shared secret for the queue trigger endpoint (compared verbatim)
    CRON_SECRET: Optional[str] = os.getenv("CRON_SECRET")

    # === Database ===
    DATABASE_PATH: str = os.getenv("DATABASE_PATH", "./data/linklaunch.db")

    # === Browser (Lightpanda over CDP) ===
    LIGHTPANDA_PATH: Optional[str] = os.getenv("LIGHTPANDA_PATH")
    LIGHTPANDA_HOST: str = os.getenv("LIGHTPANDA_HOST", "127.0.0.1")
    LIGHTPANDA_PORT: int = int(os.getenv("LIGHTPANDA_PORT", "9222"))
    BROWSER_CONNECT_TIMEOUT_MS: int = int(os.getenv("BROWSER_CONNECT_TIMEOUT_MS", "10000"))
    BROWSER_MAX_CONNECTION_ATTEMPTS: int = int(os.getenv("BROWSER_MAX_CONNECTION_ATTEMPTS", "3"))
    BROWSER_READY_TIMEOUT_SECONDS: float = float(os.getenv("BROWSER_READY_TIMEOUT_SECONDS", "10.0"))
    BROWSER_READY_SETTLE_SECONDS: float = float(os.getenv("BROWSER_READY_SETTLE_SECONDS", "2.0"))
    HEALTH_CHECK_TIMEOUT_SECONDS: float = float(os.getenv("HEALTH_CHECK_TIMEOUT_SECONDS", "5.0"))
    KILL_GRACE_SECONDS: float = float(os.getenv("KILL_GRACE_SECONDS", "1.0"))

    # === Queue ===
    QUEUE_BATCH_SIZE: int = int(os.getenv("QUEUE_BATCH_SIZE", "5"))
    QUEUE_MAX_RETRIES: int = int(os.getenv("QUEUE_MAX_RETRIES", "3"))
    # Human-like delays between submissions
    QUEUE_DELAY_MIN_SECONDS: float = float(os.getenv("QUEUE_DELAY_MIN_SECONDS", "2.0"))
    QUEUE_DELAY_MAX_SECONDS: float = float(os.getenv("QUEUE_DELAY_MAX_SECONDS", "5.0"))

    # === AI form detection (OpenAI-compatible chat completions) ===
    FORM_AI_API_KEY: Optional[str] = (
        os.getenv("FORM_AI_API_KEY")
        or os.getenv("MOONSHOT_API_KEY")
    )
    FORM_AI_BASE_URL: str = os.getenv("FORM_AI_BASE_URL", "https://api.moonshot.ai/v1")
    FORM_AI_MODEL: str = os.getenv("FORM_AI_MODEL", "moonshot-v1-8k")
    FORM_AI_TIMEOUT_SECONDS: int = int(os.getenv("FORM_AI_TIMEOUT_SECONDS", "30"))

    def validate(self) -> List[str]:
        """Validate configuration and return list of missing required settings."""
        missing = []

        if not self.CRON_SECRET:
            missing.append("CRON_SECRET")

        # AI detection is optional; the generic adapter degrades without it
        if not self.FORM_AI_API_KEY:
            missing.append("FORM_AI_API_KEY (or MOONSHOT_API_KEY) - AI form detection disabled")

        return missing


# Global config instance
config = AppConfig()


# Desktop user agent presented to directories
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)

DEFAULT_VIEWPORT = {"width": 1280, "height": 800}
