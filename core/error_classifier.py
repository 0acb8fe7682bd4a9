"""
Error Classification for Directory Submissions

Maps a raw error message to one of five categories so the retry strategy
can treat them differently:
- INFRASTRUCTURE: browser/connection issues - retry right away after a restart
- TRANSIENT: temporary issues - standard backoff
- RATE_LIMITED: server throttling - long backoff
- PERMANENT: won't change without intervention - no retry
- CONFIGURATION: missing adapter setup - no retry, needs review

The pattern table is evaluated top to bottom and the first match wins.
Ambiguous messages depend on that order, so keep it stable.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, Any, List, Pattern


class ErrorCategory(str, Enum):
    TRANSIENT = "transient"
    PERMANENT = "permanent"
    INFRASTRUCTURE = "infrastructure"
    RATE_LIMITED = "rate_limited"
    CONFIGURATION = "configuration"


@dataclass(frozen=True)
class ErrorPattern:
    pattern: Pattern
    category: ErrorCategory
    adjust_timeout: bool = False
    mark_as_submitted: bool = False


def _p(regex: str, category: ErrorCategory, **flags) -> ErrorPattern:
    return ErrorPattern(re.compile(regex, re.IGNORECASE), category, **flags)


ERROR_PATTERNS: List[ErrorPattern] = [
    # Browser / control protocol
    _p(r"Protocol error", ErrorCategory.INFRASTRUCTURE),
    _p(r"Connection closed", ErrorCategory.INFRASTRUCTURE),
    _p(r"Target closed", ErrorCategory.INFRASTRUCTURE),
    _p(r"Target page, context or browser has been closed", ErrorCategory.INFRASTRUCTURE),
    _p(r"Browser has been closed", ErrorCategory.INFRASTRUCTURE),
    _p(r"Browser disconnected", ErrorCategory.INFRASTRUCTURE),
    _p(r"Session closed", ErrorCategory.INFRASTRUCTURE),
    _p(r"Execution context was destroyed", ErrorCategory.INFRASTRUCTURE),
    _p(r"Browser crashed", ErrorCategory.INFRASTRUCTURE),

    # Navigation / network / selectors
    _p(r"Navigation timeout", ErrorCategory.TRANSIENT, adjust_timeout=True),
    _p(r"Timeout exceeded", ErrorCategory.TRANSIENT, adjust_timeout=True),
    _p(r"Timeout \d+ms exceeded", ErrorCategory.TRANSIENT, adjust_timeout=True),
    _p(r"net::ERR_", ErrorCategory.TRANSIENT),
    _p(r"ECONNREFUSED", ErrorCategory.TRANSIENT),
    _p(r"ETIMEDOUT", ErrorCategory.TRANSIENT),
    _p(r"ENOTFOUND", ErrorCategory.TRANSIENT),
    _p(r"Element.*not found", ErrorCategory.TRANSIENT),
    _p(r"waiting for selector", ErrorCategory.TRANSIENT),
    _p(r"waiting for locator", ErrorCategory.TRANSIENT),
    _p(r"failed to find", ErrorCategory.TRANSIENT),

    # Throttling
    _p(r"429", ErrorCategory.RATE_LIMITED),
    _p(r"Too Many Requests", ErrorCategory.RATE_LIMITED),
    _p(r"rate limit", ErrorCategory.RATE_LIMITED),
    _p(r"slow down", ErrorCategory.RATE_LIMITED),
    _p(r"throttl", ErrorCategory.RATE_LIMITED),

    # Needs a human
    _p(r"403.*Forbidden", ErrorCategory.PERMANENT),
    _p(r"CAPTCHA", ErrorCategory.PERMANENT),
    _p(r"reCAPTCHA", ErrorCategory.PERMANENT),
    _p(r"hCaptcha", ErrorCategory.PERMANENT),
    _p(r"already submitted", ErrorCategory.PERMANENT, mark_as_submitted=True),
    _p(r"already exists", ErrorCategory.PERMANENT, mark_as_submitted=True),
    _p(r"duplicate", ErrorCategory.PERMANENT),
    _p(r"account required", ErrorCategory.PERMANENT),
    _p(r"login required", ErrorCategory.PERMANENT),
    _p(r"must be logged in", ErrorCategory.PERMANENT),
    _p(r"access denied", ErrorCategory.PERMANENT),

    # Adapter setup
    _p(r"Could not auto-detect any form fields", ErrorCategory.CONFIGURATION),
    _p(r"adapter.*not found", ErrorCategory.CONFIGURATION),
    _p(r"no form fields configured", ErrorCategory.CONFIGURATION),

    # AI form detection
    _p(r"AI error:", ErrorCategory.TRANSIENT),
    _p(r"AI could not identify", ErrorCategory.CONFIGURATION),
    _p(r"AI returned invalid", ErrorCategory.TRANSIENT),
    _p(r"AI detection unavailable", ErrorCategory.CONFIGURATION),
]


CATEGORY_DESCRIPTIONS = {
    ErrorCategory.TRANSIENT: "Temporary issue - will retry automatically",
    ErrorCategory.PERMANENT: "Permanent issue - requires manual intervention",
    ErrorCategory.INFRASTRUCTURE: "System issue - recovering automatically",
    ErrorCategory.RATE_LIMITED: "Rate limited - will retry with longer delay",
    ErrorCategory.CONFIGURATION: "Missing configuration - needs adapter setup",
}


@dataclass(frozen=True)
class ErrorClassification:
    """Structured result of classifying an error message."""
    category: ErrorCategory
    is_retryable: bool
    requires_browser_restart: bool
    mark_as_submitted: bool = False
    adjust_timeout: bool = False
    original_error: str = ""

    @classmethod
    def for_category(
        cls,
        category: ErrorCategory,
        message: str = "",
        adjust_timeout: bool = False,
        mark_as_submitted: bool = False,
    ) -> "ErrorClassification":
        return cls(
            category=category,
            is_retryable=category not in (ErrorCategory.PERMANENT, ErrorCategory.CONFIGURATION),
            requires_browser_restart=category == ErrorCategory.INFRASTRUCTURE,
            mark_as_submitted=mark_as_submitted,
            adjust_timeout=adjust_timeout,
            original_error=message,
        )

    @property
    def description(self) -> str:
        return get_category_description(self.category)


def classify_error(error_message: Optional[str], context: Optional[Dict[str, Any]] = None) -> ErrorClassification:
    """
    Classify an error message into a category with derived flags.

    Args:
        error_message: Raw error text (exception message or adapter error)
        context: Optional hints, e.g. {"has_adapter_config": bool, "adapter_name": str}

    Returns:
        ErrorClassification
    """
    message = error_message or ""
    context = context or {}

    # "already submitted" wins over whatever category governs the rest of the text
    already_listed = any(
        entry.mark_as_submitted and entry.pattern.search(message)
        for entry in ERROR_PATTERNS
    )

    for entry in ERROR_PATTERNS:
        if entry.pattern.search(message):
            return ErrorClassification.for_category(
                entry.category,
                message,
                adjust_timeout=entry.adjust_timeout,
                mark_as_submitted=already_listed,
            )

    # Generic adapter gave up and the directory has no field mapping to fall back on
    if "Could not auto-detect" in message and not context.get("has_adapter_config"):
        return ErrorClassification.for_category(ErrorCategory.CONFIGURATION, message)

    # Unknown errors are assumed recoverable
    return ErrorClassification.for_category(ErrorCategory.TRANSIENT, message)


def get_category_description(category) -> str:
    """Human-readable explanation of an error category."""
    try:
        return CATEGORY_DESCRIPTIONS[ErrorCategory(category)]
    except ValueError:
        return "Unknown error type"


def is_browser_crash(error_message: Optional[str]) -> bool:
    """True when the message indicates the browser needs a restart."""
    return classify_error(error_message).requires_browser_restart
