"""
Tests for error classification.
"""

import pytest

from core.error_classifier import (
    ErrorCategory,
    ErrorClassification,
    classify_error,
    get_category_description,
    is_browser_crash,
)


class TestClassifyError:

    @pytest.mark.parametrize("message", [
        "Protocol error (Runtime.callFunctionOn): Target closed.",
        "Connection closed while reading from the driver",
        "Browser disconnected unexpectedly",
        "Execution context was destroyed, most likely because of a navigation",
        "Target page, context or browser has been closed",
        "Session closed. Most likely the page has been closed.",
    ])
    def test_browser_failures_are_infrastructure(self, message):
        result = classify_error(message)
        assert result.category == ErrorCategory.INFRASTRUCTURE
        assert result.requires_browser_restart is True
        assert result.is_retryable is True

    @pytest.mark.parametrize("message, adjust_timeout", [
        ("Navigation timeout of 30000 ms exceeded", True),
        ("Timeout exceeded while waiting for event", True),
        ("page.goto: Timeout 30000ms exceeded.", True),
        ("net::ERR_NAME_NOT_RESOLVED at https://x.example", False),
        ("connect ECONNREFUSED 10.0.0.1:443", False),
        ("Element #submit not found", False),
        ("waiting for selector `#name` failed", False),
    ])
    def test_network_and_selector_failures_are_transient(self, message, adjust_timeout):
        result = classify_error(message)
        assert result.category == ErrorCategory.TRANSIENT
        assert result.adjust_timeout is adjust_timeout
        assert result.requires_browser_restart is False

    @pytest.mark.parametrize("message", [
        "HTTP 429",
        "Too Many Requests",
        "You hit our rate limit",
        "Please slow down",
        "Request throttled",
    ])
    def test_throttling_is_rate_limited(self, message):
        assert classify_error(message).category == ErrorCategory.RATE_LIMITED

    @pytest.mark.parametrize("message", [
        "403 Forbidden",
        "Please complete the CAPTCHA",
        "hCaptcha challenge shown",
        "Login required - BetaList requires authentication",
        "You must be logged in to post",
        "Access denied",
        "Duplicate entry",
    ])
    def test_permanent_failures_do_not_retry(self, message):
        result = classify_error(message)
        assert result.category == ErrorCategory.PERMANENT
        assert result.is_retryable is False
        assert result.mark_as_submitted is False

    @pytest.mark.parametrize("message", [
        "This startup was already submitted",
        "A listing for this URL already exists",
    ])
    def test_already_listed_marks_submitted(self, message):
        result = classify_error(message)
        assert result.category == ErrorCategory.PERMANENT
        assert result.mark_as_submitted is True

    def test_already_submitted_wins_over_earlier_category(self):
        result = classify_error("Target closed: form already submitted")
        assert result.category == ErrorCategory.INFRASTRUCTURE
        assert result.mark_as_submitted is True

    def test_first_match_wins(self):
        # Both infrastructure and rate-limit patterns appear
        result = classify_error("Protocol error: 429 Too Many Requests")
        assert result.category == ErrorCategory.INFRASTRUCTURE

    @pytest.mark.parametrize("message, category", [
        ("Could not auto-detect any form fields", ErrorCategory.CONFIGURATION),
        ('Adapter "foo" not found', ErrorCategory.CONFIGURATION),
        ("No form fields configured for directory", ErrorCategory.CONFIGURATION),
        ("AI error: connection reset", ErrorCategory.TRANSIENT),
        ("AI could not identify any form fields", ErrorCategory.CONFIGURATION),
        ("AI returned invalid format", ErrorCategory.TRANSIENT),
        ("AI detection unavailable: No API key configured", ErrorCategory.CONFIGURATION),
    ])
    def test_adapter_and_ai_failures(self, message, category):
        assert classify_error(message).category == category

    def test_partial_auto_detect_message_without_config(self):
        result = classify_error("Could not auto-detect the submit button", {"has_adapter_config": False})
        assert result.category == ErrorCategory.CONFIGURATION
        assert result.is_retryable is False

    def test_partial_auto_detect_message_with_config_defaults_to_transient(self):
        result = classify_error("Could not auto-detect the submit button", {"has_adapter_config": True})
        assert result.category == ErrorCategory.TRANSIENT

    def test_matching_is_case_insensitive(self):
        assert classify_error("TARGET CLOSED").category == ErrorCategory.INFRASTRUCTURE
        assert classify_error("captcha required").category == ErrorCategory.PERMANENT

    @pytest.mark.parametrize("message", [None, "", "Something odd happened"])
    def test_unknown_defaults_to_transient(self, message):
        result = classify_error(message)
        assert result.category == ErrorCategory.TRANSIENT
        assert result.is_retryable is True
        assert result.original_error == (message or "")


class TestHelpers:

    def test_for_category_derives_flags(self):
        infra = ErrorClassification.for_category(ErrorCategory.INFRASTRUCTURE, "boom")
        assert infra.requires_browser_restart and infra.is_retryable
        config = ErrorClassification.for_category(ErrorCategory.CONFIGURATION)
        assert not config.is_retryable and not config.requires_browser_restart

    def test_category_descriptions(self):
        assert "retry" in get_category_description(ErrorCategory.TRANSIENT).lower()
        assert get_category_description("rate_limited").startswith("Rate limited")
        assert get_category_description("nonsense") == "Unknown error type"

    def test_is_browser_crash(self):
        assert is_browser_crash("Browser crashed")
        assert not is_browser_crash("CAPTCHA")
