"""
Core submission logic shared by the worker.

Modules:
- models: websites, directories, submissions and their statuses
- error_classifier: map error messages to retry categories
- retry_strategy: per-category retry budgets and backoff
"""

from .models import (
    SubmissionStatus,
    SubmissionType,
    Website,
    Directory,
    SubmissionContent,
    Submission,
)
from .error_classifier import ErrorCategory, ErrorClassification, classify_error
from .retry_strategy import RetryDecision, get_retry_strategy, calculate_next_retry

__all__ = [
    "SubmissionStatus",
    "SubmissionType",
    "Website",
    "Directory",
    "SubmissionContent",
    "Submission",
    "ErrorCategory",
    "ErrorClassification",
    "classify_error",
    "RetryDecision",
    "get_retry_strategy",
    "calculate_next_retry",
]
