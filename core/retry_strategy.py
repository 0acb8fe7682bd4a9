"""
Retry Strategy for Directory Submissions

Pure decision logic, no I/O. Each error category has its own budget and
backoff schedule. Infrastructure failures draw from a separate counter
(infrastructure_retries) so a browser crash never eats into a job's
ordinary retry budget.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, List

from .error_classifier import ErrorCategory
from .models import SubmissionStatus

DEFAULT_BACKOFF_MINUTES = 60


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration for one error category."""
    max_retries: int
    backoff_minutes: List[int] = field(default_factory=list)
    immediate_retry: bool = False
    requires_browser_restart: bool = False
    use_separate_counter: bool = False
    final_status: SubmissionStatus = SubmissionStatus.FAILED

    def backoff_for(self, attempt_index: int) -> int:
        if 0 <= attempt_index < len(self.backoff_minutes):
            return self.backoff_minutes[attempt_index]
        return DEFAULT_BACKOFF_MINUTES


# The worker stops a job once retry_count reaches the queue limit (3), so the
# last backoff slot of the counted policies is only reached with a higher limit.
RETRY_POLICIES = {
    ErrorCategory.TRANSIENT: RetryPolicy(
        max_retries=3,
        backoff_minutes=[2, 10, 30],
    ),
    ErrorCategory.PERMANENT: RetryPolicy(
        max_retries=0,
        final_status=SubmissionStatus.FAILED,
    ),
    ErrorCategory.INFRASTRUCTURE: RetryPolicy(
        max_retries=2,
        backoff_minutes=[0, 1],
        immediate_retry=True,
        requires_browser_restart=True,
        use_separate_counter=True,
    ),
    ErrorCategory.RATE_LIMITED: RetryPolicy(
        max_retries=3,
        backoff_minutes=[30, 120, 480],  # 30min, 2hr, 8hr
    ),
    ErrorCategory.CONFIGURATION: RetryPolicy(
        max_retries=0,
        final_status=SubmissionStatus.NEEDS_REVIEW,
    ),
}


@dataclass(frozen=True)
class RetryDecision:
    """What to do with a failed submission."""
    should_retry: bool
    immediate: bool = False
    delay_minutes: int = 0
    requires_browser_restart: bool = False
    increments_retry_count: bool = False
    increments_infra_count: bool = False
    terminal_status: Optional[SubmissionStatus] = None
    reason: str = ""


def _policy_for(category) -> RetryPolicy:
    try:
        return RETRY_POLICIES[ErrorCategory(category)]
    except ValueError:
        return RETRY_POLICIES[ErrorCategory.TRANSIENT]


def get_retry_strategy(category, retry_count: int = 0, infrastructure_retries: int = 0) -> RetryDecision:
    """
    Decide whether and when a failed submission is retried.

    Args:
        category: ErrorCategory (or its string value)
        retry_count: Current retry_count of the submission
        infrastructure_retries: Current infrastructure_retries of the submission

    Returns:
        RetryDecision
    """
    policy = _policy_for(category)
    retry_count = retry_count or 0
    infrastructure_retries = infrastructure_retries or 0

    if policy.use_separate_counter:
        if infrastructure_retries >= policy.max_retries:
            return RetryDecision(
                should_retry=False,
                terminal_status=policy.final_status,
                reason="Max infrastructure retries exceeded",
            )
        delay = policy.backoff_for(infrastructure_retries)
        return RetryDecision(
            should_retry=True,
            immediate=policy.immediate_retry and delay == 0,
            delay_minutes=delay,
            requires_browser_restart=policy.requires_browser_restart,
            increments_retry_count=False,
            increments_infra_count=True,
        )

    if retry_count >= policy.max_retries:
        return RetryDecision(
            should_retry=False,
            terminal_status=policy.final_status,
            reason=(
                "Error type does not support retry"
                if policy.max_retries == 0
                else "Max retries exceeded"
            ),
        )

    return RetryDecision(
        should_retry=True,
        immediate=policy.immediate_retry,
        delay_minutes=policy.backoff_for(retry_count),
        requires_browser_restart=policy.requires_browser_restart,
        increments_retry_count=True,
        increments_infra_count=False,
    )


def calculate_next_retry(delay_minutes: float, now: Optional[datetime] = None) -> datetime:
    """Timestamp at which a retried submission becomes eligible again."""
    return (now or datetime.now()) + timedelta(minutes=delay_minutes)


def get_retry_message(decision: RetryDecision, category) -> str:
    """User-facing explanation of a retry decision."""
    if not decision.should_retry:
        if category == ErrorCategory.PERMANENT:
            return "This error requires manual intervention. Please submit directly on the directory website."
        if category == ErrorCategory.CONFIGURATION:
            return "This directory needs a custom adapter configuration to work reliably."
        return "Maximum retries reached. Please try again later."

    if decision.immediate:
        return "Retrying immediately after system recovery..."

    if decision.delay_minutes >= 60:
        hours = round(decision.delay_minutes / 60)
        return f"Will retry in {hours} hour{'s' if hours > 1 else ''}"

    return f"Will retry in {decision.delay_minutes} minute{'s' if decision.delay_minutes > 1 else ''}"
