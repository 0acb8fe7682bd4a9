"""
Tests for the submission queue processor.

Uses a real SubmissionStore on a temp database, a mocked BrowserManager and
stub adapters so each failure category can be driven directly.
"""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from adapters.base import SubmissionResult
from adapters.generic import AUTO_DETECT_FAILED
from api.queue_worker import SubmissionQueueProcessor, WorkerConfig
from browser.manager import BrowserConnectionError, BrowserShuttingDownError
from core.models import Directory, SubmissionStatus


def _adapter(result=None, error=None):
    adapter = MagicMock()
    adapter.submit = AsyncMock(return_value=result, side_effect=error)
    return adapter


def _processor(store, browser_manager, adapter) -> SubmissionQueueProcessor:
    return SubmissionQueueProcessor(
        store=store,
        browser_manager=browser_manager,
        config=WorkerConfig(batch_size=5, max_retries=3, delay_min_seconds=0, delay_max_seconds=0),
        adapter_lookup=lambda name: adapter,
    )


async def _enqueue(store, website, directory, count=1):
    await store.create_website(website)
    await store.create_directory(directory)
    return [await store.create_submission(website.id, directory.id) for _ in range(count)]


@pytest.mark.queue
class TestProcessBatch:

    @pytest.mark.asyncio
    async def test_empty_queue_does_not_start_browser(self, store, mock_browser_manager):
        processor = _processor(store, mock_browser_manager, _adapter())

        summary = await processor.process_batch()

        assert summary["processed"] == 0
        assert summary["message"] == "No pending submissions"
        mock_browser_manager.ensure_browser.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_successful_submission(self, store, mock_browser_manager, sample_website, sample_directory):
        [submission_id] = await _enqueue(store, sample_website, sample_directory)
        adapter = _adapter(SubmissionResult(success=True, confirmation_url="https://launchlist.example/acme"))
        processor = _processor(store, mock_browser_manager, adapter)

        summary = await processor.process_batch()

        assert summary["processed"] == 1
        assert summary["succeeded"] == 1
        assert summary["failed"] == 0
        assert summary["results"][0]["listing_url"] == "https://launchlist.example/acme"

        submission = await store.get_submission(submission_id)
        assert submission.status == SubmissionStatus.SUBMITTED
        assert submission.title_used == "Acme Analytics"
        assert submission.description_used == "Simple product analytics."

        kwargs = mock_browser_manager.browser.new_page.await_args.kwargs
        assert kwargs["viewport"] == {"width": 1280, "height": 800}
        assert "Mozilla/5.0" in kwargs["user_agent"]
        mock_browser_manager.page.close.assert_awaited_once()

        _, website, directory, content = adapter.submit.await_args.args
        assert website.name == "Acme Analytics"
        assert directory.name == "LaunchList"
        assert content.tagline == "Analytics for small teams"

    @pytest.mark.asyncio
    async def test_browser_crash_restarts_before_next_job(
        self, store, mock_browser_manager, sample_website, sample_directory
    ):
        crashed, healthy = await _enqueue(store, sample_website, sample_directory, count=2)
        events = []
        browser = mock_browser_manager.browser

        async def ensure_browser():
            events.append("ensure")
            return browser

        async def cleanup():
            events.append("cleanup")

        mock_browser_manager.ensure_browser = AsyncMock(side_effect=ensure_browser)
        mock_browser_manager.cleanup = AsyncMock(side_effect=cleanup)
        adapter = _adapter()
        adapter.submit.side_effect = [Exception("Protocol error: Target closed."), SubmissionResult(success=True)]
        processor = _processor(store, mock_browser_manager, adapter)

        before = datetime.now()
        summary = await processor.process_batch()

        assert events == ["ensure", "cleanup", "ensure"]
        assert [r["status"] for r in summary["results"]] == ["pending", "submitted"]
        assert summary["results"][0]["category"] == "infrastructure"
        assert summary["results"][0]["will_retry"] is True

        submission = await store.get_submission(crashed)
        assert submission.status == SubmissionStatus.PENDING
        assert submission.infrastructure_retries == 1
        assert submission.retry_count == 0
        assert before <= submission.next_retry_at <= datetime.now()
        assert (await store.get_submission(healthy)).status == SubmissionStatus.SUBMITTED

    @pytest.mark.asyncio
    async def test_captcha_fails_permanently(self, store, mock_browser_manager, sample_website, sample_directory):
        [submission_id] = await _enqueue(store, sample_website, sample_directory)
        processor = _processor(
            store, mock_browser_manager, _adapter(SubmissionResult(success=False, error="CAPTCHA detected"))
        )

        summary = await processor.process_batch()

        assert summary["failed"] == 1
        submission = await store.get_submission(submission_id)
        assert submission.status == SubmissionStatus.FAILED
        assert submission.error_category == "permanent"
        assert submission.error_message == "CAPTCHA detected"
        assert submission.retry_count == 0
        mock_browser_manager.cleanup.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_auto_detect_failure_needs_review(self, store, mock_browser_manager, sample_website, sample_directory):
        [submission_id] = await _enqueue(store, sample_website, sample_directory)
        processor = _processor(
            store, mock_browser_manager, _adapter(SubmissionResult(success=False, error=AUTO_DETECT_FAILED))
        )

        await processor.process_batch()

        submission = await store.get_submission(submission_id)
        assert submission.status == SubmissionStatus.NEEDS_REVIEW
        assert submission.error_category == "configuration"

    @pytest.mark.asyncio
    async def test_already_submitted_counts_as_submitted(
        self, store, mock_browser_manager, sample_website, sample_directory
    ):
        [submission_id] = await _enqueue(store, sample_website, sample_directory)
        processor = _processor(
            store, mock_browser_manager,
            _adapter(SubmissionResult(success=False, error="This URL was already submitted")),
        )

        summary = await processor.process_batch()

        assert summary["results"][0]["status"] == "submitted"
        submission = await store.get_submission(submission_id)
        assert submission.status == SubmissionStatus.SUBMITTED
        assert submission.submitted_at is not None

    @pytest.mark.asyncio
    async def test_transient_failure_backs_off(self, store, mock_browser_manager, sample_website, sample_directory):
        [submission_id] = await _enqueue(store, sample_website, sample_directory)
        processor = _processor(
            store, mock_browser_manager, _adapter(error=TimeoutError("Navigation timeout of 30000 ms exceeded"))
        )

        before = datetime.now()
        await processor.process_batch()

        submission = await store.get_submission(submission_id)
        assert submission.status == SubmissionStatus.PENDING
        assert submission.retry_count == 1
        assert submission.error_category == "transient"
        assert before + timedelta(minutes=2) <= submission.next_retry_at <= datetime.now() + timedelta(minutes=2)
        # Not eligible again until the backoff elapses
        assert await store.fetch_pending_submissions() == []

    @pytest.mark.asyncio
    async def test_last_retry_fails_instead_of_stranding(
        self, store, mock_browser_manager, sample_website, sample_directory
    ):
        [submission_id] = await _enqueue(store, sample_website, sample_directory)
        await store.update_submission(submission_id, retry_count=2)
        processor = _processor(store, mock_browser_manager, _adapter(error=Exception("net::ERR_CONNECTION_RESET")))

        summary = await processor.process_batch()

        assert summary["results"][0]["will_retry"] is False
        submission = await store.get_submission(submission_id)
        assert submission.status == SubmissionStatus.FAILED
        assert submission.retry_count == 3

    @pytest.mark.asyncio
    async def test_login_wall_is_reported(self, store, mock_browser_manager, sample_website, sample_directory):
        await _enqueue(store, sample_website, sample_directory)
        result = SubmissionResult(
            success=False,
            error="Login required - BetaList requires authentication",
            needs_auth=True,
            login_url="https://betalist.com/users/sign_in",
        )
        processor = _processor(store, mock_browser_manager, _adapter(result))

        summary = await processor.process_batch()

        outcome = summary["results"][0]
        assert outcome["status"] == "failed"
        assert outcome["needs_auth"] is True
        assert outcome["login_url"] == "https://betalist.com/users/sign_in"

    @pytest.mark.asyncio
    async def test_browser_unavailable_only_affects_that_job(
        self, store, mock_browser_manager, sample_website, sample_directory
    ):
        first, second = await _enqueue(store, sample_website, sample_directory, count=2)
        mock_browser_manager.ensure_browser = AsyncMock(
            side_effect=[BrowserConnectionError("Failed to connect after 3 attempts"), mock_browser_manager.browser]
        )
        processor = _processor(store, mock_browser_manager, _adapter(SubmissionResult(success=True)))

        summary = await processor.process_batch()

        assert summary["processed"] == 2
        failed = await store.get_submission(first)
        assert failed.status == SubmissionStatus.PENDING
        assert failed.error_category == "infrastructure"
        assert failed.error_message.startswith("Browser unavailable:")
        assert failed.infrastructure_retries == 1
        assert (await store.get_submission(second)).status == SubmissionStatus.SUBMITTED

    @pytest.mark.asyncio
    async def test_shutdown_leaves_jobs_pending(self, store, mock_browser_manager, sample_website, sample_directory):
        ids = await _enqueue(store, sample_website, sample_directory, count=2)
        mock_browser_manager.ensure_browser = AsyncMock(
            side_effect=BrowserShuttingDownError("Browser manager is shutting down")
        )
        adapter = _adapter()
        processor = _processor(store, mock_browser_manager, adapter)

        summary = await processor.process_batch()

        assert summary["processed"] == 0
        adapter.submit.assert_not_awaited()
        for submission_id in ids:
            submission = await store.get_submission(submission_id)
            assert submission.status == SubmissionStatus.PENDING
            assert submission.infrastructure_retries == 0


@pytest.mark.queue
class TestProcessSubmission:

    @pytest.mark.asyncio
    async def test_job_claimed_elsewhere_is_skipped(
        self, store, mock_browser_manager, sample_website, sample_directory
    ):
        [submission_id] = await _enqueue(store, sample_website, sample_directory)
        [job] = await store.fetch_pending_submissions()
        await store.mark_in_progress(submission_id)
        adapter = _adapter()

        outcome = await _processor(store, mock_browser_manager, adapter).process_submission(job)

        assert outcome["status"] == "skipped"
        adapter.submit.assert_not_awaited()
        assert (await store.get_submission(submission_id)).status == SubmissionStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_missing_directory_needs_review(self, store, mock_browser_manager, sample_website):
        await store.create_website(sample_website)
        submission_id = await store.create_submission(sample_website.id, "d_deleted")
        [job] = await store.fetch_pending_submissions()
        adapter = _adapter()

        outcome = await _processor(store, mock_browser_manager, adapter).process_submission(job)

        assert outcome["status"] == "needs_review"
        assert outcome["directory"] == "unknown"
        assert outcome["explanation"] == "Missing configuration - needs adapter setup"
        adapter.submit.assert_not_awaited()
        assert (await store.get_submission(submission_id)).status == SubmissionStatus.NEEDS_REVIEW

    @pytest.mark.asyncio
    async def test_adapter_is_chosen_by_directory(self, store, mock_browser_manager, sample_website):
        directory = Directory(id="d_bl", name="BetaList", url="https://betalist.com", adapter_name="betalist")
        await _enqueue(store, sample_website, directory)
        [job] = await store.fetch_pending_submissions()
        lookup = MagicMock(return_value=_adapter(SubmissionResult(success=True)))
        processor = _processor(store, mock_browser_manager, None)
        processor.adapter_lookup = lookup

        await processor.process_submission(job)

        lookup.assert_called_once_with("betalist")

    @pytest.mark.asyncio
    async def test_page_closed_when_adapter_raises(
        self, store, mock_browser_manager, sample_website, sample_directory
    ):
        await _enqueue(store, sample_website, sample_directory)
        [job] = await store.fetch_pending_submissions()
        processor = _processor(store, mock_browser_manager, _adapter(error=RuntimeError()))

        outcome = await processor.process_submission(job)

        mock_browser_manager.page.close.assert_awaited_once()
        assert outcome["error"] == "RuntimeError"
        assert outcome["category"] == "transient"
