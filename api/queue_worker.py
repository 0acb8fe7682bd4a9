#!/usr/bin/env python3
"""
Submission Queue Processor

Drains one batch of pending directory submissions:
- Acquires a verified browser per job from the BrowserManager
- Claims each job atomically before touching it
- Runs the directory adapter on a fresh page
- Classifies failures and applies the per-category retry policy
- Restarts the browser when a failure indicates it is broken

A failure in one job never aborts the rest of the batch. Triggered by the
/process-queue endpoint or the `process` CLI command.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from adapters.base import SubmissionAdapter, SubmissionResult
from adapters.registry import get_adapter
from browser.manager import BrowserManager, BrowserShuttingDownError
from core.error_classifier import ErrorCategory, ErrorClassification, classify_error
from core.models import Submission, SubmissionContent, SubmissionStatus
from core.retry_strategy import calculate_next_retry, get_retry_message, get_retry_strategy

from .config import config, DEFAULT_USER_AGENT, DEFAULT_VIEWPORT
from .database import SubmissionStore
from .logging_config import log_submission

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now()


@dataclass
class WorkerConfig:
    batch_size: int = config.QUEUE_BATCH_SIZE
    max_retries: int = config.QUEUE_MAX_RETRIES

    # Human-like delays between submissions
    delay_min_seconds: float = config.QUEUE_DELAY_MIN_SECONDS
    delay_max_seconds: float = config.QUEUE_DELAY_MAX_SECONDS

    viewport: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_VIEWPORT))
    user_agent: str = DEFAULT_USER_AGENT


@dataclass
class SubmissionQueueProcessor:
    store: SubmissionStore
    browser_manager: BrowserManager
    config: WorkerConfig = field(default_factory=WorkerConfig)
    adapter_lookup: Callable[[Optional[str]], SubmissionAdapter] = get_adapter

    async def process_batch(self) -> Dict[str, Any]:
        jobs = await self.store.fetch_pending_submissions(
            limit=self.config.batch_size,
            max_retries=self.config.max_retries,
            now=_now(),
        )

        if not jobs:
            logger.info("No pending submissions to process")
            return {
                "processed": 0,
                "message": "No pending submissions",
                "timestamp": _now().isoformat(),
            }

        logger.info(f"Processing {len(jobs)} pending submissions")

        results: List[Dict[str, Any]] = []
        for index, job in enumerate(jobs):
            try:
                results.append(await self.process_submission(job))
            except BrowserShuttingDownError:
                logger.warning("Browser manager shutting down, leaving remaining submissions pending")
                break

            if index < len(jobs) - 1:
                await self._inter_job_delay()

        succeeded = sum(1 for r in results if r["status"] == SubmissionStatus.SUBMITTED.value)
        failed = sum(1 for r in results if r["status"] not in (SubmissionStatus.SUBMITTED.value, "skipped"))

        return {
            "processed": len(results),
            "succeeded": succeeded,
            "failed": failed,
            "results": results,
            "timestamp": _now().isoformat(),
        }

    async def process_submission(self, job: Submission) -> Dict[str, Any]:
        """
        Run one job end to end and persist its outcome.

        Raises:
            BrowserShuttingDownError: the batch should stop; the job is untouched
        """
        logger.info(f"Processing submission {job.id} -> {job.directory_name}")

        try:
            browser = await self.browser_manager.ensure_browser()
        except BrowserShuttingDownError:
            raise
        except Exception as e:
            logger.error(f"Could not acquire browser for {job.id}: {e}")
            classification = ErrorClassification.for_category(
                ErrorCategory.INFRASTRUCTURE, f"Browser unavailable: {e}"
            )
            return await self._handle_failure(job, classification)

        website, directory = job.website, job.directory
        content = SubmissionContent.from_website(website) if website else SubmissionContent()

        claimed = await self.store.mark_in_progress(
            job.id,
            title_used=website.name if website else None,
            description_used=content.short_description,
        )
        if not claimed:
            logger.info(f"Submission {job.id} was claimed elsewhere, skipping")
            return {"id": job.id, "directory": job.directory_name, "status": "skipped"}

        if website is None or directory is None:
            classification = ErrorClassification.for_category(
                ErrorCategory.CONFIGURATION, "Submission references a missing website or directory"
            )
            return await self._handle_failure(job, classification)

        adapter = self.adapter_lookup(directory.adapter_name)
        result: Optional[SubmissionResult] = None
        error_message: Optional[str] = None
        page = None

        try:
            page = await browser.new_page(viewport=self.config.viewport, user_agent=self.config.user_agent)
            result = await adapter.submit(page, website, directory, content)
        except Exception as e:
            error_message = str(e) or e.__class__.__name__
            logger.error(f"Submission {job.id} raised: {error_message}")
        finally:
            if page is not None:
                try:
                    await page.close()
                except Exception as e:
                    logger.debug(f"Ignoring page close error: {e}")

        if result is not None and result.success:
            await self.store.mark_submitted(job.id, listing_url=result.listing_url)
            log_submission(job.id, directory.name, SubmissionStatus.SUBMITTED.value)
            return {
                "id": job.id,
                "directory": directory.name,
                "status": SubmissionStatus.SUBMITTED.value,
                "listing_url": result.listing_url,
            }

        if result is not None:
            error_message = result.error or "Submission failed"

        classification = classify_error(
            error_message,
            {
                "has_adapter_config": directory.has_adapter_config,
                "adapter_name": directory.adapter_name,
            },
        )
        outcome = await self._handle_failure(job, classification)
        if result is not None and result.needs_auth:
            outcome["needs_auth"] = True
            outcome["login_url"] = result.login_url
        return outcome

    async def _handle_failure(self, job: Submission, classification: ErrorClassification) -> Dict[str, Any]:
        now = _now()
        decision = get_retry_strategy(
            classification.category,
            retry_count=job.retry_count,
            infrastructure_retries=job.infrastructure_retries,
        )

        updates: Dict[str, Any] = {
            "error_message": classification.original_error,
            "error_category": classification.category.value,
        }

        if classification.mark_as_submitted:
            status = SubmissionStatus.SUBMITTED
            updates.update(status=status, submitted_at=now, next_retry_at=None)
        elif decision.should_retry:
            retry_count = job.retry_count + (1 if decision.increments_retry_count else 0)
            infra_retries = job.infrastructure_retries + (1 if decision.increments_infra_count else 0)
            if retry_count >= self.config.max_retries:
                # The fetch query would never pick this job up again
                status = SubmissionStatus.FAILED
                updates.update(status=status, retry_count=retry_count, next_retry_at=None)
            else:
                status = SubmissionStatus.PENDING
                updates.update(
                    status=status,
                    retry_count=retry_count,
                    infrastructure_retries=infra_retries,
                    next_retry_at=calculate_next_retry(decision.delay_minutes, now),
                )
        else:
            status = decision.terminal_status or SubmissionStatus.FAILED
            updates.update(status=status, next_retry_at=None)

        await self.store.update_submission(job.id, **updates)

        log_submission(
            job.id, job.directory_name, status.value,
            error=classification.original_error, category=classification.category.value,
        )
        logger.info(f"Submission {job.id}: {get_retry_message(decision, classification.category)}")

        if classification.requires_browser_restart:
            logger.warning("Failure requires a browser restart, cleaning up before next job")
            await self.browser_manager.cleanup()

        return {
            "id": job.id,
            "directory": job.directory_name,
            "status": status.value,
            "error": classification.original_error,
            "category": classification.category.value,
            "explanation": classification.description,
            "will_retry": status == SubmissionStatus.PENDING,
        }

    async def _inter_job_delay(self):
        low, high = self.config.delay_min_seconds, self.config.delay_max_seconds
        if high <= 0:
            return
        await asyncio.sleep(random.uniform(low, max(low, high)))
