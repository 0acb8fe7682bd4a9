"""
Base adapter interface for directory submissions.
All directory-specific adapters inherit from this.
"""

import asyncio
import logging
import random
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from core.models import Website, Directory, SubmissionContent

logger = logging.getLogger(__name__)

DEFAULT_SUBMIT_SELECTOR = 'button[type="submit"]'
FIELD_TIMEOUT_MS = 5000
NAVIGATION_TIMEOUT_MS = 30000
SUBMIT_SETTLE_MS = 10000

SUCCESS_INDICATORS = [
    "thank",
    "success",
    "confirm",
    "submitted",
    "received",
    "pending",
    "review",
    "approved",
    "complete",
]

FAILURE_INDICATORS = [
    "error",
    "failed",
    "invalid",
    "required",
    "missing",
]


@dataclass
class SubmissionResult:
    """Result of a submission attempt."""
    success: bool
    confirmation_url: Optional[str] = None
    live_url: Optional[str] = None
    error: Optional[str] = None
    needs_auth: bool = False
    login_url: Optional[str] = None

    @property
    def listing_url(self) -> Optional[str]:
        return self.confirmation_url or self.live_url


def get_field_value(field_name: str, website: Website, content: Optional[SubmissionContent] = None) -> Optional[str]:
    """
    Map a form field name to the value we should type into it.

    Lookup is case-insensitive. Unknown names return None.
    """
    tagline = (content.tagline if content else None) or website.tagline
    short = content.short_description if content else None
    long = content.long_description if content else None
    email = website.email

    mapping = {
        "name": website.name,
        "title": website.name,
        "startup_name": website.name,
        "company": website.name,
        "company_name": website.name,
        "product_name": website.name,

        "url": website.url,
        "website": website.url,
        "site": website.url,
        "link": website.url,
        "homepage": website.url,
        "website_url": website.url,

        "email": email,
        "contact": email,
        "contact_email": email,

        "tagline": tagline,
        "slogan": tagline,
        "subtitle": tagline,
        "short_tagline": tagline,

        "description": short or long or website.description_short or website.description_medium,
        "short_description": short or website.description_short,
        "long_description": long or website.description_medium or website.description_long,
        "about": long or website.description_medium,
        "summary": short or website.description_short,

        "twitter": website.twitter_url,
        "twitter_url": website.twitter_url,
        "linkedin": website.linkedin_url,
        "linkedin_url": website.linkedin_url,
        "github": website.github_url,
        "github_url": website.github_url,

        "industry": website.industry,
        "category": website.category or website.industry,

        "founder": website.founder_name,
        "founder_name": website.founder_name,
        "founder_email": website.founder_email,
    }

    return mapping.get((field_name or "").lower()) or None


def check_success(url: str, page_content: str) -> bool:
    """
    Keyword verdict on the post-submit page.

    Failure words win unless success words also appear, since many
    confirmation pages mention "required" fields in their footer.
    """
    lower = f"{url or ''} {page_content or ''}".lower()

    if any(word in lower for word in FAILURE_INDICATORS):
        return any(word in lower for word in SUCCESS_INDICATORS)

    return any(word in lower for word in SUCCESS_INDICATORS)


def extract_twitter_handle(twitter_url: Optional[str]) -> Optional[str]:
    """'https://x.com/acme' -> '@acme'. Bare handles get an '@' prefix."""
    if not twitter_url:
        return None

    match = re.search(r"(?:twitter\.com|x\.com)/([^/?]+)", twitter_url)
    if match:
        return f"@{match.group(1)}"

    if twitter_url.startswith("@"):
        return twitter_url
    return f"@{twitter_url}"


class SubmissionAdapter(ABC):
    """
    Abstract base class for directory adapters.
    Each directory (BetaList, Product Hunt, etc.) implements submit().
    """

    name: str = "base"

    @abstractmethod
    async def submit(
        self,
        page,
        website: Website,
        directory: Directory,
        content: SubmissionContent,
    ) -> SubmissionResult:
        """Submit the website to the directory using an open page."""
        pass

    # === Page helpers ===

    async def goto(self, page, url: str):
        logger.info(f"  -> Navigating to {url}")
        await page.goto(url, wait_until="networkidle", timeout=NAVIGATION_TIMEOUT_MS)

    async def fill_field(self, page, selector: str, value: Optional[str], clear: bool = False) -> bool:
        """Type a value into a field like a person would. Returns False if the field is missing."""
        if not value or not selector:
            return False

        try:
            await page.wait_for_selector(selector, timeout=FIELD_TIMEOUT_MS)

            if clear:
                await page.click(selector, click_count=3)
                await page.keyboard.press("Backspace")

            await page.click(selector)
            await self.human_delay(100, 300)

            await page.type(selector, value, delay=30 + random.random() * 50)

            await self.human_delay()
            return True
        except Exception as e:
            logger.warning(f"Field not found: {selector} ({e})")
            return False

    async def select_option(self, page, selector: str, value: str) -> bool:
        try:
            await page.wait_for_selector(selector, timeout=FIELD_TIMEOUT_MS)
            await page.select_option(selector, value)
            await self.human_delay()
            return True
        except Exception as e:
            logger.warning(f"Select not found: {selector} ({e})")
            return False

    async def click_button(self, page, selector: str) -> bool:
        try:
            await page.wait_for_selector(selector, timeout=FIELD_TIMEOUT_MS)
            await page.click(selector)
            return True
        except Exception as e:
            logger.warning(f"Button not found: {selector} ({e})")
            return False

    async def click_element(self, page, selector: str) -> bool:
        """Click the first element matching selector, if any. No waiting."""
        try:
            element = await page.query_selector(selector)
            if element:
                await element.click()
                await self.human_delay()
                return True
        except Exception as e:
            logger.debug(f"Could not click {selector}: {e}")
        return False

    async def submit_form(self, page, selector: str = DEFAULT_SUBMIT_SELECTOR) -> bool:
        """Click submit and wait up to 10 seconds for the resulting navigation to settle."""
        try:
            await page.wait_for_selector(selector, timeout=FIELD_TIMEOUT_MS)
        except Exception as e:
            logger.warning(f"Button not found: {selector} ({e})")
            return False

        try:
            # Armed before the click; the form page itself is already idle
            async with page.expect_navigation(wait_until="networkidle", timeout=SUBMIT_SETTLE_MS):
                await page.click(selector)
        except PlaywrightTimeoutError:
            logger.debug("No navigation after submit, assuming an in-page response")
        except Exception as e:
            logger.warning(f"Submit failed: {selector} ({e})")
            return False
        return True

    async def human_delay(self, min_ms: int = 100, max_ms: int = 400):
        await asyncio.sleep(random.uniform(min_ms, max_ms) / 1000)

    async def has_element(self, page, selector: str) -> bool:
        try:
            return await page.query_selector(selector) is not None
        except Exception:
            return False

    async def needs_login(self, page, login_selector: str, form_selector: str) -> bool:
        """A visible login link with no submission form means we are not signed in."""
        if await self.has_element(page, form_selector):
            return False
        return await self.has_element(page, login_selector)

    async def page_state(self, page) -> Tuple[str, str]:
        """Current (url, html) after a submission."""
        return page.url, await page.content()
