"""
Generic Directory Adapter

Works on any submission form:
1. Configured field mapping (directory.adapter_config["form_fields"]) when present
2. Otherwise selector heuristics over common field names
3. AI selector detection when heuristics fill nothing
"""

import logging
from typing import List, Optional, Tuple

from ai.form_detection import detect_form_fields_with_ai, fill_with_ai_selectors, FormDetector
from core.models import Website, Directory, SubmissionContent

from .base import (
    SubmissionAdapter,
    SubmissionResult,
    DEFAULT_SUBMIT_SELECTOR,
    get_field_value,
    check_success,
)

logger = logging.getLogger(__name__)

AUTO_DETECT_FAILED = "Could not auto-detect any form fields"

SELECTOR_TEMPLATES = [
    'input[name="{name}"]',
    'input[name*="{name}"]',
    'input[id="{name}"]',
    'input[id*="{name}"]',
    'textarea[name="{name}"]',
    'textarea[name*="{name}"]',
    'textarea[id="{name}"]',
    'textarea[id*="{name}"]',
    'input[placeholder*="{name}" i]',
    'textarea[placeholder*="{name}" i]',
]

SUBMIT_SELECTORS = [
    'button[type="submit"]',
    'input[type="submit"]',
    'button:has-text("Submit")',
    'button:has-text("Add")',
    'button:has-text("Create")',
    'button:has-text("Post")',
    'button:has-text("Send")',
    ".submit-button",
    ".btn-submit",
    "#submit",
    "[data-submit]",
]

IN_VIEWPORT_JS = """
(el) => {
    const r = el.getBoundingClientRect();
    return r.width > 0 && r.height > 0 &&
        r.bottom > 0 && r.right > 0 &&
        r.top < (window.innerHeight || document.documentElement.clientHeight) &&
        r.left < (window.innerWidth || document.documentElement.clientWidth);
}
"""


def field_patterns(website: Website, content: Optional[SubmissionContent]) -> List[Tuple[List[str], Optional[str]]]:
    """(name synonyms, value) pairs tried by auto-detection, in order."""
    return [
        (["name", "title", "startup_name", "company", "product", "app"], website.name),
        (["url", "website", "site", "link", "homepage"], website.url),
        (["email", "contact_email", "contact"], website.email),
        (["tagline", "slogan", "subtitle", "short"], (content.tagline if content else None) or website.tagline),
        (
            ["description", "about", "summary", "details", "bio"],
            (content.short_description if content else None) or website.description_short,
        ),
        (["twitter"], website.twitter_url),
        (["linkedin"], website.linkedin_url),
        (["github"], website.github_url),
    ]


class GenericAdapter(SubmissionAdapter):
    """Adapter for directories without a dedicated implementation."""

    name = "generic"

    def __init__(self, detector: Optional[FormDetector] = None):
        self.detector = detector

    async def submit(self, page, website, directory, content) -> SubmissionResult:
        await self.goto(page, directory.submission_url or directory.url)
        await self.human_delay(1000, 2000)

        form_fields = directory.form_fields
        if form_fields:
            return await self.fill_configured_form(page, website, content, form_fields)
        return await self.auto_fill_form(page, website, directory, content)

    async def fill_configured_form(self, page, website, content, form_fields) -> SubmissionResult:
        logger.info("  -> Using configured form fields")

        for field_name, selector in form_fields.items():
            if field_name == "submit":
                continue
            value = get_field_value(field_name, website, content)
            if value and selector:
                logger.info(f"  -> Filling {field_name}")
                await self.fill_field(page, selector, value)

        logger.info("  -> Submitting form")
        await self.submit_form(page, form_fields.get("submit") or DEFAULT_SUBMIT_SELECTOR)

        await self.human_delay(2000, 3000)
        return await self._verdict(page, "Could not confirm submission")

    async def auto_fill_form(self, page, website: Website, directory: Directory, content) -> SubmissionResult:
        logger.info("  -> Auto-detecting form fields")

        filled = 0
        for names, value in field_patterns(website, content):
            if not value:
                continue
            for name in names:
                selector = await self._find_visible(page, name)
                if selector and await self.fill_field(page, selector, value, clear=True):
                    logger.info(f"  -> Auto-filled: {name}")
                    filled += 1

        if filled == 0:
            logger.info("  -> Pattern matching failed, trying AI detection...")
            ai_result = await detect_form_fields_with_ai(page, website, directory, detector=self.detector)

            if ai_result.success:
                filled = await fill_with_ai_selectors(page, ai_result.fields, website, content)
                if filled:
                    logger.info(f"  -> AI successfully filled {filled} fields")

            if filled == 0:
                error = ai_result.error if ai_result.error and ai_result.error.startswith("AI ") else None
                return SubmissionResult(success=False, error=error or AUTO_DETECT_FAILED)

        submitted = False
        for selector in SUBMIT_SELECTORS:
            if await self.has_element(page, selector):
                await self.submit_form(page, selector)
                submitted = True
                break

        if not submitted:
            # Last resort
            await page.keyboard.press("Enter")
            await self.human_delay(2000, 3000)

        await self.human_delay(2000, 3000)
        return await self._verdict(page, "Auto-detection may have failed")

    async def _find_visible(self, page, name: str) -> Optional[str]:
        """First selector template for `name` that matches an element inside the viewport."""
        for template in SELECTOR_TEMPLATES:
            selector = template.format(name=name)
            try:
                element = await page.query_selector(selector)
                if element and await element.evaluate(IN_VIEWPORT_JS):
                    return selector
            except Exception:
                continue
        return None

    async def _verdict(self, page, failure_message: str) -> SubmissionResult:
        url, html = await self.page_state(page)
        success = check_success(url, html)
        return SubmissionResult(
            success=success,
            confirmation_url=url,
            error=None if success else failure_message,
        )
