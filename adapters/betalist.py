"""
BetaList Adapter
Startup discovery platform for beta products (https://betalist.com/submit).
Requires a signed-in session; returns needs_auth otherwise.
"""

import logging

from .base import SubmissionAdapter, SubmissionResult, check_success

logger = logging.getLogger(__name__)

SUBMIT_URL = "https://betalist.com/submit"
LOGIN_URL = "https://betalist.com/users/sign_in"


class BetaListAdapter(SubmissionAdapter):
    name = "betalist"

    async def submit(self, page, website, directory, content) -> SubmissionResult:
        await self.goto(page, directory.submission_url or SUBMIT_URL)
        await self.human_delay(1000, 2000)

        if await self.needs_login(page, 'a[href*="sign_in"], a[href*="login"]', 'form input[name*="startup"]'):
            return SubmissionResult(
                success=False,
                error="Login required - BetaList requires authentication",
                needs_auth=True,
                login_url=LOGIN_URL,
            )

        logger.info("  -> Filling form fields")
        await self.fill_field(page, 'input[name="startup[name]"]', website.name)
        await self.fill_field(page, 'input[name="startup[url]"]', website.url)

        tagline = content.tagline or website.tagline
        if tagline:
            await self.fill_field(page, 'input[name="startup[tagline]"]', tagline[:140])

        description = content.short_description or website.description_short or website.description_medium
        if description:
            await self.fill_field(page, 'textarea[name="startup[description]"]', description)

        if website.email:
            await self.fill_field(page, 'input[name="startup[email]"]', website.email)

        await self.select_category(page, website.category or website.industry)
        await self.accept_terms(page)

        logger.info("  -> Submitting form")
        await self.submit_form(page, 'button[type="submit"], input[type="submit"]')
        await self.human_delay(2000, 3000)

        url, html = await self.page_state(page)
        success = self.is_success(url, html)
        if success:
            logger.info("  -> Submission successful")

        return SubmissionResult(
            success=success,
            confirmation_url=url,
            error=None if success else "Could not confirm submission",
        )

    async def select_category(self, page, category):
        if not category:
            return
        selector = 'select[name*="category"], select[name*="topic"]'
        try:
            if await page.query_selector(selector):
                await self.select_option(page, selector, category)
        except Exception as e:
            logger.warning(f"  -> Could not select category: {e}")

    async def accept_terms(self, page):
        try:
            checkbox = await page.query_selector(
                'input[type="checkbox"][name*="terms"], input[type="checkbox"][name*="agree"]'
            )
            if checkbox and not await checkbox.is_checked():
                await checkbox.click()
                await self.human_delay()
        except Exception as e:
            logger.debug(f"  -> No terms checkbox: {e}")

    def is_success(self, url: str, html: str) -> bool:
        lower = f"{url} {html}".lower()
        if "/startups/" in url:
            return True
        if any(s in lower for s in ("thank you", "submitted", "pending review", "we'll review")):
            return True
        return check_success(url, html)
