"""
Crunchbase Adapter
Adds an organization profile via https://www.crunchbase.com/add-new.
"""

import logging

from .base import SubmissionAdapter, SubmissionResult, check_success

logger = logging.getLogger(__name__)

SUBMIT_URL = "https://www.crunchbase.com/add-new"
LOGIN_URL = "https://www.crunchbase.com/login"


class CrunchbaseAdapter(SubmissionAdapter):
    name = "crunchbase"

    async def submit(self, page, website, directory, content) -> SubmissionResult:
        await self.goto(page, directory.submission_url or SUBMIT_URL)
        await self.human_delay(1500, 2500)

        if await self.needs_login(
            page,
            'button:has-text("Sign in"), a[href*="login"], button:has-text("Log in")',
            'form input[name="name"], form input[aria-label*="name" i]',
        ):
            return SubmissionResult(
                success=False,
                error="Login required - Crunchbase requires a free account",
                needs_auth=True,
                login_url=LOGIN_URL,
            )

        await self.click_element(
            page,
            'button:has-text("Company"), label:has-text("Company"), '
            'button:has-text("Organization"), input[value="company"]',
        )
        await self.human_delay(1000, 1500)

        logger.info("  -> Filling company information")
        await self.fill_field(
            page,
            'input[name="name"], input[aria-label*="name" i], input[placeholder*="organization name" i]',
            website.name,
        )
        await self.fill_field(
            page,
            'input[name="website"], input[name="homepage_url"], input[aria-label*="website" i], input[type="url"]',
            website.url,
        )

        short_desc = content.short_description or website.description_short or website.tagline
        if short_desc:
            await self.fill_field(
                page,
                'textarea[name="short_description"], textarea[aria-label*="description" i], input[name="tagline"]',
                short_desc[:250],
            )

        long_desc = content.long_description or website.description_medium
        if long_desc:
            await self.fill_field(page, 'textarea[name="description"], textarea[name="long_description"]', long_desc)

        if website.founder_name:
            await self.fill_field(
                page,
                'input[name="founder"], input[name="founder_name"], input[aria-label*="founder" i]',
                website.founder_name,
            )

        await self.select_industry(page, website.industry or website.category)
        await self.fill_social_links(page, website)

        if website.location:
            await self.fill_field(
                page,
                'input[name="location"], input[name="headquarters"], input[aria-label*="location" i]',
                website.location,
            )

        logger.info("  -> Submitting form")
        await self.submit_form(page, 'button[type="submit"], button:has-text("Submit"), button:has-text("Create")')
        await self.human_delay(3000, 5000)

        url, html = await self.page_state(page)
        success = self.is_success(url, html)
        if success:
            logger.info("  -> Company profile submitted")

        return SubmissionResult(
            success=success,
            confirmation_url=url,
            error=None if success else "Submission pending review",
        )

    async def select_industry(self, page, industry):
        if not industry:
            return
        try:
            if await page.query_selector('select[name="industry"], select[name="category"]'):
                await self.select_option(page, 'select[name="industry"], select[name="category"]', industry)
                return

            if await page.query_selector('input[name="industry"], input[aria-label*="industry" i]'):
                await self.fill_field(page, 'input[name="industry"], input[aria-label*="industry" i]', industry)
                await self.human_delay(500, 1000)
                await self.click_element(page, f'.suggestion, [role="option"], li:has-text("{industry}")')
        except Exception as e:
            logger.warning(f"  -> Could not set industry: {e}")

    async def fill_social_links(self, page, website):
        for network, value in (
            ("linkedin", website.linkedin_url),
            ("twitter", website.twitter_url),
            ("github", website.github_url),
        ):
            if value:
                await self.fill_field(
                    page,
                    f'input[name="{network}"], input[name="{network}_url"], input[placeholder*="{network}" i]',
                    value,
                )

    def is_success(self, url: str, html: str) -> bool:
        lower = f"{url} {html}".lower()
        if "/organization/" in url:
            return True
        if any(s in lower for s in ("successfully", "thank you", "submitted", "pending review")):
            return True
        return check_success(url, html)
