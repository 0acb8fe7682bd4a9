"""
Indie Hackers Adapter
Creates a product page at https://www.indiehackers.com/products/new.
"""

import logging

from .base import SubmissionAdapter, SubmissionResult, extract_twitter_handle

logger = logging.getLogger(__name__)

SUBMIT_URL = "https://www.indiehackers.com/products/new"
LOGIN_URL = "https://www.indiehackers.com/sign-in"


class IndieHackersAdapter(SubmissionAdapter):
    name = "indiehackers"

    async def submit(self, page, website, directory, content) -> SubmissionResult:
        await self.goto(page, directory.submission_url or SUBMIT_URL)
        await self.human_delay(1500, 2500)

        if await self.needs_login(
            page,
            'a[href*="sign-in"], button:has-text("Sign in"), a:has-text("Log in")',
            'form input[name="name"], form input[placeholder*="name" i]',
        ):
            return SubmissionResult(
                success=False,
                error="Login required - Indie Hackers requires authentication",
                needs_auth=True,
                login_url=LOGIN_URL,
            )

        logger.info("  -> Filling product form")
        await self.fill_field(
            page,
            'input[name="name"], input[placeholder*="name" i], input[aria-label*="name" i]',
            website.name,
        )

        tagline = content.tagline or website.tagline
        if tagline:
            await self.fill_field(
                page,
                'input[name="tagline"], input[placeholder*="tagline" i], input[placeholder*="short description" i]',
                tagline[:160],
            )

        await self.fill_field(
            page,
            'input[name="url"], input[name="website"], input[placeholder*="url" i], input[type="url"]',
            website.url,
        )

        description = content.long_description or website.description_medium or website.description_short
        if description:
            await self.fill_field(
                page,
                'textarea[name="description"], textarea[placeholder*="description" i]',
                description,
            )

        handle = extract_twitter_handle(website.twitter_url)
        if handle:
            await self.fill_field(page, 'input[name="twitter"], input[placeholder*="twitter" i]', handle)

        await self.select_category(page, website.category or website.industry)

        logger.info("  -> Submitting form")
        await self.submit_form(
            page,
            'button[type="submit"]:not([disabled]), button:has-text("Create"), button:has-text("Submit")',
        )
        await self.human_delay(3000, 5000)

        url = page.url
        success = self.is_success(url)
        if success:
            logger.info("  -> Product created successfully")

        return SubmissionResult(
            success=success,
            confirmation_url=url,
            live_url=url if success else None,
            error=None if success else "Could not confirm product creation",
        )

    async def select_category(self, page, category):
        if not category:
            return
        try:
            if await page.query_selector('select[name*="category"], select[name*="topic"]'):
                await self.select_option(page, 'select[name*="category"], select[name*="topic"]', category)
                return
            await self.click_element(page, f'button:has-text("{category}"), label:has-text("{category}")')
        except Exception as e:
            logger.warning(f"  -> Could not select category: {e}")

    def is_success(self, url: str) -> bool:
        # Only a redirect to the new product page counts
        for marker in ("/products/", "/product/"):
            if marker in url and "/new" not in url:
                return True
        return False
