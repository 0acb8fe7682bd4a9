"""
Product Hunt Adapter

Walks the multi-step "new post" wizard at https://www.producthunt.com/posts/new.
Media uploads, maker verification and launch scheduling are left to the user.
"""

import logging

from .base import SubmissionAdapter, SubmissionResult, check_success, extract_twitter_handle

logger = logging.getLogger(__name__)

SUBMIT_URL = "https://www.producthunt.com/posts/new"
LOGIN_URL = "https://www.producthunt.com/login"

TAGLINE_LIMIT = 60

NEXT_BUTTON = (
    'button:has-text("Next"), button:has-text("Continue"), '
    'button[type="submit"]:not(:has-text("Launch")):not(:has-text("Schedule"))'
)
FINAL_BUTTON = (
    'button:has-text("Schedule"), button:has-text("Launch"), '
    'button:has-text("Submit"), button:has-text("Post")'
)


class ProductHuntAdapter(SubmissionAdapter):
    name = "producthunt"

    async def submit(self, page, website, directory, content) -> SubmissionResult:
        await self.goto(page, directory.submission_url or SUBMIT_URL)
        await self.human_delay(2000, 3000)

        if await self.needs_login(
            page,
            'a[href*="login"], button:has-text("Log in"), button:has-text("Sign in")',
            'form input[name="name"], input[placeholder*="product" i]',
        ):
            return SubmissionResult(
                success=False,
                error="Login required - Product Hunt requires authentication",
                needs_auth=True,
                login_url=LOGIN_URL,
            )

        logger.info("  -> Starting multi-step submission wizard")

        step1 = await self.fill_basic_info(page, website, content)
        if not step1.success:
            return step1

        await self.next_step(page)
        await self.handle_media_step(page, website)
        await self.next_step(page)
        await self.fill_details_step(page, website, content)
        await self.next_step(page)
        await self.configure_launch_step(page, website)

        logger.info("  -> Finalizing submission")
        await self.click_button(page, FINAL_BUTTON)
        await self.human_delay(3000, 5000)

        url, html = await self.page_state(page)
        success = self.is_success(url, html)
        if success:
            logger.info("  -> Product submitted/scheduled successfully")

        return SubmissionResult(
            success=success,
            confirmation_url=url,
            live_url=url if success and "/posts/" in url else None,
            error=None if success else "Product Hunt submission may require additional steps",
        )

    async def fill_basic_info(self, page, website, content) -> SubmissionResult:
        logger.info("  -> Step 1: Basic Info")

        name_filled = await self.fill_field(
            page,
            'input[name="name"], input[placeholder*="name" i], input[aria-label*="name" i]',
            website.name,
        )
        if not name_filled:
            return SubmissionResult(success=False, error="Could not find product name field")

        tagline = content.tagline or website.tagline
        if tagline:
            await self.fill_field(
                page,
                'input[name="tagline"], input[placeholder*="tagline" i], textarea[name="tagline"]',
                tagline[:TAGLINE_LIMIT],
            )

        await self.fill_field(
            page,
            'input[name="url"], input[name="link"], input[placeholder*="link" i], input[type="url"]',
            website.url,
        )
        return SubmissionResult(success=True)

    async def handle_media_step(self, page, website):
        logger.info("  -> Step 2: Media (skipping if no uploads needed)")
        if website.screenshot_url and await self.has_element(
            page, 'input[name="gallery_url"], input[placeholder*="image url" i]'
        ):
            await self.fill_field(page, 'input[name="gallery_url"]', website.screenshot_url)

    async def fill_details_step(self, page, website, content):
        logger.info("  -> Step 3: Details")

        description = content.long_description or website.description_medium or website.description_long
        if description:
            await self.fill_field(
                page,
                'textarea[name="description"], textarea[placeholder*="description" i], [contenteditable="true"]',
                description,
            )

        topic = website.industry or website.category
        if topic:
            await self.click_element(page, f'button:has-text("{topic}"), label:has-text("{topic}")')

        if website.pricing_model:
            pricing = website.pricing_model
            await self.click_element(page, f'button:has-text("{pricing}"), label:has-text("{pricing}")')

    async def configure_launch_step(self, page, website):
        logger.info("  -> Step 4: Launch Configuration")
        handle = extract_twitter_handle(website.twitter_url)
        if handle:
            await self.fill_field(page, 'input[name="maker_twitter"], input[placeholder*="twitter" i]', handle)

    async def next_step(self, page) -> bool:
        clicked = await self.click_element(page, NEXT_BUTTON)
        if not clicked:
            logger.debug("  -> No next button found")
        await self.human_delay(1500, 2500)
        return clicked

    def is_success(self, url: str, html: str) -> bool:
        lower = f"{url} {html}".lower()
        if "/posts/" in url and "/new" not in url:
            return True
        if any(s in lower for s in ("scheduled", "launching", "congratulations", "your product")):
            return True
        return check_success(url, html)
