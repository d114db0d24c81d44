"""
Sport80 member profile scraper.

Fetches the public competition history of one member, used by the
verification tier to check which of several same-name lifters actually
lifted in a given meet.

Page: {sport80_base_url}/public/rankings/member/{external_id}

The history table is paginated client-side; the "next page" button sits in
the table footer and is disabled on the last page.
"""

import asyncio
import logging
from typing import Optional

from playwright.async_api import Page, TimeoutError as PlaywrightTimeoutError

from lifterid.config import settings
from lifterid.identity.errors import VerificationFailure
from lifterid.identity.records import CompetitionEntry
from lifterid.scrape.base import BaseScraper
from lifterid.scrape.parsers.history import HISTORY_ROW_SELECTOR, parse_member_history

logger = logging.getLogger(__name__)

NEXT_PAGE_SELECTOR = ".v-data-footer__icons-after button:not([disabled])"

# Seconds to let the table re-render after a page change
PAGE_SETTLE_SECONDS = 1.5


class Sport80ProfileScraper(BaseScraper):
    """
    Implements ProfileSource against the live Sport80 site.

    Usage:
        async with Sport80ProfileScraper() as scraper:
            verifier = ExternalVerifier(scraper, settings.verification_timeout_seconds)
            ...
    """

    def __init__(
        self,
        headless: bool = None,
        base_url: Optional[str] = None,
        max_pages: Optional[int] = None,
    ):
        super().__init__(headless=headless)
        self.BASE_URL = (base_url or settings.sport80_base_url).rstrip("/")
        self.max_pages = max_pages or settings.verification_max_pages
        self.page_settle_seconds = PAGE_SETTLE_SECONDS

    def member_url(self, external_id: str) -> str:
        return f"{self.BASE_URL}/public/rankings/member/{external_id}"

    async def fetch_history(self, external_id: str) -> list[CompetitionEntry]:
        """
        Fetch every competition listed on a member's page.

        Raises:
            VerificationFailure: If the page or its history table doesn't load
        """
        url = self.member_url(external_id)
        logger.info("Fetching member history: %s", url)

        page = await self.new_page()
        try:
            try:
                await self.navigate(page, url, wait_for="networkidle")
                await page.wait_for_selector(HISTORY_ROW_SELECTOR, timeout=self.timeout)
            except PlaywrightTimeoutError as e:
                raise VerificationFailure(external_id, f"history table did not load: {e}") from e

            entries = await self._collect_pages(page)
            logger.info("Member %s: %d history entries", external_id, len(entries))
            return entries

        finally:
            await page.close()

    async def _collect_pages(self, page: Page) -> list[CompetitionEntry]:
        entries: list[CompetitionEntry] = []

        for page_number in range(1, self.max_pages + 1):
            html = await page.content()
            entries.extend(parse_member_history(html))

            next_button = await page.query_selector(NEXT_PAGE_SELECTOR)
            if next_button is None:
                break

            if page_number == self.max_pages:
                logger.warning("Stopped after %d history pages", self.max_pages)
                break

            await next_button.click()
            # Table re-renders in place
            await asyncio.sleep(self.page_settle_seconds)
            await page.wait_for_selector(HISTORY_ROW_SELECTOR, timeout=self.timeout)

        return entries
