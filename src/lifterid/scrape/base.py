"""
Browser plumbing shared by Sport80 page fetchers.

Sport80 renders its member pages client-side (Vuetify), so a plain HTTP GET
returns an empty shell; every fetch goes through a Playwright browser.

One BaseScraper owns one browser context for a whole ingestion run. The
verifier opens a fresh page per candidate, so concurrent member lookups share
the context but never a page.
"""

import asyncio
import logging
import random
from typing import Optional

from playwright.async_api import async_playwright, Browser, BrowserContext, Page
from playwright_stealth import Stealth

from lifterid.config import settings

logger = logging.getLogger(__name__)

# Sport80 sits behind a bot check that rejects stock headless Chromium
_stealth = Stealth()

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


class BaseScraper:
    """
    Browser lifecycle, page creation and retried navigation for Sport80.

    Usage:
        async with Sport80ProfileScraper() as scraper:
            history = await scraper.fetch_history("12345")
    """

    BASE_URL: str = ""

    def __init__(self, headless: bool = None):
        # None means settings.scrape_headless
        self.headless = headless if headless is not None else settings.scrape_headless
        self.timeout = settings.scrape_timeout

        self._playwright = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None

    async def __aenter__(self) -> "BaseScraper":
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=self.headless)

        # Desktop viewport: narrower windows collapse the history table into cards
        self._context = await self._browser.new_context(
            user_agent=USER_AGENT,
            viewport={"width": 1920, "height": 1080},
            locale="en-US",
        )
        self._context.set_default_timeout(self.timeout)

        logger.debug("Browser started (headless=%s)", self.headless)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._context:
            await self._context.close()
        if self._browser:
            await self._browser.close()
        if self._playwright:
            await self._playwright.stop()
        logger.debug("Browser closed")

    async def new_page(self) -> Page:
        """Open a page in the shared context. The caller closes it."""
        if not self._context:
            raise RuntimeError("Scraper not started; use 'async with'")

        page = await self._context.new_page()
        await _stealth.apply_stealth_async(page)
        return page

    async def navigate(
        self,
        page: Page,
        url: str,
        wait_for: str = "load",
        max_attempts: Optional[int] = None,
    ) -> None:
        """
        Load a Sport80 URL, retrying transient failures.

        Member pages keep fetching table data after 'load', so profile
        lookups pass wait_for='networkidle'.
        """
        await self.with_retry(
            lambda: page.goto(url, wait_until=wait_for, timeout=self.timeout),
            max_attempts=max_attempts,
            description=f"GET {url}",
        )

    async def with_retry(
        self,
        coro_func,
        max_attempts: int = None,
        base_delay: float = 2.0,
        jitter: float = 1.0,
        description: str = "Operation",
    ):
        """
        Await coro_func() until it succeeds, backing off exponentially.

        coro_func must build a new coroutine on each call (a lambda around
        page.goto, say), since an awaited coroutine can't be awaited again.
        The last error is re-raised once max_attempts (default
        settings.scrape_max_retries) is spent.
        """
        if max_attempts is None:
            max_attempts = settings.scrape_max_retries

        last_error = None

        for attempt in range(max_attempts):
            try:
                return await coro_func()
            except Exception as e:
                last_error = e
                if attempt == max_attempts - 1:
                    break

                # Jitter keeps concurrent candidate lookups from retrying in lockstep
                delay = base_delay * (2 ** attempt) + random.uniform(0, jitter)
                logger.warning(
                    "[Retry %d/%d] %s failed: %s. Retrying in %.1fs",
                    attempt + 1, max_attempts, description, e, delay,
                )
                await asyncio.sleep(delay)

        raise last_error
