"""
Web scraping module for lifterid.

Fetches public pages from the Sport80 results portal:
- Member profiles with competition history (verification tier)

The scraping architecture uses:
- Playwright for browser automation (the portal renders tables client-side)
- BeautifulSoup for HTML parsing
- Retry logic with exponential backoff for reliability
"""

from lifterid.scrape.base import BaseScraper
from lifterid.scrape.profile import Sport80ProfileScraper

__all__ = [
    "BaseScraper",
    "Sport80ProfileScraper",
]
