"""
Parsers for scraped Sport80 pages.

This module contains parsers for:
- Member competition history (used by the verification tier)
"""

from lifterid.scrape.parsers.history import (
    HISTORY_ROW_SELECTOR,
    parse_history_date,
    parse_member_history,
)

__all__ = [
    "HISTORY_ROW_SELECTOR",
    "parse_history_date",
    "parse_member_history",
]
