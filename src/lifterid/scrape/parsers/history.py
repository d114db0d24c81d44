"""
Parser for the competition history table on a Sport80 member page.

The member page (public/rankings/member/<id>) renders a Vuetify data table
with one row per meet the athlete lifted in. Column layout:

    0  Meet name
    1  Date
    4  Body weight (kg)
    11 Best snatch
    12 Best clean & jerk
    13 Total

Only name and date are needed for verification; body weight and total are
picked up when present.
"""

import logging
import re
from datetime import date, datetime
from typing import Optional

from bs4 import BeautifulSoup

from lifterid.identity.records import CompetitionEntry

logger = logging.getLogger(__name__)

HISTORY_ROW_SELECTOR = (
    ".data-table div div.v-data-table div.v-data-table__wrapper table tbody tr"
)

NAME_COL = 0
DATE_COL = 1
BODY_WEIGHT_COL = 4
TOTAL_COL = 13

_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%B %d, %Y", "%b %d, %Y")


def parse_history_date(text: str) -> Optional[date]:
    """
    Parse a date cell.

    Examples:
        >>> parse_history_date("2024-03-01")
        datetime.date(2024, 3, 1)
        >>> parse_history_date("03/01/2024")
        datetime.date(2024, 3, 1)
        >>> parse_history_date("March 1, 2024")
        datetime.date(2024, 3, 1)
    """
    if not text:
        return None
    cleaned = " ".join(text.split())
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    return None


def _parse_kg(text: str) -> Optional[float]:
    """'81.35' -> 81.35; '-', '' and bombed-out totals like '0' are None."""
    m = re.search(r"-?\d+(?:\.\d+)?", text or "")
    if not m:
        return None
    value = float(m.group(0))
    return value if value > 0 else None


def parse_member_history(html: str) -> list[CompetitionEntry]:
    """
    Extract competition entries from a member page.

    Rows without a meet name or with an unreadable date are skipped.

    Returns:
        Entries in page order (the site lists newest first)
    """
    soup = BeautifulSoup(html, "lxml")
    entries = []

    for row in soup.select(HISTORY_ROW_SELECTOR):
        cells = [cell.get_text(" ", strip=True) for cell in row.find_all("td")]
        if len(cells) <= DATE_COL:
            # "No data available" placeholder row
            continue

        name = " ".join(cells[NAME_COL].split())
        meet_date = parse_history_date(cells[DATE_COL])
        if not name or meet_date is None:
            logger.debug("Skipping history row with name=%r date=%r", name, cells[DATE_COL])
            continue

        entries.append(CompetitionEntry(
            name=name,
            date=meet_date,
            body_weight_kg=_parse_kg(cells[BODY_WEIGHT_COL]) if len(cells) > BODY_WEIGHT_COL else None,
            total_kg=_parse_kg(cells[TOTAL_COL]) if len(cells) > TOTAL_COL else None,
        ))

    return entries
