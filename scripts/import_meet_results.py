#!/usr/bin/env python3
"""
Import one meet's results from a Sport80 CSV export.

Resolves every lifter in the file against the roster, attaches their meet
results, and queues anything ambiguous for review. Same-name lifters that
can't be told apart from stored data are checked against their live
Sport80 member pages unless --no-verify is given.

Expected columns (Sport80 export headers):
    Lifter, Membership Number, Internal_ID, Age Category, Weight Class,
    Body Weight (Kg), Club, WSO, Best Snatch, Best C&J, Total

Usage:
    # Import a meet
    python scripts/import_meet_results.py results.csv "Spring Open" 2024-03-01

    # See what would happen without writing anything
    python scripts/import_meet_results.py results.csv "Spring Open" 2024-03-01 --dry-run

    # Only attach results to lifters we already know
    python scripts/import_meet_results.py results.csv "Spring Open" 2024-03-01 --no-create
"""

import argparse
import asyncio
import csv
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from lifterid.config import settings
from lifterid.db.session import get_session
from lifterid.identity import (
    ExternalVerifier,
    LifterResolver,
    LifterStore,
    ResolutionCache,
    ScrapedRecord,
    TargetCompetition,
)
from lifterid.scrape.profile import Sport80ProfileScraper
from lifterid.services.results_ingestion import ScrapedResult, ingest_results

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def _cell(row: dict, column: str) -> Optional[str]:
    value = (row.get(column) or "").strip()
    return value or None


def _kg(row: dict, column: str) -> Optional[float]:
    value = _cell(row, column)
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def gender_from_age_category(age_category: Optional[str]) -> Optional[str]:
    """
    Sport80 doesn't export gender; it's part of the age category.

    "Open Women's" -> "F", "Junior Men's" -> "M"
    """
    if not age_category:
        return None
    lowered = age_category.lower()
    if "women" in lowered or "female" in lowered:
        return "F"
    if "men" in lowered or "male" in lowered:
        return "M"
    return None


def row_to_result(row: dict) -> Optional[ScrapedResult]:
    """Build a ScrapedResult from one CSV row, or None if the row has no lifter."""
    name = _cell(row, "Lifter")
    if name is None:
        return None

    age_category = _cell(row, "Age Category")
    record = ScrapedRecord(
        name=name,
        external_id=_cell(row, "Internal_ID"),
        membership_number=_cell(row, "Membership Number"),
        weight_class=_cell(row, "Weight Class"),
        body_weight_kg=_kg(row, "Body Weight (Kg)"),
        gender=gender_from_age_category(age_category),
        club=_cell(row, "Club"),
        wso=_cell(row, "WSO"),
        age_category=age_category,
        total_kg=_kg(row, "Total"),
    )
    return ScrapedResult(
        record=record,
        best_snatch_kg=_kg(row, "Best Snatch"),
        best_cj_kg=_kg(row, "Best C&J"),
    )


def read_results(path: Path) -> list[ScrapedResult]:
    with path.open(newline="", encoding="utf-8-sig") as f:
        rows = [row_to_result(row) for row in csv.DictReader(f)]
    return [row for row in rows if row is not None]


async def _ingest_in_session(
    results: list[ScrapedResult],
    meet: TargetCompetition,
    verifier: Optional[ExternalVerifier],
    create: bool,
    strict_membership: bool,
    dry_run: bool,
):
    with get_session() as session:
        resolver = LifterResolver(LifterStore(session), verifier=verifier, cache=ResolutionCache())
        stats = await ingest_results(
            session,
            results,
            meet,
            resolver,
            create_if_missing=create,
            strict_membership=strict_membership,
            verify=verifier is not None,
        )
        if dry_run:
            session.rollback()
            logger.info("[DRY RUN] Rolled back all changes")
    return stats


async def run_import(
    path: Path,
    meet: TargetCompetition,
    create: bool,
    strict_membership: bool,
    verify: bool,
    dry_run: bool,
) -> None:
    results = read_results(path)
    logger.info("Read %d rows from %s for %s", len(results), path, meet)

    if verify:
        async with Sport80ProfileScraper() as scraper:
            verifier = ExternalVerifier(scraper, settings.verification_timeout_seconds)
            stats = await _ingest_in_session(results, meet, verifier, create, strict_membership, dry_run)
    else:
        stats = await _ingest_in_session(results, meet, None, create, strict_membership, dry_run)

    print(stats.summary())


def main():
    parser = argparse.ArgumentParser(description="Import a meet's results from a Sport80 CSV export")
    parser.add_argument("csv_path", type=Path, help="CSV export of the meet results")
    parser.add_argument("meet_name", help="Meet name exactly as Sport80 lists it")
    parser.add_argument("meet_date", type=date.fromisoformat, help="Meet date (YYYY-MM-DD)")
    parser.add_argument("--no-create", action="store_true",
                        help="Don't create lifters that aren't in the roster yet")
    parser.add_argument("--strict-membership", action="store_true",
                        default=settings.strict_membership_default,
                        help="Skip rows whose membership number matches no lifter")
    parser.add_argument("--no-verify", action="store_true",
                        help="Don't check Sport80 member pages to tell same-name lifters apart")
    parser.add_argument("--dry-run", action="store_true",
                        help="Run everything but roll back at the end")
    args = parser.parse_args()

    if not args.csv_path.exists():
        parser.error(f"{args.csv_path} not found")

    asyncio.run(run_import(
        args.csv_path,
        TargetCompetition(name=args.meet_name, date=args.meet_date),
        create=not args.no_create,
        strict_membership=args.strict_membership,
        verify=not args.no_verify,
        dry_run=args.dry_run,
    ))


if __name__ == "__main__":
    main()
