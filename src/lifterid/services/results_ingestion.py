"""
Results ingestion service - attaches scraped meet results to lifters.

For every scraped row this service:
1. Resolves the athlete to a canonical lifter via LifterResolver
2. Attaches a MeetResult to that lifter (once; re-ingesting a meet is a no-op)
3. Or, when resolution is skipped for a reason a human can settle
   (UNRESOLVABLE, STRICT_MISMATCH), adds the row to lifter_review_queue

Each row runs in its own savepoint, so a bad row never takes the rest of the
meet down with it. Database outages (OperationalError) are not per-row
problems and propagate.

Usage:
    from lifterid.services.results_ingestion import ingest_results

    with get_session() as session:
        resolver = LifterResolver(LifterStore(session), verifier, ResolutionCache())
        stats = await ingest_results(session, rows, meet, resolver)
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from lifterid.config import settings
from lifterid.db.models import LifterReviewQueue, MeetResult
from lifterid.identity.errors import SkipReason
from lifterid.identity.records import (
    Resolution,
    ResolveOptions,
    ScrapedRecord,
    TargetCompetition,
)
from lifterid.identity.resolver import LifterResolver

logger = logging.getLogger(__name__)

# Skips worth a human look; NOT_FOUND just means creation was switched off
REVIEWABLE_SKIPS = (SkipReason.UNRESOLVABLE, SkipReason.STRICT_MISMATCH)


@dataclass(frozen=True)
class ScrapedResult:
    """One row of a meet's results: who lifted, plus what they lifted."""
    record: ScrapedRecord
    best_snatch_kg: Optional[float] = None
    best_cj_kg: Optional[float] = None


@dataclass
class ResultsIngestionStats:
    """Statistics from a results ingestion run."""
    total_rows: int = 0
    lifters_matched: int = 0
    lifters_created: int = 0
    results_created: int = 0
    results_duplicate: int = 0
    queued_for_review: int = 0
    skipped_not_found: int = 0
    enrichment_conflicts: int = 0
    errors: list[str] = field(default_factory=list)

    def summary(self) -> str:
        """Return a human-readable summary of ingestion results."""
        lines = [
            f"Results ingestion complete:",
            f"  Total rows processed:     {self.total_rows}",
            f"  Lifters matched:          {self.lifters_matched}",
            f"  Lifters created:          {self.lifters_created}",
            f"  Results created:          {self.results_created}",
            f"  Results already present:  {self.results_duplicate}",
            f"  Queued for review:        {self.queued_for_review}",
            f"  Skipped (not found):      {self.skipped_not_found}",
        ]
        if self.enrichment_conflicts:
            lines.append(f"  Enrichment conflicts:     {self.enrichment_conflicts}")
        if self.errors:
            lines.append(f"  Errors: {len(self.errors)}")
            for err in self.errors[:5]:
                lines.append(f"    - {err}")
            if len(self.errors) > 5:
                lines.append(f"    ... and {len(self.errors) - 5} more")
        return "\n".join(lines)


async def ingest_results(
    session: Session,
    rows: list[ScrapedResult],
    competition: TargetCompetition,
    resolver: LifterResolver,
    create_if_missing: bool = True,
    strict_membership: Optional[bool] = None,
    verify: bool = True,
) -> ResultsIngestionStats:
    """
    Process one meet's scraped rows into MeetResult rows.

    Args:
        session: SQLAlchemy database session (same one the resolver's store uses)
        rows: Scraped results for the meet
        competition: The meet these rows came from
        resolver: Lifter resolver
        create_if_missing: Create lifters that don't exist yet
        strict_membership: Skip rows whose membership number matches nobody.
                           Defaults to settings.strict_membership_default.
        verify: Allow the resolver to check live profiles for this meet

    Returns:
        ResultsIngestionStats with counts of what happened
    """
    if strict_membership is None:
        strict_membership = settings.strict_membership_default

    options = ResolveOptions(
        create_if_missing=create_if_missing,
        strict_membership=strict_membership,
        target=competition if verify else None,
    )
    stats = ResultsIngestionStats(total_rows=len(rows))

    for row in rows:
        try:
            with session.begin_nested():
                outcome, resolution = await _process_single_result(
                    session, row, competition, resolver, options
                )
                session.flush()
            # Only count once the savepoint has committed
            _increment_stats_for_result(stats, outcome, resolution)
        except OperationalError:
            raise
        except Exception as e:
            error_msg = f"{row.record.name}: {e}"
            stats.errors.append(error_msg)
            logger.error("Error processing result: %s", error_msg)

    logger.info(stats.summary())
    return stats


def _increment_stats_for_result(
    stats: ResultsIngestionStats,
    outcome: str,
    resolution: Resolution,
) -> None:
    if "enrichment_conflict" in resolution.flags:
        stats.enrichment_conflicts += 1

    if resolution.status == "created":
        stats.lifters_created += 1
    elif resolution.status == "matched":
        stats.lifters_matched += 1

    if outcome == "created":
        stats.results_created += 1
    elif outcome == "duplicate":
        stats.results_duplicate += 1
    elif outcome == "queued":
        stats.queued_for_review += 1
    elif outcome == "not_found":
        stats.skipped_not_found += 1


async def _process_single_result(
    session: Session,
    row: ScrapedResult,
    competition: TargetCompetition,
    resolver: LifterResolver,
    options: ResolveOptions,
) -> tuple[str, Resolution]:
    """
    Resolve and attach a single row.

    Returns:
        Tuple of (status, resolution). Status is "created", "duplicate",
        "queued" or "not_found"
    """
    record = row.record
    resolution = await resolver.resolve(record, options)

    if resolution.is_skipped:
        if resolution.skip_reason in REVIEWABLE_SKIPS:
            _add_to_review_queue(session, record, competition, resolution)
            return "queued", resolution
        logger.info("Skipped %s: %s", record.name, resolution.message)
        return "not_found", resolution

    return _attach_result(session, row, competition, resolution.lifter_id), resolution


def _attach_result(
    session: Session,
    row: ScrapedResult,
    competition: TargetCompetition,
    lifter_id: int,
) -> str:
    record = row.record
    weight_class = record.weight_class or ""

    existing = session.scalars(
        select(MeetResult).where(
            MeetResult.lifter_id == lifter_id,
            MeetResult.meet_name == competition.name,
            MeetResult.meet_date == competition.date,
            MeetResult.weight_class == weight_class,
        )
    ).first()
    if existing is not None:
        return "duplicate"

    session.add(MeetResult(
        lifter_id=lifter_id,
        meet_name=competition.name,
        meet_date=competition.date,
        scraped_name=record.name,
        weight_class=weight_class,
        age_category=record.age_category,
        gender=record.gender,
        body_weight_kg=record.body_weight_kg,
        club_name=record.club,
        wso=record.wso,
        best_snatch_kg=row.best_snatch_kg,
        best_cj_kg=row.best_cj_kg,
        total_kg=record.total_kg,
    ))
    return "created"


def _add_to_review_queue(
    session: Session,
    record: ScrapedRecord,
    competition: TargetCompetition,
    resolution: Resolution,
) -> None:
    """
    Add a skipped row to the review queue, unless it is already pending.

    Up to three candidate lifters are stored as suggestions for the reviewer.
    """
    already_pending = session.scalars(
        select(LifterReviewQueue).where(
            LifterReviewQueue.scraped_name == record.name,
            LifterReviewQueue.meet_name == competition.name,
            LifterReviewQueue.meet_date == competition.date,
            LifterReviewQueue.status == "pending",
        )
    ).first()
    if already_pending is not None:
        logger.debug("%s at %s is already pending review", record.name, competition)
        return

    candidates = resolution.candidate_ids[:3]
    candidates += [None] * (3 - len(candidates))

    session.add(LifterReviewQueue(
        scraped_name=record.name,
        scraped_external_id=record.external_id,
        scraped_membership_number=record.membership_number,
        weight_class=record.weight_class,
        body_weight_kg=record.body_weight_kg,
        meet_name=competition.name,
        meet_date=competition.date,
        skip_reason=resolution.skip_reason.value,
        message=resolution.message[:500],
        candidate_lifter_1_id=candidates[0],
        candidate_lifter_2_id=candidates[1],
        candidate_lifter_3_id=candidates[2],
    ))
    logger.info(
        "Queued %s for review (%s): %s",
        record.name, resolution.skip_reason.value, resolution.message,
    )
