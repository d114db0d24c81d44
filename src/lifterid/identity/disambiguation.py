"""
Disambiguation among lifters that share a name.

Each strategy is a plain function (record, candidates, context) that returns
the one candidate it is confident about, or None. Strategies never touch the
database; whatever history they need is loaded up front into
DisambiguationContext. They run in STRATEGIES order and the first confident
answer wins.

Before the strategies run, candidates pinned to a different external id are
dropped. An external id never changes hands, so those are other people.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from lifterid.db.models import Lifter, MeetResult
from lifterid.identity.matcher import holds_other_external_id
from lifterid.identity.names import normalize_label
from lifterid.identity.records import ScrapedRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DisambiguationContext:
    """
    Read-only data the strategies may consult.

    Attributes:
        history: Recent meet results per lifter id, newest first
        body_weight_tolerance_kg: Max body weight difference that still counts
                                  as the same athlete
    """
    history: dict[int, list[MeetResult]] = field(default_factory=dict)
    body_weight_tolerance_kg: float = 5.0

    def results_for(self, lifter: Lifter) -> list[MeetResult]:
        return self.history.get(lifter.id, [])


Strategy = Callable[[ScrapedRecord, Sequence[Lifter], DisambiguationContext], Optional[Lifter]]


@dataclass
class DisambiguationOutcome:
    """
    Result of running the strategies over a candidate set.

    distinct is True when every candidate was excluded because it belongs to
    another external id: the record is a different athlete with the same name.
    """
    lifter: Optional[Lifter] = None
    strategy: Optional[str] = None
    candidates: list[Lifter] = field(default_factory=list)
    distinct: bool = False


# =============================================================================
# Strategies
# =============================================================================

def by_membership_number(
    record: ScrapedRecord,
    candidates: Sequence[Lifter],
    context: DisambiguationContext,
) -> Optional[Lifter]:
    if not record.membership_number:
        return None
    survivors = [c for c in candidates if c.membership_number == record.membership_number]
    return survivors[0] if len(survivors) == 1 else None


def _aligns(record: ScrapedRecord, results: list[MeetResult], tolerance_kg: float) -> bool:
    """
    True if a lifter's history supports the record and never contradicts it.

    Clubs, WSOs and weight classes change over a career, so a difference
    there is not evidence against; only gender is treated as contradicting.
    """
    if not results:
        return False

    gender = normalize_label(record.gender)
    if gender is not None:
        known = {normalize_label(r.gender) for r in results} - {None}
        if known and known != {gender}:
            return False

    pairs = (
        (record.club, "club_name"),
        (record.wso, "wso"),
        (record.weight_class, "weight_class"),
    )
    for value, column in pairs:
        wanted = normalize_label(value)
        if wanted is not None and any(
            normalize_label(getattr(r, column)) == wanted for r in results
        ):
            return True

    if record.body_weight_kg is not None:
        for r in results:
            if r.body_weight_kg is not None and abs(r.body_weight_kg - record.body_weight_kg) <= tolerance_kg:
                return True

    return False


def by_secondary_attributes(
    record: ScrapedRecord,
    candidates: Sequence[Lifter],
    context: DisambiguationContext,
) -> Optional[Lifter]:
    if not record.has_attributes:
        return None
    aligned = [
        c for c in candidates
        if _aligns(record, context.results_for(c), context.body_weight_tolerance_kg)
    ]
    return aligned[0] if len(aligned) == 1 else None


def by_null_external_id(
    record: ScrapedRecord,
    candidates: Sequence[Lifter],
    context: DisambiguationContext,
) -> Optional[Lifter]:
    """Give the record's external id to the only candidate that has none."""
    if not record.external_id:
        return None
    if any(holds_other_external_id(record, c) for c in candidates):
        return None
    unassigned = [c for c in candidates if not c.external_id]
    return unassigned[0] if len(unassigned) == 1 else None


STRATEGIES: tuple[tuple[str, Strategy], ...] = (
    ("membership_number", by_membership_number),
    ("secondary_attributes", by_secondary_attributes),
    ("null_external_id_enrichment", by_null_external_id),
)


# =============================================================================
# Runner
# =============================================================================

def disambiguate(
    record: ScrapedRecord,
    candidates: Sequence[Lifter],
    context: DisambiguationContext,
    strategies: Sequence[tuple[str, Strategy]] = STRATEGIES,
) -> DisambiguationOutcome:
    """
    Narrow same-name candidates down to one lifter, if possible.

    Returns:
        DisambiguationOutcome with lifter/strategy set on success. Otherwise
        candidates holds the set still in play (for the verifier), or
        distinct is True if nothing was ever in play.
    """
    remaining = [c for c in candidates if not holds_other_external_id(record, c)]
    if len(remaining) < len(candidates):
        logger.debug(
            "Excluded %d %s candidates holding other external ids",
            len(candidates) - len(remaining), record.name,
        )

    if not remaining:
        return DisambiguationOutcome(distinct=True)

    for name, strategy in strategies:
        lifter = strategy(record, remaining, context)
        if lifter is not None:
            logger.info(
                "Disambiguated %s to lifter %d via %s (%d candidates)",
                record.name, lifter.id, name, len(remaining),
            )
            return DisambiguationOutcome(lifter=lifter, strategy=name, candidates=remaining)

    return DisambiguationOutcome(candidates=remaining)
