"""
Candidate matching: turn a scraped record into plausible existing lifters.

The lookup order is fixed and each step only runs if the previous one
didn't settle the question:
1. Membership number - authoritative when it points at exactly one lifter
2. External id - takes priority over the name even when they disagree
3. Exact name - zero, one or many; many go on to disambiguation

A membership number that matches nobody is a "strict mismatch". Whether
that stops resolution or falls through to the name is the caller's call.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from lifterid.db.models import Lifter
from lifterid.identity.names import compare_names
from lifterid.identity.records import ScrapedRecord
from lifterid.identity.store import LifterStore

logger = logging.getLogger(__name__)


@dataclass
class MatchOutcome:
    """
    What the matcher found.

    Exactly one of these holds:
    - resolved is set: a single confident lifter, matching stops
    - strict_mismatch is True: stated membership number matched nobody and
      the caller asked for strict mode
    - otherwise: candidates holds the name matches (possibly empty)
    """
    step: str
    resolved: Optional[Lifter] = None
    candidates: list[Lifter] = field(default_factory=list)
    strict_mismatch: bool = False
    flags: list[str] = field(default_factory=list)


def holds_other_external_id(record: ScrapedRecord, lifter: Lifter) -> bool:
    """True if the lifter is pinned to a different external id than the record's."""
    return bool(
        record.external_id
        and lifter.external_id
        and lifter.external_id != record.external_id
    )


class CandidateMatcher:
    """
    Queries the store for a record's candidates in priority order.

    Usage:
        matcher = CandidateMatcher(LifterStore(session))
        outcome = matcher.match(record, strict_membership=False)
    """

    def __init__(self, store: LifterStore):
        self.store = store

    def match(self, record: ScrapedRecord, strict_membership: bool = False) -> MatchOutcome:
        flags: list[str] = []

        # Step 1: membership number
        if record.membership_number:
            outcome = self._match_membership_number(record, flags)
            if outcome is not None:
                if outcome.strict_mismatch and not strict_membership:
                    logger.info(
                        "Membership number %s not found for %s; falling back to other lookups",
                        record.membership_number, record.name,
                    )
                else:
                    return outcome

        # Step 2: external id
        if record.external_id:
            outcome = self._match_external_id(record, flags)
            if outcome is not None:
                return outcome

        # Step 3: exact name
        return self._match_name(record, flags)

    # =========================================================================
    # Steps
    # =========================================================================

    def _match_membership_number(
        self, record: ScrapedRecord, flags: list[str]
    ) -> Optional[MatchOutcome]:
        members = self.store.find_by_membership_number(record.membership_number)

        if len(members) == 1:
            lifter = members[0]
            if lifter.name != record.name:
                self._flag_name_mismatch(
                    flags, record, lifter, f"membership number {record.membership_number}"
                )
            return MatchOutcome(
                step="membership_number",
                resolved=lifter,
                candidates=[lifter],
                flags=flags,
            )

        if len(members) > 1:
            named = [lifter for lifter in members if lifter.name == record.name]
            if len(named) == 1:
                return MatchOutcome(
                    step="membership_number",
                    resolved=named[0],
                    candidates=members,
                    flags=flags,
                )
            flags.append("shared_membership_number")
            logger.warning(
                "Membership number %s is held by %d lifters (%s); not using it to match %s",
                record.membership_number,
                len(members),
                ", ".join(str(lifter.id) for lifter in members),
                record.name,
            )
            return None

        flags.append("membership_number_not_found")
        return MatchOutcome(step="membership_number", strict_mismatch=True, flags=flags)

    def _match_external_id(
        self, record: ScrapedRecord, flags: list[str]
    ) -> Optional[MatchOutcome]:
        holders = self.store.find_all_by_external_id(record.external_id)

        if not holders:
            return None

        if len(holders) == 1:
            lifter = holders[0]
            if lifter.name != record.name:
                self._flag_name_mismatch(
                    flags, record, lifter, f"external_id {record.external_id}"
                )
            return MatchOutcome(
                step="external_id",
                resolved=lifter,
                candidates=holders,
                flags=flags,
            )

        # external_id is meant to be unique; this is legacy data gone wrong
        flags.append("duplicate_external_id")
        logger.warning(
            "Store invariant violated: external_id %s is held by lifters %s",
            record.external_id,
            ", ".join(str(lifter.id) for lifter in holders),
        )
        named = [lifter for lifter in holders if lifter.name == record.name]
        lifter = min(named or holders, key=lambda holder: holder.id)
        if not named:
            self._flag_name_mismatch(
                flags, record, lifter, f"external_id {record.external_id}"
            )
        return MatchOutcome(
            step="external_id",
            resolved=lifter,
            candidates=holders,
            flags=flags,
        )

    def _match_name(self, record: ScrapedRecord, flags: list[str]) -> MatchOutcome:
        candidates = self.store.find_by_name(record.name)

        if len(candidates) == 1:
            lifter = candidates[0]
            if holds_other_external_id(record, lifter):
                # Same name, but pinned to another member: a different person
                flags.append("external_id_mismatch")
                logger.info(
                    "Only name match for %s (lifter %d) holds external_id %s, record has %s; "
                    "treating as a different lifter",
                    record.name, lifter.id, lifter.external_id, record.external_id,
                )
                return MatchOutcome(step="name", candidates=[], flags=flags)
            return MatchOutcome(
                step="name_single",
                resolved=lifter,
                candidates=candidates,
                flags=flags,
            )

        if candidates:
            logger.info(
                "%d lifters named %s: %s",
                len(candidates),
                record.name,
                ", ".join(str(lifter.id) for lifter in candidates),
            )
        return MatchOutcome(step="name", candidates=candidates, flags=flags)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _flag_name_mismatch(
        self,
        flags: list[str],
        record: ScrapedRecord,
        lifter: Lifter,
        matched_on: str,
    ) -> None:
        flags.append("name_mismatch")
        logger.warning(
            "Matched %s by %s to lifter %d stored as %s (name similarity %.2f)",
            record.name,
            matched_on,
            lifter.id,
            lifter.name,
            compare_names(record.name, lifter.name),
        )
