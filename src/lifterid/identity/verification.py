"""
Verification tier: check candidates' public profiles for the target meet.

Used only when same-name candidates can't be told apart from stored data.
Each candidate with a known external id has its competition history fetched
through a ProfileSource, and the candidate whose history lists the target
competition (exact name and date) is the one the record belongs to.

A fetch that fails or times out never aborts verification; that candidate
just counts as not verified, and the outcome is marked inconclusive.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol, Sequence

from lifterid.db.models import Lifter
from lifterid.identity.records import CompetitionEntry, TargetCompetition

logger = logging.getLogger(__name__)


class ProfileSource(Protocol):
    """Anything that can list a member's competition history."""

    async def fetch_history(self, external_id: str) -> list[CompetitionEntry]:
        ...


@dataclass
class CandidateCheck:
    """Verification result for one candidate."""
    lifter_id: int
    external_id: Optional[str]
    verified: bool = False
    error: Optional[str] = None

    @property
    def fetched(self) -> bool:
        return self.external_id is not None and self.error is None


@dataclass
class VerificationOutcome:
    lifter: Optional[Lifter] = None
    checks: list[CandidateCheck] = field(default_factory=list)
    flags: list[str] = field(default_factory=list)

    @property
    def verified_ids(self) -> list[int]:
        return [check.lifter_id for check in self.checks if check.verified]

    @property
    def conclusive_negative(self) -> bool:
        """
        True when every candidate's profile was read and none lists the meet.

        That means the record is a different athlete who happens to share the
        name. Candidates without an external id make the outcome inconclusive.
        """
        return (
            bool(self.checks)
            and all(check.fetched for check in self.checks)
            and not any(check.verified for check in self.checks)
        )


class ExternalVerifier:
    """
    Breaks ties between same-name lifters using their live profiles.

    Usage:
        verifier = ExternalVerifier(scraper, timeout_seconds=45)
        outcome = await verifier.verify(candidates, target)
    """

    def __init__(self, source: ProfileSource, timeout_seconds: float = 45.0):
        self.source = source
        self.timeout_seconds = timeout_seconds

    async def verify(
        self,
        candidates: Sequence[Lifter],
        target: TargetCompetition,
    ) -> VerificationOutcome:
        checks = [CandidateCheck(lifter_id=c.id, external_id=c.external_id) for c in candidates]
        to_fetch = [check for check in checks if check.external_id]

        if len(to_fetch) < len(checks):
            logger.info(
                "%d of %d candidates have no external id and can't be verified",
                len(checks) - len(to_fetch), len(checks),
            )

        await asyncio.gather(*(self._check(check, target) for check in to_fetch))

        outcome = VerificationOutcome(checks=checks)
        verified = sorted(outcome.verified_ids)
        by_id = {c.id: c for c in candidates}

        if len(verified) == 1:
            outcome.lifter = by_id[verified[0]]
            logger.info("Verified lifter %d competed in %s", verified[0], target)
        elif len(verified) > 1:
            outcome.lifter = by_id[verified[0]]
            outcome.flags.append("multiple_verified")
            logger.warning(
                "Lifters %s all list %s; using lifter %d",
                ", ".join(str(i) for i in verified), target, verified[0],
            )
        else:
            logger.info(
                "No candidate lists %s (%s)",
                target,
                "conclusive" if outcome.conclusive_negative else "inconclusive",
            )

        return outcome

    async def _check(self, check: CandidateCheck, target: TargetCompetition) -> None:
        try:
            history = await asyncio.wait_for(
                self.source.fetch_history(check.external_id),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            check.error = f"timed out after {self.timeout_seconds}s"
            logger.warning(
                "Verification of lifter %d (external_id %s) %s",
                check.lifter_id, check.external_id, check.error,
            )
            return
        except Exception as e:
            check.error = str(e) or type(e).__name__
            logger.warning(
                "Verification of lifter %d (external_id %s) failed: %s",
                check.lifter_id, check.external_id, check.error,
            )
            return

        check.verified = any(entry.matches(target) for entry in history)
        logger.debug(
            "Lifter %d: %d history entries, %s %s",
            check.lifter_id, len(history),
            "lists" if check.verified else "does not list", target,
        )
