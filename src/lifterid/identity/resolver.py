"""
Lifter resolution: the single entry point that maps a scraped record to a lifter.

Flow for one record:
1. Cache (if supplied) for records already resolved in this batch
2. CandidateMatcher: membership number, external id, exact name
3. Disambiguation strategies over same-name candidates
4. ExternalVerifier, when a target competition and a verifier are available
5. Creation, only when nothing matched and the caller allows it

A matched lifter missing the record's external id gets it backfilled
(enrichment), unless another lifter already holds it.

Same-name candidates that can't be told apart are never guessed between:
the record is skipped as UNRESOLVABLE so it can go to human review. The one
exception is a conclusive negative from the verifier, which proves the
record belongs to a different, new athlete.
"""

import logging
from typing import Optional

from lifterid.config import settings
from lifterid.db.models import Lifter
from lifterid.identity.cache import ResolutionCache
from lifterid.identity.disambiguation import (
    STRATEGIES,
    DisambiguationContext,
    disambiguate,
)
from lifterid.identity.errors import SkipReason, StoreConflict
from lifterid.identity.matcher import CandidateMatcher
from lifterid.identity.records import Resolution, ResolveOptions, ScrapedRecord
from lifterid.identity.store import LifterStore
from lifterid.identity.verification import ExternalVerifier

logger = logging.getLogger(__name__)


class LifterResolver:
    """
    Resolves ScrapedRecords to canonical lifters.

    Usage:
        resolver = LifterResolver(LifterStore(session), verifier=verifier)
        resolution = await resolver.resolve(record, ResolveOptions(target=meet))
        if resolution.is_skipped:
            ...  # queue for review
        else:
            lifter_id = resolution.lifter_id

    Only store outages raise. Every other failure ends up as a skip or a flag
    on the Resolution.
    """

    def __init__(
        self,
        store: LifterStore,
        verifier: Optional[ExternalVerifier] = None,
        cache: Optional[ResolutionCache] = None,
        strategies=STRATEGIES,
        body_weight_tolerance_kg: Optional[float] = None,
        history_limit: Optional[int] = None,
    ):
        self.store = store
        self.verifier = verifier
        self.cache = cache
        self.strategies = strategies
        self.matcher = CandidateMatcher(store)
        self.body_weight_tolerance_kg = (
            body_weight_tolerance_kg
            if body_weight_tolerance_kg is not None
            else settings.body_weight_tolerance_kg
        )
        self.history_limit = history_limit or settings.history_results_per_lifter

    async def resolve(
        self,
        record: ScrapedRecord,
        options: Optional[ResolveOptions] = None,
    ) -> Resolution:
        options = options or ResolveOptions()

        cached = self._from_cache(record, options)
        if cached is not None:
            return cached

        resolution = await self._resolve(record, options)

        if self.cache is not None and not resolution.is_skipped:
            self.cache.put(record, options, resolution.lifter_id)

        return resolution

    async def _resolve(self, record: ScrapedRecord, options: ResolveOptions) -> Resolution:
        outcome = self.matcher.match(record, strict_membership=options.strict_membership)
        flags = list(outcome.flags)

        if outcome.strict_mismatch:
            logger.info(
                "Skipping %s: membership number %s matches no lifter (strict mode)",
                record.name, record.membership_number,
            )
            return Resolution.skipped(
                SkipReason.STRICT_MISMATCH,
                f"Membership number {record.membership_number} matches no lifter",
                flags=flags,
            )

        if outcome.resolved is not None:
            return self._matched(record, outcome.resolved, outcome.step, flags)

        candidates = outcome.candidates
        if not candidates:
            return self._create_or_skip(record, options, flags, "no existing lifter matches")

        # Several lifters share the name
        history = self.store.recent_results(
            [c.id for c in candidates], limit_per_lifter=self.history_limit
        )
        context = DisambiguationContext(
            history=dict(history),
            body_weight_tolerance_kg=self.body_weight_tolerance_kg,
        )
        narrowed = disambiguate(record, candidates, context, self.strategies)

        if narrowed.lifter is not None:
            return self._matched(record, narrowed.lifter, narrowed.strategy, flags)

        if narrowed.distinct:
            return self._create_or_skip(
                record, options, flags,
                f"all {len(candidates)} lifters named {record.name} hold other external ids",
            )

        remaining = narrowed.candidates
        candidate_ids = [c.id for c in remaining]

        if options.target is not None and self.verifier is not None:
            verification = await self.verifier.verify(remaining, options.target)
            flags.extend(verification.flags)

            if verification.lifter is not None:
                return self._matched(record, verification.lifter, "verification", flags)

            if verification.conclusive_negative:
                return self._create_or_skip(
                    record, options, flags,
                    f"none of lifters {candidate_ids} competed in {options.target}",
                )

            message = (
                f"{len(remaining)} lifters named {record.name}; "
                f"verification against {options.target} was inconclusive"
            )
        else:
            message = f"{len(remaining)} lifters named {record.name} and nothing to tell them apart"

        logger.warning("Unresolvable: %s (candidates %s)", message, candidate_ids)
        return Resolution.skipped(
            SkipReason.UNRESOLVABLE, message, candidate_ids=candidate_ids, flags=flags,
        )

    # =========================================================================
    # Outcomes
    # =========================================================================

    def _from_cache(self, record: ScrapedRecord, options: ResolveOptions) -> Optional[Resolution]:
        if self.cache is None:
            return None
        lifter_id = self.cache.get(record, options)
        if lifter_id is None:
            return None
        lifter = self.store.get(lifter_id)
        if lifter is None:
            # Rolled back since it was cached
            self.cache.discard(record, options)
            return None
        return Resolution(status="matched", lifter=lifter, strategy="cache")

    def _matched(
        self,
        record: ScrapedRecord,
        lifter: Lifter,
        strategy: str,
        flags: list[str],
        status: str = "matched",
    ) -> Resolution:
        if record.external_id and not lifter.external_id:
            self._enrich(record, lifter, flags)

        logger.debug("Resolved %s to lifter %d via %s", record.name, lifter.id, strategy)
        return Resolution(status=status, lifter=lifter, strategy=strategy, flags=flags)

    def _enrich(self, record: ScrapedRecord, lifter: Lifter, flags: list[str]) -> None:
        try:
            self.store.set_external_id(lifter.id, record.external_id)
        except StoreConflict as e:
            flags.append("enrichment_conflict")
            logger.warning(
                "Could not enrich lifter %d (%s) with external_id %s: %s",
                lifter.id, lifter.name, record.external_id, e,
            )
            return

        flags.append("enriched")
        logger.info(
            "Enriched lifter %d (%s) with external_id %s",
            lifter.id, lifter.name, record.external_id,
        )

    def _create_or_skip(
        self,
        record: ScrapedRecord,
        options: ResolveOptions,
        flags: list[str],
        reason: str,
    ) -> Resolution:
        if not options.create_if_missing:
            return Resolution.skipped(
                SkipReason.NOT_FOUND,
                f"{record.name}: {reason} and creation is disabled",
                flags=flags,
            )

        # Final check right before insert, in case another writer got there first
        if record.external_id:
            existing = self.store.find_by_external_id(record.external_id)
            if existing is not None:
                logger.info(
                    "Duplicate prevented: external_id %s already belongs to lifter %d",
                    record.external_id, existing.id,
                )
                return self._matched(record, existing, "duplicate_prevention", flags)

        lifter = self.store.create(
            record.name,
            external_id=record.external_id,
            membership_number=record.membership_number,
        )
        logger.info("New lifter %d for %s: %s", lifter.id, record.name, reason)
        return Resolution(status="created", lifter=lifter, strategy="created", flags=flags)
