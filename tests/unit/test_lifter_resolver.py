"""
Unit tests for LifterResolver end-to-end over an in-memory database.
"""

from datetime import date

import pytest

from lifterid.db.models import Lifter
from lifterid.identity.cache import ResolutionCache
from lifterid.identity.errors import SkipReason
from lifterid.identity.records import (
    CompetitionEntry,
    ResolveOptions,
    ScrapedRecord,
    TargetCompetition,
)
from lifterid.identity.resolver import LifterResolver
from lifterid.identity.verification import ExternalVerifier


SPRING_OPEN = TargetCompetition(name="Spring Open", date=date(2024, 3, 1))


def _count(db_session):
    return db_session.query(Lifter).count()


@pytest.fixture
def resolver(store):
    return LifterResolver(store)


# =============================================================================
# Idempotence and uniqueness
# =============================================================================

@pytest.mark.asyncio
async def test_resolving_twice_returns_same_lifter(resolver, db_session):
    record = ScrapedRecord(name="Jane Doe", external_id="12345")

    first = await resolver.resolve(record)
    second = await resolver.resolve(record)

    assert first.status == "created"
    assert second.status == "matched"
    assert first.lifter_id == second.lifter_id
    assert _count(db_session) == 1


@pytest.mark.asyncio
async def test_resolving_twice_without_ids_returns_same_lifter(resolver, db_session):
    first = await resolver.resolve(ScrapedRecord(name="Jane Doe"))
    second = await resolver.resolve(ScrapedRecord(name="Jane Doe"))

    assert first.lifter_id == second.lifter_id
    assert _count(db_session) == 1


@pytest.mark.asyncio
async def test_same_external_id_different_name_is_one_lifter(resolver, db_session):
    first = await resolver.resolve(ScrapedRecord(name="Jane Doe", external_id="12345"))
    second = await resolver.resolve(ScrapedRecord(name="Jane Doe-Smith", external_id="12345"))

    assert first.lifter_id == second.lifter_id
    assert "name_mismatch" in second.flags
    assert _count(db_session) == 1


# =============================================================================
# Priority
# =============================================================================

@pytest.mark.asyncio
async def test_membership_number_beats_external_id(resolver, make_lifter):
    member = make_lifter("Jane Doe", membership_number="M1")
    make_lifter("Someone Else", external_id="99")

    resolution = await resolver.resolve(
        ScrapedRecord(name="Jane Doe", external_id="99", membership_number="M1")
    )

    assert resolution.lifter_id == member.id
    assert resolution.strategy == "membership_number"


# =============================================================================
# No guessing between same-name lifters
# =============================================================================

@pytest.mark.asyncio
async def test_ambiguous_name_is_skipped_not_created(resolver, make_lifter, db_session):
    a = make_lifter("Alex Kim")
    b = make_lifter("Alex Kim")

    resolution = await resolver.resolve(ScrapedRecord(name="Alex Kim"))

    assert resolution.is_skipped
    assert resolution.skip_reason == SkipReason.UNRESOLVABLE
    assert resolution.candidate_ids == [a.id, b.id]
    assert _count(db_session) == 2


@pytest.mark.asyncio
async def test_ambiguous_name_skipped_even_when_creation_allowed(resolver, make_lifter, db_session):
    make_lifter("Alex Kim")
    make_lifter("Alex Kim")

    resolution = await resolver.resolve(
        ScrapedRecord(name="Alex Kim"), ResolveOptions(create_if_missing=True, target=SPRING_OPEN)
    )

    # No verifier configured, so nothing can tell them apart
    assert resolution.skip_reason == SkipReason.UNRESOLVABLE
    assert _count(db_session) == 2


@pytest.mark.asyncio
async def test_attribute_history_resolves_same_name(resolver, make_lifter, add_result):
    a = make_lifter("Alex Kim")
    b = make_lifter("Alex Kim")
    add_result(a, club_name="Catalyst Athletics")
    add_result(b, club_name="Garage Barbell")

    resolution = await resolver.resolve(ScrapedRecord(name="Alex Kim", club="Garage Barbell"))

    assert resolution.lifter_id == b.id
    assert resolution.strategy == "secondary_attributes"


@pytest.mark.asyncio
async def test_all_same_name_lifters_hold_other_ids_creates_new(resolver, make_lifter, db_session):
    make_lifter("Alex Kim", external_id="10")
    make_lifter("Alex Kim", external_id="20")

    resolution = await resolver.resolve(ScrapedRecord(name="Alex Kim", external_id="30"))

    assert resolution.status == "created"
    assert resolution.lifter.external_id == "30"
    assert _count(db_session) == 3


@pytest.mark.asyncio
async def test_single_name_match_with_other_id_creates_new(resolver, make_lifter, db_session):
    existing = make_lifter("Jane Doe", external_id="111")

    resolution = await resolver.resolve(ScrapedRecord(name="Jane Doe", external_id="222"))

    assert resolution.status == "created"
    assert resolution.lifter_id != existing.id
    assert _count(db_session) == 2


# =============================================================================
# Enrichment
# =============================================================================

@pytest.mark.asyncio
async def test_enrichment_backfills_external_id(resolver, make_lifter):
    lifter = make_lifter("Jane Doe")

    resolution = await resolver.resolve(ScrapedRecord(name="Jane Doe", external_id="555"))

    assert resolution.lifter_id == lifter.id
    assert lifter.external_id == "555"
    assert "enriched" in resolution.flags


@pytest.mark.asyncio
async def test_enrichment_conflict_keeps_existing_value(resolver, make_lifter, store):
    a = make_lifter("Jane Doe", membership_number="M1")
    b = make_lifter("Janet Doe", external_id="555")

    resolution = await resolver.resolve(
        ScrapedRecord(name="Jane Doe", external_id="555", membership_number="M1")
    )

    assert resolution.lifter_id == a.id
    assert "enrichment_conflict" in resolution.flags
    assert store.get(a.id).external_id is None
    assert store.get(b.id).external_id == "555"


@pytest.mark.asyncio
async def test_enrichment_conflict_from_concurrent_writer(resolver, make_lifter, store, monkeypatch):
    a = make_lifter("Jane Doe")
    c = make_lifter("Carla Diaz", external_id="42")
    # The lookups ran before another writer gave 42 to C
    monkeypatch.setattr(store, "find_all_by_external_id", lambda external_id: [])

    resolution = await resolver.resolve(ScrapedRecord(name="Jane Doe", external_id="42"))

    assert resolution.lifter_id == a.id
    assert "enrichment_conflict" in resolution.flags
    assert store.get(a.id).external_id is None
    assert store.get(c.id).external_id == "42"


@pytest.mark.asyncio
async def test_external_id_outranks_name_when_another_lifter_holds_it(resolver, make_lifter, store):
    named = make_lifter("Jane Doe")
    holder = make_lifter("Carla Diaz", external_id="42")

    resolution = await resolver.resolve(ScrapedRecord(name="Jane Doe", external_id="42"))

    assert resolution.lifter_id == holder.id
    assert resolution.strategy == "external_id"
    assert "name_mismatch" in resolution.flags
    assert "enrichment_conflict" not in resolution.flags
    assert store.get(named.id).external_id is None


@pytest.mark.asyncio
async def test_null_external_id_candidate_is_enriched(resolver, make_lifter):
    make_lifter("Alex Kim", external_id="10")
    unassigned = make_lifter("Alex Kim")

    resolution = await resolver.resolve(ScrapedRecord(name="Alex Kim", external_id="20"))

    assert resolution.lifter_id == unassigned.id
    assert resolution.strategy == "null_external_id_enrichment"
    assert unassigned.external_id == "20"


# =============================================================================
# Verification tier
# =============================================================================

@pytest.mark.asyncio
async def test_verification_breaks_tie(store, make_lifter, fake_source):
    make_lifter("Alex Kim", external_id="10")
    winner = make_lifter("Alex Kim", external_id="20")
    source = fake_source({
        "10": [CompetitionEntry(name="Winter Classic", date=date(2024, 1, 13))],
        "20": [CompetitionEntry(name="Spring Open", date=date(2024, 3, 1))],
    })
    resolver = LifterResolver(store, verifier=ExternalVerifier(source, timeout_seconds=1))

    resolution = await resolver.resolve(
        ScrapedRecord(name="Alex Kim"), ResolveOptions(target=SPRING_OPEN)
    )

    assert resolution.lifter_id == winner.id
    assert resolution.strategy == "verification"


@pytest.mark.asyncio
async def test_verification_skipped_without_target(store, make_lifter, fake_source):
    make_lifter("Alex Kim", external_id="10")
    make_lifter("Alex Kim", external_id="20")
    source = fake_source({"20": [CompetitionEntry(name="Spring Open", date=date(2024, 3, 1))]})
    resolver = LifterResolver(store, verifier=ExternalVerifier(source, timeout_seconds=1))

    resolution = await resolver.resolve(ScrapedRecord(name="Alex Kim"))

    assert resolution.skip_reason == SkipReason.UNRESOLVABLE
    assert source.calls == []


@pytest.mark.asyncio
async def test_conclusive_negative_creates_new_lifter(store, make_lifter, fake_source, db_session):
    make_lifter("Alex Kim", external_id="10")
    make_lifter("Alex Kim", external_id="20")
    source = fake_source({
        "10": [CompetitionEntry(name="Winter Classic", date=date(2024, 1, 13))],
        "20": [],
    })
    resolver = LifterResolver(store, verifier=ExternalVerifier(source, timeout_seconds=1))

    resolution = await resolver.resolve(
        ScrapedRecord(name="Alex Kim"), ResolveOptions(target=SPRING_OPEN)
    )

    assert resolution.status == "created"
    assert _count(db_session) == 3


@pytest.mark.asyncio
async def test_inconclusive_verification_is_skipped(store, make_lifter, fake_source, db_session):
    make_lifter("Alex Kim", external_id="10")
    make_lifter("Alex Kim", external_id="20")
    source = fake_source({"10": RuntimeError("boom"), "20": []})
    resolver = LifterResolver(store, verifier=ExternalVerifier(source, timeout_seconds=1))

    resolution = await resolver.resolve(
        ScrapedRecord(name="Alex Kim"), ResolveOptions(target=SPRING_OPEN)
    )

    assert resolution.skip_reason == SkipReason.UNRESOLVABLE
    assert _count(db_session) == 2


@pytest.mark.asyncio
async def test_conclusive_negative_respects_create_disabled(store, make_lifter, fake_source, db_session):
    make_lifter("Alex Kim", external_id="10")
    make_lifter("Alex Kim", external_id="20")
    source = fake_source({"10": [], "20": []})
    resolver = LifterResolver(store, verifier=ExternalVerifier(source, timeout_seconds=1))

    resolution = await resolver.resolve(
        ScrapedRecord(name="Alex Kim"),
        ResolveOptions(create_if_missing=False, target=SPRING_OPEN),
    )

    assert resolution.skip_reason == SkipReason.NOT_FOUND
    assert _count(db_session) == 2


# =============================================================================
# Creation policy
# =============================================================================

@pytest.mark.asyncio
async def test_strict_membership_skips(resolver, make_lifter, db_session):
    make_lifter("Jane Doe")

    resolution = await resolver.resolve(
        ScrapedRecord(name="Jane Doe", membership_number="M404"),
        ResolveOptions(strict_membership=True),
    )

    assert resolution.skip_reason == SkipReason.STRICT_MISMATCH
    assert resolution.lifter is None
    assert _count(db_session) == 1


@pytest.mark.asyncio
async def test_lenient_membership_falls_back_to_name(resolver, make_lifter):
    lifter = make_lifter("Jane Doe")

    resolution = await resolver.resolve(ScrapedRecord(name="Jane Doe", membership_number="M404"))

    assert resolution.lifter_id == lifter.id


@pytest.mark.asyncio
async def test_create_disabled_skips(resolver, db_session):
    resolution = await resolver.resolve(
        ScrapedRecord(name="Nobody Known", external_id="1"),
        ResolveOptions(create_if_missing=False),
    )

    assert resolution.is_skipped
    assert resolution.skip_reason == SkipReason.NOT_FOUND
    assert _count(db_session) == 0


@pytest.mark.asyncio
async def test_created_lifter_keeps_ids(resolver):
    resolution = await resolver.resolve(
        ScrapedRecord(name="  Jane   Doe ", external_id=12345, membership_number=678)
    )

    assert resolution.status == "created"
    assert resolution.lifter.name == "Jane Doe"
    assert resolution.lifter.external_id == "12345"
    assert resolution.lifter.membership_number == "678"


# =============================================================================
# Cache
# =============================================================================

@pytest.mark.asyncio
async def test_cache_hit_skips_matching(store, make_lifter):
    lifter = make_lifter("Jane Doe", external_id="12345")
    cache = ResolutionCache()
    resolver = LifterResolver(store, cache=cache)
    record = ScrapedRecord(name="Jane Doe", external_id="12345")

    first = await resolver.resolve(record)
    second = await resolver.resolve(record)

    assert first.strategy == "external_id"
    assert second.strategy == "cache"
    assert second.lifter_id == lifter.id
    assert cache.hits == 1


@pytest.mark.asyncio
async def test_skips_are_not_cached(store, make_lifter):
    make_lifter("Alex Kim")
    make_lifter("Alex Kim")
    cache = ResolutionCache()
    resolver = LifterResolver(store, cache=cache)

    await resolver.resolve(ScrapedRecord(name="Alex Kim"))

    assert len(cache) == 0


@pytest.mark.asyncio
async def test_cached_match_not_reused_under_strict_membership(store, make_lifter, db_session):
    make_lifter("Jane Doe")
    cache = ResolutionCache()
    resolver = LifterResolver(store, cache=cache)
    record = ScrapedRecord(name="Jane Doe", membership_number="M404")

    lenient = await resolver.resolve(record)
    strict = await resolver.resolve(record, ResolveOptions(strict_membership=True))

    assert lenient.status == "matched"
    assert strict.skip_reason == SkipReason.STRICT_MISMATCH
    assert strict.lifter is None
    assert cache.hits == 0
    assert _count(db_session) == 1


@pytest.mark.asyncio
async def test_cache_is_keyed_on_target(store, make_lifter):
    make_lifter("Jane Doe", external_id="12345")
    cache = ResolutionCache()
    resolver = LifterResolver(store, cache=cache)
    record = ScrapedRecord(name="Jane Doe", external_id="12345")

    await resolver.resolve(record, ResolveOptions(target=SPRING_OPEN))
    other_meet = await resolver.resolve(record)

    assert other_meet.strategy == "external_id"
    assert len(cache) == 2
