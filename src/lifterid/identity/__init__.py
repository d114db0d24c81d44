"""
Lifter identity resolution.

Priority order for matching a scraped athlete:
1. Membership number (authoritative when it points at one lifter)
2. External id (Sport80 member id)
3. Exact name, then disambiguation among same-name lifters
4. Verification against live profiles for the target meet
5. Create a new lifter, only when nothing matches

Usage:
    from lifterid.identity import LifterResolver, LifterStore, ScrapedRecord

    resolver = LifterResolver(LifterStore(session))
    resolution = await resolver.resolve(ScrapedRecord(name="Jane Doe", external_id="12345"))
"""

from lifterid.identity.cache import ResolutionCache
from lifterid.identity.errors import (
    IdentityError,
    SkipReason,
    StoreConflict,
    VerificationFailure,
)
from lifterid.identity.records import (
    CompetitionEntry,
    Resolution,
    ResolveOptions,
    ScrapedRecord,
    TargetCompetition,
)
from lifterid.identity.resolver import LifterResolver
from lifterid.identity.store import LifterStore
from lifterid.identity.verification import ExternalVerifier, ProfileSource

__all__ = [
    "CompetitionEntry",
    "ExternalVerifier",
    "IdentityError",
    "LifterResolver",
    "LifterStore",
    "ProfileSource",
    "Resolution",
    "ResolutionCache",
    "ResolveOptions",
    "ScrapedRecord",
    "SkipReason",
    "StoreConflict",
    "TargetCompetition",
    "VerificationFailure",
]
