"""
Exceptions and skip reasons for lifter identity resolution.

Only store outages are meant to escape a resolution. Everything defined
here is either recovered inside the engine (StoreConflict,
VerificationFailure) or surfaced to the caller as a skip reason.
"""

from enum import Enum
from typing import Optional


class IdentityError(Exception):
    """Base class for identity resolution errors."""


class StoreConflict(IdentityError):
    """
    Raised when an external id is already held by a different lifter.

    Attributes:
        external_id: The id that could not be assigned
        holder_id: Lifter currently holding it (None if only the database
                   constraint told us about the clash)
    """

    def __init__(self, external_id: str, holder_id: Optional[int] = None):
        self.external_id = external_id
        self.holder_id = holder_id
        holder = f"lifter {holder_id}" if holder_id is not None else "another lifter"
        super().__init__(f"external_id {external_id!r} is already held by {holder}")


class VerificationFailure(IdentityError):
    """Raised by a profile source when a member page can't be fetched or parsed."""

    def __init__(self, external_id: str, reason: str):
        self.external_id = external_id
        self.reason = reason
        super().__init__(f"could not verify member {external_id}: {reason}")


class SkipReason(str, Enum):
    """Why a resolution returned no lifter."""

    # Several same-name lifters and nothing narrowed them to one
    UNRESOLVABLE = "unresolvable"
    # Stated membership number matched nobody and the caller asked for strict mode
    STRICT_MISMATCH = "strict_mismatch"
    # Nothing matched and the caller disabled creation
    NOT_FOUND = "not_found"
