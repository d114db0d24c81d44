"""
Data structures passed into and out of the identity resolver.

ScrapedRecord is the one typed shape every scraper hands to the engine;
fields a source doesn't publish are simply left as None. Resolution is
what comes back: either a lifter, or a skip with a reason a human can read.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Union

from lifterid.db.models import Lifter
from lifterid.identity.errors import SkipReason


def _clean_optional(value: Union[str, int, None]) -> Optional[str]:
    """Coerce ids to trimmed strings, treating blanks as missing."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class ScrapedRecord:
    """
    One athlete as observed on a results page or entry list.

    Only `name` is required. external_id and membership_number accept ints
    (as they often arrive from CSV exports) and are normalized to strings.
    """

    name: str
    external_id: Optional[str] = None
    membership_number: Optional[str] = None

    # Disambiguation attributes
    weight_class: Optional[str] = None
    body_weight_kg: Optional[float] = None
    gender: Optional[str] = None
    club: Optional[str] = None
    wso: Optional[str] = None
    age_category: Optional[str] = None
    total_kg: Optional[float] = None

    def __post_init__(self) -> None:
        clean_name = " ".join(str(self.name or "").split())
        if not clean_name:
            raise ValueError("Lifter name is required")
        # frozen dataclass: assign through object.__setattr__
        object.__setattr__(self, "name", clean_name)
        object.__setattr__(self, "external_id", _clean_optional(self.external_id))
        object.__setattr__(
            self, "membership_number", _clean_optional(self.membership_number)
        )

    @property
    def has_attributes(self) -> bool:
        """True if any secondary attribute is available for disambiguation."""
        return any(
            value is not None
            for value in (
                self.weight_class,
                self.body_weight_kg,
                self.gender,
                self.club,
                self.wso,
            )
        )


@dataclass(frozen=True)
class TargetCompetition:
    """The competition a scraped record is supposed to belong to."""

    name: str
    date: date

    def __str__(self) -> str:
        return f"{self.name} ({self.date.isoformat()})"


@dataclass(frozen=True)
class CompetitionEntry:
    """One row of a lifter's published competition history."""

    name: str
    date: date
    body_weight_kg: Optional[float] = None
    total_kg: Optional[float] = None

    def matches(self, target: TargetCompetition) -> bool:
        return self.name == target.name and self.date == target.date


@dataclass(frozen=True)
class ResolveOptions:
    """
    Per-call resolution policy.

    Attributes:
        create_if_missing: Create a new lifter when nothing matches. Read-only
                           callers (entry-list reconciliation) pass False.
        strict_membership: Skip, rather than fall back to name matching, when
                           a stated membership number matches nobody.
        target: Competition context enabling the verification tier.
    """

    create_if_missing: bool = True
    strict_membership: bool = False
    target: Optional[TargetCompetition] = None


@dataclass
class Resolution:
    """
    Outcome of resolving one ScrapedRecord.

    status is 'matched', 'created' or 'skipped'. strategy names the step
    that made the decision (e.g. 'membership_number', 'external_id',
    'name_single', 'verification'), which is what shows up in logs.
    """

    status: str
    lifter: Optional[Lifter] = None
    strategy: Optional[str] = None
    skip_reason: Optional[SkipReason] = None
    message: str = ""
    flags: list[str] = field(default_factory=list)
    candidate_ids: list[int] = field(default_factory=list)

    @property
    def is_skipped(self) -> bool:
        return self.status == "skipped"

    @property
    def lifter_id(self) -> Optional[int]:
        return self.lifter.id if self.lifter is not None else None

    @classmethod
    def skipped(
        cls,
        reason: SkipReason,
        message: str,
        candidate_ids: Optional[list[int]] = None,
        flags: Optional[list[str]] = None,
    ) -> "Resolution":
        return cls(
            status="skipped",
            skip_reason=reason,
            message=message,
            candidate_ids=list(candidate_ids or []),
            flags=list(flags or []),
        )

    def __repr__(self) -> str:
        if self.is_skipped:
            return f"<Resolution(skipped, reason='{self.skip_reason.value}')>"
        return f"<Resolution({self.status}, lifter_id={self.lifter_id}, strategy='{self.strategy}')>"
