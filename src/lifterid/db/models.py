"""
SQLAlchemy ORM models for lifterid.

The schema is built around a canonical lifter identity: each real athlete
has exactly one row in `lifters`, no matter how many times their results
are scraped. Results always reference a lifter by foreign key, never by a
raw name.

Key design decisions:
- external_id (the source system's member id) is unique when present
- membership_number is only a matching signal; numbers get reassigned,
  so it is indexed but not unique
- meet_results double as the attribute history (club, WSO, weight class,
  body weight) used to tell same-name lifters apart
- records the engine refuses to guess about land in lifter_review_queue

Tables:
- lifters: Canonical lifter records
- meet_results: One performance per lifter per meet/weight class
- lifter_review_queue: Skipped records awaiting human review
"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# =============================================================================
# Lifter Models
# =============================================================================

class Lifter(Base):
    """
    Canonical lifter record.

    The name is stored exactly as the source publishes it (trimmed) and is
    matched case-sensitively. external_id is the only column guaranteed to
    identify one person, and the unique constraint is what ultimately stops
    two concurrent writers from claiming the same id.
    """
    __tablename__ = "lifters"

    id: Mapped[int] = mapped_column(primary_key=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Sport80 member id - unique when present
    external_id: Mapped[Optional[str]] = mapped_column(
        String(50), unique=True, nullable=True
    )

    # Federation membership number - may be reused across years
    membership_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Metadata
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    results: Mapped[list["MeetResult"]] = relationship(back_populates="lifter")

    __table_args__ = (
        Index("idx_lifters_name", "name"),
        Index("idx_lifters_membership_number", "membership_number"),
    )

    def __repr__(self) -> str:
        return f"<Lifter(id={self.id}, name='{self.name}', external_id={self.external_id!r})>"


class MeetResult(Base):
    """
    A single competition performance attached to exactly one lifter.

    Written only after identity resolution succeeds. The unique constraint
    makes re-ingesting the same meet a no-op rather than a duplicate.
    """
    __tablename__ = "meet_results"

    id: Mapped[int] = mapped_column(primary_key=True)
    lifter_id: Mapped[int] = mapped_column(
        ForeignKey("lifters.id", ondelete="RESTRICT"), nullable=False
    )

    meet_name: Mapped[str] = mapped_column(String(255), nullable=False)
    meet_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Name as printed on the results sheet (may differ from Lifter.name)
    scraped_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Division and attributes observed at this meet
    weight_class: Mapped[str] = mapped_column(String(30), nullable=False, default="")
    age_category: Mapped[Optional[str]] = mapped_column(String(60), nullable=True)
    gender: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    body_weight_kg: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    club_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    wso: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Performance
    best_snatch_kg: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    best_cj_kg: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    total_kg: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    lifter: Mapped["Lifter"] = relationship(back_populates="results")

    __table_args__ = (
        UniqueConstraint(
            "lifter_id", "meet_name", "meet_date", "weight_class",
            name="uq_meet_result_lifter_meet_class",
        ),
        Index("idx_meet_results_lifter_date", "lifter_id", "meet_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<MeetResult(lifter_id={self.lifter_id}, meet='{self.meet_name}', "
            f"date={self.meet_date})>"
        )


class LifterReviewQueue(Base):
    """
    Queue for scraped records the resolver declined to attach.

    A record lands here when a name matched several lifters and nothing
    narrowed the set to one, or when a stated membership number matched
    nobody under strict mode. Up to three candidate lifters are stored to
    speed up manual review.

    Resolution options:
    - 'matched': Linked to an existing lifter
    - 'new_lifter': Created a new lifter record
    - 'ignored': Skipped
    """
    __tablename__ = "lifter_review_queue"

    id: Mapped[int] = mapped_column(primary_key=True)

    # The scraped data
    scraped_name: Mapped[str] = mapped_column(String(255), nullable=False)
    scraped_external_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    scraped_membership_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    weight_class: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    body_weight_kg: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Competition context
    meet_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    meet_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # Why the resolver skipped ('unresolvable', 'strict_mismatch')
    skip_reason: Mapped[str] = mapped_column(String(30), nullable=False)
    message: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    candidate_lifter_1_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("lifters.id"), nullable=True
    )
    candidate_lifter_2_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("lifters.id"), nullable=True
    )
    candidate_lifter_3_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("lifters.id"), nullable=True
    )

    # Resolution status
    status: Mapped[str] = mapped_column(
        String(20), default="pending"
    )  # 'pending', 'matched', 'new_lifter', 'ignored'
    resolved_lifter_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("lifters.id"), nullable=True
    )
    resolved_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_lifter_review_queue_status", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<LifterReviewQueue(name='{self.scraped_name}', status='{self.status}')>"
