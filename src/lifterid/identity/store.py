"""
Identity store: all reads and writes of canonical lifter rows.

Every other part of the engine goes through LifterStore rather than
querying Lifter directly, so the two write paths (create and
set_external_id) are the only places that have to worry about a
concurrent writer claiming the same external id.

Neither write path takes a lock. Each does a final existence check right
before writing and relies on the unique constraint on lifters.external_id
as the backstop: the write runs inside a savepoint, and an IntegrityError
is turned back into "use the row that won" (create) or StoreConflict
(set_external_id).
"""

import logging
from collections import defaultdict
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lifterid.db.models import Lifter, MeetResult
from lifterid.identity.errors import StoreConflict

logger = logging.getLogger(__name__)


class LifterStore:
    """
    Repository over the lifters table.

    Usage:
        store = LifterStore(session)
        lifter = store.find_by_external_id("12345")
        if lifter is None:
            lifter = store.create("Jane Doe", external_id="12345")

    The store flushes but never commits; the caller owns the transaction.
    """

    def __init__(self, db: Session):
        """
        Args:
            db: SQLAlchemy session for database operations
        """
        self.db = db

    # =========================================================================
    # Lookups
    # =========================================================================

    def get(self, lifter_id: int) -> Optional[Lifter]:
        return self.db.get(Lifter, lifter_id)

    def find_by_external_id(self, external_id: str) -> Optional[Lifter]:
        """
        Find the lifter holding an external id.

        external_id is unique, so this returns at most one row. When legacy
        data violates that, the lowest id wins here; use
        find_all_by_external_id to see every holder.
        """
        rows = self.find_all_by_external_id(external_id)
        return rows[0] if rows else None

    def find_all_by_external_id(self, external_id: str) -> list[Lifter]:
        """Every lifter holding an external id, lowest id first."""
        stmt = (
            select(Lifter)
            .where(Lifter.external_id == external_id)
            .order_by(Lifter.id)
        )
        return list(self.db.scalars(stmt))

    def find_by_membership_number(self, membership_number: str) -> list[Lifter]:
        """Lifters with this membership number (numbers get reassigned, so may be many)."""
        stmt = (
            select(Lifter)
            .where(Lifter.membership_number == membership_number)
            .order_by(Lifter.id)
        )
        return list(self.db.scalars(stmt))

    def find_by_name(self, name: str) -> list[Lifter]:
        """Exact, case-sensitive match on the stored display name."""
        stmt = select(Lifter).where(Lifter.name == name).order_by(Lifter.id)
        return list(self.db.scalars(stmt))

    def recent_results(
        self,
        lifter_ids: Iterable[int],
        limit_per_lifter: int = 10,
    ) -> dict[int, list[MeetResult]]:
        """
        Most recent meet results for each lifter, newest first.

        Used as the attribute history (club, WSO, weight class, body weight)
        when several lifters share a name.
        """
        ids = list(lifter_ids)
        history: dict[int, list[MeetResult]] = defaultdict(list)
        if not ids:
            return history

        stmt = (
            select(MeetResult)
            .where(MeetResult.lifter_id.in_(ids))
            .order_by(MeetResult.lifter_id, MeetResult.meet_date.desc(), MeetResult.id.desc())
        )
        for result in self.db.scalars(stmt):
            rows = history[result.lifter_id]
            if len(rows) < limit_per_lifter:
                rows.append(result)
        return history

    # =========================================================================
    # Writes
    # =========================================================================

    def create(
        self,
        name: str,
        external_id: Optional[str] = None,
        membership_number: Optional[str] = None,
    ) -> Lifter:
        """
        Create a new lifter, unless the external id already exists.

        If external_id is supplied, it is looked up again immediately before
        the insert and the existing lifter is returned instead of creating a
        duplicate. If another writer gets in between the check and the
        insert, the unique constraint fires and the winner's row is returned.

        Returns:
            The new lifter (flushed, id assigned) or the existing holder of
            external_id
        """
        if external_id:
            existing = self.find_by_external_id(external_id)
            if existing is not None:
                logger.info(
                    "Duplicate prevented: external_id %s already belongs to lifter %d (%s)",
                    external_id, existing.id, existing.name,
                )
                return existing

        lifter = Lifter(
            name=name,
            external_id=external_id,
            membership_number=membership_number,
        )
        try:
            with self.db.begin_nested():
                self.db.add(lifter)
                self.db.flush()
        except IntegrityError:
            if not external_id:
                raise
            existing = self.find_by_external_id(external_id)
            if existing is None:
                raise
            logger.warning(
                "Concurrent insert for external_id %s; using lifter %d",
                external_id, existing.id,
            )
            return existing

        logger.info(
            "Created lifter %d: %s (external_id=%s, membership_number=%s)",
            lifter.id, name, external_id, membership_number,
        )
        return lifter

    def set_external_id(self, lifter_id: int, external_id: str) -> Lifter:
        """
        Assign an external id to a lifter.

        Raises:
            StoreConflict: If a different lifter already holds external_id
            ValueError: If lifter_id doesn't exist
        """
        lifter = self.get(lifter_id)
        if lifter is None:
            raise ValueError(f"Lifter {lifter_id} not found")

        if lifter.external_id == external_id:
            return lifter

        holder = self.find_by_external_id(external_id)
        if holder is not None and holder.id != lifter_id:
            raise StoreConflict(external_id, holder.id)

        if lifter.external_id:
            logger.warning(
                "Replacing external_id %s with %s on lifter %d",
                lifter.external_id, external_id, lifter_id,
            )

        try:
            with self.db.begin_nested():
                lifter.external_id = external_id
                self.db.flush()
        except IntegrityError as exc:
            # Savepoint rollback expires the lifter, so it reloads its old value
            raise StoreConflict(external_id) from exc

        return lifter
