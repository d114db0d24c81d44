"""
Database module for lifterid.

Provides SQLAlchemy ORM models and session management.

Usage:
    from lifterid.db import get_session, Lifter

    with get_session() as session:
        lifters = session.query(Lifter).all()
"""

from lifterid.db.models import (
    Base,
    Lifter,
    LifterReviewQueue,
    MeetResult,
)
from lifterid.db.session import get_session, get_engine, SessionLocal

__all__ = [
    # Base
    "Base",
    # Models
    "Lifter",
    "LifterReviewQueue",
    "MeetResult",
    # Session
    "get_session",
    "get_engine",
    "SessionLocal",
]
