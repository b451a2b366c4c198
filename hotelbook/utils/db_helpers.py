"""
Database Helper Utilities for Concurrency Control

Provides:
- Database dialect detection (PostgreSQL vs SQLite)
- Row locking on PostgreSQL
- Classification of integrity errors raised on flush
"""

import logging
from typing import Optional, TypeVar, Type
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)

T = TypeVar('T')


def is_postgres(db: Session) -> bool:
    """Check if the database is PostgreSQL"""
    try:
        return db.bind.dialect.name == 'postgresql'
    except AttributeError:
        return False


def acquire_row_lock(
    db: Session,
    model: Type[T],
    filter_condition,
    nowait: bool = False,
) -> Optional[T]:
    """
    Acquire a row-level lock on a database record.

    Args:
        db: Database session
        model: SQLAlchemy model class
        filter_condition: Filter to find the row
        nowait: If True, raise immediately if the lock is held (PostgreSQL only)

    Returns:
        The locked model instance, or None if not found

    Raises:
        OperationalError: If nowait=True and row is locked by another transaction

    Example:
        room = acquire_row_lock(db, Room, Room.id == room_id)
    """
    query = db.query(model).filter(filter_condition)

    # SQLite has no row locks; writers are serialized by the database file lock
    if is_postgres(db):
        if nowait:
            query = query.with_for_update(nowait=True)
        else:
            query = query.with_for_update()

    return query.first()


def violated_constraint(error: IntegrityError) -> str:
    """
    Best-effort name of the constraint behind an IntegrityError.

    PostgreSQL reports the constraint name, SQLite reports the columns
    ("UNIQUE constraint failed: bookings.reference_number").
    """
    orig = getattr(error, "orig", None)
    diag = getattr(orig, "diag", None)
    name = getattr(diag, "constraint_name", None)
    if name:
        return name
    return str(orig or error)


def is_reference_collision(error: IntegrityError) -> bool:
    text = violated_constraint(error)
    return "uq_bookings_reference_number" in text or "bookings.reference_number" in text


def is_room_date_collision(error: IntegrityError) -> bool:
    text = violated_constraint(error)
    return "room_dates_pkey" in text or "room_dates.room_id" in text or "room_dates.date" in text
