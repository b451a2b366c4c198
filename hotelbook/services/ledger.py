"""
Availability Ledger

Per-room, per-night reservation state backed by the ``room_dates`` table.

Policy:
- A night with no row is available (open-world default).
- Ranges are half-open: [start, end). The checkout day is never reserved.
- Only the booking service (create/cancel) and admin blocks write here.
- The room's global ``is_available`` flag is NOT consulted; callers compose it.
"""

from dataclasses import dataclass, asdict
from datetime import date
from typing import Dict, List, Optional, Set

from sqlalchemy import or_
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from ..config import settings
from ..exceptions import BookingValidationError, DateConflictError
from ..models.room_date import RoomDate
from ..utils.dates import DateLike, to_day, nights_between
from ..utils.db_helpers import is_room_date_collision
from ..utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class DateAvailability:
    date: date
    is_available: bool
    booking_id: Optional[int] = None
    is_blocked: bool = False
    block_reason: Optional[str] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        return data


class AvailabilityLedger:
    """
    Source of truth for whether a room is bookable on a given night.

    Writes are staged on the caller's session and flushed, never committed:
    the booking service owns the transaction so the booking row and its
    nights land (or roll back) together.
    """

    def __init__(self, db: Session, max_nights: Optional[int] = None):
        self.db = db
        self.max_nights = settings.max_calendar_nights if max_nights is None else max_nights

    def _normalize_range(self, start: DateLike, end: DateLike):
        start_day = to_day(start)
        end_day = to_day(end)
        if end_day <= start_day:
            raise BookingValidationError(
                "End date must be after start date",
                details={"start": start_day.isoformat(), "end": end_day.isoformat()},
            )
        nights = (end_day - start_day).days
        if nights > self.max_nights:
            raise BookingValidationError(
                f"Date range of {nights} nights exceeds the maximum of {self.max_nights}",
                details={"nights": nights, "max_nights": self.max_nights},
            )
        return start_day, end_day

    def _claim(self, room_id: int, nights: List[date], values: dict, owner: Optional[int] = None) -> int:
        """
        Conditionally update existing entries: only rows still available (or
        already held by ``owner``) are written. Returns the rows changed, so a
        short count means another writer took a night since it was read.
        """
        if not nights:
            return 0
        claimable = RoomDate.is_available.is_(True)
        if owner is not None:
            claimable = or_(claimable, RoomDate.booking_id == owner)
        count = self.db.query(RoomDate).filter(
            RoomDate.room_id == room_id,
            RoomDate.date.in_(nights),
            claimable
        ).update(values, synchronize_session=False)
        return count

    def _entries(self, room_id: int, start: date, end: date) -> Dict[date, RoomDate]:
        rows = self.db.query(RoomDate).filter(
            RoomDate.room_id == room_id,
            RoomDate.date >= start,
            RoomDate.date < end
        ).all()
        return {row.date: row for row in rows}

    def _expire(self, entries: Dict[date, RoomDate]):
        for entry in entries.values():
            self.db.expire(entry)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def is_range_available(self, room_id: int, start: DateLike, end: DateLike) -> bool:
        """True unless some night in [start, end) has an unavailable entry."""
        start_day, end_day = self._normalize_range(start, end)
        blocked = self.db.query(RoomDate.date).filter(
            RoomDate.room_id == room_id,
            RoomDate.date >= start_day,
            RoomDate.date < end_day,
            RoomDate.is_available.is_(False)
        ).first()
        return blocked is None

    def get_range(self, room_id: int, start: DateLike, end: DateLike) -> List[DateAvailability]:
        """Ordered per-night projection; nights without an entry are available."""
        start_day, end_day = self._normalize_range(start, end)
        entries = self._entries(room_id, start_day, end_day)

        result = []
        for night in nights_between(start_day, end_day):
            entry = entries.get(night)
            if entry is None:
                result.append(DateAvailability(date=night, is_available=True))
            else:
                result.append(DateAvailability(
                    date=night,
                    is_available=entry.is_available,
                    booking_id=entry.booking_id,
                    is_blocked=entry.is_blocked,
                    block_reason=entry.block_reason,
                ))
        return result

    def unavailable_room_ids(self, start: DateLike, end: DateLike) -> Set[int]:
        """Rooms with at least one unavailable night in [start, end)."""
        start_day, end_day = self._normalize_range(start, end)
        rows = self.db.query(RoomDate.room_id).filter(
            RoomDate.date >= start_day,
            RoomDate.date < end_day,
            RoomDate.is_available.is_(False)
        ).distinct().all()
        return {row.room_id for row in rows}

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def reserve_range(self, room_id: int, start: DateLike, end: DateLike, booking_id: int) -> int:
        """
        Mark every night in [start, end) unavailable, owned by booking_id.

        Nights already held by another booking or an admin block raise
        DateConflictError before anything is written. Existing entries are
        only overwritten while still free, so a night taken by a concurrent
        writer after it was read is a DateConflictError too, as is a
        concurrent insert of the same night surfacing on flush. The caller
        must roll back its transaction in every case.

        Returns the number of nights reserved.
        """
        start_day, end_day = self._normalize_range(start, end)
        entries = self._entries(room_id, start_day, end_day)

        taken = [
            night for night, entry in entries.items()
            if not entry.is_available and entry.booking_id != booking_id
        ]
        if taken:
            raise DateConflictError(room_id, taken)

        nights = nights_between(start_day, end_day)
        existing = [night for night in nights if night in entries]
        claimed = self._claim(
            room_id,
            existing,
            {"is_available": False, "booking_id": booking_id, "block_reason": None},
            owner=booking_id,
        )
        self._expire(entries)
        if claimed < len(existing):
            logger.warning(f"Nights on room {room_id} changed hands before booking {booking_id} could claim them")
            raise DateConflictError(room_id, existing)

        for night in nights:
            if night not in entries:
                self.db.add(RoomDate(room_id=room_id, date=night, is_available=False, booking_id=booking_id))

        try:
            self.db.flush()
        except IntegrityError as e:
            if is_room_date_collision(e):
                logger.warning(f"Lost reservation race on room {room_id} for booking {booking_id}")
                raise DateConflictError(room_id, nights) from e
            raise

        logger.dates_reserved(room_id, booking_id, len(nights))
        return len(nights)

    def release_range(self, booking_id: int) -> int:
        """
        Free every night owned by booking_id. Idempotent: a second call, or a
        booking that holds nothing, frees 0 nights.
        """
        entries = self.db.query(RoomDate).filter(RoomDate.booking_id == booking_id).all()
        for entry in entries:
            entry.is_available = True
            entry.booking_id = None
            entry.block_reason = None

        if entries:
            self.db.flush()
        logger.dates_released(booking_id, len(entries))
        return len(entries)

    def block_dates(self, room_id: int, start: DateLike, end: DateLike, reason: str = "manual_block") -> int:
        """
        Take nights out of sale without a booking (maintenance, owner use).
        Nights held by a booking are left alone. Returns count blocked.
        """
        start_day, end_day = self._normalize_range(start, end)
        entries = self._entries(room_id, start_day, end_day)

        nights = nights_between(start_day, end_day)
        count = self._claim(
            room_id,
            [night for night in nights if night in entries],
            {"is_available": False, "booking_id": None, "block_reason": reason},
        )
        self._expire(entries)

        for night in nights:
            if night not in entries:
                self.db.add(RoomDate(room_id=room_id, date=night, is_available=False, block_reason=reason))
                count += 1

        try:
            self.db.flush()
        except IntegrityError as e:
            if is_room_date_collision(e):
                raise DateConflictError(room_id, nights) from e
            raise
        logger.info(f"Blocked {count} nights for room {room_id}, reason: {reason}")
        return count

    def unblock_dates(self, room_id: int, start: DateLike, end: DateLike) -> int:
        """Lift admin blocks in [start, end). Booked nights are untouched."""
        start_day, end_day = self._normalize_range(start, end)
        entries = self.db.query(RoomDate).filter(
            RoomDate.room_id == room_id,
            RoomDate.date >= start_day,
            RoomDate.date < end_day,
            RoomDate.is_available.is_(False),
            RoomDate.booking_id.is_(None)
        ).all()

        for entry in entries:
            entry.is_available = True
            entry.block_reason = None

        if entries:
            self.db.flush()
        logger.info(f"Unblocked {len(entries)} nights for room {room_id}")
        return len(entries)
