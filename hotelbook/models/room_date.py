"""
Room Date Model

One row per (room, calendar day) that has ever been reserved or blocked.
A missing row means the day is available.
"""

from sqlalchemy import Column, Integer, Date, Boolean, Numeric, String, ForeignKey, Index
from sqlalchemy.orm import relationship
from ..database import Base


class RoomDate(Base):
    """
    Ledger entry for a single room night.

    The composite primary key allows one owner per (room, date); a second
    reservation of the same night fails at the database.
    """
    __tablename__ = "room_dates"

    room_id = Column(Integer, ForeignKey("rooms.id", ondelete="CASCADE"), primary_key=True)
    date = Column(Date, primary_key=True)

    is_available = Column(Boolean, default=True, nullable=False)
    price = Column(Numeric(10, 2), nullable=True)  # per-night override

    # Owner when reserved by a booking; NULL for free or admin-blocked days
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True)
    block_reason = Column(String(100), nullable=True)

    room = relationship("Room", back_populates="calendar_entries")
    booking = relationship("Booking")

    __table_args__ = (
        Index("ix_room_dates_booking", "booking_id"),
        Index("ix_room_dates_unavailable", "room_id", "is_available", "date"),
    )

    @property
    def is_blocked(self) -> bool:
        return not self.is_available and self.booking_id is None

    def __repr__(self):
        if self.is_available:
            state = "available"
        elif self.booking_id is not None:
            state = f"booked:{self.booking_id}"
        else:
            state = "blocked"
        return f"<RoomDate {self.room_id} {self.date} {state}>"
