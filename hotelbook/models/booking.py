import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, Date, Numeric, Text, ForeignKey, DateTime, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from ..database import Base


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# Bookings holding a reservation in the ledger
ACTIVE_STATUSES = frozenset({BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value})

# No cancellation allowed from these
TERMINAL_STATUSES = frozenset({BookingStatus.CANCELLED.value, BookingStatus.COMPLETED.value})


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Plain column: a deleted room leaves its bookings behind, orphaned by id
    room_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    check_in_date = Column(Date, nullable=False)
    check_out_date = Column(Date, nullable=False)  # exclusive
    guest_count = Column(Integer, nullable=False)

    guest_name = Column(String(100), nullable=False)
    guest_email = Column(String(255), nullable=False)
    guest_phone = Column(String(30), nullable=False)
    special_requests = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)
    total_amount = Column(Numeric(10, 2), nullable=False)
    reference_number = Column(String(32), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User")
    payments = relationship("Payment", back_populates="booking", order_by="Payment.created_at.desc()")

    __table_args__ = (
        UniqueConstraint("reference_number", name="uq_bookings_reference_number"),
        Index("ix_bookings_room_dates", "room_id", "check_in_date", "check_out_date"),
        Index("ix_bookings_user", "user_id"),
    )

    @property
    def nights(self) -> int:
        return (self.check_out_date - self.check_in_date).days

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def __repr__(self):
        return f"<Booking {self.reference_number} room={self.room_id} {self.status}>"
