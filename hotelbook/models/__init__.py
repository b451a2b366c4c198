# Models package
from .user import User
from .room import Room, RoomType
from .booking import Booking, BookingStatus, TERMINAL_STATUSES, ACTIVE_STATUSES
from .payment import Payment, PaymentStatus
from .room_date import RoomDate

__all__ = [
    "User",
    "Room", "RoomType",
    "Booking", "BookingStatus", "TERMINAL_STATUSES", "ACTIVE_STATUSES",
    "Payment", "PaymentStatus",
    "RoomDate",
]
