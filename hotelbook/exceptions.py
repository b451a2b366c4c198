"""
Domain errors raised by the booking services.

Each error carries the HTTP status and a stable machine-readable code; the
app registers a single handler that turns them into JSON responses, so
routers never translate domain failures themselves.
"""

from typing import Optional


class BookingError(Exception):
    """Base class for booking/ledger failures"""

    status_code = 400
    code = "booking_error"

    def __init__(self, message: str, *, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"detail": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class BookingValidationError(BookingError):
    """Malformed input: bad dates, guest count, amounts"""

    status_code = 400
    code = "validation_error"


class NotFoundError(BookingError):
    status_code = 404
    code = "not_found"

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} not found", details={"entity": entity, "id": entity_id})
        self.entity = entity
        self.entity_id = entity_id


class PermissionDeniedError(BookingError):
    status_code = 403
    code = "forbidden"


class RoomUnavailableError(BookingError):
    """The room cannot be booked for the requested dates; pick other dates"""

    status_code = 409
    code = "room_unavailable"


class DateConflictError(RoomUnavailableError):
    """A reservation lost the race for one or more room nights"""

    code = "date_conflict"

    def __init__(self, room_id: int, dates=None):
        dates = sorted(dates or [])
        super().__init__(
            "Room is no longer available for the selected dates",
            details={"room_id": room_id, "dates": [d.isoformat() for d in dates]},
        )
        self.room_id = room_id
        self.dates = dates


class IllegalTransitionError(BookingError):
    status_code = 409
    code = "illegal_transition"

    def __init__(self, booking_id: int, current: str, target: str):
        super().__init__(
            f"Cannot move booking from '{current}' to '{target}'",
            details={"booking_id": booking_id, "current": current, "target": target},
        )
        self.current = current
        self.target = target


class ConsistencyError(BookingError):
    """Storage failed in the middle of a booking + ledger unit; the unit was rolled back"""

    status_code = 500
    code = "consistency_error"
