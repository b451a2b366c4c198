"""
Booking Lifecycle

Owns booking state transitions and keeps the availability ledger in step:

    pending --payment--> confirmed
    pending | confirmed --cancel--> cancelled   (releases nights)
    any --admin--> completed                    (no ledger effect)

Every operation that touches both a booking row and the ledger commits
them in a single transaction.
"""

import secrets
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..config import settings
from ..exceptions import (
    BookingError, BookingValidationError, ConsistencyError, DateConflictError,
    IllegalTransitionError, NotFoundError, PermissionDeniedError, RoomUnavailableError,
)
from ..models.booking import Booking, BookingStatus, ACTIVE_STATUSES
from ..models.payment import Payment, PaymentStatus
from ..models.room import Room
from ..schemas.booking import BookingCreate
from ..utils.dates import DateLike, to_day
from ..utils.db_helpers import acquire_row_lock, is_reference_collision
from ..utils.locks import room_locks
from ..utils.logging_config import get_logger
from ..utils.permissions import Principal, is_admin, is_owner_or_admin
from ..utils.reference import generate_reference_number
from .ledger import AvailabilityLedger, DateAvailability
from .pricing import quote_stay

logger = get_logger(__name__)


@dataclass
class AvailabilityResult:
    room_id: int
    room_is_available: bool
    is_available: bool
    dates: List[DateAvailability]


def validate_booking_dates(
    check_in: date,
    check_out: date,
    allow_past_dates: bool = False,
    max_advance_days: int = 730,
    max_duration_nights: int = 365,
    today: Optional[date] = None
) -> Tuple[bool, Optional[str]]:
    """
    Check a requested stay.

    Returns: (is_valid, error_message)
    """
    today = today or date.today()

    if not check_in or not check_out:
        return False, "Check-in and check-out dates are required"

    if check_out <= check_in:
        return False, "Check-out date must be after check-in date"

    if not allow_past_dates and check_in < today:
        return False, f"Check-in date {check_in} is in the past"

    if check_in > today + timedelta(days=max_advance_days):
        return False, f"Bookings open at most {max_advance_days} days in advance"

    nights = (check_out - check_in).days
    if nights > max_duration_nights:
        return False, f"Stay of {nights} nights exceeds the maximum of {max_duration_nights}"

    return True, None


class BookingService:
    """
    Booking lifecycle over a SQLAlchemy session.

    The session is injected so tests and request handlers each bring their
    own; the service commits or rolls back the units it owns.
    """

    def __init__(self, db: Session, allow_past_dates: Optional[bool] = None):
        self.db = db
        self.ledger = AvailabilityLedger(db)
        self.allow_past_dates = settings.allow_past_check_in if allow_past_dates is None else allow_past_dates

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_room(self, room_id: int) -> Room:
        room = self.db.query(Room).filter(Room.id == room_id).first()
        if not room:
            raise NotFoundError("Room", room_id)
        return room

    def _lock_booking(self, booking_id: int) -> Booking:
        booking = acquire_row_lock(self.db, Booking, Booking.id == booking_id)
        if not booking:
            raise NotFoundError("Booking", booking_id)
        return booking

    def _commit(self, action: str, booking_id=None):
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"{action} failed for booking {booking_id}: {e}", exc_info=True)
            raise ConsistencyError(f"Could not {action}; no changes were saved") from e

    def _new_reference(self) -> str:
        """Pick a reference number not already taken; the unique constraint backs this up."""
        for _ in range(settings.reference_max_attempts):
            reference = generate_reference_number()
            taken = self.db.query(Booking.id).filter(Booking.reference_number == reference).first()
            if not taken:
                return reference
            logger.warning(f"Reference number collision on {reference}, regenerating")
        raise ConsistencyError("Could not allocate a unique reference number")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_booking(self, booking_id: int, principal: Optional[Principal] = None) -> Booking:
        """
        Load a booking. When a principal is given and the booking belongs to
        a user, only that user or an admin may see it.
        """
        booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
        if not booking:
            raise NotFoundError("Booking", booking_id)
        if booking.user_id is not None and not is_owner_or_admin(principal, booking):
            raise PermissionDeniedError("Not allowed to view this booking")
        return booking

    def get_by_reference(self, reference_number: str) -> Booking:
        booking = self.db.query(Booking).filter(
            Booking.reference_number == reference_number.strip().upper()
        ).first()
        if not booking:
            raise NotFoundError("Booking", reference_number)
        return booking

    def list_for_user(self, user_id: int) -> List[Booking]:
        return self.db.query(Booking).filter(
            Booking.user_id == user_id
        ).order_by(Booking.created_at.desc(), Booking.id.desc()).all()

    def list_all(self, status: Optional[str] = None, room_id: Optional[int] = None) -> List[Booking]:
        query = self.db.query(Booking)
        if status:
            query = query.filter(Booking.status == status)
        if room_id:
            query = query.filter(Booking.room_id == room_id)
        return query.order_by(Booking.created_at.desc(), Booking.id.desc()).all()

    def list_payments(self, booking_id: int, principal: Optional[Principal] = None) -> List[Payment]:
        """Payments of a booking, newest first; owner or admin only when a principal is given."""
        booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
        if not booking:
            raise NotFoundError("Booking", booking_id)
        if principal is not None and not is_owner_or_admin(principal, booking):
            raise PermissionDeniedError("Not allowed to view payments for this booking")
        return self.db.query(Payment).filter(
            Payment.booking_id == booking.id
        ).order_by(Payment.created_at.desc(), Payment.id.desc()).all()

    def check_availability(self, room_id: int, start: DateLike, end: DateLike) -> AvailabilityResult:
        """
        Availability of a room over [start, end).

        A room taken out of service is unavailable whatever its calendar says;
        the per-night detail still reflects the ledger.
        """
        room = self._get_room(room_id)
        dates = self.ledger.get_range(room.id, start, end)
        calendar_free = all(d.is_available for d in dates)
        return AvailabilityResult(
            room_id=room.id,
            room_is_available=room.is_available,
            is_available=room.is_available and calendar_free,
            dates=dates,
        )

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_booking(self, data: BookingCreate, principal: Optional[Principal] = None) -> Booking:
        """
        Validate, check availability, then insert the booking (pending) and
        reserve its nights in one transaction.

        A reservation that loses a race re-checks availability once before
        the request is reported as unavailable.
        """
        check_in = to_day(data.check_in_date)
        check_out = to_day(data.check_out_date)

        is_valid, error_msg = validate_booking_dates(
            check_in,
            check_out,
            allow_past_dates=self.allow_past_dates,
            max_advance_days=settings.max_advance_days,
            max_duration_nights=settings.max_stay_nights,
        )
        if not is_valid:
            raise BookingValidationError(error_msg)

        if data.guest_count < 1:
            raise BookingValidationError("Guest count must be at least 1")

        room = self._get_room(data.room_id)
        room_id = room.id

        if data.guest_count > room.capacity:
            raise BookingValidationError(
                f"Room {room_id} sleeps at most {room.capacity} guests",
                details={"capacity": room.capacity, "guest_count": data.guest_count},
            )

        if not room.is_available:
            raise RoomUnavailableError("Room is not accepting bookings")

        # Only staff may price a stay by hand; everyone else gets the quote
        if data.total_amount is not None and is_admin(principal):
            total_amount = Decimal(str(data.total_amount))
        else:
            if data.total_amount is not None:
                logger.info(f"Ignoring client-supplied total for room {room_id}")
            total_amount = quote_stay(room.price, (check_out - check_in).days).total

        attempts = max(settings.booking_conflict_retries, 0) + 1
        with room_locks.hold(room_id):
            for attempt in range(attempts):
                try:
                    return self._create_once(room_id, data, check_in, check_out, total_amount, principal)
                except DateConflictError as e:
                    self.db.rollback()
                    if attempt + 1 >= attempts:
                        raise RoomUnavailableError(
                            "Room is not available for the selected dates",
                            details=e.details,
                        ) from e
                    logger.info(f"Reservation conflict on room {room_id}, re-checking availability")
                except BookingError:
                    self.db.rollback()
                    raise

    def _create_once(
        self,
        room_id: int,
        data: BookingCreate,
        check_in: date,
        check_out: date,
        total_amount: Decimal,
        principal: Optional[Principal]
    ) -> Booking:
        # Serializes creators for this room across processes on PostgreSQL
        room = acquire_row_lock(self.db, Room, Room.id == room_id)
        if room is None:
            raise NotFoundError("Room", room_id)
        if not room.is_available:
            raise RoomUnavailableError("Room is not accepting bookings")

        if not self.ledger.is_range_available(room_id, check_in, check_out):
            raise RoomUnavailableError(
                "Room is not available for the selected dates",
                details={"room_id": room_id, "check_in": check_in.isoformat(), "check_out": check_out.isoformat()},
            )

        booking = Booking(
            room_id=room_id,
            user_id=principal.user_id if principal else None,
            check_in_date=check_in,
            check_out_date=check_out,
            guest_count=data.guest_count,
            guest_name=data.guest_name,
            guest_email=str(data.guest_email),
            guest_phone=data.guest_phone,
            special_requests=data.special_requests,
            status=BookingStatus.PENDING.value,
            total_amount=total_amount,
            reference_number=self._new_reference(),
        )

        try:
            self.db.add(booking)
            self.db.flush()
            self.ledger.reserve_range(room_id, check_in, check_out, booking.id)
        except DateConflictError:
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            if isinstance(e, IntegrityError) and is_reference_collision(e):
                logger.warning(f"Reference number {booking.reference_number} was taken concurrently")
                raise ConsistencyError("Could not allocate a unique reference number; please retry") from e
            logger.error(f"Booking insert failed for room {room_id}: {e}", exc_info=True)
            raise ConsistencyError("Could not save the booking; no changes were saved") from e

        self._commit("create booking", booking.id)
        self.db.refresh(booking)

        logger.booking_created(booking.id, booking.reference_number, room_id, float(total_amount))
        return booking

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _cancel_locked(self, booking: Booking) -> Booking:
        old_status = booking.status
        booking.status = BookingStatus.CANCELLED.value
        try:
            self.ledger.release_range(booking.id)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise ConsistencyError("Could not release the booking's dates; booking unchanged") from e
        self._commit("cancel booking", booking.id)
        self.db.refresh(booking)
        logger.booking_status_changed(booking.id, old_status, booking.status)
        return booking

    def cancel_booking(self, booking_id: int, principal: Optional[Principal] = None) -> Booking:
        """
        Cancel a pending or confirmed booking and free its nights.

        Cancelled and completed bookings are rejected and the ledger is left
        as it was.
        """
        try:
            booking = self._lock_booking(booking_id)
            if principal is not None and not is_owner_or_admin(principal, booking):
                raise PermissionDeniedError("Not allowed to cancel this booking")
            if booking.is_terminal:
                raise IllegalTransitionError(booking.id, booking.status, BookingStatus.CANCELLED.value)
        except BookingError:
            self.db.rollback()
            raise

        return self._cancel_locked(booking)

    def confirm_payment(
        self,
        booking_id: int,
        amount,
        payment_method: str = "credit_card",
        status: str = PaymentStatus.COMPLETED.value,
        transaction_id: Optional[str] = None,
        principal: Optional[Principal] = None
    ) -> Tuple[Booking, Payment]:
        """
        Record a payment; a completed payment moves a pending booking to
        confirmed. Payments against cancelled or completed bookings are refused.
        """
        try:
            status = PaymentStatus(status).value
        except ValueError:
            raise BookingValidationError(f"Unknown payment status: {status}")
        amount = Decimal(str(amount))

        try:
            if amount <= 0:
                raise BookingValidationError("Payment amount must be positive")

            booking = self._lock_booking(booking_id)
            if booking.user_id is not None and principal is not None and not is_owner_or_admin(principal, booking):
                raise PermissionDeniedError("Not allowed to pay for this booking")
            if booking.is_terminal:
                raise IllegalTransitionError(booking.id, booking.status, BookingStatus.CONFIRMED.value)
        except BookingError:
            self.db.rollback()
            raise

        payment = Payment(
            booking_id=booking.id,
            amount=amount,
            status=status,
            payment_method=payment_method,
            transaction_id=transaction_id or f"TX{secrets.token_hex(8).upper()}",
        )
        self.db.add(payment)

        old_status = booking.status
        if status == PaymentStatus.COMPLETED.value and booking.status == BookingStatus.PENDING.value:
            booking.status = BookingStatus.CONFIRMED.value

        self._commit("record payment", booking.id)
        self.db.refresh(booking)
        self.db.refresh(payment)

        if booking.status != old_status:
            logger.booking_status_changed(booking.id, old_status, booking.status)
        return booking, payment

    def set_status(self, booking_id: int, new_status) -> Booking:
        """
        Administrative status override.

        Only cancellation releases nights. Reviving a cancelled booking to
        pending/confirmed takes its nights back and fails if they are gone.
        """
        try:
            new_status = BookingStatus(new_status).value
        except ValueError:
            raise BookingValidationError(f"Unknown booking status: {new_status}")

        try:
            booking = self._lock_booking(booking_id)
        except BookingError:
            self.db.rollback()
            raise

        old_status = booking.status
        if old_status == new_status:
            self.db.rollback()
            return booking

        if new_status == BookingStatus.CANCELLED.value:
            return self._cancel_locked(booking)

        if old_status == BookingStatus.CANCELLED.value and new_status in ACTIVE_STATUSES:
            # Same guard as create: the nights must not change hands until commit
            with room_locks.hold(booking.room_id):
                self._reinstate(booking)
                return self._apply_status(booking, old_status, new_status)

        return self._apply_status(booking, old_status, new_status)

    def _apply_status(self, booking: Booking, old_status: str, new_status: str) -> Booking:
        booking.status = new_status
        self._commit("update booking status", booking.id)
        self.db.refresh(booking)
        logger.booking_status_changed(booking.id, old_status, new_status)
        return booking

    def _reinstate(self, booking: Booking):
        try:
            room = acquire_row_lock(self.db, Room, Room.id == booking.room_id)
            if room is None:
                raise NotFoundError("Room", booking.room_id)
            self.ledger.reserve_range(booking.room_id, booking.check_in_date, booking.check_out_date, booking.id)
        except DateConflictError as e:
            self.db.rollback()
            raise RoomUnavailableError(
                "The booking's dates have been taken since it was cancelled",
                details=e.details,
            ) from e
        except BookingError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            raise ConsistencyError("Could not re-reserve the booking's dates") from e
