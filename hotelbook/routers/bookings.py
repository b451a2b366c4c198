from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from ..database import get_db
from ..schemas.booking import BookingCreate, BookingResponse, BookingStatus, BookingStatusUpdate
from ..services.booking_service import BookingService
from ..utils.dependencies import get_optional_principal, get_current_principal, require_admin
from ..utils.permissions import Principal
from ..utils.rate_limiter import limiter, get_rate_limit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bookings", tags=["bookings"])
my_router = APIRouter(prefix="/api/my-bookings", tags=["bookings"])
admin_router = APIRouter(prefix="/api/admin/bookings", tags=["admin"])


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("booking_create"))
def create_booking(
    request: Request,
    booking_data: BookingCreate,
    db: Session = Depends(get_db),
    principal: Optional[Principal] = Depends(get_optional_principal)
):
    """
    Place a booking (status pending) and hold its nights.

    Anonymous guests may book; a signed-in caller owns the booking.
    """
    return BookingService(db).create_booking(booking_data, principal)


@router.get("/reference/{reference_number}", response_model=BookingResponse)
def get_booking_by_reference(reference_number: str, db: Session = Depends(get_db)):
    return BookingService(db).get_by_reference(reference_number)


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    principal: Optional[Principal] = Depends(get_optional_principal)
):
    return BookingService(db).get_booking(booking_id, principal)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
@limiter.limit(get_rate_limit("booking_cancel"))
def cancel_booking(
    request: Request,
    booking_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Cancel a pending or confirmed booking; its nights become free again"""
    return BookingService(db).cancel_booking(booking_id, principal)


@my_router.get("", response_model=List[BookingResponse])
def my_bookings(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    return BookingService(db).list_for_user(principal.user_id)


# ================================
# Admin
# ================================

@admin_router.get("", response_model=List[BookingResponse])
def list_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    room_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    admin: Principal = Depends(require_admin)
):
    return BookingService(db).list_all(
        status=status_filter.value if status_filter else None,
        room_id=room_id,
    )


@admin_router.patch("/{booking_id}/status", response_model=BookingResponse)
def set_booking_status(
    booking_id: int,
    payload: BookingStatusUpdate,
    db: Session = Depends(get_db),
    admin: Principal = Depends(require_admin)
):
    """Override a booking's status; only cancellation frees its nights"""
    logger.info(f"Admin {admin.username} sets booking {booking_id} to {payload.status.value}")
    return BookingService(db).set_status(booking_id, payload.status.value)
