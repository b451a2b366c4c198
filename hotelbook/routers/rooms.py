from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session
from typing import List
from datetime import date

from ..database import get_db
from ..schemas.booking import AvailabilityResponse, DateAvailabilityResponse
from ..schemas.room import (
    RoomCreate, RoomUpdate, RoomResponse, RoomSearch, RoomAvailabilityUpdate,
    DateBlockRequest, DateBlockResult, PriceQuoteResponse
)
from ..services.booking_service import BookingService
from ..services.room_service import RoomService
from ..utils.dependencies import require_admin
from ..utils.permissions import Principal
from ..utils.rate_limiter import limiter, get_rate_limit

router = APIRouter(prefix="/api/rooms", tags=["rooms"])
admin_router = APIRouter(prefix="/api/admin/rooms", tags=["admin"])


@router.get("", response_model=List[RoomResponse])
def list_rooms(db: Session = Depends(get_db)):
    return RoomService(db).list_rooms()


@router.post("/search", response_model=List[RoomResponse])
@limiter.limit(get_rate_limit("search"))
def search_rooms(request: Request, params: RoomSearch, db: Session = Depends(get_db)):
    """Rooms that fit the party and are free for every night of the stay"""
    return RoomService(db).search_rooms(params)


@router.get("/{room_id}", response_model=RoomResponse)
def get_room(room_id: int, db: Session = Depends(get_db)):
    return RoomService(db).get_room(room_id)


@router.get("/{room_id}/availability", response_model=AvailabilityResponse)
def room_availability(
    room_id: int,
    start_date: date = Query(..., description="First night (inclusive)"),
    end_date: date = Query(..., description="Checkout day (exclusive)"),
    db: Session = Depends(get_db)
):
    """Whether the room can be booked for [start_date, end_date), with per-night detail"""
    result = BookingService(db).check_availability(room_id, start_date, end_date)
    return AvailabilityResponse(
        room_id=result.room_id,
        room_is_available=result.room_is_available,
        is_available=result.is_available,
        dates=[DateAvailabilityResponse(**d.to_dict()) for d in result.dates],
    )


@router.get("/{room_id}/quote", response_model=PriceQuoteResponse)
def price_quote(
    room_id: int,
    check_in_date: date = Query(...),
    check_out_date: date = Query(...),
    db: Session = Depends(get_db)
):
    quote = RoomService(db).quote(room_id, check_in_date, check_out_date)
    return PriceQuoteResponse(
        room_id=room_id,
        nights=quote.nights,
        nightly_price=quote.nightly_price,
        room_total=quote.room_total,
        cleaning_fee=quote.cleaning_fee,
        service_fee=quote.service_fee,
        taxes=quote.taxes,
        total=quote.total,
    )


# ================================
# Admin
# ================================

@admin_router.post("", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
def create_room(
    room_data: RoomCreate,
    db: Session = Depends(get_db),
    admin: Principal = Depends(require_admin)
):
    return RoomService(db).create_room(room_data)


@admin_router.put("/{room_id}", response_model=RoomResponse)
def update_room(
    room_id: int,
    room_data: RoomUpdate,
    db: Session = Depends(get_db),
    admin: Principal = Depends(require_admin)
):
    return RoomService(db).update_room(room_id, room_data)


@admin_router.delete("/{room_id}")
def delete_room(
    room_id: int,
    db: Session = Depends(get_db),
    admin: Principal = Depends(require_admin)
):
    RoomService(db).delete_room(room_id)
    return {"success": True}


@admin_router.patch("/{room_id}/availability", response_model=RoomResponse)
def set_room_availability(
    room_id: int,
    payload: RoomAvailabilityUpdate,
    db: Session = Depends(get_db),
    admin: Principal = Depends(require_admin)
):
    """Take a room out of service (or back in) regardless of its calendar"""
    return RoomService(db).set_availability(room_id, payload.is_available)


@admin_router.post("/{room_id}/block-dates", response_model=DateBlockResult)
def block_dates(
    room_id: int,
    payload: DateBlockRequest,
    db: Session = Depends(get_db),
    admin: Principal = Depends(require_admin)
):
    count = RoomService(db).block_dates(room_id, payload.start_date, payload.end_date, payload.reason)
    return DateBlockResult(room_id=room_id, count=count)


@admin_router.post("/{room_id}/unblock-dates", response_model=DateBlockResult)
def unblock_dates(
    room_id: int,
    payload: DateBlockRequest,
    db: Session = Depends(get_db),
    admin: Principal = Depends(require_admin)
):
    count = RoomService(db).unblock_dates(room_id, payload.start_date, payload.end_date)
    return DateBlockResult(room_id=room_id, count=count)
