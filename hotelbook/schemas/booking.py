import re
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional, List
from datetime import datetime, date
from decimal import Decimal
from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


def _strip_markup(v):
    if isinstance(v, str):
        v = re.sub(r'<script[^>]*>.*?</script>', '', v, flags=re.IGNORECASE | re.DOTALL)
        v = re.sub(r'on\w+\s*=', '', v, flags=re.IGNORECASE)
        v = v.strip()
    return v


class BookingCreate(BaseModel):
    room_id: int = Field(..., gt=0)
    check_in_date: date
    check_out_date: date
    guest_count: int = Field(..., ge=1, le=50)
    guest_name: str = Field(..., min_length=2, max_length=100)
    guest_email: EmailStr
    guest_phone: str = Field(..., min_length=5, max_length=30)
    special_requests: Optional[str] = Field(None, max_length=2000)
    # Honoured for admins only; everyone else is charged the quoted price
    total_amount: Optional[Decimal] = Field(None, ge=0)

    @field_validator('check_in_date', 'check_out_date', mode='before')
    @classmethod
    def drop_time_component(cls, v):
        """Accept full timestamps but keep only the calendar day"""
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str) and len(v) > 10 and v[10] in "T ":
            return v[:10]
        return v

    @field_validator('guest_name', 'special_requests', mode='before')
    @classmethod
    def sanitize_text_fields(cls, v):
        return _strip_markup(v)

    @model_validator(mode='after')
    def validate_dates(self):
        if self.check_out_date <= self.check_in_date:
            raise ValueError('Check-out date must be after check-in date')
        return self


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class BookingResponse(BaseModel):
    id: int
    room_id: int
    user_id: Optional[int] = None
    check_in_date: date
    check_out_date: date
    guest_count: int
    guest_name: str
    guest_email: str
    guest_phone: str
    special_requests: Optional[str] = None
    status: BookingStatus
    total_amount: Decimal
    reference_number: str
    nights: int
    created_at: datetime

    class Config:
        from_attributes = True


class DateAvailabilityResponse(BaseModel):
    date: date
    is_available: bool
    booking_id: Optional[int] = None
    is_blocked: bool = False
    block_reason: Optional[str] = None


class AvailabilityResponse(BaseModel):
    room_id: int
    room_is_available: bool
    is_available: bool
    dates: List[DateAvailabilityResponse]
