from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from datetime import date
from decimal import Decimal
from enum import Enum


class RoomType(str, Enum):
    STANDARD = "standard"
    DELUXE = "deluxe"
    SUITE = "suite"
    EXECUTIVE = "executive"


class RoomBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field("", max_length=5000)
    room_type: RoomType = RoomType.STANDARD
    price: Decimal = Field(..., gt=0, description="Nightly price")
    image_url: str = Field("", max_length=500)
    capacity: int = Field(..., ge=1, le=50)
    amenities: List[str] = Field(default_factory=list)
    is_available: bool = True
    rating: Optional[float] = Field(None, ge=0, le=5)


class RoomCreate(RoomBase):
    pass


class RoomUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=5000)
    room_type: Optional[RoomType] = None
    price: Optional[Decimal] = Field(None, gt=0)
    image_url: Optional[str] = Field(None, max_length=500)
    capacity: Optional[int] = Field(None, ge=1, le=50)
    amenities: Optional[List[str]] = None
    is_available: Optional[bool] = None
    rating: Optional[float] = Field(None, ge=0, le=5)


class RoomAvailabilityUpdate(BaseModel):
    is_available: bool


class RoomResponse(RoomBase):
    id: int

    class Config:
        from_attributes = True


class RoomSearch(BaseModel):
    check_in_date: date
    check_out_date: date
    guests: int = Field(..., ge=1)
    room_type: Optional[RoomType] = None
    min_price: Optional[Decimal] = Field(None, ge=0)
    max_price: Optional[Decimal] = Field(None, ge=0)
    amenities: Optional[List[str]] = None

    @model_validator(mode='after')
    def validate_ranges(self):
        if self.check_out_date <= self.check_in_date:
            raise ValueError('Check-out date must be after check-in date')
        if self.min_price is not None and self.max_price is not None and self.min_price > self.max_price:
            raise ValueError('min_price cannot exceed max_price')
        return self


class DateBlockRequest(BaseModel):
    start_date: date
    end_date: date
    reason: str = Field("manual_block", max_length=100)

    @field_validator('reason', mode='before')
    @classmethod
    def strip_reason(cls, v):
        return v.strip() if isinstance(v, str) else v

    @model_validator(mode='after')
    def validate_range(self):
        if self.end_date <= self.start_date:
            raise ValueError('end_date must be after start_date')
        return self


class DateBlockResult(BaseModel):
    room_id: int
    count: int


class PriceQuoteResponse(BaseModel):
    room_id: int
    nights: int
    nightly_price: Decimal
    room_total: Decimal
    cleaning_fee: Decimal
    service_fee: Decimal
    taxes: Decimal
    total: Decimal
