from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentCreate(BaseModel):
    booking_id: int = Field(..., gt=0)
    amount: Decimal = Field(..., gt=0)
    payment_method: str = Field("credit_card", min_length=1, max_length=50)
    # Simulated gateway: succeeds unless told otherwise
    status: PaymentStatus = PaymentStatus.COMPLETED
    transaction_id: Optional[str] = Field(None, max_length=100)


class PaymentResponse(BaseModel):
    id: int
    booking_id: int
    amount: Decimal
    status: PaymentStatus
    payment_method: str
    transaction_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
