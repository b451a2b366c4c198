from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session
from typing import List, Optional

from ..database import get_db
from ..schemas.payment import PaymentCreate, PaymentResponse
from ..services.booking_service import BookingService
from ..utils.dependencies import get_optional_principal, get_current_principal
from ..utils.permissions import Principal
from ..utils.rate_limiter import limiter, get_rate_limit

router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("payment_create"))
def create_payment(
    request: Request,
    payment_data: PaymentCreate,
    db: Session = Depends(get_db),
    principal: Optional[Principal] = Depends(get_optional_principal)
):
    """
    Record a simulated payment. A completed payment confirms a pending
    booking; no real gateway is contacted.
    """
    booking, payment = BookingService(db).confirm_payment(
        booking_id=payment_data.booking_id,
        amount=payment_data.amount,
        payment_method=payment_data.payment_method,
        status=payment_data.status.value,
        transaction_id=payment_data.transaction_id,
        principal=principal,
    )
    return payment


@router.get("/booking/{booking_id}", response_model=List[PaymentResponse])
def booking_payments(
    booking_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    return BookingService(db).list_payments(booking_id, principal)
