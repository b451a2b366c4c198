from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
from typing import Optional
import logging

from ..database import get_db
from ..models.user import User
from ..schemas.user import LoginRequest, Token, SessionResponse, UserResponse
from ..utils.dependencies import get_optional_principal
from ..utils.permissions import Principal
from ..utils.rate_limiter import limiter, get_rate_limit
from ..utils.security import verify_password, create_access_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=Token)
@limiter.limit(get_rate_limit("login"))
def login(
    request: Request,
    credentials: LoginRequest,
    db: Session = Depends(get_db)
):
    """Exchange username/password for a bearer token"""
    user = db.query(User).filter(User.username == credentials.username).first()
    if not user or not verify_password(credentials.password, user.hashed_password):
        logger.warning(f"Failed login for {credentials.username}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = create_access_token({"sub": str(user.id), "username": user.username, "is_admin": user.is_admin})
    logger.info(f"User logged in: {user.username}")
    return Token(access_token=token)


@router.get("/session", response_model=SessionResponse)
def session(
    principal: Optional[Principal] = Depends(get_optional_principal),
    db: Session = Depends(get_db)
):
    if principal is None:
        return SessionResponse(authenticated=False)
    user = db.query(User).filter(User.id == principal.user_id).first()
    return SessionResponse(authenticated=True, user=UserResponse.model_validate(user))
