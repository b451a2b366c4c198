from pydantic import BaseModel, Field
from typing import Optional


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1, max_length=128)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    name: Optional[str] = None
    phone: Optional[str] = None
    is_admin: bool = False

    class Config:
        from_attributes = True


class SessionResponse(BaseModel):
    authenticated: bool
    user: Optional[UserResponse] = None
