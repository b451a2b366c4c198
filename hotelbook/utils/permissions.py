from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Principal:
    """The authenticated caller of a request"""
    user_id: int
    username: str
    is_admin: bool = False


def is_admin(principal: Optional[Principal]) -> bool:
    return principal is not None and principal.is_admin


def is_owner_or_admin(principal: Optional[Principal], booking) -> bool:
    """
    Whether the caller may see or act on a booking.

    Guest bookings (no user) are reachable by reference number only, so
    for them just admins pass.
    """
    if principal is None:
        return False
    if principal.is_admin:
        return True
    return booking.user_id is not None and booking.user_id == principal.user_id
