"""
Rate Limiter Configuration

In-memory slowapi limiter keyed by the real client IP.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request


def get_real_client_ip(request: Request) -> str:
    """Get real client IP behind a reverse proxy"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # First IP is the original client
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


limiter = Limiter(key_func=get_real_client_ip, default_limits=["200/minute"])


RATE_LIMITS = {
    "login": "5/minute",
    "booking_create": "30/minute",
    "booking_cancel": "20/minute",
    "payment_create": "30/minute",
    "search": "60/minute",
}


def get_rate_limit(operation: str) -> str:
    """Get rate limit for a specific operation."""
    return RATE_LIMITS.get(operation, "100/minute")
