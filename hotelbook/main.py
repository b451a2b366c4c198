from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
from slowapi.errors import RateLimitExceeded
import logging
import uuid

from .config import settings
from .database import create_tables, SessionLocal
from .exceptions import BookingError
from .seed import ensure_admin, seed_demo_rooms
from .utils.logging_config import setup_logging, set_request_context, clear_request_context
from .utils.rate_limiter import limiter
from .routers import auth, rooms, bookings, payments

setup_logging(level=settings.log_level, json_format=settings.log_json or settings.is_production)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info(f"Starting hotelbook ({settings.environment})")

    create_tables()

    db = SessionLocal()
    try:
        ensure_admin(db)
        if settings.seed_demo_data:
            seed_demo_rooms(db)
    finally:
        db.close()

    logger.info("Database ready")
    yield
    logger.info("Shutting down hotelbook")


app = FastAPI(
    title="Hotelbook API",
    description="Room availability and booking backend",
    version="1.0.0",
    lifespan=lifespan
)

app.state.limiter = limiter


# ================================
# CORS MIDDLEWARE - MUST BE FIRST!
# ================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4())[:8])
        request.state.request_id = request_id
        set_request_context(request_id)
        try:
            response = await call_next(request)
        finally:
            clear_request_context()
        response.headers["X-Request-ID"] = request_id
        return response


app.add_middleware(RequestIdMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"detail": "Too many requests, try again later", "code": "rate_limited"}
    )


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(auth.router)
app.include_router(rooms.router)
app.include_router(rooms.admin_router)
app.include_router(bookings.router)
app.include_router(bookings.my_router)
app.include_router(bookings.admin_router)
app.include_router(payments.router)


@app.get("/")
async def root():
    return {"name": "hotelbook", "version": "1.0.0", "docs": "/docs"}


@app.get("/health")
async def health():
    return {"status": "healthy"}
