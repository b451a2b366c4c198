"""Startup data: the admin account and, on request, a few demo rooms."""

import logging
from decimal import Decimal
from sqlalchemy.orm import Session

from .config import settings
from .models.room import Room, RoomType
from .models.user import User
from .utils.security import hash_password

logger = logging.getLogger(__name__)

DEMO_ROOMS = [
    {
        "name": "Deluxe King Room",
        "description": "Spacious room with king-sized bed, workspace, and city views.",
        "room_type": RoomType.DELUXE.value,
        "price": Decimal("189"),
        "capacity": 2,
        "amenities": ["wifi", "breakfast", "ac"],
        "rating": 4.8,
    },
    {
        "name": "Executive Suite",
        "description": "Suite with separate living area and complimentary minibar.",
        "room_type": RoomType.SUITE.value,
        "price": Decimal("279"),
        "capacity": 4,
        "amenities": ["wifi", "breakfast", "pool", "minibar"],
        "rating": 4.9,
    },
    {
        "name": "Standard Double Room",
        "description": "Two double beds, ideal for families or small groups.",
        "room_type": RoomType.STANDARD.value,
        "price": Decimal("129"),
        "capacity": 3,
        "amenities": ["wifi", "tv"],
        "rating": 4.2,
    },
    {
        "name": "Ocean View Room",
        "description": "Panoramic ocean views, balcony and premium bedding.",
        "room_type": RoomType.DELUXE.value,
        "price": Decimal("239"),
        "capacity": 2,
        "amenities": ["wifi", "breakfast", "ocean-view", "balcony"],
        "rating": 4.7,
    },
]


def ensure_admin(db: Session) -> User:
    admin = db.query(User).filter(User.username == settings.admin_username).first()
    if admin:
        return admin

    admin = User(
        username=settings.admin_username,
        email=settings.admin_email,
        hashed_password=hash_password(settings.admin_password),
        name="Administrator",
        is_admin=True,
    )
    db.add(admin)
    db.commit()
    logger.info(f"Created admin user '{admin.username}'")
    return admin


def seed_demo_rooms(db: Session) -> int:
    if db.query(Room).first() is not None:
        logger.info("Rooms already present, skipping demo seed")
        return 0

    for data in DEMO_ROOMS:
        db.add(Room(**data))
    db.commit()
    logger.info(f"Seeded {len(DEMO_ROOMS)} demo rooms")
    return len(DEMO_ROOMS)
