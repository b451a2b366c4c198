"""
Shared fixtures: every test gets its own SQLite file database.
"""

import os
import sys
from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from hotelbook.database import Base, build_engine
from hotelbook import models  # noqa: F401
from hotelbook.models.room import Room
from hotelbook.models.user import User
from hotelbook.utils.security import hash_password


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_room(db):
    def _make_room(capacity=2, price="100", is_available=True, name="Room", **extra):
        room = Room(
            name=name,
            description=extra.pop("description", "Test room"),
            room_type=extra.pop("room_type", "standard"),
            price=Decimal(str(price)),
            image_url="",
            capacity=capacity,
            amenities=extra.pop("amenities", ["wifi"]),
            is_available=is_available,
            **extra
        )
        db.add(room)
        db.commit()
        db.refresh(room)
        return room
    return _make_room


@pytest.fixture
def room(make_room):
    """Room #1: capacity 2, $100/night"""
    return make_room(capacity=2, price="100", name="Deluxe King")


@pytest.fixture
def make_user(db):
    def _make_user(username="guest", is_admin=False, password="Secret123!"):
        user = User(
            username=username,
            email=f"{username}@hotelmail.com",
            hashed_password=hash_password(password),
            name=username.title(),
            is_admin=is_admin,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make_user
