import enum
from sqlalchemy import Column, Integer, String, Text, Numeric, Boolean, Float, JSON
from sqlalchemy.orm import relationship
from ..database import Base


class RoomType(str, enum.Enum):
    STANDARD = "standard"
    DELUXE = "deluxe"
    SUITE = "suite"
    EXECUTIVE = "executive"


class Room(Base):
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    room_type = Column(String(20), nullable=False, default=RoomType.STANDARD.value)
    price = Column(Numeric(10, 2), nullable=False)  # nightly
    image_url = Column(String(500), nullable=False, default="")
    capacity = Column(Integer, nullable=False)
    amenities = Column(JSON, nullable=False, default=list)

    # Takes the room out of service regardless of the date calendar
    is_available = Column(Boolean, default=True, nullable=False)
    rating = Column(Float, nullable=True)

    calendar_entries = relationship(
        "RoomDate",
        back_populates="room",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<Room {self.id} {self.name}>"
