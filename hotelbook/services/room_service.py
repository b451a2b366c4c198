import logging
from typing import List, Optional

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from ..exceptions import BookingError, BookingValidationError, ConsistencyError, NotFoundError
from ..models.room import Room
from ..schemas.room import RoomCreate, RoomUpdate, RoomSearch
from ..utils.dates import DateLike, to_day
from ..utils.locks import room_locks
from .ledger import AvailabilityLedger
from .pricing import PriceQuote, quote_stay

logger = logging.getLogger(__name__)


class RoomService:
    """Room catalogue, search and admin calendar blocks"""

    def __init__(self, db: Session):
        self.db = db
        self.ledger = AvailabilityLedger(db)

    def _commit(self, action: str):
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"{action} failed: {e}", exc_info=True)
            raise ConsistencyError(f"Could not {action}") from e

    def get_room(self, room_id: int) -> Room:
        room = self.db.query(Room).filter(Room.id == room_id).first()
        if not room:
            raise NotFoundError("Room", room_id)
        return room

    def list_rooms(self) -> List[Room]:
        return self.db.query(Room).order_by(Room.id).all()

    def create_room(self, data: RoomCreate) -> Room:
        values = data.model_dump()
        values["room_type"] = data.room_type.value
        room = Room(**values)
        self.db.add(room)
        self._commit("create room")
        self.db.refresh(room)
        logger.info(f"Room created: {room.id} {room.name}")
        return room

    def update_room(self, room_id: int, data: RoomUpdate) -> Room:
        room = self.get_room(room_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            if field == "room_type" and value is not None:
                value = value.value
            setattr(room, field, value)
        self._commit("update room")
        self.db.refresh(room)
        return room

    def delete_room(self, room_id: int) -> None:
        """Remove a room and its calendar. Its bookings stay, keyed by the old id."""
        room = self.get_room(room_id)
        self.db.delete(room)
        self._commit("delete room")
        logger.info(f"Room deleted: {room_id}")

    def set_availability(self, room_id: int, is_available: bool) -> Room:
        """Put a room in or out of service; the date calendar is untouched."""
        room = self.get_room(room_id)
        room.is_available = is_available
        self._commit("update room availability")
        self.db.refresh(room)
        logger.info(f"Room {room_id} global availability set to {is_available}")
        return room

    def search_rooms(self, params: RoomSearch) -> List[Room]:
        """
        Rooms in service that fit the party and filters and have every night
        in [check_in, check_out) free.
        """
        query = self.db.query(Room).filter(
            Room.is_available.is_(True),
            Room.capacity >= params.guests
        )
        if params.room_type:
            query = query.filter(Room.room_type == params.room_type.value)
        if params.min_price is not None:
            query = query.filter(Room.price >= params.min_price)
        if params.max_price is not None:
            query = query.filter(Room.price <= params.max_price)

        taken = self.ledger.unavailable_room_ids(params.check_in_date, params.check_out_date)
        rooms = [room for room in query.order_by(Room.price, Room.id).all() if room.id not in taken]

        if params.amenities:
            wanted = {a.strip().lower() for a in params.amenities if a.strip()}
            rooms = [
                room for room in rooms
                if wanted.issubset({a.lower() for a in (room.amenities or [])})
            ]
        return rooms

    def quote(self, room_id: int, check_in: DateLike, check_out: DateLike) -> PriceQuote:
        room = self.get_room(room_id)
        nights = (to_day(check_out) - to_day(check_in)).days
        if nights < 1:
            raise BookingValidationError("Check-out date must be after check-in date")
        return quote_stay(room.price, nights)

    def block_dates(self, room_id: int, start: DateLike, end: DateLike, reason: Optional[str] = None) -> int:
        self.get_room(room_id)
        with room_locks.hold(room_id):
            try:
                count = self.ledger.block_dates(room_id, start, end, reason or "manual_block")
            except BookingError:
                self.db.rollback()
                raise
            self._commit("block dates")
        return count

    def unblock_dates(self, room_id: int, start: DateLike, end: DateLike) -> int:
        self.get_room(room_id)
        with room_locks.hold(room_id):
            try:
                count = self.ledger.unblock_dates(room_id, start, end)
            except BookingError:
                self.db.rollback()
                raise
            self._commit("unblock dates")
        return count
