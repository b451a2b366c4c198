"""Price quote tests"""

import pytest
from datetime import date
from decimal import Decimal

from hotelbook.exceptions import BookingValidationError
from hotelbook.services.pricing import quote_stay
from hotelbook.services.room_service import RoomService


class TestQuoteStay:

    def test_three_nights(self):
        quote = quote_stay(Decimal("100"), 3)

        assert quote.room_total == Decimal("300.00")
        assert quote.cleaning_fee == Decimal("30.00")
        assert quote.service_fee == Decimal("25.00")
        assert quote.taxes == Decimal("42.60")
        assert quote.total == Decimal("397.60")

    def test_rounds_to_cents(self):
        quote = quote_stay("99.99", 1)
        # (99.99 + 55) * 0.12 = 18.5988
        assert quote.taxes == Decimal("18.60")
        assert quote.total == Decimal("173.59")

    def test_zero_nights_rejected(self):
        with pytest.raises(ValueError):
            quote_stay(100, 0)


class TestRoomQuote:

    def test_quote_uses_room_price(self, db, make_room):
        room = make_room(price="150")
        quote = RoomService(db).quote(room.id, date(2025, 6, 1), date(2025, 6, 3))
        assert quote.nights == 2
        assert quote.room_total == Decimal("300.00")

    def test_empty_stay_rejected(self, db, room):
        with pytest.raises(BookingValidationError):
            RoomService(db).quote(room.id, date(2025, 6, 1), date(2025, 6, 1))
