"""
Availability ledger tests

Covers:
- Half-open ranges and the checkout-day boundary
- Reserve / release round trips and idempotent release
- Open-world default for nights without entries
- Time-of-day normalization
- Admin blocks
- Storage-level conflict detection
"""

import pytest
from datetime import date, datetime
from decimal import Decimal
from unittest.mock import patch

from hotelbook.exceptions import BookingValidationError, DateConflictError
from hotelbook.models.booking import Booking
from hotelbook.models.room_date import RoomDate
from hotelbook.services.ledger import AvailabilityLedger


JUNE_1 = date(2025, 6, 1)
JUNE_2 = date(2025, 6, 2)
JUNE_3 = date(2025, 6, 3)
JUNE_4 = date(2025, 6, 4)
JUNE_5 = date(2025, 6, 5)


def add_booking(db, room_id, check_in, check_out, reference):
    booking = Booking(
        room_id=room_id,
        check_in_date=check_in,
        check_out_date=check_out,
        guest_count=1,
        guest_name="Test Guest",
        guest_email="guest@hotelmail.com",
        guest_phone="5550001",
        status="pending",
        total_amount=Decimal("100"),
        reference_number=reference,
    )
    db.add(booking)
    db.commit()
    return booking


class TestReads:

    def test_empty_ledger_is_available(self, db, room):
        ledger = AvailabilityLedger(db)
        assert ledger.is_range_available(room.id, JUNE_1, JUNE_4) is True

    def test_get_range_reports_missing_nights_as_available(self, db, room):
        ledger = AvailabilityLedger(db)
        nights = ledger.get_range(room.id, JUNE_1, JUNE_4)

        assert [n.date for n in nights] == [JUNE_1, JUNE_2, JUNE_3]
        assert all(n.is_available for n in nights)
        assert all(n.booking_id is None for n in nights)

    def test_reads_have_no_side_effects(self, db, room):
        ledger = AvailabilityLedger(db)
        ledger.is_range_available(room.id, JUNE_1, JUNE_4)
        ledger.get_range(room.id, JUNE_1, JUNE_4)

        assert db.query(RoomDate).count() == 0

    def test_empty_or_inverted_range_rejected(self, db, room):
        ledger = AvailabilityLedger(db)
        with pytest.raises(BookingValidationError):
            ledger.is_range_available(room.id, JUNE_2, JUNE_2)
        with pytest.raises(BookingValidationError):
            ledger.get_range(room.id, JUNE_3, JUNE_1)


class TestReserveRelease:

    def test_reserve_makes_range_unavailable(self, db, room):
        booking = add_booking(db, room.id, JUNE_1, JUNE_4, "BK00000001AAAA")
        ledger = AvailabilityLedger(db)

        assert ledger.is_range_available(room.id, JUNE_1, JUNE_4) is True
        count = ledger.reserve_range(room.id, JUNE_1, JUNE_4, booking.id)
        db.commit()

        assert count == 3
        assert ledger.is_range_available(room.id, JUNE_1, JUNE_4) is False

        nights = ledger.get_range(room.id, JUNE_1, JUNE_5)
        assert [(n.date, n.is_available, n.booking_id) for n in nights] == [
            (JUNE_1, False, booking.id),
            (JUNE_2, False, booking.id),
            (JUNE_3, False, booking.id),
            (JUNE_4, True, None),
        ]

    def test_checkout_day_is_not_reserved(self, db, room):
        first = add_booking(db, room.id, JUNE_1, JUNE_4, "BK00000001AAAA")
        second = add_booking(db, room.id, JUNE_4, JUNE_5, "BK00000002BBBB")
        ledger = AvailabilityLedger(db)

        ledger.reserve_range(room.id, JUNE_1, JUNE_4, first.id)
        db.commit()

        assert ledger.is_range_available(room.id, JUNE_4, JUNE_5) is True
        assert ledger.reserve_range(room.id, JUNE_4, JUNE_5, second.id) == 1
        db.commit()

    def test_partial_overlap_is_unavailable(self, db, room):
        booking = add_booking(db, room.id, JUNE_1, JUNE_4, "BK00000001AAAA")
        ledger = AvailabilityLedger(db)
        ledger.reserve_range(room.id, JUNE_1, JUNE_4, booking.id)
        db.commit()

        assert ledger.is_range_available(room.id, JUNE_3, JUNE_5) is False

    def test_release_frees_range(self, db, room):
        booking = add_booking(db, room.id, JUNE_1, JUNE_4, "BK00000001AAAA")
        ledger = AvailabilityLedger(db)
        ledger.reserve_range(room.id, JUNE_1, JUNE_4, booking.id)
        db.commit()

        assert ledger.release_range(booking.id) == 3
        db.commit()

        assert ledger.is_range_available(room.id, JUNE_1, JUNE_4) is True
        assert db.query(RoomDate).filter(RoomDate.booking_id == booking.id).count() == 0

    def test_release_is_idempotent(self, db, room):
        booking = add_booking(db, room.id, JUNE_1, JUNE_4, "BK00000001AAAA")
        ledger = AvailabilityLedger(db)
        ledger.reserve_range(room.id, JUNE_1, JUNE_4, booking.id)
        db.commit()

        ledger.release_range(booking.id)
        db.commit()
        after_once = [(n.date, n.is_available, n.booking_id) for n in ledger.get_range(room.id, JUNE_1, JUNE_5)]

        assert ledger.release_range(booking.id) == 0
        db.commit()
        after_twice = [(n.date, n.is_available, n.booking_id) for n in ledger.get_range(room.id, JUNE_1, JUNE_5)]

        assert after_once == after_twice

    def test_release_of_unknown_booking_is_noop(self, db, room):
        assert AvailabilityLedger(db).release_range(999) == 0

    def test_release_leaves_other_bookings_alone(self, db, room):
        first = add_booking(db, room.id, JUNE_1, JUNE_3, "BK00000001AAAA")
        second = add_booking(db, room.id, JUNE_3, JUNE_5, "BK00000002BBBB")
        ledger = AvailabilityLedger(db)
        ledger.reserve_range(room.id, JUNE_1, JUNE_3, first.id)
        ledger.reserve_range(room.id, JUNE_3, JUNE_5, second.id)
        db.commit()

        ledger.release_range(first.id)
        db.commit()

        assert ledger.is_range_available(room.id, JUNE_1, JUNE_3) is True
        assert ledger.is_range_available(room.id, JUNE_3, JUNE_5) is False

    def test_reserve_over_another_booking_conflicts(self, db, room):
        first = add_booking(db, room.id, JUNE_1, JUNE_4, "BK00000001AAAA")
        second = add_booking(db, room.id, JUNE_3, JUNE_5, "BK00000002BBBB")
        ledger = AvailabilityLedger(db)
        ledger.reserve_range(room.id, JUNE_1, JUNE_4, first.id)
        db.commit()

        with pytest.raises(DateConflictError) as exc_info:
            ledger.reserve_range(room.id, JUNE_3, JUNE_5, second.id)
        db.rollback()

        assert exc_info.value.dates == [JUNE_3]
        # Nothing of the losing reservation was written
        assert db.query(RoomDate).filter(RoomDate.booking_id == second.id).count() == 0

    def test_reserve_reuses_released_entries(self, db, room):
        first = add_booking(db, room.id, JUNE_1, JUNE_4, "BK00000001AAAA")
        second = add_booking(db, room.id, JUNE_1, JUNE_4, "BK00000002BBBB")
        ledger = AvailabilityLedger(db)
        ledger.reserve_range(room.id, JUNE_1, JUNE_4, first.id)
        db.commit()
        ledger.release_range(first.id)
        db.commit()

        ledger.reserve_range(room.id, JUNE_1, JUNE_4, second.id)
        db.commit()

        assert db.query(RoomDate).count() == 3
        assert {e.booking_id for e in db.query(RoomDate).all()} == {second.id}


class TestDateNormalization:

    def test_time_of_day_is_ignored(self, db, room):
        booking = add_booking(db, room.id, JUNE_1, JUNE_3, "BK00000001AAAA")
        ledger = AvailabilityLedger(db)

        ledger.reserve_range(room.id, datetime(2025, 6, 1, 15, 30), datetime(2025, 6, 3, 11, 0), booking.id)
        db.commit()

        assert ledger.is_range_available(room.id, JUNE_1, JUNE_2) is False
        assert ledger.is_range_available(room.id, datetime(2025, 6, 2, 23, 59), JUNE_3) is False
        assert ledger.is_range_available(room.id, JUNE_3, JUNE_4) is True

    def test_iso_strings_are_accepted(self, db, room):
        ledger = AvailabilityLedger(db)
        nights = ledger.get_range(room.id, "2025-06-01T08:00:00", "2025-06-03")
        assert [n.date for n in nights] == [JUNE_1, JUNE_2]


class TestBlocks:

    def test_block_makes_nights_unavailable_without_owner(self, db, room):
        ledger = AvailabilityLedger(db)
        assert ledger.block_dates(room.id, JUNE_1, JUNE_3, reason="maintenance") == 2
        db.commit()

        nights = ledger.get_range(room.id, JUNE_1, JUNE_3)
        assert all(not n.is_available and n.is_blocked for n in nights)
        assert all(n.booking_id is None and n.block_reason == "maintenance" for n in nights)

    def test_block_does_not_override_booking(self, db, room):
        booking = add_booking(db, room.id, JUNE_1, JUNE_3, "BK00000001AAAA")
        ledger = AvailabilityLedger(db)
        ledger.reserve_range(room.id, JUNE_1, JUNE_3, booking.id)
        db.commit()

        assert ledger.block_dates(room.id, JUNE_1, JUNE_4) == 1
        db.commit()

        nights = ledger.get_range(room.id, JUNE_1, JUNE_4)
        assert [n.booking_id for n in nights] == [booking.id, booking.id, None]
        assert nights[2].is_blocked

    def test_reserving_a_blocked_night_conflicts(self, db, room):
        booking = add_booking(db, room.id, JUNE_1, JUNE_3, "BK00000001AAAA")
        ledger = AvailabilityLedger(db)
        ledger.block_dates(room.id, JUNE_2, JUNE_3)
        db.commit()

        with pytest.raises(DateConflictError):
            ledger.reserve_range(room.id, JUNE_1, JUNE_3, booking.id)
        db.rollback()

    def test_unblock_only_touches_blocks(self, db, room):
        booking = add_booking(db, room.id, JUNE_1, JUNE_3, "BK00000001AAAA")
        ledger = AvailabilityLedger(db)
        ledger.reserve_range(room.id, JUNE_1, JUNE_3, booking.id)
        ledger.block_dates(room.id, JUNE_3, JUNE_5)
        db.commit()

        assert ledger.unblock_dates(room.id, JUNE_1, JUNE_5) == 2
        db.commit()

        assert ledger.is_range_available(room.id, JUNE_3, JUNE_5) is True
        assert ledger.is_range_available(room.id, JUNE_1, JUNE_3) is False


class TestStorageConflicts:

    def test_duplicate_insert_surfaces_as_date_conflict(self, session_factory, room):
        """
        Simulate a writer that read the calendar before another one committed:
        the stale reservation hits the (room, date) key and is reported as a
        conflict instead of a raw integrity error.
        """
        setup = session_factory()
        first = add_booking(setup, room.id, JUNE_1, JUNE_4, "BK00000001AAAA")
        second = add_booking(setup, room.id, JUNE_1, JUNE_4, "BK00000002BBBB")
        AvailabilityLedger(setup).reserve_range(room.id, JUNE_1, JUNE_4, first.id)
        setup.commit()
        first_id, second_id = first.id, second.id
        setup.close()

        stale = session_factory()
        ledger = AvailabilityLedger(stale)
        with patch.object(AvailabilityLedger, "_entries", return_value={}):
            with pytest.raises(DateConflictError):
                ledger.reserve_range(room.id, JUNE_1, JUNE_4, second_id)
        stale.rollback()

        owners = {e.booking_id for e in stale.query(RoomDate).all()}
        assert owners == {first_id}
        stale.close()

    def test_stale_read_cannot_take_claimed_nights(self, session_factory, room):
        """
        Released nights keep their rows. A writer that read them as free
        must not overwrite them once another booking has claimed them.
        """
        setup = session_factory()
        first = add_booking(setup, room.id, JUNE_1, JUNE_4, "BK00000001AAAA")
        second = add_booking(setup, room.id, JUNE_1, JUNE_4, "BK00000002BBBB")
        third = add_booking(setup, room.id, JUNE_1, JUNE_4, "BK00000003CCCC")
        ledger = AvailabilityLedger(setup)
        ledger.reserve_range(room.id, JUNE_1, JUNE_4, first.id)
        setup.commit()
        ledger.release_range(first.id)
        setup.commit()
        second_id, third_id = second.id, third.id
        setup.close()

        stale = session_factory()
        stale_ledger = AvailabilityLedger(stale)
        stale_entries = stale_ledger._entries(room.id, JUNE_1, JUNE_4)
        assert all(e.is_available for e in stale_entries.values())

        winner = session_factory()
        AvailabilityLedger(winner).reserve_range(room.id, JUNE_1, JUNE_4, second_id)
        winner.commit()
        winner.close()

        with patch.object(AvailabilityLedger, "_entries", return_value=stale_entries):
            with pytest.raises(DateConflictError):
                stale_ledger.reserve_range(room.id, JUNE_1, JUNE_4, third_id)
        stale.rollback()

        owners = {e.booking_id for e in stale.query(RoomDate).all()}
        assert owners == {second_id}
        stale.close()

    def test_stale_block_leaves_booked_nights_alone(self, session_factory, room):
        setup = session_factory()
        booking = add_booking(setup, room.id, JUNE_1, JUNE_3, "BK00000001AAAA")
        ledger = AvailabilityLedger(setup)
        ledger.reserve_range(room.id, JUNE_1, JUNE_3, booking.id)
        setup.commit()
        ledger.release_range(booking.id)
        setup.commit()
        booking_id = booking.id
        setup.close()

        stale = session_factory()
        stale_ledger = AvailabilityLedger(stale)
        stale_entries = stale_ledger._entries(room.id, JUNE_1, JUNE_3)

        rebook = session_factory()
        AvailabilityLedger(rebook).reserve_range(room.id, JUNE_1, JUNE_3, booking_id)
        rebook.commit()
        rebook.close()

        with patch.object(AvailabilityLedger, "_entries", return_value=stale_entries):
            assert stale_ledger.block_dates(room.id, JUNE_1, JUNE_3) == 0
        stale.commit()

        entries = stale.query(RoomDate).all()
        assert {(e.booking_id, e.block_reason) for e in entries} == {(booking_id, None)}
        stale.close()


class TestRangeLimits:

    def test_range_longer_than_limit_rejected(self, db, room):
        ledger = AvailabilityLedger(db, max_nights=10)

        assert len(ledger.get_range(room.id, JUNE_1, date(2025, 6, 11))) == 10
        with pytest.raises(BookingValidationError) as exc_info:
            ledger.get_range(room.id, JUNE_1, date(2025, 6, 12))
        assert exc_info.value.details == {"nights": 11, "max_nights": 10}

    def test_limit_applies_to_writes(self, db, room):
        ledger = AvailabilityLedger(db, max_nights=10)
        with pytest.raises(BookingValidationError):
            ledger.block_dates(room.id, JUNE_1, date(2026, 6, 1))
        assert db.query(RoomDate).count() == 0

    def test_default_limit_rejects_centuries(self, db, room):
        with pytest.raises(BookingValidationError):
            AvailabilityLedger(db).is_range_available(room.id, date(1900, 1, 1), date(2100, 1, 1))


class TestDateParsing:

    def test_trailing_garbage_rejected(self, db, room):
        with pytest.raises(BookingValidationError):
            AvailabilityLedger(db).get_range(room.id, "2025-06-01xyz", "2025-06-03")

    def test_non_date_rejected(self, db, room):
        with pytest.raises(BookingValidationError):
            AvailabilityLedger(db).get_range(room.id, 20250601, "2025-06-03")

    def test_utc_suffix_accepted(self, db, room):
        nights = AvailabilityLedger(db).get_range(room.id, "2025-06-01T22:00:00Z", "2025-06-02 09:00:00")
        assert [n.date for n in nights] == [JUNE_1]
