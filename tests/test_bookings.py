"""
Tests for the booking desk.
"""

import pytest

from aerodesk.exceptions import (
    DependentRecordsExist,
    DuplicateName,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    SeatConflict,
    ValidationError,
)
from aerodesk.models.enums import CheckInStatus
from tests.helpers import NOW, make_flight


class TestCreateBooking:

    def test_generated_reference(self, aero, flight):
        booking = aero.bookings.create_booking(flight.id, "  Ada Lovelace ", passport_number=" p123 ")

        assert booking.booking_reference == "BK000001"
        assert booking.passenger_name == "Ada Lovelace"
        assert booking.passport_number == "P123"
        assert booking.check_in_status == CheckInStatus.NOT_CHECKED_IN
        assert booking.seat_number is None
        assert booking.created_at == NOW

    def test_explicit_reference(self, booking):
        assert booking.booking_reference == "BK000042"

    def test_duplicate_reference(self, aero, flight, booking):
        with pytest.raises(DuplicateName):
            aero.bookings.create_booking(flight.id, "Someone Else", booking_reference="bk000042")

    def test_malformed_reference(self, aero, flight):
        with pytest.raises(ValidationError):
            aero.bookings.create_booking(flight.id, "Someone", booking_reference="REF-1")

    def test_blank_passenger_name(self, aero, flight):
        with pytest.raises(ValidationError) as exc_info:
            aero.bookings.create_booking(flight.id, "   ")
        assert "passenger_name" in str(exc_info.value)

    def test_unknown_flight(self, aero):
        with pytest.raises(NotFound):
            aero.bookings.create_booking(404, "Nobody")

    def test_cancelled_flight_is_not_bookable(self, aero, flight):
        aero.flights.cancel(flight.id)
        with pytest.raises(InvalidTransition):
            aero.bookings.create_booking(flight.id, "Late Passenger")

    def test_pre_assigned_seat(self, aero, flight):
        booking = aero.bookings.create_booking(flight.id, "Seat Holder", seat_number="7F")
        assert booking.seat_number == "7F"
        assert booking.check_in_status == CheckInStatus.NOT_CHECKED_IN

    def test_pre_assigned_seat_conflict_creates_nothing(self, aero, flight):
        aero.bookings.create_booking(flight.id, "First", seat_number="7F")
        with pytest.raises(SeatConflict):
            aero.bookings.create_booking(flight.id, "Second", seat_number="7F")
        assert [b.passenger_name for b in aero.bookings.bookings_for_flight(flight.id)] == ["First"]


class TestQueries:

    @pytest.fixture
    def passengers(self, aero, flight):
        other = make_flight(aero, "BA202", origin="LHR", destination="JFK")
        aero.bookings.create_booking(flight.id, "Grace Hopper", passport_number="US1111")
        aero.bookings.create_booking(flight.id, "Alan Turing", passport_number="GB2222")
        aero.bookings.create_booking(other.id, "Ada Lovelace", passport_number="GB3333")
        return other

    def test_get_by_reference(self, aero, booking):
        assert aero.bookings.get_by_reference("bk000042").id == booking.id

    def test_bookings_for_flight_sorted_by_name(self, aero, flight, passengers):
        names = [b.passenger_name for b in aero.bookings.bookings_for_flight(flight.id)]
        assert names == ["Alan Turing", "Grace Hopper"]

    def test_search_by_passenger(self, aero, passengers):
        assert [b.passenger_name for b in aero.bookings.search("hopper", "passenger")] == ["Grace Hopper"]

    def test_search_by_passport(self, aero, passengers):
        names = [b.passenger_name for b in aero.bookings.search("gb", "passport")]
        assert names == ["Ada Lovelace", "Alan Turing"]

    def test_search_by_flight_number(self, aero, passengers):
        assert [b.passenger_name for b in aero.bookings.search("ba2", "flight")] == ["Ada Lovelace"]

    def test_search_any_field(self, aero, passengers):
        assert len(aero.bookings.search("a")) == 3

    def test_empty_search_matches_nothing(self, aero, passengers):
        assert aero.bookings.search("   ") == []

    def test_unknown_search_field(self, aero):
        with pytest.raises(ValidationError):
            aero.bookings.search("x", "seat")

    def test_by_check_in_status(self, aero, checked_in, passengers):
        checked = aero.bookings.bookings_by_check_in_status(CheckInStatus.CHECKED_IN)
        assert [b.id for b in checked] == [checked_in.id]
        assert len(aero.bookings.bookings_by_check_in_status("NOT_CHECKED_IN")) == 3

    def test_unknown_check_in_status(self, aero):
        with pytest.raises(ValidationError):
            aero.bookings.bookings_by_check_in_status("BOARDED")


class TestDeleteBooking:

    def test_admin_deletes(self, aero, booking, admin):
        assert aero.bookings.delete_booking(booking.id, admin)
        with pytest.raises(NotFound):
            aero.bookings.get_booking(booking.id)

    def test_non_admin_refused(self, aero, booking, agent):
        with pytest.raises(PermissionDenied):
            aero.bookings.delete_booking(booking.id, agent)

    def test_baggage_blocks_delete(self, aero, checked_in, admin):
        aero.baggage.register_baggage(checked_in.id, 20)
        with pytest.raises(DependentRecordsExist):
            aero.bookings.delete_booking(checked_in.id, admin)
        assert aero.bookings.get_booking(checked_in.id).id == checked_in.id

    def test_cascade_removes_baggage(self, aero, checked_in, admin):
        bag = aero.baggage.register_baggage(checked_in.id, 20)
        aero.bookings.delete_booking(checked_in.id, admin, cascade_baggage=True)
        assert aero.baggage.get_by_tag(bag.baggage_tag) is None
