"""
Tests for the check-in workflow.
"""

from datetime import timedelta

import pytest

from aerodesk.database.store import BookingRepository
from aerodesk.exceptions import (
    DependentRecordsExist,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    SeatConflict,
    ValidationError,
)
from aerodesk.models.enums import BaggageStatus, CheckInStatus
from tests.helpers import NOW


class TestCheckIn:
    """Passenger check-in at the desk."""

    def test_check_in_by_reference(self, aero, flight, booking, clock):
        result = aero.check_in.check_in_by_reference("BK000042", "14C")

        assert result.booking_reference == "BK000042"
        assert result.passenger_name == "J. Doe"
        assert result.flight_id == flight.id
        assert result.seat_number == "14C"
        assert result.check_in_status == CheckInStatus.CHECKED_IN
        assert result.check_in_time == NOW
        assert result.is_checked_in

    def test_reference_lookup_is_case_insensitive(self, aero, booking):
        result = aero.check_in.check_in_by_reference(" bk000042 ", "14C")
        assert result.id == booking.id

    def test_reference_lookup_locks_the_booking(self, aero, booking, monkeypatch):
        locks = []
        original = BookingRepository.require_by_natural_key

        def recording(repo, value, for_update=False):
            locks.append(for_update)
            return original(repo, value, for_update=for_update)

        monkeypatch.setattr(BookingRepository, "require_by_natural_key", recording)
        aero.check_in.check_in_by_reference("BK000042", "14C")

        assert locks == [True]

    def test_unknown_reference(self, aero, flight):
        with pytest.raises(NotFound):
            aero.check_in.check_in_by_reference("BK999999", "1A")

    def test_malformed_seat(self, aero, booking):
        with pytest.raises(ValidationError):
            aero.check_in.check_in(booking.id, "")

    def test_seat_taken_by_another_passenger(self, aero, flight, checked_in):
        other = aero.bookings.create_booking(flight.id, "A. Smith")

        with pytest.raises(SeatConflict):
            aero.check_in.check_in(other.id, "14C")

        unchanged = aero.bookings.get_booking(other.id)
        assert unchanged.check_in_status == CheckInStatus.NOT_CHECKED_IN
        assert unchanged.seat_number is None
        assert unchanged.check_in_time is None

    def test_unique_index_catches_a_missed_pre_check(self, aero, flight, checked_in, monkeypatch):
        other = aero.bookings.create_booking(flight.id, "A. Smith")
        monkeypatch.setattr(aero.seats, "seat_available_in", lambda *args, **kwargs: True)

        with pytest.raises(SeatConflict) as exc_info:
            aero.check_in.check_in(other.id, "14C")

        assert exc_info.value.operation == "check_in"
        assert exc_info.value.entity_id == other.id
        unchanged = aero.bookings.get_booking(other.id)
        assert unchanged.check_in_status == CheckInStatus.NOT_CHECKED_IN
        assert unchanged.seat_number is None
        assert aero.bookings.get_booking(checked_in.id).seat_number == "14C"

    def test_check_in_again_with_same_seat_is_a_no_op(self, aero, checked_in, clock):
        clock.advance(minutes=20)
        again = aero.check_in.check_in(checked_in.id, "14C")

        assert again.seat_number == "14C"
        assert again.check_in_time == checked_in.check_in_time

    def test_seat_change_keeps_check_in_time(self, aero, flight, checked_in, clock):
        clock.advance(minutes=20)
        moved = aero.check_in.check_in(checked_in.id, "15A")

        assert moved.seat_number == "15A"
        assert moved.check_in_time == NOW
        assert aero.seats.occupied_seats(flight.id) == ["15A"]

    def test_pre_assigned_seat(self, aero, flight):
        booking = aero.bookings.create_booking(flight.id, "M. Rossi", seat_number="3B")
        result = aero.check_in.check_in(booking.id, "3B")
        assert result.is_checked_in
        assert result.seat_number == "3B"

    def test_boarding_flight_still_accepts_check_in(self, aero, flight, booking):
        gate = aero.gates.create_gate("G12")
        aero.gates.assign_gate(flight.id, gate.id)
        aero.flights.start_boarding(flight.id)

        assert aero.check_in.check_in(booking.id, "14C").is_checked_in

    @pytest.mark.parametrize("cancel", [True, False])
    def test_closed_flight_refuses_check_in(self, aero, flight, booking, cancel):
        if cancel:
            aero.flights.cancel(flight.id)
        else:
            gate = aero.gates.create_gate("G12")
            aero.gates.assign_gate(flight.id, gate.id)
            aero.flights.start_boarding(flight.id)
            aero.flights.mark_departed(flight.id)

        with pytest.raises(InvalidTransition):
            aero.check_in.check_in(booking.id, "14C")
        assert aero.bookings.get_booking(booking.id).seat_number is None

    def test_checked_in_passengers_in_check_in_order(self, aero, flight, checked_in, clock):
        clock.advance(minutes=5)
        later = aero.bookings.create_booking(flight.id, "A. Smith")
        aero.check_in.check_in(later.id, "2A")

        passengers = aero.bookings.checked_in_passengers(flight.id)
        assert [p.booking_reference for p in passengers] == ["BK000042", later.booking_reference]
        assert passengers[1].check_in_time == NOW + timedelta(minutes=5)


class TestRevokeCheckIn:
    """Administrative reversal of a check-in."""

    def test_admin_revokes(self, aero, flight, checked_in, admin):
        revoked = aero.check_in.revoke_check_in(checked_in.id, admin)

        assert revoked.check_in_status == CheckInStatus.NOT_CHECKED_IN
        assert revoked.seat_number is None
        assert revoked.check_in_time is None
        assert aero.seats.is_seat_available(flight.id, "14C")

    def test_agent_may_not_revoke(self, aero, checked_in, agent):
        with pytest.raises(PermissionDenied):
            aero.check_in.revoke_check_in(checked_in.id, agent)

    def test_deactivated_admin_may_not_revoke(self, aero, checked_in, admin):
        inactive = aero.users.deactivate(admin.username)
        with pytest.raises(PermissionDenied):
            aero.check_in.revoke_check_in(checked_in.id, inactive)

    def test_revoking_unchecked_booking_changes_nothing(self, aero, booking, admin):
        result = aero.check_in.revoke_check_in(booking.id, admin)
        assert result.check_in_status == CheckInStatus.NOT_CHECKED_IN

    def test_refused_while_baggage_in_handling(self, aero, checked_in, admin):
        aero.baggage.register_baggage(checked_in.id, 18.5)

        with pytest.raises(DependentRecordsExist):
            aero.check_in.revoke_check_in(checked_in.id, admin)
        assert aero.bookings.get_booking(checked_in.id).is_checked_in

    def test_allowed_once_baggage_is_terminal(self, aero, checked_in, admin):
        bag = aero.baggage.register_baggage(checked_in.id, 18.5)
        aero.baggage.mark_lost(bag.id)

        revoked = aero.check_in.revoke_check_in(checked_in.id, admin)
        assert revoked.check_in_status == CheckInStatus.NOT_CHECKED_IN
        assert aero.baggage.get(bag.id).status == BaggageStatus.LOST
