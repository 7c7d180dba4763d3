"""
Tests for flight cancellation and its configurable cascade.
"""

import pytest

from aerodesk.exceptions import InvalidTransition, TerminalState
from aerodesk.models.enums import BaggageStatus, CancellationCascade, CheckInStatus, FlightStatus
from aerodesk.services.cancellation import FlightCancellationOrchestrator


@pytest.fixture
def busy_flight(aero, flight, checked_in):
    """AA101 at gate G12 with J. Doe checked in and one bag tagged."""
    gate = aero.gates.create_gate("G12")
    aero.gates.assign_gate(flight.id, gate.id)
    bag = aero.baggage.register_baggage(checked_in.id, 19.0)
    return flight, gate, bag


def orchestrator(aero, cascade):
    return FlightCancellationOrchestrator(aero.db, aero.flights, cascade)


class TestCancellation:

    def test_no_cascade_by_default(self, aero, busy_flight, checked_in):
        flight, gate, bag = busy_flight
        outcome = aero.cancellation.cancel(flight.id)

        assert outcome.flight.status == FlightStatus.CANCELLED
        assert outcome.cascade == CancellationCascade.NONE
        assert outcome.released_assignments == []
        assert outcome.reverted_bookings == []
        assert len(aero.gates.assignments_for_flight(flight.id)) == 1
        assert aero.bookings.get_booking(checked_in.id).is_checked_in
        # Assignments of cancelled flights no longer hold the gate
        assert not aero.gates.gate_in_use(gate.id)

    def test_release_gates(self, aero, busy_flight, checked_in):
        flight, gate, bag = busy_flight
        outcome = orchestrator(aero, CancellationCascade.RELEASE_GATES).cancel(flight.id)

        assert len(outcome.released_assignments) == 1
        assert aero.gates.assignments_for_flight(flight.id) == []
        assert aero.gates.delete_gate(gate.id)
        assert aero.bookings.get_booking(checked_in.id).is_checked_in

    def test_release_gates_and_check_ins(self, aero, busy_flight, checked_in):
        flight, gate, bag = busy_flight
        outcome = orchestrator(aero, "release_gates_and_check_ins").cancel(flight.id)

        assert outcome.reverted_bookings == ["BK000042"]
        reverted = aero.bookings.get_booking(checked_in.id)
        assert reverted.check_in_status == CheckInStatus.NOT_CHECKED_IN
        assert reverted.seat_number is None
        assert reverted.check_in_time is None
        # Baggage is never touched by a cancellation
        assert aero.baggage.get(bag.id).status == BaggageStatus.CHECKED_IN

    def test_departed_flight(self, aero, busy_flight):
        flight, gate, bag = busy_flight
        aero.flights.start_boarding(flight.id)
        aero.flights.mark_departed(flight.id)

        with pytest.raises(InvalidTransition):
            orchestrator(aero, CancellationCascade.RELEASE_GATES).cancel(flight.id)
        assert len(aero.gates.assignments_for_flight(flight.id)) == 1

    def test_cancelling_twice(self, aero, flight):
        aero.cancellation.cancel(flight.id)
        with pytest.raises(TerminalState):
            aero.cancellation.cancel(flight.id)
