"""
Tests for the baggage lifecycle manager and its transition table.
"""

import pytest

from aerodesk.exceptions import InvalidTransition, NotFound, TerminalState, ValidationError
from aerodesk.models.enums import BaggageStatus, BaggageType
from aerodesk.services.baggage import (
    BAGGAGE_TRANSITIONS,
    BaggageLifecycleManager,
    TERMINAL_BAGGAGE_STATUSES,
    check_baggage_transition,
)
from tests.helpers import NOW


class TestTransitionTable:
    """The table itself, independent of storage."""

    @pytest.mark.parametrize("current,target", [
        (BaggageStatus.CHECKED_IN, BaggageStatus.LOADED),
        (BaggageStatus.LOADED, BaggageStatus.IN_TRANSIT),
        (BaggageStatus.IN_TRANSIT, BaggageStatus.DELIVERED),
        (BaggageStatus.CHECKED_IN, BaggageStatus.LOST),
        (BaggageStatus.LOADED, BaggageStatus.LOST),
        (BaggageStatus.IN_TRANSIT, BaggageStatus.LOST),
    ])
    def test_allowed(self, current, target):
        assert check_baggage_transition(current, target) is True

    @pytest.mark.parametrize("current,target", [
        (BaggageStatus.CHECKED_IN, BaggageStatus.IN_TRANSIT),
        (BaggageStatus.CHECKED_IN, BaggageStatus.DELIVERED),
        (BaggageStatus.LOADED, BaggageStatus.CHECKED_IN),
        (BaggageStatus.IN_TRANSIT, BaggageStatus.LOADED),
    ])
    def test_skipping_or_going_back(self, current, target):
        with pytest.raises(InvalidTransition):
            check_baggage_transition(current, target)

    @pytest.mark.parametrize("current", [BaggageStatus.DELIVERED, BaggageStatus.LOST])
    @pytest.mark.parametrize("target", list(BaggageStatus))
    def test_terminal_states_never_change(self, current, target):
        with pytest.raises(TerminalState):
            check_baggage_transition(current, target)

    def test_same_status_is_a_no_op(self):
        assert check_baggage_transition(BaggageStatus.LOADED, BaggageStatus.LOADED) is False

    def test_terminal_set(self):
        assert TERMINAL_BAGGAGE_STATUSES == {BaggageStatus.DELIVERED, BaggageStatus.LOST}
        assert set(BAGGAGE_TRANSITIONS) == set(BaggageStatus)

    def test_allowed_transitions_in_declaration_order(self):
        assert BaggageLifecycleManager.allowed_transitions("checked_in") == [
            BaggageStatus.LOADED, BaggageStatus.LOST,
        ]


class TestRegisterBaggage:

    def test_register(self, aero, checked_in):
        bag = aero.baggage.register_baggage(checked_in.id, 23.0)

        assert bag.baggage_tag == "BG000001"
        assert bag.status == BaggageStatus.CHECKED_IN
        assert bag.baggage_type == BaggageType.CHECKED
        assert bag.weight_kg == 23.0
        assert bag.created_at == NOW

    def test_tags_are_sequential(self, aero, checked_in):
        tags = [aero.baggage.register_baggage(checked_in.id, 10).baggage_tag for _ in range(3)]
        assert tags == ["BG000001", "BG000002", "BG000003"]

    def test_carry_on(self, aero, checked_in):
        bag = aero.baggage.register_baggage(checked_in.id, 7, "CARRY_ON")
        assert bag.baggage_type == BaggageType.CARRY_ON

    @pytest.mark.parametrize("weight", [0, -3.5])
    def test_weight_must_be_positive(self, aero, checked_in, weight):
        with pytest.raises(ValidationError):
            aero.baggage.register_baggage(checked_in.id, weight)

    def test_unknown_booking(self, aero):
        with pytest.raises(NotFound):
            aero.baggage.register_baggage(12345, 10)

    def test_strict_policy_requires_check_in(self, aero, booking):
        with pytest.raises(InvalidTransition):
            aero.baggage.register_baggage(booking.id, 15)
        assert aero.baggage.list_for_booking(booking.id) == []

    def test_lenient_policy_warns(self, aero, booking, clock, caplog):
        lenient = BaggageLifecycleManager(aero.db, aero.identifiers, require_check_in=False, clock=clock)

        with caplog.at_level("WARNING", logger="aerodesk"):
            bag = lenient.register_baggage(booking.id, 15)

        assert bag.status == BaggageStatus.CHECKED_IN
        assert "before check-in" in caplog.text

    def test_cancelled_flight_takes_no_baggage(self, aero, flight, checked_in):
        aero.flights.cancel(flight.id)
        with pytest.raises(InvalidTransition):
            aero.baggage.register_baggage(checked_in.id, 15)


class TestAdvance:

    @pytest.fixture
    def bag(self, aero, checked_in):
        return aero.baggage.register_baggage(checked_in.id, 21.5)

    def test_full_journey(self, aero, bag, clock):
        for status in ("LOADED", "IN_TRANSIT", "DELIVERED"):
            clock.advance(minutes=10)
            moved = aero.baggage.advance(bag.id, status)
            assert moved.status == BaggageStatus(status)
            assert moved.updated_at == clock()

    def test_advance_by_tag(self, aero, bag):
        moved = aero.baggage.advance_by_tag(bag.baggage_tag.lower(), BaggageStatus.LOADED)
        assert moved.status == BaggageStatus.LOADED

    def test_skip_is_rejected_and_nothing_changes(self, aero, bag):
        with pytest.raises(InvalidTransition) as exc_info:
            aero.baggage.advance(bag.id, "DELIVERED")

        assert exc_info.value.entity_id == bag.baggage_tag
        assert exc_info.value.operation == "advance_baggage"
        assert aero.baggage.get(bag.id).status == BaggageStatus.CHECKED_IN

    def test_delivered_bag_cannot_be_lost(self, aero, bag):
        for status in ("LOADED", "IN_TRANSIT", "DELIVERED"):
            aero.baggage.advance(bag.id, status)
        with pytest.raises(TerminalState):
            aero.baggage.mark_lost(bag.id)

    def test_lost_bag_stays_lost(self, aero, bag):
        aero.baggage.mark_lost(bag.id)
        with pytest.raises(TerminalState):
            aero.baggage.advance(bag.id, "LOST")

    def test_move_within_the_same_instant_keeps_clock_time(self, aero, bag):
        aero.baggage.advance(bag.id, "LOADED")

        stored = aero.baggage.get(bag.id)
        assert stored.status == BaggageStatus.LOADED
        assert stored.updated_at == NOW
        assert stored.created_at <= stored.updated_at

    def test_same_status_keeps_timestamp(self, aero, bag, clock):
        clock.advance(minutes=30)
        same = aero.baggage.advance(bag.id, "CHECKED_IN")
        assert same.updated_at == NOW

    def test_unknown_status(self, aero, bag):
        with pytest.raises(ValidationError):
            aero.baggage.advance(bag.id, "ON_CAROUSEL")

    def test_advance_to_next(self, aero, bag):
        statuses = [aero.baggage.advance_to_next(bag.id).status for _ in range(3)]
        assert statuses == [BaggageStatus.LOADED, BaggageStatus.IN_TRANSIT, BaggageStatus.DELIVERED]
        with pytest.raises(TerminalState):
            aero.baggage.advance_to_next(bag.id)

    def test_unknown_tag(self, aero):
        with pytest.raises(NotFound):
            aero.baggage.advance_by_tag("BG999999", "LOADED")
        assert aero.baggage.get_by_tag("BG999999") is None


class TestListing:

    def test_lists(self, aero, checked_in, clock):
        first = aero.baggage.register_baggage(checked_in.id, 10)
        clock.advance(minutes=1)
        second = aero.baggage.register_baggage(checked_in.id, 12)
        aero.baggage.mark_lost(first.id)

        assert [b.id for b in aero.baggage.list_for_booking(checked_in.id)] == [first.id, second.id]
        assert [b.id for b in aero.baggage.list_by_status("lost")] == [first.id]
        assert [b.id for b in aero.baggage.list_in_progress()] == [second.id]
