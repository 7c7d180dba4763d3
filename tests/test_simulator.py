"""
Tests for the baggage handling simulator.
"""

from unittest.mock import MagicMock

import pytest

from aerodesk.exceptions import PersistenceUnavailable, TerminalState
from aerodesk.models.enums import BaggageStatus
from aerodesk.services.simulator import BaggageSimulator


@pytest.fixture
def bags(aero, checked_in):
    return [aero.baggage.register_baggage(checked_in.id, 10 + i) for i in range(4)]


class TestBaggageSimulator:

    def test_certain_advance(self, aero, bags):
        simulator = BaggageSimulator(aero.baggage, probabilities={
            BaggageStatus.CHECKED_IN: 1.0, BaggageStatus.LOADED: 1.0, BaggageStatus.IN_TRANSIT: 1.0,
        })

        for expected in (BaggageStatus.LOADED, BaggageStatus.IN_TRANSIT, BaggageStatus.DELIVERED):
            result = simulator.tick()
            assert result.examined == len(bags)
            assert result.advanced == len(bags)
            assert {aero.baggage.get(b.id).status for b in bags} == {expected}

        assert simulator.tick().examined == 0

    def test_zero_probability_moves_nothing(self, aero, bags):
        simulator = BaggageSimulator(aero.baggage, probabilities={BaggageStatus.CHECKED_IN: 0.0})
        result = simulator.tick()
        assert (result.examined, result.advanced) == (4, 0)

    def test_seeded_runs_are_reproducible(self, aero, bags):
        first = aero.simulator(seed=7)
        second = aero.simulator(seed=7)
        assert [first.rng.random() for _ in range(5)] == [second.rng.random() for _ in range(5)]

    def test_never_reaches_lost(self, aero, bags):
        simulator = aero.simulator(seed=1)
        for _ in range(10):
            simulator.tick()
        assert aero.baggage.list_by_status(BaggageStatus.LOST) == []

    @pytest.mark.parametrize("probability", [-0.1, 1.5])
    def test_invalid_probability(self, aero, probability):
        with pytest.raises(ValueError):
            BaggageSimulator(aero.baggage, probabilities={BaggageStatus.LOADED: probability})

    def test_bag_moved_elsewhere_is_skipped(self, aero, bags):
        manager = MagicMock(wraps=aero.baggage)
        manager.advance_to_next.side_effect = TerminalState("already delivered")
        simulator = BaggageSimulator(manager, probabilities={BaggageStatus.CHECKED_IN: 1.0})

        result = simulator.tick()
        assert (result.advanced, result.skipped) == (0, 4)

    def test_store_failure_propagates(self, aero, bags):
        manager = MagicMock(wraps=aero.baggage)
        manager.advance_to_next.side_effect = PersistenceUnavailable("locked")
        simulator = BaggageSimulator(manager, probabilities={BaggageStatus.CHECKED_IN: 1.0})

        with pytest.raises(PersistenceUnavailable):
            simulator.tick()
