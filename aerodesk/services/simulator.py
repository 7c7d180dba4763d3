"""
Baggage handling simulator for demos and load tests.

Each tick walks every bag still in handling and, with a per-status
probability, moves it one step along the normal path. All moves go through
the lifecycle manager, so the transition table is never bypassed.
"""

import logging
import random
from dataclasses import dataclass
from typing import Dict, Optional

from ..exceptions import AeroDeskError, PersistenceError
from ..models.enums import BaggageStatus
from .baggage import BaggageLifecycleManager

logger = logging.getLogger(__name__)

DEFAULT_ADVANCE_PROBABILITIES: Dict[BaggageStatus, float] = {
    BaggageStatus.CHECKED_IN: 0.8,
    BaggageStatus.LOADED: 0.7,
    BaggageStatus.IN_TRANSIT: 0.7,
}


@dataclass
class TickResult:
    examined: int = 0
    advanced: int = 0
    skipped: int = 0


class BaggageSimulator:
    """Advances in-progress baggage at random."""

    def __init__(
        self,
        baggage: BaggageLifecycleManager,
        probabilities: Optional[Dict[BaggageStatus, float]] = None,
        seed: Optional[int] = None,
    ):
        self.baggage = baggage
        self.probabilities = dict(DEFAULT_ADVANCE_PROBABILITIES)
        if probabilities:
            self.probabilities.update(probabilities)
        for status, probability in self.probabilities.items():
            if not 0.0 <= probability <= 1.0:
                raise ValueError(f"probability for {status.value} must be between 0 and 1")
        self.rng = random.Random(seed)

    def tick(self) -> TickResult:
        """Run one simulation step over all bags still in handling."""
        result = TickResult()
        for bag in self.baggage.list_in_progress():
            result.examined += 1
            if self.rng.random() >= self.probabilities.get(bag.status, 0.0):
                continue
            try:
                self.baggage.advance_to_next(bag.id)
                result.advanced += 1
            except PersistenceError:
                raise
            except AeroDeskError as e:
                # Another terminal moved the bag since it was listed
                logger.info(f"Simulator skipped baggage {bag.baggage_tag}: {e}")
                result.skipped += 1

        logger.info(
            f"Simulation tick: {result.advanced} of {result.examined} bag(s) advanced, "
            f"{result.skipped} skipped"
        )
        return result
