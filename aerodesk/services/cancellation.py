"""
Flight cancellation orchestration.

Cancelling through the status controller only flips the flight's status. The
orchestrator cancels and then applies the configured cascade in the same
transaction. Baggage is never touched.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from ..database.config import DatabaseConfig
from ..models.enums import CancellationCascade, CheckInStatus, FlightStatus
from ..models.flight import FlightModel
from .flights import FlightStatusController

logger = logging.getLogger(__name__)


@dataclass
class CancellationOutcome:
    """What a cancellation changed."""
    flight: FlightModel
    cascade: CancellationCascade
    released_assignments: List[int] = field(default_factory=list)
    reverted_bookings: List[str] = field(default_factory=list)


class FlightCancellationOrchestrator:
    """Cancels flights and propagates the cancellation per policy."""

    def __init__(self, db: DatabaseConfig, flights: FlightStatusController,
                 cascade: CancellationCascade = CancellationCascade.NONE):
        self.db = db
        self.flights = flights
        self.cascade = CancellationCascade(cascade)

    def cancel(self, flight_id: int) -> CancellationOutcome:
        """
        Cancel a flight and apply the cascade.

        Raises:
            NotFound: Unknown flight
            TerminalState: Already arrived or cancelled
            InvalidTransition: The flight has departed
        """
        with self.db.transaction("cancel_flight", flight_id) as uow:
            flight = uow.flights.require(flight_id, for_update=True)
            self.flights.apply_transition(uow, flight, FlightStatus.CANCELLED)
            outcome = CancellationOutcome(flight=FlightModel.model_validate(flight), cascade=self.cascade)

            if self.cascade in (CancellationCascade.RELEASE_GATES,
                                CancellationCascade.RELEASE_GATES_AND_CHECK_INS):
                for assignment in uow.gate_assignments.for_flight(flight.id):
                    outcome.released_assignments.append(assignment.id)
                    uow.gate_assignments.delete(assignment)

            if self.cascade == CancellationCascade.RELEASE_GATES_AND_CHECK_INS:
                for booking in uow.bookings.checked_in_for_flight(flight.id):
                    uow.bookings.update(
                        booking,
                        check_in_status=CheckInStatus.NOT_CHECKED_IN,
                        check_in_time=None,
                        seat_number=None,
                    )
                    outcome.reverted_bookings.append(booking.booking_reference)

            uow.flush()
            logger.info(
                f"Cancelled flight {flight.flight_no} ({self.cascade.value}): "
                f"{len(outcome.released_assignments)} gate assignment(s) released, "
                f"{len(outcome.reverted_bookings)} check-in(s) reverted"
            )
            return outcome
