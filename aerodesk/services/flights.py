"""
Flight status controller and flight scheduling.

Flight lifecycle:

    SCHEDULED -> BOARDING -> DEPARTED -> ARRIVED
        |            |
        +------------+--> CANCELLED

ARRIVED and CANCELLED are terminal. Changing a flight's status never touches
its bookings, baggage or gate assignments; the cancellation orchestrator does
that as a separate step.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, FrozenSet, List, Optional, Union

from ..database.config import DatabaseConfig
from ..database.models import Flight
from ..database.store import UnitOfWork
from ..exceptions import (
    DependentRecordsExist,
    DuplicateName,
    InvalidTransition,
    TerminalState,
    ValidationError,
)
from ..models.enums import FlightStatus
from ..models.flight import FlightCreateModel, FlightModel
from .common import Clock, parse_input

logger = logging.getLogger(__name__)

FLIGHT_TRANSITIONS: Dict[FlightStatus, FrozenSet[FlightStatus]] = {
    FlightStatus.SCHEDULED: frozenset({FlightStatus.BOARDING, FlightStatus.CANCELLED}),
    FlightStatus.BOARDING: frozenset({FlightStatus.DEPARTED, FlightStatus.CANCELLED}),
    FlightStatus.DEPARTED: frozenset({FlightStatus.ARRIVED}),
    FlightStatus.ARRIVED: frozenset(),
    FlightStatus.CANCELLED: frozenset(),
}

TERMINAL_FLIGHT_STATUSES = frozenset(s for s, targets in FLIGHT_TRANSITIONS.items() if not targets)

SEARCH_FIELDS = ("number", "origin", "destination")


def parse_flight_status(value: Union[str, FlightStatus]) -> FlightStatus:
    try:
        return FlightStatus(value.upper() if isinstance(value, str) else value)
    except ValueError as e:
        raise ValidationError(f"unknown flight status '{value}'") from e


def check_flight_transition(current: FlightStatus, target: FlightStatus, entity_id=None) -> bool:
    """
    Validate a move against the transition table.

    Returns:
        True if the status changes, False when it already is ``target``

    Raises:
        TerminalState: ``current`` is ARRIVED or CANCELLED
        InvalidTransition: Any other move not in the table
    """
    if current in TERMINAL_FLIGHT_STATUSES:
        raise TerminalState(f"flight is {current.value} and cannot change", entity_id=entity_id)
    if current == target:
        return False
    if target not in FLIGHT_TRANSITIONS[current]:
        raise InvalidTransition(
            f"flight cannot move from {current.value} to {target.value}", entity_id=entity_id
        )
    return True


class FlightStatusController:
    """
    Owns the flight lifecycle and the flight schedule.

    Every status change goes through ``transition`` (or ``apply_transition``
    inside an existing unit of work); nothing else writes ``Flight.status``.
    """

    def __init__(self, db: DatabaseConfig, require_gate_for_boarding: bool = True,
                 clock: Clock = datetime.now):
        self.db = db
        self.require_gate_for_boarding = require_gate_for_boarding
        self.clock = clock

    # Status transitions

    def transition(self, flight_id: int, new_status: Union[str, FlightStatus]) -> FlightModel:
        """
        Move a flight to ``new_status``.

        Raises:
            NotFound: Unknown flight
            TerminalState: The flight has arrived or been cancelled
            InvalidTransition: Illegal move, or boarding without an active gate
        """
        target = parse_flight_status(new_status)
        with self.db.transaction("flight_transition", flight_id) as uow:
            flight = uow.flights.require(flight_id, for_update=True)
            self.apply_transition(uow, flight, target)
            return FlightModel.model_validate(flight)

    def start_boarding(self, flight_id: int) -> FlightModel:
        return self.transition(flight_id, FlightStatus.BOARDING)

    def mark_departed(self, flight_id: int) -> FlightModel:
        return self.transition(flight_id, FlightStatus.DEPARTED)

    def mark_arrived(self, flight_id: int) -> FlightModel:
        return self.transition(flight_id, FlightStatus.ARRIVED)

    def cancel(self, flight_id: int) -> FlightModel:
        """Cancel without any side effects on bookings or gates."""
        return self.transition(flight_id, FlightStatus.CANCELLED)

    def apply_transition(self, uow: UnitOfWork, flight: Flight, target: FlightStatus) -> bool:
        """Validate and write a status change inside the caller's unit of work."""
        current = flight.status
        if not check_flight_transition(current, target, flight.flight_no):
            return False

        if target == FlightStatus.BOARDING and self.require_gate_for_boarding:
            if not any(a.gate.is_active for a in uow.gate_assignments.for_flight(flight.id)):
                raise InvalidTransition(
                    f"flight {flight.flight_no} has no active gate assigned", entity_id=flight.flight_no
                )

        flight.status = target
        flight.updated_at = self.clock()
        uow.flush()
        logger.info(f"Flight {flight.flight_no} moved from {current.value} to {target.value}")
        return True

    # Scheduling

    def create_flight(
        self,
        flight_no: str,
        origin: str,
        destination: str,
        departure_time: datetime,
        arrival_time: datetime,
        aircraft_type: str,
    ) -> FlightModel:
        """
        Schedule a new flight.

        Raises:
            ValidationError: Missing fields, departure not before arrival,
                or departure in the past
            DuplicateName: The flight number already departs on that date
        """
        data = parse_input(
            FlightCreateModel,
            "create_flight",
            flight_no,
            flight_no=flight_no,
            origin=origin,
            destination=destination,
            departure_time=departure_time,
            arrival_time=arrival_time,
            aircraft_type=aircraft_type,
        )
        self._check_not_in_past(data.departure_time, "create_flight", data.flight_no)

        with self.db.transaction("create_flight", data.flight_no) as uow:
            self._check_unique_number(uow, data.flight_no, data.departure_time)
            now = self.clock()
            flight = uow.flights.create(
                **data.model_dump(),
                status=FlightStatus.SCHEDULED,
                delay_minutes=0,
                created_at=now,
                updated_at=now,
            )
            uow.flush()
            logger.info(
                f"Scheduled flight {flight.flight_no} {flight.origin}->{flight.destination} "
                f"departing {flight.departure_time:%Y-%m-%d %H:%M}"
            )
            return FlightModel.model_validate(flight)

    def reschedule(self, flight_id: int, departure_time: datetime, arrival_time: datetime) -> FlightModel:
        """Replace the schedule of a flight that has not started boarding."""
        if departure_time >= arrival_time:
            raise ValidationError("departure_time must be before arrival_time",
                                  operation="reschedule", entity_id=flight_id)
        self._check_not_in_past(departure_time, "reschedule", flight_id)

        with self.db.transaction("reschedule", flight_id) as uow:
            flight = uow.flights.require(flight_id, for_update=True)
            self._require_scheduled(flight, "rescheduled")
            self._check_unique_number(uow, flight.flight_no, departure_time, exclude_id=flight.id)
            flight.departure_time = departure_time
            flight.arrival_time = arrival_time
            flight.updated_at = self.clock()
            uow.flush()
            logger.info(f"Rescheduled flight {flight.flight_no} to {departure_time:%Y-%m-%d %H:%M}")
            return FlightModel.model_validate(flight)

    def delay_flight(self, flight_id: int, minutes: int) -> FlightModel:
        """
        Push a SCHEDULED flight back by ``minutes``.

        Departure and arrival both move and the delay is added to the
        flight's cumulative ``delay_minutes``. Gate windows are left alone.
        """
        if not isinstance(minutes, int) or minutes <= 0:
            raise ValidationError("delay must be a positive number of minutes",
                                  operation="delay_flight", entity_id=flight_id)

        with self.db.transaction("delay_flight", flight_id) as uow:
            flight = uow.flights.require(flight_id, for_update=True)
            self._require_scheduled(flight, "delayed")
            shift = timedelta(minutes=minutes)
            flight.departure_time = flight.departure_time + shift
            flight.arrival_time = flight.arrival_time + shift
            flight.delay_minutes = (flight.delay_minutes or 0) + minutes
            flight.updated_at = self.clock()
            uow.flush()
            logger.info(
                f"Delayed flight {flight.flight_no} by {minutes} min "
                f"(total {flight.delay_minutes} min)"
            )
            return FlightModel.model_validate(flight)

    def delete_flight(self, flight_id: int) -> bool:
        """
        Delete a flight together with its gate assignments.

        Raises:
            DependentRecordsExist: Bookings still reference the flight
        """
        with self.db.transaction("delete_flight", flight_id) as uow:
            flight = uow.flights.require(flight_id, for_update=True)
            bookings = uow.bookings.count_for_flight(flight.id)
            if bookings:
                raise DependentRecordsExist(f"flight {flight.flight_no} has {bookings} booking(s)")
            for assignment in uow.gate_assignments.for_flight(flight.id):
                uow.gate_assignments.delete(assignment)
            uow.flush()
            uow.flights.delete(flight)
            uow.flush()
            logger.info(f"Deleted flight {flight.flight_no}")
            return True

    def _require_scheduled(self, flight: Flight, action: str) -> None:
        if flight.status in TERMINAL_FLIGHT_STATUSES:
            raise TerminalState(f"flight {flight.flight_no} is {flight.status.value}")
        if flight.status != FlightStatus.SCHEDULED:
            raise InvalidTransition(
                f"flight {flight.flight_no} is {flight.status.value}; only scheduled flights can be {action}"
            )

    def _check_not_in_past(self, departure_time: datetime, operation: str, entity_id) -> None:
        if departure_time < self.clock():
            raise ValidationError("departure_time is in the past", operation=operation, entity_id=entity_id)

    def _check_unique_number(self, uow: UnitOfWork, flight_no: str, departure_time: datetime,
                             exclude_id: Optional[int] = None) -> None:
        day_start = datetime.combine(departure_time.date(), datetime.min.time())
        day_end = day_start + timedelta(days=1)
        if uow.flights.same_number_on_date(flight_no, day_start, day_end, exclude_id):
            raise DuplicateName(
                f"flight {flight_no} already departs on {departure_time:%Y-%m-%d}"
            )

    # Queries

    def get_flight(self, flight_id: int) -> FlightModel:
        with self.db.transaction("get_flight", flight_id) as uow:
            return FlightModel.model_validate(uow.flights.require(flight_id))

    def list_flights(self) -> List[FlightModel]:
        with self.db.transaction("list_flights") as uow:
            return [FlightModel.model_validate(f) for f in uow.flights.get_all()]

    def search(self, term: str, field: str = "number") -> List[FlightModel]:
        """Case-insensitive substring search on flight number, origin or destination."""
        if field not in SEARCH_FIELDS:
            raise ValidationError(f"search field must be one of {', '.join(SEARCH_FIELDS)}")
        term = (term or "").strip()
        if not term:
            return []
        with self.db.transaction("search_flights", term) as uow:
            return [FlightModel.model_validate(f) for f in uow.flights.search(field, term)]

    def flights_by_status(self, status: Union[str, FlightStatus]) -> List[FlightModel]:
        status = parse_flight_status(status)
        with self.db.transaction("flights_by_status") as uow:
            return [FlightModel.model_validate(f) for f in uow.flights.by_status(status)]

    def flights_between(self, start: datetime, end: datetime) -> List[FlightModel]:
        if start > end:
            raise ValidationError("start must not be after end", operation="flights_between")
        with self.db.transaction("flights_between") as uow:
            return [FlightModel.model_validate(f) for f in uow.flights.departing_between(start, end)]

    def upcoming_flights(self, hours: int = 24) -> List[FlightModel]:
        """Non-terminal flights departing within the next ``hours``."""
        now = self.clock()
        return [
            f for f in self.flights_between(now, now + timedelta(hours=hours))
            if f.status not in TERMINAL_FLIGHT_STATUSES
        ]
