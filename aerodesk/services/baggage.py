"""
Baggage lifecycle manager.

Handling states and the only moves allowed between them:

    CHECKED_IN -> LOADED -> IN_TRANSIT -> DELIVERED
         \\           \\            \\
          +-----------+------------+--> LOST

DELIVERED and LOST are terminal. Asking for the status a bag already has is
a no-op while the bag is still being handled.
"""

import logging
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional, Union

from ..database.config import DatabaseConfig
from ..database.models import Baggage
from ..database.store import UnitOfWork
from ..exceptions import InvalidTransition, TerminalState, ValidationError
from ..models.baggage import BaggageCreateModel, BaggageModel
from ..models.enums import BaggageStatus, BaggageType, CheckInStatus, FlightStatus
from .common import Clock, parse_input
from .identifiers import IdentifierGenerator

logger = logging.getLogger(__name__)

BAGGAGE_TRANSITIONS: Dict[BaggageStatus, FrozenSet[BaggageStatus]] = {
    BaggageStatus.CHECKED_IN: frozenset({BaggageStatus.LOADED, BaggageStatus.LOST}),
    BaggageStatus.LOADED: frozenset({BaggageStatus.IN_TRANSIT, BaggageStatus.LOST}),
    BaggageStatus.IN_TRANSIT: frozenset({BaggageStatus.DELIVERED, BaggageStatus.LOST}),
    BaggageStatus.DELIVERED: frozenset(),
    BaggageStatus.LOST: frozenset(),
}

# Next step along the normal handling path
HAPPY_PATH: Dict[BaggageStatus, BaggageStatus] = {
    BaggageStatus.CHECKED_IN: BaggageStatus.LOADED,
    BaggageStatus.LOADED: BaggageStatus.IN_TRANSIT,
    BaggageStatus.IN_TRANSIT: BaggageStatus.DELIVERED,
}

TERMINAL_BAGGAGE_STATUSES = frozenset(s for s, targets in BAGGAGE_TRANSITIONS.items() if not targets)
IN_PROGRESS_BAGGAGE_STATUSES = tuple(s for s in BaggageStatus if s not in TERMINAL_BAGGAGE_STATUSES)

# Flights that can still take baggage
BAGGAGE_OPEN_FLIGHT_STATUSES = (FlightStatus.SCHEDULED, FlightStatus.BOARDING)


def parse_baggage_status(value: Union[str, BaggageStatus]) -> BaggageStatus:
    try:
        return BaggageStatus(value.upper() if isinstance(value, str) else value)
    except ValueError as e:
        raise ValidationError(f"unknown baggage status '{value}'") from e


def check_baggage_transition(current: BaggageStatus, target: BaggageStatus, entity_id=None) -> bool:
    """
    Validate a move against the transition table.

    Returns:
        True if the status changes, False for a same-status no-op

    Raises:
        TerminalState: ``current`` is DELIVERED or LOST
        InvalidTransition: The move skips a state or goes backwards
    """
    if current in TERMINAL_BAGGAGE_STATUSES:
        raise TerminalState(f"baggage is {current.value} and cannot change", entity_id=entity_id)
    if current == target:
        return False
    if target not in BAGGAGE_TRANSITIONS[current]:
        raise InvalidTransition(
            f"baggage cannot move from {current.value} to {target.value}", entity_id=entity_id
        )
    return True


class BaggageLifecycleManager:
    """Registers baggage against bookings and moves it through handling."""

    def __init__(
        self,
        db: DatabaseConfig,
        identifiers: IdentifierGenerator,
        require_check_in: bool = True,
        clock: Clock = datetime.now,
    ):
        """
        Args:
            db: Database configuration
            identifiers: Generator for baggage tags
            require_check_in: Refuse baggage for bookings that are not checked in;
                when False such registrations are allowed and logged as warnings
            clock: Source of the current time
        """
        self.db = db
        self.identifiers = identifiers
        self.require_check_in = require_check_in
        self.clock = clock

    @staticmethod
    def allowed_transitions(status: Union[str, BaggageStatus]) -> List[BaggageStatus]:
        return sorted(BAGGAGE_TRANSITIONS[parse_baggage_status(status)], key=list(BaggageStatus).index)

    def register_baggage(
        self,
        booking_id: int,
        weight_kg: float,
        baggage_type: BaggageType = BaggageType.CHECKED,
    ) -> BaggageModel:
        """
        Tag a bag for a booking.

        Raises:
            ValidationError: Weight not positive or unknown baggage type
            NotFound: Unknown booking
            InvalidTransition: Booking not checked in (strict policy), or its
                flight has already left or been cancelled
        """
        data = parse_input(
            BaggageCreateModel,
            "register_baggage",
            booking_id,
            booking_id=booking_id,
            weight_kg=weight_kg,
            baggage_type=baggage_type,
        )

        with self.db.transaction("register_baggage", booking_id) as uow:
            booking = uow.bookings.require(data.booking_id)
            flight = uow.flights.require(booking.flight_id)
            if flight.status not in BAGGAGE_OPEN_FLIGHT_STATUSES:
                raise InvalidTransition(
                    f"flight {flight.flight_no} is {flight.status.value}; baggage is closed"
                )

            if booking.check_in_status != CheckInStatus.CHECKED_IN:
                if self.require_check_in:
                    raise InvalidTransition(
                        f"booking {booking.booking_reference} is not checked in"
                    )
                logger.warning(
                    f"Registering baggage for booking {booking.booking_reference} before check-in"
                )

            tag = self.identifiers.reserve_baggage_tag(uow)
            now = self.clock()
            bag = uow.baggage.create(
                booking_id=booking.id,
                weight_kg=data.weight_kg,
                baggage_type=data.baggage_type,
                baggage_tag=tag,
                status=BaggageStatus.CHECKED_IN,
                created_at=now,
                updated_at=now,
            )
            uow.flush()
            logger.info(f"Tagged baggage {tag} ({data.weight_kg:g} kg) for booking {booking.booking_reference}")
            return BaggageModel.model_validate(bag)

    def advance(self, baggage_id: int, new_status: Union[str, BaggageStatus]) -> BaggageModel:
        """
        Move a bag to ``new_status``.

        Raises:
            NotFound: Unknown bag
            TerminalState: The bag is DELIVERED or LOST
            InvalidTransition: The move is not in the transition table
        """
        target = parse_baggage_status(new_status)
        with self.db.transaction("advance_baggage", baggage_id) as uow:
            bag = uow.baggage.require(baggage_id, for_update=True)
            return self._apply(uow, bag, target)

    def advance_by_tag(self, baggage_tag: str, new_status: Union[str, BaggageStatus]) -> BaggageModel:
        target = parse_baggage_status(new_status)
        tag = (baggage_tag or "").strip().upper()
        with self.db.transaction("advance_baggage", tag) as uow:
            bag = uow.baggage.require_by_natural_key(tag, for_update=True)
            return self._apply(uow, bag, target)

    def advance_to_next(self, baggage_id: int) -> BaggageModel:
        """Move a bag one step along the normal handling path."""
        with self.db.transaction("advance_baggage", baggage_id) as uow:
            bag = uow.baggage.require(baggage_id, for_update=True)
            if bag.status in TERMINAL_BAGGAGE_STATUSES:
                raise TerminalState(f"baggage {bag.baggage_tag} is {bag.status.value} and cannot change")
            return self._apply(uow, bag, HAPPY_PATH[bag.status])

    def mark_lost(self, baggage_id: int) -> BaggageModel:
        return self.advance(baggage_id, BaggageStatus.LOST)

    def _apply(self, uow: UnitOfWork, bag: Baggage, target: BaggageStatus) -> BaggageModel:
        current = bag.status
        changed = check_baggage_transition(current, target, bag.baggage_tag)

        if changed:
            bag.status = target
            bag.updated_at = self.clock()
            uow.flush()
            logger.info(f"Baggage {bag.baggage_tag} moved from {current.value} to {target.value}")
        return BaggageModel.model_validate(bag)

    def get(self, baggage_id: int) -> BaggageModel:
        with self.db.transaction("get_baggage", baggage_id) as uow:
            return BaggageModel.model_validate(uow.baggage.require(baggage_id))

    def get_by_tag(self, baggage_tag: str) -> Optional[BaggageModel]:
        tag = (baggage_tag or "").strip().upper()
        with self.db.transaction("get_baggage", tag) as uow:
            bag = uow.baggage.get_by_natural_key(tag)
            return BaggageModel.model_validate(bag) if bag else None

    def list_for_booking(self, booking_id: int) -> List[BaggageModel]:
        with self.db.transaction("list_baggage", booking_id) as uow:
            uow.bookings.require(booking_id)
            return [BaggageModel.model_validate(b) for b in uow.baggage.for_booking(booking_id)]

    def list_by_status(self, status: Union[str, BaggageStatus]) -> List[BaggageModel]:
        status = parse_baggage_status(status)
        with self.db.transaction("list_baggage") as uow:
            return [BaggageModel.model_validate(b) for b in uow.baggage.by_status(status)]

    def list_in_progress(self) -> List[BaggageModel]:
        """Bags that have not reached a terminal state, oldest first."""
        with self.db.transaction("list_baggage") as uow:
            return [
                BaggageModel.model_validate(b)
                for b in uow.baggage.with_statuses(IN_PROGRESS_BAGGAGE_STATUSES)
            ]
