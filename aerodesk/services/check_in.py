"""
Check-in workflow.

A booking moves NOT_CHECKED_IN -> CHECKED_IN exactly once. Checking in again
with the same seat is a no-op; with a different seat the seat is moved and
the first check-in time kept. The only way back is ``revoke_check_in``,
an administrator override.
"""

import logging
from datetime import datetime

from ..database.config import DatabaseConfig
from ..database.models import Booking
from ..database.store import UnitOfWork
from ..exceptions import DependentRecordsExist, InvalidTransition
from ..models.booking import BookingModel
from ..models.enums import CheckInStatus, FlightStatus, UserRole
from ..models.user import UserModel
from .baggage import TERMINAL_BAGGAGE_STATUSES
from .common import Clock
from .seat_allocation import SeatAllocationService, validate_seat_number
from .users import require_role

logger = logging.getLogger(__name__)

# Flights a passenger can still check in for
CHECK_IN_OPEN_STATUSES = (FlightStatus.SCHEDULED, FlightStatus.BOARDING)


class CheckInWorkflow:
    """Drives bookings through check-in, coordinating seat allocation."""

    def __init__(self, db: DatabaseConfig, seats: SeatAllocationService, clock: Clock = datetime.now):
        self.db = db
        self.seats = seats
        self.clock = clock

    def check_in(self, booking_id: int, seat_number: str) -> BookingModel:
        """
        Check a passenger in at a seat.

        Args:
            booking_id: Booking to check in
            seat_number: Requested seat (e.g., '14C')

        Returns:
            The checked-in booking

        Raises:
            NotFound: Unknown booking
            ValidationError: Malformed seat number
            InvalidTransition: The flight no longer accepts check-in
            SeatConflict: Another booking on the flight holds the seat
        """
        seat = validate_seat_number(seat_number)
        with self.db.transaction("check_in", booking_id) as uow:
            booking = uow.bookings.require(booking_id, for_update=True)
            return self._check_in(uow, booking, seat)

    def check_in_by_reference(self, booking_reference: str, seat_number: str) -> BookingModel:
        seat = validate_seat_number(seat_number)
        reference = (booking_reference or "").strip().upper()
        with self.db.transaction("check_in", reference) as uow:
            booking = uow.bookings.require_by_natural_key(reference, for_update=True)
            return self._check_in(uow, booking, seat)

    def _check_in(self, uow: UnitOfWork, booking: Booking, seat: str) -> BookingModel:
        already_checked_in = booking.check_in_status == CheckInStatus.CHECKED_IN
        if already_checked_in and booking.seat_number == seat:
            logger.debug(f"Booking {booking.booking_reference} already checked in at {seat}")
            return BookingModel.model_validate(booking)

        flight = uow.flights.require(booking.flight_id)
        if flight.status not in CHECK_IN_OPEN_STATUSES:
            raise InvalidTransition(
                f"flight {flight.flight_no} is {flight.status.value}; check-in is closed",
                entity_id=booking.id,
            )

        previous_seat = booking.seat_number
        self.seats.allocate(uow, booking, seat)

        if already_checked_in:
            logger.info(
                f"Booking {booking.booking_reference} moved from seat {previous_seat} to {seat}"
            )
        else:
            booking.check_in_status = CheckInStatus.CHECKED_IN
            booking.check_in_time = self.clock()
            uow.flush()
            logger.info(
                f"Checked in booking {booking.booking_reference} on flight {flight.flight_no} at seat {seat}"
            )
        return BookingModel.model_validate(booking)

    def revoke_check_in(self, booking_id: int, operator: UserModel) -> BookingModel:
        """
        Administrative override returning a booking to NOT_CHECKED_IN.

        Clears the seat and check-in time. Refused while the booking owns
        baggage that is still being handled.

        Raises:
            PermissionDenied: Operator is not an active administrator
            DependentRecordsExist: Baggage in a non-terminal state
        """
        require_role(operator, UserRole.ADMINISTRATOR)
        with self.db.transaction("revoke_check_in", booking_id) as uow:
            booking = uow.bookings.require(booking_id, for_update=True)
            if booking.check_in_status != CheckInStatus.CHECKED_IN:
                return BookingModel.model_validate(booking)

            in_progress = [
                bag.baggage_tag for bag in uow.baggage.for_booking(booking.id)
                if bag.status not in TERMINAL_BAGGAGE_STATUSES
            ]
            if in_progress:
                raise DependentRecordsExist(
                    f"baggage still in handling: {', '.join(in_progress)}"
                )

            uow.bookings.update(
                booking,
                check_in_status=CheckInStatus.NOT_CHECKED_IN,
                check_in_time=None,
                seat_number=None,
            )
            uow.flush()
            logger.info(f"Check-in of booking {booking.booking_reference} revoked by {operator.username}")
            return BookingModel.model_validate(booking)
