"""
Seat allocation: one seat per flight, enforced by the store.

The availability check done here is advisory. Two terminals can both see a
seat as free; the unique index on (flight_id, seat_number) then rejects the
second write and that rejection is reported as ``SeatConflict``.
"""

import logging
from typing import List, Optional

from ..database.config import DatabaseConfig
from ..database.models import Booking
from ..database.store import UnitOfWork
from ..exceptions import SeatConflict, ValidationError
from ..models.booking import BookingModel, normalize_seat_number
from ..models.enums import CheckInStatus

logger = logging.getLogger(__name__)


def validate_seat_number(seat_number: Optional[str]) -> str:
    """Normalized seat number, or ``ValidationError`` when missing or malformed."""
    if seat_number is None:
        raise ValidationError("seat number is required")
    try:
        return normalize_seat_number(seat_number)
    except ValueError as e:
        raise ValidationError(str(e)) from e


class SeatAllocationService:
    """Seat availability queries and seat assignment for bookings."""

    def __init__(self, db: DatabaseConfig):
        self.db = db

    def is_seat_available(self, flight_id: int, seat_number: str,
                          booking_id: Optional[int] = None) -> bool:
        """
        Check whether a seat on a flight is free.

        Args:
            flight_id: Flight to look at
            seat_number: Seat, matched exactly and case-sensitively
            booking_id: Booking asking; its own seat counts as available

        Returns:
            True if no other booking on the flight holds the seat
        """
        seat = validate_seat_number(seat_number)
        with self.db.transaction("is_seat_available", flight_id) as uow:
            uow.flights.require(flight_id)
            return self.seat_available_in(uow, flight_id, seat, booking_id)

    def assign_seat(self, booking_id: int, flight_id: int, seat_number: str) -> BookingModel:
        """
        Give a booking a seat on its flight.

        Re-assigning the seat the booking already holds changes nothing.

        Raises:
            NotFound: Booking or flight does not exist
            ValidationError: Malformed seat, or the booking is on another flight
            SeatConflict: Another booking on the flight holds the seat
        """
        seat = validate_seat_number(seat_number)
        with self.db.transaction("assign_seat", booking_id) as uow:
            uow.flights.require(flight_id)
            booking = uow.bookings.require(booking_id, for_update=True)
            if booking.flight_id != flight_id:
                raise ValidationError(
                    f"booking {booking.booking_reference} is for flight {booking.flight_id}, not {flight_id}"
                )
            if self.allocate(uow, booking, seat):
                logger.info(f"Seat {seat} assigned to booking {booking.booking_reference}")
            return BookingModel.model_validate(booking)

    def release_seat(self, booking_id: int) -> BookingModel:
        """Clear the booking's seat. Checked-in bookings keep theirs."""
        with self.db.transaction("release_seat", booking_id) as uow:
            booking = uow.bookings.require(booking_id, for_update=True)
            if booking.seat_number is not None:
                if booking.check_in_status == CheckInStatus.CHECKED_IN:
                    raise ValidationError(
                        f"booking {booking.booking_reference} is checked in; revoke the check-in first"
                    )
                released = booking.seat_number
                booking.seat_number = None
                uow.flush()
                logger.info(f"Seat {released} released by booking {booking.booking_reference}")
            return BookingModel.model_validate(booking)

    def occupied_seats(self, flight_id: int) -> List[str]:
        """Seats held on a flight, for seat maps."""
        with self.db.transaction("occupied_seats", flight_id) as uow:
            uow.flights.require(flight_id)
            return uow.bookings.occupied_seats(flight_id)

    def seat_available_in(self, uow: UnitOfWork, flight_id: int, seat: str,
                          booking_id: Optional[int] = None) -> bool:
        holder = uow.bookings.seat_holder(flight_id, seat)
        return holder is None or holder.id == booking_id

    def allocate(self, uow: UnitOfWork, booking: Booking, seat: str) -> bool:
        """
        Put ``seat`` on ``booking`` inside the caller's unit of work.

        Returns:
            False if the booking already held the seat, True if it changed

        Raises:
            SeatConflict: The seat is held by another booking on the same flight
        """
        if booking.seat_number == seat:
            return False

        conflict = SeatConflict(
            f"seat {seat} on flight {booking.flight_id} is already taken", entity_id=booking.id
        )
        if not self.seat_available_in(uow, booking.flight_id, seat, booking.id):
            raise conflict

        booking.seat_number = seat
        uow.flush(conflict=conflict)
        return True
