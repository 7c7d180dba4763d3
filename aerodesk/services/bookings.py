"""
Booking desk: creating, finding and administratively deleting bookings.
"""

import logging
from datetime import datetime
from typing import List, Optional

from ..database.config import DatabaseConfig
from ..exceptions import DependentRecordsExist, DuplicateName, InvalidTransition, ValidationError
from ..models.booking import BookingCreateModel, BookingModel
from ..models.enums import CheckInStatus, FlightStatus, UserRole
from ..models.user import UserModel
from .common import Clock, parse_input
from .identifiers import BOOKING_REFERENCE, IdentifierGenerator, parse_identifier
from .seat_allocation import SeatAllocationService
from .users import require_role

logger = logging.getLogger(__name__)

BOOKABLE_FLIGHT_STATUSES = (FlightStatus.SCHEDULED, FlightStatus.BOARDING)
SEARCH_FIELDS = ("passenger", "passport", "flight", "any")


class BookingService:
    """Passenger bookings and the queries the check-in desk runs on them."""

    def __init__(self, db: DatabaseConfig, identifiers: IdentifierGenerator, seats: SeatAllocationService,
                 clock: Clock = datetime.now):
        self.db = db
        self.identifiers = identifiers
        self.seats = seats
        self.clock = clock

    def create_booking(
        self,
        flight_id: int,
        passenger_name: str,
        passport_number: Optional[str] = None,
        seat_number: Optional[str] = None,
        booking_reference: Optional[str] = None,
    ) -> BookingModel:
        """
        Create a booking in NOT_CHECKED_IN state.

        Args:
            flight_id: Flight being booked
            passenger_name: Passenger full name
            passport_number: Optional passport number
            seat_number: Optional pre-assigned seat
            booking_reference: Reference issued upstream; generated when omitted

        Raises:
            NotFound: Unknown flight
            ValidationError: Malformed input
            InvalidTransition: The flight has departed, arrived or been cancelled
            SeatConflict: The pre-assigned seat is taken
            DuplicateName: The supplied reference already exists
        """
        data = parse_input(
            BookingCreateModel,
            "create_booking",
            flight_id=flight_id,
            passenger_name=passenger_name,
            passport_number=passport_number,
            seat_number=seat_number,
        )
        reference = booking_reference.strip().upper() if booking_reference else None
        if reference is not None:
            parse_identifier(BOOKING_REFERENCE, reference)

        with self.db.transaction("create_booking", reference or flight_id) as uow:
            flight = uow.flights.require(data.flight_id)
            if flight.status not in BOOKABLE_FLIGHT_STATUSES:
                raise InvalidTransition(f"flight {flight.flight_no} is {flight.status.value}; not bookable")

            if reference is None:
                reference = self.identifiers.reserve_booking_reference(uow)
            else:
                if uow.bookings.get_by_natural_key(reference) is not None:
                    raise DuplicateName(f"booking reference {reference} already exists")
                self.identifiers.observe(uow, BOOKING_REFERENCE, reference)

            booking = uow.bookings.create(
                flight_id=flight.id,
                passenger_name=data.passenger_name,
                passport_number=data.passport_number,
                booking_reference=reference,
                check_in_status=CheckInStatus.NOT_CHECKED_IN,
                created_at=self.clock(),
            )
            uow.flush(conflict=DuplicateName(f"booking reference {reference} already exists"))

            if data.seat_number:
                self.seats.allocate(uow, booking, data.seat_number)

            logger.info(f"Created booking {reference} for {data.passenger_name} on flight {flight.flight_no}")
            return BookingModel.model_validate(booking)

    def get_booking(self, booking_id: int) -> BookingModel:
        with self.db.transaction("get_booking", booking_id) as uow:
            return BookingModel.model_validate(uow.bookings.require(booking_id))

    def get_by_reference(self, booking_reference: str) -> BookingModel:
        reference = (booking_reference or "").strip().upper()
        with self.db.transaction("get_booking", reference) as uow:
            return BookingModel.model_validate(uow.bookings.require_by_natural_key(reference))

    def bookings_for_flight(self, flight_id: int) -> List[BookingModel]:
        with self.db.transaction("bookings_for_flight", flight_id) as uow:
            uow.flights.require(flight_id)
            return [BookingModel.model_validate(b) for b in uow.bookings.for_flight(flight_id)]

    def checked_in_passengers(self, flight_id: int) -> List[BookingModel]:
        """Checked-in bookings of a flight in check-in order."""
        with self.db.transaction("checked_in_passengers", flight_id) as uow:
            uow.flights.require(flight_id)
            return [BookingModel.model_validate(b) for b in uow.bookings.checked_in_for_flight(flight_id)]

    def bookings_by_check_in_status(self, status: CheckInStatus) -> List[BookingModel]:
        try:
            status = CheckInStatus(status)
        except ValueError as e:
            raise ValidationError(f"unknown check-in status '{status}'") from e
        with self.db.transaction("bookings_by_check_in_status") as uow:
            return [BookingModel.model_validate(b) for b in uow.bookings.by_check_in_status(status)]

    def search(self, term: str, field: str = "any") -> List[BookingModel]:
        """
        Case-insensitive substring search.

        ``field`` is one of passenger, passport, flight (flight number) or any.
        An empty term matches nothing.
        """
        if field not in SEARCH_FIELDS:
            raise ValidationError(f"search field must be one of {', '.join(SEARCH_FIELDS)}")
        term = (term or "").strip()
        if not term:
            return []
        with self.db.transaction("search_bookings", term) as uow:
            return [BookingModel.model_validate(b) for b in uow.bookings.search(field, term)]

    def delete_booking(self, booking_id: int, operator: UserModel, cascade_baggage: bool = False) -> bool:
        """
        Administratively delete a booking.

        Args:
            booking_id: Booking to delete
            operator: Acting operator; must be an active administrator
            cascade_baggage: Also delete the baggage the booking owns

        Raises:
            PermissionDenied: Operator is not an administrator
            DependentRecordsExist: Baggage exists and ``cascade_baggage`` is False
        """
        require_role(operator, UserRole.ADMINISTRATOR)
        with self.db.transaction("delete_booking", booking_id) as uow:
            booking = uow.bookings.require(booking_id, for_update=True)
            baggage = uow.baggage.for_booking(booking.id)
            if baggage and not cascade_baggage:
                raise DependentRecordsExist(
                    f"booking {booking.booking_reference} owns {len(baggage)} baggage item(s)"
                )
            for bag in baggage:
                uow.baggage.delete(bag)
            uow.flush()
            uow.bookings.delete(booking)
            uow.flush()
            logger.info(
                f"Deleted booking {booking.booking_reference} with {len(baggage)} baggage item(s) "
                f"by {operator.username}"
            )
            return True
