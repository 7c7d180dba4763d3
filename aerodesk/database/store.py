"""
Entity store: per-entity repositories bound to one unit of work.

Repositories are deliberately mechanical. They load, filter, add and remove
rows; every decision about whether a change is allowed lives in the services.
All repositories of a ``UnitOfWork`` share one session, so a workflow that
touches several entities commits or rolls back as one unit.
"""

import logging
from datetime import datetime
from typing import Any, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..exceptions import AeroDeskError, NotFound, PersistenceError
from ..models.enums import BaggageStatus, CheckInStatus, FlightStatus
from .models import (
    Baggage,
    Booking,
    Flight,
    Gate,
    GateAssignment,
    IdentifierSequence,
    User,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Flights that still hold on to their gate
PENDING_FLIGHT_STATUSES = (FlightStatus.SCHEDULED, FlightStatus.BOARDING)


class Repository(Generic[T]):
    """Generic CRUD access for one mapped class."""

    model: Type[T]
    natural_key: Optional[str] = None
    order_by: Optional[str] = None

    def __init__(self, session: Session):
        self.session = session

    def _ordered(self, stmt):
        if self.order_by:
            return stmt.order_by(getattr(self.model, self.order_by))
        return stmt

    def get_all(self) -> List[T]:
        return list(self.session.scalars(self._ordered(select(self.model))))

    def get_by_id(self, entity_id: Any, for_update: bool = False) -> Optional[T]:
        if for_update:
            stmt = select(self.model).where(self.model.id == entity_id).with_for_update()
            return self.session.scalars(stmt).first()
        return self.session.get(self.model, entity_id)

    def get_by_natural_key(self, value: Any, for_update: bool = False) -> Optional[T]:
        if self.natural_key is None:
            raise NotImplementedError(f"{self.model.__name__} has no natural key")
        stmt = select(self.model).where(getattr(self.model, self.natural_key) == value)
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.scalars(stmt).first()

    def require(self, entity_id: Any, for_update: bool = False) -> T:
        """Load by id or raise ``NotFound``."""
        entity = self.get_by_id(entity_id, for_update=for_update)
        if entity is None:
            raise NotFound(f"{self.model.__name__} {entity_id} not found", entity_id=entity_id)
        return entity

    def require_by_natural_key(self, value: Any, for_update: bool = False) -> T:
        entity = self.get_by_natural_key(value, for_update=for_update)
        if entity is None:
            raise NotFound(f"{self.model.__name__} '{value}' not found", entity_id=value)
        return entity

    def filter_by(self, **criteria: Any) -> List[T]:
        return list(self.session.scalars(self._ordered(select(self.model).filter_by(**criteria))))

    def create(self, **fields: Any) -> T:
        """Insert a row; identity is assigned when the unit of work flushes."""
        entity = self.model(**fields)
        self.session.add(entity)
        return entity

    def update(self, entity: T, **fields: Any) -> bool:
        changed = False
        for name, value in fields.items():
            if getattr(entity, name) != value:
                setattr(entity, name, value)
                changed = True
        return changed

    def delete(self, entity: T) -> bool:
        self.session.delete(entity)
        return True


class FlightRepository(Repository[Flight]):
    model = Flight
    natural_key = "flight_no"
    order_by = "departure_time"

    def by_status(self, status: FlightStatus) -> List[Flight]:
        return self.filter_by(status=status)

    def departing_between(self, start: datetime, end: datetime) -> List[Flight]:
        stmt = (
            select(Flight)
            .where(Flight.departure_time >= start, Flight.departure_time <= end)
            .order_by(Flight.departure_time)
        )
        return list(self.session.scalars(stmt))

    def search(self, field: str, term: str) -> List[Flight]:
        """Case-insensitive substring search on flight_no, origin or destination."""
        column = {
            "number": Flight.flight_no,
            "origin": Flight.origin,
            "destination": Flight.destination,
        }[field]
        stmt = (
            select(Flight)
            .where(column.ilike(f"%{term}%"))
            .order_by(Flight.departure_time)
        )
        return list(self.session.scalars(stmt))

    def same_number_on_date(self, flight_no: str, day_start: datetime, day_end: datetime,
                            exclude_id: Optional[int] = None) -> List[Flight]:
        stmt = select(Flight).where(
            func.lower(Flight.flight_no) == flight_no.lower(),
            Flight.departure_time >= day_start,
            Flight.departure_time < day_end,
        )
        if exclude_id is not None:
            stmt = stmt.where(Flight.id != exclude_id)
        return list(self.session.scalars(stmt))


class BookingRepository(Repository[Booking]):
    model = Booking
    natural_key = "booking_reference"
    order_by = "passenger_name"

    def for_flight(self, flight_id: int) -> List[Booking]:
        return self.filter_by(flight_id=flight_id)

    def count_for_flight(self, flight_id: int) -> int:
        stmt = select(func.count()).select_from(Booking).where(Booking.flight_id == flight_id)
        return self.session.scalar(stmt)

    def seat_holder(self, flight_id: int, seat_number: str) -> Optional[Booking]:
        """Booking currently holding the seat, matched exactly and case-sensitively."""
        stmt = select(Booking).where(Booking.flight_id == flight_id, Booking.seat_number == seat_number)
        return self.session.scalars(stmt).first()

    def occupied_seats(self, flight_id: int) -> List[str]:
        stmt = (
            select(Booking.seat_number)
            .where(Booking.flight_id == flight_id, Booking.seat_number.is_not(None))
            .order_by(Booking.seat_number)
        )
        return list(self.session.scalars(stmt))

    def checked_in_for_flight(self, flight_id: int) -> List[Booking]:
        stmt = (
            select(Booking)
            .where(Booking.flight_id == flight_id, Booking.check_in_status == CheckInStatus.CHECKED_IN)
            .order_by(Booking.check_in_time)
        )
        return list(self.session.scalars(stmt))

    def by_check_in_status(self, status: CheckInStatus) -> List[Booking]:
        return self.filter_by(check_in_status=status)

    def checked_in_since(self, since: datetime) -> int:
        stmt = select(func.count()).select_from(Booking).where(Booking.check_in_time >= since)
        return self.session.scalar(stmt)

    def search(self, field: str, term: str) -> List[Booking]:
        """Case-insensitive substring search on passenger name, passport or flight number."""
        pattern = term
        if field == "passenger":
            condition = Booking.passenger_name.ilike(f"%{pattern}%")
        elif field == "passport":
            condition = Booking.passport_number.ilike(f"%{pattern}%")
        elif field == "flight":
            flight_ids = select(Flight.id).where(Flight.flight_no.ilike(f"%{pattern}%"))
            condition = Booking.flight_id.in_(flight_ids)
        elif field == "any":
            flight_ids = select(Flight.id).where(Flight.flight_no.ilike(f"%{pattern}%"))
            condition = or_(
                Booking.passenger_name.ilike(f"%{pattern}%"),
                Booking.passport_number.ilike(f"%{pattern}%"),
                Booking.booking_reference.ilike(f"%{pattern}%"),
                Booking.flight_id.in_(flight_ids),
            )
        else:
            raise ValueError(f"Unknown booking search field: {field}")
        stmt = select(Booking).where(condition).order_by(Booking.passenger_name)
        return list(self.session.scalars(stmt))

    def max_reference(self) -> Optional[str]:
        return self.session.scalar(select(func.max(Booking.booking_reference)))


class BaggageRepository(Repository[Baggage]):
    model = Baggage
    natural_key = "baggage_tag"
    order_by = "created_at"

    def for_booking(self, booking_id: int) -> List[Baggage]:
        return self.filter_by(booking_id=booking_id)

    def by_status(self, status: BaggageStatus) -> List[Baggage]:
        return self.filter_by(status=status)

    def with_statuses(self, statuses: Sequence[BaggageStatus]) -> List[Baggage]:
        stmt = select(Baggage).where(Baggage.status.in_(statuses)).order_by(Baggage.created_at)
        return list(self.session.scalars(stmt))

    def updated_since(self, since: datetime) -> int:
        stmt = select(func.count()).select_from(Baggage).where(Baggage.updated_at >= since)
        return self.session.scalar(stmt)

    def count_by_status(self, status: BaggageStatus) -> int:
        stmt = select(func.count()).select_from(Baggage).where(Baggage.status == status)
        return self.session.scalar(stmt)

    def max_tag(self) -> Optional[str]:
        return self.session.scalar(select(func.max(Baggage.baggage_tag)))


class GateRepository(Repository[Gate]):
    model = Gate
    natural_key = "gate_name"
    order_by = "gate_name"

    def active(self) -> List[Gate]:
        return self.filter_by(is_active=True)


class GateAssignmentRepository(Repository[GateAssignment]):
    model = GateAssignment
    order_by = "assigned_from"

    def for_flight(self, flight_id: int) -> List[GateAssignment]:
        return self.filter_by(flight_id=flight_id)

    def for_gate(self, gate_id: int) -> List[GateAssignment]:
        return self.filter_by(gate_id=gate_id)

    def overlapping(self, gate_id: int, start: datetime, end: datetime,
                    exclude_id: Optional[int] = None) -> List[GateAssignment]:
        """Pending-flight assignments on the gate whose window intersects [start, end)."""
        stmt = (
            select(GateAssignment)
            .join(Flight, GateAssignment.flight_id == Flight.id)
            .where(
                GateAssignment.gate_id == gate_id,
                GateAssignment.assigned_from < end,
                GateAssignment.assigned_to > start,
                Flight.status.in_(PENDING_FLIGHT_STATUSES),
            )
        )
        if exclude_id is not None:
            stmt = stmt.where(GateAssignment.id != exclude_id)
        return list(self.session.scalars(stmt))

    def pending_for_gate(self, gate_id: int) -> List[GateAssignment]:
        """Assignments on the gate whose flight has not departed or been cancelled."""
        stmt = (
            select(GateAssignment)
            .join(Flight, GateAssignment.flight_id == Flight.id)
            .where(GateAssignment.gate_id == gate_id, Flight.status.in_(PENDING_FLIGHT_STATUSES))
            .order_by(GateAssignment.assigned_from)
        )
        return list(self.session.scalars(stmt))

    def occupied_at(self, moment: datetime) -> int:
        stmt = (
            select(func.count(func.distinct(GateAssignment.gate_id)))
            .join(Flight, GateAssignment.flight_id == Flight.id)
            .where(
                GateAssignment.assigned_from <= moment,
                GateAssignment.assigned_to > moment,
                Flight.status.in_(PENDING_FLIGHT_STATUSES),
            )
        )
        return self.session.scalar(stmt)


class UserRepository(Repository[User]):
    model = User
    natural_key = "username"
    order_by = "username"

    def active(self) -> List[User]:
        return self.filter_by(is_active=True)


class SequenceRepository(Repository[IdentifierSequence]):
    model = IdentifierSequence
    natural_key = "name"

    def get_by_id(self, entity_id: Any, for_update: bool = False) -> Optional[IdentifierSequence]:
        stmt = select(IdentifierSequence).where(IdentifierSequence.name == entity_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.scalars(stmt).first()


class UnitOfWork:
    """
    Repositories sharing one session, i.e. one store transaction.

    Obtained from ``DatabaseConfig.transaction()``; never committed directly.
    """

    def __init__(self, session: Session):
        self.session = session
        self.flights = FlightRepository(session)
        self.bookings = BookingRepository(session)
        self.baggage = BaggageRepository(session)
        self.gates = GateRepository(session)
        self.gate_assignments = GateAssignmentRepository(session)
        self.users = UserRepository(session)
        self.sequences = SequenceRepository(session)

    def flush(self, conflict: Optional[AeroDeskError] = None) -> None:
        """
        Push pending writes so constraints are checked now.

        Args:
            conflict: Error to raise if a uniqueness constraint rejects the write
        """
        try:
            self.session.flush()
        except IntegrityError as e:
            logger.debug(f"Flush rejected by constraint: {e.orig}")
            if conflict is not None:
                raise conflict from e
            raise PersistenceError(f"constraint violated: {e.orig}") from e
