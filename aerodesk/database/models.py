"""
SQLAlchemy database models for the AeroDesk ground operations core.

This module defines the persisted entity layout:
- Flight: scheduled flights and their lifecycle status
- Booking: passenger bookings with seat assignment and check-in state
- Baggage: tagged baggage items owned by a booking
- Gate: gate resource pool
- GateAssignment: time-windowed association of a flight with a gate
- User: terminal operators and their roles
- IdentifierSequence: atomically incremented counters for tags and references

Uniqueness rules that must hold under concurrent use (seat per flight, baggage
tag, booking reference, gate name) are enforced here as constraints; the
services treat a violation as the authoritative conflict signal.
"""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import declarative_base, relationship

from ..models.enums import (
    BaggageStatus,
    BaggageType,
    CheckInStatus,
    FlightStatus,
    UserRole,
)

# Create the declarative base for all models
Base = declarative_base()


def _enum_column(enum_cls, length: int = 20) -> Enum:
    """String-backed enum column; unknown stored values fail on load."""
    return Enum(enum_cls, native_enum=False, length=length, validate_strings=True)


class Flight(Base):
    """
    Flight model representing a scheduled flight.

    Status is mutated only by the flight status controller. Bookings reference
    flights; a flight with bookings is never deleted.
    """
    __tablename__ = 'flights'

    id = Column(Integer, primary_key=True, autoincrement=True)

    flight_no = Column(String(8), nullable=False, index=True)  # e.g. 'AA101'
    origin = Column(String(4), nullable=False, index=True)
    destination = Column(String(4), nullable=False, index=True)
    departure_time = Column(DateTime, nullable=False, index=True)
    arrival_time = Column(DateTime, nullable=False)
    aircraft_type = Column(String(30), nullable=False)
    status = Column(_enum_column(FlightStatus), nullable=False, default=FlightStatus.SCHEDULED, index=True)
    delay_minutes = Column(Integer, nullable=False, default=0)  # Cumulative delay

    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now)

    bookings = relationship("Booking", back_populates="flight", lazy="select")
    gate_assignments = relationship("GateAssignment", back_populates="flight", lazy="select")

    __table_args__ = (
        CheckConstraint('departure_time < arrival_time', name='ck_flight_departure_before_arrival'),
    )

    def __repr__(self):
        return f"<Flight(id={self.id}, flight_no='{self.flight_no}', status={self.status})>"


class Booking(Base):
    """
    Booking model linking a passenger to a flight.

    The seat number is nullable until check-in but may be pre-assigned.
    (flight_id, seat_number) is unique; NULL seats never collide.
    """
    __tablename__ = 'bookings'

    id = Column(Integer, primary_key=True, autoincrement=True)

    flight_id = Column(Integer, ForeignKey('flights.id'), nullable=False, index=True)
    passenger_name = Column(String(100), nullable=False, index=True)
    seat_number = Column(String(4), nullable=True)  # e.g. '14C'
    booking_reference = Column(String(8), nullable=False, unique=True, index=True)  # e.g. 'BK000042'
    passport_number = Column(String(20), nullable=True, index=True)
    check_in_status = Column(
        _enum_column(CheckInStatus), nullable=False, default=CheckInStatus.NOT_CHECKED_IN, index=True
    )
    check_in_time = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.now)

    flight = relationship("Flight", back_populates="bookings", lazy="select")
    # Deleting baggage with its booking is an explicit service decision, never an ORM cascade
    baggage = relationship("Baggage", back_populates="booking", lazy="select", passive_deletes="all")

    def __repr__(self):
        return (f"<Booking(id={self.id}, reference='{self.booking_reference}', "
                f"flight_id={self.flight_id}, seat='{self.seat_number}')>")


class Baggage(Base):
    """
    Baggage model for a tagged item owned by a booking.

    The tag number is generated once and never changes or gets reused.
    """
    __tablename__ = 'baggage'

    id = Column(Integer, primary_key=True, autoincrement=True)

    booking_id = Column(Integer, ForeignKey('bookings.id'), nullable=False, index=True)
    weight_kg = Column(Float, nullable=False)
    baggage_tag = Column(String(8), nullable=False, unique=True, index=True)  # 'BG' + 6 digits
    baggage_type = Column(_enum_column(BaggageType), nullable=False, default=BaggageType.CHECKED)
    status = Column(_enum_column(BaggageStatus), nullable=False, default=BaggageStatus.CHECKED_IN, index=True)

    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now)

    booking = relationship("Booking", back_populates="baggage", lazy="select")

    __table_args__ = (
        CheckConstraint('weight_kg > 0', name='ck_baggage_positive_weight'),
    )

    def __repr__(self):
        return f"<Baggage(id={self.id}, tag='{self.baggage_tag}', status={self.status})>"


class Gate(Base):
    """Gate model; flights reference gates through GateAssignment."""
    __tablename__ = 'gates'

    id = Column(Integer, primary_key=True, autoincrement=True)

    gate_name = Column(String(10), nullable=False, unique=True, index=True)  # e.g. 'G12'
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, default=datetime.now)

    assignments = relationship("GateAssignment", back_populates="gate", lazy="select")

    def __repr__(self):
        return f"<Gate(id={self.id}, name='{self.gate_name}', active={self.is_active})>"


class GateAssignment(Base):
    """A flight occupying a gate for a time window."""
    __tablename__ = 'gate_assignments'

    id = Column(Integer, primary_key=True, autoincrement=True)

    gate_id = Column(Integer, ForeignKey('gates.id'), nullable=False, index=True)
    flight_id = Column(Integer, ForeignKey('flights.id'), nullable=False, index=True)
    assigned_from = Column(DateTime, nullable=False)
    assigned_to = Column(DateTime, nullable=False)

    created_at = Column(DateTime, nullable=False, default=datetime.now)

    gate = relationship("Gate", back_populates="assignments", lazy="select")
    flight = relationship("Flight", back_populates="gate_assignments", lazy="select")

    __table_args__ = (
        CheckConstraint('assigned_from < assigned_to', name='ck_assignment_window'),
    )

    def __repr__(self):
        return f"<GateAssignment(id={self.id}, gate_id={self.gate_id}, flight_id={self.flight_id})>"


class User(Base):
    """Terminal operator account."""
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True, autoincrement=True)

    username = Column(String(50), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(_enum_column(UserRole, length=30), nullable=False)
    full_name = Column(String(100), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, default=datetime.now)

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', role={self.role})>"


class IdentifierSequence(Base):
    """Monotonic counter backing one kind of human-facing identifier."""
    __tablename__ = 'identifier_sequence'

    name = Column(String(30), primary_key=True)
    last_value = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<IdentifierSequence(name='{self.name}', last_value={self.last_value})>"


# One seat per flight; rows with NULL seat_number never collide
Index('idx_booking_flight_seat', Booking.flight_id, Booking.seat_number, unique=True)
Index('idx_flight_number_departure', Flight.flight_no, Flight.departure_time)
Index('idx_assignment_gate_window', GateAssignment.gate_id, GateAssignment.assigned_from, GateAssignment.assigned_to)


def create_all_tables(engine):
    """
    Create all database tables using the provided SQLAlchemy engine.

    Args:
        engine: SQLAlchemy engine instance
    """
    Base.metadata.create_all(bind=engine)


def drop_all_tables(engine):
    """
    Drop all database tables using the provided SQLAlchemy engine.

    Args:
        engine: SQLAlchemy engine instance
    """
    Base.metadata.drop_all(bind=engine)
