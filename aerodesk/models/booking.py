"""
Booking models for the AeroDesk application.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator

from .enums import CheckInStatus

SEAT_NUMBER_MAX_LENGTH = 4


def normalize_seat_number(value: Optional[str]) -> Optional[str]:
    """Strip surrounding whitespace; seat matching stays case-sensitive."""
    if value is None:
        return None
    value = value.strip()
    if not value:
        raise ValueError("seat number must not be blank")
    if len(value) > SEAT_NUMBER_MAX_LENGTH:
        raise ValueError(f"seat number must be at most {SEAT_NUMBER_MAX_LENGTH} characters")
    return value


class BookingCreateModel(BaseModel):
    """Input for creating a booking."""

    flight_id: int = Field(..., ge=1, description="Booked flight")
    passenger_name: str = Field(..., min_length=1, max_length=100, description="Passenger full name")
    passport_number: Optional[str] = Field(None, max_length=20, description="Passport number")
    seat_number: Optional[str] = Field(None, description="Pre-assigned seat (e.g., '14C')")

    @field_validator("passenger_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("passenger name must not be blank")
        return v

    @field_validator("passport_number")
    @classmethod
    def strip_passport(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip().upper() or None

    @field_validator("seat_number")
    @classmethod
    def check_seat(cls, v: Optional[str]) -> Optional[str]:
        return normalize_seat_number(v)


class BookingModel(BaseModel):
    """Booking as seen by callers of the services."""
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Booking identifier")
    flight_id: int = Field(..., description="Booked flight")
    passenger_name: str = Field(..., description="Passenger full name")
    seat_number: Optional[str] = Field(None, description="Assigned seat")
    booking_reference: str = Field(..., description="Human-facing reference (e.g., 'BK000042')")
    passport_number: Optional[str] = Field(None, description="Passport number")
    check_in_status: CheckInStatus = Field(..., description="Check-in state")
    check_in_time: Optional[datetime] = Field(None, description="Instant of check-in")
    created_at: datetime

    @property
    def is_checked_in(self) -> bool:
        return self.check_in_status == CheckInStatus.CHECKED_IN
