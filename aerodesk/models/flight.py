"""
Flight models for the AeroDesk application.

``FlightCreateModel`` validates scheduling input; ``FlightModel`` is the
read-side view returned by the services.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator

from .enums import FlightStatus


class FlightCreateModel(BaseModel):
    """Input for scheduling a new flight."""

    flight_no: str = Field(..., min_length=2, max_length=8, description="Carrier flight number (e.g., 'AA101')")
    origin: str = Field(..., min_length=3, max_length=4, description="Origin airport code")
    destination: str = Field(..., min_length=3, max_length=4, description="Destination airport code")
    departure_time: datetime = Field(..., description="Scheduled departure")
    arrival_time: datetime = Field(..., description="Scheduled arrival")
    aircraft_type: str = Field(..., min_length=1, max_length=30, description="Aircraft model")

    @field_validator("flight_no", "origin", "destination")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("aircraft_type")
    @classmethod
    def strip_aircraft(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @model_validator(mode="after")
    def check_schedule(self) -> "FlightCreateModel":
        if self.departure_time >= self.arrival_time:
            raise ValueError("departure_time must be before arrival_time")
        if self.origin == self.destination:
            raise ValueError("origin and destination must differ")
        return self


class FlightModel(BaseModel):
    """Flight as seen by callers of the services."""
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Flight identifier")
    flight_no: str = Field(..., description="Carrier flight number")
    origin: str = Field(..., description="Origin airport code")
    destination: str = Field(..., description="Destination airport code")
    departure_time: datetime = Field(..., description="Scheduled departure")
    arrival_time: datetime = Field(..., description="Scheduled arrival")
    aircraft_type: str = Field(..., description="Aircraft model")
    status: FlightStatus = Field(..., description="Lifecycle status")
    delay_minutes: int = Field(default=0, ge=0, description="Cumulative delay in minutes")
    created_at: datetime
    updated_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (FlightStatus.ARRIVED, FlightStatus.CANCELLED)
