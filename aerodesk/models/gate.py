"""
Gate and gate assignment models for the AeroDesk application.
"""

from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator


def normalize_gate_name(value: str) -> str:
    value = value.strip().upper()
    if not value:
        raise ValueError("gate name must not be blank")
    if len(value) > 10:
        raise ValueError("gate name must be at most 10 characters")
    return value


class GateModel(BaseModel):
    """Gate resource."""
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Gate identifier")
    gate_name: str = Field(..., description="Unique gate name (e.g., 'G12')")
    is_active: bool = Field(..., description="Whether the gate can take flights")
    created_at: datetime


class GateAssignmentCreateModel(BaseModel):
    """Input for placing a flight at a gate."""

    flight_id: int = Field(..., ge=1)
    gate_id: int = Field(..., ge=1)
    assigned_from: datetime
    assigned_to: datetime

    @model_validator(mode="after")
    def check_window(self) -> "GateAssignmentCreateModel":
        if self.assigned_from >= self.assigned_to:
            raise ValueError("assigned_from must be before assigned_to")
        return self


class GateAssignmentModel(BaseModel):
    """A flight occupying a gate for a time window."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    gate_id: int
    flight_id: int
    assigned_from: datetime
    assigned_to: datetime
    created_at: datetime
