"""
Baggage models for the AeroDesk application.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict

from .enums import BaggageStatus, BaggageType


class BaggageCreateModel(BaseModel):
    """Input for registering a bag against a booking."""

    booking_id: int = Field(..., ge=1, description="Owning booking")
    weight_kg: float = Field(..., gt=0, description="Weight in kilograms")
    baggage_type: BaggageType = Field(default=BaggageType.CHECKED, description="Baggage category")


class BaggageModel(BaseModel):
    """Baggage item as seen by callers of the services."""
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Baggage identifier")
    booking_id: int = Field(..., description="Owning booking")
    weight_kg: float = Field(..., gt=0, description="Weight in kilograms")
    baggage_tag: str = Field(..., pattern=r"^BG\d{6}$", description="Tag number")
    baggage_type: BaggageType = Field(..., description="Baggage category")
    status: BaggageStatus = Field(..., description="Handling state")
    created_at: datetime
    updated_at: Optional[datetime] = None
