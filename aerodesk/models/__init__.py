"""
AeroDesk Pydantic models package.

This package contains the Pydantic v2 models used at the service boundary for
input validation and for returning entities to callers.
"""

# Enums
from .enums import (
    FlightStatus,
    CheckInStatus,
    BaggageStatus,
    BaggageType,
    UserRole,
    GateDeactivationPolicy,
    CancellationCascade,
    KPIStatus,
    ExternalDataKind,
)

from .flight import FlightCreateModel, FlightModel
from .booking import BookingCreateModel, BookingModel, normalize_seat_number
from .baggage import BaggageCreateModel, BaggageModel
from .gate import GateModel, GateAssignmentCreateModel, GateAssignmentModel, normalize_gate_name
from .user import UserModel
from .metrics import KPIModel, DashboardSnapshotModel

__all__ = [
    # Enums
    "FlightStatus",
    "CheckInStatus",
    "BaggageStatus",
    "BaggageType",
    "UserRole",
    "GateDeactivationPolicy",
    "CancellationCascade",
    "KPIStatus",
    "ExternalDataKind",

    # Entity models
    "FlightCreateModel",
    "FlightModel",
    "BookingCreateModel",
    "BookingModel",
    "normalize_seat_number",
    "BaggageCreateModel",
    "BaggageModel",
    "GateModel",
    "GateAssignmentCreateModel",
    "GateAssignmentModel",
    "normalize_gate_name",
    "UserModel",

    # Dashboard models
    "KPIModel",
    "DashboardSnapshotModel",
]
