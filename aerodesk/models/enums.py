"""
Enums for the AeroDesk ground operations core.

Status values are persisted as their string value. Each lifecycle enum is
paired with an explicit transition table in the service that owns it.
"""

from enum import Enum


class FlightStatus(str, Enum):
    """Flight lifecycle states."""
    SCHEDULED = "SCHEDULED"
    BOARDING = "BOARDING"
    DEPARTED = "DEPARTED"
    ARRIVED = "ARRIVED"
    CANCELLED = "CANCELLED"


class CheckInStatus(str, Enum):
    """Booking check-in states."""
    NOT_CHECKED_IN = "NOT_CHECKED_IN"
    CHECKED_IN = "CHECKED_IN"


class BaggageStatus(str, Enum):
    """Baggage handling states."""
    CHECKED_IN = "CHECKED_IN"  # Tagged at the desk
    LOADED = "LOADED"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    LOST = "LOST"


class BaggageType(str, Enum):
    """Baggage categories."""
    CHECKED = "CHECKED"
    CARRY_ON = "CARRY_ON"


class UserRole(str, Enum):
    """Operator roles."""
    CHECK_IN_AGENT = "CHECK_IN_AGENT"
    BAGGAGE_HANDLER = "BAGGAGE_HANDLER"
    GATE_CONTROLLER = "GATE_CONTROLLER"
    ADMINISTRATOR = "ADMINISTRATOR"


class GateDeactivationPolicy(str, Enum):
    """What to do when deactivating a gate that a pending flight still uses."""
    REJECT = "reject"
    REASSIGN = "reassign"


class CancellationCascade(str, Enum):
    """Side effects applied when a flight is cancelled through the orchestrator."""
    NONE = "none"
    RELEASE_GATES = "release_gates"
    RELEASE_GATES_AND_CHECK_INS = "release_gates_and_check_ins"


class KPIStatus(str, Enum):
    """Traffic-light rating for dashboard KPIs."""
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"
    NEUTRAL = "NEUTRAL"


class ExternalDataKind(str, Enum):
    """Lookups served by the external data collaborator."""
    WEATHER = "weather"
    FLIGHT_STATUS = "flight_status"
    AIRPORT_INFO = "airport_info"
    LIVE_TRACKING = "live_tracking"
