"""
Workflow services for the AeroDesk ground operations core.

Each service receives its collaborators explicitly; ``aerodesk.context``
wires them together once per process.
"""

from .identifiers import IdentifierGenerator
from .seat_allocation import SeatAllocationService
from .check_in import CheckInWorkflow
from .bookings import BookingService
from .baggage import BaggageLifecycleManager, BAGGAGE_TRANSITIONS
from .gates import GateAssignmentService
from .flights import FlightStatusController, FLIGHT_TRANSITIONS
from .cancellation import FlightCancellationOrchestrator, CancellationOutcome
from .users import UserService, require_role
from .dashboard import OperationsDashboard
from .simulator import BaggageSimulator
from .external_data import ExternalDataService

__all__ = [
    "IdentifierGenerator",
    "SeatAllocationService",
    "CheckInWorkflow",
    "BookingService",
    "BaggageLifecycleManager",
    "BAGGAGE_TRANSITIONS",
    "GateAssignmentService",
    "FlightStatusController",
    "FLIGHT_TRANSITIONS",
    "FlightCancellationOrchestrator",
    "CancellationOutcome",
    "UserService",
    "require_role",
    "OperationsDashboard",
    "BaggageSimulator",
    "ExternalDataService",
]
