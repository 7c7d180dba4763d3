"""
Gate assignment service.

Gates are an independent resource pool. Flights occupy a gate for a time
window through ``GateAssignment`` rows. Only assignments of flights that are
still SCHEDULED or BOARDING hold a gate: they block overlapping windows and
keep the gate from being deactivated or deleted.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from ..database.config import DatabaseConfig
from ..database.models import Gate, GateAssignment
from ..database.store import PENDING_FLIGHT_STATUSES, UnitOfWork
from ..exceptions import (
    DependentRecordsExist,
    DuplicateName,
    GateInUse,
    GateScheduleConflict,
    InvalidTransition,
    ValidationError,
)
from ..models.enums import GateDeactivationPolicy
from ..models.gate import GateAssignmentCreateModel, GateAssignmentModel, GateModel, normalize_gate_name
from .common import Clock, parse_input

logger = logging.getLogger(__name__)

# Default window around departure when the caller gives none
DEFAULT_WINDOW_BEFORE = timedelta(minutes=60)
DEFAULT_WINDOW_AFTER = timedelta(minutes=30)


def validate_gate_name(name: str) -> str:
    try:
        return normalize_gate_name(name or "")
    except ValueError as e:
        raise ValidationError(str(e)) from e


class GateAssignmentService:
    """Gate pool management and flight-to-gate assignments."""

    def __init__(self, db: DatabaseConfig, policy: GateDeactivationPolicy = GateDeactivationPolicy.REJECT,
                 clock: Clock = datetime.now):
        """
        Initialize the gate service.

        Args:
            db: Database configuration
            policy: What deactivating a gate that pending flights use does:
                ``reject`` raises GateInUse, ``reassign`` moves the assignments
                to another free active gate
            clock: Source of creation timestamps
        """
        self.db = db
        self.policy = GateDeactivationPolicy(policy)
        self.clock = clock

    # Gate pool

    def create_gate(self, gate_name: str, is_active: bool = True) -> GateModel:
        name = validate_gate_name(gate_name)
        with self.db.transaction("create_gate", name) as uow:
            conflict = DuplicateName(f"gate {name} already exists")
            if uow.gates.get_by_natural_key(name) is not None:
                raise conflict
            gate = uow.gates.create(gate_name=name, is_active=is_active, created_at=self.clock())
            uow.flush(conflict=conflict)
            logger.info(f"Created gate {name} (active={is_active})")
            return GateModel.model_validate(gate)

    def rename_gate(self, gate_id: int, new_name: str) -> GateModel:
        name = validate_gate_name(new_name)
        with self.db.transaction("rename_gate", gate_id) as uow:
            gate = uow.gates.require(gate_id, for_update=True)
            if gate.gate_name == name:
                return GateModel.model_validate(gate)
            conflict = DuplicateName(f"gate {name} already exists")
            existing = uow.gates.get_by_natural_key(name)
            if existing is not None and existing.id != gate.id:
                raise conflict
            old_name = gate.gate_name
            gate.gate_name = name
            uow.flush(conflict=conflict)
            logger.info(f"Renamed gate {old_name} to {name}")
            return GateModel.model_validate(gate)

    def delete_gate(self, gate_id: int) -> bool:
        """Delete a gate no assignment references."""
        with self.db.transaction("delete_gate", gate_id) as uow:
            gate = uow.gates.require(gate_id, for_update=True)
            assignments = uow.gate_assignments.for_gate(gate.id)
            if assignments:
                raise DependentRecordsExist(
                    f"gate {gate.gate_name} is referenced by {len(assignments)} assignment(s)"
                )
            uow.gates.delete(gate)
            uow.flush()
            logger.info(f"Deleted gate {gate.gate_name}")
            return True

    def get_gate(self, gate_id: int) -> GateModel:
        with self.db.transaction("get_gate", gate_id) as uow:
            return GateModel.model_validate(uow.gates.require(gate_id))

    def get_by_name(self, gate_name: str) -> GateModel:
        name = validate_gate_name(gate_name)
        with self.db.transaction("get_gate", name) as uow:
            return GateModel.model_validate(uow.gates.require_by_natural_key(name))

    def list_gates(self, active_only: bool = False) -> List[GateModel]:
        with self.db.transaction("list_gates") as uow:
            gates = uow.gates.active() if active_only else uow.gates.get_all()
            return [GateModel.model_validate(g) for g in gates]

    def gate_in_use(self, gate_id: int) -> bool:
        """True while a SCHEDULED or BOARDING flight is assigned to the gate."""
        with self.db.transaction("gate_in_use", gate_id) as uow:
            uow.gates.require(gate_id)
            return bool(uow.gate_assignments.pending_for_gate(gate_id))

    # Activation

    def set_active(self, gate_id: int, active: bool) -> GateModel:
        """
        Activate or deactivate a gate.

        Raises:
            NotFound: Unknown gate
            GateInUse: Pending flights use the gate and the policy is ``reject``,
                or the policy is ``reassign`` and no other gate is free
        """
        with self.db.transaction("set_gate_active", gate_id) as uow:
            gate = uow.gates.require(gate_id, for_update=True)
            if gate.is_active == active:
                return GateModel.model_validate(gate)

            if not active:
                pending = uow.gate_assignments.pending_for_gate(gate.id)
                if pending:
                    if self.policy == GateDeactivationPolicy.REJECT:
                        raise GateInUse(
                            f"gate {gate.gate_name} is assigned to {len(pending)} pending flight(s)"
                        )
                    self._reassign(uow, gate, pending)

            gate.is_active = active
            uow.flush()
            logger.info(f"Gate {gate.gate_name} {'activated' if active else 'deactivated'}")
            return GateModel.model_validate(gate)

    def _reassign(self, uow: UnitOfWork, gate: Gate, assignments: List[GateAssignment]) -> None:
        candidates = [g for g in uow.gates.active() if g.id != gate.id]
        for assignment in assignments:
            target = next(
                (
                    g for g in candidates
                    if not uow.gate_assignments.overlapping(g.id, assignment.assigned_from, assignment.assigned_to)
                ),
                None,
            )
            if target is None:
                raise GateInUse(
                    f"gate {gate.gate_name} is in use and no free gate can take flight {assignment.flight_id}"
                )
            assignment.gate_id = target.id
            # Later assignments must see this one on its new gate
            uow.flush()
            logger.info(
                f"Moved flight {assignment.flight_id} from gate {gate.gate_name} to {target.gate_name}"
            )

    # Assignments

    def assign_gate(
        self,
        flight_id: int,
        gate_id: int,
        assigned_from: Optional[datetime] = None,
        assigned_to: Optional[datetime] = None,
    ) -> GateAssignmentModel:
        """
        Place a flight at a gate for a time window.

        Without an explicit window the flight occupies the gate from an hour
        before departure until thirty minutes after it.

        Raises:
            NotFound: Unknown flight or gate
            ValidationError: Empty or inverted window
            InvalidTransition: Inactive gate, or the flight has already left
                or been cancelled
            GateScheduleConflict: The window overlaps another pending assignment
        """
        with self.db.transaction("assign_gate", flight_id) as uow:
            flight = uow.flights.require(flight_id, for_update=True)
            # Lock the gate row so overlapping writers queue behind each other
            gate = uow.gates.require(gate_id, for_update=True)

            start = assigned_from or flight.departure_time - DEFAULT_WINDOW_BEFORE
            end = assigned_to or flight.departure_time + DEFAULT_WINDOW_AFTER
            data = parse_input(
                GateAssignmentCreateModel,
                "assign_gate",
                flight_id,
                flight_id=flight.id,
                gate_id=gate.id,
                assigned_from=start,
                assigned_to=end,
            )

            if flight.status not in PENDING_FLIGHT_STATUSES:
                raise InvalidTransition(f"flight {flight.flight_no} is {flight.status.value}; cannot take a gate")
            if not gate.is_active:
                raise InvalidTransition(f"gate {gate.gate_name} is inactive")

            clashes = uow.gate_assignments.overlapping(gate.id, data.assigned_from, data.assigned_to)
            if clashes:
                raise GateScheduleConflict(
                    f"gate {gate.gate_name} is taken between {data.assigned_from:%Y-%m-%d %H:%M} "
                    f"and {data.assigned_to:%Y-%m-%d %H:%M} by flight {clashes[0].flight_id}"
                )

            assignment = uow.gate_assignments.create(
                gate_id=gate.id,
                flight_id=flight.id,
                assigned_from=data.assigned_from,
                assigned_to=data.assigned_to,
                created_at=self.clock(),
            )
            uow.flush()
            logger.info(
                f"Assigned flight {flight.flight_no} to gate {gate.gate_name} "
                f"{data.assigned_from:%H:%M}-{data.assigned_to:%H:%M}"
            )
            return GateAssignmentModel.model_validate(assignment)

    def release_assignment(self, assignment_id: int) -> bool:
        with self.db.transaction("release_assignment", assignment_id) as uow:
            assignment = uow.gate_assignments.require(assignment_id)
            uow.gate_assignments.delete(assignment)
            uow.flush()
            logger.info(f"Released gate assignment {assignment_id} of flight {assignment.flight_id}")
            return True

    def assignments_for_flight(self, flight_id: int) -> List[GateAssignmentModel]:
        with self.db.transaction("assignments_for_flight", flight_id) as uow:
            uow.flights.require(flight_id)
            return [GateAssignmentModel.model_validate(a) for a in uow.gate_assignments.for_flight(flight_id)]

    def assignments_for_gate(self, gate_id: int) -> List[GateAssignmentModel]:
        with self.db.transaction("assignments_for_gate", gate_id) as uow:
            uow.gates.require(gate_id)
            return [GateAssignmentModel.model_validate(a) for a in uow.gate_assignments.for_gate(gate_id)]
