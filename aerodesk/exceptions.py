"""
Exception taxonomy for the AeroDesk ground operations core.

Every workflow failure is raised as one of these types. Each error carries the
name of the operation that failed and the id (or natural key) of the entity it
was working on, so callers can render or retry without parsing messages.
"""

from typing import Any, Optional


class AeroDeskError(Exception):
    """Base class for all AeroDesk errors."""

    retryable = False

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        entity_id: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.entity_id = entity_id

    def with_context(self, operation: str, entity_id: Any = None) -> "AeroDeskError":
        """Fill in operation context if the raiser did not provide it."""
        if self.operation is None:
            self.operation = operation
        if self.entity_id is None:
            self.entity_id = entity_id
        return self

    def __str__(self) -> str:
        if self.operation:
            target = f" [{self.entity_id}]" if self.entity_id is not None else ""
            return f"{self.operation}{target}: {self.message}"
        return self.message


class NotFound(AeroDeskError):
    """An entity id or natural key does not resolve."""


class ConflictError(AeroDeskError):
    """A shared resource is already taken."""


class SeatConflict(ConflictError):
    """The seat is already held by another booking on the same flight."""


class DuplicateName(ConflictError):
    """A unique human-facing name is already in use."""


class GateInUse(ConflictError):
    """The gate is assigned to a flight that has not left yet."""


class GateScheduleConflict(ConflictError):
    """The requested gate window overlaps an existing assignment."""


class DependentRecordsExist(ConflictError):
    """The entity is still referenced by other records."""


class InvalidTransition(AeroDeskError):
    """The requested state-machine move is not allowed."""


class TerminalState(AeroDeskError):
    """The entity is in a terminal state and cannot change any further."""


class ValidationError(AeroDeskError):
    """Malformed input."""


class PermissionDenied(AeroDeskError):
    """The operator's role does not allow this operation."""


class PersistenceError(AeroDeskError):
    """The store rejected or failed an operation."""


class PersistenceUnavailable(PersistenceError):
    """The store is unreachable or timed out. Safe to retry."""

    retryable = True


__all__ = [
    "AeroDeskError",
    "NotFound",
    "ConflictError",
    "SeatConflict",
    "DuplicateName",
    "GateInUse",
    "GateScheduleConflict",
    "DependentRecordsExist",
    "InvalidTransition",
    "TerminalState",
    "ValidationError",
    "PermissionDenied",
    "PersistenceError",
    "PersistenceUnavailable",
]
