"""
Database package for AeroDesk.

This package provides the SQLAlchemy models, the database configuration with
its transaction boundary, and the repositories that make up the entity store.
"""

from .models import (
    Base,
    Flight,
    Booking,
    Baggage,
    Gate,
    GateAssignment,
    User,
    IdentifierSequence,
    create_all_tables,
    drop_all_tables,
)

from .store import UnitOfWork

from .config import (
    DatabaseConfig,
    translate_error,
)

__all__ = [
    # Models
    'Base',
    'Flight',
    'Booking',
    'Baggage',
    'Gate',
    'GateAssignment',
    'User',
    'IdentifierSequence',
    'create_all_tables',
    'drop_all_tables',

    # Store
    'UnitOfWork',

    # Configuration
    'DatabaseConfig',
    'translate_error',
]
