"""
Identifier generator for baggage tags and booking references.

Values come from one ``identifier_sequence`` row per kind. The row is
incremented with a single ``UPDATE ... SET last_value = last_value + 1`` inside
the caller's transaction, so the reservation commits or rolls back together
with the insert that uses it and two callers can never read the same value.
Gaps are possible (a rolled-back insert burns nothing, a standalone
reservation that is never used does); duplicates are not.
"""

import logging
import re
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from ..database.config import DatabaseConfig
from ..database.models import IdentifierSequence
from ..database.store import UnitOfWork
from ..exceptions import PersistenceError, ValidationError

logger = logging.getLogger(__name__)

BAGGAGE_TAG = "baggage_tag"
BOOKING_REFERENCE = "booking_reference"

IDENTIFIER_FORMATS = {
    BAGGAGE_TAG: "BG{:06d}",
    BOOKING_REFERENCE: "BK{:06d}",
}
IDENTIFIER_PATTERNS = {
    BAGGAGE_TAG: re.compile(r"^BG(\d{6})$"),
    BOOKING_REFERENCE: re.compile(r"^BK(\d{6})$"),
}
MAX_SEQUENCE_VALUE = 999999


def parse_identifier(kind: str, value: str) -> int:
    """Numeric part of a tag or reference, or ``ValidationError`` if malformed."""
    match = IDENTIFIER_PATTERNS[kind].match(value or "")
    if not match:
        raise ValidationError(f"'{value}' is not a valid {kind.replace('_', ' ')}")
    return int(match.group(1))


class IdentifierGenerator:
    """
    Unique, human-readable identifiers backed by store-side sequences.

    The ``reserve_*`` methods run inside an existing unit of work and are what
    the workflows use. ``next_*`` reserve in a transaction of their own.
    """

    def __init__(self, db: DatabaseConfig):
        self.db = db

    def next_baggage_tag(self) -> str:
        with self.db.transaction("next_baggage_tag") as uow:
            return self.reserve_baggage_tag(uow)

    def next_booking_reference(self) -> str:
        with self.db.transaction("next_booking_reference") as uow:
            return self.reserve_booking_reference(uow)

    def reserve_baggage_tag(self, uow: UnitOfWork) -> str:
        return IDENTIFIER_FORMATS[BAGGAGE_TAG].format(self._reserve(uow, BAGGAGE_TAG))

    def reserve_booking_reference(self, uow: UnitOfWork) -> str:
        return IDENTIFIER_FORMATS[BOOKING_REFERENCE].format(self._reserve(uow, BOOKING_REFERENCE))

    def observe(self, uow: UnitOfWork, kind: str, value: str) -> None:
        """
        Advance a sequence past an identifier issued elsewhere.

        Used when a booking arrives with a reference assigned upstream, so the
        generator never hands the same value out later.
        """
        number = parse_identifier(kind, value)
        if self._sequence_value(uow, kind) is None:
            self._seed(uow, kind)
        uow.session.execute(
            update(IdentifierSequence)
            .where(IdentifierSequence.name == kind, IdentifierSequence.last_value < number)
            .values(last_value=number)
            .execution_options(synchronize_session=False)
        )

    def _reserve(self, uow: UnitOfWork, kind: str) -> int:
        result = uow.session.execute(
            update(IdentifierSequence)
            .where(IdentifierSequence.name == kind)
            .values(last_value=IdentifierSequence.last_value + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            value = self._seed(uow, kind, reserve=True)
        else:
            value = self._sequence_value(uow, kind)

        if value is None or value > MAX_SEQUENCE_VALUE:
            raise PersistenceError(f"{kind} sequence exhausted at {value}")

        logger.debug(f"Reserved {kind} #{value}")
        return value

    def _sequence_value(self, uow: UnitOfWork, kind: str) -> Optional[int]:
        return uow.session.scalar(
            select(IdentifierSequence.last_value).where(IdentifierSequence.name == kind)
        )

    def _seed(self, uow: UnitOfWork, kind: str, reserve: bool = False) -> int:
        """
        Create the sequence row on first use, continuing after any identifiers
        already stored so that pre-existing data never collides.
        """
        highest = uow.baggage.max_tag() if kind == BAGGAGE_TAG else uow.bookings.max_reference()
        start = parse_identifier(kind, highest) if highest else 0
        value = start + 1 if reserve else start

        try:
            with uow.session.begin_nested():
                uow.session.add(IdentifierSequence(name=kind, last_value=value))
            logger.info(f"Seeded {kind} sequence at {start}")
            return value
        except IntegrityError:
            # Another writer seeded it first
            if not reserve:
                return self._sequence_value(uow, kind)
            return self._reserve(uow, kind)
