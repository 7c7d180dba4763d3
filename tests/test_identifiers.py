"""
Tests for the identifier generator: formats, seeding from existing data and
uniqueness under concurrent use.
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from aerodesk.database.models import IdentifierSequence
from aerodesk.exceptions import PersistenceError, ValidationError
from aerodesk.services.identifiers import (
    BAGGAGE_TAG,
    BOOKING_REFERENCE,
    MAX_SEQUENCE_VALUE,
    parse_identifier,
)


class TestFormats:
    """Identifier formats."""

    def test_first_baggage_tag(self, aero):
        assert aero.identifiers.next_baggage_tag() == "BG000001"

    def test_tags_increase(self, aero):
        tags = [aero.identifiers.next_baggage_tag() for _ in range(3)]
        assert tags == ["BG000001", "BG000002", "BG000003"]

    def test_booking_references_have_their_own_sequence(self, aero):
        aero.identifiers.next_baggage_tag()
        aero.identifiers.next_baggage_tag()
        assert aero.identifiers.next_booking_reference() == "BK000001"

    def test_parse_identifier(self):
        assert parse_identifier(BAGGAGE_TAG, "BG000123") == 123
        assert parse_identifier(BOOKING_REFERENCE, "BK999999") == 999999

    @pytest.mark.parametrize("value", ["BG12", "bk000001", "BK0000001", "", None])
    def test_parse_identifier_rejects_malformed(self, value):
        with pytest.raises(ValidationError):
            parse_identifier(BOOKING_REFERENCE, value)


class TestSeeding:
    """Sequence rows created on first use."""

    def test_seeds_after_existing_references(self, aero, flight):
        aero.bookings.create_booking(flight.id, "Legacy Passenger", booking_reference="BK000500")
        assert aero.identifiers.next_booking_reference() == "BK000501"

    def test_explicit_reference_advances_sequence(self, aero, flight):
        first = aero.bookings.create_booking(flight.id, "First")
        aero.bookings.create_booking(flight.id, "Imported", booking_reference="BK000100")
        after = aero.bookings.create_booking(flight.id, "After")

        assert first.booking_reference == "BK000001"
        assert after.booking_reference == "BK000101"

    def test_lower_explicit_reference_does_not_rewind(self, aero, flight):
        aero.bookings.create_booking(flight.id, "Newer", booking_reference="BK000050")
        aero.bookings.create_booking(flight.id, "Older", booking_reference="BK000010")
        assert aero.identifiers.next_booking_reference() == "BK000051"

    def test_exhausted_sequence(self, aero):
        with aero.db.transaction("setup") as uow:
            uow.session.add(IdentifierSequence(name=BAGGAGE_TAG, last_value=MAX_SEQUENCE_VALUE))

        with pytest.raises(PersistenceError):
            aero.identifiers.next_baggage_tag()

    def test_rolled_back_reservation_is_not_kept(self, aero):
        with pytest.raises(RuntimeError):
            with aero.db.transaction("reserve_then_fail") as uow:
                assert aero.identifiers.reserve_baggage_tag(uow) == "BG000001"
                raise RuntimeError("insert failed")

        assert aero.identifiers.next_baggage_tag() == "BG000001"


class TestConcurrency:
    """Uniqueness with many writers sharing one file-backed database."""

    def test_thousand_concurrent_tags_are_unique(self, file_aero):
        with ThreadPoolExecutor(max_workers=8) as pool:
            tags = list(pool.map(lambda _: file_aero.identifiers.next_baggage_tag(), range(1000)))

        assert len(tags) == 1000
        assert len(set(tags)) == 1000
        assert all(tag.startswith("BG") and len(tag) == 8 for tag in tags)
