"""
Shared fixtures for the AeroDesk test suite.

Services run against an in-memory SQLite database and a controllable clock
fixed in the future, so "departure not in the past" never depends on the day
the tests run. Concurrency tests use a file-backed database instead.
"""

import pytest

from aerodesk.context import AeroDeskContext
from aerodesk.models.enums import UserRole
from aerodesk.utils.config import AeroDeskConfig

from tests.helpers import NOW, FrozenClock, make_flight


@pytest.fixture
def clock():
    return FrozenClock(NOW)


@pytest.fixture
def config():
    """Configuration with defaults and an in-memory database."""
    return AeroDeskConfig(database_url="sqlite:///:memory:")


@pytest.fixture
def aero(config, clock):
    """Fully wired service container on a fresh in-memory database."""
    context = AeroDeskContext.from_config(config, clock=clock)
    yield context
    context.close()


@pytest.fixture
def file_aero(tmp_path, clock):
    """Service container on a file-backed database, safe for concurrent threads."""
    config = AeroDeskConfig(
        database_url=f"sqlite:///{tmp_path / 'aerodesk.db'}",
        store_timeout_seconds=60,
    )
    context = AeroDeskContext.from_config(config, clock=clock)
    yield context
    context.close()


@pytest.fixture
def flight(aero):
    """Scheduled flight AA101 JFK->LAX departing four hours from NOW."""
    return make_flight(aero)


@pytest.fixture
def booking(aero, flight):
    """Booking BK000042 for J. Doe on AA101."""
    return aero.bookings.create_booking(flight.id, "J. Doe", passport_number="X1234567",
                                        booking_reference="BK000042")


@pytest.fixture
def checked_in(aero, booking):
    return aero.check_in.check_in(booking.id, "14C")


@pytest.fixture
def admin(aero):
    return aero.users.create_user("admin", "s3cret", UserRole.ADMINISTRATOR, "Ada Admin")


@pytest.fixture
def agent(aero):
    return aero.users.create_user("agent", "s3cret", UserRole.CHECK_IN_AGENT, "Carl Agent")
