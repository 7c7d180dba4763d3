"""
Shared constants and builders for the AeroDesk test suite.
"""

from datetime import datetime, timedelta

NOW = datetime(2030, 6, 1, 8, 0)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def make_flight(aero, flight_no="AA101", departure=None, hours=3, origin="JFK", destination="LAX"):
    departure = departure or NOW + timedelta(hours=4)
    return aero.flights.create_flight(
        flight_no, origin, destination, departure, departure + timedelta(hours=hours), "Boeing 737-800"
    )
