"""
Operations dashboard KPIs.

A snapshot is computed on demand from the store; nothing is cached between
calls. Thresholds follow the traffic-light conventions of the ops floor:
counts go WARNING/CRITICAL when they get high, percentages go EXCELLENT when
they get high.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from ..database.config import DatabaseConfig
from ..models.enums import BaggageStatus, FlightStatus, KPIStatus
from ..models.metrics import DashboardSnapshotModel, KPIModel
from .common import Clock

logger = logging.getLogger(__name__)

FINISHED_FLIGHT_STATUSES = (FlightStatus.DEPARTED, FlightStatus.ARRIVED)


def status_for_count(count: float, warning: float, critical: float) -> KPIStatus:
    if count >= critical:
        return KPIStatus.CRITICAL
    if count >= warning:
        return KPIStatus.WARNING
    if count > 0:
        return KPIStatus.GOOD
    return KPIStatus.NEUTRAL


def status_for_percentage(part: int, total: int, good: float = 0.8, excellent: float = 0.9) -> KPIStatus:
    if total == 0:
        return KPIStatus.NEUTRAL
    ratio = part / total
    if ratio >= excellent:
        return KPIStatus.EXCELLENT
    if ratio >= good:
        return KPIStatus.GOOD
    return KPIStatus.WARNING


def status_for_delay(minutes: float) -> KPIStatus:
    if minutes <= 5:
        return KPIStatus.EXCELLENT
    if minutes <= 15:
        return KPIStatus.GOOD
    if minutes <= 30:
        return KPIStatus.WARNING
    return KPIStatus.CRITICAL


class OperationsDashboard:
    """Computes the KPI snapshot shown on the operations dashboard."""

    def __init__(self, db: DatabaseConfig, clock: Clock = datetime.now):
        self.db = db
        self.clock = clock

    def snapshot(self, now: Optional[datetime] = None) -> DashboardSnapshotModel:
        """
        Compute every KPI as of ``now``.

        Args:
            now: Reference instant; defaults to the service clock

        Returns:
            Snapshot keyed by KPI id
        """
        now = now or self.clock()
        day_start = datetime.combine(now.date(), datetime.min.time())
        day_end = day_start + timedelta(days=1) - timedelta(microseconds=1)
        hour_ago = now - timedelta(hours=1)

        with self.db.transaction("dashboard_snapshot") as uow:
            today = uow.flights.departing_between(day_start, day_end)
            finished = [f for f in today if f.status in FINISHED_FLIGHT_STATUSES]
            on_time = [f for f in finished if not f.delay_minutes]
            delayed = [f for f in today if f.delay_minutes and f.status != FlightStatus.CANCELLED]
            cancelled = [f for f in today if f.status == FlightStatus.CANCELLED]
            avg_delay = sum(f.delay_minutes for f in delayed) / len(delayed) if delayed else 0.0

            check_ins = uow.bookings.checked_in_since(hour_ago)
            baggage_handled = uow.baggage.updated_since(hour_ago)
            lost_baggage = uow.baggage.count_by_status(BaggageStatus.LOST)
            gates_occupied = uow.gate_assignments.occupied_at(now)
            gates_active = len(uow.gates.active())

        on_time_pct = round(100.0 * len(on_time) / len(finished), 1) if finished else 0.0
        kpis = {
            "total_flights": KPIModel(
                name="Total Flights Today", value=len(today), unit="flights",
                description="Flights departing today",
                status=status_for_count(len(today), 50, 100),
            ),
            "on_time_flights": KPIModel(
                name="On-Time Flights", value=on_time_pct, unit="%",
                description="Departed or arrived flights today without delay",
                status=status_for_percentage(len(on_time), len(finished)),
            ),
            "delayed_flights": KPIModel(
                name="Delayed Flights", value=len(delayed), unit="flights",
                description="Flights today carrying a delay",
                status=status_for_count(len(delayed), 5, 10),
            ),
            "avg_delay": KPIModel(
                name="Average Delay", value=round(avg_delay, 1), unit="minutes",
                description="Average delay of delayed flights today",
                status=status_for_delay(avg_delay) if delayed else KPIStatus.NEUTRAL,
            ),
            "cancelled_flights": KPIModel(
                name="Cancelled Flights", value=len(cancelled), unit="flights",
                description="Flights today that were cancelled",
                status=status_for_count(len(cancelled), 2, 5),
            ),
            "checkins_hour": KPIModel(
                name="Check-ins (Last Hour)", value=check_ins, unit="passengers",
                description="Passengers checked in during the last hour",
                status=status_for_count(check_ins, 50, 100),
            ),
            "baggage_handled": KPIModel(
                name="Baggage Handled", value=baggage_handled, unit="units",
                description="Baggage tagged or moved during the last hour",
                status=status_for_count(baggage_handled, 30, 60),
            ),
            "lost_baggage": KPIModel(
                name="Lost Baggage", value=lost_baggage, unit="units",
                description="Baggage currently marked lost",
                status=status_for_count(lost_baggage, 1, 5),
            ),
            "gates_occupied": KPIModel(
                name="Gates Occupied", value=gates_occupied, unit="gates",
                description=f"Gates in use right now out of {gates_active} active",
                status=status_for_percentage(gates_active - gates_occupied, gates_active, 0.1, 0.3)
                if gates_active else KPIStatus.NEUTRAL,
            ),
            "gates_active": KPIModel(
                name="Active Gates", value=gates_active, unit="gates",
                description="Gates available for assignment",
                status=KPIStatus.GOOD if gates_active else KPIStatus.WARNING,
            ),
        }

        snapshot = DashboardSnapshotModel(generated_at=now, kpis=kpis)
        logger.debug(f"Dashboard snapshot: {snapshot.summary()}")
        return snapshot
