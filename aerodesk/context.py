"""
Process-wide service container.

``AeroDeskContext.from_config`` is called once at process start and builds
every service with its collaborators. Nothing in the package keeps a global
store, config or cache handle.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .cache.client import PayloadCache
from .cache.config import ValkeyConfig
from .database.config import DatabaseConfig
from .services.baggage import BaggageLifecycleManager
from .services.bookings import BookingService
from .services.cancellation import FlightCancellationOrchestrator
from .services.check_in import CheckInWorkflow
from .services.common import Clock
from .services.dashboard import OperationsDashboard
from .services.external_data import ExternalDataService
from .services.flights import FlightStatusController
from .services.gates import GateAssignmentService
from .services.identifiers import IdentifierGenerator
from .services.seat_allocation import SeatAllocationService
from .services.simulator import BaggageSimulator
from .services.users import UserService
from .utils.config import AeroDeskConfig

logger = logging.getLogger(__name__)


@dataclass
class AeroDeskContext:
    """All services of one AeroDesk process, sharing one database."""

    config: AeroDeskConfig
    db: DatabaseConfig
    identifiers: IdentifierGenerator
    seats: SeatAllocationService
    bookings: BookingService
    check_in: CheckInWorkflow
    baggage: BaggageLifecycleManager
    gates: GateAssignmentService
    flights: FlightStatusController
    cancellation: FlightCancellationOrchestrator
    users: UserService
    dashboard: OperationsDashboard
    external: ExternalDataService
    cache: Optional[PayloadCache] = None

    @classmethod
    def from_config(
        cls,
        config: AeroDeskConfig,
        clock: Clock = datetime.now,
        create_tables: bool = True,
    ) -> "AeroDeskContext":
        """
        Build the container.

        Args:
            config: Loaded configuration
            clock: Source of the current time for every service
            create_tables: Create missing tables on start-up

        Raises:
            PersistenceUnavailable: The database cannot be reached
        """
        db = DatabaseConfig(
            database_url=config.database_url,
            echo=config.database_echo,
            timeout_seconds=config.store_timeout_seconds,
        )
        db.initialize()
        if create_tables:
            db.create_tables()

        cache = None
        if config.external_cache_enabled:
            cache = PayloadCache(ValkeyConfig.from_app_config(config))

        identifiers = IdentifierGenerator(db)
        seats = SeatAllocationService(db)
        flights = FlightStatusController(db, config.require_gate_for_boarding, clock=clock)

        context = cls(
            config=config,
            db=db,
            identifiers=identifiers,
            seats=seats,
            bookings=BookingService(db, identifiers, seats, clock=clock),
            check_in=CheckInWorkflow(db, seats, clock=clock),
            baggage=BaggageLifecycleManager(db, identifiers, config.require_check_in_for_baggage, clock=clock),
            gates=GateAssignmentService(db, config.gate_deactivation_policy, clock=clock),
            flights=flights,
            cancellation=FlightCancellationOrchestrator(db, flights, config.cancellation_cascade),
            users=UserService(db, clock=clock),
            dashboard=OperationsDashboard(db, clock=clock),
            external=ExternalDataService(config, cache=cache, clock=clock),
            cache=cache,
        )
        logger.info(f"AeroDesk context ready ({db.db_type})")
        return context

    def simulator(self, seed: Optional[int] = None) -> BaggageSimulator:
        return BaggageSimulator(self.baggage, seed=seed)

    def close(self) -> None:
        """Release database connections and the cache client."""
        if self.cache is not None:
            self.cache.close()
        self.db.close()
