"""
Relational store setup for AeroDesk.

SQLite is the default (file-backed, or in-memory for tests); MySQL/MariaDB
via PyMySQL and PostgreSQL via psycopg2 are optional extras.

Every workflow operation runs inside ``DatabaseConfig.transaction()``, which
yields a unit of work, commits on success, rolls back on any failure, and
translates SQLAlchemy errors into the AeroDesk persistence errors. Store calls
carry a bounded timeout; timeouts surface as ``PersistenceUnavailable``.
"""

import os
import logging
from typing import Optional, Dict, Any, Iterator
from contextlib import contextmanager

from sqlalchemy import event, text, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.exc import (
    SQLAlchemyError,
    OperationalError,
    InterfaceError,
    IntegrityError,
    DisconnectionError,
    DBAPIError,
    TimeoutError as PoolTimeoutError,
)

from ..exceptions import AeroDeskError, PersistenceError, PersistenceUnavailable
from .models import create_all_tables, drop_all_tables
from .store import UnitOfWork

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0

# DB_TYPE -> (url template, default port, default user)
SERVER_BACKENDS = {
    'mysql': ("mysql+pymysql://{user}:{password}@{host}:{port}/{name}?charset=utf8mb4", '3306', 'root'),
    'mariadb': ("mysql+pymysql://{user}:{password}@{host}:{port}/{name}?charset=utf8mb4", '3306', 'root'),
    'postgresql': ("postgresql://{user}:{password}@{host}:{port}/{name}", '5432', 'postgres'),
}

URL_SCHEMES = ('sqlite', 'mysql', 'postgresql')


def translate_error(error: SQLAlchemyError, operation: str, entity_id: Any = None) -> PersistenceError:
    """
    Map a SQLAlchemy exception onto the AeroDesk persistence errors.

    Connectivity problems and timeouts become the retryable
    ``PersistenceUnavailable``; everything else is a ``PersistenceError``.
    """
    unavailable = (OperationalError, InterfaceError, DisconnectionError, PoolTimeoutError)
    if isinstance(error, unavailable) or (
        isinstance(error, DBAPIError) and error.connection_invalidated
    ):
        return PersistenceUnavailable(
            f"store unavailable: {error.__class__.__name__}: {error}",
            operation=operation,
            entity_id=entity_id,
        )
    if isinstance(error, IntegrityError):
        return PersistenceError(
            f"constraint violated: {error.orig}", operation=operation, entity_id=entity_id
        )
    return PersistenceError(
        f"store error: {error.__class__.__name__}: {error}", operation=operation, entity_id=entity_id
    )


class DatabaseConfig:
    """
    Engine, session factory and transaction boundary for the entity store.

    Created once at process start and handed to the services that need it.
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        echo: bool = False,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        """
        Args:
            database_url: Store URL; built from DATABASE_URL / DB_* variables when omitted
            echo: Log every SQL statement
            timeout_seconds: Upper bound for connection, lock and statement waits
        """
        self.database_url = database_url or self._build_database_url()
        self.echo = echo
        self.timeout_seconds = timeout_seconds
        self.engine: Optional[Engine] = None
        self.SessionLocal: Optional[sessionmaker] = None
        self._is_initialized = False

        self.db_type = self._detect_database_type()
        self.engine_kwargs = self._get_engine_kwargs()

        logger.info(f"Store configured ({self.db_type})")

    @staticmethod
    def _build_database_url() -> str:
        """
        Compose the store URL from the environment.

        DATABASE_URL wins when set. Otherwise DB_TYPE picks the backend
        (sqlite, mysql, mariadb, postgresql) and DB_HOST, DB_PORT, DB_NAME,
        DB_USER, DB_PASSWORD fill in the server details.
        """
        explicit = os.getenv('DATABASE_URL')
        if explicit:
            return explicit

        backend = os.getenv('DB_TYPE', 'sqlite').lower()
        if backend == 'sqlite':
            return f"sqlite:///{os.getenv('DB_NAME', 'aerodesk.db')}"

        if backend not in SERVER_BACKENDS:
            raise ValueError(f"Unsupported database type: {backend}")

        template, default_port, default_user = SERVER_BACKENDS[backend]
        return template.format(
            user=os.getenv('DB_USER', default_user),
            password=os.getenv('DB_PASSWORD', ''),
            host=os.getenv('DB_HOST', 'localhost'),
            port=os.getenv('DB_PORT', default_port),
            name=os.getenv('DB_NAME', 'aerodesk'),
        )

    def _detect_database_type(self) -> str:
        for scheme in URL_SCHEMES:
            if self.database_url.startswith(scheme):
                return scheme
        return 'unknown'

    @property
    def is_memory_database(self) -> bool:
        return self.db_type == 'sqlite' and (
            self.database_url in ('sqlite://', 'sqlite:///:memory:') or 'mode=memory' in self.database_url
        )

    def _get_engine_kwargs(self) -> Dict[str, Any]:
        """
        Engine options per backend, with the store timeout applied to
        connects, pool checkouts, locks and statements.

        Returns:
            Keyword arguments for ``create_engine``
        """
        timeout = self.timeout_seconds
        kwargs: Dict[str, Any] = {
            'echo': self.echo,
            'pool_pre_ping': True,
        }

        if self.db_type == 'sqlite':
            kwargs['connect_args'] = {
                'check_same_thread': False,
                'timeout': timeout,  # Busy wait for the write lock
            }
            if self.is_memory_database:
                # One shared connection, otherwise every checkout sees an empty database
                kwargs['poolclass'] = StaticPool
            else:
                kwargs['pool_timeout'] = timeout

        elif self.db_type in SERVER_BACKENDS:
            kwargs.update({
                'pool_size': int(os.getenv('DB_POOL_SIZE', '10')),
                'max_overflow': int(os.getenv('DB_MAX_OVERFLOW', '20')),
                'pool_timeout': timeout,
                'pool_recycle': int(os.getenv('DB_POOL_RECYCLE', '3600')),
            })

            if self.db_type == 'mysql':
                kwargs['connect_args'] = {
                    'charset': 'utf8mb4',
                    'connect_timeout': int(timeout),
                    'read_timeout': int(timeout),
                    'write_timeout': int(timeout),
                }
            else:
                kwargs['connect_args'] = {
                    'connect_timeout': int(timeout),
                    'options': f"-c statement_timeout={int(timeout * 1000)} "
                               f"-c lock_timeout={int(timeout * 1000)}",
                }

        return kwargs

    def initialize(self) -> None:
        """
        Create the engine and session factory on first use.

        Raises:
            PersistenceUnavailable: If the database cannot be reached
        """
        if self._is_initialized:
            return

        try:
            self.engine = create_engine(self.database_url, **self.engine_kwargs)

            # Listeners must be in place before the first connection is pooled
            self._setup_event_listeners()

            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))

            self.SessionLocal = sessionmaker(
                autocommit=False,
                autoflush=False,
                bind=self.engine,
                expire_on_commit=False  # Keep objects accessible after commit
            )

            self._is_initialized = True
            logger.info(f"Store engine ready ({self.db_type})")

        except SQLAlchemyError as e:
            logger.error(f"Store unreachable at startup: {e}")
            raise translate_error(e, "initialize_database") from e

    def _setup_event_listeners(self) -> None:
        """SQLite only: pragmas per connection and BEGIN IMMEDIATE per transaction."""
        if self.db_type != 'sqlite':
            return

        @event.listens_for(self.engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            """Foreign keys on every connection; WAL for file databases."""
            # Let SQLAlchemy emit BEGIN itself (see begin_immediate)
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            if not self.is_memory_database:
                cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

        @event.listens_for(self.engine, "begin")
        def begin_immediate(conn):
            """Take the write lock up front so concurrent writers queue instead of deadlocking."""
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    def create_tables(self) -> None:
        """
        Create any missing AeroDesk tables.

        Raises:
            PersistenceError: If table creation fails
        """
        if not self._is_initialized:
            self.initialize()

        try:
            create_all_tables(self.engine)
            logger.info("Store tables ready")
        except SQLAlchemyError as e:
            logger.error(f"Table creation failed: {e}")
            raise translate_error(e, "create_tables") from e

    def drop_tables(self) -> None:
        """Drop every AeroDesk table."""
        if not self._is_initialized:
            self.initialize()
        drop_all_tables(self.engine)
        logger.info("Database tables dropped")

    def get_session(self) -> Session:
        """
        Open a session outside the transaction boundary (tests, ad hoc reads).

        Returns:
            A new ``Session``; the caller closes it
        """
        if not self._is_initialized:
            self.initialize()
        return self.SessionLocal()

    @contextmanager
    def transaction(self, operation: str, entity_id: Any = None) -> Iterator[UnitOfWork]:
        """
        Run one workflow operation as a single atomic unit.

        Usage:
            with db_config.transaction("check_in", booking_id) as uow:
                booking = uow.bookings.require(booking_id)
                ...

        Yields:
            UnitOfWork bound to a fresh session; committed on normal exit

        Raises:
            AeroDeskError: Domain errors raised inside the block, with context filled in
            PersistenceError: Store failures, wrapped with operation context
        """
        session = self.get_session()
        try:
            yield UnitOfWork(session)
            session.commit()
        except AeroDeskError as e:
            session.rollback()
            e.with_context(operation, entity_id)
            if not isinstance(e, PersistenceError):
                logger.warning(f"Rejected {e}")
            raise
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Store failure during {operation} [{entity_id}]: {e}")
            raise translate_error(e, operation, entity_id) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def test_connection(self) -> bool:
        """
        Round-trip a ``SELECT 1``.

        Returns:
            Whether the store answered
        """
        try:
            if not self._is_initialized:
                self.initialize()

            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, PersistenceError) as e:
            logger.error(f"Store health check failed: {e}")
            return False

    def get_connection_info(self) -> Dict[str, Any]:
        """
        Store details for ``init-db`` output, credentials stripped.

        Returns:
            Backend, host part of the URL, timeout and pool counters
        """
        info = {
            'database_type': self.db_type,
            'database_url': self.database_url.rsplit('@', 1)[-1],
            'is_initialized': self._is_initialized,
            'echo_enabled': self.echo,
            'timeout_seconds': self.timeout_seconds,
        }

        pool = self.engine.pool if self.engine else None
        if pool is not None and hasattr(pool, 'size'):
            info.update({
                'pool_size': pool.size(),
                'connections_idle': pool.checkedin(),
                'connections_in_use': pool.checkedout(),
            })

        return info

    def close(self) -> None:
        """Dispose of the engine; the next call reinitializes."""
        if self.engine:
            self.engine.dispose()
            self._is_initialized = False
            logger.info("Store connections released")


__all__ = [
    'DatabaseConfig',
    'translate_error',
]
