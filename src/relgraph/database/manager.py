"""Database Manager.

Manages the Neo4j connection for a served schema: connection with retry
logic, constraint initialization, session handling and single-transaction
execution of compiled statements.

``DatabaseManager`` is the ``StatementExecutor`` handed to ``GraphEngine``.
Each call to ``execute`` runs all statements of one request in exactly one
managed transaction; any exception raised inside it, including driver errors,
rolls the transaction back and propagates unmodified.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Dict, Generator, List, Optional, Sequence

from neo4j import GraphDatabase
from neo4j.exceptions import AuthError, ServiceUnavailable

from relgraph.database.config import DatabaseSettings
from relgraph.database.exceptions import (
    DatabaseConnectionError,
    SchemaInitializationError,
)
from relgraph.schema.constraints import init_constraints

if TYPE_CHECKING:
    from neo4j import Driver, ManagedTransaction, Session

    from relgraph.schema.descriptors import DescriptorSet
    from relgraph.settings import RelGraphSettings
    from relgraph.translate.statement import CompiledStatement

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Manages the Neo4j driver and runs compiled statements.

    Example:
        >>> with DatabaseManager(DatabaseSettings.with_env_overrides()) as manager:
        ...     manager.initialize_schema(served.descriptors, served.settings)
        ...     engine = GraphEngine(served, executor=manager)
    """

    def __init__(self, settings: Optional[DatabaseSettings] = None):
        """Initialize the database manager.

        Args:
            settings: Connection configuration. If None, uses defaults.
        """
        self._settings = settings or DatabaseSettings()
        self._driver: Optional["Driver"] = None
        self._connected = False

        if not self._settings.encrypted:
            logger.debug(
                "Neo4j connection configured without TLS; "
                "use bolt+s:// or neo4j+s:// URI schemes to encrypt"
            )

    def connect(self) -> "Driver":
        """Establish connection to Neo4j with retry logic.

        Returns the existing driver when already connected. Uses exponential
        backoff between attempts; authentication failures are not retried.

        Returns:
            The Neo4j driver instance.

        Raises:
            DatabaseConnectionError: If connection fails after all retries.
        """
        if self._driver is not None and self._connected:
            return self._driver

        settings = self._settings
        uri = settings.neo4j_uri
        auth = (settings.neo4j_username, settings.neo4j_password.get_secret_value())

        last_error: Optional[Exception] = None
        delay = settings.retry_delay_seconds

        for attempt in range(1, settings.max_connection_retries + 1):
            driver = None
            try:
                logger.debug(
                    f"Connecting to Neo4j at {uri} (attempt {attempt}/"
                    f"{settings.max_connection_retries})"
                )
                driver = GraphDatabase.driver(uri, auth=auth, **settings.to_driver_config())
                driver.verify_connectivity()

                self._driver = driver
                self._connected = True
                logger.info(f"Connected to Neo4j at {uri}")
                return driver

            except AuthError as e:
                if driver is not None:
                    driver.close()
                logger.error(f"Authentication failed for Neo4j at {uri}: {e}")
                raise DatabaseConnectionError(
                    f"Authentication failed for Neo4j at {uri}",
                    uri=uri,
                    attempts=attempt,
                    last_error=e,
                ) from e

            except (ServiceUnavailable, OSError) as e:
                if driver is not None:
                    driver.close()
                last_error = e
                logger.warning(
                    f"Connection attempt {attempt} failed: {e}. "
                    f"Retrying in {delay:.1f}s..."
                )
                if attempt < settings.max_connection_retries:
                    time.sleep(delay)
                    delay *= 2

        logger.error(
            f"Failed to connect to Neo4j at {uri} after "
            f"{settings.max_connection_retries} attempts"
        )
        raise DatabaseConnectionError(
            f"Failed to connect to Neo4j at {uri} after "
            f"{settings.max_connection_retries} attempts",
            uri=uri,
            attempts=settings.max_connection_retries,
            last_error=last_error,
        )

    def disconnect(self) -> None:
        """Close the driver. Safe to call multiple times."""
        if self._driver is not None:
            try:
                self._driver.close()
                logger.info("Disconnected from Neo4j")
            finally:
                self._driver = None
                self._connected = False

    def initialize_schema(
        self,
        descriptors: "DescriptorSet",
        settings: "RelGraphSettings",
    ) -> Dict[str, bool]:
        """Create the constraints and indices a served schema relies on.

        Idempotent: every statement uses ``IF NOT EXISTS``.

        Returns:
            Dictionary mapping constraint/index names to success status.

        Raises:
            SchemaInitializationError: If any element fails.
            DatabaseConnectionError: If not connected.
        """
        driver = self._require_driver()
        try:
            results = init_constraints(
                driver,
                descriptors,
                settings,
                database=self._settings.database,
                skip_on_error=True,
            )
        except Exception as e:
            logger.error(f"Schema initialization failed: {e}")
            raise SchemaInitializationError(f"Schema initialization failed: {e}") from e

        failed = [name for name, success in results.items() if not success]
        if failed:
            raise SchemaInitializationError(
                f"Failed to initialize {len(failed)} schema elements",
                failed_elements=failed,
            )
        return results

    @contextmanager
    def session(self) -> Generator["Session", None, None]:
        """Context manager for database sessions.

        Raises:
            DatabaseConnectionError: If not connected.
        """
        driver = self._require_driver()
        session = driver.session(
            database=self._settings.database,
            fetch_size=self._settings.fetch_size,
        )
        try:
            yield session
        finally:
            session.close()

    def execute(
        self, statements: Sequence["CompiledStatement"], *, write: bool
    ) -> List[List[Dict[str, Any]]]:
        """Run statements in order inside exactly one transaction.

        Each statement's ``verify`` runs before the transaction commits, so a
        failed check rolls back every statement of the request.

        Args:
            statements: Compiled statements of one request
            write: Use a write transaction instead of a read transaction

        Returns:
            The rows of every statement, in statement order.
        """

        def work(tx: "ManagedTransaction") -> List[List[Dict[str, Any]]]:
            results = []
            for statement in statements:
                rows = tx.run(statement.cypher, statement.params).data()
                statement.verify(rows)
                results.append(rows)
            return results

        if not statements:
            return []

        with self.session() as session:
            if write:
                return session.execute_write(work)
            return session.execute_read(work)

    def get_driver(self) -> Optional["Driver"]:
        return self._driver

    @property
    def is_connected(self) -> bool:
        """Check if currently connected to the database."""
        return self._connected and self._driver is not None

    def _require_driver(self) -> "Driver":
        if self._driver is None:
            raise DatabaseConnectionError("Not connected. Call connect() first.")
        return self._driver

    def __enter__(self) -> "DatabaseManager":
        """Enter context manager, establishing connection."""
        self.connect()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit context manager, cleaning up connection."""
        self.disconnect()
