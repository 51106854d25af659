"""relgraph Test Fixtures.

Provides the shared movie schema plus Neo4j fixtures using testcontainers for
real database behavior. Tests that need the database are skipped when
testcontainers, the neo4j driver or Docker are unavailable.

Usage:
    def test_something(engine):
        result = engine.execute("{ movies { title } }")
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Generator, List, Sequence

import pytest
from pydantic import SecretStr

from relgraph.settings import RelGraphSettings

logger = logging.getLogger(__name__)

# Check if testcontainers is available
try:
    from testcontainers.core.container import DockerContainer
    TESTCONTAINERS_AVAILABLE = True
except ImportError:
    TESTCONTAINERS_AVAILABLE = False
    logger.warning(
        "testcontainers not available. Install with: pip install testcontainers[neo4j]"
    )


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


MOVIE_TYPE_DEFS = """
type Movie {
    title: String!
    released: Int
    actors: [Actor!]! @relationship(type: "ACTED_IN", direction: IN, properties: "ActedIn")
    genres: [Genre!]! @relationship(type: "IN_GENRE", direction: OUT)
}

type Actor {
    name: String!
    movies: [Movie!]! @relationship(type: "ACTED_IN", direction: OUT, properties: "ActedIn")
}

type Genre {
    name: String!
}

interface ActedIn @relationshipProperties {
    screenTime: Int!
    role: String
}
"""


@pytest.fixture
def movie_type_defs() -> str:
    return MOVIE_TYPE_DEFS


@pytest.fixture
def settings() -> RelGraphSettings:
    return RelGraphSettings(cursor_secret=SecretStr("test-secret"))


@pytest.fixture
def served(movie_type_defs, settings):
    from relgraph.engine import build_schema

    return build_schema(movie_type_defs, settings)


# ---------------------------------------------------------------------------
# Recording Executor
# ---------------------------------------------------------------------------


class RecordingExecutor:
    """Statement executor returning canned rows and recording every call.

    ``responses`` holds one list of rows per statement, consumed in order.
    """

    def __init__(self, responses: Sequence[List[Dict[str, Any]]] = ()):
        self.responses = list(responses)
        self.calls: List[Dict[str, Any]] = []

    def execute(self, statements, *, write):
        self.calls.append({"statements": list(statements), "write": write})
        results = []
        for statement in statements:
            rows = self.responses.pop(0) if self.responses else []
            statement.verify(rows)
            results.append(rows)
        return results


@pytest.fixture
def recording_executor() -> RecordingExecutor:
    return RecordingExecutor()


# ---------------------------------------------------------------------------
# Skip Markers
# ---------------------------------------------------------------------------


requires_testcontainers = pytest.mark.skipif(
    not TESTCONTAINERS_AVAILABLE,
    reason="testcontainers not installed"
)


def _is_docker_available() -> bool:
    """Check if Docker is available and running."""
    import subprocess
    socket_paths = [
        "/var/run/docker.sock",  # Linux
        os.path.expanduser("~/.docker/run/docker.sock"),  # macOS Docker Desktop
    ]
    if os.environ.get("DOCKER_HOST"):
        return True
    if any(os.path.exists(p) for p in socket_paths):
        return True
    try:
        result = subprocess.run(
            ["docker", "ps"], capture_output=True, timeout=5
        )
        return result.returncode == 0
    except (subprocess.TimeoutExpired, FileNotFoundError):
        return False


requires_docker = pytest.mark.skipif(
    not _is_docker_available(),
    reason="Docker not available"
)


# ---------------------------------------------------------------------------
# Neo4j Container Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def neo4j_container() -> Generator:
    """Provide a Neo4j container for the test session.

    The container is shared across all tests in the session.

    Yields:
        DockerContainer with a ``bolt_url`` attribute
    """
    if not TESTCONTAINERS_AVAILABLE:
        pytest.skip("testcontainers not available")

    import time
    from testcontainers.core.waiting_utils import wait_for_logs

    # Generic DockerContainer avoids coupling to the testcontainers neo4j module
    container = DockerContainer("neo4j:5.15.0-community")
    container.with_env("NEO4J_AUTH", "neo4j/testpassword")
    container.with_exposed_ports(7687, 7474)

    try:
        container.start()
        wait_for_logs(container, "Remote interface available at", timeout=60)
        time.sleep(2)

        host = container.get_container_host_ip()
        port = container.get_exposed_port(7687)
        container.bolt_url = f"bolt://{host}:{port}"

        logger.info(f"Started Neo4j container: {container.bolt_url}")
        yield container
    finally:
        container.stop()
        logger.info("Stopped Neo4j container")


@pytest.fixture(scope="session")
def database_settings(neo4j_container):
    from relgraph.database import DatabaseSettings

    return DatabaseSettings(
        neo4j_uri=neo4j_container.bolt_url,
        neo4j_username="neo4j",
        neo4j_password=SecretStr("testpassword"),
    )


@pytest.fixture(scope="session")
def database_manager(database_settings):
    """Provide a connected DatabaseManager for the test session."""
    from relgraph.database import DatabaseManager

    manager = DatabaseManager(database_settings)
    manager.connect()
    yield manager
    manager.disconnect()


@pytest.fixture(scope="function")
def clean_database(database_manager):
    """Remove all nodes before and after each test."""
    with database_manager.session() as session:
        session.run("MATCH (n) DETACH DELETE n").consume()

    yield

    with database_manager.session() as session:
        session.run("MATCH (n) DETACH DELETE n").consume()


@pytest.fixture(scope="function")
def engine(served, database_manager, clean_database):
    """A GraphEngine over the movie schema backed by the test container."""
    from relgraph.engine import GraphEngine

    database_manager.initialize_schema(served.descriptors, served.settings)
    return GraphEngine(served, executor=database_manager)
