"""Database Configuration.

Pydantic-based configuration for the Neo4j connection: credentials, pooling
and connection retries.

Example:
    >>> config = DatabaseSettings()
    >>> config = DatabaseSettings.with_env_overrides()
    >>> config = DatabaseSettings(neo4j_uri="bolt://db:7687", max_connection_pool_size=20)
"""

from __future__ import annotations

import logging
import os
from typing import Any, Optional

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator

logger = logging.getLogger(__name__)

SUPPORTED_SCHEMES = ("bolt", "bolt+s", "bolt+ssc", "neo4j", "neo4j+s", "neo4j+ssc")


class DatabaseSettings(BaseModel):
    """Neo4j connection configuration.

    Attributes:
        neo4j_uri: Bolt or neo4j URI of the server
        neo4j_username: Username for basic auth
        neo4j_password: Password for basic auth
        database: Database name; ``None`` uses the server default
        max_connection_pool_size: Maximum connections in the pool
        connection_acquisition_timeout: Seconds to wait for a pooled connection
        max_transaction_retry_time: Seconds the driver retries transient
            transaction failures
        connection_timeout: Seconds to wait for the initial connection
        fetch_size: Records fetched per batch
        max_connection_retries: Attempts for the initial connection
        retry_delay_seconds: Initial delay between attempts (doubles each time)
    """

    neo4j_uri: str = Field(default="bolt://localhost:7687", min_length=1)
    neo4j_username: str = Field(default="neo4j", min_length=1)
    neo4j_password: SecretStr = Field(default=SecretStr("neo4j"))
    database: Optional[str] = Field(default=None, description="Target database name")

    max_connection_pool_size: int = Field(
        default=10,
        ge=1,
        le=200,
        description="Maximum connections in the pool",
    )
    connection_acquisition_timeout: float = Field(
        default=60.0,
        ge=1.0,
        le=300.0,
        description="Seconds to wait for a connection from the pool",
    )
    max_transaction_retry_time: float = Field(
        default=30.0,
        ge=1.0,
        le=120.0,
        description="Maximum time to retry transient transaction failures",
    )
    connection_timeout: float = Field(
        default=30.0,
        ge=1.0,
        le=120.0,
        description="Seconds to wait for initial connection",
    )
    fetch_size: int = Field(
        default=1000,
        ge=100,
        le=10000,
        description="Number of records to fetch per batch",
    )
    max_connection_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum retries for initial connection",
    )
    retry_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        le=30.0,
        description="Initial delay between retries (exponential backoff)",
    )

    model_config = {
        "validate_assignment": True,
        "extra": "forbid",
    }

    @field_validator("neo4j_uri")
    @classmethod
    def _validate_uri(cls, value: str) -> str:
        scheme = value.split("://", 1)[0] if "://" in value else ""
        if scheme not in SUPPORTED_SCHEMES:
            raise ValueError(
                f"Unsupported URI scheme in '{value}'; expected one of {SUPPORTED_SCHEMES}"
            )
        return value

    @model_validator(mode="after")
    def _validate_retry_config(self) -> "DatabaseSettings":
        max_retry_time = self.connection_timeout * self.max_connection_retries
        if max_retry_time < self.retry_delay_seconds:
            raise ValueError(
                f"retry_delay_seconds ({self.retry_delay_seconds}) should be less than "
                f"connection_timeout * max_connection_retries ({max_retry_time})"
            )
        return self

    @property
    def encrypted(self) -> bool:
        return "+s" in self.neo4j_uri.split("://", 1)[0]

    @classmethod
    def with_env_overrides(
        cls, base: Optional["DatabaseSettings"] = None
    ) -> "DatabaseSettings":
        """Create configuration with environment variable overrides.

        Environment variables:
        - RELGRAPH_NEO4J_URI: neo4j_uri
        - RELGRAPH_NEO4J_USERNAME: neo4j_username
        - RELGRAPH_NEO4J_PASSWORD: neo4j_password
        - RELGRAPH_NEO4J_DATABASE: database
        - RELGRAPH_MAX_POOL_SIZE: max_connection_pool_size
        - RELGRAPH_CONNECTION_TIMEOUT: connection_timeout
        - RELGRAPH_FETCH_SIZE: fetch_size
        - RELGRAPH_MAX_CONNECTION_RETRIES: max_connection_retries
        - RELGRAPH_RETRY_DELAY: retry_delay_seconds
        - RELGRAPH_CONNECTION_ACQUISITION_TIMEOUT: connection_acquisition_timeout
        - RELGRAPH_MAX_TRANSACTION_RETRY_TIME: max_transaction_retry_time

        Args:
            base: Optional base configuration to apply overrides to.
                  If None, starts with default configuration.

        Returns:
            Configuration with environment overrides applied.

        Example:
            >>> os.environ["RELGRAPH_MAX_POOL_SIZE"] = "20"
            >>> config = DatabaseSettings.with_env_overrides()
            >>> assert config.max_connection_pool_size == 20
        """
        if base is None:
            data: dict[str, Any] = {}
        else:
            data = base.model_dump()
            data["neo4j_password"] = base.neo4j_password.get_secret_value()

        env_mappings = {
            "RELGRAPH_NEO4J_URI": ("neo4j_uri", str),
            "RELGRAPH_NEO4J_USERNAME": ("neo4j_username", str),
            "RELGRAPH_NEO4J_PASSWORD": ("neo4j_password", str),
            "RELGRAPH_NEO4J_DATABASE": ("database", str),
            "RELGRAPH_MAX_POOL_SIZE": ("max_connection_pool_size", int),
            "RELGRAPH_CONNECTION_TIMEOUT": ("connection_timeout", float),
            "RELGRAPH_FETCH_SIZE": ("fetch_size", int),
            "RELGRAPH_MAX_CONNECTION_RETRIES": ("max_connection_retries", int),
            "RELGRAPH_RETRY_DELAY": ("retry_delay_seconds", float),
            "RELGRAPH_CONNECTION_ACQUISITION_TIMEOUT": (
                "connection_acquisition_timeout",
                float,
            ),
            "RELGRAPH_MAX_TRANSACTION_RETRY_TIME": (
                "max_transaction_retry_time",
                float,
            ),
        }

        for env_var, (field_name, cast_type) in env_mappings.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                try:
                    data[field_name] = cast_type(env_value)
                except (ValueError, TypeError):
                    logger.warning(f"Ignoring invalid value for {env_var}")

        return cls.model_validate(data)

    def to_driver_config(self) -> dict[str, Any]:
        """Convert to Neo4j driver configuration dictionary.

        Example:
            >>> driver = GraphDatabase.driver(uri, auth=auth, **config.to_driver_config())
        """
        return {
            "max_connection_pool_size": self.max_connection_pool_size,
            "connection_acquisition_timeout": self.connection_acquisition_timeout,
            "max_transaction_retry_time": self.max_transaction_retry_time,
            "connection_timeout": self.connection_timeout,
        }
