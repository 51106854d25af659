"""Tests for Database Configuration.

Tests DatabaseSettings Pydantic model including:
- Default values
- Boundary value validation
- Environment variable overrides
- Driver configuration
"""

from __future__ import annotations

from unittest import mock

import pytest
from pydantic import SecretStr, ValidationError

from relgraph.database import DatabaseSettings


class TestDatabaseSettingsDefaults:
    def test_default_values(self):
        config = DatabaseSettings()

        assert config.neo4j_uri == "bolt://localhost:7687"
        assert config.neo4j_username == "neo4j"
        assert config.database is None
        assert config.max_connection_pool_size == 10
        assert config.fetch_size == 1000
        assert config.max_connection_retries == 3
        assert config.retry_delay_seconds == 1.0

    def test_password_is_secret(self):
        config = DatabaseSettings(neo4j_password=SecretStr("hunter2"))

        assert "hunter2" not in repr(config)


class TestDatabaseSettingsValidation:
    def test_pool_size_boundaries(self):
        DatabaseSettings(max_connection_pool_size=1)
        DatabaseSettings(max_connection_pool_size=200)

        with pytest.raises(ValidationError):
            DatabaseSettings(max_connection_pool_size=0)
        with pytest.raises(ValidationError):
            DatabaseSettings(max_connection_pool_size=201)

    @pytest.mark.parametrize(
        "uri",
        ["bolt://db:7687", "neo4j+s://db.example.com", "bolt+ssc://localhost:7687"],
    )
    def test_supported_uri_schemes(self, uri):
        assert DatabaseSettings(neo4j_uri=uri).neo4j_uri == uri

    @pytest.mark.parametrize("uri", ["http://db:7474", "localhost:7687"])
    def test_unsupported_uri_schemes(self, uri):
        with pytest.raises(ValidationError):
            DatabaseSettings(neo4j_uri=uri)

    def test_encrypted_follows_scheme(self):
        assert DatabaseSettings(neo4j_uri="neo4j+s://db").encrypted is True
        assert DatabaseSettings(neo4j_uri="bolt://db").encrypted is False

    def test_retry_delay_longer_than_total_timeout_rejected(self):
        with pytest.raises(ValidationError):
            DatabaseSettings(
                connection_timeout=1.0, max_connection_retries=1, retry_delay_seconds=5.0
            )

    def test_extra_fields_rejected(self):
        with pytest.raises(ValidationError):
            DatabaseSettings(chroma_path="/tmp")


class TestDatabaseSettingsEnvOverrides:
    def test_overrides_applied(self):
        env = {
            "RELGRAPH_NEO4J_URI": "neo4j://graph:7687",
            "RELGRAPH_NEO4J_PASSWORD": "s3cret",
            "RELGRAPH_NEO4J_DATABASE": "movies",
            "RELGRAPH_MAX_POOL_SIZE": "20",
        }
        with mock.patch.dict("os.environ", env, clear=False):
            config = DatabaseSettings.with_env_overrides()

        assert config.neo4j_uri == "neo4j://graph:7687"
        assert config.neo4j_password.get_secret_value() == "s3cret"
        assert config.database == "movies"
        assert config.max_connection_pool_size == 20

    def test_invalid_number_ignored(self):
        with mock.patch.dict("os.environ", {"RELGRAPH_FETCH_SIZE": "lots"}, clear=False):
            config = DatabaseSettings.with_env_overrides()

        assert config.fetch_size == 1000

    def test_base_password_preserved(self):
        base = DatabaseSettings(neo4j_password=SecretStr("kept"))

        with mock.patch.dict("os.environ", {"RELGRAPH_MAX_POOL_SIZE": "5"}, clear=False):
            config = DatabaseSettings.with_env_overrides(base)

        assert config.neo4j_password.get_secret_value() == "kept"
        assert config.max_connection_pool_size == 5


class TestDriverConfig:
    def test_to_driver_config(self):
        config = DatabaseSettings(max_connection_pool_size=7, connection_timeout=12.0)

        driver_config = config.to_driver_config()

        assert driver_config["max_connection_pool_size"] == 7
        assert driver_config["connection_timeout"] == 12.0
        assert set(driver_config) == {
            "max_connection_pool_size",
            "connection_acquisition_timeout",
            "max_transaction_retry_time",
            "connection_timeout",
        }
