"""relgraph Feature Configuration.

Pydantic model for construction-time options of the schema build and the
request translator. Database connection settings live separately in
``relgraph.database.config``.

Example:
    >>> settings = RelGraphSettings()
    >>> settings = RelGraphSettings.with_env_overrides()
    >>> settings = RelGraphSettings(relationship_properties_enabled=False)
"""

from __future__ import annotations

import logging
import os
from typing import Any, Optional

from pydantic import BaseModel, Field, SecretStr, field_validator

from relgraph.schema.naming import is_simple_identifier

logger = logging.getLogger(__name__)


class RelGraphSettings(BaseModel):
    """Options controlling schema augmentation and translation.

    Attributes:
        relationship_properties_enabled: Enables validation, connections,
            edges with properties, ``updateConnection`` and ``node(id)``
        sequence_property: Relationship property holding the creation-order
            sequence used as the pagination ordering key
        sequence_label: Label of the counter node issuing sequence values
        cursor_secret: Key used to sign cursors. When unset a random key is
            drawn per built schema, so cursors stay valid only within one
            served schema instance
        max_page_size: Upper bound for ``first``; unbounded when unset
        require_connect_match: Abort the whole mutation when a ``connect`` or
            ``updateConnection`` matches nothing
    """

    relationship_properties_enabled: bool = Field(
        default=True,
        description="Enable the pagination/relationship-property feature",
    )
    sequence_property: str = Field(
        default="_seq",
        min_length=1,
        description="Relationship property storing the creation-order sequence",
    )
    sequence_label: str = Field(
        default="_RelationshipSequence",
        min_length=1,
        description="Label of the sequence counter node",
    )
    cursor_secret: Optional[SecretStr] = Field(
        default=None,
        description="Cursor signing key; random per schema when unset",
    )
    max_page_size: Optional[int] = Field(
        default=None,
        ge=1,
        le=10000,
        description="Largest accepted value for 'first'",
    )
    require_connect_match: bool = Field(
        default=False,
        description="Roll back when connect/updateConnection matches nothing",
    )

    model_config = {
        "validate_assignment": True,
        "extra": "forbid",
    }

    @field_validator("sequence_property", "sequence_label")
    @classmethod
    def _validate_identifier(cls, value: str) -> str:
        """Sequence names are embedded in Cypher and must be plain identifiers."""
        if not is_simple_identifier(value):
            raise ValueError(f"'{value}' is not a valid identifier")
        return value

    @classmethod
    def with_env_overrides(
        cls, base: Optional["RelGraphSettings"] = None
    ) -> "RelGraphSettings":
        """Create settings with environment variable overrides.

        Environment variables:
        - RELGRAPH_RELATIONSHIP_PROPERTIES: relationship_properties_enabled
        - RELGRAPH_SEQUENCE_PROPERTY: sequence_property
        - RELGRAPH_SEQUENCE_LABEL: sequence_label
        - RELGRAPH_CURSOR_SECRET: cursor_secret
        - RELGRAPH_MAX_PAGE_SIZE: max_page_size
        - RELGRAPH_REQUIRE_CONNECT_MATCH: require_connect_match

        Args:
            base: Optional base settings to apply overrides to.

        Returns:
            Settings with environment overrides applied.
        """
        if base is None:
            data: dict[str, Any] = {}
        else:
            data = base.model_dump()
            if base.cursor_secret is not None:
                data["cursor_secret"] = base.cursor_secret.get_secret_value()

        env_mappings = {
            "RELGRAPH_RELATIONSHIP_PROPERTIES": ("relationship_properties_enabled", _parse_bool),
            "RELGRAPH_SEQUENCE_PROPERTY": ("sequence_property", str),
            "RELGRAPH_SEQUENCE_LABEL": ("sequence_label", str),
            "RELGRAPH_CURSOR_SECRET": ("cursor_secret", str),
            "RELGRAPH_MAX_PAGE_SIZE": ("max_page_size", int),
            "RELGRAPH_REQUIRE_CONNECT_MATCH": ("require_connect_match", _parse_bool),
        }

        for env_var, (field_name, cast_type) in env_mappings.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                try:
                    data[field_name] = cast_type(env_value)
                except (ValueError, TypeError):
                    logger.warning(f"Ignoring invalid value for {env_var}")

        return cls.model_validate(data)


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"Not a boolean: {value!r}")
