"""
Configuration management for MDB_YCSB.

The benchmark harness hands every adapter instance a flat string-to-string
property mapping. ``AdapterConfig.from_properties`` turns it into a validated,
immutable Pydantic model and resolves the write concern and read preference
names into driver objects.

Example:
    config = AdapterConfig.from_properties(
        {
            "mongodb.url": "mongodb://a:27017|mongodb://b:27017",
            "mongodb.writeConcern": "majority",
        }
    )
    config.urls             # ["mongodb://a:27017", "mongodb://b:27017"]
    config.write_concern    # WriteConcern(w="majority")
"""

import os
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pymongo import ReadPreference, WriteConcern

from .constants import (
    BATCH_SIZE_PROPERTY,
    COMPRESSIBILITY_PROPERTY,
    DATABASE_PROPERTY,
    DEFAULT_BATCH_SIZE,
    DEFAULT_COMPRESSIBILITY,
    DEFAULT_DATABASE,
    DEFAULT_MAX_CONNECTIONS,
    DEFAULT_READ_PREFERENCE,
    DEFAULT_URL,
    DEFAULT_WRITE_CONCERN,
    MAX_CONNECTIONS_PROPERTY,
    READ_PREFERENCE_NEAREST,
    READ_PREFERENCE_PRIMARY,
    READ_PREFERENCE_PRIMARY_PREFERRED,
    READ_PREFERENCE_PROPERTY,
    READ_PREFERENCE_SECONDARY,
    READ_PREFERENCE_SECONDARY_PREFERRED,
    SUPPORTED_READ_PREFERENCES,
    SUPPORTED_WRITE_CONCERNS,
    URL_PROPERTY,
    URL_SEPARATOR,
    WRITE_CONCERN_ACKNOWLEDGED,
    WRITE_CONCERN_JOURNALED,
    WRITE_CONCERN_MAJORITY,
    WRITE_CONCERN_PROPERTY,
    WRITE_CONCERN_REPLICA_ACKNOWLEDGED,
    WRITE_CONCERN_UNACKNOWLEDGED,
)
from .exceptions import ConfigurationError

_WRITE_CONCERNS: dict[str, WriteConcern] = {
    WRITE_CONCERN_UNACKNOWLEDGED: WriteConcern(w=0),
    WRITE_CONCERN_ACKNOWLEDGED: WriteConcern(w=1),
    WRITE_CONCERN_JOURNALED: WriteConcern(w=1, j=True),
    WRITE_CONCERN_REPLICA_ACKNOWLEDGED: WriteConcern(w=2),
    WRITE_CONCERN_MAJORITY: WriteConcern(w="majority"),
}

_READ_PREFERENCES: dict[str, Any] = {
    READ_PREFERENCE_PRIMARY: ReadPreference.PRIMARY,
    READ_PREFERENCE_PRIMARY_PREFERRED: ReadPreference.PRIMARY_PREFERRED,
    READ_PREFERENCE_SECONDARY: ReadPreference.SECONDARY,
    READ_PREFERENCE_SECONDARY_PREFERRED: ReadPreference.SECONDARY_PREFERRED,
    READ_PREFERENCE_NEAREST: ReadPreference.NEAREST,
}

# Model field -> harness property key, used to report validation failures
_FIELD_PROPERTIES: dict[str, str] = {
    "urls": URL_PROPERTY,
    "database": DATABASE_PROPERTY,
    "batch_size": BATCH_SIZE_PROPERTY,
    "compressibility": COMPRESSIBILITY_PROPERTY,
    "max_connections": MAX_CONNECTIONS_PROPERTY,
    "write_concern_mode": WRITE_CONCERN_PROPERTY,
    "read_preference_mode": READ_PREFERENCE_PROPERTY,
}


def split_urls(urls: str) -> list[str]:
    """Split a ``|``-delimited endpoint list, dropping blank entries."""
    return [url.strip() for url in urls.split(URL_SEPARATOR) if url.strip()]


class AdapterConfig(BaseModel):
    """
    Validated MongoDB binding configuration.

    Instances are frozen: the first adapter to initialize fixes the
    configuration for every adapter sharing its connection pool.
    """

    model_config = ConfigDict(frozen=True)

    urls: list[str] = Field(
        default_factory=lambda: [DEFAULT_URL],
        min_length=1,
        description="One entry per endpoint, in round-robin order",
    )
    database: str = Field(DEFAULT_DATABASE, min_length=1, description="Target database name")
    # Values of 1 or less mean single inserts
    batch_size: int = Field(DEFAULT_BATCH_SIZE, description="Inserts buffered before a bulk insert")
    # Values of 1 or less leave payloads untouched
    compressibility: float = Field(
        DEFAULT_COMPRESSIBILITY, description="Synthetic payload compressibility factor"
    )
    max_connections: int = Field(
        DEFAULT_MAX_CONNECTIONS, ge=1, description="Connection pool size per host"
    )
    write_concern_mode: str = Field(DEFAULT_WRITE_CONCERN, description="Write concern name")
    read_preference_mode: str = Field(DEFAULT_READ_PREFERENCE, description="Read preference name")

    @field_validator("write_concern_mode", mode="before")
    @classmethod
    def _check_write_concern(cls, value: Any) -> str:
        mode = str(value).strip().lower()
        if mode not in SUPPORTED_WRITE_CONCERNS:
            raise ValueError(
                f"Invalid writeConcern: '{mode}'. "
                f"Must be [ {' | '.join(SUPPORTED_WRITE_CONCERNS)} ]"
            )
        return mode

    @field_validator("read_preference_mode", mode="before")
    @classmethod
    def _check_read_preference(cls, value: Any) -> str:
        mode = str(value).strip().lower()
        if mode not in SUPPORTED_READ_PREFERENCES:
            raise ValueError(
                f"Invalid readPreference: '{mode}'. "
                f"Must be [ {' | '.join(SUPPORTED_READ_PREFERENCES)} ]"
            )
        return mode

    @field_validator("urls", mode="before")
    @classmethod
    def _split_urls(cls, value: Any) -> Any:
        if isinstance(value, str):
            return split_urls(value)
        return value

    @property
    def write_concern(self) -> WriteConcern:
        """Driver write concern for ``write_concern_mode``."""
        return _WRITE_CONCERNS[self.write_concern_mode]

    @property
    def read_preference(self) -> Any:
        """Driver read preference for ``read_preference_mode``."""
        return _READ_PREFERENCES[self.read_preference_mode]

    @property
    def acknowledged(self) -> bool:
        """Whether writes wait for a server acknowledgement."""
        return self.write_concern.acknowledged

    @property
    def batching(self) -> bool:
        """Whether inserts are buffered and sent in bulk."""
        return self.batch_size > 1

    @classmethod
    def from_properties(
        cls,
        properties: Mapping[str, str] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> "AdapterConfig":
        """
        Build a configuration from harness properties.

        ``mongodb.url`` and ``mongodb.database`` fall back to the ``MONGO_URI``
        and ``DB_NAME`` environment variables before the built-in defaults.

        Args:
            properties: Harness property mapping
            environ: Environment mapping (defaults to ``os.environ``)

        Returns:
            Validated AdapterConfig

        Raises:
            ConfigurationError: If any property is invalid
        """
        props = dict(properties or {})
        env = os.environ if environ is None else environ

        raw = {
            "urls": props.get(URL_PROPERTY) or env.get("MONGO_URI") or DEFAULT_URL,
            "database": props.get(DATABASE_PROPERTY) or env.get("DB_NAME") or DEFAULT_DATABASE,
            "batch_size": props.get(BATCH_SIZE_PROPERTY, DEFAULT_BATCH_SIZE),
            "compressibility": props.get(COMPRESSIBILITY_PROPERTY, DEFAULT_COMPRESSIBILITY),
            "max_connections": props.get(MAX_CONNECTIONS_PROPERTY, DEFAULT_MAX_CONNECTIONS),
            "write_concern_mode": props.get(WRITE_CONCERN_PROPERTY, DEFAULT_WRITE_CONCERN),
            "read_preference_mode": props.get(READ_PREFERENCE_PROPERTY, DEFAULT_READ_PREFERENCE),
        }

        try:
            return cls(**raw)
        except ValidationError as e:
            error = e.errors()[0]
            field_name = str(error["loc"][0]) if error.get("loc") else None
            config_key = _FIELD_PROPERTIES.get(field_name, field_name)
            raise ConfigurationError(
                f"ERROR: {error['msg']}",
                config_key=config_key,
                config_value=raw.get(field_name) if field_name else None,
            ) from e
