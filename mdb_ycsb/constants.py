"""
Constants for MDB_YCSB.

Property keys understood by the MongoDB binding, their defaults, and the
accepted write concern / read preference names.
"""

from typing import Final

# ============================================================================
# PROPERTY KEYS
# ============================================================================

URL_PROPERTY: Final[str] = "mongodb.url"
"""Endpoint list, separated by ``|``. URIs and bare host:port are accepted."""

DATABASE_PROPERTY: Final[str] = "mongodb.database"
"""Target database name."""

WRITE_CONCERN_PROPERTY: Final[str] = "mongodb.writeConcern"
"""Write concern mode name."""

READ_PREFERENCE_PROPERTY: Final[str] = "mongodb.readPreference"
"""Read preference mode name."""

BATCH_SIZE_PROPERTY: Final[str] = "batchsize"
"""Number of inserts buffered before a bulk insert is issued."""

COMPRESSIBILITY_PROPERTY: Final[str] = "compressibility"
"""How compressible written payloads are (10 means tenfold)."""

MAX_CONNECTIONS_PROPERTY: Final[str] = "threadcount"
"""Connection pool size per host, sized to the harness thread pool."""

# ============================================================================
# DEFAULTS
# ============================================================================

DEFAULT_URL: Final[str] = "localhost:27017"
DEFAULT_DATABASE: Final[str] = "ycsb"
DEFAULT_WRITE_CONCERN: Final[str] = "acknowledged"
DEFAULT_READ_PREFERENCE: Final[str] = "primary"
DEFAULT_BATCH_SIZE: Final[int] = 1
DEFAULT_COMPRESSIBILITY: Final[float] = 1.0
DEFAULT_MAX_CONNECTIONS: Final[int] = 100

URL_SEPARATOR: Final[str] = "|"
"""Separator between endpoints in the ``mongodb.url`` property."""

URI_SCHEMES: Final[tuple[str, ...]] = ("mongodb://", "mongodb+srv://")
"""Prefixes that mark an endpoint as a connection string rather than host:port."""

APP_NAME: Final[str] = "MDB_YCSB"
"""Application name reported to the server in the handshake."""

# ============================================================================
# WRITE CONCERN / READ PREFERENCE NAMES
# ============================================================================

WRITE_CONCERN_UNACKNOWLEDGED: Final[str] = "unacknowledged"
WRITE_CONCERN_ACKNOWLEDGED: Final[str] = "acknowledged"
WRITE_CONCERN_JOURNALED: Final[str] = "journaled"
WRITE_CONCERN_REPLICA_ACKNOWLEDGED: Final[str] = "replica_acknowledged"
WRITE_CONCERN_MAJORITY: Final[str] = "majority"

SUPPORTED_WRITE_CONCERNS: Final[tuple[str, ...]] = (
    WRITE_CONCERN_UNACKNOWLEDGED,
    WRITE_CONCERN_ACKNOWLEDGED,
    WRITE_CONCERN_JOURNALED,
    WRITE_CONCERN_REPLICA_ACKNOWLEDGED,
    WRITE_CONCERN_MAJORITY,
)

READ_PREFERENCE_PRIMARY: Final[str] = "primary"
READ_PREFERENCE_PRIMARY_PREFERRED: Final[str] = "primary_preferred"
READ_PREFERENCE_SECONDARY: Final[str] = "secondary"
READ_PREFERENCE_SECONDARY_PREFERRED: Final[str] = "secondary_preferred"
READ_PREFERENCE_NEAREST: Final[str] = "nearest"

SUPPORTED_READ_PREFERENCES: Final[tuple[str, ...]] = (
    READ_PREFERENCE_PRIMARY,
    READ_PREFERENCE_PRIMARY_PREFERRED,
    READ_PREFERENCE_SECONDARY,
    READ_PREFERENCE_SECONDARY_PREFERRED,
    READ_PREFERENCE_NEAREST,
)

# ============================================================================
# DOCUMENT CONSTANTS
# ============================================================================

ID_FIELD: Final[str] = "_id"
"""Field the record key is stored under."""

INCLUDE: Final[int] = 1
"""Projection value that includes a field in a response."""

METRIC_PREFIX: Final[str] = "ycsb"
"""Prefix for operation names recorded in the metrics collector."""
