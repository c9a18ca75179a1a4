"""
MDB_YCSB - MongoDB binding for YCSB

Maps the benchmark harness's key/value workload (insert, read, update,
delete, scan) onto MongoDB through pymongo, with round-robin endpoint
selection and a reference-counted shared connection pool.
"""

from .adapter import MongoDbClient
from .compressibility import apply_compressibility
from .config import AdapterConfig
from .db import DB, ByteArrayByteIterator, ByteIterator, Status
from .exceptions import ConfigurationError, InitializationError, MongoDBAdapterError

__version__ = "0.1.0"

__all__ = [
    # Binding
    "MongoDbClient",
    "AdapterConfig",
    "apply_compressibility",
    # Workload interface
    "DB",
    "Status",
    "ByteIterator",
    "ByteArrayByteIterator",
    # Errors
    "MongoDBAdapterError",
    "ConfigurationError",
    "InitializationError",
]
