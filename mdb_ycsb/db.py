"""
Workload interface for the benchmark harness.

Defines the contract every database binding implements: five record
operations returning a ``Status``, plus ``init`` / ``cleanup`` hooks called
once per worker thread. Field values travel as ``ByteIterator`` objects.
"""

from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Any, Iterator, Mapping, MutableMapping, MutableSequence


class Status(IntEnum):
    """Result code of a workload operation; zero is success."""

    OK = 0
    ERROR = 1


class ByteIterator:
    """
    Abstract field value.

    Subclasses expose their payload through ``to_array``; iteration yields
    individual byte values.
    """

    def to_array(self) -> bytes:
        raise NotImplementedError

    def __iter__(self) -> Iterator[int]:
        return iter(self.to_array())

    def __len__(self) -> int:
        return len(self.to_array())

    def __str__(self) -> str:
        return self.to_array().decode("utf-8", errors="replace")


class ByteArrayByteIterator(ByteIterator):
    """ByteIterator over an in-memory byte payload."""

    def __init__(self, data: bytes | bytearray) -> None:
        self._data = bytes(data)

    def to_array(self) -> bytes:
        return self._data

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ByteIterator):
            return self._data == other.to_array()
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._data)

    def __repr__(self) -> str:
        return f"ByteArrayByteIterator({self._data!r})"


def to_bytes(value: Any) -> bytes:
    """Coerce a field value to raw bytes (str values are utf-8 encoded)."""
    if isinstance(value, ByteIterator):
        return value.to_array()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    raise TypeError(f"Unsupported field value type: {type(value).__name__}")


Values = Mapping[str, Any]
Result = MutableMapping[str, ByteIterator]


class DB(ABC):
    """
    A layer for accessing a database to be benchmarked.

    One instance is created per harness worker thread. ``init`` is called
    before any operation and ``cleanup`` once the worker is done.

    Example:
        db = SomeBinding({"some.property": "value"})
        db.init()
        db.insert("usertable", "user1", {"field0": b"..."})
        db.cleanup()
    """

    def __init__(self, properties: Mapping[str, str] | None = None) -> None:
        self._properties: dict[str, str] = dict(properties or {})

    @property
    def properties(self) -> dict[str, str]:
        """Harness properties for this instance."""
        return self._properties

    @properties.setter
    def properties(self, value: Mapping[str, str]) -> None:
        self._properties = dict(value)

    def init(self) -> None:  # noqa: B027
        """Initialize any state for this DB instance."""

    def cleanup(self) -> None:  # noqa: B027
        """Clean up any state for this DB instance."""

    @abstractmethod
    def read(
        self,
        table: str,
        key: str,
        fields: set[str] | None,
        result: Result,
    ) -> Status:
        """Read a record; ``fields`` of None means all fields."""

    @abstractmethod
    def scan(
        self,
        table: str,
        start_key: str,
        record_count: int,
        fields: set[str] | None,
        result: MutableSequence[dict[str, ByteIterator]],
    ) -> Status:
        """Read ``record_count`` records in key order starting at ``start_key``."""

    @abstractmethod
    def update(self, table: str, key: str, values: Values) -> Status:
        """Overwrite the given fields of an existing record."""

    @abstractmethod
    def insert(self, table: str, key: str, values: Values) -> Status:
        """Insert a new record."""

    @abstractmethod
    def delete(self, table: str, key: str) -> Status:
        """Delete a record."""
