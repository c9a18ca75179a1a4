"""
Synthetic payload shaping.

Benchmarks of storage-engine compression need payloads whose compressible
share is known. ``apply_compressibility`` zeroes a leading run of each value so
that roughly ``1 - 1/compressibility`` of it is trivially compressible.
"""

import math


def random_length(length: int, compressibility: float) -> int:
    """Number of trailing bytes left untouched, ``round(length / compressibility)``."""
    # Round half up, not Python's half-to-even
    return int(math.floor(length / compressibility + 0.5))


def apply_compressibility(data: bytes, compressibility: float) -> bytes:
    """
    Zero the leading ``len - round(len / compressibility)`` bytes of ``data``.

    The trailing ``round(len / compressibility)`` bytes are returned unchanged.
    Factors of 1 or less, zero and negative ones included, leave the payload
    intact.

    Args:
        data: Payload to shape
        compressibility: Compressibility factor

    Returns:
        Shaped payload of the same length
    """
    if compressibility <= 0:
        return bytes(data)

    compressible_len = len(data) - random_length(len(data), compressibility)
    if compressible_len <= 0:
        return bytes(data)
    return bytes(compressible_len) + bytes(data[compressible_len:])
