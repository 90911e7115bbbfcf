"""Fixed-width big-endian integer helpers.

All multi-byte fields on the Solax bus are transmitted most-significant
byte first.
"""

from __future__ import annotations


def u16_to_bytes(value: int) -> bytes:
    """Encode a 16-bit unsigned value as two bytes, MSB first."""
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"Value must fit in 16 bits, got {value}")
    return value.to_bytes(2, "big")


def u16_from_bytes(data: bytes) -> int:
    """Decode exactly two bytes (MSB first) into an unsigned integer."""
    if len(data) != 2:
        raise ValueError(f"Expected 2 bytes, got {len(data)}")
    return int.from_bytes(data, "big")


def u32_from_bytes(data: bytes) -> int:
    """Decode exactly four bytes (MSB first) into an unsigned integer."""
    if len(data) != 4:
        raise ValueError(f"Expected 4 bytes, got {len(data)}")
    return int.from_bytes(data, "big")
