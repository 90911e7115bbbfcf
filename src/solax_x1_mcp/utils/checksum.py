"""Additive 16-bit checksum used by the Solax RS485 protocol.

The checksum is the plain sum of every byte, kept in a 16-bit register
that silently wraps around. It is not a CRC: inputs that differ only by
carries beyond bit 15 produce the same value.
"""

from __future__ import annotations

from collections.abc import Iterable


def checksum(data: bytes | Iterable[int]) -> int:
    """Sum all bytes of *data* modulo 65536."""
    total = 0
    for b in data:
        total = (total + b) & 0xFFFF
    return total
