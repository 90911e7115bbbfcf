"""Packet builder and parser for the Solax X1 RS485 envelope.

Packet layout::

    +--------+--------+-------------+---------+----------+--------+-----------+----------+
    | Header | Source | Destination | Control | Function | Length |  Payload  | Checksum |
    | 2 B    | 2 B    | 2 B         | 1 B     | 1 B      | 1 B    | 0..255 B  | 2 B      |
    +--------+--------+-------------+---------+----------+--------+-----------+----------+

- Header: always 0xAA55
- Source / Destination: big-endian; inverter addresses use the low byte
- Length: number of payload bytes
- Checksum: additive 16-bit sum of every preceding byte, big-endian
"""

from __future__ import annotations

from dataclasses import dataclass

from ..utils.byteorder import u16_from_bytes, u16_to_bytes
from ..utils.checksum import checksum
from .errors import (
    BadHeader,
    ChecksumMismatch,
    FrameTooShort,
    LengthMismatch,
    PayloadTooLarge,
)

HEADER = 0xAA55
MAX_PAYLOAD = 0xFF  # length field is a single byte
OVERHEAD = 11  # header(2) + src(2) + dst(2) + ctrl(1) + func(1) + len(1) + cs(2)


@dataclass
class Packet:
    """A single protocol packet."""

    control_code: int = 0
    function_code: int = 0
    payload: bytes = b""
    source: int = 0x0000
    destination: int = 0x0000
    header: int = HEADER

    def __repr__(self) -> str:
        return (
            f"Packet(header=0x{self.header:04X}, source=0x{self.source:04X}, "
            f"destination=0x{self.destination:04X}, "
            f"control=0x{self.control_code:02X}, function=0x{self.function_code:02X}, "
            f"payload={self.payload.hex(' ') if self.payload else '(empty)'})"
        )


def build_frame(packet: Packet) -> bytes:
    """Serialize a packet to wire bytes, appending the checksum.

    Raises:
        PayloadTooLarge: If the payload exceeds 255 bytes.
    """
    payload = bytes(packet.payload)
    if len(payload) > MAX_PAYLOAD:
        raise PayloadTooLarge(MAX_PAYLOAD, len(payload))

    body = (
        u16_to_bytes(packet.header)
        + u16_to_bytes(packet.source)
        + u16_to_bytes(packet.destination)
        + bytes([packet.control_code, packet.function_code, len(payload)])
        + payload
    )
    return body + u16_to_bytes(checksum(body))


def parse_frame(data: bytes) -> Packet:
    """Parse wire bytes into a Packet.

    Checks run in a fixed order and the first failure is raised; nothing
    is returned for a frame that fails any of them.

    Raises:
        FrameTooShort: Fewer than 11 bytes.
        LengthMismatch: Declared payload length disagrees with the size.
        ChecksumMismatch: Trailing checksum does not match the content.
        BadHeader: First two bytes are not 0xAA55.
    """
    data = bytes(data)
    if len(data) < OVERHEAD:
        raise FrameTooShort(OVERHEAD, len(data))

    length = data[8]
    if len(data) != length + OVERHEAD:
        raise LengthMismatch(length + OVERHEAD, len(data))

    declared = u16_from_bytes(data[-2:])
    computed = checksum(data[:-2])
    if declared != computed:
        raise ChecksumMismatch(declared, computed)

    header = u16_from_bytes(data[0:2])
    if header != HEADER:
        raise BadHeader(HEADER, header)

    return Packet(
        header=header,
        source=u16_from_bytes(data[2:4]),
        destination=u16_from_bytes(data[4:6]),
        control_code=data[6],
        function_code=data[7],
        payload=data[9 : 9 + length],
    )
