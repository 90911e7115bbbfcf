"""Control/function code constants and request builders.

Operations are selected by a control code (category) and a function
code. Requests use the low function codes; the matching response sets
bit 7 (e.g. 0x01 -> 0x81).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from .framing import Packet


class ControlCode(IntEnum):
    """Operation categories."""

    REGISTER = 0x10
    READ = 0x11
    WRITE = 0x12
    EXECUTE = 0x13


class Status(IntEnum):
    """Single-byte status carried by registration responses."""

    ACK = 0x06
    NACK = 0x15


@dataclass(frozen=True)
class Operation:
    """A request/response pair in the message catalog."""

    name: str
    control: ControlCode
    request: int
    response: int


DISCOVER = Operation("discover", ControlCode.REGISTER, 0x00, 0x80)
REGISTER = Operation("register", ControlCode.REGISTER, 0x01, 0x81)
DEREGISTER = Operation("deregister", ControlCode.REGISTER, 0x02, 0x82)
QUERY_TELEMETRY = Operation("query_telemetry", ControlCode.READ, 0x02, 0x82)
QUERY_DEVICE_INFO = Operation("query_device_info", ControlCode.READ, 0x03, 0x83)

OPERATIONS: dict[str, Operation] = {
    op.name: op
    for op in (DISCOVER, REGISTER, DEREGISTER, QUERY_TELEMETRY, QUERY_DEVICE_INFO)
}


def _check_address(address: int, minimum: int = 0) -> None:
    if not minimum <= address <= 0xFF:
        raise ValueError(f"Address must be {minimum}-255, got {address}")


def build_request(op: Operation, payload: bytes = b"", address: int = 0) -> Packet:
    """Build a request packet for *op*.

    The target address goes in the low byte of the destination field;
    address 0 is the broadcast/unregistered address.
    """
    _check_address(address)
    return Packet(
        control_code=op.control,
        function_code=op.request,
        payload=bytes(payload),
        destination=address,
    )


def build_discover() -> Packet:
    """Build a query for the next unregistered inverter on the bus."""
    return build_request(DISCOVER)


def build_register(serial: bytes, address: int) -> Packet:
    """Build a request assigning *address* to the inverter with *serial*.

    Args:
        serial: Factory serial as returned by discovery.
        address: New bus address 1-255.
    """
    _check_address(address, minimum=1)
    return build_request(REGISTER, bytes(serial) + bytes([address]))


def build_deregister(serial: bytes, address: int) -> Packet:
    """Build a request removing *address* from the inverter with *serial*."""
    _check_address(address)
    return build_request(DEREGISTER, bytes(serial) + bytes([address]))


def build_query_telemetry(address: int) -> Packet:
    """Build a real-time telemetry query for the inverter at *address*."""
    return build_request(QUERY_TELEMETRY, address=address)


def build_query_device_info(address: int) -> Packet:
    """Build a device specification query for the inverter at *address*."""
    return build_request(QUERY_DEVICE_INFO, address=address)
