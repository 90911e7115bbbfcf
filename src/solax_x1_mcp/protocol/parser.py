"""Response parsing for inverter messages.

Every parser decodes the frame first, then verifies the control and
function codes before looking at the payload.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..models.device_info import DeviceInfo
from ..models.telemetry import TelemetrySnapshot
from .commands import (
    DEREGISTER,
    DISCOVER,
    QUERY_DEVICE_INFO,
    QUERY_TELEMETRY,
    REGISTER,
    Operation,
    Status,
)
from .errors import (
    DeviceRejected,
    MalformedStatus,
    UnexpectedControlCode,
    UnexpectedFunctionCode,
)
from .framing import Packet, parse_frame


@dataclass
class DiscoveryResponse:
    """Parsed discovery (0x10/0x80) response."""

    serial: bytes

    def __repr__(self) -> str:
        return f"DiscoveryResponse(serial={self.serial.hex().upper()})"


def expect_response(data: bytes, op: Operation) -> Packet:
    """Decode *data* and check it is the response to *op*.

    Raises:
        FramingError: If the bytes are not a valid packet.
        UnexpectedControlCode: Control code differs from the operation's.
        UnexpectedFunctionCode: Function code is not the response code.
    """
    packet = parse_frame(data)
    if packet.control_code != op.control:
        raise UnexpectedControlCode(op.control, packet.control_code)
    if packet.function_code != op.response:
        raise UnexpectedFunctionCode(op.response, packet.function_code)
    return packet


def check_status(packet: Packet) -> None:
    """Validate a single-byte ACK/NACK payload.

    Raises:
        DeviceRejected: The inverter answered NACK.
        MalformedStatus: The payload is not exactly one ACK/NACK byte.
    """
    if len(packet.payload) != 1:
        raise MalformedStatus(packet.payload)
    status = packet.payload[0]
    if status == Status.NACK:
        raise DeviceRejected(packet.function_code)
    if status != Status.ACK:
        raise MalformedStatus(packet.payload)


def parse_discovery(data: bytes) -> DiscoveryResponse:
    """Parse the serial number announced by an unregistered inverter."""
    packet = expect_response(data, DISCOVER)
    return DiscoveryResponse(serial=bytes(packet.payload))


def parse_register(data: bytes) -> None:
    """Parse an address assignment confirmation."""
    check_status(expect_response(data, REGISTER))


def parse_deregister(data: bytes) -> None:
    """Parse an address removal confirmation."""
    check_status(expect_response(data, DEREGISTER))


def parse_telemetry(data: bytes) -> TelemetrySnapshot:
    """Parse a real-time telemetry response into raw counts."""
    packet = expect_response(data, QUERY_TELEMETRY)
    return TelemetrySnapshot.from_payload(packet.payload)


def parse_device_info(data: bytes) -> DeviceInfo:
    """Parse a device specification response."""
    packet = expect_response(data, QUERY_DEVICE_INFO)
    return DeviceInfo.from_payload(packet.payload)
