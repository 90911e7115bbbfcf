"""Synchronous client driving one request/response exchange at a time.

Each transaction walks through::

    IDLE -> SENT -> WAITING -> READ_DONE -> PARSED
                                         \\-> FAILED

The bus has no sequence numbers or multiplexing, so exactly one request
may be outstanding. The client always sleeps the full dwell interval
before reading and never retries; any error is re-raised unchanged after
the state is set to ``FAILED``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from enum import Enum
from typing import TypeVar

from ..models.device_info import DeviceInfo
from ..models.inverter import BROADCAST_ADDRESS, Inverter
from ..models.telemetry import TelemetrySnapshot
from ..protocol.commands import (
    build_deregister,
    build_discover,
    build_query_device_info,
    build_query_telemetry,
    build_register,
)
from ..protocol.errors import IncompleteWrite, NoDeviceResponded
from ..protocol.framing import Packet, build_frame
from ..protocol.parser import (
    parse_deregister,
    parse_device_info,
    parse_discovery,
    parse_register,
    parse_telemetry,
)
from .serial_connection import SerialConnection, Transport

logger = logging.getLogger(__name__)

DEFAULT_WAIT_TIME = 0.25  # seconds between request and response read

T = TypeVar("T")


class TransactionState(str, Enum):
    IDLE = "idle"
    SENT = "sent"
    WAITING = "waiting"
    READ_DONE = "read_done"
    PARSED = "parsed"
    FAILED = "failed"


class SolaxClient:
    """Talks to Solax X1 inverters over a shared bus.

    Args:
        transport: Anything implementing flush/write/read_available.
        wait_time: Dwell interval in seconds between writing a request
            and reading the response.
    """

    def __init__(self, transport: Transport, wait_time: float = DEFAULT_WAIT_TIME) -> None:
        self.transport = transport
        self.wait_time = wait_time
        self.last_response: bytes = b""
        self.state = TransactionState.IDLE

    @classmethod
    def open(cls, device: str, wait_time: float = DEFAULT_WAIT_TIME, **kwargs) -> SolaxClient:
        """Open a serial device and return a client bound to it."""
        conn = SerialConnection(device, **kwargs)
        conn.open()
        return cls(conn, wait_time=wait_time)

    # ─── TRANSACTION ─────────────────────────────────────────────────

    def send(self, data: bytes) -> None:
        """Write *data* in full.

        Raises:
            IncompleteWrite: If the transport wrote fewer bytes.
        """
        written = self.transport.write(data)
        if written != len(data):
            raise IncompleteWrite(len(data), written)

    def read(self) -> bytes:
        """Wait the dwell interval, then read everything available."""
        time.sleep(self.wait_time)
        self.last_response = self.transport.read_available()
        return self.last_response

    def transact(
        self,
        request: Packet,
        parser: Callable[[bytes], T],
        *,
        silence_allowed: bool = False,
    ) -> T:
        """Run one exchange and return the parsed response.

        Args:
            request: Packet to send.
            parser: Response parser for the matching operation.
            silence_allowed: Report an empty read as
                :class:`NoDeviceResponded` instead of passing it to the
                parser (which rejects it as a short frame).
        """
        self.state = TransactionState.IDLE
        self.last_response = b""
        try:
            self.transport.flush()
            data = build_frame(request)
            logger.debug("Request %r", request)
            self.send(data)
            self.state = TransactionState.SENT

            self.state = TransactionState.WAITING
            response = self.read()
            self.state = TransactionState.READ_DONE

            if not response and silence_allowed:
                raise NoDeviceResponded()
            result = parser(response)
        except Exception:
            self.state = TransactionState.FAILED
            raise

        self.state = TransactionState.PARSED
        return result

    # ─── REGISTRATION ────────────────────────────────────────────────

    def discover(self) -> Inverter:
        """Find the next unregistered inverter (address 0) on the bus.

        If several unregistered inverters share the bus they answer at
        once and the response is garbled; register them one at a time.

        Raises:
            NoDeviceResponded: Nothing answered.
        """
        resp = self.transact(build_discover(), parse_discovery, silence_allowed=True)
        logger.info("Found unregistered inverter %s", resp.serial.hex().upper())
        return Inverter(serial=resp.serial, address=BROADCAST_ADDRESS)

    def register(self, inverter: Inverter, address: int) -> Inverter:
        """Assign *address* (1-255) to *inverter*.

        On success ``inverter.address`` is updated in place.

        Raises:
            DeviceRejected: The inverter answered NACK.
        """
        if inverter is None:
            raise ValueError("Inverter must not be None")
        self.transact(build_register(inverter.serial, address), parse_register)
        inverter.address = address
        logger.info("Registered %s at address %d", inverter.serial.hex().upper(), address)
        return inverter

    def deregister(self, inverter: Inverter) -> Inverter:
        """Remove the bus address from *inverter*; its address becomes 0."""
        if inverter is None:
            raise ValueError("Inverter must not be None")
        self.transact(
            build_deregister(inverter.serial, inverter.address), parse_deregister
        )
        logger.info("Deregistered inverter at address %d", inverter.address)
        inverter.address = BROADCAST_ADDRESS
        return inverter

    # ─── INFORMATION ─────────────────────────────────────────────────

    def query_telemetry(self, inverter: Inverter) -> TelemetrySnapshot:
        """Read raw real-time telemetry; see :func:`solax_x1_mcp.models.telemetry.normalize`."""
        if inverter is None:
            raise ValueError("Inverter must not be None")
        return self.transact(build_query_telemetry(inverter.address), parse_telemetry)

    def query_device_info(self, inverter: Inverter) -> DeviceInfo:
        """Read static device specifications."""
        if inverter is None:
            raise ValueError("Inverter must not be None")
        return self.transact(build_query_device_info(inverter.address), parse_device_info)
