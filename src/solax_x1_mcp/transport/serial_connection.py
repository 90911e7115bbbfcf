"""RS485 serial connection to the Solax inverter bus.

The bus runs at 9600 baud, 8 data bits, no parity, 1 stop bit. Any
USB-RS485 adapter that shows up as a serial device works, e.g.
``/dev/ttyUSB0`` or ``/dev/tty.usbserial-A10KNFUE``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import serial

logger = logging.getLogger(__name__)

DEFAULT_BAUDRATE = 9600
READ_TIMEOUT_S = 0.5
WRITE_TIMEOUT_S = 1.0


class Transport(Protocol):
    """Byte transport consumed by :class:`~.client.SolaxClient`.

    Implementations raise ``OSError`` (or a subclass) on I/O failure.
    """

    def flush(self) -> None:
        """Discard any pending, unread input."""

    def write(self, data: bytes) -> int:
        """Write *data* and return the number of bytes written."""

    def read_available(self) -> bytes:
        """Return all currently buffered input without blocking; may be empty."""


@dataclass
class SerialSettings:
    """Serial line parameters."""

    device: str = ""
    baudrate: int = DEFAULT_BAUDRATE
    bytesize: int = serial.EIGHTBITS
    parity: str = serial.PARITY_NONE
    stopbits: float = serial.STOPBITS_ONE
    timeout: float = READ_TIMEOUT_S
    write_timeout: float = WRITE_TIMEOUT_S


class SerialConnection:
    """Manages the serial port attached to the RS485 bus.

    Usage::

        with SerialConnection("/dev/ttyUSB0") as conn:
            conn.flush()
            conn.write(frame_bytes)
            response = conn.read_available()
    """

    def __init__(
        self,
        device: str,
        baudrate: int = DEFAULT_BAUDRATE,
        timeout: float = READ_TIMEOUT_S,
    ) -> None:
        self._settings = SerialSettings(device=device, baudrate=baudrate, timeout=timeout)
        self._serial: serial.Serial | None = None

    @property
    def connected(self) -> bool:
        return self._serial is not None and self._serial.is_open

    @property
    def settings(self) -> SerialSettings:
        return self._settings

    def open(self) -> SerialSettings:
        """Open the serial port.

        Returns:
            The settings the port was opened with.

        Raises:
            ConnectionError: If the port cannot be opened.
        """
        s = self._settings
        try:
            self._serial = serial.Serial(
                port=s.device,
                baudrate=s.baudrate,
                bytesize=s.bytesize,
                parity=s.parity,
                stopbits=s.stopbits,
                timeout=s.timeout,
                write_timeout=s.write_timeout,
            )
        except serial.SerialException as e:
            raise ConnectionError(
                f"Could not open serial device {s.device!r} at {s.baudrate} baud: {e}"
            ) from e

        logger.info("Opened %s at %d baud", s.device, s.baudrate)
        return s

    def close(self) -> None:
        """Close the serial port."""
        if self._serial is None:
            return
        try:
            self._serial.close()
        finally:
            self._serial = None
            logger.info("Closed %s", self._settings.device)

    def __enter__(self) -> SerialConnection:
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _port(self) -> serial.Serial:
        if not self.connected:
            raise ConnectionError("Serial port is not open")
        return self._serial

    def flush(self) -> None:
        """Discard stale input left on the bus from earlier exchanges."""
        self._port().reset_input_buffer()

    def write(self, data: bytes) -> int:
        """Write raw bytes to the bus.

        Returns:
            Number of bytes written.
        """
        written = self._port().write(data)
        logger.debug("TX %s", data.hex(" "))
        return written if written is not None else 0

    def read_available(self) -> bytes:
        """Drain and return every byte currently waiting in the input buffer."""
        port = self._port()
        chunks: list[bytes] = []
        while True:
            waiting = port.in_waiting
            if not waiting:
                break
            chunks.append(port.read(waiting))
        data = b"".join(chunks)
        logger.debug("RX %s", data.hex(" ") if data else "(nothing)")
        return data
