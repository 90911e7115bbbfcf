"""Device specification model (response 0x11/0x83).

Payload layout (at least 67 bytes)::

    Off  Len  Field
    0    9    (reserved)
    9    1    phase              integer
    10   6    rated_power        ASCII
    16   5    firmware_version   ASCII
    21   14   module_name        ASCII
    35   14   factory_name       ASCII
    49   14   serial_number      ASCII
    63   4    rated_bus_voltage  ASCII
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

from ..protocol.errors import MalformedPayload

DEVICE_INFO_MIN_SIZE = 67

OFF_PHASE = 9

# (field name, start, end) for the fixed-width text fields
TEXT_FIELDS: tuple[tuple[str, int, int], ...] = (
    ("rated_power", 10, 16),
    ("firmware_version", 16, 21),
    ("module_name", 21, 35),
    ("factory_name", 35, 49),
    ("serial_number", 49, 63),
    ("rated_bus_voltage", 63, 67),
)


def _text(data: bytes) -> str:
    return data.split(b"\x00")[0].decode("ascii", errors="replace").strip()


@dataclass
class DeviceInfo:
    """Static inverter metadata."""

    phase: int = 0
    rated_power: str = ""
    firmware_version: str = ""
    module_name: str = ""
    factory_name: str = ""
    serial_number: str = ""
    rated_bus_voltage: str = ""

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_payload(cls, data: bytes) -> DeviceInfo:
        """Decode a device info payload.

        Raises:
            MalformedPayload: If the payload is shorter than 67 bytes.
        """
        if len(data) < DEVICE_INFO_MIN_SIZE:
            raise MalformedPayload(
                "Device info", DEVICE_INFO_MIN_SIZE, len(data), exact=False
            )
        values = {name: _text(data[start:end]) for name, start, end in TEXT_FIELDS}
        return cls(phase=data[OFF_PHASE], **values)

    def to_payload(self) -> bytes:
        """Serialize to the 67-byte wire layout, space-padding text fields.

        Inverse of :meth:`from_payload`; used to simulate an inverter in tests.
        """
        buf = bytearray(DEVICE_INFO_MIN_SIZE)
        buf[OFF_PHASE] = self.phase & 0xFF
        for name, start, end in TEXT_FIELDS:
            text = getattr(self, name).encode("ascii", errors="replace")[: end - start]
            buf[start:end] = text.ljust(end - start, b" ")
        return bytes(buf)
