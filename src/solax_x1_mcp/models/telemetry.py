"""Real-time telemetry model: raw decoding, unit scaling, and fault flags.

The 50-byte telemetry payload (response 0x11/0x82) is laid out as::

    Off  Len  Field                 Raw unit
    0    2    temperature           degC
    2    2    energy_today          0.1 kWh
    4    2    pv1_voltage           0.1 V
    6    2    pv2_voltage           0.1 V
    8    2    pv1_current           0.1 A
    10   2    pv2_current           0.1 A
    12   2    ac_current            0.1 A
    14   2    ac_voltage            0.1 V
    16   2    frequency             0.01 Hz
    18   2    power                 W
    20   2    (unused)
    22   4    energy_total          0.1 kWh
    26   4    runtime_hours         h
    30   2    mode                  code
    32   2    grid_voltage_fault    0.1 V
    34   2    grid_frequency_fault  0.01 Hz
    36   2    dci_fault             mA
    38   2    temperature_fault     degC
    40   2    pv1_voltage_fault     0.1 V
    42   2    pv2_voltage_fault     0.1 V
    44   2    gfc_fault             mA
    46   4    fault_code            bitmask
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field

from ..protocol.errors import MalformedPayload
from ..utils.byteorder import u16_from_bytes, u32_from_bytes

TELEMETRY_SIZE = 50


@dataclass(frozen=True)
class TelemetryField:
    """Location and scale of one field in the telemetry payload.

    ``divisor`` of ``None`` means the value is an integer passed through
    unchanged; any other value converts the raw count to a float.
    """

    name: str
    offset: int
    width: int
    divisor: int | None = None
    unit: str = ""


TELEMETRY_FIELDS: tuple[TelemetryField, ...] = (
    TelemetryField("temperature", 0, 2, None, "C"),
    TelemetryField("energy_today", 2, 2, 10, "kWh"),
    TelemetryField("pv1_voltage", 4, 2, 10, "V"),
    TelemetryField("pv2_voltage", 6, 2, 10, "V"),
    TelemetryField("pv1_current", 8, 2, 10, "A"),
    TelemetryField("pv2_current", 10, 2, 10, "A"),
    TelemetryField("ac_current", 12, 2, 10, "A"),
    TelemetryField("ac_voltage", 14, 2, 10, "V"),
    TelemetryField("frequency", 16, 2, 100, "Hz"),
    TelemetryField("power", 18, 2, None, "W"),
    TelemetryField("energy_total", 22, 4, 10, "kWh"),
    TelemetryField("runtime_hours", 26, 4, None, "h"),
    TelemetryField("mode", 30, 2),
    TelemetryField("grid_voltage_fault", 32, 2, 10, "V"),
    TelemetryField("grid_frequency_fault", 34, 2, 100, "Hz"),
    TelemetryField("dci_fault", 36, 2, 1000, "A"),
    TelemetryField("temperature_fault", 38, 2, 1, "C"),
    TelemetryField("pv1_voltage_fault", 40, 2, 10, "V"),
    TelemetryField("pv2_voltage_fault", 42, 2, 10, "V"),
    TelemetryField("gfc_fault", 44, 2, 1000, "A"),
    TelemetryField("fault_code", 46, 4),
)

# Fields that normalize() copies or scales one-to-one
_SCALED_FIELDS = tuple(
    f for f in TELEMETRY_FIELDS if f.name not in ("mode", "fault_code")
)

OPERATING_MODES: dict[int, str] = {
    0: "Wait",
    1: "Check",
    2: "Normal",
    3: "Fault",
    4: "Permanent Fault",
    5: "Update",
    6: "Selftest",
}

# The device numbers its fault flags from the most significant bit of the
# 32-bit word: entry 0 is bit 31, entry 31 is bit 0. BITnn / bit15 entries
# are reserved flags.
FAULT_FLAGS: tuple[str, ...] = (
    "TzProtectFault",
    "MainsLostFault",
    "GridVoltFault",
    "GridFreqFault",
    "PLLLostFault",
    "BusVoltFault",
    "BIT06",
    "OciFault",
    "Dci_OCP_Fault",
    "ResidualCurrentFault",
    "PvVoltFault",
    "Ac10Mins_Voltage_Fault",
    "IsolationFault",
    "TemperatureOverFault",
    "FanFault",
    "bit15",
    "SpiCommsFault",
    "SciCommsFault",
    "BIT18",
    "InputConfigFault",
    "EepromFault",
    "RelayFault",
    "SampleConsistenceFault",
    "ResidualCurrent_DeviceFault",
    "BIT24",
    "BIT25",
    "BIT26",
    "BIT27",
    "BIT28",
    "DCI_DeviceFault",
    "OtherDeviceFault",
    "BIT31",
)


def read_field(data: bytes, spec: TelemetryField) -> int:
    """Extract one big-endian field from a payload, bounds-checked."""
    end = spec.offset + spec.width
    if end > len(data):
        raise ValueError(
            f"Field {spec.name!r} at {spec.offset}:{end} is outside "
            f"{len(data)}-byte payload"
        )
    chunk = data[spec.offset : end]
    if spec.width == 4:
        return u32_from_bytes(chunk)
    return u16_from_bytes(chunk)


def mode_name(code: int) -> str:
    """Map an operating-mode code to its name, ``Unknown(<code>)`` otherwise."""
    return OPERATING_MODES.get(code, f"Unknown({code})")


def decode_fault_flags(mask: int) -> list[str]:
    """Return the names of all set fault flags, bit 31 first."""
    return [
        name
        for position, name in enumerate(FAULT_FLAGS)
        if mask & (1 << (31 - position))
    ]


@dataclass
class TelemetrySnapshot:
    """Raw telemetry counts as transmitted by the inverter."""

    temperature: int = 0
    energy_today: int = 0
    pv1_voltage: int = 0
    pv2_voltage: int = 0
    pv1_current: int = 0
    pv2_current: int = 0
    ac_current: int = 0
    ac_voltage: int = 0
    frequency: int = 0
    power: int = 0
    energy_total: int = 0
    runtime_hours: int = 0
    mode: int = 0
    grid_voltage_fault: int = 0
    grid_frequency_fault: int = 0
    dci_fault: int = 0
    temperature_fault: int = 0
    pv1_voltage_fault: int = 0
    pv2_voltage_fault: int = 0
    gfc_fault: int = 0
    fault_code: int = 0

    @classmethod
    def from_payload(cls, data: bytes) -> TelemetrySnapshot:
        """Decode a 50-byte telemetry payload.

        Raises:
            MalformedPayload: If the payload is not exactly 50 bytes.
        """
        if len(data) != TELEMETRY_SIZE:
            raise MalformedPayload("Telemetry", TELEMETRY_SIZE, len(data))
        return cls(**{spec.name: read_field(data, spec) for spec in TELEMETRY_FIELDS})

    def to_payload(self) -> bytes:
        """Serialize back to the 50-byte wire layout (unused bytes zeroed).

        Inverse of :meth:`from_payload`; used to simulate an inverter in tests.
        """
        buf = bytearray(TELEMETRY_SIZE)
        for spec in TELEMETRY_FIELDS:
            value = getattr(self, spec.name)
            buf[spec.offset : spec.offset + spec.width] = value.to_bytes(spec.width, "big")
        return bytes(buf)


@dataclass
class NormalizedTelemetry:
    """Telemetry converted to physical units."""

    temperature: int = 0
    energy_today: float = 0.0
    pv1_voltage: float = 0.0
    pv2_voltage: float = 0.0
    pv1_current: float = 0.0
    pv2_current: float = 0.0
    ac_current: float = 0.0
    ac_voltage: float = 0.0
    frequency: float = 0.0
    power: int = 0
    energy_total: float = 0.0
    runtime_hours: int = 0
    mode_code: int = 0
    mode: str = "Wait"
    grid_voltage_fault: float = 0.0
    grid_frequency_fault: float = 0.0
    dci_fault: float = 0.0
    temperature_fault: float = 0.0
    pv1_voltage_fault: float = 0.0
    pv2_voltage_fault: float = 0.0
    gfc_fault: float = 0.0
    faults: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)

    @staticmethod
    def units() -> dict[str, str]:
        """Physical unit of every scaled field, keyed by field name."""
        return {spec.name: spec.unit for spec in _SCALED_FIELDS}


def normalize(raw: TelemetrySnapshot) -> NormalizedTelemetry:
    """Convert raw telemetry counts to physical units.

    Integer fields without a fractional scale (temperature, power,
    runtime hours) pass through unchanged.
    """
    values: dict = {}
    for spec in _SCALED_FIELDS:
        count = getattr(raw, spec.name)
        values[spec.name] = count if spec.divisor is None else count / spec.divisor

    return NormalizedTelemetry(
        **values,
        mode_code=raw.mode,
        mode=mode_name(raw.mode),
        faults=decode_fault_flags(raw.fault_code),
    )
