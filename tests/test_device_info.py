"""Tests for the device info model."""

import pytest

from solax_x1_mcp.models.device_info import DEVICE_INFO_MIN_SIZE, DeviceInfo
from solax_x1_mcp.models.inverter import Inverter
from solax_x1_mcp.protocol.errors import MalformedPayload


def _payload() -> bytearray:
    buf = bytearray(DEVICE_INFO_MIN_SIZE)
    buf[9] = 1
    buf[10:16] = b"3000  "
    buf[16:21] = b"1.10\x00"
    buf[21:35] = b"X1-3.0-S-D    "
    buf[35:49] = b"solax\x00\x00\x00\x00\x00\x00\x00\x00\x00"
    buf[49:63] = b"X1ZK1000001   "
    buf[63:67] = b"360 "
    return buf


def test_from_payload():
    info = DeviceInfo.from_payload(bytes(_payload()))
    assert info.phase == 1
    assert info.rated_power == "3000"
    assert info.firmware_version == "1.10"
    assert info.module_name == "X1-3.0-S-D"
    assert info.factory_name == "solax"
    assert info.serial_number == "X1ZK1000001"
    assert info.rated_bus_voltage == "360"


def test_longer_payload_accepted():
    """Bytes past offset 67 are ignored."""
    info = DeviceInfo.from_payload(bytes(_payload()) + b"\xff" * 10)
    assert info.rated_bus_voltage == "360"


def test_too_short():
    with pytest.raises(MalformedPayload) as exc:
        DeviceInfo.from_payload(bytes(_payload())[:66])
    assert exc.value.expected == 67
    assert exc.value.actual == 66
    assert "at least" in str(exc.value)


def test_non_ascii_replaced():
    payload = _payload()
    payload[16:21] = b"1.\xff0 "
    info = DeviceInfo.from_payload(bytes(payload))
    assert info.firmware_version == "1.\ufffd0"


def test_to_payload_roundtrip():
    info = DeviceInfo.from_payload(bytes(_payload()))
    assert DeviceInfo.from_payload(info.to_payload()) == info


def test_to_dict():
    d = DeviceInfo(phase=1, module_name="X1").to_dict()
    assert d["phase"] == 1
    assert d["module_name"] == "X1"


def test_inverter_defaults_unregistered():
    inv = Inverter(serial=b"\x01\x02")
    assert inv.address == 0
    assert not inv.registered
    assert inv.to_dict() == {"serial": "0102", "address": 0, "registered": False}
