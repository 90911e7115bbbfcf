"""Tests for the MCP tool layer."""

from __future__ import annotations

import json
import sys
from unittest.mock import MagicMock, patch

import pytest

from solax_x1_mcp.models.device_info import DeviceInfo
from solax_x1_mcp.models.telemetry import TelemetrySnapshot
from solax_x1_mcp.protocol.commands import (
    DEREGISTER,
    DISCOVER,
    QUERY_DEVICE_INFO,
    QUERY_TELEMETRY,
    REGISTER,
)
from solax_x1_mcp.transport.client import SolaxClient

from conftest import SERIAL, FakeTransport, response_frame


def _get_server_module():
    """Import server module with FastMCP mocked to avoid init issues."""
    mock_fastmcp_cls = MagicMock()
    mock_fastmcp_instance = MagicMock()
    # Make the @mcp.tool() decorator a no-op that returns the function unchanged
    mock_fastmcp_instance.tool.return_value = lambda fn: fn
    mock_fastmcp_instance.resource.return_value = lambda fn: fn
    mock_fastmcp_instance.prompt.return_value = lambda fn: fn
    mock_fastmcp_cls.return_value = mock_fastmcp_instance

    with patch.dict(sys.modules, {}):
        with patch("mcp.server.fastmcp.FastMCP", mock_fastmcp_cls):
            # Remove cached server module so it re-imports with our mock
            sys.modules.pop("solax_x1_mcp.server", None)
            import solax_x1_mcp.server as server_mod

    return server_mod


def _client(*responses: bytes) -> SolaxClient:
    return SolaxClient(FakeTransport(responses), wait_time=0)


def test_find_returns_serial():
    server = _get_server_module()
    client = _client(response_frame(DISCOVER, SERIAL))

    with patch.object(server, "_get_client", return_value=client):
        result = server.find()

    assert result == {"found": True, "serial": SERIAL.hex().upper()}


def test_find_no_inverter_is_not_an_error():
    server = _get_server_module()
    client = _client()

    with patch.object(server, "_get_client", return_value=client):
        result = server.find(verbose=True)

    assert result["found"] is False
    assert "error" not in result
    assert result["raw_response"] == ""


def test_register_validates_address():
    server = _get_server_module()
    client = _client()

    with patch.object(server, "_get_client", return_value=client):
        result = server.register(SERIAL.hex(), 0)

    assert result["kind"] == "invalid_argument"
    assert client.transport.written == []


def test_register_validates_serial():
    server = _get_server_module()

    assert server.register("not-hex", 5)["kind"] == "invalid_argument"
    assert server.register("0102", 5)["error"] == "You need to provide a valid serial"


def test_register_success():
    server = _get_server_module()
    client = _client(response_frame(REGISTER, b"\x06"))

    with patch.object(server, "_get_client", return_value=client):
        result = server.register(SERIAL.hex(), 5, verbose=True)

    assert result["registered"] is True
    assert result["address"] == 5
    assert result["raw_response"] == response_frame(REGISTER, b"\x06").hex().upper()


def test_register_rejected():
    server = _get_server_module()
    client = _client(response_frame(REGISTER, b"\x15"))

    with patch.object(server, "_get_client", return_value=client):
        result = server.register(SERIAL.hex(), 5)

    assert result["kind"] == "device_rejected"


def test_unregister_success():
    server = _get_server_module()
    client = _client(response_frame(DEREGISTER, b"\x06"))

    with patch.object(server, "_get_client", return_value=client):
        result = server.unregister(5)

    assert result == {"unregistered": True, "address": 5}


def test_info_normalized():
    server = _get_server_module()
    raw = TelemetrySnapshot(ac_voltage=2302, frequency=5001, mode=2, fault_code=1 << 31)
    client = _client(response_frame(QUERY_TELEMETRY, raw.to_payload()))

    with patch.object(server, "_get_client", return_value=client):
        result = server.info(3)

    assert result["mode"] == "Normal"
    assert result["mode_code"] == 2
    assert result["faults"] == ["TzProtectFault"]
    assert result["units"]["ac_voltage"] == "V"
    assert "last_update" in result
    json.dumps(result)


def test_info_protocol_error():
    server = _get_server_module()
    frame = bytearray(response_frame(QUERY_TELEMETRY, bytes(50)))
    frame[-1] ^= 0xFF
    client = _client(bytes(frame))

    with patch.object(server, "_get_client", return_value=client):
        result = server.info(3)

    assert result["kind"] == "checksum_mismatch"


def test_info_silence():
    server = _get_server_module()
    client = _client()

    with patch.object(server, "_get_client", return_value=client):
        result = server.info(3)

    assert result["kind"] == "frame_too_short"


def test_device_info():
    server = _get_server_module()
    info = DeviceInfo(phase=1, rated_power="3000", module_name="X1-3.0-S-D")
    client = _client(response_frame(QUERY_DEVICE_INFO, info.to_payload()))

    with patch.object(server, "_get_client", return_value=client):
        result = server.device_info(3)

    assert result == info.to_dict()


def test_io_error_reported():
    server = _get_server_module()
    client = _client()
    client.transport.read_error = OSError("read failed")

    with patch.object(server, "_get_client", return_value=client):
        result = server.device_info(3)

    assert result == {"error": "read failed", "kind": "io_error"}


def test_tools_require_connection():
    server = _get_server_module()
    with pytest.raises(RuntimeError, match="connect"):
        server.find()


def test_connect_failure():
    server = _get_server_module()
    mock_conn = MagicMock()
    mock_conn.open.side_effect = ConnectionError("Could not open serial device")

    with patch("solax_x1_mcp.transport.client.SerialConnection", return_value=mock_conn):
        result = server.connect("/dev/missing")

    assert result["kind"] == "io_error"
    assert server._connection is None
    assert server._client is None


def test_connect_invalid_baudrate():
    server = _get_server_module()

    with patch("solax_x1_mcp.transport.client.SerialConnection") as mock_cls:
        result = server.connect("/dev/ttyUSB0", baudrate=-1)

    assert result["kind"] == "invalid_argument"
    mock_cls.assert_not_called()
    assert server._connection is None


def test_connect_invalid_wait_time():
    server = _get_server_module()
    result = server.connect("/dev/ttyUSB0", wait_time=-0.1)
    assert result["kind"] == "invalid_argument"


def test_connect_rejected_line_settings():
    """pyserial's ValueError for bad line parameters comes back as a dict."""
    server = _get_server_module()

    with patch(
        "solax_x1_mcp.transport.serial_connection.serial.Serial",
        side_effect=ValueError("Not a valid baudrate: 7"),
    ):
        result = server.connect("/dev/ttyUSB0", baudrate=7)

    assert result == {"error": "Not a valid baudrate: 7", "kind": "invalid_argument"}
    assert server._connection is None
    assert server._client is None


def test_connect_and_disconnect():
    server = _get_server_module()
    mock_conn = MagicMock()
    mock_conn.settings.device = "/dev/ttyUSB0"
    mock_conn.settings.baudrate = 19200

    with patch(
        "solax_x1_mcp.transport.client.SerialConnection", return_value=mock_conn
    ) as mock_cls:
        result = server.connect("/dev/ttyUSB0", baudrate=19200, wait_time=0.5)

    mock_cls.assert_called_once_with("/dev/ttyUSB0", baudrate=19200)
    mock_conn.open.assert_called_once()
    assert result == {
        "connected": True,
        "device": "/dev/ttyUSB0",
        "baudrate": 19200,
        "wait_time": 0.5,
    }
    assert server._client.wait_time == 0.5
    assert server._connection is mock_conn
    assert server.disconnect() == {"disconnected": True}
    mock_conn.close.assert_called_once()
    assert server._client is None


def test_fault_catalog_resource():
    server = _get_server_module()
    faults = json.loads(server.resource_fault_catalog())["faults"]
    assert len(faults) == 32
    assert faults[0] == {"bit": 31, "name": "TzProtectFault"}
    assert faults[-1] == {"bit": 0, "name": "BIT31"}


def test_bus_status_disconnected():
    server = _get_server_module()
    assert json.loads(server.resource_bus_status()) == {"connected": False}
