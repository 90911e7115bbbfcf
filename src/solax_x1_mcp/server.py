"""MCP server entry point for Solax X1 inverters on an RS485 bus.

Exposes tools, resources, and prompts via the Model Context Protocol
using the official Python MCP SDK with stdio transport.

Typical usage:

A. Register each inverter once:
   1. ``connect`` to the USB-RS485 adapter, e.g. ``/dev/ttyUSB0``.
   2. ``find`` returns the serial of the next unregistered inverter.
   3. ``register`` that serial with a unique address between 1 and 255.

B. Poll it with ``info`` (live telemetry) or ``device_info``.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any

from mcp.server.fastmcp import FastMCP

from .models.inverter import Inverter
from .models.telemetry import FAULT_FLAGS, OPERATING_MODES, NormalizedTelemetry, normalize
from .protocol.errors import NoDeviceResponded, SolaxError
from .transport.client import DEFAULT_WAIT_TIME, SolaxClient
from .transport.serial_connection import DEFAULT_BAUDRATE, SerialConnection

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "solax-x1",
    instructions="MCP server for Solax X1 solar inverters on an RS485 bus",
)

MIN_SERIAL_LENGTH = 10

# Global connection state
_connection: SerialConnection | None = None
_client: SolaxClient | None = None


def _get_client() -> SolaxClient:
    """Get the active client, raising if not connected."""
    if _client is None or _connection is None or not _connection.connected:
        raise RuntimeError(
            "Not connected to a serial device. Use the 'connect' tool first."
        )
    return _client


def _error(exc: Exception) -> dict[str, Any]:
    """Convert a protocol or I/O failure into a tool result."""
    kind = exc.kind.value if isinstance(exc, SolaxError) else "io_error"
    logger.warning("%s: %s", kind, exc)
    return {"error": str(exc), "kind": kind}


def _with_raw(result: dict[str, Any], client: SolaxClient, verbose: bool) -> dict[str, Any]:
    if verbose:
        result["raw_response"] = client.last_response.hex().upper()
    return result


def _check_address(address: int, minimum: int = 1) -> dict[str, Any] | None:
    if not minimum <= address <= 255:
        return {"error": f"Address must be between {minimum}-255", "kind": "invalid_argument"}
    return None


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(
    device: str,
    baudrate: int = DEFAULT_BAUDRATE,
    wait_time: float = DEFAULT_WAIT_TIME,
) -> dict[str, Any]:
    """Open the serial device attached to the RS485 bus.

    Args:
        device: Serial device path, e.g. /dev/ttyUSB0.
        baudrate: Line speed (the inverter default is 9600).
        wait_time: Seconds to wait for a response after each request.
    """
    global _connection, _client
    if _connection is not None and _connection.connected:
        return {
            "connected": True,
            "message": "Already connected",
            "device": _connection.settings.device,
        }

    if baudrate <= 0:
        return {"error": f"Baudrate must be positive, got {baudrate}", "kind": "invalid_argument"}
    if wait_time < 0:
        return {"error": f"Wait time must not be negative, got {wait_time}", "kind": "invalid_argument"}

    _connection = None
    _client = None
    try:
        client = SolaxClient.open(device, wait_time=wait_time, baudrate=baudrate)
    except ConnectionError as e:
        return _error(e)
    except ValueError as e:
        logger.warning("invalid_argument: %s", e)
        return {"error": str(e), "kind": "invalid_argument"}

    _client = client
    _connection = client.transport
    settings = _connection.settings
    return {
        "connected": True,
        "device": settings.device,
        "baudrate": settings.baudrate,
        "wait_time": wait_time,
    }


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Close the serial device."""
    global _connection, _client
    if _connection is not None:
        _connection.close()
    _connection = None
    _client = None
    return {"disconnected": True}


# ─── REGISTRATION TOOLS ──────────────────────────────────────────────

@mcp.tool()
def find(verbose: bool = False) -> dict[str, Any]:
    """Find the next unregistered inverter on the bus and return its serial.

    Only one unregistered inverter should be connected while searching.

    Args:
        verbose: Include the raw response bytes.
    """
    client = _get_client()
    try:
        inverter = client.discover()
    except NoDeviceResponded:
        return _with_raw(
            {"found": False, "message": "No unregistered inverters found"},
            client,
            verbose,
        )
    except (SolaxError, OSError) as e:
        return _with_raw(_error(e), client, verbose)

    return _with_raw({"found": True, "serial": inverter.serial.hex().upper()}, client, verbose)


@mcp.tool()
def register(serial: str, address: int, verbose: bool = False) -> dict[str, Any]:
    """Assign a bus address to an unregistered inverter.

    Args:
        serial: Inverter serial as hex, as returned by ``find``.
        address: Unique bus address (1-255).
        verbose: Include the raw response bytes.
    """
    invalid = _check_address(address)
    if invalid:
        return invalid
    try:
        serial_bytes = bytes.fromhex(serial)
    except ValueError:
        return {"error": f"Serial must be hex, got {serial!r}", "kind": "invalid_argument"}
    if len(serial_bytes) < MIN_SERIAL_LENGTH:
        return {"error": "You need to provide a valid serial", "kind": "invalid_argument"}

    client = _get_client()
    inverter = Inverter(serial=serial_bytes)
    try:
        client.register(inverter, address)
    except (SolaxError, OSError) as e:
        return _with_raw(_error(e), client, verbose)

    return _with_raw({"registered": True, **inverter.to_dict()}, client, verbose)


@mcp.tool()
def unregister(address: int, serial: str = "", verbose: bool = False) -> dict[str, Any]:
    """Remove the registration from an inverter.

    Args:
        address: Current bus address (1-255).
        serial: Optional inverter serial as hex.
        verbose: Include the raw response bytes.
    """
    invalid = _check_address(address)
    if invalid:
        return invalid
    try:
        serial_bytes = bytes.fromhex(serial)
    except ValueError:
        return {"error": f"Serial must be hex, got {serial!r}", "kind": "invalid_argument"}

    client = _get_client()
    inverter = Inverter(serial=serial_bytes, address=address)
    try:
        client.deregister(inverter)
    except (SolaxError, OSError) as e:
        return _with_raw(_error(e), client, verbose)

    return _with_raw({"unregistered": True, "address": address}, client, verbose)


# ─── INFORMATION TOOLS ───────────────────────────────────────────────

@mcp.tool()
def info(address: int, verbose: bool = False) -> dict[str, Any]:
    """Get real-time inverter information in physical units.

    Args:
        address: Bus address of the inverter (0-255).
        verbose: Include the raw response bytes.
    """
    invalid = _check_address(address, minimum=0)
    if invalid:
        return invalid

    client = _get_client()
    try:
        raw = client.query_telemetry(Inverter(address=address))
    except (SolaxError, OSError) as e:
        return _with_raw(_error(e), client, verbose)

    result = normalize(raw).to_dict()
    result["units"] = NormalizedTelemetry.units()
    result["last_update"] = datetime.now().isoformat(timespec="seconds")
    return _with_raw(result, client, verbose)


@mcp.tool()
def device_info(address: int, verbose: bool = False) -> dict[str, Any]:
    """Get inverter device details (rated power, firmware, serial number).

    Args:
        address: Bus address of the inverter (0-255).
        verbose: Include the raw response bytes.
    """
    invalid = _check_address(address, minimum=0)
    if invalid:
        return invalid

    client = _get_client()
    try:
        details = client.query_device_info(Inverter(address=address))
    except (SolaxError, OSError) as e:
        return _with_raw(_error(e), client, verbose)

    return _with_raw(details.to_dict(), client, verbose)


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("solax://bus/status")
def resource_bus_status() -> str:
    """Connection state and last transaction state."""
    if _connection is None or not _connection.connected or _client is None:
        return json.dumps({"connected": False})

    settings = _connection.settings
    return json.dumps({
        "connected": True,
        "device": settings.device,
        "baudrate": settings.baudrate,
        "wait_time": _client.wait_time,
        "last_state": _client.state.value,
        "last_response": _client.last_response.hex().upper(),
    })


@mcp.resource("solax://catalog/modes")
def resource_mode_catalog() -> str:
    """Operating mode codes and names."""
    modes = [{"code": code, "name": name} for code, name in OPERATING_MODES.items()]
    return json.dumps({"modes": modes})


@mcp.resource("solax://catalog/faults")
def resource_fault_catalog() -> str:
    """Fault flag names by bit position in the 32-bit fault word."""
    faults = [
        {"bit": 31 - position, "name": name}
        for position, name in enumerate(FAULT_FLAGS)
    ]
    return json.dumps({"faults": faults})


# ─── MCP PROMPTS ─────────────────────────────────────────────────────

@mcp.prompt()
def commission_inverter(device: str, address: int) -> str:
    """Walk through registering a newly installed inverter.

    Args:
        device: Serial device path.
        address: Bus address to assign.
    """
    return f"""Commission a new inverter on {device} with address {address}.
Steps:
- Make sure only the new, unregistered inverter is connected to the bus
- Use the connect tool with device={device}
- Use the find tool and copy the returned serial
- Use the register tool with that serial and address={address}
- Confirm with the info tool at address {address}

If find reports no inverters, check wiring and that the inverter is not
already registered (use unregister first)."""


@mcp.prompt()
def diagnose_faults(address: int) -> str:
    """Read live telemetry and explain any active faults.

    Args:
        address: Bus address of the inverter.
    """
    return f"""Read telemetry for the inverter at address {address} using the info tool.
Explain:
- The operating mode and whether it is expected for the time of day
- Each entry in the faults list (see the solax://catalog/faults resource)
- Grid voltage and frequency relative to the fault thresholds
- PV string voltages and currents, and whether one string looks weak"""


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
