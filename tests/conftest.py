"""Shared test helpers: an in-memory bus transport and response builders."""

from __future__ import annotations

import pytest

from solax_x1_mcp.protocol.commands import Operation
from solax_x1_mcp.protocol.framing import Packet, build_frame
from solax_x1_mcp.transport.client import SolaxClient

SERIAL = bytes.fromhex("58315A4B31303030303031")  # "X1ZK1000001"


class FakeTransport:
    """Transport that replays queued responses and records writes."""

    def __init__(self, responses=(), short_write: bool = False) -> None:
        self.responses = list(responses)
        self.written: list[bytes] = []
        self.flushes = 0
        self.short_write = short_write
        self.read_error: Exception | None = None

    def flush(self) -> None:
        self.flushes += 1

    def write(self, data: bytes) -> int:
        self.written.append(bytes(data))
        return len(data) - 1 if self.short_write else len(data)

    def read_available(self) -> bytes:
        if self.read_error is not None:
            raise self.read_error
        return self.responses.pop(0) if self.responses else b""


def response_frame(op: Operation, payload: bytes = b"", source: int = 0) -> bytes:
    """Encode the response an inverter would send for *op*."""
    return build_frame(
        Packet(
            control_code=op.control,
            function_code=op.response,
            payload=payload,
            source=source,
        )
    )


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def client(transport: FakeTransport) -> SolaxClient:
    return SolaxClient(transport, wait_time=0)
