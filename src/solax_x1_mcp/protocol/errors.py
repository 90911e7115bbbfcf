"""Exception hierarchy for protocol, response, and transaction failures.

Every error carries a ``kind`` from the closed :class:`ErrorKind`
enumeration plus the structured context that produced it, so callers can
branch on the kind instead of matching message strings::

    SolaxError
    ├── FramingError        FrameTooShort, LengthMismatch, ChecksumMismatch,
    │                       BadHeader, PayloadTooLarge
    ├── ResponseError       UnexpectedControlCode, UnexpectedFunctionCode,
    │                       MalformedStatus, MalformedPayload, DeviceRejected
    ├── NoDeviceResponded
    └── IncompleteWrite

Errors raised by the transport itself (``OSError`` and pyserial's
``SerialException``) are not wrapped.
"""

from __future__ import annotations

from enum import Enum
from typing import ClassVar


class ErrorKind(str, Enum):
    """Closed set of error kinds reported by the library."""

    FRAME_TOO_SHORT = "frame_too_short"
    LENGTH_MISMATCH = "length_mismatch"
    CHECKSUM_MISMATCH = "checksum_mismatch"
    BAD_HEADER = "bad_header"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    UNEXPECTED_CONTROL_CODE = "unexpected_control_code"
    UNEXPECTED_FUNCTION_CODE = "unexpected_function_code"
    MALFORMED_STATUS = "malformed_status"
    MALFORMED_PAYLOAD = "malformed_payload"
    DEVICE_REJECTED = "device_rejected"
    NO_DEVICE_RESPONDED = "no_device_responded"
    INCOMPLETE_WRITE = "incomplete_write"


class SolaxError(Exception):
    """Base exception for all library errors."""

    kind: ClassVar[ErrorKind]


class _ExpectedActualError(SolaxError):
    """Error carrying an expected and an actual value."""

    def __init__(self, expected: int, actual: int, message: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(message)


# ─── FRAMING ─────────────────────────────────────────────────────────


class FramingError(SolaxError):
    """The bytes do not form a valid packet."""


class FrameTooShort(FramingError, _ExpectedActualError):
    kind = ErrorKind.FRAME_TOO_SHORT

    def __init__(self, minimum: int, actual: int) -> None:
        super().__init__(
            minimum,
            actual,
            f"Minimum packet size is {minimum} bytes, got {actual} bytes",
        )


class LengthMismatch(FramingError, _ExpectedActualError):
    kind = ErrorKind.LENGTH_MISMATCH

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            expected,
            actual,
            f"Packet specifies length of {expected}, but got {actual} instead",
        )


class ChecksumMismatch(FramingError, _ExpectedActualError):
    kind = ErrorKind.CHECKSUM_MISMATCH

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            expected,
            actual,
            f"Checksum mismatch: packet specifies 0x{expected:04X}, "
            f"computed 0x{actual:04X}",
        )


class BadHeader(FramingError, _ExpectedActualError):
    kind = ErrorKind.BAD_HEADER

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            expected,
            actual,
            f"Header mismatch: expected 0x{expected:04X}, got 0x{actual:04X}",
        )


class PayloadTooLarge(FramingError, _ExpectedActualError):
    kind = ErrorKind.PAYLOAD_TOO_LARGE

    def __init__(self, maximum: int, actual: int) -> None:
        super().__init__(
            maximum,
            actual,
            f"Payload length is limited to {maximum} bytes, got {actual}",
        )


# ─── RESPONSE SEMANTICS ──────────────────────────────────────────────


class ResponseError(SolaxError):
    """A well-formed packet that is not the expected positive answer."""


class UnexpectedControlCode(ResponseError, _ExpectedActualError):
    kind = ErrorKind.UNEXPECTED_CONTROL_CODE

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            expected,
            actual,
            f"Unexpected control code: expected 0x{expected:02X}, got 0x{actual:02X}",
        )


class UnexpectedFunctionCode(ResponseError, _ExpectedActualError):
    kind = ErrorKind.UNEXPECTED_FUNCTION_CODE

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            expected,
            actual,
            f"Unexpected function code: expected 0x{expected:02X}, got 0x{actual:02X}",
        )


class MalformedStatus(ResponseError):
    """Status payload is not a single ACK or NACK byte."""

    kind = ErrorKind.MALFORMED_STATUS

    def __init__(self, payload: bytes) -> None:
        self.payload = bytes(payload)
        if len(payload) != 1:
            message = f"Expected a 1-byte status, got {len(payload)} bytes"
        else:
            message = (
                f"Expected ACK (0x06) or NACK (0x15), got 0x{payload[0]:02X}"
            )
        super().__init__(message)


class MalformedPayload(ResponseError, _ExpectedActualError):
    """Response payload has the wrong length for its message type."""

    kind = ErrorKind.MALFORMED_PAYLOAD

    def __init__(self, what: str, expected: int, actual: int, *, exact: bool = True) -> None:
        self.exact = exact
        qualifier = "" if exact else "at least "
        super().__init__(
            expected,
            actual,
            f"{what} payload must be {qualifier}{expected} bytes, got {actual}",
        )


class DeviceRejected(ResponseError):
    """The inverter answered with NACK."""

    kind = ErrorKind.DEVICE_REJECTED

    def __init__(self, function_code: int) -> None:
        self.function_code = function_code
        super().__init__(
            f"Inverter rejected request (NACK in response 0x{function_code:02X})"
        )


# ─── AVAILABILITY / TRANSPORT ────────────────────────────────────────


class NoDeviceResponded(SolaxError):
    """Nothing was received on the bus after a discovery request."""

    kind = ErrorKind.NO_DEVICE_RESPONDED

    def __init__(self) -> None:
        super().__init__("No inverter responded to call")


class IncompleteWrite(_ExpectedActualError):
    kind = ErrorKind.INCOMPLETE_WRITE

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            expected,
            actual,
            f"Failed to write full body: wrote {actual} of {expected} bytes",
        )
