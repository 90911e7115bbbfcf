"""Data models for inverters, telemetry, and device information."""

from .device_info import DeviceInfo
from .inverter import Inverter
from .telemetry import NormalizedTelemetry, TelemetrySnapshot, normalize
