"""Inverter identity on the bus."""

from __future__ import annotations

from dataclasses import dataclass

BROADCAST_ADDRESS = 0x00


@dataclass
class Inverter:
    """An inverter identified by its factory serial and bus address.

    Address 0 means unregistered. The client updates ``address`` after a
    successful register/deregister exchange; the value is never persisted.
    """

    serial: bytes = b""
    address: int = BROADCAST_ADDRESS

    @property
    def registered(self) -> bool:
        return self.address != BROADCAST_ADDRESS

    def to_dict(self) -> dict:
        return {
            "serial": self.serial.hex().upper(),
            "address": self.address,
            "registered": self.registered,
        }
