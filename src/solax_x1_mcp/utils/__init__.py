"""Low-level helpers: byte order conversion and the additive checksum."""

from .byteorder import u16_from_bytes, u16_to_bytes, u32_from_bytes
from .checksum import checksum
