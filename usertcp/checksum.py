"""Internet checksum."""

import struct


def checksum(data: bytes) -> int:
    """Return the 16-bit one's complement checksum of ``data``."""
    data = bytes(data)
    if len(data) % 2:
        data += b"\x00"
    total = sum(word for (word,) in struct.iter_unpack("!H", data)) & 0xFFFFFFFF
    total = (total >> 16) + (total & 0xFFFF)
    total += total >> 16
    return ~total & 0xFFFF