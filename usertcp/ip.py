"""IPv4 packet parsing and header serialisation."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass, field

from usertcp.transport import IP, IPPROTO_TCP, Segment

MIN_HEADER_LENGTH = 20

_HEADER = struct.Struct("!BBHHBBBBH4s4s")


class Flags(enum.IntFlag):
    """The three IPv4 flag bits: reserved, DF and MF."""

    MF = 0b001
    DF = 0b010
    RESERVED = 0b100

    def df(self) -> bool:
        """Whether the don't-fragment bit is set."""
        return bool(self & Flags.DF)

    def mf(self) -> bool:
        """Whether the more-fragments bit is set."""
        return bool(self & Flags.MF)


_ZERO_IP = IP(b"\x00\x00\x00\x00")


@dataclass
class IPPacket:
    """An IPv4 packet; ``ihl`` is the header length in bytes."""

    version: int = 4
    ihl: int = MIN_HEADER_LENGTH
    tos: int = 0
    total_length: int = 0
    identification: int = 0
    flags: Flags = field(default_factory=lambda: Flags(0))
    offset: int = 0
    ttl: int = 64
    proto: int = IPPROTO_TCP
    checksum: int = 0
    src_ip: IP = _ZERO_IP
    dst_ip: IP = _ZERO_IP
    options: bytes = b""
    payload: bytes = b""

    @classmethod
    def from_lower(cls, data: bytes) -> IPPacket:
        """Parse a packet read from the network interface."""
        if len(data) < MIN_HEADER_LENGTH:
            raise ValueError(f"invalid ip packet length: {len(data)}")
        raw = bytes(data)
        (
            version_ihl,
            tos,
            total_length,
            identification,
            flags_byte,
            offset_low,
            ttl,
            proto,
            header_checksum,
            src,
            dst,
        ) = _HEADER.unpack_from(raw)
        ihl = (version_ihl & 0x0F) * 4
        if ihl < MIN_HEADER_LENGTH or ihl > len(raw):
            raise ValueError(f"invalid ip header length: {ihl}")
        return cls(
            version=version_ihl >> 4,
            ihl=ihl,
            tos=tos,
            total_length=total_length,
            identification=identification,
            flags=Flags(flags_byte >> 5),
            offset=(flags_byte & 0b00011111) << 8 | offset_low,
            ttl=ttl,
            proto=proto,
            checksum=header_checksum,
            src_ip=IP(src),
            dst_ip=IP(dst),
            options=raw[MIN_HEADER_LENGTH:ihl],
            payload=raw[ihl:],
        )

    @classmethod
    def from_upper(cls, segment: Segment) -> IPPacket:
        """Wrap a transport segment in a fresh IPv4 packet."""
        return cls(
            version=4,
            ihl=MIN_HEADER_LENGTH,
            tos=0,
            ttl=64,
            proto=IPPROTO_TCP,
            src_ip=segment.src_ip,
            dst_ip=segment.dst_ip,
            payload=bytes(segment.data),
        )

    def header_bytes(self) -> bytes:
        """Serialise the header, options included, to ``ihl`` bytes."""
        if self.ihl < MIN_HEADER_LENGTH:
            raise ValueError(f"invalid ip header length: {self.ihl}")
        option_space = self.ihl - MIN_HEADER_LENGTH
        fixed = _HEADER.pack(
            ((self.version << 4) | (self.ihl // 4)) & 0xFF,
            self.tos & 0xFF,
            self.total_length & 0xFFFF,
            self.identification & 0xFFFF,
            ((int(self.flags) << 5) | (self.offset >> 8)) & 0xFF,
            self.offset & 0xFF,
            self.ttl & 0xFF,
            self.proto & 0xFF,
            self.checksum & 0xFFFF,
            bytes(self.src_ip),
            bytes(self.dst_ip),
        )
        options = bytes(self.options)[:option_space].ljust(option_space, b"\x00")
        return fixed + options

    def __bytes__(self) -> bytes:
        return self.header_bytes() + bytes(self.payload)