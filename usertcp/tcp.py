"""TCP segment parsing, connection identifiers and states."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass, field

from usertcp.ip import IPPacket
from usertcp.transport import IP, IPPROTO_TCP, Pseudo, Segment

MIN_HEADER_LENGTH = 20

_HEADER = struct.Struct("!HHIIBBHHH")


class State(enum.IntEnum):
    """Connection states."""

    CLOSED = 0
    LISTEN = 1
    SYN_SENT = 2
    SYN_RECEIVED = 3
    ESTABLISHED = 4
    FIN_WAIT1 = 5
    FIN_WAIT2 = 6

    def __str__(self) -> str:
        return _STATE_NAMES[self]


_STATE_NAMES = {
    State.CLOSED: "Closed",
    State.LISTEN: "Listen",
    State.SYN_SENT: "SynSent",
    State.SYN_RECEIVED: "SynReceived",
    State.ESTABLISHED: "Established",
    State.FIN_WAIT1: "FinWait1",
    State.FIN_WAIT2: "FinWait2",
}


@dataclass(frozen=True)
class Quad:
    """The address and port pair on both ends; identifies a connection."""

    src_ip: IP
    src_port: int
    dst_ip: IP
    dst_port: int

    def __str__(self) -> str:
        return f"{self.src_ip}:{self.src_port} -> {self.dst_ip}:{self.dst_port}"


def tcp_filter(packet: IPPacket) -> bool:
    """Accept only packets that carry TCP."""
    return packet.proto == IPPROTO_TCP


class Flags(enum.IntFlag):
    """The six TCP control bits."""

    FIN = 1 << 0
    SYN = 1 << 1
    RST = 1 << 2
    PSH = 1 << 3
    ACK = 1 << 4
    URG = 1 << 5

    def urg(self) -> bool:
        return bool(self & Flags.URG)

    def ack(self) -> bool:
        return bool(self & Flags.ACK)

    def psh(self) -> bool:
        return bool(self & Flags.PSH)

    def rst(self) -> bool:
        return bool(self & Flags.RST)

    def syn(self) -> bool:
        return bool(self & Flags.SYN)

    def fin(self) -> bool:
        return bool(self & Flags.FIN)


@dataclass
class TCPSegment:
    """A TCP segment; ``offset`` is the header length in bytes."""

    pseudo: Pseudo
    src_port: int = 0
    dst_port: int = 0
    seq: int = 0
    ack: int = 0
    offset: int = MIN_HEADER_LENGTH
    reserved: int = 0
    flags: Flags = field(default_factory=lambda: Flags(0))
    window: int = 0
    checksum: int = 0
    urgent: int = 0
    options: bytes = b""
    data: bytes = b""

    @classmethod
    def from_lower(cls, segment: Segment) -> TCPSegment:
        """Parse the payload handed up by the IP layer."""
        raw = bytes(segment.data)
        pseudo = Pseudo(
            src_ip=segment.src_ip,
            dst_ip=segment.dst_ip,
            ptcl=IPPROTO_TCP,
            length=len(raw) & 0xFFFF,
        )
        if len(raw) < MIN_HEADER_LENGTH:
            raise ValueError(f"invalid tcp packet length: {len(raw)}")
        (
            src_port,
            dst_port,
            seq,
            ack,
            offset_byte,
            flags_byte,
            window,
            tcp_checksum,
            urgent,
        ) = _HEADER.unpack_from(raw)
        offset = 4 * (offset_byte >> 4)
        if offset < MIN_HEADER_LENGTH or offset > len(raw):
            raise ValueError(f"invalid tcp data offset: {offset}")
        return cls(
            pseudo=pseudo,
            src_port=src_port,
            dst_port=dst_port,
            seq=seq,
            ack=ack,
            offset=offset,
            reserved=(offset_byte & 0b00001111) << 2 | flags_byte >> 6,
            flags=Flags(flags_byte & 0b00111111),
            window=window,
            checksum=tcp_checksum,
            urgent=urgent,
            options=raw[MIN_HEADER_LENGTH:offset],
            data=raw[offset:],
        )

    def __str__(self) -> str:
        return (
            f"{self.quad()}, seq={self.seq}, ack={self.ack}, "
            f"SYN={str(self.flags.syn()).lower()}, "
            f"RST={str(self.flags.rst()).lower()}, "
            f"FIN={str(self.flags.fin()).lower()}, "
            f"len(data)={len(self.data)}"
        )

    def __bytes__(self) -> bytes:
        if self.offset < MIN_HEADER_LENGTH:
            raise ValueError(f"invalid tcp data offset: {self.offset}")
        option_space = self.offset - MIN_HEADER_LENGTH
        fixed = _HEADER.pack(
            self.src_port & 0xFFFF,
            self.dst_port & 0xFFFF,
            self.seq & 0xFFFFFFFF,
            self.ack & 0xFFFFFFFF,
            ((self.offset // 4) << 4 | (self.reserved >> 2) & 0x0F) & 0xFF,
            ((self.reserved & 0b11) << 6 | int(self.flags) & 0b00111111) & 0xFF,
            self.window & 0xFFFF,
            self.checksum & 0xFFFF,
            self.urgent & 0xFFFF,
        )
        options = bytes(self.options)[:option_space].ljust(option_space, b"\x00")
        return fixed + options + bytes(self.data)

    def quad(self) -> Quad:
        """The connection identifier of this segment."""
        return Quad(
            src_ip=self.pseudo.src_ip,
            src_port=self.src_port,
            dst_ip=self.pseudo.dst_ip,
            dst_port=self.dst_port,
        )