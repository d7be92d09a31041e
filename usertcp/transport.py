"""Types shared between the network and transport layers."""

from dataclasses import dataclass

IPPROTO_ICMP = 1
IPPROTO_TCP = 6
IPPROTO_UDP = 17


@dataclass(frozen=True)
class IP:
    """An IPv4 address held as four octets."""

    octets: bytes

    def __post_init__(self) -> None:
        if len(self.octets) != 4:
            raise ValueError(f"an IPv4 address needs 4 octets, got {len(self.octets)}")
        object.__setattr__(self, "octets", bytes(self.octets))

    def __str__(self) -> str:
        return ".".join(map(str, self.octets))

    def __bytes__(self) -> bytes:
        return self.octets


@dataclass(frozen=True)
class Pseudo:
    """Pseudo header used for transport checksums."""

    src_ip: IP
    dst_ip: IP
    ptcl: int
    length: int
    zero: int = 0


@dataclass
class Segment:
    """Payload passed between the IP layer and a transport layer."""

    src_ip: IP
    dst_ip: IP
    data: bytes
    has_next: bool = False