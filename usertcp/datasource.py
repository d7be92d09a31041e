"""Reading and writing IPv4 packets through a TUN device."""

from __future__ import annotations

import logging
import os
import queue
import select
import struct
import sys
import threading
from typing import Callable, Optional

from usertcp.ip import IPPacket
from usertcp.transport import Segment

log = logging.getLogger(__name__)

MTU = 1500
IFNAMSIZ = 16

PacketFilter = Callable[[IPPacket], bool]


class TunDevice:
    """A file descriptor that reads and writes raw IP packets."""

    def __init__(self, fd: int, name: str = "", timeout: float = 0.1) -> None:
        self._fd = fd
        self.name = name
        self.timeout = timeout

    @property
    def closed(self) -> bool:
        return self._fd < 0

    def read(self, size: int = MTU) -> bytes:
        """Read one packet; ``b""`` if none arrives within ``timeout``."""
        if self.closed:
            raise OSError("device is closed")
        ready, _, _ = select.select([self._fd], [], [], self.timeout)
        return os.read(self._fd, size) if ready else b""

    def write(self, data: bytes) -> int:
        if self.closed:
            raise OSError("device is closed")
        return os.write(self._fd, bytes(data))

    def close(self) -> None:
        if not self.closed:
            fd, self._fd = self._fd, -1
            os.close(fd)

    def __enter__(self) -> TunDevice:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def open_tun(name: str) -> TunDevice:
    """Open the TUN interface ``name`` without packet information headers."""
    encoded = name.encode()
    if len(encoded) >= IFNAMSIZ:
        raise ValueError(f"interface name too long: {name!r}")
    if not sys.platform.startswith("linux"):
        raise OSError(f"TUN devices are not supported on {sys.platform}")
    import fcntl

    fd = os.open("/dev/net/tun", os.O_RDWR)
    try:
        # TUNSETIFF with IFF_TUN | IFF_NO_PI
        response = fcntl.ioctl(fd, 0x400454CA, struct.pack("16sH", encoded, 0x1001))
    except BaseException:
        os.close(fd)
        raise
    return TunDevice(fd, response[:IFNAMSIZ].rstrip(b"\x00").decode() or name)


class IpReader:
    """Moves packets between a device and the transport layer.

    Segments read are put on ``up``, ended by ``None``; segments put on
    ``down`` are wrapped in IPv4 and written.
    """

    def __init__(self, device: TunDevice, packet_filter: Optional[PacketFilter] = None) -> None:
        self.device = device
        self.packet_filter = packet_filter
        self.up: queue.Queue[Optional[Segment]] = queue.Queue()
        self.down: queue.Queue[Segment] = queue.Queue()

    def run(self, stop_event: threading.Event) -> None:
        """Pump packets until ``stop_event`` is set, then close the device."""
        try:
            while not stop_event.is_set():
                try:
                    segment = self.down.get_nowait()
                except queue.Empty:
                    self._receive()
                    continue
                try:
                    self.device.write(bytes(IPPacket.from_upper(segment)))
                except OSError as exc:
                    log.error("%s", exc)
        finally:
            self.device.close()
            self.up.put(None)

    def _receive(self) -> None:
        try:
            raw = self.device.read(MTU)
            if not raw:
                return
            packet = IPPacket.from_lower(raw)
        except (OSError, ValueError) as exc:
            log.error("%s", exc)
            return
        if self.packet_filter is not None and not self.packet_filter(packet):
            return
        self.up.put(
            Segment(
                src_ip=packet.src_ip,
                dst_ip=packet.dst_ip,
                data=bytes(packet.payload),
                has_next=packet.flags.mf(),
            )
        )


def new_ip_reader(
    name: str,
    packet_filter: Optional[PacketFilter],
    stop_event: threading.Event,
) -> tuple[queue.Queue[Optional[Segment]], queue.Queue[Segment]]:
    """Open ``name`` and pump it in a background thread; return (up, down)."""
    reader = IpReader(open_tun(name), packet_filter)
    threading.Thread(target=reader.run, args=(stop_event,), daemon=True).start()
    return reader.up, reader.down