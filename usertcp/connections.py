"""Connection table that routes TCP segments between the IP layer and connections."""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Optional

from usertcp.datasource import new_ip_reader
from usertcp.tcp import Quad, State, TCPSegment, tcp_filter
from usertcp.transport import Segment

log = logging.getLogger(__name__)

DEFAULT_INTERFACE = "usertcp"


@dataclass
class SendSeqSpace:
    """Send sequence variables."""

    una: int = 0
    nxt: int = 0
    wnd: int = 0
    up: int = 0
    wl1: int = 0
    wl2: int = 0
    iss: int = 0


@dataclass
class RecvSeqSpace:
    """Receive sequence variables."""

    nxt: int = 0
    wnd: int = 0
    up: int = 0
    irs: int = 0


@dataclass
class Connection:
    """One TCP connection; a negative ``mss`` means no limit."""

    quad: Quad
    outbox: queue.Queue
    state: State = State.CLOSED
    send: SendSeqSpace = field(default_factory=SendSeqSpace)
    recv: RecvSeqSpace = field(default_factory=RecvSeqSpace)
    mss: int = 0
    inbox: queue.Queue = field(default_factory=queue.Queue)


class Connections:
    """Dispatches segments from the IP layer to connections and back."""

    poll_interval: float = 0.05

    def __init__(
        self,
        up: queue.Queue[Optional[Segment]],
        down: queue.Queue[Segment],
    ) -> None:
        self.pool: dict[Quad, Connection] = {}
        self.up = up
        self.down = down
        self.outgoing: queue.Queue[TCPSegment] = queue.Queue()

    @classmethod
    def from_interface(
        cls, name: str = DEFAULT_INTERFACE, stop_event: Optional[threading.Event] = None
    ) -> Connections:
        """Open the TUN interface ``name`` and attach a connection table to it."""
        up, down = new_ip_reader(name, tcp_filter, stop_event or threading.Event())
        return cls(up, down)

    def handle_incoming(self, segment: Segment) -> Optional[Connection]:
        """Parse ``segment`` and hand it to its connection, creating one if new."""
        try:
            tcp_segment = TCPSegment.from_lower(segment)
        except ValueError as exc:
            log.debug("%s", exc)
            return None
        quad = tcp_segment.quad()
        connection = self.pool.get(quad)
        if connection is None:
            connection = Connection(quad=quad, outbox=self.outgoing)
            self.pool[quad] = connection
        connection.inbox.put(tcp_segment)
        return connection

    def handle_outgoing(self, segment: TCPSegment) -> None:
        """Serialise ``segment`` and pass it down to the IP layer."""
        self.down.put(
            Segment(
                src_ip=segment.pseudo.src_ip,
                dst_ip=segment.pseudo.dst_ip,
                data=bytes(segment),
            )
        )

    def _flush_outgoing(self) -> None:
        while True:
            try:
                segment = self.outgoing.get_nowait()
            except queue.Empty:
                return
            self.handle_outgoing(segment)

    def run(self, stop_event: threading.Event) -> None:
        """Route segments until ``stop_event`` is set or the IP layer ends."""
        try:
            while not stop_event.is_set():
                self._flush_outgoing()
                try:
                    packet = self.up.get(timeout=self.poll_interval)
                except queue.Empty:
                    continue
                if packet is None:
                    break
                self.handle_incoming(packet)
        finally:
            self._flush_outgoing()