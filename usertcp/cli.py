"""Command that logs the TCP segments arriving on a TUN interface."""

from __future__ import annotations

import argparse
import logging
import queue
import threading
from typing import Optional, Sequence

from usertcp.datasource import new_ip_reader
from usertcp.tcp import TCPSegment, tcp_filter
from usertcp.transport import Segment

log = logging.getLogger(__name__)

DEFAULT_INTERFACE = "utun4"


def _report(up: queue.Queue[Optional[Segment]]) -> int:
    """Log segments on ``up`` until the end marker; return how many parsed."""
    parsed = 0
    for packet in iter(up.get, None):
        try:
            segment = TCPSegment.from_lower(packet)
        except ValueError as exc:
            log.error("%s", exc)
            continue
        parsed += 1
        log.info("%s", segment)
    return parsed


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Log TCP segments seen on a TUN interface.")
    parser.add_argument("-i", "--interface", default=DEFAULT_INTERFACE)
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")
    stop_event = threading.Event()
    try:
        up, _ = new_ip_reader(args.interface, tcp_filter, stop_event)
    except (OSError, ValueError) as exc:
        log.error("cannot open %s: %s", args.interface, exc)
        return 1
    try:
        _report(up)
    except KeyboardInterrupt:
        pass
    finally:
        stop_event.set()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())