# usertcp

A small TCP/IP stack that runs in user space. It reads raw IPv4 packets from a
TUN device, keeps the ones that carry TCP, decodes each TCP segment and logs it.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Command line

```
usertcp
usertcp --interface tun0
```

The command opens a TUN interface (`utun4` unless `-i`/`--interface` names
another), reads packets from it in a background thread, and logs one line for
each TCP segment it decodes. The line shows the source and destination address
and port, the sequence and acknowledgment numbers, the SYN, RST and FIN flags,
and the length of the data. A segment that cannot be decoded is logged as an
error and skipped. Stop it with Ctrl-C.

If the interface cannot be opened the command logs the reason and exits with
status 1. TUN devices are opened through `/dev/net/tun`, so this works on Linux
only and normally needs administrator rights.

## Library

The packet formats can be used without a TUN device.

```python
from usertcp.ip import IPPacket
from usertcp.tcp import TCPSegment, tcp_filter
from usertcp.transport import Segment
from usertcp.checksum import checksum

packet = IPPacket.from_lower(raw_bytes)       # decode an IPv4 packet
print(packet.src_ip, packet.dst_ip, packet.flags.df())

if tcp_filter(packet):
    segment = Segment(
        src_ip=packet.src_ip,
        dst_ip=packet.dst_ip,
        data=packet.payload,
        has_next=packet.flags.mf(),
    )
    tcp = TCPSegment.from_lower(segment)      # decode the TCP header
    print(tcp, tcp.quad(), tcp.flags.syn())
    assert bytes(tcp) == segment.data         # the segment encodes back unchanged

assert bytes(packet) == raw_bytes             # header and payload encode back unchanged
print(hex(checksum(raw_bytes[:20])))          # Internet checksum
```

Modules:

- `usertcp.checksum`: `checksum`, the 16-bit one's-complement Internet checksum.
- `usertcp.transport`: `IP` addresses, the TCP `Pseudo` header and the
  `Segment` passed between the IP and transport layers.
- `usertcp.ip`: `IPPacket` with `from_lower`, `from_upper`, `header_bytes`
  and `bytes()`, and the IP `Flags` with `df()` and `mf()`.
- `usertcp.tcp`: `TCPSegment` with `from_lower`, `quad()` and `bytes()`, the
  TCP `Flags`, the connection `State`, the `Quad` that identifies a
  connection, and `tcp_filter`.
- `usertcp.datasource`: `open_tun` and `TunDevice` for the device itself;
  `IpReader`, which moves segments between a device and two queues (`up`,
  ended by `None`, and `down`); and `new_ip_reader`, which opens a device and
  runs an `IpReader` in a daemon thread until a `threading.Event` is set.
- `usertcp.connections`: `Connections`, which hands each incoming segment to
  the `Connection` for its quad (creating one for a new quad) and passes
  segments queued on `outgoing` down to the IP layer.

Malformed input raises `ValueError`: a packet or segment shorter than 20
bytes, or a header length that is below 20 or runs past the data.

## What it does not do

- Checksums are not verified on input, and outgoing IPv4 headers are written
  with a total length and checksum of zero.
- There is no TCP state machine: a new `Connection` starts in `State.CLOSED`
  and nothing reads its `inbox`, so no handshake is answered and no data is
  sent back.
- IP fragments are not reassembled; `Segment.has_next` only reports the MF
  flag.