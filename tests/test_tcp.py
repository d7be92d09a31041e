import dataclasses
import struct

import pytest

from usertcp.checksum import checksum
from usertcp.ip import IPPacket
from usertcp.tcp import Flags, Quad, State, TCPSegment, tcp_filter
from usertcp.transport import IP, IPPROTO_TCP, Pseudo, Segment

TCP_PACKET = bytes.fromhex(
    "45 00 00 40 00 00 40 00 40 06 26 99 0a 01 00 0a 0a 01 00 14 ce cc 1f 90 "
    "66 e6 2e ab 00 00 00 00 b0 02 ff ff 0c 51 00 00 02 04 05 b4 01 03 03 06 "
    "01 01 08 0a 16 85 7c 18 00 00 00 00 04 02 00 00"
)

ICMP_PACKET = bytes.fromhex(
    "45 00 00 54 32 2c 00 00 40 01 34 5e 0a 01 00 0a 0a 01 00 14 08 00 80 20 "
    "61 48 00 00 67 c5 10 7f 00 0b b3 44 08 09 0a 0b 0c 0d 0e 0f 10 11 12 13 "
    "14 15 16 17 18 19 1a 1b 1c 1d 1e 1f 20 21 22 23 24 25 26 27 28 29 2a 2b "
    "2c 2d 2e 2f 30 31 32 33 34 35 36 37"
)

SRC = IP(b"\x0a\x01\x00\x0a")
DST = IP(b"\x0a\x01\x00\x14")


@pytest.fixture
def syn_segment():
    packet = IPPacket.from_lower(TCP_PACKET)
    return TCPSegment.from_lower(Segment(packet.src_ip, packet.dst_ip, packet.payload))


@pytest.mark.parametrize(
    "value, name",
    [
        (0, "Closed"),
        (1, "Listen"),
        (2, "SynSent"),
        (3, "SynReceived"),
        (4, "Established"),
        (5, "FinWait1"),
        (6, "FinWait2"),
    ],
)
def test_state_names(value, name):
    assert State(value).__str__() == name


def test_state_members_in_order():
    assert [state.__str__() for state in State][2:4] == ["SynSent", "SynReceived"]
    assert State(0) is State.CLOSED


def test_tcp_filter_accepts_tcp_only():
    assert tcp_filter(IPPacket.from_lower(TCP_PACKET)) is True
    assert tcp_filter(IPPacket.from_lower(ICMP_PACKET)) is False


@pytest.mark.parametrize(
    "member, method",
    [
        (Flags.URG, "urg"),
        (Flags.ACK, "ack"),
        (Flags.PSH, "psh"),
        (Flags.RST, "rst"),
        (Flags.SYN, "syn"),
        (Flags.FIN, "fin"),
    ],
)
def test_each_flag_method_sees_only_its_bit(member, method):
    assert getattr(Flags(member), method)() is True
    assert getattr(Flags(0b111111 & ~member), method)() is False


def test_parse_captured_syn(syn_segment):
    assert syn_segment.seq == 0x66E62EAB
    assert syn_segment.ack == 0
    assert syn_segment.flags == Flags.SYN
    assert syn_segment.window == 0xFFFF
    assert syn_segment.reserved == 0
    assert syn_segment.offset == 20 + len(syn_segment.options)
    assert syn_segment.data == b""
    assert syn_segment.pseudo.length == len(TCP_PACKET) - 20
    assert syn_segment.pseudo.ptcl == IPPROTO_TCP
    assert syn_segment.pseudo.zero == 0


def test_quad_of_captured_syn(syn_segment):
    quad = syn_segment.quad()
    assert quad == Quad(SRC, syn_segment.src_port, DST, syn_segment.dst_port)
    assert str(quad) == "10.1.0.10:52940 -> 10.1.0.20:8080"


def test_captured_segment_checksum_verifies(syn_segment):
    pseudo = syn_segment.pseudo
    pseudo_header = bytes(pseudo.src_ip) + bytes(pseudo.dst_ip) + struct.pack(
        "!BBH", pseudo.zero, pseudo.ptcl, pseudo.length
    )
    assert checksum(pseudo_header + bytes(syn_segment)) == 0


def test_str_describes_segment(syn_segment):
    text = str(syn_segment)
    assert text.startswith(str(syn_segment.quad()) + ", ")
    assert "SYN=true" in text
    assert "RST=false" in text
    assert "FIN=false" in text
    assert text.endswith("len(data)=0")


def test_bytes_round_trip_of_captured_segment(syn_segment):
    assert bytes(syn_segment) == TCP_PACKET[20:]


def test_built_segment_round_trips():
    payload = b"hello"
    options = b"\x02\x04\x05\xb4"
    built = TCPSegment(
        pseudo=Pseudo(SRC, DST, IPPROTO_TCP, 0),
        src_port=80,
        dst_port=40000,
        seq=1000,
        ack=2000,
        offset=24,
        flags=Flags.ACK | Flags.PSH,
        window=512,
        checksum=0x1234,
        urgent=7,
        options=options,
        data=payload,
    )
    wire = bytes(built)
    assert len(wire) == 24 + len(payload)
    parsed = TCPSegment.from_lower(Segment(SRC, DST, wire))
    assert parsed.pseudo.length == len(wire)
    assert dataclasses.replace(parsed, pseudo=built.pseudo) == built
    assert parsed.flags.ack() and parsed.flags.psh()
    assert not parsed.flags.syn()


def test_parsed_segment_does_not_alias_input():
    buffer = bytearray(TCP_PACKET[20:])
    segment = TCPSegment.from_lower(Segment(SRC, DST, buffer))
    buffer[:] = b"\x00" * len(buffer)
    assert bytes(segment) == TCP_PACKET[20:]


@pytest.mark.parametrize("length", [0, 10, 19])
def test_short_segment_is_rejected(length):
    with pytest.raises(ValueError, match=f"invalid tcp packet length: {length}"):
        TCPSegment.from_lower(Segment(SRC, DST, TCP_PACKET[20 : 20 + length]))


def test_data_offset_below_minimum_is_rejected():
    raw = bytearray(TCP_PACKET[20:])
    raw[12] = 0x40
    with pytest.raises(ValueError):
        TCPSegment.from_lower(Segment(SRC, DST, bytes(raw)))


def test_data_offset_beyond_data_is_rejected():
    raw = TCP_PACKET[20:40]
    with pytest.raises(ValueError):
        TCPSegment.from_lower(Segment(SRC, DST, raw))