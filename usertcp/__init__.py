"""A user-space TCP/IP stack: IPv4 and TCP decoding over a TUN device."""

__version__ = "0.1.0"